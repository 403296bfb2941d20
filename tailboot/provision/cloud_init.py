"""
This modules builds the cloud-init user-data which turns a freshly booted
instance into a Tailscale node. At the moment only Debian/Ubuntu images
are supported, since the packages are installed with apt.
"""
import base64
import textwrap
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from importlib import resources

import yaml

from tailboot import (__version__, DEFAULT_GROUPS, DEFAULT_PACKAGES,
                      DEFAULT_SHELL, DEFAULT_SUDO, MIME_BOUNDARY,
                      TAILSCALE_INSTALL_URL, TAILSCALE_SYSCTL_CONF)
from tailboot.provision.template import (escape, placeholder, USERNAME,
                                        TAILSCALE_KEY)
from tailboot.util.logger import Logger
from tailboot.util.net import normalize_routes
from tailboot.util.util import hostname_validation

LOGGER = Logger(__name__)

CLOUD_CONFIG_HEADER = "#cloud-config\n"
CLOUD_CONFIG_FILENAME = "cloud-config.txt"
SCRIPT_FILENAME = "userdata.txt"
SCRIPT_RESOURCE = "userdata.sh"
SHEBANG = "#!/bin/bash"


class BaseInit:  # pylint: disable=unnecessary-lambda
    """
    Attributes:
        cloud_config_data       this attribute contains the text/cloud-config
                                data that is passed to the instances, keys
                                are kept in insertion order
        attachments             this attribute contains other parts of the
                                userdata, e.g scripts that are directly
                                executed by cloud-init. They are
                                instances of MIMEText with the header
                                'Content-Disposition' set to 'attachment'
    """
    def __init__(self):
        self._cloud_config_data = {}
        self._attachments = []

        # if needed we can declare and use other sections at this point...
        self._cloud_config_data['users'] = []
        self._cloud_config_data['packages'] = []

    @property
    def cloud_config_data(self):
        return self._cloud_config_data

    @property
    def attachments(self):
        return self._attachments

    def add_user(self, name, groups=DEFAULT_GROUPS, sudo=DEFAULT_SUDO,
                 shell=DEFAULT_SHELL, ssh_authorized_keys=None):
        """
        create a user on the instance

        name: the login name, may be a placeholder
        groups: the supplementary groups of the user
        sudo: a sudoers rule, or None for no sudo access
        shell: the login shell
        ssh_authorized_keys: list of public keys for ~/.ssh/authorized_keys
        """
        if not isinstance(groups, str):
            groups = ", ".join(groups)
        user = {"name": name, "groups": groups}
        if sudo:
            user["sudo"] = sudo
        user["shell"] = shell
        if ssh_authorized_keys:
            user["ssh_authorized_keys"] = list(ssh_authorized_keys)

        self._cloud_config_data['users'].append(user)

    def add_packages(self, packages):
        """add packages to install, duplicates are ignored"""
        for package in packages:
            if package not in self._cloud_config_data['packages']:
                self._cloud_config_data['packages'].append(package)

    def add_command(self, command):
        """
        append a command to runcmd. command is a list of arguments, which
        cloud-init executes without a shell
        """
        self._cloud_config_data.setdefault('runcmd', []).append(list(command))

    def write_file(self, path, content, owner="root", group="root",
                   permissions="0600", encoder=lambda x: base64.b64encode(x)):
        """
        writes a file to the instance
        path: e.g. /etc/tailboot.conf
        content: string of the content of the file
        owner: e.g. root
        group: e.g. root
        permissions: e.g. "0644", as string
        encode: Optional encoder to use for the needed base64 encoding
        """
        data = {
            "path": path,
            "owner": owner + ":" + group,
            "encoding": "b64",
            "permissions": permissions,
            "content": encoder(content.encode()).decode()
        }
        self._cloud_config_data.setdefault('write_files', []).append(data)

    def add_script(self, script, filename=SCRIPT_FILENAME):
        """
        attach a shell script, executed by cloud-init in the scripts-user
        stage.

        Raises:
            ValueError if the script has no shebang line
        """
        if not script.startswith("#!"):
            raise ValueError(f"script {filename} has no shebang line")

        part = MIMEText(script, _subtype='x-shellscript', _charset='us-ascii')
        part.add_header('Content-Disposition', 'attachment',
                        filename=filename)
        self._attachments.append(part)

    def get_cloud_config(self):
        """return the text/cloud-config document"""
        return CLOUD_CONFIG_HEADER + yaml.dump(self._cloud_config_data,
                                               default_flow_style=None,
                                               sort_keys=False,
                                               width=4096)

    def __str__(self):
        """
        This method generates a string from the cloud_config_data and the
        attachments that have been set in the corresponding attributes.
        """
        userdata = MIMEMultipart(boundary=MIME_BOUNDARY)

        # first add the cloud-config-data script
        config = MIMEText(self.get_cloud_config(), _subtype='cloud-config',
                          _charset='us-ascii')
        config.add_header('Content-Disposition', 'attachment',
                          filename=CLOUD_CONFIG_FILENAME)
        userdata.attach(config)

        for attachment in self._attachments:
            userdata.attach(attachment)

        return userdata.as_string()


def get_bootstrap_script():
    """read the script shipped in tailboot/provision/userdata"""
    return resources.files("tailboot.provision").joinpath(
        "userdata", SCRIPT_RESOURCE).read_text()


def merge_script(script, body):
    """
    append body to script. A shebang in body is dropped, the
    interpreter is always the one of script. ${...} expressions in body are
    escaped, they belong to the shell and not to the template.
    """
    if not body:
        return script
    if body.startswith("#!"):
        body = body.split("\n", 1)[1] if "\n" in body else ""
    if not script.endswith("\n"):
        script += "\n"
    return script + escape(body)


class TailscaleInit(BaseInit):
    """
    The user-data of a Tailscale node. The node installs a few hardening
    packages, joins the tailnet with an auth key and runs its boot script
    on every boot.

    The login name and the auth key are always emitted as the placeholders
    ``${username}`` and ``${tailscale_key}``, see
    :func:`tailboot.provision.template.render`.

    Args:
        config (dict): the parsed tailboot configuration, see
            :func:`tailboot.config.load_config`. Missing keys use the
            defaults.
        ssh_authorized_keys (list): public keys for the created user, on top
            of those listed in config.
        script_body (str): shell code appended to the boot script.
    """
    def __init__(self, config=None, ssh_authorized_keys=None,
                 script_body=None):
        super().__init__()
        self.config = config or {}
        self.ssh_authorized_keys = list(
            self.config.get('ssh-authorized-keys') or [])
        self.ssh_authorized_keys.extend(ssh_authorized_keys or [])
        self.script_body = script_body

        self.add_user(placeholder(USERNAME),
                      groups=self.config.get('groups', DEFAULT_GROUPS),
                      sudo=self.config.get('sudo', DEFAULT_SUDO),
                      shell=self.config.get('shell', DEFAULT_SHELL),
                      ssh_authorized_keys=self.ssh_authorized_keys)
        self.add_packages(DEFAULT_PACKAGES)
        self.add_packages(self.config.get('packages') or [])
        self._cloud_config_data['package_update'] = self.config.get(
            'package-update', True)
        self._cloud_config_data['package_upgrade'] = self.config.get(
            'package-upgrade', True)

        # assemble the parts
        self._write_tailscale_commands()
        self._cloud_config_data['cloud_final_modules'] = [
            ['scripts-user', 'always']]
        self._write_tailboot_info()
        self.add_script(merge_script(get_bootstrap_script(),
                                     self.script_body))

    def _write_tailscale_commands(self):
        self.add_command(
            ['sh', '-c', 'curl -fsSL %s | sh' % TAILSCALE_INSTALL_URL])

        # IP forwarding is needed for exit nodes and subnet routers
        if self.config.get('ip-forwarding', True):
            sysctl = " && ".join([
                "echo 'net.ipv4.ip_forward = 1' | sudo tee -a %s" %
                TAILSCALE_SYSCTL_CONF,
                "echo 'net.ipv6.conf.all.forwarding = 1' | sudo tee -a %s" %
                TAILSCALE_SYSCTL_CONF,
                "sudo sysctl -p %s" % TAILSCALE_SYSCTL_CONF])
            self.add_command(['sh', '-c', sysctl])

        up_cmd = ['tailscale', 'up',
                  '--auth-key=%s' % placeholder(TAILSCALE_KEY)]
        hostname = self.config.get('hostname')
        if hostname:
            up_cmd.append('--hostname=%s' % hostname_validation(hostname))
        self.add_command(up_cmd)

        if self.config.get('tailscale-ssh', True):
            self.add_command(['tailscale', 'set', '--ssh'])

        if self.config.get('exit-node', False):
            if not self.config.get('ip-forwarding', True):
                LOGGER.warn("exit node requested without IP forwarding")
            self.add_command(['tailscale', 'set', '--advertise-exit-node'])

        routes = normalize_routes(self.config.get('advertise-routes') or [])
        if routes:
            self.add_command(['tailscale', 'set',
                              '--advertise-routes=%s' % ",".join(routes)])

    def _write_tailboot_info(self):
        """
        Generate the tailboot.conf file, which marks the instance as
        provisioned by tailboot.
        """
        content = """
        # This file contains meta information about tailboot
        tailboot_version={}
        """.format(__version__)
        content = textwrap.dedent(content).lstrip()

        self.write_file("/etc/tailboot.conf", content, "root", "root",
                        "0644")
