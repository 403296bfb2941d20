"""
cli.py
======

misc functions to build and write user-data, usually called from
``tailboot.tailboot.Tailboot``.

Don't use directly
"""
import os

from huepy import que, bold  # pylint: disable=no-name-in-module

from tailboot import USERDATA_MAX_SIZE
from tailboot.keys import create_key, read_key, ssh_public_keyline, write_key
from tailboot.provision.cloud_init import TailscaleInit
from tailboot.provision.template import render, USERNAME, TAILSCALE_KEY
from tailboot.provision.validate import check_userdata
from tailboot.util.logger import Logger
from tailboot.util.util import auth_key_validation, b64_text


LOGGER = Logger(__name__)


def confirm(force):
    """Asks the user for confirmation."""
    if not force:
        ans = input(que(bold("Are you sure? [y/N]: ")))
    else:
        ans = 'y'

    return ans.lower()


def read_script(path):
    """read the shell code appended to the boot script"""
    if not path:
        return None
    with open(path, 'r') as fh:
        return fh.read()


def create_ssh_key(config, directory):
    """
    Create a key pair for the configured user and store the private key
    as ``<username>-id_rsa`` in directory. An existing key file is never
    overwritten, its key is used instead.

    Returns:
        the public key line

    Raises:
        ValueError if the existing key file holds no private key
    """
    path = os.path.join(directory, '-'.join((config['username'], 'id_rsa')))
    if os.path.exists(path):
        try:
            key = read_key(path)
        except (ValueError, TypeError) as err:
            raise ValueError(f"{path} exists and is not an unencrypted "
                             f"private key, not overwriting it: {err}")
        LOGGER.info("Using the existing SSH private key %s", path)
    else:
        key = create_key()
        write_key(key, path)
        LOGGER.success("SSH private key written to %s", path)
    return ssh_public_keyline(key, comment="%s@tailboot" % config['username'])


def get_template(config=None, key_directory=None):
    """
    Build the user-data template for the configuration.

    Args:
        config (dict): parsed configuration, None for the defaults
        key_directory (str): where a generated SSH key is stored

    Returns:
        the MIME document with ``${username}`` and ``${tailscale_key}``
    """
    config = config or {}
    ssh_keys = []
    if config.get('generate-ssh-key'):
        ssh_keys.append(create_ssh_key(config, key_directory or os.getcwd()))

    init = TailscaleInit(config, ssh_authorized_keys=ssh_keys,
                         script_body=read_script(config.get('script')))
    return str(init)


def build_userdata(config, key_directory=None):
    """
    Build, render and validate the user-data for the configuration.

    Raises:
        ValueError if the configuration lacks the auth key
        ValidationError if the result is not valid user-data
    """
    if not config.get('tailscale-key'):
        raise ValueError("no tailscale auth key, set tailscale-key in the "
                         "configuration or TAILSCALE_KEY in the environment")

    template = get_template(config, key_directory)
    userdata = render(template, **{
        USERNAME: config['username'],
        TAILSCALE_KEY: auth_key_validation(config['tailscale-key'])})

    check_userdata(userdata)
    LOGGER.debug("user-data has %d of %d bytes", len(userdata.encode()),
                 USERDATA_MAX_SIZE)
    return userdata


def write_userdata(content, path=None, encode=False, force=False):
    """
    Write the user-data to path, or print it when no path is given.
    An existing file is only replaced after confirmation.

    Returns:
        the path written, None if nothing was written to a file
    """
    if encode:
        content = b64_text(content)

    if not path:
        print(content)
        return None

    if os.path.exists(path):
        LOGGER.question("Overwriting %s" % path)
        if confirm(force) != 'y':
            LOGGER.warn("Not overwriting %s", path)
            return None

    with open(path, "w") as fh:
        fh.write(content)

    LOGGER.success("User data written to %s", path)
    return path
