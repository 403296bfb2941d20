# pylint: disable=missing-docstring
from importlib import metadata

try:
    __version__ = metadata.version('tailboot')
except metadata.PackageNotFoundError:
    __version__ = '0.1.0'

# Defining some constants
DEFAULT_PACKAGES = ("fail2ban", "ufw", "ifupdown")
DEFAULT_GROUPS = ("users", "admin", "sudo", "adm")
DEFAULT_SUDO = "ALL=(ALL) NOPASSWD:ALL"
DEFAULT_SHELL = "/bin/bash"
MIME_BOUNDARY = "//"
TAILSCALE_INSTALL_URL = "https://tailscale.com/install.sh"
TAILSCALE_SYSCTL_CONF = "/etc/sysctl.d/99-tailscale.conf"
USERDATA_MAX_SIZE = 16384
