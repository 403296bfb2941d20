"""
General purpose utilities
"""
import base64
import re

from tailboot.util.logger import Logger

LOGGER = Logger(__name__)

USERNAME_MAX_LENGTH = 32
USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]*$")
HOSTNAME_RE = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$")
AUTH_KEY_PREFIX = "tskey-"


def username_validation(name):
    """
    Validates a name that will be used as a login on the instance.
    Each name should conform to the following convention:
    not too long (maximum 32 characters), starts with a lower case letter
    or an underscore, followed by lower case letters, digits, underscores
    and dashes.

    Args:
        name (str): The name to be checked

    Returns:
        Name if valid.

    Raises:
        ValueError if the name is invalid.
    """
    if not name or not isinstance(name, str):
        raise ValueError("username can't be empty")
    if len(name) > USERNAME_MAX_LENGTH:
        raise ValueError(f"username '{name}' is too long")
    if not USERNAME_RE.match(name):
        raise ValueError(f"username '{name}' is using illegal characters")
    return name


def hostname_validation(name):
    """
    Validates the name a machine announces itself with in the tailnet,
    a single DNS label.

    Raises:
        ValueError if the name is invalid.
    """
    if not isinstance(name, str) or not HOSTNAME_RE.match(name):
        raise ValueError(f"hostname '{name}' is not a valid DNS label")
    return name


def auth_key_validation(key):
    """
    Validates a Tailscale auth key before it is written into ``runcmd``.

    The key ends up inside a single shell word, hence it must not be empty
    and must not contain whitespace, quotes or non-ASCII characters. Keys
    that don't look like the ones generated in the admin console only
    produce a warning, since ``file:`` references are accepted by
    ``tailscale up`` too.

    Args:
        key (str): the auth key

    Returns:
        The key if valid.

    Raises:
        ValueError if the key is empty or contains illegal characters.
    """
    if not key or not isinstance(key, str):
        raise ValueError("tailscale auth key can't be empty")
    if not key.isascii():
        raise ValueError("tailscale auth key contains non-ASCII characters")
    if re.search(r"[\s'\"]", key):
        raise ValueError("tailscale auth key contains whitespace or quotes")
    if not key.startswith(AUTH_KEY_PREFIX):
        LOGGER.warn("tailscale auth key does not start with '%s'",
                    AUTH_KEY_PREFIX)
    return key


def b64_text(text):
    """return the base64 representation of a text as str"""
    return base64.b64encode(text.encode()).decode()
