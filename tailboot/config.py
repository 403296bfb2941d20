"""
config.py
=========

Reading and checking of the tailboot configuration file. A minimal file
only names the user, the auth key can come from the environment:

.. code:: yaml

    username: alice
    advertise-routes:
      - 10.0.0.0/24

"""
import copy
import os

import yaml

from tailboot import DEFAULT_GROUPS, DEFAULT_SHELL, DEFAULT_SUDO
from tailboot.util.logger import Logger
from tailboot.util.net import normalize_routes
from tailboot.util.util import (auth_key_validation, hostname_validation,
                                username_validation)

LOGGER = Logger(__name__)

DEFAULTS = {
    'username': None,
    'tailscale-key': None,
    'groups': list(DEFAULT_GROUPS),
    'sudo': DEFAULT_SUDO,
    'shell': DEFAULT_SHELL,
    'packages': [],
    'package-update': True,
    'package-upgrade': True,
    'ip-forwarding': True,
    'tailscale-ssh': True,
    'exit-node': False,
    'advertise-routes': [],
    'hostname': None,
    'ssh-authorized-keys': [],
    'generate-ssh-key': False,
    'script': None,
}

BOOL_KEYS = ('package-update', 'package-upgrade', 'ip-forwarding',
             'tailscale-ssh', 'exit-node', 'generate-ssh-key')
LIST_KEYS = ('groups', 'packages', 'advertise-routes', 'ssh-authorized-keys')

ENV_VARIABLES = {
    'TAILSCALE_KEY': 'tailscale-key',
    'TAILSCALE_HOSTNAME': 'hostname',
    'TAILBOOT_USERNAME': 'username',
}


class ConfigError(Exception):
    """A custom error if the configuration file can't be used"""


def read_env_variables():
    """
    Read the TAILSCALE_* and TAILBOOT_* variables known to tailboot and
    return them as configuration keys
    """
    env = {}
    for var, key in ENV_VARIABLES.items():
        val = os.environ.get(var)
        if val:
            env[key] = val
    return env


def validate_config(config):
    """
    Check the values of a configuration dict.

    Raises:
        ConfigError with the first problem found
    """
    unknown = sorted(set(config) - set(DEFAULTS))
    if unknown:
        raise ConfigError("unknown configuration keys: %s" % ", ".join(unknown))

    for key in BOOL_KEYS:
        if not isinstance(config[key], bool):
            raise ConfigError(f"{key} must be true or false")

    for key in LIST_KEYS:
        if not isinstance(config[key], list):
            raise ConfigError(f"{key} must be a list")

    try:
        username_validation(config['username'])
        if config['tailscale-key'] is not None:
            auth_key_validation(config['tailscale-key'])
        if config['hostname'] is not None:
            hostname_validation(config['hostname'])
        config['advertise-routes'] = normalize_routes(
            config['advertise-routes'])
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    return config


def load_config(path):
    """
    Read the configuration file, fill in environment variables and
    defaults and validate the result.

    Values in the file take precedence over the environment. A relative
    ``script`` path is resolved against the directory of the file.

    Args:
        path (str): the YAML configuration file

    Returns:
        dict with all keys of ``DEFAULTS``

    Raises:
        ConfigError if the file is unreadable or a value is invalid
    """
    try:
        with open(path, 'r') as stream:
            data = yaml.safe_load(stream)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"can't read {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} does not contain a mapping")

    config = copy.deepcopy(DEFAULTS)
    config.update(read_env_variables())
    config.update(data)

    if config['script']:
        config['script'] = os.path.join(os.path.dirname(os.path.abspath(path)),
                                        config['script'])

    LOGGER.debug("Read configuration from %s", path)
    return validate_config(config)
