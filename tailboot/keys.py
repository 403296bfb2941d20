"""
keys.py holds the SSH key utilities used for the provisioned user
"""
import os

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from tailboot.util.logger import Logger

LOGGER = Logger(__name__)


def create_key(size=2048, public_exponent=65537):
    """Create an RSA private key

    Args:
        size (int) - the key byte size
        public_exponent (int) - the key public_exponent

    Return:
        rsa key object instance
    """
    key = rsa.generate_private_key(
        public_exponent=public_exponent,
        key_size=size,
        backend=default_backend()
    )
    return key


def ssh_public_keyline(key, comment=None):
    """
    Return the OpenSSH ``authorized_keys`` line of a private key, e.g.
    ``ssh-rsa AAAA... alice@tailboot``
    """
    keyline = key.public_key().public_bytes(
        serialization.Encoding.OpenSSH,
        serialization.PublicFormat.OpenSSH).decode()
    if comment:
        keyline = "%s %s" % (keyline, comment)
    return keyline


def write_key(key, path, encryption_algorithm=serialization.NoEncryption()):
    """
    Write the private key in PEM format, readable only by the owner

    Args:
        key: the private key to write
        path (str): the file to write
        encryption_algorithm: optional encryption of the key
    """
    data = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=encryption_algorithm)

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)
    LOGGER.debug("Wrote private key to %s", path)


def read_key(path, password=None):
    """read a private key in PEM format"""
    with open(path, "rb") as fh:
        return serialization.load_pem_private_key(
            fh.read(), password=password, backend=default_backend())
