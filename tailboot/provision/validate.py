"""
Checks a rendered user-data document before it is handed to a cloud.

A valid document is a ``multipart/mixed`` MIME message with exactly two
parts: the ``text/cloud-config`` part installing the hardening packages and
joining the tailnet, followed by a ``text/x-shellscript`` part run by bash.
"""
import email
import shlex

import yaml

from tailboot import DEFAULT_PACKAGES, USERDATA_MAX_SIZE
from tailboot.provision.cloud_init import SHEBANG
from tailboot.provision.template import placeholders
from tailboot.util.logger import Logger

LOGGER = Logger(__name__)

AUTH_KEY_FLAGS = ("--auth-key=", "--authkey=")


class ValidationError(Exception):
    """A custom error if the user-data is malformed"""

    def __init__(self, problems):
        self.problems = problems
        super().__init__("invalid user-data: %s" % "; ".join(problems))


def _payload(part):
    """the decoded text of a part, None if it is not in its charset"""
    charset = part.get_content_charset() or "us-ascii"
    try:
        return part.get_payload(decode=True).decode(charset)
    except (UnicodeDecodeError, LookupError):
        return None


def _split(line):
    try:
        return shlex.split(line)
    except ValueError:
        return line.split()


def _as_args(command):
    if isinstance(command, str):
        args = _split(command)
    elif isinstance(command, list):
        args = [str(arg) for arg in command]
    else:
        return []

    # runcmd entries like [sh, -c, "tailscale up ..."]
    if args[:2] == ["sh", "-c"] and len(args) > 2:
        return _split(args[2])
    return args


def get_auth_keys(runcmd):
    """
    return the --auth-key values of all ``tailscale up`` commands in runcmd.
    A command without the flag yields an empty string.
    """
    keys = []
    for command in runcmd or []:
        args = _as_args(command)
        if args[:2] != ["tailscale", "up"]:
            continue
        key = ""
        rest = args[2:]
        for i, arg in enumerate(rest):
            for flag in AUTH_KEY_FLAGS:
                if arg.startswith(flag):
                    key = arg[len(flag):]
                elif arg == flag[:-1] and i + 1 < len(rest):
                    key = rest[i + 1]
        keys.append(key)
    return keys


def validate_cloud_config(text, allow_placeholders=False):
    """return the problems found in a text/cloud-config document"""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        return [f"cloud-config is not valid YAML: {exc}"]

    if not isinstance(data, dict):
        return ["cloud-config is not a mapping"]

    problems = []
    if not allow_placeholders:
        for name in placeholders(text):
            problems.append("placeholder ${%s} is not substituted" % name)

    packages = data.get('packages') or []
    for package in DEFAULT_PACKAGES:
        if package not in packages:
            problems.append(f"package '{package}' is not installed")

    keys = get_auth_keys(data.get('runcmd'))
    if not keys:
        problems.append("runcmd has no 'tailscale up' command")
    for key in keys:
        if not key:
            problems.append("'tailscale up' has an empty --auth-key")

    return problems


def validate_script(text):
    """return the problems found in the text/x-shellscript part"""
    first_line = text.split("\n", 1)[0].split()
    if not first_line or first_line[0] != SHEBANG:
        return [f"shell script does not start with '{SHEBANG}'"]
    return []


def validate_userdata(text, allow_placeholders=False):
    """
    Validate a user-data document.

    Args:
        text (str): the MIME document
        allow_placeholders (bool): accept ``${...}`` placeholders, i.e.
            validate a template instead of rendered user-data

    Returns:
        list of problems, empty if the document is valid
    """
    problems = []
    if len(text.encode()) > USERDATA_MAX_SIZE:
        problems.append(f"user-data is larger than {USERDATA_MAX_SIZE} bytes")

    msg = email.message_from_string(text)
    if msg.get_content_type() != "multipart/mixed" or not msg.is_multipart():
        problems.append("user-data is not a multipart/mixed MIME document")
        return problems

    parts = msg.get_payload()
    if len(parts) != 2:
        problems.append(f"user-data has {len(parts)} parts, expected 2")
        return problems

    config, script = parts
    if config.get_content_type() != "text/cloud-config":
        problems.append("first part is not text/cloud-config")
    elif _payload(config) is None:
        problems.append("cloud-config part is not %s"
                        % (config.get_content_charset() or "us-ascii"))
    else:
        problems.extend(validate_cloud_config(_payload(config),
                                              allow_placeholders))

    if script.get_content_type() != "text/x-shellscript":
        problems.append("second part is not text/x-shellscript")
    elif _payload(script) is None:
        problems.append("shell script part is not %s"
                        % (script.get_content_charset() or "us-ascii"))
    else:
        problems.extend(validate_script(_payload(script)))

    for problem in problems:
        LOGGER.debug(problem)

    return problems


def check_userdata(text, allow_placeholders=False):
    """
    Like :func:`validate_userdata`, but raises

    Raises:
        ValidationError with the list of problems
    """
    problems = validate_userdata(text, allow_placeholders)
    if problems:
        raise ValidationError(problems)
