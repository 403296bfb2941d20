"""
Substitution of the ``${name}`` placeholders in a user-data template.

Only the braced form is a placeholder. Shell variables like ``$HOME`` or
``$1`` in the boot script are left alone. A literal ``${name}``, e.g. a
bash parameter expansion, is written as ``$${name}`` in the template and
rendered as ``${name}``.
"""
import re

USERNAME = "username"
TAILSCALE_KEY = "tailscale_key"

PLACEHOLDER_RE = re.compile(r"(\$?)\$\{([_a-zA-Z][_a-zA-Z0-9]*)\}")


class TemplateError(Exception):
    """Raised when a placeholder has no value"""

    def __init__(self, missing):
        self.missing = sorted(missing)
        super().__init__("missing template variables: %s" %
                         ", ".join(self.missing))


def placeholder(name):
    """return the placeholder for the variable name, e.g. ${username}"""
    return "${%s}" % name


def escape(text):
    """protect literal ${...} expressions in text from substitution"""
    return PLACEHOLDER_RE.sub(lambda m: "$" + m.group(0) if not m.group(1)
                              else m.group(0), text)


def placeholders(text):
    """return the names of all placeholders in text, in order of appearance"""
    names = []
    for escaped, name in PLACEHOLDER_RE.findall(text):
        if not escaped and name not in names:
            names.append(name)
    return names


def render(text, **variables):
    """
    Substitute all placeholders in text.

    Args:
        text (str): the template
        variables: the values, e.g. ``username="alice"``

    Returns:
        the rendered text

    Raises:
        TemplateError if a placeholder has no value or an empty value
    """
    missing = [name for name in placeholders(text)
               if variables.get(name) in (None, "")]
    if missing:
        raise TemplateError(missing)

    def _substitute(match):
        if match.group(1):
            return placeholder(match.group(2))
        return str(variables[match.group(2)])

    return PLACEHOLDER_RE.sub(_substitute, text)
