"""
tailboot
========

The main entry point for building Tailscale node user-data.
Don't use it directly, instead install the package with setup.py.
It automatically creates an executable in your path.

"""
import argparse
import os
import sys

from mach import mach1

from . import __version__
from .cli import build_userdata, get_template, write_userdata
from .config import ConfigError, load_config
from .provision.template import TemplateError
from .provision.validate import ValidationError, validate_userdata
from .util.logger import Logger

LOGGER = Logger(__name__)


@mach1()
class Tailboot:  # pylint: disable=no-self-use
    """
    The main entry point for the program. This class does the CLI parsing
    and decides which action should be taken
    """
    def __init__(self):
        self.parser.add_argument(  # pylint: disable=no-member
            "--version", action="store_true",
            help="show version and exit",
            default=argparse.SUPPRESS)

        verbosity_help = "".join([
            "set the verbosity level (",
            "0 = quiet, ",
            "1 = error, ",
            "2 = warning, ",
            "3 = info, ",
            "4 = debug)"])
        self.parser.add_argument("--verbosity",  # pylint: disable=no-member
                                 "-v",
                                 help=verbosity_help,
                                 choices=['0', '1', '2', '3', '4', 'quiet',
                                          'error', 'warning', 'info', 'debug'],
                                 type=str,
                                 default=3)

    def _get_version(self, show=True):
        print("%s version: %s" % (self.__class__.__name__, __version__))

    def _get_verbosity(self, level=None):
        pass

    def template(self, output: str = None, force: bool = False):
        """
        Write the user-data template with username and auth key placeholders

        output - the file to write, default is stdout
        force - overwrite output without asking
        """
        try:
            write_userdata(get_template(), output, force=force)
        except OSError as err:
            LOGGER.error(f"Error: {err}")
            sys.exit(1)

    def render(self, config: str, output: str = None, encode: bool = False,
               force: bool = False):
        """
        Build the user-data of a Tailscale node

        config - configuration file
        output - the file to write, default is stdout
        encode - write the user-data base64 encoded
        force - overwrite output without asking
        """
        try:
            config_dict = load_config(config)
            userdata = build_userdata(
                config_dict,
                key_directory=os.path.dirname(os.path.abspath(config)))
        except (ConfigError, TemplateError, ValueError, OSError) as err:
            LOGGER.error(f"Error: {err}")
            sys.exit(1)
        except ValidationError as err:
            for problem in err.problems:
                LOGGER.error(problem)
            sys.exit(1)

        try:
            write_userdata(userdata, output, encode=encode, force=force)
        except OSError as err:
            LOGGER.error(f"Error: {err}")
            sys.exit(1)

    def validate(self, userdata: str, placeholders: bool = False):
        """
        Check a user-data document

        userdata - the user-data file
        placeholders - accept ${...} placeholders, i.e. check a template
        """
        try:
            with open(userdata, 'rb') as stream:
                text = stream.read().decode('utf-8')
        except (OSError, UnicodeDecodeError) as err:
            LOGGER.error(f"Error: {err}")
            sys.exit(1)

        problems = validate_userdata(text, allow_placeholders=placeholders)
        if problems:
            for problem in problems:
                LOGGER.error(problem)
            sys.exit(1)

        LOGGER.success("%s is valid user-data", userdata)


def main():
    """
    run and execute tailboot
    """
    t = Tailboot()

    # pylint: disable=no-member
    t.parser.description = 'Build cloud-init user-data which joins a '\
                           'freshly booted instance to your tailnet.'

    # Setting verbosity level
    LOGGER.level = t.parser.parse_args().verbosity

    # pylint misses the fact that Tailboot is decorated with mach.
    # the mach decorator analyzes the methods in the class and dynamically
    # creates the CLI parser. It also adds the method run to the class.
    t.run()  # pylint: disable=no-member
