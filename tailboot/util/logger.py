"""This module defines the console logging used by tailboot."""

import logging
import sys
import time

from huepy import (bad, red, info as infomsg, yellow, run, grey,  # pylint: disable=no-name-in-module
                   que, good, green)

LOG_LEVELS = list(range(5))
DEFAULT_LOG_LEVEL = 3

LEVEL_NAMES = {
    'quiet': 0,
    'error': 1,
    'warning': 2,
    'info': 3,
    'debug': 4}

# tailboot level -> python logging level
_PY_LEVELS = {1: logging.ERROR, 2: logging.WARNING, 3: logging.INFO,
              4: logging.DEBUG}


def get_logger(name):
    """Returns a Python logger writing plain messages to STDOUT.

    Only one handler is ever attached to a logger, repeated calls with the
    same name would otherwise print every message several times.

    Args:
        name (str): The name of the Logger.

    Returns:
        A Python Logger.
    """

    log = logging.getLogger(name)
    set_level(log, Logger.LOG_LEVEL)

    if not log.handlers:
        sh = logging.StreamHandler(sys.stdout)
        sh.setFormatter(logging.Formatter("%(message)s"))
        log.addHandler(sh)

    return log


def set_level(logger, level):
    """Sets the logging level of a python logger from a tailboot level.

    Level 0 disables the logger completely.

    Args:
        logger: A Python logger object.
        level (int): The tailboot logging level.

    Raises:
        ValueError if log level is unsupported.
    """

    if level not in LOG_LEVELS:
        raise ValueError(f"log level {level} is not supported")

    logger.disabled = level == 0
    if level:
        logger.setLevel(_PY_LEVELS[level])


class Singleton(type):
    """Metaclass returning the same instance for every instantiation.

    Calling the class again re-runs ``__init__`` on the existing instance,
    so ``Logger(__name__)`` in every module hands out one shared object
    which picks up the current ``Logger.LOG_LEVEL``.

    Example:
        >>> log1 = Logger(__name__)
        >>> log2 = Logger("tailboot")
        >>> id(log1) == id(log2)
        True
    """
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super(Singleton, cls).__call__(*args, **kwargs)
        else:
            cls._instances[cls].__init__(*args, **kwargs)

        return cls._instances[cls]


class Logger(metaclass=Singleton):
    """Console logger for tailboot.

    Set ``Logger.LOG_LEVEL`` before the first instantiation, or use the
    ``level`` property afterwards. The levels are:

    .. code:: shell

        * 0 - quiet (no output)
        * 1 - error
        * 2 - warning
        * 3 - info
        * 4 - debug

    All methods except :meth:`.Logger.question` accept ``%``-style
    arguments.

    Example:
        >>> log = Logger(__name__)
        >>> log.info("rendering %s", "config.yml")
        [~] rendering config.yml

    Attributes:
        LOG_LEVEL (int): The log level used across the application.

    Args:
        name (str): The name of the logger.
    """

    LOG_LEVEL = DEFAULT_LOG_LEVEL

    def __init__(self, name):
        self.logger = get_logger(name)

    @property
    def level(self):
        """Returns the Python log level equivalent, 0 if disabled."""
        if not self.logger:
            return None

        if self.logger.disabled:
            return 0

        return self.logger.level

    @level.setter
    def level(self, level):
        try:
            level = LEVEL_NAMES[level]
        except KeyError:
            level = int(level)

        set_level(self.logger, level)
        Logger.LOG_LEVEL = level

    def error(self, msg, *args, color=True, **kwargs):
        """Logs a message on error level, prefixed with ``[-]`` in red."""

        if color:
            msg = bad(red(msg))

        self.logger.error(msg, *args, **kwargs)

    def warning(self, msg, *args, color=True, **kwargs):
        """Logs a message on warning level, prefixed with ``[!]`` in yellow."""

        if color:
            msg = infomsg(yellow(msg))

        self.logger.warning(msg, *args, **kwargs)

    def warn(self, msg, *args, color=True, **kwargs):
        """Alias of :meth:`.Logger.warning`."""

        self.warning(msg, *args, **kwargs, color=color)

    def info(self, msg, *args, color=True, **kwargs):
        """Logs a message on info level, prefixed with ``[~]`` in grey."""

        if color:
            msg = run(grey(msg))

        self.logger.info(msg, *args, **kwargs)

    def debug(self, msg, *args, color=True, **kwargs):
        """Logs a message on debug level.

        Coloured messages are prefixed with the current timestamp, e.g.
        ``[20190426-155611] test``.
        """

        if color:
            now = time.strftime("%Y%m%d-%H%M%S")
            msg = grey(f"[{now}] {msg}")

        self.logger.debug(msg, *args, **kwargs)

    def success(self, msg, *args, color=True, **kwargs):
        """Logs a success on info level, prefixed with ``[+]`` in green."""

        if color:
            msg = good(green(msg))

        self.logger.info(msg, *args, **kwargs)

    @staticmethod
    def question(msg, color=True):
        """Outputs a question, regardless of the log level."""

        if color:
            msg = que(msg)

        print(msg)
