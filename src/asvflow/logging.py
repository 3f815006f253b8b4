"""Logging setup for asvflow.

Copyright © 2025 Pixelgen Technologies AB.
"""

import logging
import sys
import traceback
import typing
from pathlib import Path

import click

from asvflow.types import PathType


# ------------------------------------------------------------
# Click logging
# ------------------------------------------------------------


class StyleDict(typing.TypedDict):
    """Style dictionary for kwargs to `click.style`."""

    fg: str


class ColorFormatter(logging.Formatter):
    """Click formatter with colored levels."""

    colors: dict[str, StyleDict] = {
        "debug": StyleDict(fg="blue"),
        "info": StyleDict(fg="green"),
        "warning": StyleDict(fg="yellow"),
        "error": StyleDict(fg="red"),
        "exception": StyleDict(fg="red"),
        "critical": StyleDict(fg="red"),
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format a record with colored level.

        :param record: The record to format.
        :returns str: A formatted log record.
        """
        if not record.exc_info:
            level = record.levelname.lower()
            msg = record.getMessage()
            if level in self.colors:
                timestamp = self.formatTime(record, self.datefmt)
                colored_level = click.style(
                    f"{level.upper():<10}", **self.colors[level]
                )
                prefix = f"{timestamp} [{colored_level}]  "
                msg = "\n".join(prefix + x for x in msg.splitlines())
            return msg
        return logging.Formatter.format(self, record)


class DefaultCliFormatter(logging.Formatter):
    """Plain formatter for non-verbose CLI output."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a record for CLI output.

        :param record: The record to format.
        """
        if not record.exc_info:
            level = record.levelname.lower()
            msg = record.getMessage()

            if level == "info":
                return msg

            return f"{level.upper()}: {msg}"
        return logging.Formatter.format(self, record)


class ClickHandler(logging.Handler):
    """Click logging handler.

    Messages are forwarded to stderr using `click.echo`.
    """

    def __init__(self, level: int = 0, use_stderr: bool = True):
        """Initialize the click handler.

        :param level: The logging level.
        :param use_stderr: Log to sys.stderr instead of sys.stdout.
        """
        super().__init__(level=level)
        self._use_stderr = use_stderr

    def emit(self, record: logging.LogRecord) -> None:
        """Do whatever it takes to actually log the specified logging record.

        :param record: The record to log.
        """
        try:
            msg = self.format(record)
            click.echo(msg, err=self._use_stderr)
        except Exception:
            self.handleError(record)


FILE_LOG_FORMAT = "%(asctime)s %(threadName)-16s %(name)s %(levelname)-8s %(message)s"


class LoggingSetup:
    """Logging setup for asvflow.

    Per-sample work runs in worker threads of the same process, so the handlers
    are attached directly to the configured logger. The standard library
    handlers serialize concurrent writes with their own locks.
    """

    def __init__(
        self, log_file: PathType | None = None, verbose: bool = False, logger=None
    ):
        """Initialize the logging setup.

        :param log_file: the filename of the log output
        :param verbose: enable verbose logging and console output
        :param logger: the logger to configure, default is the root logger
        """
        self.log_file = Path(log_file) if log_file is not None else None
        self.verbose = verbose
        self._root_logger = logger or logging.getLogger()
        self._handlers: list[logging.Handler] = []

    def initialize(self):
        """Attach the console handler and, optionally, the file handler."""
        console_handler = ClickHandler()
        console_handler.setFormatter(
            ColorFormatter(datefmt="%Y-%m-%d %H:%M:%S")
            if self.verbose
            else DefaultCliFormatter()
        )
        self._handlers.append(console_handler)

        if self.log_file:
            file_handler = logging.FileHandler(str(self.log_file), mode="w")
            file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
            self._handlers.append(file_handler)

        for handler in self._handlers:
            self._root_logger.addHandler(handler)
        self._root_logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

    @property
    def log_level(self):
        """Return the current log level."""
        return self._root_logger.level

    def __enter__(self):
        """Enter the context manager.

        This will initialize the logging setup.
        """
        self.initialize()
        return self

    def close(self):
        """Detach and close the handlers added by this setup."""
        for handler in self._handlers:
            self._root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def __exit__(self, exc_type, exc_value, traceback_obj):
        """Exit the context manager.

        Unhandled exceptions are written to the log before the handlers are closed.
        """

        def log_exception(exc_type, exc_value, traceback_obj):
            if issubclass(exc_type, click.exceptions.ClickException) or issubclass(
                exc_type, click.exceptions.Exit
            ):
                # Click exceptions are reported by click itself
                return False

            if issubclass(exc_type, SystemExit):
                # SystemExit is raised when the application has been explicitly
                # directed to exit, so we don't what a trace dumped for that.
                return False

            self._root_logger.critical(
                "Unhandled exception of type: {}".format(exc_type.__name__)
            )
            self._root_logger.critical("Exception message was: {}".format(exc_value))
            for item in traceback.format_exception(exc_type, exc_value, traceback_obj):
                for line in item.splitlines():
                    self._root_logger.critical(line)

        try:
            # The active exception is not always passed to __exit__ when the
            # setup is registered as a click context resource.
            if exc_type is None:
                exc_type, exc_value, traceback_obj = sys.exc_info()
                if exc_type is not None:
                    log_exception(exc_type, exc_value, traceback_obj)
            else:
                log_exception(exc_type, exc_value, traceback_obj)
        finally:
            self.close()

        # Reraise exception higher up the stack
        return False
