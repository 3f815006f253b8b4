"""Tests for the asvflow logging module.

Copyright © 2025 Pixelgen Technologies AB.
"""

import logging
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import click
import pytest

from asvflow.logging import ColorFormatter, DefaultCliFormatter, LoggingSetup
from asvflow.utils import get_thread_pool_executor, timer


def test_timer(caplog):
    @timer
    def my_func():
        return "foo"

    with caplog.at_level(logging.INFO):
        res = my_func()
        assert res == "foo"
        assert "Finished asvflow my_func in" in caplog.text


def test_verbose_logging_is_activated():
    test_log_file = tempfile.NamedTemporaryFile()
    with LoggingSetup(test_log_file.name, verbose=True):
        root_logger = logging.getLogger()
        assert root_logger.getEffectiveLevel() == logging.DEBUG


def test_verbose_logging_is_deactivated():
    test_log_file = tempfile.NamedTemporaryFile()
    with LoggingSetup(test_log_file.name, verbose=False):
        root_logger = logging.getLogger()
        assert root_logger.getEffectiveLevel() == logging.INFO


def helper_log_fn(args):
    root_logger = logging.getLogger()
    root_logger.log(*args)


TASKS = [
    (logging.DEBUG, "This is a debug message"),
    (logging.INFO, "This is an info message"),
    (logging.WARNING, "This is a warning message"),
    (logging.ERROR, "This is an error message"),
    (logging.CRITICAL, "This is a critical message"),
]


def expected_messages(verbose):
    messages = [msg for level, msg in TASKS if level > logging.DEBUG]
    if verbose:
        messages.append("This is a debug message")
    return messages


@pytest.mark.parametrize("verbose", [True, False])
def test_single_thread_logging(verbose, tmp_path):
    log_file = tmp_path / "run.log"

    with LoggingSetup(log_file, verbose=verbose):
        for task in TASKS:
            helper_log_fn(task)

    log_content = log_file.read_text()
    for message in expected_messages(verbose):
        assert message in log_content
    if not verbose:
        assert "This is a debug message" not in log_content


@pytest.mark.parametrize("verbose", [True, False])
def test_logging_no_context_handler(verbose, tmp_path):
    log_file = tmp_path / "run.log"

    logging_setup = LoggingSetup(log_file, verbose=verbose)
    logging_setup.initialize()
    for task in TASKS:
        helper_log_fn(task)

    # Closing the logging setup flushes it.
    logging_setup.close()

    log_content = log_file.read_text()
    for message in expected_messages(verbose):
        assert message in log_content


@pytest.mark.parametrize("verbose", [True, False])
def test_worker_thread_logging(verbose, tmp_path):
    log_file = tmp_path / "run.log"

    with LoggingSetup(log_file, verbose=verbose):
        with get_thread_pool_executor(2) as executor:
            for _ in executor.map(helper_log_fn, TASKS):
                pass

    log_content = log_file.read_text()
    for message in expected_messages(verbose):
        assert message in log_content
    assert "asvflow-worker" in log_content


def test_logging_setup_removes_its_handlers(tmp_path):
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)

    with LoggingSetup(tmp_path / "run.log"):
        assert len(root_logger.handlers) == len(handlers) + 2

    assert root_logger.handlers == handlers


def test_logging_without_log_file():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)

    with LoggingSetup(verbose=True) as logging_setup:
        assert logging_setup.log_level == logging.DEBUG
        assert len(root_logger.handlers) == len(handlers) + 1


def test_unhandled_exception_is_logged(tmp_path):
    log_file = tmp_path / "run.log"

    with pytest.raises(RuntimeError):
        with LoggingSetup(log_file):
            raise RuntimeError("the reads are gone")

    log_content = log_file.read_text()
    assert "Unhandled exception of type: RuntimeError" in log_content
    assert "Exception message was: the reads are gone" in log_content


def test_click_exception_is_not_logged(tmp_path):
    log_file = tmp_path / "run.log"

    with pytest.raises(click.ClickException):
        with LoggingSetup(log_file):
            raise click.ClickException("bad input")

    assert "Unhandled exception" not in log_file.read_text()


def test_logging_from_plain_thread_pool(tmp_path):
    log_file = tmp_path / "run.log"

    with LoggingSetup(log_file):
        with ThreadPoolExecutor(max_workers=2) as executor:
            list(
                executor.map(
                    helper_log_fn,
                    [(logging.INFO, f"message {i}") for i in range(10)],
                )
            )

    log_content = log_file.read_text()
    for i in range(10):
        assert f"message {i}" in log_content


def make_record(level, msg):
    return logging.LogRecord("asvflow", level, __file__, 1, msg, None, None)


def test_default_cli_formatter():
    formatter = DefaultCliFormatter()
    assert formatter.format(make_record(logging.INFO, "all good")) == "all good"
    assert (
        formatter.format(make_record(logging.WARNING, "careful"))
        == "WARNING: careful"
    )


def test_color_formatter_prefixes_every_line():
    formatter = ColorFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    lines = formatter.format(make_record(logging.ERROR, "first\nsecond")).splitlines()
    assert len(lines) == 2
    assert all("ERROR" in line for line in lines)
    assert lines[1].endswith("second")


def test_log_file_path_is_a_path():
    setup = LoggingSetup("run.log")
    assert setup.log_file == Path("run.log")
