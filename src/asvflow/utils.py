"""
Common functions and utilities for asvflow

Copyright (c) 2025 Pixelgen Technologies AB.
"""
from __future__ import annotations

import json
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from functools import wraps
from pathlib import Path
from typing import Optional

import click

from asvflow import __version__

logger = logging.getLogger(__name__)

# this tr table is used to complement DNA sequences
_TRTABLE = str.maketrans("GTACN", "CATGN")


def log_step_start(
    step_name: str,
    input_files: Optional[list[str]] = None,
    output: Optional[str] = None,
    **kwargs,
) -> None:
    """
    Utility function to add information about the start of an
    asvflow step to the logs

    :param step_name: name of the step that is starting
    :param input_files: optional collection of input file paths
    :param output: optional path to output
    :param kwargs: any additional parameters that you wish to log
    :returns: None
    """
    logger.info("Start asvflow %s %s", step_name, __version__)

    if input_files is not None:
        logger.info("Input file(s) %s", ",".join(input_files))

    if output is not None:
        logger.info("Output %s", output)

    if kwargs is not None:
        params = [f"{key.replace('_', '-')}={value}" for key, value in kwargs.items()]
        logger.info("Parameters:%s", ",".join(params))


def reverse_complement(seq: str) -> str:
    """
    Helper function to compute the reverse complement of a DNA seq

    :param seq: the DNA sequence
    :returns: the reverse complement of the input sequence
    """
    return seq.translate(_TRTABLE)[::-1]


def resolve_thread_count(threads: int) -> int:
    """
    Translate the configured worker count into a number of threads.

    :param threads: 0 to use all available cpus, otherwise the number of workers
    :returns: the number of worker threads (at least 1)
    :raises ValueError: if threads is negative
    """
    if threads < 0:
        raise ValueError("The number of threads must be non-negative")
    if threads == 0:
        return os.cpu_count() or 1
    return threads


def get_thread_pool_executor(nbr_threads: int, **kwargs) -> ThreadPoolExecutor:
    """Return a ThreadPoolExecutor with some default settings."""
    return ThreadPoolExecutor(
        max_workers=resolve_thread_count(nbr_threads),
        thread_name_prefix="asvflow-worker",
        **kwargs,
    )


def timer(func):
    """
    Function decorator used to time the different steps
    """

    @wraps(func)
    def wrapper(*args, **kwds):
        start_time = time.perf_counter()
        res = func(*args, **kwds)
        run_time = time.perf_counter() - start_time
        logger.info("Finished asvflow %s in %.2fs", func.__name__, run_time)
        return res

    return wrapper


def write_parameters_file(
    click_context: click.Context, output_file: Path, command_path: Optional[str] = None
):
    """
    Write the parameters used in for a command to a JSON file

    :param click_context: the click context object
    :param output_file: the output file
    :param command_path: the command to use as command name
    :returns: None
    """
    command_path_fixed = command_path or click_context.command_path
    parameters = click_context.command.params
    parameter_values = click_context.params

    param_data = {}

    for param in parameters:
        if not isinstance(param, click.core.Option):
            continue

        name = param.opts[0]
        value = parameter_values.get(str(param.name))
        if value is not None and isinstance(param.type, click.Path):
            value = str(Path(value).resolve())

        param_data[name] = value

    data = {
        "cli": {
            "command": command_path_fixed,
            "options": param_data,
        }
    }

    logger.debug("Writing parameters file to %s", str(output_file))

    with open(output_file, "w") as fh:
        json.dump(data, fh, indent=4)
