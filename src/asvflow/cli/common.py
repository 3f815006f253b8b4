"""
Console script for asvflow (common functions)

Copyright © 2025 Pixelgen Technologies AB.
"""

import collections
import enum
import functools
import logging
from typing import Dict, Mapping, Optional

import click

from asvflow.config import FailurePolicy

logger = logging.getLogger("asvflow.cli")


# the purpose is to order subcommands in order of addition
class OrderedGroup(click.Group):
    """Custom click.Group that keeps insertion order for subcommands."""

    def __init__(  # noqa: D107
        self,
        name: Optional[str] = None,
        commands: Optional[Dict[str, click.Command]] = None,
        **kwargs,
    ):
        super().__init__(name, commands, **kwargs)
        self.commands = commands or collections.OrderedDict()

    def list_commands(  # type: ignore
        self, ctx: click.Context
    ) -> Mapping[str, click.Command]:
        """Return a list of subcommands."""
        return self.commands


def choice_metavar(choices: type[enum.Enum]) -> str:
    """Return a metavar listing the values of an enum, like `click.Choice` does.

    The values are validated with the parameters, not by click, so invalid
    values are reported as configuration errors.
    """
    return "[{}]".format("|".join(str(c.value) for c in choices))


def threads_option(func):
    """Decorate a click command and add the --threads option."""

    @click.option(
        "--threads",
        default=None,
        required=False,
        type=click.INT,
        help=(
            "The number of worker threads used for the per-sample stages. "
            "0 uses all available cpus  [default: 1]"
        ),
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def failure_policy_option(func):
    """Decorate a click command and add the --on-sample-failure option."""

    @click.option(
        "--on-sample-failure",
        "failure_policy",
        default=None,
        required=False,
        type=click.STRING,
        metavar=choice_metavar(FailurePolicy),
        help=(
            "What to do when a single sample fails: abort stops the run, "
            "continue skips the sample  [default: abort]"
        ),
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def config_option(func):
    """Decorate a click command and add the --config option."""

    @click.option(
        "--config",
        "config_file",
        default=None,
        required=False,
        type=click.Path(exists=True, dir_okay=False),
        help=(
            "A yaml file with parameter values. Options given on the command "
            "line take precedence"
        ),
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper
