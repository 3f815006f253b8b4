"""Main console script for asvflow.

Copyright © 2025 Pixelgen Technologies AB.
"""

import click

from asvflow import __version__
from asvflow.cli.common import OrderedGroup, logger
from asvflow.cli.denoise_paired import denoise_paired
from asvflow.logging import LoggingSetup


@click.group(cls=OrderedGroup, name="asvflow")
@click.version_option(__version__)
@click.option(
    "--verbose",
    type=click.BOOL,
    default=False,
    is_flag=True,
    help="Show extended messages during execution",
)
@click.option(
    "--log-file",
    required=False,
    default=None,
    type=click.Path(exists=False),
    help="The path to the log file (it is created if it does not exist)",
)
@click.pass_context
def main_cli(ctx, verbose: bool, log_file: str):
    """Run the main CLI entrypoint for asvflow."""
    # Pass arguments to other commands
    ctx.ensure_object(dict)

    # This registers the logger with it's context manager,
    # so that it is clean-up properly when the command is done.
    ctx.obj["LOGGER"] = ctx.with_resource(LoggingSetup(log_file, verbose=verbose))
    ctx.obj["VERBOSE"] = verbose

    if verbose:
        logger.info("Running in VERBOSE mode")
    return 0


main_cli.add_command(denoise_paired)


if __name__ == "__main__":
    main_cli()
