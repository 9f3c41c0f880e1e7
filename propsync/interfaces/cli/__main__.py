"""Entry point for running the propsync CLI.

This module defines a top-level Click group that aggregates all subcommands
defined in the ``propsync.interfaces.cli`` package. Executing
``python -m propsync.interfaces.cli`` (or the ``propsync`` console script)
invokes this group.
"""

import logging

import click

from propsync.infrastructure.observability import configure_logging

from .provider import areas, test_connection
from .runs import runs
from .sync import scheduled_sync, sync, sync_transactions


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """propsync command-line interface."""
    configure_logging(level=logging.DEBUG if verbose else logging.INFO)


cli.add_command(sync)
cli.add_command(sync_transactions)
cli.add_command(scheduled_sync)
cli.add_command(runs)
cli.add_command(test_connection)
cli.add_command(areas)


if __name__ == "__main__":
    cli()
