"""
voltledger/cli/__init__.py

VoltLedger CLI - root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    voltledger = "voltledger.cli:cli"

Every command is read-only: the CLI inspects journals, it never
authorizes devices or submits readings.
"""

import logging

import click

from voltledger.cli.show import show_command
from voltledger.cli.verify import verify_command


@click.group()
@click.version_option(package_name="voltledger")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """
    VoltLedger - device reading ledger tools.

    \b
    Commands:
      verify    Verify a journal - hash chain, genesis, replay.
      show      Summarize the ledger state stored in a journal.

    \b
    Quick start:
      voltledger verify data/ledger.jsonl
      voltledger verify data/ledger.jsonl --format json
      voltledger show data/ledger.jsonl --device 0xa11ce
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


cli.add_command(verify_command)
cli.add_command(show_command)
