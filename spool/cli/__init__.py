"""Spool CLI Package - Modular command structure"""

import logging

import click

from spool.cli.analyse import analyse_command
from spool.cli.dump import dump_command
from spool.cli.nodes import nodes_command
from spool.cli.run import run_command


@click.group()
@click.option('--verbose', '-v', count=True, help='Log dialogue debug output (-vv for more)')
def main(verbose):
    """Spool CLI - run and inspect compiled dialogue programs."""
    if verbose:
        level = logging.INFO if verbose == 1 else logging.DEBUG
        logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


main.add_command(run_command, "run")
main.add_command(dump_command, "dump")
main.add_command(analyse_command, "analyse")
main.add_command(nodes_command, "nodes")

__all__ = [
    "main",
    "run_command",
    "dump_command",
    "analyse_command",
    "nodes_command",
]
