"""Dump command for Spool CLI - byte code disassembly."""

import click

from spool.errors import DialogueError
from spool.runtime.dialogue import Dialogue, logging_callbacks
from spool.runtime.storage import MemoryVariableStore


@click.command()
@click.argument('program', type=click.Path(exists=True, dir_okay=False))
def dump_command(program):
    """Print a human-readable disassembly of a compiled program."""
    dialogue = logging_callbacks(Dialogue(MemoryVariableStore()))
    try:
        dialogue.load_program_file(program)
    except DialogueError as e:
        raise click.ClickException(str(e))
    click.echo(dialogue.get_byte_code())
