"""Analyse command for Spool CLI - static program checks."""

import json
import sys

import click

from spool.analysis import Context, Severity
from spool.errors import DialogueError
from spool.runtime.dialogue import Dialogue, logging_callbacks
from spool.runtime.storage import MemoryVariableStore


@click.command()
@click.argument('program', type=click.Path(exists=True, dir_okay=False))
@click.option('--json-output', '-j', 'json_output', is_flag=True, help='Output as JSON')
def analyse_command(program, json_output):
    """Run the static analysers over a compiled program."""
    dialogue = logging_callbacks(Dialogue(MemoryVariableStore()))
    try:
        dialogue.load_program_file(program)
    except DialogueError as e:
        raise click.ClickException(str(e))

    context = Context()
    dialogue.analyse(context)
    diagnoses = context.finish_analysis()
    error_count = sum(1 for d in diagnoses if d.severity is Severity.ERROR)

    if json_output:
        output = {
            "diagnoses": [d.to_dict() for d in diagnoses],
            "error_count": error_count,
        }
        click.echo(json.dumps(output, indent=2))
    else:
        for diagnosis in diagnoses:
            click.echo(str(diagnosis))
        click.echo(f"{len(diagnoses)} diagnosis(es), {error_count} error(s)")

    if error_count:
        sys.exit(1)
