"""Nodes command for Spool CLI - list nodes and their tags."""

import json

import click

from spool.errors import DialogueError
from spool.runtime.dialogue import Dialogue, logging_callbacks
from spool.runtime.storage import MemoryVariableStore


@click.command()
@click.argument('program', type=click.Path(exists=True, dir_okay=False))
@click.option('--json-output', '-j', 'json_output', is_flag=True, help='Output as JSON')
def nodes_command(program, json_output):
    """List the nodes of a compiled program."""
    dialogue = logging_callbacks(Dialogue(MemoryVariableStore()))
    try:
        dialogue.load_program_file(program)
    except DialogueError as e:
        raise click.ClickException(str(e))

    tags = dialogue.get_tags_for_all_nodes()
    if json_output:
        output = {
            "digest": dialogue.program.digest(),
            "nodes": [{"name": name, "tags": tags.get(name, [])} for name in dialogue.all_nodes],
        }
        click.echo(json.dumps(output, indent=2))
    else:
        click.echo(f"Nodes: {len(dialogue.all_nodes)}")
        for name in dialogue.all_nodes:
            node_tags = tags.get(name) or []
            suffix = f"  #{' #'.join(node_tags)}" if node_tags else ""
            click.echo(f"  {name}{suffix}")
