"""Run command for Spool CLI."""

import json
import logging
from typing import Any, Dict, List

import click

from spool.errors import DialogueError
from spool.runtime.dialogue import Dialogue, DialogueConfig, logging_callbacks
from spool.runtime.results import (
    CommandResult,
    LineResult,
    NodeCompleteResult,
    OptionSetResult,
)
from spool.runtime.storage import MemoryVariableStore

logger = logging.getLogger("spool.cli")


def parse_variable(assignment: str):
    """Parse NAME=VALUE into (name, bool | float | str)."""
    name, sep, raw = assignment.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"Expected NAME=VALUE, got {assignment!r}")
    lowered = raw.strip().lower()
    if lowered in ("true", "false"):
        return name, lowered == "true"
    try:
        return name, float(raw)
    except ValueError:
        return name, raw


@click.command()
@click.argument('program', type=click.Path(exists=True, dir_okay=False))
@click.option('--start', '-s', default=None, help='Node to start from (default: Start)')
@click.option('--var', 'variables', multiple=True, help='Initial variable, NAME=VALUE')
@click.option('--choose', '-c', 'choices', multiple=True, type=int,
              help='Zero-based option index to pick, in order; prompts when exhausted')
@click.option('--stop-command', default='stop', show_default=True,
              help='Command text that ends the dialogue')
@click.option('--json-output', '-j', 'json_output', is_flag=True, help='Output as JSON')
def run_command(program, start, variables, choices, stop_command, json_output):
    """Run a compiled dialogue program."""
    storage = MemoryVariableStore()
    for assignment in variables:
        name, value = parse_variable(assignment)
        storage.set_value(name, value)

    dialogue = logging_callbacks(
        Dialogue(storage, DialogueConfig(stop_command=stop_command)), logger
    )
    try:
        dialogue.load_program_file(program)
    except DialogueError as e:
        raise click.ClickException(str(e))

    pending: List[int] = list(choices)
    transcript: List[Dict[str, Any]] = []

    try:
        for result in dialogue.run(start):
            entry = result.to_dict()
            if isinstance(result, LineResult):
                if not json_output:
                    click.echo(result.text)
            elif isinstance(result, CommandResult):
                if not json_output:
                    click.echo(f"<<{result.text}>>")
            elif isinstance(result, OptionSetResult):
                index = _pick_option(result, pending, json_output)
                entry["selected"] = index
                result.choose(index)
            elif isinstance(result, NodeCompleteResult):
                logger.info("Node complete, next: %s", result.next_node)
            transcript.append(entry)
    except DialogueError as e:
        dialogue.stop()
        raise click.ClickException(str(e))

    if json_output:
        output = {
            "results": transcript,
            "variables": storage.to_dict(),
            "visit_counts": dict(dialogue.visited_node_count),
        }
        click.echo(json.dumps(output, indent=2))


def _pick_option(result: OptionSetResult, pending: List[int], quiet: bool) -> int:
    options = result.options.options
    if not quiet:
        for i, text in enumerate(options):
            click.echo(f"  [{i}] {text}")
    if pending:
        index = pending.pop(0)
        if not 0 <= index < len(options):
            raise click.ClickException(
                f"Option index {index} is out of range (0-{len(options) - 1})"
            )
        return index
    if quiet:
        raise click.ClickException("Ran out of --choose values for a JSON run")
    return click.prompt("Choose", type=click.IntRange(0, len(options) - 1))
