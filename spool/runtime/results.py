"""
Spool Runner Results

Things the client of a Dialogue has to handle, one per pull.

Key classes:
- LineResult: A line of dialogue to present
- OptionSetResult: Options to present; the client must choose one
- CommandResult: An instruction for the host to interpret
- NodeCompleteResult: The current node finished
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

OptionChooser = Callable[[int], None]


@dataclass(frozen=True)
class Line:
    text: str


@dataclass(frozen=True)
class Options:
    options: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.options)


@dataclass(frozen=True)
class Command:
    text: str


class RunnerResult:
    """Something for the client of the Dialogue to do."""

    kind: str = ""

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass
class LineResult(RunnerResult):
    line: Line
    kind = "line"

    @classmethod
    def from_text(cls, text: str) -> "LineResult":
        return cls(Line(text))

    @property
    def text(self) -> str:
        return self.line.text

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "text": self.line.text}


@dataclass
class CommandResult(RunnerResult):
    command: Command
    kind = "command"

    @classmethod
    def from_text(cls, text: str) -> "CommandResult":
        return cls(Command(text))

    @property
    def text(self) -> str:
        return self.command.text

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "text": self.command.text}


@dataclass
class OptionSetResult(RunnerResult):
    """
    The client should show a list of options, and call choose() before
    asking for the next result. Pulling again without a selection raises
    ProtocolViolationError.
    """
    options: Options
    set_selected_option: OptionChooser
    kind = "options"

    @classmethod
    def from_strings(cls, option_strings: List[str],
                     chooser: OptionChooser) -> "OptionSetResult":
        return cls(Options(list(option_strings)), chooser)

    def choose(self, index: int) -> None:
        self.set_selected_option(index)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "options": list(self.options.options)}


@dataclass
class NodeCompleteResult(RunnerResult):
    """We've reached the end of a node; next_node is None when execution ends."""
    next_node: Optional[str] = None
    kind = "node_complete"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "next_node": self.next_node}
