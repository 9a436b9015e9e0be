"""
Spool Error Taxonomy

Configuration and library errors fail loudly; script errors are reported
through the dialogue's logging callbacks instead of being raised.

Key classes:
- DialogueError: Base class for everything raised by spool
- DialogueConfigurationError: Host integration bug (missing callbacks)
- ProgramLoadError: Malformed compiled program
- FunctionLookupError / ArgumentCountError: Malformed function calls
- ValueTypeError: Operation undefined for the given Value tags
- ProtocolViolationError: Option selection protocol misuse
"""

from __future__ import annotations

from typing import List, Optional


class DialogueError(Exception):
    """Represents things that can go wrong while loading or running a dialogue."""


class DialogueConfigurationError(DialogueError):
    """The host did not configure the dialogue before running it."""


class ProgramLoadError(DialogueError):
    """A compiled program could not be parsed or failed validation."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class FunctionLookupError(DialogueError, KeyError):
    """No function with the requested name is registered."""

    def __init__(self, name: str):
        super().__init__(f"Function {name} is not present in the library")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class ArgumentCountError(DialogueError):
    """A fixed-arity function was invoked with the wrong number of arguments."""

    def __init__(self, name: str, expected: int, received: int):
        super().__init__(
            f"Incorrect number of parameters for function {name} "
            f"(expected {expected}, got {received})"
        )
        self.name = name
        self.expected = expected
        self.received = received


class ValueTypeError(DialogueError, TypeError):
    """An operator was applied to Values it is not defined for."""


class ProtocolViolationError(DialogueError):
    """The client broke the option selection protocol."""
