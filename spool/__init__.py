"""
Spool - Resumable Dialogue Runtime

Drives compiled interactive-narrative programs through a bytecode virtual
machine and hands the host one line, option set, command or node-complete
event per pull.

Exports:
- Dialogue: The runtime coordinator
- MemoryVariableStore: Default in-memory variable storage
- Program: Loaded compiled program
- Value: Scripted runtime value
"""

from spool.errors import (
    ArgumentCountError,
    DialogueConfigurationError,
    DialogueError,
    FunctionLookupError,
    ProgramLoadError,
    ProtocolViolationError,
    ValueTypeError,
)
from spool.program import ByteCode, Instruction, LocalisedLine, Node, Program
from spool.runtime import (
    CommandResult,
    Dialogue,
    DialogueConfig,
    Library,
    LineResult,
    MemoryVariableStore,
    NodeCompleteResult,
    Operator,
    OptionSetResult,
    VariableStorage,
    logging_callbacks,
)
from spool.value import Value, ValueType

__version__ = "1.0.0"

__all__ = [
    "ArgumentCountError",
    "DialogueConfigurationError",
    "DialogueError",
    "FunctionLookupError",
    "ProgramLoadError",
    "ProtocolViolationError",
    "ValueTypeError",
    "ByteCode",
    "Instruction",
    "LocalisedLine",
    "Node",
    "Program",
    "CommandResult",
    "Dialogue",
    "DialogueConfig",
    "Library",
    "LineResult",
    "MemoryVariableStore",
    "NodeCompleteResult",
    "Operator",
    "OptionSetResult",
    "VariableStorage",
    "logging_callbacks",
    "Value",
    "ValueType",
]
