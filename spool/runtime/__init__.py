"""
Spool Runtime Engine

This module provides the runtime for running compiled dialogue:
- Dialogue: Coordinator that yields results one pull at a time
- VirtualMachine: Single-step bytecode interpreter
- Library: Operators and host functions available to scripts
- VariableStorage: Where script variables live
- Results: Line, option set, command and node-complete results
"""

from spool.runtime.dialogue import (
    DEFAULT_START,
    Dialogue,
    DialogueConfig,
    DialogueRun,
    logging_callbacks,
)
from spool.runtime.library import (
    VARIADIC,
    FunctionInfo,
    Library,
    Operator,
    StandardLibrary,
)
from spool.runtime.results import (
    Command,
    CommandResult,
    Line,
    LineResult,
    NodeCompleteResult,
    Options,
    OptionSetResult,
    RunnerResult,
)
from spool.runtime.storage import BaseVariableStorage, MemoryVariableStore, VariableStorage
from spool.runtime.vm import ExecutionState, VirtualMachine

__all__ = [
    "DEFAULT_START",
    "Dialogue",
    "DialogueConfig",
    "DialogueRun",
    "logging_callbacks",
    "VARIADIC",
    "FunctionInfo",
    "Library",
    "Operator",
    "StandardLibrary",
    "Command",
    "CommandResult",
    "Line",
    "LineResult",
    "NodeCompleteResult",
    "Options",
    "OptionSetResult",
    "RunnerResult",
    "BaseVariableStorage",
    "MemoryVariableStore",
    "VariableStorage",
    "ExecutionState",
    "VirtualMachine",
]
