"""
Spool Variable Storage

Where the dialogue stores and loads variable data.

Key classes:
- VariableStorage: Capability interface (set_value, get_value, clear)
- BaseVariableStorage: Converts primitive values before storing them
- MemoryVariableStore: Keeps every variable in an in-memory dict
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Tuple, Union

from spool.value import Value

Primitive = Union[str, int, float, bool, None]


class VariableStorage(ABC):
    """Maps case-sensitive variable names to Values; last write wins."""

    @abstractmethod
    def set_value(self, variable_name: str, value: Union[Value, Primitive]) -> None:
        ...

    @abstractmethod
    def get_value(self, variable_name: str) -> Value:
        """Return the stored Value, or Value.NULL when the name is unknown."""

    @abstractmethod
    def clear(self) -> None:
        ...


class BaseVariableStorage(VariableStorage):
    """
    Storage base class that accepts Python primitives.

    Subclasses implement `_store`, which only ever receives Values, so a
    string/number/bool passed to set_value lands with the same tag as
    Value.from_python() would give it.
    """

    def set_value(self, variable_name: str, value: Union[Value, Primitive]) -> None:
        self._store(variable_name, Value.from_python(value))

    @abstractmethod
    def _store(self, variable_name: str, value: Value) -> None:
        ...


class MemoryVariableStore(BaseVariableStorage):
    """Very simple continuity class that keeps all variables in memory."""

    def __init__(self, initial: Dict[str, Any] = None):
        self.variables: Dict[str, Value] = {}
        for name, value in (initial or {}).items():
            self.set_value(name, value)

    def _store(self, variable_name: str, value: Value) -> None:
        self.variables[variable_name] = value

    def get_value(self, variable_name: str) -> Value:
        return self.variables.get(variable_name, Value.NULL)

    def clear(self) -> None:
        self.variables.clear()

    def __contains__(self, variable_name: str) -> bool:
        return variable_name in self.variables

    def __len__(self) -> int:
        return len(self.variables)

    def items(self) -> Iterator[Tuple[str, Value]]:
        return iter(self.variables.items())

    def to_dict(self) -> Dict[str, Any]:
        """Plain Python snapshot of every variable."""
        return {name: value.to_python() for name, value in self.variables.items()}
