"""
Spool Function Library

Registry of the functions and operators a compiled program may call.

Operators form a closed set (Operator) whose implementations live in
OPERATOR_TABLE. They are also registered by name so CallFunc instructions
resolve operators and host functions the same way.

Key classes:
- Operator: The fixed arithmetic/comparison/logical operator set
- FunctionInfo: A registered callable with its arity
- Library: Name-keyed registry with arity-checked invocation
- StandardLibrary: Library pre-populated with every Operator
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Union

from spool.errors import ArgumentCountError, FunctionLookupError
from spool.value import Value

logger = logging.getLogger(__name__)

VARIADIC = -1


class Operator(Enum):
    ADD = "Add"
    MINUS = "Minus"
    UNARY_MINUS = "UnaryMinus"
    DIVIDE = "Divide"
    MULTIPLY = "Multiply"
    MODULO = "Modulo"
    EQUAL_TO = "EqualTo"
    NOT_EQUAL_TO = "NotEqualTo"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_OR_EQUAL_TO = "GreaterThanOrEqualTo"
    LESS_THAN = "LessThan"
    LESS_THAN_OR_EQUAL_TO = "LessThanOrEqualTo"
    AND = "And"
    OR = "Or"
    XOR = "Xor"
    NOT = "Not"

    @property
    def param_count(self) -> int:
        return 1 if self in (Operator.UNARY_MINUS, Operator.NOT) else 2

    @property
    def symbol(self) -> str:
        return OPERATOR_SYMBOLS[self]

    @classmethod
    def lookup(cls, name: str):
        """Return the Operator registered under `name`, or None."""
        try:
            return cls(name)
        except ValueError:
            return None


OPERATOR_SYMBOLS: Dict[Operator, str] = {
    Operator.ADD: "+",
    Operator.MINUS: "-",
    Operator.UNARY_MINUS: "-",
    Operator.DIVIDE: "/",
    Operator.MULTIPLY: "*",
    Operator.MODULO: "%",
    Operator.EQUAL_TO: "==",
    Operator.NOT_EQUAL_TO: "!=",
    Operator.GREATER_THAN: ">",
    Operator.GREATER_THAN_OR_EQUAL_TO: ">=",
    Operator.LESS_THAN: "<",
    Operator.LESS_THAN_OR_EQUAL_TO: "<=",
    Operator.AND: "&&",
    Operator.OR: "||",
    Operator.XOR: "^",
    Operator.NOT: "!",
}

# NOT_EQUAL_TO is absent: it negates whatever EqualTo is registered.
OPERATOR_TABLE: Dict[Operator, Callable[..., Any]] = {
    Operator.ADD: lambda a, b: a + b,
    Operator.MINUS: lambda a, b: a - b,
    Operator.UNARY_MINUS: lambda a: -a,
    Operator.DIVIDE: lambda a, b: a / b,
    Operator.MULTIPLY: lambda a, b: a * b,
    Operator.MODULO: lambda a, b: a % b,
    Operator.EQUAL_TO: lambda a, b: a == b,
    Operator.GREATER_THAN: lambda a, b: a > b,
    Operator.GREATER_THAN_OR_EQUAL_TO: lambda a, b: a >= b,
    Operator.LESS_THAN: lambda a, b: a < b,
    Operator.LESS_THAN_OR_EQUAL_TO: lambda a, b: a <= b,
    Operator.AND: lambda a, b: a.as_bool and b.as_bool,
    Operator.OR: lambda a, b: a.as_bool or b.as_bool,
    Operator.XOR: lambda a, b: a.as_bool != b.as_bool,
    Operator.NOT: lambda a: not a.as_bool,
}


FunctionName = Union[str, Operator]


def _key(name: FunctionName) -> str:
    return name.value if isinstance(name, Operator) else name


@dataclass
class FunctionInfo:
    """
    A callable registered in a Library.

    `param_count` is a fixed arity, or VARIADIC (-1) when the function
    validates its own arguments. Arguments and results are Values.
    """
    name: str
    param_count: int
    function: Callable[..., Any]
    returns_value: bool = True

    @property
    def is_variadic(self) -> bool:
        return self.param_count == VARIADIC

    def invoke(self, *params: Any) -> Value:
        values = [Value.from_python(p) for p in params]
        if not self.is_variadic and len(values) != self.param_count:
            raise ArgumentCountError(self.name, self.param_count, len(values))
        result = self.function(*values)
        if not self.returns_value:
            return Value.NULL
        return Value.from_python(result)


class Library:
    """Name-keyed function registry. Registration overwrites."""

    def __init__(self):
        self.functions: Dict[str, FunctionInfo] = {}

    def register_function(self,
                          name: FunctionName,
                          param_count: int,
                          function: Callable[..., Any],
                          returns_value: bool = True) -> FunctionInfo:
        if param_count < VARIADIC:
            raise ValueError(f"Invalid parameter count {param_count} for {_key(name)}")
        info = FunctionInfo(_key(name), param_count, function, returns_value)
        if info.name in self.functions:
            logger.debug("Replacing registered function %s", info.name)
        self.functions[info.name] = info
        return info

    def get_function(self, name: FunctionName) -> FunctionInfo:
        key = _key(name)
        try:
            return self.functions[key]
        except KeyError:
            raise FunctionLookupError(key) from None

    def function_exists(self, name: FunctionName) -> bool:
        return _key(name) in self.functions

    def invoke(self, name: FunctionName, *args: Any) -> Value:
        """Look up `name` and call it, checking arity unless variadic."""
        return self.get_function(name).invoke(*args)

    def deregister_function(self, name: FunctionName) -> None:
        self.functions.pop(_key(name), None)

    def import_library(self, other: "Library") -> None:
        """Copy every function of `other` into this library."""
        for info in other.functions.values():
            self.functions[info.name] = info

    def __contains__(self, name: FunctionName) -> bool:
        return self.function_exists(name)

    def __iter__(self) -> Iterator[FunctionInfo]:
        return iter(self.functions.values())

    def __len__(self) -> int:
        return len(self.functions)


class StandardLibrary(Library):
    """The standard, built-in library of operators."""

    def __init__(self):
        super().__init__()
        for operator, implementation in OPERATOR_TABLE.items():
            self.register_function(operator, operator.param_count, implementation)
        self.register_function(Operator.NOT_EQUAL_TO, 2, self._not_equal_to)

    def _not_equal_to(self, a: Value, b: Value) -> bool:
        # Always the negation of the registered ==, even if it was overridden
        equal_to = self.get_function(Operator.EQUAL_TO)
        return not equal_to.invoke(a, b).as_bool
