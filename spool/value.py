"""
Spool Values

Tagged runtime representation of a scripted datum.

Coercion rules:
- Arithmetic is defined for NUMBER operands only. The exception is `+`,
  which concatenates string forms when either operand is a STRING.
- Ordering comparisons are defined for NUMBER operands only.
- Equality compares tag and value; inequality is its negation.
- as_bool / as_string / as_number are total over every tag.

Any combination outside these rules raises ValueTypeError.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from spool.errors import ValueTypeError


class ValueType(Enum):
    NUMBER = "NUMBER"
    STRING = "STRING"
    BOOL = "BOOL"
    NULL = "NULL"


@dataclass(frozen=True)
class Value:
    """A scripted value. Build instances with Value.from_python()."""
    type: ValueType
    raw: Any = None

    NULL: ClassVar["Value"]

    @classmethod
    def from_python(cls, obj: Any) -> "Value":
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.NULL
        # bool is a subclass of int, check it first
        if isinstance(obj, bool):
            return cls(ValueType.BOOL, obj)
        if isinstance(obj, (int, float)):
            return cls(ValueType.NUMBER, float(obj))
        if isinstance(obj, str):
            return cls(ValueType.STRING, obj)
        raise ValueTypeError(f"Cannot convert {type(obj).__name__} to a Value")

    def is_number(self) -> bool:
        return self.type is ValueType.NUMBER

    def is_string(self) -> bool:
        return self.type is ValueType.STRING

    def is_null(self) -> bool:
        return self.type is ValueType.NULL

    @property
    def as_bool(self) -> bool:
        if self.type is ValueType.NUMBER:
            return not math.isnan(self.raw) and self.raw != 0.0
        if self.type is ValueType.STRING:
            return len(self.raw) > 0
        if self.type is ValueType.BOOL:
            return self.raw
        return False

    @property
    def as_number(self) -> float:
        if self.type is ValueType.NUMBER:
            return self.raw
        if self.type is ValueType.STRING:
            try:
                return float(self.raw)
            except ValueError:
                return 0.0
        if self.type is ValueType.BOOL:
            return 1.0 if self.raw else 0.0
        return 0.0

    @property
    def as_string(self) -> str:
        if self.type is ValueType.NUMBER:
            return _format_number(self.raw)
        if self.type is ValueType.STRING:
            return self.raw
        if self.type is ValueType.BOOL:
            return "true" if self.raw else "false"
        return ""

    def to_python(self) -> Any:
        return self.raw

    # -----------------------------
    # Arithmetic
    # -----------------------------

    def __add__(self, other: "Value") -> "Value":
        other = Value.from_python(other)
        if self.is_string() or other.is_string():
            return Value(ValueType.STRING, self.as_string + other.as_string)
        self._require_numbers("+", other)
        return Value(ValueType.NUMBER, self.raw + other.raw)

    def __sub__(self, other: "Value") -> "Value":
        other = Value.from_python(other)
        self._require_numbers("-", other)
        return Value(ValueType.NUMBER, self.raw - other.raw)

    def __mul__(self, other: "Value") -> "Value":
        other = Value.from_python(other)
        self._require_numbers("*", other)
        return Value(ValueType.NUMBER, self.raw * other.raw)

    def __truediv__(self, other: "Value") -> "Value":
        other = Value.from_python(other)
        self._require_numbers("/", other)
        if other.raw == 0.0:
            raise ValueTypeError("Division by zero")
        return Value(ValueType.NUMBER, self.raw / other.raw)

    def __mod__(self, other: "Value") -> "Value":
        other = Value.from_python(other)
        self._require_numbers("%", other)
        if other.raw == 0.0:
            raise ValueTypeError("Modulo by zero")
        # Sign follows the dividend
        return Value(ValueType.NUMBER, math.fmod(self.raw, other.raw))

    def __neg__(self) -> "Value":
        if not self.is_number():
            raise ValueTypeError(f"Cannot negate a {self.type.value} value")
        return Value(ValueType.NUMBER, -self.raw)

    # -----------------------------
    # Ordering
    # -----------------------------

    def __lt__(self, other: "Value") -> bool:
        other = Value.from_python(other)
        self._require_numbers("<", other)
        return self.raw < other.raw

    def __le__(self, other: "Value") -> bool:
        other = Value.from_python(other)
        self._require_numbers("<=", other)
        return self.raw <= other.raw

    def __gt__(self, other: "Value") -> bool:
        other = Value.from_python(other)
        self._require_numbers(">", other)
        return self.raw > other.raw

    def __ge__(self, other: "Value") -> bool:
        other = Value.from_python(other)
        self._require_numbers(">=", other)
        return self.raw >= other.raw

    # -----------------------------
    # Equality
    # -----------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        # Compare raw values directly so NaN never equals itself
        return self.type is other.type and self.raw == other.raw

    def __hash__(self) -> int:
        return hash((self.type, self.raw))

    def _require_numbers(self, symbol: str, other: "Value") -> None:
        if not (self.is_number() and other.is_number()):
            raise ValueTypeError(
                f"Operator {symbol} is not defined for "
                f"{self.type.value} and {other.type.value}"
            )

    def __str__(self) -> str:
        return self.as_string

    def __repr__(self) -> str:
        if self.is_null():
            return "Value.NULL"
        return f"Value({self.type.value}, {self.raw!r})"


Value.NULL = Value(ValueType.NULL)


def _format_number(number: float) -> str:
    if math.isfinite(number) and number == int(number):
        return str(int(number))
    return repr(number)
