"""Test the function library and the standard operators."""
import pytest

from spool.errors import ArgumentCountError, DialogueError, FunctionLookupError, ValueTypeError
from spool.runtime.library import (
    OPERATOR_TABLE,
    VARIADIC,
    Library,
    Operator,
    StandardLibrary,
)
from spool.value import Value, ValueType

N = Value.from_python


class TestOperatorSet:
    """Tests for the closed Operator enumeration."""

    def test_lookup_by_name(self):
        """Test operators are found by their wire name."""
        assert Operator.lookup("Add") is Operator.ADD
        assert Operator.lookup("NotEqualTo") is Operator.NOT_EQUAL_TO
        assert Operator.lookup("visited") is None

    def test_param_counts(self):
        """Test unary and binary arities."""
        assert Operator.NOT.param_count == 1
        assert Operator.UNARY_MINUS.param_count == 1
        assert Operator.MODULO.param_count == 2

    def test_symbols(self):
        """Test display symbols."""
        assert Operator.ADD.symbol == "+"
        assert Operator.NOT_EQUAL_TO.symbol == "!="
        assert Operator.XOR.symbol == "^"

    def test_table_omits_not_equal(self):
        """Test inequality has no separate implementation."""
        assert Operator.NOT_EQUAL_TO not in OPERATOR_TABLE
        assert len(OPERATOR_TABLE) == len(Operator) - 1


class TestStandardLibrary:
    """Tests for the pre-populated operator library."""

    @pytest.fixture
    def library(self):
        return StandardLibrary()

    def test_every_operator_registered(self, library):
        """Test each operator is callable by name."""
        for operator in Operator:
            assert operator.value in library
            assert library.get_function(operator).param_count == operator.param_count
        assert len(library) == len(Operator)

    def test_arithmetic(self, library):
        """Test arithmetic results are Values."""
        assert library.invoke("Add", N(1), N(2)) == N(3)
        assert library.invoke("Minus", 5, 2) == N(3)
        assert library.invoke("UnaryMinus", 4) == N(-4)
        assert library.invoke("Multiply", 3, 4) == N(12)
        assert library.invoke("Divide", 9, 3) == N(3)
        assert library.invoke("Modulo", 9, 4) == N(1)

    def test_concatenation(self, library):
        """Test Add concatenates strings."""
        assert library.invoke("Add", "gold: ", 5) == N("gold: 5")

    def test_comparisons_return_bools(self, library):
        """Test comparisons produce BOOL values."""
        result = library.invoke("GreaterThan", 3, 2)
        assert result.type is ValueType.BOOL
        assert result.as_bool
        assert not library.invoke("LessThan", 3, 2).as_bool
        assert library.invoke("LessThanOrEqualTo", 2, 2).as_bool
        assert library.invoke("GreaterThanOrEqualTo", 2, 2).as_bool

    def test_logical(self, library):
        """Test logical operators use truthiness."""
        assert library.invoke("And", 1, "x").as_bool
        assert not library.invoke("And", 1, "").as_bool
        assert library.invoke("Or", None, True).as_bool
        assert library.invoke("Xor", True, False).as_bool
        assert not library.invoke("Xor", True, 1).as_bool
        assert library.invoke("Not", 0).as_bool

    @pytest.mark.parametrize("a,b", [
        (1, 1), (1, 2), ("a", "a"), ("1", 1), (True, 1), (None, None), (None, False), ("", None),
    ])
    def test_not_equal_negates_equal(self, library, a, b):
        """Test != is the exact negation of == for mixed pairs."""
        equal = library.invoke(Operator.EQUAL_TO, a, b).as_bool
        not_equal = library.invoke(Operator.NOT_EQUAL_TO, a, b).as_bool
        assert not_equal is (not equal)

    def test_not_equal_follows_overridden_equal(self, library):
        """Test overriding == changes != too."""
        library.register_function(
            Operator.EQUAL_TO, 2, lambda a, b: a.as_string.lower() == b.as_string.lower())
        assert library.invoke("EqualTo", "Gold", "gold").as_bool
        assert not library.invoke("NotEqualTo", "Gold", "gold").as_bool

    def test_type_errors_propagate(self, library):
        """Test undefined operations raise ValueTypeError."""
        with pytest.raises(ValueTypeError):
            library.invoke("Minus", "a", 1)
        with pytest.raises(ValueTypeError):
            library.invoke("GreaterThan", True, False)


class TestLibrary:
    """Tests for registration, lookup and invocation."""

    def test_unknown_function(self):
        """Test lookup of an unregistered name."""
        library = Library()
        with pytest.raises(FunctionLookupError) as exc_info:
            library.get_function("missing")
        assert exc_info.value.name == "missing"
        assert "missing" in str(exc_info.value)
        assert isinstance(exc_info.value, KeyError)
        assert isinstance(exc_info.value, DialogueError)

    def test_arity_checked(self):
        """Test fixed arity is enforced."""
        library = Library()
        library.register_function("double", 1, lambda x: x.as_number * 2)
        assert library.invoke("double", 4) == N(8)
        with pytest.raises(ArgumentCountError) as exc_info:
            library.invoke("double", 1, 2)
        assert exc_info.value.expected == 1
        assert exc_info.value.received == 2

    def test_variadic_skips_arity(self):
        """Test variadic functions accept any number of arguments."""
        library = Library()
        library.register_function("count", VARIADIC, lambda *args: len(args))
        assert library.get_function("count").is_variadic
        assert library.invoke("count") == N(0)
        assert library.invoke("count", 1, 2, 3) == N(3)

    def test_arguments_are_values(self):
        """Test host functions receive Values."""
        received = []
        library = Library()
        library.register_function("spy", 2, lambda *args: received.extend(args))
        library.invoke("spy", "a", 1)
        assert received == [N("a"), N(1)]

    def test_non_returning_function(self):
        """Test functions that return nothing produce NULL."""
        library = Library()
        library.register_function("log", 1, lambda x: "ignored", returns_value=False)
        assert library.invoke("log", "hi") is Value.NULL

    def test_registration_overwrites(self):
        """Test the last registration wins."""
        library = Library()
        library.register_function("f", 0, lambda: 1)
        library.register_function("f", 0, lambda: 2)
        assert library.invoke("f") == N(2)
        assert len(library) == 1

    def test_invalid_param_count(self):
        """Test negative arities other than VARIADIC are rejected."""
        with pytest.raises(ValueError):
            Library().register_function("f", -2, lambda: None)

    def test_deregister(self):
        """Test removing a function."""
        library = Library()
        library.register_function("f", 0, lambda: 1)
        library.deregister_function("f")
        library.deregister_function("never-registered")
        assert not library.function_exists("f")

    def test_import_library(self):
        """Test copying functions from another library."""
        library = Library()
        library.register_function("f", 0, lambda: 1)
        library.import_library(StandardLibrary())
        assert "f" in library
        assert "Add" in library
        assert {info.name for info in library} >= {"f", "Add", "NotEqualTo"}
