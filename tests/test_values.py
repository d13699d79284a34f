"""
Tests for runtime values, operators and built-in functions.
"""

import math
import pytest

from scadlite.runtime import (
    ValueKind, kind_of, is_truthy, format_value,
    binary_op, unary_op, make_range,
    get_builtin_registry, call_builtin,
)
from scadlite.runtime.values import to_vec3, to_vec2, to_number, to_bool, index_value


class TestValueKinds:
    """Test kind classification and truthiness."""

    def test_kinds(self):
        """Each Python representation maps to one kind."""
        assert kind_of(1.0) == ValueKind.NUMBER
        assert kind_of("a") == ValueKind.STRING
        assert kind_of(True) == ValueKind.BOOLEAN
        assert kind_of([1.0]) == ValueKind.LIST
        assert kind_of(None) == ValueKind.UNDEFINED

    @pytest.mark.parametrize("value", [None, False, 0.0, []])
    def test_falsy(self, value):
        """undefined, false, 0 and [] are falsy."""
        assert not is_truthy(value)

    @pytest.mark.parametrize("value", [True, 1.0, -0.5, [0.0], "", "x"])
    def test_truthy(self, value):
        """Everything else is truthy, including the empty string."""
        assert is_truthy(value)

    def test_format_value(self):
        """Text forms used by str()."""
        assert format_value(3.0) == "3"
        assert format_value(2.5) == "2.5"
        assert format_value(True) == "true"
        assert format_value(None) == "undef"
        assert format_value([1.0, "a", [2.0]]) == '[1, "a", [2]]'
        assert format_value(math.inf) == "inf"


class TestOperators:
    """Test binary and unary operators."""

    def test_arithmetic(self):
        """Basic arithmetic on numbers."""
        assert binary_op("+", 2.0, 3.0) == 5.0
        assert binary_op("-", 2.0, 3.0) == -1.0
        assert binary_op("*", 2.0, 3.0) == 6.0
        assert binary_op("/", 3.0, 2.0) == 1.5
        assert binary_op("^", 2.0, 10.0) == 1024.0

    def test_division_by_zero(self):
        """Division by zero follows IEEE rules."""
        assert binary_op("/", 1.0, 0.0) == math.inf
        assert binary_op("/", -1.0, 0.0) == -math.inf
        assert math.isnan(binary_op("/", 0.0, 0.0))

    def test_truncated_remainder(self):
        """% keeps the sign of the dividend."""
        assert binary_op("%", 7.0, 3.0) == 1.0
        assert binary_op("%", -7.0, 3.0) == -1.0

    def test_power_domain(self):
        """Invalid powers give NaN instead of raising."""
        assert math.isnan(binary_op("^", -8.0, 0.5))

    def test_list_concatenation(self):
        """+ joins two lists."""
        assert binary_op("+", [1.0], [2.0, 3.0]) == [1.0, 2.0, 3.0]

    def test_list_scaling(self):
        """* scales a list by a number on either side."""
        assert binary_op("*", [1.0, 2.0], 3.0) == [3.0, 6.0]
        assert binary_op("*", 2.0, [[1.0], 2.0]) == [[2.0], 4.0]

    def test_non_numeric_arithmetic(self):
        """Arithmetic on non-numbers yields NaN."""
        assert math.isnan(binary_op("+", "a", 1.0))
        assert binary_op("+", True, 1.0) == 2.0

    def test_strict_equality(self):
        """== compares kind and value, structurally for lists."""
        assert binary_op("==", 1.0, 1.0) is True
        assert binary_op("==", 1.0, True) is False
        assert binary_op("==", [1.0, [2.0]], [1.0, [2.0]]) is True
        assert binary_op("!=", "a", "b") is True
        assert binary_op("==", None, None) is True

    def test_comparisons(self):
        """Numeric and string comparisons."""
        assert binary_op("<", 1.0, 2.0) is True
        assert binary_op(">=", 2.0, 2.0) is True
        assert binary_op("<", "abc", "abd") is True
        assert binary_op("<", math.nan, 1.0) is False

    def test_unary(self):
        """Negation and logical not."""
        assert unary_op("-", 3.0) == -3.0
        assert unary_op("-", [1.0, [2.0]]) == [-1.0, [-2.0]]
        assert unary_op("!", 0.0) is True
        assert unary_op("!", [1.0]) is False


class TestRanges:
    """Test range materialization."""

    def test_inclusive(self):
        """The end value is included."""
        assert make_range(0.0, 5.0) == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]

    def test_step(self):
        """A step skips values."""
        assert make_range(0.0, 4.0, 2.0) == [0.0, 2.0, 4.0]

    def test_negative_step(self):
        """Negative steps count down, still inclusive."""
        assert make_range(5.0, 0.0, -1.0) == [5.0, 4.0, 3.0, 2.0, 1.0, 0.0]

    def test_empty(self):
        """Zero steps and steps pointing away from the end give nothing."""
        assert make_range(0.0, 5.0, 0.0) == []
        assert make_range(5.0, 0.0) == []
        assert make_range(0.0, 5.0, -1.0) == []

    def test_fractional_step(self):
        """Accumulated rounding does not drop the end value."""
        values = make_range(0.0, 1.0, 0.1)
        assert len(values) == 11
        assert values[-1] == pytest.approx(1.0)

    def test_too_large(self):
        """Unbounded ranges are refused."""
        with pytest.raises(ValueError):
            make_range(0.0, 1e12)


class TestCoercion:
    """Test argument coercion helpers."""

    def test_vec3(self):
        """Numbers broadcast; short lists take the remaining defaults."""
        assert to_vec3(2.0) == (2.0, 2.0, 2.0)
        assert to_vec3([1.0, 2.0], (0.0, 0.0, 5.0)) == (1.0, 2.0, 5.0)
        assert to_vec3("x", (1.0, 1.0, 1.0)) == (1.0, 1.0, 1.0)

    def test_vec2(self):
        """Two-component vectors."""
        assert to_vec2([3.0, 4.0, 5.0]) == (3.0, 4.0)

    def test_number_and_bool(self):
        """Wrong kinds fall back to the default."""
        assert to_number(True, 7.0) == 7.0
        assert to_number(3.0, 7.0) == 3.0
        assert to_bool(1.0, False) is False
        assert to_bool(True, False) is True

    def test_index_value(self):
        """Indexing lists and strings; anything invalid is undefined."""
        assert index_value([1.0, 2.0], 1.0) == 2.0
        assert index_value("abc", 0.0) == "a"
        assert index_value([1.0], 5.0) is None
        assert index_value([1.0], -1.0) is None
        assert index_value([1.0, 2.0], 0.5) is None
        assert index_value(3.0, 0.0) is None


class TestBuiltinFunctions:
    """Test the built-in function registry."""

    def test_registry_contents(self):
        """Every documented function is registered."""
        registry = get_builtin_registry()
        for name in ["sin", "cos", "tan", "asin", "acos", "atan", "atan2", "abs",
                     "ceil", "floor", "round", "min", "max", "sqrt", "pow", "exp",
                     "log", "ln", "sign", "len", "norm", "cross", "rands", "concat",
                     "str", "is_undef", "is_num", "is_bool", "is_string", "is_list"]:
            assert registry.get_function(name) is not None

    def test_trig_in_degrees(self):
        """Trigonometry uses degrees."""
        assert call_builtin("sin", [90.0]) == pytest.approx(1.0)
        assert call_builtin("cos", [180.0]) == pytest.approx(-1.0)
        assert call_builtin("atan2", [1.0, 1.0]) == pytest.approx(45.0)
        assert call_builtin("asin", [1.0]) == pytest.approx(90.0)

    def test_invalid_domain(self):
        """Out-of-domain math gives NaN."""
        assert math.isnan(call_builtin("sqrt", [-1.0]))
        assert math.isnan(call_builtin("acos", [2.0]))
        assert math.isnan(call_builtin("sin", ["x"]))

    def test_round_half_away_from_zero(self):
        """round() rounds halves away from zero."""
        assert call_builtin("round", [2.5]) == 3.0
        assert call_builtin("round", [-2.5]) == -3.0
        assert call_builtin("round", [2.4]) == 2.0

    def test_min_max(self):
        """min/max take varargs or a single list."""
        assert call_builtin("min", [3.0, 1.0, 2.0]) == 1.0
        assert call_builtin("max", [[3.0, 7.0, 2.0]]) == 7.0

    def test_logs(self):
        """log and ln are both the natural logarithm."""
        assert call_builtin("log", [math.e]) == pytest.approx(1.0)
        assert call_builtin("ln", [math.e]) == pytest.approx(1.0)
        assert call_builtin("exp", [0.0]) == 1.0

    def test_len(self):
        """len of lists and strings; zero for anything else."""
        assert call_builtin("len", [[1.0, 2.0, 3.0]]) == 3.0
        assert call_builtin("len", ["abcd"]) == 4.0
        assert call_builtin("len", [5.0]) == 0.0
        assert call_builtin("len", [None]) == 0.0
        assert call_builtin("len", [True]) == 0.0

    def test_norm_and_cross(self):
        """Vector length and cross product."""
        assert call_builtin("norm", [[3.0, 4.0]]) == 5.0
        assert call_builtin("cross", [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]) == [0.0, 0.0, 1.0]
        assert call_builtin("cross", [[1.0, 0.0], [0.0, 1.0]]) == 1.0
        assert call_builtin("norm", ["x"]) is None

    def test_rands(self):
        """rands honours bounds, count and seed."""
        values = call_builtin("rands", [0.0, 1.0, 5.0, 42.0])
        assert len(values) == 5
        assert all(0.0 <= v <= 1.0 for v in values)
        assert values == call_builtin("rands", [0.0, 1.0, 5.0, 42.0])

    def test_rands_zero_seed(self):
        """Zero is a usable seed."""
        assert call_builtin("rands", [0.0, 1.0, 2.0, 0.0]) == call_builtin("rands", [0.0, 1.0, 2.0, 0.0])

    @pytest.mark.parametrize("seed", [-5.0, math.inf, math.nan, "s", [1.0]])
    def test_rands_rejects_bad_seed(self, seed):
        """Negative, non-finite and non-numeric seeds are refused."""
        with pytest.raises(ValueError, match="seed"):
            call_builtin("rands", [0.0, 1.0, 3.0, seed])

    def test_rands_count_limit(self):
        """Counts beyond the range limit are refused."""
        with pytest.raises(ValueError, match="exceeds"):
            call_builtin("rands", [0.0, 1.0, 1e12])

    def test_concat(self):
        """concat flattens exactly one level."""
        assert call_builtin("concat", [[1.0], [2.0, [3.0]], 4.0]) == [1.0, 2.0, [3.0], 4.0]

    def test_str(self):
        """str joins text forms."""
        assert call_builtin("str", ["w=", 10.0, " ", [1.0, 2.0]]) == "w=10 [1, 2]"

    def test_type_tests(self):
        """is_* functions."""
        assert call_builtin("is_undef", [None]) is True
        assert call_builtin("is_num", [True]) is False
        assert call_builtin("is_bool", [True]) is True
        assert call_builtin("is_string", ["s"]) is True
        assert call_builtin("is_list", [[]]) is True

    def test_unknown_builtin(self):
        """call_builtin rejects unknown names."""
        with pytest.raises(KeyError):
            call_builtin("nope", [])
