"""
Runtime values for the scadlite evaluator.

Values are plain Python objects:

    float   number (all numbers, integral or not)
    str     string
    bool    boolean
    list    array of values
    None    undefined

``bool`` is a subclass of ``int`` in Python, so every kind test checks for
booleans before numbers.  Arithmetic goes through numpy so that division
by zero and invalid operations give IEEE infinities and NaN instead of
raising.
"""

import math
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

Value = Union[float, str, bool, List[Any], None]

MAX_RANGE_ELEMENTS = 1_000_000


class ValueKind(Enum):
    """Runtime kinds, used for type tests and error messages."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    LIST = "list"
    UNDEFINED = "undefined"


def kind_of(value: Value) -> ValueKind:
    if value is None:
        return ValueKind.UNDEFINED
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.LIST
    raise TypeError(f"not a scadlite value: {value!r}")


def is_number(value: Value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value: Value) -> bool:
    """undefined, false, 0 and [] are falsy; everything else is truthy."""
    if value is None or value is False:
        return False
    if is_number(value):
        return value != 0
    if isinstance(value, list):
        return len(value) > 0
    return True


def format_number(x: float) -> str:
    if math.isfinite(x) and x == int(x):
        return str(int(x))
    return repr(float(x))


def format_value(value: Value, quote_strings: bool = False) -> str:
    """Text form used by str() and the command line."""
    if value is None:
        return "undef"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return f'"{value}"' if quote_strings else value
    return "[" + ", ".join(format_value(v, quote_strings=True) for v in value) + "]"


def values_equal(a: Value, b: Value) -> bool:
    """Strict equality: kinds must match, arrays compare element-wise."""
    ka, kb = kind_of(a), kind_of(b)
    if ka != kb:
        return False
    if ka == ValueKind.LIST:
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    return a == b


# =============================================================================
# Coercion helpers for built-in arguments
# =============================================================================

def to_float(value: Value) -> float:
    """Numeric coercion for arithmetic: booleans count as 0/1, other non-numbers are NaN."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if is_number(value):
        return float(value)
    return math.nan


def to_number(value: Value, default: Optional[float] = None) -> Optional[float]:
    """The value if it is a number, else ``default``."""
    if is_number(value):
        return float(value)
    return default


def to_bool(value: Value, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    return default


def to_vector(value: Value, default: Sequence[float]) -> Tuple[float, ...]:
    """
    Read a vector of ``len(default)`` numbers.

    A number fills every component; a list supplies its leading
    components and ``default`` the rest (non-numeric entries included).
    Anything else gives ``default``.
    """
    size = len(default)
    if is_number(value):
        return tuple(float(value) for _ in range(size))
    if isinstance(value, list) and value:
        return tuple(
            float(value[i]) if i < len(value) and is_number(value[i]) else float(default[i])
            for i in range(size)
        )
    return tuple(float(d) for d in default)


def to_vec3(value: Value, default: Sequence[float] = (0.0, 0.0, 0.0)) -> Tuple[float, float, float]:
    return to_vector(value, default)


def to_vec2(value: Value, default: Sequence[float] = (0.0, 0.0)) -> Tuple[float, float]:
    return to_vector(value, default)


def to_points(value: Value, dims: int) -> List[Tuple[float, ...]]:
    """A list of coordinate lists; raises ValueError for anything else."""
    if not isinstance(value, list):
        raise ValueError("expected a list of points")
    points = []
    for item in value:
        if not isinstance(item, list):
            raise ValueError(f"expected a point, got {format_value(item, True)}")
        points.append(to_vector(item, (0.0,) * dims))
    return points


def to_index_lists(value: Value) -> List[List[int]]:
    """A list of index lists (polyhedron faces, polygon paths)."""
    if not isinstance(value, list):
        raise ValueError("expected a list of index lists")
    result = []
    for item in value:
        if not isinstance(item, list) or not all(is_number(i) for i in item):
            raise ValueError(f"expected a list of indices, got {format_value(item, True)}")
        if not all(math.isfinite(i) for i in item):
            raise ValueError(f"indices must be finite, got {format_value(item, True)}")
        result.append([int(i) for i in item])
    return result


# =============================================================================
# Operators
# =============================================================================

def _ieee(fn, a: float, b: float) -> float:
    with np.errstate(all="ignore"):
        return float(fn(np.float64(a), np.float64(b)))


def _scale_list(items: List[Any], factor: float) -> List[Any]:
    return [_scale_list(x, factor) if isinstance(x, list) else to_float(x) * factor for x in items]


def _negate(value: Value) -> Value:
    if isinstance(value, list):
        return [_negate(x) for x in value]
    return -to_float(value)


def unary_op(operator: str, operand: Value) -> Value:
    if operator == "-":
        return _negate(operand)
    if operator == "!":
        return not is_truthy(operand)
    raise ValueError(f"unknown unary operator {operator!r}")


def binary_op(operator: str, left: Value, right: Value) -> Value:
    """Apply an eager binary operator (&& and || are handled by the evaluator)."""
    if operator == "+":
        if isinstance(left, list) and isinstance(right, list):
            return left + right
        return to_float(left) + to_float(right)
    if operator == "-":
        return to_float(left) - to_float(right)
    if operator == "*":
        if isinstance(left, list) and is_number(right):
            return _scale_list(left, float(right))
        if is_number(left) and isinstance(right, list):
            return _scale_list(right, float(left))
        return to_float(left) * to_float(right)
    if operator == "/":
        return _ieee(np.divide, to_float(left), to_float(right))
    if operator == "%":
        return _ieee(np.fmod, to_float(left), to_float(right))
    if operator == "^":
        return _ieee(np.power, to_float(left), to_float(right))
    if operator == "==":
        return values_equal(left, right)
    if operator == "!=":
        return not values_equal(left, right)
    if operator in ("<", ">", "<=", ">="):
        if isinstance(left, str) and isinstance(right, str):
            a, b = left, right
        else:
            a, b = to_float(left), to_float(right)
        if operator == "<":
            return a < b
        if operator == ">":
            return a > b
        if operator == "<=":
            return a <= b
        return a >= b
    raise ValueError(f"unknown binary operator {operator!r}")


def make_range(start: Value, end: Value, step: Value = 1.0) -> List[float]:
    """Inclusive range; an empty list when the step points away from the end."""
    a, b, s = to_float(start), to_float(end), to_float(step)
    if not (math.isfinite(a) and math.isfinite(b) and math.isfinite(s)) or s == 0:
        return []
    span = (b - a) / s
    if span < -1e-9:
        return []
    count = int(math.floor(span + 1e-9)) + 1
    if count > MAX_RANGE_ELEMENTS:
        raise ValueError(f"range has too many elements ({count})")
    return [a + k * s for k in range(count)]


def index_value(container: Value, index: Value) -> Value:
    """``container[index]``; undefined when out of range or not indexable."""
    if not isinstance(container, (list, str)) or not is_number(index):
        return None
    if not math.isfinite(index) or index != int(index):
        return None
    i = int(index)
    if i < 0 or i >= len(container):
        return None
    return container[i]
