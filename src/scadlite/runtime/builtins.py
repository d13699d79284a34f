"""
Built-in function registry for the scadlite interpreter.

Built-in functions receive evaluated positional arguments and return a
runtime value.  Numeric arguments are coerced with ``to_float`` (so a
missing or non-numeric argument becomes NaN) and math goes through numpy
so that domain errors give NaN rather than raising.  Trigonometric
functions work in degrees.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import math

import numpy as np

from .values import MAX_RANGE_ELEMENTS, Value, format_value, is_number, kind_of, to_float, ValueKind

CONSTANTS: Dict[str, Value] = {
    "PI": math.pi,
}


def _arg(args: List[Value], index: int) -> Value:
    return args[index] if index < len(args) else None


def _num(args: List[Value], index: int) -> float:
    return to_float(_arg(args, index))


def _np(fn, *xs: float) -> float:
    with np.errstate(all="ignore"):
        return float(fn(*(np.float64(x) for x in xs)))


def _numbers(items: List[Value]) -> Optional[List[float]]:
    """The list as floats, or None when any entry is not a number."""
    if not all(is_number(x) for x in items):
        return None
    return [float(x) for x in items]


@dataclass
class BuiltinFunction:
    """
    A built-in function with its implementation.
    """
    name: str
    implementation: Callable[..., Value]
    doc: str = ""


class BuiltinRegistry:
    """
    Registry of all built-in functions.

    Functions are registered by name and looked up by the evaluator before
    any user definition, so built-ins cannot be shadowed.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_trig_functions()
        self._register_math_functions()
        self._register_vector_functions()
        self._register_list_functions()
        self._register_type_tests()

    # --- Trigonometry (degrees) ---

    def _register_trig_functions(self) -> None:
        """Register trigonometric functions."""

        def _sin(*args: Value) -> Value:
            return _np(np.sin, np.radians(_num(args, 0)))

        def _cos(*args: Value) -> Value:
            return _np(np.cos, np.radians(_num(args, 0)))

        def _tan(*args: Value) -> Value:
            return _np(np.tan, np.radians(_num(args, 0)))

        def _asin(*args: Value) -> Value:
            return math.degrees(_np(np.arcsin, _num(args, 0)))

        def _acos(*args: Value) -> Value:
            return math.degrees(_np(np.arccos, _num(args, 0)))

        def _atan(*args: Value) -> Value:
            return math.degrees(_np(np.arctan, _num(args, 0)))

        def _atan2(*args: Value) -> Value:
            return math.degrees(_np(np.arctan2, _num(args, 0), _num(args, 1)))

        trig_funcs = [
            ("sin", _sin, "Sine of an angle in degrees."),
            ("cos", _cos, "Cosine of an angle in degrees."),
            ("tan", _tan, "Tangent of an angle in degrees."),
            ("asin", _asin, "Arc sine, in degrees."),
            ("acos", _acos, "Arc cosine, in degrees."),
            ("atan", _atan, "Arc tangent, in degrees."),
            ("atan2", _atan2, "atan2(y, x), in degrees."),
        ]
        for name, impl, doc in trig_funcs:
            self.register(BuiltinFunction(name, impl, doc))

    # --- Math Functions ---

    def _register_math_functions(self) -> None:
        """Register rounding, exponential and comparison functions."""

        def _abs(*args: Value) -> Value:
            return abs(_num(args, 0))

        def _ceil(*args: Value) -> Value:
            return _np(np.ceil, _num(args, 0))

        def _floor(*args: Value) -> Value:
            return _np(np.floor, _num(args, 0))

        def _round(*args: Value) -> Value:
            x = _num(args, 0)
            if not math.isfinite(x):
                return x
            # Halves round away from zero
            return math.copysign(math.floor(abs(x) + 0.5), x)

        def _extremes(args: List[Value]) -> List[float]:
            items = args[0] if len(args) == 1 and isinstance(args[0], list) else args
            return [to_float(x) if is_number(x) else math.nan for x in items]

        def _min(*args: Value) -> Value:
            values = _extremes(list(args))
            if any(math.isnan(v) for v in values):
                return math.nan
            return min(values, default=math.inf)

        def _max(*args: Value) -> Value:
            values = _extremes(list(args))
            if any(math.isnan(v) for v in values):
                return math.nan
            return max(values, default=-math.inf)

        def _sqrt(*args: Value) -> Value:
            return _np(np.sqrt, _num(args, 0))

        def _pow(*args: Value) -> Value:
            return _np(np.power, _num(args, 0), _num(args, 1))

        def _exp(*args: Value) -> Value:
            return _np(np.exp, _num(args, 0))

        def _log(*args: Value) -> Value:
            return _np(np.log, _num(args, 0))

        def _sign(*args: Value) -> Value:
            return _np(np.sign, _num(args, 0))

        math_funcs = [
            ("abs", _abs, "Absolute value."),
            ("ceil", _ceil, "Round up."),
            ("floor", _floor, "Round down."),
            ("round", _round, "Round to nearest, halves away from zero."),
            ("min", _min, "Smallest of the arguments, or of a single list."),
            ("max", _max, "Largest of the arguments, or of a single list."),
            ("sqrt", _sqrt, "Square root."),
            ("pow", _pow, "pow(base, exponent)."),
            ("exp", _exp, "e raised to a power."),
            ("log", _log, "Natural logarithm."),
            ("ln", _log, "Natural logarithm."),
            ("sign", _sign, "-1, 0 or 1."),
        ]
        for name, impl, doc in math_funcs:
            self.register(BuiltinFunction(name, impl, doc))

    # --- Vector Functions ---

    def _register_vector_functions(self) -> None:
        """Register vector functions."""

        def _norm(*args: Value) -> Value:
            v = _arg(args, 0)
            if not isinstance(v, list):
                return None
            coords = _numbers(v)
            if coords is None:
                return None
            return float(np.linalg.norm(coords)) if coords else 0.0

        def _cross(*args: Value) -> Value:
            a, b = _arg(args, 0), _arg(args, 1)
            if not isinstance(a, list) or not isinstance(b, list):
                return None
            u, v = _numbers(a), _numbers(b)
            if u is None or v is None or len(u) != len(v) or len(u) not in (2, 3):
                return None
            if len(u) == 2:
                return u[0] * v[1] - u[1] * v[0]
            return [float(c) for c in np.cross(u, v)]

        def _rands(*args: Value) -> Value:
            low, high, count = _num(args, 0), _num(args, 1), _num(args, 2)
            if not (math.isfinite(low) and math.isfinite(high) and math.isfinite(count)):
                return []
            count = max(0, int(count))
            if count > MAX_RANGE_ELEMENTS:
                raise ValueError(f"rands count {count} exceeds {MAX_RANGE_ELEMENTS}")
            seed = _arg(args, 3)
            if seed is not None and not (is_number(seed) and math.isfinite(seed) and seed >= 0):
                raise ValueError(f"rands seed must be a non-negative number, got {format_value(seed)}")
            rng = np.random.default_rng(int(seed) if seed is not None else None)
            return [float(x) for x in rng.uniform(low, high, count)]

        self.register(BuiltinFunction("norm", _norm, "Euclidean length of a vector."))
        self.register(BuiltinFunction("cross", _cross, "Cross product of two 2D or 3D vectors."))
        self.register(BuiltinFunction("rands", _rands, "rands(min, max, count[, seed]) random numbers."))

    # --- Lists and Strings ---

    def _register_list_functions(self) -> None:
        """Register list and string functions."""

        def _len(*args: Value) -> Value:
            v = _arg(args, 0)
            if isinstance(v, (list, str)):
                return float(len(v))
            return 0.0

        def _concat(*args: Value) -> Value:
            result = []
            for a in args:
                if isinstance(a, list):
                    result.extend(a)
                else:
                    result.append(a)
            return result

        def _str(*args: Value) -> Value:
            return "".join(format_value(a) for a in args)

        self.register(BuiltinFunction("len", _len, "Length of a list or string."))
        self.register(BuiltinFunction("concat", _concat, "Join lists, flattening one level."))
        self.register(BuiltinFunction("str", _str, "Concatenate the text form of the arguments."))

    # --- Type Tests ---

    def _register_type_tests(self) -> None:
        """Register is_* type tests."""
        tests = [
            ("is_undef", ValueKind.UNDEFINED),
            ("is_num", ValueKind.NUMBER),
            ("is_bool", ValueKind.BOOLEAN),
            ("is_string", ValueKind.STRING),
            ("is_list", ValueKind.LIST),
        ]
        for name, kind in tests:
            def _test(*args: Value, kind=kind) -> Value:
                return kind_of(_arg(args, 0)) == kind
            self.register(BuiltinFunction(name, _test, f"True if the argument is a {kind.value}."))


# Global singleton registry
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def call_builtin(name: str, args: List[Value]) -> Value:
    """
    Call a built-in function by name.

    Raises KeyError if the function is not registered.
    """
    func = get_builtin_registry().get_function(name)
    if func is None:
        raise KeyError(f"Unknown built-in function: {name}")
    return func.implementation(*args)
