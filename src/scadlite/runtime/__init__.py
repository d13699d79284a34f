"""
scadlite runtime - tree-walking evaluator producing geometry buffers.

This package provides:
- Evaluator: Executes parsed programs
- Environment: Scope chain and resolution parameters ($fn, $fa, $fs)
- BuiltinRegistry: Built-in function implementations
- BuiltinModuleRegistry: Built-in primitives, transforms and CSG modules
"""

from .values import (
    Value,
    ValueKind,
    kind_of,
    is_truthy,
    format_value,
    values_equal,
    binary_op,
    unary_op,
    make_range,
)

from .context import (
    Environment,
    SPECIAL_VARIABLES,
)

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
    call_builtin,
)

from .modules import (
    BuiltinModule,
    BuiltinModuleRegistry,
    ModuleArguments,
    get_module_registry,
)

from .interpreter import (
    Evaluator,
    EvalResult,
    evaluate,
)

__all__ = [
    # Values
    "Value",
    "ValueKind",
    "kind_of",
    "is_truthy",
    "format_value",
    "values_equal",
    "binary_op",
    "unary_op",
    "make_range",
    # Scopes
    "Environment",
    "SPECIAL_VARIABLES",
    # Built-ins
    "BuiltinFunction",
    "BuiltinRegistry",
    "get_builtin_registry",
    "call_builtin",
    "BuiltinModule",
    "BuiltinModuleRegistry",
    "ModuleArguments",
    "get_module_registry",
    # Evaluation
    "Evaluator",
    "EvalResult",
    "evaluate",
]
