"""
Evaluation scopes for the scadlite interpreter.

An Environment holds the variables, user modules and user functions of one
scope together with the resolution parameters ($fn, $fa, $fs) in force
there.  Scopes form a chain through ``parent``; lookups walk the chain.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .values import Value
from ..ast import FunctionDef, ModuleDef
from ..geometry import GeometryBuffer
from ..primitives import DEFAULT_FN, DEFAULT_FA, DEFAULT_FS

SPECIAL_VARIABLES = ("$fn", "$fa", "$fs")


@dataclass(eq=False)
class Environment:
    """
    A single scope.

    ``fn``, ``fa`` and ``fs`` are copied from the parent when the scope is
    created, so assigning ``$fn`` in a child never leaks upward.
    ``children`` is the geometry handed to the user module whose body runs
    in this scope (see the ``children()`` built-in).
    """
    parent: Optional["Environment"] = None
    variables: Dict[str, Value] = field(default_factory=dict)
    modules: Dict[str, ModuleDef] = field(default_factory=dict)
    functions: Dict[str, FunctionDef] = field(default_factory=dict)
    fn: float = DEFAULT_FN
    fa: float = DEFAULT_FA
    fs: float = DEFAULT_FS
    children: Optional[List[GeometryBuffer]] = None

    def __post_init__(self):
        if self.parent is not None:
            self.fn = self.parent.fn
            self.fa = self.parent.fa
            self.fs = self.parent.fs
            if self.children is None:
                self.children = self.parent.children

    def child(self) -> "Environment":
        return Environment(parent=self)

    # --- Variables ---

    def lookup(self, name: str) -> Tuple[bool, Value]:
        """(found, value) for ``name``; special variables always resolve."""
        if name in SPECIAL_VARIABLES:
            return True, getattr(self, name[1:])
        env = self
        while env is not None:
            if name in env.variables:
                return True, env.variables[name]
            env = env.parent
        return False, None

    def get(self, name: str) -> Value:
        return self.lookup(name)[1]

    def set(self, name: str, value: Value) -> None:
        """
        Bind ``name`` in this scope.

        ``$fn/$fa/$fs`` update the tessellation parameters instead, and
        only accept finite numbers.
        """
        if name in SPECIAL_VARIABLES:
            if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
                setattr(self, name[1:], float(value))
            return
        self.variables[name] = value

    # --- Definitions ---

    def find_module(self, name: str) -> Optional[ModuleDef]:
        env = self
        while env is not None:
            if name in env.modules:
                return env.modules[name]
            env = env.parent
        return None

    def find_function(self, name: str) -> Optional[FunctionDef]:
        env = self
        while env is not None:
            if name in env.functions:
                return env.functions[name]
            env = env.parent
        return None
