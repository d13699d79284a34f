"""
Tree-walking evaluator for scadlite programs.

Statements evaluate to lists of geometry buffers and expressions to runtime
values.  Problems found while evaluating (unknown names, malformed
primitive arguments) are recorded as diagnostics against the offending
statement; evaluation always continues with the next statement.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .builtins import CONSTANTS, get_builtin_registry
from .context import Environment, SPECIAL_VARIABLES
from .modules import ModuleArguments, get_module_registry
from .values import (
    Value, binary_op, index_value, is_truthy, make_range, unary_op,
)
from ..ast import (
    AstNode, Statement, Expression,
    Assignment, ModuleDef, FunctionDef, ModuleCall, ForStatement,
    IfStatement, LetStatement, Block, EmptyStatement, Parameter,
    NumberLiteral, StringLiteral, BooleanLiteral, Identifier, ArrayLiteral,
    RangeExpr, UnaryOp, BinaryOp, TernaryOp, FunctionCall, IndexAccess,
)
from ..errors import (
    Diagnostic, DiagnosticCollector, GeometryError, runtime_error,
    E_UNKNOWN_MODULE, E_UNKNOWN_FUNCTION, E_UNKNOWN_VARIABLE, E_BAD_ARGUMENTS,
)
from ..geometry import GeometryBuffer, merge_buffers
from ..mesh import Mesh, create_mesh

logger = logging.getLogger(__name__)

Geometry = List[GeometryBuffer]

# Raised by built-ins and geometry code when handed values they cannot use
ARGUMENT_ERRORS = (GeometryError, ValueError, TypeError, IndexError, ArithmeticError)


@dataclass
class EvalResult:
    """Result of evaluating a program."""
    geometry: Optional[GeometryBuffer] = None
    meshes: List[Mesh] = field(default_factory=list)
    errors: List[Diagnostic] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class Evaluator:
    """
    Evaluates a parsed program.

    Each call to ``evaluate`` starts from a fresh root environment, so an
    Evaluator can be reused but never carries state between programs.
    """

    def __init__(self, source: Optional[str] = None):
        self.source_lines = source.splitlines() if source else []
        self.diagnostics = DiagnosticCollector()
        self.functions = get_builtin_registry()
        self.modules = get_module_registry()

    def evaluate(self, statements: Sequence[Statement]) -> EvalResult:
        """Run the program and merge its top-level geometry."""
        self.diagnostics = DiagnosticCollector()
        env = Environment()
        env.variables.update(CONSTANTS)

        buffers = [b for b in self._execute_statements(statements, env) if not b.is_empty]
        logger.debug("evaluation produced %d top-level buffer(s)", len(buffers))
        return EvalResult(
            geometry=merge_buffers(buffers),
            meshes=[create_mesh(b) for b in buffers],
            errors=list(self.diagnostics.errors),
        )

    # --- Diagnostics ---

    def _error(self, code: str, message: str, node: AstNode) -> None:
        line = node.line
        source_line = None
        if 0 < line <= len(self.source_lines):
            source_line = self.source_lines[line - 1]
        self.diagnostics.add(runtime_error(code, message, node.span, source_line))

    def _bad_arguments(self, call, exc: Exception) -> None:
        self._error(E_BAD_ARGUMENTS, f"Invalid arguments to {call.name}: {exc}", call)

    # --- Statements ---

    def _define(self, stmt: Statement, env: Environment) -> None:
        """Register a module or function definition in ``env``."""
        table = env.modules if isinstance(stmt, ModuleDef) else env.functions
        kind = "module" if isinstance(stmt, ModuleDef) else "function"
        previous = table.get(stmt.name)
        if previous is not None and previous is not stmt:
            logger.warning("%s '%s' redefined at line %d (first defined at line %d)",
                           kind, stmt.name, stmt.line, previous.line)
        table[stmt.name] = stmt

    def _execute_statements(self, statements: Sequence[Statement], env: Environment) -> Geometry:
        """Hoist the definitions in a statement list, then run it in order."""
        for stmt in statements:
            if isinstance(stmt, (ModuleDef, FunctionDef)):
                self._define(stmt, env)
        results: Geometry = []
        for stmt in statements:
            if not isinstance(stmt, (ModuleDef, FunctionDef)):
                results.extend(self._execute_statement(stmt, env))
        return results

    def _execute_statement(self, stmt: Statement, env: Environment) -> Geometry:
        """Execute a statement."""
        if isinstance(stmt, ModuleCall):
            return self._execute_module_call(stmt, env)
        elif isinstance(stmt, Assignment):
            env.set(stmt.name, self._evaluate(stmt.value, env))
            return []
        elif isinstance(stmt, (ModuleDef, FunctionDef)):
            # Only reached for a lone definition, e.g. the body of an if
            self._define(stmt, env)
            return []
        elif isinstance(stmt, ForStatement):
            return self._execute_for(stmt, env)
        elif isinstance(stmt, IfStatement):
            return self._execute_if(stmt, env)
        elif isinstance(stmt, LetStatement):
            return self._execute_let(stmt, env)
        elif isinstance(stmt, Block):
            return self._execute_statements(stmt.statements, env)
        elif isinstance(stmt, EmptyStatement):
            return []
        else:
            raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_module_call(self, call: ModuleCall, env: Environment) -> Geometry:
        """
        Evaluate arguments and children, then dispatch.

        Built-in modules are tried first, then user modules up the scope
        chain.  An unknown module is reported and its children are passed
        through unchanged.
        """
        args = [self._evaluate(a, env) for a in call.arguments]
        named: Dict[str, Value] = {}
        for na in call.named_arguments:
            named[na.name] = self._evaluate(na.value, env)

        call_env = env
        if any(name in SPECIAL_VARIABLES for name in named):
            call_env = env.child()
            for name in SPECIAL_VARIABLES:
                if name in named:
                    call_env.set(name, named[name])

        children = self._execute_statements(call.children, call_env)

        builtin = self.modules.get_module(call.name)
        if builtin is not None:
            try:
                return builtin.implementation(ModuleArguments(args, named, children, call_env))
            except ARGUMENT_ERRORS as exc:
                self._bad_arguments(call, exc)
                return []

        module = env.find_module(call.name)
        if module is not None:
            try:
                return self._call_user_module(module, args, named, children, call_env)
            except ARGUMENT_ERRORS as exc:
                self._bad_arguments(call, exc)
                return []

        self._error(E_UNKNOWN_MODULE, f"Unknown module: {call.name}", call)
        return children

    def _bind_parameters(self, parameters: Sequence[Parameter], args: List[Value],
                         named: Dict[str, Value], caller: Environment, scope: Environment) -> None:
        """Positional argument, else named argument, else default (evaluated in the caller)."""
        for i, param in enumerate(parameters):
            value = args[i] if i < len(args) else None
            if value is None:
                value = named.get(param.name)
            if value is None and param.default is not None:
                value = self._evaluate(param.default, caller)
            scope.set(param.name, value)

    def _call_user_module(self, module: ModuleDef, args: List[Value], named: Dict[str, Value],
                          children: Geometry, env: Environment) -> Geometry:
        scope = env.child()
        scope.children = children
        self._bind_parameters(module.parameters, args, named, env, scope)
        return self._execute_statements(module.body, scope)

    def _execute_for(self, stmt: ForStatement, env: Environment) -> Geometry:
        """Run the body once per element, each in its own scope."""
        iterable = self._evaluate(stmt.iterable, env)
        results: Geometry = []
        if not isinstance(iterable, list):
            return results
        for item in iterable:
            scope = env.child()
            scope.set(stmt.variable, item)
            results.extend(self._execute_statement(stmt.body, scope))
        return results

    def _execute_if(self, stmt: IfStatement, env: Environment) -> Geometry:
        if is_truthy(self._evaluate(stmt.condition, env)):
            return self._execute_statement(stmt.consequent, env)
        if stmt.alternate is not None:
            return self._execute_statement(stmt.alternate, env)
        return []

    def _execute_let(self, stmt: LetStatement, env: Environment) -> Geometry:
        # Bindings see the outer scope, not each other
        scope = env.child()
        for binding in stmt.bindings:
            scope.set(binding.name, self._evaluate(binding.value, env))
        return self._execute_statement(stmt.body, scope)

    # --- Expressions ---

    def _evaluate(self, expr: Expression, env: Environment) -> Value:
        """Evaluate an expression to a runtime value."""
        if isinstance(expr, NumberLiteral):
            return float(expr.value)
        elif isinstance(expr, (StringLiteral, BooleanLiteral)):
            return expr.value
        elif isinstance(expr, Identifier):
            return self._eval_identifier(expr, env)
        elif isinstance(expr, ArrayLiteral):
            return [self._evaluate(e, env) for e in expr.elements]
        elif isinstance(expr, RangeExpr):
            return self._eval_range(expr, env)
        elif isinstance(expr, UnaryOp):
            return unary_op(expr.operator, self._evaluate(expr.operand, env))
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, env)
        elif isinstance(expr, TernaryOp):
            if is_truthy(self._evaluate(expr.condition, env)):
                return self._evaluate(expr.consequent, env)
            return self._evaluate(expr.alternate, env)
        elif isinstance(expr, FunctionCall):
            return self._eval_function_call(expr, env)
        elif isinstance(expr, IndexAccess):
            return index_value(self._evaluate(expr.object, env), self._evaluate(expr.index, env))
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_identifier(self, ident: Identifier, env: Environment) -> Value:
        found, value = env.lookup(ident.name)
        if not found:
            self._error(E_UNKNOWN_VARIABLE, f"Unknown variable: {ident.name}", ident)
        return value

    def _eval_range(self, expr: RangeExpr, env: Environment) -> Value:
        start = self._evaluate(expr.start, env)
        end = self._evaluate(expr.end, env)
        step = self._evaluate(expr.step, env) if expr.step is not None else 1.0
        try:
            return make_range(start, end, step)
        except ValueError as exc:
            self._error(E_BAD_ARGUMENTS, str(exc), expr)
            return []

    def _eval_binary_op(self, op: BinaryOp, env: Environment) -> Value:
        if op.operator == "&&":
            return is_truthy(self._evaluate(op.left, env)) and is_truthy(self._evaluate(op.right, env))
        if op.operator == "||":
            return is_truthy(self._evaluate(op.left, env)) or is_truthy(self._evaluate(op.right, env))
        return binary_op(op.operator, self._evaluate(op.left, env), self._evaluate(op.right, env))

    def _eval_function_call(self, call: FunctionCall, env: Environment) -> Value:
        """Built-in functions first, then user functions up the scope chain."""
        args = [self._evaluate(a, env) for a in call.arguments]

        builtin = self.functions.get_function(call.name)
        if builtin is not None:
            try:
                return builtin.implementation(*args)
            except ARGUMENT_ERRORS as exc:
                self._bad_arguments(call, exc)
                return None

        func = env.find_function(call.name)
        if func is not None:
            named = {na.name: self._evaluate(na.value, env) for na in call.named_arguments}
            scope = env.child()
            try:
                self._bind_parameters(func.parameters, args, named, env, scope)
                return self._evaluate(func.body, scope)
            except ARGUMENT_ERRORS as exc:
                self._bad_arguments(call, exc)
                return None

        self._error(E_UNKNOWN_FUNCTION, f"Unknown function: {call.name}", call)
        return None


def evaluate(statements: Sequence[Statement], source: Optional[str] = None) -> EvalResult:
    """
    Evaluate a parsed program.

    This is a convenience wrapper around Evaluator.evaluate().
    """
    return Evaluator(source).evaluate(statements)
