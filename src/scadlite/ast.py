"""
Abstract Syntax Tree (AST) node definitions for scadlite.

Nodes are frozen dataclasses built once by the parser and never mutated
afterwards; evaluation state lives in the runtime Environment, not here.
Child sequences are tuples so that whole trees stay immutable and two
parses of the same source compare equal.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Any, List
from abc import ABC
from .tokens import SourceSpan


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True)
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    @property
    def line(self) -> int:
        return self.span.start.line

    @property
    def column(self) -> int:
        return self.span.start.column

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class NumberLiteral(Expression):
    value: float


@dataclass(frozen=True)
class StringLiteral(Expression):
    value: str


@dataclass(frozen=True)
class BooleanLiteral(Expression):
    value: bool


@dataclass(frozen=True)
class Identifier(Expression):
    """A variable reference. ``special`` marks a $-prefixed name."""
    name: str
    special: bool = False


@dataclass(frozen=True)
class ArrayLiteral(Expression):
    elements: Tuple[Expression, ...]


@dataclass(frozen=True)
class RangeExpr(Expression):
    """An inclusive range ``[start:end]`` or ``[start:step:end]``."""
    start: Expression
    end: Expression
    step: Optional[Expression] = None


@dataclass(frozen=True)
class UnaryOp(Expression):
    """A unary operation (``-x`` or ``!x``)."""
    operator: str
    operand: Expression


@dataclass(frozen=True)
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x && y)."""
    left: Expression
    operator: str
    right: Expression


@dataclass(frozen=True)
class TernaryOp(Expression):
    """``condition ? consequent : alternate``"""
    condition: Expression
    consequent: Expression
    alternate: Expression


@dataclass(frozen=True)
class NamedArgument(AstNode):
    """A ``name = value`` argument in a call."""
    name: str
    value: Expression


@dataclass(frozen=True)
class FunctionCall(Expression):
    """A function call in expression position (e.g., sin(30))."""
    name: str
    arguments: Tuple[Expression, ...]
    named_arguments: Tuple[NamedArgument, ...] = ()


@dataclass(frozen=True)
class IndexAccess(Expression):
    """Index access (e.g., points[0])."""
    object: Expression
    index: Expression


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(frozen=True)
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass(frozen=True)
class Parameter(AstNode):
    """A module or function parameter with an optional default expression."""
    name: str
    default: Optional[Expression] = None


@dataclass(frozen=True)
class Assignment(Statement):
    """``name = value;`` (``name`` keeps its $ prefix for resolution parameters)."""
    name: str
    value: Expression


@dataclass(frozen=True)
class ModuleDef(Statement):
    """A user module definition.

    Syntax:
        module name(a, b = 2) {
            ...
        }
    """
    name: str
    parameters: Tuple[Parameter, ...]
    body: Tuple[Statement, ...]


@dataclass(frozen=True)
class FunctionDef(Statement):
    """``function name(params) = expr;``"""
    name: str
    parameters: Tuple[Parameter, ...]
    body: Expression


@dataclass(frozen=True)
class ModuleCall(Statement):
    """A module instantiation with optional children.

    Syntax:
        translate([1, 0, 0]) cube(2);
        union() { cube(1); sphere(1); }
    """
    name: str
    arguments: Tuple[Expression, ...]
    named_arguments: Tuple[NamedArgument, ...]
    children: Tuple[Statement, ...] = ()


@dataclass(frozen=True)
class ForStatement(Statement):
    variable: str
    iterable: Expression
    body: Statement


@dataclass(frozen=True)
class IfStatement(Statement):
    condition: Expression
    consequent: Statement
    alternate: Optional[Statement] = None


@dataclass(frozen=True)
class LetStatement(Statement):
    bindings: Tuple[NamedArgument, ...]
    body: Statement


@dataclass(frozen=True)
class Block(Statement):
    """A brace-delimited statement list."""
    statements: Tuple[Statement, ...]


@dataclass(frozen=True)
class EmptyStatement(Statement):
    """A bare ``;``."""
    pass


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor(AstVisitor):
    """Debug visitor that renders the AST structure as indented lines."""

    def __init__(self, indent: int = 0, lines: Optional[List[str]] = None):
        self.indent = indent
        self.lines = lines if lines is not None else []

    def _emit(self, text: str) -> None:
        self.lines.append("  " * self.indent + text)

    def generic_visit(self, node: AstNode) -> None:
        self._emit(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                self._emit(f"  {name}:")
                value.accept(PrintVisitor(self.indent + 2, self.lines))
            elif isinstance(value, tuple):
                if not value:
                    self._emit(f"  {name}: []")
                    continue
                self._emit(f"  {name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        item.accept(PrintVisitor(self.indent + 2, self.lines))
                    else:
                        self._emit(f"    {item!r}")
                self._emit("  ]")
            else:
                self._emit(f"  {name}: {value!r}")


def format_ast(nodes) -> str:
    """Render a node or a sequence of nodes as an indented tree."""
    if isinstance(nodes, AstNode):
        nodes = [nodes]
    visitor = PrintVisitor()
    for node in nodes:
        node.accept(visitor)
    return "\n".join(visitor.lines)


def print_ast(nodes) -> None:
    """Print an AST node (or statement list) for debugging."""
    print(format_ast(nodes))
