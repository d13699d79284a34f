"""
Compile façade: source text in, geometry and errors out.

    from scadlite import compile_scad

    result = compile_scad("difference() { cube(10, center=true); sphere(6); }")
    if result.success:
        print(result.geometry.vertex_count)
    else:
        for error in result.errors:
            print(error.line, error.message)

Each call lexes, parses and evaluates from scratch.  Lexer errors stop
before parsing and parser errors stop before evaluation; runtime errors are
returned together with whatever geometry was produced.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .ast import Statement
from .errors import Diagnostic
from .geometry import GeometryBuffer
from .lexer import tokenize
from .mesh import Mesh
from .parser import parse
from .runtime.interpreter import Evaluator

logger = logging.getLogger(__name__)


class ErrorPhase(str, Enum):
    """Pipeline stage that reported an error."""
    LEXER = "lexer"
    PARSER = "parser"
    RUNTIME = "runtime"


@dataclass(frozen=True)
class CompileError:
    type: ErrorPhase
    message: str
    line: int
    column: Optional[int] = None

    @classmethod
    def from_diagnostic(cls, diagnostic: Diagnostic, phase: ErrorPhase) -> "CompileError":
        return cls(phase, diagnostic.message, diagnostic.line, diagnostic.column)

    def to_json(self) -> dict:
        return {
            "type": self.type.value,
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }


@dataclass
class CompileResult:
    """
    Outcome of one compilation.

    ``geometry`` is the merge of every top-level buffer (None when nothing
    was produced) and ``meshes`` holds one mesh per top-level buffer.
    ``diagnostics`` keeps the full records behind ``errors`` for caret
    formatting.
    """
    success: bool
    geometry: Optional[GeometryBuffer] = None
    meshes: List[Mesh] = field(default_factory=list)
    errors: List[CompileError] = field(default_factory=list)
    parse_time_ms: float = 0.0
    eval_time_ms: float = 0.0
    ast: Optional[Tuple[Statement, ...]] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "success": self.success,
            "geometry": self.geometry.to_json() if self.geometry is not None else None,
            "meshes": [m.to_json() for m in self.meshes],
            "errors": [e.to_json() for e in self.errors],
            "parse_time_ms": self.parse_time_ms,
            "eval_time_ms": self.eval_time_ms,
        }


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _failure(diagnostics: List[Diagnostic], phase: ErrorPhase, parse_time_ms: float,
             ast: Optional[Tuple[Statement, ...]] = None) -> CompileResult:
    return CompileResult(
        success=False,
        errors=[CompileError.from_diagnostic(d, phase) for d in diagnostics],
        parse_time_ms=parse_time_ms,
        ast=ast,
        diagnostics=list(diagnostics),
    )


def compile_scad(source: str, filename: Optional[str] = None) -> CompileResult:
    """Lex, parse and evaluate ``source``."""
    start = time.perf_counter()
    tokens, lex_diagnostics = tokenize(source, filename)
    if lex_diagnostics.has_errors:
        logger.debug("lexing failed with %d error(s)", lex_diagnostics.error_count)
        return _failure(lex_diagnostics.errors, ErrorPhase.LEXER, _elapsed_ms(start))

    statements, parse_diagnostics = parse(tokens, source)
    parse_time_ms = _elapsed_ms(start)
    if parse_diagnostics.has_errors:
        logger.debug("parsing failed with %d error(s)", parse_diagnostics.error_count)
        return _failure(parse_diagnostics.errors, ErrorPhase.PARSER, parse_time_ms, tuple(statements))
    logger.debug("parsed %d statement(s) in %.2f ms", len(statements), parse_time_ms)

    start = time.perf_counter()
    try:
        evaluated = Evaluator(source).evaluate(statements)
    except Exception as exc:
        eval_time_ms = _elapsed_ms(start)
        if isinstance(exc, RecursionError):
            message = "Evaluation error: maximum recursion depth exceeded"
        else:
            message = f"Evaluation error: {exc}"
        logger.warning("evaluation aborted: %s", message, exc_info=True)
        return CompileResult(
            success=False,
            errors=[CompileError(ErrorPhase.RUNTIME, message, 1)],
            parse_time_ms=parse_time_ms,
            eval_time_ms=eval_time_ms,
            ast=tuple(statements),
        )
    eval_time_ms = _elapsed_ms(start)
    logger.debug("evaluated in %.2f ms with %d error(s)", eval_time_ms, len(evaluated.errors))

    return CompileResult(
        success=not evaluated.errors,
        geometry=evaluated.geometry,
        meshes=evaluated.meshes,
        errors=[CompileError.from_diagnostic(d, ErrorPhase.RUNTIME) for d in evaluated.errors],
        parse_time_ms=parse_time_ms,
        eval_time_ms=eval_time_ms,
        ast=tuple(statements),
        diagnostics=list(evaluated.errors),
    )


compile = compile_scad
