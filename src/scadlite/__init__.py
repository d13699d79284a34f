"""
scadlite - a compiler for a compact OpenSCAD-style modeling language.

This package provides:
- Lexer: Tokenizes source text
- Parser: Builds an AST, recovering from syntax errors
- Evaluator: Runs the AST to produce triangle geometry
- compile_scad: The whole pipeline in one call

Usage:
    from scadlite import compile_scad

    result = compile_scad('''
        $fn = 48;
        difference() {
            cube([20, 20, 10], center=true);
            cylinder(h=12, r=4, center=true);
        }
    ''')
    if result.success:
        mesh = result.meshes[0]
        print(mesh.geometry.triangle_count, mesh.material.hex_color)
    else:
        for error in result.errors:
            print(f"{error.type.value} error at line {error.line}: {error.message}")

Difference and intersection are not computed: the first child is returned
with the others attached as pending ``csg_operations``.
"""

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    AstVisitor,
    PrintVisitor,
    format_ast,
    print_ast,
)

from .errors import (
    ErrorSeverity,
    Diagnostic,
    DiagnosticCollector,
    DslError,
    LexerError,
    ParserError,
    GeometryError,
)

from .geometry import (
    GeometryBuffer,
    CsgOperation,
    merge_buffers,
    transform_buffer,
)

from .mesh import (
    Material,
    Mesh,
    DEFAULT_MATERIAL,
    create_mesh,
)

from .primitives import (
    DEFAULT_FN,
    DEFAULT_FA,
    DEFAULT_FS,
    fragments,
)

from .runtime import (
    Environment,
    Evaluator,
    EvalResult,
    evaluate,
)

from .compiler import (
    ErrorPhase,
    CompileError,
    CompileResult,
    compile_scad,
    compile,
)

from .examples import EXAMPLES

__version__ = "0.1.0"

__all__ = [
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    "KEYWORDS",
    # Lexer / parser
    "Lexer",
    "tokenize",
    "Parser",
    "parse",
    # AST
    "AstNode",
    "AstVisitor",
    "PrintVisitor",
    "format_ast",
    "print_ast",
    # Errors
    "ErrorSeverity",
    "Diagnostic",
    "DiagnosticCollector",
    "DslError",
    "LexerError",
    "ParserError",
    "GeometryError",
    # Geometry
    "GeometryBuffer",
    "CsgOperation",
    "merge_buffers",
    "transform_buffer",
    "Material",
    "Mesh",
    "DEFAULT_MATERIAL",
    "create_mesh",
    "DEFAULT_FN",
    "DEFAULT_FA",
    "DEFAULT_FS",
    "fragments",
    # Evaluation
    "Environment",
    "Evaluator",
    "EvalResult",
    "evaluate",
    # Compiler
    "ErrorPhase",
    "CompileError",
    "CompileResult",
    "compile_scad",
    "compile",
    "EXAMPLES",
]
