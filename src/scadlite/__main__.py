#!/usr/bin/env python3
"""
Command line interface for the scadlite compiler.

Usage:
    python -m scadlite tokens FILE
    python -m scadlite ast FILE
    python -m scadlite check FILE
    python -m scadlite build FILE [--json] [-o OUTPUT]
    python -m scadlite examples [NAME]

FILE may be ``-`` to read from standard input.

Examples:
    # Check a model for errors
    python -m scadlite check bracket.scad

    # Compile and write the merged geometry as JSON
    python -m scadlite build bracket.scad --json -o bracket.json

    # Print one of the bundled sample programs and compile it
    python -m scadlite examples gear_like | python -m scadlite build -
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple


def read_source(file_arg: str) -> Optional[Tuple[str, str]]:
    """(source, display name) for a FILE argument, or None when missing."""
    if file_arg == "-":
        return sys.stdin.read(), "<stdin>"
    source_path = Path(file_arg)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(), source_path.name


def print_errors(result) -> None:
    """Print compile errors, with a source excerpt when one is available."""
    if result.diagnostics:
        for diag in result.diagnostics:
            print(diag.format(), file=sys.stderr)
    else:
        for error in result.errors:
            print(f"  Line {error.line}: {error.message}", file=sys.stderr)
    print(f"{len(result.errors)} {result.errors[0].type.value} error(s)", file=sys.stderr)


def cmd_tokens(args):
    """Print the token stream of a file."""
    from .lexer import tokenize

    loaded = read_source(args.file)
    if loaded is None:
        return 1
    source, name = loaded

    tokens, diagnostics = tokenize(source, name)
    for token in tokens:
        print(f"{token.line:>4}:{token.column:<4} {token.type.name:<12} {token.lexeme!r}")
    if diagnostics.has_errors:
        print(diagnostics.format_all(), file=sys.stderr)
        return 1
    return 0


def cmd_ast(args):
    """Print the syntax tree of a file."""
    from .ast import format_ast
    from .lexer import tokenize
    from .parser import parse

    loaded = read_source(args.file)
    if loaded is None:
        return 1
    source, name = loaded

    tokens, lex_diagnostics = tokenize(source, name)
    if lex_diagnostics.has_errors:
        print(lex_diagnostics.format_all(), file=sys.stderr)
        return 1
    statements, parse_diagnostics = parse(tokens, source)
    print(format_ast(statements))
    if parse_diagnostics.has_errors:
        print(parse_diagnostics.format_all(), file=sys.stderr)
        return 1
    return 0


def cmd_check(args):
    """Compile a file and report errors."""
    from .compiler import compile_scad

    loaded = read_source(args.file)
    if loaded is None:
        return 1
    source, name = loaded

    result = compile_scad(source, name)
    if not result.success:
        print_errors(result)
        return 1

    print(f"OK: {name} - {len(result.ast)} statement(s), no errors")
    return 0


def cmd_build(args):
    """Compile a file and summarize or dump the resulting geometry."""
    from .compiler import compile_scad

    loaded = read_source(args.file)
    if loaded is None:
        return 1
    source, name = loaded

    result = compile_scad(source, name)

    if args.json:
        text = json.dumps(result.to_json(), indent=2)
        if args.output:
            Path(args.output).write_text(text)
            print(f"Exported to: {args.output}")
        else:
            print(text)
    else:
        geometry = result.geometry
        if geometry is None:
            print(f"{name}: no geometry")
        else:
            pending = sum(len(m.geometry.csg_operations) for m in result.meshes)
            print(f"{name}: {len(result.meshes)} mesh(es), {geometry.vertex_count} vertices, "
                  f"{geometry.triangle_count} triangles, {pending} pending CSG operation(s)")
            lo, hi = geometry.bounds()
            print(f"  bounds: [{lo[0]:g}, {lo[1]:g}, {lo[2]:g}] - [{hi[0]:g}, {hi[1]:g}, {hi[2]:g}]")
        print(f"  parse {result.parse_time_ms:.2f} ms, eval {result.eval_time_ms:.2f} ms")

    if not result.success:
        print_errors(result)
        return 1
    return 0


def cmd_examples(args):
    """List the bundled sample programs or print one."""
    from .examples import EXAMPLES

    if args.name is None:
        for example_name in EXAMPLES:
            print(example_name)
        return 0
    if args.name not in EXAMPLES:
        print(f"Error: Unknown example: {args.name} (choose from {', '.join(EXAMPLES)})",
              file=sys.stderr)
        return 1
    print(EXAMPLES[args.name], end="")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m scadlite',
        description='scadlite solid modeling compiler',
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log compiler phases and timings')

    subparsers = parser.add_subparsers(dest='action', required=True)

    tokens_parser = subparsers.add_parser('tokens', help='Print the token stream')
    tokens_parser.add_argument('file', help='Source file, or - for stdin')

    ast_parser = subparsers.add_parser('ast', help='Print the syntax tree')
    ast_parser.add_argument('file', help='Source file, or - for stdin')

    check_parser = subparsers.add_parser('check', help='Check a file for errors')
    check_parser.add_argument('file', help='Source file, or - for stdin')

    build_parser = subparsers.add_parser('build', help='Compile a file to geometry')
    build_parser.add_argument('file', help='Source file, or - for stdin')
    build_parser.add_argument('--json', action='store_true',
                              help='Print the full result as JSON')
    build_parser.add_argument('-o', '--output', metavar='FILE',
                              help='Write the JSON result to FILE (with --json)')

    examples_parser = subparsers.add_parser('examples', help='List or print sample programs')
    examples_parser.add_argument('name', nargs='?', help='Example to print')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.action == 'tokens':
        return cmd_tokens(args)
    elif args.action == 'ast':
        return cmd_ast(args)
    elif args.action == 'check':
        return cmd_check(args)
    elif args.action == 'build':
        return cmd_build(args)
    elif args.action == 'examples':
        return cmd_examples(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
