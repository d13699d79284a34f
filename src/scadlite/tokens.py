"""
Token types for the scadlite lexer.

Token categories follow the error code ranges used by the diagnostics:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    NUMBER = auto()             # 42, 3.14, .5, 1e-3
    STRING = auto()             # "hello", 'hello'
    BOOLEAN = auto()            # true, false

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Keywords ---
    MODULE = auto()             # module
    FUNCTION = auto()           # function
    FOR = auto()                # for
    IF = auto()                 # if
    ELSE = auto()               # else
    LET = auto()                # let

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %
    CARET = auto()              # ^ (power)

    # --- Comparison operators ---
    EQ = auto()                 # ==
    NEQ = auto()                # !=
    LT = auto()                 # <
    GT = auto()                 # >
    LTE = auto()                # <=
    GTE = auto()                # >=

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||
    NOT = auto()                # !

    # --- Delimiters ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    SEMICOLON = auto()          # ;
    COLON = auto()              # : (ranges and ternaries)
    ASSIGN = auto()             # =
    QUESTION = auto()           # ?

    # --- Special ---
    DOLLAR = auto()             # $ (resolution variables: $fn, $fa, $fs)
    EOF = auto()                # end of file


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # float for numbers, str for strings/identifiers, bool for booleans
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def line(self) -> int:
        return self.span.start.line

    @property
    def column(self) -> int:
        return self.span.start.column

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.STRING,
                         TokenType.BOOLEAN, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "module": TokenType.MODULE,
    "function": TokenType.FUNCTION,
    "for": TokenType.FOR,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "let": TokenType.LET,

    # Boolean literals
    "true": TokenType.BOOLEAN,
    "false": TokenType.BOOLEAN,
}

# Keywords the parser resynchronizes on after an error
STATEMENT_KEYWORDS = frozenset({
    TokenType.MODULE,
    TokenType.FUNCTION,
    TokenType.FOR,
    TokenType.IF,
})
