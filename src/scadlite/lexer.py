"""
Lexer for the scadlite modeling language.

Converts source text into a stream of tokens for the parser.
Supports:
- Line comments (//) and nested block comments (/* */)
- Double- and single-quoted strings with escape sequences
- Decimal numbers with optional fraction and exponent (12, 1.5, .5, 1e-3)
- The $ sigil for resolution parameters ($fn, $fa, $fs)
- All keywords, operators and punctuation of the grammar

Errors do not stop the scan: each one is recorded in ``diagnostics`` and
scanning resumes after the offending text, so a single stray character
reports every problem in the file at once.
"""

from typing import List, Optional, Tuple
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    DiagnosticCollector,
    LexerError,
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
)


ESCAPE_CHARS = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
    "'": "'",
}

SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    ';': TokenType.SEMICOLON,
    ':': TokenType.COLON,
    '?': TokenType.QUESTION,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '%': TokenType.PERCENT,
    '^': TokenType.CARET,
    '$': TokenType.DOLLAR,
    '<': TokenType.LT,
    '>': TokenType.GT,
    '=': TokenType.ASSIGN,
    '!': TokenType.NOT,
}


class Lexer:
    """
    Tokenizer for scadlite source.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
        if lexer.diagnostics.has_errors:
            ...
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self.diagnostics = DiagnosticCollector()
        self._lines: Optional[List[str]] = None

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _skip_line_comment(self) -> None:
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_block_comment(self) -> None:
        """Skip /* ... */, honoring nesting."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        depth = 1

        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()

        if depth > 0:
            raise error_unterminated_comment(
                self._span(start),
                self.get_source_line(start.line)
            )

    def _skip_trivia(self) -> None:
        """Skip whitespace and comments between tokens."""
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                self._skip_line_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_block_comment()
            else:
                break

    def _scan_string(self) -> Token:
        """
        Scan a string literal delimited by ' or ".

        Strings may not span lines. An unterminated string is reported at
        its opening quote and the scan resumes at the end of that line.
        """
        start = self._location()
        quote = self._advance()

        chars = []
        while not self._is_at_end() and self._peek() != quote:
            ch = self._peek()
            if ch == '\n':
                break
            if ch == '\\':
                self._advance()
                esc = self._advance()
                # Unknown escapes are kept verbatim
                chars.append(ESCAPE_CHARS.get(esc, '\\' + esc))
            else:
                chars.append(self._advance())

        if self._peek() != quote:
            raise error_unterminated_string(
                SourceSpan(start, SourceLocation(start.line, start.column + 1,
                                                 start.offset + 1, self.filename)),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_number(self) -> Token:
        """Scan a numeric literal. All numbers are floats."""
        start = self._location()

        while self._peek().isdigit():
            self._advance()

        if self._peek() == '.' and self._peek(1).isdigit():
            self._advance()  # consume '.'
            while self._peek().isdigit():
                self._advance()

        # Exponent only when digits follow, so "2e" lexes as 2 then e
        if self._peek() in 'eE':
            if self._peek(1).isdigit():
                self._advance()
            elif self._peek(1) in '+-' and self._peek(2).isdigit():
                self._advance()
                self._advance()
            while self._peek().isdigit():
                self._advance()

        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.NUMBER, float(lexeme), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()

        while self._peek().isascii() and (self._peek().isalnum() or self._peek() == '_'):
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme in KEYWORDS:
            token_type = KEYWORDS[lexeme]
            if token_type == TokenType.BOOLEAN:
                value = lexeme == 'true'
            else:
                value = lexeme
            return self._make_token(token_type, value, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token, raising LexerError on malformed input."""
        self._skip_trivia()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch in '"\'':
            return self._scan_string()

        if ch.isascii() and ch.isdigit():
            return self._scan_number()
        if ch == '.' and self._peek(1).isdigit():
            return self._scan_number()

        if ch.isascii() and (ch.isalpha() or ch == '_'):
            return self._scan_identifier_or_keyword()

        self._advance()

        # Two-character operators
        if ch == '=' and self._match('='):
            return self._make_token(TokenType.EQ, "==", start)
        if ch == '!' and self._match('='):
            return self._make_token(TokenType.NEQ, "!=", start)
        if ch == '<' and self._match('='):
            return self._make_token(TokenType.LTE, "<=", start)
        if ch == '>' and self._match('='):
            return self._make_token(TokenType.GTE, ">=", start)
        if ch == '&' and self._match('&'):
            return self._make_token(TokenType.AND, "&&", start)
        if ch == '|' and self._match('|'):
            return self._make_token(TokenType.OR, "||", start)

        if ch in SINGLE_CHAR_TOKENS:
            return self._make_token(SINGLE_CHAR_TOKENS[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def _next_token(self) -> Token:
        """Scan until a token is produced, recording errors along the way."""
        while True:
            try:
                return self._scan_token()
            except LexerError as e:
                self.diagnostics.add_error(e)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        tokens = []
        while True:
            token = self._next_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                break
        return tokens


def tokenize(source: str, filename: Optional[str] = None) -> Tuple[List[Token], DiagnosticCollector]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        (tokens, diagnostics). The token list always ends with EOF, even
        when diagnostics holds errors.
    """
    lexer = Lexer(source, filename)
    tokens = lexer.tokenize()
    return tokens, lexer.diagnostics
