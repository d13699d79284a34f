"""
Recursive descent parser for scadlite.

Converts a token stream into a list of statements. Errors are recorded in
``diagnostics`` and the parser resynchronizes at the next statement
boundary, so a single typo does not hide later problems.
"""

from typing import List, Optional, Tuple
from .tokens import Token, TokenType, SourceSpan, STATEMENT_KEYWORDS
from .ast import (
    # Expressions
    Expression, NumberLiteral, StringLiteral, BooleanLiteral, Identifier,
    ArrayLiteral, RangeExpr, UnaryOp, BinaryOp, TernaryOp, FunctionCall,
    IndexAccess, NamedArgument,
    # Statements
    Statement, Parameter, Assignment, ModuleDef, FunctionDef, ModuleCall,
    ForStatement, IfStatement, LetStatement, Block, EmptyStatement,
)
from .errors import (
    ParserError,
    DiagnosticCollector,
    error_expected,
    error_unexpected_eof,
    error_nesting_too_deep,
)


class Parser:
    """
    Recursive descent parser for scadlite.

    Usage:
        parser = Parser(tokens)
        statements = parser.parse()
        if parser.diagnostics.has_errors:
            ...

    Expressions use precedence climbing:
        Lowest:  ? :  (ternary, right-associative)
                 ||
                 &&
                 == !=
                 < > <= >=
                 + -
                 * / %
                 ^    (power, right-associative)
                 unary (- !)
        Highest: postfix [index]
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NEQ: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.LTE: 4,
        TokenType.GTE: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
        TokenType.PERCENT: 6,
        TokenType.CARET: 7,
    }

    RIGHT_ASSOCIATIVE = {TokenType.CARET}

    def __init__(self, tokens: List[Token], source: Optional[str] = None):
        self.tokens = tokens
        self.pos = 0
        self.diagnostics = DiagnosticCollector()
        self._lines = source.splitlines() if source is not None else None

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _previous(self) -> Token:
        return self.tokens[max(0, self.pos - 1)]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, message: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(message)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, line: int) -> Optional[str]:
        if self._lines is not None and 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _error(self, message: str) -> None:
        """Raise a parser error at the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(message, token.span)
        raise error_expected(message, token.span, self._source_line(token.line))

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        end_token = self._previous()
        if end_token.span.end.offset < start.span.start.offset:
            end_token = start
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Error Recovery
    # =========================================================================

    def _synchronize(self, in_block: bool = False, statement_start: int = -1) -> None:
        """
        Discard tokens up to the next statement boundary.

        Stops just after a ';' or '}', or before a statement keyword.
        Inside a block a '}' is never consumed here, so the enclosing
        block can still close. A keyword that broke a statement already in
        progress is kept so it can start the next one.
        """
        if in_block and self._check(TokenType.RBRACE):
            return
        if self.pos > statement_start and self._current().type in STATEMENT_KEYWORDS:
            return
        self._advance()
        while not self._is_at_end():
            if self._previous().type in (TokenType.SEMICOLON, TokenType.RBRACE):
                return
            if self._current().type in STATEMENT_KEYWORDS:
                return
            if in_block and self._check(TokenType.RBRACE):
                return
            self._advance()

    def _parse_statement_list(self, in_block: bool) -> List[Statement]:
        """Parse statements until EOF (or '}' inside a block), recovering from errors."""
        statements = []
        while not self._is_at_end():
            if in_block and self._check(TokenType.RBRACE):
                break
            statement_start = self.pos
            try:
                statements.append(self._parse_statement())
            except ParserError as e:
                self.diagnostics.add_error(e)
                self._synchronize(in_block, statement_start)
            except RecursionError:
                if in_block:
                    raise
                # Too deep to resynchronise; give up on the rest of the file
                token = self.tokens[statement_start]
                self.diagnostics.add_error(
                    error_nesting_too_deep(token.span, self._source_line(token.line)))
                self.pos = len(self.tokens) - 1
        return statements

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_ternary_expr()

    def _parse_ternary_expr(self) -> Expression:
        condition = self._parse_binary_expr(1)

        if not self._match(TokenType.QUESTION):
            return condition

        consequent = self._parse_expression()
        self._consume(TokenType.COLON, "Expected ':' in ternary")
        alternate = self._parse_ternary_expr()
        return TernaryOp(
            span=SourceSpan(condition.span.start, alternate.span.end),
            condition=condition,
            consequent=consequent,
            alternate=alternate,
        )

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator

            next_precedence = precedence if op_token.type in self.RIGHT_ASSOCIATIVE else precedence + 1
            right = self._parse_binary_expr(next_precedence)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.lexeme,
                right=right,
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (-, !)."""
        if self._check_any(TokenType.NOT, TokenType.MINUS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.lexeme,
                operand=operand,
            )

        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Parse index access chains (e.g., m[1][2])."""
        expr = self._parse_primary_expr()

        while self._match(TokenType.LBRACKET):
            index = self._parse_expression()
            end = self._consume(TokenType.RBRACKET, "Expected ']'")
            expr = IndexAccess(
                span=SourceSpan(expr.span.start, end.span.end),
                object=expr,
                index=index,
            )

        return expr

    def _parse_arguments(self) -> Tuple[Tuple[Expression, ...], Tuple[NamedArgument, ...]]:
        """Parse an argument list after '(' up to (not including) ')'.

        Returns (positional, named). A trailing comma is allowed.
        """
        args = []
        named_args = []

        while not self._check(TokenType.RPAREN):
            self._parse_argument(args, named_args)
            if not self._match(TokenType.COMMA):
                break

        return tuple(args), tuple(named_args)

    def _parse_argument(self, args: List[Expression],
                        named_args: List[NamedArgument]) -> None:
        """Parse a single argument (positional or named)."""
        start = self._current()
        if self._check(TokenType.IDENTIFIER) and self._peek(1).type == TokenType.ASSIGN:
            name = self._advance().value
            self._advance()  # consume '='
            value = self._parse_expression()
            named_args.append(NamedArgument(span=self._span_from(start), name=name, value=value))
        elif (self._check(TokenType.DOLLAR) and self._peek(1).type == TokenType.IDENTIFIER
              and self._peek(2).type == TokenType.ASSIGN):
            self._advance()  # consume '$'
            name = "$" + self._advance().value
            self._advance()  # consume '='
            value = self._parse_expression()
            named_args.append(NamedArgument(span=self._span_from(start), name=name, value=value))
        else:
            args.append(self._parse_expression())

    def _parse_call_tail(self, start: Token, name: str) -> FunctionCall:
        """Parse '(args)' after a function name."""
        self._advance()  # consume '('
        args, named_args = self._parse_arguments()
        self._consume(TokenType.RPAREN, "Expected ')'")
        return FunctionCall(
            span=self._span_from(start),
            name=name,
            arguments=args,
            named_arguments=named_args,
        )

    def _parse_primary_expr(self) -> Expression:
        """Parse literals, identifiers, calls, groups and array/range literals."""
        token = self._current()

        if token.type == TokenType.NUMBER:
            self._advance()
            return NumberLiteral(span=token.span, value=token.value)

        if token.type == TokenType.STRING:
            self._advance()
            return StringLiteral(span=token.span, value=token.value)

        if token.type == TokenType.BOOLEAN:
            self._advance()
            return BooleanLiteral(span=token.span, value=token.value)

        if token.type == TokenType.DOLLAR:
            self._advance()
            name = "$" + self._consume(TokenType.IDENTIFIER, "Expected special variable name").value
            if self._check(TokenType.LPAREN):
                return self._parse_call_tail(token, name)
            return Identifier(span=self._span_from(token), name=name, special=True)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._check(TokenType.LPAREN):
                return self._parse_call_tail(token, token.value)
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.LBRACKET:
            return self._parse_array_or_range()

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "Expected ')'")
            return expr

        self._error("Expected expression")

    def _parse_array_or_range(self) -> Expression:
        """
        Parse '[' ... ']'.

        After the first expression a ':' selects a range ([start:end] or
        [start:step:end]); ',' or ']' selects an array literal.
        """
        start = self._advance()  # consume '['

        if self._match(TokenType.RBRACKET):
            return ArrayLiteral(span=self._span_from(start), elements=())

        first = self._parse_expression()

        if self._match(TokenType.COLON):
            second = self._parse_expression()
            if self._match(TokenType.COLON):
                third = self._parse_expression()
                self._consume(TokenType.RBRACKET, "Expected ']'")
                return RangeExpr(span=self._span_from(start), start=first, end=third, step=second)
            self._consume(TokenType.RBRACKET, "Expected ']'")
            return RangeExpr(span=self._span_from(start), start=first, end=second)

        elements = [first]
        while self._match(TokenType.COMMA):
            if self._check(TokenType.RBRACKET):
                break  # Allow trailing comma
            elements.append(self._parse_expression())

        self._consume(TokenType.RBRACKET, "Expected ']'")
        return ArrayLiteral(span=self._span_from(start), elements=tuple(elements))

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Dispatch on the leading token(s) of a statement."""
        if self._check(TokenType.MODULE):
            return self._parse_module_def()
        if self._check(TokenType.FUNCTION):
            return self._parse_function_def()
        if self._check(TokenType.IDENTIFIER) and self._peek(1).type == TokenType.ASSIGN:
            return self._parse_assignment()
        if (self._check(TokenType.DOLLAR) and self._peek(1).type == TokenType.IDENTIFIER
                and self._peek(2).type == TokenType.ASSIGN):
            return self._parse_assignment()
        return self._parse_instantiation()

    def _parse_assignment(self) -> Assignment:
        """Parse `name = expr;` or `$name = expr;` (the ';' is optional)."""
        start = self._current()
        if self._match(TokenType.DOLLAR):
            name = "$" + self._advance().value
        else:
            name = self._advance().value
        self._consume(TokenType.ASSIGN, "Expected '='")
        value = self._parse_expression()
        self._match(TokenType.SEMICOLON)
        return Assignment(span=self._span_from(start), name=name, value=value)

    def _parse_parameters(self) -> Tuple[Parameter, ...]:
        """Parse '(' params ')' for a module or function definition."""
        params = []
        while not self._check(TokenType.RPAREN):
            start = self._current()
            name = self._consume(TokenType.IDENTIFIER, "Expected parameter name").value
            default = None
            if self._match(TokenType.ASSIGN):
                default = self._parse_expression()
            params.append(Parameter(span=self._span_from(start), name=name, default=default))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "Expected ')' after parameters")
        return tuple(params)

    def _parse_module_def(self) -> ModuleDef:
        """Parse `module name(params) { ... }` or `module name(params) stmt`."""
        start = self._advance()  # consume 'module'
        name = self._consume(TokenType.IDENTIFIER, "Expected module name").value
        self._consume(TokenType.LPAREN, "Expected '(' after module name")
        params = self._parse_parameters()

        if self._match(TokenType.LBRACE):
            body = self._parse_brace_body()
        else:
            body = (self._parse_statement(),)

        return ModuleDef(span=self._span_from(start), name=name, parameters=params, body=body)

    def _parse_function_def(self) -> FunctionDef:
        """Parse `function name(params) = expr;` (the ';' is optional)."""
        start = self._advance()  # consume 'function'
        name = self._consume(TokenType.IDENTIFIER, "Expected function name").value
        self._consume(TokenType.LPAREN, "Expected '(' after function name")
        params = self._parse_parameters()
        self._consume(TokenType.ASSIGN, "Expected '=' before function body")
        body = self._parse_expression()
        self._match(TokenType.SEMICOLON)
        return FunctionDef(span=self._span_from(start), name=name, parameters=params, body=body)

    def _parse_brace_body(self) -> Tuple[Statement, ...]:
        """Parse statements after '{' through the closing '}'."""
        statements = self._parse_statement_list(in_block=True)
        self._consume(TokenType.RBRACE, "Expected '}'")
        return tuple(statements)

    def _parse_instantiation(self) -> Statement:
        """Parse a module call or one of the control statements."""
        token = self._current()

        if token.type == TokenType.FOR:
            return self._parse_for_statement()
        if token.type == TokenType.IF:
            return self._parse_if_statement()
        if token.type == TokenType.LET:
            return self._parse_let_statement()
        if token.type == TokenType.LBRACE:
            self._advance()
            statements = self._parse_brace_body()
            return Block(span=self._span_from(token), statements=statements)
        if token.type == TokenType.SEMICOLON:
            self._advance()
            return EmptyStatement(span=token.span)

        if token.type != TokenType.IDENTIFIER:
            self._error("Expected statement")

        name = self._advance().value
        self._consume(TokenType.LPAREN, "Expected '(' after module name")
        args, named_args = self._parse_arguments()
        self._consume(TokenType.RPAREN, "Expected ')' after arguments")

        if self._match(TokenType.LBRACE):
            children = self._parse_brace_body()
        elif self._match(TokenType.SEMICOLON):
            children = ()
        else:
            children = (self._parse_instantiation(),)

        return ModuleCall(
            span=self._span_from(token),
            name=name,
            arguments=args,
            named_arguments=named_args,
            children=children,
        )

    def _parse_for_statement(self) -> ForStatement:
        """
        Parse `for (v = expr) body`.

        Several loop variables, `for (a = A, b = B) body`, nest in order so
        the first variable is the outermost loop.
        """
        start = self._advance()  # consume 'for'
        self._consume(TokenType.LPAREN, "Expected '(' after 'for'")

        clauses = []
        while True:
            variable = self._consume(TokenType.IDENTIFIER, "Expected loop variable").value
            self._consume(TokenType.ASSIGN, "Expected '='")
            clauses.append((variable, self._parse_expression()))
            if not self._match(TokenType.COMMA) or self._check(TokenType.RPAREN):
                break

        self._consume(TokenType.RPAREN, "Expected ')' after for clause")
        body = self._parse_instantiation()
        span = self._span_from(start)

        for variable, iterable in reversed(clauses):
            body = ForStatement(span=span, variable=variable, iterable=iterable, body=body)
        return body

    def _parse_if_statement(self) -> IfStatement:
        start = self._advance()  # consume 'if'
        self._consume(TokenType.LPAREN, "Expected '(' after 'if'")
        condition = self._parse_expression()
        self._consume(TokenType.RPAREN, "Expected ')' after condition")

        consequent = self._parse_instantiation()
        alternate = None
        if self._match(TokenType.ELSE):
            alternate = self._parse_instantiation()

        return IfStatement(
            span=self._span_from(start),
            condition=condition,
            consequent=consequent,
            alternate=alternate,
        )

    def _parse_let_statement(self) -> LetStatement:
        start = self._advance()  # consume 'let'
        self._consume(TokenType.LPAREN, "Expected '(' after 'let'")

        bindings = []
        while not self._check(TokenType.RPAREN):
            binding_start = self._current()
            name = self._consume(TokenType.IDENTIFIER, "Expected variable name").value
            self._consume(TokenType.ASSIGN, "Expected '='")
            value = self._parse_expression()
            bindings.append(NamedArgument(span=self._span_from(binding_start), name=name, value=value))
            if not self._match(TokenType.COMMA):
                break

        self._consume(TokenType.RPAREN, "Expected ')' after let bindings")
        body = self._parse_instantiation()
        return LetStatement(span=self._span_from(start), bindings=tuple(bindings), body=body)

    # =========================================================================
    # Entry Point
    # =========================================================================

    def parse(self) -> List[Statement]:
        """Parse the whole token stream into top-level statements."""
        return self._parse_statement_list(in_block=False)


def parse(tokens: List[Token], source: Optional[str] = None) -> Tuple[List[Statement], DiagnosticCollector]:
    """
    Convenience function to parse tokens into statements.

    Args:
        tokens: List of tokens from the lexer (ending in EOF)
        source: Optional source text, used to show the offending line

    Returns:
        (statements, diagnostics). Statements that failed to parse are
        dropped; everything else is kept.
    """
    parser = Parser(tokens, source)
    statements = parser.parse()
    return statements, parser.diagnostics
