"""
Recursive descent parser for S-expression source.

Grammar:
    program := expr*
    expr    := atom | '(' expr* ')'

The parser is purely syntactic: it builds Atom and SList nodes carrying
source spans and never evaluates anything.
"""

from typing import List, Optional

from .tokens import Token, TokenType, SourceSpan
from .ast import Expression, Atom, AtomKind, SList, format_float
from .lexer import tokenize
from .errors import (
    error_unmatched_close_paren,
    error_unexpected_eof,
    error_nesting_too_deep,
    error_multiple_forms,
)


# Maximum list nesting accepted by the parser (and the evaluator)
MAX_DEPTH = 100


class Parser:
    """
    Recursive descent parser over a token list.

    Usage:
        parser = Parser(tokens)
        forms = parser.parse_program()
    """

    def __init__(self, tokens: List[Token], filename: Optional[str] = None,
                 source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source  # Original source code for error messages
        self.pos = 0
        self.depth = 0
        self._lines = source.splitlines() if source else []

    # --- Token navigation ---

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _source_line(self, token: Token) -> Optional[str]:
        line = token.span.start.line
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    # --- Parsing ---

    def parse_program(self) -> List[Expression]:
        """Parse every top-level form up to end of input."""
        forms = []
        while not self._is_at_end():
            forms.append(self.parse_expression())
        return forms

    def parse_expression(self) -> Expression:
        """Parse one expression starting at the current token."""
        token = self._current()

        if token.type == TokenType.EOF:
            raise error_unexpected_eof("an expression", token.span)
        if token.type == TokenType.RPAREN:
            raise error_unmatched_close_paren(token.span, self._source_line(token))
        if token.type == TokenType.LPAREN:
            return self._parse_list()

        self._advance()
        return self._make_atom(token)

    def _parse_list(self) -> SList:
        open_token = self._advance()
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise error_nesting_too_deep(MAX_DEPTH, open_token.span, self._source_line(open_token))

        items = []
        while self._current().type != TokenType.RPAREN:
            if self._is_at_end():
                raise error_unexpected_eof(
                    "')'", self._current().span,
                    [f"the list opened at {open_token.span.start} is never closed"],
                )
            items.append(self.parse_expression())

        close_token = self._advance()
        self.depth -= 1
        return SList(tuple(items), span=SourceSpan(open_token.span.start, close_token.span.end))

    def _make_atom(self, token: Token) -> Atom:
        span = token.span
        if token.type == TokenType.STRING:
            return Atom(AtomKind.STRING, token.value, span=span)
        if token.type == TokenType.INT:
            return Atom(AtomKind.INT, str(token.value), span=span)
        if token.type == TokenType.FLOAT:
            return Atom(AtomKind.FLOAT, format_float(token.value), span=span)
        if token.type == TokenType.BOOL:
            return Atom(AtomKind.BOOL, "true" if token.value else "false", span=span)
        if token.type == TokenType.NIL:
            return Atom(AtomKind.NIL, "", span=span)
        return Atom(AtomKind.SYMBOL, token.value, span=span)


def parse_all(source: str, filename: Optional[str] = None) -> List[Expression]:
    """
    Parse source text into its list of top-level forms.

    Args:
        source: The source code
        filename: Optional filename for error messages

    Returns:
        The forms in source order (empty for blank or comment-only input)

    Raises:
        LexerError: On an unterminated string
        ParserError: On unbalanced parentheses or excessive nesting
    """
    tokens = tokenize(source, filename)
    return Parser(tokens, filename, source).parse_program()


def parse(source: str, filename: Optional[str] = None) -> Expression:
    """
    Parse source text that holds exactly one expression.

    Raises:
        ParserError: E102 on empty input, E104 when more than one form follows
    """
    tokens = tokenize(source, filename)
    parser = Parser(tokens, filename, source)
    forms = parser.parse_program()
    if not forms:
        raise error_unexpected_eof("an expression", tokens[-1].span)
    if len(forms) > 1:
        extra = forms[1]
        line = None
        if extra.span is not None:
            lines = source.splitlines()
            if extra.span.start.line <= len(lines):
                line = lines[extra.span.start.line - 1]
        raise error_multiple_forms(len(forms), extra.span, line)
    return forms[0]
