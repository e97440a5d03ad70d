"""
Lexer for the sloth configuration language.

Converts source text into a stream of tokens for the parser.
Supports:
- Parentheses
- Double-quoted strings with escape sequences (may span lines)
- Integer and decimal literals with an optional leading '-'
- The bare words true, false and nil
- Symbols: any other run of characters up to whitespace, '(', ')', '"' or ';'
- Comments from ';' to end of line
"""

from typing import List, Optional, Iterator
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan, LITERAL_WORDS, is_delimiter,
)
from .errors import error_unterminated_string


DIGITS = '0123456789'

ESCAPE_CHARS = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '"': '"',
    '\\': '\\',
}


class Lexer:
    """
    Tokenizer for S-expression source.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list

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
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
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

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _at_atom_end(self, offset: int = 0) -> bool:
        """True when the character at offset closes a number or symbol."""
        return self.pos + offset >= len(self.source) or is_delimiter(self._peek(offset))

    def _skip_whitespace_and_comments(self) -> None:
        """Skip whitespace (including newlines) and ';' comments."""
        while not self._is_at_end():
            ch = self._peek()
            if ch.isspace():
                self._advance()
            elif ch == ';':
                while not self._is_at_end() and self._peek() != '\n':
                    self._advance()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._advance()
            if ch == '\\':
                if self._is_at_end():
                    break
                esc = self._advance()
                # Unknown escapes stand for the escaped character itself
                chars.append(ESCAPE_CHARS.get(esc, esc))
            else:
                chars.append(ch)

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _looks_like_number(self) -> bool:
        """Check for -?digits(.digits*)? followed by a delimiter."""
        offset = 0
        if self._peek() == '-':
            offset = 1
        if self._peek(offset) not in DIGITS:
            return False
        while self._peek(offset) in DIGITS:
            offset += 1
        if self._peek(offset) == '.':
            offset += 1
            while self._peek(offset) in DIGITS:
                offset += 1
        return self._at_atom_end(offset)

    def _scan_number(self) -> Token:
        """Scan a numeric literal (int or float)."""
        start = self._location()
        while not self._at_atom_end():
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        if '.' in lexeme:
            return self._make_token(TokenType.FLOAT, float(lexeme), start, lexeme)
        return self._make_token(TokenType.INT, int(lexeme), start, lexeme)

    def _scan_symbol(self) -> Token:
        """Scan a symbol or one of the literal words."""
        start = self._location()
        while not self._at_atom_end():
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        token_type = LITERAL_WORDS.get(lexeme)
        if token_type == TokenType.BOOL:
            return self._make_token(token_type, lexeme == "true", start, lexeme)
        if token_type == TokenType.NIL:
            return self._make_token(token_type, None, start, lexeme)
        return self._make_token(TokenType.SYMBOL, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace_and_comments()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch == '(':
            self._advance()
            return self._make_token(TokenType.LPAREN, ch, start)
        if ch == ')':
            self._advance()
            return self._make_token(TokenType.RPAREN, ch, start)
        if ch == '"':
            return self._scan_string()
        if self._looks_like_number():
            return self._scan_number()
        return self._scan_symbol()

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens."""
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, always ending with EOF

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
