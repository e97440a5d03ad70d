"""
Token types for the sloth configuration language lexer.

The language is a small S-expression dialect, so the token set is tiny:
parentheses, literals and symbols.

Token type categories follow the error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Delimiters ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )

    # --- Literals ---
    STRING = auto()             # "hello", "line\nbreak"
    INT = auto()                # 42, -7
    FLOAT = auto()              # 3.14, -0.5
    BOOL = auto()               # true, false
    NIL = auto()                # nil

    # --- Names ---
    SYMBOL = auto()             # env, base64-encode, env?, +, >=

    # --- Special ---
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
    value: Any              # Decoded value (str, int, float, bool or None)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.STRING, TokenType.INT, TokenType.FLOAT,
                         TokenType.SYMBOL):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Bare words that lex as literals rather than symbols
LITERAL_WORDS: dict[str, TokenType] = {
    "true": TokenType.BOOL,
    "false": TokenType.BOOL,
    "nil": TokenType.NIL,
}

# Characters that end an atom
DELIMITERS = frozenset('()";')


def is_delimiter(ch: str) -> bool:
    """Check if a character terminates a number or symbol."""
    return ch in DELIMITERS or ch.isspace()
