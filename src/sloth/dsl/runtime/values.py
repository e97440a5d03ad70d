"""
Runtime value helpers for the interpreter.

Values are plain ast.Atom / ast.SList instances. This module provides
convenience constructors, conversion to and from Python data, truthiness,
and the strict coercions used where a silent fallback would be wrong
(arithmetic, ordering comparisons, indices).
"""

from typing import Any, Sequence, Union

from ..ast import (
    Expression, Atom, AtomKind, SList, NIL, TRUE, FALSE, NUMBER_TEXT, format_float,
)
from ..errors import error_argument_type


Number = Union[int, float]


# Convenience constructors

def string_val(s: str) -> Atom:
    """Create a string atom."""
    return Atom(AtomKind.STRING, str(s))


def int_val(n: int) -> Atom:
    """Create an integer atom."""
    return Atom(AtomKind.INT, str(int(n)))


def float_val(x: float) -> Atom:
    """Create a float atom."""
    return Atom(AtomKind.FLOAT, format_float(x))


def number_val(x: Number) -> Atom:
    """Create an int or float atom depending on the Python type."""
    if isinstance(x, int) and not isinstance(x, bool):
        return int_val(x)
    return float_val(x)


def bool_val(b: bool) -> Atom:
    """Create a boolean atom."""
    return TRUE if b else FALSE


def symbol_val(name: str) -> Atom:
    """Create a symbol atom."""
    return Atom(AtomKind.SYMBOL, name)


def list_val(items: Sequence[Expression]) -> SList:
    """Create a list from a sequence of expressions."""
    return SList(tuple(items))


# Conversion to and from Python data

def wrap_value(data: Any) -> Expression:
    """
    Convert Python data into an expression.

    Expressions pass through unchanged; lists and tuples become SLists;
    None becomes nil; anything else is stringified.
    """
    if isinstance(data, Expression):
        return data
    if data is None:
        return NIL
    if isinstance(data, bool):
        return bool_val(data)
    if isinstance(data, int):
        return int_val(data)
    if isinstance(data, float):
        return float_val(data)
    if isinstance(data, str):
        return string_val(data)
    if isinstance(data, (list, tuple)):
        return SList(tuple(wrap_value(item) for item in data))
    return string_val(str(data))


def unwrap_value(expr: Expression) -> Any:
    """Convert an expression to plain Python data (the inverse of wrap_value)."""
    if isinstance(expr, SList):
        return [unwrap_value(item) for item in expr.items]
    if expr.kind == AtomKind.INT:
        return expr.as_int()
    if expr.kind == AtomKind.FLOAT:
        return expr.as_float()
    if expr.kind == AtomKind.BOOL:
        return expr.as_bool()
    if expr.kind == AtomKind.NIL:
        return None
    return expr.text


def to_text(expr: Expression) -> str:
    """String form of any value: atom text, or the printed list."""
    if isinstance(expr, Atom):
        return expr.as_string()
    return str(expr)


def is_truthy(expr: Expression) -> bool:
    """Truthiness for conditionals: atoms use as_bool, lists are true when non-empty."""
    if isinstance(expr, SList):
        return len(expr.items) > 0
    return expr.as_bool()


def describe(expr: Expression) -> str:
    """Short description of a value for error messages."""
    if isinstance(expr, SList):
        return f"list {expr}"
    if expr.kind == AtomKind.STRING:
        return f'string "{expr.text}"'
    if expr.kind == AtomKind.NIL:
        return "nil"
    return f"{expr.kind.value} {expr.text}"


# Strict coercions

def _parse_number(text: str):
    if not NUMBER_TEXT.fullmatch(text):
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return None


def require_number(func_name: str, position: int, expr: Expression) -> Number:
    """
    Coerce an argument to int or float, or raise E403.

    Numeric atoms are accepted as they are; string and symbol atoms are
    accepted when their text parses as a number (so values read from the
    environment can take part in arithmetic).
    """
    if isinstance(expr, Atom):
        if expr.kind == AtomKind.INT:
            return int(expr.text)
        if expr.kind == AtomKind.FLOAT:
            return float(expr.text)
        if expr.kind in (AtomKind.STRING, AtomKind.SYMBOL):
            value = _parse_number(expr.text.strip())
            if value is not None:
                return value
    raise error_argument_type(func_name, position, "a number", describe(expr))


def require_int(func_name: str, position: int, expr: Expression) -> int:
    """Coerce an argument to an integer, or raise E403."""
    value = require_number(func_name, position, expr)
    if isinstance(value, float):
        if not value.is_integer():
            raise error_argument_type(func_name, position, "an integer", describe(expr))
        return int(value)
    return value


def require_list(func_name: str, position: int, expr: Expression) -> SList:
    """Require a list argument, or raise E403."""
    if isinstance(expr, SList):
        return expr
    raise error_argument_type(func_name, position, "a list", describe(expr))
