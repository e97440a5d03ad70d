"""
Expression tree for the sloth configuration language.

The language is homoiconic: the same two node types represent parsed source
and runtime values.

- Atom: an immutable scalar holding one canonical text payload and a kind tag
- SList: an immutable ordered sequence of expressions

Atoms expose total coercion accessors (as_string, as_int, as_float, as_bool)
with documented fallbacks. Code that must detect a failed coercion uses the
strict helpers in runtime.values instead.

SList also carries the property accessors the configuration loader uses to
read `(section (key value) ...)` data, e.g. `section.get_string("name")`.
"""

import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .tokens import SourceSpan


class AtomKind(Enum):
    """Kind tag of an atom."""
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    SYMBOL = "symbol"
    NIL = "nil"


# Strings accepted as true by as_bool()
TRUE_WORDS = frozenset({"true", "t", "yes"})

# Numeric text as the lexer reads it
NUMBER_TEXT = re.compile(r"-?[0-9]+(\.[0-9]*)?")


@dataclass(frozen=True)
class Expression:
    """Base class for atoms and lists."""
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False, kw_only=True)

    def is_atom(self) -> bool:
        return False

    def is_list(self) -> bool:
        return False


@dataclass(frozen=True)
class Atom(Expression):
    """A scalar leaf: string, number, boolean, symbol or nil."""
    kind: AtomKind
    text: str

    def is_atom(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.text

    # --- Kind predicates ---

    def is_string(self) -> bool:
        return self.kind == AtomKind.STRING

    def is_symbol(self) -> bool:
        return self.kind == AtomKind.SYMBOL

    def is_number(self) -> bool:
        return self.kind in (AtomKind.INT, AtomKind.FLOAT)

    def is_bool(self) -> bool:
        return self.kind == AtomKind.BOOL

    def is_nil(self) -> bool:
        return self.kind == AtomKind.NIL

    # --- Coercions (total; never raise) ---

    def as_string(self) -> str:
        """The canonical text of the atom."""
        return self.text

    def _numeric(self) -> bool:
        if self.kind in (AtomKind.INT, AtomKind.FLOAT):
            return True
        return self.kind != AtomKind.BOOL and NUMBER_TEXT.fullmatch(self.text.strip()) is not None

    def as_int(self) -> int:
        """Integer view; floats truncate toward zero, anything else is 0."""
        if not self._numeric():
            return 0
        try:
            return int(self.text)
        except ValueError:
            pass
        try:
            return int(float(self.text))
        except (ValueError, OverflowError):
            return 0

    def as_float(self) -> float:
        """Float view; unparsable text is 0.0."""
        if not self._numeric():
            return 0.0
        try:
            return float(self.text)
        except ValueError:
            return 0.0

    def as_bool(self) -> bool:
        """
        Boolean view.

        Booleans are themselves, numbers are true when non-zero, nil is false,
        and strings or symbols are true only for "true", "t" and "yes".
        """
        if self.kind == AtomKind.BOOL:
            return self.text == "true"
        if self.kind in (AtomKind.INT, AtomKind.FLOAT):
            return self.as_float() != 0
        if self.kind == AtomKind.NIL:
            return False
        return self.text in TRUE_WORDS


@dataclass(frozen=True)
class SList(Expression):
    """An ordered, immutable sequence of expressions."""
    items: Tuple[Expression, ...] = ()

    def __post_init__(self):
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))

    def is_list(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def __str__(self) -> str:
        return "(" + " ".join(str(item) for item in self.items) + ")"

    def head(self) -> Optional[Atom]:
        """The first element when it is an atom (usually the operator or key)."""
        if self.items and isinstance(self.items[0], Atom):
            return self.items[0]
        return None

    def tail(self) -> Tuple[Expression, ...]:
        """All elements after the first."""
        return self.items[1:]

    # --- Property access for (key value) children ---

    def get(self, name: str) -> Optional[Expression]:
        """
        Return the value of the first `(name value...)` child.

        For (foo (bar 1) (baz 2 3)), get("bar") is the atom 1 and get("baz")
        is the list (2 3).
        """
        for item in self.items:
            if isinstance(item, SList):
                head = item.head()
                if head is not None and head.as_string() == name:
                    if len(item.items) == 2:
                        return item.items[1]
                    return SList(item.tail())
        return None

    def get_string(self, name: str) -> str:
        value = self.get(name)
        if isinstance(value, Atom):
            return value.as_string()
        return ""

    def get_int(self, name: str) -> int:
        value = self.get(name)
        if isinstance(value, Atom):
            return value.as_int()
        return 0

    def get_bool(self, name: str) -> bool:
        value = self.get(name)
        if isinstance(value, Atom):
            return value.as_bool()
        return False

    def get_list(self, name: str) -> Optional["SList"]:
        """
        The values of the `name` child as a list.

        A lone data list such as `(keys ("a" "b"))` is returned as is; a lone
        nested section such as `(vpc (cidr "10.0.0.0/16"))` is wrapped so that
        `get_list("vpc").get_string("cidr")` works.
        """
        for item in self.items:
            if isinstance(item, SList):
                head = item.head()
                if head is not None and head.as_string() == name:
                    values = item.tail()
                    if len(values) == 1:
                        value = values[0]
                        if not isinstance(value, SList):
                            return None
                        inner = value.head()
                        if inner is None or not inner.is_symbol():
                            return value
                    return SList(values)
        return None

    def get_string_list(self, name: str) -> List[str]:
        """A single atom becomes a one-element list; nested lists are skipped."""
        value = self.get(name)
        if isinstance(value, Atom):
            return [value.as_string()]
        if isinstance(value, SList):
            return [item.as_string() for item in value if isinstance(item, Atom)]
        return []

    def get_map(self, name: str) -> Dict[str, str]:
        """Read `(name (k1 v1) (k2 v2))` as {k1: v1, k2: v2}."""
        result: Dict[str, str] = {}
        value = self.get(name)
        if isinstance(value, SList):
            for pair in value:
                if isinstance(pair, SList) and len(pair) >= 2:
                    head = pair.head()
                    if head is not None and isinstance(pair[1], Atom):
                        result[head.as_string()] = pair[1].as_string()
        return result


NIL = Atom(AtomKind.NIL, "")
TRUE = Atom(AtomKind.BOOL, "true")
FALSE = Atom(AtomKind.BOOL, "false")


def format_float(value: float) -> str:
    """
    Canonical text of a float: positional notation with at least one decimal.

    Exponent forms such as 1e+16 are not valid source, so they are expanded
    (1e+16 becomes 10000000000000000.0). Non-finite values keep repr().
    """
    value = float(value)
    if not math.isfinite(value):
        return repr(value)
    text = format(Decimal(repr(value)), "f")
    if "." not in text:
        text += ".0"
    return text


def _quote(text: str) -> str:
    escaped = (text.replace("\\", "\\\\").replace('"', '\\"')
               .replace("\n", "\\n").replace("\t", "\\t").replace("\r", "\\r"))
    return f'"{escaped}"'


def to_source(expr: Expression, indent: Optional[int] = None, _level: int = 0) -> str:
    """
    Render an expression as parsable source.

    Strings are quoted and escaped, nil is written as `nil`. With an indent
    width, nested lists are placed on their own lines.
    """
    if isinstance(expr, Atom):
        if expr.kind == AtomKind.STRING:
            return _quote(expr.text)
        if expr.kind == AtomKind.NIL:
            return "nil"
        return expr.text

    parts = [to_source(item, indent, _level + 1) for item in expr.items]
    has_nested = any(isinstance(item, SList) and len(item) > 0 for item in expr.items)
    if indent is None or not has_nested:
        return "(" + " ".join(parts) + ")"

    pad = " " * (indent * (_level + 1))
    lines = [parts[0]] if parts else []
    for item, text in zip(expr.items[1:], parts[1:]):
        if isinstance(item, SList):
            lines.append("\n" + pad + text)
        else:
            lines.append(" " + text)
    return "(" + "".join(lines) + ")"
