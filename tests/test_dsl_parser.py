"""
Unit tests for the configuration language parser and expression model.
"""

import pytest
from sloth.dsl import (
    tokenize, parse, parse_all, Parser, MAX_DEPTH,
    Atom, AtomKind, SList, NIL, to_source,
    ParserError, LexerError,
)
from sloth.dsl.ast import format_float


class TestParserBasics:
    """Test basic parsing."""

    def test_single_atom(self):
        """A bare atom parses to an Atom."""
        expr = parse("hello")
        assert isinstance(expr, Atom)
        assert expr.kind == AtomKind.SYMBOL
        assert expr.text == "hello"

    def test_simple_list(self):
        """A list parses to an SList of atoms."""
        expr = parse('(env "HOME")')
        assert isinstance(expr, SList)
        assert len(expr) == 2
        assert expr[0] == Atom(AtomKind.SYMBOL, "env")
        assert expr[1] == Atom(AtomKind.STRING, "HOME")

    def test_nested_list(self):
        """Nested lists keep their structure."""
        expr = parse("(a (b (c)) d)")
        assert str(expr) == "(a (b (c)) d)"
        assert isinstance(expr[1], SList)
        assert isinstance(expr[1][1], SList)

    def test_empty_list(self):
        """() is an empty list."""
        expr = parse("()")
        assert isinstance(expr, SList)
        assert len(expr) == 0

    def test_literal_kinds(self):
        """Each literal token becomes an atom of the matching kind."""
        expr = parse('("s" 1 2.5 true false nil sym)')
        kinds = [item.kind for item in expr]
        assert kinds == [
            AtomKind.STRING, AtomKind.INT, AtomKind.FLOAT,
            AtomKind.BOOL, AtomKind.BOOL, AtomKind.NIL, AtomKind.SYMBOL,
        ]

    def test_canonical_text(self):
        """Atoms carry a single canonical text form."""
        expr = parse("(42 2.5 true nil)")
        assert [item.text for item in expr] == ["42", "2.5", "true", ""]

    def test_parse_all_forms(self):
        """parse_all returns every top-level form in order."""
        forms = parse_all('(set "a" 1)\n(set "b" 2)\n(var "a")')
        assert len(forms) == 3
        assert forms[2][0].text == "var"

    def test_parse_all_empty(self):
        """Blank or comment-only input has no forms."""
        assert parse_all("") == []
        assert parse_all("; only a comment\n") == []

    def test_comments_between_forms(self):
        """Comments are ignored wherever they appear."""
        forms = parse_all("; header\n(a) ; trailing\n; between\n(b)")
        assert [str(f) for f in forms] == ["(a)", "(b)"]

    def test_parser_class(self):
        """Parser can be driven directly from tokens."""
        parser = Parser(tokenize("(a) (b)"))
        forms = parser.parse_program()
        assert len(forms) == 2

    def test_spans_recorded(self):
        """Lists span from the opening to the closing paren."""
        expr = parse("(a\n  b)")
        assert expr.span.start.line == 1
        assert expr.span.start.column == 1
        assert expr.span.end.line == 2
        assert expr[1].span.start.line == 2

    def test_spans_ignored_in_equality(self):
        """Structurally equal trees compare equal regardless of position."""
        assert parse("(a 1)") == parse("   (a\n 1)")


class TestParserErrors:
    """Test syntax errors."""

    def test_unmatched_close_paren(self):
        """A ')' without '(' is an error."""
        with pytest.raises(ParserError) as exc_info:
            parse_all("(a))")
        assert exc_info.value.code == "E101"

    def test_leading_close_paren(self):
        """A ')' at the start is an error."""
        with pytest.raises(ParserError) as exc_info:
            parse(")")
        assert exc_info.value.code == "E101"

    def test_unclosed_list(self):
        """End of input inside a list is an error."""
        with pytest.raises(ParserError) as exc_info:
            parse('(cluster (name "x")')
        assert exc_info.value.code == "E102"
        assert "never closed" in str(exc_info.value)

    def test_empty_input_for_parse(self):
        """parse needs at least one form."""
        with pytest.raises(ParserError) as exc_info:
            parse("   ")
        assert exc_info.value.code == "E102"

    def test_multiple_forms_for_parse(self):
        """parse rejects more than one top-level form."""
        with pytest.raises(ParserError) as exc_info:
            parse("(a) (b)")
        assert exc_info.value.code == "E104"
        assert exc_info.value.diagnostic.span.start.column == 5

    def test_nesting_limit(self):
        """Nesting beyond MAX_DEPTH is rejected."""
        source = "(" * (MAX_DEPTH + 1) + ")" * (MAX_DEPTH + 1)
        with pytest.raises(ParserError) as exc_info:
            parse(source)
        assert exc_info.value.code == "E103"

    def test_nesting_at_limit(self):
        """Nesting exactly MAX_DEPTH deep is accepted."""
        source = "(" * MAX_DEPTH + ")" * MAX_DEPTH
        expr = parse(source)
        assert isinstance(expr, SList)

    def test_lexer_error_propagates(self):
        """Lexical errors surface through parse."""
        with pytest.raises(LexerError):
            parse('(concat "a)')

    def test_error_format_has_caret(self):
        """Formatted diagnostics show the source line and a caret."""
        with pytest.raises(ParserError) as exc_info:
            parse_all("(a)\n(b))")
        text = str(exc_info.value)
        assert "(b))" in text
        assert "^" in text

    def test_error_to_json(self):
        """Diagnostics serialize for tooling."""
        with pytest.raises(ParserError) as exc_info:
            parse_all(")")
        data = exc_info.value.diagnostic.to_json()
        assert data["code"] == "E101"
        assert data["severity"] == "error"
        assert data["range"]["start"] == {"line": 1, "column": 1, "offset": 0}


class TestAtoms:
    """Test atom coercions and predicates."""

    def test_as_int(self):
        """Integer view of atoms."""
        assert Atom(AtomKind.INT, "42").as_int() == 42
        assert Atom(AtomKind.FLOAT, "2.9").as_int() == 2
        assert Atom(AtomKind.FLOAT, "-2.9").as_int() == -2
        assert Atom(AtomKind.STRING, "17").as_int() == 17
        assert Atom(AtomKind.STRING, "abc").as_int() == 0
        assert Atom(AtomKind.BOOL, "true").as_int() == 0

    def test_as_float(self):
        """Float view of atoms."""
        assert Atom(AtomKind.INT, "3").as_float() == 3.0
        assert Atom(AtomKind.STRING, "x").as_float() == 0.0

    @pytest.mark.parametrize("text", ["nan", "inf", "-Infinity", "1_000", "1e5", "0x10"])
    def test_numeric_views_reject_non_literal_text(self, text):
        """Only text the lexer would read as a number has a numeric view."""
        atom = Atom(AtomKind.STRING, text)
        assert atom.as_int() == 0
        assert atom.as_float() == 0.0

    def test_float_text_is_positional(self):
        """Floats are written without exponents so the text parses back."""
        assert format_float(1e16) == "10000000000000000.0"
        assert format_float(1e-05) == "0.00001"
        assert format_float(2.5) == "2.5"
        assert format_float(-3.0) == "-3.0"
        assert parse("0.00001").text == "0.00001"
        big = parse(format_float(1e22))
        assert big.kind == AtomKind.FLOAT
        assert big.as_float() == 1e22

    @pytest.mark.parametrize("atom,expected", [
        (Atom(AtomKind.BOOL, "true"), True),
        (Atom(AtomKind.BOOL, "false"), False),
        (Atom(AtomKind.STRING, "true"), True),
        (Atom(AtomKind.STRING, "t"), True),
        (Atom(AtomKind.STRING, "yes"), True),
        (Atom(AtomKind.STRING, "no"), False),
        (Atom(AtomKind.STRING, ""), False),
        (Atom(AtomKind.SYMBOL, "t"), True),
        (Atom(AtomKind.INT, "0"), False),
        (Atom(AtomKind.INT, "5"), True),
        (Atom(AtomKind.FLOAT, "0.0"), False),
        (NIL, False),
    ])
    def test_as_bool(self, atom, expected):
        """Boolean view of atoms."""
        assert atom.as_bool() is expected

    def test_predicates(self):
        """Kind predicates."""
        assert Atom(AtomKind.STRING, "x").is_string()
        assert Atom(AtomKind.SYMBOL, "x").is_symbol()
        assert Atom(AtomKind.INT, "1").is_number()
        assert Atom(AtomKind.FLOAT, "1.5").is_number()
        assert Atom(AtomKind.BOOL, "true").is_bool()
        assert NIL.is_nil()
        assert not Atom(AtomKind.STRING, "1").is_number()


class TestListAccessors:
    """Test property access on (key value) children."""

    @pytest.fixture
    def section(self):
        return parse('''
            (metadata
              (name "prod-cluster")
              (nodes 3)
              (ha true)
              (tags "web" "api")
              (single-tag "db")
              (labels (team "platform") (tier "gold"))
              (vpc (cidr "10.0.0.0/16")))
        ''')

    def test_head_and_tail(self, section):
        """head is the leading atom, tail the rest."""
        assert section.head().text == "metadata"
        assert len(section.tail()) == 7

    def test_get_string(self, section):
        assert section.get_string("name") == "prod-cluster"
        assert section.get_string("missing") == ""

    def test_get_int(self, section):
        assert section.get_int("nodes") == 3
        assert section.get_int("missing") == 0

    def test_get_bool(self, section):
        assert section.get_bool("ha") is True
        assert section.get_bool("missing") is False

    def test_get_multiple_values(self, section):
        """A child with several values returns them as a list."""
        value = section.get("tags")
        assert isinstance(value, SList)
        assert [item.text for item in value] == ["web", "api"]

    def test_get_string_list(self, section):
        assert section.get_string_list("tags") == ["web", "api"]
        assert section.get_string_list("single-tag") == ["db"]
        assert section.get_string_list("missing") == []

    def test_get_map(self, section):
        assert section.get_map("labels") == {"team": "platform", "tier": "gold"}

    def test_get_list(self, section):
        vpc = section.get_list("vpc")
        assert vpc is not None
        assert vpc.get_string("cidr") == "10.0.0.0/16"
        assert section.get_list("name") is None


class TestToSource:
    """Test rendering expressions back to source."""

    def test_quotes_strings(self):
        """Strings are quoted and escaped."""
        expr = parse('(a "b \\"c\\"" 1 nil)')
        assert to_source(expr) == '(a "b \\"c\\"" 1 nil)'

    def test_reparses_to_same_tree(self):
        """Rendered source parses back to an equal tree."""
        expr = parse('(cluster (name "x\\ny") (count 3) (ratio 0.5) (on true))')
        assert parse(to_source(expr)) == expr
        assert parse(to_source(expr, indent=2)) == expr

    def test_indented_layout(self):
        """With an indent, nested lists go on their own lines."""
        text = to_source(parse('(a (b 1) (c 2))'), indent=2)
        assert text == '(a\n  (b 1)\n  (c 2))'
