"""
Built-in function registry for the interpreter.

Each builtin receives the evaluation context followed by its already
evaluated arguments and returns an expression. Arity is declared on the
BuiltinFunction and checked by the registry before the implementation runs,
so implementations may index their arguments directly.

Every EvalContext builds its own registry; there is no shared instance.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence
import base64
import binascii
import datetime
import getpass
import hashlib
import math
import os
import re
import secrets
import socket
import string
import time
import uuid

from ..ast import Expression, Atom, AtomKind, SList, NIL
from ..errors import (
    error_arity, error_index_out_of_range,
    error_invalid_argument, error_division_by_zero, error_system,
    warning_env_empty_fallback, warning_variable_rebound,
)
from .values import (
    string_val, int_val, bool_val, number_val, list_val,
    to_text, is_truthy, require_number, require_int, require_list,
)


# Sentinel for "no upper bound" on argument counts
VARIADIC = -1

CATEGORIES = [
    "environment", "string", "arithmetic", "comparison", "logical",
    "predicates", "conversion", "collections", "encoding", "time",
    "system", "path", "variables", "matching", "defaults",
]

RANDOM_ALPHABET = string.ascii_lowercase + string.digits

# %s, %v, %d and %%; any other character after % is rejected
FORMAT_DIRECTIVE = re.compile(r"%(.)", re.DOTALL)


@dataclass
class BuiltinFunction:
    """
    A built-in function with its implementation and arity.

    The implementation is called as implementation(ctx, *args).
    """
    name: str
    implementation: Callable[..., Expression]
    min_args: int = 0
    max_args: int = VARIADIC
    doc: str = ""
    category: str = "misc"

    @property
    def is_variadic(self) -> bool:
        return self.max_args == VARIADIC

    def arity_text(self) -> str:
        """Human-readable argument count, e.g. '1 to 2 arguments'."""
        def plural(n: int) -> str:
            return f"{n} argument" + ("" if n == 1 else "s")

        if self.is_variadic:
            if self.min_args == 0:
                return "any number of arguments"
            return "at least " + plural(self.min_args)
        if self.min_args == self.max_args:
            return "exactly " + plural(self.min_args)
        return f"{self.min_args} to {plural(self.max_args)}"

    def accepts(self, count: int) -> bool:
        if count < self.min_args:
            return False
        return self.is_variadic or count <= self.max_args


class BuiltinRegistry:
    """
    Registry of all built-in functions.

    Functions are registered by name and can be looked up for execution.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._aliases: Dict[str, str] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name (aliases included)."""
        return self._functions.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def names(self, category: Optional[str] = None) -> List[str]:
        """Sorted function names, optionally restricted to one category."""
        return sorted(
            name for name, func in self._functions.items()
            if category is None or func.category == category
        )

    def alias_of(self, name: str) -> Optional[str]:
        """The canonical name when `name` is an alias."""
        return self._aliases.get(name)

    def aliases_for(self, name: str) -> List[str]:
        return sorted(alias for alias, target in self._aliases.items() if target == name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def register_alias(self, alias: str, target: str) -> None:
        """Register another name for an existing function."""
        func = self._functions[target]
        self._functions[alias] = BuiltinFunction(
            alias, func.implementation, func.min_args, func.max_args,
            func.doc, func.category,
        )
        self._aliases[alias] = target

    def call(self, name: str, ctx, args: Sequence[Expression]) -> Expression:
        """
        Invoke a builtin after checking its arity.

        Raises KeyError for unknown names; the interpreter checks membership
        first and reports E401 itself.
        """
        func = self._functions[name]
        if not func.accepts(len(args)):
            raise error_arity(name, func.arity_text(), len(args))
        return func.implementation(ctx, *args)

    def _add(self, category: str, entries) -> None:
        for name, min_args, max_args, impl, doc in entries:
            self.register(BuiltinFunction(name, impl, min_args, max_args, doc, category))

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_environment_functions()
        self._register_string_functions()
        self._register_arithmetic_functions()
        self._register_comparison_functions()
        self._register_logical_functions()
        self._register_predicate_functions()
        self._register_conversion_functions()
        self._register_collection_functions()
        self._register_encoding_functions()
        self._register_time_functions()
        self._register_system_functions()
        self._register_path_functions()
        self._register_variable_functions()
        self._register_matching_functions()
        self._register_default_functions()

    # --- Environment ---

    def _register_environment_functions(self) -> None:
        """Register environment variable lookups."""

        def _lookup(ctx, name_expr: Expression, default: Optional[Expression]) -> Expression:
            name = to_text(name_expr)
            value = os.environ.get(name)
            if value:
                return string_val(value)
            if default is not None:
                if value == "":
                    ctx.add_warning(warning_env_empty_fallback(name))
                return default
            return string_val("")

        def _env(ctx, name: Expression, default: Optional[Expression] = None) -> Expression:
            return _lookup(ctx, name, default)

        def _env_or(ctx, name: Expression, default: Expression) -> Expression:
            return _lookup(ctx, name, default)

        def _env_exists(ctx, name: Expression) -> Expression:
            return bool_val(to_text(name) in os.environ)

        self._add("environment", [
            ("env", 1, 2, _env,
             "Value of an environment variable; the default when unset or empty, else \"\"."),
            ("env-or", 2, 2, _env_or,
             "Value of an environment variable, or the default when unset or empty."),
            ("env?", 1, 1, _env_exists,
             "True when the environment variable exists (even if empty)."),
        ])
        self.register_alias("getenv", "env")

    # --- Strings ---

    def _register_string_functions(self) -> None:
        """Register string manipulation functions."""

        def _concat(ctx, *args: Expression) -> Expression:
            return string_val("".join(to_text(a) for a in args))

        def _format(ctx, fmt: Expression, *args: Expression) -> Expression:
            template = to_text(fmt)
            verbs = FORMAT_DIRECTIVE.findall(template)
            for verb in verbs:
                if verb not in "svd%":
                    raise error_invalid_argument("format", f"unsupported directive '%{verb}'")
            needed = sum(1 for verb in verbs if verb != "%")
            if needed != len(args):
                raise error_arity("format", f"{needed} argument(s) after the format string",
                                  len(args))

            pending = iter(enumerate(args, start=2))

            def substitute(m) -> str:
                verb = m.group(1)
                if verb == "%":
                    return "%"
                position, arg = next(pending)
                if verb == "d":
                    return str(require_int("format", position, arg))
                return to_text(arg)

            return string_val(FORMAT_DIRECTIVE.sub(substitute, template))

        def _upper(ctx, s: Expression) -> Expression:
            return string_val(to_text(s).upper())

        def _lower(ctx, s: Expression) -> Expression:
            return string_val(to_text(s).lower())

        def _trim(ctx, s: Expression) -> Expression:
            return string_val(to_text(s).strip())

        def _replace(ctx, s: Expression, old: Expression, new: Expression) -> Expression:
            return string_val(to_text(s).replace(to_text(old), to_text(new)))

        def _substring(ctx, s: Expression, start: Expression,
                       end: Optional[Expression] = None) -> Expression:
            text = to_text(s)
            begin = require_int("substring", 2, start)
            stop = len(text) if end is None else require_int("substring", 3, end)
            if not 0 <= begin <= stop <= len(text):
                raise error_index_out_of_range(
                    "substring", f"start {begin}, end {stop}, length {len(text)}")
            return string_val(text[begin:stop])

        def _split(ctx, s: Expression, sep: Expression) -> Expression:
            text = to_text(s)
            separator = to_text(sep)
            parts = list(text) if separator == "" else text.split(separator)
            return list_val([string_val(p) for p in parts])

        def _join(ctx, items: Expression, sep: Expression) -> Expression:
            lst = require_list("join", 1, items)
            return string_val(to_text(sep).join(to_text(item) for item in lst))

        self._add("string", [
            ("concat", 0, VARIADIC, _concat, "Concatenate the string forms of all arguments."),
            ("format", 1, VARIADIC, _format,
             "Substitute %s, %v and %d directives with the arguments; %% is a literal %."),
            ("upper", 1, 1, _upper, "Uppercase a string."),
            ("lower", 1, 1, _lower, "Lowercase a string."),
            ("trim", 1, 1, _trim, "Strip leading and trailing whitespace."),
            ("replace", 3, 3, _replace, "Replace every occurrence of old with new."),
            ("substring", 2, 3, _substring, "Characters from start up to (not including) end."),
            ("split", 2, 2, _split,
             "Split a string on a separator; an empty separator splits into characters."),
            ("join", 2, 2, _join, "Join the string forms of a list's items with a separator."),
        ])
        self.register_alias("str", "concat")

    # --- Arithmetic ---

    def _register_arithmetic_functions(self) -> None:
        """Register arithmetic over ints (exact) and floats."""

        def _numbers(name: str, args: Sequence[Expression]):
            return [require_number(name, i + 1, a) for i, a in enumerate(args)]

        def _int_div(a: int, b: int) -> int:
            # Truncates toward zero
            q = abs(a) // abs(b)
            return -q if (a < 0) != (b < 0) else q

        def _add(ctx, *args: Expression) -> Expression:
            return number_val(sum(_numbers("+", args), 0))

        def _sub(ctx, *args: Expression) -> Expression:
            values = _numbers("-", args)
            if len(values) == 1:
                return number_val(-values[0])
            result = values[0]
            for v in values[1:]:
                result -= v
            return number_val(result)

        def _mul(ctx, *args: Expression) -> Expression:
            result = 1
            for v in _numbers("*", args):
                result *= v
            return number_val(result)

        def _div(ctx, *args: Expression) -> Expression:
            values = _numbers("/", args)
            result = values[0]
            for v in values[1:]:
                if v == 0:
                    raise error_division_by_zero("/")
                if isinstance(result, int) and isinstance(v, int):
                    result = _int_div(result, v)
                else:
                    result = result / v
            return number_val(result)

        def _mod(ctx, a: Expression, b: Expression) -> Expression:
            x, y = _numbers("mod", (a, b))
            if y == 0:
                raise error_division_by_zero("mod")
            if isinstance(x, int) and isinstance(y, int):
                return int_val(x - y * _int_div(x, y))
            return number_val(math.fmod(x, y))

        self._add("arithmetic", [
            ("+", 0, VARIADIC, _add, "Sum of the arguments; (+) is 0."),
            ("-", 1, VARIADIC, _sub, "Left-fold subtraction; a single argument is negated."),
            ("*", 0, VARIADIC, _mul, "Product of the arguments; (*) is 1."),
            ("/", 1, VARIADIC, _div,
             "Left-fold division; integer operands truncate toward zero."),
            ("mod", 2, 2, _mod, "Remainder with the sign of the dividend."),
        ])

    # --- Comparison ---

    def _register_comparison_functions(self) -> None:
        """Register equality and numeric ordering."""

        def _eq(ctx, a: Expression, b: Expression) -> Expression:
            return bool_val(to_text(a) == to_text(b))

        def _neq(ctx, a: Expression, b: Expression) -> Expression:
            return bool_val(to_text(a) != to_text(b))

        def _ordering(name: str, op: Callable[[float, float], bool]):
            def compare(ctx, a: Expression, b: Expression) -> Expression:
                return bool_val(op(require_number(name, 1, a), require_number(name, 2, b)))
            return compare

        self._add("comparison", [
            ("eq", 2, 2, _eq, "True when the string forms of both arguments are equal."),
            ("!=", 2, 2, _neq, "True when the string forms of the arguments differ."),
            ("<", 2, 2, _ordering("<", lambda x, y: x < y), "Numeric less-than."),
            (">", 2, 2, _ordering(">", lambda x, y: x > y), "Numeric greater-than."),
            ("<=", 2, 2, _ordering("<=", lambda x, y: x <= y), "Numeric less-or-equal."),
            (">=", 2, 2, _ordering(">=", lambda x, y: x >= y), "Numeric greater-or-equal."),
        ])
        self.register_alias("=", "eq")

    # --- Logical ---

    def _register_logical_functions(self) -> None:
        """Register `not`; `and` and `or` are special forms."""

        def _not(ctx, x: Expression) -> Expression:
            return bool_val(not is_truthy(x))

        self._add("logical", [
            ("not", 1, 1, _not, "Logical negation of the argument's truthiness."),
        ])

    # --- Type predicates ---

    def _register_predicate_functions(self) -> None:
        """Register type predicates."""

        def _kind_is(*kinds: AtomKind):
            def predicate(ctx, x: Expression) -> Expression:
                return bool_val(isinstance(x, Atom) and x.kind in kinds)
            return predicate

        def _is_list(ctx, x: Expression) -> Expression:
            return bool_val(isinstance(x, SList))

        def _is_empty(ctx, x: Expression) -> Expression:
            return bool_val(isinstance(x, Atom) and x.kind == AtomKind.STRING and x.text == "")

        self._add("predicates", [
            ("string?", 1, 1, _kind_is(AtomKind.STRING), "True for string atoms."),
            ("number?", 1, 1, _kind_is(AtomKind.INT, AtomKind.FLOAT), "True for numeric atoms."),
            ("bool?", 1, 1, _kind_is(AtomKind.BOOL), "True for true and false."),
            ("list?", 1, 1, _is_list, "True for lists."),
            ("nil?", 1, 1, _kind_is(AtomKind.NIL), "True for nil."),
            ("empty?", 1, 1, _is_empty, "True only for the empty string."),
        ])

    # --- Conversion ---

    def _register_conversion_functions(self) -> None:
        """Register explicit conversions (total, never raise)."""

        def _to_string(ctx, x: Expression) -> Expression:
            return string_val(to_text(x))

        def _to_int(ctx, x: Expression) -> Expression:
            if isinstance(x, Atom):
                return int_val(x.as_int())
            return int_val(0)

        def _to_bool(ctx, x: Expression) -> Expression:
            return bool_val(is_truthy(x))

        self._add("conversion", [
            ("to-string", 1, 1, _to_string, "String form of a value."),
            ("to-int", 1, 1, _to_int, "Integer view of a value; unparsable text is 0."),
            ("to-bool", 1, 1, _to_bool, "Truthiness of a value as true or false."),
        ])

    # --- Collections ---

    def _register_collection_functions(self) -> None:
        """Register list construction and access."""

        def _list(ctx, *args: Expression) -> Expression:
            return list_val(args)

        def _first(ctx, lst: Expression) -> Expression:
            items = require_list("first", 1, lst)
            if len(items) == 0:
                raise error_index_out_of_range("first", "list is empty")
            return items[0]

        def _rest(ctx, lst: Expression) -> Expression:
            return list_val(require_list("rest", 1, lst).tail())

        def _nth(ctx, lst: Expression, index: Expression) -> Expression:
            items = require_list("nth", 1, lst)
            i = require_int("nth", 2, index)
            if not 0 <= i < len(items):
                raise error_index_out_of_range("nth", f"index {i}, length {len(items)}")
            return items[i]

        def _len(ctx, x: Expression) -> Expression:
            if isinstance(x, SList):
                return int_val(len(x))
            return int_val(len(x.as_string()))

        def _append(ctx, *args: Expression) -> Expression:
            items: List[Expression] = []
            for arg in args:
                if isinstance(arg, SList):
                    items.extend(arg.items)
                else:
                    items.append(arg)
            return list_val(items)

        def _range(ctx, *args: Expression) -> Expression:
            bounds = [require_int("range", i + 1, a) for i, a in enumerate(args)]
            if len(bounds) == 1:
                start, end, step = 0, bounds[0], 1
            else:
                start, end = bounds[0], bounds[1]
                step = bounds[2] if len(bounds) == 3 else 1
            if step == 0:
                raise error_invalid_argument("range", "step cannot be zero")
            return list_val([int_val(i) for i in range(start, end, step)])

        self._add("collections", [
            ("list", 0, VARIADIC, _list, "A list of the arguments."),
            ("first", 1, 1, _first, "First item of a non-empty list."),
            ("rest", 1, 1, _rest, "All items after the first."),
            ("nth", 2, 2, _nth, "Item at a zero-based index."),
            ("len", 1, 1, _len, "Item count of a list or character count of an atom."),
            ("append", 1, VARIADIC, _append,
             "Concatenate lists; non-list arguments are added as single items."),
            ("range", 1, 3, _range,
             "Integers from start (default 0) up to end, stepping by step (default 1)."),
        ])

    # --- Encoding and hashing ---

    def _register_encoding_functions(self) -> None:
        """Register encodings, digests and random identifiers."""

        def _b64encode(ctx, s: Expression) -> Expression:
            return string_val(base64.b64encode(to_text(s).encode("utf-8")).decode("ascii"))

        def _b64decode(ctx, s: Expression) -> Expression:
            try:
                raw = base64.b64decode(to_text(s).encode("ascii"), validate=True)
                return string_val(raw.decode("utf-8"))
            except (binascii.Error, UnicodeError) as e:
                raise error_invalid_argument("base64-decode", f"invalid input ({e})") from e

        def _digest(algorithm: str):
            def digest(ctx, s: Expression) -> Expression:
                h = hashlib.new(algorithm, to_text(s).encode("utf-8"))
                return string_val(h.hexdigest())
            return digest

        def _uuid(ctx) -> Expression:
            return string_val(str(uuid.uuid4()))

        def _random_string(ctx, length: Optional[Expression] = None) -> Expression:
            n = 16 if length is None else require_int("random-string", 1, length)
            if n <= 0:
                n = 16
            return string_val("".join(secrets.choice(RANDOM_ALPHABET) for _ in range(n)))

        self._add("encoding", [
            ("base64-encode", 1, 1, _b64encode, "Standard base64 of the UTF-8 bytes."),
            ("base64-decode", 1, 1, _b64decode, "Decode standard base64 into a UTF-8 string."),
            ("sha256", 1, 1, _digest("sha256"), "Lowercase hex SHA-256 digest."),
            ("md5", 1, 1, _digest("md5"), "Lowercase hex MD5 digest."),
            ("uuid", 0, 0, _uuid, "A random version 4 UUID."),
            ("random-string", 0, 1, _random_string,
             "Random lowercase alphanumeric string (default length 16)."),
        ])

    # --- Time ---

    def _register_time_functions(self) -> None:
        """Register clock readings."""

        def _now(ctx) -> Expression:
            now = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
            return string_val(now.strftime("%Y-%m-%dT%H:%M:%SZ"))

        def _timestamp(ctx) -> Expression:
            return int_val(int(time.time()))

        def _local(default_format: str):
            def formatted(ctx, fmt: Optional[Expression] = None) -> Expression:
                pattern = default_format if fmt is None else to_text(fmt)
                return string_val(datetime.datetime.now().strftime(pattern))
            return formatted

        self._add("time", [
            ("now", 0, 0, _now, "Current UTC time in RFC 3339 format."),
            ("timestamp", 0, 0, _timestamp, "Seconds since the Unix epoch."),
            ("date", 0, 1, _local("%Y-%m-%d"), "Local date, strftime format (default %Y-%m-%d)."),
            ("time", 0, 1, _local("%H:%M:%S"), "Local time, strftime format (default %H:%M:%S)."),
        ])

    # --- System ---

    def _register_system_functions(self) -> None:
        """Register host and user lookups."""

        def _hostname(ctx) -> Expression:
            try:
                return string_val(socket.gethostname())
            except OSError as e:
                raise error_system("hostname", str(e)) from e

        def _user(ctx) -> Expression:
            try:
                return string_val(getpass.getuser())
            except (OSError, KeyError) as e:
                raise error_system("user", str(e)) from e

        def _home(ctx) -> Expression:
            home = os.path.expanduser("~")
            if home == "~":
                raise error_system("home", "cannot determine home directory")
            return string_val(home)

        def _cwd(ctx) -> Expression:
            try:
                return string_val(os.getcwd())
            except OSError as e:
                raise error_system("cwd", str(e)) from e

        self._add("system", [
            ("hostname", 0, 0, _hostname, "Name of this host."),
            ("user", 0, 0, _user, "Login name of the current user."),
            ("home", 0, 0, _home, "Home directory of the current user."),
            ("cwd", 0, 0, _cwd, "Current working directory of the process."),
        ])

    # --- Paths and files ---

    def _register_path_functions(self) -> None:
        """Register path manipulation and file reading."""

        def _resolve(ctx, path: str) -> str:
            path = os.path.expanduser(path)
            if not os.path.isabs(path):
                path = os.path.join(ctx.work_dir, path)
            return path

        def _dirname(ctx, p: Expression) -> Expression:
            return string_val(os.path.dirname(to_text(p)) or ".")

        def _basename(ctx, p: Expression) -> Expression:
            return string_val(os.path.basename(to_text(p)))

        def _expand_path(ctx, p: Expression) -> Expression:
            return string_val(os.path.expandvars(os.path.expanduser(to_text(p))))

        def _read_file(ctx, p: Expression) -> Expression:
            path = _resolve(ctx, to_text(p))
            try:
                with open(path, encoding="utf-8") as f:
                    return string_val(f.read().strip())
            except (OSError, UnicodeError) as e:
                raise error_system("read-file", f"{path}: {e}") from e

        def _file_exists(ctx, p: Expression) -> Expression:
            return bool_val(os.path.exists(_resolve(ctx, to_text(p))))

        self._add("path", [
            ("dirname", 1, 1, _dirname, "Directory part of a path."),
            ("basename", 1, 1, _basename, "Final component of a path."),
            ("expand-path", 1, 1, _expand_path, "Expand ~ and $VARS in a path."),
            ("read-file", 1, 1, _read_file,
             "Contents of a file (stripped); relative paths resolve against the working dir."),
            ("file-exists?", 1, 1, _file_exists, "True when the path exists."),
        ])

    # --- Variables ---

    def _register_variable_functions(self) -> None:
        """Register the variable store accessors."""

        def _set(ctx, name: Expression, value: Expression) -> Expression:
            key = to_text(name)
            if key in ctx.current_scope.variables:
                ctx.add_warning(warning_variable_rebound(key))
            ctx.set_variable(key, value)
            return value

        def _var(ctx, name: Expression) -> Expression:
            value = ctx.get_variable(to_text(name))
            return NIL if value is None else value

        self._add("variables", [
            ("set", 2, 2, _set, "Bind a variable in the innermost scope and return the value."),
            ("var", 1, 1, _var, "Value of a variable, or nil when unbound."),
        ])

    # --- Regular expressions ---

    def _register_matching_functions(self) -> None:
        """Register regular expression matching."""

        def _compile(name: str, pattern: Expression):
            try:
                return re.compile(to_text(pattern))
            except re.error as e:
                raise error_invalid_argument(name, f"invalid pattern ({e})") from e

        def _match(ctx, pattern: Expression, s: Expression) -> Expression:
            m = _compile("match", pattern).search(to_text(s))
            if m is None:
                return list_val([])
            return list_val([string_val(g or "") for g in (m.group(0),) + m.groups()])

        def _matches(ctx, pattern: Expression, s: Expression) -> Expression:
            return bool_val(_compile("match?", pattern).search(to_text(s)) is not None)

        self._add("matching", [
            ("match", 2, 2, _match,
             "List of the full match and its groups; empty list when there is no match."),
            ("match?", 2, 2, _matches, "True when the pattern matches anywhere in the string."),
        ])

    # --- Defaults ---

    def _register_default_functions(self) -> None:
        """Register default-value selection."""

        def _default(ctx, value: Expression, fallback: Expression) -> Expression:
            if isinstance(value, Atom) and (value.is_nil() or value.text == ""):
                return fallback
            return value

        self._add("defaults", [
            ("default", 2, 2, _default, "The value, or the fallback when it is nil or empty."),
        ])
