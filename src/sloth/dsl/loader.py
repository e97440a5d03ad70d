"""
Loading configuration files written in the S-expression language.

A configuration file is read, `${VAR}` placeholders are replaced from the
environment, every top-level form is evaluated in one context, and the last
value is returned. Evaluation is non-strict by default so that data sections
such as `(cluster (metadata (name (env "NAME"))))` resolve to a data tree
with every embedded call replaced by its value.

The evaluated tree can then be turned into plain Python data for export:

    result = load_file("cluster.lisp")
    data = to_mapping(result)   # {"cluster": {"metadata": {"name": ...}}}
"""

import os
import re
from typing import Any, Dict, Optional, Sequence

from .ast import Expression, Atom, AtomKind, SList
from .parser import parse_all
from .runtime.context import EvalContext, create_context
from .runtime.values import unwrap_value


ENV_PLACEHOLDER = re.compile(r"\$\{([^}]*)\}")


def expand_env_vars(text: str) -> str:
    """Replace each ${NAME} with the environment value (empty when unset)."""
    return ENV_PLACEHOLDER.sub(lambda m: os.environ.get(m.group(1), ""), text)


def expand_home(path: str) -> str:
    """Expand a leading ~ to the user's home directory."""
    if path.startswith("~"):
        return os.path.expanduser(path)
    return path


def load_source(
    text: str,
    *,
    filename: Optional[str] = None,
    strict: bool = False,
    context: Optional[EvalContext] = None,
    work_dir: str = ".",
) -> Expression:
    """
    Expand, parse and evaluate configuration source.

    Args:
        text: The configuration source
        filename: Optional filename for error messages
        strict: Reject lists whose head is not a known function
        context: Evaluate in this context instead of a fresh one
            (its own strict and work_dir settings then apply)
        work_dir: Base directory for relative paths when a context is created

    Returns:
        The value of the last top-level form (nil when there are none)

    Raises:
        DslError: On lexical, syntax or evaluation errors
    """
    source = expand_env_vars(text)
    forms = parse_all(source, filename)
    if context is None:
        context = create_context(work_dir=work_dir, strict=strict, source=source)
    else:
        context.source_lines = source.split('\n')
    return context.eval_all(forms)


def load_file(
    path: str,
    *,
    strict: bool = False,
    context: Optional[EvalContext] = None,
) -> Expression:
    """
    Load a configuration file.

    A leading ~ is expanded and the file's directory becomes the base for
    relative paths used by read-file and file-exists?.

    Raises:
        OSError: If the file cannot be read
        DslError: On lexical, syntax or evaluation errors
    """
    path = expand_home(path)
    with open(path, encoding="utf-8") as f:
        text = f.read()
    work_dir = os.path.dirname(os.path.abspath(path))
    if context is not None:
        context.work_dir = work_dir
    return load_source(text, filename=path, strict=strict, context=context, work_dir=work_dir)


# --- Conversion to Python data ---

def to_python(expr: Expression) -> Any:
    """
    Convert an evaluated tree into plain Python data.

    Atoms map by kind (symbols become strings, nil becomes None) and lists
    become Python lists.
    """
    return unwrap_value(expr)


def _is_entry(expr: Expression) -> bool:
    """A `(key value...)` child: a non-empty list headed by a symbol."""
    return (isinstance(expr, SList) and len(expr) > 0
            and isinstance(expr[0], Atom) and expr[0].kind == AtomKind.SYMBOL)


def _convert(expr: Expression) -> Any:
    if isinstance(expr, SList):
        if len(expr) > 0 and all(_is_entry(item) for item in expr):
            return _entries_to_dict(expr.items)
        return [_convert(item) for item in expr]
    return to_python(expr)


def _entries_to_dict(entries: Sequence[SList]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    repeated = set()
    for entry in entries:
        key = entry[0].text
        value = _convert_body(entry.tail())
        if key not in result:
            result[key] = value
        elif key in repeated:
            result[key].append(value)
        else:
            # Repeated keys collect their values in order
            result[key] = [result[key], value]
            repeated.add(key)
    return result


def _convert_body(items: Sequence[Expression]) -> Any:
    if not items:
        return None
    if all(_is_entry(item) for item in items):
        return _entries_to_dict(items)
    if len(items) == 1:
        return _convert(items[0])
    return [_convert(item) for item in items]


def to_mapping(expr: Expression) -> Dict[str, Any]:
    """
    Convert a `(section (key value) ...)` tree into nested dictionaries.

    A child with one value maps to that value, a child with several values
    maps to a list, and a child whose values are themselves `(key value)`
    lists maps to a nested dictionary. Keys that repeat collect their values
    into a list.

    Raises:
        ValueError: If expr is not a list headed by a symbol
    """
    if not _is_entry(expr):
        raise ValueError(f"expected a (name ...) section, got {expr}")
    return _entries_to_dict([expr])


def to_data(expr: Expression) -> Any:
    """to_mapping for section lists, to_python for anything else."""
    if _is_entry(expr):
        return to_mapping(expr)
    return to_python(expr)
