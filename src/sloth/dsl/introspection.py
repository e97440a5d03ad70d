"""
Introspection API for the configuration language.

Provides programmatic access to the builtin functions and special forms,
for editor integrations and for the `functions` CLI command.

Usage:
    from sloth.dsl.introspection import (
        get_api_reference,
        get_function_info,
        list_functions,
        describe_function,
    )

    info = get_function_info("env")
    print(info["signature"])  # "(env name [default])"

    for name in list_functions("string"):
        print(name)
"""

from typing import Any, Dict, List, Optional
import json

from .runtime.builtins import BuiltinRegistry, BuiltinFunction, CATEGORIES
from .runtime.interpreter import SPECIAL_FORMS


API_VERSION = "1.0.0"

FUNCTION_EXAMPLES: Dict[str, str] = {
    "env": '(env "REGION" "nyc3")',
    "env-or": '(env-or "NODE_COUNT" 3)',
    "env?": '(env? "CI")',
    "concat": '(concat "k8s-" (env "ENV") "-cluster")',
    "format": '(format "%s-%d" "node" 3)',
    "split": '(split "a,b,c" ",")',
    "join": '(join (list "a" "b") "-")',
    "substring": '(substring "production" 0 4)',
    "+": "(+ 1 2 3)",
    "mod": "(mod 10 3)",
    "eq": '(eq (env "ENV") "prod")',
    "range": "(range 1 10 2)",
    "nth": '(nth (list "a" "b") 1)',
    "append": '(append (list 1 2) 3)',
    "sha256": '(sha256 "hello")',
    "base64-encode": '(base64-encode "hello")',
    "random-string": "(random-string 24)",
    "date": '(date "%Y%m%d")',
    "read-file": '(read-file "~/.ssh/id_ed25519.pub")',
    "set": '(set "region" "fra1")',
    "var": '(var "region")',
    "match": '(match "v(\\\\d+)\\\\.(\\\\d+)" "v1.28")',
    "default": '(default (env "TEAM") "platform")',
}

SPECIAL_FORM_EXAMPLES: Dict[str, str] = {
    "if": '(if (eq (env "ENV") "prod") 5 1)',
    "when": '(when (env? "DEBUG") "verbose")',
    "unless": '(unless (env? "CI") "interactive")',
    "cond": '(cond ((eq (env "ENV") "prod") "large") (true "small"))',
    "and": '(and (env? "A") (env? "B"))',
    "or": '(or (env "TOKEN") "unset")',
    "let": '(let ((n 3)) (* n 2))',
}


def _format_signature(func: BuiltinFunction) -> str:
    """Render the argument count as an S-expression call shape."""
    required = [f"arg{i}" for i in range(func.min_args)]
    if func.is_variadic:
        optional = ["args..."]
    else:
        optional = [f"[arg{i}]" for i in range(func.min_args, func.max_args)]
    return "(" + " ".join([func.name] + required + optional) + ")"


_SIGNATURES: Dict[str, str] = {
    "env": "(env name [default])",
    "getenv": "(getenv name [default])",
    "env-or": "(env-or name default)",
    "env?": "(env? name)",
    "format": "(format fmt args...)",
    "replace": "(replace s old new)",
    "substring": "(substring s start [end])",
    "split": "(split s sep)",
    "join": "(join list sep)",
    "mod": "(mod a b)",
    "nth": "(nth list index)",
    "range": "(range [start] end [step])",
    "random-string": "(random-string [length])",
    "date": "(date [format])",
    "time": "(time [format])",
    "set": "(set name value)",
    "var": "(var name)",
    "match": "(match pattern s)",
    "match?": "(match? pattern s)",
    "default": "(default value fallback)",
}


def _function_to_dict(registry: BuiltinRegistry, func: BuiltinFunction) -> Dict[str, Any]:
    canonical = registry.alias_of(func.name) or func.name
    return {
        "name": func.name,
        "category": func.category,
        "signature": _SIGNATURES.get(func.name) or _format_signature(func),
        "min_args": func.min_args,
        "max_args": None if func.is_variadic else func.max_args,
        "is_variadic": func.is_variadic,
        "alias_of": registry.alias_of(func.name),
        "aliases": registry.aliases_for(canonical) if canonical == func.name else [],
        "description": func.doc,
        "example": FUNCTION_EXAMPLES.get(func.name, ""),
    }


def get_api_reference() -> Dict[str, Any]:
    """
    Get the complete API reference as a dictionary.

    Returns a dictionary with:
    - functions: All builtin functions with signatures and descriptions
    - special_forms: Forms whose arguments are not evaluated eagerly
    - categories: Category names in display order
    """
    registry = BuiltinRegistry()
    functions = {
        name: _function_to_dict(registry, registry.get_function(name))
        for name in registry.names()
    }
    special_forms = {
        name: {"description": desc, "example": SPECIAL_FORM_EXAMPLES.get(name, "")}
        for name, desc in SPECIAL_FORMS.items()
    }
    return {
        "version": API_VERSION,
        "categories": list(CATEGORIES),
        "functions": functions,
        "special_forms": special_forms,
    }


def list_functions(category: Optional[str] = None) -> List[str]:
    """
    List all builtin function names.

    Args:
        category: Optional filter by category (e.g., "string", "arithmetic")

    Returns:
        Sorted list of function names
    """
    return BuiltinRegistry().names(category)


def get_function_info(name: str) -> Optional[Dict[str, Any]]:
    """
    Get detailed information about a builtin or special form.

    Returns:
        Dictionary with signature, description, example, etc.
        Returns None if the name is unknown.
    """
    if name in SPECIAL_FORMS:
        return {
            "name": name,
            "category": "special form",
            "signature": SPECIAL_FORMS[name].split(" - ")[0],
            "description": SPECIAL_FORMS[name].split(" - ", 1)[1],
            "example": SPECIAL_FORM_EXAMPLES.get(name, ""),
            "is_variadic": True,
        }

    registry = BuiltinRegistry()
    func = registry.get_function(name)
    if func is None:
        return None
    return _function_to_dict(registry, func)


def describe_function(name: str) -> str:
    """
    Get a human-readable description of a function.

    Returns:
        Formatted description string
    """
    info = get_function_info(name)
    if info is None:
        return f"Unknown function: {name}"

    lines = [
        f"Function: {name}",
        f"Category: {info['category']}",
        f"Signature: {info['signature']}",
        f"Description: {info['description'] or 'No description available'}",
    ]

    if info.get("alias_of"):
        lines.append(f"Alias of: {info['alias_of']}")
    if info.get("aliases"):
        lines.append(f"Aliases: {', '.join(info['aliases'])}")
    if info.get("example"):
        lines.append(f"Example: {info['example']}")

    return "\n".join(lines)


def get_api_as_json() -> str:
    """
    Get the complete API reference as a JSON string.

    Useful for tools that prefer to parse JSON directly.
    """
    return json.dumps(get_api_reference(), indent=2)
