"""
Runtime - Tree-walking evaluator for configuration expressions.

This module provides:
- Interpreter: Evaluates expressions, including the special forms
- EvalContext: Builtin registry, variable scopes and warnings for one evaluation
- BuiltinRegistry: Built-in function implementations
- Value helpers: constructors, truthiness and strict coercions
"""

from .values import (
    string_val,
    int_val,
    float_val,
    number_val,
    bool_val,
    symbol_val,
    list_val,
    wrap_value,
    unwrap_value,
    to_text,
    is_truthy,
    require_number,
    require_int,
    require_list,
)

from .builtins import (
    VARIADIC,
    CATEGORIES,
    BuiltinFunction,
    BuiltinRegistry,
)

from .context import (
    Scope,
    EvalContext,
    create_context,
    new_eval_context,
)

from .interpreter import (
    Interpreter,
    SPECIAL_FORMS,
    MAX_EVAL_DEPTH,
    eval_all,
)

__all__ = [
    # Values
    "string_val",
    "int_val",
    "float_val",
    "number_val",
    "bool_val",
    "symbol_val",
    "list_val",
    "wrap_value",
    "unwrap_value",
    "to_text",
    "is_truthy",
    "require_number",
    "require_int",
    "require_list",
    # Builtins
    "VARIADIC",
    "CATEGORIES",
    "BuiltinFunction",
    "BuiltinRegistry",
    # Context
    "Scope",
    "EvalContext",
    "create_context",
    "new_eval_context",
    # Interpreter
    "Interpreter",
    "SPECIAL_FORMS",
    "MAX_EVAL_DEPTH",
    "eval_all",
]
