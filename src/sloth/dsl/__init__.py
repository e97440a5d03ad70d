"""
The sloth configuration language.

A small S-expression language for cluster configuration, with environment
lookups, conditionals, local bindings, arithmetic, string, hashing and list
operations.

This module provides:
- Lexer: Tokenizes source text
- Parser: Builds Atom / SList trees from tokens
- Interpreter: Evaluates trees against an EvalContext
- Loader: Reads configuration files and converts results to Python data

Usage:
    from sloth.dsl import parse_all, create_context

    ctx = create_context()
    value = ctx.eval_all(parse_all('(concat "k8s-" (env "ENV" "dev"))'))
    print(value.as_string())

    # Or load a configuration file (non-strict, ${VAR} expanded)
    from sloth.dsl import load_file, to_mapping
    config = to_mapping(load_file("cluster.lisp"))
"""

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .ast import (
    Expression,
    Atom,
    AtomKind,
    SList,
    NIL,
    TRUE,
    FALSE,
    to_source,
)

from .parser import (
    Parser,
    MAX_DEPTH,
    parse,
    parse_all,
)

from .errors import (
    DslError,
    LexerError,
    ParserError,
    EvalError,
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
)

from .runtime import (
    Scope,
    EvalContext,
    create_context,
    new_eval_context,
    Interpreter,
    BuiltinFunction,
    BuiltinRegistry,
    eval_all,
    string_val,
    int_val,
    float_val,
    bool_val,
    list_val,
)

from .loader import (
    load_source,
    load_file,
    expand_env_vars,
    to_python,
    to_mapping,
    to_data,
)

__all__ = [
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    # Lexer
    "Lexer",
    "tokenize",
    # Expressions
    "Expression",
    "Atom",
    "AtomKind",
    "SList",
    "NIL",
    "TRUE",
    "FALSE",
    "to_source",
    # Parser
    "Parser",
    "MAX_DEPTH",
    "parse",
    "parse_all",
    # Errors
    "DslError",
    "LexerError",
    "ParserError",
    "EvalError",
    "Diagnostic",
    "DiagnosticCollector",
    "ErrorSeverity",
    # Runtime
    "Scope",
    "EvalContext",
    "create_context",
    "new_eval_context",
    "Interpreter",
    "BuiltinFunction",
    "BuiltinRegistry",
    "eval_all",
    "string_val",
    "int_val",
    "float_val",
    "bool_val",
    "list_val",
    # Loader
    "load_source",
    "load_file",
    "expand_env_vars",
    "to_python",
    "to_mapping",
    "to_data",
]
