#!/usr/bin/env python3
"""
CLI for the sloth configuration language.

Usage:
    python -m sloth.dsl check FILE.lisp
    python -m sloth.dsl eval FILE.lisp [--format lisp|json|yaml] [--strict]
                                       [-D NAME=VALUE ...] [--output FILE]
    python -m sloth.dsl functions [--category CATEGORY] [NAME]

Examples:
    # Check syntax
    python -m sloth.dsl check cluster.lisp

    # Evaluate and print the resolved configuration as YAML
    ENV=prod python -m sloth.dsl eval cluster.lisp --format yaml

    # Seed variables readable with (var "region")
    python -m sloth.dsl eval cluster.lisp -D region=fra1 -D replicas=3

    # Describe a builtin
    python -m sloth.dsl functions env-or
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


FORMATS = ("lisp", "json", "yaml")


def parse_param(param_str: str) -> tuple:
    """Parse a parameter string like 'name=value' into (name, typed_value)."""
    if '=' not in param_str:
        raise ValueError(f"Invalid parameter format: {param_str} (expected name=value)")

    name, value_str = param_str.split('=', 1)
    name = name.strip()
    value_str = value_str.strip()

    # Try to parse as int, float, bool, or string
    if value_str.lower() == 'true':
        return (name, True)
    elif value_str.lower() == 'false':
        return (name, False)

    try:
        return (name, int(value_str))
    except ValueError:
        pass

    try:
        return (name, float(value_str))
    except ValueError:
        pass

    # Strip quotes if present
    if (value_str.startswith('"') and value_str.endswith('"')) or \
       (value_str.startswith("'") and value_str.endswith("'")):
        value_str = value_str[1:-1]

    return (name, value_str)


def render(expr, fmt: str) -> str:
    """Render an evaluated expression in one of FORMATS."""
    from .ast import to_source
    from .loader import to_data

    if fmt == 'json':
        return json.dumps(to_data(expr), indent=2)
    if fmt == 'yaml':
        return yaml.safe_dump(to_data(expr), sort_keys=False, default_flow_style=False).rstrip("\n")
    return to_source(expr, indent=2)


def cmd_check(args):
    """Check a configuration file for syntax errors."""
    from . import parse_all, DslError

    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    source = source_path.read_text(encoding="utf-8")

    try:
        forms = parse_all(source, str(source_path))
    except DslError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    print(f"OK: {source_path.name} - {len(forms)} form(s)")
    return 0


def cmd_eval(args):
    """Load and evaluate a configuration file."""
    from . import load_file, create_context, DslError

    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    variables: Dict[str, Any] = {}
    for param_str in args.define or []:
        try:
            name, value = parse_param(param_str)
            variables[name] = value
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    ctx = create_context(variables, strict=args.strict)
    try:
        result = load_file(str(source_path), context=ctx)
    except DslError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if ctx.has_warnings:
            print(ctx.diagnostics.format_all(), file=sys.stderr)

    text = render(result, args.format)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {args.format} to: {output_path}")
    else:
        print(text)
    return 0


def cmd_functions(args):
    """List builtin functions or describe one."""
    from .introspection import list_functions, describe_function, get_function_info
    from .runtime.builtins import CATEGORIES

    if args.name:
        if get_function_info(args.name) is None:
            print(f"Error: Unknown function: {args.name}", file=sys.stderr)
            return 1
        print(describe_function(args.name))
        return 0

    if args.category and args.category not in CATEGORIES:
        print(f"Error: Unknown category: {args.category} "
              f"(expected one of {', '.join(CATEGORIES)})", file=sys.stderr)
        return 1

    categories = [args.category] if args.category else CATEGORIES
    for category in categories:
        names = list_functions(category)
        print(f"{category}: {' '.join(names)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='python -m sloth.dsl',
        description='sloth configuration language tools',
    )

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check a configuration file for syntax errors')
    check_parser.add_argument('file', help='Configuration source file')

    # eval command
    eval_parser = subparsers.add_parser('eval', help='Evaluate a configuration file')
    eval_parser.add_argument('file', help='Configuration source file')
    eval_parser.add_argument('--format', choices=FORMATS, default='lisp',
                             help='Output format (default: lisp)')
    eval_parser.add_argument('--strict', action='store_true',
                             help='Reject lists whose head is not a known function')
    eval_parser.add_argument('-D', '--define', action='append', metavar='NAME=VALUE',
                             help='Initial variable binding (can be repeated)')
    eval_parser.add_argument('-o', '--output', metavar='FILE',
                             help='Write the result to a file instead of stdout')

    # functions command
    functions_parser = subparsers.add_parser('functions', help='List or describe builtin functions')
    functions_parser.add_argument('name', nargs='?', help='Function to describe')
    functions_parser.add_argument('--category', help='Only list functions in this category')

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'eval':
        return cmd_eval(args)
    elif args.action == 'functions':
        return cmd_functions(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
