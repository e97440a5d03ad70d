"""
Evaluation context for the interpreter.

An EvalContext owns the builtin function registry and the variable scope
chain for one parse-and-evaluate cycle. Every context is built from scratch
by its constructor, so two contexts never share mutable state.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Union
from contextlib import contextmanager

from ..ast import Expression
from ..errors import Diagnostic, DiagnosticCollector
from .values import wrap_value
from .builtins import BuiltinRegistry


@dataclass
class Scope:
    """
    A single frame of variable bindings.

    Frames form a chain via the `parent` field; lookups walk outwards and
    definitions always land in the frame they are made on.
    """
    variables: Dict[str, Any] = field(default_factory=dict)
    parent: Optional["Scope"] = None
    name: str = "anonymous"  # For debugging

    def resolve(self, name: str) -> Optional["Scope"]:
        """Find the innermost frame that binds a name."""
        scope = self
        while scope is not None:
            if name in scope.variables:
                return scope
            scope = scope.parent
        return None

    def get(self, name: str) -> Optional[Expression]:
        """Look up a variable in this frame or its parents."""
        scope = self.resolve(name)
        if scope is None:
            return None
        return wrap_value(scope.variables[name])

    def set(self, name: str, value: Expression) -> None:
        """Bind a variable in this frame (shadowing parents)."""
        self.variables[name] = value

    def contains(self, name: str) -> bool:
        """Check if a variable exists in this frame or its parents."""
        return self.resolve(name) is not None

    @property
    def depth(self) -> int:
        depth = 0
        scope = self.parent
        while scope is not None:
            depth += 1
            scope = scope.parent
        return depth


class EvalContext:
    """
    The state of one evaluation.

    Tracks:
    - The builtin function registry (`functions`)
    - The scope chain; `variables` is the global frame's mapping
    - Warnings raised during evaluation (`diagnostics`)
    - Options: `strict` evaluation, `work_dir` for relative file paths

    Usage:
        ctx = EvalContext()
        value = ctx.eval_all(parse_all(source))
    """

    def __init__(
        self,
        variables: Optional[Dict[str, Any]] = None,
        *,
        work_dir: str = ".",
        strict: bool = True,
        source: str = "",
    ):
        self.functions = BuiltinRegistry()
        self.global_scope = Scope(variables=dict(variables or {}), name="global")
        self.current_scope = self.global_scope
        self.work_dir = work_dir
        self.strict = strict
        self.diagnostics = DiagnosticCollector()
        self.source_lines = source.split('\n') if source else []
        self.depth = 0

    @property
    def variables(self) -> Dict[str, Any]:
        """The global variable mapping (values written by `set` outside any let)."""
        return self.global_scope.variables

    def get_variable(self, name: str) -> Optional[Expression]:
        """Look up a variable in the current scope chain."""
        return self.current_scope.get(name)

    def set_variable(self, name: str, value: Expression) -> None:
        """Bind a variable in the current frame."""
        self.current_scope.set(name, value)

    @contextmanager
    def new_scope(self, name: str = "let"):
        """
        Context manager that pushes a child frame and always pops it.

        Usage:
            with ctx.new_scope("let"):
                ctx.set_variable("x", string_val("inner"))
        """
        old_scope = self.current_scope
        self.current_scope = Scope(parent=old_scope, name=name)
        try:
            yield self.current_scope
        finally:
            self.current_scope = old_scope

    def add_warning(self, diagnostic: Diagnostic) -> None:
        """Record a non-fatal diagnostic."""
        if diagnostic.span is not None and diagnostic.source_line is None:
            diagnostic.source_line = self.get_source_line(diagnostic.span.start.line)
        self.diagnostics.add(diagnostic)

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a source line for error messages."""
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    @property
    def has_warnings(self) -> bool:
        return self.diagnostics.has_warnings

    # --- Evaluation entry points ---

    def eval(self, expr: Expression) -> Expression:
        """Evaluate one expression in this context."""
        from .interpreter import Interpreter
        return Interpreter().eval(expr, self)

    def eval_all(self, exprs: Union[Expression, Iterable[Expression]]) -> Expression:
        """Evaluate top-level forms left to right, returning the last value."""
        from .interpreter import Interpreter
        return Interpreter().eval_all(exprs, self)


def create_context(
    variables: Optional[Dict[str, Any]] = None,
    *,
    work_dir: str = ".",
    strict: bool = True,
    source: str = "",
) -> EvalContext:
    """
    Create a fresh evaluation context with every builtin registered.

    Args:
        variables: Initial global bindings (Python values are converted on read)
        work_dir: Base directory for relative paths in file builtins
        strict: Reject calls to unknown functions instead of treating them as data
        source: The source code (for error messages)
    """
    return EvalContext(variables, work_dir=work_dir, strict=strict, source=source)


def new_eval_context() -> EvalContext:
    """A strict context with every builtin registered and no variables."""
    return EvalContext()
