"""
Tree-walking evaluator for configuration expressions.

Atoms evaluate to themselves, except symbols bound in the scope chain.
A non-empty list is a call: its head names a special form (evaluated with
its arguments unevaluated) or a builtin (arguments evaluated left to right).
"""

from typing import Callable, Dict, Iterable, List, Union

from ..ast import Expression, Atom, AtomKind, SList, NIL, TRUE, FALSE
from ..errors import (
    DslError, error_unknown_function, error_malformed_form, error_recursion_limit,
)
from ..parser import MAX_DEPTH
from .values import is_truthy
from .context import EvalContext


# One level per nested list, the same limit the parser enforces, so every
# parsed tree can be evaluated
MAX_EVAL_DEPTH = MAX_DEPTH

SPECIAL_FORMS = {
    "if": "(if test then [else]) - evaluate then when test is truthy, else the else branch (nil when absent)",
    "when": "(when test body...) - evaluate body forms when test is truthy; nil otherwise",
    "unless": "(unless test body...) - evaluate body forms when test is falsy; nil otherwise",
    "cond": "(cond (test value)...) - value of the first clause whose test is truthy; nil when none",
    "and": "(and x...) - false at the first falsy argument, else the last value (true when empty)",
    "or": "(or x...) - the first truthy argument, else false",
    "let": "(let ((name value)...) body...) - bind names in a new scope for the body",
}


class Interpreter:
    """
    Tree-walking interpreter.

    The interpreter itself is stateless; all state lives in the EvalContext
    passed to eval(), so one instance may serve any number of contexts.
    """

    def __init__(self):
        self._special_forms: Dict[str, Callable[[SList, EvalContext], Expression]] = {
            "if": self._eval_if,
            "when": self._eval_when,
            "unless": self._eval_unless,
            "cond": self._eval_cond,
            "and": self._eval_and,
            "or": self._eval_or,
            "let": self._eval_let,
        }

    def eval_all(self, exprs: Union[Expression, Iterable[Expression]],
                 ctx: EvalContext) -> Expression:
        """
        Evaluate forms left to right in one context.

        Returns the value of the last form, or nil for an empty sequence.
        An error aborts the remaining forms; bindings made by earlier forms
        stay in the context.
        """
        if isinstance(exprs, Expression):
            return self.eval(exprs, ctx)
        result: Expression = NIL
        for expr in exprs:
            result = self.eval(expr, ctx)
        return result

    def eval(self, expr: Expression, ctx: EvalContext) -> Expression:
        """Evaluate a single expression."""
        if isinstance(expr, Atom):
            return self._eval_atom(expr, ctx)

        ctx.depth += 1
        try:
            if ctx.depth > MAX_EVAL_DEPTH:
                raise error_recursion_limit(MAX_EVAL_DEPTH, expr.span)
            return self._eval_list(expr, ctx)
        finally:
            ctx.depth -= 1

    def _eval_atom(self, atom: Atom, ctx: EvalContext) -> Expression:
        if atom.kind == AtomKind.SYMBOL:
            value = ctx.get_variable(atom.text)
            if value is not None:
                return value
        return atom

    def _eval_list(self, lst: SList, ctx: EvalContext) -> Expression:
        if len(lst) == 0:
            return lst

        head = lst.items[0]
        if not (isinstance(head, Atom) and head.kind == AtomKind.SYMBOL):
            return self._eval_data(lst, head, ctx)

        name = head.text
        special = self._special_forms.get(name)
        if special is not None:
            return self._with_location(lst, ctx, special, lst, ctx)

        func = ctx.functions.get_function(name)
        # Outside strict mode a key such as (user "ubuntu") that no builtin
        # signature fits is data
        if func is not None and (ctx.strict or func.accepts(len(lst) - 1)):
            args = [self.eval(arg, ctx) for arg in lst.tail()]
            return self._with_location(lst, ctx, ctx.functions.call, name, ctx, args)

        return self._eval_data(lst, head, ctx)

    def _eval_data(self, lst: SList, head: Expression, ctx: EvalContext) -> Expression:
        """A list whose head is not callable: an error when strict, else data."""
        if ctx.strict:
            label = head.text if isinstance(head, Atom) else str(head)
            raise error_unknown_function(
                label, head.span or lst.span, self._source_line(lst, ctx))
        return SList(tuple(self.eval(item, ctx) for item in lst.items), span=lst.span)

    def _with_location(self, lst: SList, ctx: EvalContext, func, *args) -> Expression:
        """Run func, attaching this form's location to errors that lack one."""
        try:
            return func(*args)
        except DslError as e:
            e.attach(lst.span, self._source_line(lst, ctx))
            raise

    def _source_line(self, lst: SList, ctx: EvalContext):
        if lst.span is None:
            return None
        return ctx.get_source_line(lst.span.start.line)

    # --- Special forms ---

    def _eval_if(self, form: SList, ctx: EvalContext) -> Expression:
        args = form.tail()
        if len(args) not in (2, 3):
            raise error_malformed_form("if", "expected (if test then [else])")
        if is_truthy(self.eval(args[0], ctx)):
            return self.eval(args[1], ctx)
        if len(args) == 3:
            return self.eval(args[2], ctx)
        return NIL

    def _eval_when(self, form: SList, ctx: EvalContext) -> Expression:
        args = form.tail()
        if len(args) < 1:
            raise error_malformed_form("when", "expected (when test body...)")
        if is_truthy(self.eval(args[0], ctx)):
            return self.eval_all(args[1:], ctx)
        return NIL

    def _eval_unless(self, form: SList, ctx: EvalContext) -> Expression:
        args = form.tail()
        if len(args) < 1:
            raise error_malformed_form("unless", "expected (unless test body...)")
        if not is_truthy(self.eval(args[0], ctx)):
            return self.eval_all(args[1:], ctx)
        return NIL

    def _eval_cond(self, form: SList, ctx: EvalContext) -> Expression:
        for clause in form.tail():
            if not isinstance(clause, SList) or len(clause) == 0:
                raise error_malformed_form("cond", "each clause must be a list (test value...)")
            if is_truthy(self.eval(clause[0], ctx)):
                if len(clause) == 1:
                    return NIL
                return self.eval_all(clause.tail(), ctx)
        return NIL

    def _eval_and(self, form: SList, ctx: EvalContext) -> Expression:
        result: Expression = TRUE
        for arg in form.tail():
            result = self.eval(arg, ctx)
            if not is_truthy(result):
                return FALSE
        return result

    def _eval_or(self, form: SList, ctx: EvalContext) -> Expression:
        for arg in form.tail():
            value = self.eval(arg, ctx)
            if is_truthy(value):
                return value
        return FALSE

    def _eval_let(self, form: SList, ctx: EvalContext) -> Expression:
        args = form.tail()
        if len(args) < 2 or not isinstance(args[0], SList):
            raise error_malformed_form("let", "expected (let ((name value)...) body...)")

        # Bindings see the enclosing scope only
        bindings: List = []
        for binding in args[0]:
            if (not isinstance(binding, SList) or len(binding) != 2
                    or not isinstance(binding[0], Atom)):
                raise error_malformed_form("let", f"binding {binding} must be (name value)")
            bindings.append((binding[0].text, self.eval(binding[1], ctx)))

        with ctx.new_scope("let"):
            for name, value in bindings:
                ctx.set_variable(name, value)
            return self.eval_all(args[1:], ctx)


def eval_all(exprs: Union[Expression, Iterable[Expression]], ctx: EvalContext) -> Expression:
    """Convenience function: evaluate forms in a context."""
    return Interpreter().eval_all(exprs, ctx)
