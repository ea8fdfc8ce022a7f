"""Apply a translated macro to argument forms.

Only the shapes the macro translator emits are understood: clauses whose
pattern is ``_`` or ``(list P ...)`` and whose body is a backquoted template
with unquoted parameters. That is enough to check a translated header, and
to expand its macros from the command line.
"""

from __future__ import annotations

from lfe_include import SExpression
from lfe_include.errors import MacroExpansionError
from lfe_include.types.forms import BACKQUOTE, COMMA, COMMA_AT, QUOTE, Cons, Symbol


def expand_macro(macro: SExpression, args: list[SExpression]) -> SExpression:
    """Expand ``(defmacro name clause ...)`` applied to ``args``."""
    if not (isinstance(macro, list) and len(macro) >= 2 and macro[0] == Symbol("defmacro")):
        raise MacroExpansionError(f"not a macro definition: {macro!r}")
    name = macro[1]
    for clause in macro[2:]:
        pattern, *body = clause
        bindings = match_args(pattern, args)
        if bindings is None:
            continue
        result: SExpression = []
        for form in body:
            result = eval_template(form, bindings)
        return result
    raise MacroExpansionError(f"no clause of {name} matches {len(args)} arguments")


def match_args(pattern: SExpression, args: list[SExpression]):
    """Bindings for ``args`` against a clause pattern, None when it does not match."""
    if pattern == Symbol("_"):
        return {}
    if isinstance(pattern, list) and pattern and pattern[0] == Symbol("list"):
        params = pattern[1:]
        if len(params) != len(args):
            return None
        return dict(zip(params, args))
    raise MacroExpansionError(f"unsupported macro pattern: {pattern!r}")


def eval_template(form: SExpression, bindings: dict) -> SExpression:
    if isinstance(form, Symbol):
        if form not in bindings:
            raise MacroExpansionError(f"unbound variable {form}")
        return bindings[form]
    if isinstance(form, list) and len(form) == 2 and form[0] == BACKQUOTE:
        return eval_backquote(form[1], bindings)
    if isinstance(form, list) and len(form) == 2 and form[0] == QUOTE:
        return form[1]
    if isinstance(form, list):
        raise MacroExpansionError(f"cannot evaluate {form!r} at expansion time")
    return form


def eval_backquote(expr: SExpression, bindings: dict, depth: int = 1) -> SExpression:
    def _process_list_part(seq):
        result_list = []
        for item in seq:
            if isinstance(item, list) and len(item) == 2:
                head, arg = item
                if head == BACKQUOTE:
                    result_list.append([BACKQUOTE, eval_backquote(arg, bindings, depth + 1)])
                    continue
                if head == COMMA and depth == 1:
                    result_list.append(eval_template(arg, bindings))
                    continue
                if head == COMMA_AT and depth == 1:
                    spliced = eval_template(arg, bindings)
                    if not isinstance(spliced, list):
                        raise MacroExpansionError("comma-at must produce a list")
                    result_list.extend(spliced)
                    continue
                if head in (COMMA, COMMA_AT):
                    result_list.append([head, eval_backquote(arg, bindings, depth - 1)])
                    continue
            result_list.append(eval_backquote(item, bindings, depth))
        return result_list

    if isinstance(expr, list):
        if len(expr) == 2 and expr[0] == COMMA and depth == 1:
            return eval_template(expr[1], bindings)
        if len(expr) == 2 and expr[0] == BACKQUOTE:
            return [BACKQUOTE, eval_backquote(expr[1], bindings, depth + 1)]
        return _process_list_part(expr)
    if isinstance(expr, Cons):
        return Cons(_process_list_part(expr.items), eval_backquote(expr.tail, bindings, depth))
    if isinstance(expr, tuple):
        return tuple(_process_list_part(list(expr)))
    if isinstance(expr, dict):
        return {k: eval_backquote(v, bindings, depth) for k, v in expr.items()}
    return expr
