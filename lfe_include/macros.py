"""Translate preprocessor macro definitions into LFE macros.

Every arity of a macro becomes one clause of a single ``defmacro``. The raw
body tokens are rewritten into plain expression syntax, parsed, converted to
LFE and backquoted, with each formal parameter unquoted inside the template:

    -define(FOO(X), X + 1).   ==>  (defmacro FOO ((list X) `(+ ,X 1)))
    -define(BAR, 42).         ==>  (defmacro BAR (_ `42))

The argument-less definition always goes last, its ``_`` pattern accepts any
argument list.
"""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from lfe_include import STRINGIFY_MODULE, SExpression
from lfe_include.errors import TranslationError
from lfe_include.erlang.parser import parse_exprs
from lfe_include.erlang.scanner import Token
from lfe_include.translate import from_expr
from lfe_include.types.forms import BQ, COMMA, Cons, Symbol
from lfe_include.types.host import NO_ARGS, MacroDefinition, MacroEntry, MacroTable
from lfe_include.types.state import MacroState


WILDCARD = Symbol("_")


def trans_macros(macros: MacroTable, st: MacroState) -> tuple[list[SExpression], MacroState]:
    """One ``defmacro`` per translatable macro, in table order."""
    forms: list[SExpression] = []
    for name, entry in macros.items():
        form, st = trans_macro(name, entry, st)
        if form is not None:
            forms.append(form)
    return forms, st


def trans_macro(name: str, entry: MacroEntry, st: MacroState):
    # Undefined and predefined macros have no body to translate.
    if not isinstance(entry, dict):
        return None, st
    defs = order_macro_defs(entry)
    if not defs:
        return None, st
    clauses, st = trans_macro_defs(name, defs, st)
    if not clauses:
        return None, st
    return [Symbol("defmacro"), Symbol(name), *clauses], st


def order_macro_defs(entry: dict) -> list[tuple]:
    """Numeric arities ascending, the argument-less one last."""
    defs = [(arity, d) for arity, d in entry.items() if isinstance(d, MacroDefinition)]
    numbered = sorted((p for p in defs if p[0] is not NO_ARGS), key=lambda p: p[0])
    no_args = [p for p in defs if p[0] is NO_ARGS]
    return numbered + no_args


def trans_macro_defs(name: str, defs: list[tuple], st: MacroState) -> tuple[list[SExpression], MacroState]:
    clauses = []
    for arity, definition in defs:
        try:
            body = trans_macro_body(definition.params, definition.tokens)
        except Exception as e:
            logger.debug("macro {}/{}: {!r}", name, arity, e)
            st = st.add_warning(("notrans_macro", name, arity))
            continue
        if arity is NO_ARGS:
            clauses.append([WILDCARD, body])
        else:
            clauses.append([[Symbol("list"), *map(Symbol, definition.params)], body])
    return clauses, st


def trans_macro_body(params: Iterable[str], tokens: Iterable[Token]) -> SExpression:
    """Backquoted template for one macro body, parameters unquoted."""
    toks = trans_qm(list(tokens))
    line = toks[-1].line if toks else 0
    exprs = parse_exprs(toks + [Token("dot", ".", line)])
    if len(exprs) != 1:
        raise TranslationError(f"macro body is {len(exprs)} expressions")
    body = from_expr(exprs[0])
    alist = {Symbol(p): [COMMA, Symbol(p)] for p in params}
    if alist:
        body = sublis(alist, body)
    return BQ(body)


def _is_name(tok: Token) -> bool:
    return tok.kind in ("atom", "var")


def _name_atom(tok: Token) -> Token:
    # Variables become atoms: ?Sune -> 'Sune'() -> (Sune)
    return Token("atom", tok.value, tok.line)


def trans_qm(tokens: list[Token]) -> list[Token]:
    """Rewrite macro calls left in a body into ordinary call syntax.

    ``?FOO(`` to ``FOO(``, ``?FOO:f`` to ``(FOO()):f``, ``?FOO`` to
    ``FOO()`` and ``??Arg`` to ``lfe_include:stringify(quote(Arg))``.
    """
    out: list[Token] = []
    i = 0
    n = len(tokens)
    while i < n:
        tok = tokens[i]
        nxt = tokens[i + 1] if i + 1 < n else None
        after = tokens[i + 2] if i + 2 < n else None
        if tok.kind != "?" or nxt is None:
            out.append(tok)
            i += 1
            continue
        line = tok.line
        lp, rp = Token("(", "(", line), Token(")", ")", line)
        if _is_name(nxt) and after is not None and after.kind == "(":
            out += [_name_atom(nxt), after]
            i += 3
        elif _is_name(nxt) and after is not None and after.kind == ":":
            out += [lp, _name_atom(nxt), lp, rp, rp, after]
            i += 3
        elif _is_name(nxt):
            out += [_name_atom(nxt), lp, rp]
            i += 2
        elif nxt.kind == "?" and after is not None:
            out += [Token("atom", STRINGIFY_MODULE, line), Token(":", ":", line),
                    Token("atom", "stringify", line), lp,
                    Token("atom", "quote", line), lp, after, rp, rp]
            i += 3
        else:
            out.append(tok)
            i += 1
    return out


def sublis(alist: dict, expr: SExpression) -> SExpression:
    """Replace every symbol found in ``alist``, quoted sub-forms included."""
    if isinstance(expr, Symbol):
        return alist.get(expr, expr)
    if isinstance(expr, list):
        return [sublis(alist, x) for x in expr]
    if isinstance(expr, Cons):
        return Cons([sublis(alist, x) for x in expr.items], sublis(alist, expr.tail))
    if isinstance(expr, tuple):
        return tuple(sublis(alist, x) for x in expr)
    if isinstance(expr, dict):
        return {k: sublis(alist, v) for k, v in expr.items()}
    return expr
