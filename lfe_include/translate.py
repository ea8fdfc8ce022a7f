"""Erlang abstract trees to LFE forms.

Expressions quote their atoms, patterns bind variables, literals become
plain data. Anything without an LFE counterpart raises TranslationError and
is dealt with by the caller.
"""

from __future__ import annotations

from lfe_include import ErlNode, SExpression
from lfe_include.errors import TranslationError
from lfe_include.types.forms import Q, Symbol, cons


def _sym(name: str) -> Symbol:
    return Symbol(name)


# Never an Erlang variable name, so it cannot be captured by a pattern.
MATCH_VALUE = Symbol("match-value")


# ------------------------
# Literals
# ------------------------

def from_lit(lit: ErlNode) -> SExpression:
    """Translate a literal term to plain LFE data."""
    tag = lit[0]
    if tag == "atom":
        return _sym(lit[2])
    if tag in ("integer", "float", "char", "string"):
        return lit[2]
    if tag == "nil":
        return []
    if tag == "cons":
        items, tail = _unfold_cons(lit)
        return cons([from_lit(i) for i in items], from_lit(tail))
    if tag == "tuple":
        return tuple(from_lit(e) for e in lit[2])
    if tag == "op" and len(lit) == 4 and lit[2] in ("-", "+"):
        value = from_lit(lit[3])
        if isinstance(value, (int, float)):
            return -value if lit[2] == "-" else value
    if tag == "map" and len(lit) == 3:
        return {_hashable(from_lit(a[2])): from_lit(a[3]) for a in lit[2]}
    if tag == "bin":
        return _lit_binary(lit)
    raise TranslationError(f"not a literal: {tag}")


def _hashable(value: SExpression):
    try:
        hash(value)
    except TypeError:
        raise TranslationError(f"map key {value!r} has no hashable form")
    return value


def _lit_binary(lit: ErlNode) -> bytes:
    out = bytearray()
    for el in lit[2]:
        value = el[2]
        if el[3] != "default" or el[4] != "default":
            raise TranslationError("binary literal with segment options")
        if value[0] == "string":
            out.extend(ord(c) & 0xFF for c in value[2])
        elif value[0] in ("integer", "char"):
            out.append(value[2] & 0xFF)
        else:
            raise TranslationError("binary literal with non literal segment")
    return bytes(out)


def _unfold_cons(node: ErlNode) -> tuple[list[ErlNode], ErlNode]:
    items = []
    while node[0] == "cons":
        items.append(node[2])
        node = node[3]
    return items, node


# ------------------------
# Expressions
# ------------------------

def from_expr(expr: ErlNode) -> SExpression:
    tag = expr[0]
    match tag:
        case "var":
            return _sym(expr[2])
        case "atom":
            return Q(_sym(expr[2]))
        case "integer" | "float" | "char" | "string":
            return expr[2]
        case "nil":
            return []
        case "cons":
            return _list_form(expr, from_expr)
        case "tuple":
            return [_sym("tuple"), *map(from_expr, expr[2])]
        case "bin":
            return [_sym("binary"), *(_bin_segment(e, from_expr) for e in expr[2])]
        case "map":
            return _map_expr(expr)
        case "record":
            return _record_expr(expr)
        case "record_field":
            _, _, rec, name, field = expr
            return [_sym("record-field"), from_expr(rec), _sym(name), _sym(field[2])]
        case "record_index":
            return [_sym("record-index"), _sym(expr[2]), _sym(expr[3][2])]
        case "op":
            return _op_expr(expr)
        case "match":
            # The pattern may hold _ or unbound parts, return the matched value instead.
            return [_sym("let"), [[MATCH_VALUE, from_expr(expr[3])]],
                    [_sym("let"), [[from_pat(expr[2]), MATCH_VALUE]], MATCH_VALUE]]
        case "call":
            return _call_expr(expr)
        case "fun":
            return _fun_expr(expr)
        case "named_fun":
            raise TranslationError("named funs are not supported")
        case "case":
            return [_sym("case"), from_expr(expr[2]), *map(_cr_clause, expr[3])]
        case "if":
            return [_sym("cond"), *(_if_clause(c) for c in expr[2])]
        case "receive":
            form = [_sym("receive"), *map(_cr_clause, expr[2])]
            if len(expr) == 5:
                form.append([_sym("after"), from_expr(expr[3]), *from_body(expr[4])])
            return form
        case "try":
            return _try_expr(expr)
        case "block":
            return [_sym("progn"), *from_body(expr[2])]
        case "catch":
            return [_sym("catch"), from_expr(expr[2])]
        case "lc" | "bc":
            return [_sym(tag), [_qualifier(q) for q in expr[3]], from_expr(expr[2])]
        case _:
            raise TranslationError(f"unknown expression: {tag}")


def _list_form(node: ErlNode, conv) -> SExpression:
    items, tail = _unfold_cons(node)
    elems = [conv(i) for i in items]
    if tail[0] == "nil":
        return [_sym("list"), *elems]
    if len(elems) == 1:
        return [_sym("cons"), elems[0], conv(tail)]
    return [_sym("list*"), *elems, conv(tail)]


def _bin_segment(el: ErlNode, conv) -> SExpression:
    _, _, value, size, tsl = el
    val = conv(value)
    if size == "default" and tsl == "default":
        return val
    seg = [val]
    if size != "default":
        seg.append([_sym("size"), conv(size)])
    if tsl != "default":
        for spec in tsl:
            if isinstance(spec, tuple):
                seg.append([_sym(spec[0]), spec[1]])
            else:
                seg.append(_sym(spec))
    return seg


def _map_expr(expr: ErlNode) -> SExpression:
    if len(expr) == 3:
        pairs = []
        for assoc in expr[2]:
            if assoc[0] != "map_field_assoc":
                raise TranslationError("':=' in map construction")
            pairs += [from_expr(assoc[2]), from_expr(assoc[3])]
        return [_sym("map"), *pairs]
    form = from_expr(expr[2])
    sets = []
    updates = []
    for assoc in expr[3]:
        target = sets if assoc[0] == "map_field_assoc" else updates
        target += [from_expr(assoc[2]), from_expr(assoc[3])]
    if sets:
        form = [_sym("map-set"), form, *sets]
    if updates:
        form = [_sym("map-update"), form, *updates]
    return form


def _record_fields(fields, conv) -> list:
    out = []
    for f in fields:
        out += [_sym(f[2][2]), conv(f[3])]
    return out


def _record_expr(expr: ErlNode) -> SExpression:
    if len(expr) == 4:
        return [_sym("make-record"), _sym(expr[2]), *_record_fields(expr[3], from_expr)]
    _, _, base, name, fields = expr
    return [_sym("update-record"), from_expr(base), _sym(name), *_record_fields(fields, from_expr)]


def _op_expr(expr: ErlNode) -> SExpression:
    if len(expr) == 4:
        _, _, op, arg = expr
        if op in ("-", "+") and arg[0] in ("integer", "float"):
            return -arg[2] if op == "-" else arg[2]
        return [_sym(op), from_expr(arg)]
    _, _, op, left, right = expr
    return [_sym(op), from_expr(left), from_expr(right)]


def _call_expr(expr: ErlNode) -> SExpression:
    _, _, func, args = expr
    largs = [from_expr(a) for a in args]
    if func[0] == "atom":
        return [_sym(func[2]), *largs]
    if func[0] == "remote":
        return [_sym("call"), from_expr(func[2]), from_expr(func[3]), *largs]
    return [_sym("funcall"), from_expr(func), *largs]


def _fun_expr(expr: ErlNode) -> SExpression:
    body = expr[2]
    if body[0] == "clauses":
        return [_sym("match-lambda"), *(_fun_clause(c) for c in body[1])]
    if len(body) == 3:
        return [_sym("function"), _sym(body[1]), body[2]]
    _, mod, func, arity = body
    if mod[0] != "atom" or func[0] != "atom" or arity[0] != "integer":
        raise TranslationError("dynamic fun reference")
    return [_sym("function"), _sym(mod[2]), _sym(func[2]), arity[2]]


def _try_expr(expr: ErlNode) -> SExpression:
    _, _, body, of_clauses, catch_clauses, after = expr
    form = [_sym("try"), [_sym("progn"), *from_body(body)]]
    if of_clauses:
        form.append([_sym("case"), *map(_cr_clause, of_clauses)])
    if catch_clauses:
        form.append([_sym("catch"), *map(_cr_clause, catch_clauses)])
    if after:
        form.append([_sym("after"), *from_body(after)])
    return form


def _qualifier(q: ErlNode) -> SExpression:
    if q[0] == "generate":
        return [_sym("<-"), from_pat(q[2]), from_expr(q[3])]
    if q[0] == "b_generate":
        return [_sym("<="), from_pat(q[2]), from_expr(q[3])]
    return from_expr(q)


# ------------------------
# Clauses, bodies and guards
# ------------------------

def from_body(body: list[ErlNode]) -> list[SExpression]:
    """Translate a clause body; a match binds the rest of the body with let."""
    if not body:
        return []
    first, rest = body[0], body[1:]
    if first[0] == "match" and rest:
        return [[_sym("let"), [[from_pat(first[2]), from_expr(first[3])]], *from_body(rest)]]
    return [from_expr(first), *from_body(rest)]


def from_guard(guard: list[list[ErlNode]]) -> list[SExpression]:
    """A guard sequence as an optional ``(when ...)`` element."""
    if not guard:
        return []
    if len(guard) == 1:
        return [[_sym("when"), *map(from_expr, guard[0])]]
    alts = [_guard_test(tests) for tests in guard]
    return [[_sym("when"), [_sym("orelse"), *alts]]]


def _guard_test(tests: list[ErlNode]) -> SExpression:
    if len(tests) == 1:
        return from_expr(tests[0])
    return [_sym("andalso"), *map(from_expr, tests)]


def _fun_clause(clause: ErlNode) -> SExpression:
    _, _, pats, guard, body = clause
    return [[from_pat(p) for p in pats], *from_guard(guard), *from_body(body)]


def _cr_clause(clause: ErlNode) -> SExpression:
    _, _, pats, guard, body = clause
    return [from_pat(pats[0]), *from_guard(guard), *from_body(body)]


def _if_clause(clause: ErlNode) -> SExpression:
    guard = clause[3]
    if len(guard) == 1:
        test = _guard_test(guard[0])
    else:
        test = [_sym("orelse"), *(_guard_test(g) for g in guard)]
    return [test, *from_body(clause[4])]


# ------------------------
# Patterns
# ------------------------

def from_pat(pat: ErlNode) -> SExpression:
    tag = pat[0]
    match tag:
        case "var":
            return _sym(pat[2])
        case "atom":
            return Q(_sym(pat[2]))
        case "integer" | "float" | "char" | "string":
            return pat[2]
        case "nil":
            return []
        case "cons":
            return _list_form(pat, from_pat)
        case "tuple":
            return [_sym("tuple"), *map(from_pat, pat[2])]
        case "bin":
            return [_sym("binary"), *(_bin_segment(e, from_pat) for e in pat[2])]
        case "map" if len(pat) == 3:
            pairs = []
            for assoc in pat[2]:
                pairs += [from_expr(assoc[2]), from_pat(assoc[3])]
            return [_sym("map"), *pairs]
        case "record" if len(pat) == 4:
            return [_sym("record"), _sym(pat[2]), *_record_fields(pat[3], from_pat)]
        case "record_index":
            return from_expr(pat)
        case "match":
            return [_sym("="), from_pat(pat[2]), from_pat(pat[3])]
        case "op" if len(pat) == 4 and pat[3][0] in ("integer", "float"):
            return _op_expr(pat)
        case "op" if len(pat) == 5 and pat[2] == "++":
            return [_sym("++"), from_pat(pat[3]), from_pat(pat[4])]
        case _:
            raise TranslationError(f"illegal pattern: {tag}")
