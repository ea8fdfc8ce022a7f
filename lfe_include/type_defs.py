"""Erlang type trees to LFE type syntax."""

from __future__ import annotations

from lfe_include import ErlNode, SExpression
from lfe_include.errors import TranslationError
from lfe_include.types.forms import Q, Symbol


_INT_OPS = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "div": lambda a, b: a // b,
    "rem": lambda a, b: a % b,
    "band": lambda a, b: a & b,
    "bor": lambda a, b: a | b,
    "bxor": lambda a, b: a ^ b,
    "bsl": lambda a, b: a << b,
    "bsr": lambda a, b: a >> b,
}


def _int_value(t: ErlNode) -> int:
    """Fold a constant integer type expression such as ``-1`` or ``1 bsl 8``."""
    tag = t[0]
    if tag in ("integer", "char"):
        return t[2]
    if tag == "op" and len(t) == 4:
        v = _int_value(t[3])
        if t[2] == "-":
            return -v
        if t[2] == "bnot":
            return ~v
        return v
    if tag == "op" and t[2] in _INT_OPS:
        return _INT_OPS[t[2]](_int_value(t[3]), _int_value(t[4]))
    raise TranslationError(f"not an integer type: {tag}")


def from_type_def(t: ErlNode) -> SExpression:
    tag = t[0]
    if tag == "var":
        return Symbol(t[2])
    if tag == "atom":
        return Q(Symbol(t[2]))
    if tag in ("integer", "char", "op"):
        return _int_value(t)
    if tag == "ann_type":
        return from_type_def(t[2][1])
    if tag == "remote_type":
        mod, name, args = t[2]
        return [Symbol(f"{mod[2]}:{name[2]}"), *map(from_type_def, args)]
    if tag == "user_type":
        return [Symbol(t[2]), *map(from_type_def, t[3])]
    if tag == "type":
        return _builtin_type(t[2], t[3])
    raise TranslationError(f"unknown type: {tag}")


def _builtin_type(name: str, args) -> SExpression:
    if name == "union":
        return [Symbol("UNION"), *map(from_type_def, args)]
    if name == "range":
        return [Symbol("range"), _int_value(args[0]), _int_value(args[1])]
    if name == "tuple":
        if args == "any":
            return [Symbol("tuple")]
        return tuple(from_type_def(a) for a in args)
    if name == "map":
        if args == "any":
            return [Symbol("map")]
        return [Symbol("map"), *map(_map_pair, args)]
    if name == "nil":
        return []
    if name == "fun":
        if not args:
            return [Symbol("lambda")]
        return _fun_type(args)
    if name == "binary" and len(args) == 2:
        return [Symbol("binary"), _int_value(args[0]), _int_value(args[1])]
    if name == "record":
        rec, *fields = args
        return [Symbol("record"), Symbol(rec[2]), *map(_field_type, fields)]
    return [Symbol(name), *map(from_type_def, args)]


def _map_pair(pair: ErlNode) -> SExpression:
    key, value = pair[3]
    if pair[2] == "map_field_exact":
        return [Symbol(":="), from_type_def(key), from_type_def(value)]
    return [from_type_def(key), from_type_def(value)]


def _field_type(field: ErlNode) -> SExpression:
    name, t = field[3]
    return [Symbol(name[2]), from_type_def(t)]


def _fun_type(args) -> SExpression:
    params, ret = args
    if params[2] == "any":
        return [Symbol("lambda"), Symbol("any"), from_type_def(ret)]
    return [Symbol("lambda"), [from_type_def(p) for p in params[3]], from_type_def(ret)]


def from_type_defs(params) -> list[SExpression]:
    """Translate a list of type parameters or types."""
    return [from_type_def(p) for p in params]


def from_func_spec_list(funs) -> list[SExpression]:
    """Each signature becomes ``(args ret)``, or ``(args ret constraints)`` when bounded."""
    return [_func_spec(f) for f in funs]


def _func_spec(fun: ErlNode) -> SExpression:
    if fun[0] == "type" and fun[2] == "bounded_fun":
        inner, constraints = fun[3]
        args, ret = _func_spec(inner)
        return [args, ret, [_constraint(c) for c in constraints]]
    if fun[0] != "type" or fun[2] != "fun" or not fun[3]:
        raise TranslationError("bad function spec")
    params, ret = fun[3]
    if params[2] == "any":
        return [Symbol("any"), from_type_def(ret)]
    return [[from_type_def(p) for p in params[3]], from_type_def(ret)]


def _constraint(c: ErlNode) -> SExpression:
    _, var_type = c[3]
    var, t = var_type
    return [Symbol(var[2]), from_type_def(t)]
