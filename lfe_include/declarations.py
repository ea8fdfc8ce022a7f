"""Translate Erlang header declarations into LFE forms.

Records, types, specs and functions become top-level LFE definitions;
exports, imports and other attributes are gathered for one
``(extend-module () ...)`` form. A declaration that fails to translate is
dropped with a warning, the rest of the file carries on.
"""

from __future__ import annotations

from loguru import logger

from lfe_include import SExpression
from lfe_include.macros import trans_macros
from lfe_include.translate import from_expr, from_lit
from lfe_include.type_defs import from_func_spec_list, from_type_def, from_type_defs
from lfe_include.types.forms import Q, Symbol
from lfe_include.types.host import (
    Attribute,
    Export,
    Function,
    HostDeclaration,
    Import,
    MacroTable,
    Opaque,
    ParseError,
    Record,
    Spec,
    Type,
)
from lfe_include.types.state import MacroState


def trans_forms(decls: list[HostDeclaration],
                st: MacroState) -> tuple[list[SExpression], list[SExpression], MacroState]:
    """Translate declarations in order: returns (attributes, forms, state)."""
    attrs: list[SExpression] = []
    forms: list[SExpression] = []
    for decl in decls:
        st = trans_form(decl, attrs, forms, st)
    return attrs, forms, st


def trans_form(decl: HostDeclaration, attrs: list, forms: list, st: MacroState) -> MacroState:
    """Append the translation of one declaration to ``attrs`` or ``forms``."""
    match decl:
        case Record(line, name, fields):
            return _guarded(lambda: trans_record(name, fields), forms, st, line,
                            ("notrans_record", name))
        case Type(line, name, params, definition):
            return _guarded(lambda: trans_type(name, params, definition), forms, st, line,
                            ("notrans_type", _type_name(name)))
        case Opaque(line, name, params, definition):
            return _guarded(lambda: trans_opaque(name, params, definition), forms, st, line,
                            ("notrans_type", name))
        case Spec(line, function, arity, types):
            return _guarded(lambda: trans_spec(function, arity, types), forms, st, line,
                            ("notrans_spec", function, arity))
        case Export(_, functions):
            attrs.append([Symbol("export"), *trans_farity(functions)])
            return st
        case Import(_, module, functions):
            attrs.append([Symbol("import"), [Symbol("from"), Symbol(module), *trans_farity(functions)]])
            return st
        case Attribute(line, name, value):
            return _guarded(lambda: [Symbol(name), from_lit(value)], attrs, st, line,
                            ("notrans_attribute", name))
        case Function(line, name, arity, clauses):
            return _guarded(lambda: trans_function(name, arity, clauses), forms, st, line,
                            ("notrans_function", name, arity))
        case ParseError(_, payload):
            # Already a complete diagnostic, keep it as is.
            return st.extend_errors([payload])
        case _:
            # Anything else (end of file markers, newer declaration kinds) is ignored.
            return st


def _guarded(translate, out: list, st: MacroState, line: int, reason: tuple) -> MacroState:
    try:
        out.append(translate())
    except Exception as e:
        logger.debug("dropping {}: {!r}", reason, e)
        return st.add_warning(reason, line=line)
    return st


def _type_name(name):
    return name[1] if isinstance(name, tuple) else name


def trans_farity(functions) -> list[SExpression]:
    return [[Symbol(f), a] for f, a in functions]


def trans_record(name: str, fields) -> SExpression:
    """``(defrecord name field ...)``"""
    return [Symbol("defrecord"), Symbol(name), *map(record_field, fields)]


def record_field(field) -> SExpression:
    if field[0] == "typed_record_field":
        _, rf, type_def = field
        default = from_expr(rf[3]) if len(rf) == 4 else Q(Symbol("undefined"))
        return [from_lit(rf[2]), default, from_type_def(type_def)]
    if len(field) == 4:
        return [from_lit(field[2]), from_expr(field[3])]
    # Just the field name
    return from_lit(field[2])


def trans_type(name, params, definition) -> SExpression:
    # Legacy encoding: typed records arrive as type attributes named {record, Name}.
    if isinstance(name, tuple) and name[0] == "record":
        return trans_record(name[1], definition)
    return [Symbol("define-type"), [Symbol(name), *from_type_defs(params)],
            from_type_def(definition)]


def trans_opaque(name: str, params, definition) -> SExpression:
    return [Symbol("define-opaque-type"), [Symbol(name), *from_type_defs(params)],
            from_type_def(definition)]


def trans_spec(function: str, arity: int, types) -> SExpression:
    return [Symbol("define-function-spec"), [Symbol(function), arity],
            from_func_spec_list(types)]


def trans_function(name: str, arity: int, clauses) -> SExpression:
    # Make it a fun and then drop the match-lambda.
    _, *lclauses = from_expr(("fun", 0, ("clauses", list(clauses))))
    return [Symbol("defun"), Symbol(name), *lclauses]


def typed_record_attrs(decls: list[HostDeclaration]) -> set[str]:
    return {d.name[1] for d in decls
            if isinstance(d, Type) and isinstance(d.name, tuple) and d.name[0] == "record"}


def delete_typed_record_defs(decls: list[HostDeclaration], typed: set[str]) -> list[HostDeclaration]:
    return [d for d in decls if not (isinstance(d, Record) and d.name in typed)]


def parse_hrl_file(decls: list[HostDeclaration], macros: MacroTable, st: MacroState,
                   legacy_records: bool = False) -> tuple[list[SExpression], MacroState]:
    """All the forms of a translated header, attributes first in one extend-module."""
    if legacy_records:
        # Keep only the typed definition of a record that has both.
        decls = delete_typed_record_defs(decls, typed_record_attrs(decls))
    attrs, forms, st = trans_forms(decls, st)
    lmacros, st = trans_macros(macros, st)
    return [[Symbol("extend-module"), [], attrs], *forms, *lmacros], st
