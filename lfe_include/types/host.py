"""Erlang header declarations and macro tables, as handed over by the preprocessor.

Each declaration keeps its sub-trees in Erlang abstract format (tagged tuples,
see ``lfe_include.erlang.parser``); nothing here is LFE yet.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from lfe_include import ErlNode
from lfe_include.erlang.scanner import Token
from lfe_include.types.state import Diagnostic


@dataclass(frozen=True)
class Record:
    line: int
    name: str
    # ("record_field", L, Name[, Default]) or ("typed_record_field", RecordField, Type)
    fields: tuple[ErlNode, ...]


@dataclass(frozen=True)
class Type:
    line: int
    # A type name, or ("record", Name) for the legacy typed-record encoding.
    name: Union[str, tuple[str, str]]
    params: tuple[ErlNode, ...]
    definition: Union[ErlNode, tuple[ErlNode, ...]]


@dataclass(frozen=True)
class Opaque:
    line: int
    name: str
    params: tuple[ErlNode, ...]
    definition: ErlNode


@dataclass(frozen=True)
class Spec:
    line: int
    function: str
    arity: int
    types: tuple[ErlNode, ...]


@dataclass(frozen=True)
class Export:
    line: int
    functions: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class Import:
    line: int
    module: str
    functions: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class Attribute:
    line: int
    name: str
    value: ErlNode


@dataclass(frozen=True)
class Function:
    line: int
    name: str
    arity: int
    clauses: tuple[ErlNode, ...]


@dataclass(frozen=True)
class ParseError:
    line: int
    payload: Diagnostic


@dataclass(frozen=True)
class Eof:
    line: int


HostDeclaration = Union[
    Record, Type, Opaque, Spec, Export, Import, Attribute, Function, ParseError, Eof
]


class _Marker:
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return self.name


# Arity of a macro defined without parentheses: -define(FOO, 42).
NO_ARGS = _Marker("NO_ARGS")
# Built in to the preprocessor, no body to translate.
PREDEFINED = _Marker("PREDEFINED")
# Removed again with -undef.
UNDEFINED = _Marker("UNDEFINED")

MacroArity = Union[int, _Marker]


@dataclass(frozen=True)
class MacroDefinition:
    params: tuple[str, ...]
    tokens: tuple[Token, ...]


# name -> UNDEFINED | PREDEFINED | {arity: MacroDefinition}
MacroEntry = Union[_Marker, dict[MacroArity, Union[MacroDefinition, _Marker]]]
MacroTable = dict[str, MacroEntry]
