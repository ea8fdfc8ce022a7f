"""
  Include entry points

``file`` and ``lib`` expand ``(include-file "name")`` and
``(include-lib "name")``. The named file is found on the state's include
path; a ``.hrl`` header is translated declaration by declaration and macro by
macro, anything else is read as LFE source. The result is one
``(progn ...)`` form, or None with the reason recorded in the state.

``lib`` first tries the include path like ``file`` and then treats the first
path segment as a library name, as in ``"kernel/include/file.hrl"``.
"""

from __future__ import annotations

from pathlib import Path
from typing import NamedTuple, Optional

from loguru import logger

from lfe_include import SExpression, stringify
from lfe_include.config import legacy_records_enabled
from lfe_include.declarations import parse_hrl_file
from lfe_include.errors import LfeSyntaxError, NoLibraryError
from lfe_include.erlang import epp
from lfe_include.modules.search import lib_file_name, path_find
from lfe_include.reader import parser as reader
from lfe_include.types.forms import Symbol
from lfe_include.types.host import NO_ARGS, HostDeclaration, MacroTable
from lfe_include.types.state import Diagnostic, MacroState

HRL_SUFFIX = ".hrl"
PROGN = Symbol("progn")

__all__ = [
    "IncludeResult", "file", "lib", "format_error", "format_diagnostic",
    "include_name", "read_file", "read_hrl_file", "read_hrl_file_1", "stringify",
]


class IncludeResult(NamedTuple):
    # (progn ...) on success, None when the include failed.
    form: Optional[SExpression]
    state: MacroState

    @property
    def ok(self) -> bool:
        return self.form is not None


def format_error(reason: tuple) -> str:
    kind, *args = reason
    match kind:
        case "bad_form":
            return f"bad {args[0]} form"
        case "no_include":
            return f"can't find include {args[0]} {args[1]}"
        case "notrans_function":
            return f"unable to translate function {args[0]}/{args[1]}"
        case "notrans_record":
            return f"unable to translate record {args[0]}"
        case "notrans_type":
            return f"unable to translate type {args[0]}"
        case "notrans_spec":
            return f"unable to translate spec {args[0]}/{args[1]}"
        case "notrans_attribute":
            return f"unable to translate attribute {args[0]}"
        case "notrans_macro":
            name, arity = args
            return f"unable to translate macro {name}" if arity is NO_ARGS \
                else f"unable to translate macro {name}/{arity}"
        case "file_error":
            return f"{args[0]}: {args[1]}"
        case "lfe_syntax":
            return f"{args[0]}: {args[1]}"
    return str(reason)


def format_diagnostic(d: Diagnostic) -> str:
    """``line: message``, rendered by the module the diagnostic came from."""
    fmt = epp.format_error if d.origin == "epp" else format_error
    return f"{d.line}: {fmt(d.reason)}"


def include_name(name) -> Optional[str]:
    """The file name carried by an include form: a string, binary or (deep) char list."""
    if isinstance(name, str):
        return name
    if isinstance(name, (bytes, bytearray)):
        try:
            return bytes(name).decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(name, list):
        parts = []
        for item in name:
            if isinstance(item, bool):
                return None
            if isinstance(item, int):
                if not 0 <= item <= 0x10FFFF:
                    return None
                parts.append(chr(item))
                continue
            sub = include_name(item)
            if sub is None:
                return None
            parts.append(sub)
        return "".join(parts)
    return None


# ------------------------
# Entry points
# ------------------------

def file(inc_file, env, st: MacroState) -> IncludeResult:
    """Expand ``(include-file inc_file)``."""
    name = include_name(inc_file)
    if name is None:
        return IncludeResult(None, st.add_error(("bad_form", "include-file")))
    found = path_find(st.ipath, name)
    if found is None:
        return IncludeResult(None, st.add_error(("no_include", "file", name)))
    return _progn(*read_file(found, st))


def lib(inc_file, env, st: MacroState) -> IncludeResult:
    """Expand ``(include-lib inc_file)``, falling back to the library directory."""
    name = include_name(inc_file)
    if name is None:
        return IncludeResult(None, st.add_error(("bad_form", "include-lib")))
    found = path_find(st.ipath, name)
    if found is None:
        try:
            found = lib_file_name(name)
        except NoLibraryError as e:
            logger.debug("include-lib {}: {}", name, e)
            return IncludeResult(None, st.add_error(("no_include", "lib", name)))
        logger.debug("include-lib {} remapped to {}", name, found)
    return _progn(*read_file(found, st))


def _progn(forms: Optional[list], st: MacroState) -> IncludeResult:
    if forms is None:
        return IncludeResult(None, st)
    return IncludeResult([PROGN, *forms], st)


# ------------------------
# Reading files
# ------------------------

def read_file(path, st: MacroState) -> tuple[Optional[list[SExpression]], MacroState]:
    """Forms of one include file, routed by its suffix."""
    if str(path).endswith(HRL_SUFFIX):
        return read_hrl_file(path, st)
    return read_lfe_file(path, st)


def read_lfe_file(path, st: MacroState) -> tuple[Optional[list[SExpression]], MacroState]:
    try:
        return reader.read_file(path), st
    except OSError as e:
        return None, st.add_error(("file_error", str(path), e.strerror or str(e)))
    except LfeSyntaxError as e:
        return None, st.add_error(("lfe_syntax", str(path), str(e)))


def read_hrl_file(path, st: MacroState,
                  legacy_records: Optional[bool] = None) -> tuple[Optional[list[SExpression]], MacroState]:
    """Translate an Erlang header. Fails when it can't be read or holds parse errors."""
    if legacy_records is None:
        legacy_records = legacy_records_enabled()
    try:
        decls, macros = epp.parse_file(path, st.ipath, legacy_records)
    except OSError as e:
        return None, st.add_error(("file_error", str(path), e.strerror or str(e)))
    logger.debug("{}: {} declarations, {} macros", path, len(decls), len(macros))
    errors_before = len(st.errors)
    forms, st = parse_hrl_file(decls, macros, st, legacy_records)
    if len(st.errors) > errors_before:
        return None, st
    return forms, st


def read_hrl_file_1(path, include_path=(),
                    legacy_records: bool = False) -> tuple[list[HostDeclaration], MacroTable]:
    """The raw declarations and macro table of a header, for inspection."""
    return epp.parse_file(Path(path), include_path, legacy_records)
