"""Erlang preprocessor for header files.

Reads a header, handles ``-define``/``-undef``, ``-ifdef``/``-ifndef``/
``-else``/``-endif`` and nested ``-include``/``-include_lib``, expands macro
calls inside ordinary forms and parses them into host declarations. The macro
table is kept in its raw, unexpanded token form so it can be translated
separately.

Problems inside a form never raise: the form is replaced by a ``ParseError``
declaration carrying a ``Diagnostic`` with origin ``"epp"``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from lfe_include.errors import ErlangSyntaxError, NoLibraryError
from lfe_include.erlang.parser import END_OPENERS, parse_form
from lfe_include.erlang.scanner import Token, scan, tokens_text
from lfe_include.modules.search import lib_file_name, path_find
from lfe_include.types.host import (
    NO_ARGS,
    PREDEFINED,
    UNDEFINED,
    Attribute,
    Eof,
    HostDeclaration,
    MacroDefinition,
    MacroTable,
    ParseError,
    Record,
    Type,
)
from lfe_include.types.state import Diagnostic


PREDEFINED_MACROS = (
    "FILE", "LINE", "MODULE", "MODULE_STRING", "MACHINE",
    "FUNCTION_NAME", "FUNCTION_ARITY", "OTP_RELEASE",
)
OTP_RELEASE = 27
MAX_EXPANSION_DEPTH = 100
MAX_INCLUDE_DEPTH = 40

DIRECTIVES = frozenset({
    "define", "undef", "ifdef", "ifndef", "else", "endif", "if", "elif",
    "include", "include_lib",
})

OPENERS = frozenset({"(", "[", "{", "<<"}) | END_OPENERS
CLOSERS = frozenset({")", "]", "}", ">>", "end"})


def format_error(reason: tuple) -> str:
    kind, *args = reason
    messages = {
        "illegal_char": lambda c: f"illegal character {c!r}",
        "illegal_integer": lambda t: f"illegal integer {t}",
        "illegal_float": lambda t: f"illegal float {t}",
        "premature_end": lambda: "premature end",
        "expected": lambda k, f: f"syntax error before: {f} (expected {k})",
        "unexpected": lambda v: f"syntax error before: {v}",
        "bad_attribute": lambda v: f"bad attribute {v}",
        "bad_attribute_value": lambda: "bad attribute value",
        "bad_record_field": lambda v: f"bad record field {v}",
        "bad_fun_name": lambda v: f"head mismatch in named fun {v}",
        "bad_function_clause": lambda v: f"head mismatch {v}",
        "bad_arity": lambda n: f"clauses of {n} have different arities",
        "bad_macro": lambda: "bad macro call",
        "bad_directive": lambda d: f"badly formed '{d}'",
        "undefined": lambda n, a: f"undefined macro '{n}'" if a is NO_ARGS else f"undefined macro '{n}/{a}'",
        "arg_error": lambda n: f"badly formed argument for macro '{n}'",
        "macro_depth": lambda n: f"macro '{n}' expands too deeply",
        "redefine_predef": lambda n: f"redefining predefined macro '{n}'",
        "include": lambda k, n: f"can't find include {k} \"{n}\"",
        "include_depth": lambda n: f"include depth exceeded at \"{n}\"",
        "file_error": lambda n, m: f"can't read \"{n}\": {m}",
        "unbalanced": lambda d: f"'{d}' without matching conditional",
        "unterminated": lambda: "unterminated conditional",
        "unsupported_directive": lambda d: f"unsupported directive '{d}'",
    }
    fmt = messages.get(kind)
    if fmt is None:
        return str(reason)
    return fmt(*args)


def split_forms(tokens: list[Token]) -> tuple[list[list[Token]], list[Token]]:
    """Cut a token list at ``dot`` tokens; returns the forms and any trailing rest."""
    forms: list[list[Token]] = []
    current: list[Token] = []
    for tok in tokens:
        current.append(tok)
        if tok.kind == "dot":
            forms.append(current)
            current = []
    return forms, current


def macro_args(tokens: list[Token], i: int, name: str) -> tuple[list[list[Token]], int]:
    """Split the parenthesised arguments starting at ``tokens[i]``.

    Returns the argument token lists and the index after the closing paren.
    """
    line = tokens[i].line
    args: list[list[Token]] = []
    current: list[Token] = []
    depth = 0
    i += 1
    while i < len(tokens):
        tok = tokens[i]
        kind = tok.kind
        if depth == 0 and kind == ")":
            if current or args:
                args.append(current)
            return args, i + 1
        if depth == 0 and kind == ",":
            args.append(current)
            current = []
        else:
            if kind in OPENERS or (kind == "fun" and i + 1 < len(tokens) and tokens[i + 1].kind == "("):
                depth += 1
            elif kind in CLOSERS:
                depth -= 1
                if depth < 0:
                    break
            current.append(tok)
        i += 1
    raise ErlangSyntaxError(("arg_error", name), line)


class Epp:
    def __init__(self, path: Path, include_path: Iterable[Path] = (), legacy_records: bool = False):
        self.file = Path(path)
        self.include_path = [Path(p) for p in include_path]
        self.legacy_records = legacy_records
        self.macros: MacroTable = {name: PREDEFINED for name in PREDEFINED_MACROS}
        self.module: Optional[str] = None
        self.current_file = self.file
        self.function: Optional[tuple[str, int]] = None
        self.last_line = 1

    # ------------------------
    # Files
    # ------------------------

    def parse_file(self) -> list[HostDeclaration]:
        text = self.file.read_text(encoding="utf-8")
        decls = self._parse_text(text, self.file, 0)
        decls.append(Eof(self.last_line))
        return decls

    def _parse_text(self, text: str, path: Path, depth: int) -> list[HostDeclaration]:
        saved, self.current_file = self.current_file, path
        try:
            try:
                tokens = scan(text)
            except ErlangSyntaxError as e:
                return [self._error(e.line, e.reason)]
            if tokens:
                self.last_line = max(self.last_line, tokens[-1].line)
            forms, rest = split_forms(tokens)
            decls = self._parse_forms(forms, depth)
            if rest:
                decls.append(self._error(rest[-1].line, ("premature_end",)))
            return decls
        finally:
            self.current_file = saved

    def _error(self, line: int, reason: tuple) -> ParseError:
        return ParseError(line, Diagnostic(line, "epp", reason))

    def _parse_forms(self, forms: list[list[Token]], depth: int) -> list[HostDeclaration]:
        decls: list[HostDeclaration] = []
        # One entry per open conditional: (active, parent_active)
        conds: list[tuple[bool, bool]] = []
        for form in forms:
            active = all(a for a, _ in conds)
            line = form[0].line
            if self._is_directive(form):
                directive = form[1].value
                try:
                    decls.extend(self._directive(directive, form, conds, active, depth))
                except ErlangSyntaxError as e:
                    decls.append(self._error(e.line or line, e.reason))
                continue
            if not active:
                continue
            try:
                decls.extend(self._form(form))
            except ErlangSyntaxError as e:
                decls.append(self._error(e.line or line, e.reason))
        if conds:
            decls.append(self._error(self.last_line, ("unterminated",)))
        return decls

    @staticmethod
    def _is_directive(form: list[Token]) -> bool:
        return (len(form) > 2 and form[0].kind == "-"
                and form[1].kind in ("atom", "if", "else")
                and form[1].value in DIRECTIVES)

    # ------------------------
    # Directives
    # ------------------------

    def _directive(self, directive: str, form: list[Token], conds: list, active: bool,
                   depth: int) -> list[HostDeclaration]:
        line = form[0].line
        if directive in ("ifdef", "ifndef"):
            name = self._directive_name(form, directive)
            defined = self._is_defined(name)
            conds.append((defined if directive == "ifdef" else not defined, active))
            return []
        if directive == "if":
            conds.append((False, active))
            raise ErlangSyntaxError(("unsupported_directive", directive), line)
        if directive == "elif":
            raise ErlangSyntaxError(("unsupported_directive", directive), line)
        if directive == "else":
            if not conds:
                raise ErlangSyntaxError(("unbalanced", directive), line)
            cur, parent = conds[-1]
            conds[-1] = (not cur, parent)
            return []
        if directive == "endif":
            if not conds:
                raise ErlangSyntaxError(("unbalanced", directive), line)
            conds.pop()
            return []
        if not active:
            return []
        if directive == "define":
            self._define(form)
            return []
        if directive == "undef":
            name = self._directive_name(form, directive)
            if self.macros.get(name) is PREDEFINED:
                raise ErlangSyntaxError(("redefine_predef", name), line)
            self.macros[name] = UNDEFINED
            return []
        return self._include(directive, form, depth)

    @staticmethod
    def _directive_name(form: list[Token], directive: str) -> str:
        if (len(form) == 6 and form[2].kind == "(" and form[3].kind in ("atom", "var")
                and form[4].kind == ")"):
            return form[3].value
        raise ErlangSyntaxError(("bad_directive", directive), form[0].line)

    def _is_defined(self, name: str) -> bool:
        entry = self.macros.get(name)
        if entry is PREDEFINED:
            return self._predefined(name, 0) is not None
        return isinstance(entry, dict)

    def _define(self, form: list[Token]) -> None:
        line = form[0].line
        if len(form) < 6 or form[2].kind != "(" or form[3].kind not in ("atom", "var"):
            raise ErlangSyntaxError(("bad_directive", "define"), line)
        name = form[3].value
        i = 4
        params: Optional[list[str]] = None
        if form[i].kind == "(":
            params = []
            i += 1
            while form[i].kind != ")":
                if form[i].kind != "var":
                    raise ErlangSyntaxError(("bad_directive", "define"), form[i].line)
                params.append(form[i].value)
                i += 1
                if form[i].kind == ",":
                    i += 1
            i += 1
        if form[i].kind != "," or form[-2].kind != ")":
            raise ErlangSyntaxError(("bad_directive", "define"), line)
        body = tuple(form[i + 1:-2])
        entry = self.macros.get(name)
        if entry is PREDEFINED:
            raise ErlangSyntaxError(("redefine_predef", name), line)
        if not isinstance(entry, dict):
            entry = self.macros[name] = {}
        arity = NO_ARGS if params is None else len(params)
        # A later definition with the same arity shadows the earlier one.
        entry[arity] = MacroDefinition(tuple(params or ()), body)

    def _include(self, directive: str, form: list[Token], depth: int) -> list[HostDeclaration]:
        line = form[0].line
        if not (len(form) == 6 and form[2].kind == "(" and form[3].kind == "string" and form[4].kind == ")"):
            raise ErlangSyntaxError(("bad_directive", directive), line)
        name = form[3].value
        kind = "lib" if directive == "include_lib" else "file"
        if depth >= MAX_INCLUDE_DEPTH:
            raise ErlangSyntaxError(("include_depth", name), line)
        search = [self.current_file.parent] + self.include_path
        found = path_find(search, name)
        if found is None and directive == "include_lib":
            try:
                candidate = lib_file_name(name)
            except NoLibraryError:
                candidate = None
            if candidate is not None and candidate.is_file():
                found = candidate
        if found is None:
            raise ErlangSyntaxError(("include", kind, name), line)
        logger.debug("epp: including {}", found)
        try:
            text = found.read_text(encoding="utf-8")
        except OSError as e:
            raise ErlangSyntaxError(("file_error", str(found), e.strerror or str(e)), line)
        return self._parse_text(text, found, depth + 1)

    # ------------------------
    # Ordinary forms
    # ------------------------

    def _form(self, form: list[Token]) -> list[HostDeclaration]:
        self.function = None
        if len(form) > 1 and form[0].kind == "atom" and form[1].kind == "(":
            args, _ = macro_args(form, 1, form[0].value)
            self.function = (form[0].value, len(args))
        tokens = self.expand(form)
        decl = parse_form(tokens)
        if isinstance(decl, Attribute) and decl.name == "module" and decl.value[0] == "atom":
            self.module = decl.value[2]
        if isinstance(decl, Record) and self.legacy_records:
            return self._legacy_record(decl)
        return [decl]

    def _legacy_record(self, rec: Record) -> list[HostDeclaration]:
        # Older compilers kept the bare record and put the typed fields in a type attribute.
        if not any(f[0] == "typed_record_field" for f in rec.fields):
            return [rec]
        bare = tuple(f[1] if f[0] == "typed_record_field" else f for f in rec.fields)
        return [Record(rec.line, rec.name, bare),
                Type(rec.line, ("record", rec.name), (), rec.fields)]

    # ------------------------
    # Macro expansion
    # ------------------------

    def expand(self, tokens: list[Token], depth: int = 0) -> list[Token]:
        out: list[Token] = []
        i = 0
        n = len(tokens)
        while i < n:
            tok = tokens[i]
            if tok.kind != "?":
                out.append(tok)
                i += 1
                continue
            if i + 1 >= n or tokens[i + 1].kind not in ("atom", "var"):
                raise ErlangSyntaxError(("bad_macro",), tok.line)
            name = tokens[i + 1].value
            if depth >= MAX_EXPANSION_DEPTH:
                raise ErlangSyntaxError(("macro_depth", name), tok.line)
            i += 2
            args = None
            after = i
            if i < n and tokens[i].kind == "(":
                args, after = macro_args(tokens, i, name)
            body, used_args = self._expand_macro(name, args, tok.line)
            if used_args:
                i = after
            out.extend(self.expand(body, depth + 1))
        return out

    def _expand_macro(self, name: str, args: Optional[list[list[Token]]],
                      line: int) -> tuple[list[Token], bool]:
        entry = self.macros.get(name)
        if entry is PREDEFINED:
            value = self._predefined(name, line)
            if value is not None:
                return [value], False
        if not isinstance(entry, dict):
            raise ErlangSyntaxError(("undefined", name, NO_ARGS if args is None else len(args)), line)
        if args is not None and len(args) in entry:
            return self._substitute(entry[len(args)], args, line), True
        if NO_ARGS in entry:
            return self._substitute(entry[NO_ARGS], [], line), False
        raise ErlangSyntaxError(("undefined", name, NO_ARGS if args is None else len(args)), line)

    def _substitute(self, definition, args: list[list[Token]], line: int) -> list[Token]:
        bindings = dict(zip(definition.params, args))
        body = definition.tokens
        out: list[Token] = []
        i = 0
        while i < len(body):
            tok = body[i]
            if (tok.kind == "?" and i + 2 < len(body) and body[i + 1].kind == "?"
                    and body[i + 2].kind == "var" and body[i + 2].value in bindings):
                text = tokens_text(bindings[body[i + 2].value])
                out.append(Token("string", text, line))
                i += 3
                continue
            if tok.kind == "var" and tok.value in bindings:
                out.extend(bindings[tok.value])
            else:
                out.append(tok._replace(line=line))
            i += 1
        return out

    def _predefined(self, name: str, line: int) -> Optional[Token]:
        if name == "FILE":
            return Token("string", str(self.current_file), line)
        if name == "LINE":
            return Token("integer", line, line)
        if name == "MACHINE":
            return Token("atom", "BEAM", line)
        if name == "OTP_RELEASE":
            return Token("integer", OTP_RELEASE, line)
        if name == "MODULE" and self.module is not None:
            return Token("atom", self.module, line)
        if name == "MODULE_STRING" and self.module is not None:
            return Token("string", self.module, line)
        if name == "FUNCTION_NAME" and self.function is not None:
            return Token("atom", self.function[0], line)
        if name == "FUNCTION_ARITY" and self.function is not None:
            return Token("integer", self.function[1], line)
        return None

    def macro_defs(self) -> MacroTable:
        return {name: (dict(entry) if isinstance(entry, dict) else entry)
                for name, entry in self.macros.items()}


def parse_file(path, include_path: Iterable[Path] = (),
               legacy_records: bool = False) -> tuple[list[HostDeclaration], MacroTable]:
    """Read a header: returns its declarations and its raw macro table.

    Raises OSError when the file itself cannot be read.
    """
    epp = Epp(Path(path), include_path, legacy_records)
    decls = epp.parse_file()
    return decls, epp.macro_defs()
