"""
  LFE printer

Prints forms in LFE read syntax, so that reading the text back gives an equal
form. ``stringify`` is also the function translated ``??Arg`` macro bodies
call, as ``(call 'lfe_include 'stringify (quote Arg))``.
"""

from __future__ import annotations

import re

from lfe_include import SExpression
from lfe_include.types.forms import BACKQUOTE, COMMA, COMMA_AT, QUOTE, Cons, Symbol


QUOTE_PREFIXES = {QUOTE: "'", BACKQUOTE: "`", COMMA: ",", COMMA_AT: ",@"}

# Symbol names the reader would take for something else.
NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)\Z")
SYMBOL_SPECIALS = frozenset(" \t\n\r\f\v()[]{}\"';`,|\\")

STRING_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}


def print_symbol(name: str) -> str:
    if (not name or name == "." or name[0] == "#" or NUMBER_RE.match(name)
            or any(c in SYMBOL_SPECIALS or not c.isprintable() for c in name)):
        escaped = name.replace("\\", "\\\\").replace("|", "\\|")
        return f"|{escaped}|"
    return name


def print_string(s: str) -> str:
    out = []
    for ch in s:
        if ch in STRING_ESCAPES:
            out.append(STRING_ESCAPES[ch])
        elif not ch.isprintable():
            out.append(f"\\x{ord(ch):x};")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def print_binary(b: bytes) -> str:
    if all(32 <= c < 127 for c in b):
        return "#" + print_string(b.decode("ascii"))
    return "#B(" + " ".join(str(c) for c in b) + ")"


def print1(form: SExpression) -> str:
    """Text of one form, flattened to a single string."""
    if isinstance(form, Symbol):
        return print_symbol(form.id)
    if isinstance(form, (int, float)):
        return repr(form)
    if isinstance(form, str):
        return print_string(form)
    if isinstance(form, list):
        if len(form) == 2 and isinstance(form[0], Symbol) and form[0] in QUOTE_PREFIXES:
            inner = print1(form[1])
            if form[0] == COMMA and inner.startswith("@"):
                # Keep ,|@x| from reading back as ,@x
                return ", " + inner
            return QUOTE_PREFIXES[form[0]] + inner
        return "(" + " ".join(print1(f) for f in form) + ")"
    if isinstance(form, Cons):
        items = " ".join(print1(f) for f in form.items)
        return f"({items} . {print1(form.tail)})"
    if isinstance(form, tuple):
        return "#(" + " ".join(print1(f) for f in form) + ")"
    if isinstance(form, (bytes, bytearray)):
        return print_binary(bytes(form))
    if isinstance(form, dict):
        return "#M(" + " ".join(f"{print1(k)} {print1(v)}" for k, v in form.items()) + ")"
    return repr(form)


def stringify(form: SExpression) -> str:
    """Returns a string which when read gives back ``form``."""
    return print1(form)
