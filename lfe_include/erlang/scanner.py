"""
  Erlang token scanner

Produces the flat token list the preprocessor and parser work on. Every token
is a ``Token(kind, value, line)``:

    - atoms            -> ("atom", name)        quoted atoms included
    - variables        -> ("var", name)
    - integers/floats  -> ("integer", int) / ("float", float)
    - characters       -> ("char", codepoint)
    - strings          -> ("string", str)
    - reserved words   -> (word, word)          e.g. ("case", "case")
    - punctuation      -> (text, text)          e.g. ("->", "->")
    - form terminator  -> ("dot", ".")
"""

from __future__ import annotations

import math
import re
from typing import NamedTuple

from lfe_include.errors import ErlangSyntaxError


class Token(NamedTuple):
    kind: str
    value: object
    line: int


RESERVED_WORDS = frozenset({
    "after", "and", "andalso", "band", "begin", "bnot", "bor", "bsl", "bsr",
    "bxor", "case", "catch", "cond", "div", "end", "fun", "if", "let", "not",
    "of", "or", "orelse", "receive", "rem", "try", "when", "xor", "maybe", "else",
})

# Longest first.
PUNCTUATION = (
    "=:=", "=/=", "...", "<<", ">>", "<-", "<=", "=>", ":=", "->", "||",
    "==", "/=", "=<", ">=", "++", "--", "::", "..", "?=",
    "(", ")", "[", "]", "{", "}", ",", ";", ":", "|", "=", "<", ">",
    "+", "-", "*", "/", "#", "?", "!", ".",
)

TOKEN_RE = re.compile(
    r"(?P<space>\s+)"
    r"|(?P<comment>%[^\n]*)"
    r"|(?P<float>\d[\d_]*\.\d[\d_]*(?:[eE][+-]?\d+)?)"
    r"|(?P<based>\d+#[0-9a-zA-Z_]+)"
    r"|(?P<integer>\d[\d_]*)"
    r"|(?P<char>\$(?:\\(?:[0-7]{1,3}|x\{[0-9a-fA-F]+\}|x[0-9a-fA-F]{2}|\^.|.)|.))"
    r'|(?P<string>"(?:\\.|[^\\"])*")'
    r"|(?P<qatom>'(?:\\.|[^\\'])*')"
    r"|(?P<var>[A-Z_][A-Za-z0-9_@]*)"
    r"|(?P<atom>[a-z\u00df-\u00f6\u00f8-\u00ff][A-Za-z0-9_@\u00c0-\u00ff]*)"
    r"|(?P<dot>\.(?=\s|%|$))"
    r"|(?P<punct>" + "|".join(re.escape(p) for p in PUNCTUATION) + r")",
    re.DOTALL,
)

ESCAPES: dict[str, str] = {
    "n": "\n", "r": "\r", "t": "\t", "v": "\v", "b": "\b", "f": "\f",
    "e": "\x1b", "s": " ", "d": "\x7f",
}

ESCAPE_RE = re.compile(
    r"\\(?:(?P<oct>[0-7]{1,3})|x\{(?P<hexb>[0-9a-fA-F]+)\}|x(?P<hex>[0-9a-fA-F]{2})"
    r"|\^(?P<ctrl>.)|(?P<other>.))",
    re.DOTALL,
)


def unescape(body: str) -> str:
    def _sub(m: re.Match) -> str:
        if m.group("oct"):
            return chr(int(m.group("oct"), 8))
        if m.group("hexb"):
            return chr(int(m.group("hexb"), 16))
        if m.group("hex"):
            return chr(int(m.group("hex"), 16))
        if m.group("ctrl"):
            return chr(ord(m.group("ctrl")) & 0x1F)
        ch = m.group("other")
        return ESCAPES.get(ch, ch)

    return ESCAPE_RE.sub(_sub, body)


def _integer(text: str) -> int:
    return int(text.replace("_", ""))


def _based(text: str, line: int) -> int:
    base, digits = text.split("#", 1)
    try:
        return int(digits.replace("_", ""), int(base))
    except ValueError:
        raise ErlangSyntaxError(("illegal_integer", text), line)


def _float(text: str, line: int) -> float:
    value = float(text.replace("_", ""))
    if math.isinf(value):
        raise ErlangSyntaxError(("illegal_float", text), line)
    return value


def scan(source: str, line: int = 1) -> list[Token]:
    """Scan Erlang source into tokens, tracking line numbers."""
    tokens: list[Token] = []
    pos = 0
    n = len(source)
    while pos < n:
        m = TOKEN_RE.match(source, pos)
        if not m:
            raise ErlangSyntaxError(("illegal_char", source[pos]), line)
        kind = m.lastgroup
        text = m.group(kind)
        if kind == "space" or kind == "comment":
            pass
        elif kind == "float":
            tokens.append(Token("float", _float(text, line), line))
        elif kind == "based":
            tokens.append(Token("integer", _based(text, line), line))
        elif kind == "integer":
            tokens.append(Token("integer", _integer(text), line))
        elif kind == "char":
            tokens.append(Token("char", ord(unescape(text[1:])), line))
        elif kind == "string":
            tokens.append(Token("string", unescape(text[1:-1]), line))
        elif kind == "qatom":
            tokens.append(Token("atom", unescape(text[1:-1]), line))
        elif kind == "var":
            tokens.append(Token("var", text, line))
        elif kind == "atom":
            k = text if text in RESERVED_WORDS else "atom"
            tokens.append(Token(k, text, line))
        elif kind == "dot":
            tokens.append(Token("dot", ".", line))
        else:
            tokens.append(Token(text, text, line))
        line += text.count("\n")
        pos = m.end()
    return tokens


ATOM_RE = re.compile(r"[a-z][A-Za-z0-9_@]*\Z")


def atom_text(name: str) -> str:
    if ATOM_RE.match(name) and name not in RESERVED_WORDS:
        return name
    return "'" + name.replace("\\", "\\\\").replace("'", "\\'") + "'"


def string_text(s: str) -> str:
    out = []
    for ch in s:
        if ch == '"' or ch == "\\":
            out.append("\\" + ch)
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 32:
            out.append(f"\\x{{{ord(ch):X}}}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def token_text(tok: Token) -> str:
    """Source text of a single token, as ``??Arg`` stringification needs it."""
    if tok.kind == "atom":
        return atom_text(tok.value)
    if tok.kind == "string":
        return string_text(tok.value)
    if tok.kind == "char":
        ch = chr(tok.value)
        return "$" + (ch if 32 < tok.value < 127 and ch != "\\" else f"\\x{{{tok.value:X}}}")
    if tok.kind in ("integer", "float"):
        return repr(tok.value)
    return str(tok.value)


def tokens_text(tokens) -> str:
    """Join tokens the way the preprocessor stringifies macro arguments."""
    return " ".join(token_text(t) for t in tokens)
