"""
  LFE Reader, Lexer and Parser

- Streaming, lazy parsing
- Emits the same plain values the translators build:

    - symbols -> Symbol, |quoted symbols| included
    - lists -> Python list, ( ) and [ ] alike
    - dotted lists -> Cons(items, tail)
    - tuples #( ) -> tuple
    - maps #M( ) -> dict
    - binaries #B( ) and #"..." -> bytes
    - strings -> str
    - characters #\\a -> int
    - numbers -> int/float, #x #b #o radix integers
    - quote forms -> [quote, expr], [backquote, expr], [comma, expr], [comma-at, expr]
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, Optional

from lfe_include import SExpression
from lfe_include.errors import LfeSyntaxError
from lfe_include.printer import NUMBER_RE
from lfe_include.types.forms import BACKQUOTE, COMMA, COMMA_AT, QUOTE, Symbol, cons


TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<comment>;[^\n]*)"  # single-line comment
    r"|(?P<ml_start>#\|)"  # multi-line comment start
    r"|(?P<quote>[\'`])"  # ' and `
    r"|(?P<unquote>,@|,)"  # , and ,@
    r"|(?P<lparen>\()"  # (
    r"|(?P<rparen>\))"  # )
    r"|(?P<lbracket>\[)"  # [
    r"|(?P<rbracket>\])"  # ]
    r"|(?P<tuple>#\()"  # tuple
    r"|(?P<map>#[mM]\()"  # map
    r"|(?P<binary>#[bB]\()"  # binary of byte values
    r'|(?P<binstring>#"(?:\\.|[^\\"])*")'  # binary string
    r'|(?P<string>"(?:\\.|[^\\"])*")'  # double-quoted strings
    r"|(?P<char>#\\(?:x[0-9a-fA-F]+;|.))"  # character literals
    r"|(?P<radix>#[bB][01]+|#[oO][0-7]+|#[xX][0-9A-Fa-f]+)"  # binary, octal, hex
    r"|(?P<qsymbol>\|(?:\\.|[^\\|])*\|)"  # |quoted symbol|
    r"|(?P<symbol>[^\s()\[\]{}\"';`,|]+)"  # fallback: symbols and numbers
    r")",
    re.DOTALL,
)

QUOTE_FORMS = {"'": QUOTE, "`": BACKQUOTE, ",": COMMA, ",@": COMMA_AT}

STRING_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "e": "\x1b",
    "s": " ",
    "d": "\x7f",
    "v": "\v",
}

ESCAPE_RE = re.compile(r"\\(?:x(?P<hex>[0-9a-fA-F]+);|(?P<other>.))", re.DOTALL)

CLOSERS = {"lparen": "rparen", "lbracket": "rbracket"}


def unescape(body: str) -> str:
    def _sub(m: re.Match) -> str:
        if m.group("hex"):
            return chr(int(m.group("hex"), 16))
        ch = m.group("other")
        return STRING_ESCAPES.get(ch, ch)

    return ESCAPE_RE.sub(_sub, body)


def lex(source: str) -> Iterator[tuple[str, str]]:
    """Token generator: yields (token_type, token_value) tuples."""
    pos = 0
    n = len(source)
    while pos < n:
        m = TOKEN_RE.match(source, pos)
        if not m:
            if source[pos:].strip() == "":
                return
            raise LfeSyntaxError(f"Unexpected char at {pos}: {source[pos]!r}")
        kind = m.lastgroup
        pos = m.end()
        if kind == "comment":
            continue
        if kind == "ml_start":
            depth = 1
            while depth > 0:
                if pos >= n:
                    raise LfeSyntaxError("Unterminated multi-line comment")
                if source.startswith("#|", pos):
                    depth += 1
                    pos += 2
                elif source.startswith("|#", pos):
                    depth -= 1
                    pos += 2
                else:
                    pos += 1
            continue
        yield kind, m.group(kind)


class TokenStream:
    def __init__(self, token_iter: Iterator[tuple[str, str]]):
        self.tokens = iter(token_iter)
        self.buffer: list[tuple[str, str]] = []

    def peek(self) -> tuple[Optional[str], Optional[str]]:
        if not self.buffer:
            try:
                self.buffer.append(next(self.tokens))
            except StopIteration:
                return None, None
        return self.buffer[0]

    def advance(self) -> tuple[Optional[str], Optional[str]]:
        if self.buffer:
            return self.buffer.pop(0)
        return next(self.tokens, (None, None))

    def _items(self, closer: str, what: str) -> list[SExpression]:
        items = []
        while True:
            tok_type, _ = self.peek()
            if tok_type is None:
                raise LfeSyntaxError(f"Unexpected EOF while reading {what}")
            if tok_type == closer:
                self.advance()
                return items
            items.append(self.parse_expr())

    def parse_expr(self) -> SExpression:
        tok_type, tok_val = self.peek()
        if tok_type is None:
            raise LfeSyntaxError("Unexpected EOF")
        self.advance()

        if tok_type == "symbol":
            if NUMBER_RE.match(tok_val):
                try:
                    return int(tok_val)
                except ValueError:
                    return float(tok_val)
            return Symbol(tok_val)

        if tok_type == "qsymbol":
            return Symbol(re.sub(r"\\(.)", r"\1", tok_val[1:-1], flags=re.DOTALL))

        # Quote forms
        if tok_type in ("quote", "unquote"):
            return [QUOTE_FORMS[tok_val], self.parse_expr()]

        # List or dotted list
        if tok_type in CLOSERS:
            closer = CLOSERS[tok_type]
            items = []
            while True:
                nxt_type, nxt_val = self.peek()
                if nxt_type == closer:
                    self.advance()
                    return items
                if nxt_type is None:
                    raise LfeSyntaxError("Unmatched '('")
                if nxt_type == "symbol" and nxt_val == ".":
                    self.advance()
                    tail = self.parse_expr()
                    if self.peek()[0] != closer:
                        raise LfeSyntaxError("Expected ')' after dotted tail")
                    self.advance()
                    if not items:
                        raise LfeSyntaxError("Nothing before '.' in dotted list")
                    return cons(items, tail)
                items.append(self.parse_expr())

        if tok_type == "tuple":
            return tuple(self._items("rparen", "tuple"))

        if tok_type == "map":
            items = self._items("rparen", "map")
            if len(items) % 2:
                raise LfeSyntaxError("Odd number of elements in map")
            return {items[i]: items[i + 1] for i in range(0, len(items), 2)}

        if tok_type == "binary":
            out = bytearray()
            for item in self._items("rparen", "binary"):
                if isinstance(item, int) and 0 <= item < 256:
                    out.append(item)
                elif isinstance(item, str):
                    out.extend(item.encode("utf-8"))
                else:
                    raise LfeSyntaxError(f"Bad binary segment {item!r}")
            return bytes(out)

        if tok_type == "binstring":
            return unescape(tok_val[2:-1]).encode("utf-8")

        if tok_type == "string":
            return unescape(tok_val[1:-1])

        if tok_type == "char":
            val = tok_val[2:]  # strip off "#\"
            if len(val) > 1:
                return int(val[1:-1], 16)
            return ord(val)

        if tok_type == "radix":
            base = {"b": 2, "o": 8, "x": 16}[tok_val[1].lower()]
            return int(tok_val[2:], base)

        raise LfeSyntaxError(f"Unexpected token: {tok_type} {tok_val}")

    def parse_all(self) -> Iterator[SExpression]:
        while True:
            tok_type, _ = self.peek()
            if tok_type is None:
                break
            yield self.parse_expr()


def read_string(source: str) -> list[SExpression]:
    """All forms in ``source``."""
    return list(TokenStream(lex(source)).parse_all())


def read_file(path) -> list[SExpression]:
    """All forms in an LFE source file; OSError propagates."""
    return read_string(Path(path).read_text(encoding="utf-8"))
