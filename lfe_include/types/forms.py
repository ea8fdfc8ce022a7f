"""LFE form building blocks.

Symbols are interned and compare by name only, so ``Symbol("a") != "a"``:
a Python ``str`` inside a form is always an LFE string.
"""

from __future__ import annotations
import sys
from dataclasses import dataclass

from lfe_include import SExpression


class Symbol:
    __slots__ = ("id",)

    def __init__(self, name: str):
        # Intern to ensure fast equality/hash
        self.id = sys.intern(name)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Symbol) and self.id == other.id

    def __hash__(self) -> int:
        return hash(("Symbol", self.id))

    def __repr__(self):
        return f"Symbol({self.id!r})"

    def __str__(self):
        return self.id


@dataclass
class Cons:
    """Improper list ``(a b . tail)``; ``tail`` is never a list."""
    items: list
    tail: SExpression


def cons(items: list, tail: SExpression) -> SExpression:
    """Build ``(items . tail)``, collapsing to a plain list when the tail is one."""
    if isinstance(tail, list):
        return list(items) + tail
    if isinstance(tail, Cons):
        return Cons(list(items) + tail.items, tail.tail)
    if not items:
        return tail
    return Cons(list(items), tail)


QUOTE = Symbol("quote")
BACKQUOTE = Symbol("backquote")
COMMA = Symbol("comma")
COMMA_AT = Symbol("comma-at")


def Q(expr: SExpression) -> SExpression:
    return [QUOTE, expr]


def BQ(expr: SExpression) -> SExpression:
    return [BACKQUOTE, expr]


def comma(expr: SExpression) -> SExpression:
    return [COMMA, expr]
