# Core type aliases for lfe_include's data model.
# LFE forms are plain Python values, in the same spirit as the reader:
#   atoms/symbols -> Symbol, lists -> list, improper lists -> Cons,
#   tuples -> tuple, strings -> str, binaries -> bytes, maps -> dict.
# No explicit cons cells are built for proper lists.

from typing import Any

# A translated LFE form.
SExpression = Any
# An Erlang abstract tree node, a tagged tuple such as ("atom", Line, Name).
ErlNode = tuple

# Module atom the translated `??Arg` calls resolve to.
STRINGIFY_MODULE = "lfe_include"

from lfe_include.printer import stringify  # noqa: E402

__all__ = ["SExpression", "ErlNode", "STRINGIFY_MODULE", "stringify"]
