"""Macro expansion session state.

The state is a frozen value: every helper returns an updated copy, so a
translation step can be run and inspected in isolation.

``line`` belongs to the caller: it is the line of the include form being
expanded, set with ``at_line`` before calling ``include.file`` or
``include.lib``. Diagnostics recorded without an explicit line use it;
diagnostics from inside a header carry their own line.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Optional


@dataclass(frozen=True)
class Diagnostic:
    line: int
    # Module name whose format_error renders the reason.
    origin: str
    reason: tuple


@dataclass(frozen=True)
class MacroState:
    line: int = 0
    errors: tuple[Diagnostic, ...] = ()
    warnings: tuple[Diagnostic, ...] = ()
    ipath: tuple[Path, ...] = ()

    def add_error(self, reason: tuple, line: Optional[int] = None,
                  origin: str = "lfe_include") -> MacroState:
        d = Diagnostic(self.line if line is None else line, origin, reason)
        return replace(self, errors=self.errors + (d,))

    def add_warning(self, reason: tuple, line: Optional[int] = None,
                    origin: str = "lfe_include") -> MacroState:
        d = Diagnostic(self.line if line is None else line, origin, reason)
        return replace(self, warnings=self.warnings + (d,))

    def extend_errors(self, diagnostics: Iterable[Diagnostic]) -> MacroState:
        return replace(self, errors=self.errors + tuple(diagnostics))

    def at_line(self, line: int) -> MacroState:
        return replace(self, line=line)

    def with_ipath(self, ipath: Iterable[Path]) -> MacroState:
        return replace(self, ipath=tuple(Path(p) for p in ipath))
