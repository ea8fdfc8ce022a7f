from __future__ import annotations
import re
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from lfe_include.config import get_lib_roots
from lfe_include.errors import NoLibraryError


# Step down a search path looking for a file, absolute names are tried as is.

def path_find(path: Iterable[Path], name: str) -> Optional[Path]:
    target = Path(name)
    if target.is_absolute():
        return target if target.is_file() else None
    for root in path:
        candidate = Path(root) / target
        if candidate.is_file():
            return candidate
    return None


_VSN_RE = re.compile(r"\d+")


def _vsn_key(dirname: str, app: str) -> tuple:
    vsn = dirname[len(app) + 1:]
    return tuple(int(n) for n in _VSN_RE.findall(vsn))


def lib_dir(app: str, roots: Optional[Iterable[Path]] = None) -> Path:
    """Installation directory of library ``app``: ``<root>/app`` or the newest ``<root>/app-Vsn``."""
    if not app or app in (".", ".."):
        raise NoLibraryError(f"Bad library name {app!r}")
    roots = get_lib_roots() if roots is None else [Path(r) for r in roots]
    for root in roots:
        exact = root / app
        if exact.is_dir():
            return exact
        versioned = [p for p in root.glob(f"{app}-*") if p.is_dir()]
        if versioned:
            best = max(versioned, key=lambda p: _vsn_key(p.name, app))
            logger.debug("library {} resolved to {}", app, best)
            return best
    raise NoLibraryError(f"Cannot find library '{app}' in ERL_LIBS")


def lib_file_name(name: str, roots: Optional[Iterable[Path]] = None) -> Path:
    """Map ``app/rest...`` onto the real directory of library ``app``."""
    parts = Path(name).parts
    if len(parts) < 2:
        raise NoLibraryError(f"No library component in {name!r}")
    # Path() has already dropped any "." segments
    return lib_dir(parts[0], roots).joinpath(*parts[1:])
