from __future__ import annotations
import os
from pathlib import Path
from typing import Iterable, List


def _sep() -> str:
    return ';' if os.name == 'nt' else ':'


# Defaults
_DEFAULT_INCLUDE_DIRS = [Path('.')]
_TRUE_VALUES = ('1', 'true', 'yes', 'on')


def paths_from_env(var: str, defaults: Iterable[Path]) -> List[Path]:
    raw = os.environ.get(var)
    if not raw:
        return [Path(p) for p in defaults]
    sep = _sep()
    return [Path(p.strip()) for p in raw.split(sep) if p.strip()]


def get_include_path() -> List[Path]:
    return paths_from_env('LFE_INCLUDE_PATH', _DEFAULT_INCLUDE_DIRS)


def get_lib_roots() -> List[Path]:
    # Same variable the Erlang code server reads for extra library roots.
    return paths_from_env('ERL_LIBS', [])


def legacy_records_enabled() -> bool:
    """Typed records folded into the type attribute, as older headers were compiled."""
    return os.environ.get('LFE_INCLUDE_LEGACY_RECORDS', '').strip().lower() in _TRUE_VALUES


def get_log_level() -> str:
    return os.environ.get('LFE_INCLUDE_LOG_LEVEL', 'WARNING').strip().upper() or 'WARNING'
