import pytest

from lfe_include.types.state import MacroState


@pytest.fixture
def state():
    """A fresh session state for each test."""
    return MacroState()


@pytest.fixture
def write_file(tmp_path):
    """Write ``text`` to ``tmp_path/name``, creating directories; returns the path."""
    def _write(name, text):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path
    return _write
