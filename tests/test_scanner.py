import pytest

from lfe_include.errors import ErlangSyntaxError
from lfe_include.erlang.scanner import Token, atom_text, scan, tokens_text


def _kv(tokens):
    return [(t.kind, t.value) for t in tokens]


@pytest.mark.parametrize(
    "source,expected",
    [
        ("foo", [("atom", "foo")]),
        ("'hello world'", [("atom", "hello world")]),
        ("X _Y _", [("var", "X"), ("var", "_Y"), ("var", "_")]),
        ("42 1_000", [("integer", 42), ("integer", 1000)]),
        ("16#ff 2#101", [("integer", 255), ("integer", 5)]),
        ("1.5 2.0e3", [("float", 1.5), ("float", 2000.0)]),
        ("$a $\\n", [("char", 97), ("char", 10)]),
        ('"a\\tb"', [("string", "a\tb")]),
        ("case of end", [("case", "case"), ("of", "of"), ("end", "end")]),
        ("-> := =:= ... ::", [("->", "->"), (":=", ":="), ("=:=", "=:="), ("...", "..."), ("::", "::")]),
        ("f(X).", [("atom", "f"), ("(", "("), ("var", "X"), (")", ")"), ("dot", ".")]),
        ("a % comment\nb", [("atom", "a"), ("atom", "b")]),
        ("??X", [("?", "?"), ("?", "?"), ("var", "X")]),
    ]
)
def test_scan_tokens(source, expected):
    assert _kv(scan(source)) == expected


def test_scan_tracks_lines():
    tokens = scan("a\n\nb\n  c")
    assert [t.line for t in tokens] == [1, 3, 4]


def test_scan_start_line():
    assert scan("x", line=7) == [Token("atom", "x", 7)]


def test_record_access_dot_is_not_a_terminator():
    kinds = [t.kind for t in scan("R#r.a.")]
    assert kinds == ["var", "#", "atom", ".", "atom", "dot"]


def test_scan_illegal_character():
    with pytest.raises(ErlangSyntaxError) as exc:
        scan("a\n`")
    assert exc.value.reason == ("illegal_char", "`")
    assert exc.value.line == 2


def test_scan_bad_based_integer():
    with pytest.raises(ErlangSyntaxError) as exc:
        scan("2#102")
    assert exc.value.reason == ("illegal_integer", "2#102")


def test_scan_overflowing_float():
    with pytest.raises(ErlangSyntaxError) as exc:
        scan("X = 1.0e400.")
    assert exc.value.reason == ("illegal_float", "1.0e400")


@pytest.mark.parametrize(
    "name,text",
    [("foo", "foo"), ("Foo", "'Foo'"), ("a b", "'a b'"), ("case", "'case'"), ("it's", "'it\\'s'")]
)
def test_atom_text(name, text):
    assert atom_text(name) == text


def test_tokens_text_rebuilds_source():
    assert tokens_text(scan('foo(X, "s", 1)')) == 'foo ( X , "s" , 1 )'
