import pytest

from lfe_include.erlang import epp
from lfe_include.erlang.scanner import Token
from lfe_include.types.host import (
    NO_ARGS,
    PREDEFINED,
    UNDEFINED,
    Attribute,
    Eof,
    Function,
    MacroDefinition,
    ParseError,
    Record,
    Type,
)


def parse(write_file, text, **kwargs):
    path = write_file("test.hrl", text)
    return epp.parse_file(path, **kwargs)


def test_macros_keep_their_raw_tokens(write_file):
    _, macros = parse(write_file, "-define(N, 10).\n-define(ADD(A, B), A + ?N).\n")
    assert macros["N"] == {NO_ARGS: MacroDefinition((), (Token("integer", 10, 1),))}
    add = macros["ADD"][2]
    assert add.params == ("A", "B")
    assert [t.kind for t in add.tokens] == ["var", "+", "?", "var"]


def test_predefined_and_undefined_entries(write_file):
    _, macros = parse(write_file, "-define(A, 1).\n-undef(A).\n")
    assert macros["A"] is UNDEFINED
    assert macros["MODULE"] is PREDEFINED
    assert macros["LINE"] is PREDEFINED


def test_later_definition_shadows_same_arity(write_file):
    _, macros = parse(write_file, "-define(A, 1).\n-define(A, 2).\n-define(A(X), X).\n")
    assert macros["A"][NO_ARGS].tokens[0].value == 2
    assert set(macros["A"]) == {NO_ARGS, 1}


def test_macros_are_expanded_in_forms(write_file):
    decls, _ = parse(write_file, "-define(N, 10).\n-record(r, {a = ?N}).\n")
    assert decls == [
        Record(2, "r", (("record_field", 2, ("atom", 2, "a"), ("integer", 2, 10)),)),
        Eof(2),
    ]


def test_macro_with_arguments_and_stringify(write_file):
    decls, _ = parse(write_file, "-define(S(X), {X, ??X}).\n-vsn(?S(a)).\n")
    assert decls[0] == Attribute(2, "vsn", (
        "tuple", 2, [("atom", 2, "a"), ("string", 2, "a")]
    ))


def test_argument_less_definition_serves_calls_with_arguments(write_file):
    decls, _ = parse(write_file, "-define(F, f).\nx() -> ?F(1).\n")
    [clause] = decls[0].clauses
    assert clause[4] == [("call", 2, ("atom", 2, "f"), [("integer", 2, 1)])]


def test_predefined_macros(write_file):
    decls, _ = parse(write_file, "-module(m).\n-record(r, {a = ?MODULE}).\nf() -> ?FUNCTION_NAME.\n")
    assert decls[1].fields[0][3] == ("atom", 2, "m")
    assert decls[2].clauses[0][4] == [("atom", 3, "f")]


def test_conditionals(write_file):
    text = (
        "-ifdef(DEBUG).\n"
        "-define(LEVEL, debug).\n"
        "-else.\n"
        "-define(LEVEL, info).\n"
        "-endif.\n"
        "-ifndef(LEVEL).\n"
        "-export([never/0]).\n"
        "-endif.\n"
    )
    decls, macros = parse(write_file, text)
    assert macros["LEVEL"][NO_ARGS].tokens == (Token("atom", "info", 4),)
    assert decls == [Eof(8)]


def test_unterminated_conditional(write_file):
    decls, _ = parse(write_file, "-ifdef(X).\n-export([f/0]).\n")
    [err] = [d for d in decls if isinstance(d, ParseError)]
    assert err.payload.origin == "epp"
    assert err.payload.reason == ("unterminated",)


def test_undefined_macro_is_a_parse_error(write_file):
    decls, _ = parse(write_file, "-vsn(?NOPE).\n-export([f/0]).\n")
    assert isinstance(decls[0], ParseError)
    assert decls[0].payload.reason == ("undefined", "NOPE", NO_ARGS)
    assert decls[0].line == 1
    # The rest of the file is still read.
    assert decls[1].line == 2


def test_syntax_error_does_not_stop_the_file(write_file):
    decls, _ = parse(write_file, "f( -> ok.\ng() -> ok.\n")
    assert isinstance(decls[0], ParseError)
    assert isinstance(decls[1], Function)


def test_nested_include(write_file):
    write_file("inc/inner.hrl", "-define(INNER, 1).\n-record(inner, {x}).\n")
    decls, macros = parse(write_file, '-include("inc/inner.hrl").\n')
    assert isinstance(decls[0], Record) and decls[0].name == "inner"
    assert "INNER" in macros


def test_include_path(write_file, tmp_path):
    write_file("other/shared.hrl", "-define(SHARED, 1).\n")
    _, macros = parse(write_file, '-include("shared.hrl").\n', include_path=[tmp_path / "other"])
    assert "SHARED" in macros


def test_missing_include(write_file):
    decls, _ = parse(write_file, '-include("nope.hrl").\n')
    assert decls[0].payload.reason == ("include", "file", "nope.hrl")


def test_include_lib_through_erl_libs(write_file, tmp_path, monkeypatch):
    write_file("libs/app-1.0/include/a.hrl", "-define(FROM_LIB, 1).\n")
    monkeypatch.setenv("ERL_LIBS", str(tmp_path / "libs"))
    _, macros = parse(write_file, '-include_lib("app/include/a.hrl").\n')
    assert "FROM_LIB" in macros


def test_legacy_records(write_file):
    decls, _ = parse(write_file, "-record(r, {a :: integer(), b = 1}).\n", legacy_records=True)
    bare, typed = decls[:2]
    assert bare == Record(1, "r", (
        ("record_field", 1, ("atom", 1, "a")),
        ("record_field", 1, ("atom", 1, "b"), ("integer", 1, 1)),
    ))
    assert isinstance(typed, Type) and typed.name == ("record", "r")
    assert typed.definition[0][0] == "typed_record_field"


def test_unreadable_file_raises(tmp_path):
    with pytest.raises(OSError):
        epp.parse_file(tmp_path / "missing.hrl")


@pytest.mark.parametrize(
    "reason,message",
    [
        (("undefined", "FOO", NO_ARGS), "undefined macro 'FOO'"),
        (("undefined", "FOO", 2), "undefined macro 'FOO/2'"),
        (("include", "lib", "a/b.hrl"), "can't find include lib \"a/b.hrl\""),
        (("something_else", 1), "('something_else', 1)"),
    ]
)
def test_format_error(reason, message):
    assert epp.format_error(reason) == message
