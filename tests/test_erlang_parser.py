import pytest

from lfe_include.errors import ErlangSyntaxError
from lfe_include.erlang.parser import Parser, parse_exprs, parse_form
from lfe_include.erlang.scanner import scan
from lfe_include.types.host import Attribute, Export, Function, Import, Opaque, Record, Spec, Type


def expr(source):
    [e] = parse_exprs(scan(source + "."))
    return e


def form(source):
    return parse_form(scan(source))


def test_operator_precedence():
    assert expr("1 + 2 * X") == (
        "op", 1, "+", ("integer", 1, 1),
        ("op", 1, "*", ("integer", 1, 2), ("var", 1, "X")),
    )


def test_list_ops_are_right_associative():
    e = expr("A ++ B ++ C")
    assert e[2] == "++" and e[4][2] == "++"


def test_match_and_send_bind_right():
    assert expr("X = Y = 1")[0] == "match"
    assert expr("X = Y = 1")[3][0] == "match"


def test_lists_and_cons():
    assert expr("[]") == ("nil", 1)
    assert expr("[1 | T]") == ("cons", 1, ("integer", 1, 1), ("var", 1, "T"))
    assert expr("[1, 2]") == (
        "cons", 1, ("integer", 1, 1), ("cons", 1, ("integer", 1, 2), ("nil", 1))
    )


def test_adjacent_strings_concatenate():
    assert expr('"ab" "cd"') == ("string", 1, "abcd")


def test_remote_call():
    assert expr("lists:map(F, L)") == (
        "call", 1, ("remote", 1, ("atom", 1, "lists"), ("atom", 1, "map")),
        [("var", 1, "F"), ("var", 1, "L")],
    )


def test_records_and_maps():
    assert expr("#r{a = 1}") == (
        "record", 1, "r", [("record_field", 1, ("atom", 1, "a"), ("integer", 1, 1))]
    )
    assert expr("R#r.a") == ("record_field", 1, ("var", 1, "R"), "r", ("atom", 1, "a"))
    assert expr("#r.a") == ("record_index", 1, "r", ("atom", 1, "a"))
    assert expr("M#{k := V}") == (
        "map", 1, ("var", 1, "M"), [("map_field_exact", 1, ("atom", 1, "k"), ("var", 1, "V"))]
    )


def test_fun_references():
    assert expr("fun foo/2") == ("fun", 1, ("function", "foo", 2))
    assert expr("fun m:f/1") == (
        "fun", 1, ("function", ("atom", 1, "m"), ("atom", 1, "f"), ("integer", 1, 1))
    )


def test_fun_with_guard():
    e = expr("fun (X) when X > 0 -> X end")
    [clause] = e[2][1]
    assert clause[2] == [("var", 1, "X")]
    assert clause[3] == [[("op", 1, ">", ("var", 1, "X"), ("integer", 1, 0))]]


def test_try_catch_class_and_stack():
    e = expr("try f() catch error:R:S -> R end")
    [clause] = e[4]
    assert clause[2] == [("tuple", 1, [("atom", 1, "error"), ("var", 1, "R"), ("var", 1, "S")])]


def test_list_comprehension():
    e = expr("[X || X <- L, X > 1]")
    assert e[0] == "lc"
    assert e[3][0] == ("generate", 1, ("var", 1, "X"), ("var", 1, "L"))


def test_binary_segments():
    assert expr("<<X:8/integer-unit:1>>") == (
        "bin", 1, [("bin_element", 1, ("var", 1, "X"), ("integer", 1, 8), ["integer", ("unit", 1)])]
    )


def test_parse_exprs_wants_the_end_marker():
    with pytest.raises(ErlangSyntaxError):
        parse_exprs(scan("X + 1"))


def test_parse_exprs_returns_all_expressions():
    assert len(parse_exprs(scan("a, b, c."))) == 3


def test_unexpected_token():
    with pytest.raises(ErlangSyntaxError) as exc:
        expr("1 + )")
    assert exc.value.reason == ("unexpected", ")")


# ------------------------
# Types
# ------------------------

def type_of(source):
    return Parser(scan(source)).parse_type()


def test_builtin_and_user_types():
    assert type_of("integer()") == ("type", 1, "integer", [])
    assert type_of("my_type(A)") == ("user_type", 1, "my_type", [("var", 1, "A")])
    assert type_of("tuple()") == ("type", 1, "tuple", "any")


def test_union_and_range():
    assert type_of("a | b")[2] == "union"
    assert type_of("1..10") == ("type", 1, "range", [("integer", 1, 1), ("integer", 1, 10)])


def test_remote_and_annotated_types():
    assert type_of("m:t()") == ("remote_type", 1, [("atom", 1, "m"), ("atom", 1, "t"), []])
    assert type_of("N :: atom()") == ("ann_type", 1, [("var", 1, "N"), ("type", 1, "atom", [])])


def test_fun_types():
    assert type_of("fun()") == ("type", 1, "fun", [])
    assert type_of("fun((...) -> ok)") == ("type", 1, "fun", [("type", 1, "any"), ("atom", 1, "ok")])


# ------------------------
# Forms
# ------------------------

def test_export_form():
    assert form("-export([foo/2, bar/0]).") == Export(1, (("foo", 2), ("bar", 0)))


def test_import_form():
    assert form("-import(lists, [map/2]).") == Import(1, "lists", (("map", 2),))


def test_record_form():
    assert form("-record(r, {a, b = 0}).") == Record(1, "r", (
        ("record_field", 1, ("atom", 1, "a")),
        ("record_field", 1, ("atom", 1, "b"), ("integer", 1, 0)),
    ))


def test_typed_record_form():
    rec = form("-record(r, {a = 1 :: integer()}).")
    assert rec.fields == (
        ("typed_record_field",
         ("record_field", 1, ("atom", 1, "a"), ("integer", 1, 1)),
         ("type", 1, "integer", [])),
    )


def test_type_and_opaque_forms():
    assert form("-type t(A) :: [A].") == Type(
        1, "t", (("var", 1, "A"),), ("type", 1, "list", [("var", 1, "A")])
    )
    assert isinstance(form("-opaque o() :: integer()."), Opaque)


def test_spec_form_arity():
    spec = form("-spec f(integer(), atom()) -> ok.")
    assert isinstance(spec, Spec)
    assert (spec.function, spec.arity) == ("f", 2)


def test_generic_attribute_must_be_a_term():
    assert form("-vsn(\"1.0\").") == Attribute(1, "vsn", ("string", 1, "1.0"))
    with pytest.raises(ErlangSyntaxError) as exc:
        form("-foo(X + 1).")
    assert exc.value.reason == ("bad_attribute_value",)


def test_function_form():
    f = form("foo(0) -> zero; foo(N) when N > 0 -> pos.")
    assert isinstance(f, Function)
    assert (f.name, f.arity, len(f.clauses)) == ("foo", 1, 2)


def test_function_clauses_must_agree():
    with pytest.raises(ErlangSyntaxError) as exc:
        form("foo(X) -> X; bar(X) -> X.")
    assert exc.value.reason == ("bad_function_clause", "bar")
    with pytest.raises(ErlangSyntaxError) as exc:
        form("foo(X) -> X; foo() -> 0.")
    assert exc.value.reason == ("bad_arity", "foo")
