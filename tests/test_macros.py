import pytest
from hypothesis import given, strategies as st

from lfe_include.erlang.parser import parse_exprs
from lfe_include.erlang.scanner import Token, scan
from lfe_include.expand import expand_macro
from lfe_include.macros import order_macro_defs, sublis, trans_macro_body, trans_macros, trans_qm
from lfe_include.translate import from_expr
from lfe_include.types.forms import BQ, COMMA, Q, Symbol
from lfe_include.types.host import NO_ARGS, PREDEFINED, UNDEFINED, MacroDefinition

S = Symbol


def define(body, *params):
    return MacroDefinition(tuple(params), tuple(scan(body)))


def _kv(tokens):
    return [(t.kind, t.value) for t in tokens]


def test_macro_with_parameter(state):
    forms, new_state = trans_macros({"FOO": {1: define("X + 1", "X")}}, state)
    assert forms == [
        [S("defmacro"), S("FOO"), [[S("list"), S("X")], BQ([S("+"), [COMMA, S("X")], 1])]]
    ]
    assert new_state.warnings == ()


def test_expanding_foo_gives_the_plain_expression(state):
    [foo], _ = trans_macros({"FOO": {1: define("X + 1", "X")}}, state)
    [expected] = parse_exprs(scan("42 + 1."))
    assert expand_macro(foo, [42]) == from_expr(expected)


def test_no_argument_macro_is_a_catch_all(state):
    [bar], _ = trans_macros({"BAR": {NO_ARGS: define("42")}}, state)
    assert bar == [S("defmacro"), S("BAR"), [S("_"), BQ(42)]]
    assert expand_macro(bar, []) == 42
    assert expand_macro(bar, [S("ignored")]) == 42


def test_no_argument_clause_goes_last(state):
    entry = {
        NO_ARGS: define("none"),
        2: define("{A, B}", "A", "B"),
        1: define("{A}", "A"),
    }
    [macro], _ = trans_macros({"M": entry}, state)
    patterns = [clause[0] for clause in macro[2:]]
    assert patterns == [
        [S("list"), S("A")],
        [S("list"), S("A"), S("B")],
        S("_"),
    ]
    assert expand_macro(macro, [1, 2]) == [S("tuple"), 1, 2]
    assert expand_macro(macro, [1, 2, 3]) == Q(S("none"))


def test_order_macro_defs():
    entry = {NO_ARGS: define("a"), 3: define("b"), 0: define("c"), 1: PREDEFINED}
    assert [a for a, _ in order_macro_defs(entry)] == [0, 3, NO_ARGS]


def test_predefined_and_undefined_are_skipped_silently(state):
    table = {
        "MODULE": PREDEFINED,
        "GONE": UNDEFINED,
        "ODD": {NO_ARGS: PREDEFINED},
    }
    assert trans_macros(table, state) == ([], state)


def test_failed_arity_is_dropped_with_a_warning(state):
    entry = {NO_ARGS: define("foo("), 1: define("X", "X")}
    [macro], new_state = trans_macros({"BAD": entry}, state)
    assert len(macro) == 3
    assert macro[2][0] == [S("list"), S("X")]
    assert [w.reason for w in new_state.warnings] == [("notrans_macro", "BAD", NO_ARGS)]


def test_macro_with_no_translatable_arity_is_omitted(state):
    forms, new_state = trans_macros({"BAD": {NO_ARGS: define("a, b")}}, state)
    assert forms == []
    assert len(new_state.warnings) == 1


def test_parameters_are_bound_verbatim(state):
    [m], _ = trans_macros({"PAIR": {2: define("{A, B}", "A", "B")}}, state)
    arg = [S("f"), S("Y")]
    assert expand_macro(m, [arg, 2]) == [S("tuple"), arg, 2]


def test_substitution_reaches_into_quoted_forms():
    body = trans_macro_body(["X"], scan("??X"))
    assert body == BQ([
        S("call"), Q(S("lfe_include")), Q(S("stringify")), [S("quote"), [COMMA, S("X")]]
    ])


def test_stringify_argument_expands_to_a_stringify_call(state):
    [m], _ = trans_macros({"STR": {1: define("??X", "X")}}, state)
    assert expand_macro(m, [[S("f"), 1]]) == [
        S("call"), Q(S("lfe_include")), Q(S("stringify")), Q([S("f"), 1])
    ]


def test_nested_macro_calls_become_calls():
    assert trans_macro_body([], scan("?FOO(1) * 2")) == BQ([S("*"), [S("FOO"), 1], 2])
    assert trans_macro_body([], scan("?FOO")) == BQ([S("FOO")])


def test_parameter_used_as_a_function():
    body = trans_macro_body(["F"], scan("?F(1)"))
    assert body == BQ([[COMMA, S("F")], 1])


# ------------------------
# Token rewriting
# ------------------------

@pytest.mark.parametrize(
    "source,expected",
    [
        ("?FOO(1)", [("atom", "FOO"), ("(", "("), ("integer", 1), (")", ")")]),
        ("?foo(1)", [("atom", "foo"), ("(", "("), ("integer", 1), (")", ")")]),
        ("?FOO", [("atom", "FOO"), ("(", "("), (")", ")")]),
        ("?M:f()", [("(", "("), ("atom", "M"), ("(", "("), (")", ")"), (")", ")"),
                    (":", ":"), ("atom", "f"), ("(", "("), (")", ")")]),
        ("??X", [("atom", "lfe_include"), (":", ":"), ("atom", "stringify"), ("(", "("),
                 ("atom", "quote"), ("(", "("), ("var", "X"), (")", ")"), (")", ")")]),
    ]
)
def test_trans_qm(source, expected):
    assert _kv(trans_qm(scan(source))) == expected


plain_tokens = st.lists(
    st.sampled_from([
        Token("atom", "a", 1), Token("var", "X", 1), Token("integer", 1, 1),
        Token("(", "(", 1), Token(")", ")", 1), Token(",", ",", 1),
        Token("+", "+", 1), Token(":", ":", 1), Token("string", "s", 2),
    ]),
    max_size=30,
)


@given(plain_tokens)
def test_trans_qm_leaves_plain_tokens_alone(tokens):
    assert trans_qm(tokens) == tokens


def test_sublis_replaces_everywhere():
    alist = {S("X"): [COMMA, S("X")]}
    expr = [S("f"), S("X"), (S("X"), 1), Q(S("X")), S("Y")]
    assert sublis(alist, expr) == [
        S("f"), [COMMA, S("X")], ([COMMA, S("X")], 1), Q([COMMA, S("X")]), S("Y")
    ]


def test_match_in_a_macro_body_returns_the_value(state):
    [m], _ = trans_macros({"OK": {1: define("{ok, _} = X", "X")}}, state)
    v = S("match-value")
    assert expand_macro(m, [S("R")]) == [
        S("let"), [[v, S("R")]],
        [S("let"), [[[S("tuple"), Q(S("ok")), S("_")], v]], v],
    ]
