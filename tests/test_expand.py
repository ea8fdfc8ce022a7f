import pytest

from lfe_include.errors import MacroExpansionError
from lfe_include.expand import eval_backquote, expand_macro, match_args
from lfe_include.types.forms import BACKQUOTE, BQ, COMMA, COMMA_AT, Cons, Q, Symbol

S = Symbol


def test_match_args():
    assert match_args(S("_"), [1, 2]) == {}
    assert match_args([S("list"), S("A")], [1]) == {S("A"): 1}
    assert match_args([S("list"), S("A")], [1, 2]) is None
    with pytest.raises(MacroExpansionError):
        match_args([S("tuple"), S("A")], [1])


def test_backquote_with_comma():
    b = {S("X"): 2}
    assert eval_backquote([1, [COMMA, S("X")], 3], b) == [1, 2, 3]


def test_backquote_with_comma_at():
    b = {S("XS"): [2, 3]}
    assert eval_backquote([1, [COMMA_AT, S("XS")], 4], b) == [1, 2, 3, 4]
    with pytest.raises(MacroExpansionError):
        eval_backquote([[COMMA_AT, S("X")]], {S("X"): 1})


def test_nested_backquote_keeps_inner_commas():
    b = {S("X"): 2}
    assert eval_backquote([1, [BACKQUOTE, [COMMA, S("X")]]], b) == [1, [BACKQUOTE, [COMMA, S("X")]]]


def test_backquote_walks_tuples_and_improper_lists():
    b = {S("X"): 2}
    assert eval_backquote((1, [COMMA, S("X")]), b) == (1, 2)
    assert eval_backquote(Cons([[COMMA, S("X")]], S("t")), b) == Cons([2], S("t"))


def test_unbound_variable():
    with pytest.raises(MacroExpansionError):
        eval_backquote([COMMA, S("Y")], {})


def test_expand_first_matching_clause():
    macro = [S("defmacro"), S("M"),
             [[S("list"), S("A")], BQ([S("one"), [COMMA, S("A")]])],
             [S("_"), BQ(Q(S("other")))]]
    assert expand_macro(macro, [7]) == [S("one"), 7]
    assert expand_macro(macro, []) == Q(S("other"))


def test_no_matching_clause():
    macro = [S("defmacro"), S("M"), [[S("list"), S("A")], BQ(1)]]
    with pytest.raises(MacroExpansionError):
        expand_macro(macro, [1, 2])


def test_not_a_macro():
    with pytest.raises(MacroExpansionError):
        expand_macro([S("defun"), S("f")], [])
