import pytest

from desiredset._cogs.structs.selectors import EVERYTHING, LabelSelector


def test_string_form_is_sorted():
    selector = LabelSelector({'zzz': 'v1', 'aaa': 'v2'})
    assert str(selector) == 'aaa=v2,zzz=v1'


def test_empty_selector_string_is_empty():
    assert str(EVERYTHING) == ''
    assert not EVERYTHING


def test_kwargs_are_merged():
    selector = LabelSelector({'a': '1'}, b='2')
    assert dict(selector) == {'a': '1', 'b': '2'}


def test_equality_and_hashing():
    selector1 = LabelSelector({'a': '1', 'b': '2'})
    selector2 = LabelSelector(b='2', a='1')
    assert selector1 == selector2
    assert hash(selector1) == hash(selector2)
    assert selector1 != LabelSelector(a='1')


@pytest.mark.parametrize('labels, expected', [
    ({}, False),
    ({'a': '1'}, False),
    ({'a': '1', 'b': '2'}, True),
    ({'a': '1', 'b': '2', 'c': '3'}, True),
    ({'a': '2', 'b': '2'}, False),
])
def test_matching(labels, expected):
    selector = LabelSelector({'a': '1', 'b': '2'})
    assert selector.matches(labels) is expected


def test_empty_selector_matches_everything():
    assert EVERYTHING.matches({})
    assert EVERYTHING.matches({'a': '1'})


def test_matching_bodies():
    selector = LabelSelector(a='1')
    assert selector.matches_body({'metadata': {'labels': {'a': '1'}}})
    assert not selector.matches_body({'metadata': {}})
    assert not selector.matches_body({})
