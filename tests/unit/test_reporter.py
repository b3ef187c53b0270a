from __future__ import annotations

from dataclasses import dataclass

import pytest

from graphassert.core.equivalency.comparator import compare
from graphassert.core.equivalency.models import Discrepancy
from graphassert.core.equivalency.options import EquivalencyOptionsBuilder
from graphassert.core.errors import NULL_MISMATCH, VALUE_MISMATCH, ConfigurationError
from graphassert.core.formatting.reporter import describe, describe_all, format_message, render
from graphassert.core.formatting.values import register_formatter, unregister_formatter


@dataclass
class Point:
    x: int
    y: int


@dataclass
class Point3:
    x: int
    y: int
    z: int


def test_null_mismatch_messages() -> None:
    assert render(compare(3, None)) == "Expected subject to be <null>, but found 3."
    assert render(compare(None, 3)) == "Expected subject to be 3, but found <null>."


def test_value_mismatch_with_reason() -> None:
    message = render(compare({"a": 1}, {"a": 2}), "we said {0}", ("so",))
    assert message == 'Expected subject["a"] to be 2 because we said so, but found 1.'


def test_count_mismatch_messages() -> None:
    assert render(compare([1, 2], [1, 2, 3])) == (
        "Expected subject to be a collection with 3 item(s), but {1, 2} contains 1 item(s) less than {1, 2, 3}."
    )
    assert render(compare([1, 2, 3], [1])) == (
        "Expected subject to be a collection with 1 item(s), but {1, 2, 3} contains 2 item(s) too many."
    )


def test_key_messages() -> None:
    assert render(compare({}, {"c": 3})) == 'Expected subject["c"] to be 3, but key "c" is missing.'
    assert render(compare({"b": 2}, {})) == 'Expected subject["b"] not to exist, but found key "b" with value 2.'
    assert render(compare(Point(1, 2), Point3(1, 2, 3))) == "Expected subject.z to be 3, but member z is missing."


def test_unmatched_element_messages() -> None:
    assert render(compare([1], [2])).splitlines() == [
        "Expected subject to contain an item equivalent to 2 (expectation index 0), but no such item was found.",
        "Expected subject[0] to have an equivalent item in the expectation, but found unexpected item 1.",
    ]


def test_detail_is_appended() -> None:
    assert render(compare("abc", "abd")) == 'Expected subject to be "abd", but found "abc" (they differ at index 2).'


def test_describe_keeps_reason_placeholder() -> None:
    item = Discrepancy(kind=NULL_MISMATCH, path="subject.a", expected=None, actual=3)
    assert describe(item) == "Expected subject.a to be <null>{reason}, but found 3."


def test_nested_discrepancies_are_indented() -> None:
    inner = Discrepancy(kind=VALUE_MISMATCH, path="subject.x", expected=1, actual=2)
    outer = Discrepancy(kind=VALUE_MISMATCH, path="subject", expected="a", actual="b", detail="custom", nested=(inner,))
    assert describe_all([outer]) == [
        'Expected subject to be "a"{reason}, but found "b" (custom).\n'
        "  - Expected subject.x to be 1{reason}, but found 2."
    ]


def test_long_values_are_truncated() -> None:
    message = render(compare("a" * 50, "b" * 50), max_length=5)
    assert message == 'Expected subject to be "bbbb..., but found "aaaa... (they differ at index 0).'


def test_format_message_substitutes_positional_values() -> None:
    assert format_message("Expected {0} but got {1}{reason}", (1, "x")) == 'Expected 1 but got "x"{reason}'


@pytest.mark.parametrize(("message", "args"), [("Expected {0} and {1}", (1,)), ("Expected {0}", (1, 2))])
def test_format_message_arity_is_checked(message: str, args: tuple[object, ...]) -> None:
    with pytest.raises(ConfigurationError):
        format_message(message, args)


def test_null_mismatch_messages_are_not_symmetric() -> None:
    first = render(compare(None, {1, 2, 3}))
    second = render(compare({1, 2, 3}, None))
    assert first == "Expected subject to be {1, 2, 3}, but found <null>."
    assert second == "Expected subject to be <null>, but found {1, 2, 3}."


def test_failing_formatter_does_not_hide_the_failure() -> None:
    def broken(value: object) -> str:
        raise ValueError("cannot render")

    options = EquivalencyOptionsBuilder().comparing_by_value(Point).build()
    register_formatter(broken, Point)
    try:
        message = render(compare(Point(1, 2), Point(1, 3), options))
    finally:
        unregister_formatter(broken)
    assert message == (
        "Expected subject to be <could not format Point: ValueError>, "
        "but found <could not format Point: ValueError>."
    )


def test_braces_in_values_are_reported_verbatim() -> None:
    assert render(compare("x", "{reason}"), "it matters") == (
        'Expected subject to be "{reason}" because it matters, but found "x" (they differ at index 0).'
    )
    assert render(compare({"see {context}": 1}, {"see {context}": 2})) == (
        'Expected subject["see {context}"] to be 2, but found 1.'
    )


def test_format_message_escapes_substituted_values() -> None:
    assert format_message("Expected {0}{reason}", ("{reason}",)) == 'Expected "{{reason}}"{reason}'
