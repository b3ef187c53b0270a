from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from graphassert.constants import DEFAULT_MAX_FORMAT_DEPTH, DEFAULT_MAX_FORMAT_LENGTH
from graphassert.core.equivalency.models import Discrepancy
from graphassert.core.errors import (
    COUNT_MISMATCH,
    MISSING_KEY,
    NULL_MISMATCH,
    UNEXPECTED_KEY,
    UNMATCHED_ELEMENT,
    ConfigurationError,
)
from graphassert.core.formatting.reason import escape_braces, finalize_message, interpolate_reason, render_reason
from graphassert.core.formatting.values import format_value

_ARGUMENT_PATTERN = re.compile(r"\{(\d+)\}")


def format_message(
    message: str,
    args: Sequence[Any],
    *,
    max_length: int = DEFAULT_MAX_FORMAT_LENGTH,
    max_depth: int = DEFAULT_MAX_FORMAT_DEPTH,
) -> str:
    """Replace ``{0}``, ``{1}``... with formatted values, leaving ``{reason}`` alone.

    Braces inside the formatted values come out doubled so a later pass filling
    in ``{reason}`` or ``{context}`` cannot touch them.
    """
    used: set[int] = set()

    def substitute(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= len(args):
            raise ConfigurationError(
                f"Message {message!r} refers to argument {{{index}}}, but only {len(args)} were supplied"
            )
        used.add(index)
        return escape_braces(format_value(args[index], max_length=max_length, max_depth=max_depth))

    text = _ARGUMENT_PATTERN.sub(substitute, message)
    unused = set(range(len(args))) - used
    if unused:
        raise ConfigurationError(f"Message {message!r} does not use argument(s) at position(s) {sorted(unused)}")
    return text


def _count(value: Any) -> int:
    try:
        return len(value)
    except TypeError:
        return 0


def describe(
    discrepancy: Discrepancy,
    *,
    max_length: int = DEFAULT_MAX_FORMAT_LENGTH,
    max_depth: int = DEFAULT_MAX_FORMAT_DEPTH,
) -> str:
    def fmt(value: Any) -> str:
        return escape_braces(format_value(value, max_length=max_length, max_depth=max_depth))

    path = escape_braces(discrepancy.path)
    kind = discrepancy.kind

    if kind == NULL_MISMATCH:
        if discrepancy.expected is None:
            return f"Expected {path} to be <null>{{reason}}, but found {fmt(discrepancy.actual)}."
        return f"Expected {path} to be {fmt(discrepancy.expected)}{{reason}}, but found <null>."

    if kind == COUNT_MISMATCH:
        expected_count = _count(discrepancy.expected)
        actual_count = _count(discrepancy.actual)
        head = f"Expected {path} to be a collection with {expected_count} item(s){{reason}}, but "
        if actual_count > expected_count:
            return head + f"{fmt(discrepancy.actual)} contains {actual_count - expected_count} item(s) too many."
        return (
            head
            + f"{fmt(discrepancy.actual)} contains {expected_count - actual_count} item(s) less than "
            + f"{fmt(discrepancy.expected)}."
        )

    if kind == MISSING_KEY:
        label = escape_braces(discrepancy.detail or "key")
        key_text = escape_braces(str(discrepancy.key)) if label == "member" else fmt(discrepancy.key)
        return f"Expected {path} to be {fmt(discrepancy.expected)}{{reason}}, but {label} {key_text} is missing."

    if kind == UNEXPECTED_KEY:
        return (
            f"Expected {path} not to exist{{reason}}, but found key {fmt(discrepancy.key)} "
            f"with value {fmt(discrepancy.actual)}."
        )

    if kind == UNMATCHED_ELEMENT:
        if discrepancy.detail == "subject":
            return (
                f"Expected {path} to have an equivalent item in the expectation{{reason}}, "
                f"but found unexpected item {fmt(discrepancy.actual)}."
            )
        return (
            f"Expected {path} to contain an item equivalent to {fmt(discrepancy.expected)} "
            f"(expectation index {discrepancy.key}){{reason}}, but no such item was found."
        )

    text = f"Expected {path} to be {fmt(discrepancy.expected)}{{reason}}, but found {fmt(discrepancy.actual)}"
    if discrepancy.detail:
        text += f" ({escape_braces(discrepancy.detail)})"
    return text + "."


def _describe_tree(discrepancy: Discrepancy, indent: int, max_length: int, max_depth: int) -> list[str]:
    prefix = "  " * indent + ("- " if indent else "")
    lines = [prefix + describe(discrepancy, max_length=max_length, max_depth=max_depth)]
    for nested in discrepancy.nested:
        lines.extend(_describe_tree(nested, indent + 1, max_length, max_depth))
    return lines


def describe_all(
    discrepancies: Sequence[Discrepancy],
    *,
    max_length: int = DEFAULT_MAX_FORMAT_LENGTH,
    max_depth: int = DEFAULT_MAX_FORMAT_DEPTH,
) -> list[str]:
    return ["\n".join(_describe_tree(item, 0, max_length, max_depth)) for item in discrepancies]


def render(
    discrepancies: Sequence[Discrepancy],
    reason_template: str | None = None,
    reason_args: Sequence[Any] = (),
    *,
    max_length: int = DEFAULT_MAX_FORMAT_LENGTH,
    max_depth: int = DEFAULT_MAX_FORMAT_DEPTH,
) -> str:
    reason = render_reason(reason_template, reason_args)
    messages = describe_all(discrepancies, max_length=max_length, max_depth=max_depth)
    return "\n".join(finalize_message(interpolate_reason(message, reason)) for message in messages)


__all__ = ["describe", "describe_all", "format_message", "render"]
