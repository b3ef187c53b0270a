"""Type-aware, length-capped textual representation of values in failure messages.

A formatting problem must never hide the assertion failure being reported, so
every conversion is guarded and degrades to a placeholder.
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from collections.abc import Callable, Iterator, Mapping, Set
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any

from graphassert.constants import DEFAULT_MAX_FORMAT_DEPTH, DEFAULT_MAX_FORMAT_LENGTH
from graphassert.core.equivalency.accessor import CompositeAccessor, classify

logger = logging.getLogger(__name__)

ValueFormatter = Callable[[Any], str]
FormatterPredicate = Callable[[Any], bool]

_ELLIPSIS = "..."
_COMPOSITES = CompositeAccessor()


@dataclass(slots=True, frozen=True)
class _Registration:
    predicate: FormatterPredicate
    formatter: ValueFormatter


_CUSTOM_FORMATTERS: list[_Registration] = []


def register_formatter(formatter: ValueFormatter, when: type | FormatterPredicate) -> ValueFormatter:
    """Register ``formatter`` for values of type ``when`` (or matching predicate ``when``).

    Later registrations take precedence. Returns the formatter so it can be used
    as a decorator argument or unregistered later.
    """
    if isinstance(when, type):
        target = when
        predicate: FormatterPredicate = lambda value: isinstance(value, target)  # noqa: E731
    else:
        predicate = when
    _CUSTOM_FORMATTERS.insert(0, _Registration(predicate=predicate, formatter=formatter))
    return formatter


def unregister_formatter(formatter: ValueFormatter) -> None:
    _CUSTOM_FORMATTERS[:] = [entry for entry in _CUSTOM_FORMATTERS if entry.formatter is not formatter]


def unformattable(value: Any, error: BaseException) -> str:
    return f"<could not format {type(value).__name__}: {type(error).__name__}>"


def format_value(
    value: Any,
    *,
    max_length: int = DEFAULT_MAX_FORMAT_LENGTH,
    max_depth: int = DEFAULT_MAX_FORMAT_DEPTH,
) -> str:
    text = _ValueFormatter(max_depth=max_depth).format(value, depth=0)
    if max_length > 0 and len(text) > max_length:
        return text[:max_length] + _ELLIPSIS
    return text


class _ValueFormatter:
    def __init__(self, max_depth: int) -> None:
        self._max_depth = max_depth
        self._active: set[int] = set()

    def format(self, value: Any, depth: int) -> str:
        try:
            return self._format(value, depth)
        except Exception as exc:
            logger.debug("event=format_failed type=%s error=%s", type(value).__name__, exc)
            return unformattable(value, exc)

    def _format(self, value: Any, depth: int) -> str:
        if value is None:
            return "<null>"

        for entry in _CUSTOM_FORMATTERS:
            if entry.predicate(value):
                return str(entry.formatter(value))

        if isinstance(value, str):
            return f'"{value}"'
        if isinstance(value, bool):
            return repr(value)
        if isinstance(value, Enum):
            return f"{type(value).__name__}.{value.name} {{value: {self.format(value.value, depth + 1)}}}"
        if isinstance(value, (int, float, complex)):
            return repr(value)
        if isinstance(value, (Decimal, Fraction)):
            return str(value)
        if isinstance(value, (bytes, bytearray)):
            if not value:
                return "{empty}"
            return "{" + ", ".join(f"0x{byte:02X}" for byte in value) + "}"
        if isinstance(value, dt.datetime):
            return f"<{value.isoformat(sep=' ')}>"
        if isinstance(value, (dt.date, dt.time)):
            return f"<{value.isoformat()}>"
        if isinstance(value, dt.timedelta):
            return f"<{value}>"
        if isinstance(value, type):
            if value.__module__ == "builtins":
                return value.__qualname__
            return f"{value.__module__}.{value.__qualname__}"
        if isinstance(value, Iterator):
            return repr(value)

        shape = classify(value)
        if shape in ("dictionary", "collection", "composite"):
            return self._format_container(value, shape, depth)
        return repr(value)

    def _format_container(self, value: Any, shape: str, depth: int) -> str:
        marker = id(value)
        if marker in self._active:
            return f"{{cyclic reference to {type(value).__name__}}}"
        if depth >= self._max_depth:
            return "{...}"
        self._active.add(marker)
        try:
            if shape == "dictionary":
                return self._format_mapping(value, depth)
            if shape == "collection":
                return self._format_collection(value, depth)
            return self._format_composite(value, depth)
        finally:
            self._active.discard(marker)

    def _format_mapping(self, value: Mapping[Any, Any], depth: int) -> str:
        if not value:
            return "{empty}"
        items = [
            f"[{self.format(key, depth + 1)}] = {self.format(item, depth + 1)}" for key, item in value.items()
        ]
        return "{" + ", ".join(items) + "}"

    def _format_collection(self, value: Any, depth: int) -> str:
        items = list(value)
        if not items:
            return "{empty}"
        if isinstance(value, Set):
            formatted = sorted(self.format(item, depth + 1) for item in items)
        else:
            formatted = [self.format(item, depth + 1) for item in items]
        return "{" + ", ".join(formatted) + "}"

    def _format_composite(self, value: Any, depth: int) -> str:
        klass = type(value)
        custom_repr = klass.__repr__ is not object.__repr__
        if custom_repr and not dataclasses.is_dataclass(value) and not isinstance(value, tuple):
            return repr(value)
        members = _COMPOSITES.members(value)
        if not members:
            return f"{klass.__name__} {{ }}"
        parts = [f"{name} = {self.format(item, depth + 1)}" for name, _, item in members]
        return f"{klass.__name__} {{ " + ", ".join(parts) + " }"


__all__ = [
    "FormatterPredicate",
    "ValueFormatter",
    "format_value",
    "register_formatter",
    "unformattable",
    "unregister_formatter",
]
