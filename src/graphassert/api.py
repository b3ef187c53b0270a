from __future__ import annotations

from collections.abc import Callable
from typing import Any

from graphassert.config import get_settings
from graphassert.constants import DEFAULT_ROOT_NAME
from graphassert.core.equivalency.comparator import EquivalencyComparator
from graphassert.core.equivalency.models import Discrepancy
from graphassert.core.equivalency.options import EquivalencyOptions, EquivalencyOptionsBuilder
from graphassert.core.equivalency.tracing import Tracer
from graphassert.core.errors import ConfigurationError
from graphassert.core.execution.scope import AssertionScope
from graphassert.core.formatting.reason import escape_braces, interpolate_reason, render_reason, validate_reason
from graphassert.core.formatting.reporter import describe_all

Configure = Callable[[EquivalencyOptionsBuilder], Any]


def build_options(configure: Configure | None = None) -> EquivalencyOptions:
    builder = get_settings().options_builder()
    if configure is None:
        return builder.build()
    if not callable(configure):
        raise ConfigurationError("configure must be a callable receiving the options builder")
    result = configure(builder)
    if result is not None:
        builder = result
    if not isinstance(builder, EquivalencyOptionsBuilder):
        raise ConfigurationError("configure callback must return the options builder it was given")
    return builder.build()


def compare_for_equivalence(
    subject: Any,
    expectation: Any,
    configure: Configure | None = None,
    *,
    scope: AssertionScope | None = None,
    root: str = DEFAULT_ROOT_NAME,
) -> list[Discrepancy]:
    """Compare two object graphs and return every discrepancy found.

    When tracing is enabled and ``scope`` is given, the trace is appended to it
    so it shows up in the scope's eventual failure message.
    """
    options = build_options(configure)
    tracer = Tracer(enabled=options.tracing)
    discrepancies = EquivalencyComparator(options, tracer=tracer, root=root).compare(subject, expectation)
    if scope is not None and tracer.has_lines:
        scope.append_tracing(tracer.text())
    return discrepancies


def assert_equivalent(
    subject: Any,
    expectation: Any,
    configure: Configure | None = None,
    because: str = "",
    *because_args: Any,
    scope: AssertionScope | None = None,
    root: str = DEFAULT_ROOT_NAME,
) -> None:
    validate_reason(because, because_args)
    target = scope or AssertionScope.current()
    if target is None:
        with AssertionScope(terminal=True) as own_scope:
            _report(own_scope, subject, expectation, configure, because, because_args, root)
        return
    _report(target, subject, expectation, configure, because, because_args, root)


def _report(
    scope: AssertionScope,
    subject: Any,
    expectation: Any,
    configure: Configure | None,
    because: str,
    because_args: tuple[Any, ...],
    root: str,
) -> None:
    options = build_options(configure)
    tracer = Tracer(enabled=options.tracing)
    discrepancies = EquivalencyComparator(options, tracer=tracer, root=root).compare(subject, expectation)
    if tracer.has_lines:
        scope.append_tracing(tracer.text())
    if not discrepancies:
        return

    settings = get_settings()
    messages = describe_all(
        discrepancies,
        max_length=settings.max_format_length,
        max_depth=settings.max_format_depth,
    )
    if because:
        reason = render_reason(because, because_args)
        messages = [interpolate_reason(message, reason) for message in messages]
    messages[-1] += "\n\nWith configuration:\n" + escape_braces(options.describe())
    for message in messages:
        scope.add_failure(message)


__all__ = ["Configure", "assert_equivalent", "build_options", "compare_for_equivalence"]
