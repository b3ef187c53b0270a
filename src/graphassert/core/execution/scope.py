"""Nestable collection of assertion failures.

The innermost active scope is tracked per execution context with
:mod:`contextvars`, so threads and asyncio tasks running assertions at the same
time never share a failure buffer. Code that prefers explicit wiring can pass
the scope object around instead of relying on :meth:`AssertionScope.current`.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from contextvars import ContextVar, Token
from types import TracebackType
from typing import Any

from graphassert.core.errors import AssertionFailedError, ConfigurationError
from graphassert.core.formatting.reason import (
    finalize_message,
    interpolate_context,
    interpolate_reason,
    render_reason,
    validate_reason,
)
from graphassert.core.formatting.reporter import format_message

logger = logging.getLogger(__name__)

_CURRENT_SCOPE: ContextVar[AssertionScope | None] = ContextVar("graphassert_current_scope", default=None)

_DEFAULT_CONTEXT = "object"


class AssertionScope:
    def __init__(
        self,
        context: str | None = None,
        *,
        terminal: bool = False,
    ) -> None:
        self.context = context
        self.terminal = terminal
        self._failures: list[str] = []
        self._tracing: list[str] = []
        self._reason_template: str | None = None
        self._reason_args: tuple[Any, ...] = ()
        self._parent: AssertionScope | None = None
        self._token: Token[AssertionScope | None] | None = None
        self._closed = False

    @staticmethod
    def current() -> AssertionScope | None:
        return _CURRENT_SCOPE.get()

    @property
    def parent(self) -> AssertionScope | None:
        return self._parent

    @property
    def is_active(self) -> bool:
        return self._token is not None

    def __enter__(self) -> AssertionScope:
        if self._token is not None or self._closed:
            raise ConfigurationError("An assertion scope can only be entered once")
        self._parent = _CURRENT_SCOPE.get()
        if self.context is None and self._parent is not None:
            self.context = self._parent.context
        self._token = _CURRENT_SCOPE.set(self)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if self._token is not None:
            _CURRENT_SCOPE.reset(self._token)
            self._token = None
        self._closed = True
        self._finalize(exc)
        return False

    def because(self, template: str, *args: Any) -> AssertionScope:
        validate_reason(template, args)
        self._reason_template = template
        self._reason_args = args
        return self

    @property
    def reason(self) -> str:
        return render_reason(self._reason_template, self._reason_args)

    def add_failure(self, message: str) -> None:
        # Messages may carry {reason} and {context}; doubled braces are literal text.
        self._failures.append(interpolate_context(str(message), self.context or _DEFAULT_CONTEXT))

    def fail_with(self, message: str, *args: Any) -> None:
        self.add_failure(format_message(message, args))

    def append_tracing(self, text: str) -> None:
        if text:
            self._tracing.append(text)

    def has_failures(self) -> bool:
        return bool(self._failures)

    @property
    def failure_messages(self) -> tuple[str, ...]:
        return tuple(self._failures)

    @property
    def trace(self) -> str:
        return "\n".join(self._tracing)

    def discard(self) -> list[str]:
        discarded = [finalize_message(interpolate_reason(message, self.reason)) for message in self._failures]
        self._failures.clear()
        return discarded

    def _finalize(self, exc: BaseException | None) -> None:
        parent = self._parent
        self._parent = None

        if not self._failures:
            if parent is not None and self._tracing:
                parent._tracing.extend(self._tracing)
            return

        messages = self._failures
        if self._reason_template is not None:
            messages = [interpolate_reason(message, self.reason) for message in messages]
        self._failures = []

        if parent is not None and not self.terminal:
            parent._failures.extend(messages)
            parent._tracing.extend(self._tracing)
            return

        failures = tuple(finalize_message(message) for message in messages)
        trace = "\n".join(self._tracing)
        rendered = "\n".join(failures)
        if trace:
            rendered += "\n\nWith trace:\n" + trace

        if exc is not None:
            # Keep the exception already in flight; the failures travel along as a note.
            logger.debug("event=scope_failures_attached failures=%d error=%s", len(failures), type(exc).__name__)
            exc.add_note(rendered)
            return

        logger.debug("event=scope_raise failures=%d terminal=%s", len(failures), self.terminal)
        raise AssertionFailedError(rendered, failures=failures, trace=trace)


def with_scope(
    body: Callable[[AssertionScope], Any],
    reason: str | None = None,
    reason_args: Sequence[Any] = (),
    *,
    context: str | None = None,
    terminal: bool = False,
) -> None:
    """Run ``body`` inside a fresh scope and raise one aggregated failure on exit."""
    if not callable(body):
        raise ConfigurationError("with_scope requires a callable body")
    scope = AssertionScope(context, terminal=terminal)
    if reason:
        scope.because(reason, *reason_args)
    elif reason_args:
        validate_reason(reason, reason_args)
    with scope:
        body(scope)


__all__ = ["AssertionScope", "with_scope"]
