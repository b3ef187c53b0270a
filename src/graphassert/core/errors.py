from __future__ import annotations

from typing import Literal

VALUE_MISMATCH = "ValueMismatch"
NULL_MISMATCH = "NullMismatch"
COUNT_MISMATCH = "CountMismatch"
MISSING_KEY = "MissingKey"
UNEXPECTED_KEY = "UnexpectedKey"
UNMATCHED_ELEMENT = "UnmatchedElement"

DiscrepancyKind = Literal[
    "ValueMismatch",
    "NullMismatch",
    "CountMismatch",
    "MissingKey",
    "UnexpectedKey",
    "UnmatchedElement",
]

VALID_DISCREPANCY_KINDS = {
    VALUE_MISMATCH,
    NULL_MISMATCH,
    COUNT_MISMATCH,
    MISSING_KEY,
    UNEXPECTED_KEY,
    UNMATCHED_ELEMENT,
}


class GraphAssertError(Exception):
    pass


class ConfigurationError(GraphAssertError, ValueError):
    """Raised when the calling test code is wired up incorrectly.

    This is never an assertion failure: it signals a bad option, a malformed
    reason template or a custom comparer rule that cannot be evaluated.
    """


class AssertionFailedError(GraphAssertError, AssertionError):
    """The aggregated failure raised when an outermost or terminal scope closes."""

    def __init__(self, message: str, failures: tuple[str, ...] = (), trace: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.failures = failures
        self.trace = trace


__all__ = [
    "COUNT_MISMATCH",
    "MISSING_KEY",
    "NULL_MISMATCH",
    "UNEXPECTED_KEY",
    "UNMATCHED_ELEMENT",
    "VALID_DISCREPANCY_KINDS",
    "VALUE_MISMATCH",
    "AssertionFailedError",
    "ConfigurationError",
    "DiscrepancyKind",
    "GraphAssertError",
]
