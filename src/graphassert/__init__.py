"""Structural equivalence assertions for arbitrary Python object graphs."""
from __future__ import annotations

from graphassert.api import assert_equivalent, build_options, compare_for_equivalence
from graphassert.config import Settings, get_settings, load_settings, reset_settings
from graphassert.core.equivalency import (
    ComparisonNode,
    Discrepancy,
    EquivalencyComparator,
    EquivalencyOptions,
    EquivalencyOptionsBuilder,
    MemberInfo,
    PathSegment,
)
from graphassert.core.errors import AssertionFailedError, ConfigurationError, GraphAssertError
from graphassert.core.execution import AssertionScope, with_scope
from graphassert.core.formatting import format_value, register_formatter, render, unregister_formatter

__all__ = [
    "AssertionFailedError",
    "AssertionScope",
    "ComparisonNode",
    "ConfigurationError",
    "Discrepancy",
    "EquivalencyComparator",
    "EquivalencyOptions",
    "EquivalencyOptionsBuilder",
    "GraphAssertError",
    "MemberInfo",
    "PathSegment",
    "Settings",
    "assert_equivalent",
    "build_options",
    "compare_for_equivalence",
    "format_value",
    "get_settings",
    "load_settings",
    "register_formatter",
    "render",
    "reset_settings",
    "unregister_formatter",
    "with_scope",
]
