from __future__ import annotations

from graphassert.core.equivalency.comparator import EquivalencyComparator, compare
from graphassert.core.equivalency.models import ComparisonNode, Discrepancy, MemberInfo, PathSegment
from graphassert.core.equivalency.options import EquivalencyOptions, EquivalencyOptionsBuilder

__all__ = [
    "ComparisonNode",
    "Discrepancy",
    "EquivalencyComparator",
    "EquivalencyOptions",
    "EquivalencyOptionsBuilder",
    "MemberInfo",
    "PathSegment",
    "compare",
]
