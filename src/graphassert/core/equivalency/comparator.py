from __future__ import annotations

import logging
import math
import sys
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from decimal import Decimal
from enum import Enum
from typing import Any

from graphassert.constants import DEFAULT_ROOT_NAME
from graphassert.core.equivalency.accessor import (
    CollectionAccessor,
    UnreadableMember,
    ValueAccessor,
    accessor_for,
    is_missing,
)
from graphassert.core.equivalency.matching import maximum_matching
from graphassert.core.equivalency.models import ComparisonNode, Discrepancy, MemberInfo
from graphassert.core.equivalency.options import ComparerRule, EquivalencyOptions
from graphassert.core.equivalency.tracing import Tracer
from graphassert.core.errors import (
    COUNT_MISMATCH,
    MISSING_KEY,
    NULL_MISMATCH,
    UNEXPECTED_KEY,
    UNMATCHED_ELEMENT,
    VALUE_MISMATCH,
)

logger = logging.getLogger(__name__)

_COLLECTIONS = CollectionAccessor()

# Each nesting level of a loose collection costs about seven frames.
_RECURSION_LIMIT = 20_000

_recursion_lock = threading.Lock()
_recursion_users = 0
_saved_recursion_limit: int | None = None


@contextmanager
def _deep_recursion() -> Iterator[None]:
    global _recursion_users, _saved_recursion_limit
    with _recursion_lock:
        if _recursion_users == 0:
            current = sys.getrecursionlimit()
            if current < _RECURSION_LIMIT:
                _saved_recursion_limit = current
                sys.setrecursionlimit(_RECURSION_LIMIT)
        _recursion_users += 1
    try:
        yield
    finally:
        with _recursion_lock:
            _recursion_users -= 1
            if _recursion_users == 0 and _saved_recursion_limit is not None:
                sys.setrecursionlimit(_saved_recursion_limit)
                _saved_recursion_limit = None


class EquivalencyComparator:
    """Walks a subject graph and an expectation graph in lock-step.

    Structural differences never raise: they are returned as :class:`Discrepancy`
    records. Only configuration problems (for example a custom comparer rule
    whose predicate cannot be evaluated) surface as exceptions.
    """

    def __init__(
        self,
        options: EquivalencyOptions | None = None,
        *,
        tracer: Tracer | None = None,
        root: str = DEFAULT_ROOT_NAME,
    ) -> None:
        self.options = options or EquivalencyOptions()
        self.tracer = tracer or Tracer(enabled=self.options.tracing)
        self.root = root
        self._visited: set[tuple[int, int]] = set()

    def compare(self, subject: Any, expectation: Any) -> list[Discrepancy]:
        node = ComparisonNode.for_root(subject, expectation, root=self.root)
        self._visited = set()
        logger.debug("event=equivalency_start root=%s", self.root)
        try:
            with _deep_recursion():
                discrepancies = self._compare_node(node)
        finally:
            self._visited = set()
        logger.debug("event=equivalency_done root=%s discrepancies=%d", self.root, len(discrepancies))
        return discrepancies

    def _compare_node(self, node: ComparisonNode) -> list[Discrepancy]:
        subject = node.subject
        expectation = node.expectation

        if subject is expectation:
            self.tracer.write_line(node, lambda path: f"Same instance at {path}")
            return []

        if subject is None or expectation is None:
            return [Discrepancy(kind=NULL_MISMATCH, path=node.path, expected=expectation, actual=subject)]

        pair = (id(subject), id(expectation))
        if pair in self._visited:
            self.tracer.write_line(node, lambda path: f"Cyclic reference at {path}, treating as equivalent")
            return []

        self._visited.add(pair)
        try:
            return self._dispatch(node)
        finally:
            self._visited.discard(pair)

    def _dispatch(self, node: ComparisonNode) -> list[Discrepancy]:
        options = self.options
        subject = node.subject
        expectation = node.expectation

        rule = options.find_comparer(type(expectation))
        if rule is not None:
            with self.tracer.block(node, lambda path: f"Using {rule.description} at {path}"):
                return self._apply_comparer(rule, node)

        expected_accessor = self._accessor(expectation)
        shape = expected_accessor.shape

        if shape != "scalar" and options.max_depth is not None and node.depth >= options.max_depth:
            self.tracer.write_line(
                node, lambda path: f"Maximum depth reached at {path}, using simple value equality"
            )
            return self._compare_by_equality(node)

        if shape == "scalar":
            return self._compare_scalars(node)
        if shape == "dictionary":
            return self._compare_dictionaries(node)
        if shape == "collection":
            return self._compare_collections(node)
        return self._compare_composites(node, expected_accessor)

    def _accessor(self, value: Any) -> ValueAccessor:
        return accessor_for(
            value,
            by_value=self.options.value_types,
            by_members=self.options.member_types,
        )

    # Custom comparers

    def _apply_comparer(self, rule: ComparerRule, node: ComparisonNode) -> list[Discrepancy]:
        try:
            verdict = rule.comparer(node.subject, node.expectation)
        except AssertionError as exc:
            verdict = str(exc) or False

        if verdict is None or verdict is True:
            return []
        if verdict is False:
            return [self._value_mismatch(node, detail=f"rejected by {rule.description}")]
        if isinstance(verdict, str):
            return [self._value_mismatch(node, detail=verdict)] if verdict else []
        if isinstance(verdict, Discrepancy):
            verdict = [verdict]
        if isinstance(verdict, Iterable):
            messages: list[str] = []
            nested: list[Discrepancy] = []
            for item in verdict:
                if isinstance(item, Discrepancy):
                    nested.append(item)
                else:
                    messages.append(str(item))
            if not messages and not nested:
                return []
            detail = "; ".join(messages) if messages else f"rejected by {rule.description}"
            return [self._value_mismatch(node, detail=detail, nested=tuple(nested))]
        return [] if verdict else [self._value_mismatch(node, detail=f"rejected by {rule.description}")]

    # Scalars

    def _compare_scalars(self, node: ComparisonNode) -> list[Discrepancy]:
        subject = node.subject
        expectation = node.expectation

        if isinstance(subject, str) and isinstance(expectation, str):
            if self._normalize_text(subject) == self._normalize_text(expectation):
                return []
            return [self._value_mismatch(node, detail=_describe_text_difference(subject, expectation))]

        if isinstance(expectation, Enum) and self.options.enum_handling != "equality":
            return self._compare_enums(node)

        if self.options.uses_float_tolerance and _is_approximate_pair(subject, expectation):
            if math.isclose(
                float(subject),
                float(expectation),
                rel_tol=self.options.float_rel_tol or 0.0,
                abs_tol=self.options.float_abs_tol,
            ):
                return []
            return [self._value_mismatch(node)]

        if _both_nan(subject, expectation):
            return []

        if _values_equal(subject, expectation):
            return []
        return [self._value_mismatch(node)]

    def _normalize_text(self, text: str) -> str:
        options = self.options
        if options.ignore_newline_style:
            text = text.replace("\r\n", "\n").replace("\r", "\n")
        if options.ignore_leading_whitespace:
            text = text.lstrip()
        if options.ignore_trailing_whitespace:
            text = text.rstrip()
        if options.ignore_case:
            text = text.casefold()
        return text

    def _compare_enums(self, node: ComparisonNode) -> list[Discrepancy]:
        expectation: Enum = node.expectation
        subject = node.subject
        if self.options.enum_handling == "name":
            actual = subject.name if isinstance(subject, Enum) else subject
            if actual == expectation.name:
                return []
            return [self._value_mismatch(node, detail=f"compared by name {expectation.name!r}")]
        actual = subject.value if isinstance(subject, Enum) else subject
        if _values_equal(actual, expectation.value):
            return []
        return [self._value_mismatch(node, detail=f"compared by value {expectation.value!r}")]

    def _compare_by_equality(self, node: ComparisonNode) -> list[Discrepancy]:
        if _values_equal(node.subject, node.expectation):
            return []
        return [self._value_mismatch(node, detail="compared using simple value equality")]

    # Dictionaries

    def _compare_dictionaries(self, node: ComparisonNode) -> list[Discrepancy]:
        subject = node.subject
        expectation: Mapping[Any, Any] = node.expectation
        subject_accessor = self._accessor(subject)

        if subject_accessor.shape not in ("dictionary", "composite"):
            return [self._value_mismatch(node, detail="expected a dictionary")]

        discrepancies: list[Discrepancy] = []
        with self.tracer.block(node, lambda path: f"Comparing dictionary at {path}"):
            for key, expected_item in expectation.items():
                actual_item = subject_accessor.lookup(subject, key)
                child = node.key(key, None if is_missing(actual_item) else actual_item, expected_item)
                if not self._is_key_selected(child, key, expected_item, expectation):
                    self.tracer.write_line(child, lambda path: f"Excluding {path}")
                    continue
                if is_missing(actual_item):
                    discrepancies.append(
                        Discrepancy(
                            kind=MISSING_KEY,
                            path=child.path,
                            expected=expected_item,
                            key=key,
                            detail="key",
                        )
                    )
                    continue
                unreadable = _unreadable(child)
                if unreadable is not None:
                    discrepancies.append(self._value_mismatch(child, detail=unreadable.describe()))
                    continue
                discrepancies.extend(self._compare_node(child))

            if subject_accessor.shape == "dictionary" and not self.options.allow_extra_keys:
                for key, actual_item in subject.items():
                    if _contains_key(expectation, key):
                        continue
                    child = node.key(key, actual_item, None)
                    if not self._is_key_selected(child, key, actual_item, expectation):
                        continue
                    discrepancies.append(
                        Discrepancy(
                            kind=UNEXPECTED_KEY,
                            path=child.path,
                            actual=actual_item,
                            key=key,
                            detail="key",
                        )
                    )
        return discrepancies

    def _is_key_selected(self, child: ComparisonNode, key: Any, value: Any, owner: Mapping[Any, Any]) -> bool:
        # Only string keys can be named by member selection rules.
        if not isinstance(key, str):
            return True
        info = MemberInfo(name=key, declared_type=type(value), declaring_type=type(owner), path=child.relative_path)
        return self.options.is_member_selected(info)

    # Collections

    def _compare_collections(self, node: ComparisonNode) -> list[Discrepancy]:
        subject = node.subject
        subject_accessor = self._accessor(subject)
        if subject_accessor.shape != "collection":
            return [self._value_mismatch(node, detail="expected a collection")]

        subject_items = _COLLECTIONS.elements(subject)
        expected_items = _COLLECTIONS.elements(node.expectation)
        materialized = ComparisonNode(
            root=node.root,
            segments=node.segments,
            subject=subject_items,
            expectation=expected_items,
        )

        if len(subject_items) != len(expected_items):
            return [
                Discrepancy(
                    kind=COUNT_MISMATCH,
                    path=node.path,
                    expected=expected_items,
                    actual=subject_items,
                )
            ]

        unordered = _COLLECTIONS.is_unordered(node.expectation) or _COLLECTIONS.is_unordered(subject)
        if not unordered and self.options.is_ordering_strict_for(node):
            with self.tracer.block(node, lambda path: f"Strictly comparing collection at {path}"):
                return self._compare_in_order(materialized)
        with self.tracer.block(node, lambda path: f"Comparing collection at {path} without regard to ordering"):
            return self._compare_as_multiset(materialized)

    def _compare_in_order(self, node: ComparisonNode) -> list[Discrepancy]:
        discrepancies: list[Discrepancy] = []
        for index, (actual_item, expected_item) in enumerate(zip(node.subject, node.expectation)):
            discrepancies.extend(self._compare_node(node.index(index, actual_item, expected_item)))
        return discrepancies

    def _compare_as_multiset(self, node: ComparisonNode) -> list[Discrepancy]:
        subject_items: list[Any] = node.subject
        expected_items: list[Any] = node.expectation

        def equivalent(expectation_index: int, subject_index: int) -> bool:
            child = node.index(subject_index, subject_items[subject_index], expected_items[expectation_index])
            return not self._compare_node(child)

        matches = maximum_matching(len(expected_items), len(subject_items), equivalent)
        if len(matches) == len(expected_items):
            self.tracer.write_line(node, lambda path: f"Every item at {path} has an equivalent")
            return []

        matched_subjects = set(matches.values())
        discrepancies: list[Discrepancy] = []
        for expectation_index, expected_item in enumerate(expected_items):
            if expectation_index in matches:
                continue
            discrepancies.append(
                Discrepancy(
                    kind=UNMATCHED_ELEMENT,
                    path=node.path,
                    expected=expected_item,
                    key=expectation_index,
                    detail="expectation",
                )
            )
        for subject_index, actual_item in enumerate(subject_items):
            if subject_index in matched_subjects:
                continue
            discrepancies.append(
                Discrepancy(
                    kind=UNMATCHED_ELEMENT,
                    path=node.index(subject_index, actual_item, None).path,
                    actual=actual_item,
                    key=subject_index,
                    detail="subject",
                )
            )
        return discrepancies

    # Composites

    def _compare_composites(self, node: ComparisonNode, expected_accessor: ValueAccessor) -> list[Discrepancy]:
        subject = node.subject
        expectation = node.expectation
        subject_accessor = self._accessor(subject)
        if subject_accessor.shape not in ("composite", "dictionary"):
            return [self._value_mismatch(node, detail=f"expected an object like {type(expectation).__name__}")]

        discrepancies: list[Discrepancy] = []
        with self.tracer.block(node, lambda path: f"Comparing members of {type(expectation).__name__} at {path}"):
            for name, declared_type, expected_member in expected_accessor.members(expectation):
                actual_member = subject_accessor.lookup(subject, name)
                child = node.member(name, None if is_missing(actual_member) else actual_member, expected_member)
                info = MemberInfo(
                    name=name,
                    declared_type=declared_type,
                    declaring_type=type(expectation),
                    path=child.relative_path,
                )
                if not self.options.is_member_selected(info):
                    self.tracer.write_line(child, lambda path: f"Excluding {path}")
                    continue
                if is_missing(actual_member):
                    if self.options.ignore_missing_members:
                        continue
                    discrepancies.append(
                        Discrepancy(
                            kind=MISSING_KEY,
                            path=child.path,
                            expected=expected_member,
                            key=name,
                            detail="member",
                        )
                    )
                    continue
                unreadable = _unreadable(child)
                if unreadable is not None:
                    discrepancies.append(self._value_mismatch(child, detail=unreadable.describe()))
                    continue
                discrepancies.extend(self._compare_node(child))
        return discrepancies

    def _value_mismatch(
        self,
        node: ComparisonNode,
        *,
        detail: str | None = None,
        nested: tuple[Discrepancy, ...] = (),
    ) -> Discrepancy:
        return Discrepancy(
            kind=VALUE_MISMATCH,
            path=node.path,
            expected=node.expectation,
            actual=node.subject,
            detail=detail,
            nested=nested,
        )


def _unreadable(node: ComparisonNode) -> UnreadableMember | None:
    for value in (node.expectation, node.subject):
        if isinstance(value, UnreadableMember):
            return value
    return None


def _contains_key(mapping: Mapping[Any, Any], key: Any) -> bool:
    try:
        return key in mapping
    except TypeError:
        return False


def _values_equal(left: Any, right: Any) -> bool:
    return bool(left == right)


def _is_real_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _is_approximate_pair(left: Any, right: Any) -> bool:
    if not (_is_real_number(left) and _is_real_number(right)):
        return False
    return isinstance(left, (float, Decimal)) or isinstance(right, (float, Decimal))


def _both_nan(left: Any, right: Any) -> bool:
    return isinstance(left, float) and isinstance(right, float) and math.isnan(left) and math.isnan(right)


def _describe_text_difference(actual: str, expected: str) -> str:
    limit = min(len(actual), len(expected))
    for index in range(limit):
        if actual[index] != expected[index]:
            return f"they differ at index {index}"
    if len(actual) > len(expected):
        return f"it is {len(actual) - len(expected)} character(s) longer"
    return f"it is {len(expected) - len(actual)} character(s) shorter"


def compare(
    subject: Any,
    expectation: Any,
    options: EquivalencyOptions | None = None,
    *,
    root: str = DEFAULT_ROOT_NAME,
) -> list[Discrepancy]:
    return EquivalencyComparator(options, root=root).compare(subject, expectation)


__all__ = ["EquivalencyComparator", "compare"]
