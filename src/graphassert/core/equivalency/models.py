from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from graphassert.core.errors import DiscrepancyKind

SegmentKind = Literal["member", "index", "key"]


@dataclass(slots=True, frozen=True)
class PathSegment:
    kind: SegmentKind
    value: Any

    def render(self) -> str:
        if self.kind == "member":
            return f".{self.value}"
        if self.kind == "index":
            return f"[{self.value}]"
        return f"[{_render_key(self.value)}]"


def _render_key(key: Any) -> str:
    if isinstance(key, str):
        return f'"{key}"'
    try:
        return repr(key)
    except Exception:
        return f"<{type(key).__name__}>"


def render_path(root: str, segments: tuple[PathSegment, ...]) -> str:
    return root + "".join(segment.render() for segment in segments)


@dataclass(slots=True, frozen=True)
class ComparisonNode:
    """A position in the two graphs being compared, with the values found there."""

    root: str
    segments: tuple[PathSegment, ...]
    subject: Any
    expectation: Any

    @property
    def path(self) -> str:
        return render_path(self.root, self.segments)

    @property
    def relative_path(self) -> str:
        return render_path("", self.segments).lstrip(".")

    @property
    def depth(self) -> int:
        return len(self.segments)

    @property
    def is_root(self) -> bool:
        return not self.segments

    def child(self, segment: PathSegment, subject: Any, expectation: Any) -> ComparisonNode:
        return ComparisonNode(
            root=self.root,
            segments=(*self.segments, segment),
            subject=subject,
            expectation=expectation,
        )

    def member(self, name: str, subject: Any, expectation: Any) -> ComparisonNode:
        return self.child(PathSegment("member", name), subject, expectation)

    def index(self, index: int, subject: Any, expectation: Any) -> ComparisonNode:
        return self.child(PathSegment("index", index), subject, expectation)

    def key(self, key: Any, subject: Any, expectation: Any) -> ComparisonNode:
        return self.child(PathSegment("key", key), subject, expectation)

    @staticmethod
    def for_root(subject: Any, expectation: Any, root: str = "subject") -> ComparisonNode:
        return ComparisonNode(root=root, segments=(), subject=subject, expectation=expectation)


@dataclass(slots=True, frozen=True)
class MemberInfo:
    name: str
    declared_type: Any
    declaring_type: type
    path: str

    def __str__(self) -> str:
        return self.path


@dataclass(slots=True, frozen=True)
class Discrepancy:
    kind: DiscrepancyKind
    path: str
    expected: Any = None
    actual: Any = None
    key: Any = None
    detail: str | None = None
    nested: tuple[Discrepancy, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "path": self.path,
            "expected": self.expected,
            "actual": self.actual,
        }
        if self.key is not None:
            payload["key"] = self.key
        if self.detail is not None:
            payload["detail"] = self.detail
        if self.nested:
            payload["nested"] = [item.to_dict() for item in self.nested]
        return payload


__all__ = [
    "ComparisonNode",
    "Discrepancy",
    "MemberInfo",
    "PathSegment",
    "SegmentKind",
    "render_path",
]
