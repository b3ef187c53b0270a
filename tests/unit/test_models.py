from __future__ import annotations

from graphassert.core.equivalency.models import ComparisonNode, PathSegment, render_path


def test_path_segments_render_like_accessors() -> None:
    segments = (
        PathSegment("member", "orders"),
        PathSegment("index", 2),
        PathSegment("key", "sku"),
        PathSegment("key", 7),
    )
    assert render_path("subject", segments) == 'subject.orders[2]["sku"][7]'


def test_child_nodes_extend_the_path() -> None:
    root = ComparisonNode.for_root({"a": [1]}, {"a": [1]})
    child = root.key("a", [1], [1]).index(0, 1, 1)
    assert root.is_root
    assert root.path == "subject"
    assert child.path == 'subject["a"][0]'
    assert child.depth == 2
    assert child.subject == 1


def test_relative_path_drops_the_root() -> None:
    node = ComparisonNode.for_root(None, None, root="result").member("customer", None, None).member("name", None, None)
    assert node.path == "result.customer.name"
    assert node.relative_path == "customer.name"
