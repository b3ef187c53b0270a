from __future__ import annotations

import logging

import pytest

from graphassert.core.equivalency.models import ComparisonNode
from graphassert.core.equivalency.tracing import Tracer


def test_disabled_tracer_never_builds_messages() -> None:
    tracer = Tracer()
    calls: list[str] = []
    tracer.write_line(ComparisonNode.for_root(1, 1), lambda path: calls.append(path) or path)
    assert calls == []
    assert not tracer.has_lines


def test_blocks_indent_nested_lines() -> None:
    tracer = Tracer(enabled=True)
    root = ComparisonNode.for_root([1], [1])
    with tracer.block(root, lambda path: f"Comparing {path}"):
        tracer.write_line(root.index(0, 1, 1), lambda path: f"Checking {path}")
    tracer.write_line(root, lambda path: "Done")
    assert tracer.text() == "Comparing subject\n  Checking subject[0]\nDone"

    tracer.clear()
    assert tracer.text() == ""


def test_trace_lines_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    tracer = Tracer(enabled=True)
    with caplog.at_level(logging.DEBUG, logger="graphassert.core.equivalency.tracing"):
        tracer.write_line(ComparisonNode.for_root(1, 1, root="value"), lambda path: f"Visiting {path}")
    assert "event=equivalency_trace path=value message=Visiting value" in caplog.text
