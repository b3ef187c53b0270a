from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from graphassert.core.equivalency.models import ComparisonNode

logger = logging.getLogger(__name__)

TraceMessage = Callable[[str], str]


class Tracer:
    """Collects an indented, human-readable account of how two graphs were walked.

    Messages are callables receiving the current path, so nothing is formatted
    unless tracing is switched on.
    """

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._depth = 0
        self._lines: list[str] = []

    def write_line(self, node: ComparisonNode, message: TraceMessage) -> None:
        if not self.enabled:
            return
        text = message(node.path)
        self._lines.append("  " * self._depth + text)
        logger.debug("event=equivalency_trace path=%s message=%s", node.path, text)

    @contextmanager
    def block(self, node: ComparisonNode, message: TraceMessage) -> Iterator[None]:
        self.write_line(node, message)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    @property
    def has_lines(self) -> bool:
        return bool(self._lines)

    def text(self) -> str:
        return "\n".join(self._lines)

    def clear(self) -> None:
        self._lines.clear()
        self._depth = 0


__all__ = ["TraceMessage", "Tracer"]
