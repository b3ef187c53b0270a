from __future__ import annotations

from graphassert.core.execution.scope import AssertionScope, with_scope

__all__ = ["AssertionScope", "with_scope"]
