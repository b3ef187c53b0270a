from __future__ import annotations

from graphassert.core.formatting.reason import render_reason
from graphassert.core.formatting.reporter import describe, format_message, render
from graphassert.core.formatting.values import format_value, register_formatter, unregister_formatter

__all__ = [
    "describe",
    "format_message",
    "format_value",
    "register_formatter",
    "render",
    "render_reason",
    "unregister_formatter",
]
