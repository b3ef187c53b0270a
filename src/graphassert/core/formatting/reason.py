from __future__ import annotations

import re
import string
from collections.abc import Sequence
from typing import Any

from graphassert.core.errors import ConfigurationError

REASON_PLACEHOLDER = "{reason}"
CONTEXT_PLACEHOLDER = "{context}"

# Doubled braces are literal text; values formatted into a message are escaped
# with escape_braces so only real placeholders are ever filled in.
_TOKEN_PATTERN = re.compile(r"\{\{|\}\}|\{(reason|context)\}")


def _positional_indexes(template: str) -> list[int]:
    indexes: list[int] = []
    auto_index = 0
    try:
        parsed = list(string.Formatter().parse(template))
    except ValueError as exc:
        raise ConfigurationError(f"Reason template {template!r} is malformed: {exc}") from exc

    for _, field_name, _, _ in parsed:
        if field_name is None:
            continue
        head = field_name.split(".", 1)[0].split("[", 1)[0]
        if head == "":
            indexes.append(auto_index)
            auto_index += 1
        elif head.isdigit():
            indexes.append(int(head))
        else:
            raise ConfigurationError(
                f"Reason template {template!r} uses named placeholder {{{field_name}}}; only positional placeholders are supported"
            )
    return indexes


def validate_reason(template: str | None, args: Sequence[Any]) -> None:
    if not template:
        if args:
            raise ConfigurationError(f"Reason arguments {list(args)!r} were supplied without a reason template")
        return
    indexes = _positional_indexes(template)
    expected = max(indexes) + 1 if indexes else 0
    if expected > len(args):
        raise ConfigurationError(
            f"Reason template {template!r} expects {expected} argument(s), but {len(args)} were supplied"
        )
    unused = set(range(len(args))) - set(indexes)
    if unused:
        raise ConfigurationError(
            f"Reason template {template!r} does not use argument(s) at position(s) {sorted(unused)}"
        )


def render_reason(template: str | None, args: Sequence[Any] = ()) -> str:
    """Turn a because-clause into the text substituted for ``{reason}``.

    An empty template yields an empty string. Otherwise the result starts with a
    space and with the word "because" unless the caller already wrote it.
    """
    validate_reason(template, args)
    if not template:
        return ""
    text = template.format(*args).strip()
    if not text:
        return ""
    if not text.lower().startswith("because"):
        text = f"because {text}"
    return f" {text}"


def escape_braces(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")


def fill_placeholder(message: str, name: str, value: str) -> str:
    """Replace the ``{name}`` placeholders of ``message``, leaving escaped braces alone."""

    def substitute(match: re.Match[str]) -> str:
        if match.group(1) == name:
            return escape_braces(value)
        return match.group(0)

    return _TOKEN_PATTERN.sub(substitute, message)


def interpolate_reason(message: str, reason: str) -> str:
    return fill_placeholder(message, "reason", reason)


def interpolate_context(message: str, context: str) -> str:
    return fill_placeholder(message, "context", context)


def finalize_message(message: str) -> str:
    """Drop any reason placeholder still open and turn doubled braces back into text."""

    def substitute(match: re.Match[str]) -> str:
        token = match.group(0)
        if token == "{{":
            return "{"
        if token == "}}":
            return "}"
        if match.group(1) == "reason":
            return ""
        return token

    return _TOKEN_PATTERN.sub(substitute, message)


__all__ = [
    "CONTEXT_PLACEHOLDER",
    "REASON_PLACEHOLDER",
    "escape_braces",
    "fill_placeholder",
    "finalize_message",
    "interpolate_context",
    "interpolate_reason",
    "render_reason",
    "validate_reason",
]
