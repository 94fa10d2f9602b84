"""Whitespace handling for verbatim block content and inline text."""

from __future__ import annotations

import re

_WS_RUN = re.compile(r"\s+")


def dedent_block(lines: list[str]) -> str:
    """Strip the indentation shared by every non-blank line of a verbatim block.

    Algorithm:
    1. Blank (whitespace-only) lines become empty and do not take part in
       computing the common prefix (lenient, like interior blank lines).
    2. The longest run of leading spaces/tabs common to all remaining lines
       is removed from each of them.
    3. Lines are rejoined with newlines; trailing whitespace is dropped.
    """
    if not lines:
        return ""

    lines = [line.rstrip() for line in lines]
    content = [line for line in lines if not _is_blank(line)]
    if not content:
        return "\n".join("" for _ in lines)

    prefix = _common_indent(content)
    prefix_len = len(prefix)
    return "\n".join(line[prefix_len:] if not _is_blank(line) else "" for line in lines)


def indent_block(content: str, prefix: str) -> list[str]:
    """Prefix every non-blank line of content; blank lines stay empty."""
    if not content:
        return []
    return [prefix + line if line else "" for line in content.split("\n")]


def collapse_whitespace(text: str) -> str:
    """Trim text and collapse every whitespace run to a single space."""
    return _WS_RUN.sub(" ", text).strip()


def _common_indent(lines: list[str]) -> str:
    first = lines[0]
    prefix = first[: len(first) - len(first.lstrip(" \t"))]
    for line in lines[1:]:
        while prefix and not line.startswith(prefix):
            prefix = prefix[:-1]
    return prefix


def _is_blank(line: str) -> bool:
    """Return True if line contains only spaces and tabs (or is empty)."""
    return all(ch in " \t" for ch in line)
