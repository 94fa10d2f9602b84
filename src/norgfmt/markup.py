"""Escape and markup normalizer.

Decides, per attached modifier, between the standard encoding (``*bold*``)
and the free-form encoding (``*|bold|*``), and which escapes survive. Every
function here is pure and looks at one span plus the character that follows
it; nothing is shared between spans.

Norg rules the decisions rest on:

- A standard opener must be followed by non-whitespace other than its own
  character or ``|`` (``*|`` opens free-form instead); a standard closer must
  follow non-whitespace and be followed by whitespace, punctuation or the end
  of the paragraph.
- A free-form span ends at the first ``|`` directly followed by its
  character, whatever surrounds it.
- Every escaped ASCII punctuation character stays escaped; only escapes of
  letters, digits and whitespace are dropped.
"""

from __future__ import annotations

from norgfmt.ast import (
    Anchor,
    Encoding,
    Escape,
    Inline,
    InlineLinkTarget,
    Link,
    MarkupSpan,
    TextRun,
)
from norgfmt.tokens import is_punctuation, is_whitespace


def has_collision(span: MarkupSpan) -> bool:
    """True if the span's own content holds its delimiter, escaped or not."""
    ch = span.style.char
    for child in span.children:
        if isinstance(child, TextRun) and ch in child.value:
            return True
        if isinstance(child, Escape) and child.value == ch:
            return True
    return False


def standard_is_expressible(span: MarkupSpan, followed_by: str = "") -> bool:
    """True if the content can be written with single-character delimiters.

    ``followed_by`` is the first character rendered after the span ("" at the
    end of a paragraph); a standard closer must be followed by whitespace or
    punctuation other than the delimiter itself.
    """
    ch = span.style.char
    first = leading_char(span.children)
    last = trailing_char(span.children)

    if not first or not last:
        return False
    if is_whitespace(first) or first == "|" or is_whitespace(last):
        return False
    if span.style.is_verbatim and last == "\\":
        return False
    if followed_by == ch:
        return False
    return is_whitespace(followed_by) or is_punctuation(followed_by)


def choose_encoding(span: MarkupSpan, followed_by: str = "") -> Encoding:
    """Pick the canonical encoding for one span.

    A delimiter collision (the delimiter appearing in the content, escaped or
    not) selects free-form, which makes escaping it unnecessary. Otherwise the
    standard form wins whenever it can express the content; spans that arrived
    free-form decay to standard under the same condition.
    """
    if has_collision(span):
        return Encoding.FREE_FORM
    if standard_is_expressible(span, followed_by):
        return Encoding.STANDARD
    return Encoding.FREE_FORM


def render_escape(char: str) -> str:
    """Canonical text for an escape outside any free-form delimiter context.

    Escapes of ASCII punctuation are kept, including ones whose character is
    inert where it stands (``a \\. b``): once reflow moves words between
    lines and neighbours, any punctuation can land where it is significant,
    and that position is not known here. Anything else (letters, digits,
    whitespace) becomes literal.
    """
    if is_punctuation(char):
        return "\\" + char
    return char


def render_free_form_escape(char: str, delimiter: str, before: str, after: str, verbatim: bool) -> str:
    """Escape inside a free-form span whose delimiter is ``delimiter``.

    The delimiter itself no longer needs escaping, except where the literal
    character could open a nested span of the same style (non-verbatim
    content only) or where it would fuse with a preceding backslash.
    """
    if char != delimiter:
        return render_escape(char)
    if before == "\\":
        return "\\" + char
    if not verbatim and _could_open(char, before, after):
        return "\\" + char
    return char


def protect_pipes(text: str, delimiter: str, after: str) -> str:
    """Escape each ``|`` that would close a free-form span early."""
    closer = "|" + delimiter
    text = text.replace(closer, "\\" + closer)
    if text.endswith("|") and not text.endswith("\\|") and after == delimiter:
        text = text[:-1] + "\\|"
    return text


def leading_char(nodes: tuple[Inline, ...] | list[Inline]) -> str:
    """First character the nodes render to ("" if they render to nothing)."""
    for node in nodes:
        if isinstance(node, TextRun):
            if node.value:
                return node.value[0]
            continue
        if isinstance(node, Escape):
            return "\\" if is_punctuation(node.value) else node.value
        return _opening_char(node)
    return ""


def trailing_char(nodes: tuple[Inline, ...] | list[Inline]) -> str:
    """Last character the nodes render to ("" if they render to nothing)."""
    for node in reversed(nodes):
        if isinstance(node, TextRun):
            if node.value:
                return node.value[-1]
            continue
        if isinstance(node, Escape):
            return node.value
        return _closing_char(node)
    return ""


def _opening_char(node: Inline) -> str:
    if isinstance(node, MarkupSpan):
        return node.style.char
    if isinstance(node, Link):
        return "{"
    if isinstance(node, Anchor):
        return "["
    if isinstance(node, InlineLinkTarget):
        return "<"
    return ""


def _closing_char(node: Inline) -> str:
    if isinstance(node, MarkupSpan):
        return node.style.char
    if isinstance(node, Link):
        return "}" if node.description is None else "]"
    if isinstance(node, Anchor):
        if node.target is not None:
            return _closing_char(node.target)
        return "]"
    if isinstance(node, InlineLinkTarget):
        return ">"
    return ""


def _could_open(char: str, before: str, after: str) -> bool:
    if before == char or not (is_whitespace(before) or is_punctuation(before)):
        return False
    return after == "|" or (not is_whitespace(after) and after != char)
