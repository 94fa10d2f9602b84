"""Round-trip verification: formatted output must mean what the input meant.

Two trees are compared through their semantic signature, a nested tuple that
keeps structure and visible text but forgets spans, markup encoding, escape
spelling, the amount of whitespace and the spelling differences the link
canonicalizer is allowed to introduce.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from norgfmt.ast import (
    Anchor,
    Document,
    Escape,
    Heading,
    Inline,
    InlineLinkTarget,
    Link,
    LinkTarget,
    List,
    ListItem,
    MarkupSpan,
    Paragraph,
    TargetKind,
    TextRun,
    Unknown,
    VerbatimBlock,
)
from norgfmt.errors import LexError, ParseError, VerificationError
from norgfmt.links import canonical_url, inline_text, name_key

logger = logging.getLogger(__name__)

_WS_RUN = re.compile(r"\s+")

Signature = tuple[Any, ...]


def semantic_signature(node: Document | Heading | Paragraph | List | ListItem | VerbatimBlock | Unknown) -> Signature:
    """Reduce a block-level node to a comparable nested tuple."""
    match node:
        case Document():
            return ("document", tuple(semantic_signature(child) for child in node.children))
        case Heading():
            return (
                "heading",
                node.level,
                _inline_signature(node.title, strip=True),
                tuple(semantic_signature(child) for child in node.children),
            )
        case Paragraph():
            return ("paragraph", _inline_signature(node.children, strip=True))
        case List():
            return ("list", node.kind.value, tuple(semantic_signature(item) for item in node.items))
        case ListItem():
            content = _inline_signature(node.content.children, strip=True) if node.content is not None else ()
            return (
                "item",
                node.kind.value,
                node.level,
                content,
                tuple(semantic_signature(child) for child in node.children),
            )
        case VerbatimBlock():
            return ("verbatim", node.name, node.parameters, node.content)
        case Unknown():
            return ("unknown", node.kind, node.raw)
        case _:
            raise TypeError(f"cannot compute signature of {type(node).__name__}")


def _inline_signature(nodes: tuple[Inline, ...], *, strip: bool = False) -> Signature:
    items: list[Any] = []
    text: list[str] = []

    def flush() -> None:
        if text:
            items.append(_WS_RUN.sub(" ", "".join(text)))
            text.clear()

    for node in nodes:
        if isinstance(node, (TextRun, Escape)):
            text.append(node.value)
            continue
        flush()
        if isinstance(node, MarkupSpan):
            items.append(("markup", node.style.char, _inline_signature(node.children)))
        elif isinstance(node, Link):
            items.append(_link_signature(node))
        elif isinstance(node, Anchor):
            target = _link_signature(node.target) if node.target is not None else None
            description = (
                _inline_signature(node.description, strip=True) if node.description is not None else None
            )
            items.append(("anchor", name_key(inline_text(node.name)), target, description))
        elif isinstance(node, InlineLinkTarget):
            items.append(("target", _inline_signature(node.children, strip=True)))
    flush()

    if strip and items:
        if isinstance(items[0], str):
            items[0] = items[0].lstrip()
        if isinstance(items[-1], str):
            items[-1] = items[-1].rstrip()
        items = [item for item in items if item != ""]
    return tuple(items)


def _link_signature(link: Link) -> Signature:
    file = link.file.strip() if link.file is not None else None
    description = _inline_signature(link.description, strip=True) if link.description is not None else None
    return ("link", file, _target_signature(link.target), description)


def _target_signature(target: LinkTarget | None) -> Signature | None:
    if target is None:
        return None
    if target.kind == TargetKind.URL:
        return (target.kind.name, canonical_url(target.text))
    if target.kind == TargetKind.LINE_NUMBER:
        return (target.kind.name, _WS_RUN.sub("", target.text))
    return (target.kind.name, target.level, name_key(target.text))


def first_difference(left: Any, right: Any, path: tuple[str, ...] = ()) -> tuple[str, ...] | None:
    """Path to the first place two signatures disagree, or None if they are equal."""
    if left == right:
        return None
    if not (isinstance(left, tuple) and isinstance(right, tuple)):
        return path
    if len(left) != len(right):
        return path
    label = left[0] if left and isinstance(left[0], str) else ""
    for idx, (a, b) in enumerate(zip(left, right)):
        step = f"{label}[{idx}]" if label else str(idx)
        found = first_difference(a, b, (*path, step))
        if found is not None:
            return found
    return path


def verify_roundtrip(original: Document | str, formatted: str, filename: str = "input.norg") -> None:
    """Re-parse formatted output and compare it against the original tree.

    ``original`` may be the source text or its already parsed Document.
    Raises VerificationError if the formatted text no longer parses or
    means something else.
    """
    from norgfmt.parser import parse

    if isinstance(original, str):
        original = parse(original, filename)

    try:
        reparsed = parse(formatted, filename)
    except (LexError, ParseError) as exc:
        raise VerificationError(f"formatted output does not parse: {exc.message}") from exc

    expected = semantic_signature(original)
    actual = semantic_signature(reparsed)
    path = first_difference(expected, actual)
    if path is not None:
        logger.debug("signature mismatch at %s", "/".join(path) or "document")
        raise VerificationError("formatted output changes document meaning", path)
    logger.debug("round trip verified for %s", filename)
