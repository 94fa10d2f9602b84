"""Link and anchor canonicalizer.

Links reference their destinations by name only. A pre-pass over the
document collects every name a link can resolve to (heading titles, anchor
definitions, inline link targets) into an AnchorTable; rendering then looks
names up there instead of holding references into the tree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from norgfmt.ast import (
    Anchor,
    Block,
    Document,
    Escape,
    Heading,
    Inline,
    InlineLinkTarget,
    Link,
    LinkTarget,
    List,
    MarkupSpan,
    Paragraph,
    TargetKind,
    TextRun,
)
from norgfmt.strings import collapse_whitespace

_SCHEME = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):")
_WS = re.compile(r"\s+")

_TARGET_PREFIX: dict[TargetKind, str] = {
    TargetKind.GENERIC: "#",
    TargetKind.DEFINITION: "$",
    TargetKind.FOOTNOTE: "^",
    TargetKind.WIKI: "?",
    TargetKind.EXTENDABLE: "=",
    TargetKind.PATH: "/",
    TargetKind.TIMESTAMP: "@",
}


def name_key(text: str) -> str:
    """Lookup key: whitespace collapsed, case folded."""
    return collapse_whitespace(text).casefold()


def inline_text(nodes: tuple[Inline, ...]) -> str:
    """Flatten inline nodes to the text a reader sees, ignoring markup."""
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, (TextRun, Escape)):
            parts.append(node.value)
        elif isinstance(node, MarkupSpan):
            parts.append(inline_text(node.children))
        elif isinstance(node, InlineLinkTarget):
            parts.append(inline_text(node.children))
        elif isinstance(node, Anchor):
            parts.append(inline_text(node.name))
        elif isinstance(node, Link) and node.description is not None:
            parts.append(inline_text(node.description))
    return "".join(parts)


def plain_text(nodes: tuple[Inline, ...]) -> str | None:
    """Text of nodes made only of TextRuns, else None."""
    if not all(isinstance(node, TextRun) for node in nodes):
        return None
    return collapse_whitespace("".join(node.value for node in nodes if isinstance(node, TextRun)))


# ---------------------------------------------------------------------------
# Anchor table
# ---------------------------------------------------------------------------


@dataclass
class AnchorTable:
    """Known link destinations keyed by name_key, mapped to canonical spelling.

    Spellings are None when the destination's name contains markup and can
    therefore only be matched, not copied.
    """

    headings: dict[tuple[int, str], str | None] = field(default_factory=dict)
    anchors: dict[str, str | None] = field(default_factory=dict)
    targets: dict[str, str | None] = field(default_factory=dict)

    def add_heading(self, heading: Heading) -> None:
        key = (heading.level, name_key(inline_text(heading.title)))
        self.headings.setdefault(key, plain_text(heading.title))

    def add_anchor(self, anchor: Anchor) -> None:
        self.anchors.setdefault(name_key(inline_text(anchor.name)), plain_text(anchor.name))

    def add_target(self, target: InlineLinkTarget) -> None:
        self.targets.setdefault(name_key(inline_text(target.children)), plain_text(target.children))

    def find_heading(self, level: int, text: str) -> tuple[bool, str | None]:
        key = (level, name_key(text))
        if key in self.headings:
            return True, self.headings[key]
        return False, None

    def find_generic(self, text: str) -> tuple[bool, str | None]:
        """Generic links match any heading, anchor definition or inline target."""
        key = name_key(text)
        for (_, title), spelling in self.headings.items():
            if title == key:
                return True, spelling
        for table in (self.targets, self.anchors):
            if key in table:
                return True, table[key]
        return False, None

    def find_anchor(self, text: str) -> tuple[bool, str | None]:
        key = name_key(text)
        if key in self.anchors:
            return True, self.anchors[key]
        return False, None


def build_anchor_table(doc: Document) -> AnchorTable:
    """Pre-pass collecting every named destination in the document."""
    table = AnchorTable()
    for child in doc.children:
        _collect_block(child, table)
    return table


def _collect_block(block: Block, table: AnchorTable) -> None:
    if isinstance(block, Heading):
        table.add_heading(block)
        _collect_inline(block.title, table)
        for child in block.children:
            _collect_block(child, table)
    elif isinstance(block, Paragraph):
        _collect_inline(block.children, table)
    elif isinstance(block, List):
        for item in block.items:
            if item.content is not None:
                _collect_inline(item.content.children, table)
            for nested in item.children:
                _collect_block(nested, table)


def _collect_inline(nodes: tuple[Inline, ...], table: AnchorTable) -> None:
    for node in nodes:
        if isinstance(node, Anchor) and node.target is not None:
            table.add_anchor(node)
        elif isinstance(node, InlineLinkTarget):
            table.add_target(node)
        elif isinstance(node, MarkupSpan):
            _collect_inline(node.children, table)
        elif isinstance(node, Link) and node.description is not None:
            _collect_inline(node.description, table)


# ---------------------------------------------------------------------------
# Canonical syntax
# ---------------------------------------------------------------------------


def canonical_url(url: str) -> str:
    """Drop all whitespace and lowercase the scheme."""
    url = _WS.sub("", url)
    return _SCHEME.sub(lambda m: m.group(1).lower() + ":", url, count=1)


def canonical_target(target: LinkTarget) -> str:
    """Render a link target in canonical form (without braces)."""
    match target.kind:
        case TargetKind.URL:
            return canonical_url(target.text)
        case TargetKind.LINE_NUMBER:
            return _WS.sub("", target.text)
        case TargetKind.HEADING:
            return "*" * target.level + " " + collapse_whitespace(target.text)
        case _:
            return _TARGET_PREFIX[target.kind] + " " + collapse_whitespace(target.text)


def resolve_target(target: LinkTarget, table: AnchorTable) -> tuple[LinkTarget, bool]:
    """Look a document-internal target up; return the (respelled) target and whether it matched.

    Only heading and generic targets resolve inside the document; every
    other kind is reported as found since it points outside of it.
    """
    if target.kind == TargetKind.HEADING:
        found, spelling = table.find_heading(target.level, target.text)
    elif target.kind == TargetKind.GENERIC:
        found, spelling = table.find_generic(target.text)
    else:
        return target, True

    if found and _safe_spelling(spelling, "{}"):
        return LinkTarget(target.kind, spelling, target.level), True
    return target, found


def _safe_spelling(spelling: str | None, brackets: str) -> bool:
    """A spelling can be copied verbatim if it holds no bracket or backslash."""
    if spelling is None:
        return False
    return not any(ch in spelling for ch in brackets + "\\")


def format_link(link: Link, description: str | None, table: AnchorTable | None = None) -> tuple[str, bool]:
    """Canonical text for a link; description is the already rendered ``[...]`` content.

    Returns the text and whether every document-internal reference resolved.
    Links into other files (``{:file:...}``) are never resolved.
    """
    parts: list[str] = ["{"]
    resolved = True

    if link.file is not None:
        parts.append(":" + link.file.strip() + ":")

    if link.target is not None:
        target = link.target
        if table is not None and link.file is None:
            target, resolved = resolve_target(target, table)
        parts.append(canonical_target(target))

    parts.append("}")
    if description is not None:
        parts.append("[" + description + "]")
    return "".join(parts), resolved


def format_anchor(
    anchor: Anchor,
    name: str,
    target: str | None,
    description: str | None,
    table: AnchorTable | None = None,
) -> tuple[str, bool]:
    """Canonical text for an anchor from its already rendered parts.

    A bare reference (no target) is respelled to match its definition.
    """
    resolved = True
    if anchor.target is None and table is not None:
        found, spelling = table.find_anchor(inline_text(anchor.name))
        resolved = found
        if found and _safe_spelling(spelling, "[]") and plain_text(anchor.name) is not None:
            name = spelling

    text = "[" + name + "]"
    if target is not None:
        text += target
    elif description is not None:
        text += "[" + description + "]"
    return text, resolved
