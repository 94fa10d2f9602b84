"""--debug tree dump to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from norgfmt.ast import (
    Anchor,
    Block,
    Document,
    Escape,
    Heading,
    Inline,
    InlineLinkTarget,
    Link,
    List,
    ListItem,
    MarkupSpan,
    Paragraph,
    TextRun,
    Unknown,
    VerbatimBlock,
)


def dump_ast(doc: Document, *, file: TextIO = sys.stderr) -> None:
    """Print a human-readable tree to *file*."""
    file.write("Document\n")
    for child in doc.children:
        _dump_block(child, 1, file)


def _indent(depth: int) -> str:
    return "  " * depth


def _dump_block(node: Block, depth: int, f: TextIO) -> None:
    if isinstance(node, Heading):
        f.write(f"{_indent(depth)}Heading level={node.level}\n")
        _dump_inlines(node.title, depth + 1, f)
        for child in node.children:
            _dump_block(child, depth + 1, f)
    elif isinstance(node, Paragraph):
        f.write(f"{_indent(depth)}Paragraph\n")
        _dump_inlines(node.children, depth + 1, f)
    elif isinstance(node, List):
        f.write(f"{_indent(depth)}List {node.kind.name.lower()}\n")
        for item in node.items:
            _dump_item(item, depth + 1, f)
    elif isinstance(node, VerbatimBlock):
        params = " ".join(node.parameters)
        f.write(f"{_indent(depth)}Verbatim @{node.name} {params}".rstrip() + "\n")
        for line in node.content.split("\n"):
            f.write(f"{_indent(depth + 1)}| {line}".rstrip() + "\n")
    elif isinstance(node, Unknown):
        f.write(f"{_indent(depth)}Unknown {node.kind} {(node.raw.splitlines() or [''])[0]!r}\n")


def _dump_item(item: ListItem, depth: int, f: TextIO) -> None:
    f.write(f"{_indent(depth)}ListItem level={item.level}\n")
    if item.content is not None:
        _dump_inlines(item.content.children, depth + 1, f)
    for child in item.children:
        _dump_block(child, depth + 1, f)


def _dump_inlines(nodes: tuple[Inline, ...], depth: int, f: TextIO) -> None:
    for node in nodes:
        _dump_inline(node, depth, f)


def _dump_inline(node: Inline, depth: int, f: TextIO) -> None:
    if isinstance(node, TextRun):
        f.write(f"{_indent(depth)}Text({node.value!r})\n")
    elif isinstance(node, Escape):
        f.write(f"{_indent(depth)}Escape({node.value!r})\n")
    elif isinstance(node, MarkupSpan):
        f.write(f"{_indent(depth)}Markup {node.style.name.lower()} {node.encoding.name.lower()}\n")
        _dump_inlines(node.children, depth + 1, f)
    elif isinstance(node, Link):
        target = f"{node.target.kind.name.lower()}({node.target.text!r})" if node.target else "none"
        file = f" file={node.file!r}" if node.file is not None else ""
        f.write(f"{_indent(depth)}Link {target}{file}\n")
        if node.description is not None:
            _dump_inlines(node.description, depth + 1, f)
    elif isinstance(node, Anchor):
        f.write(f"{_indent(depth)}Anchor\n")
        _dump_inlines(node.name, depth + 1, f)
        if node.target is not None:
            _dump_inline(node.target, depth + 1, f)
        if node.description is not None:
            _dump_inlines(node.description, depth + 1, f)
    elif isinstance(node, InlineLinkTarget):
        f.write(f"{_indent(depth)}InlineLinkTarget\n")
        _dump_inlines(node.children, depth + 1, f)
