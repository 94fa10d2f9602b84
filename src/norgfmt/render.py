"""Canonical Norg renderer: walks a document tree and emits formatted source."""

from __future__ import annotations

import logging

from norgfmt.ast import (
    Anchor,
    Block,
    Document,
    Encoding,
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
from norgfmt.errors import Diagnostic, MalformedTreeError
from norgfmt.indent import IndentState
from norgfmt.links import AnchorTable, build_anchor_table, format_anchor, format_link
from norgfmt.markup import (
    choose_encoding,
    leading_char,
    protect_pipes,
    render_escape,
    render_free_form_escape,
)
from norgfmt.options import DEFAULT_OPTIONS, FormatOptions
from norgfmt.reflow import Piece, words, wrap
from norgfmt.strings import indent_block

logger = logging.getLogger(__name__)

WEAK_DELIMITER = "---"


def render(doc: Document, options: FormatOptions = DEFAULT_OPTIONS) -> str:
    """Render a document tree to canonical Norg source."""
    text, _ = render_with_diagnostics(doc, options)
    return text


def render_with_diagnostics(
    doc: Document, options: FormatOptions = DEFAULT_OPTIONS
) -> tuple[str, list[Diagnostic]]:
    """Render a document and return the non-fatal findings collected on the way."""
    ctx = _RenderContext(options, build_anchor_table(doc))
    lines = ctx.blocks(doc.children, IndentState())
    logger.debug("rendered %d lines, %d diagnostics", len(lines), len(ctx.diagnostics))
    if not lines:
        return "", ctx.diagnostics
    return "\n".join(lines) + "\n", ctx.diagnostics


class _RenderContext:
    """State of one render pass; discarded when the pass ends."""

    def __init__(self, options: FormatOptions, table: AnchorTable) -> None:
        self.options = options
        self.table = table
        self.diagnostics: list[Diagnostic] = []
        self._visited: set[int] = set()

    def _visit(self, node: Block | ListItem | MarkupSpan) -> None:
        key = id(node)
        if key in self._visited:
            raise MalformedTreeError(f"{type(node).__name__} node appears twice in the tree", node.span)
        self._visited.add(key)

    def _report(self, code: str, message: str, node: Inline | Block) -> None:
        logger.debug("%s: %s", code, message)
        self.diagnostics.append(Diagnostic(code, message, node.span))

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def blocks(self, children: tuple[Block, ...], state: IndentState) -> list[str]:
        """Render sibling blocks separated by one blank line."""
        out: list[str] = []
        join_next = False

        for idx, child in enumerate(children):
            lines = self.block(child, state)
            if isinstance(child, Heading):
                following = children[idx + 1] if idx + 1 < len(children) else None
                lines.extend(self._closers(child, following, state))
            if not lines:
                continue
            if out and not join_next:
                out.append("")
            out.extend(lines)
            # Carryover tags apply to the block directly below them
            join_next = isinstance(child, Unknown) and child.kind == "tag"

        return out

    def block(self, node: Block, state: IndentState) -> list[str]:
        self._visit(node)
        match node:
            case Heading():
                return self._heading(node, state)
            case Paragraph():
                return self._paragraph(node, state)
            case List():
                return self._list(node, state)
            case VerbatimBlock():
                return self._verbatim(node, state)
            case Unknown():
                return self._unknown(node)
            case _:
                raise MalformedTreeError(f"unexpected block node {type(node).__name__}")

    def _heading(self, node: Heading, state: IndentState) -> list[str]:
        for child in node.children:
            if isinstance(child, Heading) and child.level <= node.level:
                raise MalformedTreeError(
                    f"level {child.level} heading nested under level {node.level} heading", child.span
                )

        title = " ".join(words(self.inline(node.title)))
        marker = "*" * node.level
        lines = [f"{state.prefix()}{marker} {title}".rstrip()]
        lines.extend(self.blocks(node.children, state.descend_heading()))
        return lines

    def _closers(self, node: Heading, following: Block | None, state: IndentState) -> list[str]:
        """Weak delimiters keeping ``following`` out of node's subtree on re-parse.

        A following heading of equal or lower level closes node by itself.
        Otherwise one ``---`` is needed per heading still open: node and the
        chain of headings that end it, innermost first.
        """
        if following is None:
            return []
        if isinstance(following, Heading) and following.level <= node.level:
            return []

        chain: list[tuple[Heading, IndentState]] = [(node, state)]
        while chain[-1][0].children and isinstance(chain[-1][0].children[-1], Heading):
            parent, parent_state = chain[-1]
            chain.append((parent.children[-1], parent_state.descend_heading()))

        return [chain_state.prefix() + WEAK_DELIMITER for _, chain_state in reversed(chain)]

    def _paragraph(self, node: Paragraph, state: IndentState) -> list[str]:
        prefix = state.prefix()
        width = state.width_for(self.options.line_length)
        return [prefix + line for line in wrap(self.inline(node.children), width)]

    def _list(self, node: List, state: IndentState) -> list[str]:
        lines: list[str] = []
        for item in node.items:
            lines.extend(self._list_item(item, state))
        return lines

    def _list_item(self, item: ListItem, state: IndentState) -> list[str]:
        self._visit(item)
        prefix = state.prefix()
        marker = item.kind.value * item.level
        hanging = len(marker) + 1

        content: list[str] = []
        if item.content is not None:
            self._visit(item.content)
            width = state.width_for(self.options.line_length, hanging)
            content = wrap(self.inline(item.content.children), width, guard_first=False)

        if content:
            lines = [f"{prefix}{marker} {content[0]}"]
            lines.extend(prefix + " " * hanging + line for line in content[1:])
        else:
            lines = [prefix + marker]

        nested = state.descend_list()
        for child in item.children:
            lines.extend(self.block(child, nested))
        return lines

    def _verbatim(self, node: VerbatimBlock, state: IndentState) -> list[str]:
        prefix = state.prefix()
        header = " ".join((node.name, *node.parameters))
        lines = [f"{prefix}@{header}"]
        lines.extend(indent_block(node.content, prefix))
        lines.append(f"{prefix}@end")
        return lines

    def _unknown(self, node: Unknown) -> list[str]:
        self._report("unsupported-node", f"{node.kind} passed through unchanged", node)
        return node.raw.split("\n")

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------

    def inline(
        self,
        nodes: tuple[Inline, ...],
        *,
        before: str = "",
        after: str = "",
        delimiter: str | None = None,
        verbatim: bool = False,
    ) -> list[Piece]:
        """Render inline nodes to reflow pieces.

        ``before`` and ``after`` are the characters rendered just outside the
        nodes; ``delimiter`` is set inside a free-form span of that character.
        """
        pieces: list[Piece] = []
        prev = before

        for idx, node in enumerate(nodes):
            nxt = leading_char(nodes[idx + 1 :]) if idx + 1 < len(nodes) else after

            match node:
                case TextRun():
                    text = node.value.replace("\n", " ") if verbatim else node.value
                    if delimiter is not None:
                        text = protect_pipes(text, delimiter, nxt)
                    rendered = [Piece(text)]
                case Escape():
                    if delimiter is not None:
                        text = render_free_form_escape(node.value, delimiter, prev, nxt, verbatim)
                    else:
                        text = render_escape(node.value)
                    rendered = [Piece(text)]
                case MarkupSpan():
                    rendered = self._markup(node, nxt)
                case Link():
                    rendered = [Piece(self._link(node), atomic=True)]
                case Anchor():
                    rendered = [Piece(self._anchor(node), atomic=True)]
                case InlineLinkTarget():
                    name = self._inline_text(node.children, "<", ">")
                    rendered = [Piece(f"<{name}>", atomic=True)]
                case _:
                    raise MalformedTreeError(f"unexpected inline node {type(node).__name__}")

            for piece in rendered:
                if piece.text:
                    prev = piece.text[-1]
            pieces.extend(rendered)

        return pieces

    def _markup(self, node: MarkupSpan, followed_by: str) -> list[Piece]:
        self._visit(node)
        ch = node.style.char
        if choose_encoding(node, followed_by) == Encoding.FREE_FORM:
            opener, closer, delimiter = ch + "|", "|" + ch, ch
        else:
            opener, closer, delimiter = ch, ch, None

        inner = self.inline(
            node.children,
            before=opener[-1],
            after=closer[0],
            delimiter=delimiter,
            verbatim=node.style.is_verbatim,
        )

        if node.style.is_verbatim:
            return [Piece(opener + "".join(piece.text for piece in inner) + closer, atomic=True)]
        return [Piece(opener), *inner, Piece(closer)]

    def _inline_text(self, nodes: tuple[Inline, ...], before: str, after: str) -> str:
        """Inline nodes as one whitespace-collapsed string."""
        return " ".join(words(self.inline(nodes, before=before, after=after)))

    def _link(self, node: Link) -> str:
        description = None
        if node.description is not None:
            description = self._inline_text(node.description, "[", "]")
        text, resolved = format_link(node, description, self.table)
        if not resolved:
            self._report("dangling-reference", f"link target {text} not found in document", node)
        return text

    def _anchor(self, node: Anchor) -> str:
        name = self._inline_text(node.name, "[", "]")
        target = self._link(node.target) if node.target is not None else None
        description = None
        if node.description is not None:
            description = self._inline_text(node.description, "[", "]")
        text, resolved = format_anchor(node, name, target, description, self.table)
        if not resolved:
            self._report("dangling-reference", f"anchor [{name}] has no definition", node)
        return text
