"""Norg parser: converts a line token stream into an AST."""

from __future__ import annotations

from collections.abc import Callable

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
    LinkTarget,
    List,
    ListItem,
    ListKind,
    MarkupSpan,
    MarkupStyle,
    Paragraph,
    TargetKind,
    TextRun,
    Unknown,
    VerbatimBlock,
)
from norgfmt.errors import ParseError
from norgfmt.lexer import tokenize
from norgfmt.strings import dedent_block
from norgfmt.tokens import ATTACHED_CHARS, Position, Span, Token, TokenType, is_punctuation, is_whitespace


class Parser:
    """Recursive descent parser for Norg token streams."""

    def __init__(self, tokens: list[Token], source: str, filename: str) -> None:
        self._tokens = tokens
        self._source = source
        self._filename = filename
        self._pos = 0

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOF

    def _at(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _at_eof(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.type != TokenType.EOF:
            self._pos += 1
        return tok

    def _skip_blank_lines(self) -> None:
        while self._at(TokenType.BLANK):
            self._advance()

    def _prev_end(self) -> Position:
        """End position of the previously consumed token."""
        if self._pos > 0:
            return self._tokens[self._pos - 1].span.end
        return self._tokens[0].span.start

    # ------------------------------------------------------------------
    # Document level
    # ------------------------------------------------------------------

    def parse(self) -> Document:
        children: list[Block] = []
        start = self._peek().span.start

        while True:
            self._skip_blank_lines()
            if self._at_eof():
                break

            if self._at(TokenType.WEAK_DELIMITER, TokenType.STRONG_DELIMITER):
                # Nothing left to close at the top level
                self._advance()
                continue

            if self._at(TokenType.HEADING):
                children.append(self._parse_heading())
            else:
                children.append(self._parse_block())

        end = self._peek().span.end
        return Document(tuple(children), Span(start, end))

    def _parse_heading(self) -> Heading:
        tok = self._advance()
        level = len(tok.marker)
        title = self._inline(tok)
        children: list[Block] = []

        while True:
            self._skip_blank_lines()
            if self._at_eof():
                break

            if self._at(TokenType.HEADING):
                if len(self._peek().marker) <= level:
                    break
                children.append(self._parse_heading())
                continue

            if self._at(TokenType.WEAK_DELIMITER):
                # Closes this heading only
                self._advance()
                break

            if self._at(TokenType.STRONG_DELIMITER):
                # Closes every open heading; the document loop consumes it
                break

            children.append(self._parse_block())

        return Heading(level, title, tuple(children), Span(tok.span.start, self._prev_end()))

    def _parse_block(self) -> Block:
        tok = self._peek()

        match tok.type:
            case TokenType.TEXT:
                return self._parse_paragraph()
            case TokenType.LIST_ITEM:
                return self._parse_list(0)
            case TokenType.VERBATIM_BEGIN:
                return self._parse_verbatim()
            case TokenType.RANGED_BEGIN:
                return self._parse_ranged()
            case TokenType.DETACHED_OTHER:
                return self._parse_detached_other()
            case TokenType.TAG:
                self._advance()
                return Unknown("tag", tok.raw, tok.span)
            case TokenType.HORIZONTAL_RULE:
                self._advance()
                return Unknown("horizontal-rule", tok.raw, tok.span)
            case TokenType.VERBATIM_END | TokenType.RANGED_END:
                self._advance()
                return Unknown("stray-end", tok.raw, tok.span)
            case _:
                raise self._error(f"unexpected {tok.type.name.lower()} token", tok.span)

    # ------------------------------------------------------------------
    # Paragraphs and lists
    # ------------------------------------------------------------------

    def _parse_paragraph(self) -> Paragraph:
        lines: list[Token] = []
        while self._at(TokenType.TEXT):
            lines.append(self._advance())
        children = self._inline(*lines)
        return Paragraph(children, Span(lines[0].span.start, lines[-1].span.end))

    def _parse_list(self, parent_len: int, level: int = 1) -> List:
        """Parse sibling items whose marker is longer than parent_len.

        Marker length only decides nesting; the canonical level is the
        nesting depth, so ``-`` followed by ``---`` yields levels 1 and 2.
        """
        first = self._peek()
        kind = ListKind(first.marker[0])
        item_len = len(first.marker)
        items: list[ListItem] = []

        while self._at(TokenType.LIST_ITEM):
            tok = self._peek()
            if len(tok.marker) <= parent_len or tok.marker[0] != kind.value:
                break
            items.append(self._parse_list_item(kind, item_len, level))

        return List(kind, tuple(items), Span(first.span.start, self._prev_end()))

    def _parse_list_item(self, kind: ListKind, item_len: int, level: int) -> ListItem:
        tok = self._advance()
        lines = [tok]
        while self._at(TokenType.TEXT):
            lines.append(self._advance())
        content = Paragraph(self._inline(*lines), Span(tok.span.start, lines[-1].span.end))

        children: list[List] = []
        while self._at(TokenType.LIST_ITEM) and len(self._peek().marker) > item_len:
            children.append(self._parse_list(item_len, level + 1))

        return ListItem(kind, level, content, tuple(children), Span(tok.span.start, self._prev_end()))

    # ------------------------------------------------------------------
    # Verbatim and pass-through blocks
    # ------------------------------------------------------------------

    def _parse_verbatim(self) -> VerbatimBlock:
        begin = self._advance()
        words = begin.value.split()
        name, parameters = words[0], tuple(words[1:])

        lines: list[str] = []
        while not self._at(TokenType.VERBATIM_END):
            if self._at_eof():
                raise self._error(f"unterminated verbatim block '@{name}'", begin.span)
            lines.append(self._advance().raw)
        end = self._advance()

        return VerbatimBlock(name, parameters, dedent_block(lines), Span(begin.span.start, end.span.end))

    def _parse_ranged(self) -> Unknown:
        begin = self._advance()
        raw: list[str] = [begin.raw]
        while not self._at(TokenType.RANGED_END):
            if self._at_eof():
                raise self._error(f"unterminated ranged tag '{begin.raw.strip()}'", begin.span)
            raw.append(self._advance().raw)
        end = self._advance()
        raw.append(end.raw)

        kind = "ranged-tag" if begin.marker in "|=" else "ranged-detached-modifier"
        return Unknown(kind, "\n".join(raw), Span(begin.span.start, end.span.end))

    def _parse_detached_other(self) -> Unknown:
        first = self._advance()
        raw: list[str] = [first.raw]
        while self._at(TokenType.TEXT):
            raw.append(self._advance().raw)
        return Unknown("detached-modifier", "\n".join(raw), Span(first.span.start, self._prev_end()))

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------

    def _inline(self, *lines: Token) -> tuple[Inline, ...]:
        """Inline-parse the values of one or more line tokens joined by newlines."""
        segments: list[tuple[int, Position]] = []
        parts: list[str] = []
        length = 0
        for tok in lines:
            if parts:
                parts.append("\n")
                length += 1
            segments.append((length, _value_start(tok)))
            parts.append(tok.value)
            length += len(tok.value)
        return InlineParser("".join(parts), segments).parse()

    def _error(self, message: str, span: Span | None = None) -> ParseError:
        if span is None:
            span = self._peek().span
        return ParseError(message, span, self._source)


def _value_start(tok: Token) -> Position:
    """Source position of the first character of a token's value."""
    start = tok.span.start
    line_offset = start.offset - (start.column - 1)
    idx = tok.raw.find(tok.value, start.column - 1 + len(tok.marker)) if tok.value else -1
    if idx < 0:
        idx = start.column - 1
    return Position(start.line, idx + 1, line_offset + idx)


# ---------------------------------------------------------------------------
# Inline parser
# ---------------------------------------------------------------------------

_STYLES: dict[str, MarkupStyle] = {style.value: style for style in MarkupStyle}

_TARGET_MARKERS: dict[str, TargetKind] = {
    "#": TargetKind.GENERIC,
    "$": TargetKind.DEFINITION,
    "^": TargetKind.FOOTNOTE,
    "?": TargetKind.WIKI,
    "=": TargetKind.EXTENDABLE,
    "/": TargetKind.PATH,
    "@": TargetKind.TIMESTAMP,
}

_Stop = Callable[[int], bool]


class InlineParser:
    """Parse paragraph text into inline nodes.

    Unclosed or invalid constructs degrade to literal text, so inline
    parsing never fails.
    """

    def __init__(self, text: str, segments: list[tuple[int, Position]] | None = None) -> None:
        self._text = text
        self._segments = segments or [(0, Position(1, 1, 0))]

    def parse(self) -> tuple[Inline, ...]:
        nodes, _ = self._parse_range(0, len(self._text), None)
        return tuple(nodes)

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _char(self, i: int) -> str:
        if 0 <= i < len(self._text):
            return self._text[i]
        return ""

    def _position(self, i: int) -> Position:
        seg_start, pos = self._segments[0]
        for start, seg_pos in self._segments:
            if start > i:
                break
            seg_start, pos = start, seg_pos
        delta = i - seg_start
        return Position(pos.line, pos.column + delta, pos.offset + delta)

    def _span(self, start: int, end: int) -> Span:
        return Span(self._position(start), self._position(end))

    # ------------------------------------------------------------------
    # Core loop
    # ------------------------------------------------------------------

    def _parse_range(self, i: int, end: int, stop: _Stop | None) -> tuple[list[Inline], int | None]:
        """Parse text[i:end] until stop(j) holds.

        Returns the nodes and the index where stop matched, or None when the
        range was exhausted without a match.
        """
        result: list[Inline] = []
        text_start = i
        text_parts: list[str] = []

        def flush(j: int) -> None:
            nonlocal text_start
            if text_parts:
                result.append(TextRun("".join(text_parts), self._span(text_start, j)))
                text_parts.clear()

        while i < end:
            if stop is not None and stop(i):
                flush(i)
                return result, i

            ch = self._text[i]
            parsed: tuple[Inline, int] | None = None

            if ch == "\\" and i + 1 < end:
                parsed = (Escape(self._text[i + 1], self._span(i, i + 2)), i + 2)
            elif ch == "{":
                parsed = self._parse_link(i, end)
            elif ch == "[":
                parsed = self._parse_anchor(i, end)
            elif ch == "<":
                parsed = self._parse_inline_target(i, end)
            elif ch in ATTACHED_CHARS and self._can_open(i):
                parsed = self._parse_markup(i, end)

            if parsed is None:
                if not text_parts:
                    text_start = i
                text_parts.append(ch)
                i += 1
                continue

            flush(i)
            node, i = parsed
            result.append(node)

        flush(i)
        return result, None

    # ------------------------------------------------------------------
    # Attached modifiers
    # ------------------------------------------------------------------

    def _can_open(self, i: int) -> bool:
        ch = self._text[i]
        prev = self._char(i - 1)
        nxt = self._char(i + 1)
        if prev == ch or not (is_whitespace(prev) or is_punctuation(prev)):
            return False
        if nxt == "|":
            return True
        return not is_whitespace(nxt) and nxt != ch

    def _can_close(self, j: int, ch: str, content_start: int) -> bool:
        if j <= content_start or self._text[j] != ch:
            return False
        prev = self._text[j - 1]
        nxt = self._char(j + 1)
        if is_whitespace(prev) or prev == ch:
            return False
        return is_whitespace(nxt) or (is_punctuation(nxt) and nxt != ch)

    def _parse_markup(self, i: int, end: int) -> tuple[Inline, int] | None:
        ch = self._text[i]
        style = _STYLES[ch]

        if self._char(i + 1) == "|":
            content_start = i + 2

            def stop(j: int) -> bool:
                return self._text[j] == "|" and self._char(j + 1) == ch

            close_len = 2
            encoding = Encoding.FREE_FORM
        else:
            content_start = i + 1

            def stop(j: int) -> bool:
                return self._can_close(j, ch, content_start)

            close_len = 1
            encoding = Encoding.STANDARD

        if style.is_verbatim:
            found = self._scan_verbatim(content_start, end, ch, stop)
            if found is None:
                return None
            children, j = found
        else:
            children, j = self._parse_range(content_start, end, stop)
            if j is None:
                return None

        node = MarkupSpan(style, encoding, tuple(_coalesce_text(children)), self._span(i, j + close_len))
        return node, j + close_len

    def _scan_verbatim(
        self, start: int, end: int, ch: str, stop: _Stop
    ) -> tuple[list[Inline], int] | None:
        """Verbatim content: only escapes of the delimiter (and '|') are special."""
        result: list[Inline] = []
        text_parts: list[str] = []
        text_start = start
        i = start

        while i < end:
            if stop(i):
                if text_parts:
                    result.append(TextRun("".join(text_parts), self._span(text_start, i)))
                return result, i
            if self._text[i] == "\\" and self._char(i + 1) in (ch, "|") and i + 1 < end:
                if text_parts:
                    result.append(TextRun("".join(text_parts), self._span(text_start, i)))
                    text_parts.clear()
                result.append(Escape(self._text[i + 1], self._span(i, i + 2)))
                i += 2
                text_start = i
                continue
            if not text_parts:
                text_start = i
            text_parts.append(self._text[i])
            i += 1

        return None

    # ------------------------------------------------------------------
    # Links, anchors, inline link targets
    # ------------------------------------------------------------------

    def _find_closing(self, i: int, end: int, closer: str) -> int | None:
        """Index of the first unescaped closer after i, within end."""
        j = i + 1
        while j < end:
            c = self._text[j]
            if c == "\\":
                j += 2
                continue
            if c == closer:
                return j
            j += 1
        return None

    def _parse_link(self, i: int, end: int) -> tuple[Inline, int] | None:
        close = self._find_closing(i, end, "}")
        if close is None:
            return None

        body = self._text[i + 1 : close]
        file: str | None = None
        if body.startswith(":"):
            file_end = body.find(":", 1)
            if file_end == -1:
                return None
            file = body[1:file_end]
            body = body[file_end + 1 :]

        target = _parse_target(body)
        if target is None and file is None:
            return None

        j = close + 1
        description: tuple[Inline, ...] | None = None
        if self._char(j) == "[":
            desc_close = self._find_closing(j, end, "]")
            if desc_close is not None:
                nodes, _ = self._parse_range(j + 1, desc_close, None)
                description = tuple(_coalesce_text(nodes))
                j = desc_close + 1

        return Link(file, target, description, self._span(i, j)), j

    def _parse_anchor(self, i: int, end: int) -> tuple[Inline, int] | None:
        close = self._find_closing(i, end, "]")
        if close is None or not self._text[i + 1 : close].strip():
            return None

        nodes, _ = self._parse_range(i + 1, close, None)
        name = tuple(_coalesce_text(nodes))
        j = close + 1

        target: Link | None = None
        description: tuple[Inline, ...] | None = None
        if self._char(j) == "{":
            parsed = self._parse_link(j, end)
            if parsed is not None:
                link, j = parsed
                assert isinstance(link, Link)
                target = link
        elif self._char(j) == "[":
            desc_close = self._find_closing(j, end, "]")
            if desc_close is not None:
                desc_nodes, _ = self._parse_range(j + 1, desc_close, None)
                description = tuple(_coalesce_text(desc_nodes))
                j = desc_close + 1

        return Anchor(name, target, description, self._span(i, j)), j

    def _parse_inline_target(self, i: int, end: int) -> tuple[Inline, int] | None:
        close = self._find_closing(i, end, ">")
        if close is None:
            return None
        content = self._text[i + 1 : close]
        if not content or is_whitespace(content[0]) or is_whitespace(content[-1]):
            return None
        nodes, _ = self._parse_range(i + 1, close, None)
        return InlineLinkTarget(tuple(_coalesce_text(nodes)), self._span(i, close + 1)), close + 1


def _parse_target(body: str) -> LinkTarget | None:
    """Classify the text between link braces (after any file prefix)."""
    stripped = body.strip()
    if not stripped:
        return None

    ch = stripped[0]
    if ch == "*":
        level = len(stripped) - len(stripped.lstrip("*"))
        rest = stripped[level:]
        if rest and rest[0].isspace():
            return LinkTarget(TargetKind.HEADING, rest.strip(), level)
    elif ch in _TARGET_MARKERS and len(stripped) > 1 and stripped[1].isspace():
        return LinkTarget(_TARGET_MARKERS[ch], stripped[1:].strip())

    if stripped.isdigit():
        return LinkTarget(TargetKind.LINE_NUMBER, stripped)
    return LinkTarget(TargetKind.URL, stripped)


def _coalesce_text(nodes: list) -> list:
    """Coalesce adjacent TextRun nodes into single nodes."""
    if not nodes:
        return nodes
    result = []
    for node in nodes:
        if isinstance(node, TextRun) and result and isinstance(result[-1], TextRun):
            prev = result[-1]
            result[-1] = TextRun(prev.value + node.value, Span(prev.span.start, node.span.end))
        else:
            result.append(node)
    return result


def parse_inline(text: str) -> tuple[Inline, ...]:
    """Convenience function: parse a single run of inline text."""
    return InlineParser(text).parse()


def parse(source: str, filename: str = "input.norg") -> Document:
    """Convenience function: parse source text and return a Document AST."""
    tokens = tokenize(source, filename)
    return Parser(tokens, source, filename).parse()
