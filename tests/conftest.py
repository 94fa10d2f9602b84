"""Shared test fixtures and tree builders."""

from __future__ import annotations

import pytest

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
from norgfmt.lexer import tokenize
from norgfmt.parser import parse
from norgfmt.tokens import Position, Span, Token, TokenType

S = Span(Position(1, 1, 0), Position(1, 1, 0))


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns tokens (excluding EOF)."""

    def _lex(source: str) -> list[Token]:
        tokens = tokenize(source)
        return [t for t in tokens if t.type != TokenType.EOF]

    return _lex


@pytest.fixture
def parse_source():
    """Return a helper that parses source and returns a Document."""

    def _parse(source: str, filename: str = "test.norg") -> Document:
        return parse(source, filename)

    return _parse


def assert_types(tokens: list[Token], expected: list[TokenType]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t.type for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t.value for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


# ---------------------------------------------------------------------------
# Tree builders (spans are irrelevant to rendering)
# ---------------------------------------------------------------------------


def text(value: str) -> TextRun:
    return TextRun(value, S)


def esc(char: str) -> Escape:
    return Escape(char, S)


def markup(style: MarkupStyle, *children: Inline, encoding: Encoding = Encoding.STANDARD) -> MarkupSpan:
    return MarkupSpan(style, encoding, children, S)


def bold(*children: Inline, encoding: Encoding = Encoding.STANDARD) -> MarkupSpan:
    return markup(MarkupStyle.BOLD, *children, encoding=encoding)


def link(
    target: LinkTarget | None,
    description: tuple[Inline, ...] | None = None,
    file: str | None = None,
) -> Link:
    return Link(file, target, description, S)


def url(value: str) -> LinkTarget:
    return LinkTarget(TargetKind.URL, value)


def heading_target(level: int, title: str) -> LinkTarget:
    return LinkTarget(TargetKind.HEADING, title, level)


def anchor(name: str, target: Link | None = None, description: tuple[Inline, ...] | None = None) -> Anchor:
    return Anchor((text(name),), target, description, S)


def inline_target(name: str) -> InlineLinkTarget:
    return InlineLinkTarget((text(name),), S)


def para(*children: Inline) -> Paragraph:
    return Paragraph(children, S)


def heading(level: int, title: str, *children: Block) -> Heading:
    return Heading(level, (text(title),), children, S)


def item(content: str | None, *children: List, level: int = 1, kind: ListKind = ListKind.UNORDERED) -> ListItem:
    paragraph = para(text(content)) if content is not None else None
    return ListItem(kind, level, paragraph, children, S)


def bullet_list(*items: ListItem, kind: ListKind = ListKind.UNORDERED) -> List:
    return List(kind, items, S)


def verbatim(name: str, content: str, *parameters: str) -> VerbatimBlock:
    return VerbatimBlock(name, parameters, content, S)


def unknown(kind: str, raw: str) -> Unknown:
    return Unknown(kind, raw, S)


def doc(*children: Block) -> Document:
    return Document(children, S)
