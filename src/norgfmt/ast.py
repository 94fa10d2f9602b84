"""AST node types for parsed Norg documents."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from norgfmt.tokens import Span


class MarkupStyle(Enum):
    """Attached modifier styles; the value is the delimiter character."""

    BOLD = "*"
    ITALIC = "/"
    UNDERLINE = "_"
    STRIKETHROUGH = "-"
    SPOILER = "!"
    SUPERSCRIPT = "^"
    SUBSCRIPT = ","
    VERBATIM = "`"
    INLINE_COMMENT = "%"
    INLINE_MATH = "$"
    VARIABLE = "&"

    @property
    def char(self) -> str:
        return self.value

    @property
    def is_verbatim(self) -> bool:
        """Verbatim styles hold raw text only, never nested markup."""
        return self in _VERBATIM_STYLES


_VERBATIM_STYLES = frozenset({MarkupStyle.VERBATIM, MarkupStyle.INLINE_MATH, MarkupStyle.VARIABLE})


class Encoding(Enum):
    STANDARD = auto()  # *text*
    FREE_FORM = auto()  # *|text|*


class TargetKind(Enum):
    URL = auto()
    HEADING = auto()  # {** title}
    GENERIC = auto()  # {# name}
    DEFINITION = auto()  # {$ name}
    FOOTNOTE = auto()  # {^ name}
    WIKI = auto()  # {? name}
    EXTENDABLE = auto()  # {= name}
    PATH = auto()  # {/ path}
    TIMESTAMP = auto()  # {@ date}
    LINE_NUMBER = auto()  # {42}


class ListKind(Enum):
    """Nestable detached modifiers; the value is the marker character."""

    UNORDERED = "-"
    ORDERED = "~"
    QUOTE = ">"


# ---------------------------------------------------------------------------
# Inline nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TextRun:
    """Literal text; soft line breaks are kept as newlines."""

    value: str
    span: Span


@dataclass(frozen=True, slots=True)
class Escape:
    """A single backslash-escaped character."""

    value: str
    span: Span


@dataclass(frozen=True, slots=True)
class MarkupSpan:
    """Attached modifier: *bold*, /italic/, `verbatim` and friends."""

    style: MarkupStyle
    encoding: Encoding
    children: tuple[Inline, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class LinkTarget:
    """Destination of a link; level is only meaningful for headings."""

    kind: TargetKind
    text: str
    level: int = 0


@dataclass(frozen=True, slots=True)
class Link:
    """{:file:target}[description]"""

    file: str | None
    target: LinkTarget | None
    description: tuple[Inline, ...] | None
    span: Span


@dataclass(frozen=True, slots=True)
class Anchor:
    """[name], [name]{target} or [name][description]."""

    name: tuple[Inline, ...]
    target: Link | None
    description: tuple[Inline, ...] | None
    span: Span


@dataclass(frozen=True, slots=True)
class InlineLinkTarget:
    """<name>: a link destination defined in running text."""

    children: tuple[Inline, ...]
    span: Span


Inline = TextRun | Escape | MarkupSpan | Link | Anchor | InlineLinkTarget


# ---------------------------------------------------------------------------
# Block nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Paragraph:
    children: tuple[Inline, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class ListItem:
    """One nestable item; nested lists hold items of level + 1."""

    kind: ListKind
    level: int
    content: Paragraph | None
    children: tuple[List, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class List:
    kind: ListKind
    items: tuple[ListItem, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class VerbatimBlock:
    """@name params ... @end, content dedented and never reflowed."""

    name: str
    parameters: tuple[str, ...]
    content: str
    span: Span


@dataclass(frozen=True, slots=True)
class Unknown:
    """A construct the formatter does not model; raw source is passed through."""

    kind: str
    raw: str
    span: Span


@dataclass(frozen=True, slots=True)
class Heading:
    """Heading of a given level owning every block up to its closing point."""

    level: int
    title: tuple[Inline, ...]
    children: tuple[Block, ...]
    span: Span


Block = Heading | Paragraph | List | VerbatimBlock | Unknown


@dataclass(frozen=True, slots=True)
class Document:
    """Root document node."""

    children: tuple[Block, ...]
    span: Span
