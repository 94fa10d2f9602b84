"""Token types, data structures, and character classification helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    # Detached modifiers and delimiters (one token per source line)
    HEADING = auto()  # *+ title
    LIST_ITEM = auto()  # -+ / ~+ / >+ content
    WEAK_DELIMITER = auto()  # ---
    STRONG_DELIMITER = auto()  # ===
    HORIZONTAL_RULE = auto()  # ___
    DETACHED_OTHER = auto()  # $ ^ : and friends, passed through unchanged

    # Tags
    VERBATIM_BEGIN = auto()  # @name params
    VERBATIM_END = auto()  # @end
    RANGED_BEGIN = auto()  # |name or =name
    RANGED_END = auto()  # |end or =end
    TAG = auto()  # #name, +name, .name

    # Content
    TEXT = auto()  # paragraph line
    BLANK = auto()  # whitespace-only line

    EOF = auto()


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based byte offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start to end position."""

    start: Position
    end: Position


@dataclass(frozen=True, slots=True)
class Token:
    """A single line token.

    ``marker`` is the modifier run (``***``, ``--``, ``@``), ``value`` the
    text after it with surrounding whitespace stripped, ``raw`` the full
    source line without its line terminator.
    """

    type: TokenType
    marker: str
    value: str
    raw: str
    span: Span


# Characters that form detached modifiers when repeated at the start of a line
DETACHED_CHARS = frozenset("*-~>$^:%=_")

# Characters that introduce a tag when followed by a name at the start of a line
TAG_CHARS = frozenset("@|#+.=")

# Attached modifier characters, in Norg order
ATTACHED_CHARS = frozenset("*/_-!^,`%$&")

# Whitespace as understood by both the lexer and the inline parser
WHITESPACE = frozenset(" \t\n\r\v\f")


def is_whitespace(ch: str) -> bool:
    """Return True if ch is empty (start/end of input) or whitespace."""
    return ch == "" or ch in WHITESPACE


def is_punctuation(ch: str) -> bool:
    """Return True if ch is ASCII punctuation."""
    return len(ch) == 1 and ch.isascii() and not ch.isalnum() and not ch.isspace() and ch.isprintable()


def is_tag_name_char(ch: str) -> bool:
    """Return True if ch may appear in a tag name (``@code``, ``|example``)."""
    return ch.isalnum() or ch in "-_."
