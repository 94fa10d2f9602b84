"""Line-wrapping reflow engine.

Packs a paragraph's rendered inline pieces into lines of bounded width.
Plain text breaks at whitespace; atomic pieces (links, anchors, verbatim and
math spans) never break, not even at their own internal spaces. Pieces that
touch without whitespace between them fuse into one unbreakable word, so
``{https://x.org}.`` never loses its trailing period to the next line. A
word that would read as block syntax at the start of a line (``* foo``,
``#tag``) has its first character escaped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from norgfmt.tokens import DETACHED_CHARS, TAG_CHARS

_WS_SPLIT = re.compile(r"(\s+)")


@dataclass(frozen=True, slots=True)
class Piece:
    """A fragment of rendered inline text."""

    text: str
    atomic: bool = False


def words(pieces: list[Piece]) -> list[str]:
    """Split pieces into unbreakable words."""
    result: list[str] = []
    current: list[str] = []

    def flush() -> None:
        if current:
            result.append("".join(current))
            current.clear()

    for piece in pieces:
        if piece.atomic:
            current.append(piece.text)
            continue
        for part in _WS_SPLIT.split(piece.text):
            if not part:
                continue
            if part.isspace():
                flush()
            else:
                current.append(part)

    flush()
    return result


def can_start_line(word: str) -> bool:
    """Return False if the word would be read as block syntax at a line start.

    A run of detached-modifier characters (``*``, ``-``, ``---``, ``>``, ...)
    followed by a space starts a heading, list item or delimiter, and
    ``@name``, ``|name``, ``#name``, ``+name``, ``.name`` or ``=name`` starts a
    tag.
    """
    if all(ch in DETACHED_CHARS for ch in word) and len(set(word)) == 1:
        return False
    return not (len(word) > 1 and word[0] in TAG_CHARS and word[1].isalpha())


def line_start(word: str) -> str:
    """Spelling of word when it begins a line.

    A word that cannot start a line gets its first character escaped. Such a
    word always begins with plain punctuation, never with a link, anchor or
    markup delimiter, so the escape keeps its meaning.
    """
    if can_start_line(word):
        return word
    return "\\" + word


def pack(items: list[str], width: int, *, guard_first: bool = True) -> list[str]:
    """Greedy packing: fill each line until the next word would pass width.

    A word wider than width is placed alone on its own, overflowing line.
    Every line start goes through line_start(); the first one only when
    guard_first is set (list item content follows its marker instead).
    """
    lines: list[str] = []
    current = ""
    for word in items:
        if not current:
            current = line_start(word) if guard_first else word
        elif len(current) + 1 + len(word) <= width:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = line_start(word)
    if current:
        lines.append(current)
    return lines


def wrap(pieces: list[Piece], width: int, *, guard_first: bool = True) -> list[str]:
    """Reflow pieces into lines no wider than width (oversized words aside)."""
    return pack(words(pieces), width, guard_first=guard_first)
