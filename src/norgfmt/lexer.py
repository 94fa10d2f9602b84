"""Norg lexer: splits source text into a stream of line tokens.

Norg is line oriented at block level: every detached modifier, delimiter and
tag is recognized by the first non-whitespace characters of a line. Inline
markup is left inside TEXT/HEADING/LIST_ITEM values for the inline parser.
"""

from __future__ import annotations

from enum import Enum, auto

from norgfmt.errors import LexError
from norgfmt.tokens import (
    DETACHED_CHARS,
    TAG_CHARS,
    Position,
    Span,
    Token,
    TokenType,
    is_tag_name_char,
)


class _State(Enum):
    NORMAL = auto()
    VERBATIM = auto()  # inside @name ... @end, lines are raw
    RANGED = auto()  # inside |name ... |end or $$ ... $$, lines are raw


class Lexer:
    """Tokenize Norg source text into a stream of Token objects."""

    def __init__(self, source: str, filename: str = "input.norg") -> None:
        self._source = source
        self._filename = filename
        self._tokens: list[Token] = []
        self._state = _State.NORMAL
        self._ranged_open = ""  # opening marker of the current ranged construct
        self._ranged_close = ""  # line that closes it
        self._ranged_depth = 0
        self._offset = 0
        self._line = 0

    def tokenize(self) -> list[Token]:
        """Tokenize the full source and return the token list."""
        nul = self._source.find("\0")
        if nul != -1:
            raise self._error("NUL character in source", nul)

        for raw_line in self._split_lines():
            self._line += 1
            line = raw_line.rstrip("\n").rstrip("\r")

            if self._state == _State.VERBATIM:
                self._lex_verbatim_line(line)
            elif self._state == _State.RANGED:
                self._lex_ranged_line(line)
            else:
                self._lex_line(line)

            self._offset += len(raw_line)

        end = self._position(self._offset)
        self._tokens.append(Token(TokenType.EOF, "", "", "", Span(end, end)))
        return self._tokens

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _split_lines(self) -> list[str]:
        if not self._source:
            return []
        lines = self._source.split("\n")
        result = [line + "\n" for line in lines[:-1]]
        if lines[-1]:
            result.append(lines[-1])
        return result

    def _position(self, offset: int) -> Position:
        line_start = self._source.rfind("\n", 0, offset) + 1
        line = self._source.count("\n", 0, offset) + 1
        return Position(line, offset - line_start + 1, offset)

    def _emit(self, tt: TokenType, marker: str, value: str, line: str, column: int = 1) -> Token:
        start = Position(self._line, column, self._offset + column - 1)
        end = Position(self._line, len(line) + 1, self._offset + len(line))
        tok = Token(tt, marker, value, line, Span(start, end))
        self._tokens.append(tok)
        return tok

    def _error(self, message: str, offset: int) -> LexError:
        return LexError(message, self._position(offset), self._source)

    # ------------------------------------------------------------------
    # Normal mode
    # ------------------------------------------------------------------

    def _lex_line(self, line: str) -> None:
        stripped = line.lstrip(" \t")
        column = len(line) - len(stripped) + 1
        stripped = stripped.rstrip()

        if not stripped:
            self._emit(TokenType.BLANK, "", "", line)
            return

        ch = stripped[0]

        if ch in DETACHED_CHARS and self._lex_detached(line, stripped, column):
            return

        if ch in TAG_CHARS and len(stripped) > 1 and stripped[1].isalpha():
            self._lex_tag(line, stripped, column)
            return

        self._emit(TokenType.TEXT, "", stripped, line, column)

    def _lex_detached(self, line: str, stripped: str, column: int) -> bool:
        """Try to lex a detached modifier or delimiter; return False for plain text."""
        ch = stripped[0]
        run = len(stripped) - len(stripped.lstrip(ch))
        marker = stripped[:run]
        rest = stripped[run:]

        if not rest:
            if run >= 3 and ch == "-":
                self._emit(TokenType.WEAK_DELIMITER, marker, "", line, column)
                return True
            if run >= 3 and ch == "=":
                self._emit(TokenType.STRONG_DELIMITER, marker, "", line, column)
                return True
            if run >= 3 and ch == "_":
                self._emit(TokenType.HORIZONTAL_RULE, marker, "", line, column)
                return True
            return False

        if rest[0] not in " \t":
            return False

        value = rest.strip()
        if ch == "*":
            self._emit(TokenType.HEADING, marker, value, line, column)
            return True
        if ch in "-~>":
            self._emit(TokenType.LIST_ITEM, marker, value, line, column)
            return True
        if ch in "$^:" and run == 2:
            # Range-able detached modifier: $$ title ... $$
            self._emit(TokenType.RANGED_BEGIN, marker, value, line, column)
            self._enter_ranged(marker, marker)
            return True
        if ch in "$^:%":
            self._emit(TokenType.DETACHED_OTHER, marker, value, line, column)
            return True
        return False

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def _lex_tag(self, line: str, stripped: str, column: int) -> None:
        ch = stripped[0]
        name_len = 1
        while name_len < len(stripped) and is_tag_name_char(stripped[name_len]):
            name_len += 1
        name = stripped[1:name_len]
        value = stripped[1:]

        if ch == "@":
            if name == "end":
                self._emit(TokenType.VERBATIM_END, "@", "end", line, column)
                return
            self._emit(TokenType.VERBATIM_BEGIN, "@", value, line, column)
            self._state = _State.VERBATIM
            return

        if ch in "|=":
            if name == "end":
                self._emit(TokenType.RANGED_END, ch, "end", line, column)
                return
            self._emit(TokenType.RANGED_BEGIN, ch, value, line, column)
            self._enter_ranged(ch, ch + "end")
            return

        self._emit(TokenType.TAG, ch, value, line, column)

    # ------------------------------------------------------------------
    # Raw content modes
    # ------------------------------------------------------------------

    def _lex_verbatim_line(self, line: str) -> None:
        stripped = line.strip()
        if stripped == "@end":
            column = len(line) - len(line.lstrip(" \t")) + 1
            self._emit(TokenType.VERBATIM_END, "@", "end", line, column)
            self._state = _State.NORMAL
            return
        self._emit(TokenType.TEXT, "", line, line)

    def _enter_ranged(self, opener: str, closer: str) -> None:
        self._state = _State.RANGED
        self._ranged_open = opener
        self._ranged_close = closer
        self._ranged_depth = 1

    def _lex_ranged_line(self, line: str) -> None:
        stripped = line.strip()
        column = len(line) - len(line.lstrip(" \t")) + 1

        if stripped == self._ranged_close:
            self._ranged_depth -= 1
            if self._ranged_depth == 0:
                self._emit(TokenType.RANGED_END, self._ranged_open, stripped, line, column)
                self._state = _State.NORMAL
                return
        elif (
            self._ranged_open in "|="
            and stripped.startswith(self._ranged_open)
            and len(stripped) > 1
            and stripped[1].isalpha()
        ):
            self._ranged_depth += 1

        self._emit(TokenType.TEXT, "", line, line)


def tokenize(source: str, filename: str = "input.norg") -> list[Token]:
    """Convenience function: tokenize source text and return token list."""
    return Lexer(source, filename).tokenize()
