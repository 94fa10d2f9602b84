"""Error types with formatted source context, and non-fatal diagnostics."""

from __future__ import annotations

from dataclasses import dataclass

from norgfmt.tokens import Position, Span


def _snippet(message: str, source: str, filename: str, line: int, col: int, underline_len: int) -> str:
    """Render an error header plus the offending source line with carets."""
    lines = source.splitlines(keepends=True)
    line_idx = line - 1

    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    pad = " " * (col - 1)
    carets = "^" * underline_len

    line_num = str(line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"error: {message}\n"
        f"{' ' * gutter_width}--> {filename}:{line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )


class LexError(Exception):
    """Raised on the first lexing error, with position and source context."""

    def __init__(self, message: str, position: Position, source: str) -> None:
        self.message = message
        self.position = position
        self.source = source
        super().__init__(self.format())

    def format(self, filename: str = "input.norg") -> str:
        return _snippet(self.message, self.source, filename, self.position.line, self.position.column, 1)


class ParseError(Exception):
    """Raised on the first parse error, with span and source context."""

    def __init__(self, message: str, span: Span, source: str) -> None:
        self.message = message
        self.span = span
        self.source = source
        super().__init__(self.format())

    def format(self, filename: str = "input.norg") -> str:
        start, end = self.span.start, self.span.end
        lines = self.source.splitlines()
        line_len = len(lines[start.line - 1]) if 0 < start.line <= len(lines) else 0

        # Underline the full span when on one line, otherwise to end of line
        if end.line == start.line:
            underline_len = max(1, end.column - start.column)
        else:
            underline_len = max(1, line_len - start.column + 1)

        return _snippet(self.message, self.source, filename, start.line, start.column, underline_len)


class MalformedTreeError(Exception):
    """The input tree breaks the node model contract (cycle, shared node, bad nesting)."""

    def __init__(self, message: str, span: Span | None = None) -> None:
        self.message = message
        self.span = span
        if span is not None:
            message = f"{message} (at {span.start.line}:{span.start.column})"
        super().__init__(message)


class VerificationError(Exception):
    """Formatted output does not re-parse to a semantically equal tree."""

    def __init__(self, message: str, path: tuple[str, ...] = ()) -> None:
        self.message = message
        self.path = path
        where = "/".join(path) if path else "document"
        super().__init__(f"{message} at {where}")


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A non-fatal finding surfaced to the caller of the renderer.

    Codes: ``unsupported-node`` (raw text passed through) and
    ``dangling-reference`` (link or anchor target not found in the document).
    """

    code: str
    message: str
    span: Span
