"""Formatting options: the single opinionated style, parameterized by width."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_LINE_LENGTH = 80


@dataclass(frozen=True, slots=True)
class FormatOptions:
    """Immutable formatting configuration threaded through one render call."""

    line_length: int = DEFAULT_LINE_LENGTH

    def __post_init__(self) -> None:
        if isinstance(self.line_length, bool) or not isinstance(self.line_length, int):
            raise TypeError(f"line_length must be an int, got {type(self.line_length).__name__}")
        if self.line_length < 1:
            raise ValueError(f"line_length must be positive, got {self.line_length}")


DEFAULT_OPTIONS = FormatOptions()
