"""Indentation engine: block prefixes derived from heading and list nesting."""

from __future__ import annotations

from dataclasses import dataclass

INDENT_UNIT = "  "


@dataclass(frozen=True, slots=True)
class IndentState:
    """Nesting depth of the block being rendered.

    heading_depth counts enclosing headings regardless of their levels, so a
    level-3 heading directly under a level-1 heading is still depth 2.
    list_depth counts enclosing list items.
    """

    heading_depth: int = 0
    list_depth: int = 0

    def descend_heading(self) -> IndentState:
        return IndentState(self.heading_depth + 1, self.list_depth)

    def descend_list(self) -> IndentState:
        return IndentState(self.heading_depth, self.list_depth + 1)

    @property
    def units(self) -> int:
        return self.heading_depth + self.list_depth

    def prefix(self) -> str:
        return INDENT_UNIT * self.units

    def width_for(self, line_length: int, hanging: int = 0) -> int:
        """Columns left for text after the prefix and a hanging marker."""
        return max(1, line_length - len(self.prefix()) - hanging)
