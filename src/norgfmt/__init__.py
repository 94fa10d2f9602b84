"""Canonicalizing formatter for the Norg markup language."""

from __future__ import annotations

__version__ = "0.1.0"

from norgfmt.options import DEFAULT_OPTIONS, FormatOptions  # noqa: E402
from norgfmt.parser import parse  # noqa: E402
from norgfmt.render import render, render_with_diagnostics  # noqa: E402

__all__ = ["FormatOptions", "format_text", "parse", "render", "render_with_diagnostics"]


def format_text(
    source: str,
    filename: str = "input.norg",
    options: FormatOptions | None = None,
) -> str:
    """Parse Norg source and render it in canonical form."""
    doc = parse(source, filename)
    return render(doc, options if options is not None else DEFAULT_OPTIONS)
