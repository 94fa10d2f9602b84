"""Test link/anchor canonical syntax and name resolution."""

from __future__ import annotations

from norgfmt.ast import Heading, LinkTarget, TargetKind
from norgfmt.links import (
    build_anchor_table,
    canonical_target,
    canonical_url,
    format_anchor,
    format_link,
    name_key,
)
from tests.conftest import (
    S,
    anchor,
    bold,
    doc,
    heading,
    heading_target,
    inline_target,
    link,
    para,
    text,
    url,
)


def _table():
    return build_anchor_table(
        doc(
            heading(
                1,
                "Intro",
                para(anchor("def", link(url("https://x.org")))),
                para(inline_target("spot")),
            )
        )
    )


class TestCanonicalTargets:
    def test_name_key(self) -> None:
        assert name_key("  My   Title ") == "my title"

    def test_url_whitespace_and_scheme(self) -> None:
        assert canonical_url("HTTPS://Example.org/a b") == "https://Example.org/ab"

    def test_heading_target(self) -> None:
        assert canonical_target(heading_target(2, "  A   b ")) == "** A b"

    def test_marker_targets(self) -> None:
        assert canonical_target(LinkTarget(TargetKind.GENERIC, "x")) == "# x"
        assert canonical_target(LinkTarget(TargetKind.FOOTNOTE, "n")) == "^ n"
        assert canonical_target(LinkTarget(TargetKind.PATH, "a  b")) == "/ a b"

    def test_line_number(self) -> None:
        assert canonical_target(LinkTarget(TargetKind.LINE_NUMBER, "4 2")) == "42"


class TestAnchorTable:
    def test_collects_names(self) -> None:
        table = _table()
        assert table.headings == {(1, "intro"): "Intro"}
        assert table.anchors == {"def": "def"}
        assert table.targets == {"spot": "spot"}

    def test_generic_lookup(self) -> None:
        table = _table()
        assert table.find_generic("INTRO") == (True, "Intro")
        assert table.find_generic("spot") == (True, "spot")
        assert table.find_generic("nope") == (False, None)

    def test_heading_lookup_respects_level(self) -> None:
        table = _table()
        assert table.find_heading(1, "intro") == (True, "Intro")
        assert table.find_heading(2, "intro") == (False, None)

    def test_markup_title_matches_without_spelling(self) -> None:
        table = build_anchor_table(doc(Heading(1, (bold(text("B")),), (), S)))
        assert table.find_heading(1, "b") == (True, None)


class TestFormatLink:
    def test_respelled_to_definition(self) -> None:
        assert format_link(link(heading_target(1, "intro")), None, _table()) == ("{* Intro}", True)

    def test_dangling(self) -> None:
        assert format_link(link(heading_target(2, "intro")), None, _table()) == ("{** intro}", False)

    def test_file_links_not_resolved(self) -> None:
        node = link(url("x"), file=" notes ")
        assert format_link(node, "d", _table()) == ("{:notes:x}[d]", True)

    def test_without_table(self) -> None:
        assert format_link(link(url("HTTP://a.b")), None) == ("{http://a.b}", True)

    def test_spelling_with_braces_not_copied(self) -> None:
        table = build_anchor_table(doc(heading(1, "a}b")))
        assert format_link(link(heading_target(1, "A}B")), None, table) == ("{* A}B}", True)


class TestFormatAnchor:
    def test_reference_respelled(self) -> None:
        assert format_anchor(anchor("DEF"), "DEF", None, None, _table()) == ("[def]", True)

    def test_dangling_reference(self) -> None:
        assert format_anchor(anchor("nope"), "nope", None, None, _table()) == ("[nope]", False)

    def test_definition(self) -> None:
        node = anchor("def", link(url("x")))
        assert format_anchor(node, "def", "{x}", None, _table()) == ("[def]{x}", True)

    def test_description(self) -> None:
        node = anchor("def", description=(text("d"),))
        assert format_anchor(node, "def", None, "d", None) == ("[def][d]", True)
