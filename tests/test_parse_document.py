"""Test block structure: headings, delimiters, lists, verbatim and pass-through blocks."""

from __future__ import annotations

import pytest

from norgfmt.ast import Heading, List, ListKind, Paragraph, TextRun, Unknown, VerbatimBlock
from norgfmt.errors import ParseError


def _text_of(node: Paragraph) -> str:
    return "".join(c.value for c in node.children if isinstance(c, TextRun))


class TestHeadings:
    def test_heading_owns_paragraph(self, parse_source) -> None:
        doc = parse_source("* Title\nsome text")
        assert len(doc.children) == 1
        heading = doc.children[0]
        assert isinstance(heading, Heading)
        assert heading.level == 1
        assert heading.title == (TextRun("Title", heading.title[0].span),)
        assert isinstance(heading.children[0], Paragraph)
        assert _text_of(heading.children[0]) == "some text"

    def test_nesting_by_level(self, parse_source) -> None:
        doc = parse_source("* A\n** B\ntext\n* C")
        assert [type(c) for c in doc.children] == [Heading, Heading]
        a, c = doc.children
        assert isinstance(a.children[0], Heading)
        assert a.children[0].level == 2
        assert isinstance(a.children[0].children[0], Paragraph)
        assert c.children == ()

    def test_level_gap(self, parse_source) -> None:
        doc = parse_source("* A\n*** B\ntext")
        inner = doc.children[0].children[0]
        assert isinstance(inner, Heading)
        assert inner.level == 3

    def test_weak_delimiter_closes_innermost(self, parse_source) -> None:
        doc = parse_source("* A\n** B\n---\ntext")
        a = doc.children[0]
        assert len(doc.children) == 1
        assert isinstance(a.children[0], Heading)
        assert isinstance(a.children[1], Paragraph)

    def test_weak_delimiter_at_level_one(self, parse_source) -> None:
        doc = parse_source("* A\n---\ntext")
        assert [type(c) for c in doc.children] == [Heading, Paragraph]

    def test_strong_delimiter_closes_all(self, parse_source) -> None:
        doc = parse_source("* A\n** B\n===\ntext")
        assert [type(c) for c in doc.children] == [Heading, Paragraph]

    def test_top_level_delimiter_ignored(self, parse_source) -> None:
        doc = parse_source("---\ntext")
        assert [type(c) for c in doc.children] == [Paragraph]

    def test_paragraph_stops_at_heading(self, parse_source) -> None:
        doc = parse_source("text\n* H")
        assert [type(c) for c in doc.children] == [Paragraph, Heading]


class TestParagraphs:
    def test_soft_break_kept(self, parse_source) -> None:
        doc = parse_source("line one\nline two")
        assert _text_of(doc.children[0]) == "line one\nline two"

    def test_blank_line_splits(self, parse_source) -> None:
        doc = parse_source("one\n\n\ntwo")
        assert len(doc.children) == 2

    def test_empty_document(self, parse_source) -> None:
        assert parse_source("").children == ()
        assert parse_source("\n\n  \n").children == ()


class TestLists:
    def test_flat_list(self, parse_source) -> None:
        doc = parse_source("- a\n- b")
        lst = doc.children[0]
        assert isinstance(lst, List)
        assert lst.kind == ListKind.UNORDERED
        assert [i.level for i in lst.items] == [1, 1]

    def test_nested_list(self, parse_source) -> None:
        doc = parse_source("- a\n-- b\n- c")
        lst = doc.children[0]
        assert len(lst.items) == 2
        nested = lst.items[0].children[0]
        assert isinstance(nested, List)
        assert nested.items[0].level == 2
        assert _text_of(nested.items[0].content) == "b"

    def test_level_is_nesting_depth(self, parse_source) -> None:
        doc = parse_source("- a\n--- b")
        nested = doc.children[0].items[0].children[0]
        assert nested.items[0].level == 2

    def test_continuation_line(self, parse_source) -> None:
        doc = parse_source("- a\n  continued")
        assert _text_of(doc.children[0].items[0].content) == "a\ncontinued"

    def test_kind_change_starts_new_list(self, parse_source) -> None:
        doc = parse_source("- a\n~ b")
        assert [c.kind for c in doc.children] == [ListKind.UNORDERED, ListKind.ORDERED]

    def test_blank_line_ends_list(self, parse_source) -> None:
        doc = parse_source("- a\n\n- b")
        assert len(doc.children) == 2

    def test_quote(self, parse_source) -> None:
        doc = parse_source("> quoted")
        assert doc.children[0].kind == ListKind.QUOTE


class TestVerbatim:
    def test_content_dedented(self, parse_source) -> None:
        doc = parse_source("@code python\n  x = 1\n    y\n@end")
        block = doc.children[0]
        assert isinstance(block, VerbatimBlock)
        assert block.name == "code"
        assert block.parameters == ("python",)
        assert block.content == "x = 1\n  y"

    def test_unterminated(self, parse_source) -> None:
        with pytest.raises(ParseError, match="unterminated verbatim block '@code'"):
            parse_source("@code\nx")


class TestPassThrough:
    def test_carryover_tag(self, parse_source) -> None:
        doc = parse_source("#tag x\ntext")
        assert doc.children[0] == Unknown("tag", "#tag x", doc.children[0].span)
        assert isinstance(doc.children[1], Paragraph)

    def test_horizontal_rule(self, parse_source) -> None:
        doc = parse_source("___")
        assert doc.children[0].kind == "horizontal-rule"

    def test_ranged_tag(self, parse_source) -> None:
        doc = parse_source("|example\nfoo\n|end")
        node = doc.children[0]
        assert node.kind == "ranged-tag"
        assert node.raw == "|example\nfoo\n|end"

    def test_ranged_detached_modifier(self, parse_source) -> None:
        doc = parse_source("$$ Term\nbody\n$$")
        assert doc.children[0].kind == "ranged-detached-modifier"

    def test_definition_captures_following_text(self, parse_source) -> None:
        doc = parse_source("$ term\ndefinition")
        node = doc.children[0]
        assert node.kind == "detached-modifier"
        assert node.raw == "$ term\ndefinition"

    def test_stray_end(self, parse_source) -> None:
        doc = parse_source("@end")
        assert doc.children[0].kind == "stray-end"

    def test_unterminated_ranged_tag(self, parse_source) -> None:
        with pytest.raises(ParseError, match="unterminated ranged tag"):
            parse_source("|example\nfoo")
