"""Test the line-wrapping reflow engine."""

from norgfmt.reflow import Piece, can_start_line, line_start, pack, words, wrap


class TestWords:
    def test_split_on_whitespace(self):
        assert words([Piece("  a  b "), Piece("c")]) == ["a", "b", "c"]

    def test_adjacent_pieces_fuse(self):
        assert words([Piece("see "), Piece("{x}", atomic=True), Piece(".")]) == ["see", "{x}."]

    def test_atomic_keeps_inner_spaces(self):
        assert words([Piece("a"), Piece("`x  y`", atomic=True)]) == ["a`x  y`"]

    def test_newlines_are_whitespace(self):
        assert words([Piece("a\nb")]) == ["a", "b"]

    def test_empty(self):
        assert words([]) == []
        assert words([Piece("   ")]) == []


class TestLineStartSafety:
    def test_detached_runs(self):
        for word in ("-", "---", "**", ">", "~", "$$", "==="):
            assert not can_start_line(word), word

    def test_tags(self):
        for word in ("#tag", "@end", "|example", "+x", ".name", "=end"):
            assert not can_start_line(word), word

    def test_ordinary_words(self):
        for word in ("word", "-x", "*bold*", "#", "*|a", "2*3"):
            assert can_start_line(word), word

    def test_escaped_at_line_start(self):
        assert line_start("-") == "\\-"
        assert line_start("#tag") == "\\#tag"
        assert line_start("$$") == "\\$$"

    def test_safe_word_unchanged(self):
        assert line_start("word") == "word"
        assert line_start("\\*") == "\\*"

    def test_first_word_guarded(self):
        assert pack(["*", "foo"], 10) == ["\\* foo"]

    def test_first_word_unguarded(self):
        assert pack(["-", "b"], 10, guard_first=False) == ["- b"]

    def test_mid_line_word_untouched(self):
        assert pack(["a", "-", "b"], 10) == ["a - b"]


class TestPack:
    def test_greedy(self):
        assert pack(["aa", "bb", "cc"], 5) == ["aa bb", "cc"]

    def test_exact_fit(self):
        assert pack(["aa", "bb"], 5) == ["aa bb"]

    def test_oversized_word_alone(self):
        assert pack(["a", "toolongword", "b"], 4) == ["a", "toolongword", "b"]

    def test_empty(self):
        assert pack([], 10) == []


class TestWrap:
    def test_empty_paragraph(self):
        assert wrap([Piece("")], 10) == []

    def test_width_bound(self):
        text = " ".join(f"w{i:03d}" for i in range(60))
        lines = wrap([Piece(text)], 20)
        assert all(len(line) <= 20 for line in lines)
        assert " ".join(lines) == text

    def test_atomic_never_split(self):
        lines = wrap([Piece("a b "), Piece("{x y z}", atomic=True), Piece(" c")], 3)
        assert "{x y z}" in lines

    def test_line_start_word_escaped_within_width(self):
        lines = wrap([Piece("aaaa - bbbb")], 5)
        assert lines == ["aaaa", "\\-", "bbbb"]
        assert all(len(line) <= 5 for line in lines)
