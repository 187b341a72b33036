"""Tests for the text buffer: offsets, lines and the analysis cache."""

from __future__ import annotations

from rustmode.buffer import Buffer
from rustmode.config import Options

TEXT = "fn f() {\n    x\n}"


class TestLines:
    def test_line_count(self) -> None:
        assert Buffer(TEXT).line_count == 3
        assert Buffer("").line_count == 1
        assert Buffer("a\n").line_count == 2

    def test_line_number_and_column(self) -> None:
        buffer = Buffer(TEXT)
        x = TEXT.index("x")
        assert buffer.line_number(x) == 1
        assert buffer.column(x) == 4
        assert buffer.line_number(len(TEXT)) == 2

    def test_line_bounds(self) -> None:
        buffer = Buffer(TEXT)
        assert buffer.line_offset(1) == 9
        assert buffer.line_end(9) == 14
        assert buffer.line_end(15) == len(TEXT)
        assert buffer.line_text(1) == "    x"

    def test_line_offset_clamped(self) -> None:
        buffer = Buffer(TEXT)
        assert buffer.line_offset(-1) == 0
        assert buffer.line_offset(99) == buffer.line_offset(2)

    def test_indentation(self) -> None:
        buffer = Buffer("\t  y\n")
        assert buffer.indentation_end(0) == 3
        assert buffer.current_indentation(2) == 3

    def test_char_at_out_of_range(self) -> None:
        buffer = Buffer("ab")
        assert buffer.char_at(1) == "b"
        assert buffer.char_at(2) == ""
        assert buffer.char_at(-1) == ""


class TestMutation:
    def test_replace_updates_lines(self) -> None:
        buffer = Buffer(TEXT)
        buffer.replace(9, 13, "")
        assert buffer.text == "fn f() {\nx\n}"
        assert buffer.line_offset(2) == 11
        assert buffer.version == 1

    def test_empty_replace_is_noop(self) -> None:
        buffer = Buffer(TEXT)
        buffer.replace(3, 3, "")
        assert buffer.version == 0

    def test_set_text_unchanged(self) -> None:
        buffer = Buffer(TEXT)
        buffer.set_text(TEXT)
        assert buffer.version == 0
        buffer.set_text("x")
        assert buffer.text == "x"
        assert buffer.version == 1


class TestAnalysisCache:
    def test_cached_per_revision(self) -> None:
        buffer = Buffer(TEXT)
        first = buffer.analysis()
        assert buffer.analysis() is first
        buffer.replace(0, 0, "\n")
        assert buffer.analysis() is not first

    def test_options_change_rebuilds(self) -> None:
        buffer = Buffer(TEXT)
        first = buffer.analysis()
        second = buffer.analysis(Options(match_angle_brackets=False))
        assert second is not first
        assert second.options.match_angle_brackets is False
