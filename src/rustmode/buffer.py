"""Mutable text buffer with stable offsets and line helpers."""

from __future__ import annotations

from bisect import bisect_right
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rustmode.analysis import Analysis
    from rustmode.config import Options


class Buffer:
    """Source text addressed by 0-based offsets and 0-based line numbers.

    Offsets are stable for the duration of one analysis pass; every
    replace() bumps ``version`` and drops the cached analysis.
    """

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._line_starts = _line_starts(text)
        self.version = 0
        self._analysis: Analysis | None = None

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    def char_at(self, pos: int) -> str:
        if 0 <= pos < len(self._text):
            return self._text[pos]
        return ""

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_number(self, pos: int) -> int:
        return bisect_right(self._line_starts, pos) - 1

    def line_offset(self, line: int) -> int:
        """Offset of the first character of a line."""
        line = max(0, min(line, len(self._line_starts) - 1))
        return self._line_starts[line]

    def line_start(self, pos: int) -> int:
        return self._line_starts[self.line_number(pos)]

    def line_end(self, pos: int) -> int:
        """Offset of the newline ending pos's line, or the buffer end."""
        idx = self._text.find("\n", pos)
        return len(self._text) if idx == -1 else idx

    def line_text(self, line: int) -> str:
        start = self.line_offset(line)
        return self._text[start : self.line_end(start)]

    def column(self, pos: int) -> int:
        return pos - self.line_start(pos)

    def indentation_end(self, pos: int) -> int:
        """Offset of the first non-blank character on pos's line."""
        p = self.line_start(pos)
        end = self.line_end(p)
        while p < end and self._text[p] in " \t":
            p += 1
        return p

    def current_indentation(self, pos: int) -> int:
        return self.column(self.indentation_end(pos))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace(self, start: int, end: int, text: str) -> None:
        if start == end and not text:
            return
        self._text = self._text[:start] + text + self._text[end:]
        self._line_starts = _line_starts(self._text)
        self.version += 1
        self._analysis = None

    def set_text(self, text: str) -> None:
        if text != self._text:
            self.replace(0, len(self._text), text)

    # ------------------------------------------------------------------
    # Analysis cache
    # ------------------------------------------------------------------

    def analysis(self, options: Options | None = None) -> Analysis:
        """Return the analysis for the current revision, building it once."""
        from rustmode.analysis import Analysis
        from rustmode.config import Options

        options = options or Options()
        cached = self._analysis
        if cached is None or cached.options != options:
            cached = Analysis(self._text, options)
            self._analysis = cached
        return cached


def _line_starts(text: str) -> list[int]:
    starts = [0]
    idx = text.find("\n")
    while idx != -1:
        starts.append(idx + 1)
        idx = text.find("\n", idx + 1)
    return starts
