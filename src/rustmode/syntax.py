"""Strings, comments and bracket nesting at any position."""

from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from typing import TYPE_CHECKING

from rustmode.tokens import (
    CLOSERS,
    MATCHING,
    OPENERS,
    LexicalState,
    Literal,
    LiteralKind,
    Span,
    is_ident_char,
)

if TYPE_CHECKING:
    from rustmode.buffer import Buffer

# r"..", r#".."#, br"..", cr".."; the prefix must start a word.
_RAW_OPEN = re.compile(r'[bc]?r(#*)"')

# 'x', '\n', '\'', '\x7f', '\u{1F600}'; anything else after an apostrophe is
# a lifetime or a loop label.
_CHAR_LITERAL = re.compile(r"'(?:[^\\'\n\r\t]|\\(?:u\{[0-9A-Fa-f_]{1,6}\}|x[0-9A-Fa-f]{2}|.))'")


class BracketStructure:
    """Matched bracket pairs plus the open-bracket stack after every event.

    Closers pop back to the nearest opener of their own kind, dropping any
    unclosed openers in between; a closer with no opener is ignored.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._stack: list[int] = []
        self._event_pos: list[int] = []
        self._event_stack: list[tuple[int, ...]] = []
        self._partner: dict[int, int] = {}

    def open(self, pos: int) -> None:
        self._stack.append(pos)
        self._record(pos)

    def close(self, pos: int) -> bool:
        want = MATCHING[self._text[pos]]
        for i in range(len(self._stack) - 1, -1, -1):
            opener = self._stack[i]
            if self._text[opener] == want:
                del self._stack[i:]
                self._partner[opener] = pos
                self._partner[pos] = opener
                self._record(pos)
                return True
        return False

    def top(self) -> int | None:
        return self._stack[-1] if self._stack else None

    def stack_at(self, pos: int) -> tuple[int, ...]:
        """Open brackets enclosing pos (state before the char at pos)."""
        idx = bisect_left(self._event_pos, pos) - 1
        if idx < 0:
            return ()
        return self._event_stack[idx]

    def partner(self, pos: int) -> int | None:
        return self._partner.get(pos)

    def _record(self, pos: int) -> None:
        self._event_pos.append(pos)
        self._event_stack.append(tuple(self._stack))


class LexicalScan:
    """One forward pass over the text recording literals and brackets."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.literals: list[Literal] = []
        self.angles: list[int] = []
        self.bangs: list[int] = []
        self.brackets: list[int] = []
        self.structure = BracketStructure(text)
        self._literal_starts: list[int] = []
        self._scan()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def literal_at(self, pos: int) -> Literal | None:
        """The literal whose interior pos lies in, per Literal.contains."""
        idx = bisect_left(self._literal_starts, pos) - 1
        if idx >= 0 and self.literals[idx].contains(pos):
            return self.literals[idx]
        return None

    def literal_covering(self, pos: int) -> Literal | None:
        """The literal that owns the character at pos, delimiters included."""
        idx = bisect_right(self._literal_starts, pos) - 1
        if idx >= 0 and pos in self.literals[idx].span:
            return self.literals[idx]
        return None

    def literals_in(self, start: int, end: int) -> list[Literal]:
        lo = max(0, bisect_right(self._literal_starts, start) - 1)
        hi = bisect_left(self._literal_starts, end)
        return [lit for lit in self.literals[lo:hi] if lit.end > start]

    def state_at(self, pos: int) -> LexicalState:
        stack = self.structure.stack_at(pos)
        return LexicalState(len(stack), stack, self.literal_at(pos))

    def partner(self, pos: int) -> int | None:
        return self.structure.partner(pos)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _scan(self) -> None:
        text = self.text
        n = len(text)
        i = 0
        while i < n:
            ch = text[i]
            nxt = text[i + 1] if i + 1 < n else ""
            if ch == "/" and nxt == "/":
                i = self._lex_line_comment(i)
            elif ch == "/" and nxt == "*":
                i = self._lex_block_comment(i)
            elif ch == '"':
                i = self._lex_string(i)
            elif ch == "'":
                i = self._lex_quote(i)
            elif is_ident_char(ch):
                i = self._lex_word(i)
            else:
                if ch in OPENERS:
                    self.brackets.append(i)
                    self.structure.open(i)
                elif ch in CLOSERS:
                    self.brackets.append(i)
                    self.structure.close(i)
                elif ch in "<>":
                    self.angles.append(i)
                elif ch == "!":
                    self.bangs.append(i)
                i += 1

    def _add(self, kind: LiteralKind, start: int, end: int, terminated: bool = True, fence: int = 0) -> None:
        self.literals.append(Literal(kind, Span(start, end), terminated, fence))
        self._literal_starts.append(start)

    def _lex_word(self, start: int) -> int:
        if start == 0 or not is_ident_char(self.text[start - 1]):
            m = _RAW_OPEN.match(self.text, start)
            if m:
                return self._lex_raw_string(start, m.end(), len(m.group(1)))
        i = start
        n = len(self.text)
        while i < n and is_ident_char(self.text[i]):
            i += 1
        return i

    def _lex_line_comment(self, start: int) -> int:
        text = self.text
        doc = (text.startswith("///", start) and not text.startswith("////", start)) or text.startswith(
            "//!", start
        )
        kind = LiteralKind.DOC_COMMENT if doc else LiteralKind.LINE_COMMENT
        nl = text.find("\n", start)
        if nl == -1:
            self._add(kind, start, len(text), terminated=False)
            return len(text)
        self._add(kind, start, nl + 1)
        return nl + 1

    def _lex_block_comment(self, start: int) -> int:
        text = self.text
        n = len(text)
        doc = (text.startswith("/**", start) and text[start + 3 : start + 4] not in ("*", "/")) or text.startswith(
            "/*!", start
        )
        kind = LiteralKind.DOC_COMMENT if doc else LiteralKind.BLOCK_COMMENT
        depth = 1
        i = start + 2
        while i < n:
            if text.startswith("/*", i):
                depth += 1
                i += 2
            elif text.startswith("*/", i):
                depth -= 1
                i += 2
                if depth == 0:
                    self._add(kind, start, i)
                    return i
            else:
                i += 1
        self._add(kind, start, n, terminated=False)
        return n

    def _lex_string(self, start: int) -> int:
        text = self.text
        n = len(text)
        i = start + 1
        while i < n:
            ch = text[i]
            if ch == "\\":
                i += 2
            elif ch == '"':
                self._add(LiteralKind.STRING, start, i + 1)
                return i + 1
            else:
                i += 1
        self._add(LiteralKind.STRING, start, n, terminated=False)
        return n

    def _lex_raw_string(self, start: int, content_start: int, fence: int) -> int:
        """Scan to the quote followed by exactly `fence` hashes; no escapes."""
        closing = '"' + "#" * fence
        idx = self.text.find(closing, content_start)
        if idx == -1:
            self._add(LiteralKind.RAW_STRING, start, len(self.text), terminated=False, fence=fence)
            return len(self.text)
        end = idx + len(closing)
        self._add(LiteralKind.RAW_STRING, start, end, fence=fence)
        return end

    def _lex_quote(self, start: int) -> int:
        m = _CHAR_LITERAL.match(self.text, start)
        if m:
            self._add(LiteralKind.CHAR, start, m.end())
            return m.end()
        # Lifetime or label sigil
        return start + 1


def scan(text: str) -> LexicalScan:
    """Convenience function: scan text and return the result."""
    return LexicalScan(text)


def classify(buffer: Buffer, pos: int) -> LexicalState:
    """Return the lexical state just before the character at pos.

    Depth counts only ``()[]{}``; see Analysis.ppss for the depth including
    angle brackets.
    """
    return buffer.analysis().scan.state_at(pos)
