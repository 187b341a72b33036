"""Per-revision analysis context: literals, macro scopes and angle-aware nesting."""

from __future__ import annotations

import logging

from rustmode import angles
from rustmode.config import Options
from rustmode.errors import ScanError
from rustmode.macros import MacroScopes, macro_scopes
from rustmode.syntax import BracketStructure, LexicalScan
from rustmode.tokens import CLOSERS, OPENERS, LexicalState, is_ident_char, word_start

logger = logging.getLogger(__name__)


class Analysis:
    """Everything the indentation engine and annotator need about one text.

    The bracket structure here includes the ``<``/``>`` characters that the
    disambiguator classifies as angle brackets. It is built lazily in buffer
    order, so classifying a character only ever consults the text before it.
    Pass precomputed macro scopes to reuse them across analyses of the same
    text; otherwise they are computed once for the whole text.
    """

    def __init__(
        self,
        text: str,
        options: Options | None = None,
        scopes: MacroScopes = MacroScopes.NOT_COMPUTED,
        scan: LexicalScan | None = None,
    ) -> None:
        self.text = text
        self.options = options or Options()
        self.scan = scan if scan is not None else LexicalScan(text)
        if not scopes.is_computed:
            scopes = macro_scopes(self.scan)
        self.macro_scopes = scopes
        self._structure = BracketStructure(text)
        self._events = sorted(self.scan.brackets + self.scan.angles)
        self._cursor = 0
        self._angle_brackets: set[int] = set()
        self._operators: set[int] = set()
        logger.debug(
            "analysis: %d chars, %d literals, %d macro spans",
            len(text),
            len(self.scan.literals),
            len(scopes.spans),
        )

    # ------------------------------------------------------------------
    # Incremental structure
    # ------------------------------------------------------------------

    def _advance(self, pos: int) -> None:
        """Resolve every bracket event strictly before pos."""
        events = self._events
        while self._cursor < len(events) and events[self._cursor] < pos:
            event = events[self._cursor]
            self._cursor += 1
            ch = self.text[event]
            if ch in OPENERS:
                self._structure.open(event)
            elif ch in CLOSERS:
                self._structure.close(event)
            elif ch == "<":
                if angles.is_less_than_operator(self, event):
                    self._operators.add(event)
                else:
                    self._angle_brackets.add(event)
                    self._structure.open(event)
            elif angles.is_closing_angle_bracket(self, event):
                self._angle_brackets.add(event)
                self._structure.close(event)
            else:
                self._operators.add(event)

    def is_angle_bracket(self, pos: int) -> bool:
        self._advance(pos + 1)
        return pos in self._angle_brackets

    def is_operator(self, pos: int) -> bool:
        """True for a '<' or '>' classified as an operator (or inert)."""
        self._advance(pos + 1)
        return pos in self._operators

    def angle_brackets(self) -> list[int]:
        self._advance(len(self.text) + 1)
        return sorted(self._angle_brackets)

    def operator_angles(self) -> list[int]:
        self._advance(len(self.text) + 1)
        return sorted(self._operators)

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    def ppss(self, pos: int) -> LexicalState:
        """Lexical state just before pos, with angle brackets counted."""
        self._advance(pos)
        stack = self._structure.stack_at(pos)
        return LexicalState(len(stack), stack, self.scan.literal_at(pos))

    def depth(self, pos: int) -> int:
        return self.ppss(pos).depth

    def in_string_or_comment(self, pos: int) -> bool:
        return self.scan.literal_at(pos) is not None

    def partner(self, pos: int) -> int | None:
        """Matching bracket for the one at pos, if it is matched."""
        if self.text[pos : pos + 1] in ("(", "[", "{", "<"):
            # The closer may lie anywhere ahead
            self._advance(len(self.text) + 1)
        else:
            self._advance(pos + 1)
        return self._structure.partner(pos)

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def rewind_irrelevant(self, pos: int) -> int:
        """Move back over whitespace and comments; out of a string if inside."""
        text = self.text
        while True:
            start = pos
            while pos > 0 and text[pos - 1] in " \t\r\n\f":
                pos -= 1
            if pos > 0:
                lit = self.scan.literal_covering(pos - 1)
                if lit is not None and lit.is_comment:
                    pos = lit.start
            lit = self.scan.literal_at(pos)
            if lit is not None:
                pos = lit.start
            if pos == start:
                return pos

    def backward_up_list(self, pos: int) -> int:
        """Offset of the innermost bracket enclosing pos."""
        opener = self.ppss(pos).innermost_open
        if opener is None:
            raise ScanError("at top level", pos)
        return opener

    def backward_sexp(self, pos: int) -> int:
        """Start of the balanced expression ending before pos."""
        text = self.text
        p = self.rewind_irrelevant(pos)
        if p == 0:
            raise ScanError("beginning of buffer", pos)
        lit = self.scan.literal_covering(p - 1)
        if lit is not None:
            return lit.start
        ch = text[p - 1]
        if ch in CLOSERS or (ch == ">" and self.is_angle_bracket(p - 1)):
            opener = self.partner(p - 1)
            if opener is None:
                raise ScanError("unbalanced closing bracket", p - 1)
            return opener
        if ch in OPENERS or (ch == "<" and self.is_angle_bracket(p - 1)):
            raise ScanError("containing expression ends", p - 1)
        if is_ident_char(ch):
            return word_start(text, p)
        return p - 1

    def forward_sexp(self, pos: int) -> int:
        """End of the balanced expression starting at or after pos."""
        text = self.text
        n = len(text)
        p = pos
        while True:
            while p < n and text[p] in " \t\r\n\f":
                p += 1
            lit = self.scan.literal_covering(p) if p < n else None
            if lit is not None and lit.is_comment:
                p = lit.end
                continue
            break
        if p >= n:
            raise ScanError("end of buffer", pos)
        if lit is not None:
            return lit.end
        ch = text[p]
        if ch in OPENERS or (ch == "<" and self.is_angle_bracket(p)):
            closer = self.partner(p)
            if closer is None:
                raise ScanError("unbalanced opening bracket", p)
            return closer + 1
        if ch in CLOSERS or (ch == ">" and self.is_angle_bracket(p)):
            raise ScanError("containing expression ends", p)
        if is_ident_char(ch):
            while p < n and is_ident_char(text[p]):
                p += 1
            return p
        return p + 1

