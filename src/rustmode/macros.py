"""Argument bodies of macro invocations and definitions."""

from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from enum import Enum, auto
from typing import ClassVar

from rustmode.syntax import LexicalScan
from rustmode.tokens import OPENERS, Span, is_ident_char

# After `macro_rules!`: the macro name, then the body bracket.
_MACRO_RULES_TAIL = re.compile(r"\s*[A-Za-z_][A-Za-z0-9_]*\s*")


class ScopeState(Enum):
    NOT_COMPUTED = auto()  # nothing cached yet
    NO_MACROS = auto()  # the region holds no '!' at all
    COMPUTED = auto()  # scanned; spans may still be empty


@dataclass(frozen=True, slots=True)
class MacroScopes:
    """Tri-state result of a macro-scope scan."""

    state: ScopeState
    spans: tuple[Span, ...] = ()

    NOT_COMPUTED: ClassVar[MacroScopes]

    @property
    def is_computed(self) -> bool:
        return self.state != ScopeState.NOT_COMPUTED

    @property
    def is_empty(self) -> bool:
        return not self.spans

    def contains(self, pos: int) -> bool:
        """Return True if pos lies strictly inside a macro body's brackets."""
        if self.state == ScopeState.NOT_COMPUTED:
            raise ValueError("macro scopes have not been computed")
        for span in self.spans:
            if span.start < pos < span.end - 1:
                return True
        return False


MacroScopes.NOT_COMPUTED = MacroScopes(ScopeState.NOT_COMPUTED)


def macro_scopes(scan: LexicalScan, start: int | None = None, end: int | None = None) -> MacroScopes:
    """Find the bracket spans of macro invocations in [start, end).

    start is first moved back to the beginning of the line holding the
    outermost bracket that encloses it, so an invocation that is already
    open at start is still found.
    """
    text = scan.text
    start = 0 if start is None else _top_level_start(scan, start)
    end = len(text) if end is None else end

    lo = bisect_left(scan.bangs, start)
    hi = bisect_left(scan.bangs, end)
    bangs = scan.bangs[lo:hi]
    if not bangs:
        return MacroScopes(ScopeState.NO_MACROS)

    spans: list[Span] = []
    resume = start
    for bang in bangs:
        if bang < resume:
            continue
        opener = _invocation_opener(text, bang)
        if opener is None:
            continue
        closer = scan.partner(opener)
        if closer is None or closer < opener:
            # Unmatched: no span for this one, keep scanning
            continue
        spans.append(Span(opener, closer + 1))
        resume = closer + 1
    return MacroScopes(ScopeState.COMPUTED, tuple(spans))


def _invocation_opener(text: str, bang: int) -> int | None:
    """Return the offset of the bracket opening the body of the macro at bang."""
    # The '!' must abut the name: `if !x` and `a != b` are not invocations.
    if bang == 0 or not is_ident_char(text[bang - 1]):
        return None
    i = bang + 1
    n = len(text)
    while i < n and text[i] in " \t\r\n":
        i += 1
    if i < n and text[i] in OPENERS:
        return i
    if _ends_with_word(text, bang, "macro_rules"):
        m = _MACRO_RULES_TAIL.match(text, bang + 1)
        if m and m.end() < n and text[m.end()] in OPENERS:
            return m.end()
    return None


def _ends_with_word(text: str, end: int, word: str) -> bool:
    start = end - len(word)
    if start < 0 or text[start:end] != word:
        return False
    return start == 0 or not is_ident_char(text[start - 1])


def _top_level_start(scan: LexicalScan, pos: int) -> int:
    stack = scan.structure.stack_at(pos)
    if not stack:
        return pos
    outermost = stack[0]
    return scan.text.rfind("\n", 0, outermost) + 1


def spans_between(scopes: MacroScopes, start: int, end: int) -> list[Span]:
    """Spans overlapping [start, end), in encounter order."""
    starts = [s.start for s in scopes.spans]
    lo = max(0, bisect_right(starts, start) - 1)
    return [s for s in scopes.spans[lo:] if s.start < end and s.end > start]
