"""Lexical-syntax annotator.

Turns the classifier, macro tracker and angle disambiguator results for a
region into character-class properties a generic tokenizer can apply on top
of its defaults: fences around raw strings and char literals, inert content
inside raw strings, and bracket or punctuation classes for ``<``/``>``.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from rustmode.analysis import Analysis
from rustmode.config import Options
from rustmode.macros import MacroScopes, macro_scopes
from rustmode.syntax import LexicalScan
from rustmode.tokens import Literal, LiteralKind, Span

if TYPE_CHECKING:
    from rustmode.buffer import Buffer

logger = logging.getLogger(__name__)


class CharClass(Enum):
    STRING_FENCE = auto()  # delimiter of a raw string or char literal
    STRING_CONTENT = auto()  # string body with escapes disabled
    PUNCTUATION = auto()  # '<' or '>' used as an operator
    OPEN_ANGLE = auto()  # '<' opening a generic list
    CLOSE_ANGLE = auto()  # '>' closing a generic list


@dataclass(frozen=True, slots=True)
class SyntaxProperty:
    span: Span
    char_class: CharClass


@dataclass(frozen=True, slots=True)
class Annotation:
    """Properties for one region, sorted by start offset and non-overlapping."""

    properties: tuple[SyntaxProperty, ...]
    macro_scopes: MacroScopes

    def at(self, pos: int) -> CharClass | None:
        starts = [p.span.start for p in self.properties]
        idx = bisect_right(starts, pos) - 1
        if idx >= 0 and pos in self.properties[idx].span:
            return self.properties[idx].char_class
        return None


def annotate(buffer: Buffer, start: int = 0, end: int | None = None, options: Options | None = None) -> Annotation:
    """Classify the special characters of buffer[start:end].

    Macro scopes are computed once for the region and handed to the
    analysis, so every angle decision in the pass shares them.
    """
    text = buffer.text
    end = len(text) if end is None else min(end, len(text))
    scan = LexicalScan(text)
    scopes = macro_scopes(scan, start, end)
    ctx = Analysis(text, options, scopes=scopes, scan=scan)

    props: list[SyntaxProperty] = []
    for lit in scan.literals_in(start, end):
        if lit.kind == LiteralKind.RAW_STRING:
            props.extend(_raw_string_properties(text, lit))
        elif lit.kind == LiteralKind.CHAR:
            props.extend(_char_properties(text, lit))

    for pos in scan.angles:
        if pos < start:
            continue
        if pos >= end:
            break
        if ctx.is_angle_bracket(pos):
            cls = CharClass.OPEN_ANGLE if text[pos] == "<" else CharClass.CLOSE_ANGLE
        else:
            cls = CharClass.PUNCTUATION
        props.append(SyntaxProperty(Span(pos, pos + 1), cls))

    props.sort(key=lambda p: p.span.start)
    logger.debug("annotate [%d, %d): %d properties", start, end, len(props))
    return Annotation(tuple(props), scopes)


def _raw_string_properties(text: str, lit: Literal) -> list[SyntaxProperty]:
    content_start = text.index('"', lit.start) + 1
    content_end = lit.end - 1 - lit.fence if lit.terminated else lit.end
    props = [SyntaxProperty(Span(lit.start, content_start), CharClass.STRING_FENCE)]
    if content_end > content_start:
        props.append(SyntaxProperty(Span(content_start, content_end), CharClass.STRING_CONTENT))
    if lit.terminated:
        props.append(SyntaxProperty(Span(content_end, lit.end), CharClass.STRING_FENCE))
    return props


def _char_properties(text: str, lit: Literal) -> list[SyntaxProperty]:
    quote = text.index("'", lit.start)
    return [
        SyntaxProperty(Span(lit.start, quote + 1), CharClass.STRING_FENCE),
        SyntaxProperty(Span(lit.end - 1, lit.end), CharClass.STRING_FENCE),
    ]
