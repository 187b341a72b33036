"""Angle-bracket disambiguation: generic delimiters vs comparison and shifts.

A ``<`` opens a generic argument list exactly when the thing before it is a
type or path in type position; in expression position it is "less than".
Deciding which needs a small backward-looking classifier over the preceding
tokens, driven by what follows the position being classified (a
ContextToken). Each step of the classifier moves strictly backward, so it
terminates on any input; running off the start of the buffer means "type".

All functions take the Analysis of the text and only look at text before
the character being classified.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Union

from rustmode.errors import ScanError
from rustmode.tokens import (
    EXPRESSION_KEYWORDS,
    ITEM_KEYWORDS,
    KEYWORDS,
    PRIMITIVE_TYPES,
    ContextToken,
    is_ident_char,
    is_ident_start,
    word_start,
)

if TYPE_CHECKING:
    from rustmode.analysis import Analysis

# A verdict, or the next (position, token) request to classify.
_Step = Union[bool, tuple[int, ContextToken]]


def is_less_than_operator(ctx: Analysis, pos: int) -> bool:
    """Return True if the '<' at pos is an operator rather than an angle bracket."""
    text = ctx.text
    if not ctx.options.match_angle_brackets:
        return True
    if ctx.scan.literal_covering(pos) is not None:
        return True
    if ctx.macro_scopes.contains(pos):
        return True
    if text[pos + 1 : pos + 2] == "=":
        return True
    if pos > 0 and text[pos - 1] == "<" and ctx.is_operator(pos - 1):
        # Second half of a shift
        return True

    q = ctx.rewind_irrelevant(pos)
    if q == 0:
        return False
    if ctx.scan.literal_covering(q - 1) is not None:
        return True
    c = text[q - 1]
    if is_ident_char(c):
        start = word_start(text, q)
        word = text[start:q]
        if not is_ident_start(word[0]):
            return True
        if word in PRIMITIVE_TYPES or word in KEYWORDS:
            return False
        return in_expression_context(ctx, _path_start(ctx, start), ContextToken.IDENT)
    if c == ":":
        # Turbofish `::<`, or `x: <T as Trait>::Out`
        return False
    if c in ")]}?":
        return True
    if c == ">":
        return ctx.is_angle_bracket(q - 1)
    # After an operator, opener, comma or semicolon a '<' starts a qualified path
    return False


def is_closing_angle_bracket(ctx: Analysis, pos: int) -> bool:
    """Return True if the '>' at pos closes a generic argument list."""
    text = ctx.text
    if not ctx.options.match_angle_brackets:
        return False
    if pos > 0 and text[pos - 1] in "-=":
        return False
    if ctx.scan.literal_covering(pos) is not None:
        return False
    if ctx.macro_scopes.contains(pos):
        return False
    opener = ctx.ppss(pos).innermost_open
    return opener is not None and text[opener] == "<"


def in_expression_context(ctx: Analysis, pos: int, token: ContextToken) -> bool:
    """Return True if the token starting at pos sits in an expression.

    False means type position (a type, path, pattern binding or declaration).
    """
    while True:
        step = _HANDLERS[token](ctx, pos)
        if isinstance(step, bool):
            return step
        next_pos, token = step
        if next_pos >= pos:
            return False
        pos = next_pos


# ----------------------------------------------------------------------
# Classifier steps
# ----------------------------------------------------------------------


def _classify_ident(ctx: Analysis, pos: int) -> _Step:
    """An identifier, path or operand starts at pos; look at what precedes it."""
    text = ctx.text
    q = ctx.rewind_irrelevant(pos)
    if q == 0:
        return False
    if ctx.scan.literal_covering(q - 1) is not None:
        return True
    c = text[q - 1]

    if is_ident_char(c):
        start = word_start(text, q)
        word = text[start:q]
        if start > 0 and text[start - 1] == "'":
            # Lifetime such as `&'a T`: classify what precedes it
            return (start - 1, ContextToken.IDENT)
        if word in EXPRESSION_KEYWORDS:
            return True
        if word == "as":
            return False
        if word == "for":
            return not _keyword_in_statement(ctx, start, "impl")
        if word in ("mut", "const"):
            r = ctx.rewind_irrelevant(start)
            if r > 0 and text[r - 1] in "&*":
                return (r - 1, ContextToken.AMBIGUOUS_OPERATOR)
            return False
        if word in ITEM_KEYWORDS:
            return False
        if word in ("break", "continue", "loop", "move") or not is_ident_start(word[0]):
            return True
        return False

    if c == ":":
        if q >= 2 and text[q - 2] == ":":
            return True
        return (q - 1, ContextToken.COLON)
    if c == ">":
        if q >= 2 and text[q - 2] == "-":
            return False
        if q >= 2 and text[q - 2] == "=":
            return True
        # Closing a generic list (`impl<T> Foo`) means type position
        return not ctx.is_angle_bracket(q - 1)
    if c == "<":
        return not ctx.is_angle_bracket(q - 1)
    if c == ",":
        return _classify_comma(ctx, q - 1)
    if c in "([":
        return (q - 1, ContextToken.OPEN_BRACE)
    if c == "{":
        return (q - 1, ContextToken.OPEN_BRACE)
    if c == "=":
        if q >= 2 and text[q - 2] in "=!<>+-*/%^&|":
            return True
        return not _keyword_in_statement(ctx, q - 1, "type")
    if c in "&*+-!":
        if q >= 2 and text[q - 2] == c and c == "&":
            return True
        return (q - 1, ContextToken.AMBIGUOUS_OPERATOR)
    if c in "?#":
        # `?Sized`, attributes
        return False
    return True


def _classify_open(ctx: Analysis, pos: int) -> _Step:
    """A bracket opens at pos; decide whether its contents are expressions."""
    text = ctx.text
    q = ctx.rewind_irrelevant(pos)
    if q == 0:
        return False
    if ctx.scan.literal_covering(q - 1) is not None:
        return True
    c = text[q - 1]
    if text[pos] == "{":
        # Blocks and struct literals hold expressions; item bodies hold types
        if _keyword_in_statement(ctx, pos, "struct", "enum", "union"):
            return False
        if is_ident_char(c):
            start = _path_start(ctx, word_start(text, q))
            r = ctx.rewind_irrelevant(start)
            if r > 0 and text[r - 1] in "{,":
                # Struct-like enum variant, or a struct literal in a block or list
                return (start, ContextToken.IDENT)
        return True

    if is_ident_char(c):
        start = word_start(text, q)
        word = text[start:q]
        if word == "fn":
            # Function pointer type
            return False
        if word in EXPRESSION_KEYWORDS or word in ("loop", "unsafe", "move", "async"):
            return True
        if word in KEYWORDS:
            return _classify_ident(ctx, pos)
        if not is_ident_start(word[0]):
            return True
        # Call, index, struct literal or item definition: ask about the path
        return (_path_start(ctx, start), ContextToken.IDENT)
    if c in ")]":
        return True
    if c == ">" and ctx.is_angle_bracket(q - 1):
        opener = ctx.partner(q - 1)
        if opener is None:
            return False
        return (_generic_owner(ctx, opener), ContextToken.IDENT)
    return _classify_ident(ctx, pos)


def _classify_ambiguous(ctx: Analysis, pos: int) -> _Step:
    """A unary-or-binary operator sits at pos."""
    text = ctx.text
    q = ctx.rewind_irrelevant(pos)
    if q == 0:
        return False
    if ctx.scan.literal_covering(q - 1) is not None:
        return True
    c = text[q - 1]
    if is_ident_char(c):
        start = word_start(text, q)
        word = text[start:q]
        if word in KEYWORDS:
            # `return &x`, `as *const T`: unary, operand starts here
            return _classify_ident(ctx, pos)
        if not is_ident_start(word[0]):
            return True
        # Binary: same context as the left operand
        return (_path_start(ctx, start), ContextToken.IDENT)
    if c in ")]":
        opener = ctx.partner(q - 1)
        if opener is None:
            return True
        return (opener, ContextToken.OPEN_BRACE)
    if c == ">" and ctx.is_angle_bracket(q - 1):
        opener = ctx.partner(q - 1)
        if opener is None:
            return False
        return (_generic_owner(ctx, opener), ContextToken.IDENT)
    if c == "}":
        return True
    return _classify_ident(ctx, pos)


def _classify_colon(ctx: Analysis, pos: int) -> _Step:
    """A single ':' at pos; decide whether a type or a value follows it."""
    text = ctx.text
    q = ctx.rewind_irrelevant(pos)
    if q == 0 or not is_ident_char(text[q - 1]):
        return False
    r = ctx.rewind_irrelevant(word_start(text, q))
    if r == 0:
        return False
    prev = text[r - 1]
    if prev not in ",({<":
        # `let x:`, `where T:`, `const X:`, `static Y:`, closure `|x:`
        return False
    opener = ctx.ppss(pos).innermost_open
    if opener is not None and text[opener] == "{":
        # Struct literal fields hold values; struct definitions hold types
        return (opener, ContextToken.OPEN_BRACE)
    return False


def _classify_comma(ctx: Analysis, pos: int) -> _Step:
    """An operand follows the ',' at pos; classify by the enclosing list."""
    text = ctx.text
    opener = ctx.ppss(pos).innermost_open
    if _keyword_in_statement(ctx, pos, "where"):
        return False
    if opener is None:
        return True
    if text[opener] == "<":
        return False
    return (opener, ContextToken.OPEN_BRACE)


_HANDLERS: dict[ContextToken, Callable[[Analysis, int], _Step]] = {
    ContextToken.IDENT: _classify_ident,
    ContextToken.OPEN_BRACE: _classify_open,
    ContextToken.AMBIGUOUS_OPERATOR: _classify_ambiguous,
    ContextToken.COLON: _classify_colon,
}


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _path_start(ctx: Analysis, pos: int) -> int:
    """Walk back over `a::b::`, `Foo<T>::` and `<T as X>::` prefixes of a path."""
    text = ctx.text
    while True:
        q = ctx.rewind_irrelevant(pos)
        if q < 2 or text[q - 2 : q] != "::":
            return pos
        r = ctx.rewind_irrelevant(q - 2)
        if r == 0:
            return q - 2
        c = text[r - 1]
        if is_ident_char(c):
            pos = word_start(text, r)
        elif c == ">" and ctx.is_angle_bracket(r - 1):
            opener = ctx.partner(r - 1)
            if opener is None:
                return q - 2
            pos = _generic_owner(ctx, opener)
        else:
            # Leading `::` of an absolute path
            return q - 2


def _generic_owner(ctx: Analysis, opener: int) -> int:
    """Start of the path a generic argument list starting at opener belongs to."""
    text = ctx.text
    s = ctx.rewind_irrelevant(opener)
    if s > 0 and is_ident_char(text[s - 1]):
        return _path_start(ctx, word_start(text, s))
    return _path_start(ctx, opener)


def _keyword_in_statement(ctx: Analysis, pos: int, *keywords: str) -> bool:
    """Return True if one of keywords appears before pos at the same nesting level,
    within the current statement."""
    text = ctx.text
    p = pos
    while True:
        q = ctx.rewind_irrelevant(p)
        if q == 0:
            return False
        c = text[q - 1]
        if c in ";{}" and ctx.scan.literal_covering(q - 1) is None:
            return False
        if is_ident_char(c):
            start = word_start(text, q)
            if text[start:q] in keywords:
                return True
            p = start
            continue
        try:
            p = ctx.backward_sexp(q)
        except ScanError:
            return False
