"""Core data structures and character classification helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto


class LiteralKind(Enum):
    STRING = auto()  # "..." and b"..."
    RAW_STRING = auto()  # r"...", r#"..."#, br"..."
    CHAR = auto()  # 'x', '\n', b'x'
    LINE_COMMENT = auto()  # // ...
    BLOCK_COMMENT = auto()  # /* ... */ (nesting)
    DOC_COMMENT = auto()  # /// ..., //! ..., /** ... */, /*! ... */


class ContextToken(Enum):
    """What follows the position handed to the expression-context classifier."""

    AMBIGUOUS_OPERATOR = auto()  # & * + - ! used either unary or binary
    OPEN_BRACE = auto()  # ( [ {
    IDENT = auto()  # identifier or path
    COLON = auto()  # a single ':'


@dataclass(frozen=True, slots=True)
class Span:
    """Half-open offset range [start, end)."""

    start: int
    end: int

    def __contains__(self, pos: int) -> bool:
        return self.start <= pos < self.end

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True, slots=True)
class Literal:
    """A string, char literal or comment extent."""

    kind: LiteralKind
    span: Span
    terminated: bool = True
    fence: int = 0

    @property
    def start(self) -> int:
        return self.span.start

    @property
    def end(self) -> int:
        return self.span.end

    @property
    def is_comment(self) -> bool:
        return self.kind in _COMMENT_KINDS

    @property
    def is_string(self) -> bool:
        return not self.is_comment

    def contains(self, pos: int) -> bool:
        """Return True if the state just before the char at pos is inside."""
        if pos <= self.span.start:
            return False
        if pos < self.span.end:
            return True
        return not self.terminated and pos == self.span.end


_COMMENT_KINDS = frozenset(
    {LiteralKind.LINE_COMMENT, LiteralKind.BLOCK_COMMENT, LiteralKind.DOC_COMMENT}
)


@dataclass(frozen=True, slots=True)
class LexicalState:
    """Parser-state snapshot at a position: nesting plus enclosing literal."""

    depth: int
    open_brackets: tuple[int, ...]
    literal: Literal | None = None

    @property
    def in_string(self) -> bool:
        return self.literal is not None and self.literal.is_string

    @property
    def in_comment(self) -> bool:
        return self.literal is not None and self.literal.is_comment

    @property
    def in_doc_comment(self) -> bool:
        return self.literal is not None and self.literal.kind == LiteralKind.DOC_COMMENT

    @property
    def literal_start(self) -> int | None:
        return self.literal.start if self.literal is not None else None

    @property
    def innermost_open(self) -> int | None:
        return self.open_brackets[-1] if self.open_brackets else None


OPENERS = "([{"
CLOSERS = ")]}"
MATCHING = {"(": ")", "[": "]", "{": "}", "<": ">", ")": "(", "]": "[", "}": "{", ">": "<"}

# Words that can never be rebound as a value; a '<' after them opens generics.
PRIMITIVE_TYPES = frozenset(
    {
        "u8", "u16", "u32", "u64", "u128", "usize",
        "i8", "i16", "i32", "i64", "i128", "isize",
        "f32", "f64", "bool", "char", "str",
    }
)  # fmt: skip

# A '<' after these keywords (or a path they introduce) is part of an expression.
EXPRESSION_KEYWORDS = frozenset({"if", "while", "match", "return", "box", "in", "else"})

# Keywords introducing declarations or types.
ITEM_KEYWORDS = frozenset(
    {
        "fn", "struct", "enum", "union", "trait", "type", "impl", "dyn",
        "where", "pub", "crate", "unsafe", "extern", "async", "mod", "use",
        "static", "let", "ref", "macro_rules",
    }
)  # fmt: skip

KEYWORDS = EXPRESSION_KEYWORDS | ITEM_KEYWORDS | frozenset(
    {"as", "for", "mut", "const", "loop", "break", "continue", "move"}
)

# Start of an item that stays on the baseline when it begins a line.
TOP_ITEM_RE = re.compile(
    r"[ \t]*(?:pub(?:[ \t]*\([^)\n]*\))?[ \t]+)?"
    r"(?:(?:default|const|async|unsafe|extern(?:[ \t]+\"[^\"\n]*\")?)[ \t]+)*"
    r"(?:enum|struct|union|type|mod|use|fn|static|impl|extern|trait|const|macro_rules!)"
    r"(?![A-Za-z0-9_])"
)


def is_ident_char(ch: str) -> bool:
    """Return True if ch can appear inside an identifier or number."""
    return ch != "" and (ch.isalnum() or ch == "_")


def is_ident_start(ch: str) -> bool:
    """Return True if ch can start an identifier."""
    return ch != "" and (ch.isalpha() or ch == "_")


def word_start(text: str, end: int) -> int:
    """Start of the identifier (or number) ending at end."""
    i = end
    while i > 0 and is_ident_char(text[i - 1]):
        i -= 1
    return i
