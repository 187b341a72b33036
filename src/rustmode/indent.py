"""Target indentation column for any line of Rust source.

The engine is context sensitive but keeps no state between lines: every
call computes a *baseline* (the indentation of the expression owning the
enclosing bracket, one level in) and then picks baseline, baseline plus or
minus one level, or a specially aligned column from the shape of the line.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from rustmode.config import Options
from rustmode.errors import ScanError
from rustmode.tokens import TOP_ITEM_RE, Literal, LiteralKind, is_ident_char, word_start

if TYPE_CHECKING:
    from rustmode.analysis import Analysis
    from rustmode.buffer import Buffer

_WHERE_RE = re.compile(r"(?<![A-Za-z0-9_])where(?![A-Za-z0-9_])")
_BOUND_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*:(?!:)")
_METHOD_RE = re.compile(r"\.[A-Za-z_]")
_BASELINE_START_RE = re.compile(r"else(?![A-Za-z0-9_])|\{|/[/*]")
_BLANK_OR_COMMENT_RE = re.compile(r"[ \t]*(?://.*)?")


def indent_for_line(buffer: Buffer, line: int, options: Options | None = None) -> int:
    """Return the column line should be indented to."""
    return Indenter(buffer, buffer.analysis(options)).column_for(line)


def indent_line(buffer: Buffer, line: int, point: int | None = None, options: Options | None = None) -> int:
    """Reindent line in place and return the adjusted point.

    Only the leading whitespace changes. A point inside or before the
    indentation lands on the first non-blank character; a point further
    right keeps its place relative to the text.
    """
    target = indent_for_line(buffer, line, options)
    start = buffer.line_offset(line)
    end = buffer.indentation_end(start)
    if point is None:
        point = end
    if buffer.text[start:end] != " " * target:
        buffer.replace(start, end, " " * target)
    if point < start:
        return point
    if point <= end:
        return start + target
    return point + target - (end - start)


def indent_region(buffer: Buffer, start_line: int, end_line: int, options: Options | None = None) -> None:
    """Reindent lines start_line..end_line inclusive, top to bottom.

    Empty lines are left alone. Every column is computed against a single
    analysis of the buffer, each line seeing the new indentation of the lines
    above it, and the result is written back in one edit.
    """
    indenter = Indenter(buffer, buffer.analysis(options))
    text = buffer.text
    pieces = []
    last = 0
    for line in range(max(start_line, 0), min(end_line, buffer.line_count - 1) + 1):
        if not buffer.line_text(line):
            continue
        target = indenter.column_for(line)
        indenter.pending[line] = target
        start = buffer.line_offset(line)
        end = buffer.indentation_end(start)
        if text[start:end] != " " * target:
            pieces += [text[last:start], " " * target]
            last = end
    if pieces:
        pieces.append(text[last:])
        buffer.set_text("".join(pieces))


class Indenter:
    """Computes indentation columns for one buffer revision."""

    def __init__(self, buffer: Buffer, ctx: Analysis) -> None:
        self.buffer = buffer
        self.ctx = ctx
        self.text = buffer.text
        self.options = ctx.options
        self.offset = ctx.options.indent_offset
        # New indentation of lines already reindented by indent_region
        self.pending: dict[int, int] = {}

    def column_for(self, line: int) -> int:
        buffer = self.buffer
        point = buffer.indentation_end(buffer.line_offset(line))
        return max(0, self._compute(point))

    def _indentation(self, pos: int) -> int:
        """Indentation of pos's line, counting a pending reindent."""
        buffer = self.buffer
        target = self.pending.get(buffer.line_number(pos))
        return buffer.current_indentation(pos) if target is None else target

    def _column(self, pos: int) -> int:
        buffer = self.buffer
        target = self.pending.get(buffer.line_number(pos))
        if target is None:
            return buffer.column(pos)
        return target + max(0, buffer.column(pos) - buffer.current_indentation(pos))

    # ------------------------------------------------------------------
    # Rule cascade
    # ------------------------------------------------------------------

    def _compute(self, point: int) -> int:
        ctx = self.ctx
        text = self.text
        state = ctx.ppss(point)
        level = state.depth
        baseline = self._baseline(point, level)

        if state.in_string:
            return self._string_column(point, state.literal)

        if self.options.indent_return_type_to_arguments and text.startswith("->", point):
            column = self._return_type_column(point)
            return column if column is not None else baseline + self.offset

        ch = text[point : point + 1]
        if ch and (ch in ")]}" or (ch == ">" and ctx.is_angle_bracket(point))):
            return baseline - self.offset

        if state.in_comment and ch == "*":
            # Line up the asterisks of a /** ... */ block
            return baseline + 1

        if not self.options.indent_where_clause and self._looking_at_where(point):
            return baseline

        if level > 0:
            column = self._align_to_expr_after_brace(state.innermost_open)
            if column is not None:
                return column

        column = self._where_bound_column(point, level, baseline)
        if column is not None:
            return column

        if self._stays_on_baseline(point):
            return baseline
        return baseline + self.offset

    def _baseline(self, point: int, level: int) -> int:
        if level == 0:
            return 0
        if self.options.indent_method_chain:
            column = self._align_to_method_chain(point)
            if column is not None:
                return column
        try:
            opener = self.ctx.backward_up_list(self.ctx.rewind_irrelevant(point))
            start = self._level_expr_start(opener)
        except ScanError:
            return self._indentation(point)
        return self._column(start) + self.offset

    # ------------------------------------------------------------------
    # Individual rules
    # ------------------------------------------------------------------

    def _string_column(self, point: int, literal: Literal | None) -> int:
        """Continuation lines of a non-raw string ending in a backslash."""
        buffer = self.buffer
        current = buffer.current_indentation(point)
        line = buffer.line_number(point)
        if literal is None or literal.kind == LiteralKind.RAW_STRING or line == 0:
            return current
        prev_end = buffer.line_end(buffer.line_offset(line - 1))
        if not (literal.start < prev_end and _ends_with_line_escape(self.text, prev_end)):
            return current
        if buffer.line_number(literal.start) == line - 1:
            # Previous line opens the string: align just past the quote,
            # unless the quote and backslash are all it holds.
            if len(self.text[literal.start + 1 : prev_end].rstrip("\r")) > 1:
                return self._column(literal.start + 1)
        return self._indentation(prev_end)

    def _return_type_column(self, point: int) -> int | None:
        """Align a leading `->` with the function's arguments."""
        ctx = self.ctx
        q = ctx.rewind_irrelevant(point)
        if q == 0 or self.text[q - 1] not in ")]}":
            return None
        opener = ctx.partner(q - 1)
        if opener is None:
            return None
        return self._align_to_expr_after_brace(opener)

    def _align_to_expr_after_brace(self, opener: int | None) -> int | None:
        """Column of the first thing after opener, if it shares opener's line."""
        if opener is None:
            return None
        text = self.text
        p = opener + 1
        end = self.buffer.line_end(p)
        if _BLANK_OR_COMMENT_RE.fullmatch(text, p, end):
            return None
        while p < end and text[p] in " \t":
            p += 1
        return self._column(p)

    def _where_bound_column(self, point: int, level: int, baseline: int) -> int | None:
        """Second and later bounds of a where-clause align on the first."""
        if self._looking_at_where(point) or not _BOUND_RE.match(self.text, point):
            return None
        fn_start = self.buffer.indentation_end(self._beginning_of_defun(self.buffer.line_end(point)))
        if self.ctx.depth(fn_start) != level:
            return None
        where = self._rewind_to_where(point, fn_start)
        if where is None:
            return None
        text = self.text
        p = where + len("where")
        end = self.buffer.line_end(p)
        if not text[p:end].strip():
            return baseline + self.offset
        while p < end and text[p] in " \t":
            p += 1
        return self._column(p)

    def _stays_on_baseline(self, point: int) -> bool:
        """True when the line starts a new expression rather than continuing one."""
        text = self.text
        if _BASELINE_START_RE.match(text, point) or TOP_ITEM_RE.match(text, point):
            return True
        q = self.ctx.rewind_irrelevant(point)
        if q == 0:
            return True
        last = text[q - 1]
        if last in "(,:;[{}" or (last == "<" and self.ctx.is_angle_bracket(q - 1)):
            return True
        if last == "|" and (q < 2 or text[q - 2] != "|"):
            # End of closure parameters
            return True
        # Previous line closes an attribute
        try:
            return text.startswith("#", self._level_expr_start(q))
        except ScanError:
            return False

    def _align_to_method_chain(self, point: int) -> int | None:
        """Baseline that puts a leading `.method` under the previous line's dot."""
        buffer = self.buffer
        ctx = self.ctx
        text = self.text
        if not _METHOD_RE.match(text, point):
            return None
        line = buffer.line_number(point)
        if line == 0:
            return None
        p = buffer.line_end(buffer.line_offset(line - 1))
        level = ctx.depth(p)
        while (ctx.in_string_or_comment(p) or not text[buffer.line_start(p) : p].strip()) and ctx.depth(
            p
        ) == level:
            prev = buffer.line_number(p)
            if prev == 0:
                return None
            p = buffer.line_end(buffer.line_offset(prev - 1))

        k = p
        while k > 0 and text[k - 1] == "?":
            k -= 1
        if k > 0 and text[k - 1] == ")":
            opener = ctx.partner(k - 1)
            if opener is None:
                return None
            k = opener
        if k > 0 and is_ident_char(text[k - 1]):
            start = word_start(text, k)
            if start > 0 and text[start - 1] == ".":
                return self._column(start - 1) - self.offset
        return None

    # ------------------------------------------------------------------
    # Structural rewinding
    # ------------------------------------------------------------------

    def _level_expr_start(self, pos: int) -> int:
        """Start of the statement or expression that owns the bracket at pos.

        Skips back over a leading `->` line, out of any deeper nesting on the
        line, and over an enclosing where-clause to the signature it belongs to.
        """
        ctx = self.ctx
        buffer = self.buffer
        current_level = ctx.depth(pos)
        p = buffer.indentation_end(pos)
        if self.text.startswith("->", p):
            p = buffer.indentation_end(ctx.rewind_irrelevant(p))
        while ctx.depth(p) > current_level:
            p = buffer.indentation_end(ctx.backward_up_list(p))

        fn_start = buffer.indentation_end(self._beginning_of_defun(p))
        fn_level = ctx.depth(fn_start)
        if self._looking_at_where(p) or (
            self._rewind_to_where(p, fn_start) is not None and current_level == fn_level
        ):
            return fn_start
        return p

    def _beginning_of_defun(self, pos: int) -> int:
        """Start of the nearest item line at or before pos.

        The search does not leave the top-level form holding pos; when no
        item line is found the start of that form's first line is returned.
        """
        buffer = self.buffer
        ctx = self.ctx
        line = buffer.line_number(pos)
        while line > 0:
            start = buffer.line_offset(line)
            if start <= pos and self._is_item_line(start):
                return start
            q = ctx.rewind_irrelevant(start)
            if q == 0 or (self.text[q - 1] in ";}" and ctx.depth(start) == 0):
                return start
            line -= 1
        return 0

    def _is_item_line(self, start: int) -> bool:
        if not TOP_ITEM_RE.match(self.text, start):
            return False
        head = self.buffer.indentation_end(start)
        return self.ctx.scan.literal_covering(head) is None and not self.ctx.in_string_or_comment(head)

    def _rewind_to_where(self, pos: int, limit: int) -> int | None:
        """Offset of the closest `where` keyword in [limit, pos), outside literals."""
        found = None
        for m in _WHERE_RE.finditer(self.text, limit, pos):
            if self.ctx.scan.literal_covering(m.start()) is None:
                found = m.start()
        return found

    def _looking_at_where(self, pos: int) -> bool:
        return _WHERE_RE.match(self.text, pos) is not None and not self.ctx.in_string_or_comment(pos)


def _ends_with_line_escape(text: str, end: int) -> bool:
    """True when the line ending at end closes on an unescaped backslash."""
    if end > 0 and text[end - 1] == "\r":
        end -= 1
    count = 0
    while count < end and text[end - count - 1] == "\\":
        count += 1
    return count % 2 == 1
