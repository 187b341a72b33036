"""--debug dump of literals, macro scopes and angle classifications to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from rustmode.buffer import Buffer
from rustmode.config import Options


def dump_analysis(buffer: Buffer, options: Options | None = None, *, file: TextIO | None = None) -> None:
    """Print a human-readable summary of the buffer's analysis to *file* (stderr by default)."""
    if file is None:
        file = sys.stderr
    ctx = buffer.analysis(options)
    file.write(f"Analysis ({len(buffer)} chars, {buffer.line_count} lines)\n")

    file.write("  Literals\n")
    for lit in ctx.scan.literals:
        note = "" if lit.terminated else " (unterminated)"
        file.write(f"    {lit.kind.name} {_where(buffer, lit.start)}..{_where(buffer, lit.end)}{note}\n")

    file.write(f"  MacroScopes {ctx.macro_scopes.state.name}\n")
    for span in ctx.macro_scopes.spans:
        file.write(f"    {_where(buffer, span.start)}..{_where(buffer, span.end)}\n")

    file.write("  Angles\n")
    kinds = dict.fromkeys(ctx.angle_brackets(), "bracket") | dict.fromkeys(ctx.operator_angles(), "operator")
    for pos, kind in sorted(kinds.items()):
        file.write(f"    {buffer.text[pos]} {_where(buffer, pos)} {kind}\n")


def _where(buffer: Buffer, pos: int) -> str:
    """1-based line:column for pos."""
    return f"{buffer.line_number(pos) + 1}:{buffer.column(pos) + 1}"
