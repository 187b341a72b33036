"""Rust source analysis: literals, macro scopes, angle brackets and indentation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rustmode.config import Options

__version__ = "0.1.0"


def reindent(source: str, options: Options | None = None) -> str:
    """Reindent every non-empty line of Rust source and return the result."""
    from rustmode.buffer import Buffer
    from rustmode.indent import indent_region

    buffer = Buffer(source)
    indent_region(buffer, 0, buffer.line_count - 1, options)
    return buffer.text
