"""rustfmt invocation, rewrite application and point preservation."""

from __future__ import annotations

import difflib
import logging
import os
import re
import shutil
import subprocess
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from rustmode.errors import FormatError, ToolNotFoundError

if TYPE_CHECKING:
    from rustmode.buffer import Buffer
    from rustmode.config import Options

logger = logging.getLogger(__name__)

# rustfmt exit codes
EXIT_OK = 0
EXIT_PARTIAL = 3

_STDIN_LOCATION = re.compile(r"(-->\s*)<stdin>(?=:\d)")


@dataclass(frozen=True, slots=True)
class FormatResult:
    """Formatted text plus whatever rustfmt had to say about it."""

    text: str
    diagnostics: str = ""
    returncode: int = EXIT_OK

    @property
    def partial(self) -> bool:
        """True if rustfmt could only format part of the input."""
        return self.returncode == EXIT_PARTIAL


@dataclass
class Formatter:
    """Runs rustfmt as a subprocess."""

    command: str = "rustfmt"
    args: tuple[str, ...] = ("--edition", "2021")
    timeout: float = 10.0

    @classmethod
    def from_options(cls, options: Options) -> Formatter:
        return cls(options.rustfmt_bin, tuple(options.rustfmt_args), options.rustfmt_timeout)

    def format_source(self, source: str, filename: str = "<stdin>") -> FormatResult:
        """Format source via stdin; raise FormatError unless rustfmt exits 0 or 3."""
        argv = [self.command, *self.args]
        result = self._run(argv, source)
        diagnostics = _STDIN_LOCATION.sub(lambda m: m.group(1) + filename, result.stderr)

        if result.returncode == EXIT_OK:
            return FormatResult(result.stdout, diagnostics)
        if result.returncode == EXIT_PARTIAL:
            logger.debug("%s: rustfmt formatted only part of the input", filename)
            return FormatResult(result.stdout, diagnostics, EXIT_PARTIAL)
        raise FormatError(f"rustfmt failed to format {filename}", argv, result.returncode, diagnostics)

    def format_buffer(self, buffer: Buffer, point: int = 0, filename: str = "<stdin>") -> tuple[FormatResult, int]:
        """Format buffer in place and return the result with the remapped point.

        The buffer is only touched after rustfmt succeeded, and only when the
        output differs from the current text.
        """
        old = buffer.text
        result = self.format_source(old, filename)
        if result.text == old or (not result.text and old):
            return result, point
        new_point = remap_position(old, result.text, point)
        hunks = apply_rewrite(buffer, result.text)
        logger.debug("%s: applied %d hunks", filename, hunks)
        return result, new_point

    def diff_source(
        self,
        source: str,
        filename: str = "<stdin>",
        callback: Callable[[str], None] | None = None,
    ) -> str:
        """Return rustfmt's --check diff for source, computed on a temporary copy."""
        fd, tmp = tempfile.mkstemp(prefix="rustmode-", suffix=".rs")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(source)
            argv = [self.command, *self.args, "--check", tmp]
            result = self._run(argv)
            if result.returncode != EXIT_OK and not result.stdout:
                raise FormatError(f"rustfmt --check failed for {filename}", argv, result.returncode, result.stderr)
            diff = result.stdout.replace(tmp, filename)
        finally:
            Path(tmp).unlink(missing_ok=True)

        if callback is not None:
            callback(diff)
        return diff

    def _run(self, argv: list[str], input: str | None = None) -> subprocess.CompletedProcess[str]:
        if shutil.which(argv[0]) is None:
            raise ToolNotFoundError(argv)
        logger.debug("running %s", " ".join(argv))
        try:
            return subprocess.run(
                argv,
                input=input,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ToolNotFoundError(argv) from None
        except subprocess.TimeoutExpired:
            raise FormatError(f"'{argv[0]}' timed out after {self.timeout}s", argv, None) from None


def rewrite_hunks(old: str, new: str) -> list[tuple[int, int, str]]:
    """Line-granular (start, end, replacement) edits turning old into new.

    Offsets refer to old; hunks are in ascending order and do not overlap.
    """
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    offsets = [0]
    for line in old_lines:
        offsets.append(offsets[-1] + len(line))

    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    return [
        (offsets[i1], offsets[i2], "".join(new_lines[j1:j2]))
        for tag, i1, i2, j1, j2 in matcher.get_opcodes()
        if tag != "equal"
    ]


def apply_rewrite(buffer: Buffer, new_text: str) -> int:
    """Replace buffer's text with new_text hunk by hunk; return the hunk count."""
    hunks = rewrite_hunks(buffer.text, new_text)
    # Back to front so earlier offsets stay valid
    for start, end, replacement in reversed(hunks):
        buffer.replace(start, end, replacement)
    return len(hunks)


def remap_position(old: str, new: str, pos: int) -> int:
    """Map pos in old to the same place in new, a whitespace-only rewrite of it.

    The point keeps the same number of non-whitespace characters before it,
    and stays glued to the character it was on when it was on one.
    """
    pos = max(0, min(pos, len(old)))
    count = sum(1 for ch in old[:pos] if not ch.isspace())
    on_char = pos < len(old) and not old[pos].isspace()
    if count == 0 and not on_char:
        return 0

    seen = 0
    for i, ch in enumerate(new):
        if ch.isspace():
            continue
        if on_char and seen == count:
            return i
        seen += 1
        if not on_char and seen == count:
            return i + 1
    return len(new)
