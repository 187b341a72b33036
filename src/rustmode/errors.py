"""Error types for structural scans and external tools."""

from __future__ import annotations


class ScanError(Exception):
    """Raised by structural motion when no balanced structure is found.

    Never escapes the core: callers treat it as "no further structure".
    """

    def __init__(self, message: str, position: int) -> None:
        self.message = message
        self.position = position
        super().__init__(f"{message} at offset {position}")


class FormatError(Exception):
    """Raised when the external formatter fails, with its own diagnostics."""

    def __init__(self, message: str, command: list[str], returncode: int | None, diagnostics: str = "") -> None:
        self.message = message
        self.command = command
        self.returncode = returncode
        self.diagnostics = diagnostics
        super().__init__(self.format())

    def format(self) -> str:
        cmd = " ".join(self.command)
        result = f"error: {self.message}\n  --> command: {cmd}"
        if self.returncode is not None:
            result += f"\n  --> exit code: {self.returncode}"
        text = self.diagnostics.rstrip("\n")
        if text:
            gutter = "   |"
            body = "\n".join(f"{gutter} {line}" if line else gutter for line in text.splitlines())
            result += f"\n{gutter}\n{body}"
        return result


class ToolNotFoundError(FormatError):
    """Raised when the external formatter executable cannot be found."""

    def __init__(self, command: list[str]) -> None:
        super().__init__(f"could not find '{command[0]}'; is it installed and on PATH?", command, None)
