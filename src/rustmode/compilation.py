"""Locate source positions in rustc, cargo and rustfmt output."""

from __future__ import annotations

import re
from dataclasses import dataclass

# error[E0308]: mismatched types
_HEADER_RE = re.compile(r"^(error|warning|note|help)(?:\[[A-Za-z0-9]+\])?:\s*(.*)$")
#   --> src/main.rs:4:5
_ARROW_RE = re.compile(r"^\s*--> (.+?):(\d+):(\d+)\s*$")
#   ::: src/lib.rs:10:1
_COLON_RE = re.compile(r"^\s*::: (.+?):(\d+):(\d+)\s*$")
# thread 'main' panicked at 'boom', src/main.rs:2:5
_OLD_PANIC_RE = re.compile(r"^thread '[^']*' panicked at '(.*)', (.+?):(\d+)(?::(\d+))?\s*$")
# thread 'main' panicked at src/main.rs:2:5:
_NEW_PANIC_RE = re.compile(r"^thread '[^']*' panicked at (.+?):(\d+):(\d+):\s*$")


@dataclass(frozen=True, slots=True)
class Location:
    """A 1-based source location reported by a tool."""

    path: str
    line: int
    column: int | None
    severity: str
    message: str = ""


def parse_locations(output: str) -> list[Location]:
    """Return every locatable line of output, in order.

    Arrow lines take their severity and message from the closest preceding
    ``error``/``warning``/``note``/``help`` header. Secondary ``:::`` lines
    are notes. Panics are errors; the newer panic format carries its
    message on the following line.
    """
    locations: list[Location] = []
    severity = "error"
    message = ""
    lines = output.splitlines()
    for idx, line in enumerate(lines):
        m = _HEADER_RE.match(line)
        if m:
            severity, message = m.group(1), m.group(2)
            continue
        m = _ARROW_RE.match(line)
        if m:
            locations.append(Location(m.group(1), int(m.group(2)), int(m.group(3)), severity, message))
            continue
        m = _COLON_RE.match(line)
        if m:
            locations.append(Location(m.group(1), int(m.group(2)), int(m.group(3)), "note", message))
            continue
        m = _OLD_PANIC_RE.match(line)
        if m:
            column = int(m.group(4)) if m.group(4) else None
            locations.append(Location(m.group(2), int(m.group(3)), column, "error", m.group(1)))
            continue
        m = _NEW_PANIC_RE.match(line)
        if m:
            text = lines[idx + 1].strip() if idx + 1 < len(lines) else ""
            locations.append(Location(m.group(1), int(m.group(2)), int(m.group(3)), "error", text))
    return locations
