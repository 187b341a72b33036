"""Shared test fixtures and helpers."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from rustmode.analysis import Analysis
from rustmode.buffer import Buffer
from rustmode.config import Options
from rustmode.indent import indent_for_line


@pytest.fixture
def analyze():
    """Return a helper that analyzes source text."""

    def _analyze(source: str, **options: object) -> Analysis:
        return Analysis(source, Options(**options))

    return _analyze


@pytest.fixture
def angle_kinds():
    """Return a helper listing 'bracket'/'operator' for every '<' and '>' in source."""

    def _kinds(source: str, **options: object) -> list[str]:
        ctx = Analysis(source, Options(**options))
        brackets = set(ctx.angle_brackets())
        return ["bracket" if pos in brackets else "operator" for pos in ctx.scan.angles]

    return _kinds


@pytest.fixture
def indent():
    """Return a helper computing the target column of one line."""

    def _indent(source: str, line: int, **options: object) -> int:
        return indent_for_line(Buffer(source), line, Options(**options))

    return _indent


def assert_indented(source: str, **options: object) -> None:
    """Assert that every non-blank line of source already has its target indentation."""
    buffer = Buffer(source)
    opts = Options(**options)
    for line in range(buffer.line_count):
        text = buffer.line_text(line)
        if not text.strip():
            continue
        expected = len(text) - len(text.lstrip(" "))
        actual = indent_for_line(buffer, line, opts)
        assert actual == expected, f"line {line + 1} {text!r}: expected {expected}, got {actual}"


def make_script(path: Path, body: str) -> Path:
    """Write a small executable shell script standing in for an external tool."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return path
