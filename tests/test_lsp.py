"""Tests for the LSP server: rustfmt edits, diagnostics and reindentation."""

from __future__ import annotations

from pathlib import Path

import pytest
from lsprotocol.types import (
    DiagnosticSeverity,
    Position,
    PublishDiagnosticsParams,
    TextDocumentItem,
    TextDocumentSyncKind,
    TextEdit,
)
from pygls.lsp.server import LanguageServer
from pygls.workspace import Workspace

from rustmode import lsp
from rustmode.buffer import Buffer
from rustmode.config import Options
from rustmode.lsp import _diagnostics, _edits, _format_document, _indent_lines
from tests.conftest import make_script

URI = "file:///work/main.rs"
UNINDENTED = "fn f() {\nlet x = 1;\n}\n"
INDENTED = "fn f() {\n    let x = 1;\n}\n"


@pytest.fixture
def lsp_env():
    """Create a LanguageServer with an initialized workspace and captured diagnostics."""
    ls = LanguageServer("test", "v0", text_document_sync_kind=TextDocumentSyncKind.Full)
    ws = Workspace(None)
    ls.protocol._workspace = ws

    published: list[PublishDiagnosticsParams] = []
    ls.text_document_publish_diagnostics = lambda params: published.append(params)

    def put(source: str, uri: str = URI) -> None:
        ws.put_text_document(TextDocumentItem(uri=uri, language_id="rust", version=0, text=source))

    return ls, published, put


@pytest.fixture
def fake_rustfmt(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point the server's options at a shell script standing in for rustfmt."""

    def install(body: str) -> None:
        script = make_script(tmp_path / "fake-rustfmt", body)
        monkeypatch.setattr(lsp, "options", Options(rustfmt_bin=str(script), rustfmt_args=()))

    return install


def _apply(source: str, edits: list[TextEdit]) -> str:
    buffer = Buffer(source)
    for edit in reversed(edits):
        start = buffer.line_offset(edit.range.start.line) + edit.range.start.character
        end = buffer.line_offset(edit.range.end.line) + edit.range.end.character
        if edit.range.end.line >= buffer.line_count:
            end = len(buffer)
        buffer.replace(start, end, edit.new_text)
    return buffer.text


# ---------------------------------------------------------------------------
# Whole-document formatting
# ---------------------------------------------------------------------------


class TestFormatting:
    def test_edits_for_changed_lines(self, lsp_env, fake_rustfmt) -> None:
        ls, published, put = lsp_env
        fake_rustfmt("sed 's/^ *//'")
        put(INDENTED)
        edits = _format_document(ls, URI)

        assert edits is not None
        assert len(edits) == 1
        edit = edits[0]
        assert edit.range.start == Position(line=1, character=0)
        assert edit.range.end == Position(line=2, character=0)
        assert edit.new_text == "let x = 1;\n"
        assert len(published) == 1
        assert published[0].diagnostics == []

    def test_clean_document(self, lsp_env, fake_rustfmt) -> None:
        ls, published, put = lsp_env
        fake_rustfmt("cat")
        put(INDENTED)
        assert _format_document(ls, URI) == []
        assert published[0].diagnostics == []

    def test_failure_publishes_located_error(self, lsp_env, fake_rustfmt) -> None:
        ls, published, put = lsp_env
        fake_rustfmt(
            "cat >/dev/null\n"
            "echo 'error: expected item, found `let`' >&2\n"
            "echo ' --> <stdin>:2:5' >&2\n"
            "exit 1"
        )
        put(INDENTED)

        assert _format_document(ls, URI) is None
        assert len(published) == 1
        diags = published[0].diagnostics
        assert len(diags) == 1
        d = diags[0]
        assert d.severity == DiagnosticSeverity.Error
        assert d.message == "expected item, found `let`"
        assert d.source == "rustfmt"
        assert d.range.start == Position(line=1, character=4)

    def test_failure_without_location(self, lsp_env, fake_rustfmt) -> None:
        ls, published, put = lsp_env
        fake_rustfmt("cat >/dev/null\nexit 1")
        put(INDENTED)

        assert _format_document(ls, URI) is None
        d = published[0].diagnostics[0]
        assert d.message == "rustfmt failed to format main.rs"
        assert d.range.start == Position(line=0, character=0)

    def test_partial_format_warning(self, lsp_env, fake_rustfmt) -> None:
        ls, published, put = lsp_env
        fake_rustfmt("cat\necho 'warning: line exceeded maximum width' >&2\necho ' --> <stdin>:2:1' >&2\nexit 3")
        put(INDENTED)

        assert _format_document(ls, URI) == []
        d = published[0].diagnostics[0]
        assert d.severity == DiagnosticSeverity.Warning
        assert d.range.start == Position(line=1, character=0)

    def test_missing_rustfmt(self, lsp_env, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        ls, published, put = lsp_env
        monkeypatch.setattr(lsp, "options", Options(rustfmt_bin=str(tmp_path / "none")))
        put(INDENTED)

        assert _format_document(ls, URI) is None
        assert "could not find" in published[0].diagnostics[0].message


# ---------------------------------------------------------------------------
# Reindentation
# ---------------------------------------------------------------------------


class TestIndentLines:
    def test_single_line(self, lsp_env) -> None:
        ls, _, put = lsp_env
        put(UNINDENTED)
        edits = _indent_lines(ls, URI, 1, 1)
        assert len(edits) == 1
        assert edits[0].new_text == "    let x = 1;\n"
        assert edits[0].range.start == Position(line=1, character=0)

    def test_region(self, lsp_env) -> None:
        ls, _, put = lsp_env
        put("fn f() {\nif x {\ny();\n}\n}\n")
        edits = _indent_lines(ls, URI, 0, 4)
        assert _apply("fn f() {\nif x {\ny();\n}\n}\n", edits) == "fn f() {\n    if x {\n        y();\n    }\n}\n"

    def test_already_indented(self, lsp_env) -> None:
        ls, _, put = lsp_env
        put(INDENTED)
        assert _indent_lines(ls, URI, 0, 2) == []

    def test_uses_server_options(self, lsp_env, monkeypatch: pytest.MonkeyPatch) -> None:
        ls, _, put = lsp_env
        monkeypatch.setattr(lsp, "options", Options(indent_offset=2))
        put(UNINDENTED)
        assert _indent_lines(ls, URI, 1, 1)[0].new_text == "  let x = 1;\n"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_edits_identical(self) -> None:
        assert _edits(INDENTED, INDENTED) == []

    def test_edits_append(self) -> None:
        edits = _edits("a\n", "a\nb\n")
        assert len(edits) == 1
        assert edits[0].range.start == Position(line=1, character=0)
        assert edits[0].range.end == Position(line=1, character=0)
        assert edits[0].new_text == "b\n"

    def test_diagnostics_for_other_files_dropped(self) -> None:
        output = "error: oops\n --> other.rs:1:1\n"
        diags = _diagnostics(output, "main.rs", "failed")
        assert len(diags) == 1
        assert diags[0].message == "failed"

    def test_note_maps_to_information(self) -> None:
        output = "note: see here\n --> main.rs:3:2\n"
        d = _diagnostics(output, "main.rs", "")[0]
        assert d.severity == DiagnosticSeverity.Information
        assert d.range.start == Position(line=2, character=1)

    def test_no_fallback_means_no_diagnostic(self) -> None:
        assert _diagnostics("", "main.rs", "") == []
