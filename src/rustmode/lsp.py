"""Minimal LSP server for Rust: rustfmt formatting and indentation."""

from __future__ import annotations

from pathlib import Path

from lsprotocol.types import (
    TEXT_DOCUMENT_FORMATTING,
    TEXT_DOCUMENT_ON_TYPE_FORMATTING,
    TEXT_DOCUMENT_RANGE_FORMATTING,
    Diagnostic,
    DiagnosticSeverity,
    DocumentFormattingParams,
    DocumentOnTypeFormattingOptions,
    DocumentOnTypeFormattingParams,
    DocumentRangeFormattingParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
    TextEdit,
)
from pygls.lsp.server import LanguageServer

from rustmode import __version__
from rustmode.buffer import Buffer
from rustmode.compilation import parse_locations
from rustmode.config import Options, load_config, options_from_config
from rustmode.errors import FormatError
from rustmode.indent import indent_line, indent_region
from rustmode.rustfmt import Formatter, rewrite_hunks

server = LanguageServer("rustmode-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)
options = Options()

_SEVERITY = {
    "error": DiagnosticSeverity.Error,
    "warning": DiagnosticSeverity.Warning,
    "note": DiagnosticSeverity.Information,
    "help": DiagnosticSeverity.Hint,
}


def _filename(uri: str) -> str:
    return uri.rsplit("/", 1)[-1] if "/" in uri else uri


def _position(buffer: Buffer, pos: int) -> Position:
    return Position(line=buffer.line_number(pos), character=buffer.column(pos))


def _edits(old: str, new: str) -> list[TextEdit]:
    """Minimal line-level edits turning old into new."""
    buffer = Buffer(old)
    return [
        TextEdit(
            range=Range(start=_position(buffer, start), end=_position(buffer, end)),
            new_text=replacement,
        )
        for start, end, replacement in rewrite_hunks(old, new)
    ]


def _diagnostics(diagnostics: str, filename: str, fallback: str) -> list[Diagnostic]:
    """Turn rustfmt's stderr into diagnostics for filename."""
    result = []
    for loc in parse_locations(diagnostics):
        if loc.path != filename:
            continue
        line = loc.line - 1
        col = (loc.column or 1) - 1
        result.append(
            Diagnostic(
                range=Range(
                    start=Position(line=line, character=col),
                    end=Position(line=line, character=col + 1),
                ),
                message=loc.message or fallback,
                severity=_SEVERITY.get(loc.severity, DiagnosticSeverity.Error),
                source="rustfmt",
            )
        )
    if not result and fallback:
        result.append(
            Diagnostic(
                range=Range(start=Position(line=0, character=0), end=Position(line=0, character=0)),
                message=fallback,
                severity=DiagnosticSeverity.Error,
                source="rustfmt",
            )
        )
    return result


def _format_document(ls: LanguageServer, uri: str) -> list[TextEdit] | None:
    """Run rustfmt over the document; publish its complaints as diagnostics."""
    source = ls.workspace.get_text_document(uri).source
    filename = _filename(uri)
    formatter = Formatter.from_options(options)

    try:
        result = formatter.format_source(source, filename)
    except FormatError as exc:
        diagnostics = _diagnostics(exc.diagnostics, filename, exc.message)
        ls.text_document_publish_diagnostics(PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics))
        return None

    diagnostics = _diagnostics(result.diagnostics, filename, "") if result.partial else []
    ls.text_document_publish_diagnostics(PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics))
    if not result.text and source:
        return None
    return _edits(source, result.text)


def _indent_lines(ls: LanguageServer, uri: str, start_line: int, end_line: int) -> list[TextEdit]:
    """Reindent a line range with the indentation engine."""
    source = ls.workspace.get_text_document(uri).source
    buffer = Buffer(source)
    if start_line == end_line:
        indent_line(buffer, start_line, options=options)
    else:
        indent_region(buffer, start_line, end_line, options)
    return _edits(source, buffer.text)


@server.feature(TEXT_DOCUMENT_FORMATTING)
def formatting(ls: LanguageServer, params: DocumentFormattingParams) -> list[TextEdit] | None:
    return _format_document(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_RANGE_FORMATTING)
def range_formatting(ls: LanguageServer, params: DocumentRangeFormattingParams) -> list[TextEdit]:
    rng = params.range
    end_line = rng.end.line
    if rng.end.character == 0 and end_line > rng.start.line:
        # Selection ends at the start of a line: that line is not selected
        end_line -= 1
    return _indent_lines(ls, params.text_document.uri, rng.start.line, end_line)


@server.feature(
    TEXT_DOCUMENT_ON_TYPE_FORMATTING,
    DocumentOnTypeFormattingOptions(first_trigger_character="}", more_trigger_character=["\n"]),
)
def on_type_formatting(ls: LanguageServer, params: DocumentOnTypeFormattingParams) -> list[TextEdit]:
    line = params.position.line
    return _indent_lines(ls, params.text_document.uri, line, line)


def main() -> None:
    global options
    options = options_from_config(load_config(None, Path.cwd()))
    server.start_io()
