"""Minimal LSP server for Norg: diagnostics and whole-document formatting."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_FORMATTING,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentFormattingParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
    TextEdit,
)
from pygls.lsp.server import LanguageServer

from norgfmt import __version__
from norgfmt.cli import load_config
from norgfmt.errors import Diagnostic as FormatDiagnostic
from norgfmt.errors import LexError, ParseError
from norgfmt.options import DEFAULT_OPTIONS, FormatOptions
from norgfmt.parser import parse
from norgfmt.render import render_with_diagnostics
from norgfmt.tokens import Span

logger = logging.getLogger(__name__)

server = LanguageServer("norgfmt-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)

_SEVERITY = {
    "unsupported-node": DiagnosticSeverity.Information,
    "dangling-reference": DiagnosticSeverity.Warning,
}


def _range(span: Span) -> Range:
    return Range(
        start=Position(line=span.start.line - 1, character=span.start.column - 1),
        end=Position(line=span.end.line - 1, character=span.end.column - 1),
    )


def _filename(uri: str) -> str:
    return uri.rsplit("/", 1)[-1] if "/" in uri else uri


def _options_for(path: str | None) -> FormatOptions:
    """Line width from a norgfmt.toml next to the document, if any."""
    if not path:
        return DEFAULT_OPTIONS
    try:
        config = load_config(None, Path(path).parent)
        line_length = config.get("format", {}).get("line_length")
        if line_length is None:
            return DEFAULT_OPTIONS
        return FormatOptions(line_length=line_length)
    except (argparse.ArgumentTypeError, AttributeError, TypeError, ValueError) as exc:
        logger.warning("ignoring config for %s: %s", path, exc)
        return DEFAULT_OPTIONS


def _format_diagnostic(diag: FormatDiagnostic) -> Diagnostic:
    return Diagnostic(
        range=_range(diag.span),
        message=diag.message,
        severity=_SEVERITY.get(diag.code, DiagnosticSeverity.Information),
        code=diag.code,
        source="norgfmt",
    )


def _validate(ls: LanguageServer, uri: str) -> None:
    """Parse and render the document, then publish diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    source = doc.source
    filename = _filename(uri)
    diagnostics: list[Diagnostic] = []

    try:
        tree = parse(source, filename)
    except LexError as exc:
        line = exc.position.line - 1
        col = exc.position.column - 1
        diagnostics.append(
            Diagnostic(
                range=Range(
                    start=Position(line=line, character=col),
                    end=Position(line=line, character=col + 1),
                ),
                message=exc.message,
                severity=DiagnosticSeverity.Error,
                source="norgfmt",
            )
        )
    except ParseError as exc:
        diagnostics.append(
            Diagnostic(
                range=_range(exc.span),
                message=exc.message,
                severity=DiagnosticSeverity.Error,
                source="norgfmt",
            )
        )
    else:
        _, findings = render_with_diagnostics(tree, _options_for(doc.path))
        diagnostics.extend(_format_diagnostic(diag) for diag in findings)

    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


def format_document(ls: LanguageServer, uri: str) -> list[TextEdit] | None:
    """One edit replacing the whole document; no edits if already formatted, None if it does not parse."""
    doc = ls.workspace.get_text_document(uri)
    source = doc.source

    try:
        tree = parse(source, _filename(uri))
    except (LexError, ParseError) as exc:
        logger.info("not formatting %s: %s", uri, exc.message)
        return None

    formatted, _ = render_with_diagnostics(tree, _options_for(doc.path))
    if formatted == source:
        return []

    lines = source.split("\n")
    end = Position(line=len(lines) - 1, character=len(lines[-1]))
    return [TextEdit(range=Range(start=Position(line=0, character=0), end=end), new_text=formatted)]


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_FORMATTING)
def formatting(ls: LanguageServer, params: DocumentFormattingParams) -> list[TextEdit] | None:
    return format_document(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
