"""Diff and file summary parsing."""

from stashnav.diffs.models import (
    ChangeType,
    DiffDocument,
    DiffLine,
    DiffLineKind,
    FileChange,
    FileSummary,
    Hunk,
)
from stashnav.diffs.parser import (
    document_lines,
    parse_diff,
    parse_file_summary,
    render_diff_text,
)

__all__ = [
    "ChangeType",
    "DiffDocument",
    "DiffLine",
    "DiffLineKind",
    "FileChange",
    "FileSummary",
    "Hunk",
    "document_lines",
    "parse_diff",
    "parse_file_summary",
    "render_diff_text",
]
