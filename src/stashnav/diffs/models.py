"""Structured diff and file summary records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiffLineKind(str, Enum):
    """Classification of a physical diff line."""

    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"
    META_HEADER = "meta_header"


@dataclass(frozen=True)
class DiffLine:
    """A physical diff line, marker included.

    Attributes:
        kind: Line classification.
        text: Line text exactly as emitted by git.
    """

    kind: DiffLineKind
    text: str

    @property
    def content(self) -> str:
        """Return the text without its leading marker for content lines."""

        if self.kind in {DiffLineKind.ADDED, DiffLineKind.REMOVED} or (
            self.kind is DiffLineKind.CONTEXT and self.text.startswith(" ")
        ):
            return self.text[1:]
        return self.text


@dataclass(frozen=True)
class Hunk:
    """A contiguous block of changes with the file headers preceding it.

    Attributes:
        header: The ``@@`` line verbatim, or empty for a file without hunks.
        file_headers: Meta header lines (``diff --git``, ``---``, ...) that
            precede this hunk.
        lines: Content lines of the hunk.
        placeholder: Message shown instead of content for files without
            textual hunks (binary files, mode-only changes).
    """

    header: str
    file_headers: tuple[DiffLine, ...] = ()
    lines: tuple[DiffLine, ...] = ()
    placeholder: str | None = None


@dataclass(frozen=True)
class DiffDocument:
    """Parsed unified diff.

    Attributes:
        hunks: Hunks in input order.
        partial: True when trailing or interrupted hunks were dropped.
    """

    hunks: tuple[Hunk, ...] = ()
    partial: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.hunks


class ChangeType(str, Enum):
    """Kind of change applied to a file."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class FileChange:
    """A single changed file within a stash.

    Attributes:
        path: Current path of the file.
        change_type: Kind of change.
        insertions: Added line count (0 for binary files).
        deletions: Removed line count (0 for binary files).
        old_path: Previous path for renames.
        raw_code: Original git status code when it was not recognized.
    """

    path: str
    change_type: ChangeType
    insertions: int = 0
    deletions: int = 0
    old_path: str | None = None
    raw_code: str | None = None


@dataclass(frozen=True)
class FileSummary:
    """Parsed file listing for a stash."""

    changes: tuple[FileChange, ...] = ()
    partial: bool = False

    @property
    def total_insertions(self) -> int:
        return sum(change.insertions for change in self.changes)

    @property
    def total_deletions(self) -> int:
        return sum(change.deletions for change in self.changes)
