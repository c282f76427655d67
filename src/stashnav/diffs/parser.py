"""Single-pass parsers for unified diffs and ``--raw --numstat`` listings."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from stashnav.diffs.models import (
    ChangeType,
    DiffDocument,
    DiffLine,
    DiffLineKind,
    FileChange,
    FileSummary,
    Hunk,
)

RE_HUNK = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
RE_NUMSTAT = re.compile(r"^(\d+|-)\t(\d+|-)\t(.*)$")

_STATUS_TYPES: dict[str, ChangeType] = {
    "A": ChangeType.ADDED,
    "M": ChangeType.MODIFIED,
    "D": ChangeType.DELETED,
    "R": ChangeType.RENAMED,
}


@dataclass
class _OpenHunk:
    header: str
    file_headers: tuple[DiffLine, ...]
    old_remaining: int | None
    new_remaining: int | None
    lines: list[DiffLine] = field(default_factory=list)

    @property
    def counted(self) -> bool:
        return self.old_remaining is not None and self.new_remaining is not None

    def expects_more(self) -> bool:
        if not self.counted:
            return False
        return bool(self.old_remaining or self.new_remaining)

    def consume(self, line: str) -> None:
        if line.startswith("\\"):
            self.lines.append(DiffLine(DiffLineKind.CONTEXT, line))
            return
        if line.startswith("+"):
            kind = DiffLineKind.ADDED
            if self.new_remaining:
                self.new_remaining -= 1
        elif line.startswith("-"):
            kind = DiffLineKind.REMOVED
            if self.old_remaining:
                self.old_remaining -= 1
        else:
            kind = DiffLineKind.CONTEXT
            if self.old_remaining:
                self.old_remaining -= 1
            if self.new_remaining:
                self.new_remaining -= 1
        self.lines.append(DiffLine(kind, line))

    def close(self) -> Hunk:
        return Hunk(header=self.header, file_headers=self.file_headers, lines=tuple(self.lines))


def physical_lines(text: str) -> list[str]:
    """Split on newlines only, dropping the empty tail after a final newline."""

    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def parse_diff(text: str) -> DiffDocument:
    """Parse unified diff text into a DiffDocument.

    Hunk headers declare how many old and new lines follow; those counts decide
    where a hunk body ends, so removed lines that happen to start with ``---``
    stay content. Lines outside hunk bodies are meta headers for the next hunk.
    A hunk cut short by end of input or by a new header is dropped and the
    document is flagged partial.
    """

    hunks: list[Hunk] = []
    pending_meta: list[DiffLine] = []
    current: _OpenHunk | None = None
    partial = False

    for line in physical_lines(text):
        if current is not None and current.expects_more():
            if line.startswith("@@") or line.startswith("diff --git "):
                partial = True
                current = None
            else:
                current.consume(line)
                continue

        if current is not None and not current.counted and _is_body_line(line):
            current.consume(line)
            continue

        if current is not None and line.startswith("\\"):
            current.consume(line)
            continue

        if line.startswith("@@"):
            if current is not None:
                hunks.append(current.close())
            current = _open_hunk(line, tuple(pending_meta))
            pending_meta = []
            continue

        if current is not None:
            hunks.append(current.close())
            current = None
        if line.startswith("diff ") and pending_meta:
            hunks.append(_placeholder_hunk(pending_meta))
            pending_meta = []
        pending_meta.append(DiffLine(DiffLineKind.META_HEADER, line))

    if current is not None:
        if current.expects_more():
            partial = True
        else:
            hunks.append(current.close())
    if pending_meta:
        hunks.append(_placeholder_hunk(pending_meta))

    return DiffDocument(hunks=tuple(hunks), partial=partial)


def render_diff_text(document: DiffDocument) -> str:
    """Rebuild diff text from a parsed document."""

    return "\n".join(line.text for line in _source_lines(document))


def document_lines(document: DiffDocument) -> tuple[DiffLine, ...]:
    """Return the flat sequence of lines to display for a document."""

    lines: list[DiffLine] = []
    for hunk in document.hunks:
        lines.extend(hunk.file_headers)
        if hunk.header:
            lines.append(DiffLine(DiffLineKind.META_HEADER, hunk.header))
        lines.extend(hunk.lines)
        if hunk.placeholder:
            lines.append(DiffLine(DiffLineKind.META_HEADER, f"[{hunk.placeholder}]"))
    return tuple(lines)


def parse_file_summary(text: str) -> FileSummary:
    """Parse ``git diff --raw --numstat`` output into a FileSummary.

    Raw records (``:<modes> <ids> <status>\\t<path>[\\t<new path>]``) give the
    change type; numstat records give line counts and are paired with raw
    records by position.
    """

    raw_records: list[tuple[str, list[str]]] = []
    counts: list[tuple[int, int, str]] = []
    partial = False

    for line in physical_lines(text):
        if not line.strip():
            continue
        if line.startswith(":"):
            meta, _, paths = line.partition("\t")
            fields = meta.split()
            if not fields or not paths:
                partial = True
                continue
            raw_records.append((fields[-1], paths.split("\t")))
            continue
        match = RE_NUMSTAT.match(line)
        if match is None:
            partial = True
            continue
        counts.append((_count(match.group(1)), _count(match.group(2)), match.group(3)))

    if not raw_records:
        # Without raw records the change type is unknown.
        changes = tuple(
            FileChange(path=path, change_type=ChangeType.MODIFIED, insertions=ins, deletions=dels)
            for ins, dels, path in counts
        )
        return FileSummary(changes=changes, partial=partial or bool(counts))

    if counts and len(raw_records) != len(counts):
        partial = True

    changes_list: list[FileChange] = []
    for position, (code, paths) in enumerate(raw_records):
        insertions, deletions = (
            counts[position][:2] if position < len(counts) else (0, 0)
        )
        changes_list.append(_file_change(code, paths, insertions, deletions))

    return FileSummary(changes=tuple(changes_list), partial=partial)


def _file_change(code: str, paths: list[str], insertions: int, deletions: int) -> FileChange:
    letter = code[:1].upper()
    change_type = _STATUS_TYPES.get(letter)
    raw_code = None
    if change_type is None:
        change_type = ChangeType.MODIFIED
        raw_code = code
    old_path = None
    path = paths[-1]
    if len(paths) > 1:
        old_path = paths[0]
    return FileChange(
        path=path,
        change_type=change_type,
        insertions=insertions,
        deletions=deletions,
        old_path=old_path,
        raw_code=raw_code,
    )


def _count(value: str) -> int:
    return 0 if value == "-" else int(value)


def _open_hunk(header: str, file_headers: tuple[DiffLine, ...]) -> _OpenHunk:
    match = RE_HUNK.match(header)
    if match is None:
        return _OpenHunk(header, file_headers, None, None)
    old_count = int(match.group(2)) if match.group(2) is not None else 1
    new_count = int(match.group(4)) if match.group(4) is not None else 1
    return _OpenHunk(header, file_headers, old_count, new_count)


def _is_body_line(line: str) -> bool:
    if line.startswith(("+++ ", "--- ", "diff ", "@@")):
        return False
    return line.startswith(("+", "-", " ", "\\")) or line == ""


def _placeholder_hunk(meta: list[DiffLine]) -> Hunk:
    texts = [line.text for line in meta]
    if any(text.startswith(("Binary files", "GIT binary patch")) for text in texts):
        placeholder = "binary file not shown"
    elif any(text.startswith(("rename from", "similarity index")) for text in texts):
        placeholder = "renamed without content changes"
    elif any(text.startswith(("old mode", "new mode")) for text in texts):
        placeholder = "file mode change only"
    else:
        placeholder = "no textual changes"
    return Hunk(header="", file_headers=tuple(meta), placeholder=placeholder)


def _source_lines(document: DiffDocument) -> list[DiffLine]:
    lines: list[DiffLine] = []
    for hunk in document.hunks:
        lines.extend(hunk.file_headers)
        if hunk.header:
            lines.append(DiffLine(DiffLineKind.META_HEADER, hunk.header))
        lines.extend(hunk.lines)
    return lines
