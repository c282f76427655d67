"""Stash entry and stash list models."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class StashEntry:
    """A single stash on the stack, as seen by the last listing.

    Attributes:
        index: Position on the stack (0 is the newest stash). Only valid until
            the next mutating operation.
        branch: Branch the stash was created on, or ``"unknown"``.
        message: User-facing stash message.
        relative_age: Human-readable age derived from ``created_at``.
        created_at: Creation timestamp of the stash commit.
        commit: Object id of the stash commit, used to detect drift.
        summary: Raw reflog subject as reported by git.
    """

    index: int
    branch: str
    message: str
    relative_age: str
    created_at: datetime
    commit: str = ""
    summary: str = ""

    @property
    def ref(self) -> str:
        """Return the git reference addressing this entry."""

        return f"stash@{{{self.index}}}"

    @property
    def search_text(self) -> str:
        """Return the text the fuzzy filter matches against."""

        return f"{self.branch} {self.message}"


@dataclass(frozen=True)
class StashList:
    """Immutable snapshot of the stash stack.

    Indices are exactly ``0..N-1`` in stack order. The snapshot is never edited
    after a mutation; callers re-list the stack instead.
    """

    entries: tuple[StashEntry, ...] = ()

    def __post_init__(self) -> None:
        for position, entry in enumerate(self.entries):
            if entry.index != position:
                raise ValueError(
                    f"Stash indices must be contiguous from 0; found {entry.index} "
                    f"at position {position}."
                )

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[StashEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> StashEntry:
        return self.entries[index]

    def get(self, index: int) -> StashEntry | None:
        """Return the entry at ``index`` or None when out of range."""

        if 0 <= index < len(self.entries):
            return self.entries[index]
        return None

    def resolve(self, index: int, commit: str) -> StashEntry | None:
        """Return the entry at ``index`` only if it still holds ``commit``.

        An empty ``commit`` skips the identity check.
        """

        entry = self.get(index)
        if entry is None:
            return None
        if commit and entry.commit and entry.commit != commit:
            return None
        return entry

    @property
    def indices(self) -> tuple[int, ...]:
        return tuple(range(len(self.entries)))


_AGE_UNITS: tuple[tuple[str, int], ...] = (
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("week", 7 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
)


def describe_age(created_at: datetime, now: datetime | None = None) -> str:
    """Return a git-style relative age such as ``"3 days ago"``."""

    reference = now or datetime.now(UTC)
    seconds = int((reference - created_at).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size in _AGE_UNITS:
        if seconds >= size:
            count = seconds // size
            suffix = "" if count == 1 else "s"
            return f"{count} {unit}{suffix} ago"
    return "just now"
