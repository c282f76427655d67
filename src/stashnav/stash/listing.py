"""Parsing of ``git stash list`` output into a StashList."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from stashnav.stash.models import StashEntry, StashList, describe_age

FIELD_SEPARATOR = "\x1f"
LIST_FORMAT = "%gd%x1f%H%x1f%ct%x1f%gs"

_REF_PATTERN = re.compile(r"^(?:refs/)?stash@\{(\d+)\}$")
_SUBJECT_PATTERN = re.compile(r"^(?:WIP on|On) ([^:]+):\s?(.*)$", re.DOTALL)


class ListingParseError(ValueError):
    """Raised when stash list output does not have the expected shape."""


def parse_stash_listing(text: str, now: datetime | None = None) -> StashList:
    """Parse output produced with :data:`LIST_FORMAT`.

    Args:
        text: Raw stdout of ``git stash list``.
        now: Reference time for relative ages. Defaults to the current time.

    Returns:
        A StashList whose indices are the positions git reported.

    Raises:
        ListingParseError: If a record is malformed or indices are not contiguous.
    """

    reference = now or datetime.now(UTC)
    entries: list[StashEntry] = []
    for line in text.split("\n"):
        if not line.strip():
            continue
        fields = line.split(FIELD_SEPARATOR, 3)
        if len(fields) != 4:
            raise ListingParseError(f"Unexpected stash record: {line!r}")
        ref, commit, timestamp, subject = fields
        match = _REF_PATTERN.match(ref.strip())
        if match is None:
            raise ListingParseError(f"Unexpected stash reference: {ref!r}")
        index = int(match.group(1))
        if index != len(entries):
            raise ListingParseError(
                f"Stash indices are not contiguous: expected {len(entries)}, got {index}."
            )
        try:
            created_at = datetime.fromtimestamp(int(timestamp), tz=UTC)
        except ValueError as exc:
            raise ListingParseError(f"Invalid stash timestamp: {timestamp!r}") from exc
        branch, message = split_subject(subject)
        entries.append(
            StashEntry(
                index=index,
                branch=branch,
                message=message,
                relative_age=describe_age(created_at, reference),
                created_at=created_at,
                commit=commit.strip(),
                summary=subject,
            )
        )
    return StashList(tuple(entries))


def split_subject(subject: str) -> tuple[str, str]:
    """Split a reflog subject into ``(branch, message)``.

    ``"WIP on main: abc123 fix"`` becomes ``("main", "abc123 fix")`` and
    ``"On feature/x: msg"`` becomes ``("feature/x", "msg")``. Anything else keeps
    the whole subject as the message.
    """

    match = _SUBJECT_PATTERN.match(subject.strip())
    if match is None:
        return "unknown", subject.strip()
    return match.group(1).strip(), match.group(2).strip()
