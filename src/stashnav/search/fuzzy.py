"""Deterministic fuzzy subsequence filter over stash entries."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from stashnav.stash.models import StashEntry

SCORE_MATCH = 16
BONUS_CONTIGUOUS = 8
BONUS_BOUNDARY = 10
PENALTY_GAP = 1
PENALTY_LEADING_MAX = 5

_SEPARATORS = frozenset(" \t/\\-_.:,;()[]{}#@")


@dataclass(frozen=True)
class FuzzyMatch:
    """Scored match of a query against an entry."""

    index: int
    score: int
    positions: tuple[int, ...]


def match_positions(query: str, text: str) -> tuple[int, ...] | None:
    """Return matched character positions of ``query`` in ``text``.

    Matching is case-insensitive. The leftmost subsequence match is found first,
    then tightened backwards so the reported window is the shortest one ending
    at the same character. Returns None when ``query`` is not a subsequence.
    """

    needle = _fold(query)
    haystack = _fold(text)
    if not needle:
        return ()

    end = _forward_end(needle, haystack, 0)
    if end is None:
        return None

    start = end
    remaining = len(needle) - 1
    for position in range(end, -1, -1):
        if haystack[position] == needle[remaining]:
            start = position
            if remaining == 0:
                break
            remaining -= 1

    positions: list[int] = []
    cursor = start
    for char in needle:
        cursor = haystack.index(char, cursor)
        positions.append(cursor)
        cursor += 1
    return tuple(positions)


def fuzzy_score(query: str, text: str) -> int | None:
    """Score ``query`` against ``text``; None means no subsequence match."""

    positions = match_positions(query, text)
    if positions is None:
        return None
    return _score_positions(text, positions)


def _score_positions(text: str, positions: tuple[int, ...]) -> int:
    if not positions:
        return 0
    score = 0
    previous: int | None = None
    for position in positions:
        score += SCORE_MATCH
        if _is_boundary(text, position):
            score += BONUS_BOUNDARY
        if previous is not None:
            if position == previous + 1:
                score += BONUS_CONTIGUOUS
            else:
                score -= PENALTY_GAP * (position - previous - 1)
        previous = position
    score -= min(positions[0] // 2, PENALTY_LEADING_MAX)
    return score


def rank_entries(query: str, entries: Iterable[StashEntry]) -> list[FuzzyMatch]:
    """Return matches ordered by descending score, then ascending stack index."""

    matches: list[FuzzyMatch] = []
    for entry in entries:
        text = entry.search_text
        positions = match_positions(query, text)
        if positions is None:
            continue
        matches.append(
            FuzzyMatch(
                index=entry.index,
                score=_score_positions(text, positions),
                positions=positions,
            )
        )
    matches.sort(key=lambda match: (-match.score, match.index))
    return matches


def filter_indices(query: str, entries: Iterable[StashEntry]) -> tuple[int, ...]:
    """Return stash indices matching ``query`` in ranked order.

    An empty or whitespace-only query keeps every entry in stack order.
    """

    if not query.strip():
        return tuple(entry.index for entry in entries)
    return tuple(match.index for match in rank_entries(query, entries))


def _fold(text: str) -> str:
    # One character per input character so positions map back onto the original.
    return "".join(char.lower()[0] for char in text)


def _forward_end(needle: str, haystack: str, offset: int) -> int | None:
    cursor = offset
    last = -1
    for char in needle:
        found = haystack.find(char, cursor)
        if found < 0:
            return None
        last = found
        cursor = found + 1
    return last


def _is_boundary(text: str, position: int) -> bool:
    if position == 0:
        return True
    previous = text[position - 1]
    current = text[position]
    if previous in _SEPARATORS:
        return True
    return previous.islower() and current.isupper()
