"""Abstract interface for stash operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from stashnav.diffs.models import DiffDocument, FileSummary
from stashnav.stash.models import StashList


class VersionControlError(RuntimeError):
    """Raised when version control operations fail."""


class StashFailure(str, Enum):
    """Typed failure reported by a stash operation."""

    NOT_A_REPOSITORY = "not_a_repository"
    EXECUTABLE_MISSING = "executable_missing"
    UNPARSEABLE = "unparseable"
    INDEX_GONE = "index_gone"
    APPLY_CONFLICT = "apply_conflict"
    NOTHING_TO_STASH = "nothing_to_stash"
    EXEC_FAILED = "exec_failed"

    @property
    def fatal(self) -> bool:
        """Return True for failures that prevent any session from running."""

        return self in {StashFailure.NOT_A_REPOSITORY, StashFailure.EXECUTABLE_MISSING}


class StashCommandError(VersionControlError):
    """Raised when a stash operation fails with a classified reason."""

    def __init__(self, kind: StashFailure, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"StashCommandError({self.kind.value!r}, {self.message!r})"


class StashAdapter(ABC):
    """Abstract interface for stash operations against a repository.

    Every method either returns a value or raises :class:`StashCommandError`.
    Calls may block; callers keep them off the UI thread.
    """

    @abstractmethod
    def list_stashes(self) -> StashList:
        """Return a fresh listing of the stash stack."""

    @abstractmethod
    def show_diff(self, index: int) -> DiffDocument:
        """Return the parsed patch of the stash at ``index``."""

    @abstractmethod
    def show_files(self, index: int) -> FileSummary:
        """Return the changed files of the stash at ``index``."""

    @abstractmethod
    def apply(self, index: int, *, drop: bool = False) -> str:
        """Apply the stash at ``index``; ``drop=True`` pops it."""

    @abstractmethod
    def drop(self, index: int) -> str:
        """Remove the stash at ``index`` without applying it."""

    @abstractmethod
    def create(self, message: str | None, *, include_untracked: bool = False) -> str:
        """Stash the current working tree changes."""

    def current_branch(self) -> str:
        """Return the checked out branch name, or an empty string."""

        return ""
