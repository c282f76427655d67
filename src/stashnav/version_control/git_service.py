"""Git-based stash adapter implementation."""

from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from stashnav.diffs.models import DiffDocument, FileSummary
from stashnav.diffs.parser import parse_diff, parse_file_summary
from stashnav.stash.listing import LIST_FORMAT, ListingParseError, parse_stash_listing
from stashnav.stash.models import StashList
from stashnav.util.logging import get_logger
from stashnav.util.observability import ObservabilityManager
from stashnav.version_control.base import StashAdapter, StashCommandError, StashFailure

_LOGGER = get_logger("stashnav.version_control.git")

_NOT_A_REPOSITORY_MARKERS = ("not a git repository",)
_INDEX_GONE_MARKERS = (
    "is not a valid reference",
    "not a stash-like commit",
    "is not a stash reference",
    "unknown revision",
    "no stash entries found",
    "bad revision",
)
# Refusals such as "would be overwritten" leave the tree untouched and stay EXEC_FAILED.
_CONFLICT_MARKERS = ("conflict",)
_NOTHING_TO_STASH_MARKERS = ("no local changes to save",)


@dataclass(frozen=True)
class GitCommandResult:
    """Represents a completed git command execution."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


class GitStashService(StashAdapter):
    """Stash adapter backed by the git CLI."""

    def __init__(
        self,
        workspace_root: Path,
        git_binary: str = "git",
        *,
        timeout_s: float | None = 30.0,
        show_untracked: bool = False,
        observability: ObservabilityManager | None = None,
    ) -> None:
        """Initialize the git stash service.

        Args:
            workspace_root: Path inside the repository to operate on.
            git_binary: Git binary to invoke.
            timeout_s: Per-command timeout in seconds, or None to wait forever.
            show_untracked: Include untracked files stored in stashes when
                showing diffs and file lists.
            observability: Optional event and metrics sink.
        """

        self._root = workspace_root.resolve()
        self._git = git_binary
        self._timeout_s = timeout_s
        self._show_untracked = show_untracked
        self._observability = observability

    def list_stashes(self) -> StashList:
        """Return a fresh listing of the stash stack."""

        result = self._run_git(["stash", "list", f"--format={LIST_FORMAT}"])
        try:
            return parse_stash_listing(result.stdout)
        except ListingParseError as exc:
            raise StashCommandError(StashFailure.UNPARSEABLE, str(exc)) from exc

    def show_diff(self, index: int) -> DiffDocument:
        """Return the parsed patch of a stash."""

        args = ["stash", "show", "-p", "--no-color", "--no-ext-diff"]
        args.extend(self._untracked_flag())
        args.append(_ref(index))
        result = self._run_git(args)
        return parse_diff(result.stdout)

    def show_files(self, index: int) -> FileSummary:
        """Return the changed files of a stash."""

        args = ["stash", "show", "--raw", "--numstat", "-M", "--no-color"]
        args.extend(self._untracked_flag())
        args.append(_ref(index))
        result = self._run_git(args)
        return parse_file_summary(result.stdout)

    def apply(self, index: int, *, drop: bool = False) -> str:
        """Apply a stash, popping it when ``drop`` is True."""

        command = "pop" if drop else "apply"
        result = self._run_git(["stash", command, _ref(index)], conflict_possible=True)
        return result.output

    def drop(self, index: int) -> str:
        """Drop a stash without applying it."""

        result = self._run_git(["stash", "drop", _ref(index)])
        return result.output

    def create(self, message: str | None, *, include_untracked: bool = False) -> str:
        """Stash working tree changes with an optional message."""

        args = ["stash", "push"]
        if include_untracked:
            args.append("--include-untracked")
        if message:
            args.extend(["-m", message])
        result = self._run_git(args)
        if _contains(result.output, _NOTHING_TO_STASH_MARKERS):
            raise StashCommandError(StashFailure.NOTHING_TO_STASH, "No local changes to save.")
        return result.output

    def current_branch(self) -> str:
        """Return the checked out branch name, or an empty string when detached."""

        return self._run_git(["branch", "--show-current"]).stdout.strip()

    def ensure_repository(self) -> None:
        """Raise a fatal StashCommandError unless the workspace is a git work tree."""

        self._run_git(["rev-parse", "--is-inside-work-tree"])

    def _untracked_flag(self) -> list[str]:
        return ["--include-untracked"] if self._show_untracked else []

    def _run_git(self, args: list[str], *, conflict_possible: bool = False) -> GitCommandResult:
        """Run a git command in the workspace and classify failures."""

        command = [self._git, *args]
        operation = args[1] if args[0] == "stash" and len(args) > 1 else args[0]
        start = time.perf_counter()
        try:
            completed = subprocess.run(
                command,
                cwd=self._root,
                capture_output=True,
                text=True,
                check=False,
                timeout=self._timeout_s,
            )
        except FileNotFoundError as exc:
            self._record(operation, command, None, start, StashFailure.EXECUTABLE_MISSING)
            raise StashCommandError(
                StashFailure.EXECUTABLE_MISSING,
                f"Git executable '{self._git}' was not found. Is git installed?",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            self._record(operation, command, None, start, StashFailure.EXEC_FAILED)
            raise StashCommandError(
                StashFailure.EXEC_FAILED,
                f"git {' '.join(args)} timed out after {self._timeout_s}s.",
            ) from exc

        result = GitCommandResult(
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
        )
        failure = None if result.exit_code == 0 else _classify(result, conflict_possible)
        self._record(operation, command, result.exit_code, start, failure)
        if failure is not None:
            message = result.stderr.strip() or result.stdout.strip() or "Git command failed."
            _LOGGER.warning("git %s failed (%s): %s", " ".join(args), failure.value, message)
            raise StashCommandError(failure, message)
        return result

    def _record(
        self,
        operation: str,
        command: list[str],
        exit_code: int | None,
        start: float,
        failure: StashFailure | None,
    ) -> None:
        duration = time.perf_counter() - start
        if self._observability is None:
            return
        self._observability.record_command(
            operation,
            command,
            exit_code=exit_code,
            outcome="ok" if failure is None else failure.value,
            duration_s=duration,
        )


def _ref(index: int) -> str:
    if index < 0:
        raise StashCommandError(StashFailure.INDEX_GONE, f"Invalid stash index {index}.")
    return f"stash@{{{index}}}"


def _contains(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def _classify(result: GitCommandResult, conflict_possible: bool) -> StashFailure:
    output = result.output
    if _contains(output, _NOT_A_REPOSITORY_MARKERS):
        return StashFailure.NOT_A_REPOSITORY
    if _contains(output, _INDEX_GONE_MARKERS):
        return StashFailure.INDEX_GONE
    if conflict_possible and _contains(output, _CONFLICT_MARKERS):
        return StashFailure.APPLY_CONFLICT
    if _contains(output, _NOTHING_TO_STASH_MARKERS):
        return StashFailure.NOTHING_TO_STASH
    return StashFailure.EXEC_FAILED
