from __future__ import annotations

import subprocess
from pathlib import Path
from subprocess import CompletedProcess
from unittest.mock import patch

import pytest

from stashnav.util.observability import create_observability_manager
from stashnav.version_control.base import StashCommandError, StashFailure
from stashnav.version_control.git_service import GitStashService

RUN = "stashnav.version_control.git_service.subprocess.run"


def _completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> CompletedProcess:
    return CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


def test_list_stashes_parses_formatted_output(tmp_path: Path) -> None:
    service = GitStashService(tmp_path, git_binary="git")
    stdout = (
        "stash@{0}\x1fabc123\x1f1700000000\x1fWIP on main: 1234abc fix\n"
        "stash@{1}\x1fdef456\x1f1690000000\x1fOn dev: experiment\n"
    )
    with patch(RUN) as run:
        run.return_value = _completed(stdout)
        stashes = service.list_stashes()

    command = run.call_args.args[0]
    assert command[:3] == ["git", "stash", "list"]
    assert command[3] == "--format=%gd%x1f%H%x1f%ct%x1f%gs"
    assert run.call_args.kwargs["cwd"] == tmp_path.resolve()
    assert [entry.commit for entry in stashes] == ["abc123", "def456"]
    assert stashes[1].branch == "dev"


def test_list_stashes_reports_unparseable_output(tmp_path: Path) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed("garbage line\n")
        with pytest.raises(StashCommandError) as excinfo:
            service.list_stashes()

    assert excinfo.value.kind is StashFailure.UNPARSEABLE


def test_show_diff_and_files_address_stash_ref(tmp_path: Path) -> None:
    service = GitStashService(tmp_path, show_untracked=True)
    diff_text = "diff --git a/x b/x\n--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b\n"
    with patch(RUN) as run:
        run.return_value = _completed(diff_text)
        document = service.show_diff(2)
        diff_command = run.call_args.args[0]
        run.return_value = _completed(":100644 100644 1 2 M\tx\n1\t1\tx\n")
        summary = service.show_files(2)
        files_command = run.call_args.args[0]

    assert diff_command == [
        "git",
        "stash",
        "show",
        "-p",
        "--no-color",
        "--no-ext-diff",
        "--include-untracked",
        "stash@{2}",
    ]
    assert files_command[-1] == "stash@{2}"
    assert "--numstat" in files_command and "--raw" in files_command
    assert len(document.hunks) == 1
    assert summary.changes[0].path == "x"


@pytest.mark.parametrize(("drop", "verb"), [(False, "apply"), (True, "pop")])
def test_apply_uses_apply_or_pop(tmp_path: Path, drop: bool, verb: str) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed("On branch main\n")
        output = service.apply(1, drop=drop)

    assert run.call_args.args[0] == ["git", "stash", verb, "stash@{1}"]
    assert output == "On branch main"


def test_apply_conflict_is_classified(tmp_path: Path) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed(
            stdout="Auto-merging app.py\nCONFLICT (content): Merge conflict in app.py\n",
            returncode=1,
        )
        with pytest.raises(StashCommandError) as excinfo:
            service.apply(0, drop=True)

    assert excinfo.value.kind is StashFailure.APPLY_CONFLICT


@pytest.mark.parametrize(
    "stderr",
    [
        "error: Your local changes to the following files would be overwritten by merge:\n"
        "\tapp.py\nPlease commit your changes or stash them before you merge.\nAborting\n",
        "notes.txt already exists, no checkout\n"
        "error: could not restore untracked files from stash\n",
    ],
)
def test_refused_apply_is_not_a_conflict(tmp_path: Path, stderr: str) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed(stderr=stderr, returncode=1)
        with pytest.raises(StashCommandError) as excinfo:
            service.apply(0)

    assert excinfo.value.kind is StashFailure.EXEC_FAILED
    assert "Aborting" in excinfo.value.message or "no checkout" in excinfo.value.message


def test_drop_of_missing_index_is_index_gone(tmp_path: Path) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed(
            stderr="error: stash@{7} is not a valid reference\n", returncode=1
        )
        with pytest.raises(StashCommandError) as excinfo:
            service.drop(7)

    assert excinfo.value.kind is StashFailure.INDEX_GONE


def test_negative_index_never_reaches_git(tmp_path: Path) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        with pytest.raises(StashCommandError) as excinfo:
            service.drop(-1)

    assert excinfo.value.kind is StashFailure.INDEX_GONE
    run.assert_not_called()


def test_create_builds_push_command(tmp_path: Path) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed("Saved working directory and index state On main: wip\n")
        service.create("wip", include_untracked=True)

    assert run.call_args.args[0] == [
        "git",
        "stash",
        "push",
        "--include-untracked",
        "-m",
        "wip",
    ]


def test_create_with_nothing_to_stash(tmp_path: Path) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed("No local changes to save\n")
        with pytest.raises(StashCommandError) as excinfo:
            service.create(None)

    assert run.call_args.args[0] == ["git", "stash", "push"]
    assert excinfo.value.kind is StashFailure.NOTHING_TO_STASH


def test_not_a_repository_is_fatal(tmp_path: Path) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed(
            stderr="fatal: not a git repository (or any of the parent directories): .git\n",
            returncode=128,
        )
        with pytest.raises(StashCommandError) as excinfo:
            service.ensure_repository()

    assert excinfo.value.kind is StashFailure.NOT_A_REPOSITORY
    assert excinfo.value.kind.fatal is True


def test_missing_executable_is_fatal(tmp_path: Path) -> None:
    service = GitStashService(tmp_path, git_binary="git-does-not-exist")
    with patch(RUN, side_effect=FileNotFoundError("git-does-not-exist")):
        with pytest.raises(StashCommandError) as excinfo:
            service.list_stashes()

    assert excinfo.value.kind is StashFailure.EXECUTABLE_MISSING
    assert excinfo.value.kind.fatal is True


def test_timeout_is_exec_failed(tmp_path: Path) -> None:
    service = GitStashService(tmp_path, timeout_s=0.5)
    with patch(RUN, side_effect=subprocess.TimeoutExpired(cmd="git", timeout=0.5)):
        with pytest.raises(StashCommandError) as excinfo:
            service.show_diff(0)

    assert excinfo.value.kind is StashFailure.EXEC_FAILED


def test_current_branch_strips_output(tmp_path: Path) -> None:
    service = GitStashService(tmp_path)
    with patch(RUN) as run:
        run.return_value = _completed("feature/login\n")
        assert service.current_branch() == "feature/login"


def test_commands_are_recorded_in_metrics(tmp_path: Path) -> None:
    observability = create_observability_manager()
    service = GitStashService(tmp_path, observability=observability)
    with patch(RUN) as run:
        run.return_value = _completed("")
        service.list_stashes()
        run.return_value = _completed(stderr="boom", returncode=2)
        with pytest.raises(StashCommandError):
            service.drop(0)

    snapshot = observability.metrics.snapshot()
    assert snapshot["counters"]["git.list.ok"] == 1
    assert snapshot["counters"]["git.drop.exec_failed"] == 1
    assert snapshot["durations"]["git.list"]["count"] == 1.0
