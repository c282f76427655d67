from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

from stashnav.app import AppConfigError, build_session, initialize_config, load_app_config
from stashnav.config import AppConfig, UIConfig
from stashnav.diffs.models import DiffDocument, FileSummary
from stashnav.stash.models import StashEntry, StashList
from stashnav.version_control.base import StashAdapter, StashCommandError, StashFailure


class StartupAdapter(StashAdapter):
    def __init__(self, list_error: StashCommandError | None = None) -> None:
        self.list_error = list_error
        self.list_calls = 0

    def list_stashes(self) -> StashList:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        created = datetime(2024, 1, 1, tzinfo=UTC)
        return StashList((StashEntry(0, "main", "wip", "1 day ago", created, "abc"),))

    def show_diff(self, index: int) -> DiffDocument:
        return DiffDocument()

    def show_files(self, index: int) -> FileSummary:
        return FileSummary()

    def apply(self, index: int, *, drop: bool = False) -> str:
        return ""

    def drop(self, index: int) -> str:
        return ""

    def create(self, message: str | None, *, include_untracked: bool = False) -> str:
        return ""

    def current_branch(self) -> str:
        return "main"


def _inline(job: Callable[[], None], mutating: bool) -> None:
    job()


def test_initialize_config_writes_defaults(tmp_path: Path) -> None:
    path = initialize_config(tmp_path)

    assert path == tmp_path.resolve() / "stashnav.yaml"
    with pytest.raises(AppConfigError):
        initialize_config(tmp_path)


def test_load_app_config_applies_overrides(tmp_path: Path) -> None:
    (tmp_path / "stashnav.yaml").write_text('{"logging": {"level": "INFO"}}', encoding="utf-8")
    log_file = tmp_path / "session.log"

    config = load_app_config(tmp_path, log_level="DEBUG", log_file=log_file)

    assert config.workspace_root == tmp_path.resolve()
    assert config.logging.level == "DEBUG"
    assert config.logging.file == log_file


def test_load_app_config_wraps_config_errors(tmp_path: Path) -> None:
    (tmp_path / "stashnav.yaml").write_text('{"ui": {"poll_interval_ms": -5}}', encoding="utf-8")

    with pytest.raises(AppConfigError, match="poll_interval_ms"):
        load_app_config(tmp_path)


def test_load_app_config_requires_existing_workspace(tmp_path: Path) -> None:
    with pytest.raises(AppConfigError, match="does not exist"):
        load_app_config(tmp_path / "missing")


def test_build_session_uses_initial_listing() -> None:
    adapter = StartupAdapter()
    config = AppConfig(ui=UIConfig(refresh_interval_ticks=0))

    context = build_session(config, adapter=adapter, dispatch=_inline)

    controller = context.controller
    assert len(controller.state.stashes) == 1
    assert controller.view_model().branch == "main"
    assert adapter.list_calls == 1


def test_build_session_propagates_fatal_errors() -> None:
    adapter = StartupAdapter(StashCommandError(StashFailure.EXECUTABLE_MISSING, "no git"))

    with pytest.raises(StashCommandError) as excinfo:
        build_session(AppConfig(), adapter=adapter, dispatch=_inline)

    assert excinfo.value.kind.fatal is True


def test_build_session_retries_recoverable_listing_failure() -> None:
    adapter = StartupAdapter(StashCommandError(StashFailure.UNPARSEABLE, "bad output"))

    context = build_session(AppConfig(), adapter=adapter, dispatch=_inline)
    context.controller.process_results()

    assert adapter.list_calls == 2
    assert len(context.controller.state.stashes) == 0
    status = context.controller.state.status
    assert status is not None
    assert "could not read git output" in status.text
