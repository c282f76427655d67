from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from stashnav.app import AppConfigError
from stashnav.cli.main import app
from stashnav.version_control.base import StashCommandError, StashFailure


def test_cli_init_creates_config_file(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["init", str(tmp_path)])

    assert result.exit_code == 0
    config_path = tmp_path / "stashnav.yaml"
    assert config_path.exists()
    data = json.loads(config_path.read_text(encoding="utf-8"))
    assert data["workspace_root"] == str(tmp_path.resolve())
    assert data["keybindings"]["quit"] == ["q"]


def test_cli_init_refuses_to_overwrite(tmp_path: Path) -> None:
    runner = CliRunner()
    (tmp_path / "stashnav.yaml").write_text("{}", encoding="utf-8")

    result = runner.invoke(app, ["init", str(tmp_path)])

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_cli_browse_passes_options(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    runner = CliRunner()
    captured: dict[str, object] = {}

    def fake_browse(
        workspace: Path,
        config_path: Path | None = None,
        *,
        log_level: str | None = None,
        log_file: Path | None = None,
    ) -> None:
        captured["workspace"] = workspace
        captured["config_path"] = config_path
        captured["log_level"] = log_level
        captured["log_file"] = log_file

    monkeypatch.setattr("stashnav.cli.main.browse", fake_browse)
    config_file = tmp_path / "stashnav.toml"

    result = runner.invoke(
        app,
        [
            "--log-level",
            "DEBUG",
            "browse",
            "--workspace",
            str(tmp_path),
            "--config",
            str(config_file),
        ],
    )

    assert result.exit_code == 0
    assert captured["workspace"] == tmp_path
    assert captured["config_path"] == config_file
    assert captured["log_level"] == "DEBUG"
    assert captured["log_file"] is None


def test_cli_without_command_browses_current_directory(monkeypatch: pytest.MonkeyPatch) -> None:
    runner = CliRunner()
    captured: list[Path] = []

    def fake_browse(workspace: Path, config_path: Path | None = None, **_: object) -> None:
        captured.append(workspace)

    monkeypatch.setattr("stashnav.cli.main.browse", fake_browse)

    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert captured == [Path(".")]


@pytest.mark.parametrize(
    "error",
    [
        AppConfigError("Unknown keybinding action: teleport"),
        StashCommandError(StashFailure.NOT_A_REPOSITORY, "fatal: not a git repository"),
    ],
)
def test_cli_browse_exits_with_error(
    monkeypatch: pytest.MonkeyPatch, error: Exception
) -> None:
    runner = CliRunner()

    def failing_browse(*args: object, **kwargs: object) -> None:
        raise error

    monkeypatch.setattr("stashnav.cli.main.browse", failing_browse)

    result = runner.invoke(app, ["browse"])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_cli_browse_reports_malformed_config_value(tmp_path: Path) -> None:
    runner = CliRunner()
    (tmp_path / "stashnav.yaml").write_text(
        "ui:\n  poll_interval_ms: fast\n", encoding="utf-8"
    )

    result = runner.invoke(app, ["browse", "-w", str(tmp_path)])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "ui.poll_interval_ms" in result.output
    assert not isinstance(result.exception, ValueError)
