"""Application wiring for stashnav."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from stashnav.config import (
    AppConfig,
    ConfigError,
    config_to_dict,
    load_config,
    update_logging,
    update_workspace_root,
)
from stashnav.controller.keys import Keymap
from stashnav.controller.session import StashController
from stashnav.controller.worker import AdapterWorker, Dispatch
from stashnav.stash.models import StashList
from stashnav.tui.app import run_tui
from stashnav.util.logging import configure_logging, get_logger
from stashnav.util.observability import ObservabilityManager, create_observability_manager
from stashnav.version_control.base import StashAdapter, StashCommandError
from stashnav.version_control.git_service import GitStashService


class AppConfigError(RuntimeError):
    """Raised when configuration or session setup fails."""


@dataclass(frozen=True)
class SessionContext:
    """Services wired together for one interactive session."""

    config: AppConfig
    adapter: StashAdapter
    worker: AdapterWorker
    controller: StashController
    observability: ObservabilityManager


_LOGGER = get_logger("stashnav.app")


def initialize_config(workspace: Path) -> Path:
    """Create a default configuration file in the workspace.

    Args:
        workspace: Workspace directory where the config should be written.

    Returns:
        Path to the generated configuration file.

    Raises:
        AppConfigError: If the config file already exists.
    """

    workspace = workspace.resolve()
    config_path = workspace / "stashnav.yaml"
    if config_path.exists():
        raise AppConfigError(
            f"Config file already exists at {config_path}. Remove it or choose another "
            "workspace."
        )
    config_path.write_text(
        json.dumps(config_to_dict(AppConfig(workspace_root=workspace)), indent=2),
        encoding="utf-8",
    )
    _LOGGER.info("Initialized configuration at %s", config_path)
    return config_path


def load_app_config(
    workspace: Path,
    config_path: Path | None = None,
    *,
    log_level: str | None = None,
    log_file: Path | None = None,
) -> AppConfig:
    """Load configuration for a workspace and apply command-line overrides.

    Args:
        workspace: Directory inside the repository to browse.
        config_path: Optional explicit configuration file.
        log_level: Optional log level override.
        log_file: Optional log file override.

    Returns:
        The effective AppConfig.

    Raises:
        AppConfigError: If the configuration cannot be loaded.
    """

    if not workspace.exists():
        raise AppConfigError(f"Workspace does not exist: {workspace}")
    try:
        config = load_config(config_path if config_path is not None else workspace)
    except ConfigError as exc:
        raise AppConfigError(str(exc)) from exc
    config = update_workspace_root(config, workspace.resolve())
    return update_logging(config, log_level, log_file)


def build_session(
    config: AppConfig,
    *,
    adapter: StashAdapter | None = None,
    dispatch: Dispatch | None = None,
    observability: ObservabilityManager | None = None,
) -> SessionContext:
    """Verify the repository, fetch the initial listing and wire the controller.

    Args:
        config: Application configuration.
        adapter: Optional pre-built adapter (for testing).
        dispatch: Optional job dispatcher for the worker (for testing).
        observability: Optional pre-built observability manager.

    Returns:
        SessionContext ready to be run.

    Raises:
        StashCommandError: If the workspace is not usable (fatal failure).
    """

    observability = observability or create_observability_manager()
    if adapter is None:
        service = GitStashService(
            config.workspace_root,
            git_binary=config.git.binary,
            timeout_s=config.git.timeout_s,
            show_untracked=config.git.show_untracked,
            observability=observability,
        )
        service.ensure_repository()
        adapter = service

    stashes = StashList()
    startup_error: StashCommandError | None = None
    try:
        stashes = adapter.list_stashes()
    except StashCommandError as exc:
        if exc.kind.fatal:
            raise
        _LOGGER.warning("Initial stash listing failed: %s", exc.message)
        startup_error = exc
    try:
        branch = adapter.current_branch()
    except StashCommandError as exc:
        if exc.kind.fatal:
            raise
        branch = ""

    worker = AdapterWorker(adapter, dispatch=dispatch, observability=observability)
    controller = StashController(
        worker,
        stashes,
        keymap=Keymap(config.keybindings),
        ui=config.ui,
        branch=branch,
    )
    if startup_error is not None:
        controller.refresh()
    _LOGGER.info("Session ready with %s stashes on branch '%s'.", len(stashes), branch)
    return SessionContext(
        config=config,
        adapter=adapter,
        worker=worker,
        controller=controller,
        observability=observability,
    )


def browse(
    workspace: Path,
    config_path: Path | None = None,
    *,
    log_level: str | None = None,
    log_file: Path | None = None,
) -> SessionContext:
    """Load configuration and run the interactive session for a workspace.

    Raises:
        AppConfigError: If configuration loading fails.
        StashCommandError: If the workspace is not a usable repository.
    """

    config = load_app_config(workspace, config_path, log_level=log_level, log_file=log_file)
    configure_logging(config.logging.level, filename=config.logging.file)
    _LOGGER.info("Browsing stashes in %s", config.workspace_root)
    context = build_session(config)
    try:
        run_tui(context.controller, poll_interval_ms=config.ui.poll_interval_ms)
    finally:
        context.observability.log_summary()
    return context
