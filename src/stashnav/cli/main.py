"""CLI entrypoints for stashnav."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from stashnav.app import AppConfigError, browse, initialize_config
from stashnav.util.logging import configure_logging
from stashnav.version_control.base import StashCommandError

app = typer.Typer(help="Browse, preview and manage git stashes in the terminal.")


@dataclass(frozen=True)
class CliOptions:
    """Options shared by every command."""

    log_level: str | None = None
    log_file: Path | None = None


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
    log_file: Path | None = typer.Option(
        None,
        "--log-file",
        help="Write log records to this file; logs are discarded otherwise.",
    ),
) -> None:
    """Configure CLI-level options and browse the current directory by default."""

    configure_logging(log_level or "WARNING", filename=log_file)
    ctx.obj = CliOptions(log_level=log_level, log_file=log_file)
    if ctx.invoked_subcommand is None:
        _run_browse(Path("."), None, ctx.obj)


@app.command("browse")
def browse_command(
    ctx: typer.Context,
    workspace: Path = typer.Option(
        Path("."),
        "--workspace",
        "-w",
        help="Directory inside the repository to browse.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Path to a configuration file.",
    ),
) -> None:
    """Open the interactive stash browser."""

    options = ctx.obj if isinstance(ctx.obj, CliOptions) else CliOptions()
    _run_browse(workspace, config, options)


@app.command()
def init(workspace: Path = typer.Argument(Path("."))) -> None:
    """Initialize configuration for a repository workspace."""

    try:
        config_path = initialize_config(workspace)
    except AppConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Created configuration at {config_path}")


def _run_browse(workspace: Path, config: Path | None, options: CliOptions) -> None:
    try:
        browse(
            workspace,
            config,
            log_level=options.log_level,
            log_file=options.log_file,
        )
    except AppConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except StashCommandError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=1) from exc
