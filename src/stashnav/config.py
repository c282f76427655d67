"""Configuration models and loaders for stashnav."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

CONFIG_BASENAME = "stashnav"

DEFAULT_KEYBINDINGS: dict[str, list[str]] = {
    "up": ["up", "k"],
    "down": ["down", "j"],
    "select": ["enter"],
    "view_diff": ["enter", "d"],
    "view_files": ["f"],
    "apply": ["a"],
    "pop": ["p"],
    "drop": ["x", "delete"],
    "new_stash": ["n"],
    "search": ["/"],
    "back": ["esc"],
    "quit": ["q"],
    "scroll_up": ["up", "k"],
    "scroll_down": ["down", "j"],
    "page_up": ["pageup", "b"],
    "page_down": ["pagedown", "space"],
    "confirm": ["y"],
    "toggle_untracked": ["tab"],
    "clear_filter": ["c"],
    "refresh": ["r"],
}


class ConfigError(ValueError):
    """Raised when a configuration file is invalid."""


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration for the application.

    Attributes:
        workspace_root: Directory inside the repository to operate on.
        git: Configuration for the git adapter.
        ui: Configuration for the interactive session.
        logging: Configuration for log output.
        keybindings: Logical action name mapped to key names.
    """

    workspace_root: Path = Path(".")
    git: GitConfig = field(default_factory=lambda: GitConfig())
    ui: UIConfig = field(default_factory=lambda: UIConfig())
    logging: LoggingConfig = field(default_factory=lambda: LoggingConfig())
    keybindings: dict[str, list[str]] = field(
        default_factory=lambda: {name: list(keys) for name, keys in DEFAULT_KEYBINDINGS.items()}
    )


@dataclass(frozen=True)
class GitConfig:
    """Configuration for the git adapter."""

    binary: str = "git"
    timeout_s: float | None = 30.0
    show_untracked: bool = False


@dataclass(frozen=True)
class UIConfig:
    """Configuration for the interactive session.

    Attributes:
        poll_interval_ms: Input poll timeout, which is also the tick length.
        status_ttl_ticks: Ticks a status message stays visible.
        refresh_interval_ticks: Ticks between background list refreshes; 0 disables.
        default_include_untracked: Initial state of the untracked toggle when
            creating a stash.
        require_stash_message: Reject empty messages in the new stash form.
    """

    poll_interval_ms: int = 100
    status_ttl_ticks: int = 40
    refresh_interval_ticks: int = 50
    default_include_untracked: bool = False
    require_stash_message: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for log output."""

    level: str = "WARNING"
    file: Path | None = None


def load_config(path: Path | None = None) -> AppConfig:
    """Load application configuration from disk.

    Args:
        path: Optional path to a configuration file or workspace directory.

    Returns:
        Parsed AppConfig with defaults applied when no config exists.

    Raises:
        ConfigError: If the file type is unsupported or values are invalid.
    """

    config_path = _resolve_config_path(path)
    if config_path is None:
        return AppConfig()

    if config_path.suffix in {".yaml", ".yml"}:
        raw_data = _load_yaml(config_path)
    elif config_path.name == "pyproject.toml" or config_path.suffix == ".toml":
        raw_data = _load_toml(config_path)
    else:
        raise ConfigError(f"Unsupported config file type: {config_path}")

    return _parse_app_config(raw_data, base_path=config_path.parent)


def config_to_dict(config: AppConfig) -> dict[str, Any]:
    """Serialize an AppConfig into a JSON-compatible dictionary."""

    return {
        "workspace_root": str(config.workspace_root),
        "git": {
            "binary": config.git.binary,
            "timeout_s": config.git.timeout_s,
            "show_untracked": config.git.show_untracked,
        },
        "ui": {
            "poll_interval_ms": config.ui.poll_interval_ms,
            "status_ttl_ticks": config.ui.status_ttl_ticks,
            "refresh_interval_ticks": config.ui.refresh_interval_ticks,
            "default_include_untracked": config.ui.default_include_untracked,
            "require_stash_message": config.ui.require_stash_message,
        },
        "logging": {
            "level": config.logging.level,
            "file": str(config.logging.file) if config.logging.file is not None else None,
        },
        "keybindings": {name: list(keys) for name, keys in config.keybindings.items()},
    }


def update_workspace_root(config: AppConfig, workspace_root: Path) -> AppConfig:
    """Return a config copy with an updated workspace root."""

    return replace(config, workspace_root=workspace_root)


def update_logging(config: AppConfig, level: str | None, file: Path | None) -> AppConfig:
    """Return a config copy with command-line logging overrides applied."""

    logging_config = config.logging
    if level is not None:
        logging_config = replace(logging_config, level=level)
    if file is not None:
        logging_config = replace(logging_config, file=file)
    return replace(config, logging=logging_config)


def _resolve_config_path(path: Path | None) -> Path | None:
    candidate_paths: list[Path] = []
    base = Path(".") if path is None else path
    if path is None or path.is_dir():
        candidate_paths.append(base / f"{CONFIG_BASENAME}.yaml")
        candidate_paths.append(base / f"{CONFIG_BASENAME}.yml")
        candidate_paths.append(base / f"{CONFIG_BASENAME}.toml")
        candidate_paths.append(base / "pyproject.toml")
    else:
        candidate_paths.append(path)

    for candidate in candidate_paths:
        if not candidate.exists():
            continue
        if (
            candidate.name == "pyproject.toml"
            and candidate != path
            and not _pyproject_has_section(candidate)
        ):
            continue
        return candidate
    if path is not None and not path.is_dir():
        raise ConfigError(f"Config file not found: {path}")
    return None


def _pyproject_has_section(path: Path) -> bool:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError:
        return False
    return isinstance(data.get("tool", {}).get(CONFIG_BASENAME), dict)


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get(CONFIG_BASENAME, {})
        if not isinstance(tool_config, dict):
            raise ConfigError(f"tool.{CONFIG_BASENAME} must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if data is not None:
        if not isinstance(data, dict):
            raise ConfigError("YAML configuration must be a mapping.")
        return data
    import yaml  # type: ignore[import-untyped]

    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigError("YAML configuration must be a mapping.")
    return parsed


def _parse_app_config(raw_data: dict[str, Any], base_path: Path) -> AppConfig:
    git_config = _parse_git_config(raw_data.get("git", {}))
    ui_config = _parse_ui_config(raw_data.get("ui", {}))
    logging_config = _parse_logging_config(raw_data.get("logging", {}), base_path)
    keybindings = _parse_keybindings(raw_data.get("keybindings", None))

    workspace_root = Path(raw_data.get("workspace_root", ".")) if raw_data else Path(".")
    if not workspace_root.is_absolute():
        workspace_root = (base_path / workspace_root).resolve()

    return AppConfig(
        workspace_root=workspace_root,
        git=git_config,
        ui=ui_config,
        logging=logging_config,
        keybindings=keybindings,
    )


def _parse_git_config(raw: Any) -> GitConfig:
    if not isinstance(raw, dict):
        return GitConfig()
    return GitConfig(
        binary=str(raw.get("binary", "git")),
        timeout_s=_optional_float(raw.get("timeout_s", 30.0), "git.timeout_s"),
        show_untracked=bool(raw.get("show_untracked", False)),
    )


def _parse_ui_config(raw: Any) -> UIConfig:
    if not isinstance(raw, dict):
        return UIConfig()
    config = UIConfig(
        poll_interval_ms=_int_setting(raw, "ui", "poll_interval_ms", 100),
        status_ttl_ticks=_int_setting(raw, "ui", "status_ttl_ticks", 40),
        refresh_interval_ticks=_int_setting(raw, "ui", "refresh_interval_ticks", 50),
        default_include_untracked=bool(raw.get("default_include_untracked", False)),
        require_stash_message=bool(raw.get("require_stash_message", False)),
    )
    if config.poll_interval_ms <= 0:
        raise ConfigError("ui.poll_interval_ms must be positive.")
    if config.status_ttl_ticks <= 0:
        raise ConfigError("ui.status_ttl_ticks must be positive.")
    if config.refresh_interval_ticks < 0:
        raise ConfigError("ui.refresh_interval_ticks must not be negative.")
    return config


def _parse_logging_config(raw: Any, base_path: Path) -> LoggingConfig:
    if not isinstance(raw, dict):
        return LoggingConfig()
    file_value = _optional_str(raw.get("file"))
    file_path = None
    if file_value is not None:
        file_path = Path(file_value).expanduser()
        if not file_path.is_absolute():
            file_path = (base_path / file_path).resolve()
    return LoggingConfig(level=str(raw.get("level", "WARNING")), file=file_path)


def _parse_keybindings(raw: Any) -> dict[str, list[str]]:
    bindings = {name: list(keys) for name, keys in DEFAULT_KEYBINDINGS.items()}
    if raw is None:
        return bindings
    if not isinstance(raw, dict):
        raise ConfigError("keybindings must be a mapping of action names to key lists.")
    for name, keys in raw.items():
        action = str(name).strip().lower()
        if action not in DEFAULT_KEYBINDINGS:
            raise ConfigError(f"Unknown keybinding action: {name}")
        if isinstance(keys, str):
            keys = [keys]
        if not isinstance(keys, list) or not keys:
            raise ConfigError(f"Keybinding '{name}' must be a non-empty list of keys.")
        bindings[action] = [str(key) for key in keys]
    return bindings


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_float(value: Any, name: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}.") from exc


def _int_setting(raw: dict[str, Any], section: str, key: str, default: int) -> int:
    value = raw.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be an integer, got {value!r}.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{section}.{key} must be an integer, got {value!r}.") from exc
