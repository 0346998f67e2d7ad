from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ctxgen.application.config_models import CtxgenConfig


class ConfigLoadError(Exception):
    def __init__(self, message: str, *, path: Path | None = None, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message}: {self.path}"


def _defaults() -> dict[str, Any]:
    return {
        # Hosted API is the fallback when no user-credential backend is configured
        "providers": [
            {"name": "claude-code", "priority": 0},
            {"name": "xai", "priority": 1},
            {"name": "gemini-cli", "priority": 2},
            {"name": "hosted", "priority": 10},
        ],
    }


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge mapping keys. For non-dict values (including lists), overlay wins.
    """
    merged: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = _deep_merge(merged[k], v)  # type: ignore[arg-type]
        else:
            merged[k] = v
    return merged


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    """
    Load YAML file and ensure root is a mapping.
    """
    # Protect against TOCTOU race conditions.
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except Exception as e:  # pragma: no cover
        raise ConfigLoadError("Failed to read config file", path=path, cause=e) from e

    try:
        data = yaml.safe_load(raw)
    except Exception as e:
        raise ConfigLoadError("Malformed YAML", path=path, cause=e) from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigLoadError("YAML root must be a mapping", path=path)

    return data


def load_config_dict(*, project_root: Path | None = None, user_home: Path | None = None) -> dict[str, Any]:
    """
    Load and merge raw config with precedence (highest wins):
    CLI args (handled in CLI) > project > user > defaults.

    Files:
      - user:    user_home/.ctxgen/config.yml
      - project: project_root/.ctxgen/config.yml

    A ``providers`` list replaces the lower layer's list as a whole.
    """
    project_root = project_root or Path.cwd()
    user_home = user_home or Path.home()

    cfg: dict[str, Any] = _defaults()
    cfg = _deep_merge(cfg, _load_yaml_mapping(user_home / ".ctxgen" / "config.yml"))
    cfg = _deep_merge(cfg, _load_yaml_mapping(project_root / ".ctxgen" / "config.yml"))
    return cfg


def load_config(
    *,
    project_root: Path | None = None,
    user_home: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> CtxgenConfig:
    """Load, merge and validate configuration.

    Args:
        project_root: Project directory (default: cwd)
        user_home: User home directory (default: ~)
        overrides: Highest-precedence values, typically from CLI flags

    Raises:
        ConfigLoadError: If a file is malformed or the merged config is invalid
    """
    cfg = load_config_dict(project_root=project_root, user_home=user_home)
    if overrides:
        cfg = _deep_merge(cfg, overrides)

    try:
        return CtxgenConfig.model_validate(cfg)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid configuration: {e}", cause=e) from e
