"""YAML configuration file loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.constructor import SafeConstructor

from jsrun.config.schema import CONFIG_FILE_NAME, DEFAULT_HOME, Config

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


# Field name → environment variable.
_SETTINGS_ENV_MAP: dict[str, str] = {
    "home": "JSRUN_HOME",
    "cache_dir": "JSRUN_CACHE_DIR",
    "offline": "JSRUN_OFFLINE",
    "fresh": "JSRUN_FRESH",
    "connect_timeout": "JSRUN_CONNECT_TIMEOUT",
    "github_token": "GITHUB_TOKEN",
}

_SETTINGS_BOOL_FIELDS: frozenset[str] = frozenset({"offline", "fresh"})


def _resolve_settings(raw_settings: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    """Resolve settings fields from YAML, env vars, and ``.env`` file.

    Priority (highest wins): YAML value > env var > ``.env`` file.
    """
    env_file = config_dir / ".env"
    dotenv_vals = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    resolved: dict[str, Any] = {}
    for field, env_key in _SETTINGS_ENV_MAP.items():
        val = raw_settings.get(field)
        if val is None:
            val = os.environ.get(env_key)
        if val is None:
            val = dotenv_vals.get(env_key)
        if val is not None:
            if field in _SETTINGS_BOOL_FIELDS and isinstance(val, str):
                if val.lower() not in SafeConstructor.bool_values:
                    raise ConfigError(f"Invalid boolean for {env_key}: {val!r}")
                val = SafeConstructor.bool_values[val.lower()]
            resolved[field] = val

    return resolved


def default_config_path() -> Path:
    home = os.environ.get("JSRUN_HOME") or str(DEFAULT_HOME)
    return Path(home).expanduser() / CONFIG_FILE_NAME


def load_config(path: Path | str) -> Config:
    """Load a YAML configuration file and return a ``Config`` object.

    Raises:
        ConfigError: On YAML parse errors or validation failures.
    """
    path = Path(path)

    try:
        raw = YAML(typ="safe").load(path) or {}
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}")

    try:
        raw["settings"] = _resolve_settings(raw.get("settings") or {}, path.parent)
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent
    logger.info(
        "Loaded config from %s (%d repositories, %d properties)",
        path,
        len(config.repositories),
        len(config.properties),
    )
    return config


def load_config_or_default(path: Path | str | None = None) -> Config:
    """Load *path* (or the default location); defaults when the file is absent.

    An explicitly given path must exist.
    """
    if path is not None:
        if not Path(path).is_file():
            raise ConfigError(f"Config file not found: {path}")
        return load_config(path)

    default = default_config_path()
    if default.is_file():
        return load_config(default)
    logger.debug("No config file at %s, using defaults", default)
    try:
        return Config.model_validate({"settings": _resolve_settings({}, Path.cwd())})
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
