from __future__ import annotations

import json
import os
from pathlib import Path
import tomllib

from featurerunner.core.retry import DEFAULT_RETRY_CONFIGURATION, RetryConfiguration

_CONFIG_CACHE: dict | None = None


def config_path() -> Path:
    override = os.environ.get("FEATURERUNNER_CONFIG_PATH")
    if override:
        return Path(override).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base).expanduser() if base else (Path.home() / ".config")
    return root / "featurerunner" / "config.toml"


def load_config() -> dict:
    path = config_path()
    if not path.exists():
        return {}
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ValueError(f"Invalid config file: {path}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file structure: {path}")
    return data


def get_config() -> dict:
    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        _CONFIG_CACHE = load_config()
    return _CONFIG_CACHE


def reset_config_cache() -> None:
    global _CONFIG_CACHE
    _CONFIG_CACHE = None


def get_config_value(*keys: str, default: object | None = None) -> object | None:
    current: object = get_config()
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def retry_defaults() -> RetryConfiguration:
    """Built-in backoff defaults overridden by the `[retry]` table."""

    def _int(key: str, fallback: int) -> int:
        value = get_config_value("retry", key)
        if value is None:
            return fallback
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"retry.{key} must be an integer, got {value!r}")
        return value

    return RetryConfiguration(
        initial_delay=_int("initial_delay", DEFAULT_RETRY_CONFIGURATION.initial_delay),
        max_delay=_int("max_delay", DEFAULT_RETRY_CONFIGURATION.max_delay),
        fail_after=_int("fail_after", DEFAULT_RETRY_CONFIGURATION.fail_after),
    )


def reporter_flag(key: str, cli_value: bool) -> bool:
    if cli_value:
        return True
    return bool(get_config_value("reporter", key, default=False))


def load_world(path: str | Path | None) -> dict:
    """World values: the config `[world]` table, overlaid by a TOML or JSON file."""
    world = dict(get_config_value("world", default={}) or {})
    if path is None:
        return world
    p = Path(path).expanduser()
    text = p.read_text(encoding="utf-8")
    try:
        data = json.loads(text) if p.suffix == ".json" else tomllib.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ValueError(f"Invalid world file: {p}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"World file must hold an object: {p}")
    world.update(data)
    return world
