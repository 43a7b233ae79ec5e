"""
uitree.config.loader - Find, parse and merge configuration files.

Configuration is layered, later layers winning:

1. DEFAULT_CONFIG
2. ``.uitree.toml`` (found by walking up from the working directory)
3. ``.uitree.local.toml`` next to it (uncommitted developer overrides)
4. ``UITREE_<SECTION>_<KEY>`` environment variables
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from uitree.config.defaults import (
    CONFIG_FILENAME,
    DANGLING_POLICIES,
    DEFAULT_CONFIG,
    ENV_PREFIX,
    LOCAL_CONFIG_FILENAME,
    LOG_LEVELS,
)

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """A configuration file could not be parsed."""


class ConfigLoader:
    """Read-only access to a merged configuration dict.

    Keys are addressed with dots: ``config.get("autosave.debounce_seconds")``.
    """

    def __init__(self, data: dict[str, Any], path: Path | None = None) -> None:
        self._data = data
        self.path = path

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigLoader:
        return cls(copy.deepcopy(data))

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key, returning *default* when any part is missing."""
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def __getitem__(self, section: str) -> Any:
        return self._data[section]

    def __contains__(self, section: str) -> bool:
        return section in self._data

    def get_raw(self) -> dict[str, Any]:
        """Deep copy of the underlying dict."""
        return copy.deepcopy(self._data)


def parse_toml(text: str) -> dict[str, Any]:
    """Parse TOML text into plain Python types.

    Raises:
        ConfigError: If the text is not valid TOML.
    """
    try:
        return tomlkit.parse(text).unwrap()
    except TOMLKitError as e:
        raise ConfigError(f"Invalid TOML: {e}") from e


def find_config_file(start: Path) -> Path | None:
    """Walk up from *start* looking for ``.uitree.toml``."""
    current = start.resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge *override* into a copy of *base*."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _try_parse_env_value(value: str) -> Any:
    """Interpret an environment value as bool, number or JSON when it looks like one."""
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return _try_parse_numeric(value)


def _try_parse_numeric(value: str) -> Any:
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply ``UITREE_SECTION_KEY=value`` variables onto *config* in place.

    The first underscore-separated part after the prefix names the section;
    the rest, lower-cased, is the key (``UITREE_AUTOSAVE_DEBOUNCE_SECONDS``
    sets ``autosave.debounce_seconds``).
    """
    for name, raw in os.environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        parts = name[len(ENV_PREFIX) :].lower().split("_", 1)
        if len(parts) != 2 or not all(parts):
            continue
        section, key = parts
        config.setdefault(section, {})
        if isinstance(config[section], dict):
            config[section][key] = _try_parse_env_value(raw)
            logger.debug("Config override from %s", name)
    return config


def load_config(path: Path | None = None, apply_env: bool = True) -> ConfigLoader:
    """Load configuration.

    Args:
        path: Explicit config file. When None, search upward from the
            working directory; defaults alone are used if nothing is found.
        apply_env: Apply environment variable overrides.

    Raises:
        ConfigError: If a config file is not valid TOML.
        FileNotFoundError: If an explicit *path* does not exist.
    """
    if path is None:
        path = find_config_file(Path.cwd())
    elif not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = copy.deepcopy(DEFAULT_CONFIG)
    if path is not None:
        data = merge_configs(data, parse_toml(path.read_text(encoding="utf-8")))
        local = path.parent / LOCAL_CONFIG_FILENAME
        if local.is_file():
            data = merge_configs(data, parse_toml(local.read_text(encoding="utf-8")))
        logger.debug("Loaded config from %s", path)
    if apply_env:
        _apply_env_overrides(data)
    return ConfigLoader(data, path)


def validate_config(config: ConfigLoader) -> list[str]:
    """Return a list of problems with known configuration values."""
    errors: list[str] = []
    policy = config.get("tree.dangling_policy")
    if policy not in DANGLING_POLICIES:
        errors.append(f"tree.dangling_policy must be one of {', '.join(DANGLING_POLICIES)}")
    for key in ("tree.mutation_log_size", "tree.undo_depth"):
        value = config.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            errors.append(f"{key} must be a positive integer")
    debounce = config.get("autosave.debounce_seconds")
    if not isinstance(debounce, (int, float)) or isinstance(debounce, bool) or debounce < 0:
        errors.append("autosave.debounce_seconds must be a non-negative number")
    port = config.get("server.port")
    if not isinstance(port, int) or not 0 < port < 65536:
        errors.append("server.port must be a valid port number")
    level = str(config.get("logging.level", "")).upper()
    if level not in LOG_LEVELS:
        errors.append(f"logging.level must be one of {', '.join(LOG_LEVELS)}")
    return errors
