"""
uitree.config - Configuration loading and defaults
"""

from uitree.config.defaults import DEFAULT_CONFIG
from uitree.config.loader import (
    ConfigError,
    ConfigLoader,
    _apply_env_overrides,
    _try_parse_env_value,
    find_config_file,
    load_config,
    merge_configs,
    parse_toml,
    validate_config,
)

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "load_config",
    "find_config_file",
    "merge_configs",
    "parse_toml",
    "validate_config",
    "DEFAULT_CONFIG",
]
