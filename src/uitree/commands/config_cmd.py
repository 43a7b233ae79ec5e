"""
uitree.commands.config_cmd - Inspect configuration.

Subcommands:
  path   Show which config file is in effect
  show   Print the merged configuration as TOML
  get    Print one dotted key
  check  Validate configuration values
"""

import argparse
import json
import sys
from pathlib import Path

import tomlkit

from uitree.commands import load_configuration
from uitree.config import find_config_file, validate_config


def run(args: argparse.Namespace) -> int:
    """Run the config command."""
    action = args.config_action or "show"

    if action == "path":
        path = args.config or find_config_file(Path.cwd())
        if path is None:
            print("No .uitree.toml found; using defaults")
            return 1
        print(path)
        return 0

    config = load_configuration(args)
    if config is None:
        return 1

    if action == "get":
        sentinel = object()
        value = config.get(args.key, sentinel)
        if value is sentinel:
            print(f"Unknown key: {args.key}", file=sys.stderr)
            return 1
        print(json.dumps(value) if isinstance(value, (dict, list, bool)) else value)
        return 0

    if action == "check":
        errors = validate_config(config)
        for error in errors:
            print(f"✗ {error}", file=sys.stderr)
        if not errors:
            print("✓ Configuration is valid")
        return 1 if errors else 0

    print(tomlkit.dumps(config.get_raw()).rstrip("\n"))
    return 0
