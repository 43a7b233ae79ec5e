"""
uitree.commands - CLI command implementations
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from uitree.config import ConfigError, ConfigLoader, load_config
from uitree.graph.errors import ValidationError
from uitree.session import EditorSession

__all__ = [
    "config_cmd",
    "edit",
    "serve",
    "show",
    "types_cmd",
    "validate",
]


def load_configuration(args: argparse.Namespace) -> Optional[ConfigLoader]:
    """Load configuration from --config, the nearest .uitree.toml, or defaults."""
    try:
        return load_config(getattr(args, "config", None))
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None


def open_session(args: argparse.Namespace, path: Path) -> Optional[EditorSession]:
    """Open *path* in a session without autosave; prints errors and returns None on failure."""
    config = load_configuration(args)
    if config is None:
        return None
    if not path.exists():
        print(f"Error: document not found: {path}", file=sys.stderr)
        return None
    session = EditorSession(config)
    try:
        session.open(path, autosave=False)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        for message in e.errors[1:]:
            print(f"  {message}", file=sys.stderr)
        return None
    return session
