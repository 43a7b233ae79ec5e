"""uitree.server - Flask REST API server for the tree editor.

Provides a thin REST wrapper over the pure handler functions in
``uitree.server.api``, plus the debounced autosave subscriber.
"""

from uitree.server.app import create_app
from uitree.server.persistence import Autosaver

__all__ = ["Autosaver", "create_app"]
