"""
uitree - Hierarchical document and state engine for UI-tree editors

uitree owns the canonical forest of UI nodes behind an editor: it assigns
position-encoding node IDs, keeps a registry of root-defined reference types
free of cycles, and repairs dangling constraint references after every
structural edit.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("uitree")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed
__license__ = "MIT"

from uitree.graph import (
    IdentifierCodec,
    ReferenceGraph,
    ReferenceNode,
    StandardNode,
    TreeStore,
    repair,
)
from uitree.session import EditorSession

__all__ = [
    "__version__",
    "EditorSession",
    "IdentifierCodec",
    "ReferenceGraph",
    "ReferenceNode",
    "StandardNode",
    "TreeStore",
    "repair",
]
