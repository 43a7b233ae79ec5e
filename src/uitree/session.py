"""EditorSession - Wires one editing context together.

A session owns the ID codec, the reference registry, the store and,
when a document file is open, the autosaver. Applications construct one
session and pass it to whatever needs the tree.
"""

from __future__ import annotations

import logging
from pathlib import Path

from uitree.config import DEFAULT_CONFIG, ConfigLoader, load_config
from uitree.graph.ids import IdentifierCodec
from uitree.graph.references import ReferenceGraph
from uitree.graph.serialize import load_document, save_document
from uitree.graph.store import TreeStore
from uitree.server.persistence import Autosaver

logger = logging.getLogger(__name__)


class EditorSession:
    """Explicit context for one editor instance.

    Args:
        config: Configuration; defaults when omitted.
    """

    def __init__(self, config: ConfigLoader | None = None) -> None:
        self.config = config or ConfigLoader.from_dict(DEFAULT_CONFIG)
        self.codec = IdentifierCodec()
        self.registry = ReferenceGraph()
        self.store = TreeStore(
            codec=self.codec,
            registry=self.registry,
            dangling_policy=self.config.get("tree.dangling_policy", "warn"),
            log_size=self.config.get("tree.mutation_log_size", 100),
            undo_depth=self.config.get("tree.undo_depth", 50),
        )
        self.document_path: Path | None = None
        self.autosaver: Autosaver | None = None
        self._saved_version = 0

    @classmethod
    def from_config(cls, config_path: Path | None = None) -> EditorSession:
        """Build a session from a config file (searched for when omitted)."""
        return cls(load_config(config_path))

    @property
    def dirty(self) -> bool:
        """True when the store holds changes not yet written to disk."""
        saved = self._saved_version
        if self.autosaver is not None:
            saved = max(saved, self.autosaver.saved_version)
        return self.store.version != saved

    def open(self, path: Path, autosave: bool | None = None) -> None:
        """Load *path* into the store and make it the session's document.

        A missing file starts an empty document that is created on the
        first save.

        Raises:
            ValidationError: If the file exists but is not a valid document.
        """
        path = Path(path)
        self._stop_autosave()
        if path.exists():
            forest = load_document(path, sanitize=self.config.get("document.sanitize", False))
            self.store.set_tree(forest)
            logger.info("Opened %s (%d root(s))", path, len(forest))
        else:
            self.store.set_tree([])
            logger.info("Starting new document %s", path)
        self.document_path = path
        self._saved_version = self.store.version

        if autosave is None:
            autosave = bool(self.config.get("autosave.enabled", True))
        if autosave:
            self.autosaver = Autosaver(
                self.store,
                path,
                debounce_seconds=float(self.config.get("autosave.debounce_seconds", 1.0)),
                indent=self.config.get("document.indent", 2),
                envelope=bool(self.config.get("document.envelope", False)),
            )

    def save(self, path: Path | None = None) -> Path:
        """Write the current forest to *path* (default: the open document).

        Raises:
            ValueError: If no path is given and no document is open.
        """
        target = Path(path) if path is not None else self.document_path
        if target is None:
            raise ValueError("No document path: open a document or pass a path")
        save_document(
            target,
            self.store.forest,
            indent=self.config.get("document.indent", 2),
            envelope=bool(self.config.get("document.envelope", False)),
        )
        if target == self.document_path:
            self._saved_version = self.store.version
            if self.autosaver is not None:
                self.autosaver.mark_saved(self.store.version)
        logger.info("Saved %s", target)
        return target

    def _stop_autosave(self) -> None:
        if self.autosaver is not None:
            self.autosaver.close()
            self.autosaver = None

    def close(self) -> None:
        """Flush pending autosaves and release the document."""
        self._stop_autosave()
        self.document_path = None

    def __enter__(self) -> EditorSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["EditorSession"]
