"""Persistence layer - Debounced autosave of the committed forest.

The Autosaver subscribes to a TreeStore. Every broadcast that carries a
mutation (re)starts a timer; when the timer fires the most recent state is
written to disk. The store never waits for the write.

Public API
----------
- ``Autosaver`` - debounced subscriber
- ``save_state`` - write one TreeState to disk immediately
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from uitree.graph.serialize import save_document
from uitree.graph.store import Subscription, TreeState, TreeStore

logger = logging.getLogger(__name__)


def save_state(state: TreeState, path: Path, indent: int | None = 2, envelope: bool = False) -> None:
    """Write the forest of *state* to *path* atomically."""
    save_document(path, list(state.forest), indent=indent, envelope=envelope)


class Autosaver:
    """Write the document a fixed delay after the last mutation.

    Args:
        store: Store to observe.
        path: Document file to write.
        debounce_seconds: Quiet period before writing.
        indent: JSON indent.
        envelope: Write the versioned export envelope instead of a bare array.
    """

    def __init__(
        self,
        store: TreeStore,
        path: Path,
        debounce_seconds: float = 1.0,
        indent: int | None = 2,
        envelope: bool = False,
    ) -> None:
        self.path = Path(path)
        self.debounce_seconds = debounce_seconds
        self.indent = indent
        self.envelope = envelope
        self.save_count = 0
        self.last_error: Exception | None = None
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending: TreeState | None = None
        self._saved_version = store.version
        self._subscription: Subscription | None = store.subscribe(self._on_change)

    @property
    def pending(self) -> bool:
        """True while a write is scheduled but not yet done."""
        return self._pending is not None

    @property
    def saved_version(self) -> int:
        """Store version of the last successful write."""
        return self._saved_version

    def _on_change(self, state: TreeState) -> None:
        if state.entry is None:
            return
        with self._lock:
            self._pending = state
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self._write_pending)
            self._timer.daemon = True
            self._timer.start()

    def _write_pending(self) -> None:
        # _lock guards the hand-off only; save_state runs outside it
        with self._lock:
            state, self._pending = self._pending, None
            self._timer = None
        if state is None:
            return
        with self._write_lock:
            if state.version <= self._saved_version:
                return
            try:
                save_state(state, self.path, indent=self.indent, envelope=self.envelope)
            except OSError as e:
                # Runs on the timer thread: nobody to propagate to
                self.last_error = e
                logger.error("Autosave to %s failed: %s", self.path, e)
                return
            with self._lock:
                self.last_error = None
                self.save_count += 1
                self._saved_version = max(self._saved_version, state.version)
        logger.debug("Autosaved version %d to %s", state.version, self.path)

    def flush(self) -> None:
        """Write any pending state now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
        self._write_pending()

    def mark_saved(self, version: int) -> None:
        """Record a save done outside the autosaver (e.g. an explicit save)."""
        with self._lock:
            self._saved_version = max(self._saved_version, version)
            if self._pending is not None and self._pending.version <= version:
                self._pending = None
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None

    def close(self) -> None:
        """Flush and stop observing the store."""
        self.flush()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None


__all__ = ["Autosaver", "save_state"]
