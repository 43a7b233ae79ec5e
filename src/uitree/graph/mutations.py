"""Mutation records for TreeStore operations.

This module provides dataclasses for tracking applied mutations, and a
bounded log the store uses for auditing and undo.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from uitree.graph.repair import ClearedReference

DEFAULT_LOG_SIZE = 100


@dataclass
class MutationEntry:
    """Single mutation operation record.

    Attributes:
        operation: Operation type (e.g. "add_child", "move_node").
        target_id: Primary target of the mutation, as addressed by the caller.
        before_state: Relevant state before the mutation.
        after_state: Relevant state after the mutation.
        renumbered: Whether the forest was renumbered.
        cleared_references: Constraint references cleared by the repair pass.
        id: Unique mutation ID (UUID4 hex).
        timestamp: When the mutation occurred.
    """

    operation: str
    target_id: str
    before_state: dict[str, Any] = field(default_factory=dict)
    after_state: dict[str, Any] = field(default_factory=dict)
    renumbered: bool = False
    cleared_references: list[ClearedReference] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"[{self.id[:8]}] {self.operation}({self.target_id})"

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form for API responses."""
        return {
            "id": self.id,
            "operation": self.operation,
            "target_id": self.target_id,
            "before": self.before_state,
            "after": self.after_state,
            "renumbered": self.renumbered,
            "cleared_references": [
                {
                    "node_id": ref.node_id,
                    "package": ref.package,
                    "constraint_type": ref.constraint_type,
                    "target_id": ref.target_id,
                }
                for ref in self.cleared_references
            ],
            "timestamp": self.timestamp.isoformat(),
        }


class MutationLog:
    """Bounded, chronological mutation history.

    Once ``max_entries`` is reached the oldest entry is discarded for each
    new one appended.

    Example:
        >>> log = MutationLog(max_entries=2)
        >>> log.append(MutationEntry(operation="add_root", target_id="01"))
        >>> len(log)
        1
    """

    def __init__(self, max_entries: int = DEFAULT_LOG_SIZE) -> None:
        self._entries: deque[MutationEntry] = deque(maxlen=max_entries)

    @property
    def max_entries(self) -> int | None:
        """Capacity of the log."""
        return self._entries.maxlen

    def append(self, entry: MutationEntry) -> None:
        """Append a mutation entry to the log."""
        self._entries.append(entry)

    def iter_entries(self) -> Iterator[MutationEntry]:
        """Iterate over all entries, oldest first."""
        yield from self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def last(self) -> MutationEntry | None:
        """Return the most recent entry, or None if empty."""
        return self._entries[-1] if self._entries else None

    def recent(self, limit: int) -> list[MutationEntry]:
        """Return up to *limit* entries, newest first."""
        return list(reversed(self._entries))[:limit]

    def find_by_id(self, mutation_id: str) -> MutationEntry | None:
        """Find an entry by its mutation ID."""
        for entry in self._entries:
            if entry.id == mutation_id:
                return entry
        return None

    def pop(self) -> MutationEntry | None:
        """Remove and return the most recent entry."""
        return self._entries.pop() if self._entries else None

    def clear(self) -> None:
        """Clear all entries from the log."""
        self._entries.clear()


__all__ = ["DEFAULT_LOG_SIZE", "MutationEntry", "MutationLog"]
