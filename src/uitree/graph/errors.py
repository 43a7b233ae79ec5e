"""Error taxonomy for tree operations.

All errors derive from TreeError and also from the builtin exception a
caller would naturally catch (KeyError for lookups, ValueError for bad
input), so ``except (ValueError, KeyError)`` keeps working at the edges.

Cycle denials are deliberately absent: ReferenceGraph reports them as a
TypeSelection result instead of raising.
"""

from __future__ import annotations


class TreeError(Exception):
    """Base class for all tree errors."""


class ValidationError(TreeError, ValueError):
    """A node or update payload failed validation.

    Attributes:
        errors: Individual validation messages.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class NodeNotFoundError(TreeError, KeyError):
    """An operation addressed a node ID that is not in the forest."""

    def __init__(self, node_id: str, role: str = "Node") -> None:
        super().__init__(node_id)
        self.node_id = node_id
        self.role = role

    def __str__(self) -> str:
        return f"{self.role} '{self.node_id}' not found"


class TooManySiblingsError(TreeError, ValueError):
    """A level would exceed the two-digit sibling ceiling."""

    def __init__(self, parent_id: str | None, index: int) -> None:
        where = f"under '{parent_id}'" if parent_id else "at root level"
        super().__init__(f"Cannot place sibling #{index + 1} {where}: at most 99 siblings allowed")
        self.parent_id = parent_id
        self.index = index


class DanglingReferenceError(TreeError, ValueError):
    """Deleting a root would leave reference nodes pointing at nothing."""

    def __init__(self, type_name: str, referencing_ids: list[str]) -> None:
        ids = ", ".join(referencing_ids)
        super().__init__(f"Type '{type_name}' is still referenced by: {ids}")
        self.type_name = type_name
        self.referencing_ids = referencing_ids


class CommandError(TreeError, ValueError):
    """An editor or assistant command is malformed or unknown."""


__all__ = [
    "TreeError",
    "ValidationError",
    "NodeNotFoundError",
    "TooManySiblingsError",
    "DanglingReferenceError",
    "CommandError",
]
