"""Constraint reference repair.

Constraints may point at another node through ``reference.node_id``.
Node IDs encode position, so any renumbering or deletion can leave such a
pointer aimed at a node that no longer exists. The repair pass clears every
pointer that does not resolve in the current forest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from uitree.graph.nodes import ConstraintReference, UINode, clone_forest, walk_forest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClearedReference:
    """A constraint reference that could not be resolved.

    Attributes:
        node_id: ID of the node holding the constraint.
        package: Name of the constraint package.
        constraint_type: The constraint's type (e.g. "top").
        target_id: The unresolved node ID.
    """

    node_id: str
    package: str
    constraint_type: str
    target_id: str

    def __str__(self) -> str:
        return f"{self.node_id} [{self.package}:{self.constraint_type}] --> {self.target_id} (missing)"


def _iter_references(
    forest: list[UINode],
) -> Iterator[tuple[UINode, str, str, ConstraintReference]]:
    for node in walk_forest(forest):
        for package in node.constraint_packages:
            for constraint in package.constraints:
                if constraint.reference is not None and constraint.reference.node_id:
                    yield node, package.name, constraint.type, constraint.reference


def dangling_references(forest: list[UINode]) -> list[ClearedReference]:
    """Detect constraint references that do not resolve, without changing anything."""
    known = {node.id for node in walk_forest(forest)}
    return [
        ClearedReference(node.id, package, ctype, ref.node_id)
        for node, package, ctype, ref in _iter_references(forest)
        if ref.node_id not in known
    ]


def clear_dangling_references(forest: list[UINode]) -> list[ClearedReference]:
    """Clear unresolved constraint references in place.

    Returns:
        One record per cleared reference, in forest order.
    """
    known = {node.id for node in walk_forest(forest)}
    cleared: list[ClearedReference] = []
    for node, package, ctype, ref in _iter_references(forest):
        if ref.node_id not in known:
            cleared.append(ClearedReference(node.id, package, ctype, ref.node_id))
            ref.node_id = ""
    for record in cleared:
        logger.info("Cleared dangling constraint reference %s", record)
    return cleared


def repair(forest: list[UINode]) -> list[UINode]:
    """Return a copy of *forest* with every unresolved reference cleared.

    The input forest is left untouched. Idempotent.
    """
    repaired = clone_forest(forest)
    clear_dangling_references(repaired)
    return repaired


__all__ = [
    "ClearedReference",
    "clear_dangling_references",
    "dangling_references",
    "repair",
]
