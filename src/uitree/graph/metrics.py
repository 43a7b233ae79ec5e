"""Forest statistics.

This module defines summary data for a forest:
- TreeStats: Node, root, depth and per-type counts
- compute_stats: Build TreeStats from a list of roots
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from uitree.graph.nodes import ReferenceNode, UINode


@dataclass
class TreeStats:
    """Aggregated counts over a forest.

    Attributes:
        total_nodes: Nodes owned by the forest (materialized subtrees excluded)
        root_nodes: Number of roots
        max_depth: Deepest level, 1 for a forest of bare roots, 0 when empty
        node_types: Count of nodes per type
        reference_nodes: Number of reference nodes
        stale_references: Reference nodes whose type is missing
    """

    total_nodes: int = 0
    root_nodes: int = 0
    max_depth: int = 0
    node_types: dict[str, int] = field(default_factory=dict)
    reference_nodes: int = 0
    stale_references: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_nodes": self.total_nodes,
            "root_nodes": self.root_nodes,
            "max_depth": self.max_depth,
            "node_types": dict(self.node_types),
            "reference_nodes": self.reference_nodes,
            "stale_references": self.stale_references,
        }


def compute_stats(forest: list[UINode]) -> TreeStats:
    """Count nodes, roots, depth and types in *forest*."""
    stats = TreeStats(root_nodes=len(forest))
    types: Counter[str] = Counter()
    stack = [(root, 1) for root in reversed(forest)]
    while stack:
        node, depth = stack.pop()
        stats.total_nodes += 1
        stats.max_depth = max(stats.max_depth, depth)
        types[node.type] += 1
        if isinstance(node, ReferenceNode):
            stats.reference_nodes += 1
            if node.stale:
                stats.stale_references += 1
            continue
        stack.extend((child, depth + 1) for child in reversed(node.children))
    stats.node_types = dict(types)
    return stats


__all__ = ["TreeStats", "compute_stats"]
