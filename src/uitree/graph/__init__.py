"""Graph module - Core tree data structures.

Exports:
- UINode, StandardNode, ReferenceNode: Node model (tagged union)
- Constraint, ConstraintPackage, ConstraintReference: Layout constraints
- IdentifierCodec: Hierarchical position IDs
- ReferenceGraph, TypeSelection: Reference type registry and cycle checks
- repair: Constraint reference repair pass
- TreeStore, TreeState, Subscription: Canonical forest owner
- MutationEntry, MutationLog: Mutation history

Note: Document I/O lives in uitree.graph.serialize, the command vocabulary
in uitree.graph.commands.
"""

from uitree.graph.errors import (
    CommandError,
    DanglingReferenceError,
    NodeNotFoundError,
    TooManySiblingsError,
    TreeError,
    ValidationError,
)
from uitree.graph.ids import IdentifierCodec, ParsedId
from uitree.graph.metrics import TreeStats, compute_stats
from uitree.graph.mutations import MutationEntry, MutationLog
from uitree.graph.nodes import (
    Constraint,
    ConstraintPackage,
    ConstraintReference,
    NodeKind,
    ReferenceNode,
    StandardNode,
    UINode,
)
from uitree.graph.references import ReferenceGraph, StaleReference, TypeSelection
from uitree.graph.repair import ClearedReference, repair
from uitree.graph.store import DanglingPolicy, Subscription, TreeState, TreeStore

__all__ = [
    "NodeKind",
    "UINode",
    "StandardNode",
    "ReferenceNode",
    "Constraint",
    "ConstraintPackage",
    "ConstraintReference",
    "IdentifierCodec",
    "ParsedId",
    "ReferenceGraph",
    "StaleReference",
    "TypeSelection",
    "ClearedReference",
    "repair",
    "TreeStore",
    "TreeState",
    "Subscription",
    "DanglingPolicy",
    "MutationEntry",
    "MutationLog",
    "TreeStats",
    "compute_stats",
    "TreeError",
    "ValidationError",
    "NodeNotFoundError",
    "TooManySiblingsError",
    "DanglingReferenceError",
    "CommandError",
]
