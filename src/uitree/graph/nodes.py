"""Node model for the UI forest.

This module provides the core data structures of the document:
- NodeKind: Enum of node kinds (standard or reference)
- ConstraintReference / Constraint / ConstraintPackage: layout constraints
- UINode: Common node shape with traversal helpers
- StandardNode: A node that owns its children
- ReferenceNode: A node that aliases another root's subtree by type name

Forest-level lookups (find, path, detach) are plain functions over a list
of root nodes, since nodes keep no parent pointers.
"""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, ClassVar, Iterator

LAYOUTS = ("horizontal", "vertical")


class NodeKind(Enum):
    """Kinds of nodes in the forest."""

    STANDARD = "standard"
    REFERENCE = "reference"


@dataclass
class ConstraintReference:
    """Cross-reference from a constraint to another node.

    An empty ``node_id`` means the constraint is relative to its own
    superview rather than to a specific node.
    """

    node_id: str = ""
    attribute: str | None = None


@dataclass
class Constraint:
    """A single layout constraint (e.g. ``top equalTo 8``)."""

    type: str
    relation: str = "equalTo"
    value: Any = 0
    attribute: str | None = None
    reference: ConstraintReference | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConstraintPackage:
    """A named, optionally default, bundle of constraints."""

    name: str
    is_default: bool = False
    constraints: list[Constraint] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class UINode:
    """A node in the UI forest.

    Attributes:
        id: Hierarchical position code (two digits per level).
        name: Display name; root names double as reference type names.
        type: Component type, or a registered dynamic type name.
        layout: "horizontal" or "vertical", None when unspecified.
        attributes: Component attributes, opaque to the engine.
        constraint_packages: Ordered constraint packages.
        functions, member_variables, protocols: Opaque payload lists.
        children: Ordered child nodes.
        extra: Unknown document keys carried through verbatim.
    """

    id: str
    name: str
    type: str
    layout: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    constraint_packages: list[ConstraintPackage] = field(default_factory=list)
    functions: list[Any] = field(default_factory=list)
    member_variables: list[Any] = field(default_factory=list)
    protocols: list[Any] = field(default_factory=list)
    children: list[UINode] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    kind: ClassVar[NodeKind]

    @property
    def is_reference(self) -> bool:
        """True for nodes that alias another root's subtree."""
        return self.kind is NodeKind.REFERENCE

    # Iterator access
    def iter_children(self) -> Iterator[UINode]:
        """Iterate over child nodes."""
        yield from self.children

    def child_count(self) -> int:
        """Return number of children."""
        return len(self.children)

    @property
    def is_leaf(self) -> bool:
        """True if this node has no children."""
        return not self.children

    def walk(self, order: str = "pre") -> Iterator[UINode]:
        """Iterate over this node and descendants.

        Args:
            order: Traversal order:
                - "pre": Parent first (depth-first, pre-order)
                - "post": Children first (depth-first, post-order)
                - "level": Breadth-first (level order)

        Yields:
            UINode instances in the specified order.
        """
        if order == "pre":
            yield from self._walk_preorder()
        elif order == "post":
            yield from self._walk_postorder()
        elif order == "level":
            yield from self._walk_level()
        else:
            raise ValueError(f"Unknown traversal order: {order}")

    def _walk_preorder(self) -> Iterator[UINode]:
        yield self
        for child in self.children:
            yield from child._walk_preorder()

    def _walk_postorder(self) -> Iterator[UINode]:
        for child in self.children:
            yield from child._walk_postorder()
        yield self

    def _walk_level(self) -> Iterator[UINode]:
        queue: deque[UINode] = deque([self])
        while queue:
            node = queue.popleft()
            yield node
            queue.extend(node.children)

    def find(self, predicate: Callable[[UINode], bool]) -> Iterator[UINode]:
        """Find this node and all descendants matching predicate."""
        for node in self.walk():
            if predicate(node):
                yield node

    def iter_constraint_references(self) -> Iterator[ConstraintReference]:
        """Iterate the cross-references held by this node's own constraints."""
        for package in self.constraint_packages:
            for constraint in package.constraints:
                if constraint.reference is not None:
                    yield constraint.reference


@dataclass
class StandardNode(UINode):
    """A node that owns its children."""

    kind: ClassVar[NodeKind] = NodeKind.STANDARD


@dataclass
class ReferenceNode(UINode):
    """A node that embeds another root's subtree by type name.

    ``children`` holds a materialized copy of the referenced root's
    children, regenerated by the store; it is never serialized.

    Attributes:
        referenced_root_type: Type name (root name) being aliased.
        stale: True when the referenced type no longer exists.
    """

    referenced_root_type: str = ""
    stale: bool = False

    kind: ClassVar[NodeKind] = NodeKind.REFERENCE


def _common_fields(node: UINode) -> dict[str, Any]:
    return {f.name: getattr(node, f.name) for f in fields(UINode)}


def as_reference(node: UINode, type_name: str) -> ReferenceNode:
    """Return a ReferenceNode carrying *node*'s fields, aliasing *type_name*."""
    values = _common_fields(node)
    values["children"] = []
    return ReferenceNode(**values, referenced_root_type=type_name)


def as_standard(node: UINode) -> StandardNode:
    """Return a StandardNode carrying *node*'s fields and children."""
    return StandardNode(**_common_fields(node))


# ─────────────────────────────────────────────────────────────────────────────
# Forest helpers
# ─────────────────────────────────────────────────────────────────────────────


def walk_forest(forest: list[UINode], order: str = "pre") -> Iterator[UINode]:
    """Iterate every node of every root, root by root."""
    for root in forest:
        yield from root.walk(order)


def find_node(forest: list[UINode], node_id: str) -> UINode | None:
    """Depth-first lookup of a node by ID."""
    for node in walk_forest(forest):
        if node.id == node_id:
            return node
    return None


def find_path(forest: list[UINode], node_id: str) -> list[UINode]:
    """Return the chain of nodes from a root down to *node_id*.

    Returns an empty list when the node is not in the forest.
    """

    def _search(nodes: list[UINode], trail: list[UINode]) -> list[UINode]:
        for node in nodes:
            here = trail + [node]
            if node.id == node_id:
                return here
            found = _search(node.children, here)
            if found:
                return found
        return []

    return _search(forest, [])


def sibling_list(forest: list[UINode], node_id: str) -> list[UINode] | None:
    """Return the list that holds *node_id* (the forest or a children list)."""
    path = find_path(forest, node_id)
    if not path:
        return None
    if len(path) == 1:
        return forest
    return path[-2].children


def detach(forest: list[UINode], node_id: str) -> UINode | None:
    """Remove *node_id* (and its subtree) from wherever it is found."""
    siblings = sibling_list(forest, node_id)
    if siblings is None:
        return None
    for i, node in enumerate(siblings):
        if node.id == node_id:
            return siblings.pop(i)
    return None


def descendant_ids(node: UINode) -> list[str]:
    """Return IDs of all descendants of *node* (excluding itself), pre-order."""
    return [n.id for n in node.walk() if n is not node]


def clone_forest(forest: list[UINode]) -> list[UINode]:
    """Deep copy a forest; the copy shares nothing with the original."""
    return copy.deepcopy(forest)


__all__ = [
    "LAYOUTS",
    "NodeKind",
    "ConstraintReference",
    "Constraint",
    "ConstraintPackage",
    "UINode",
    "StandardNode",
    "ReferenceNode",
    "as_reference",
    "as_standard",
    "walk_forest",
    "find_node",
    "find_path",
    "sibling_list",
    "detach",
    "descendant_ids",
    "clone_forest",
]
