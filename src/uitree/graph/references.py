"""Reference type registry and cycle detection.

Every named root defines a dynamic type: any node elsewhere may become a
reference node that embeds that root's subtree inline by naming the type.
ReferenceGraph keeps the bijection between type names and root IDs, decides
whether a node may select a given type without creating a containment
cycle, and builds the materialized subtree a reference node displays.
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from uitree.graph.nodes import ReferenceNode, UINode, find_node, find_path, walk_forest

if TYPE_CHECKING:
    from uitree.graph.ids import IdentifierCodec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeSelection:
    """Outcome of asking whether a node may select a reference type.

    Attributes:
        allowed: True when the selection is safe.
        reason: Human-readable denial reason; empty when allowed.
    """

    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class DynamicType:
    """A type name offered to reference nodes, backed by a root."""

    name: str
    root_id: str


@dataclass(frozen=True)
class StaleReference:
    """A reference node whose type no longer exists."""

    node_id: str
    type_name: str

    def __str__(self) -> str:
        return f"{self.node_id} --> type '{self.type_name}' (missing)"


def _has_name(node: UINode) -> bool:
    return bool(node.name and node.name.strip())


class ReferenceGraph:
    """Registry of root-defined types.

    Holds three views that always agree: type name -> root ID, root ID ->
    type name, and type name -> root node. Only roots with a non-empty name
    participate; when two roots share a name the first one in sibling order
    owns it.
    """

    def __init__(self) -> None:
        self._root_by_type: dict[str, str] = {}
        self._type_by_root: dict[str, str] = {}
        self._node_by_type: dict[str, UINode] = {}

    # ─────────────────────────────────────────────────────────────────────
    # Maintenance
    # ─────────────────────────────────────────────────────────────────────

    def rebuild(self, forest: list[UINode]) -> None:
        """Recompute all mappings from the forest's roots."""
        self._root_by_type.clear()
        self._type_by_root.clear()
        self._node_by_type.clear()
        for root in forest:
            if _has_name(root) and root.name not in self._root_by_type:
                self._bind(root.name, root)
        logger.debug("Reference types rebuilt: %s", sorted(self._root_by_type))

    def rebind(self, forest: list[UINode]) -> None:
        """Point root node handles at *forest* without recomputing names.

        Used after a transaction replaces node objects while keeping root IDs.
        """
        roots = {root.id: root for root in forest}
        names = {root.name for root in forest if _has_name(root)}
        if names != set(self._root_by_type):
            self.rebuild(forest)
            return
        for name, root_id in list(self._root_by_type.items()):
            root = roots.get(root_id)
            if root is None or root.name != name:
                self.rebuild(forest)
                return
            self._node_by_type[name] = root

    def _bind(self, name: str, root: UINode) -> None:
        self._root_by_type[name] = root.id
        self._type_by_root[root.id] = name
        self._node_by_type[name] = root

    def _unbind_root(self, root_id: str) -> str | None:
        name = self._type_by_root.pop(root_id, None)
        if name is not None:
            self._root_by_type.pop(name, None)
            self._node_by_type.pop(name, None)
        return name

    def handle_root_rename(
        self,
        root_id: str,
        old_name: str,
        new_name: str,
        forest: list[UINode],
    ) -> None:
        """Patch the mappings after a root's name changed.

        *forest* must already carry the new name. Falls back to a full
        rebuild when the rename touches a name shared by another root, so
        the result always equals ``rebuild(forest)``.
        """
        others = [r for r in forest if r.id != root_id]
        if any(r.name in (old_name, new_name) for r in others if _has_name(r)):
            self.rebuild(forest)
            return

        self._unbind_root(root_id)
        root = next((r for r in forest if r.id == root_id), None)
        if root is not None and new_name and new_name.strip():
            self._bind(new_name, root)
        logger.info("Reference type renamed: %r -> %r (root %s)", old_name, new_name, root_id)

    def handle_root_delete(self, root_id: str, forest: list[UINode] | None = None) -> None:
        """Retract the type defined by a deleted root.

        When *forest* is given and another remaining root carries the same
        name, ownership passes to it via a rebuild.
        """
        name = self._unbind_root(root_id)
        if name is None:
            return
        if forest is not None and any(r.name == name and r.id != root_id for r in forest):
            self.rebuild([r for r in forest if r.id != root_id])
        logger.info("Reference type %r retracted (root %s deleted)", name, root_id)

    # ─────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────

    def available_types(self) -> list[DynamicType]:
        """All registered types, in registration order."""
        return [DynamicType(name, root_id) for name, root_id in self._root_by_type.items()]

    def has_type(self, type_name: str) -> bool:
        """True if *type_name* is a registered type."""
        return type_name in self._root_by_type

    def root_id_for(self, type_name: str) -> str | None:
        """Root ID backing *type_name*, or None."""
        return self._root_by_type.get(type_name)

    def type_for(self, root_id: str) -> str | None:
        """Type name defined by *root_id*, or None."""
        return self._type_by_root.get(root_id)

    def root_for(self, type_name: str) -> UINode | None:
        """Root node backing *type_name*, or None."""
        return self._node_by_type.get(type_name)

    def snapshot(self) -> tuple[dict[str, str], dict[str, str]]:
        """Copies of the name maps, for comparison against a rebuild."""
        return dict(self._root_by_type), dict(self._type_by_root)

    # ─────────────────────────────────────────────────────────────────────
    # Cycle detection
    # ─────────────────────────────────────────────────────────────────────

    def can_select_type(
        self,
        current_node_id: str,
        target_type_name: str,
        forest: list[UINode],
    ) -> TypeSelection:
        """Decide whether *current_node_id* may reference *target_type_name*.

        Denied when the type is unknown, when the node is the type's own
        root, or when the selection would create a containment cycle.
        Never raises.
        """
        target_root_id = self.root_id_for(target_type_name)
        if target_root_id is None:
            return TypeSelection(False, f'Node type "{target_type_name}" does not exist')

        if current_node_id == target_root_id:
            return TypeSelection(False, "A node cannot select its own type")

        if self.would_create_cycle(current_node_id, target_root_id, forest):
            return TypeSelection(False, "Selecting this node type would create a circular reference")

        return TypeSelection(True)

    def would_create_cycle(
        self,
        current_node_id: str,
        target_root_id: str,
        forest: list[UINode],
    ) -> bool:
        """True if embedding *target_root_id* at *current_node_id* loops.

        A reference embeds the target subtree inline, so both directions
        count: the target must not contain the current node, and the
        current node must not contain the target. The target must also not
        embed, through its own reference nodes, the root that contains the
        current node.
        """
        if self.is_descendant(target_root_id, current_node_id, forest):
            return True
        if self.is_descendant(current_node_id, target_root_id, forest):
            return True

        path = find_path(forest, current_node_id)
        if path:
            container_type = self.type_for(path[0].id)
            target_type = self.type_for(target_root_id)
            if container_type and target_type:
                return container_type in self.embedded_types(target_type)
        return False

    def is_descendant(self, ancestor_id: str, descendant_id: str, forest: list[UINode]) -> bool:
        """True if *descendant_id* lies strictly inside *ancestor_id*'s subtree."""
        ancestor = find_node(forest, ancestor_id)
        if ancestor is None:
            return False
        return any(node.id == descendant_id for node in ancestor.walk() if node is not ancestor)

    def embedded_types(self, type_name: str) -> set[str]:
        """Types reachable from *type_name* through nested reference nodes."""
        reached: set[str] = set()
        queue: deque[str] = deque([type_name])
        while queue:
            current = queue.popleft()
            root = self.root_for(current)
            if root is None:
                continue
            for node in root.walk():
                if isinstance(node, ReferenceNode) and node.referenced_root_type:
                    nested = node.referenced_root_type
                    if nested not in reached:
                        reached.add(nested)
                        queue.append(nested)
        return reached

    # ─────────────────────────────────────────────────────────────────────
    # Reference nodes
    # ─────────────────────────────────────────────────────────────────────

    def referencing_nodes(self, type_name: str, forest: list[UINode]) -> list[ReferenceNode]:
        """All reference nodes in the forest that alias *type_name*."""
        return [
            node
            for node in walk_forest(forest)
            if isinstance(node, ReferenceNode) and node.referenced_root_type == type_name
        ]

    def stale_references(self, forest: list[UINode]) -> list[StaleReference]:
        """Reference nodes whose type is not registered."""
        return [
            StaleReference(node.id, node.referenced_root_type)
            for node in walk_forest(forest)
            if isinstance(node, ReferenceNode) and not self.has_type(node.referenced_root_type)
        ]

    def materialize_forest(self, forest: list[UINode], codec: IdentifierCodec) -> None:
        """Regenerate the inline subtree of every reference node in place.

        Sets ``stale`` on reference nodes whose type is missing; their
        subtree is left empty.
        """
        for root in forest:
            self._materialize_within(root.children, codec, (self.type_for(root.id) or "",))

    def _materialize_within(
        self,
        nodes: list[UINode],
        codec: IdentifierCodec,
        stack: tuple[str, ...],
    ) -> None:
        for node in nodes:
            if isinstance(node, ReferenceNode):
                node.stale = not self.has_type(node.referenced_root_type)
                node.children = self.materialize(node, codec, stack)
            else:
                self._materialize_within(node.children, codec, stack)

    def materialize(
        self,
        reference: ReferenceNode,
        codec: IdentifierCodec,
        stack: tuple[str, ...] = (),
    ) -> list[UINode]:
        """Build the children a reference node displays.

        Copies the referenced root's children, assigns IDs under the
        reference node, and remaps constraint references: pointers into the
        copied subtree follow the copy, pointers outside it are cleared.

        Args:
            reference: The reference node to expand.
            codec: ID codec used to assign child IDs.
            stack: Type names already being expanded (cycle guard).

        Returns:
            The materialized child list (empty for unknown or cyclic types).
        """
        type_name = reference.referenced_root_type
        root = self.root_for(type_name)
        if root is None:
            return []
        if type_name in stack:
            logger.warning(
                "Reference node %s embeds %r inside itself; leaving it empty",
                reference.id,
                type_name,
            )
            return []

        children = copy.deepcopy(root.children)
        id_map: dict[str, str] = {root.id: reference.id}
        self._assign_ids(children, reference.id, codec, id_map)

        copied = [node for child in children for node in child.walk()]
        for node in copied:
            for ref in node.iter_constraint_references():
                if ref.node_id:
                    ref.node_id = id_map.get(ref.node_id, "")

        self._materialize_within(children, codec, stack + (type_name,))
        return children

    def _assign_ids(
        self,
        nodes: list[UINode],
        parent_id: str,
        codec: IdentifierCodec,
        id_map: dict[str, str],
    ) -> None:
        for index, node in enumerate(nodes):
            new_id = codec.child_id(parent_id, index)
            id_map[node.id] = new_id
            node.id = new_id
            self._assign_ids(node.children, new_id, codec, id_map)


__all__ = [
    "DynamicType",
    "ReferenceGraph",
    "StaleReference",
    "TypeSelection",
]
