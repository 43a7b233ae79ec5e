"""TreeStore - Canonical owner of the UI forest.

Every mutation runs as a small transaction:

1. deep-copy the committed forest into a working copy
2. validate and apply the change to the working copy
3. renumber the whole forest if any ID broke the position invariant
4. rebind the reference registry and regenerate reference subtrees
5. clear constraint references that no longer resolve
6. swap the working copy in, log the mutation, broadcast the new state

Any exception before step 6 leaves the committed forest and the root
counter untouched.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Iterator

from uitree.graph.errors import (
    DanglingReferenceError,
    NodeNotFoundError,
    TooManySiblingsError,
    ValidationError,
)
from uitree.graph.ids import MAX_SEGMENT, IdentifierCodec, format_segment
from uitree.graph.mutations import DEFAULT_LOG_SIZE, MutationEntry, MutationLog
from uitree.graph.nodes import (
    ReferenceNode,
    UINode,
    as_reference,
    as_standard,
    clone_forest,
    find_node,
    find_path,
    walk_forest,
)
from uitree.graph.references import ReferenceGraph, StaleReference, TypeSelection
from uitree.graph.repair import clear_dangling_references
from uitree.graph.serialize import (
    FIELD_KEYS,
    PROTECTED_KEYS,
    forest_from_document,
    node_from_dict,
    node_to_dict,
    packages_from_list,
    validate_fields,
)

logger = logging.getLogger(__name__)

DEFAULT_UNDO_DEPTH = 50


class DanglingPolicy(Enum):
    """What to do when a mutation leaves reference nodes without a type."""

    WARN = "warn"
    REJECT = "reject"


@dataclass(frozen=True)
class TreeState:
    """Snapshot broadcast to subscribers after every committed change.

    The forest is the committed forest itself and must be treated as
    read-only.

    Attributes:
        forest: Root nodes in order.
        selected_id: ID of the selected node, or None.
        selected_root_id: ID of the selected node's root, or None.
        version: Commit counter, incremented by every mutation.
        entry: The mutation that produced this state (None for selection
            changes).
    """

    forest: tuple[UINode, ...]
    selected_id: str | None
    selected_root_id: str | None
    version: int
    entry: MutationEntry | None = None


Subscriber = Callable[[TreeState], None]


class Subscription:
    """Handle returned by TreeStore.subscribe()."""

    def __init__(self, store: TreeStore, callback: Subscriber) -> None:
        self._store = store
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop receiving broadcasts. Safe to call more than once."""
        if self.active:
            self._store._subscriptions.remove(self)
            self.active = False


@dataclass
class _Snapshot:
    forest: list[UINode]
    selected_id: str | None
    entry_id: str


def iter_owned(forest: list[UINode]) -> Iterator[UINode]:
    """Pre-order walk that skips the materialized children of reference nodes."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        if not isinstance(node, ReferenceNode):
            stack.extend(reversed(node.children))


def _strip_materialized(forest: list[UINode]) -> None:
    for node in iter_owned(forest):
        if isinstance(node, ReferenceNode):
            node.children = []


def _locate(forest: list[UINode], node_id: str, role: str = "Node") -> list[UINode]:
    path = find_path(forest, node_id)
    if not path:
        raise NodeNotFoundError(node_id, role)
    return path


def _reject_materialized(path: list[UINode], action: str) -> None:
    if any(isinstance(node, ReferenceNode) for node in path[:-1]):
        raise ValidationError(
            f"Cannot {action} '{path[-1].id}': it is part of a reference node's embedded subtree"
        )


def _coerce_node(node: UINode | Mapping[str, Any]) -> UINode:
    if isinstance(node, Mapping):
        return node_from_dict(node)
    if not isinstance(node, UINode):
        raise ValidationError(f"Expected a node or node dict, got {type(node).__name__}")
    missing = [key for key in ("id", "name", "type") if not getattr(node, key, None)]
    if missing:
        raise ValidationError(f"Invalid node: missing {', '.join(missing)}")
    return clone_forest([node])[0]


class TreeStore:
    """Owns the canonical forest and applies all mutations to it.

    Args:
        codec: ID codec (a fresh one by default).
        registry: Reference type registry (a fresh one by default).
        dangling_policy: "warn" or "reject" (see DanglingPolicy).
        log_size: Capacity of the mutation log.
        undo_depth: Number of forest snapshots kept for undo_last().
    """

    def __init__(
        self,
        codec: IdentifierCodec | None = None,
        registry: ReferenceGraph | None = None,
        dangling_policy: DanglingPolicy | str = DanglingPolicy.WARN,
        log_size: int = DEFAULT_LOG_SIZE,
        undo_depth: int = DEFAULT_UNDO_DEPTH,
    ) -> None:
        self._codec = codec or IdentifierCodec()
        self._registry = registry or ReferenceGraph()
        self._dangling_policy = DanglingPolicy(dangling_policy)
        self._forest: list[UINode] = []
        self._selected_id: str | None = None
        self._version = 0
        self._mutation_log = MutationLog(log_size)
        self._history: deque[_Snapshot] = deque(maxlen=undo_depth)
        self._subscriptions: list[Subscription] = []
        self._counter_checkpoint = self._codec.root_counter

    # ─────────────────────────────────────────────────────────────────────
    # Read access
    # ─────────────────────────────────────────────────────────────────────

    @property
    def forest(self) -> list[UINode]:
        """The committed root nodes. Do not mutate them."""
        return list(self._forest)

    @property
    def codec(self) -> IdentifierCodec:
        return self._codec

    @property
    def registry(self) -> ReferenceGraph:
        return self._registry

    @property
    def version(self) -> int:
        return self._version

    @property
    def dangling_policy(self) -> DanglingPolicy:
        return self._dangling_policy

    @property
    def mutation_log(self) -> MutationLog:
        """Access the mutation log for this store."""
        return self._mutation_log

    def state(self, entry: MutationEntry | None = None) -> TreeState:
        """Current TreeState."""
        return TreeState(
            forest=tuple(self._forest),
            selected_id=self._selected_id,
            selected_root_id=self._root_id_of(self._selected_id),
            version=self._version,
            entry=entry,
        )

    def find_node(self, node_id: str) -> UINode | None:
        """Depth-first lookup of a node by ID, or None."""
        return find_node(self._forest, node_id)

    def find_root_for(self, node_id: str) -> UINode | None:
        """The root whose subtree contains *node_id*, or None."""
        path = find_path(self._forest, node_id)
        return path[0] if path else None

    def descendant_ids(self, node_id: str) -> list[str]:
        """IDs of every node below *node_id*, pre-order.

        Raises:
            NodeNotFoundError: If node_id is not in the forest.
        """
        node = find_node(self._forest, node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return [n.id for n in node.walk() if n is not node]

    def node_count(self) -> int:
        """Total number of nodes, materialized ones included."""
        return sum(1 for _ in walk_forest(self._forest))

    def can_select_type(self, node_id: str, type_name: str) -> TypeSelection:
        """Ask the registry whether *node_id* may reference *type_name*."""
        return self._registry.can_select_type(node_id, type_name, self._forest)

    def stale_references(self) -> list[StaleReference]:
        """Reference nodes whose referenced type no longer exists."""
        return [
            StaleReference(node.id, node.referenced_root_type)
            for node in iter_owned(self._forest)
            if isinstance(node, ReferenceNode) and node.stale
        ]

    def _root_id_of(self, node_id: str | None) -> str | None:
        if node_id is None:
            return None
        root = self.find_root_for(node_id)
        return root.id if root else None

    # ─────────────────────────────────────────────────────────────────────
    # Selection
    # ─────────────────────────────────────────────────────────────────────

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected_node(self) -> UINode | None:
        """The selected node in the committed forest."""
        return self.find_node(self._selected_id) if self._selected_id else None

    @property
    def selected_root(self) -> UINode | None:
        """Root containing the selected node."""
        return self.find_root_for(self._selected_id) if self._selected_id else None

    def select(self, node_id: str) -> TreeState:
        """Select a node and broadcast the new selection.

        Raises:
            NodeNotFoundError: If node_id is not in the forest.
        """
        if find_node(self._forest, node_id) is None:
            raise NodeNotFoundError(node_id)
        self._selected_id = node_id
        return self._broadcast(None)

    def clear_selection(self) -> TreeState:
        """Clear the selection and broadcast."""
        self._selected_id = None
        return self._broadcast(None)

    def _track_selection(self, working: list[UINode]) -> tuple[UINode, str] | None:
        # Materialized nodes are regenerated on commit, so a selection inside
        # one is tracked as (owning reference node, relative ID suffix).
        if self._selected_id is None:
            return None
        path = find_path(working, self._selected_id)
        if not path:
            return None
        for node in path[:-1]:
            if isinstance(node, ReferenceNode):
                return node, self._selected_id[len(node.id) :]
        return path[-1], ""

    @staticmethod
    def _resolve_selection(
        working: list[UINode], tracked: tuple[UINode, str] | None
    ) -> str | None:
        if tracked is None:
            return None
        anchor, suffix = tracked
        for node in iter_owned(working):
            if node is anchor:
                candidate = node.id + suffix
                if suffix and find_node(node.children, candidate) is None:
                    return None
                return candidate
        return None

    # ─────────────────────────────────────────────────────────────────────
    # Subscription
    # ─────────────────────────────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Subscription:
        """Register *callback* for every broadcast.

        Callbacks run synchronously, in subscription order, after the change
        is committed. Exceptions raised by a callback propagate to the
        caller of the mutation; the mutation itself stays committed.
        """
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def _broadcast(self, entry: MutationEntry | None) -> TreeState:
        state = self.state(entry)
        logger.debug("Broadcasting version %d to %d subscriber(s)", state.version, len(self._subscriptions))
        for subscription in list(self._subscriptions):
            if subscription.active:
                subscription.callback(state)
        return state

    # ─────────────────────────────────────────────────────────────────────
    # Transaction pipeline
    # ─────────────────────────────────────────────────────────────────────

    def _begin(self) -> tuple[list[UINode], tuple[UINode, str] | None]:
        self._counter_checkpoint = self._codec.root_counter
        working = clone_forest(self._forest)
        return working, self._track_selection(working)

    def _commit(
        self,
        working: list[UINode],
        tracked: tuple[UINode, str] | None,
        entry: MutationEntry,
        added: UINode | None = None,
        renamed_type: str | None = None,
        registry_update: Callable[[], None] | None = None,
        enforce_dangling: bool = True,
    ) -> MutationEntry:
        """Normalize the working copy and swap it in (see module docstring)."""
        previously_stale = {s.type_name for s in self.stale_references()}
        try:
            _strip_materialized(working)
            if not self._codec.is_consistent(working):
                self._codec.renumber_forest(working)
                entry.renumbered = True
                logger.debug("Renumbered forest after %s", entry.operation)
            if registry_update is not None:
                registry_update()
            self._registry.rebind(working)
            if added is not None:
                self._check_reference_cycles(working, iter_owned([added]))
            if renamed_type is not None:
                self._check_reference_cycles(
                    working, self._registry.referencing_nodes(renamed_type, working)
                )
            self._registry.materialize_forest(working, self._codec)
            newly_stale = [
                node
                for node in iter_owned(working)
                if isinstance(node, ReferenceNode)
                and node.stale
                and node.referenced_root_type not in previously_stale
            ]
            if (
                newly_stale
                and enforce_dangling
                and self._dangling_policy is DanglingPolicy.REJECT
            ):
                type_name = newly_stale[0].referenced_root_type
                raise DanglingReferenceError(
                    type_name,
                    [n.id for n in newly_stale if n.referenced_root_type == type_name],
                )
            entry.cleared_references = clear_dangling_references(working)
        except Exception:
            self._registry.rebuild(self._forest)
            self._codec.restore(self._counter_checkpoint)
            raise

        for node in newly_stale:
            logger.warning(
                "Reference node %s now points at missing type %r",
                node.id,
                node.referenced_root_type,
            )

        self._history.append(_Snapshot(self._forest, self._selected_id, entry.id))
        self._forest = working
        self._selected_id = self._resolve_selection(working, tracked)
        self._version += 1
        self._mutation_log.append(entry)
        logger.info("Applied %s", entry)
        self._broadcast(entry)
        return entry

    def _check_reference_cycles(self, working: list[UINode], nodes: Iterable[UINode]) -> None:
        for node in nodes:
            if isinstance(node, ReferenceNode) and self._registry.has_type(node.referenced_root_type):
                selection = self._registry.can_select_type(node.id, node.referenced_root_type, working)
                if not selection:
                    raise ValidationError(f"Reference node '{node.id}': {selection.reason}")

    # ─────────────────────────────────────────────────────────────────────
    # Mutation API
    # ─────────────────────────────────────────────────────────────────────

    def set_tree(self, forest: list[UINode] | list[Mapping[str, Any]]) -> MutationEntry:
        """Replace the whole forest.

        Accepts nodes or document dicts. Inconsistent IDs are renumbered;
        the root counter is reseeded from the result.

        Raises:
            ValidationError: If any node is malformed.
        """
        if all(isinstance(root, UINode) for root in forest):
            working = clone_forest(list(forest))
        else:
            working = forest_from_document(list(forest))

        entry = MutationEntry(
            operation="set_tree",
            target_id="",
            before_state={"root_count": len(self._forest)},
            after_state={"root_count": len(working)},
        )
        def registry_update() -> None:
            self._registry.rebuild(working)
            self._codec.reseed(working)

        self._counter_checkpoint = self._codec.root_counter
        return self._commit(
            working, None, entry, registry_update=registry_update, enforce_dangling=False
        )

    def add_root(self, node: UINode | Mapping[str, Any]) -> MutationEntry:
        """Append a root node (with its subtree) to the forest.

        A well-formed, unused root ID is kept; otherwise the root gets the
        next generated ID. Children with IDs that do not match their
        position trigger a full renumber.

        Raises:
            ValidationError: If the node is malformed.
            TooManySiblingsError: If the forest already holds 99 roots.
        """
        new_root = _coerce_node(node)
        working, tracked = self._begin()
        if len(working) >= MAX_SEGMENT:
            raise TooManySiblingsError(None, len(working))

        parsed = self._codec.parse(new_root.id)
        if parsed.is_valid and parsed.depth == 1 and find_node(working, new_root.id) is None:
            self._codec.observe_root_id(new_root.id)
        else:
            new_root.id = self._codec.next_root_id()
        working.append(new_root)

        entry = MutationEntry(
            operation="add_root",
            target_id=new_root.id,
            after_state={"node": node_to_dict(new_root)},
        )
        return self._commit(working, tracked, entry, added=new_root)

    def add_child(self, parent_id: str, node: UINode | Mapping[str, Any]) -> MutationEntry:
        """Append a node (with its subtree) as the last child of *parent_id*.

        Raises:
            NodeNotFoundError: If parent_id is not in the forest.
            ValidationError: If the node is malformed, or the parent is a
                reference node or lies inside one.
            TooManySiblingsError: If the parent already has 99 children.
        """
        new_child = _coerce_node(node)
        working, tracked = self._begin()
        parent = self._insertion_parent(working, parent_id)
        parent.children.append(new_child)

        entry = MutationEntry(
            operation="add_child",
            target_id=new_child.id,
            after_state={"parent_id": parent_id, "node": node_to_dict(new_child)},
        )
        return self._commit(working, tracked, entry, added=new_child)

    def create_root(self, name: str, type: str, **fields: Any) -> MutationEntry:
        """Create a root with a generated ID.

        Extra keyword arguments are document fields (``layout``,
        ``attributes``, ``constraintPackages``, ...).
        """
        if self._codec.root_counter > MAX_SEGMENT:
            raise TooManySiblingsError(None, self._codec.root_counter - 1)
        node_id = format_segment(self._codec.root_counter)
        return self.add_root({**fields, "id": node_id, "name": name, "type": type})

    def create_child(self, parent_id: str, name: str, type: str, **fields: Any) -> MutationEntry:
        """Create a child of *parent_id* with a generated ID."""
        parent = self.find_node(parent_id)
        if parent is None:
            raise NodeNotFoundError(parent_id, "Parent node")
        node_id = self._codec.child_id(parent.id, len(parent.children))
        return self.add_child(parent_id, {**fields, "id": node_id, "name": name, "type": type})

    def _insertion_parent(self, working: list[UINode], parent_id: str) -> UINode:
        path = _locate(working, parent_id, "Parent node")
        _reject_materialized(path, "add children to")
        parent = path[-1]
        if isinstance(parent, ReferenceNode):
            raise ValidationError(f"Cannot add children to reference node '{parent_id}'")
        if len(parent.children) >= MAX_SEGMENT:
            raise TooManySiblingsError(parent_id, len(parent.children))
        return parent

    def update_node(self, node_id: str, fields: Mapping[str, Any]) -> MutationEntry:
        """Shallow-merge document *fields* into a node.

        Renaming a root renames the type it defines; reference nodes that
        used the old name follow the rename.

        Raises:
            NodeNotFoundError: If node_id is not in the forest.
            ValidationError: If a field is invalid or protected, or the node
                is inside a reference node's embedded subtree.
        """
        if not isinstance(fields, Mapping):
            raise ValidationError("Updates must be an object")
        protected = [key for key in fields if key in PROTECTED_KEYS]
        if protected:
            raise ValidationError(f"Cannot update protected field(s): {', '.join(protected)}")
        errors = validate_fields(fields, node_id)
        if errors:
            raise ValidationError(f"Invalid update: {errors[0]}", errors)

        working, tracked = self._begin()
        path = _locate(working, node_id)
        _reject_materialized(path, "update")
        node = path[-1]

        current = node_to_dict(node)
        entry = MutationEntry(
            operation="update_node",
            target_id=node_id,
            before_state={key: current.get(key) for key in fields},
            after_state=dict(fields),
        )

        old_name = node.name
        for key, value in fields.items():
            _apply_field(node, key, value)

        registry_update = None
        renamed_type = None
        if len(path) == 1 and node.name != old_name:
            registry_update = self._rename_type(working, node, old_name)
            renamed_type = node.name
        return self._commit(
            working,
            tracked,
            entry,
            renamed_type=renamed_type,
            registry_update=registry_update,
        )

    def _rename_type(
        self, working: list[UINode], root: UINode, old_name: str
    ) -> Callable[[], None]:
        owned_type = self._registry.type_for(root.id) == old_name
        root_id = root.id
        new_name = root.name
        if owned_type:
            for node in iter_owned(working):
                if isinstance(node, ReferenceNode) and node.referenced_root_type == old_name:
                    node.referenced_root_type = new_name
                    if node.type == old_name:
                        node.type = new_name

        def update() -> None:
            self._registry.handle_root_rename(root_id, old_name, new_name, working)

        return update

    def delete_node(self, node_id: str) -> MutationEntry:
        """Remove a node and its whole subtree.

        Reference nodes left without a type are marked stale (``warn``
        policy) or the delete is refused (``reject`` policy).

        Raises:
            NodeNotFoundError: If node_id is not in the forest.
            ValidationError: If the node is inside a reference node's
                embedded subtree.
            DanglingReferenceError: Under the ``reject`` policy.
        """
        working, tracked = self._begin()
        path = _locate(working, node_id)
        _reject_materialized(path, "delete")
        node = path[-1]
        siblings = working if len(path) == 1 else path[-2].children
        index = next(i for i, sibling in enumerate(siblings) if sibling is node)
        del siblings[index]

        entry = MutationEntry(
            operation="delete_node",
            target_id=node_id,
            before_state={
                "parent_id": path[-2].id if len(path) > 1 else None,
                "index": index,
                "node": node_to_dict(node),
            },
        )

        registry_update = None
        if len(path) == 1:

            def registry_update() -> None:
                self._registry.handle_root_delete(node_id, working)

        return self._commit(working, tracked, entry, registry_update=registry_update)

    def move_node(self, node_id: str, new_parent_id: str) -> MutationEntry | None:
        """Move a subtree to the end of *new_parent_id*'s children.

        Returns None without logging or broadcasting when the node already
        is the last child of *new_parent_id*.

        Raises:
            NodeNotFoundError: If either ID is not in the forest.
            ValidationError: If the node would move into itself, its own
                descendant, a reference node, or an embedded subtree.
            TooManySiblingsError: If the new parent already has 99 children.
        """
        working, tracked = self._begin()
        path = _locate(working, node_id)
        _reject_materialized(path, "move")
        node = path[-1]

        parent_path = _locate(working, new_parent_id, "Parent node")
        if any(n is node for n in parent_path):
            raise ValidationError(f"Cannot move '{node_id}' into itself or its own descendant")
        _reject_materialized(parent_path, "move nodes into")
        new_parent = parent_path[-1]
        if isinstance(new_parent, ReferenceNode):
            raise ValidationError(f"Cannot move nodes into reference node '{new_parent_id}'")

        siblings = working if len(path) == 1 else path[-2].children
        if siblings is new_parent.children and siblings[-1] is node:
            logger.debug("move_node(%s, %s) leaves the forest unchanged", node_id, new_parent_id)
            return None
        if siblings is not new_parent.children and len(new_parent.children) >= MAX_SEGMENT:
            raise TooManySiblingsError(new_parent_id, len(new_parent.children))

        old_parent_id = path[-2].id if len(path) > 1 else None
        siblings.remove(node)
        new_parent.children.append(node)

        entry = MutationEntry(
            operation="move_node",
            target_id=node_id,
            before_state={"id": node_id, "parent_id": old_parent_id},
            after_state={"parent_id": new_parent_id},
        )
        self._commit(working, tracked, entry, added=node)
        entry.after_state["id"] = node.id
        return entry

    # ─────────────────────────────────────────────────────────────────────
    # Reference nodes
    # ─────────────────────────────────────────────────────────────────────

    def add_reference(
        self, parent_id: str, type_name: str, name: str | None = None
    ) -> TypeSelection:
        """Append a reference node aliasing *type_name* under *parent_id*.

        Returns:
            The registry's decision; nothing changes when it is a denial.
        """
        selection = self._registry.can_select_type(parent_id, type_name, self._forest)
        if not selection:
            return selection
        parent = self.find_node(parent_id)
        if parent is None:
            raise NodeNotFoundError(parent_id, "Parent node")
        reference = ReferenceNode(
            id=self._codec.child_id(parent.id, len(parent.children)),
            name=name or type_name,
            type=type_name,
            referenced_root_type=type_name,
        )
        self.add_child(parent_id, reference)
        return selection

    def set_reference_type(self, node_id: str, type_name: str | None) -> TypeSelection:
        """Turn a node into a reference to *type_name*, or back into a
        standard node when *type_name* is None.

        A standard node converted to a reference loses its own children.

        Raises:
            NodeNotFoundError: If node_id is not in the forest.
            ValidationError: If the node is inside an embedded subtree.
        """
        if type_name is not None:
            selection = self._registry.can_select_type(node_id, type_name, self._forest)
            if not selection:
                return selection
        else:
            selection = TypeSelection(True)

        working, tracked = self._begin()
        path = _locate(working, node_id)
        _reject_materialized(path, "retype")
        node = path[-1]
        siblings = working if len(path) == 1 else path[-2].children
        index = next(i for i, sibling in enumerate(siblings) if sibling is node)

        before = node.referenced_root_type if isinstance(node, ReferenceNode) else None
        if type_name is None:
            replacement: UINode = as_standard(node)
            replacement.children = []
        else:
            replacement = as_reference(node, type_name)
            replacement.type = type_name
        siblings[index] = replacement
        if tracked is not None and tracked[0] is node:
            tracked = (replacement, tracked[1])

        entry = MutationEntry(
            operation="set_reference_type",
            target_id=node_id,
            before_state={"referencedRootType": before, "children": len(node.children)},
            after_state={"referencedRootType": type_name},
        )
        self._commit(working, tracked, entry, added=replacement)
        return selection

    # ─────────────────────────────────────────────────────────────────────
    # Undo
    # ─────────────────────────────────────────────────────────────────────

    def undo_last(self) -> MutationEntry | None:
        """Restore the forest as it was before the most recent mutation.

        Returns:
            The undone MutationEntry, or None if there is nothing to undo.
        """
        if not self._history:
            return None
        snapshot = self._history.pop()
        undone = self._mutation_log.last()
        if undone is not None and undone.id == snapshot.entry_id:
            self._mutation_log.pop()
        else:
            undone = MutationEntry(operation="unknown", target_id="", id=snapshot.entry_id)

        self._forest = snapshot.forest
        self._selected_id = snapshot.selected_id
        self._registry.rebuild(self._forest)
        self._codec.reseed(self._forest)
        self._version += 1
        logger.info("Undid %s", undone)
        self._broadcast(MutationEntry(operation="undo", target_id=undone.target_id))
        return undone


def _apply_field(node: UINode, key: str, value: Any) -> None:
    attr = FIELD_KEYS.get(key)
    if attr is None:
        node.extra[key] = value
    elif key == "constraintPackages":
        node.constraint_packages = packages_from_list(value)
    elif key == "attributes":
        node.attributes = dict(value)
    elif isinstance(value, list):
        setattr(node, attr, list(value))
    else:
        setattr(node, attr, value)


__all__ = [
    "DEFAULT_UNDO_DEPTH",
    "DanglingPolicy",
    "Subscription",
    "TreeState",
    "TreeStore",
    "iter_owned",
]
