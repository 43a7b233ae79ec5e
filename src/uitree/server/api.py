"""uitree.server.api - Pure handler functions behind the REST routes.

Each handler takes the store (or session), delegates to it, and returns a
JSON-compatible dict with a ``success`` flag. Errors are returned, not
raised, with ``error`` and ``error_type`` keys; the Flask layer maps them
to status codes. No tree logic lives here.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from uitree.graph.commands import apply_commands
from uitree.graph.errors import TreeError, ValidationError
from uitree.graph.metrics import compute_stats
from uitree.graph.repair import dangling_references
from uitree.graph.serialize import dumps_document, forest_to_document, node_to_dict
from uitree.html.highlighting import highlight_document

if TYPE_CHECKING:
    from uitree.graph.mutations import MutationEntry
    from uitree.graph.store import TreeStore
    from uitree.session import EditorSession


def _error(e: Exception) -> dict[str, Any]:
    result: dict[str, Any] = {
        "success": False,
        "error": str(e),
        "error_type": type(e).__name__,
    }
    if isinstance(e, ValidationError) and len(e.errors) > 1:
        result["errors"] = e.errors
    return result


def _mutation_result(entry: MutationEntry | None, message: str) -> dict[str, Any]:
    if entry is None:
        return {"success": True, "changed": False, "message": "Nothing to change"}
    return {
        "success": True,
        "changed": True,
        "mutation": entry.to_dict(),
        "message": message,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────────────────────


def _get_tree(store: TreeStore, include_materialized: bool = True) -> dict[str, Any]:
    """Full forest plus selection and version."""
    return {
        "success": True,
        "tree": forest_to_document(store.forest, include_materialized=include_materialized),
        "version": store.version,
        "selected_id": store.selected_id,
    }


def _get_node(store: TreeStore, node_id: str) -> dict[str, Any]:
    node = store.find_node(node_id)
    if node is None:
        return {"success": False, "error": f"Node '{node_id}' not found", "error_type": "NodeNotFoundError"}
    return {"success": True, "node": node_to_dict(node, include_materialized=True)}


def _get_root_for(store: TreeStore, node_id: str) -> dict[str, Any]:
    root = store.find_root_for(node_id)
    if root is None:
        return {"success": False, "error": f"Node '{node_id}' not found", "error_type": "NodeNotFoundError"}
    return {
        "success": True,
        "root_id": root.id,
        "type_name": store.registry.type_for(root.id),
    }


def _get_descendants(store: TreeStore, node_id: str) -> dict[str, Any]:
    try:
        ids = store.descendant_ids(node_id)
    except KeyError as e:
        return _error(e)
    return {"success": True, "node_id": node_id, "descendant_ids": ids}


def _get_types(store: TreeStore) -> dict[str, Any]:
    """Registered reference types."""
    return {
        "success": True,
        "types": [{"name": t.name, "root_id": t.root_id} for t in store.registry.available_types()],
    }


def _check_type(store: TreeStore, node_id: str, type_name: str) -> dict[str, Any]:
    """Whether *node_id* may reference *type_name*; never an error."""
    selection = store.can_select_type(node_id, type_name)
    return {"success": True, "allowed": selection.allowed, "reason": selection.reason}


def _get_status(session: EditorSession) -> dict[str, Any]:
    store = session.store
    return {
        "success": True,
        "version": store.version,
        "document": str(session.document_path) if session.document_path else None,
        "dirty": session.dirty,
        "autosave": session.autosaver is not None,
        "dangling_policy": store.dangling_policy.value,
        "mutation_count": len(store.mutation_log),
        "stats": compute_stats(store.forest).to_dict(),
    }


def _get_diagnostics(store: TreeStore) -> dict[str, Any]:
    """Integrity report: ID violations, dangling constraint refs, stale references."""
    forest = store.forest
    violations = store.codec.violations(forest)
    dangling = dangling_references(forest)
    stale = store.stale_references()
    return {
        "success": True,
        "healthy": not (violations or dangling or stale),
        "id_violations": [{"node_id": v.node_id, "expected_id": v.expected_id} for v in violations],
        "dangling_references": [
            {"node_id": d.node_id, "package": d.package, "target_id": d.target_id} for d in dangling
        ],
        "stale_references": [{"node_id": s.node_id, "type_name": s.type_name} for s in stale],
    }


def _get_mutation_log(store: TreeStore, limit: int = 50) -> dict[str, Any]:
    return {
        "success": True,
        "mutations": [entry.to_dict() for entry in store.mutation_log.recent(limit)],
    }


def _get_highlighted_document(store: TreeStore, indent: int | None = 2) -> dict[str, Any]:
    try:
        highlighted = highlight_document(dumps_document(store.forest, indent=indent))
    except ValueError as e:
        return _error(e)
    return {"success": True, **highlighted}


# ─────────────────────────────────────────────────────────────────────────────
# Mutations
# ─────────────────────────────────────────────────────────────────────────────


def _mutate_add(store: TreeStore, node: Any, parent_id: str | None = None) -> dict[str, Any]:
    """Add a root (no parent) or a child."""
    try:
        if parent_id:
            entry = store.add_child(parent_id, node)
        else:
            entry = store.add_root(node)
    except (TreeError, KeyError, ValueError) as e:
        return _error(e)
    return _mutation_result(entry, f"Added {entry.target_id}")


def _mutate_delete(store: TreeStore, node_id: str) -> dict[str, Any]:
    try:
        entry = store.delete_node(node_id)
    except (TreeError, KeyError, ValueError) as e:
        return _error(e)
    return _mutation_result(entry, f"Deleted {node_id}")


def _mutate_update(store: TreeStore, node_id: str, updates: Any) -> dict[str, Any]:
    try:
        entry = store.update_node(node_id, updates)
    except (TreeError, KeyError, ValueError) as e:
        return _error(e)
    return _mutation_result(entry, f"Updated {node_id}")


def _mutate_move(store: TreeStore, node_id: str, new_parent_id: str) -> dict[str, Any]:
    try:
        entry = store.move_node(node_id, new_parent_id)
    except (TreeError, KeyError, ValueError) as e:
        return _error(e)
    return _mutation_result(entry, f"Moved {node_id} under {new_parent_id}")


def _mutate_reference(
    store: TreeStore,
    type_name: str | None,
    node_id: str | None = None,
    parent_id: str | None = None,
) -> dict[str, Any]:
    """Retype *node_id*, or add a new reference node under *parent_id*."""
    try:
        if node_id:
            selection = store.set_reference_type(node_id, type_name)
        elif parent_id and type_name:
            selection = store.add_reference(parent_id, type_name)
        else:
            return {"success": False, "error": "node_id or parent_id with type_name required"}
    except (TreeError, KeyError, ValueError) as e:
        return _error(e)
    if not selection:
        return {
            "success": False,
            "error": selection.reason,
            "error_type": "CycleDenied",
            "allowed": False,
        }
    entry = store.mutation_log.last()
    return _mutation_result(entry, f"Reference set to {type_name}")


def _undo_last_mutation(store: TreeStore) -> dict[str, Any]:
    entry = store.undo_last()
    if entry is None:
        return {"success": False, "error": "No mutations to undo"}
    return {
        "success": True,
        "mutation": entry.to_dict(),
        "message": f"Undid {entry.operation} on {entry.target_id}",
    }


def _apply_command_batch(store: TreeStore, commands: Any) -> dict[str, Any]:
    if not isinstance(commands, list):
        return {"success": False, "error": "commands must be an array"}
    results = apply_commands(store, commands)
    return {
        "success": all(r.success for r in results),
        "applied": sum(1 for r in results if r.success),
        "results": [r.to_dict() for r in results],
    }


def _select(store: TreeStore, node_id: str | None) -> dict[str, Any]:
    try:
        state = store.select(node_id) if node_id else store.clear_selection()
    except KeyError as e:
        return _error(e)
    return {
        "success": True,
        "selected_id": state.selected_id,
        "selected_root_id": state.selected_root_id,
    }


def _save(session: EditorSession, path: str | None = None) -> dict[str, Any]:
    try:
        target = session.save(Path(path) if path else None)
    except (OSError, ValueError) as e:
        return _error(e)
    return {"success": True, "path": str(target), "message": f"Saved {target}"}
