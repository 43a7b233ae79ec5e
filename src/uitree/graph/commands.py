"""Editor command vocabulary.

Commands are the small JSON objects shared by the editor and the AI
assistant; each maps onto exactly one TreeStore operation::

    {"action": "add", "node": {...}, "parentId": "01"}
    {"action": "delete", "nodeId": "0102"}
    {"action": "update", "nodeId": "0102", "updates": {"name": "Title"}}
    {"action": "move", "nodeId": "0102", "newParentId": "0103"}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from uitree.graph.errors import CommandError, TreeError

if TYPE_CHECKING:
    from uitree.graph.mutations import MutationEntry
    from uitree.graph.store import TreeStore

logger = logging.getLogger(__name__)

ACTIONS = ("add", "delete", "update", "move")


@dataclass
class CommandResult:
    """Outcome of one command in a batch."""

    command: Mapping[str, Any]
    success: bool
    entry: MutationEntry | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "description": describe_command(self.command),
        }
        if self.entry is not None:
            result["mutation"] = self.entry.to_dict()
        if self.error is not None:
            result["error"] = self.error
        return result


def _require(command: Mapping[str, Any], *keys: str) -> list[Any]:
    missing = [key for key in keys if not command.get(key)]
    if missing:
        action = command.get("action")
        raise CommandError(f"'{action}' command is missing {', '.join(missing)}")
    return [command[key] for key in keys]


def _add(store: TreeStore, command: Mapping[str, Any]) -> MutationEntry | None:
    (node,) = _require(command, "node")
    # Without an explicit parent, fall back to the selection, then the first root
    parent_id = command.get("parentId") or store.selected_id
    if not parent_id and store.forest:
        parent_id = store.forest[0].id
    if not parent_id:
        return store.add_root(node)
    return store.add_child(parent_id, node)


def _delete(store: TreeStore, command: Mapping[str, Any]) -> MutationEntry | None:
    (node_id,) = _require(command, "nodeId")
    return store.delete_node(node_id)


def _update(store: TreeStore, command: Mapping[str, Any]) -> MutationEntry | None:
    node_id, updates = _require(command, "nodeId", "updates")
    return store.update_node(node_id, updates)


def _move(store: TreeStore, command: Mapping[str, Any]) -> MutationEntry | None:
    node_id, new_parent_id = _require(command, "nodeId", "newParentId")
    return store.move_node(node_id, new_parent_id)


_HANDLERS: dict[str, Callable[[TreeStore, Mapping[str, Any]], MutationEntry | None]] = {
    "add": _add,
    "delete": _delete,
    "update": _update,
    "move": _move,
}


def apply_command(store: TreeStore, command: Mapping[str, Any]) -> MutationEntry | None:
    """Apply one command to *store*.

    Returns:
        The MutationEntry, or None for a move that changed nothing.

    Raises:
        CommandError: If the command is malformed or the action unknown.
        TreeError: Whatever the underlying store operation raises.
    """
    if not isinstance(command, Mapping):
        raise CommandError("Command must be an object")
    action = command.get("action")
    handler = _HANDLERS.get(action) if isinstance(action, str) else None
    if handler is None:
        raise CommandError(f"Unknown command action: {action!r}")
    return handler(store, command)


def apply_commands(store: TreeStore, commands: list[Mapping[str, Any]]) -> list[CommandResult]:
    """Apply commands in order, stopping at the first failure.

    Commands before the failure stay applied. The failed command is the
    last result; commands after it are not attempted.
    """
    results: list[CommandResult] = []
    for command in commands:
        try:
            entry = apply_command(store, command)
        except (TreeError, KeyError, ValueError) as e:
            logger.warning("Command failed: %s (%s)", describe_command(command), e)
            results.append(CommandResult(command, False, error=str(e)))
            break
        results.append(CommandResult(command, True, entry=entry))
    return results


def describe_command(command: Any) -> str:
    """One-line, human-readable description of a command."""
    if not isinstance(command, Mapping):
        return json.dumps(command, default=str)
    action = command.get("action")
    if action == "add":
        node = command.get("node") or {}
        if isinstance(node, Mapping):
            return f"Add node: {node.get('type')} ({node.get('id')})"
    elif action == "delete":
        return f"Delete node: {command.get('nodeId')}"
    elif action == "update":
        updates = command.get("updates")
        keys = ", ".join(updates) if isinstance(updates, Mapping) else ""
        return f"Update node: {command.get('nodeId')} ({keys})"
    elif action == "move":
        return f"Move node: {command.get('nodeId')} to {command.get('newParentId')}"
    return json.dumps(command, default=str)


__all__ = ["ACTIONS", "CommandResult", "apply_command", "apply_commands", "describe_command"]
