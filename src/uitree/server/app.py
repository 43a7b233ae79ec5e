"""uitree.server.app - Flask app factory and REST API routes.

This is a THIN REST wrapper: all logic delegates to the pure functions in
``uitree.server.api``. No tree logic is duplicated here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import Flask, jsonify, request
from flask_cors import CORS

from uitree.server.api import (
    _apply_command_batch,
    _check_type,
    _get_descendants,
    _get_diagnostics,
    _get_highlighted_document,
    _get_mutation_log,
    _get_node,
    _get_root_for,
    _get_status,
    _get_tree,
    _get_types,
    _mutate_add,
    _mutate_delete,
    _mutate_move,
    _mutate_reference,
    _mutate_update,
    _save,
    _select,
    _undo_last_mutation,
)

if TYPE_CHECKING:
    from uitree.session import EditorSession


def _status_for(result: dict[str, Any]) -> int:
    if result.get("success"):
        return 200
    if result.get("error_type") == "NodeNotFoundError":
        return 404
    return 400


def create_app(session: EditorSession) -> Flask:
    """Create the Flask application with REST API routes.

    Args:
        session: Editor session whose store the API exposes.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)
    CORS(app, origins=session.config.get("server.cors_origins", ["*"]))

    store = session.store

    def _json_body() -> dict[str, Any]:
        data = request.get_json(force=True, silent=True)
        return data if isinstance(data, dict) else {}

    def _respond(result: dict[str, Any]):
        return jsonify(result), _status_for(result)

    # ─────────────────────────────────────────────────────────────────
    # Read-only GET endpoints
    # ─────────────────────────────────────────────────────────────────

    @app.route("/api/tree")
    def api_tree():
        """GET /api/tree - Whole forest (reference subtrees expanded unless ?materialized=0)."""
        materialized = request.args.get("materialized", "1") not in ("0", "false")
        return jsonify(_get_tree(store, include_materialized=materialized))

    @app.route("/api/node/<node_id>")
    def api_node(node_id: str):
        return _respond(_get_node(store, node_id))

    @app.route("/api/node/<node_id>/root")
    def api_node_root(node_id: str):
        return _respond(_get_root_for(store, node_id))

    @app.route("/api/node/<node_id>/descendants")
    def api_node_descendants(node_id: str):
        return _respond(_get_descendants(store, node_id))

    @app.route("/api/types")
    def api_types():
        return jsonify(_get_types(store))

    @app.route("/api/types/check")
    def api_types_check():
        """GET /api/types/check?node_id=..&type=.. - Can the node reference the type?"""
        node_id = request.args.get("node_id", "")
        type_name = request.args.get("type", "")
        if not node_id or not type_name:
            return jsonify({"success": False, "error": "node_id and type required"}), 400
        return jsonify(_check_type(store, node_id, type_name))

    @app.route("/api/status")
    def api_status():
        return jsonify(_get_status(session))

    @app.route("/api/diagnostics")
    def api_diagnostics():
        return jsonify(_get_diagnostics(store))

    @app.route("/api/mutations")
    def api_mutations():
        limit = request.args.get("limit", 50, type=int)
        return jsonify(_get_mutation_log(store, limit))

    @app.route("/api/document/highlighted")
    def api_document_highlighted():
        return _respond(_get_highlighted_document(store, session.config.get("document.indent", 2)))

    # ─────────────────────────────────────────────────────────────────
    # Mutation POST endpoints
    # ─────────────────────────────────────────────────────────────────

    @app.route("/api/mutate/add", methods=["POST"])
    def api_mutate_add():
        """POST /api/mutate/add - {node, parent_id?}; no parent adds a root."""
        data = _json_body()
        if "node" not in data:
            return jsonify({"success": False, "error": "node required"}), 400
        return _respond(_mutate_add(store, data["node"], data.get("parent_id")))

    @app.route("/api/mutate/delete", methods=["POST"])
    def api_mutate_delete():
        data = _json_body()
        node_id = data.get("node_id", "")
        if not node_id:
            return jsonify({"success": False, "error": "node_id required"}), 400
        return _respond(_mutate_delete(store, node_id))

    @app.route("/api/mutate/update", methods=["POST"])
    def api_mutate_update():
        data = _json_body()
        node_id = data.get("node_id", "")
        updates = data.get("updates")
        if not node_id or not isinstance(updates, dict):
            return jsonify({"success": False, "error": "node_id and updates required"}), 400
        return _respond(_mutate_update(store, node_id, updates))

    @app.route("/api/mutate/move", methods=["POST"])
    def api_mutate_move():
        data = _json_body()
        node_id = data.get("node_id", "")
        new_parent_id = data.get("new_parent_id", "")
        if not node_id or not new_parent_id:
            return jsonify({"success": False, "error": "node_id and new_parent_id required"}), 400
        return _respond(_mutate_move(store, node_id, new_parent_id))

    @app.route("/api/mutate/reference", methods=["POST"])
    def api_mutate_reference():
        """POST /api/mutate/reference - {type_name, node_id} or {type_name, parent_id}."""
        data = _json_body()
        return _respond(
            _mutate_reference(
                store,
                data.get("type_name"),
                node_id=data.get("node_id"),
                parent_id=data.get("parent_id"),
            )
        )

    @app.route("/api/mutate/undo", methods=["POST"])
    def api_mutate_undo():
        """POST /api/mutate/undo - Undo the most recent mutation."""
        return _respond(_undo_last_mutation(store))

    @app.route("/api/commands", methods=["POST"])
    def api_commands():
        """POST /api/commands - {commands: [...]}, applied in order until one fails."""
        return _respond(_apply_command_batch(store, _json_body().get("commands")))

    @app.route("/api/select", methods=["POST"])
    def api_select():
        """POST /api/select - {node_id}; null clears the selection."""
        return _respond(_select(store, _json_body().get("node_id")))

    # ─────────────────────────────────────────────────────────────────
    # Persistence endpoints
    # ─────────────────────────────────────────────────────────────────

    @app.route("/api/save", methods=["POST"])
    def api_save():
        """POST /api/save - Write the document now ({path?} to save elsewhere)."""
        return _respond(_save(session, _json_body().get("path")))

    return app
