"""Tests for the Flask REST API."""

import json

import pytest
from helpers import node

from uitree.server import create_app
from uitree.session import EditorSession


@pytest.fixture
def session(document_file):
    editor = EditorSession()
    editor.open(document_file, autosave=False)
    return editor


@pytest.fixture
def app(session):
    application = create_app(session)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


# ─────────────────────────────────────────────────────────────────
# Read-only endpoints
# ─────────────────────────────────────────────────────────────────


class TestQueries:
    def test_tree(self, client):
        data = client.get("/api/tree").get_json()
        assert data["success"] is True
        assert [r["name"] for r in data["tree"]] == ["Card", "Page"]
        assert data["version"] == 1
        assert data["selected_id"] is None

    def test_node(self, client):
        response = client.get("/api/node/0101")
        assert response.status_code == 200
        assert response.get_json()["node"]["name"] == "Title"

    def test_node_not_found(self, client):
        response = client.get("/api/node/0909")
        assert response.status_code == 404
        assert response.get_json()["error_type"] == "NodeNotFoundError"

    def test_root_for(self, client):
        data = client.get("/api/node/020201/root").get_json()
        assert data["root_id"] == "02"
        assert data["type_name"] == "Page"

    def test_descendants(self, client):
        data = client.get("/api/node/02/descendants").get_json()
        assert data["descendant_ids"] == ["0201", "0202", "020201"]
        assert client.get("/api/node/0909/descendants").status_code == 404

    def test_types(self, client):
        data = client.get("/api/types").get_json()
        assert data["types"] == [{"name": "Card", "root_id": "01"}, {"name": "Page", "root_id": "02"}]

    def test_type_check(self, client):
        denied = client.get("/api/types/check?node_id=01&type=Card").get_json()
        assert denied["allowed"] is False
        assert denied["reason"] == "A node cannot select its own type"
        allowed = client.get("/api/types/check?node_id=0201&type=Card").get_json()
        assert allowed["allowed"] is True
        assert client.get("/api/types/check?node_id=01").status_code == 400

    def test_status(self, client, document_file):
        data = client.get("/api/status").get_json()
        assert data["document"] == str(document_file)
        assert data["dirty"] is False
        assert data["dangling_policy"] == "warn"
        assert data["stats"]["total_nodes"] == 6

    def test_diagnostics(self, client):
        data = client.get("/api/diagnostics").get_json()
        assert data["healthy"] is True
        assert data["id_violations"] == []

    def test_highlighted_document(self, client):
        data = client.get("/api/document/highlighted").get_json()
        assert data["language"] == "json"
        assert json.loads(data["raw"])[0]["name"] == "Card"

    def test_cors_header(self, client):
        response = client.get("/api/tree", headers={"Origin": "http://localhost:3000"})
        assert response.headers.get("Access-Control-Allow-Origin") in ("*", "http://localhost:3000")


# ─────────────────────────────────────────────────────────────────
# Mutation endpoints
# ─────────────────────────────────────────────────────────────────


class TestMutations:
    def test_add_child(self, client, session):
        response = client.post(
            "/api/mutate/add", json={"node": node("0102", "Subtitle", "UILabel"), "parent_id": "01"}
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["changed"] is True
        assert data["mutation"]["operation"] == "add_child"
        assert session.store.find_node("0102").name == "Subtitle"

    def test_add_root(self, client, session):
        response = client.post("/api/mutate/add", json={"node": node("03", "Dialog")})
        assert response.status_code == 200
        assert session.store.registry.has_type("Dialog")

    def test_add_invalid_node(self, client):
        response = client.post("/api/mutate/add", json={"node": {"id": "0102"}, "parent_id": "01"})
        assert response.status_code == 400
        assert response.get_json()["error_type"] == "ValidationError"

    def test_add_requires_node(self, client):
        assert client.post("/api/mutate/add", json={}).status_code == 400

    def test_delete(self, client, session):
        response = client.post("/api/mutate/delete", json={"node_id": "0202"})
        assert response.status_code == 200
        assert session.store.find_node("020201") is None

    def test_delete_not_found(self, client):
        response = client.post("/api/mutate/delete", json={"node_id": "0909"})
        assert response.status_code == 404

    def test_update(self, client, session):
        response = client.post(
            "/api/mutate/update", json={"node_id": "0101", "updates": {"name": "Heading"}}
        )
        assert response.status_code == 200
        assert session.store.find_node("0101").name == "Heading"

    def test_update_protected_field(self, client):
        response = client.post("/api/mutate/update", json={"node_id": "0101", "updates": {"id": "09"}})
        assert response.status_code == 400
        assert "protected" in response.get_json()["error"]

    def test_move(self, client):
        data = client.post("/api/mutate/move", json={"node_id": "0201", "new_parent_id": "01"}).get_json()
        assert data["mutation"]["after"]["id"] == "0102"
        assert data["mutation"]["renumbered"] is True

    def test_move_noop(self, client):
        response = client.post("/api/mutate/move", json={"node_id": "0202", "new_parent_id": "02"})
        assert response.status_code == 200
        assert response.get_json()["changed"] is False

    def test_move_into_descendant(self, client):
        response = client.post("/api/mutate/move", json={"node_id": "02", "new_parent_id": "0202"})
        assert response.status_code == 400

    def test_add_reference(self, client, session):
        response = client.post("/api/mutate/reference", json={"type_name": "Card", "parent_id": "0202"})
        assert response.status_code == 200
        assert session.store.find_node("020202").is_reference

    def test_reference_cycle_denied(self, client):
        response = client.post("/api/mutate/reference", json={"type_name": "Card", "node_id": "0101"})
        assert response.status_code == 400
        data = response.get_json()
        assert data["error_type"] == "CycleDenied"
        assert "circular" in data["error"]

    def test_undo(self, client, session):
        client.post("/api/mutate/delete", json={"node_id": "0101"})
        data = client.post("/api/mutate/undo").get_json()
        assert data["mutation"]["operation"] == "delete_node"
        assert session.store.find_node("0101") is not None

    def test_command_batch(self, client, session):
        response = client.post(
            "/api/commands",
            json={
                "commands": [
                    {"action": "update", "nodeId": "0101", "updates": {"name": "Heading"}},
                    {"action": "delete", "nodeId": "0909"},
                ]
            },
        )
        assert response.status_code == 400
        data = response.get_json()
        assert data["applied"] == 1
        assert len(data["results"]) == 2
        assert session.store.find_node("0101").name == "Heading"

    def test_mutation_log(self, client):
        client.post("/api/mutate/delete", json={"node_id": "0101"})
        data = client.get("/api/mutations?limit=1").get_json()
        assert [m["operation"] for m in data["mutations"]] == ["delete_node"]


class TestSelectionAndSave:
    def test_select(self, client):
        data = client.post("/api/select", json={"node_id": "0202"}).get_json()
        assert data["selected_id"] == "0202"
        assert data["selected_root_id"] == "02"
        assert client.get("/api/tree").get_json()["selected_id"] == "0202"

    def test_clear_selection(self, client):
        client.post("/api/select", json={"node_id": "0202"})
        data = client.post("/api/select", json={"node_id": None}).get_json()
        assert data["selected_id"] is None

    def test_select_missing(self, client):
        assert client.post("/api/select", json={"node_id": "0909"}).status_code == 404

    def test_save(self, client, document_file):
        client.post("/api/mutate/delete", json={"node_id": "0101"})
        response = client.post("/api/save", json={})
        assert response.status_code == 200
        saved = json.loads(document_file.read_text(encoding="utf-8"))
        assert saved[0]["children"] == []
        assert client.get("/api/status").get_json()["dirty"] is False

    def test_save_elsewhere(self, client, tmp_path):
        target = tmp_path / "export.json"
        data = client.post("/api/save", json={"path": str(target)}).get_json()
        assert data["path"] == str(target)
        assert target.exists()
