"""Tests for document serialization, validation and file I/O."""

import json

import pytest
from helpers import constraint_to, node, reference

from uitree.graph.errors import ValidationError
from uitree.graph.nodes import ReferenceNode, StandardNode
from uitree.graph.serialize import (
    DOCUMENT_VERSION,
    dumps_document,
    export_state,
    forest_from_document,
    forest_to_document,
    import_document,
    load_document,
    node_from_dict,
    node_to_dict,
    sanitize_node,
    save_document,
    validate_forest,
    validate_node,
)


class TestValidateNode:
    def test_valid_node(self, card_page_document):
        assert validate_node(card_page_document[1]) == []

    def test_required_fields(self):
        errors = validate_node({"layout": "vertical"})
        assert "node: id is required" in errors
        assert "node: name is required" in errors
        assert "node: type is required" in errors

    def test_strict_ids(self):
        assert validate_node(node("abc", "A")) == ["abc: invalid node id 'abc'"]
        assert validate_node(node("abc", "A"), strict_ids=False) == []

    def test_field_limits(self):
        errors = validate_node(node("01", "x" * 101, "T" * 51, description="d" * 1001))
        assert len(errors) == 3

    def test_children_are_checked(self):
        errors = validate_node(node("01", "A", children=[{"id": "0101", "name": "B"}]))
        assert errors == ["0101: type is required"]

    def test_reference_requires_type(self):
        errors = validate_node({"id": "01", "name": "R", "type": "X", "isVirtual": True})
        assert errors == ["01: reference node requires referencedRootType"]

    def test_malformed_constraint_packages(self):
        errors = validate_node(node("01", "A", constraintPackages=[{"constraints": [{"value": 1}]}]))
        assert len(errors) == 1
        assert "string type" in errors[0]

    def test_duplicate_roots(self):
        errors = validate_forest([node("01", "A"), node("01", "B")])
        assert errors == ["01: duplicate root id"]

    def test_document_must_be_array(self):
        assert validate_forest({"id": "01"}) == ["document must be an array of root nodes"]


class TestNodeConversion:
    def test_round_trip_preserves_unknown_keys(self):
        data = node(
            "01",
            "Card",
            layout="vertical",
            attributes={"backgroundColor": "#fff"},
            constraintPackages=constraint_to("0101"),
            description="A card",
            functions=[{"name": "tap"}],
        )
        assert node_to_dict(node_from_dict(data)) == data

    def test_reference_node(self):
        built = node_from_dict(reference("0101", "Card"))
        assert isinstance(built, ReferenceNode)
        assert built.referenced_root_type == "Card"

        built.children = [StandardNode(id="010101", name="Copy", type="UIView")]
        assert node_to_dict(built)["children"] == []
        assert node_to_dict(built, include_materialized=True)["children"][0]["name"] == "Copy"

    def test_stale_flag_is_emitted(self):
        built = node_from_dict(reference("0101", "Gone"))
        built.stale = True
        assert node_to_dict(built)["isStale"] is True

    def test_invalid_node_raises(self):
        with pytest.raises(ValidationError, match="Invalid node") as exc_info:
            node_from_dict({"id": "01"})
        assert len(exc_info.value.errors) == 2

    def test_forest_from_document(self, card_page_document):
        forest = forest_from_document(card_page_document)
        assert [r.name for r in forest] == ["Card", "Page"]
        assert forest_to_document(forest) == card_page_document


class TestSanitize:
    def test_fills_defaults(self):
        cleaned = sanitize_node({"layout": "diagonal", "constraints": [], "children": [{}, 3]})
        assert cleaned["id"] == "01"
        assert cleaned["name"] == "Untitled"
        assert cleaned["type"] == "UIView"
        assert cleaned["layout"] == "horizontal"
        assert cleaned["description"] == ""
        assert "constraints" not in cleaned
        assert len(cleaned["children"]) == 1

    def test_drops_bad_attribute_keys(self):
        cleaned = sanitize_node(node("01", "A", attributes={"ok": 1, "k" * 51: 2, "": 3}))
        assert cleaned["attributes"] == {"ok": 1}


class TestEnvelope:
    def test_export_state(self, card_page_document):
        envelope = export_state(forest_from_document(card_page_document))
        assert envelope["version"] == DOCUMENT_VERSION
        assert "exportTime" in envelope
        assert envelope["treeData"] == card_page_document

    def test_import_accepts_bare_array_and_envelope(self, card_page_document):
        bare = import_document(card_page_document)
        wrapped = import_document({"version": "1.0.0", "treeData": card_page_document})
        assert forest_to_document(bare) == forest_to_document(wrapped)

    def test_unsupported_version(self, card_page_document):
        with pytest.raises(ValidationError, match="Unsupported version: 2.0.0"):
            import_document({"version": "2.0.0", "treeData": card_page_document})

    def test_missing_version_warns(self, card_page_document, caplog):
        import_document({"treeData": card_page_document})
        assert "version not specified" in caplog.text

    def test_missing_tree_data(self):
        with pytest.raises(ValidationError, match="treeData"):
            import_document({"version": "1.0.0"})

    def test_sanitize_on_import(self):
        forest = import_document([{"id": "01"}], sanitize=True)
        assert forest[0].name == "Untitled"


class TestFiles:
    def test_save_and_load(self, tmp_path, card_page_document):
        path = tmp_path / "doc.json"
        save_document(path, forest_from_document(card_page_document))

        text = path.read_text(encoding="utf-8")
        assert text.endswith("\n")
        assert json.loads(text) == card_page_document
        assert forest_to_document(load_document(path)) == card_page_document
        assert list(tmp_path.iterdir()) == [path]

    def test_save_envelope(self, tmp_path, card_page_document):
        path = tmp_path / "doc.json"
        save_document(path, forest_from_document(card_page_document), envelope=True)
        assert json.loads(path.read_text(encoding="utf-8"))["version"] == DOCUMENT_VERSION

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(ValidationError, match="not valid JSON"):
            load_document(path)

    def test_dumps_compact(self, card_page_document):
        text = dumps_document(forest_from_document(card_page_document), indent=None)
        assert "\n" not in text
