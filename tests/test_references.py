"""Tests for the reference type registry, cycle checks and materialization."""

import pytest
from helpers import constraint_to, node, reference

from uitree.graph.ids import IdentifierCodec
from uitree.graph.nodes import ReferenceNode, find_node
from uitree.graph.references import ReferenceGraph
from uitree.graph.serialize import forest_from_document


@pytest.fixture
def forest(card_page_document):
    return forest_from_document(card_page_document)


@pytest.fixture
def registry(forest):
    graph = ReferenceGraph()
    graph.rebuild(forest)
    return graph


class TestRegistry:
    """Tests for type registration."""

    def test_named_roots_define_types(self, registry):
        assert [t.name for t in registry.available_types()] == ["Card", "Page"]
        assert registry.root_id_for("Card") == "01"
        assert registry.type_for("02") == "Page"
        assert registry.root_for("Page").id == "02"

    def test_unnamed_roots_are_ignored(self):
        forest = forest_from_document([node("01", "  "), node("02", "Real")])
        registry = ReferenceGraph()
        registry.rebuild(forest)
        assert [t.name for t in registry.available_types()] == ["Real"]
        assert registry.type_for("01") is None

    def test_first_root_owns_duplicate_name(self):
        forest = forest_from_document([node("01", "Dup"), node("02", "Dup")])
        registry = ReferenceGraph()
        registry.rebuild(forest)
        assert registry.root_id_for("Dup") == "01"
        assert registry.type_for("02") is None

    def test_rename_matches_rebuild(self, forest, registry):
        forest[0].name = "CardV2"
        registry.handle_root_rename("01", "Card", "CardV2", forest)

        fresh = ReferenceGraph()
        fresh.rebuild(forest)
        assert registry.snapshot() == fresh.snapshot()
        assert not registry.has_type("Card")

    def test_rename_to_shared_name_matches_rebuild(self, forest, registry):
        forest[1].name = "Card"
        registry.handle_root_rename("02", "Page", "Card", forest)

        fresh = ReferenceGraph()
        fresh.rebuild(forest)
        assert registry.snapshot() == fresh.snapshot()
        assert registry.root_id_for("Card") == "01"

    def test_delete_retracts_type(self, forest, registry):
        registry.handle_root_delete("01")
        assert not registry.has_type("Card")
        assert registry.has_type("Page")

    def test_delete_hands_name_to_remaining_root(self):
        forest = forest_from_document([node("01", "Dup"), node("02", "Dup")])
        registry = ReferenceGraph()
        registry.rebuild(forest)
        registry.handle_root_delete("01", forest)
        assert registry.root_id_for("Dup") == "02"


class TestCanSelectType:
    """Tests for cycle-safe type selection."""

    def test_unknown_type(self, forest, registry):
        selection = registry.can_select_type("0201", "Nope", forest)
        assert not selection
        assert selection.reason == 'Node type "Nope" does not exist'

    def test_own_type(self, forest, registry):
        selection = registry.can_select_type("01", "Card", forest)
        assert not selection.allowed
        assert selection.reason == "A node cannot select its own type"

    def test_node_inside_target_root(self, forest, registry):
        selection = registry.can_select_type("0101", "Card", forest)
        assert not selection.allowed
        assert "circular" in selection.reason

    def test_unrelated_node_is_allowed(self, forest, registry):
        selection = registry.can_select_type("0201", "Card", forest)
        assert selection.allowed
        assert selection.reason == ""

    def test_transitive_cycle_through_reference(self, reference_document):
        forest = forest_from_document(reference_document)
        registry = ReferenceGraph()
        registry.rebuild(forest)
        # Page embeds Card, so nothing inside Card may embed Page
        assert registry.embedded_types("Page") == {"Card"}
        assert not registry.can_select_type("0101", "Page", forest)

    def test_never_raises_for_unknown_node(self, forest, registry):
        assert registry.can_select_type("9999", "Card", forest).allowed

    def test_is_descendant(self, forest, registry):
        assert registry.is_descendant("02", "020201", forest)
        assert not registry.is_descendant("020201", "02", forest)
        assert not registry.is_descendant("02", "02", forest)


class TestMaterialize:
    """Tests for reference subtree expansion."""

    def test_copies_target_children_with_new_ids(self, reference_document):
        forest = forest_from_document(reference_document)
        registry = ReferenceGraph()
        registry.rebuild(forest)
        registry.materialize_forest(forest, IdentifierCodec())

        ref = find_node(forest, "0203")
        assert isinstance(ref, ReferenceNode)
        assert not ref.stale
        assert [(c.id, c.name) for c in ref.children] == [("020301", "Title")]
        # The source subtree is untouched
        assert find_node(forest, "0101").name == "Title"

    def test_constraint_pointers_are_remapped(self):
        document = [
            node(
                "01",
                "Card",
                children=[
                    node("0101", "Title", "UILabel"),
                    node("0102", "Icon", constraintPackages=constraint_to("0101")),
                    node("0103", "Badge", constraintPackages=constraint_to("0201")),
                    node("0104", "Frame", constraintPackages=constraint_to("01")),
                ],
            ),
            node("02", "Page", children=[node("0201", "Header"), reference("0202", "Card")]),
        ]
        forest = forest_from_document(document)
        registry = ReferenceGraph()
        registry.rebuild(forest)
        registry.materialize_forest(forest, IdentifierCodec())

        def target(node_id):
            (ref,) = list(find_node(forest, node_id).iter_constraint_references())
            return ref.node_id

        assert target("020202") == "020201"
        assert target("020203") == ""
        assert target("020204") == "0202"
        # Originals keep their pointers
        assert target("0102") == "0101"
        assert target("0103") == "0201"

    def test_missing_type_marks_stale(self):
        forest = forest_from_document([node("01", "Page", children=[reference("0101", "Gone")])])
        registry = ReferenceGraph()
        registry.rebuild(forest)
        registry.materialize_forest(forest, IdentifierCodec())

        ref = find_node(forest, "0101")
        assert ref.stale
        assert ref.children == []
        assert [s.node_id for s in registry.stale_references(forest)] == ["0101"]

    def test_nested_references_expand(self):
        document = [
            node("01", "Leaf", children=[node("0101", "Dot")]),
            node("02", "Mid", children=[reference("0201", "Leaf")]),
            node("03", "Top", children=[reference("0301", "Mid")]),
        ]
        forest = forest_from_document(document)
        registry = ReferenceGraph()
        registry.rebuild(forest)
        registry.materialize_forest(forest, IdentifierCodec())

        assert find_node(forest, "030101").is_reference
        assert find_node(forest, "03010101").name == "Dot"

    def test_self_embedding_is_left_empty(self, caplog):
        forest = forest_from_document([node("01", "Loop", children=[reference("0101", "Loop")])])
        registry = ReferenceGraph()
        registry.rebuild(forest)
        registry.materialize_forest(forest, IdentifierCodec())

        assert find_node(forest, "0101").children == []
        assert "inside itself" in caplog.text

    def test_referencing_nodes(self, reference_document):
        forest = forest_from_document(reference_document)
        registry = ReferenceGraph()
        registry.rebuild(forest)
        assert [n.id for n in registry.referencing_nodes("Card", forest)] == ["0203"]
