"""Tests for forest statistics."""

from uitree.graph.metrics import compute_stats


class TestComputeStats:
    def test_empty_forest(self):
        stats = compute_stats([])
        assert stats.total_nodes == 0
        assert stats.max_depth == 0

    def test_counts(self, card_page_store):
        stats = compute_stats(card_page_store.forest)
        assert stats.total_nodes == 6
        assert stats.root_nodes == 2
        assert stats.max_depth == 3
        assert stats.node_types == {"UIView": 3, "UILabel": 3}
        assert stats.reference_nodes == 0

    def test_materialized_children_are_not_counted(self, reference_store):
        stats = compute_stats(reference_store.forest)
        assert stats.total_nodes == 7
        assert stats.reference_nodes == 1
        assert stats.node_types["Card"] == 1

    def test_stale_references(self, reference_store):
        reference_store.delete_node("01")
        data = compute_stats(reference_store.forest).to_dict()
        assert data["stale_references"] == 1
        assert data["root_nodes"] == 1
