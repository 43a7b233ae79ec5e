"""Shared pytest fixtures for uitree tests."""

import pytest
from helpers import node, reference


@pytest.fixture
def card_page_document():
    """Two roots: Card (01) with a Title, Page (02) with Header and Body."""
    return [
        node("01", "Card", children=[node("0101", "Title", "UILabel")]),
        node(
            "02",
            "Page",
            children=[
                node("0201", "Header", "UILabel"),
                node("0202", "Body", children=[node("020201", "Text", "UILabel")]),
            ],
        ),
    ]


@pytest.fixture
def reference_document(card_page_document):
    """Card/Page where Page also embeds Card through reference node 0203."""
    card_page_document[1]["children"].append(reference("0203", "Card", "CardRef"))
    return card_page_document


@pytest.fixture
def store():
    """Empty TreeStore."""
    from uitree.graph.store import TreeStore

    return TreeStore()


@pytest.fixture
def card_page_store(card_page_document):
    """TreeStore loaded with the Card/Page forest."""
    from uitree.graph.store import TreeStore

    tree_store = TreeStore()
    tree_store.set_tree(card_page_document)
    return tree_store


@pytest.fixture
def reference_store(reference_document):
    """TreeStore whose Page root embeds Card."""
    from uitree.graph.store import TreeStore

    tree_store = TreeStore()
    tree_store.set_tree(reference_document)
    return tree_store


@pytest.fixture
def document_file(tmp_path, card_page_document):
    """Card/Page document written to disk as a bare JSON array."""
    import json

    path = tmp_path / "tree.json"
    path.write_text(json.dumps(card_page_document, indent=2), encoding="utf-8")
    return path
