"""Tests for document syntax highlighting."""

import pytest

from uitree.html.highlighting import (
    MAX_DOCUMENT_SIZE,
    get_pygments_css,
    highlight_document,
    highlight_terminal,
)


class TestHighlightDocument:
    def test_one_html_line_per_source_line(self):
        raw = '[\n  {\n    "id": "01"\n  }\n]'
        result = highlight_document(raw)
        assert result["language"] == "json"
        assert result["raw"] == raw
        assert len(result["lines"]) == 5
        assert "<span" in result["lines"][2]

    def test_too_large(self):
        with pytest.raises(ValueError, match="too large"):
            highlight_document(" " * (MAX_DOCUMENT_SIZE + 1))

    def test_terminal_output_has_ansi(self):
        assert "\x1b[" in highlight_terminal('{"id": "01"}')

    def test_css_is_scoped(self):
        assert ".doc-view" in get_pygments_css(scope=".doc-view")
