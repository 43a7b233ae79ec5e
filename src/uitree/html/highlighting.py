"""Syntax highlighting for serialized documents.

Shared by the Flask server (HTML, one string per line) and the CLI
(ANSI terminal output).
"""

from __future__ import annotations

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter, TerminalFormatter
from pygments.lexers import JsonLexer

MAX_DOCUMENT_SIZE = 2_000_000  # characters


def highlight_document(raw_content: str) -> dict:
    """Highlight JSON document text as HTML.

    Args:
        raw_content: Serialized document.

    Returns:
        Dictionary with keys:
        - ``lines``: list of HTML strings (one per line)
        - ``language``: always ``"json"``
        - ``raw``: the original text
    """
    if len(raw_content) > MAX_DOCUMENT_SIZE:
        raise ValueError(f"Document too large to highlight ({len(raw_content)} characters)")

    formatter = HtmlFormatter(nowrap=True)
    # Highlight the whole text, then split, so multi-line tokens keep their state
    highlighted_lines = pygments_highlight(raw_content, JsonLexer(), formatter).split("\n")
    if highlighted_lines and highlighted_lines[-1] == "":
        highlighted_lines.pop()

    return {
        "lines": highlighted_lines,
        "language": "json",
        "raw": raw_content,
    }


def highlight_terminal(raw_content: str) -> str:
    """Highlight JSON document text with ANSI colors."""
    return pygments_highlight(raw_content, JsonLexer(), TerminalFormatter())


def get_pygments_css(style: str = "default", scope: str = ".highlight") -> str:
    """Generate scoped Pygments CSS for the HTML highlighting.

    Args:
        style: Pygments style name (e.g., ``"default"``, ``"monokai"``).
        scope: CSS selector to scope the rules under.
    """
    return HtmlFormatter(style=style).get_style_defs(scope)
