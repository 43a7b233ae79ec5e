"""Document viewing helpers.

This module provides Pygments highlighting of serialized documents for the
REST viewer endpoint and the ``show --color`` command.
"""

from uitree.html.highlighting import get_pygments_css, highlight_document, highlight_terminal

__all__ = ["get_pygments_css", "highlight_document", "highlight_terminal"]
