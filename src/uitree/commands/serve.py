"""
uitree.commands.serve - Run the REST API over a document.
"""

import argparse
import sys

from uitree.config import load_config
from uitree.server import create_app
from uitree.session import EditorSession


def run(args: argparse.Namespace) -> int:
    """Run the serve command."""
    config = load_config(args.config)
    session = EditorSession(config)
    # None defers to autosave.enabled
    session.open(args.file, autosave=False if args.no_autosave else None)

    host = args.host or config.get("server.host", "127.0.0.1")
    port = args.port or config.get("server.port", 5050)
    app = create_app(session)

    print(f"Serving {args.file} on http://{host}:{port}/api/tree", file=sys.stderr)
    try:
        app.run(host=host, port=port, debug=False, use_reloader=False)
    finally:
        session.close()
    return 0
