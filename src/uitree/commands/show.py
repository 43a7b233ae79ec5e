"""
uitree.commands.show - Display a document as a tree, JSON or statistics.
"""

import argparse
import json
import sys
from typing import List

from uitree.commands import open_session
from uitree.graph.metrics import compute_stats
from uitree.graph.nodes import ReferenceNode, UINode
from uitree.graph.serialize import forest_to_document
from uitree.html.highlighting import highlight_terminal


def run(args: argparse.Namespace) -> int:
    """Run the show command."""
    session = open_session(args, args.file)
    if session is None:
        return 1
    store = session.store

    last = store.mutation_log.last()
    if last is not None and last.renumbered:
        print("Note: document IDs were inconsistent and have been renumbered", file=sys.stderr)

    if args.format == "json":
        text = json.dumps(
            forest_to_document(store.forest, include_materialized=args.expand),
            indent=2,
            ensure_ascii=False,
        )
        use_color = args.color or (args.color is None and sys.stdout.isatty())
        print(highlight_terminal(text).rstrip("\n") if use_color else text)
    elif args.format == "stats":
        stats = compute_stats(store.forest)
        print(f"Nodes:      {stats.total_nodes}")
        print(f"Roots:      {stats.root_nodes}")
        print(f"Max depth:  {stats.max_depth}")
        print(f"References: {stats.reference_nodes} ({stats.stale_references} stale)")
        print("Types:")
        for name, count in sorted(stats.node_types.items()):
            print(f"  {name}: {count}")
    else:
        for line in render_tree(store.forest, expand=args.expand):
            print(line)
    return 0


def render_tree(forest: List[UINode], expand: bool = False) -> List[str]:
    """Render the forest as indented lines: ``id  name (type)``."""
    lines: List[str] = []

    def _render(node: UINode, depth: int) -> None:
        label = f"{'  ' * depth}{node.id}  {node.name} ({node.type})"
        if isinstance(node, ReferenceNode):
            label += f" -> {node.referenced_root_type}"
            if node.stale:
                label += " [missing]"
        lines.append(label)
        if isinstance(node, ReferenceNode) and not expand:
            return
        for child in node.children:
            _render(child, depth + 1)

    for root in forest:
        _render(root, 0)
    return lines
