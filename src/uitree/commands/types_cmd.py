"""
uitree.commands.types_cmd - List reference types and check type selections.
"""

import argparse
import json

from uitree.commands import open_session
from uitree.graph.nodes import ReferenceNode
from uitree.graph.store import iter_owned


def run(args: argparse.Namespace) -> int:
    """Run the types command."""
    session = open_session(args, args.file)
    if session is None:
        return 1
    store = session.store

    if args.check:
        node_id, type_name = args.check
        selection = store.can_select_type(node_id, type_name)
        if args.json:
            print(json.dumps({"allowed": selection.allowed, "reason": selection.reason}))
        elif selection:
            print(f"✓ {node_id} may reference {type_name}")
        else:
            print(f"✗ {node_id} may not reference {type_name}: {selection.reason}")
        return 0 if selection else 1

    types = store.registry.available_types()
    stale = store.stale_references()
    if args.json:
        print(
            json.dumps(
                {
                    "types": [{"name": t.name, "root_id": t.root_id} for t in types],
                    "stale_references": [
                        {"node_id": s.node_id, "type_name": s.type_name} for s in stale
                    ],
                },
                indent=2,
            )
        )
        return 0

    if not types:
        print("No reference types defined (name a root node to define one)")
    for t in types:
        users = sum(
            1
            for node in iter_owned(store.forest)
            if isinstance(node, ReferenceNode) and node.referenced_root_type == t.name
        )
        print(f"{t.name:<30} root {t.root_id}  ({users} reference(s))")
    for s in stale:
        print(f"Stale: {s}")
    return 0
