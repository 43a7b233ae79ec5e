"""
uitree.commands.validate - Validate document command.

Checks a document against the node schema and the tree invariants:
position-consistent IDs, resolvable constraint references and reference
nodes whose type exists.
"""

import argparse
import json
import sys
from typing import Any, Dict, List

from uitree.graph.errors import ValidationError
from uitree.graph.ids import IdentifierCodec
from uitree.graph.nodes import ReferenceNode
from uitree.graph.references import ReferenceGraph
from uitree.graph.repair import dangling_references
from uitree.graph.serialize import import_document
from uitree.graph.store import iter_owned


def run(args: argparse.Namespace) -> int:
    """
    Run the validate command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for a valid document, 1 otherwise)
    """
    report = validate_file(args.file, strict_ids=not args.lenient_ids)

    if args.json:
        print(json.dumps(report, indent=2))
    elif not args.quiet or not report["valid"]:
        print_report(args.file, report)

    return 0 if report["valid"] else 1


def validate_file(path, strict_ids: bool = True) -> Dict[str, Any]:
    """Validate a document file and return a JSON-compatible report."""
    report: Dict[str, Any] = {
        "valid": False,
        "schema_errors": [],
        "id_violations": [],
        "dangling_references": [],
        "stale_references": [],
    }
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        report["schema_errors"] = [f"cannot read document: {e}"]
        return report

    try:
        forest = import_document(data)
    except ValidationError as e:
        report["schema_errors"] = e.errors
        return report

    codec = IdentifierCodec()
    registry = ReferenceGraph()
    registry.rebuild(forest)

    if strict_ids:
        report["id_violations"] = [str(v) for v in codec.violations(forest)]
    report["dangling_references"] = [str(d) for d in dangling_references(forest)]
    report["stale_references"] = [
        f"{node.id} --> type '{node.referenced_root_type}' (missing)"
        for node in iter_owned(forest)
        if isinstance(node, ReferenceNode) and not registry.has_type(node.referenced_root_type)
    ]
    report["valid"] = not any(
        report[key] for key in ("id_violations", "dangling_references", "stale_references")
    )
    return report


def print_report(path, report: Dict[str, Any]) -> None:
    sections: List[tuple] = [
        ("Schema errors", report["schema_errors"]),
        ("ID violations", report["id_violations"]),
        ("Dangling constraint references", report["dangling_references"]),
        ("Stale reference nodes", report["stale_references"]),
    ]
    for title, items in sections:
        if items:
            print(f"{title} ({len(items)}):", file=sys.stderr)
            for item in items:
                print(f"  {item}", file=sys.stderr)

    if report["valid"]:
        print(f"✓ {path}: valid")
    else:
        print(f"✗ {path}: invalid", file=sys.stderr)
