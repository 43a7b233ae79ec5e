"""
uitree.commands.edit - Offline editing commands: apply and renumber.

``apply`` runs a batch of editor commands against a document and writes
the result; ``renumber`` rewrites a document whose IDs no longer match
node positions.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List

from uitree.commands import open_session
from uitree.graph.commands import apply_commands, describe_command
from uitree.graph.errors import ValidationError
from uitree.graph.ids import IdentifierCodec
from uitree.graph.repair import dangling_references
from uitree.graph.serialize import load_document


def run(args: argparse.Namespace) -> int:
    """Dispatch to apply or renumber."""
    if args.command == "apply":
        return run_apply(args)
    return run_renumber(args)


def _read_commands(source: str) -> List[Any]:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("commands")
    if not isinstance(data, list):
        raise ValueError("commands file must hold an array or {\"commands\": [...]}")
    return data


def run_apply(args: argparse.Namespace) -> int:
    """Apply commands; the document is written only if every command succeeds."""
    commands = _read_commands(args.commands)
    session = open_session(args, args.file)
    if session is None:
        return 1

    results = apply_commands(session.store, commands)
    for result in results:
        if result.success:
            if not args.quiet:
                print(f"✓ {describe_command(result.command)}")
        else:
            print(f"✗ {describe_command(result.command)}: {result.error}", file=sys.stderr)

    skipped = len(commands) - len(results)
    if skipped:
        print(f"Stopped: {skipped} command(s) not attempted", file=sys.stderr)
    if not all(r.success for r in results):
        print("Document not written.", file=sys.stderr)
        return 1

    if args.dry_run:
        print(f"Dry run: {len(results)} command(s) applied, nothing written")
        return 0
    target = session.save(args.output or args.file)
    if not args.quiet:
        print(f"Wrote {target}")
    return 0


def run_renumber(args: argparse.Namespace) -> int:
    """Renumber IDs and clear dangling constraint references."""
    try:
        raw_forest = load_document(args.file)
    except (OSError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    violations = IdentifierCodec().violations(raw_forest)
    dangling = dangling_references(raw_forest)
    if not args.quiet:
        for violation in violations:
            print(f"  ID {violation}")
        for reference in dangling:
            print(f"  Constraint {reference}")

    if not violations and not dangling:
        if not args.quiet:
            print(f"✓ {args.file}: IDs already consistent")
        return 0
    if args.check:
        print(
            f"✗ {args.file}: {len(violations)} ID violation(s), "
            f"{len(dangling)} dangling reference(s)",
            file=sys.stderr,
        )
        return 1

    session = open_session(args, args.file)
    if session is None:
        return 1
    target = session.save(args.output or args.file)
    if not args.quiet:
        print(f"Renumbered {len(violations)} node(s), wrote {target}")
    return 0
