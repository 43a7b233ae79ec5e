"""
uitree.cli - Command-line interface.

Main entry point for the uitree CLI tool.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from uitree import __version__
from uitree.commands import config_cmd, edit, serve, show, types_cmd, validate
from uitree.config import ConfigError, load_config


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="uitree",
        description="UI tree document engine: validate, inspect and edit UI-tree documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  uitree validate screens.json            # Check schema and tree invariants
  uitree show screens.json                # Indented tree view
  uitree show screens.json --format json  # Normalized JSON
  uitree apply screens.json edits.json    # Apply editor commands
  uitree renumber screens.json --check    # Report inconsistent IDs
  uitree types screens.json               # List reference types
  uitree serve screens.json               # REST API with autosave

Configuration:
  uitree config path                      # Show config file location
  uitree config show                      # View all settings

For detailed command help: uitree <command> --help
        """,
    )

    # Global options
    parser.add_argument(
        "--version",
        action="version",
        version=f"uitree {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file",
        metavar="PATH",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output (debug logging, tracebacks on error)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a document's schema and tree invariants",
    )
    validate_parser.add_argument("file", type=Path, help="Document to validate")
    validate_parser.add_argument(
        "--lenient-ids",
        action="store_true",
        help="Accept IDs that do not match node positions",
    )
    validate_parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Output the report as JSON",
    )

    # show command
    show_parser = subparsers.add_parser("show", help="Display a document")
    show_parser.add_argument("file", type=Path, help="Document to display")
    show_parser.add_argument(
        "--format",
        choices=["tree", "json", "stats"],
        default="tree",
        help="Output format (default: tree)",
    )
    show_parser.add_argument(
        "--expand",
        action="store_true",
        help="Show the embedded subtrees of reference nodes",
    )
    color_group = show_parser.add_mutually_exclusive_group()
    color_group.add_argument(
        "--color",
        dest="color",
        action="store_true",
        default=None,
        help="Force colored JSON output",
    )
    color_group.add_argument(
        "--no-color",
        dest="color",
        action="store_false",
        help="Disable colored JSON output",
    )

    # apply command
    apply_parser = subparsers.add_parser(
        "apply",
        help="Apply editor commands (add/delete/update/move) to a document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands file format (an array, or {"commands": [...]}):
  [{"action": "add", "node": {...}, "parentId": "01"},
   {"action": "update", "nodeId": "0101", "updates": {"name": "Title"}},
   {"action": "move", "nodeId": "0102", "newParentId": "02"},
   {"action": "delete", "nodeId": "03"}]

Commands run in order and stop at the first failure; the document is
written only when all of them succeed.
""",
    )
    apply_parser.add_argument("file", type=Path, help="Document to edit")
    apply_parser.add_argument("commands", help="Commands JSON file ('-' for stdin)")
    apply_parser.add_argument("-o", "--output", type=Path, help="Write here instead", metavar="PATH")
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Apply in memory only",
    )

    # renumber command
    renumber_parser = subparsers.add_parser(
        "renumber",
        help="Rewrite IDs to match node positions and clear dangling constraint references",
    )
    renumber_parser.add_argument("file", type=Path, help="Document to renumber")
    renumber_parser.add_argument("-o", "--output", type=Path, help="Write here instead", metavar="PATH")
    renumber_parser.add_argument(
        "--check",
        action="store_true",
        help="Only report; exit 1 if renumbering is needed",
    )

    # types command
    types_parser = subparsers.add_parser("types", help="List reference types")
    types_parser.add_argument("file", type=Path, help="Document to inspect")
    types_parser.add_argument(
        "--check",
        nargs=2,
        metavar=("NODE_ID", "TYPE"),
        help="Check whether NODE_ID may reference TYPE",
    )
    types_parser.add_argument("-j", "--json", action="store_true", help="Output JSON")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Serve the REST API over a document")
    serve_parser.add_argument("file", type=Path, help="Document to serve (created on first save)")
    serve_parser.add_argument("--host", help="Bind address (default: server.host)")
    serve_parser.add_argument("--port", type=int, help="Port (default: server.port)")
    serve_parser.add_argument(
        "--no-autosave",
        action="store_true",
        help="Only write the document on POST /api/save",
    )

    # config command
    config_parser = subparsers.add_parser("config", help="Inspect configuration")
    config_sub = config_parser.add_subparsers(dest="config_action")
    config_sub.add_parser("path", help="Show config file location")
    config_sub.add_parser("show", help="Print merged configuration")
    get_parser = config_sub.add_parser("get", help="Print one value")
    get_parser.add_argument("key", help="Dotted key, e.g. autosave.debounce_seconds")
    config_sub.add_parser("check", help="Validate configuration values")

    return parser


def configure_logging(args: argparse.Namespace) -> None:
    """Route library logging to stderr at a level chosen by -v/-q or logging.level."""
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        try:
            level_name = str(load_config(args.config).get("logging.level", "WARNING"))
        except (ConfigError, FileNotFoundError):
            # Reported by the command itself
            level_name = "WARNING"
        level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle no command
    if not args.command:
        parser.print_help()
        return 0

    configure_logging(args)

    try:
        # Dispatch to command handlers
        if args.command == "validate":
            return validate.run(args)
        elif args.command == "show":
            return show.run(args)
        elif args.command in ("apply", "renumber"):
            return edit.run(args)
        elif args.command == "types":
            return types_cmd.run(args)
        elif args.command == "serve":
            return serve.run(args)
        elif args.command == "config":
            return config_cmd.run(args)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
        return 130
    except Exception as e:
        if args.verbose:
            raise
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
