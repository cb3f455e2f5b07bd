"""
``inat-phylo`` command line.

    inat-phylo run --user-id <login> [--highlight NODE=GROUP ...]
    inat-phylo info

Annotation options take ``NODE=VALUE`` pairs where NODE is a tip or clade label
of the extracted tree (underscores and spaces are interchangeable).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from inat_phylo import __version__
from inat_phylo.config import get_settings
from inat_phylo.errors import InvalidArgument, ServiceUnavailable, UnknownNodeLabel
from inat_phylo.flows.pipeline import build_tree
from inat_phylo.renderers.circular_tree import TreeAnnotations

logger = logging.getLogger(__name__)


def parse_pair(value: str) -> tuple[str, str]:
    """Split ``NODE=VALUE`` (argparse type for annotation options)."""
    node, sep, rest = value.partition("=")
    if not sep or not node.strip() or not rest.strip():
        msg = f"expected NODE=VALUE, got {value!r}"
        raise argparse.ArgumentTypeError(msg)
    return node.strip(), rest.strip()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="inat-phylo",
        description="Draw the Open Tree of Life subtree spanning your iNaturalist observations",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'run' command - the whole pipeline
    run_parser = subparsers.add_parser("run", help="Fetch, resolve, extract and render a tree")
    run_parser.add_argument("--user-id", type=str, default=None, help="iNaturalist user")
    run_parser.add_argument("--project-id", type=str, default=None, help="iNaturalist project")
    run_parser.add_argument(
        "--iconic-taxon",
        type=str,
        default=None,
        help="Reserved; accepted but not applied yet",
    )
    run_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the tree and images (default: output_dir from settings)",
    )
    run_parser.add_argument(
        "--highlight",
        type=parse_pair,
        action="append",
        default=[],
        metavar="NODE=GROUP",
        help="Shade the clade under NODE and list it under GROUP (repeatable)",
    )
    run_parser.add_argument(
        "--label",
        type=parse_pair,
        action="append",
        default=[],
        metavar="NODE=TEXT",
        help="Write TEXT at NODE (repeatable)",
    )
    run_parser.add_argument(
        "--image",
        type=parse_pair,
        action="append",
        default=[],
        metavar="NODE=PATH",
        help="Place the image at PATH on NODE (repeatable)",
    )
    run_parser.add_argument(
        "--label-format",
        choices=["name", "id", "name_and_id"],
        default=None,
        help="Node labels requested from Open Tree (default: label_format from settings)",
    )
    run_parser.add_argument(
        "--collapse-unary",
        action="store_true",
        help="Drop single-child internal nodes (and their labels) before drawing",
    )
    run_parser.add_argument("--title", type=str, default=None, help="Figure title")

    # 'info' command
    subparsers.add_parser("info", help="Show application info")

    return parser


def cmd_run(args: argparse.Namespace) -> int:
    """Handle the 'run' command."""
    logger.debug("Settings: %s", get_settings())

    annotations = TreeAnnotations(
        highlights=dict(args.highlight),
        labels=dict(args.label),
        images={node: Path(path) for node, path in args.image},
    )
    try:
        result = build_tree(
            user_id=args.user_id,
            project_id=args.project_id,
            iconic_taxon=args.iconic_taxon,
            output_dir=args.output_dir,
            annotations=annotations,
            label_format=args.label_format,
            collapse=args.collapse_unary,
            title=args.title,
        )
    except (InvalidArgument, ServiceUnavailable, UnknownNodeLabel) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Success: {result['tips']} tips from {result['records']} observations")
    for path in result["outputs"]:
        print(f"  {path}")
    return 0


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Debug: {settings.debug}")
    print(f"iNaturalist API: {settings.inat_api_base}")
    print(f"Open Tree API: {settings.otol_api_base}")
    print(f"Output directory: {settings.output_dir}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug or get_settings().debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "run": cmd_run,
        "info": cmd_info,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
