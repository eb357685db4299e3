"""Subcommand dispatcher for gridcompose.

Usage:
    gridcompose list      [--catalog ...] [--stills N]
    gridcompose validate  [--catalog ...]
    gridcompose render    TEMPLATE PHOTO... --output ... [--profile ...]
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="gridcompose",
        description="Template-driven photo compositing for preview, print and export.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("list", help="List enabled templates")
    subparsers.add_parser("validate", help="Validate a template catalog")
    subparsers.add_parser("render", help="Render photos into a template")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command in ("list", "validate"):
        from .catalog_cli import main as catalog_main
        catalog_main([parsed.command, *remaining])
    elif parsed.command == "render":
        from .cli import main as render_main
        render_main(remaining)


if __name__ == "__main__":
    main()
