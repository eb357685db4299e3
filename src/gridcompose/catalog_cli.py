"""CLI for inspecting template catalogs.

Usage:
    python -m gridcompose.catalog_cli list [--catalog templates.yaml] [--stills 4]
    python -m gridcompose.catalog_cli validate [--catalog templates.yaml]
"""

import argparse
import sys

from .catalog import load_builtin_catalog, load_catalog
from .common import configure_logging
from .emitter import load_profiles
from .errors import InvalidTarget, InvalidTemplate


def _load(catalog_path):
    if catalog_path:
        return load_catalog(catalog_path)
    return load_builtin_catalog()


def list_templates(catalog_path: str | None = None, still_count: int | None = None) -> None:
    """Print enabled templates in display order."""
    catalog = _load(catalog_path)
    templates = catalog.list_enabled(still_count)
    if not templates:
        print("No enabled templates match.")
        return
    for t in templates:
        print(
            f"  {t.sort_order:3d}  {t.id:32s} {t.still_count} photo(s)  "
            f"{t.canvas_width}x{t.canvas_height}  {t.aspect_ratio.value:5s} "
            f"price {t.price:g}  - {t.name}"
        )


def validate(catalog_path: str | None = None) -> None:
    """Load and validate a catalog, printing every template."""
    catalog = _load(catalog_path)
    print(f"Catalog valid: {len(catalog)} templates")
    for t in catalog:
        state = "" if t.is_enabled else " [disabled]"
        print(f"  {t.id}{state}: {len(t.slots)} slots, {t.canvas_width}x{t.canvas_height}")
    if catalog_path:
        profiles = load_profiles(catalog_path)
        print(f"Profiles: {', '.join(sorted(profiles))}")


def main(args=None):
    parser = argparse.ArgumentParser(description="Inspect and validate template catalogs.")
    parser.add_argument("action", choices=["list", "validate"])
    parser.add_argument("--catalog", default=None, help="YAML catalog (default: built-in)")
    parser.add_argument("--stills", type=int, default=None, help="Only templates taking N photos")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(args)

    configure_logging(args.verbose)

    try:
        if args.action == "list":
            list_templates(args.catalog, args.stills)
        else:
            validate(args.catalog)
    except (InvalidTemplate, InvalidTarget, FileNotFoundError) as e:
        print(f"Invalid catalog: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
