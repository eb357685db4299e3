"""CLI for rendering a session into a template.

Loads a catalog, maps photos to slots in the order given, renders the
requested target profile(s) and writes the artifacts.

Usage:
    # Preview of a 2x2 grid from four captures
    python -m gridcompose.cli grid_4x6_2x2 a.jpg b.jpg c.jpg d.jpg \
        --output /tmp/preview.png

    # Print-resolution PNG from a custom catalog
    python -m gridcompose.cli single_4x6 shot.jpg \
        --catalog booth/templates.yaml --profile print --output /tmp/print.png

    # All three targets at once (written as <stem>-<profile>.<ext>)
    python -m gridcompose.cli strip_2x6_2photos a.jpg b.jpg \
        --profile preview --profile print --profile export --output /tmp/session
"""

import argparse
import sys
import time
from pathlib import Path

from .catalog import load_builtin_catalog, load_catalog
from .common import configure_logging
from .emitter import PRESETS, OutputEmitter, load_profiles
from .errors import GridComposeError
from .templates import PhotoAsset


_EXTENSIONS = {"raw": ".png", "png": ".png", "jpeg": ".jpg"}


def _artifact_path(output: Path, profile_name: str, encoding: str, multiple: bool) -> Path:
    """Output path for one profile.

    A single profile writes to --output as given. Several profiles treat
    --output as a stem and append the profile name and extension.
    """
    if not multiple:
        return output
    return output.parent / f"{output.stem or output.name}-{profile_name}{_EXTENSIONS[encoding]}"


def render(
    template_id: str,
    photo_paths: list[str],
    output_path: str,
    profiles: list[str],
    catalog_path: str | None = None,
    finish: bool = True,
    include_background: bool = True,
    include_logo: bool = True,
    workers: int | None = None,
) -> None:
    """Render photos into *template_id* for each profile and write files."""
    if catalog_path:
        catalog = load_catalog(catalog_path)
        presets = load_profiles(catalog_path)
    else:
        catalog = load_builtin_catalog()
        presets = PRESETS
    emitter = OutputEmitter(catalog, presets=presets)

    photos = [PhotoAsset(Path(p), index=i) for i, p in enumerate(photo_paths)]
    template = catalog.get_by_id(template_id)
    if len(photos) != template.still_count:
        print(
            f"Note: {template_id} takes {template.still_count} photo(s), "
            f"got {len(photos)}"
        )

    options = {
        "finish": finish,
        "include_background": include_background,
        "include_logo": include_logo,
    }
    t0 = time.monotonic()
    if len(profiles) == 1:
        results = {profiles[0]: emitter.render(template_id, photos, profiles[0], **options)}
    else:
        results = emitter.render_many(template_id, photos, profiles, workers=workers, **options)
    elapsed = time.monotonic() - t0

    output = Path(output_path)
    for name, composed in results.items():
        path = composed.save(
            _artifact_path(output, name, composed.encoding, len(results) > 1)
        )
        print(f"  {name:8s} {composed.width}x{composed.height} {composed.encoding:5s} -> {path}")
        print(f"           fingerprint {composed.fingerprint[:16]}")
        if composed.diagnostics:
            print(f"           placeholders: {', '.join(composed.diagnostics)}")

    print(f"\nDone: {len(results)} render(s) in {elapsed:.2f}s")


# ── CLI entry point ───────────────────────────────────────────────


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render captured photos into a layout template.",
    )
    parser.add_argument("template", help="Template id (see 'gridcompose list')")
    parser.add_argument("photos", nargs="*", help="Photo files in capture order")
    parser.add_argument(
        "--output", required=True,
        help="Output file, or a path stem when several profiles are given",
    )
    parser.add_argument(
        "--profile", action="append", dest="profiles",
        help="Target profile: preview, print, print_high, export or a catalog-defined name "
             "(repeatable; default: preview)",
    )
    parser.add_argument(
        "--catalog", default=None,
        help="YAML catalog file (default: built-in catalog)",
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Worker threads when rendering several profiles",
    )
    parser.add_argument("--no-finish", action="store_true", help="Skip the finish overlay")
    parser.add_argument("--no-background", action="store_true", help="Render on plain white")
    parser.add_argument("--no-logo", action="store_true", help="Skip the logo overlay")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(args)

    configure_logging(args.verbose)

    profiles = args.profiles or ["preview"]
    if len(set(profiles)) != len(profiles):
        parser.error("--profile values must be unique")

    try:
        render(
            args.template, args.photos, args.output, profiles,
            catalog_path=args.catalog,
            finish=not args.no_finish,
            include_background=not args.no_background,
            include_logo=not args.no_logo,
            workers=args.workers,
        )
    except (GridComposeError, FileNotFoundError) as e:
        print(f"Render failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
