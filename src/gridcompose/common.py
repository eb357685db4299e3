"""gridcompose.common: shared utilities for template compositing.

Contains: color parsing, path variable resolution, asset loading,
image decoding and CLI logging setup. Nothing here knows about templates.
"""

import base64
import binascii
import io
import logging
import os
import re
from pathlib import Path

from PIL import Image, ImageOps


# Errors that mean "these bytes are not a usable image". Pillow raises
# UnidentifiedImageError (an OSError) for unknown formats, plain OSError for
# truncated data and DecompressionBombError for absurd dimensions.
DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/=\s]+$")


# ── Color utilities ────────────────────────────────────────────────

def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB', 'RRGGBB' or '#RGB' string to (R, G, B) tuple."""
    hex_str = hex_str.lstrip("#")
    if len(hex_str) == 3:
        hex_str = "".join(c * 2 for c in hex_str)
    if len(hex_str) != 6:
        raise ValueError(f"Invalid hex color: '#{hex_str}'")
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Asset loading ──────────────────────────────────────────────────

def load_asset_bytes(source: bytes | str | Path) -> bytes:
    """Return the raw image bytes behind an asset reference.

    Accepted references:
      - bytes: returned as-is.
      - Path, or a string naming an existing file: file contents.
      - 'data:image/...;base64,...' URL: the decoded payload.
      - A bare base64 string.

    Raises:
        FileNotFoundError: A string that is neither an existing file,
            a data URL, nor base64.
        ValueError: A data URL with a malformed payload.
    """
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)

    if isinstance(source, Path):
        return source.read_bytes()

    if source.startswith("data:"):
        header, sep, encoded = source.partition(",")
        if not sep or ";base64" not in header:
            raise ValueError(f"Unsupported data URL: '{source[:40]}...'")
        return _b64decode(encoded)

    # isfile() returns False for names the OS rejects (a long base64 payload).
    if os.path.isfile(source):
        return Path(source).read_bytes()

    if source and _BASE64_RE.match(source):
        try:
            return _b64decode(source)
        except ValueError:
            pass
    raise FileNotFoundError(f"Asset not found: '{source[:70]}'")


def _b64decode(encoded: str) -> bytes:
    """Decode base64, tolerating whitespace and missing padding."""
    encoded = "".join(encoded.split())
    encoded += "=" * (-len(encoded) % 4)
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def decode_image(data: bytes, mode: str = "RGB") -> Image.Image:
    """Decode image bytes into a fully loaded Pillow image.

    EXIF orientation is applied so camera captures land upright, then the
    image is converted to *mode* ("RGB" for photos, "RGBA" for logos).
    Raises one of DECODE_ERRORS when the bytes are not a usable image.
    """
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        img = ImageOps.exif_transpose(img)
        return img.convert(mode)


def load_image(source: bytes | str | Path, mode: str = "RGB") -> Image.Image:
    """Load and decode an asset reference in one step."""
    return decode_image(load_asset_bytes(source), mode=mode)


# ── Logging ────────────────────────────────────────────────────────

def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for CLI entry points."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
