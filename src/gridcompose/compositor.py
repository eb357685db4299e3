"""Compositor: layers background, photos, logo and finish into one image.

Layer order, bottom to top:
  1. Background: solid color, then the background image cover-fit over
     the whole canvas if the template has one.
  2. Photo slots in render order (ascending z, ties in declaration order),
     each cover-fit into its rectangle and clipped to its rounded corners.
  3. Logo overlay, contain-fit and centered in its rectangle.
  4. Finish overlay: a faint white diagonal gradient, only when requested.

Photos are mapped to slots by position: photo i fills geometry.slots[i].
A missing or undecodable photo becomes a flat placeholder panel and its
slot id is reported in the diagnostics; it never fails the render. The
background image and logo are required once a template names them, so
failing to decode either raises CompositionFailed.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np
from PIL import Image, ImageDraw

from .common import DECODE_ERRORS, load_image, parse_hex_color
from .errors import CompositionFailed
from .geometry import Rect, ResolvedGeometry
from .templates import PhotoAsset, Template


logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────

DEFAULT_BACKGROUND = (255, 255, 255)
PLACEHOLDER_COLOR = (229, 231, 235)   # neutral light gray
FINISH_MAX_ALPHA = 0.025              # white at the bottom-left corner, fading out
RESAMPLE = Image.Resampling.LANCZOS


@dataclass(frozen=True)
class CompositionResult:
    image: Image.Image
    diagnostics: tuple[str, ...] = ()


# ── Fitting helpers ──────────────────────────────────────────────


def cover_fit(img: Image.Image, width: int, height: int) -> Image.Image:
    """Scale *img* to fill width x height, cropping the overflow centrally.

    Aspect ratio is preserved; nothing is stretched. The crop window is
    computed in source pixels, so the same source produces the same crop
    (relative to the slot) at every output resolution.
    """
    src_w, src_h = img.size
    scale = max(width / src_w, height / src_h)
    crop_w = width / scale
    crop_h = height / scale
    left = (src_w - crop_w) / 2
    top = (src_h - crop_h) / 2
    return img.resize(
        (width, height), RESAMPLE, box=(left, top, left + crop_w, top + crop_h),
    )


def contain_fit(img: Image.Image, width: int, height: int) -> tuple[Image.Image, tuple[int, int]]:
    """Scale *img* to fit inside width x height, centered, without cropping.

    Returns:
        (resized image, (dx, dy) offset of the image inside the box).
    """
    src_w, src_h = img.size
    scale = min(width / src_w, height / src_h)
    new_w = max(1, round(src_w * scale))
    new_h = max(1, round(src_h * scale))
    resized = img.resize((new_w, new_h), RESAMPLE)
    return resized, ((width - new_w) // 2, (height - new_h) // 2)


def rounded_mask(width: int, height: int, radius: int) -> Image.Image | None:
    """L-mode mask of a rounded rectangle, or None when no rounding is needed."""
    radius = min(radius, width // 2, height // 2)
    if radius <= 0:
        return None
    mask = Image.new("L", (width, height), 0)
    draw = ImageDraw.Draw(mask)
    draw.rounded_rectangle([(0, 0), (width - 1, height - 1)], radius=radius, fill=255)
    return mask


# ── Layers ───────────────────────────────────────────────────────


def _draw_background(template: Template, geometry: ResolvedGeometry, include_background: bool) -> Image.Image:
    size = (geometry.width, geometry.height)
    if not include_background:
        return Image.new("RGB", size, DEFAULT_BACKGROUND)

    color = DEFAULT_BACKGROUND
    if template.background_color:
        color = parse_hex_color(template.background_color)
    canvas = Image.new("RGB", size, color)

    if template.background_image:
        try:
            bg = load_image(template.background_image, mode="RGB")
        except DECODE_ERRORS as e:
            raise CompositionFailed(
                "background",
                f"cannot decode '{_describe(template.background_image)}' "
                f"for template '{template.id}': {e}",
            ) from e
        canvas.paste(cover_fit(bg, *size), geometry.background.box[:2])
    return canvas


def _paste_clipped(canvas: Image.Image, tile: Image.Image, rect: Rect, radius: int) -> None:
    canvas.paste(tile, (rect.x, rect.y), rounded_mask(rect.width, rect.height, radius))


def _draw_placeholder(canvas: Image.Image, rect: Rect, radius: int, color) -> None:
    panel = Image.new("RGB", (rect.width, rect.height), color)
    _paste_clipped(canvas, panel, rect, radius)


def _draw_logo(canvas: Image.Image, template: Template, rect: Rect) -> None:
    try:
        logo = load_image(template.logo.url, mode="RGBA")
    except DECODE_ERRORS as e:
        raise CompositionFailed(
            "logo",
            f"cannot decode '{_describe(template.logo.url)}' "
            f"for template '{template.id}': {e}",
        ) from e
    if rect.width == 0 or rect.height == 0:
        return
    fitted, (dx, dy) = contain_fit(logo, rect.width, rect.height)
    canvas.paste(fitted, (rect.x + dx, rect.y + dy), fitted)


def apply_finish(canvas: Image.Image, max_alpha: float = FINISH_MAX_ALPHA) -> Image.Image:
    """Blend a white gradient, strongest bottom-left, over the whole canvas.

    The gradient is defined in relative coordinates so it looks the same at
    every resolution.
    """
    w, h = canvas.size
    u = np.linspace(0.0, 1.0, w, dtype=np.float32)[np.newaxis, :]
    v = np.linspace(1.0, 0.0, h, dtype=np.float32)[:, np.newaxis]
    alpha = (max_alpha * (1.0 - (u + v) / 2.0))[:, :, np.newaxis]

    frame = np.asarray(canvas, dtype=np.float32)
    blended = frame * (1 - alpha) + 255.0 * alpha
    return Image.fromarray(np.clip(np.rint(blended), 0, 255).astype(np.uint8), "RGB")


def _describe(source) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    text = str(source)
    return text if len(text) <= 70 else text[:67] + "..."


# ── Composition ──────────────────────────────────────────────────


def compose(
    geometry: ResolvedGeometry,
    template: Template,
    photos: Sequence[PhotoAsset | bytes | str | Path | None],
    *,
    finish: bool = True,
    include_background: bool = True,
    include_logo: bool = True,
    placeholder_color: tuple[int, int, int] = PLACEHOLDER_COLOR,
) -> CompositionResult:
    """Render one composition from resolved geometry and ordered photos.

    Args:
        geometry: Output of resolve_geometry() for *template*.
        template: Supplies background and logo assets.
        photos: Photos in capture order. Entries may be PhotoAsset values,
            raw sources, or None for "not captured". Extra photos beyond the
            slot count are ignored.
        finish: Apply the finish gradient as the last layer.
        include_background: Draw the template background (else plain white).
        include_logo: Draw the logo overlay if the template has one.
        placeholder_color: Fill for slots without a usable photo.

    Returns:
        CompositionResult with the RGB image and the ids of placeholder slots.

    Raises:
        CompositionFailed: Background image or logo could not be decoded.
    """
    canvas = _draw_background(template, geometry, include_background)

    if len(photos) > len(geometry.slots):
        logger.debug(
            "Template '%s': ignoring %d photos beyond %d slots",
            template.id, len(photos) - len(geometry.slots), len(geometry.slots),
        )

    diagnostics = []
    for i, slot in enumerate(geometry.slots):
        rect = slot.rect
        photo = photos[i] if i < len(photos) else None
        source = photo.source if isinstance(photo, PhotoAsset) else photo

        tile = None
        if source is not None:
            try:
                tile = load_image(source, mode="RGB")
            except DECODE_ERRORS as e:
                logger.warning(
                    "Template '%s', slot '%s': photo %d unusable (%s: %s), "
                    "rendering placeholder",
                    template.id, slot.slot_id, i, type(e).__name__, e,
                )

        if tile is None:
            diagnostics.append(slot.slot_id)
            if rect.width and rect.height:
                _draw_placeholder(canvas, rect, slot.radius, placeholder_color)
            continue

        if rect.width and rect.height:
            _paste_clipped(canvas, cover_fit(tile, rect.width, rect.height), rect, slot.radius)

    if include_logo and template.logo is not None and geometry.logo is not None:
        _draw_logo(canvas, template, geometry.logo)

    if finish:
        canvas = apply_finish(canvas)

    return CompositionResult(image=canvas, diagnostics=tuple(diagnostics))
