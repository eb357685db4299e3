#!/usr/bin/env python3
"""Generate synthetic captures and branding assets for the demo catalog.

Creates 4 numbered "photos" (landscape, like a webcam capture), a paper
background and a transparent logo in examples/demo-assets/.

Usage:
    python examples/generate_demo_photos.py
    # Then render:
    gridcompose render polaroid_2x2 examples/demo-assets/photo-*.jpg \
        --catalog examples/demo-catalog.yaml \
        --profile preview --profile print --profile export \
        --output examples/demo-renders/session
"""

import numpy as np
from pathlib import Path
from PIL import Image, ImageDraw, ImageFont

OUTPUT_DIR = Path(__file__).resolve().parent / "demo-assets"
PHOTO_SIZE = (1280, 720)

PHOTOS = [
    ("photo-1", (180, 60, 60)),    # red
    ("photo-2", (60, 60, 180)),    # blue
    ("photo-3", (60, 160, 60)),    # green
    ("photo-4", (200, 130, 40)),   # orange
]


def _font(size):
    try:
        return ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default()


def _make_photo(label: str, color: tuple[int, int, int]) -> Image.Image:
    """Solid color with a centered number; the number shows where crops land."""
    img = Image.new("RGB", PHOTO_SIZE, color)
    draw = ImageDraw.Draw(img)
    font = _font(320)
    bbox = draw.textbbox((0, 0), label, font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    draw.text(((PHOTO_SIZE[0] - tw) / 2, (PHOTO_SIZE[1] - th) / 2), label,
              fill=(255, 255, 255), font=font)
    return img


def _make_paper(size=(600, 900)) -> Image.Image:
    """Warm off-white with mild noise."""
    rng = np.random.default_rng(7)
    base = np.full((size[1], size[0], 3), (246, 240, 228), dtype=np.int16)
    noise = rng.integers(-6, 7, size=(size[1], size[0], 1), dtype=np.int16)
    return Image.fromarray(np.clip(base + noise, 0, 255).astype(np.uint8))


def _make_logo(size=(600, 150)) -> Image.Image:
    img = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.rounded_rectangle([(0, 0), (size[0] - 1, size[1] - 1)], radius=40,
                           fill=(20, 20, 20, 220))
    font = _font(90)
    bbox = draw.textbbox((0, 0), "BOOTH", font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    draw.text(((size[0] - tw) / 2, (size[1] - th) / 2 - bbox[1]), "BOOTH",
              fill=(255, 255, 255, 255), font=font)
    return img


def main():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    for i, (name, color) in enumerate(PHOTOS, start=1):
        _make_photo(str(i), color).save(OUTPUT_DIR / f"{name}.jpg", quality=90)
        print(f"  wrote {name}.jpg")
    _make_paper().save(OUTPUT_DIR / "paper.png")
    _make_logo().save(OUTPUT_DIR / "logo.png")
    print("  wrote paper.png, logo.png")
    print(f"\nDone. Assets in {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
