"""Shared test fixtures for gridcompose tests."""

import io

import pytest
from PIL import Image

from gridcompose.templates import AspectRatio, Slot, Template


def _image_bytes(color, size=(64, 64), mode="RGB", fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def image_bytes():
    """Factory for solid-color encoded images: image_bytes(color, size, mode, fmt)."""
    return _image_bytes


@pytest.fixture
def image_file(tmp_path):
    """Factory writing a solid-color PNG into tmp_path and returning its path."""
    def _write(name, color, size=(64, 64), mode="RGB"):
        path = tmp_path / name
        path.write_bytes(_image_bytes(color, size=size, mode=mode))
        return path
    return _write


@pytest.fixture
def make_template():
    """Factory for Template values; defaults to a 1-slot full-bleed 4x6."""
    def _make(**overrides):
        fields = {
            "id": "test_template",
            "name": "Test Template",
            "still_count": 1,
            "price": 50,
            "aspect_ratio": AspectRatio.PRINT_4X6,
            "canvas_width": 1200,
            "canvas_height": 1800,
            "slots": (Slot("s1", 0, 0, 100, 100),),
            "background_color": "#ffffff",
        }
        fields.update(overrides)
        return Template(**fields)
    return _make
