"""Tests for the compositor.

Exact-color assertions use finish=False; the finish gradient shifts every
pixel slightly toward white.
"""

import base64
import io

import numpy as np
import pytest
from PIL import Image

from gridcompose.catalog import load_builtin_catalog
from gridcompose.compositor import (
    PLACEHOLDER_COLOR,
    apply_finish,
    compose,
    contain_fit,
    cover_fit,
    rounded_mask,
)
from gridcompose.errors import CompositionFailed
from gridcompose.geometry import resolve_geometry
from gridcompose.templates import LogoOverlay, PhotoAsset, Slot

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


def _thirds_png(size=(300, 100)) -> bytes:
    """Landscape image: red | green | blue vertical thirds."""
    w, h = size
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, : w // 3] = RED
    arr[:, w // 3 : 2 * w // 3] = GREEN
    arr[:, 2 * w // 3 :] = BLUE
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()


def _pixel(img, x, y):
    return tuple(img.getpixel((x, y)))[:3]


def _render(template, photos, size=(120, 180), **kwargs):
    kwargs.setdefault("finish", False)
    geometry = resolve_geometry(template, *size)
    return compose(geometry, template, photos, **kwargs)


class TestCoverFit:
    def test_output_size_exact(self):
        img = Image.new("RGB", (640, 480))
        assert cover_fit(img, 100, 300).size == (100, 300)

    def test_crops_center_instead_of_stretching(self):
        img = Image.open(io.BytesIO(_thirds_png())).convert("RGB")
        fitted = cover_fit(img, 50, 50)
        # A square window over a 3:1 image keeps only the middle third.
        assert _pixel(fitted, 12, 25) == GREEN
        assert _pixel(fitted, 37, 25) == GREEN

    def test_same_crop_at_every_scale(self):
        img = Image.open(io.BytesIO(_thirds_png())).convert("RGB")
        small = np.asarray(cover_fit(img, 40, 40).resize((20, 20), Image.Resampling.BOX))
        large = np.asarray(cover_fit(img, 120, 120).resize((20, 20), Image.Resampling.BOX))
        # Filter support reaches a few pixels past the crop box at the edges.
        diff = np.abs(small[:, 3:-3].astype(int) - large[:, 3:-3].astype(int))
        assert diff.max() <= 2


class TestContainFit:
    def test_fits_inside_and_centers(self):
        img = Image.new("RGBA", (100, 50))
        fitted, (dx, dy) = contain_fit(img, 80, 80)
        assert fitted.size == (80, 40)
        assert (dx, dy) == (0, 20)


class TestRoundedMask:
    def test_no_radius_no_mask(self):
        assert rounded_mask(50, 50, 0) is None

    def test_corners_masked(self):
        mask = rounded_mask(50, 50, 10)
        assert mask.getpixel((0, 0)) == 0
        assert mask.getpixel((25, 25)) == 255

    def test_radius_clamped_to_half_side(self):
        mask = rounded_mask(20, 10, 100)
        assert mask.getpixel((10, 5)) == 255


class TestCompose:
    def test_single_photo_fills_canvas(self, make_template, image_bytes):
        result = _render(make_template(), [image_bytes(RED)])
        assert result.image.size == (120, 180)
        assert _pixel(result.image, 60, 90) == RED
        assert result.diagnostics == ()

    def test_zero_photos_gives_placeholder(self):
        template = load_builtin_catalog().get_by_id("single_4x6")
        result = _render(template, [], size=(1200, 1800))
        assert result.diagnostics == ("s1",)
        arr = np.asarray(result.image)
        assert (arr == np.array(PLACEHOLDER_COLOR, dtype=np.uint8)).all()

    def test_fewer_photos_fill_leading_slots(self, image_bytes):
        template = load_builtin_catalog().get_by_id("grid_4x6_2x2")
        result = _render(template, [image_bytes(RED), image_bytes(BLUE)], size=(400, 600))
        assert result.diagnostics == ("s3", "s4")
        assert _pixel(result.image, 100, 150) == RED       # s1
        assert _pixel(result.image, 300, 150) == BLUE      # s2
        assert _pixel(result.image, 100, 450) == PLACEHOLDER_COLOR
        assert _pixel(result.image, 300, 450) == PLACEHOLDER_COLOR

    def test_gutters_show_background(self, image_bytes):
        template = load_builtin_catalog().get_by_id("grid_4x6_2x2")
        photos = [image_bytes(RED)] * 4
        result = _render(template, photos, size=(400, 600))
        assert _pixel(result.image, 200, 300) == WHITE
        assert _pixel(result.image, 2, 2) == WHITE

    def test_extra_photos_ignored(self, make_template, image_bytes):
        result = _render(make_template(), [image_bytes(RED), image_bytes(BLUE)])
        assert _pixel(result.image, 60, 90) == RED
        assert result.diagnostics == ()

    def test_corrupt_photo_becomes_placeholder(self, make_template):
        result = _render(make_template(), [b"not an image"])
        assert result.diagnostics == ("s1",)
        assert _pixel(result.image, 60, 90) == PLACEHOLDER_COLOR

    def test_missing_photo_file_becomes_placeholder(self, make_template, tmp_path):
        result = _render(make_template(), [PhotoAsset(tmp_path / "gone.jpg")])
        assert result.diagnostics == ("s1",)

    def test_none_entry_becomes_placeholder(self, image_bytes):
        template = load_builtin_catalog().get_by_id("strip_2x6_2photos")
        result = _render(template, [None, image_bytes(GREEN)], size=(60, 180))
        assert result.diagnostics == ("s1",)

    def test_bare_base64_photo_rendered(self, make_template, image_bytes):
        # Uncompressed BMP keeps the payload well past the OS path length limit.
        encoded = base64.b64encode(image_bytes(RED, fmt="BMP")).decode()
        assert len(encoded) > 4096
        result = _render(make_template(), [encoded])
        assert result.diagnostics == ()
        assert _pixel(result.image, 60, 90) == RED

    def test_bare_base64_background(self, make_template, image_bytes):
        encoded = base64.b64encode(image_bytes(BLUE, fmt="BMP")).decode()
        template = make_template(background_image=encoded, slots=(Slot("s1", 50, 50, 50, 50),))
        result = _render(template, [image_bytes(RED)])
        assert _pixel(result.image, 10, 10) == BLUE

    def test_photo_asset_and_path_sources(self, make_template, image_file):
        path = image_file("blue.png", BLUE)
        assert _pixel(_render(make_template(), [PhotoAsset(path)]).image, 5, 5) == BLUE
        assert _pixel(_render(make_template(), [str(path)]).image, 5, 5) == BLUE

    def test_custom_placeholder_color(self, make_template):
        result = _render(make_template(), [], placeholder_color=(1, 2, 3))
        assert _pixel(result.image, 60, 90) == (1, 2, 3)

    def test_higher_z_drawn_on_top(self, make_template, image_bytes):
        template = make_template(
            still_count=2,
            slots=(
                Slot("front", 0, 0, 100, 100, z_index=2),
                Slot("back", 0, 0, 100, 100, z_index=1),
            ),
        )
        # Render order is [back, front]: the first photo goes to 'back'.
        result = _render(template, [image_bytes(RED), image_bytes(BLUE)])
        assert _pixel(result.image, 60, 90) == BLUE

    def test_equal_z_later_declaration_on_top(self, make_template, image_bytes):
        template = make_template(
            still_count=2,
            slots=(Slot("a", 0, 0, 100, 100), Slot("b", 0, 0, 100, 100)),
        )
        result = _render(template, [image_bytes(RED), image_bytes(BLUE)])
        assert _pixel(result.image, 60, 90) == BLUE

    def test_rounded_corners_show_background(self, make_template, image_bytes):
        template = make_template(
            background_color="#000000",
            slots=(Slot("s1", 0, 0, 100, 100, radius=300),),
        )
        result = _render(template, [image_bytes(RED)], size=(1200, 1800))
        assert _pixel(result.image, 0, 0) == (0, 0, 0)
        assert _pixel(result.image, 600, 900) == RED

    def test_wide_photo_not_stretched_into_slot(self, make_template):
        template = make_template(
            canvas_width=1200, canvas_height=1200,
            slots=(Slot("s1", 0, 0, 100, 100),),
        )
        result = _render(template, [_thirds_png()], size=(90, 90))
        assert _pixel(result.image, 20, 45) == GREEN
        assert _pixel(result.image, 70, 45) == GREEN

    def test_deterministic(self, image_bytes):
        template = load_builtin_catalog().get_by_id("grid_4x6_2x2")
        photos = [image_bytes(c) for c in (RED, GREEN, BLUE, RED)]
        a = _render(template, photos, size=(200, 300), finish=True)
        b = _render(template, photos, size=(200, 300), finish=True)
        assert np.array_equal(np.asarray(a.image), np.asarray(b.image))


class TestBackground:
    def test_solid_color(self, make_template):
        template = make_template(
            background_color="#102030",
            slots=(Slot("s1", 25, 25, 50, 50),),
        )
        result = _render(template, [])
        assert _pixel(result.image, 2, 2) == (16, 32, 48)

    def test_image_covers_canvas(self, make_template, image_file, image_bytes):
        bg = image_file("bg.png", GREEN, size=(40, 10))
        template = make_template(
            background_image=str(bg),
            slots=(Slot("s1", 25, 25, 50, 50),),
        )
        result = _render(template, [image_bytes(RED)])
        assert _pixel(result.image, 2, 2) == GREEN
        assert _pixel(result.image, 117, 177) == GREEN
        assert _pixel(result.image, 60, 90) == RED

    def test_include_background_false_is_white(self, make_template, image_file):
        bg = image_file("bg.png", GREEN)
        template = make_template(
            background_color="#000000",
            background_image=str(bg),
            slots=(Slot("s1", 25, 25, 50, 50),),
        )
        result = _render(template, [], include_background=False)
        assert _pixel(result.image, 2, 2) == WHITE

    def test_corrupt_background_fails(self, make_template, tmp_path):
        bad = tmp_path / "bg.png"
        bad.write_bytes(b"garbage")
        template = make_template(background_image=str(bad))
        with pytest.raises(CompositionFailed) as exc_info:
            _render(template, [])
        assert exc_info.value.asset == "background"

    def test_missing_background_fails(self, make_template, tmp_path):
        template = make_template(background_image=str(tmp_path / "missing.png"))
        with pytest.raises(CompositionFailed, match="background"):
            _render(template, [])


class TestLogo:
    def _logo_template(self, make_template, url):
        return make_template(
            canvas_width=1000, canvas_height=1000,
            slots=(Slot("s1", 0, 0, 100, 50),),
            logo=LogoOverlay(str(url), 25, 60, 50, 20),
        )

    def test_logo_contained_in_rect(self, make_template, image_file):
        # 2:1 logo in a 50x20 (%) rect of a 100x100 canvas -> 40x20 px, centered.
        logo = image_file("logo.png", BLUE + (255,), size=(80, 40), mode="RGBA")
        template = self._logo_template(make_template, logo)
        result = _render(template, [], size=(100, 100))
        assert _pixel(result.image, 50, 70) == BLUE
        assert _pixel(result.image, 27, 70) == WHITE   # left letterbox

    def test_logo_alpha_respected(self, make_template, image_file):
        logo = image_file("logo.png", (0, 0, 255, 0), size=(80, 40), mode="RGBA")
        template = self._logo_template(make_template, logo)
        result = _render(template, [], size=(100, 100))
        assert _pixel(result.image, 50, 70) == WHITE

    def test_logo_drawn_above_slots(self, make_template, image_file, image_bytes):
        logo = image_file("logo.png", BLUE + (255,), size=(10, 10), mode="RGBA")
        template = make_template(
            canvas_width=1000, canvas_height=1000,
            logo=LogoOverlay(str(logo), 40, 40, 20, 20),
        )
        result = _render(template, [image_bytes(RED)], size=(100, 100))
        assert _pixel(result.image, 50, 50) == BLUE
        assert _pixel(result.image, 10, 10) == RED

    def test_include_logo_false_skips_logo(self, make_template, image_file):
        logo = image_file("logo.png", BLUE + (255,), size=(80, 40), mode="RGBA")
        template = self._logo_template(make_template, logo)
        result = _render(template, [], size=(100, 100), include_logo=False)
        assert _pixel(result.image, 50, 70) == WHITE

    def test_corrupt_logo_fails(self, make_template, tmp_path):
        bad = tmp_path / "logo.png"
        bad.write_bytes(b"\x89PNG broken")
        template = self._logo_template(make_template, bad)
        with pytest.raises(CompositionFailed) as exc_info:
            _render(template, [], size=(100, 100))
        assert exc_info.value.asset == "logo"


class TestFinish:
    def test_brightens_toward_bottom_left(self):
        canvas = Image.new("RGB", (100, 100), (0, 0, 0))
        out = np.asarray(apply_finish(canvas))
        bottom_left = int(out[99, 0, 0])
        top_right = int(out[0, 99, 0])
        assert bottom_left > top_right
        assert top_right == 0

    def test_subtle(self):
        canvas = Image.new("RGB", (50, 50), (0, 0, 0))
        assert np.asarray(apply_finish(canvas)).max() <= 10

    def test_finish_toggle_changes_output(self, make_template, image_bytes):
        photos = [image_bytes((0, 0, 0))]
        plain = _render(make_template(), photos, finish=False)
        finished = _render(make_template(), photos, finish=True)
        assert not np.array_equal(np.asarray(plain.image), np.asarray(finished.image))
