"""Tests for the template data model."""

import dataclasses
from pathlib import Path

import pytest

from gridcompose.templates import AspectRatio, PhotoAsset, Slot


class TestAspectRatio:
    def test_numeric_pair(self):
        assert (AspectRatio.PRINT_4X6.width, AspectRatio.PRINT_4X6.height) == (4, 6)
        assert (AspectRatio.WIDESCREEN.width, AspectRatio.WIDESCREEN.height) == (16, 9)

    def test_lookup_by_tag(self):
        assert AspectRatio("1:1") is AspectRatio.SQUARE

    def test_labels(self):
        assert AspectRatio.WALLET_2X3.label == "2x3 Wallet Size"


class TestSlot:
    def test_default_z_is_one(self):
        assert Slot("s1", 0, 0, 10, 10).effective_z == 1

    def test_explicit_z(self):
        assert Slot("s1", 0, 0, 10, 10, z_index=5).effective_z == 5

    def test_zero_z_is_kept(self):
        assert Slot("s1", 0, 0, 10, 10, z_index=0).effective_z == 0


class TestTemplate:
    def test_is_frozen(self, make_template):
        t = make_template()
        with pytest.raises(dataclasses.FrozenInstanceError):
            t.canvas_width = 600

    def test_slots_stored_as_tuple(self, make_template):
        t = make_template(slots=[Slot("s1", 0, 0, 100, 100)])
        assert isinstance(t.slots, tuple)

    def test_metadata_update_returns_new_value(self, make_template):
        t = make_template()
        updated = t.with_metadata(price=75, is_enabled=False, sort_order=9)
        assert updated.price == 75
        assert not updated.is_enabled
        assert updated.slots == t.slots
        assert t.price == 50

    def test_geometry_update_rejected(self, make_template):
        t = make_template()
        with pytest.raises(ValueError, match="cannot change"):
            t.with_metadata(canvas_width=600)
        with pytest.raises(ValueError, match="slots"):
            t.with_metadata(slots=())


class TestPhotoAsset:
    def test_bytes_identity_is_content_hash(self):
        a = PhotoAsset(b"abc", index=0)
        b = PhotoAsset(b"abc", index=3)
        assert a.identity() == b.identity()
        assert a.identity().startswith("sha256:")

    def test_different_bytes_differ(self):
        assert PhotoAsset(b"abc").identity() != PhotoAsset(b"abd").identity()

    def test_missing_path_identity(self, tmp_path):
        missing = tmp_path / "a.jpg"
        assert PhotoAsset(missing).identity() == f"path:{missing}"

    def test_file_identity_is_content_hash(self, tmp_path):
        p = tmp_path / "capture-1.png"
        p.write_bytes(b"first")
        assert PhotoAsset(p).identity() == PhotoAsset(b"first").identity()

    def test_str_and_path_to_same_file_agree(self, tmp_path):
        p = tmp_path / "capture-1.png"
        p.write_bytes(b"first")
        assert PhotoAsset(str(p)).identity() == PhotoAsset(p).identity()

    def test_rewritten_file_changes_identity(self, tmp_path):
        p = tmp_path / "capture-1.png"
        p.write_bytes(b"first")
        before = PhotoAsset(p).identity()
        p.write_bytes(b"second")
        assert PhotoAsset(p).identity() != before

    def test_long_string_is_hashed(self):
        ident = PhotoAsset("data:image/png;base64," + "A" * 1000).identity()
        assert ident.startswith("sha256:")
