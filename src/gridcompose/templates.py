"""Template data model.

A Template is an immutable layout: a canvas size at the reference DPI,
percentage-based photo slots, and optional background and logo. Geometry
is frozen once published; only metadata may change, and only by producing
a new value through Template.with_metadata().

    ┌───────────────── canvas (e.g. 1200x1800 @ 300 DPI) ─┐
    │  ┌── slot s1 ──┐  ┌── slot s2 ──┐                   │
    │  │ x=2.5 y=2.5 │  │ x=52.5      │   x, y, width and │
    │  │ 45% x 45%   │  │             │   height are % of │
    │  └─────────────┘  └─────────────┘   the canvas      │
    │  ┌── slot s3 ──┐  ┌── slot s4 ──┐                   │
    │  └─────────────┘  └─────────────┘                   │
    └─────────────────────────────────────────────────────┘
"""

import dataclasses
import enum
import hashlib
import os
from dataclasses import dataclass
from pathlib import Path


REFERENCE_DPI = 300

DEFAULT_Z_INDEX = 1

PREVIEW_TYPES = {"grid", "strip", "collage"}


class AspectRatio(enum.Enum):
    """Display-time sizing hint. Canvas pixels stay authoritative."""

    PRINT_4X6 = "4:6"
    WALLET_2X3 = "2:3"
    SQUARE = "1:1"
    WIDESCREEN = "16:9"

    @property
    def width(self) -> int:
        return int(self.value.split(":")[0])

    @property
    def height(self) -> int:
        return int(self.value.split(":")[1])

    @property
    def label(self) -> str:
        return _ASPECT_LABELS[self]


_ASPECT_LABELS = {
    AspectRatio.PRINT_4X6: "4x6 Photo Print",
    AspectRatio.WALLET_2X3: "2x3 Wallet Size",
    AspectRatio.SQUARE: "Square (Instagram)",
    AspectRatio.WIDESCREEN: "Widescreen",
}


@dataclass(frozen=True)
class Slot:
    """One photo region. Coordinates are percentages of the canvas."""

    id: str
    x: float
    y: float
    width: float
    height: float
    radius: float = 0
    z_index: int | None = None

    @property
    def effective_z(self) -> int:
        return DEFAULT_Z_INDEX if self.z_index is None else self.z_index


@dataclass(frozen=True)
class LogoOverlay:
    url: str
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    still_count: int
    price: float
    aspect_ratio: AspectRatio
    canvas_width: int
    canvas_height: int
    slots: tuple[Slot, ...]
    preview_type: str = "grid"
    background_color: str | None = None
    background_image: str | None = None
    logo: LogoOverlay | None = None
    is_enabled: bool = True
    sort_order: int = 0
    created_at: int = 0
    updated_at: int = 0

    def __post_init__(self):
        # Accept any sequence of slots but store a tuple.
        if not isinstance(self.slots, tuple):
            object.__setattr__(self, "slots", tuple(self.slots))

    def with_metadata(self, **changes) -> "Template":
        """Return a copy with metadata fields changed.

        Only name, price, is_enabled, sort_order and updated_at may change.
        Geometry edits must be published under a new template id so that
        earlier prints stay reproducible.
        """
        illegal = set(changes) - _METADATA_FIELDS
        if illegal:
            raise ValueError(
                f"Template '{self.id}': cannot change {sorted(illegal)} "
                f"after publishing. Mutable: {sorted(_METADATA_FIELDS)}"
            )
        return dataclasses.replace(self, **changes)


_METADATA_FIELDS = {"name", "price", "is_enabled", "sort_order", "updated_at"}


@dataclass(frozen=True)
class PhotoAsset:
    """A captured photo: raw bytes or a dereferenceable handle.

    *index* is the capture sequence number. The core never reads it to
    pick a slot; photos are mapped to slots by their position in the
    sequence passed to render().
    """

    source: bytes | str | Path
    index: int = 0

    def identity(self) -> str:
        """Stable, content-derived identity used in fingerprints.

        Bytes and readable files hash their contents, so a file rewritten
        in place gets a new identity and a str or Path naming the same file
        gets the same one. Inline payloads are hashed; other references
        (missing files) are kept verbatim.
        """
        source = self.source
        if isinstance(source, (bytes, bytearray)):
            return _content_id(source)
        if isinstance(source, Path) or os.path.isfile(source):
            try:
                return _content_id(Path(source).read_bytes())
            except OSError:
                return f"path:{source}"
        if len(source) > 256:
            return _content_id(source.encode())
        return f"ref:{source}"


def _content_id(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()
