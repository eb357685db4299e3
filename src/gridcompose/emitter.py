"""Output emitter: one entry point for preview, print and export renders.

Every render resolves geometry from the template, composites, then
encodes. Targets differ only in pixel size and encoding, so a session
looks the same on screen, on paper and in the shared copy.

Target profiles:
  preview     100 DPI, raw Pillow image   (400x600 for a 4x6 canvas)
  print       300 DPI, PNG                (the reference canvas size)
  print_high  600 DPI, PNG                (twice the reference size)
  export      150 DPI, JPEG at 0.95

Profiles may also be given explicitly as TargetProfile(width=..., height=...).
"""

import hashlib
import io
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np
from PIL import Image

from .catalog import read_catalog_file
from .compositor import PLACEHOLDER_COLOR, compose
from .errors import InvalidTarget
from .geometry import ResolvedGeometry, resolve_geometry, target_size_for_dpi
from .templates import PhotoAsset, Template


logger = logging.getLogger(__name__)

ENCODINGS = {"raw", "png", "jpeg"}

DEFAULT_QUALITY = 0.95

# Pillow documents quality above 95 as wasteful for JPEG.
JPEG_QUALITY_RANGE = (1, 95)


# ── Target profiles ──────────────────────────────────────────────


@dataclass(frozen=True)
class TargetProfile:
    """One rendering destination: a size (explicit or by DPI) plus encoding."""

    name: str
    width: int | None = None
    height: int | None = None
    dpi: float | None = None
    encoding: str = "raw"
    quality: float = DEFAULT_QUALITY

    def validated(self) -> "TargetProfile":
        """Return self after checking every field, else raise InvalidTarget."""
        prefix = f"Profile '{self.name}'"
        if self.encoding not in ENCODINGS:
            raise InvalidTarget(
                f"{prefix}: unknown encoding '{self.encoding}'. Valid: {sorted(ENCODINGS)}"
            )
        q = self.quality
        if isinstance(q, bool) or not isinstance(q, (int, float)) or not 0 <= q <= 1:
            raise InvalidTarget(f"{prefix}: quality must be within 0-1, got {q!r}")

        explicit = self.width is not None or self.height is not None
        if explicit:
            for field in ("width", "height"):
                value = getattr(self, field)
                if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                    raise InvalidTarget(
                        f"{prefix}: {field} must be a positive integer, got {value!r}"
                    )
        elif self.dpi is None:
            raise InvalidTarget(f"{prefix}: needs either width/height or dpi")

        if self.dpi is not None:
            d = self.dpi
            if isinstance(d, bool) or not isinstance(d, (int, float)) or d <= 0:
                raise InvalidTarget(f"{prefix}: dpi must be positive, got {d!r}")
        return self

    def size_for(self, template: Template) -> tuple[int, int]:
        """Pixel dimensions of this profile for *template*."""
        if self.width is not None and self.height is not None:
            return self.width, self.height
        return target_size_for_dpi(template, self.dpi)


# Named print densities, in DPI.
DPI_PRESETS = {
    "screen": 72,
    "print_draft": 150,
    "print_standard": 300,
    "print_high": 600,
}

PRESETS = {
    "preview": TargetProfile("preview", dpi=100, encoding="raw"),
    "print": TargetProfile("print", dpi=DPI_PRESETS["print_standard"], encoding="png"),
    "print_high": TargetProfile("print_high", dpi=DPI_PRESETS["print_high"], encoding="png"),
    "export": TargetProfile(
        "export", dpi=DPI_PRESETS["print_draft"], encoding="jpeg", quality=DEFAULT_QUALITY,
    ),
}


def resolve_profile(
    profile: str | TargetProfile,
    presets: dict[str, TargetProfile] = PRESETS,
) -> TargetProfile:
    """Turn a preset name or a TargetProfile into a validated TargetProfile.

    Raises:
        InvalidTarget: Unknown preset name or invalid profile fields.
    """
    if isinstance(profile, TargetProfile):
        return profile.validated()
    if isinstance(profile, str):
        if profile not in presets:
            raise InvalidTarget(
                f"Unknown target profile '{profile}'. Valid: {sorted(presets)}"
            )
        return presets[profile].validated()
    raise InvalidTarget(f"Target profile must be a name or TargetProfile, got {profile!r}")


_PROFILE_FIELDS = {"width", "height", "dpi", "encoding", "quality"}


def load_profiles(catalog_path: str | Path) -> dict[str, TargetProfile]:
    """Read a catalog file's optional profiles block, merged over PRESETS.

    Each entry may set width/height, dpi, encoding and quality. Fields left
    out inherit from the preset of the same name, if there is one.

    Raises:
        InvalidTarget: A profile entry is malformed.
        InvalidTemplate: The file is not valid YAML.
    """
    raw = read_catalog_file(catalog_path)
    profiles = dict(PRESETS)
    for name, entry in (raw.get("profiles") or {}).items():
        if not isinstance(entry, dict):
            raise InvalidTarget(f"Profile '{name}': must be a mapping")
        unknown = set(entry) - _PROFILE_FIELDS
        if unknown:
            raise InvalidTarget(f"Profile '{name}': unknown fields {sorted(unknown)}")
        base = profiles.get(name)
        fields = {
            "width": None, "height": None, "dpi": None,
            "encoding": "raw", "quality": DEFAULT_QUALITY,
        }
        if base is not None:
            fields.update(
                width=base.width, height=base.height, dpi=base.dpi,
                encoding=base.encoding, quality=base.quality,
            )
        if "width" in entry or "height" in entry:
            # Explicit sizes replace a preset's DPI rather than combine with it.
            fields["dpi"] = None
        fields.update(entry)
        profiles[name] = TargetProfile(name=name, **fields).validated()
    return profiles


# ── Composed output ──────────────────────────────────────────────


@dataclass(frozen=True)
class ComposedImage:
    template_id: str
    width: int
    height: int
    encoding: str
    image: Image.Image
    data: bytes | None
    fingerprint: str
    diagnostics: tuple[str, ...] = ()
    dpi: float | None = None

    def to_array(self) -> np.ndarray:
        """The pixel buffer as a (height, width, 3) uint8 array."""
        return np.asarray(self.image, dtype=np.uint8)

    def save(self, path: str | Path) -> Path:
        """Write the encoded bytes to *path*; raw renders are written as PNG."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if self.data is not None:
            path.write_bytes(self.data)
        else:
            self.image.save(path, format="PNG")
        return path


def encode_image(image: Image.Image, profile: TargetProfile) -> bytes | None:
    """Encode per the profile. Raw renders return None (image only)."""
    if profile.encoding == "raw":
        return None
    params = {}
    if profile.dpi is not None:
        params["dpi"] = (profile.dpi, profile.dpi)
    buf = io.BytesIO()
    if profile.encoding == "png":
        image.save(buf, format="PNG", **params)
    else:
        lo, hi = JPEG_QUALITY_RANGE
        quality = max(lo, min(hi, round(profile.quality * 100)))
        image.convert("RGB").save(buf, format="JPEG", quality=quality, **params)
    return buf.getvalue()


def compute_fingerprint(
    geometry: ResolvedGeometry,
    profile: TargetProfile,
    photos: Sequence,
    options: dict,
) -> str:
    """SHA-256 over the resolved geometry, encoding, options and photo identities.

    Two requests with equal fingerprints produce identical output, so
    callers may memoize renders by it.
    """
    identities = []
    for photo in photos[:len(geometry.slots)]:
        if photo is None:
            identities.append(None)
        elif isinstance(photo, PhotoAsset):
            identities.append(photo.identity())
        else:
            identities.append(PhotoAsset(photo).identity())

    document = {
        "template": geometry.template_id,
        "size": [geometry.width, geometry.height],
        "encoding": profile.encoding,
        "quality": profile.quality if profile.encoding == "jpeg" else None,
        "dpi": profile.dpi,
        "options": options,
        "slots": [
            [s.slot_id, s.rect.x, s.rect.y, s.rect.width, s.rect.height, s.radius, s.z_index]
            for s in geometry.slots
        ],
        "logo": None if geometry.logo is None else list(geometry.logo.box),
        "photos": identities,
    }
    canonical = json.dumps(document, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()


# ── Emitter ──────────────────────────────────────────────────────


class OutputEmitter:
    """Renders catalog templates to target profiles.

    Holds no per-render state; one instance may serve concurrent callers.
    """

    def __init__(
        self,
        catalog,
        presets: dict[str, TargetProfile] | None = None,
        placeholder_color: tuple[int, int, int] = PLACEHOLDER_COLOR,
    ):
        self.catalog = catalog
        self.presets = dict(PRESETS if presets is None else presets)
        self.placeholder_color = tuple(placeholder_color)

    def render(
        self,
        template_id: str,
        photos: Sequence,
        profile: str | TargetProfile = "preview",
        *,
        finish: bool = True,
        include_background: bool = True,
        include_logo: bool = True,
    ) -> ComposedImage:
        """Render *photos* into template *template_id* for one target.

        Raises:
            NotFound: Unknown template id.
            InvalidTarget: Bad profile name or fields.
            CompositionFailed: Background or logo asset undecodable.
        """
        template = self.catalog.get_by_id(template_id)
        target = resolve_profile(profile, self.presets)
        width, height = target.size_for(template)
        geometry = resolve_geometry(template, width, height)

        photos = list(photos)
        options = {
            "finish": finish,
            "include_background": include_background,
            "include_logo": include_logo,
            "placeholder_color": list(self.placeholder_color),
        }
        result = compose(
            geometry, template, photos,
            finish=finish,
            include_background=include_background,
            include_logo=include_logo,
            placeholder_color=self.placeholder_color,
        )
        data = encode_image(result.image, target)

        logger.info(
            "Rendered '%s' as %s: %dx%d %s, %d placeholder slot(s)",
            template.id, target.name, width, height, target.encoding,
            len(result.diagnostics),
        )
        return ComposedImage(
            template_id=template.id,
            width=width,
            height=height,
            encoding=target.encoding,
            image=result.image,
            data=data,
            fingerprint=compute_fingerprint(geometry, target, photos, options),
            diagnostics=result.diagnostics,
            dpi=target.dpi,
        )

    def render_many(
        self,
        template_id: str,
        photos: Sequence,
        profiles: Sequence[str | TargetProfile] = ("preview", "print", "export"),
        *,
        workers: int | None = None,
        **options,
    ) -> dict[str, ComposedImage]:
        """Render one session to several profiles concurrently.

        Each profile is one unit of work on a thread pool. Results are keyed
        by profile name, in the order the profiles were given. The first
        failure propagates.
        """
        # Validate every profile before any work starts.
        targets = [resolve_profile(p, self.presets) for p in profiles]
        names = [t.name for t in targets]
        if len(set(names)) != len(names):
            raise InvalidTarget(f"Duplicate profile names: {names}")
        self.catalog.get_by_id(template_id)

        photos = list(photos)
        max_workers = workers or max(1, len(targets))
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {
                t.name: pool.submit(self.render, template_id, photos, t, **options)
                for t in targets
            }
            return {name: future.result() for name, future in futures.items()}
