"""Template catalog and its YAML loader.

The catalog is the versioned, append-only set of layout templates. It is
validated once at construction and read-only afterwards, so one instance
can be shared by any number of concurrent renders.

Catalog file schema:
  paths:
    assets: "assets"                 # ${assets} in asset references
  profiles:                          # optional, see emitter.load_profiles
    preview: {dpi: 100, encoding: raw}
  templates:
    - id: grid_4x6_2x2
      name: 4x6" Grid (2x2)
      still_count: 4
      price: 100
      aspect_ratio: "4:6"
      canvas_width: 1200
      canvas_height: 1800
      background_color: "#ffffff"
      background_image: "${assets}/paper.png"   # optional
      logo: {url: "${assets}/logo.png", x: 40, y: 92, width: 20, height: 6}
      slots:
        - {id: s1, x: 2.5, y: 2.5, width: 45, height: 45, radius: 0, z_index: 1}
      is_enabled: true
      sort_order: 4

Relative asset paths are resolved against the catalog file's directory.
"""

import logging
from pathlib import Path

import yaml

from .common import parse_hex_color, resolve_path_vars
from .errors import InvalidTemplate, NotFound
from .templates import PREVIEW_TYPES, AspectRatio, LogoOverlay, Slot, Template


logger = logging.getLogger(__name__)

BUILTIN_CATALOG = Path(__file__).resolve().parent / "data" / "templates.yaml"

# Float tolerance for x + width <= 100 (2.5 + 97.5 style sums).
BOUNDS_EPSILON = 1e-9


# ── Catalog ───────────────────────────────────────────────────────


class TemplateCatalog:
    """Immutable, validated collection of templates.

    Construction fails with InvalidTemplate if any template is invalid;
    a catalog never silently drops a bad template.
    """

    def __init__(self, templates):
        by_id = {}
        for template in templates:
            if template.id in by_id:
                raise InvalidTemplate(f"Duplicate template id '{template.id}'")
            validate_template(template)
            by_id[template.id] = template
        self._templates = tuple(by_id.values())
        self._by_id = by_id

    def list_enabled(self, still_count: int | None = None) -> list[Template]:
        """Enabled templates ascending by sort_order, optionally filtered.

        Ties keep catalog declaration order. No match is an empty list.
        """
        enabled = [
            t for t in self._templates
            if t.is_enabled and (still_count is None or t.still_count == still_count)
        ]
        return sorted(enabled, key=lambda t: t.sort_order)

    def get_by_id(self, template_id: str) -> Template:
        """Look up any template, disabled ones included (for reprints)."""
        try:
            return self._by_id[template_id]
        except KeyError:
            raise NotFound(template_id) from None

    def __contains__(self, template_id) -> bool:
        return template_id in self._by_id

    def __iter__(self):
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __repr__(self) -> str:
        return f"TemplateCatalog({[t.id for t in self._templates]})"


# ── Template validation ──────────────────────────────────────────


def validate_template(template: Template) -> None:
    """Check slot count, slot bounds, slot id uniqueness and logo bounds.

    Slots may overlap each other; they may not leave the canvas.

    Raises:
        InvalidTemplate: Describes the first problem found.
    """
    prefix = f"Template '{template.id}'"

    if template.canvas_width <= 0 or template.canvas_height <= 0:
        raise InvalidTemplate(
            f"{prefix}: canvas must be positive, got "
            f"{template.canvas_width}x{template.canvas_height}"
        )

    if len(template.slots) != template.still_count:
        raise InvalidTemplate(
            f"{prefix}: still_count is {template.still_count} but "
            f"{len(template.slots)} slots are defined"
        )

    seen = set()
    for slot in template.slots:
        if slot.id in seen:
            raise InvalidTemplate(f"{prefix}: duplicate slot id '{slot.id}'")
        seen.add(slot.id)
        _check_rect(slot.x, slot.y, slot.width, slot.height, f"{prefix}, slot '{slot.id}'")
        if slot.radius < 0:
            raise InvalidTemplate(
                f"{prefix}, slot '{slot.id}': radius must be >= 0, got {slot.radius}"
            )

    if template.logo is not None:
        logo = template.logo
        _check_rect(logo.x, logo.y, logo.width, logo.height, f"{prefix}, logo")

    if template.background_color is not None:
        try:
            parse_hex_color(template.background_color)
        except ValueError as e:
            raise InvalidTemplate(f"{prefix}: {e}") from e


def _check_rect(x, y, width, height, prefix: str) -> None:
    if x < 0 or y < 0:
        raise InvalidTemplate(f"{prefix}: position ({x}, {y}) is negative")
    if width <= 0 or height <= 0:
        raise InvalidTemplate(f"{prefix}: size {width}x{height} must be positive")
    if x + width > 100 + BOUNDS_EPSILON or y + height > 100 + BOUNDS_EPSILON:
        raise InvalidTemplate(
            f"{prefix}: rectangle ({x}, {y}, {width}, {height}) exceeds the canvas"
        )


# ── YAML loading ─────────────────────────────────────────────────


def load_catalog(catalog_path: str | Path) -> TemplateCatalog:
    """Load, normalize and validate a YAML template catalog.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in asset references.
      3. Make relative asset paths absolute (relative to the catalog file).
      4. Convert records to Template values.
      5. Validate the whole catalog (TemplateCatalog constructor).

    Raises:
        InvalidTemplate: Malformed record or inconsistent geometry.
        FileNotFoundError: Missing catalog file.
    """
    catalog_path = Path(catalog_path)
    raw = read_catalog_file(catalog_path)

    paths = {k: str(v) for k, v in (raw.get("paths") or {}).items()}
    base_dir = catalog_path.resolve().parent

    records = raw.get("templates")
    if not isinstance(records, list):
        raise InvalidTemplate(f"{catalog_path}: 'templates' must be a list")

    templates = [
        _template_from_record(record, i, paths, base_dir)
        for i, record in enumerate(records)
    ]
    catalog = TemplateCatalog(templates)
    logger.debug("Loaded %d templates from %s", len(catalog), catalog_path)
    return catalog


def load_builtin_catalog() -> TemplateCatalog:
    """Load the packaged production catalog."""
    return load_catalog(BUILTIN_CATALOG)


def read_catalog_file(path: str | Path) -> dict:
    """Parse a catalog file into its top-level mapping.

    Raises:
        InvalidTemplate: Malformed YAML or a non-mapping document.
        FileNotFoundError: Missing file.
    """
    with open(path) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidTemplate(f"{path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidTemplate(f"{path}: top level must be a mapping")
    return raw


def _template_from_record(record, index: int, paths: dict, base_dir: Path) -> Template:
    """Convert one YAML template record into a Template value."""
    if not isinstance(record, dict):
        raise InvalidTemplate(f"Template {index}: must be a mapping")
    prefix = f"Template {index} ({record.get('id', '?')})"

    template_id = _require(record, "id", str, prefix)
    aspect_value = _require(record, "aspect_ratio", str, prefix)
    try:
        aspect = AspectRatio(aspect_value)
    except ValueError:
        raise InvalidTemplate(
            f"{prefix}: invalid aspect_ratio '{aspect_value}'. "
            f"Valid: {sorted(a.value for a in AspectRatio)}"
        ) from None

    preview_type = record.get("preview_type", "grid")
    if preview_type not in PREVIEW_TYPES:
        raise InvalidTemplate(
            f"{prefix}: invalid preview_type '{preview_type}'. "
            f"Valid: {sorted(PREVIEW_TYPES)}"
        )

    slot_records = _require(record, "slots", list, prefix)
    slots = [_slot_from_record(s, j, prefix) for j, s in enumerate(slot_records)]

    background_image = record.get("background_image")
    if background_image is not None:
        background_image = _resolve_asset(
            _typed(background_image, str, f"{prefix}: background_image"), paths, base_dir,
        )

    logo = None
    logo_record = record.get("logo")
    if logo_record is not None:
        logo_prefix = f"{prefix}, logo"
        if not isinstance(logo_record, dict):
            raise InvalidTemplate(f"{logo_prefix}: must be a mapping")
        logo = LogoOverlay(
            url=_resolve_asset(_require(logo_record, "url", str, logo_prefix), paths, base_dir),
            x=_number(logo_record, "x", logo_prefix),
            y=_number(logo_record, "y", logo_prefix),
            width=_number(logo_record, "width", logo_prefix),
            height=_number(logo_record, "height", logo_prefix),
        )

    background_color = record.get("background_color")
    if background_color is not None:
        _typed(background_color, str, f"{prefix}: background_color")

    return Template(
        id=template_id,
        name=_require(record, "name", str, prefix),
        still_count=_require(record, "still_count", int, prefix),
        price=_number(record, "price", prefix),
        aspect_ratio=aspect,
        canvas_width=_require(record, "canvas_width", int, prefix),
        canvas_height=_require(record, "canvas_height", int, prefix),
        slots=tuple(slots),
        preview_type=preview_type,
        background_color=background_color,
        background_image=background_image,
        logo=logo,
        is_enabled=_typed(record.get("is_enabled", True), bool, f"{prefix}: is_enabled"),
        sort_order=_typed(record.get("sort_order", 0), int, f"{prefix}: sort_order"),
        created_at=_typed(record.get("created_at", 0), int, f"{prefix}: created_at"),
        updated_at=_typed(record.get("updated_at", 0), int, f"{prefix}: updated_at"),
    )


def _slot_from_record(record, index: int, template_prefix: str) -> Slot:
    prefix = f"{template_prefix}, slot {index}"
    if not isinstance(record, dict):
        raise InvalidTemplate(f"{prefix}: must be a mapping")
    slot_id = record.get("id")
    # Numeric ids in YAML (id: 1) are accepted and kept as strings.
    if isinstance(slot_id, int) and not isinstance(slot_id, bool):
        slot_id = str(slot_id)
    if not isinstance(slot_id, str) or not slot_id:
        raise InvalidTemplate(f"{prefix}: missing required field 'id'")
    z_index = record.get("z_index")
    if z_index is not None:
        _typed(z_index, int, f"{prefix}: z_index")
    return Slot(
        id=slot_id,
        x=_number(record, "x", prefix),
        y=_number(record, "y", prefix),
        width=_number(record, "width", prefix),
        height=_number(record, "height", prefix),
        radius=_number(record, "radius", prefix, default=0),
        z_index=z_index,
    )


def _resolve_asset(ref: str, paths: dict, base_dir: Path) -> str:
    try:
        ref = resolve_path_vars(ref, paths)
    except ValueError as e:
        raise InvalidTemplate(str(e)) from e
    if ref.startswith("data:"):
        return ref
    path = Path(ref).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)


def _require(record: dict, field: str, kind, prefix: str):
    if field not in record:
        raise InvalidTemplate(f"{prefix}: missing required field '{field}'")
    return _typed(record[field], kind, f"{prefix}: {field}")


def _typed(value, kind, prefix: str):
    # bool is an int subclass; a YAML 'true' must not pass as a count.
    if kind is not bool and isinstance(value, bool):
        raise InvalidTemplate(f"{prefix} must be {kind.__name__}, got bool")
    if not isinstance(value, kind):
        raise InvalidTemplate(
            f"{prefix} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _number(record: dict, field: str, prefix: str, default=None) -> float:
    if field not in record:
        if default is not None:
            return default
        raise InvalidTemplate(f"{prefix}: missing required field '{field}'")
    value = record[field]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTemplate(
            f"{prefix}: {field} must be a number, got {value!r}"
        )
    return value
