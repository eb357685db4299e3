"""Geometry resolver: percentages to pixel rectangles.

Pure functions from (Template, target size) to ResolvedGeometry. Every
rectangle the compositor draws comes from here, so all render targets of
one template share the same rounding rules:

    px = round(percent / 100 * target_dimension)

Corner radii are authored in pixels at the template's reference canvas and
scale by target_width / canvas_width. Templates are locked to the aspect of
their canvas, so one width-derived factor is enough.
"""

from dataclasses import dataclass

from .errors import InvalidTarget
from .templates import REFERENCE_DPI, Template


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, top, right, bottom), the form Pillow expects."""
        return (self.x, self.y, self.right, self.bottom)

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class ResolvedSlot:
    slot_id: str
    rect: Rect
    radius: int
    z_index: int
    order: int  # declaration index within the template


@dataclass(frozen=True)
class ResolvedGeometry:
    """Pixel geometry of one template at one target size.

    *slots* is already in render order: ascending z-index, ties in
    declaration order. The i-th supplied photo fills slots[i].
    """

    template_id: str
    width: int
    height: int
    slots: tuple[ResolvedSlot, ...]
    background: Rect
    logo: Rect | None = None


def _check_dimension(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidTarget(f"Target {name} must be a positive integer, got {value!r}")


def _resolve_rect(x, y, width, height, target_w: int, target_h: int) -> Rect:
    # Rounding x and width independently can overshoot the far edge by one
    # pixel (e.g. 50% + 50% of 3px); clamp so rects never leave the canvas.
    px = min(round(x / 100 * target_w), target_w)
    py = min(round(y / 100 * target_h), target_h)
    return Rect(
        x=px,
        y=py,
        width=min(round(width / 100 * target_w), target_w - px),
        height=min(round(height / 100 * target_h), target_h - py),
    )


def resolve_geometry(
    template: Template, target_width: int, target_height: int,
) -> ResolvedGeometry:
    """Resolve a template's slots, logo and background for a target size.

    Args:
        template: Validated template.
        target_width: Output width in pixels (positive int).
        target_height: Output height in pixels (positive int).

    Returns:
        ResolvedGeometry with slots sorted into render order.

    Raises:
        InvalidTarget: Non-positive or non-integer dimensions.
    """
    _check_dimension("width", target_width)
    _check_dimension("height", target_height)

    radius_scale = target_width / template.canvas_width

    resolved = [
        ResolvedSlot(
            slot_id=slot.id,
            rect=_resolve_rect(
                slot.x, slot.y, slot.width, slot.height,
                target_width, target_height,
            ),
            radius=round(slot.radius * radius_scale),
            z_index=slot.effective_z,
            order=i,
        )
        for i, slot in enumerate(template.slots)
    ]
    # sorted() is stable: equal z keeps declaration order.
    resolved.sort(key=lambda s: s.z_index)

    logo = None
    if template.logo is not None:
        lg = template.logo
        logo = _resolve_rect(lg.x, lg.y, lg.width, lg.height, target_width, target_height)

    return ResolvedGeometry(
        template_id=template.id,
        width=target_width,
        height=target_height,
        slots=tuple(resolved),
        background=Rect(0, 0, target_width, target_height),
        logo=logo,
    )


def target_size_for_dpi(template: Template, dpi: float) -> tuple[int, int]:
    """Pixel size of a template printed at *dpi*.

    Canvas sizes are authored at REFERENCE_DPI (300), so 300 returns the
    canvas itself and 150 returns half of it.
    """
    if isinstance(dpi, bool) or not isinstance(dpi, (int, float)) or dpi <= 0:
        raise InvalidTarget(f"DPI must be positive, got {dpi!r}")
    scale = dpi / REFERENCE_DPI
    return (
        max(1, round(template.canvas_width * scale)),
        max(1, round(template.canvas_height * scale)),
    )
