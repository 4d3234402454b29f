"""Corner-anchored placement for fixed-size overlays (pure calculations, no Qt types)."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

__all__ = [
    "AnchorCorner",
    "AnchorSpec",
    "LinearViewportTransform",
    "Point",
    "Size",
    "ViewportTransform",
    "resolve_anchor_position",
]

# Maps normalised content coordinates (width 1, height 1/aspect) to container pixels.
ViewportTransform = Callable[[float, float], Tuple[float, float]]


class AnchorCorner(Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_RIGHT = "bottom-right"
    BOTTOM_LEFT = "bottom-left"

    @classmethod
    def from_token(cls, value: object) -> Optional["AnchorCorner"]:
        if isinstance(value, AnchorCorner):
            return value
        if not isinstance(value, str):
            return None
        token = value.strip().lower().replace("_", "-")
        token = _COMPASS_ALIASES.get(token, token)
        for member in cls:
            if token == member.value:
                return member
        return None

    @property
    def is_right(self) -> bool:
        return self in (AnchorCorner.TOP_RIGHT, AnchorCorner.BOTTOM_RIGHT)

    @property
    def is_bottom(self) -> bool:
        return self in (AnchorCorner.BOTTOM_LEFT, AnchorCorner.BOTTOM_RIGHT)


_COMPASS_ALIASES = {
    "nw": "top-left",
    "ne": "top-right",
    "se": "bottom-right",
    "sw": "bottom-left",
}


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class AnchorSpec:
    corner: AnchorCorner = AnchorCorner.BOTTOM_LEFT
    offset_x: float = 5.0
    offset_y: float = 5.0
    clamp_to_content: bool = True


@dataclass(frozen=True)
class LinearViewportTransform:
    """Viewport without rotation: content scaled to ``content_width`` pixels, then panned."""

    content_width: float
    origin_x: float = 0.0
    origin_y: float = 0.0

    def __call__(self, x: float, y: float) -> Tuple[float, float]:
        return (
            self.origin_x + x * self.content_width,
            self.origin_y + y * self.content_width,
        )


def _content_corner(corner: AnchorCorner, aspect_ratio: float) -> Tuple[float, float]:
    if not corner.is_bottom:
        return (1.0 if corner.is_right else 0.0), 0.0
    if not (math.isfinite(aspect_ratio) and aspect_ratio > 0.0):
        raise ValueError(f"aspect_ratio must be finite and > 0, got {aspect_ratio!r}")
    return (1.0 if corner.is_right else 0.0), 1.0 / aspect_ratio


def resolve_anchor_position(
    overlay_size: Size,
    container_size: Size,
    anchor: AnchorSpec,
    transform: Optional[ViewportTransform] = None,
    wrap_horizontal: bool = False,
    wrap_vertical: bool = False,
    aspect_ratio: float = 1.0,
) -> Point:
    """Return the overlay's top-left pixel inside the container.

    Offsets always push inward. With ``clamp_to_content`` the overlay follows
    the content edge once that edge scrolls inside the container; an axis that
    wraps has no edge and is left alone.
    """
    corner = anchor.corner
    x = container_size.width - overlay_size.width if corner.is_right else 0.0
    y = container_size.height - overlay_size.height if corner.is_bottom else 0.0

    clamp_x = anchor.clamp_to_content and not wrap_horizontal
    clamp_y = anchor.clamp_to_content and not wrap_vertical
    if (clamp_x or clamp_y) and transform is not None:
        pixel_x, pixel_y = transform(*_content_corner(corner, aspect_ratio))
        if clamp_x:
            if corner.is_right:
                x = min(x, pixel_x - overlay_size.width)
            else:
                x = max(x, pixel_x)
        if clamp_y:
            if corner.is_bottom:
                y = min(y, pixel_y - overlay_size.height)
            else:
                y = max(y, pixel_y)

    offset_x = -anchor.offset_x if corner.is_right else anchor.offset_x
    offset_y = -anchor.offset_y if corner.is_bottom else anchor.offset_y
    return Point(x + offset_x, y + offset_y)
