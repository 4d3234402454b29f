"""Scalebar refresh controller: turns viewer state into a bar label, size and position."""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, Union

from PyQt6.QtGui import QImage

from scalebar_client.anchor_position import (  # type: ignore
    Point,
    Size,
    ViewportTransform,
    resolve_anchor_position,
)
from scalebar_client.paint_commands import (  # type: ignore
    ScalebarPaintCommand,
    compose_scalebar_image,
    qt_text_measurer,
    render_scalebar_image,
)
from scalebar_client.scalebar_config import ScalebarConfig, ScalebarStyle  # type: ignore
from scalebar_client.unit_ladder import RenderResult  # type: ignore
from version import is_dev_build  # type: ignore

_LOGGER_NAME = "ScalebarOverlay.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)
_CLIENT_LOGGER.setLevel(logging.DEBUG if is_dev_build() else logging.INFO)
_CLIENT_LOGGER.propagate = False
# Opt-in propagation flag for environments/tests that want client logs upstream.
if os.environ.get("SCALEBAR_OVERLAY_PROPAGATE_LOGS", "").lower() in {"1", "true", "yes", "on"}:
    _CLIENT_LOGGER.propagate = True

__all__ = [
    "Scalebar",
    "ScalebarFrame",
    "TextMeasurer",
    "TiledImageState",
    "ViewerSnapshot",
    "image_zoom",
]

TextMeasurer = Callable[[str, str, Optional[float]], Tuple[int, int]]


@dataclass(frozen=True)
class TiledImageState:
    """One image in the viewer: its width in viewport units and in source pixels."""

    scale: float
    source_width: float


@dataclass(frozen=True)
class ViewerSnapshot:
    is_open: bool
    viewport_zoom: float
    container_size: Size
    items: Sequence[TiledImageState] = ()
    transform: Optional[ViewportTransform] = None
    wrap_horizontal: bool = False
    wrap_vertical: bool = False
    aspect_ratio: float = 1.0


@dataclass(frozen=True)
class ScalebarFrame:
    visible: bool
    result: Optional[RenderResult] = None
    position: Optional[Point] = None
    overlay_size: Optional[Size] = None
    reason: str = ""

    @classmethod
    def hidden(cls, reason: str) -> "ScalebarFrame":
        return cls(visible=False, reason=reason)


def image_zoom(item: TiledImageState, container_width: float, viewport_zoom: float) -> float:
    """Convert a viewport zoom into screen pixels per image pixel for ``item``."""
    if item.source_width <= 0:
        return math.nan
    ratio = item.scale * container_width / item.source_width
    return ratio * viewport_zoom


class Scalebar:
    """Holds the active configuration and recomputes the bar on each viewer event."""

    def __init__(self, config: Optional[ScalebarConfig] = None, *, text_measurer: Optional[TextMeasurer] = None) -> None:
        self._config = config if config is not None else ScalebarConfig()
        self._text_measurer = text_measurer
        self._hidden_reason: Optional[str] = None

    @property
    def config(self) -> ScalebarConfig:
        return self._config

    def reconfigure(self, options: Union[ScalebarConfig, Mapping[str, Any]]) -> ScalebarConfig:
        if isinstance(options, ScalebarConfig):
            updated = options
        else:
            updated = ScalebarConfig.from_payload(options, self._config)
        if updated != self._config:
            _CLIENT_LOGGER.debug("Scalebar reconfigured: %s", updated)
        self._config = updated
        return updated

    def current_pixels_per_unit(self, snapshot: ViewerSnapshot, config: Optional[ScalebarConfig] = None) -> Optional[float]:
        config = config or self._config
        if config.pixels_per_unit is None:
            return None
        index = config.reference_item_index
        if not 0 <= index < len(snapshot.items):
            return None
        zoom = image_zoom(snapshot.items[index], snapshot.container_size.width, snapshot.viewport_zoom)
        return zoom * config.pixels_per_unit

    def measure_overlay(self, result: RenderResult, config: Optional[ScalebarConfig] = None) -> Size:
        config = config or self._config
        measurer = self._text_measurer or qt_text_measurer
        _, text_height = measurer(result.text, config.font_family, config.font_size)
        thickness = max(0, config.bar_thickness)
        width = result.size
        if config.style is ScalebarStyle.MAP:
            width += 2 * thickness
        return Size(width=width, height=float(text_height + thickness))

    def refresh(self, snapshot: ViewerSnapshot, options: Optional[Mapping[str, Any]] = None) -> ScalebarFrame:
        if options:
            self.reconfigure(options)
        config = self._config
        reason = self._disabled_reason(snapshot, config)
        if reason is not None:
            return self._hide(reason)
        rate = self.current_pixels_per_unit(snapshot, config)
        if rate is None or not math.isfinite(rate) or rate <= 0.0:
            return self._hide(f"no usable pixels-per-unit rate ({rate!r})")

        try:
            result = config.size_and_text_renderer()(rate, config.min_width)
        except (ValueError, OverflowError) as exc:
            return self._hide(f"cannot render scale for rate {rate!r}: {exc}")
        overlay_size = self.measure_overlay(result, config)
        anchor = config.anchor_spec()
        if anchor is None:
            return self._hide("no location")
        try:
            position = resolve_anchor_position(
                overlay_size,
                snapshot.container_size,
                anchor,
                snapshot.transform,
                wrap_horizontal=snapshot.wrap_horizontal,
                wrap_vertical=snapshot.wrap_vertical,
                aspect_ratio=snapshot.aspect_ratio,
            )
        except ValueError as exc:
            return self._hide(str(exc))
        if self._hidden_reason is not None:
            _CLIENT_LOGGER.debug("Scalebar shown again (was hidden: %s)", self._hidden_reason)
            self._hidden_reason = None
        return ScalebarFrame(visible=True, result=result, position=position, overlay_size=overlay_size)

    def render_image(self, frame: ScalebarFrame) -> Optional[QImage]:
        """Return a QImage holding only the bar, or ``None`` for hidden frames."""
        if not frame.visible or frame.result is None or frame.overlay_size is None:
            return None
        command = ScalebarPaintCommand.from_config(self._config, frame.result.text)
        width, height = _pixel_extent(frame.overlay_size)
        return render_scalebar_image(command, width, height)

    def render_with_image(self, base_image: QImage, frame: ScalebarFrame) -> QImage:
        """Return a copy of ``base_image`` with the bar drawn at the frame position."""
        if not frame.visible or frame.result is None or frame.overlay_size is None or frame.position is None:
            return base_image.copy()
        command = ScalebarPaintCommand.from_config(self._config, frame.result.text)
        width, height = _pixel_extent(frame.overlay_size)
        return compose_scalebar_image(base_image, command, (frame.position.x, frame.position.y), width, height)

    # Internal helpers ----------------------------------------------------

    def _disabled_reason(self, snapshot: ViewerSnapshot, config: ScalebarConfig) -> Optional[str]:
        if not snapshot.is_open:
            return "viewer not open"
        if config.style is ScalebarStyle.NONE:
            return "style is none"
        if config.location is None:
            return "no location"
        if config.pixels_per_unit is None:
            return "pixels_per_unit not configured"
        if not (math.isfinite(config.min_width) and config.min_width > 0.0):
            return f"min_width must be > 0 (got {config.min_width!r})"
        if not 0 <= config.reference_item_index < len(snapshot.items):
            return f"reference item {config.reference_item_index} not loaded"
        return None

    def _hide(self, reason: str) -> ScalebarFrame:
        if reason != self._hidden_reason:
            _CLIENT_LOGGER.debug("Scalebar hidden: %s", reason)
            self._hidden_reason = reason
        return ScalebarFrame.hidden(reason)


def _pixel_extent(size: Size) -> Tuple[int, int]:
    return int(math.ceil(size.width)), int(math.ceil(size.height))
