"""Configuration helpers for the scalebar overlay."""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from scalebar_client.anchor_position import AnchorCorner, AnchorSpec  # type: ignore
from scalebar_client.unit_ladder import SizeAndTextRenderer, UnitDomain  # type: ignore

_CONFIG_LOGGER = logging.getLogger("ScalebarOverlay.Client")

_MISSING = object()


class ScalebarStyle(Enum):
    NONE = "none"
    MICROSCOPY = "microscopy"
    MAP = "map"

    @classmethod
    def from_token(cls, value: Any) -> Optional["ScalebarStyle"]:
        if isinstance(value, ScalebarStyle):
            return value
        if not isinstance(value, str):
            return None
        token = value.strip().lower()
        for member in cls:
            if token == member.value:
                return member
        return None


@dataclass(frozen=True)
class ScalebarConfig:
    """Everything the scalebar needs besides the viewer state.

    Instances are never mutated; reconfiguring produces a new one.
    """

    style: ScalebarStyle = ScalebarStyle.MICROSCOPY
    unit_domain: UnitDomain = UnitDomain.METRIC_LENGTH
    unit_suffix: str = ""
    renderer: Optional[SizeAndTextRenderer] = None
    pixels_per_unit: Optional[float] = None
    reference_item_index: int = 0
    min_width: float = 150.0
    location: Optional[AnchorCorner] = AnchorCorner.BOTTOM_LEFT
    x_offset: float = 5.0
    y_offset: float = 5.0
    stay_inside_image: bool = True
    color: str = "black"
    font_color: str = "black"
    background_color: str = "none"
    font_size: Optional[float] = None
    font_family: str = ""
    bar_thickness: int = 2

    def size_and_text_renderer(self) -> SizeAndTextRenderer:
        if self.renderer is not None:
            return self.renderer
        return self.unit_domain.renderer(self.unit_suffix)

    def anchor_spec(self) -> Optional[AnchorSpec]:
        if self.location is None:
            return None
        return AnchorSpec(
            corner=self.location,
            offset_x=self.x_offset,
            offset_y=self.y_offset,
            clamp_to_content=self.stay_inside_image,
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], base: Optional["ScalebarConfig"] = None) -> "ScalebarConfig":
        """Build a config from a settings payload, keeping ``base`` values for absent or invalid keys."""
        current = base if base is not None else cls()

        def _float(value: Any, fallback: Optional[float]) -> Optional[float]:
            if value is None:
                return fallback
            try:
                numeric = float(value)
            except (TypeError, ValueError):
                return fallback
            if not math.isfinite(numeric):
                return fallback
            return numeric

        def _int(value: Any, fallback: int) -> int:
            try:
                return int(value)
            except (TypeError, ValueError):
                return fallback

        def _str(value: Any, fallback: str) -> str:
            if value is None:
                return fallback
            return str(value).strip()

        def _pixels(value: Any, fallback: float) -> float:
            if isinstance(value, str):
                token = value.strip().lower()
                if token.endswith("px"):
                    token = token[:-2].strip()
                value = token
            numeric = _float(value, fallback)
            return fallback if numeric is None else numeric

        updates: Dict[str, Any] = {}

        style = payload.get("style", payload.get("type", _MISSING))
        if style is not _MISSING:
            updates["style"] = ScalebarStyle.from_token(style) or current.style

        renderer = payload.get("renderer", _MISSING)
        if renderer is not _MISSING:
            updates["renderer"] = renderer if callable(renderer) else None

        domain = payload.get("unit_domain", _MISSING)
        if domain is not _MISSING:
            updates["unit_domain"] = UnitDomain.from_token(domain) or current.unit_domain
        if "unit_suffix" in payload:
            updates["unit_suffix"] = _str(payload.get("unit_suffix"), current.unit_suffix)

        if "pixels_per_unit" in payload:
            calibration = _float(payload.get("pixels_per_unit"), None)
            updates["pixels_per_unit"] = calibration if calibration is not None and calibration > 0.0 else None
        if "reference_item_index" in payload:
            updates["reference_item_index"] = max(0, _int(payload.get("reference_item_index"), current.reference_item_index))
        if "min_width" in payload:
            updates["min_width"] = _pixels(payload.get("min_width"), current.min_width)

        location = payload.get("location", _MISSING)
        if location is not _MISSING:
            if location is None or (isinstance(location, str) and location.strip().lower() == "none"):
                updates["location"] = None
            else:
                updates["location"] = AnchorCorner.from_token(location) or current.location
        for key in ("x_offset", "y_offset"):
            if key in payload:
                offset = _float(payload.get(key), getattr(current, key))
                updates[key] = max(0.0, offset if offset is not None else 0.0)
        if "stay_inside_image" in payload and payload.get("stay_inside_image") is not None:
            updates["stay_inside_image"] = bool(payload.get("stay_inside_image"))

        for key in ("color", "font_color", "background_color", "font_family"):
            if key in payload:
                updates[key] = _str(payload.get(key), getattr(current, key))
        if "font_size" in payload:
            font_size = _pixels(payload.get("font_size"), 0.0)
            updates["font_size"] = font_size if font_size > 0.0 else None
        if "bar_thickness" in payload:
            updates["bar_thickness"] = max(0, _int(payload.get("bar_thickness"), current.bar_thickness))

        return replace(current, **updates)


def load_scalebar_settings(settings_path: Path) -> ScalebarConfig:
    """Read scalebar defaults from a JSON settings file if it exists."""
    defaults = ScalebarConfig()
    try:
        raw = settings_path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return defaults

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        _CONFIG_LOGGER.warning("Ignoring malformed scalebar settings %s: %s", settings_path, exc)
        return defaults
    if not isinstance(data, dict):
        _CONFIG_LOGGER.warning("Ignoring scalebar settings %s: expected an object", settings_path)
        return defaults
    return ScalebarConfig.from_payload(data, defaults)
