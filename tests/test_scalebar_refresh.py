from __future__ import annotations

import math
from typing import List, Optional, Tuple

import pytest
from PyQt6.QtGui import QColor, QImage

from scalebar_client.anchor_position import LinearViewportTransform, Point, Size
from scalebar_client.scalebar import Scalebar, ScalebarFrame, TiledImageState, ViewerSnapshot, image_zoom
from scalebar_client.scalebar_config import ScalebarConfig, ScalebarStyle
from scalebar_client.unit_ladder import RenderResult


class _FakeMeasurer:
    def __init__(self, width: int = 40, height: int = 16) -> None:
        self.extent = (width, height)
        self.calls: List[Tuple[str, str, Optional[float]]] = []

    def __call__(self, text: str, family: str, point_size: Optional[float]) -> Tuple[int, int]:
        self.calls.append((text, family, point_size))
        return self.extent


def _snapshot(**overrides) -> ViewerSnapshot:
    values = dict(
        is_open=True,
        viewport_zoom=1.0,
        container_size=Size(400.0, 300.0),
        items=(TiledImageState(scale=1.0, source_width=400.0),),
        transform=LinearViewportTransform(content_width=400.0),
        aspect_ratio=4.0 / 3.0,
    )
    values.update(overrides)
    return ViewerSnapshot(**values)


def _scalebar(**config) -> Scalebar:
    base = dict(pixels_per_unit=2.5)
    base.update(config)
    return Scalebar(ScalebarConfig(**base), text_measurer=_FakeMeasurer())


def test_image_zoom_scales_viewport_zoom_by_item_ratio() -> None:
    item = TiledImageState(scale=0.5, source_width=1000.0)
    assert image_zoom(item, 800.0, 2.0) == pytest.approx(0.8)
    assert math.isnan(image_zoom(TiledImageState(scale=1.0, source_width=0.0), 800.0, 1.0))


def test_refresh_produces_label_size_and_position() -> None:
    measurer = _FakeMeasurer()
    scalebar = Scalebar(ScalebarConfig(pixels_per_unit=2.5), text_measurer=measurer)
    frame = scalebar.refresh(_snapshot())
    assert frame.visible
    assert frame.result is not None
    assert frame.result.text == "100 m"
    assert frame.result.size == pytest.approx(250.0)
    assert frame.overlay_size == Size(pytest.approx(250.0), 18.0)
    assert frame.position == Point(pytest.approx(5.0), pytest.approx(277.0))
    assert measurer.calls == [("100 m", "", None)]


def test_refresh_follows_viewport_zoom() -> None:
    scalebar = _scalebar()
    frame = scalebar.refresh(_snapshot(viewport_zoom=10.0))
    assert frame.result is not None
    assert frame.result.text == "10 m"
    assert frame.result.size == pytest.approx(250.0)


def test_refresh_uses_reference_item_index() -> None:
    items = (
        TiledImageState(scale=1.0, source_width=400.0),
        TiledImageState(scale=1.0, source_width=4000.0),
    )
    frame = _scalebar(reference_item_index=1).refresh(_snapshot(items=items))
    assert frame.result is not None
    # second item is ten times denser, so each source pixel is ten times smaller on screen
    assert frame.result.text == "1 km"


def test_map_style_widens_overlay_for_side_ticks() -> None:
    scalebar = _scalebar(style=ScalebarStyle.MAP, location=None)
    scalebar.reconfigure({"location": "bottom-right", "stay_inside_image": False})
    frame = scalebar.refresh(_snapshot())
    assert frame.overlay_size == Size(pytest.approx(254.0), 18.0)
    assert frame.position == Point(pytest.approx(141.0), pytest.approx(277.0))


def test_custom_renderer_drives_label() -> None:
    def renderer(rate: float, min_width: float) -> RenderResult:
        return RenderResult(size=min_width, text=f"{rate:g} px/u")

    frame = _scalebar(renderer=renderer).refresh(_snapshot())
    assert frame.result == RenderResult(size=150.0, text="2.5 px/u")


@pytest.mark.parametrize(
    "config, snapshot, reason",
    [
        ({}, {"is_open": False}, "viewer not open"),
        ({"style": ScalebarStyle.NONE}, {}, "style is none"),
        ({"location": None}, {}, "no location"),
        ({"pixels_per_unit": None}, {}, "pixels_per_unit not configured"),
        ({"min_width": 0.0}, {}, "min_width must be > 0"),
        ({}, {"items": ()}, "reference item 0 not loaded"),
        ({}, {"viewport_zoom": 0.0}, "no usable pixels-per-unit rate"),
        ({}, {"aspect_ratio": 0.0}, "aspect_ratio must be finite and > 0"),
        ({}, {"aspect_ratio": math.nan}, "aspect_ratio must be finite and > 0"),
        ({}, {"viewport_zoom": 1e-320}, "cannot render scale"),
        ({"pixels_per_unit": 1e300}, {"viewport_zoom": 1e8}, "cannot render scale"),
    ],
)
def test_refresh_hides_instead_of_raising(config, snapshot, reason) -> None:
    frame = _scalebar(**config).refresh(_snapshot(**snapshot))
    assert not frame.visible
    assert frame.result is None
    assert frame.position is None
    assert frame.reason.startswith(reason)


def test_refresh_options_reconfigure_without_mutating_previous_config() -> None:
    scalebar = _scalebar()
    previous = scalebar.config
    frame = scalebar.refresh(_snapshot(), {"unit_domain": "imperial-length", "location": "top-left"})
    assert frame.result is not None
    assert frame.result.text.endswith("ft")
    assert previous.location is not None and previous.location.value == "bottom-left"
    assert scalebar.config is not previous
    assert scalebar.config.location is not None and scalebar.config.location.value == "top-left"


def test_reconfigure_accepts_config_instance() -> None:
    scalebar = _scalebar()
    replacement = ScalebarConfig(pixels_per_unit=1.0, min_width=100.0)
    assert scalebar.reconfigure(replacement) is replacement
    assert scalebar.config is replacement


def test_hidden_then_visible_again() -> None:
    scalebar = _scalebar()
    assert not scalebar.refresh(_snapshot(is_open=False)).visible
    assert not scalebar.refresh(_snapshot(is_open=False)).visible
    assert scalebar.refresh(_snapshot()).visible


def test_render_image_returns_none_for_hidden_frame() -> None:
    scalebar = _scalebar()
    assert scalebar.render_image(ScalebarFrame.hidden("viewer not open")) is None


def test_render_image_matches_overlay_extent(qt_app) -> None:
    scalebar = _scalebar(color="red")
    frame = scalebar.refresh(_snapshot())
    image = scalebar.render_image(frame)
    assert image is not None
    assert image.width() == math.ceil(frame.overlay_size.width)
    assert image.height() == 18
    assert QColor(image.pixel(100, 17)).name() == "#ff0000"


def test_render_with_image_draws_at_frame_position(qt_app) -> None:
    scalebar = _scalebar(color="red")
    frame = scalebar.refresh(_snapshot())
    base = QImage(400, 300, QImage.Format.Format_ARGB32_Premultiplied)
    base.fill(QColor("white"))
    composed = scalebar.render_with_image(base, frame)
    # bar occupies the last two rows of the overlay: y 277 + 16 .. 277 + 18
    assert QColor(composed.pixel(100, 294)).name() == "#ff0000"
    assert QColor(composed.pixel(100, 100)).name() == "#ffffff"
    assert QColor(base.pixel(100, 294)).name() == "#ffffff"
    untouched = scalebar.render_with_image(base, ScalebarFrame.hidden("viewer not open"))
    assert QColor(untouched.pixel(100, 294)).name() == "#ffffff"


def test_top_corner_ignores_unusable_aspect_ratio() -> None:
    frame = _scalebar(location=None).refresh(_snapshot(aspect_ratio=0.0), {"location": "top-left"})
    assert frame.visible
    assert frame.position == Point(pytest.approx(5.0), pytest.approx(5.0))
