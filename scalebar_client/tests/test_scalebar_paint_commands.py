from __future__ import annotations

from typing import Any, List, Tuple

from PyQt6.QtGui import QColor, QImage

from scalebar_client.paint_commands import (
    ScalebarPaintCommand,
    coerce_color,
    compose_scalebar_image,
    qt_text_measurer,
    render_scalebar_image,
)
from scalebar_client.scalebar_config import ScalebarConfig, ScalebarStyle


class _RecordingPainter:
    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []

    def fillRect(self, x, y, w, h, color) -> None:  # noqa: N802
        self.calls.append(("fillRect", x, y, w, h, QColor(color).name()))

    def setFont(self, font) -> None:  # noqa: N802
        self.calls.append(("setFont", font.pointSizeF()))

    def setPen(self, color) -> None:  # noqa: N802
        self.calls.append(("setPen", QColor(color).name()))

    def drawText(self, rect, flags, text) -> None:  # noqa: N802
        self.calls.append(("drawText", rect.height(), text))


def _fill_rects(painter: _RecordingPainter) -> List[Tuple[Any, ...]]:
    return [call[1:5] for call in painter.calls if call[0] == "fillRect"]


def test_coerce_color_handles_transparent_and_invalid_values() -> None:
    assert coerce_color("none").alpha() == 0
    assert coerce_color("transparent").alpha() == 0
    assert coerce_color("red").name() == "#ff0000"
    assert coerce_color("not-a-colour", "blue").name() == "#0000ff"


def test_microscopy_command_draws_bottom_bar_and_label(qt_app) -> None:
    command = ScalebarPaintCommand(style=ScalebarStyle.MICROSCOPY, text="100 m", bar_thickness=2)
    painter = _RecordingPainter()
    command.paint(painter, 10, 20, 250, 18)
    assert _fill_rects(painter) == [(10, 36, 250, 2)]
    assert ("drawText", 16.0, "100 m") in painter.calls


def test_map_command_adds_side_ticks(qt_app) -> None:
    command = ScalebarPaintCommand(style=ScalebarStyle.MAP, text="5 ft", bar_thickness=3)
    painter = _RecordingPainter()
    command.paint(painter, 0, 0, 100, 20)
    assert _fill_rects(painter) == [(0, 17, 100, 3), (0, 0, 3, 20), (97, 0, 3, 20)]


def test_background_is_filled_only_when_visible() -> None:
    command = ScalebarPaintCommand(
        style=ScalebarStyle.MICROSCOPY,
        text="",
        background_color=QColor("white"),
        bar_thickness=2,
    )
    painter = _RecordingPainter()
    command.paint(painter, 0, 0, 50, 10)
    assert painter.calls[0] == ("fillRect", 0, 0, 50, 10, "#ffffff")
    assert not any(call[0] == "drawText" for call in painter.calls)


def test_none_style_paints_nothing() -> None:
    painter = _RecordingPainter()
    ScalebarPaintCommand(style=ScalebarStyle.NONE, text="1 m").paint(painter, 0, 0, 50, 10)
    assert painter.calls == []


def test_command_from_config_parses_colours() -> None:
    config = ScalebarConfig(color="red", font_color="#00ff00", background_color="none", bar_thickness=4, font_size=12.0)
    command = ScalebarPaintCommand.from_config(config, "2 km")
    assert command.color.name() == "#ff0000"
    assert command.font_color.name() == "#00ff00"
    assert command.background_color.alpha() == 0
    assert command.bar_thickness == 4
    assert command.point_size == 12.0
    assert command.text == "2 km"


def test_render_scalebar_image_draws_bar_pixels(qt_app) -> None:
    command = ScalebarPaintCommand(style=ScalebarStyle.MICROSCOPY, text="", color=QColor("red"), bar_thickness=2)
    image = render_scalebar_image(command, 40, 10)
    assert (image.width(), image.height()) == (40, 10)
    assert QColor(image.pixel(20, 9)).red() == 255
    assert QColor.fromRgba(image.pixel(20, 2)).alpha() == 0


def test_compose_scalebar_image_leaves_base_untouched(qt_app) -> None:
    base = QImage(100, 60, QImage.Format.Format_ARGB32_Premultiplied)
    base.fill(QColor("white"))
    command = ScalebarPaintCommand(style=ScalebarStyle.MICROSCOPY, text="", color=QColor("black"), bar_thickness=2)
    composed = compose_scalebar_image(base, command, (10.0, 30.0), 50, 10)
    assert QColor(composed.pixel(20, 39)).name() == "#000000"
    assert QColor(base.pixel(20, 39)).name() == "#ffffff"


def test_qt_text_measurer_reports_positive_extent(qt_app) -> None:
    width, height = qt_text_measurer("100 m", "", 10.0)
    assert width > 0
    assert height > 0
