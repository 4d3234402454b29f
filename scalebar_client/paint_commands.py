"""Paint command and Qt helpers for drawing the scale bar."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from PyQt6.QtCore import QRectF, Qt
from PyQt6.QtGui import QColor, QFont, QFontMetrics, QImage, QPainter

from scalebar_client.scalebar_config import ScalebarConfig, ScalebarStyle  # type: ignore

_TRANSPARENT_TOKENS = {"none", "transparent", ""}
DEFAULT_POINT_SIZE = 10.0


def coerce_color(value: Any, default: str = "black") -> QColor:
    if value is None:
        return QColor(default)
    token = str(value).strip()
    if token.lower() in _TRANSPARENT_TOKENS:
        return QColor(0, 0, 0, 0)
    color = QColor(token)
    if not color.isValid():
        return QColor(default)
    return color


def _build_font(font_family: str, point_size: Optional[float]) -> QFont:
    font = QFont(font_family) if font_family else QFont()
    font.setPointSizeF(point_size if point_size else DEFAULT_POINT_SIZE)
    return font


def qt_text_measurer(text: str, font_family: str, point_size: Optional[float]) -> Tuple[int, int]:
    """Return ``(width, height)`` of ``text`` using Qt font metrics; needs a running QGuiApplication."""
    metrics = QFontMetrics(_build_font(font_family, point_size))
    return metrics.horizontalAdvance(text), metrics.height()


@dataclass
class ScalebarPaintCommand:
    style: ScalebarStyle
    text: str = ""
    color: QColor = field(default_factory=lambda: QColor("black"))
    font_color: QColor = field(default_factory=lambda: QColor("black"))
    background_color: QColor = field(default_factory=lambda: QColor(0, 0, 0, 0))
    bar_thickness: int = 2
    font_family: str = ""
    point_size: Optional[float] = None

    @classmethod
    def from_config(cls, config: ScalebarConfig, text: str) -> "ScalebarPaintCommand":
        return cls(
            style=config.style,
            text=text,
            color=coerce_color(config.color, "black"),
            font_color=coerce_color(config.font_color, "black"),
            background_color=coerce_color(config.background_color, "transparent"),
            bar_thickness=config.bar_thickness,
            font_family=config.font_family,
            point_size=config.font_size,
        )

    def paint(self, painter: QPainter, x: int, y: int, width: int, height: int) -> None:
        if self.style is ScalebarStyle.NONE or width <= 0 or height <= 0:
            return
        thickness = max(0, min(self.bar_thickness, height))
        if self.background_color.alpha() > 0:
            painter.fillRect(x, y, width, height, self.background_color)
        if thickness:
            painter.fillRect(x, y + height - thickness, width, thickness, self.color)
            if self.style is ScalebarStyle.MAP:
                painter.fillRect(x, y, thickness, height, self.color)
                painter.fillRect(x + width - thickness, y, thickness, height, self.color)
        if self.text:
            painter.setFont(_build_font(self.font_family, self.point_size))
            painter.setPen(self.font_color)
            text_rect = QRectF(float(x), float(y), float(width), float(height - thickness))
            painter.drawText(text_rect, Qt.AlignmentFlag.AlignCenter, self.text)


def render_scalebar_image(command: ScalebarPaintCommand, width: int, height: int) -> QImage:
    """Draw the bar alone on a transparent image of the overlay's size."""
    image = QImage(max(1, width), max(1, height), QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(QColor(0, 0, 0, 0))
    painter = QPainter(image)
    try:
        command.paint(painter, 0, 0, width, height)
    finally:
        painter.end()
    return image


def compose_scalebar_image(
    base: QImage,
    command: ScalebarPaintCommand,
    position: Tuple[float, float],
    width: int,
    height: int,
) -> QImage:
    """Return a copy of ``base`` with the bar drawn at ``position``."""
    composed = base.convertToFormat(QImage.Format.Format_ARGB32_Premultiplied)
    painter = QPainter(composed)
    try:
        command.paint(painter, int(round(position[0])), int(round(position[1])), width, height)
    finally:
        painter.end()
    return composed
