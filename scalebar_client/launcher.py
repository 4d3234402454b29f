from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

from PyQt6.QtGui import QGuiApplication

from scalebar_client.anchor_position import LinearViewportTransform, Size  # type: ignore
from scalebar_client.scalebar import Scalebar, ScalebarFrame, TiledImageState, ViewerSnapshot, _CLIENT_LOGGER  # type: ignore
from scalebar_client.scalebar_config import ScalebarConfig, load_scalebar_settings  # type: ignore
from version import __version__  # type: ignore

LOG_LEVEL_ENV_VAR = "SCALEBAR_OVERLAY_LOG_LEVEL"
DEFAULT_SETTINGS_PATH = Path("scalebar_settings.json")


def resolve_log_level(value: Optional[str]) -> Optional[int]:
    """Turn a level name or number (argument or environment) into a logging level."""
    raw = value if value is not None else os.getenv(LOG_LEVEL_ENV_VAR)
    if raw is None:
        return None
    token = str(raw).strip()
    if not token:
        return None
    try:
        return int(token)
    except ValueError:
        pass
    attr = getattr(logging, token.upper(), None)
    if isinstance(attr, int):
        return attr
    return None


def configure_logging(level: Optional[int]) -> logging.Handler:
    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d UTC - %(levelname)s - %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )
    formatter.converter = time.gmtime
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    _CLIENT_LOGGER.addHandler(handler)
    if level is not None:
        _CLIENT_LOGGER.setLevel(level)
    return handler


def _parse_pair(value: str, separator: str) -> Tuple[float, float]:
    parts = value.lower().split(separator)
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"expected two numbers separated by '{separator}', got {value!r}")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected numbers in {value!r}") from None


def _container(value: str) -> Tuple[float, float]:
    width, height = _parse_pair(value, "x")
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError("container dimensions must be > 0")
    return width, height


def _pan(value: str) -> Tuple[float, float]:
    return _parse_pair(value, ",")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute a scale bar for an image view")
    parser.add_argument("--settings", type=Path, default=DEFAULT_SETTINGS_PATH, help="Path to scalebar settings JSON (default: ./scalebar_settings.json)")
    parser.add_argument("--zoom", type=float, required=True, help="Screen pixels per image pixel")
    parser.add_argument("--container", type=_container, required=True, help="Container size as WIDTHxHEIGHT")
    parser.add_argument("--pixels-per-unit", type=float, help="Override the calibration from the settings file")
    parser.add_argument("--image-width", type=float, help="Image width in pixels (defaults to the container width)")
    parser.add_argument("--aspect-ratio", type=float, default=1.0, help="Image width divided by height")
    parser.add_argument("--pan", type=_pan, default=(0.0, 0.0), help="Image top-left in container pixels as X,Y")
    parser.add_argument("--wrap-horizontal", action="store_true")
    parser.add_argument("--wrap-vertical", action="store_true")
    parser.add_argument("--export", type=Path, help="Write the bar to this PNG file")
    parser.add_argument("--log-level", help="Logging level name or number")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_snapshot(args: argparse.Namespace) -> ViewerSnapshot:
    container_width, container_height = args.container
    image_width = args.image_width if args.image_width else container_width
    # Reference item spans the viewport width, so viewport zoom 1 shows it container-wide.
    viewport_zoom = args.zoom * image_width / container_width
    transform = LinearViewportTransform(
        content_width=image_width * args.zoom,
        origin_x=args.pan[0],
        origin_y=args.pan[1],
    )
    return ViewerSnapshot(
        is_open=True,
        viewport_zoom=viewport_zoom,
        container_size=Size(container_width, container_height),
        items=(TiledImageState(scale=1.0, source_width=image_width),),
        transform=transform,
        wrap_horizontal=args.wrap_horizontal,
        wrap_vertical=args.wrap_vertical,
        aspect_ratio=args.aspect_ratio,
    )


def _export(scalebar: Scalebar, frame: ScalebarFrame, path: Path) -> bool:
    image = scalebar.render_image(frame)
    if image is None or not image.save(str(path), "PNG"):
        _CLIENT_LOGGER.warning("Failed to write scalebar image to %s", path)
        return False
    _CLIENT_LOGGER.info("Scalebar image written to %s", path)
    return True


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = configure_logging(resolve_log_level(args.log_level))
    try:
        return _run(args)
    finally:
        _CLIENT_LOGGER.removeHandler(handler)


def _run(args: argparse.Namespace) -> int:
    # Font metrics need an application object; no window is ever shown.
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QGuiApplication.instance() or QGuiApplication(sys.argv[:1])  # noqa: F841

    if not args.settings.is_file():
        _CLIENT_LOGGER.warning("Settings file %s not found; using defaults", args.settings)
    config = load_scalebar_settings(args.settings)
    if args.pixels_per_unit is not None:
        config = ScalebarConfig.from_payload({"pixels_per_unit": args.pixels_per_unit}, config)
    _CLIENT_LOGGER.debug("Loaded scalebar settings from %s: %s", args.settings, config)
    scalebar = Scalebar(config)
    frame = scalebar.refresh(build_snapshot(args))
    if not frame.visible or frame.result is None or frame.position is None:
        print(f"hidden: {frame.reason}")
        return 1
    print(f"label: {frame.result.text}")
    print(f"size: {frame.result.size:.2f}")
    print(f"position: {frame.position.x:.2f},{frame.position.y:.2f}")
    if args.export is not None and not _export(scalebar, frame, args.export):
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
