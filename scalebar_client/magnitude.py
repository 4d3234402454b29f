"""Round-magnitude selection for scale bars (pure calculations, no Qt types)."""
from __future__ import annotations

import math
import sys
from dataclasses import dataclass

__all__ = [
    "MagnitudeSelection",
    "normalize_magnitude",
    "round_significand",
    "select_magnitude",
    "significand",
]


@dataclass(frozen=True)
class MagnitudeSelection:
    """Normalised ratio chosen for a bar and the quantities derived from it."""

    ratio: float
    pixel_size: float
    length: float


def _require_positive(name: str, value: float) -> float:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(numeric) or numeric <= 0.0:
        raise ValueError(f"{name} must be finite and > 0, got {value!r}")
    # Subnormals overflow the power-of-ten scaling below.
    if numeric < sys.float_info.min:
        raise ValueError(f"{name} is too small to scale, got {value!r}")
    return numeric


def significand(x: float) -> float:
    """Return ``x`` scaled by a power of ten into ``[1, 10)``."""
    x = _require_positive("x", x)
    return x * 10.0 ** math.ceil(-math.log10(x))


def normalize_magnitude(pixels_per_unit: float, min_width: float) -> float:
    """Return the dimensionless bar ratio in ``[1, 2)``.

    The ladder below is three independent checks, not a loop: a value that
    drops under 5 after the first division is still tested against 4 and 2.
    """
    pixels_per_unit = _require_positive("pixels_per_unit", pixels_per_unit)
    min_width = _require_positive("min_width", min_width)
    rate_digits = significand(pixels_per_unit)
    width_digits = significand(min_width)
    result = significand(rate_digits / width_digits)
    if result >= 5:
        result /= 5
    if result >= 4:
        result /= 4
    if result >= 2:
        result /= 2
    return result


def select_magnitude(pixels_per_unit: float, min_width: float) -> MagnitudeSelection:
    ratio = normalize_magnitude(pixels_per_unit, min_width)
    return MagnitudeSelection(
        ratio=ratio,
        pixel_size=ratio * float(min_width),
        length=(ratio / float(pixels_per_unit)) * float(min_width),
    )


def round_significand(x: float, decimal_places: int = 3) -> float:
    """Round ``x`` after its leading digit, working on integers to dodge float noise."""
    x = _require_positive("x", x)
    exponent = -math.ceil(-math.log10(x))
    power = decimal_places - exponent
    scaled = x * 10.0 ** power
    rounded = math.floor(scaled + 0.5)
    if power < 0:
        return rounded * 10.0 ** -power
    return rounded / 10.0 ** power
