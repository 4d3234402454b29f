"""Unit ladders and the size/text renderers built on them."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from scalebar_client.magnitude import normalize_magnitude, round_significand  # type: ignore

__all__ = [
    "RenderResult",
    "SizeAndTextRenderer",
    "UnitDomain",
    "UnitLadder",
    "UnitLadderStep",
    "ASTRONOMY_LADDER",
    "IMPERIAL_LADDER",
    "STANDARD_TIME_LADDER",
    "astronomy",
    "format_number",
    "imperial_length",
    "metric_generic",
    "metric_length",
    "metric_size_and_text",
    "render_ladder",
    "size_and_text",
    "standard_time",
    "with_metric_prefix",
]

INCHES_PER_METER = 0.0254

# (upper bound, multiplier, prefix); checked in order, first match wins.
_METRIC_PREFIXES: Tuple[Tuple[float, float, str], ...] = (
    (1e-6, 1e9, "n"),
    (1e-3, 1e6, "μ"),
    (1.0, 1e3, "m"),
)


@dataclass(frozen=True)
class RenderResult:
    size: float
    text: str


SizeAndTextRenderer = Callable[[float, float], RenderResult]


@dataclass(frozen=True)
class UnitLadderStep:
    """One rung of a unit ladder.

    ``step_up_threshold`` is how many of this unit the bar may reach before
    the next rung takes over; ``multiplier_to_next`` converts a rate in this
    unit to a rate in the next one. Both are ``None`` on the last rung.
    """

    suffix: str
    step_up_threshold: Optional[float] = None
    multiplier_to_next: Optional[float] = None
    pluralizable: bool = False
    metric_prefixed: bool = False
    spacer: str = " "


@dataclass(frozen=True)
class UnitLadder:
    steps: Tuple[UnitLadderStep, ...]
    base_index: int = 0
    base_factor: float = 1.0

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("A unit ladder needs at least one step")
        if not 0 <= self.base_index < len(self.steps):
            raise ValueError(f"base_index {self.base_index} outside ladder of {len(self.steps)} steps")
        if not (math.isfinite(self.base_factor) and self.base_factor > 0.0):
            raise ValueError(f"base_factor must be finite and > 0, got {self.base_factor!r}")
        cumulative = 1.0
        previous_limit = 0.0
        for step in self.steps[:-1]:
            threshold = step.step_up_threshold
            multiplier = step.multiplier_to_next
            if threshold is None or multiplier is None:
                raise ValueError(f"Step {step.suffix!r} needs a threshold and multiplier")
            if multiplier <= 1.0:
                raise ValueError(f"Step {step.suffix!r} multiplier must be > 1, got {multiplier!r}")
            if threshold <= 0.0:
                raise ValueError(f"Step {step.suffix!r} threshold must be > 0, got {threshold!r}")
            limit = cumulative * threshold
            if limit <= previous_limit:
                raise ValueError(f"Step {step.suffix!r} threshold does not increase along the ladder")
            previous_limit = limit
            cumulative *= multiplier

    def rates(self, pixels_per_base_unit: float) -> List[float]:
        """Pixels per unit for every rung, derived outward from the base rung."""
        rates = [0.0] * len(self.steps)
        rates[self.base_index] = pixels_per_base_unit * self.base_factor
        for index in range(self.base_index - 1, -1, -1):
            rates[index] = rates[index + 1] / float(self.steps[index].multiplier_to_next)  # type: ignore[arg-type]
        for index in range(self.base_index + 1, len(self.steps)):
            rates[index] = rates[index - 1] * float(self.steps[index - 1].multiplier_to_next)  # type: ignore[arg-type]
        return rates


IMPERIAL_LADDER = UnitLadder(
    steps=(
        UnitLadderStep("th", step_up_threshold=1000, multiplier_to_next=1000),
        UnitLadderStep("in", step_up_threshold=12, multiplier_to_next=12),
        UnitLadderStep("ft", step_up_threshold=2000, multiplier_to_next=5280),
        UnitLadderStep("mi"),
    ),
    base_index=1,
    base_factor=INCHES_PER_METER,
)

ASTRONOMY_LADDER = UnitLadder(
    steps=(
        UnitLadderStep('"', step_up_threshold=60, multiplier_to_next=60, spacer=""),
        UnitLadderStep("'", step_up_threshold=60, multiplier_to_next=60, spacer=""),
        UnitLadderStep("°", spacer=""),
    ),
)

STANDARD_TIME_LADDER = UnitLadder(
    steps=(
        UnitLadderStep("s", step_up_threshold=60, multiplier_to_next=60, metric_prefixed=True),
        UnitLadderStep("minute", step_up_threshold=60, multiplier_to_next=60, pluralizable=True),
        UnitLadderStep("hour", step_up_threshold=24, multiplier_to_next=24, pluralizable=True),
        UnitLadderStep("day", step_up_threshold=365.25, multiplier_to_next=365.25, pluralizable=True),
        UnitLadderStep("year", pluralizable=True),
    ),
)


def format_number(value: float) -> str:
    if math.isfinite(value) and value == int(value) and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


def with_metric_prefix(value: float, unit_suffix: str) -> str:
    for bound, multiplier, prefix in _METRIC_PREFIXES:
        if value < bound:
            return f"{format_number(round_significand(value * multiplier, 3))} {prefix}{unit_suffix}"
    if value >= 1000:
        return f"{format_number(round_significand(value / 1000, 3))} k{unit_suffix}"
    return f"{format_number(value)} {unit_suffix}"


def _factor_and_size(pixels_per_unit: float, min_width: float) -> Tuple[float, float]:
    value = normalize_magnitude(pixels_per_unit, min_width)
    factor = round_significand((value / pixels_per_unit) * min_width, 3)
    return factor, value * min_width


def size_and_text(
    pixels_per_unit: float,
    min_width: float,
    unit_suffix: str,
    handle_plural: bool = False,
    spacer: str = " ",
) -> RenderResult:
    factor, size = _factor_and_size(pixels_per_unit, min_width)
    plural = "s" if handle_plural and factor > 1 else ""
    return RenderResult(size=size, text=f"{format_number(factor)}{spacer}{unit_suffix}{plural}")


def metric_size_and_text(pixels_per_unit: float, min_width: float, unit_suffix: str) -> RenderResult:
    factor, size = _factor_and_size(pixels_per_unit, min_width)
    return RenderResult(size=size, text=with_metric_prefix(factor, unit_suffix))


def _render_step(step: UnitLadderStep, pixels_per_unit: float, min_width: float) -> RenderResult:
    if step.metric_prefixed:
        return metric_size_and_text(pixels_per_unit, min_width, step.suffix)
    return size_and_text(pixels_per_unit, min_width, step.suffix, step.pluralizable, step.spacer)


def render_ladder(ladder: UnitLadder, pixels_per_base_unit: float, min_width: float) -> RenderResult:
    """Render with the finest rung whose next unit is wider than a double-minimum bar."""
    max_size = min_width * 2
    rates = ladder.rates(pixels_per_base_unit)
    last = len(ladder.steps) - 1
    for index, step in enumerate(ladder.steps[:last]):
        if step.step_up_threshold == step.multiplier_to_next:
            limit = rates[index + 1]
        else:
            limit = rates[index] * float(step.step_up_threshold)  # type: ignore[arg-type]
        if max_size < limit:
            return _render_step(step, rates[index], min_width)
    return _render_step(ladder.steps[last], rates[last], min_width)


def metric_length(pixels_per_meter: float, min_width: float) -> RenderResult:
    """Metric length, from nanometres to kilometres."""
    return metric_size_and_text(pixels_per_meter, min_width, "m")


def imperial_length(pixels_per_meter: float, min_width: float) -> RenderResult:
    """Imperial length, picking thou, inch, foot or mile."""
    return render_ladder(IMPERIAL_LADDER, pixels_per_meter, min_width)


def astronomy(pixels_per_arcsecond: float, min_width: float) -> RenderResult:
    return render_ladder(ASTRONOMY_LADDER, pixels_per_arcsecond, min_width)


def standard_time(pixels_per_second: float, min_width: float) -> RenderResult:
    """Seconds (with metric divisions), minutes, hours, days or years."""
    return render_ladder(STANDARD_TIME_LADDER, pixels_per_second, min_width)


def metric_generic(unit_suffix: str) -> SizeAndTextRenderer:
    """Build a metric renderer for any unit, e.g. ``metric_generic("eV")``."""

    def _render(pixels_per_unit: float, min_width: float) -> RenderResult:
        return metric_size_and_text(pixels_per_unit, min_width, unit_suffix)

    return _render


class UnitDomain(Enum):
    METRIC_LENGTH = "metric-length"
    IMPERIAL_LENGTH = "imperial-length"
    ASTRONOMY = "astronomy"
    STANDARD_TIME = "standard-time"
    METRIC_GENERIC = "metric-generic"

    @classmethod
    def from_token(cls, value: object) -> Optional["UnitDomain"]:
        if isinstance(value, UnitDomain):
            return value
        if not isinstance(value, str):
            return None
        token = value.strip().lower().replace("_", "-")
        for member in cls:
            if token == member.value:
                return member
        return None

    def renderer(self, unit_suffix: str = "") -> SizeAndTextRenderer:
        if self is UnitDomain.METRIC_GENERIC:
            return metric_generic(unit_suffix)
        return _DOMAIN_RENDERERS[self]


_DOMAIN_RENDERERS = {
    UnitDomain.METRIC_LENGTH: metric_length,
    UnitDomain.IMPERIAL_LENGTH: imperial_length,
    UnitDomain.ASTRONOMY: astronomy,
    UnitDomain.STANDARD_TIME: standard_time,
}
