"""Level to power scaling for affix rolls.

A character or item level is normalized to ``[0, 1]`` and pushed through a
monotonic curve to get its *power position*. Affix rolls place their center at
``lerp(effect_min, effect_max, power_position)`` and then sample inside a fuzz
window around that center, so two items of the same level still differ.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias

import numpy as np

from diceforge import config
from diceforge.types import LevelBand
from diceforge.util import rng as rng_module

logger = logging.getLogger(__name__)

_region_rng = rng_module.get("scaling.region")


def _clamp(value: float, min_value: float = 0.0, max_value: float = 1.0) -> float:
    return max(min_value, min(max_value, value))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


class ScalingCurveType(Enum):
    LINEAR = "linear"
    EASE_IN = "ease_in"
    EASE_OUT = "ease_out"
    SMOOTHSTEP = "smoothstep"
    CUSTOM = "custom"


@dataclass(slots=True)
class ScalingCurve:
    """Monotonic mapping from normalized level to power position.

    ``CUSTOM`` curves are piecewise linear through ``points`` (pairs of
    ``(x, y)`` with ascending ``x``). A curve is only monotonic if its ``y``
    values are; :meth:`is_monotonic` checks that for custom points.
    """

    curve_type: ScalingCurveType = ScalingCurveType.LINEAR
    exponent: float = 2.0
    points: Sequence[tuple[float, float]] = ()

    def __call__(self, value: float) -> float:
        return self.evaluate(value)

    def evaluate(self, value: float) -> float:
        value = _clamp(value)
        match self.curve_type:
            case ScalingCurveType.LINEAR:
                return value
            case ScalingCurveType.EASE_IN:
                return value**self.exponent
            case ScalingCurveType.EASE_OUT:
                return 1.0 - (1.0 - value) ** self.exponent
            case ScalingCurveType.SMOOTHSTEP:
                return value * value * (3.0 - 2.0 * value)
            case ScalingCurveType.CUSTOM:
                if not self.points:
                    return value
                xs = np.array([p[0] for p in self.points], dtype=np.float64)
                ys = np.array([p[1] for p in self.points], dtype=np.float64)
                return _clamp(float(np.interp(value, xs, ys)))
        return value

    def is_monotonic(self) -> bool:
        if self.curve_type is not ScalingCurveType.CUSTOM or not self.points:
            return True
        ys = np.array([p[1] for p in self.points], dtype=np.float64)
        return bool(np.all(np.diff(ys) >= 0))


CurveFn: TypeAlias = Callable[[float], float]


def power_position(
    level: float, max_level: float, curve: CurveFn | None = None
) -> float:
    """Map ``level`` in ``[1, max_level]`` to a power position in ``[0, 1]``.

    Without a curve the normalized level is returned unchanged.
    """
    if max_level <= 1:
        logger.warning(f"max_level {max_level} leaves no range to scale; using 1.0")
        return 1.0 if level >= 1 else 0.0

    normalized = _clamp((level - 1) / (max_level - 1))
    if curve is None:
        return normalized
    return _clamp(float(curve(normalized)))


@dataclass(frozen=True, slots=True)
class FuzzWindow:
    """Inclusive bounds an affix roll is sampled from."""

    min: float
    max: float

    @property
    def width(self) -> float:
        return self.max - self.min


def fuzz_range(
    center: float,
    effect_min: float,
    effect_max: float,
    fuzz_pct: float,
    min_absolute_fuzz: float,
) -> FuzzWindow:
    """Return the roll window around ``center``, clamped to the effect range.

    The fuzz is ``max(|center| * fuzz_pct, min_absolute_fuzz)``: percentage fuzz
    alone collapses to a point for small integer ranges, so the absolute floor
    keeps some variance at low power.
    """
    lo, hi = min(effect_min, effect_max), max(effect_min, effect_max)
    actual_fuzz = max(abs(center) * fuzz_pct, min_absolute_fuzz)
    window_min = max(center - actual_fuzz, lo)
    window_max = min(center + actual_fuzz, hi)
    if window_min > window_max:
        # Center sat outside the effect range; pin to the nearest bound.
        pinned = _clamp(center, lo, hi)
        return FuzzWindow(pinned, pinned)
    return FuzzWindow(window_min, window_max)


@dataclass
class ScalingConfig:
    """Scaling parameters injected into affix rolls.

    Attributes:
        max_level: Level that maps to power position 1.0.
        fuzz_pct: Default fuzz fraction; affixes may override with ``roll_fuzz``.
        min_absolute_fuzz: Absolute floor for the fuzz window.
        curve: Optional monotonic curve applied after normalization.
        region_bands: Level band per region id for procedural generation.
    """

    max_level: int = config.MAX_LEVEL
    fuzz_pct: float = config.DEFAULT_FUZZ_PCT
    min_absolute_fuzz: float = config.MIN_ABSOLUTE_FUZZ
    curve: CurveFn | None = None
    region_bands: dict[int, LevelBand] = field(
        default_factory=lambda: dict(config.REGION_LEVEL_BANDS)
    )

    def power_position(self, level: float) -> float:
        return power_position(level, self.max_level, self.curve)

    def fuzz_range(
        self,
        center: float,
        effect_min: float,
        effect_max: float,
        fuzz_override: float | None = None,
    ) -> FuzzWindow:
        fuzz_pct = self.fuzz_pct if fuzz_override is None else fuzz_override
        return fuzz_range(
            center, effect_min, effect_max, fuzz_pct, self.min_absolute_fuzz
        )

    def region_level_range(self, region_id: int) -> LevelBand:
        """Return the level band for ``region_id``.

        Unknown ids clamp to the nearest configured region with a warning.
        """
        if region_id in self.region_bands:
            return self.region_bands[region_id]
        if not self.region_bands:
            logger.warning(f"No region bands configured; region {region_id} -> 1")
            return (1, 1)
        known = sorted(self.region_bands)
        clamped = known[0] if region_id < known[0] else known[-1]
        logger.warning(f"Region {region_id} out of range, clamped to {clamped}")
        return self.region_bands[clamped]

    def level_for_region(
        self, region_id: int, rng: rng_module.RNG | None = None
    ) -> int:
        """Pick a level inside the region's band."""
        low, high = self.region_level_range(region_id)
        return (rng or _region_rng).randint(low, high)


def roll_in_window(
    window: FuzzWindow, integer: bool, rng: rng_module.RNG
) -> int | float:
    """Sample uniformly inside ``window``.

    Integer rolls pick from the whole numbers inside the window; a window too
    narrow to contain one rounds its midpoint instead.
    """
    if integer:
        low = int(np.ceil(window.min))
        high = int(np.floor(window.max))
        if low > high:
            return round((window.min + window.max) / 2)
        return rng.randint(low, high)
    return rng.uniform(window.min, window.max)
