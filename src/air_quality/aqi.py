from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .breakpoints import (
    BREAKPOINT_TABLES,
    POLLUTANTS,
    AQICategory,
    BreakpointSegment,
    category_for,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AQIResult:
    aqi: int
    sub_indices: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        # read-only copy, detached from the caller's dict
        object.__setattr__(self, "sub_indices", MappingProxyType(dict(self.sub_indices)))

    @property
    def dominant_pollutant(self) -> Optional[str]:
        if not self.sub_indices:
            return None
        return max(self.sub_indices, key=lambda p: self.sub_indices[p])

    @property
    def category(self) -> AQICategory:
        return category_for(self.aqi)

    def to_dict(self) -> dict:
        return {
            "aqi": self.aqi,
            "category": self.category.label,
            "dominant_pollutant": self.dominant_pollutant,
            "sub_indices": dict(self.sub_indices),
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_measured(value: Optional[float]) -> bool:
    """
    A pollutant counts as measured only if it is a finite value > 0.

    Absent, None, NaN and exact zero readings are all treated as no data.
    """
    if value is None:
        return False
    try:
        value = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value > 0


class AQIEngine:
    """
    Table-driven AQI calculator.

    Sub-indices come from piecewise-linear interpolation inside the first
    segment whose upper bound covers the concentration; above the last
    segment the last formula is extrapolated (no 500 cap). The overall AQI is
    the maximum sub-index over measured pollutants.
    """

    def __init__(
        self,
        tables: Mapping[str, Tuple[BreakpointSegment, ...]] = BREAKPOINT_TABLES,
    ):
        self.tables = tables

    def _segment_for(self, pollutant: str, concentration: float) -> BreakpointSegment:
        try:
            segments = self.tables[pollutant]
        except KeyError:
            raise KeyError(
                f"Unknown pollutant '{pollutant}'. Known: {sorted(self.tables)}"
            ) from None

        for segment in segments:
            if segment.contains(concentration):
                return segment
        return segments[-1]

    def index_for(self, pollutant: str, concentration: float) -> int:
        concentration = float(concentration)
        if not math.isfinite(concentration) or concentration < 0:
            raise ValueError(
                f"Concentration must be a finite value >= 0, got {concentration} for {pollutant}"
            )

        segment = self._segment_for(pollutant, concentration)
        raw = segment.slope * (concentration - segment.conc_low) + segment.aqi_low
        return _round_half_up(raw)

    def aggregate(self, reading: Mapping[str, Optional[float]]) -> AQIResult:
        sub_indices: dict[str, int] = {}
        for pollutant in POLLUTANTS:
            if pollutant not in self.tables:
                continue
            value = reading.get(pollutant)
            if not is_measured(value):
                continue
            sub_indices[pollutant] = self.index_for(pollutant, float(value))

        aqi = max(sub_indices.values()) if sub_indices else 0
        logger.debug("[aqi] sub_indices=%s aqi=%s", sub_indices, aqi)
        return AQIResult(aqi=aqi, sub_indices=sub_indices)


_DEFAULT_ENGINE = AQIEngine()


def index_for(pollutant: str, concentration: float) -> int:
    return _DEFAULT_ENGINE.index_for(pollutant, concentration)


def aggregate(reading: Mapping[str, Optional[float]]) -> AQIResult:
    return _DEFAULT_ENGINE.aggregate(reading)
