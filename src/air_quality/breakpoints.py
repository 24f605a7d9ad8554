"""
EPA-style breakpoint tables: the single definition of every pollutant's
concentration-to-index mapping.

Units: pm25/pm10 in ug/m3, o3/no2/so2 in ppb, co in ppm.

Each table is an ordered tuple of segments. The last segment of a table is
open-ended: concentrations above its nominal upper bound reuse its slope.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

TABLE_VERSION = "epa-2012.1"

# Canonical feature order for time-series points. Weather columns, when
# present, are appended after these.
POLLUTANTS: Tuple[str, ...] = ("pm25", "pm10", "o3", "no2", "so2", "co")


@dataclass(frozen=True)
class BreakpointSegment:
    conc_low: float
    conc_high: float
    aqi_low: int
    aqi_high: int

    @property
    def slope(self) -> float:
        return (self.aqi_high - self.aqi_low) / (self.conc_high - self.conc_low)

    def contains(self, concentration: float) -> bool:
        return concentration <= self.conc_high


def _table(*rows: Tuple[float, float, int, int]) -> Tuple[BreakpointSegment, ...]:
    return tuple(BreakpointSegment(*row) for row in rows)


BREAKPOINT_TABLES: Mapping[str, Tuple[BreakpointSegment, ...]] = {
    "pm25": _table(
        (0.0, 12.0, 0, 50),
        (12.1, 35.4, 51, 100),
        (35.5, 55.4, 101, 150),
        (55.5, 150.4, 151, 200),
        (150.5, 250.4, 201, 300),
        (250.5, 350.4, 301, 400),
        (350.5, 500.4, 401, 500),
    ),
    "pm10": _table(
        (0, 54, 0, 50),
        (55, 154, 51, 100),
        (155, 254, 101, 150),
        (255, 354, 151, 200),
        (355, 424, 201, 300),
        (425, 504, 301, 400),
        (505, 604, 401, 500),
    ),
    "o3": _table(
        (0, 54, 0, 50),
        (55, 70, 51, 100),
        (71, 85, 101, 150),
        (86, 105, 151, 200),
        (106, 200, 201, 300),
        (201, 504, 301, 500),
    ),
    "no2": _table(
        (0, 53, 0, 50),
        (54, 100, 51, 100),
        (101, 360, 101, 150),
        (361, 649, 151, 200),
        (650, 1249, 201, 300),
        (1250, 1649, 301, 400),
        (1650, 2049, 401, 500),
    ),
    "so2": _table(
        (0, 35, 0, 50),
        (36, 75, 51, 100),
        (76, 185, 101, 150),
        (186, 304, 151, 200),
        (305, 604, 201, 300),
        (605, 804, 301, 400),
        (805, 1004, 401, 500),
    ),
    "co": _table(
        (0.0, 4.4, 0, 50),
        (4.5, 9.4, 51, 100),
        (9.5, 12.4, 101, 150),
        (12.5, 15.4, 151, 200),
        (15.5, 30.4, 201, 300),
        (30.5, 40.4, 301, 400),
        (40.5, 50.4, 401, 500),
    ),
}


@dataclass(frozen=True)
class AQICategory:
    label: str
    color: str
    aqi_low: int
    aqi_high: Optional[int]


AQI_CATEGORIES: Tuple[AQICategory, ...] = (
    AQICategory("Good", "#00e400", 0, 50),
    AQICategory("Moderate", "#ffff00", 51, 100),
    AQICategory("Unhealthy for Sensitive Groups", "#ff7e00", 101, 150),
    AQICategory("Unhealthy", "#ff0000", 151, 200),
    AQICategory("Very Unhealthy", "#8f3f97", 201, 300),
    AQICategory("Hazardous", "#7e0023", 301, None),
)


def category_for(aqi: int) -> AQICategory:
    """Map an AQI value to its health category (301+ is Hazardous)."""
    for category in AQI_CATEGORIES:
        if category.aqi_high is None or aqi <= category.aqi_high:
            return category
    return AQI_CATEGORIES[-1]
