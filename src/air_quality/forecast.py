"""
Forecast value objects shared by the remote and fallback paths.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from .aqi import AQIEngine, AQIResult
from .breakpoints import POLLUTANTS


class ForecastSource(str, Enum):
    REMOTE = "remote"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ForecastPoint:
    hour_offset: int
    aqi: AQIResult
    pollutants: Mapping[str, float]

    def to_dict(self) -> dict:
        return {
            "hour_offset": self.hour_offset,
            "aqi": self.aqi.aqi,
            "category": self.aqi.category.label,
            "dominant_pollutant": self.aqi.dominant_pollutant,
            "pollutants": dict(self.pollutants),
        }


@dataclass(frozen=True)
class ForecastResult:
    source: ForecastSource
    forecast: Tuple[ForecastPoint, ...]

    def __len__(self) -> int:
        return len(self.forecast)

    def aqi_values(self) -> list[int]:
        return [p.aqi.aqi for p in self.forecast]

    def to_dict(self) -> dict:
        return {
            "source": self.source.value,
            "forecast": [p.to_dict() for p in self.forecast],
        }

    def to_frame(self) -> pd.DataFrame:
        """One row per future hour: hour_offset, aqi, category, pollutant columns."""
        rows = []
        for point in self.forecast:
            row = {
                "hour_offset": point.hour_offset,
                "aqi": point.aqi.aqi,
                "category": point.aqi.category.label,
                "dominant_pollutant": point.aqi.dominant_pollutant,
            }
            row.update(point.pollutants)
            rows.append(row)
        df = pd.DataFrame(rows, columns=["hour_offset", "aqi", "category", "dominant_pollutant", *POLLUTANTS])
        df["source"] = self.source.value
        return df


def to_forecast_points(
    values: Sequence[Sequence[float]],
    engine: AQIEngine,
) -> Tuple[ForecastPoint, ...]:
    """
    Convert pollutant vectors (original units) to ForecastPoints.

    Only the first len(POLLUTANTS) columns are used; values are clamped at 0.
    """
    matrix = np.maximum(np.asarray(values, dtype=float)[:, : len(POLLUTANTS)], 0.0)
    points = []
    for offset, row in enumerate(matrix, start=1):
        pollutants = {name: float(v) for name, v in zip(POLLUTANTS, row)}
        points.append(
            ForecastPoint(hour_offset=offset, aqi=engine.aggregate(pollutants), pollutants=pollutants)
        )
    return tuple(points)
