from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from .aqi import AQIEngine
from .breakpoints import POLLUTANTS
from .forecast import ForecastPoint, to_forecast_points

logger = logging.getLogger(__name__)


def daily_pattern(window: np.ndarray, period: int = 24) -> np.ndarray:
    """
    Per hour bucket (row index % period) mean deviation from the window mean.

    Returns a (period, n_features) array; buckets with no rows are zero.
    """
    overall = window.mean(axis=0)
    pattern = np.zeros((period, window.shape[1]))
    buckets = np.arange(window.shape[0]) % period
    for hour in range(period):
        rows = window[buckets == hour]
        if len(rows):
            pattern[hour] = rows.mean(axis=0) - overall
    return pattern


class FallbackForecaster:
    """
    Local statistical forecaster used when no remote prediction is usable.

    value(h) = mean + trend * h + daily_pattern[(reference_hour + h) % period]
    plus a uniform +/- jitter_fraction perturbation, clamped at zero.
    """

    def __init__(
        self,
        engine: Optional[AQIEngine] = None,
        *,
        window: int = 72,
        period: int = 24,
        jitter_fraction: float = 0.05,
        rng: Optional[np.random.Generator] = None,
    ):
        self.engine = engine or AQIEngine()
        self.window = window
        self.period = period
        self.jitter_fraction = jitter_fraction
        self.rng = rng if rng is not None else np.random.default_rng()

    def _window(self, series: Sequence[Sequence[float]]) -> np.ndarray:
        matrix = np.asarray(series, dtype=float)
        if matrix.size == 0:
            return np.zeros((1, len(POLLUTANTS)))
        if matrix.ndim != 2:
            raise ValueError(f"Expected a 2-D series, got shape {matrix.shape}")
        return matrix[-self.window:]

    def forecast_values(
        self,
        series: Sequence[Sequence[float]],
        horizon: int,
        reference_hour: int,
    ) -> np.ndarray:
        """Forecast a (horizon, n_features) array of non-negative values."""
        window = self._window(series)
        n_points = window.shape[0]

        mean = window.mean(axis=0)
        if n_points >= 2:
            trend = np.diff(window, axis=0).mean(axis=0)
        else:
            trend = np.zeros(window.shape[1])

        pattern = daily_pattern(window, self.period) if n_points >= self.period else None

        logger.info(
            "[fallback] window=%d daily_pattern=%s horizon=%d reference_hour=%d",
            n_points,
            pattern is not None,
            horizon,
            reference_hour,
        )

        steps = np.arange(1, horizon + 1)
        values = mean + np.outer(steps, trend)
        if pattern is not None:
            values = values + pattern[(reference_hour + steps) % self.period]

        jitter = self.rng.uniform(
            -self.jitter_fraction, self.jitter_fraction, size=values.shape
        )
        values = values + values * jitter
        return np.maximum(values, 0.0)

    def forecast(
        self,
        series: Sequence[Sequence[float]],
        horizon: int,
        reference_hour: int,
    ) -> Tuple[ForecastPoint, ...]:
        values = self.forecast_values(series, horizon, reference_hour)
        return to_forecast_points(values, self.engine)
