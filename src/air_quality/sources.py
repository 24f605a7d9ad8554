"""
Two interchangeable forecast sources behind one interface.

RemoteSource returns None when the predictor fails in any way; the pipeline
then asks FallbackSource, which always produces a forecast.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .aqi import AQIEngine
from .breakpoints import POLLUTANTS
from .fallback import FallbackForecaster
from .forecast import ForecastPoint, ForecastSource, to_forecast_points
from .normalization import NormalizationStats, TimeSeriesNormalizer
from .predictor import Predictor, parse_predictor_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForecastRequest:
    series: np.ndarray       # padded pollutant series, original units
    normalized: np.ndarray   # pollutants scaled to [0, 1], then weather columns
    stats: NormalizationStats
    horizon: int
    reference_hour: int


class RemoteSource:
    name = ForecastSource.REMOTE

    def __init__(
        self,
        predictor: Predictor,
        normalizer: Optional[TimeSeriesNormalizer] = None,
        engine: Optional[AQIEngine] = None,
    ):
        self.predictor = predictor
        self.normalizer = normalizer or TimeSeriesNormalizer()
        self.engine = engine or AQIEngine()

    def forecast(self, request: ForecastRequest) -> Optional[Tuple[ForecastPoint, ...]]:
        n_pollutants = len(POLLUTANTS)
        try:
            payload = self.predictor.forecast(request.normalized.tolist(), request.horizon)
            matrix = parse_predictor_response(payload, request.horizon, n_pollutants)
            restored = self.normalizer.inverse_transform_series(
                matrix[:, :n_pollutants], request.stats.head(n_pollutants)
            )
        except Exception as e:
            logger.warning("[remote] predictor failure, falling back: %s", e)
            return None

        return to_forecast_points(restored, self.engine)


class FallbackSource:
    name = ForecastSource.FALLBACK

    def __init__(self, forecaster: Optional[FallbackForecaster] = None):
        self.forecaster = forecaster or FallbackForecaster()

    def forecast(self, request: ForecastRequest) -> Optional[Tuple[ForecastPoint, ...]]:
        return self.forecaster.forecast(
            request.series, request.horizon, request.reference_hour
        )
