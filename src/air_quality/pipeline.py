"""
AQI forecast pipeline.

pad -> normalize -> (append weather) -> remote predictor -> denormalize -> AQI
falls back to the statistical forecaster when the predictor fails.

`predict` never raises for data, weather or predictor problems; the caller
learns which path produced the forecast from `ForecastResult.source`.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable, List, Mapping, Optional, Sequence, Union

import numpy as np

from .aqi import AQIEngine
from .breakpoints import POLLUTANTS
from .config import AQIPipelineConfig
from .fallback import FallbackForecaster
from .forecast import ForecastResult
from .history import HistoricalDataSource, reading_to_vector, readings_to_series
from .normalization import TimeSeriesNormalizer
from .predictor import Predictor
from .sources import FallbackSource, ForecastRequest, RemoteSource
from .weather import WeatherProvider, WeatherSnapshot

logger = logging.getLogger(__name__)

WeatherInput = Union[WeatherSnapshot, Mapping[str, Optional[float]]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def pad_series(series: np.ndarray, min_length: int = 24) -> np.ndarray:
    """
    Left-pad to `min_length` rows by repeating the earliest row, or zero rows
    when the series is empty.
    """
    if len(series) >= min_length:
        return series

    if len(series) == 0:
        return np.zeros((min_length, len(POLLUTANTS)))

    padding = np.repeat(series[:1], min_length - len(series), axis=0)
    return np.vstack([padding, series])


def weather_features(
    weather: Optional[WeatherInput],
    config: AQIPipelineConfig,
) -> List[float]:
    """temperature/100, humidity/100, wind_speed/10; each only if present."""
    if weather is None:
        return []

    if isinstance(weather, WeatherSnapshot):
        values = {
            "temperature": weather.temperature,
            "humidity": weather.humidity,
            "wind_speed": weather.wind_speed,
        }
    else:
        values = dict(weather)

    divisors = (
        ("temperature", config.temperature_divisor),
        ("humidity", config.humidity_divisor),
        ("wind_speed", config.wind_speed_divisor),
    )
    features = []
    for key, divisor in divisors:
        value = values.get(key)
        if value is None:
            continue
        try:
            value = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(value):
            features.append(value / divisor)
    return features


def append_weather_features(series: np.ndarray, features: Sequence[float]) -> np.ndarray:
    if not features:
        return series
    extra = np.tile(np.asarray(features, dtype=float), (len(series), 1))
    return np.hstack([series, extra])


def _coerce_point(point) -> np.ndarray:
    if isinstance(point, Mapping):
        return np.asarray(reading_to_vector(point))

    try:
        vector = np.asarray(point, dtype=float)
    except (TypeError, ValueError):
        vector = None

    if vector is None or vector.shape != (len(POLLUTANTS),):
        logger.warning("[pipeline] malformed point replaced with zeros: %r", point)
        return np.zeros(len(POLLUTANTS))

    return np.nan_to_num(vector, nan=0.0, posinf=0.0, neginf=0.0)


def coerce_series(series: Sequence) -> np.ndarray:
    """Readings or pollutant vectors -> (n, len(POLLUTANTS)) float array."""
    if len(series) == 0:
        return np.zeros((0, len(POLLUTANTS)))
    return np.vstack([_coerce_point(p) for p in series])


class PredictionPipeline:
    def __init__(
        self,
        config: Optional[AQIPipelineConfig] = None,
        predictor: Optional[Predictor] = None,
        weather_provider: Optional[WeatherProvider] = None,
        *,
        engine: Optional[AQIEngine] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.config = config or AQIPipelineConfig()
        self.engine = engine or AQIEngine()
        self.normalizer = TimeSeriesNormalizer(clamp_factor=self.config.clamp_factor)
        self.weather_provider = weather_provider
        self.clock = clock

        self.remote = (
            RemoteSource(predictor, self.normalizer, self.engine) if predictor is not None else None
        )
        self.fallback = FallbackSource(
            FallbackForecaster(
                self.engine,
                window=self.config.fallback_window,
                period=self.config.daily_period,
                jitter_fraction=self.config.jitter_fraction,
                rng=rng,
            )
        )

    def _resolve_weather(self, weather: Optional[WeatherInput]) -> Optional[WeatherInput]:
        if weather is not None or self.weather_provider is None:
            return weather
        try:
            return self.weather_provider.current()
        except Exception as e:
            logger.warning("[pipeline] weather lookup failed, continuing without: %s", e)
            return None

    def predict(
        self,
        series: Sequence,
        horizon: Optional[int] = None,
        weather: Optional[WeatherInput] = None,
        reference_hour: Optional[int] = None,
    ) -> ForecastResult:
        horizon = self.config.horizon if horizon is None else horizon
        if horizon < 1:
            raise ValueError(f"horizon must be >= 1, got {horizon}")

        padded = pad_series(coerce_series(series), self.config.min_history)
        stats = self.normalizer.fit(padded)

        # weather columns go in divisor-scaled, not min-max scaled
        features = weather_features(self._resolve_weather(weather), self.config)
        normalized = append_weather_features(
            self.normalizer.transform_series(padded, stats), features
        )

        if reference_hour is None:
            reference_hour = self.clock().hour

        request = ForecastRequest(
            series=padded,
            normalized=normalized,
            stats=stats,
            horizon=horizon,
            reference_hour=reference_hour,
        )
        logger.info(
            "[pipeline] history=%d padded=%d features=%d horizon=%d",
            len(series),
            len(padded),
            normalized.shape[1],
            horizon,
        )

        if self.remote is not None:
            points = self.remote.forecast(request)
            if points is not None:
                return ForecastResult(source=self.remote.name, forecast=points)

        points = self.fallback.forecast(request)
        return ForecastResult(source=self.fallback.name, forecast=points)

    def predict_from(
        self,
        source: HistoricalDataSource,
        horizon: Optional[int] = None,
        weather: Optional[WeatherInput] = None,
        reference_hour: Optional[int] = None,
    ) -> ForecastResult:
        readings = source.recent(self.config.history_window)
        return self.predict(readings_to_series(readings), horizon, weather, reference_hour)
