"""
Air quality core: AQI calculation + short-horizon AQI forecasting.

Modules:
- breakpoints: EPA-style breakpoint tables and AQI categories
- aqi: per-pollutant sub-index lookup + max aggregation
- normalization: min-max scaling of feature vectors
- fallback: trend + daily-pattern forecaster
- predictor: remote (Hugging Face) predictor client + response parsing
- sources: remote/fallback forecast sources
- pipeline: pad -> normalize -> predict -> denormalize -> AQI
- weather: OpenWeatherMap current weather + air pollution
- history: reading series adapters
- cli: Typer entry point
"""

from .aqi import AQIEngine, AQIResult, aggregate, index_for
from .forecast import ForecastPoint, ForecastResult, ForecastSource
from .pipeline import PredictionPipeline

__all__ = [
    "AQIEngine",
    "AQIResult",
    "ForecastPoint",
    "ForecastResult",
    "ForecastSource",
    "PredictionPipeline",
    "aggregate",
    "index_for",
]
