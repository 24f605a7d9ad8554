from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AQIPipelineConfig:
    # Location (OpenWeatherMap lookups)
    latitude: float = 23.8103
    longitude: float = 90.4125

    # Remote predictor
    predictor_url: str = (
        "https://api-inference.huggingface.co/models/huggingface/time-series-transformer"
    )
    predictor_timeout: float = 30.0
    predictor_num_samples: int = 1

    # OpenWeatherMap
    weather_url: str = "https://api.openweathermap.org/data/2.5/weather"
    air_pollution_url: str = "https://api.openweathermap.org/data/2.5/air_pollution"
    request_timeout: float = 15.0

    # Forecasting
    horizon: int = 24
    history_window: int = 168
    min_history: int = 24
    fallback_window: int = 72
    daily_period: int = 24
    jitter_fraction: float = 0.05
    clamp_factor: float = 2.0

    # Weather feature scaling (value / divisor)
    temperature_divisor: float = 100.0
    humidity_divisor: float = 100.0
    wind_speed_divisor: float = 10.0

    # Reconciliation with OpenWeatherMap's own 1-5 index
    reference_discrepancy: int = 50


_env_loaded = False
_env_path: Optional[str] = None


def _find_env_file() -> Optional[str]:
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)
        logger.debug("[config] loaded .env via find_dotenv: %s", dotenv_path)
        return dotenv_path

    fallback = Path(__file__).resolve().parents[2] / ".env"
    if fallback.exists():
        load_dotenv(fallback, override=False)
        logger.debug("[config] loaded .env via fallback: %s", fallback)
        return str(fallback)

    return None


def load_env_once() -> Optional[str]:
    """
    Load .env if present (walk up from CWD, then repo root fallback).
    Only the first call touches the filesystem; later calls return the
    path found then, or None.
    """
    global _env_loaded, _env_path
    if not _env_loaded:
        _env_path = _find_env_file()
        _env_loaded = True
    return _env_path


def get_secret(name: str) -> Optional[str]:
    load_env_once()
    value = os.getenv(name)
    return value or None


def load_huggingface_api_key() -> Optional[str]:
    return get_secret("HUGGINGFACE_API_KEY")


def load_openweather_api_key() -> str:
    api_key = get_secret("OPENWEATHER_API_KEY")
    if not api_key:
        raise EnvironmentError(
            "OPENWEATHER_API_KEY is missing. Add it to your environment or .env file."
        )
    return api_key
