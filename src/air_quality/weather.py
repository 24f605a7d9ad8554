from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Protocol

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .aqi import AQIEngine, AQIResult
from .config import AQIPipelineConfig, get_secret

logger = logging.getLogger(__name__)

# OpenWeatherMap's 1-5 air quality index -> representative US EPA AQI
OPENWEATHER_INDEX_TO_AQI = {1: 25, 2: 75, 3: 125, 4: 175, 5: 300}


@dataclass(frozen=True)
class WeatherSnapshot:
    temperature: Optional[float] = None   # deg C
    humidity: Optional[float] = None      # %
    wind_speed: Optional[float] = None    # m/s


@dataclass(frozen=True)
class AirPollutionSnapshot:
    reading: dict
    reference_index: Optional[int] = None  # OpenWeatherMap 1-5 scale


@dataclass(frozen=True)
class CurrentConditions:
    weather: Optional[WeatherSnapshot]
    air_pollution: Optional[AirPollutionSnapshot]
    aqi: Optional[AQIResult]
    final_aqi: Optional[int]


class WeatherProvider(Protocol):
    def current(self) -> Optional[WeatherSnapshot]:
        ...


def map_openweather_index(index: Optional[int]) -> int:
    return OPENWEATHER_INDEX_TO_AQI.get(index, 0) if index is not None else 0


def reconcile_with_reference(
    calculated: int,
    reference_index: Optional[int],
    max_discrepancy: int = 50,
) -> int:
    """
    Prefer OpenWeatherMap's mapped index when it disagrees with the calculated
    AQI by more than `max_discrepancy` points.
    """
    mapped = map_openweather_index(reference_index)
    if reference_index is not None and abs(calculated - mapped) > max_discrepancy:
        logger.info(
            "[weather] calculated AQI %s differs from reference %s by >%s, using reference",
            calculated,
            mapped,
            max_discrepancy,
        )
        return mapped
    return calculated


class OpenWeatherClient:
    """
    Current weather and air pollution from OpenWeatherMap.

    Lookups never raise: any failure is logged and reported as None so the
    forecast can proceed without weather features.
    """

    def __init__(
        self,
        config: Optional[AQIPipelineConfig] = None,
        api_key: Optional[str] = None,
    ):
        self.config = config or AQIPipelineConfig()
        self.api_key = api_key or get_secret("OPENWEATHER_API_KEY")
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        retries = Retry(total=3, backoff_factor=0.5, status_forcelist=[500, 502, 503, 504])
        session.mount("https://", HTTPAdapter(max_retries=retries))
        return session

    def _get(self, url: str, **extra) -> Optional[dict]:
        if not self.api_key:
            logger.warning("[weather] OPENWEATHER_API_KEY missing, skipping %s", url)
            return None

        params = {
            "lat": self.config.latitude,
            "lon": self.config.longitude,
            "appid": self.api_key,
            **extra,
        }
        try:
            resp = self.session.get(url, params=params, timeout=self.config.request_timeout)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("[weather] request failed for %s: %s", url, e)
            return None

        return payload if isinstance(payload, dict) else None

    def current(self) -> Optional[WeatherSnapshot]:
        payload = self._get(self.config.weather_url, units="metric")
        if not payload:
            return None

        try:
            main = payload.get("main") or {}
            wind = payload.get("wind") or {}
            snapshot = WeatherSnapshot(
                temperature=main.get("temp"),
                humidity=main.get("humidity"),
                wind_speed=wind.get("speed"),
            )
        except (TypeError, KeyError, AttributeError, IndexError) as e:
            logger.warning("[weather] malformed weather payload: %s", e)
            return None

        logger.info("[weather] current: %s", snapshot)
        return snapshot

    def current_air_pollution(self) -> Optional[AirPollutionSnapshot]:
        payload = self._get(self.config.air_pollution_url)
        if not payload:
            return None

        entries = payload.get("list") or []
        if not entries:
            logger.warning("[weather] air pollution response has no entries")
            return None

        try:
            entry = entries[0]
            components = entry.get("components") or {}
            co = components.get("co")
            reading = {
                "pm25": components.get("pm2_5"),
                "pm10": components.get("pm10"),
                "o3": components.get("o3"),
                "no2": components.get("no2"),
                "so2": components.get("so2"),
                # ug/m3 -> ppm (approximate)
                "co": co / 1000 if co is not None else None,
            }
            reference_index = (entry.get("main") or {}).get("aqi")
        except (TypeError, KeyError, AttributeError, IndexError) as e:
            logger.warning("[weather] malformed air pollution payload: %s", e)
            return None

        return AirPollutionSnapshot(reading=reading, reference_index=reference_index)


def fetch_current_conditions(
    client: OpenWeatherClient,
    engine: Optional[AQIEngine] = None,
) -> CurrentConditions:
    """
    Fetch current weather and air pollution in parallel and compute the AQI.

    Either lookup may fail independently; its field is then None.
    """
    engine = engine or AQIEngine()

    with ThreadPoolExecutor(max_workers=2) as executor:
        weather_future = executor.submit(client.current)
        pollution_future = executor.submit(client.current_air_pollution)
        weather = weather_future.result()
        pollution = pollution_future.result()

    if pollution is None:
        return CurrentConditions(weather=weather, air_pollution=None, aqi=None, final_aqi=None)

    result = engine.aggregate(pollution.reading)
    final_aqi = reconcile_with_reference(
        result.aqi,
        pollution.reference_index,
        client.config.reference_discrepancy,
    )
    return CurrentConditions(
        weather=weather,
        air_pollution=pollution,
        aqi=result,
        final_aqi=final_aqi,
    )
