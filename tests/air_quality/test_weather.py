"""Tests for the OpenWeatherMap client with mocked HTTP responses."""

from unittest.mock import MagicMock

import pytest
import requests

from src.air_quality.config import AQIPipelineConfig
from src.air_quality.weather import (
    OpenWeatherClient,
    WeatherSnapshot,
    fetch_current_conditions,
    map_openweather_index,
    reconcile_with_reference,
)

WEATHER_PAYLOAD = {
    "main": {"temp": 31.5, "humidity": 78, "pressure": 1006},
    "wind": {"speed": 4.2},
    "weather": [{"main": "Haze"}],
}

POLLUTION_PAYLOAD = {
    "list": [
        {
            "main": {"aqi": 4},
            "components": {
                "pm2_5": 80.0,
                "pm10": 120.0,
                "o3": 20.0,
                "no2": 15.0,
                "so2": 5.0,
                "co": 900.0,
                "nh3": 3.0,
            },
        }
    ]
}


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    return resp


@pytest.fixture
def client():
    cfg = AQIPipelineConfig()
    c = OpenWeatherClient(cfg, api_key="owm_test")
    c.session = MagicMock()

    def _get(url, params=None, timeout=None):
        if url == cfg.weather_url:
            return _response(WEATHER_PAYLOAD)
        return _response(POLLUTION_PAYLOAD)

    c.session.get.side_effect = _get
    return c


class TestOpenWeatherClient:
    """Parsing of current weather and air pollution."""

    def test_current_weather(self, client):
        snapshot = client.current()
        assert snapshot == WeatherSnapshot(temperature=31.5, humidity=78, wind_speed=4.2)

        url, = client.session.get.call_args.args
        params = client.session.get.call_args.kwargs["params"]
        assert url == client.config.weather_url
        assert params["units"] == "metric"
        assert params["appid"] == "owm_test"

    def test_current_air_pollution_converts_co(self, client):
        snapshot = client.current_air_pollution()
        assert snapshot.reference_index == 4
        assert snapshot.reading["pm25"] == 80.0
        assert snapshot.reading["co"] == pytest.approx(0.9)
        assert "nh3" not in snapshot.reading

    def test_missing_key_returns_none(self, client):
        client.api_key = None
        assert client.current() is None
        assert client.current_air_pollution() is None
        client.session.get.assert_not_called()

    def test_request_failure_returns_none(self, client):
        client.session.get.side_effect = requests.ConnectionError("offline")
        assert client.current() is None

    def test_empty_pollution_list(self, client):
        client.session.get.side_effect = None
        client.session.get.return_value = _response({"list": []})
        assert client.current_air_pollution() is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"main": "hot", "wind": {"speed": 1.0}},
            {"main": {"temp": 20.0}, "wind": [3.0]},
        ],
    )
    def test_malformed_weather_payload_returns_none(self, client, payload):
        client.session.get.side_effect = None
        client.session.get.return_value = _response(payload)
        assert client.current() is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"list": {"a": 1}},
            {"list": ["entry"]},
            {"list": [{"main": {"aqi": 2}, "components": {"co": "abc"}}]},
            {"list": [{"main": 3, "components": {"pm2_5": 10.0}}]},
            {"list": [{"components": [80.0, 120.0]}]},
        ],
    )
    def test_malformed_pollution_payload_returns_none(self, client, payload):
        client.session.get.side_effect = None
        client.session.get.return_value = _response(payload)
        assert client.current_air_pollution() is None


class TestCurrentConditions:
    """Parallel fetch + AQI reconciliation."""

    def test_fetch_current_conditions(self, client):
        conditions = fetch_current_conditions(client)

        assert conditions.weather.temperature == 31.5
        assert conditions.aqi.dominant_pollutant == "pm25"
        # pm2.5 = 80 -> 164, reference 4 -> 175: within 50, keep calculated
        assert conditions.aqi.aqi == 164
        assert conditions.final_aqi == 164

    def test_weather_failure_does_not_block_pollution(self, client):
        def _get(url, params=None, timeout=None):
            if url == client.config.weather_url:
                raise requests.Timeout("slow")
            return _response(POLLUTION_PAYLOAD)

        client.session.get.side_effect = _get
        conditions = fetch_current_conditions(client)
        assert conditions.weather is None
        assert conditions.aqi is not None

    def test_malformed_pollution_does_not_raise(self, client):
        def _get(url, params=None, timeout=None):
            if url == client.config.weather_url:
                return _response(WEATHER_PAYLOAD)
            return _response({"list": [{"components": {"co": "abc"}}]})

        client.session.get.side_effect = _get
        conditions = fetch_current_conditions(client)
        assert conditions.weather.temperature == 31.5
        assert conditions.air_pollution is None
        assert conditions.aqi is None

    def test_malformed_weather_does_not_raise(self, client):
        def _get(url, params=None, timeout=None):
            if url == client.config.weather_url:
                return _response({"main": ["31.5"]})
            return _response(POLLUTION_PAYLOAD)

        client.session.get.side_effect = _get
        conditions = fetch_current_conditions(client)
        assert conditions.weather is None
        assert conditions.final_aqi == 164

    def test_pollution_failure(self, client):
        client.api_key = None
        conditions = fetch_current_conditions(client)
        assert conditions.air_pollution is None
        assert conditions.aqi is None
        assert conditions.final_aqi is None


class TestReconciliation:
    """OpenWeatherMap 1-5 index mapping."""

    def test_map_index(self):
        assert map_openweather_index(1) == 25
        assert map_openweather_index(5) == 300
        assert map_openweather_index(9) == 0
        assert map_openweather_index(None) == 0

    def test_large_discrepancy_uses_reference(self):
        assert reconcile_with_reference(150, 1) == 25

    def test_small_discrepancy_keeps_calculated(self):
        assert reconcile_with_reference(60, 2) == 60

    def test_no_reference_keeps_calculated(self):
        assert reconcile_with_reference(180, None) == 180
