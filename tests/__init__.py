"""
AQI Forecast Test Suite

Tests organized by component:
- air_quality/test_aqi.py: breakpoint lookup + max aggregation
- air_quality/test_normalization.py: min-max scaling round trips
- air_quality/test_fallback.py: statistical fallback forecaster
- air_quality/test_pipeline.py: remote/fallback pipeline (stubbed predictor)
- air_quality/test_predictor.py: predictor client + response parsing
- air_quality/test_weather.py: OpenWeatherMap client (mocked HTTP)
- air_quality/test_history.py: history adapters
- air_quality/test_config.py: config defaults + one-time .env lookup
- air_quality/test_cli.py: Typer CLI smoke tests
"""
