"""
AQI Forecast - Air Quality Index calculation and short-horizon forecasting

Modules:
- air_quality: AQI engine, normalization, remote/fallback forecasting pipeline
"""
