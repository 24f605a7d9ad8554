from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import numpy as np
import typer
from rich.console import Console
from rich.table import Table

from .aqi import AQIEngine
from .breakpoints import POLLUTANTS, TABLE_VERSION
from .config import AQIPipelineConfig, load_openweather_api_key
from .history import load_history
from .pipeline import PredictionPipeline
from .predictor import HuggingFacePredictor
from .weather import OpenWeatherClient, fetch_current_conditions

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
app = typer.Typer(add_completion=False)
console = Console()


def _strip_ipykernel_args(argv: list[str]) -> list[str]:
    out = [argv[0]]
    i = 1
    while i < len(argv):
        a = argv[i]
        if a in ("-f", "--f"):
            i += 2
            continue
        if a.startswith("--f="):
            i += 1
            continue
        out.append(a)
        i += 1
    return out


@app.command()
def index(
    pm25: Optional[float] = None,
    pm10: Optional[float] = None,
    o3: Optional[float] = None,
    no2: Optional[float] = None,
    so2: Optional[float] = None,
    co: Optional[float] = None,
):
    """Compute the AQI for a single reading."""
    reading = {"pm25": pm25, "pm10": pm10, "o3": o3, "no2": no2, "so2": so2, "co": co}
    result = AQIEngine().aggregate(reading)

    table = Table(title=f"AQI ({TABLE_VERSION})")
    table.add_column("Pollutant", style="cyan")
    table.add_column("Concentration", style="white")
    table.add_column("Sub-index", style="green")

    for pollutant in POLLUTANTS:
        sub = result.sub_indices.get(pollutant)
        value = reading[pollutant]
        table.add_row(
            pollutant,
            "-" if value is None else f"{value:g}",
            "-" if sub is None else str(sub),
        )

    console.print(table)
    console.print(
        f"AQI: [bold]{result.aqi}[/bold] ({result.category.label}), "
        f"dominant: {result.dominant_pollutant or '-'}"
    )


@app.command()
def forecast(
    history_path: Path,
    horizon: int = 24,
    ds_col: str = "ds",
    remote: bool = True,
    use_weather: bool = False,
    reference_hour: Optional[int] = None,
    seed: Optional[int] = None,
    as_json: bool = False,
):
    """Forecast hourly AQI from a CSV/parquet history file."""
    cfg = AQIPipelineConfig(horizon=horizon)
    source = load_history(history_path, ds_col=ds_col)

    pipeline = PredictionPipeline(
        cfg,
        predictor=HuggingFacePredictor(cfg) if remote else None,
        weather_provider=OpenWeatherClient(cfg) if use_weather else None,
        rng=np.random.default_rng(seed),
    )
    result = pipeline.predict_from(source, reference_hour=reference_hour)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    table = Table(title=f"AQI Forecast (source={result.source.value})")
    table.add_column("Hour", style="cyan")
    table.add_column("AQI", style="green")
    table.add_column("Category", style="white")
    table.add_column("Dominant", style="magenta")

    for point in result.forecast:
        table.add_row(
            f"+{point.hour_offset}",
            str(point.aqi.aqi),
            point.aqi.category.label,
            point.aqi.dominant_pollutant or "-",
        )

    console.print(table)


@app.command()
def current(
    latitude: float = 23.8103,
    longitude: float = 90.4125,
):
    """Fetch current OpenWeatherMap conditions and compute the AQI."""
    cfg = AQIPipelineConfig(latitude=latitude, longitude=longitude)
    client = OpenWeatherClient(cfg, api_key=load_openweather_api_key())
    conditions = fetch_current_conditions(client)

    table = Table(title="Current Conditions")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    if conditions.weather is not None:
        table.add_row("temperature", str(conditions.weather.temperature))
        table.add_row("humidity", str(conditions.weather.humidity))
        table.add_row("wind_speed", str(conditions.weather.wind_speed))
    if conditions.air_pollution is not None:
        for k, v in conditions.air_pollution.reading.items():
            table.add_row(k, str(v))
    if conditions.aqi is not None:
        table.add_row("calculated_aqi", str(conditions.aqi.aqi))
        table.add_row("final_aqi", str(conditions.final_aqi))

    console.print(table)


if __name__ == "__main__":
    sys.argv = _strip_ipykernel_args(sys.argv)
    app(standalone_mode=False)
