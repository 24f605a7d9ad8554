from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import List, Mapping, Optional, Protocol, Sequence, Tuple

import pandas as pd

from .breakpoints import POLLUTANTS

logger = logging.getLogger(__name__)


class HistoricalDataSource(Protocol):
    def recent(self, window: int) -> List[Mapping[str, Optional[float]]]:
        ...


def reading_to_vector(reading: Mapping[str, Optional[float]]) -> Tuple[float, ...]:
    """Pollutant reading -> feature vector in POLLUTANTS order (missing -> 0)."""
    values = []
    for pollutant in POLLUTANTS:
        value = reading.get(pollutant)
        try:
            value = float(value) if value is not None else 0.0
        except (TypeError, ValueError):
            value = 0.0
        values.append(value if math.isfinite(value) else 0.0)
    return tuple(values)


def readings_to_series(
    readings: Sequence[Mapping[str, Optional[float]]],
) -> List[Tuple[float, ...]]:
    return [reading_to_vector(r) for r in readings]


class FrameHistorySource:
    """
    Serve the most recent readings from a DataFrame of hourly observations.

    Expects a timestamp column (default "ds") plus any subset of the
    pollutant columns; rows are ordered by timestamp before slicing.
    """

    def __init__(self, df: pd.DataFrame, ds_col: str = "ds"):
        if ds_col not in df.columns:
            raise ValueError(f"Missing required datetime column: {ds_col}")

        work = df.copy()
        work[ds_col] = pd.to_datetime(work[ds_col], errors="raise", utc=True)
        for col in POLLUTANTS:
            if col in work.columns:
                work[col] = pd.to_numeric(work[col], errors="coerce")

        self.ds_col = ds_col
        self.df = work.sort_values(ds_col).reset_index(drop=True)

    def __len__(self) -> int:
        return len(self.df)

    def recent(self, window: int) -> List[Mapping[str, Optional[float]]]:
        if window <= 0:
            return []

        tail = self.df.tail(window)
        records = []
        for _, row in tail.iterrows():
            record = {}
            for col in POLLUTANTS:
                if col in tail.columns and pd.notna(row[col]):
                    record[col] = float(row[col])
                else:
                    record[col] = None
            records.append(record)
        return records

    def last_timestamp(self) -> Optional[pd.Timestamp]:
        if self.df.empty:
            return None
        return self.df[self.ds_col].iloc[-1]


def load_history(path: Path, ds_col: str = "ds") -> FrameHistorySource:
    path = Path(path)
    if path.suffix == ".parquet":
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path)
    logger.info("[history] loaded %s rows from %s", len(df), path)
    return FrameHistorySource(df, ds_col=ds_col)
