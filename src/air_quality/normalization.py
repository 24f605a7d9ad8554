"""
Min-max scaling of feature vectors for the forecasting model.

Stats are fitted once per series and must be reused to invert predictions
derived from that series.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class NormalizationStats:
    mins: Tuple[float, ...]
    maxs: Tuple[float, ...]

    @property
    def n_features(self) -> int:
        return len(self.mins)

    def degenerate(self) -> np.ndarray:
        return np.asarray(self.mins) == np.asarray(self.maxs)

    def head(self, n: int) -> "NormalizationStats":
        """Stats for the first n features only."""
        return NormalizationStats(mins=self.mins[:n], maxs=self.maxs[:n])


def _as_matrix(series: Sequence[Sequence[float]]) -> np.ndarray:
    matrix = np.asarray(series, dtype=float)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a 2-D series of feature vectors, got shape {matrix.shape}")
    return matrix


class TimeSeriesNormalizer:
    def __init__(self, clamp_factor: float = 2.0):
        self.clamp_factor = clamp_factor

    def fit(self, series: Sequence[Sequence[float]]) -> NormalizationStats:
        matrix = _as_matrix(series)
        if matrix.shape[0] == 0:
            raise ValueError("Cannot fit normalization stats on an empty series")

        return NormalizationStats(
            mins=tuple(float(v) for v in matrix.min(axis=0)),
            maxs=tuple(float(v) for v in matrix.max(axis=0)),
        )

    def transform(self, point: Sequence[float], stats: NormalizationStats) -> Tuple[float, ...]:
        return tuple(self.transform_series([point], stats)[0])

    def inverse_transform(
        self, point: Sequence[float], stats: NormalizationStats
    ) -> Tuple[float, ...]:
        return tuple(self.inverse_transform_series([point], stats)[0])

    def transform_series(
        self, series: Sequence[Sequence[float]], stats: NormalizationStats
    ) -> np.ndarray:
        matrix = _as_matrix(series)
        if matrix.shape[1] != stats.n_features:
            raise ValueError(
                f"Point width {matrix.shape[1]} does not match fitted width {stats.n_features}"
            )

        mins = np.asarray(stats.mins)
        span = np.asarray(stats.maxs) - mins
        degenerate = stats.degenerate()
        safe_span = np.where(degenerate, 1.0, span)

        scaled = (matrix - mins) / safe_span
        return np.where(degenerate, 0.0, scaled)

    def inverse_transform_series(
        self, series: Sequence[Sequence[float]], stats: NormalizationStats
    ) -> np.ndarray:
        """
        Map scaled vectors back to original units.

        Columns beyond the fitted width are dropped. Non-degenerate features
        are clamped to [0, clamp_factor * max]; degenerate ones return min.
        """
        matrix = _as_matrix(series)
        if matrix.shape[1] < stats.n_features:
            raise ValueError(
                f"Point width {matrix.shape[1]} is narrower than fitted width {stats.n_features}"
            )
        matrix = matrix[:, : stats.n_features]

        mins = np.asarray(stats.mins)
        maxs = np.asarray(stats.maxs)
        restored = matrix * (maxs - mins) + mins
        restored = np.clip(restored, 0.0, np.maximum(maxs * self.clamp_factor, 0.0))
        return np.where(stats.degenerate(), mins, restored)
