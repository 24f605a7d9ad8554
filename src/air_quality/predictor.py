from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence, Union

import numpy as np
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import AQIPipelineConfig, load_huggingface_api_key

logger = logging.getLogger(__name__)

PredictorPayload = Union[Sequence[Sequence[float]], dict]


class PredictorError(RuntimeError):
    """Transport or format failure of the remote predictor."""


class Predictor(Protocol):
    def forecast(
        self, past: Sequence[Sequence[float]], horizon: int
    ) -> PredictorPayload:
        ...


def parse_predictor_response(
    payload: Any,
    horizon: int,
    min_width: int,
) -> np.ndarray:
    """
    Extract a (horizon, width) float matrix from a predictor response.

    Accepts either a bare array or an object with a `predictions` array.
    Raises PredictorError for anything else, for non-numeric or ragged rows,
    and when there are fewer than `horizon` rows or `min_width` columns.
    """
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict) and isinstance(payload.get("predictions"), list):
        rows = payload["predictions"]
    else:
        raise PredictorError(
            f"Unrecognized prediction response format: {type(payload).__name__}"
        )

    try:
        matrix = np.asarray(rows, dtype=float)
    except (TypeError, ValueError) as e:
        raise PredictorError(f"Prediction rows are not numeric vectors: {e}") from e

    if matrix.ndim != 2:
        raise PredictorError(f"Expected a 2-D prediction array, got shape {matrix.shape}")
    if not np.isfinite(matrix).all():
        raise PredictorError("Prediction array contains non-finite values")
    if matrix.shape[0] < horizon:
        raise PredictorError(
            f"Prediction has {matrix.shape[0]} rows, expected at least {horizon}"
        )
    if matrix.shape[1] < min_width:
        raise PredictorError(
            f"Prediction has {matrix.shape[1]} columns, expected at least {min_width}"
        )
    return matrix[:horizon]


class HuggingFacePredictor:
    """
    Hosted time-series model behind the Hugging Face inference API.

    Any failure (missing key, HTTP error, timeout, undecodable body) is
    raised as PredictorError.
    """

    def __init__(
        self,
        config: Optional[AQIPipelineConfig] = None,
        api_key: Optional[str] = None,
        *,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
    ):
        self.config = config or AQIPipelineConfig()
        self.api_key = api_key or load_huggingface_api_key()
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        retries = Retry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=frozenset(["POST"]),
        )
        session.mount("https://", HTTPAdapter(max_retries=retries))
        return session

    def build_payload(self, past: Sequence[Sequence[float]], horizon: int) -> dict:
        return {
            "inputs": {
                "past_values": [list(map(float, row)) for row in past],
                "future_length": horizon,
            },
            "parameters": {"num_samples": self.config.predictor_num_samples},
        }

    def forecast(
        self, past: Sequence[Sequence[float]], horizon: int
    ) -> PredictorPayload:
        if not self.api_key:
            raise PredictorError("HUGGINGFACE_API_KEY is missing")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        logger.info("[predictor] POST %s (rows=%d horizon=%d)", self.config.predictor_url, len(past), horizon)

        try:
            resp = self.session.post(
                self.config.predictor_url,
                json=self.build_payload(past, horizon),
                headers=headers,
                timeout=self.config.predictor_timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise PredictorError(f"Prediction request failed: {e}") from e

        try:
            return resp.json()
        except ValueError as e:
            preview = resp.text[:200] if resp.text else "(empty)"
            raise PredictorError(
                f"Invalid JSON from prediction API. status={resp.status_code} content_preview={preview}"
            ) from e
