"""Runtime defaults sourced from environment variables."""

from __future__ import annotations

import os
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, "").strip()
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name, "").strip()
    return float(value) if value else default


def _env_optional_int(name: str) -> Optional[int]:
    value = os.environ.get(name, "").strip()
    return int(value) if value else None


BATCH_SIZE = _env_int("FREIGHTSIM_BATCH_SIZE", 100)
DEFAULT_ITERATIONS = _env_int("FREIGHTSIM_DEFAULT_ITERATIONS", 10_000)
DELAY_COST_FRACTION = _env_float("FREIGHTSIM_DELAY_COST_FRACTION", 0.001)
MIN_SEGMENT_DAYS = _env_float("FREIGHTSIM_MIN_SEGMENT_DAYS", 0.1)
HISTOGRAM_BINS = _env_int("FREIGHTSIM_HISTOGRAM_BINS", 30)
CONFIDENCE_FLOOR = _env_float("FREIGHTSIM_CONFIDENCE_FLOOR", 60.0)
RANDOM_SEED = _env_optional_int("FREIGHTSIM_RANDOM_SEED")


__all__ = [
    "BATCH_SIZE",
    "DEFAULT_ITERATIONS",
    "DELAY_COST_FRACTION",
    "MIN_SEGMENT_DAYS",
    "HISTOGRAM_BINS",
    "CONFIDENCE_FLOOR",
    "RANDOM_SEED",
]
