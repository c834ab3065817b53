"""Descriptive statistics over simulated outcome samples."""

from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import norm

from .. import config
from ..models.results import (
    ConfidenceInterval,
    HistogramBin,
    OutlierReport,
    StatisticsSummary,
)
from ..utils.numbers import decimalize
from .errors import EmptyDatasetError, InvalidParameterError

SUMMARY_PERCENTILES = (5, 10, 25, 50, 75, 90, 95)

Z_SCORES = {
    0.80: 1.2816,
    0.90: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}


def _as_array(data: Iterable[float]) -> np.ndarray:
    values = np.asarray(list(data) if not isinstance(data, np.ndarray) else data, dtype=float)
    if values.size == 0:
        raise EmptyDatasetError("Cannot compute statistics on an empty dataset")
    return values.ravel()


def percentile(sorted_data: Sequence[float], p: float) -> float:
    """Linear interpolation between closest ranks of already sorted data."""
    if not 0.0 <= p <= 100.0:
        raise InvalidParameterError(f"percentile must be within [0, 100], got {p!r}")
    values = _as_array(sorted_data)
    index = p / 100.0 * (values.size - 1)
    lower = int(math.floor(index))
    upper = int(math.ceil(index))
    if lower == upper:
        return float(values[lower])
    weight = index - lower
    return float(values[lower] * (1.0 - weight) + values[upper] * weight)


def calculate_mode(data: Iterable[float]) -> Optional[float]:
    """Most frequent exact value, or None when no value repeats."""
    values = _as_array(data)
    value, count = Counter(values.tolist()).most_common(1)[0]
    return float(value) if count > 1 else None


def calculate_statistics(data: Iterable[float]) -> StatisticsSummary:
    values = _as_array(data)
    ordered = np.sort(values)
    count = int(ordered.size)
    series = pd.Series(ordered)

    mean = float(series.mean())
    variance = float(series.var(ddof=1)) if count > 1 else 0.0
    std_dev = math.sqrt(variance)

    # Bias-adjusted estimators are undefined for tiny or constant samples.
    skewness = float(series.skew()) if count >= 3 and std_dev > 0 else 0.0
    kurtosis = float(series.kurt()) if count >= 4 and std_dev > 0 else 0.0

    percentiles = {f"p{p}": percentile(ordered, p) for p in SUMMARY_PERCENTILES}
    minimum = float(ordered[0])
    maximum = float(ordered[-1])
    return StatisticsSummary(
        mean=mean,
        median=percentile(ordered, 50),
        mode=calculate_mode(values),
        variance=variance,
        std_dev=std_dev,
        min=minimum,
        max=maximum,
        range=maximum - minimum,
        skewness=skewness,
        kurtosis=kurtosis,
        count=count,
        **percentiles,
    )


def generate_histogram(data: Iterable[float], bins: int = config.HISTOGRAM_BINS) -> List[HistogramBin]:
    """Equal-width bins over [min, max]; the last bin includes the maximum."""
    if bins <= 0:
        raise InvalidParameterError("bins must be positive")
    values = _as_array(data)
    minimum = float(values.min())
    maximum = float(values.max())
    width = (maximum - minimum) / bins
    if width == 0:
        width = 1.0

    indices = np.floor((values - minimum) / width).astype(int)
    indices = np.clip(indices, 0, bins - 1)
    counts = np.bincount(indices, minlength=bins)
    total = values.size

    histogram: List[HistogramBin] = []
    for index, count in enumerate(counts.tolist()):
        start = minimum + index * width
        frequency = count / total
        histogram.append(
            HistogramBin(
                bin_start=start,
                bin_end=start + width,
                count=count,
                frequency=frequency,
                density=frequency / width,
            )
        )
    return histogram


def calculate_percentile_rank(value: float, data: Iterable[float]) -> float:
    """Share of samples strictly below ``value`` in percent."""
    ordered = np.sort(_as_array(data))
    below = int(np.searchsorted(ordered, value, side="left"))
    return below / ordered.size * 100.0


def z_score_for(confidence_level: float) -> float:
    level = decimalize(confidence_level)
    if level is None or not 0.0 < level < 1.0:
        raise InvalidParameterError(
            f"confidence level must be in (0, 1) or (0, 100), got {confidence_level!r}"
        )
    for known, z in Z_SCORES.items():
        if math.isclose(level, known):
            return z
    return float(norm.ppf(0.5 + level / 2.0))


def calculate_confidence_interval(
    data: Iterable[float], confidence_level: float = 0.95
) -> ConfidenceInterval:
    """Normal-approximation interval for the sample mean."""
    values = _as_array(data)
    z = z_score_for(confidence_level)
    count = values.size
    mean = float(values.mean())
    std_dev = float(values.std(ddof=1)) if count > 1 else 0.0
    margin = z * std_dev / math.sqrt(count)
    return ConfidenceInterval(
        lower=mean - margin,
        upper=mean + margin,
        margin=margin,
        z_score=z,
        confidence_level=decimalize(confidence_level),
    )


def detect_outliers(data: Iterable[float], multiplier: float = 1.5) -> OutlierReport:
    """Flag values beyond ``multiplier`` interquartile ranges from the quartiles."""
    values = _as_array(data)
    ordered = np.sort(values)
    q1 = percentile(ordered, 25)
    q3 = percentile(ordered, 75)
    iqr = q3 - q1
    lower = q1 - multiplier * iqr
    upper = q3 + multiplier * iqr
    mask = (values < lower) | (values > upper)
    return OutlierReport(
        outliers=values[mask].tolist(),
        lower_bound=lower,
        upper_bound=upper,
    )


def rolling_statistics(data: Iterable[float], window_size: int) -> List[StatisticsSummary]:
    """Summary of every full window, in order; empty when the window exceeds the data."""
    if window_size <= 0:
        raise InvalidParameterError("window_size must be positive")
    values = _as_array(data)
    return [
        calculate_statistics(values[start : start + window_size])
        for start in range(values.size - window_size + 1)
    ]


def build_percentile_table(
    values: Sequence[float],
    *,
    percentiles: Iterable[int] = SUMMARY_PERCENTILES,
    column: str = "value",
) -> pd.DataFrame:
    """Return a percentile ladder as a dataframe."""
    ordered = np.sort(_as_array(values))
    ladder = [{"percentile": p, column: percentile(ordered, p)} for p in percentiles]
    return pd.DataFrame(ladder)


__all__ = [
    "SUMMARY_PERCENTILES",
    "Z_SCORES",
    "percentile",
    "calculate_mode",
    "calculate_statistics",
    "generate_histogram",
    "calculate_percentile_rank",
    "z_score_for",
    "calculate_confidence_interval",
    "detect_outliers",
    "rolling_statistics",
    "build_percentile_table",
]
