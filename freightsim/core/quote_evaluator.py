"""Position a carrier quote against the simulated rate distribution."""

from __future__ import annotations

from typing import Iterable, Optional, Union

import numpy as np

from ..models.lane import Lane, Quote
from ..models.results import QuoteEvaluation, Recommendation, StatisticsSummary
from ..models.simulation import SimulationOutcome, SimulationRunResult
from ..utils.numbers import clamp
from .errors import InvalidParameterError
from .statistics import calculate_percentile_rank, calculate_statistics

REJECT_PERCENTILE = 90.0
NEGOTIATE_PERCENTILE = 75.0
BOOK_NOW_PERCENTILE = 10.0
WAIT_PERCENTILE_CEILING = 40.0
WAIT_MARKET_VARIANCE_FLOOR = -0.05


def risk_score(percentile: float) -> float:
    """Piecewise linear score: 2-4 below p25, 4-7 up to p75, 7-10 above."""
    if percentile < 25:
        score = 2.0 + (percentile / 25.0) * 2.0
    elif percentile < 75:
        score = 4.0 + ((percentile - 25.0) / 50.0) * 3.0
    else:
        score = 7.0 + ((percentile - 75.0) / 25.0) * 3.0
    return clamp(score, 0.0, 10.0)


def recommend(percentile: float, market_variance: float) -> Recommendation:
    """Rules are checked in priority order; REJECT wins over everything else."""
    if percentile >= REJECT_PERCENTILE:
        return Recommendation.REJECT
    if percentile > NEGOTIATE_PERCENTILE:
        return Recommendation.NEGOTIATE
    if percentile < BOOK_NOW_PERCENTILE:
        return Recommendation.BOOK_NOW
    if percentile <= WAIT_PERCENTILE_CEILING and market_variance > WAIT_MARKET_VARIANCE_FLOOR:
        return Recommendation.WAIT
    return Recommendation.BOOK_NOW


def confidence(percentile: float) -> float:
    return clamp(60.0 + (40.0 - abs(percentile - 50.0)), 0.0, 95.0)


class QuoteEvaluator:
    """Score a quote by where it falls inside simulated market rates."""

    def evaluate(
        self,
        quote_rate: float,
        lane_baseline: float,
        rates: Iterable[float],
        summary: Optional[StatisticsSummary] = None,
    ) -> QuoteEvaluation:
        if quote_rate <= 0:
            raise InvalidParameterError("quote rate must be positive")
        if lane_baseline <= 0:
            raise InvalidParameterError("lane baseline must be positive")
        samples = np.asarray(list(rates) if not isinstance(rates, np.ndarray) else rates, dtype=float)
        summary = summary or calculate_statistics(samples)

        percentile = calculate_percentile_rank(quote_rate, samples)
        market_variance = (quote_rate - lane_baseline) / lane_baseline
        model_variance = (quote_rate - summary.mean) / summary.mean if summary.mean else 0.0
        return QuoteEvaluation(
            market_variance=market_variance,
            model_variance=model_variance,
            percentile=percentile,
            risk_score=risk_score(percentile),
            recommendation=recommend(percentile, market_variance),
            confidence=confidence(percentile),
        )

    def evaluate_quote(
        self,
        quote: Quote,
        lane: Lane,
        outcomes: Union[SimulationRunResult, Iterable[SimulationOutcome]],
        summary: Optional[StatisticsSummary] = None,
    ) -> QuoteEvaluation:
        if isinstance(outcomes, SimulationRunResult):
            rates = outcomes.rates()
        else:
            rates = np.array([outcome.rate for outcome in outcomes], dtype=float)
        return self.evaluate(quote.rate, lane.baseline_rate, rates, summary)


def evaluate_quote(
    quote: Quote,
    lane: Lane,
    outcomes: Union[SimulationRunResult, Iterable[SimulationOutcome]],
) -> QuoteEvaluation:
    return QuoteEvaluator().evaluate_quote(quote, lane, outcomes)


__all__ = [
    "QuoteEvaluator",
    "evaluate_quote",
    "recommend",
    "risk_score",
    "confidence",
]
