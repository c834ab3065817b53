"""Compare booking strategies for a quote by sampling their costs."""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .. import config
from ..models.distributions import NormalSpec
from ..models.lane import Lane, Quote
from ..models.results import (
    AlternativeAnalysis,
    AlternativeStrategy,
    RiskLevel,
    StrategyType,
)
from .errors import InvalidParameterError
from .sampler import VariateSampler
from .statistics import percentile

LOGGER = logging.getLogger(__name__)


class StrategyConfig(BaseModel):
    """Tunable parameters for the strategy comparison."""

    model_config = ConfigDict(frozen=True)

    wait_days: float = Field(7.0, gt=0.0, description="Days deferred by the wait strategy")
    rate_reduction: float = Field(0.06, ge=0.0, lt=1.0, description="Expected rate fall while waiting")
    holding_cost_fraction: float = Field(0.001, ge=0.0, description="Holding cost per day as a share of rate")
    split_immediate: float = Field(0.3, ge=0.0, le=1.0, description="Volume share booked immediately")
    reroute_premium: float = Field(0.05, ge=0.0)
    reroute_days: float = Field(5.0, gt=0.0, description="Lead time to arrange the alternative route")
    reroute_spread_multiplier: float = Field(1.5, ge=1.0)
    book_confidence: float = Field(95.0, ge=0.0, le=100.0)
    wait_confidence: float = Field(67.0, ge=0.0, le=100.0)
    split_confidence: float = Field(78.0, ge=0.0, le=100.0)
    reroute_confidence: float = Field(45.0, ge=0.0, le=100.0)
    confidence_floor: float = Field(config.CONFIDENCE_FLOOR, ge=0.0, le=100.0)


class AlternativeEvaluator:
    """Monte Carlo cost comparison of book, wait, split and reroute."""

    def __init__(
        self,
        config: Optional[StrategyConfig] = None,
        sampler: Optional[VariateSampler] = None,
        iterations: int = 10_000,
    ) -> None:
        if iterations <= 0:
            raise InvalidParameterError("iterations must be positive")
        self.config = config or StrategyConfig()
        self.sampler = sampler or VariateSampler()
        self.iterations = iterations

    # ---------------------------------------------------------------- sampling
    def _draw(self, location: float, spread: float) -> np.ndarray:
        return self.sampler.sample_array(NormalSpec(mean=location, std_dev=spread), self.iterations)

    @staticmethod
    def _spread(rate: float, volatility: float, days: float) -> float:
        return rate * volatility * math.sqrt(days / 7.0)

    @staticmethod
    def _summarise(costs: np.ndarray) -> Dict[str, float]:
        ordered = np.sort(costs)
        return {f"p{p}": percentile(ordered, p) for p in (5, 50, 95)}

    # ---------------------------------------------------------------- evaluate
    def evaluate(self, quote_rate: float, historical_volatility: float = 0.0) -> AlternativeAnalysis:
        if quote_rate <= 0:
            raise InvalidParameterError("quote rate must be positive")
        if historical_volatility < 0:
            raise InvalidParameterError("historical volatility must be non-negative")
        cfg = self.config

        book_costs = np.full(self.iterations, float(quote_rate))

        holding_cost = quote_rate * cfg.holding_cost_fraction * cfg.wait_days
        wait_costs = (
            self._draw(
                quote_rate * (1.0 - cfg.rate_reduction),
                self._spread(quote_rate, historical_volatility, cfg.wait_days),
            )
            + holding_cost
        )

        split_costs = cfg.split_immediate * book_costs + (1.0 - cfg.split_immediate) * wait_costs

        reroute_costs = self._draw(
            quote_rate * (1.0 + cfg.reroute_premium),
            self._spread(quote_rate, historical_volatility, cfg.reroute_days)
            * cfg.reroute_spread_multiplier,
        )

        wait_label = f"{cfg.wait_days:g} days"
        strategies: List[AlternativeStrategy] = [
            AlternativeStrategy(
                strategy=StrategyType.BOOK,
                name="Book Now",
                description="Accept current quote immediately",
                expected_cost=float(book_costs.mean()),
                confidence=cfg.book_confidence,
                risk_level=RiskLevel.LOW,
                time_to_decision="Immediate",
                cost_percentiles=self._summarise(book_costs),
                parameters={"rate": quote_rate},
            ),
            AlternativeStrategy(
                strategy=StrategyType.WAIT,
                name=f"Wait {wait_label}",
                description="Hold inventory and wait for better market rates",
                expected_cost=float(wait_costs.mean()),
                confidence=cfg.wait_confidence,
                risk_level=RiskLevel.MEDIUM,
                time_to_decision=wait_label,
                cost_percentiles=self._summarise(wait_costs),
                parameters={
                    "wait_days": cfg.wait_days,
                    "expected_rate_reduction": cfg.rate_reduction,
                    "holding_cost": holding_cost,
                },
            ),
            AlternativeStrategy(
                strategy=StrategyType.SPLIT,
                name=f"Split {cfg.split_immediate * 100:.0f}/{(1.0 - cfg.split_immediate) * 100:.0f}",
                description=f"Ship part now and the rest after {wait_label}",
                expected_cost=float(split_costs.mean()),
                confidence=cfg.split_confidence,
                risk_level=RiskLevel.MEDIUM,
                time_to_decision=f"Immediate + {wait_label}",
                cost_percentiles=self._summarise(split_costs),
                parameters={
                    "immediate_share": cfg.split_immediate,
                    "delayed_share": 1.0 - cfg.split_immediate,
                    "wait_days": cfg.wait_days,
                },
            ),
            AlternativeStrategy(
                strategy=StrategyType.REROUTE,
                name="Alternative Route",
                description="Consider different ports or carriers",
                expected_cost=float(reroute_costs.mean()),
                confidence=cfg.reroute_confidence,
                risk_level=RiskLevel.HIGH,
                time_to_decision=f"{cfg.reroute_days:g} days",
                cost_percentiles=self._summarise(reroute_costs),
                parameters={"premium": cfg.reroute_premium},
            ),
        ]

        eligible = [item for item in strategies if item.confidence > cfg.confidence_floor]
        recommended = min(eligible, key=lambda item: item.expected_cost) if eligible else None
        if recommended is None:
            LOGGER.warning("No strategy clears the %.0f%% confidence floor", cfg.confidence_floor)

        return AlternativeAnalysis(
            quote_rate=quote_rate,
            strategies=strategies,
            recommended=recommended,
            confidence_floor=cfg.confidence_floor,
        )

    def evaluate_quote(self, quote: Quote, lane: Lane) -> AlternativeAnalysis:
        return self.evaluate(quote.rate, lane.historical_volatility)


__all__ = ["StrategyConfig", "AlternativeEvaluator"]
