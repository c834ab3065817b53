"""Compose per-iteration rate, transit and landed-cost outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from .. import config
from ..models.simulation import SimulationOutcome, SimulationParams
from .sampler import VariateSampler


@dataclass(frozen=True)
class CompositionPlan:
    """Distribution specs resolved once per run so iterations only sample."""

    base_rate: float
    factor_specs: Tuple[object, ...]
    segment_specs: Tuple[object, ...]
    expected_days: float


class OutcomeCompositor:
    """Turn one set of factor and segment draws into a :class:`SimulationOutcome`."""

    def __init__(
        self,
        sampler: Optional[VariateSampler] = None,
        *,
        delay_cost_rate_fraction: float = config.DELAY_COST_FRACTION,
        min_segment_days: float = config.MIN_SEGMENT_DAYS,
    ) -> None:
        self.sampler = sampler or VariateSampler(seed=config.RANDOM_SEED)
        self.delay_cost_rate_fraction = delay_cost_rate_fraction
        self.min_segment_days = min_segment_days

    def plan(self, params: SimulationParams) -> CompositionPlan:
        return CompositionPlan(
            base_rate=params.base_rate,
            factor_specs=tuple(
                factor.resolved_distribution() for factor in params.factors if factor.enabled
            ),
            segment_specs=tuple(segment.resolved_distribution() for segment in params.segments),
            expected_days=params.expected_transit_days,
        )

    # ------------------------------------------------------------------ draws
    def sample_factor(self, spec) -> float:
        return self.sampler.sample(spec)

    def sample_segment(self, spec) -> float:
        return max(self.min_segment_days, self.sampler.sample(spec))

    # ---------------------------------------------------------------- compose
    def compose_from_plan(
        self, plan: CompositionPlan, iteration: int, start: datetime
    ) -> SimulationOutcome:
        rate = plan.base_rate
        for spec in plan.factor_specs:
            rate *= self.sample_factor(spec)

        transit_days = 0.0
        for spec in plan.segment_specs:
            transit_days += self.sample_segment(spec)

        delay_days = max(0.0, transit_days - plan.expected_days)
        delay_cost = delay_days * rate * self.delay_cost_rate_fraction
        return SimulationOutcome(
            iteration=iteration,
            rate=rate,
            transit_days=transit_days,
            arrival_date=start + timedelta(days=transit_days),
            delay_cost=delay_cost,
            total_landed_cost=rate + delay_cost,
        )

    def compose(
        self,
        params: SimulationParams,
        iteration: int,
        start: Optional[datetime] = None,
    ) -> SimulationOutcome:
        """Sample a single outcome; ``start`` defaults to the current UTC time."""
        origin = start or datetime.now(timezone.utc)
        return self.compose_from_plan(self.plan(params), iteration, origin)


__all__ = ["CompositionPlan", "OutcomeCompositor"]
