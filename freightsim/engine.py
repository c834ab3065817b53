"""High-level orchestration for the freight cost simulation engine."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd
from pydantic import ValidationError

from . import config
from .core.alternatives import AlternativeEvaluator, StrategyConfig
from .core.compositor import OutcomeCompositor
from .core.errors import EmptyDatasetError, InvalidParameterError, invalid_parameter_from
from .core.orchestrator import ProgressCallback, RunControl, SimulationOrchestrator
from .core.outcome_validation import validate_outcomes
from .core.quote_evaluator import QuoteEvaluator
from .core.sampler import VariateSampler
from .core.statistics import (
    build_percentile_table,
    calculate_confidence_interval,
    calculate_statistics,
    detect_outliers,
    generate_histogram,
)
from .core.validator import validate_lane
from .models.lane import Lane, Quote, RateFactor, TransitSegment
from .models.results import AlternativeAnalysis, LaneAnalysis, QuoteEvaluation
from .models.simulation import SimulationParams, SimulationRunResult

LOGGER = logging.getLogger(__name__)


class FreightEngine:
    """Primary entry point for configuring a lane and running simulations against it."""

    def __init__(self, *, seed: Optional[int] = None, batch_size: int = config.BATCH_SIZE) -> None:
        self.lane: Optional[Lane] = None
        self.iterations = config.DEFAULT_ITERATIONS
        self.batch_size = batch_size
        self.seed = config.RANDOM_SEED if seed is None else seed
        self.sampler = VariateSampler(seed=self.seed)
        self._factors: Optional[List[RateFactor]] = None
        self._segments: Optional[List[TransitSegment]] = None
        self._last_analysis: Optional[LaneAnalysis] = None

    # --------------------------------------------------------------------- Lane
    def load_lane(self, lane: Union[Lane, Dict[str, Any]]) -> Lane:
        """Accept a Lane or a raw (snake_case or camelCase) record."""
        if not isinstance(lane, Lane):
            lane = Lane.from_record(lane)
        validate_lane(lane)
        self.lane = lane
        self._factors = None
        self._segments = None
        self._last_analysis = None
        LOGGER.info("Loaded lane %s (%s -> %s)", lane.name, lane.origin, lane.destination)
        return lane

    def _require_lane(self) -> Lane:
        if self.lane is None:
            raise InvalidParameterError("No lane loaded. Call load_lane() first.")
        return self.lane

    def set_factors(self, factors: Iterable[Union[RateFactor, Dict[str, Any]]]) -> None:
        """Override the lane's rate factors for subsequent runs."""
        try:
            self._factors = [
                item if isinstance(item, RateFactor) else RateFactor.model_validate(item)
                for item in factors
            ]
        except ValidationError as exc:
            raise invalid_parameter_from(exc) from exc

    def set_segments(self, segments: Iterable[Union[TransitSegment, Dict[str, Any]]]) -> None:
        try:
            self._segments = [
                item if isinstance(item, TransitSegment) else TransitSegment.model_validate(item)
                for item in segments
            ]
        except ValidationError as exc:
            raise invalid_parameter_from(exc) from exc

    def set_iterations(self, iterations: int) -> None:
        if iterations <= 0:
            raise InvalidParameterError("iterations must be positive")
        self.iterations = int(iterations)

    def simulation_params(self, base_rate: Optional[float] = None) -> SimulationParams:
        lane = self._require_lane()
        return SimulationParams.build(
            iterations=self.iterations,
            base_rate=lane.baseline_rate if base_rate is None else base_rate,
            factors=tuple(self._factors if self._factors is not None else lane.factors),
            segments=tuple(self._segments if self._segments is not None else lane.segments),
        )

    # ---------------------------------------------------------------- Simulation
    def run_simulation(
        self,
        *,
        base_rate: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
        control: Optional[RunControl] = None,
    ) -> LaneAnalysis:
        """Run the configured lane synchronously and summarise the outcomes."""
        params = self.simulation_params(base_rate)
        orchestrator = SimulationOrchestrator(
            OutcomeCompositor(self.sampler),
            batch_size=self.batch_size,
        )
        result = orchestrator.run(params, control=control, progress_callback=progress_callback)
        self._last_analysis = self.analyse(result)
        return self._last_analysis

    def analyse(self, result: SimulationRunResult) -> LaneAnalysis:
        """Derive statistics for any run that produced outcomes."""
        if not result.outcomes:
            return LaneAnalysis(run=result)

        rates = result.rates()
        validation = validate_outcomes(
            result.outcomes,
            expected_count=result.total if result.succeeded else None,
            baseline_rate=self.lane.baseline_rate if self.lane is not None else None,
        )
        if validation.warnings:
            LOGGER.warning("Outcome validation warnings for %s: %s", result.run_id, ", ".join(validation.warnings))

        landed = result.landed_costs()
        return LaneAnalysis(
            run=result,
            rate_stats=calculate_statistics(rates),
            transit_stats=calculate_statistics(result.transit_days()),
            landed_cost_stats=calculate_statistics(landed),
            rate_confidence_interval=calculate_confidence_interval(rates),
            rate_histogram=generate_histogram(rates),
            rate_outliers=detect_outliers(rates),
            validation=validation.to_dict(),
            extra_tables={
                "outcomes": self.outcomes_frame(result),
                "rate_percentiles": build_percentile_table(rates, column="rate"),
                "landed_cost_percentiles": build_percentile_table(landed, column="total_landed_cost"),
            },
        )

    @property
    def last_analysis(self) -> Optional[LaneAnalysis]:
        return self._last_analysis

    @staticmethod
    def outcomes_frame(result: SimulationRunResult) -> pd.DataFrame:
        columns = ["iteration", "rate", "transit_days", "arrival_date", "delay_cost", "total_landed_cost"]
        return pd.DataFrame(
            [
                {
                    "iteration": o.iteration,
                    "rate": o.rate,
                    "transit_days": o.transit_days,
                    "arrival_date": o.arrival_date,
                    "delay_cost": o.delay_cost,
                    "total_landed_cost": o.total_landed_cost,
                }
                for o in result.outcomes
            ],
            columns=columns,
        )

    # ----------------------------------------------------------------- Decisions
    def _latest_run(self) -> SimulationRunResult:
        if self._last_analysis is None or not self._last_analysis.run.outcomes:
            raise EmptyDatasetError("No simulated outcomes available. Run a simulation first.")
        return self._last_analysis.run

    def evaluate_quote(self, quote: Union[Quote, Dict[str, Any]]) -> QuoteEvaluation:
        if not isinstance(quote, Quote):
            quote = Quote.from_record(quote)
        if quote.is_expired():
            LOGGER.warning("Quote %s expired at %s", quote.id or quote.carrier, quote.valid_until)
        lane = self._require_lane()
        summary = self._last_analysis.rate_stats if self._last_analysis else None
        return QuoteEvaluator().evaluate_quote(quote, lane, self._latest_run(), summary)

    def evaluate_alternatives(
        self,
        quote: Union[Quote, Dict[str, Any]],
        strategy_config: Optional[StrategyConfig] = None,
    ) -> AlternativeAnalysis:
        if not isinstance(quote, Quote):
            quote = Quote.from_record(quote)
        lane = self._require_lane()
        evaluator = AlternativeEvaluator(strategy_config, sampler=self.sampler, iterations=self.iterations)
        return evaluator.evaluate_quote(quote, lane)


__all__ = ["FreightEngine"]
