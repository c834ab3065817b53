"""Result data models for statistics and booking decisions."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, InstanceOf

from .simulation import RunState, SimulationRunResult


class StatisticsSummary(BaseModel):
    """Descriptive statistics of one numeric sample."""

    model_config = ConfigDict(frozen=True)

    mean: float
    median: float
    mode: Optional[float] = Field(None, description="Most frequent value; None when nothing repeats")
    variance: float
    std_dev: float
    min: float
    max: float
    range: float
    p5: float
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    p95: float
    skewness: float
    kurtosis: float
    count: int

    def percentiles(self) -> Dict[str, float]:
        return {
            "p5": self.p5,
            "p10": self.p10,
            "p25": self.p25,
            "p50": self.p50,
            "p75": self.p75,
            "p90": self.p90,
            "p95": self.p95,
        }


class HistogramBin(BaseModel):
    model_config = ConfigDict(frozen=True)

    bin_start: float
    bin_end: float
    count: int
    frequency: float
    density: float


class ConfidenceInterval(BaseModel):
    model_config = ConfigDict(frozen=True)

    lower: float
    upper: float
    margin: float
    z_score: float
    confidence_level: float


class OutlierReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    outliers: List[float] = Field(default_factory=list)
    lower_bound: float
    upper_bound: float
    method: str = "IQR"


class Recommendation(str, Enum):
    BOOK_NOW = "BOOK_NOW"
    WAIT = "WAIT"
    NEGOTIATE = "NEGOTIATE"
    REJECT = "REJECT"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QuoteEvaluation(BaseModel):
    """Position of a quote inside the simulated rate distribution."""

    model_config = ConfigDict(frozen=True)

    market_variance: float = Field(..., description="(quote - lane baseline) / lane baseline")
    model_variance: float = Field(..., description="(quote - simulated mean) / simulated mean")
    percentile: float = Field(..., ge=0.0, le=100.0)
    risk_score: float = Field(..., ge=0.0, le=10.0)
    recommendation: Recommendation
    confidence: float = Field(..., ge=0.0, le=100.0)

    @property
    def risk_band(self) -> RiskLevel:
        """Low up to 3, moderate up to 7, high above."""
        if self.risk_score > 7:
            return RiskLevel.HIGH
        if self.risk_score > 3:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW


class StrategyType(str, Enum):
    BOOK = "book"
    WAIT = "wait"
    SPLIT = "split"
    REROUTE = "reroute"


class AlternativeStrategy(BaseModel):
    """Expected outcome of one booking strategy."""

    model_config = ConfigDict(frozen=True)

    strategy: StrategyType
    name: str
    description: str = ""
    expected_cost: float
    confidence: float = Field(..., ge=0.0, le=100.0)
    risk_level: RiskLevel
    time_to_decision: str = ""
    cost_percentiles: Dict[str, float] = Field(default_factory=dict)
    parameters: Dict[str, Any] = Field(default_factory=dict)


class AlternativeAnalysis(BaseModel):
    """All evaluated strategies plus the recommended one, if any qualifies."""

    model_config = ConfigDict(frozen=True)

    quote_rate: float
    strategies: List[AlternativeStrategy]
    recommended: Optional[AlternativeStrategy] = None
    confidence_floor: float

    def get(self, strategy: StrategyType) -> AlternativeStrategy:
        for candidate in self.strategies:
            if candidate.strategy == strategy:
                return candidate
        raise KeyError(f"Strategy {strategy!r} not evaluated")

    def summary_frame(self) -> pd.DataFrame:
        rows = [
            {
                "strategy": item.strategy.value,
                "name": item.name,
                "expected_cost": item.expected_cost,
                "confidence": item.confidence,
                "risk_level": item.risk_level.value,
                "recommended": self.recommended is not None
                and item.strategy == self.recommended.strategy,
            }
            for item in self.strategies
        ]
        return pd.DataFrame(rows)


class LaneAnalysis(BaseModel):
    """Simulation run plus the statistics derived from it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    run: InstanceOf[SimulationRunResult]
    rate_stats: Optional[StatisticsSummary] = None
    transit_stats: Optional[StatisticsSummary] = None
    landed_cost_stats: Optional[StatisticsSummary] = None
    rate_confidence_interval: Optional[ConfidenceInterval] = None
    rate_histogram: List[HistogramBin] = Field(default_factory=list)
    rate_outliers: Optional[OutlierReport] = None
    validation: Dict[str, Any] = Field(default_factory=dict)
    extra_tables: Dict[str, pd.DataFrame] = Field(
        default_factory=dict,
        description="Tabular views of the run (outcomes, percentile ladders)",
    )

    @property
    def state(self) -> RunState:
        return self.run.state

    @property
    def completed(self) -> bool:
        return self.run.state == RunState.COMPLETED


__all__ = [
    "StatisticsSummary",
    "HistogramBin",
    "ConfidenceInterval",
    "OutlierReport",
    "Recommendation",
    "RiskLevel",
    "QuoteEvaluation",
    "StrategyType",
    "AlternativeStrategy",
    "AlternativeAnalysis",
    "LaneAnalysis",
]
