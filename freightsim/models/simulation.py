"""Simulation inputs, per-iteration outcomes and run lifecycle events."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.errors import ErrorInfo, invalid_parameter_from
from .lane import Lane, RateFactor, TransitSegment


class SimulationParams(BaseModel):
    """Immutable input bundle for a single Monte Carlo run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    iterations: int = Field(..., gt=0, description="Number of independent iterations")
    base_rate: float = Field(..., gt=0.0, alias="baseRate")
    factors: Tuple[RateFactor, ...] = Field(default_factory=tuple)
    segments: Tuple[TransitSegment, ...] = Field(default_factory=tuple)

    @classmethod
    def build(cls, **values: object) -> "SimulationParams":
        """Validate keyword inputs, raising InvalidParameterError on failure."""
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise invalid_parameter_from(exc) from exc

    @classmethod
    def from_lane(
        cls,
        lane: Lane,
        iterations: int,
        *,
        base_rate: Optional[float] = None,
    ) -> "SimulationParams":
        """Snapshot a lane's factors and segments into run parameters."""
        return cls.build(
            iterations=iterations,
            base_rate=lane.baseline_rate if base_rate is None else base_rate,
            factors=tuple(lane.factors),
            segments=tuple(lane.segments),
        )

    @property
    def expected_transit_days(self) -> float:
        return float(sum(segment.baseline_days for segment in self.segments))


@dataclass(frozen=True)
class SimulationOutcome:
    """One simulated realisation of rate, transit time and landed cost."""

    iteration: int
    rate: float
    transit_days: float
    arrival_date: datetime
    delay_cost: float
    total_landed_cost: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "iteration": self.iteration,
            "rate": self.rate,
            "transit_days": self.transit_days,
            "arrival_date": self.arrival_date.isoformat(),
            "delay_cost": self.delay_cost,
            "total_landed_cost": self.total_landed_cost,
        }


class RunState(str, Enum):
    """Lifecycle of a simulation run."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATES

    def can_transition_to(self, target: "RunState") -> bool:
        return target in _TRANSITIONS[self]


TERMINAL_STATES: FrozenSet[RunState] = frozenset(
    {RunState.COMPLETED, RunState.CANCELLED, RunState.FAILED}
)

_TRANSITIONS: Dict[RunState, FrozenSet[RunState]] = {
    RunState.IDLE: frozenset({RunState.RUNNING, RunState.CANCELLED, RunState.FAILED}),
    RunState.RUNNING: frozenset(
        {RunState.PAUSED, RunState.COMPLETED, RunState.CANCELLED, RunState.FAILED}
    ),
    # A batch dispatched before the pause request still finishes, so a paused
    # run can complete or fail without being resumed.
    RunState.PAUSED: frozenset(
        {RunState.RUNNING, RunState.COMPLETED, RunState.CANCELLED, RunState.FAILED}
    ),
    RunState.COMPLETED: frozenset(),
    RunState.CANCELLED: frozenset(),
    RunState.FAILED: frozenset(),
}


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after every batch; ``percent`` is in [0, 100]."""

    run_id: str
    completed: int
    total: int
    percent: float
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class StateChangeEvent:
    run_id: str
    previous: RunState
    current: RunState
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SimulationRunResult:
    """
    Terminal event of a run.

    ``outcomes`` holds every iteration on completion, the truncated prefix on
    cancellation and nothing on failure.
    """

    run_id: str
    state: RunState
    outcomes: Tuple[SimulationOutcome, ...]
    completed: int
    total: int
    error: Optional[ErrorInfo] = None
    duration_seconds: float = 0.0
    timestamp: float = field(default_factory=time.time)

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.COMPLETED

    def rates(self) -> np.ndarray:
        return np.fromiter((o.rate for o in self.outcomes), dtype=float, count=len(self.outcomes))

    def transit_days(self) -> np.ndarray:
        return np.fromiter(
            (o.transit_days for o in self.outcomes), dtype=float, count=len(self.outcomes)
        )

    def landed_costs(self) -> np.ndarray:
        return np.fromiter(
            (o.total_landed_cost for o in self.outcomes), dtype=float, count=len(self.outcomes)
        )

    def delay_costs(self) -> np.ndarray:
        return np.fromiter(
            (o.delay_cost for o in self.outcomes), dtype=float, count=len(self.outcomes)
        )


__all__ = [
    "SimulationParams",
    "SimulationOutcome",
    "RunState",
    "TERMINAL_STATES",
    "ProgressEvent",
    "StateChangeEvent",
    "SimulationRunResult",
]
