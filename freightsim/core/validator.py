"""Input validation utilities."""

from __future__ import annotations

from typing import Iterable

from ..models.lane import Lane, RateFactor, TransitSegment
from ..models.simulation import SimulationParams
from .errors import InvalidParameterError


def validate_factors(factors: Iterable[RateFactor]) -> None:
    """Ensure every enabled factor resolves to a sampleable distribution."""
    for factor in factors:
        if not factor.enabled:
            continue
        try:
            factor.resolved_distribution()
        except InvalidParameterError as exc:
            raise InvalidParameterError(f"Factor {factor.name!r}: {exc.message}") from exc


def validate_segments(segments: Iterable[TransitSegment]) -> None:
    for segment in segments:
        try:
            segment.resolved_distribution()
        except InvalidParameterError as exc:
            raise InvalidParameterError(f"Segment {segment.name!r}: {exc.message}") from exc


def validate_params(params: SimulationParams) -> None:
    """Reject parameters that cannot produce a run."""
    if params.iterations <= 0:
        raise InvalidParameterError("iterations must be positive")
    if params.base_rate <= 0:
        raise InvalidParameterError("base_rate must be positive")
    validate_factors(params.factors)
    validate_segments(params.segments)


def validate_lane(lane: Lane) -> None:
    if lane.baseline_rate <= 0:
        raise InvalidParameterError(f"Lane {lane.name!r} has a non-positive baseline rate")
    validate_factors(lane.factors)
    validate_segments(lane.segments)


__all__ = ["validate_factors", "validate_segments", "validate_params", "validate_lane"]
