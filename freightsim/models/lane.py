"""Lane, rate factor, transit segment and quote data models."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..core.errors import invalid_parameter_from
from .distributions import DistributionSpec, NormalSpec, TransitDistributionSpec

# Defaults applied when a legacy record names a distribution but omits its spread.
_LEGACY_FACTOR_DEFAULTS: Dict[str, Dict[str, float]] = {
    "normal": {"stdDev": 0.02},
    "lognormal": {"sigma": 0.05},
    "exponential": {"lambda": 1.0},
}
_LEGACY_SEGMENT_SIGMA = 0.2
_DEFAULT_SEGMENT_SPREAD = 0.1


def _snake_case(value: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()


class FactorCategory(str, Enum):
    """Market drivers a rate factor can represent."""

    CARRIER_PREMIUM = "carrier_premium"
    SEASONALITY = "seasonality"
    CAPACITY_UTILIZATION = "capacity_utilization"
    FUEL_SURCHARGE = "fuel_surcharge"


class RateFactor(BaseModel):
    """Multiplicative driver applied to the lane base rate."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Display name")
    category: FactorCategory = Field(..., alias="type")
    mean_multiplier: float = Field(..., ge=0.0, alias="meanMultiplier")
    distribution: DistributionSpec = Field(
        ...,
        description=(
            "Uncertainty model; a missing location (normal mean, lognormal mu, "
            "triangular mode) is centred on mean_multiplier."
        ),
    )
    enabled: bool = True

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_record(cls, values: Any) -> Any:
        """Accept ``{"distribution": "normal", "parameters": {...}}`` records."""
        if not isinstance(values, dict):
            return values
        values = dict(values)
        category = values.get("category", values.get("type"))
        if isinstance(category, str):
            values.pop("type", None)
            values["category"] = _snake_case(category)
        distribution = values.get("distribution")
        if isinstance(distribution, str):
            kind = distribution.lower()
            parameters = dict(_LEGACY_FACTOR_DEFAULTS.get(kind, {}))
            parameters.update(values.pop("parameters", None) or {})
            if kind in ("triangle", "triangular"):
                multiplier = float(values.get("mean_multiplier", values.get("meanMultiplier", 1.0)))
                parameters.setdefault("min", multiplier * 0.9)
                parameters.setdefault("max", multiplier * 1.1)
            values["distribution"] = {"kind": kind, **parameters}
        return values

    def resolved_distribution(self):
        return self.distribution.centered_on(self.mean_multiplier)


class CongestionScenario(BaseModel):
    """Named port/route congestion pattern carried for display."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    probability: float = Field(..., ge=0.0, le=100.0, description="Likelihood in percent")
    delay_pattern: List[float] = Field(default_factory=list, alias="delayPattern")
    description: str = ""

    @field_validator("delay_pattern")
    @classmethod
    def _non_negative_delays(cls, value: List[float]) -> List[float]:
        if any(delay < 0 for delay in value):
            raise ValueError("delay_pattern entries must be non-negative")
        return value

    @property
    def max_delay(self) -> float:
        return max(self.delay_pattern, default=0.0)


class TransitSegment(BaseModel):
    """One leg of the journey (ocean, port dwell, drayage, ...)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    baseline_days: float = Field(..., gt=0.0, alias="baselineDays")
    distribution: Optional[TransitDistributionSpec] = Field(
        None,
        description="Duration model; defaults to normal with 10% spread around baseline_days.",
    )
    congestion_scenarios: List[CongestionScenario] = Field(
        default_factory=list, alias="congestionScenarios"
    )

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_record(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        distribution = values.get("distribution")
        if not isinstance(distribution, str):
            return values
        values = dict(values)
        kind = distribution.lower()
        parameters = dict(values.pop("parameters", None) or {})
        baseline = float(values.get("baseline_days", values.get("baselineDays", 0.0)) or 0.0)
        if kind == "lognormal":
            parameters.setdefault("sigma", _LEGACY_SEGMENT_SIGMA)
        else:
            kind = "normal"
            parameters.setdefault("stdDev", baseline * _DEFAULT_SEGMENT_SPREAD)
        values["distribution"] = {"kind": kind, **parameters}
        return values

    def resolved_distribution(self):
        if self.distribution is None:
            return NormalSpec(mean=self.baseline_days, std_dev=self.baseline_days * _DEFAULT_SEGMENT_SPREAD)
        return self.distribution.centered_on(self.baseline_days)


class Lane(BaseModel):
    """Origin/destination pairing with its market baseline and uncertainty model."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    origin: str
    destination: str
    name: str
    base_index: str = Field("", alias="baseIndex")
    index_value: float = Field(..., gt=0.0, alias="indexValue")
    lane_ratio: float = Field(..., gt=0.0, alias="laneRatio")
    historical_volatility: float = Field(0.0, ge=0.0, alias="historicalVolatility")
    segments: List[TransitSegment] = Field(default_factory=list)
    factors: List[RateFactor] = Field(default_factory=list)

    @property
    def baseline_rate(self) -> float:
        """Market-implied lane rate (index value scaled by the lane ratio)."""
        return self.index_value * self.lane_ratio

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Lane":
        """Build a lane from a snake_case or camelCase record."""
        try:
            return cls.model_validate(record)
        except ValidationError as exc:
            raise invalid_parameter_from(exc) from exc


class Quote(BaseModel):
    """Carrier price quote for a lane."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    lane_id: Optional[str] = Field(None, alias="laneId")
    carrier: str = ""
    rate: float = Field(..., gt=0.0)
    valid_until: Optional[datetime] = Field(None, alias="validUntil")

    def is_expired(self, as_of: Optional[datetime] = None) -> bool:
        if self.valid_until is None:
            return False
        valid_until = self.valid_until
        if valid_until.tzinfo is None:
            valid_until = valid_until.replace(tzinfo=timezone.utc)
        reference = as_of or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        return reference > valid_until

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Quote":
        try:
            return cls.model_validate(record)
        except ValidationError as exc:
            raise invalid_parameter_from(exc) from exc


__all__ = [
    "FactorCategory",
    "RateFactor",
    "CongestionScenario",
    "TransitSegment",
    "Lane",
    "Quote",
]
