"""Probability distribution specifications consumed by the variate sampler."""

from __future__ import annotations

import math
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from ..core.errors import InvalidParameterError, invalid_parameter_from


class _SpecBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    def centered_on(self, location: float) -> "_SpecBase":
        """Return a copy whose missing location parameter is set from ``location``."""
        return self


class NormalSpec(_SpecBase):
    """Gaussian distribution."""

    kind: Literal["normal"] = "normal"
    mean: Optional[float] = Field(None, description="Location; filled from the owning factor/segment when omitted")
    std_dev: float = Field(..., ge=0.0, alias="stdDev")

    def centered_on(self, location: float) -> "NormalSpec":
        if self.mean is not None:
            return self
        return self.model_copy(update={"mean": float(location)})


class LogNormalSpec(_SpecBase):
    """Log-normal distribution parameterised on the underlying normal."""

    kind: Literal["lognormal"] = "lognormal"
    mu: Optional[float] = Field(None, description="Mean of the underlying normal")
    sigma: float = Field(..., ge=0.0)

    def centered_on(self, location: float) -> "LogNormalSpec":
        if self.mu is not None:
            return self
        if location <= 0:
            raise InvalidParameterError(
                f"lognormal distribution needs a positive location, got {location!r}"
            )
        return self.model_copy(update={"mu": math.log(location)})


class TriangularSpec(_SpecBase):
    """Triangular distribution on ``[minimum, maximum]`` peaking at ``mode``.

    A mode outside the bounds is clamped into range; ``maximum < minimum`` is
    rejected.
    """

    kind: Literal["triangular", "triangle"] = "triangular"
    minimum: float = Field(..., alias="min")
    mode: Optional[float] = None
    maximum: float = Field(..., alias="max")

    @model_validator(mode="before")
    @classmethod
    def _clamp_mode(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        low = values.get("minimum", values.get("min"))
        high = values.get("maximum", values.get("max"))
        mode = values.get("mode")
        if low is None or high is None or mode is None:
            return values
        try:
            low, high, mode = float(low), float(high), float(mode)
        except (TypeError, ValueError):
            return values
        if high >= low:
            values = dict(values)
            values["mode"] = min(max(mode, low), high)
        return values

    @model_validator(mode="after")
    def _check_bounds(self) -> "TriangularSpec":
        if self.maximum < self.minimum:
            raise ValueError(
                f"triangular maximum ({self.maximum}) must be >= minimum ({self.minimum})"
            )
        return self

    def centered_on(self, location: float) -> "TriangularSpec":
        if self.mode is not None:
            return self
        clamped = min(max(float(location), self.minimum), self.maximum)
        return self.model_copy(update={"mode": clamped})


class ExponentialSpec(_SpecBase):
    """Exponential distribution with rate ``lambda``."""

    kind: Literal["exponential"] = "exponential"
    lambda_: float = Field(..., gt=0.0, alias="lambda")


DistributionSpec = Annotated[
    Union[NormalSpec, LogNormalSpec, TriangularSpec, ExponentialSpec],
    Field(discriminator="kind"),
]

# Transit segments only support the symmetric/right-skewed duration models.
TransitDistributionSpec = Annotated[
    Union[NormalSpec, LogNormalSpec],
    Field(discriminator="kind"),
]

_DISTRIBUTION_ADAPTER: TypeAdapter = TypeAdapter(DistributionSpec)


def parse_distribution(payload: Union[Dict[str, Any], _SpecBase]) -> _SpecBase:
    """Build a distribution spec from a mapping, raising InvalidParameterError on bad input."""
    if isinstance(payload, _SpecBase):
        return payload
    try:
        return _DISTRIBUTION_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise invalid_parameter_from(exc) from exc


__all__ = [
    "NormalSpec",
    "LogNormalSpec",
    "TriangularSpec",
    "ExponentialSpec",
    "DistributionSpec",
    "TransitDistributionSpec",
    "parse_distribution",
]
