"""Sanity checks on simulated outcome sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd

from ..models.simulation import SimulationOutcome


@dataclass
class ValidationResult:
    """Basic container for validation outcomes."""

    status: str
    failed_checks: Sequence[str]
    warnings: Sequence[str]

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status,
            "failed_checks": list(self.failed_checks),
            "warnings": list(self.warnings),
        }


def validate_outcomes(
    outcomes: Sequence[SimulationOutcome],
    *,
    expected_count: Optional[int] = None,
    baseline_rate: Optional[float] = None,
) -> ValidationResult:
    """Check indexing, finiteness and dispersion of a run's outcomes."""
    failed: list[str] = []
    warnings: list[str] = []
    if not outcomes:
        failed.append("no_outcomes")
        return ValidationResult(status="FAIL", failed_checks=failed, warnings=warnings)

    if expected_count is not None and len(outcomes) != expected_count:
        failed.append("outcome_count_mismatch")
    if [o.iteration for o in outcomes] != list(range(len(outcomes))):
        failed.append("iteration_index_gap")

    frame = pd.DataFrame(
        {
            "rate": [o.rate for o in outcomes],
            "transit_days": [o.transit_days for o in outcomes],
            "delay_cost": [o.delay_cost for o in outcomes],
        }
    )
    if not np.isfinite(frame.to_numpy()).all():
        failed.append("nan_or_inf_outcomes")
    if float(frame["delay_cost"].min()) < 0.0:
        failed.append("negative_delay_cost")
    if float(frame["rate"].min()) < 0.0:
        warnings.append("negative_rates_generated")

    rates = frame["rate"]
    if len(rates) > 1:
        mean = float(rates.mean())
        std = float(rates.std(ddof=1))
        if mean != 0 and std / abs(mean) > 0.50:
            warnings.append("high_rate_dispersion")

    if baseline_rate is not None and baseline_rate > 0:
        if abs(float(rates.median()) - baseline_rate) / baseline_rate > 0.50:
            warnings.append("median_rate_far_from_baseline")

    status = "PASS" if not failed else "FAIL"
    return ValidationResult(status=status, failed_checks=failed, warnings=warnings)


__all__ = ["ValidationResult", "validate_outcomes"]
