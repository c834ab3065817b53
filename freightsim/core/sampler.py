"""Random-variate generation for the supported distribution specs."""

from __future__ import annotations

from math import cos, exp, log, pi, sqrt
from typing import List, Optional

import numpy as np

from ..models.distributions import (
    ExponentialSpec,
    LogNormalSpec,
    NormalSpec,
    TriangularSpec,
)
from .errors import InvalidParameterError


class VariateSampler:
    """
    Draw pseudorandom values from Normal, LogNormal, Triangular and Exponential specs.

    Every transform is built from uniform(0, 1) draws of a single
    ``numpy.random.Generator`` so a seeded sampler reproduces its stream
    exactly. Use :meth:`spawn` to hand independent streams to concurrent
    workers.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        *,
        seed: Optional[int] = None,
    ) -> None:
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def spawn(self, count: int) -> List["VariateSampler"]:
        """Return ``count`` samplers with statistically independent streams."""
        if count <= 0:
            raise InvalidParameterError("spawn count must be positive")
        return [VariateSampler(child) for child in self.rng.spawn(count)]

    # ---------------------------------------------------------------- Scalars
    def uniform(self) -> float:
        return float(self.rng.random())

    def _open_uniform(self) -> float:
        """Uniform draw on (0, 1); zero is rejected so ``log`` stays finite."""
        value = 0.0
        while value == 0.0:
            value = float(self.rng.random())
        return value

    def normal(self, mean: float, std_dev: float) -> float:
        """Box-Muller transform of two independent uniforms."""
        if std_dev == 0:
            return float(mean)
        u = self._open_uniform()
        v = self._open_uniform()
        z = sqrt(-2.0 * log(u)) * cos(2.0 * pi * v)
        return mean + std_dev * z

    def lognormal(self, mu: float, sigma: float) -> float:
        if sigma == 0:
            return exp(mu)
        return exp(self.normal(mu, sigma))

    def triangular(self, minimum: float, mode: float, maximum: float) -> float:
        """Inverse-CDF sampling of the triangular distribution."""
        if maximum == minimum:
            return float(minimum)
        span = maximum - minimum
        u = self.uniform()
        if u < (mode - minimum) / span:
            return minimum + sqrt(u * span * (mode - minimum))
        return maximum - sqrt((1.0 - u) * span * (maximum - mode))

    def exponential(self, lambda_: float) -> float:
        return -log(1.0 - self.uniform()) / lambda_

    def sample(self, spec) -> float:
        """Draw a single value from ``spec``."""
        if isinstance(spec, NormalSpec):
            return self.normal(_location(spec.mean, 0.0), spec.std_dev)
        if isinstance(spec, LogNormalSpec):
            return self.lognormal(_location(spec.mu, 0.0), spec.sigma)
        if isinstance(spec, TriangularSpec):
            mode = _location(spec.mode, (spec.minimum + spec.maximum) / 2.0)
            return self.triangular(spec.minimum, mode, spec.maximum)
        if isinstance(spec, ExponentialSpec):
            return self.exponential(spec.lambda_)
        raise InvalidParameterError(f"Unsupported distribution spec: {spec!r}")

    # ----------------------------------------------------------------- Arrays
    def _open_uniform_array(self, size: int) -> np.ndarray:
        values = self.rng.random(size)
        zeros = values == 0.0
        while zeros.any():
            values[zeros] = self.rng.random(int(zeros.sum()))
            zeros = values == 0.0
        return values

    def sample_array(self, spec, size: int) -> np.ndarray:
        """Vectorised equivalent of calling :meth:`sample` ``size`` times."""
        if size < 0:
            raise InvalidParameterError("sample size must be non-negative")
        if isinstance(spec, (NormalSpec, LogNormalSpec)):
            if isinstance(spec, NormalSpec):
                location, spread = _location(spec.mean, 0.0), spec.std_dev
            else:
                location, spread = _location(spec.mu, 0.0), spec.sigma
            if spread == 0:
                draws = np.full(size, location, dtype=float)
            else:
                u = self._open_uniform_array(size)
                v = self._open_uniform_array(size)
                z = np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v)
                draws = location + spread * z
            return np.exp(draws) if isinstance(spec, LogNormalSpec) else draws
        if isinstance(spec, TriangularSpec):
            low, high = spec.minimum, spec.maximum
            mode = _location(spec.mode, (low + high) / 2.0)
            if high == low:
                return np.full(size, low, dtype=float)
            span = high - low
            u = self.rng.random(size)
            left = u < (mode - low) / span
            return np.where(
                left,
                low + np.sqrt(u * span * (mode - low)),
                high - np.sqrt((1.0 - u) * span * (high - mode)),
            )
        if isinstance(spec, ExponentialSpec):
            return -np.log(1.0 - self.rng.random(size)) / spec.lambda_
        raise InvalidParameterError(f"Unsupported distribution spec: {spec!r}")


def _location(value: Optional[float], default: float) -> float:
    return float(value) if value is not None else default


__all__ = ["VariateSampler"]
