import unittest
from datetime import datetime, timedelta, timezone

from freightsim.core.compositor import OutcomeCompositor
from freightsim.core.sampler import VariateSampler
from freightsim.models.distributions import NormalSpec, TriangularSpec
from freightsim.models.lane import RateFactor, TransitSegment
from freightsim.models.simulation import SimulationParams


def _factor(multiplier: float, spread: float = 0.0, enabled: bool = True) -> RateFactor:
    return RateFactor(
        name="Flat",
        category="carrier_premium",
        mean_multiplier=multiplier,
        distribution=NormalSpec(std_dev=spread),
        enabled=enabled,
    )


def _segment(baseline: float, mean: float = None, spread: float = 0.0) -> TransitSegment:
    return TransitSegment(
        name="Ocean",
        baseline_days=baseline,
        distribution=NormalSpec(mean=mean, std_dev=spread),
    )


class OutcomeCompositorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.compositor = OutcomeCompositor(VariateSampler(seed=5))
        self.start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_deterministic_lane(self) -> None:
        params = SimulationParams.build(
            iterations=1, base_rate=1000.0, factors=(_factor(1.0),), segments=(_segment(10.0),)
        )
        outcome = self.compositor.compose(params, 0, self.start)
        self.assertAlmostEqual(outcome.rate, 1000.0)
        self.assertAlmostEqual(outcome.transit_days, 10.0)
        self.assertAlmostEqual(outcome.delay_cost, 0.0)
        self.assertAlmostEqual(outcome.total_landed_cost, 1000.0)
        self.assertEqual(outcome.arrival_date, self.start + timedelta(days=10))

    def test_factors_multiply_base_rate(self) -> None:
        params = SimulationParams.build(
            iterations=1,
            base_rate=1000.0,
            factors=(_factor(1.1), _factor(1.2)),
            segments=(_segment(5.0),),
        )
        outcome = self.compositor.compose(params, 0, self.start)
        self.assertAlmostEqual(outcome.rate, 1000.0 * 1.1 * 1.2)

    def test_disabled_factor_is_ignored(self) -> None:
        params = SimulationParams.build(
            iterations=1,
            base_rate=1000.0,
            factors=(_factor(2.0, enabled=False),),
            segments=(_segment(5.0),),
        )
        self.assertAlmostEqual(self.compositor.compose(params, 0, self.start).rate, 1000.0)

    def test_delay_cost_charged_on_days_over_baseline(self) -> None:
        params = SimulationParams.build(
            iterations=1, base_rate=1000.0, segments=(_segment(10.0, mean=12.0),)
        )
        outcome = self.compositor.compose(params, 3, self.start)
        self.assertEqual(outcome.iteration, 3)
        self.assertAlmostEqual(outcome.transit_days, 12.0)
        self.assertAlmostEqual(outcome.delay_cost, 2.0 * 1000.0 * 0.001)
        self.assertAlmostEqual(outcome.total_landed_cost, 1002.0)

    def test_early_arrival_has_no_delay_cost(self) -> None:
        params = SimulationParams.build(
            iterations=1, base_rate=1000.0, segments=(_segment(10.0, mean=8.0),)
        )
        self.assertEqual(self.compositor.compose(params, 0, self.start).delay_cost, 0.0)

    def test_segment_duration_floor(self) -> None:
        params = SimulationParams.build(
            iterations=1, base_rate=1000.0, segments=(_segment(1.0, mean=-5.0),)
        )
        self.assertAlmostEqual(self.compositor.compose(params, 0, self.start).transit_days, 0.1)

    def test_random_draws_stay_near_location(self) -> None:
        factor = RateFactor(
            name="Seasonality",
            category="seasonality",
            mean_multiplier=1.1,
            distribution=TriangularSpec(min=1.0, max=1.2),
        )
        params = SimulationParams.build(
            iterations=1, base_rate=1000.0, factors=(factor,), segments=(_segment(10.0, spread=1.0),)
        )
        plan = self.compositor.plan(params)
        rates = [self.compositor.compose_from_plan(plan, i, self.start).rate for i in range(2_000)]
        self.assertTrue(all(1000.0 <= rate <= 1200.0 for rate in rates))
        self.assertAlmostEqual(sum(rates) / len(rates), 1100.0, delta=5.0)


if __name__ == "__main__":
    unittest.main()
