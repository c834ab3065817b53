import unittest
from datetime import timedelta

from freightsim.core.compositor import OutcomeCompositor
from freightsim.core.errors import ErrorKind, InvalidParameterError
from freightsim.core.orchestrator import RunControl, SimulationOrchestrator
from freightsim.core.sampler import VariateSampler
from freightsim.models.distributions import LogNormalSpec, NormalSpec
from freightsim.models.lane import RateFactor, TransitSegment
from freightsim.models.simulation import RunState, SimulationParams


def _params(iterations: int) -> SimulationParams:
    return SimulationParams.build(
        iterations=iterations,
        base_rate=1000.0,
        factors=(
            RateFactor(
                name="Carrier Premium",
                category="carrier_premium",
                mean_multiplier=1.05,
                distribution=NormalSpec(std_dev=0.02),
            ),
        ),
        segments=(TransitSegment(name="Ocean", baseline_days=14.0),),
    )


class FailingCompositor(OutcomeCompositor):
    def __init__(self, fail_at: int) -> None:
        super().__init__(VariateSampler(seed=1))
        self.fail_at = fail_at

    def compose_from_plan(self, plan, iteration, start):
        if iteration == self.fail_at:
            raise ZeroDivisionError("boom")
        return super().compose_from_plan(plan, iteration, start)


class SimulationOrchestratorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.orchestrator = SimulationOrchestrator(batch_size=100, seed=42)

    def test_outcomes_are_complete_and_ordered(self) -> None:
        result = self.orchestrator.run(_params(250))
        self.assertEqual(result.state, RunState.COMPLETED)
        self.assertEqual(len(result.outcomes), 250)
        self.assertEqual([o.iteration for o in result.outcomes], list(range(250)))
        self.assertEqual(result.completed, 250)
        self.assertIsNone(result.error)

    def test_deterministic_lane_end_to_end(self) -> None:
        params = SimulationParams.build(
            iterations=50,
            base_rate=1000.0,
            factors=(
                RateFactor(
                    name="Flat",
                    category="carrier_premium",
                    mean_multiplier=1.0,
                    distribution=NormalSpec(std_dev=0.0),
                ),
            ),
            segments=(
                TransitSegment(name="Ocean", baseline_days=10.0, distribution=NormalSpec(std_dev=0.0)),
            ),
        )
        result = self.orchestrator.run(params)
        self.assertEqual(result.state, RunState.COMPLETED)
        self.assertEqual(len(result.outcomes), 50)
        for outcome in result.outcomes:
            self.assertAlmostEqual(outcome.rate, 1000.0)
            self.assertAlmostEqual(outcome.transit_days, 10.0)
            self.assertAlmostEqual(outcome.delay_cost, 0.0)
            self.assertAlmostEqual(outcome.total_landed_cost, 1000.0)

    def test_progress_reported_per_batch(self) -> None:
        events = []
        self.orchestrator.run(_params(250), progress_callback=events.append)
        self.assertEqual([e.percent for e in events], [0.0, 40.0, 80.0, 100.0])
        self.assertEqual([e.completed for e in events], [0, 100, 200, 250])
        self.assertTrue(all(e.total == 250 for e in events))

    def test_outcomes_share_start_time(self) -> None:
        result = self.orchestrator.run(_params(20))
        origins = [o.arrival_date - timedelta(days=o.transit_days) for o in result.outcomes]
        self.assertLessEqual(max(origins) - min(origins), timedelta(milliseconds=1))

    def test_cancellation_after_first_batch(self) -> None:
        control = RunControl()
        events = []

        def on_progress(event) -> None:
            events.append(event)
            if event.completed == 100:
                control.cancel()

        result = self.orchestrator.run(_params(1_000), control=control, progress_callback=on_progress)
        self.assertEqual(result.state, RunState.CANCELLED)
        self.assertEqual(len(result.outcomes), 100)
        self.assertEqual([e.completed for e in events], [0, 100])
        self.assertIsNone(result.error)

    def test_cancel_before_start_yields_first_batch_only(self) -> None:
        control = RunControl()
        control.cancel()
        events = []
        result = self.orchestrator.run(_params(500), control=control, progress_callback=events.append)
        self.assertEqual(result.state, RunState.CANCELLED)
        self.assertEqual(len(result.outcomes), 100)
        self.assertEqual([e.completed for e in events], [0])

    def test_compositor_failure_fails_run(self) -> None:
        orchestrator = SimulationOrchestrator(FailingCompositor(fail_at=150), batch_size=100)
        with self.assertLogs("freightsim.core.orchestrator", level="ERROR"):
            result = orchestrator.run(_params(300))
        self.assertEqual(result.state, RunState.FAILED)
        self.assertEqual(result.outcomes, ())
        self.assertEqual(result.error.kind, ErrorKind.RUNTIME_FAILURE)
        self.assertIn("boom", result.error.message)

    def test_failing_progress_callback_does_not_abort(self) -> None:
        def broken(_event) -> None:
            raise ValueError("listener bug")

        with self.assertLogs("freightsim.core.orchestrator", level="ERROR"):
            result = self.orchestrator.run(_params(150), progress_callback=broken)
        self.assertEqual(result.state, RunState.COMPLETED)
        self.assertEqual(len(result.outcomes), 150)

    def test_invalid_params_rejected_before_start(self) -> None:
        params = SimulationParams.build(
            iterations=10,
            base_rate=1000.0,
            factors=(
                RateFactor(
                    name="Zero",
                    category="seasonality",
                    mean_multiplier=0.0,
                    distribution=LogNormalSpec(sigma=0.1),
                ),
            ),
        )
        events = []
        with self.assertRaises(InvalidParameterError):
            self.orchestrator.run(params, progress_callback=events.append)
        self.assertEqual(events, [])

    def test_seeded_runs_are_reproducible(self) -> None:
        first = SimulationOrchestrator(seed=7).run(_params(50))
        second = SimulationOrchestrator(seed=7).run(_params(50))
        self.assertEqual(list(first.rates()), list(second.rates()))


class RunControlTests(unittest.TestCase):
    def test_pause_and_resume_flags(self) -> None:
        control = RunControl()
        self.assertFalse(control.paused)
        control.pause()
        self.assertTrue(control.paused)
        control.resume()
        self.assertFalse(control.paused)
        self.assertFalse(control.checkpoint())

    def test_cancel_releases_paused_checkpoint(self) -> None:
        control = RunControl()
        control.pause()
        control.cancel()
        self.assertTrue(control.checkpoint())


if __name__ == "__main__":
    unittest.main()
