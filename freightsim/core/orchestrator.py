"""Batched Monte Carlo run loop with progress, pause and cancellation."""

from __future__ import annotations

import logging
import threading
import time
import traceback
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .. import config
from ..models.simulation import (
    ProgressEvent,
    RunState,
    SimulationOutcome,
    SimulationParams,
    SimulationRunResult,
)
from .compositor import OutcomeCompositor
from .errors import RuntimeFailureError, SimulationError
from .sampler import VariateSampler
from .validator import validate_params

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class RunControl:
    """Thread-safe cancel token and pause gate shared with a running loop."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._resumed = threading.Event()
        self._resumed.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        # Release a paused loop so it can observe the cancellation.
        self._resumed.set()

    def pause(self) -> None:
        if not self.cancelled:
            self._resumed.clear()

    def resume(self) -> None:
        self._resumed.set()

    def checkpoint(self, poll_interval: float = 0.05) -> bool:
        """Block while paused; return True when the run should stop."""
        while not self._resumed.wait(poll_interval):
            if self.cancelled:
                break
        return self.cancelled


class SimulationOrchestrator:
    """
    Execute ``params.iterations`` independent iterations in fixed-size batches.

    Progress is reported after every batch through ``progress_callback``.
    Cancellation and pause requests are honoured between batches only, so a
    batch that has started always finishes.
    """

    def __init__(
        self,
        compositor: Optional[OutcomeCompositor] = None,
        *,
        batch_size: int = config.BATCH_SIZE,
        seed: Optional[int] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if compositor is None:
            sampler = VariateSampler(seed=config.RANDOM_SEED if seed is None else seed)
            compositor = OutcomeCompositor(sampler)
        self.compositor = compositor
        self.batch_size = batch_size

    def run(
        self,
        params: SimulationParams,
        *,
        control: Optional[RunControl] = None,
        progress_callback: Optional[ProgressCallback] = None,
        run_id: Optional[str] = None,
    ) -> SimulationRunResult:
        """Run to completion, cancellation or failure.

        Raises InvalidParameterError before any iteration when ``params``
        cannot be sampled; every later failure is reported on the result.
        """
        validate_params(params)
        control = control or RunControl()
        run_id = run_id or uuid.uuid4().hex
        total = params.iterations
        started = time.perf_counter()
        start = datetime.now(timezone.utc)
        outcomes: List[SimulationOutcome] = []

        LOGGER.info("Simulation %s started: %d iterations, batch size %d", run_id, total, self.batch_size)
        self._report(progress_callback, run_id, 0, total)

        try:
            plan = self.compositor.plan(params)
            for batch_start in range(0, total, self.batch_size):
                batch_end = min(batch_start + self.batch_size, total)
                for iteration in range(batch_start, batch_end):
                    outcomes.append(self.compositor.compose_from_plan(plan, iteration, start))

                if control.cancelled:
                    return self._cancelled(run_id, outcomes, total, started)
                self._report(progress_callback, run_id, len(outcomes), total)

                if batch_end < total:
                    time.sleep(0)
                    if control.checkpoint():
                        return self._cancelled(run_id, outcomes, total, started)
        except Exception as exc:
            LOGGER.exception("Simulation %s failed after %d iterations", run_id, len(outcomes))
            if isinstance(exc, SimulationError):
                info = exc.to_info(detail=traceback.format_exc())
            else:
                info = RuntimeFailureError(str(exc) or type(exc).__name__).to_info(
                    detail=traceback.format_exc()
                )
            return SimulationRunResult(
                run_id=run_id,
                state=RunState.FAILED,
                outcomes=(),
                completed=0,
                total=total,
                error=info,
                duration_seconds=time.perf_counter() - started,
            )

        duration = time.perf_counter() - started
        LOGGER.info("Simulation %s completed in %.2fs", run_id, duration)
        return SimulationRunResult(
            run_id=run_id,
            state=RunState.COMPLETED,
            outcomes=tuple(outcomes),
            completed=len(outcomes),
            total=total,
            duration_seconds=duration,
        )

    # ------------------------------------------------------------------ helpers
    def _cancelled(
        self, run_id: str, outcomes: List[SimulationOutcome], total: int, started: float
    ) -> SimulationRunResult:
        LOGGER.warning("Simulation %s cancelled after %d of %d iterations", run_id, len(outcomes), total)
        return SimulationRunResult(
            run_id=run_id,
            state=RunState.CANCELLED,
            outcomes=tuple(outcomes),
            completed=len(outcomes),
            total=total,
            duration_seconds=time.perf_counter() - started,
        )

    @staticmethod
    def _report(
        callback: Optional[ProgressCallback], run_id: str, completed: int, total: int
    ) -> None:
        if callback is None:
            return
        event = ProgressEvent(
            run_id=run_id,
            completed=completed,
            total=total,
            percent=completed / total * 100.0,
        )
        try:
            callback(event)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Progress callback failed for run %s", run_id)


__all__ = ["ProgressCallback", "RunControl", "SimulationOrchestrator"]
