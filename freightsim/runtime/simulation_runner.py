"""Background execution of simulation runs with event streaming."""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from queue import Empty, Queue
from typing import Callable, Dict, Iterable, List, Optional, Union

from .. import config
from ..core.errors import RuntimeFailureError
from ..core.orchestrator import RunControl, SimulationOrchestrator
from ..core.validator import validate_params
from ..models.simulation import (
    ProgressEvent,
    RunState,
    SimulationParams,
    SimulationRunResult,
    StateChangeEvent,
)

LOGGER = logging.getLogger(__name__)

RunEvent = Union[ProgressEvent, StateChangeEvent, SimulationRunResult]
RunListener = Callable[[RunEvent], None]


class SimulationRun:
    """Caller-owned handle to one background run."""

    def __init__(self, run_id: str, params: SimulationParams) -> None:
        self.run_id = run_id
        self.params = params
        self.control = RunControl()
        self._state = RunState.IDLE
        self._events: "Queue[RunEvent]" = Queue()
        self._listeners: List[RunListener] = []
        self._lock = threading.Lock()
        self._future: Optional[Future] = None

    # ------------------------------------------------------------------ status
    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    @property
    def done(self) -> bool:
        return self.state.terminal

    # ------------------------------------------------------------------ control
    def pause(self) -> None:
        """Hold the run before its next batch."""
        self._transition(RunState.PAUSED)
        self.control.pause()

    def resume(self) -> None:
        self._transition(RunState.RUNNING)
        self.control.resume()

    def cancel(self) -> None:
        """Request cancellation; the run stops at its next batch boundary.

        The terminal state is reported by the run loop, so ``state`` stays
        Running or Paused until the current batch finishes.
        """
        with self._lock:
            if self._state.terminal:
                raise RuntimeError(f"Run {self.run_id} already finished ({self._state.value})")
        self.control.cancel()

    # ------------------------------------------------------------------ events
    def subscribe(self, listener: RunListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def drain_events(self) -> List[RunEvent]:
        events: List[RunEvent] = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except Empty:
                break
        return events

    def _publish(self, event: RunEvent) -> None:
        self._events.put(event)
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Run listener failed for run %s", self.run_id)

    def _transition(self, target: RunState) -> None:
        with self._lock:
            previous = self._state
            if not previous.can_transition_to(target):
                raise RuntimeError(
                    f"Run {self.run_id} cannot move from {previous.value} to {target.value}"
                )
            self._state = target
        self._publish(StateChangeEvent(run_id=self.run_id, previous=previous, current=target))

    # ------------------------------------------------------------------ results
    def result(self, timeout: Optional[float] = None) -> SimulationRunResult:
        """Block until the run reaches a terminal state."""
        if self._future is None:
            raise RuntimeError(f"Run {self.run_id} has not been started.")
        return self._future.result(timeout=timeout)


class SimulationRunner:
    """Submit simulation runs to a thread pool and track them by id."""

    def __init__(self, *, max_workers: int = 1, batch_size: int = config.BATCH_SIZE) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="simulation-runner")
        self._runs: Dict[str, SimulationRun] = {}
        self._lock = threading.Lock()
        self.batch_size = batch_size

    def start(
        self,
        params: SimulationParams,
        *,
        seed: Optional[int] = None,
        listeners: Iterable[RunListener] = (),
    ) -> SimulationRun:
        """Validate ``params`` and schedule the run; raises InvalidParameterError up front.

        ``listeners`` are subscribed before the worker starts so they see every event.
        """
        validate_params(params)
        run = SimulationRun(uuid.uuid4().hex, params)
        for listener in listeners:
            run.subscribe(listener)
        orchestrator = SimulationOrchestrator(batch_size=self.batch_size, seed=seed)
        with self._lock:
            self._runs[run.run_id] = run
        run._transition(RunState.RUNNING)
        run._future = self._executor.submit(self._execute, run, orchestrator)
        return run

    def get(self, run_id: str) -> SimulationRun:
        with self._lock:
            try:
                return self._runs[run_id]
            except KeyError:
                raise KeyError(f"Unknown run id {run_id!r}") from None

    def runs(self) -> List[SimulationRun]:
        with self._lock:
            return list(self._runs.values())

    def forget(self, run_id: str) -> SimulationRun:
        """Stop tracking a finished run and drop its queued events.

        Raises KeyError for unknown ids and RuntimeError while the run is still active.
        """
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise KeyError(f"Unknown run id {run_id!r}")
            if not run.done:
                raise RuntimeError(f"Run {run_id} is still {run.state.value}")
            del self._runs[run_id]
        run.drain_events()
        return run

    def prune(self) -> int:
        """Forget every finished run; returns how many were released."""
        with self._lock:
            finished = [run_id for run_id, run in self._runs.items() if run.done]
        for run_id in finished:
            self.forget(run_id)
        return len(finished)

    def shutdown(self, wait: bool = False) -> None:
        if not wait:
            with self._lock:
                pending = [run for run in self._runs.values() if not run.done]
            for run in pending:
                run.control.cancel()
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _execute(run: SimulationRun, orchestrator: SimulationOrchestrator) -> SimulationRunResult:
        try:
            result = orchestrator.run(
                run.params,
                control=run.control,
                progress_callback=run._publish,
                run_id=run.run_id,
            )
        except Exception as exc:
            LOGGER.exception("Run %s aborted before iterating", run.run_id)
            result = SimulationRunResult(
                run_id=run.run_id,
                state=RunState.FAILED,
                outcomes=(),
                completed=0,
                total=run.params.iterations,
                error=RuntimeFailureError(str(exc) or type(exc).__name__).to_info(),
            )
        run._transition(result.state)
        run._publish(result)
        return result


__all__ = ["RunEvent", "RunListener", "SimulationRun", "SimulationRunner"]
