"""
tsp_app/control_plane/runner.py
───────────────────────────────
ColonyRunner: run a Colony on its own thread, away from the caller.

What this is
─────────────
The colony loop is CPU-bound and can take seconds. A caller with its own
loop (a UI, the CLI's pacing loop) must not be blocked by it, and the
colony must not be blocked by the caller. The runner gives each side its
own thread and connects them with a QueueObserver:

    caller thread                      worker thread
    ─────────────                      ─────────────
    runner.start()          ───────▶   colony.run(observer=queue)
    for ev in runner.events():  ◀───   put_nowait(snapshot)  (per iteration)
        draw / sleep / print   ◀───   put_nowait(result)    (once)
    runner.cancel()         ───────▶   checked at next iteration boundary
    runner.join()  → RunResult

Pacing between iterations is entirely the consumer's choice: sleeping in
the events() loop slows the display, never the search.

Failure handling
─────────────────
Any exception escaping colony.run() on the worker is stored and re-raised
by join() (and by events(), which stops waiting once the worker is dead).
Nothing is swallowed.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Iterator, Optional, Sequence

from aco_tsp import Colony
from aco_tsp.distance import PointLike
from tsp_app.control_plane.admission import ConfigLike, admit_run
from tsp_app.control_plane.observers import QueueObserver, RunEvent
from tsp_app.shared.models import RunResult

logger = logging.getLogger(__name__)

POLL_INTERVAL_S: float = 0.05
"""How often events() re-checks a silent queue for a dead worker."""


class ColonyRunner:
    """
    Owns one background run of one Colony.

    Usage:
        runner = ColonyRunner(points, {"n_ants": 20, "seed": 1})
        runner.start()
        for event in runner.events():
            ...
        result = runner.join()

    Construction runs admission control, so invalid input raises
    InvalidInputError here, before any thread is started.
    """

    def __init__(self, points: Sequence[PointLike], config: ConfigLike = None) -> None:
        admitted, cfg = admit_run(points, config)
        self.colony = Colony(admitted, cfg)
        self.observer = QueueObserver()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[RunResult] = None
        self._error: Optional[BaseException] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the run on a daemon worker thread. Call once."""
        if self._thread is not None:
            raise RuntimeError("ColonyRunner.start() called twice.")
        self._thread = threading.Thread(
            target=self._work, name="aco-colony", daemon=True,
        )
        self._thread.start()

    def _work(self) -> None:
        try:
            self._result = self.colony.run(
                observer=self.observer, cancel_event=self._cancel,
            )
        except BaseException as exc:  # re-raised by join()
            logger.exception("Colony run failed on worker thread.")
            self._error = exc

    def cancel(self) -> None:
        """Ask the run to stop at the next iteration boundary."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> RunResult:
        """
        Wait for the worker and return its RunResult.

        Raises:
            RuntimeError: if start() was never called or the timeout elapsed.
            Exception:    whatever colony.run() raised on the worker.
        """
        if self._thread is None:
            raise RuntimeError("ColonyRunner.join() called before start().")
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise RuntimeError(f"Colony run still in progress after {timeout}s.")
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result

    # ── Consumption ───────────────────────────────────────────────────────────

    def events(self) -> Iterator[RunEvent]:
        """
        Yield snapshots in order, then the RunResult, then stop.

        If the worker dies without publishing a result, the stored error is
        re-raised instead of waiting forever.
        """
        if self._thread is None:
            raise RuntimeError("ColonyRunner.events() called before start().")
        while True:
            try:
                event = self.observer.queue.get(timeout=POLL_INTERVAL_S)
            except queue.Empty:
                if not self._thread.is_alive() and self.observer.queue.empty():
                    self.join()
                    return
                continue
            yield event
            if isinstance(event, RunResult):
                return

    def run(self) -> RunResult:
        """Convenience: start, discard intermediate events, return the result."""
        self.start()
        return self.join()
