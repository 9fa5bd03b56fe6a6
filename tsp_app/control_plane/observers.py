"""
tsp_app/control_plane/observers.py
──────────────────────────────────
Observer sinks: where a Colony's per-iteration snapshots go.

The Colony calls observer.on_iteration(snapshot) after every iteration and
observer.on_finished(result) once at the end (see aco_tsp.colony for the
protocol). It never waits for anyone to look at what it published.

  LoggingObserver → one log line per iteration, the progress report a
                    terminal user reads.
  QueueObserver   → hands every event to an unbounded queue.Queue so a
                    consumer on another thread (a UI, the CLI pacing loop)
                    can read at its own speed. put_nowait() never blocks
                    the engine.

Snapshots and results are frozen Pydantic models carrying tuples, so an
event sitting in a queue cannot change after it was published.
"""

from __future__ import annotations

import logging
import queue
from typing import Iterator, Optional, Union

from tsp_app.shared.models import IterationSnapshot, RunResult, TerminationReason

logger = logging.getLogger(__name__)

RunEvent = Union[IterationSnapshot, RunResult]


def format_route(route) -> str:
    """City indices printed 1-based, as users number them."""
    return " ".join(str(c + 1) for c in route)


class LoggingObserver:
    """
    Report progress through `logging`.

    Args:
        total_iterations: Iteration budget, shown as "k/N". Optional.
        show_route:       Include the best route in every line. Off for
                          large instances where a line would be thousands
                          of characters long.
        log:              Logger to write to (module logger by default).
    """

    def __init__(
        self,
        total_iterations: Optional[int] = None,
        show_route: bool = True,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.total_iterations = total_iterations
        self.show_route = show_route
        self._log = log or logger

    def on_iteration(self, snapshot: IterationSnapshot) -> None:
        progress = (
            f"{snapshot.iteration}/{self.total_iterations}"
            if self.total_iterations
            else str(snapshot.iteration)
        )
        gap = "n/a" if snapshot.gap_percent is None else f"{snapshot.gap_percent:.2f}%"
        if self.show_route:
            self._log.info(
                "Iteration %s - best distance: %.1f | gap: %s | route: %s",
                progress, snapshot.best_distance, gap, format_route(snapshot.best_route),
            )
        else:
            self._log.info(
                "Iteration %s - best distance: %.1f | gap: %s",
                progress, snapshot.best_distance, gap,
            )

    def on_finished(self, result: RunResult) -> None:
        if result.reason == TerminationReason.EARLY_STOPPED:
            self._log.info(
                "Early stop: improvement below %.2f%% for %d consecutive iterations.",
                result.improvement_threshold * 100.0, result.stagnation_streak,
            )
        elif result.reason == TerminationReason.CANCELLED:
            self._log.info("Run cancelled after %d iterations.", result.iterations_run)
        if result.partial_tours:
            self._log.warning(
                "%d ant(s) produced incomplete tours during the run.", result.partial_tours,
            )
        if result.weight_anomalies:
            self._log.warning(
                "%d selection step(s) had NaN candidate weights during the run.",
                result.weight_anomalies,
            )
        self._log.info(
            "Run finished (%s): %d iterations, best distance %.4f",
            result.reason.value, result.iterations_run, result.best_distance,
        )


class QueueObserver:
    """
    Fire-and-forget delivery of run events to another thread.

    The engine side calls on_iteration / on_finished; the consumer side
    calls events() (or reads .queue directly). The queue is unbounded,
    so publishing never blocks.
    """

    def __init__(self) -> None:
        self.queue: "queue.Queue[RunEvent]" = queue.Queue()

    def on_iteration(self, snapshot: IterationSnapshot) -> None:
        self.queue.put_nowait(snapshot)

    def on_finished(self, result: RunResult) -> None:
        self.queue.put_nowait(result)

    def events(self, timeout: Optional[float] = None) -> Iterator[RunEvent]:
        """
        Yield events in publication order until (and including) the RunResult.

        Args:
            timeout: Max seconds to wait for each event. None waits forever.

        Raises:
            queue.Empty: if `timeout` elapses with no event.
        """
        while True:
            event = self.queue.get(timeout=timeout)
            yield event
            if isinstance(event, RunResult):
                return
