"""
aco_tsp/colony.py
─────────────────
The Colony: orchestrates all ants across all iterations of one run.

How the colony works
─────────────────────
  1. Builds the DistanceModel once (shared, read-only for the whole run).
  2. For each run: creates a fresh PheromoneField, RunState and
     ConvergenceTracker. Nothing survives from one run to the next.
  3. For each iteration:
       a. Cancellation check (iteration boundary only, never mid-tour).
       b. ConstructTours  - n_ants ants, all from start_index.
       c. Evaluate        - score every tour; the first strictly shorter
                            tour (in ant order) replaces the global best.
       d. UpdatePheromone - evaporate → every ant deposits Q / L →
                            elite reinforcement of the global best.
       e. Record          - append best distance to history, compute gap.
       f. Publish         - immutable IterationSnapshot to the observer.
       g. CheckConvergence - stop early when stagnation hits the limit.
  4. Publishes the RunResult and returns it.

Why evaluate before updating?
  Elite reinforcement must see the best tour *after* this iteration's
  candidates were scored, so a tour discovered now is reinforced now.

Read phase / write phase
─────────────────────────
Step (b) only reads the pheromone field. With n_workers > 1 the ants are
built on a ThreadPoolExecutor; executor.map() returns only when every
ant has finished, which is the barrier before step (d) writes. Results
come back in submission order, so evaluation order (and therefore the
tie-break "first strictly shorter wins") does not depend on thread
scheduling.

Reproducibility
────────────────
Every ant gets its own numpy Generator, spawned from one SeedSequence
in ant order. The random stream an ant sees depends only on the seed,
the iteration and its position, never on which thread ran it. Same seed
+ same config + same points → identical history, for any n_workers.

Observer contract
──────────────────
The colony knows nothing about display. It calls
observer.on_iteration(snapshot) once per iteration and
observer.on_finished(result) once at the end. Pacing, rendering and
threading of the consumer are the observer's business.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence

import numpy as np

from aco_tsp.ant import Ant
from aco_tsp.convergence import ConvergenceTracker
from aco_tsp.distance import DistanceModel, PointLike
from aco_tsp.errors import InvalidInputError
from aco_tsp.pheromone import PheromoneField
from tsp_app.shared.models import (
    ColonyConfig,
    IterationSnapshot,
    RunResult,
    TerminationReason,
)

logger = logging.getLogger(__name__)


class ColonyState(str, Enum):
    """Lifecycle of a Colony. FINISHED covers every TerminationReason."""
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


class IterationObserver(Protocol):
    """Anything that wants to hear about a run's progress."""

    def on_iteration(self, snapshot: IterationSnapshot) -> None: ...

    def on_finished(self, result: RunResult) -> None: ...


@dataclass
class RunState:
    """
    Mutable state of one run, owned by a single Colony.run() call.

    best_distance is non-increasing: offer() only replaces the incumbent
    with a strictly shorter tour, so ties keep the earlier one.
    """
    best_distance: float = math.inf
    best_route: Optional[List[int]] = None
    history: List[float] = field(default_factory=list)
    partial_tours: int = 0
    weight_anomalies: int = 0

    def offer(self, route: Sequence[int], distance: float) -> bool:
        """Replace the global best if `distance` is strictly shorter."""
        if distance < self.best_distance:
            self.best_distance = distance
            self.best_route = list(route)
            return True
        return False


def gap_percent(best_distance: float, reference: Optional[float]) -> Optional[float]:
    """(best − reference) / reference × 100, or None if either side is unknown."""
    if reference is None or not math.isfinite(best_distance):
        return None
    return (best_distance - reference) / reference * 100.0


class Colony:
    """
    Runs the ACO colony over a fixed point set.

    Usage:
        colony = Colony(points, ColonyConfig(n_ants=20, seed=7))
        result = colony.run(observer=my_observer)

    After run():
        colony.state        → ColonyState.FINISHED
        colony.last_run_ms  → wall-clock time of the last run() call.
        colony.pheromone    → the pheromone field of the current/last run.

    A Colony can run more than once; every run starts from a fresh
    pheromone field and the configured seed.
    """

    def __init__(
        self,
        points: Sequence[PointLike],
        config: Optional[ColonyConfig] = None,
    ) -> None:
        """
        Args:
            points: Ordered point set, at least 2 points.
            config: Run configuration. Defaults to ColonyConfig().

        Raises:
            InvalidInputError: fewer than 2 points, or start_index not a
                               valid city index. Raised before any iteration.
        """
        self.config = config if config is not None else ColonyConfig()
        self.distances = DistanceModel(points)

        if self.config.start_index >= self.distances.n:
            raise InvalidInputError(
                f"start_index={self.config.start_index} is out of range for "
                f"{self.distances.n} points."
            )

        self._state = ColonyState.IDLE
        self._lock = threading.Lock()
        self.last_run_ms: float = 0.0
        self.pheromone: Optional[PheromoneField] = None

    @property
    def state(self) -> ColonyState:
        return self._state

    @property
    def n_cities(self) -> int:
        return self.distances.n

    # ── Tour construction ─────────────────────────────────────────────────────

    def _build_tour(self, pheromone: PheromoneField, rng: np.random.Generator) -> Ant:
        ant = Ant(
            self.config.start_index,
            self.distances,
            pheromone,
            alpha=self.config.alpha,
            beta=self.config.beta,
            rng=rng,
        )
        ant.construct()
        return ant

    def _construct_tours(
        self,
        pheromone: PheromoneField,
        seeds: np.random.SeedSequence,
        executor: Optional[ThreadPoolExecutor],
    ) -> List[Ant]:
        rngs = [np.random.default_rng(s) for s in seeds.spawn(self.config.n_ants)]
        if executor is None:
            return [self._build_tour(pheromone, rng) for rng in rngs]
        return list(executor.map(lambda rng: self._build_tour(pheromone, rng), rngs))

    # ── Pheromone update ──────────────────────────────────────────────────────

    def _update_pheromone(
        self,
        pheromone: PheromoneField,
        tours: Sequence[tuple],
        run: RunState,
        iteration: int,
    ) -> None:
        """Evaporate, then proportional deposit for every ant, then elitism."""
        cfg = self.config
        pheromone.evaporate(cfg.evaporation_rate)

        for route, length in tours:
            if length <= 0.0:
                continue
            pheromone.deposit_tour(route, cfg.deposit_scale / length)

        if run.best_route is not None:
            pheromone.reinforce_elite(
                run.best_route,
                run.best_distance,
                iteration,
                cfg.n_iterations,
                cfg.deposit_scale,
                base=cfg.elite_weight_base,
            )

    # ── Main colony loop ───────────────────────────────────────────────────────

    def run(
        self,
        observer: Optional[IterationObserver] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RunResult:
        """
        Execute one full ACO run.

        Args:
            observer:     Receives a snapshot per iteration and the final
                          result. Optional.
            cancel_event: Checked once at the start of every iteration. When
                          set, the run ends with TerminationReason.CANCELLED.

        Returns:
            RunResult with the best tour, history and termination reason.

        Raises:
            RuntimeError: if this Colony is already running.
        """
        with self._lock:
            if self._state == ColonyState.RUNNING:
                raise RuntimeError("Colony.run() is already in progress.")
            self._state = ColonyState.RUNNING

        cfg = self.config
        start = time.perf_counter()
        logger.info(
            "Colony run started: %d cities, %d ants, %d iterations, seed=%s, workers=%d",
            self.n_cities, cfg.n_ants, cfg.n_iterations, cfg.seed, cfg.n_workers,
        )

        pheromone = PheromoneField(self.n_cities)
        self.pheromone = pheromone
        tracker = ConvergenceTracker(cfg.improvement_threshold, cfg.no_improvement_limit)
        run = RunState()
        seeds = np.random.SeedSequence(cfg.seed)
        reason = TerminationReason.BUDGET_EXHAUSTED

        executor = (
            ThreadPoolExecutor(max_workers=cfg.n_workers, thread_name_prefix="aco-ant")
            if cfg.n_workers > 1
            else None
        )
        try:
            for iteration in range(cfg.n_iterations):
                if cancel_event is not None and cancel_event.is_set():
                    reason = TerminationReason.CANCELLED
                    logger.info("Colony run cancelled before iteration %d.", iteration + 1)
                    break

                ants = self._construct_tours(pheromone, seeds, executor)

                # Evaluate in ant order: first strictly shorter tour wins.
                tours = []
                for ant in ants:
                    length = self.distances.tour_length(ant.route)
                    if not ant.is_complete:
                        run.partial_tours += 1
                        logger.warning(
                            "Iteration %d: ant stopped after %d/%d cities; "
                            "scoring the partial tour as-is (length %.4f).",
                            iteration + 1, len(ant.route), self.n_cities, length,
                        )
                    if ant.weight_anomalies:
                        run.weight_anomalies += ant.weight_anomalies
                        logger.warning(
                            "Iteration %d: candidate weights summed to NaN on %d step(s); "
                            "the ant took the lowest unvisited city each time.",
                            iteration + 1, ant.weight_anomalies,
                        )
                    run.offer(ant.route, length)
                    tours.append((ant.route, length))

                self._update_pheromone(pheromone, tours, run, iteration)

                run.history.append(run.best_distance)
                gap = gap_percent(run.best_distance, cfg.reference_optimum)

                if observer is not None:
                    observer.on_iteration(
                        IterationSnapshot(
                            iteration=iteration + 1,
                            best_route=tuple(run.best_route or ()),
                            best_distance=run.best_distance,
                            gap_percent=gap,
                            history=tuple(run.history),
                        )
                    )
                logger.debug(
                    "Iteration %d: best=%.4f gap=%s",
                    iteration + 1, run.best_distance, gap,
                )

                if tracker.update(run.best_distance):
                    reason = TerminationReason.EARLY_STOPPED
                    logger.info(
                        "Early stop after iteration %d: improvement below %.2f%% "
                        "for %d consecutive iterations.",
                        iteration + 1, cfg.improvement_threshold * 100.0, tracker.streak,
                    )
                    break
        finally:
            if executor is not None:
                executor.shutdown(wait=True)
            self._state = ColonyState.FINISHED
            self.last_run_ms = (time.perf_counter() - start) * 1000.0

        result = RunResult(
            reason=reason,
            best_route=tuple(run.best_route or ()),
            best_distance=run.best_distance,
            gap_percent=gap_percent(run.best_distance, cfg.reference_optimum),
            history=tuple(run.history),
            iterations_run=len(run.history),
            improvement_threshold=cfg.improvement_threshold,
            stagnation_streak=tracker.streak,
            partial_tours=run.partial_tours,
            weight_anomalies=run.weight_anomalies,
        )
        logger.info(
            "Colony run finished (%s) after %d iterations in %.1fms: best=%.4f",
            reason.value, result.iterations_run, self.last_run_ms, result.best_distance,
        )
        if observer is not None:
            observer.on_finished(result)
        return result

    def __repr__(self) -> str:
        return (
            f"Colony(cities={self.n_cities}, ants={self.config.n_ants}, "
            f"state={self._state.value}, last_run_ms={self.last_run_ms:.2f})"
        )
