"""
tsp_app/shared/models.py
────────────────────────
The single source of truth for every data structure passed between the
ACO engine and the outside world.

Design philosophy
-----------------
The engine works on integer city indices and numpy arrays. Everything
that crosses its boundary (points in, configuration in, snapshots and
results out) is a frozen Pydantic model, so:

  • invalid values are rejected at construction, before any iteration,
  • nothing handed to an observer can be mutated behind the engine's back,
  • every field documents its own unit and constraint.

Reading guide
-------------
Read top-to-bottom. Each model builds on the ones above it.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 1: ENUMERATIONS
# ─────────────────────────────────────────────────────────────────────────────

class TerminationReason(str, Enum):
    """
    Why a run stopped.

    BUDGET_EXHAUSTED → every configured iteration ran.
    EARLY_STOPPED    → relative improvement stayed under the threshold for
                       no_improvement_limit consecutive iterations.
    CANCELLED        → the caller asked the run to stop; honoured at the
                       next iteration boundary.
    """
    BUDGET_EXHAUSTED = "budget-exhausted"
    EARLY_STOPPED = "early-stopped"
    CANCELLED = "cancelled"


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 2: INPUT MODELS
# ─────────────────────────────────────────────────────────────────────────────

class Point(BaseModel):
    """A city location in the plane. Created once at load time, never mutated."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float = Field(..., description="Horizontal coordinate")
    y: float = Field(..., description="Vertical coordinate")


# Defaults mirror the reference configuration used on the a280 instance.
DEFAULT_ANTS: int = 75
DEFAULT_ITERATIONS: int = 100
DEFAULT_ALPHA: float = 1.0
DEFAULT_BETA: float = 2.0
DEFAULT_EVAPORATION_RATE: float = 0.9
DEFAULT_DEPOSIT_SCALE: float = 100.0
DEFAULT_IMPROVEMENT_THRESHOLD: float = 0.001
DEFAULT_NO_IMPROVEMENT_LIMIT: int = 15
DEFAULT_REFERENCE_OPTIMUM: float = 2579.0


class ColonyConfig(BaseModel):
    """
    Every knob of one ACO run. Fixed at run start, read-only afterwards.

    Fields:
        n_ants                → Tours built per iteration.
        n_iterations          → Iteration budget.
        start_index           → City every ant starts from. Must also be
                                < n_points; that part is checked at admission
                                because the model does not know the point set.
        alpha                 → τ exponent: weight of learned pheromone.
        beta                  → η exponent: weight of inverse distance.
        evaporation_rate      → ρ in [0, 1). τ ← τ × (1 − ρ) each iteration.
        deposit_scale         → Q. Each ant deposits Q / tour_length per edge.
                                Zero disables reinforcement entirely.
        elite_weight_base     → Elite weight at iteration 0. The weight grows
                                by iteration / n_iterations, so with the
                                default it rises linearly from 1.0 towards 2.0.
        improvement_threshold → Relative improvement below which an iteration
                                counts as stagnant (0.001 = 0.1%).
        no_improvement_limit  → Consecutive stagnant iterations before the
                                run stops early.
        reference_optimum     → Known optimal tour length, only used to report
                                the gap. None disables gap reporting.
        seed                  → Master RNG seed. Same seed + same config +
                                same points → identical history.
        n_workers             → Threads used to construct ants. Does not
                                change results, only wall-clock time.
    """
    model_config = ConfigDict(frozen=True)

    n_ants: int = Field(DEFAULT_ANTS, gt=0, description="Ants per iteration")
    n_iterations: int = Field(DEFAULT_ITERATIONS, gt=0, description="Iteration budget")
    start_index: int = Field(0, ge=0, description="Start city index")

    alpha: float = Field(DEFAULT_ALPHA, ge=0.0, description="Pheromone exponent α")
    beta: float = Field(DEFAULT_BETA, ge=0.0, description="Heuristic exponent β")

    evaporation_rate: float = Field(
        DEFAULT_EVAPORATION_RATE, ge=0.0, lt=1.0,
        description="Fraction of pheromone removed each iteration",
    )
    deposit_scale: float = Field(
        DEFAULT_DEPOSIT_SCALE, ge=0.0,
        description="Q: deposit numerator, amount per edge = Q / tour length",
    )
    elite_weight_base: float = Field(
        1.0, ge=0.0,
        description="Elite weight at iteration 0 (grows by +1.0 over the run)",
    )

    improvement_threshold: float = Field(
        DEFAULT_IMPROVEMENT_THRESHOLD, ge=0.0,
        description="Relative improvement counted as progress",
    )
    no_improvement_limit: int = Field(
        DEFAULT_NO_IMPROVEMENT_LIMIT, gt=0,
        description="Stagnant iterations tolerated before early stop",
    )

    reference_optimum: Optional[float] = Field(
        DEFAULT_REFERENCE_OPTIMUM, gt=0.0,
        description="Known optimum for gap reporting; None to disable",
    )
    seed: Optional[int] = Field(None, ge=0, description="Master RNG seed")
    n_workers: int = Field(1, gt=0, description="Threads for ant construction")


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 3: OUTPUT MODELS
# ─────────────────────────────────────────────────────────────────────────────

class IterationSnapshot(BaseModel):
    """
    What the engine publishes after every iteration.

    Route and history are tuples built from the engine's state at publish
    time. An observer may keep a snapshot for as long as it likes; the
    engine's next iteration cannot change it.

    Fields:
        iteration     → 1-based iteration number.
        best_route    → Best tour so far as city indices (closing edge implied).
        best_distance → Round-trip length of best_route.
        gap_percent   → (best − reference) / reference × 100. Negative when the
                        run beats the reference. None without a reference.
        history       → Best distance after each iteration, up to this one.
    """
    model_config = ConfigDict(frozen=True)

    iteration: int = Field(..., ge=1)
    best_route: Tuple[int, ...]
    best_distance: float = Field(..., ge=0.0)
    gap_percent: Optional[float] = None
    history: Tuple[float, ...]


class RunResult(BaseModel):
    """
    Final event of a run.

    Fields:
        reason                → Why the run stopped (see TerminationReason).
        best_route            → Best tour found. Empty only if the run was
                                cancelled before its first iteration.
        best_distance         → Its length (inf when best_route is empty).
        gap_percent           → Final gap vs reference_optimum, if set.
        history               → Best distance per completed iteration.
        iterations_run        → len(history).
        improvement_threshold → Threshold in force (reported with early stops).
        stagnation_streak     → Consecutive stagnant iterations at the end.
        partial_tours         → Ants that could not finish a tour. Expected 0.
        weight_anomalies      → Selection steps whose weights summed to NaN.
    """
    model_config = ConfigDict(frozen=True)

    reason: TerminationReason
    best_route: Tuple[int, ...]
    best_distance: float
    gap_percent: Optional[float] = None
    history: Tuple[float, ...]
    iterations_run: int = Field(..., ge=0)
    improvement_threshold: float
    stagnation_streak: int = Field(0, ge=0)
    partial_tours: int = Field(0, ge=0)
    weight_anomalies: int = Field(0, ge=0)

    @property
    def early_stopped(self) -> bool:
        """True if the run ended on the stagnation rule."""
        return self.reason == TerminationReason.EARLY_STOPPED
