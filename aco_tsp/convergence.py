"""
aco_tsp/convergence.py
──────────────────────
Adaptive stopping rule: stop when the best distance has stagnated.

After every iteration the Colony hands the current global best distance
to update(). From the second call on, the tracker computes

    relative = |previous_best − best| / previous_best

and counts consecutive iterations with relative < improvement_threshold.
Any iteration at or above the threshold resets the streak. When the
streak reaches no_improvement_limit, update() returns True.

The first call only records the baseline: there is nothing to compare
against yet, so it can never count as stagnant.
"""

from __future__ import annotations

from typing import Optional


class ConvergenceTracker:
    """
    Pure bookkeeping for the early-stopping rule.

    Attributes:
        improvement_threshold : float - relative improvement counted as progress.
        no_improvement_limit  : int   - streak length that stops the run.
    """

    def __init__(self, improvement_threshold: float, no_improvement_limit: int) -> None:
        self.improvement_threshold = improvement_threshold
        self.no_improvement_limit = no_improvement_limit
        self._previous_best: Optional[float] = None
        self._streak: int = 0

    def relative_improvement(self, best: float) -> float:
        """
        |previous − best| / previous.

        A previous best of 0.0 (every point coincident) cannot improve
        further, so it reports 0.0 instead of dividing by zero.
        """
        previous = self._previous_best
        if previous is None:
            raise RuntimeError("relative_improvement() needs a previous update()")
        if previous == 0.0:
            return 0.0
        return abs(previous - best) / previous

    def update(self, best: float) -> bool:
        """
        Record this iteration's best distance.

        Returns:
            True if the stagnation streak has reached the limit.
        """
        if self._previous_best is not None:
            if self.relative_improvement(best) < self.improvement_threshold:
                self._streak += 1
            else:
                self._streak = 0

        self._previous_best = best
        return self.should_stop

    @property
    def should_stop(self) -> bool:
        return self._streak >= self.no_improvement_limit

    @property
    def streak(self) -> int:
        """Consecutive stagnant iterations so far."""
        return self._streak

    @property
    def previous_best(self) -> Optional[float]:
        """Best distance from the last update(); the run keeps the full history."""
        return self._previous_best

    def __repr__(self) -> str:
        return (
            f"ConvergenceTracker(streak={self._streak}/{self.no_improvement_limit}, "
            f"threshold={self.improvement_threshold})"
        )
