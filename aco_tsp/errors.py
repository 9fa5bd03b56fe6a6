"""
aco_tsp/errors.py
─────────────────
Errors raised by the ACO engine before a run starts.

Only one condition is surfaced to callers: the input (points or
configuration) is unusable. Everything that can go wrong *during* a run
is either recovered internally (all-zero selection weights fall back to
a uniform pick) or recorded as an anomaly on the RunResult (an ant that
could not finish its tour). No iteration ever raises.
"""

from __future__ import annotations


class InvalidInputError(ValueError):
    """
    Raised when a point set or configuration cannot be used for a run.

    When is this raised?
        • Fewer than 2 points.
        • start_index outside [0, n_points).
        • A configuration value violates its constraint
          (e.g. evaporation_rate ≥ 1.0, n_ants = 0).
        • A points file has a malformed coordinate.

    Subclasses ValueError so callers that already guard numeric input
    with `except ValueError` keep working.

    Attributes:
        reason: Human-readable explanation, safe to show to a user.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
