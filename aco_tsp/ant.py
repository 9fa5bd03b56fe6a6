"""
aco_tsp/ant.py
──────────────
One ant: builds one closed tour, city by city.

What does an ant do?
─────────────────────
Starting from the configured start city, the ant repeatedly picks an
unvisited city at random, biased towards edges that are both short (η)
and well-trodden by earlier good tours (τ). It stops when every city is
visited. The tour is closed implicitly: the last city connects back to
the first.

The selection formula
──────────────────────
At city i, for every unvisited city j:

    w[j] = τ[i][j]^α × (1 / (d[i][j] + ETA_EPSILON))^β

    α: pheromone exponent - how much past learning drives the choice.
    β: heuristic exponent - how much geometric closeness drives it.

ETA_EPSILON keeps the heuristic finite for coincident points.

Roulette wheel
───────────────
    r      = uniform in [0, Σw)
    choice = first candidate (ascending city index) whose cumulative
             weight is ≥ r

Only unvisited cities are on the wheel, so the ant can never revisit a
city or stay where it is. Accumulating in ascending index order makes
the pick a deterministic function of r, which is what makes seeded runs
reproducible.

Degenerate weights
───────────────────
If every weight underflows to exactly 0.0 (extreme α/β, or the τ floor
combined with huge distances), the ant falls back to a uniform choice
among unvisited cities. If the running sum overflows to inf, the first
candidate at which it becomes inf wins, which is where an accumulating
wheel with r = inf would land. This also covers finite weights whose sum
overflows. If the sum is NaN (τ^α underflowing to 0 while η^β overflows
to inf), the lowest unvisited city is taken and the step is counted in
weight_anomalies. Either way the ant keeps moving.

If no city can be chosen while unvisited cities remain, _select_next()
returns None and construct() stops early. The partial route is kept
and scored as-is; the Colony counts and logs it.

Thread safety
──────────────
An ant reads the shared DistanceModel and PheromoneField and writes only
its own route/visited state and its own Generator. Any number of ants can
construct concurrently as long as nobody writes to the field meanwhile.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from aco_tsp.distance import DistanceModel
from aco_tsp.pheromone import PheromoneField

logger = logging.getLogger(__name__)

ETA_EPSILON: float = 1e-6
"""Added to every distance before inversion: 1 / (d + ε).
Coincident points (d = 0) get a very large but finite heuristic.
"""


class Ant:
    """
    Constructs one tour using pheromone + inverse-distance heuristic.

    Lifecycle:
        1. __init__()   → place the ant on the start city.
        2. construct()  → visit every city (or stop early on an anomaly).
        3. Read results → ant.route, ant.is_complete.

    Single-use: create a new Ant for every tour.

    Attributes:
        current     : int        - city the ant is standing on.
        route       : List[int]  - visit order, starts with the start city.
        visited     : np.ndarray - boolean mask of size n.
        is_complete : bool       - True once route is a full permutation.
        weight_anomalies : int   - steps whose weights summed to NaN.
    """

    def __init__(
        self,
        start: int,
        distances: DistanceModel,
        pheromone: PheromoneField,
        alpha: float,
        beta: float,
        rng: np.random.Generator,
    ) -> None:
        """
        Args:
            start:     Start city index, 0 ≤ start < n.
            distances: Shared distance model (read-only).
            pheromone: Shared pheromone field (read-only for the ant).
            alpha:     Pheromone exponent.
            beta:      Heuristic exponent.
            rng:       This ant's private random generator.
        """
        self._distances = distances
        self._pheromone = pheromone
        self._alpha = alpha
        self._beta = beta
        self._rng = rng
        self._n = distances.n

        self.current: int = start
        self.route: List[int] = [start]
        self.visited: np.ndarray = np.zeros(self._n, dtype=bool)
        self.visited[start] = True
        self.is_complete: bool = self._n == 1
        self.weight_anomalies: int = 0

    # ── Moves ─────────────────────────────────────────────────────────────────

    def move(self, city: int) -> None:
        self.current = city
        self.route.append(city)
        self.visited[city] = True

    def has_completed_tour(self) -> bool:
        return len(self.route) == self._n

    # ── City selection ────────────────────────────────────────────────────────

    def _weights(self, candidates: np.ndarray) -> np.ndarray:
        """τ^α × η^β for the given candidate cities, seen from self.current."""
        tau = self._pheromone.get_row(self.current)[candidates]
        dist = self._distances.get_row(self.current)[candidates]
        with np.errstate(over="ignore", under="ignore"):
            return np.power(tau, self._alpha) * np.power(1.0 / (dist + ETA_EPSILON), self._beta)

    def _select_next(self) -> Optional[int]:
        """
        Pick the next city by roulette wheel over unvisited candidates.

        Returns:
            City index, or None if no unvisited city remains.
        """
        unvisited = ~self.visited
        unvisited[self.current] = False
        candidates = np.flatnonzero(unvisited)
        if candidates.size == 0:
            return None

        weights = self._weights(candidates)
        cumsum = np.cumsum(weights)
        total = float(cumsum[-1])

        if total == 0.0:
            logger.debug(
                "Ant at city %d: all %d candidate weights are zero, picking uniformly.",
                self.current, candidates.size,
            )
            return int(candidates[self._rng.integers(candidates.size)])

        if np.isnan(total):
            # r = u × NaN never compares ≥, so no slice of the wheel is hit.
            self.weight_anomalies += 1
            logger.debug(
                "Ant at city %d: candidate weights sum to NaN, taking city %d.",
                self.current, candidates[0],
            )
            return int(candidates[0])

        if np.isinf(total):
            # r = u × inf is inf: the wheel lands where the running sum
            # first reaches inf, even when every single weight is finite.
            return int(candidates[np.argmax(np.isinf(cumsum))])

        # First index where cumsum ≥ r. r < total = cumsum[-1], so the
        # result is always a valid candidate position.
        r = self._rng.random() * total
        pos = int(np.searchsorted(cumsum, r, side="left"))
        pos = min(pos, candidates.size - 1)
        return int(candidates[pos])

    # ── Tour construction ─────────────────────────────────────────────────────

    def construct(self) -> List[int]:
        """
        Visit every city, one probabilistic step at a time.

        Returns:
            The route (also available as self.route).

        Post-conditions:
            is_complete is True iff route is a permutation of 0..n-1.
        """
        while not self.has_completed_tour():
            nxt = self._select_next()
            if nxt is None:
                break
            self.move(nxt)

        self.is_complete = self.has_completed_tour()
        return self.route

    def __repr__(self) -> str:
        return (
            f"Ant(visited={len(self.route)}/{self._n}, "
            f"current={self.current}, complete={self.is_complete})"
        )
