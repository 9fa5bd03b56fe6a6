"""
aco_tsp/pheromone.py
────────────────────
The pheromone field: the colony's shared, mutable memory over city pairs.

What is pheromone?
──────────────────
Every edge (i, j) carries an intensity τ[i][j]. Ants leaving city i are
more likely to take edges with high τ. Edges of short tours receive more
pheromone, so over iterations the colony's choices concentrate on the
edges of good tours.

Three forces act on the field, always in this order within an iteration:
  1. Evaporation  - τ ← max(τ × (1 − ρ), TAU_MIN) for every pair.
                    Global forgetting; keeps early mistakes from sticking.
  2. Deposit      - every ant adds Q / L_ant to each edge of its tour.
  3. Elitism      - the global best tour gets an extra
                    w_it × Q / L_best on each of its edges, where w_it
                    grows linearly over the run.

Symmetry
────────
The problem is undirected, so every write touches both (i, j) and
(j, i). τ is therefore symmetric at all times without ever having to be
re-symmetrised.

Read phase / write phase
────────────────────────
Ants only call get_row() (a view). The Colony mutates the field only
after every ant of the iteration has finished. The field itself holds no
lock; the barrier in Colony.run() is what makes this safe.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from aco_tsp.errors import InvalidInputError

# ── Pheromone constants ────────────────────────────────────────────────────────

TAU_INITIAL: float = 1.0
"""Starting pheromone on every pair, diagonal included (never read).
All edges equal at iteration 0 → the first ants are guided by distance only.
"""

TAU_MIN: float = 1e-6
"""Floor applied after every evaporation.

Keeps every weight strictly positive so that no edge becomes permanently
invisible and τ^α never collapses to an exact zero for moderate α.
"""


class PheromoneField:
    """
    A symmetric n×n numpy array of pheromone intensities.

    Used by:
        Ant._select_next()  → reads get_row().
        Colony.run()        → evaporate(), deposit_tour(), reinforce_elite().
        Tests               → snapshot().
    """

    def __init__(self, n: int) -> None:
        """
        Args:
            n: Number of cities. Must be ≥ 1.

        Raises:
            InvalidInputError: if n < 1.
        """
        if n < 1:
            raise InvalidInputError(f"PheromoneField requires n ≥ 1, got n={n}")
        self._n = n
        self._matrix: NDArray[np.float64] = np.empty((n, n), dtype=np.float64)
        self.initialize()

    # ── Core operations ────────────────────────────────────────────────────────

    def initialize(self) -> None:
        """Reset every entry to TAU_INITIAL."""
        self._matrix.fill(TAU_INITIAL)

    def evaporate(self, rho: float) -> None:
        """
        Decay every entry by (1 − rho), then clamp to the TAU_MIN floor.

        Both steps are in-place. rho = 0 leaves the field unchanged (apart
        from the floor, which an untouched field is already above).

        Args:
            rho: Evaporation rate in [0, 1).
        """
        self._matrix *= (1.0 - rho)
        np.maximum(self._matrix, TAU_MIN, out=self._matrix)

    def deposit(self, a: int, b: int, amount: float) -> None:
        """Add `amount` to edge (a, b) in both directions."""
        self._matrix[a, b] += amount
        self._matrix[b, a] += amount

    def deposit_tour(self, route: Sequence[int], amount: float) -> None:
        """
        Deposit `amount` on every consecutive edge of a route and on the
        closing edge back to its first city.

        Edges are applied one at a time rather than with fancy-index
        `+=`: a route can repeat an edge (a 2-city tour uses (0, 1) and
        then closes with (1, 0)), and buffered fancy-index addition would
        count the repeat only once.
        """
        if len(route) < 2 or amount == 0.0:
            return
        for k in range(len(route) - 1):
            self.deposit(route[k], route[k + 1], amount)
        self.deposit(route[-1], route[0], amount)

    def reinforce_elite(
        self,
        route: Sequence[int],
        best_distance: float,
        iteration: int,
        n_iterations: int,
        q: float,
        base: float = 1.0,
    ) -> float:
        """
        Extra deposit on the edges of the global best tour.

        Formula:
            weight = base + iteration / n_iterations
            amount = weight × q / best_distance

        With base = 1.0 the weight starts at 1.0 on iteration 0 and
        approaches 2.0 on the last iteration: exploitation pressure grows
        as the run matures.

        Args:
            route:         Global best route (after this iteration's evaluation).
            best_distance: Its length. Non-positive → no deposit.
            iteration:     0-based iteration index.
            n_iterations:  Iteration budget.
            q:             Deposit scale Q.
            base:          Elite weight at iteration 0.

        Returns:
            The per-edge amount deposited (0.0 if skipped).
        """
        if best_distance <= 0.0:
            return 0.0
        weight = base + iteration / n_iterations
        amount = weight * q / best_distance
        self.deposit_tour(route, amount)
        return amount

    def get_row(self, i: int) -> NDArray[np.float64]:
        """
        Pheromone from city i to every city.

        This is a VIEW into the live field. Ants must not write to it;
        their weight computation allocates new arrays (tau ** alpha etc.).
        """
        return self._matrix[i]

    # ── Inspection & testing ───────────────────────────────────────────────────

    def snapshot(self) -> NDArray[np.float64]:
        """Deep copy of the current field."""
        return self._matrix.copy()

    @property
    def n(self) -> int:
        return self._n

    def __repr__(self) -> str:
        return (
            f"PheromoneField(n={self._n}, "
            f"min={self._matrix.min():.6f}, max={self._matrix.max():.4f}, "
            f"mean={self._matrix.mean():.4f})"
        )
