"""
aco_tsp/distance.py
───────────────────
The distance model: pairwise Euclidean distances for a fixed point set.

Built once per Colony and shared read-only by every ant of every
iteration. Nothing in the engine ever writes to it, and the underlying
array is flagged non-writeable so an accidental write fails loudly
instead of corrupting every later tour.

Matrix layout
─────────────
  Shape : (n, n)
  d[i][j] = hypot(x_i − x_j, y_i − y_j)
  d[i][j] == d[j][i],  d[i][i] == 0

NumPy design choices
────────────────────
  • Broadcasting: xs[:, None] − xs[None, :] builds every dx in one op,
    no Python loop over n² pairs.
  • np.hypot instead of sqrt(dx² + dy²) avoids intermediate overflow for
    very large coordinates.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from aco_tsp.errors import InvalidInputError
from tsp_app.shared.models import Point

PointLike = Union[Point, Sequence[float]]

MIN_POINTS: int = 2
"""Smallest instance with a defined tour (there and back again)."""


def _as_xy(point: PointLike, index: int) -> tuple[float, float]:
    if isinstance(point, Point):
        return point.x, point.y
    try:
        x, y = point
        return float(x), float(y)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(
            f"Point #{index} is not a valid (x, y) pair: {point!r}"
        ) from exc


class DistanceModel:
    """
    Immutable n×n Euclidean distance matrix.

    Used by:
        Ant._select_next()   → reads get_row() for the heuristic η = 1/d.
        Colony.run()         → calls tour_length() to score each ant.
    """

    def __init__(self, points: Sequence[PointLike]) -> None:
        """
        Args:
            points: Ordered sequence of Point models or (x, y) pairs.
                    Index in this sequence = city index everywhere else.

        Raises:
            InvalidInputError: fewer than MIN_POINTS points, a point
                               that is not an (x, y) pair, or a non-finite
                               coordinate.
        """
        if len(points) < MIN_POINTS:
            raise InvalidInputError(
                f"At least {MIN_POINTS} points are required to form a tour, "
                f"got {len(points)}."
            )

        coords = np.array([_as_xy(p, i) for i, p in enumerate(points)], dtype=np.float64)
        if not np.all(np.isfinite(coords)):
            raise InvalidInputError("Point coordinates must be finite numbers.")
        xs = coords[:, 0]
        ys = coords[:, 1]

        matrix = np.hypot(xs[:, None] - xs[None, :], ys[:, None] - ys[None, :])
        np.fill_diagonal(matrix, 0.0)
        matrix.setflags(write=False)

        self._n = len(points)
        self._matrix: NDArray[np.float64] = matrix

    def get_row(self, i: int) -> NDArray[np.float64]:
        """Distances from city i to every city (read-only view)."""
        return self._matrix[i]

    def between(self, i: int, j: int) -> float:
        return float(self._matrix[i, j])

    def tour_length(self, route: Sequence[int]) -> float:
        """
        Round-trip length of a route: consecutive edges plus the closing edge.

        A route of one city has length 0.0 (its closing edge is d[i][i]).
        Partial routes are scored the same way, which keeps a truncated
        tour comparable even though it does not visit every city.
        """
        if len(route) == 0:
            return 0.0
        idx = np.asarray(route, dtype=np.intp)
        return float(self._matrix[idx, np.roll(idx, -1)].sum())

    @property
    def matrix(self) -> NDArray[np.float64]:
        """The full matrix. Non-writeable; copy it if you need to modify."""
        return self._matrix

    @property
    def n(self) -> int:
        """Number of cities."""
        return self._n

    def __repr__(self) -> str:
        return f"DistanceModel(n={self._n}, max={self._matrix.max():.4f})"
