"""
tsp_app/data/points.py
──────────────────────
Point sources: a delimited text file, or a random instance.

File format
────────────
    x,y            ← header line, always skipped
    288,149
    288,129
    ...

  • Blank lines are ignored.
  • Lines with fewer than two fields are ignored.
  • Extra columns after the first two are ignored.
  • A coordinate that is not a number is an error: it reports the line
    number instead of silently dropping the point, because a dropped
    point changes the instance.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from aco_tsp.errors import InvalidInputError
from tsp_app.shared.models import Point

logger = logging.getLogger(__name__)

DEFAULT_POINTS_FILE: str = "points.csv"
"""Looked up in the working directory when the CLI gets neither --csv nor --random."""


def load_points_csv(path: Union[str, Path], delimiter: str = ",") -> List[Point]:
    """
    Read points from a header-first delimited file.

    Raises:
        InvalidInputError: on a non-numeric or non-finite coordinate, or if
                           the file cannot be opened or decoded.
    """
    points: List[Point] = []
    skipped = 0
    try:
        with open(path, encoding="utf-8", newline="") as f:
            reader = csv.reader(f, delimiter=delimiter)
            header_seen = False
            for row in reader:
                if not row or all(not cell.strip() for cell in row):
                    continue
                if not header_seen:
                    header_seen = True
                    continue
                if len(row) < 2:
                    skipped += 1
                    continue
                try:
                    x = float(row[0].strip())
                    y = float(row[1].strip())
                    points.append(Point(x=x, y=y))
                except ValueError as exc:
                    raise InvalidInputError(
                        f"{path}: line {reader.line_num}: cannot read coordinates "
                        f"from {row[:2]!r}"
                    ) from exc
    except UnicodeDecodeError as exc:
        raise InvalidInputError(f"{path}: not a UTF-8 text file ({exc.reason}).") from exc
    except OSError as exc:
        raise InvalidInputError(f"Cannot read points file {path}: {exc.strerror or exc}") from exc

    if skipped:
        logger.warning("%s: skipped %d line(s) with fewer than two fields.", path, skipped)
    logger.info("Loaded %d points from %s", len(points), path)
    return points


def random_points(n: int, seed: Optional[int] = None, scale: float = 100.0) -> List[Point]:
    """n points uniformly distributed in [0, scale) × [0, scale)."""
    if n < 0:
        raise InvalidInputError(f"Cannot generate a negative number of points ({n}).")
    rng = np.random.default_rng(seed)
    coords = rng.random((n, 2)) * scale
    return [Point(x=float(x), y=float(y)) for x, y in coords]


def save_route(path: Union[str, Path], route) -> None:
    """Write a route as space-separated 1-based city numbers."""
    Path(path).write_text(" ".join(str(c + 1) for c in route) + "\n", encoding="utf-8")
