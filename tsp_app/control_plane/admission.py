"""
tsp_app/control_plane/admission.py
──────────────────────────────────
Admission control: validate a run before any iteration starts.

Two layers of checking
───────────────────────
  1. Schema - Pydantic. Every ColonyConfig field carries its own
     constraint (n_ants > 0, 0 ≤ evaporation_rate < 1, ...). Points must
     have finite coordinates.
  2. Cross-field - here. Things a single model cannot know:
     the point set has at least 2 points, start_index < n_points.

Both layers report through InvalidInputError, so callers catch a single
exception type and can show `err.reason` directly to a user. A rejected
run never constructs a Colony.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from aco_tsp.distance import MIN_POINTS, PointLike
from aco_tsp.errors import InvalidInputError
from tsp_app.shared.models import ColonyConfig, Point

ConfigLike = Union[ColonyConfig, Mapping[str, Any], None]


def _describe(err: ValidationError) -> str:
    parts = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item["loc"]) or "value"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


def _to_point(raw: PointLike, index: int) -> Point:
    if isinstance(raw, Point):
        return raw
    try:
        x, y = raw
        return Point(x=x, y=y)
    except (TypeError, ValueError) as exc:
        # pydantic.ValidationError is a ValueError subclass.
        detail = _describe(exc) if isinstance(exc, ValidationError) else str(exc)
        raise InvalidInputError(f"Point #{index} is not a valid (x, y) pair: {detail}") from exc


def build_config(config: ConfigLike = None, **overrides: Any) -> ColonyConfig:
    """
    Turn a ColonyConfig, a mapping, or nothing into a validated ColonyConfig.

    Keyword overrides win over values in `config`.

    Raises:
        InvalidInputError: if any field violates its constraint.
    """
    if isinstance(config, ColonyConfig):
        data = config.model_dump()
    else:
        data = dict(config or {})
    data.update(overrides)
    try:
        return ColonyConfig(**data)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid configuration: {_describe(exc)}") from exc


def admit_run(
    points: Sequence[PointLike],
    config: ConfigLike = None,
) -> Tuple[List[Point], ColonyConfig]:
    """
    Run all admission checks for one ACO run.

    Args:
        points: Point models or (x, y) pairs.
        config: ColonyConfig, a mapping of its fields, or None for defaults.

    Returns:
        (validated points, validated config), ready for Colony(...).

    Raises:
        InvalidInputError: with a descriptive reason.
    """
    admitted = [_to_point(p, i) for i, p in enumerate(points)]
    _check_point_count(admitted)

    cfg = build_config(config)
    _check_start_index(cfg, len(admitted))
    return admitted, cfg


# ── Individual checks ─────────────────────────────────────────────────────────

def _check_point_count(points: Sequence[Point]) -> None:
    if len(points) < MIN_POINTS:
        raise InvalidInputError(
            f"At least {MIN_POINTS} points are required, got {len(points)}."
        )


def _check_start_index(config: ColonyConfig, n_points: int) -> None:
    if config.start_index >= n_points:
        raise InvalidInputError(
            f"start_index={config.start_index} is out of range: the point set "
            f"has {n_points} points (valid indices 0..{n_points - 1})."
        )


def optional_reference(value: Optional[float]) -> Optional[float]:
    """CLI helper: a non-positive reference means 'no reference'."""
    if value is None or value <= 0.0:
        return None
    return value
