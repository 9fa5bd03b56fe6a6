"""
aco_tsp - Ant Colony Optimisation core for the Euclidean TSP.

Public API:
    Colony            - run the colony over a point set, returns RunResult
    ColonyState       - IDLE / RUNNING / FINISHED
    InvalidInputError - raised before a run when points or config are unusable

Usage:
    from aco_tsp import Colony, InvalidInputError
    from tsp_app.shared.models import ColonyConfig

    colony = Colony(points, ColonyConfig(n_ants=20, seed=7))
    result = colony.run(observer=observer)
    result.best_route, result.best_distance, result.history
"""

from aco_tsp.colony import Colony, ColonyState, IterationObserver, RunState
from aco_tsp.errors import InvalidInputError

__all__ = [
    "Colony",
    "ColonyState",
    "IterationObserver",
    "RunState",
    "InvalidInputError",
]
