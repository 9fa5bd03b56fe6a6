"""
tests/test_colony.py
────────────────────
Integration tests for the Colony run loop.

Test groups:
    Group 1 - Setup validation and lifecycle
    Group 2 - Known instances (unit square, two points)
    Group 3 - Run invariants (monotone best, permutations, determinism)
    Group 4 - Pheromone update policy
    Group 5 - Early stopping boundary
    Group 6 - Observer, cancellation and anomalies
"""

from __future__ import annotations

import logging
import threading
from typing import List

import numpy as np
import pytest

from aco_tsp import Colony, ColonyState, InvalidInputError
from aco_tsp.ant import Ant
from aco_tsp.colony import RunState, gap_percent
from aco_tsp.pheromone import TAU_INITIAL
from tsp_app.shared.models import (
    ColonyConfig,
    IterationSnapshot,
    RunResult,
    TerminationReason,
)


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

UNIT_SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
TWO_POINTS = [(0.0, 0.0), (5.0, 0.0)]


def _cfg(**overrides) -> ColonyConfig:
    base = dict(n_ants=10, n_iterations=30, seed=1, reference_optimum=None)
    base.update(overrides)
    return ColonyConfig(**base)


@pytest.fixture
def random_instance() -> List[tuple]:
    rng = np.random.default_rng(2024)
    return [tuple(p) for p in rng.random((15, 2)) * 100.0]


class RecordingObserver:
    """Keeps every event the colony publishes."""

    def __init__(self) -> None:
        self.snapshots: List[IterationSnapshot] = []
        self.results: List[RunResult] = []

    def on_iteration(self, snapshot: IterationSnapshot) -> None:
        self.snapshots.append(snapshot)

    def on_finished(self, result: RunResult) -> None:
        self.results.append(result)


# ─────────────────────────────────────────────────────────────────────────────
# Group 1 - Setup validation and lifecycle
# ─────────────────────────────────────────────────────────────────────────────

class TestSetup:

    def test_single_point_rejected_before_run(self):
        with pytest.raises(InvalidInputError):
            Colony([(1.0, 1.0)], _cfg())

    def test_point_triple_rejected_before_run(self):
        with pytest.raises(InvalidInputError, match="not a valid"):
            Colony([(0.0, 0.0), (1.0, 2.0, 3.0), (4.0, 4.0)], _cfg())

    def test_start_index_out_of_range_rejected(self):
        with pytest.raises(InvalidInputError, match="start_index"):
            Colony(UNIT_SQUARE, _cfg(start_index=4))

    def test_default_config_used_when_omitted(self):
        colony = Colony(UNIT_SQUARE)
        assert colony.config == ColonyConfig()

    def test_state_moves_from_idle_to_finished(self):
        colony = Colony(UNIT_SQUARE, _cfg(n_iterations=2))
        assert colony.state == ColonyState.IDLE
        colony.run()
        assert colony.state == ColonyState.FINISHED

    def test_state_is_running_inside_observer(self):
        colony = Colony(UNIT_SQUARE, _cfg(n_iterations=1))
        seen = []

        class StateProbe(RecordingObserver):
            def on_iteration(self, snapshot):
                seen.append(colony.state)

        colony.run(observer=StateProbe())
        assert seen == [ColonyState.RUNNING]

    def test_repr_mentions_cities(self):
        assert "cities=4" in repr(Colony(UNIT_SQUARE, _cfg()))


# ─────────────────────────────────────────────────────────────────────────────
# Group 2 - Known instances
# ─────────────────────────────────────────────────────────────────────────────

class TestKnownInstances:

    @pytest.mark.parametrize("seed", range(5))
    def test_unit_square_converges_to_perimeter(self, seed):
        result = Colony(UNIT_SQUARE, _cfg(n_iterations=50, seed=seed)).run()
        assert result.best_distance == pytest.approx(4.0)
        assert result.best_route[0] == 0
        assert sorted(result.best_route) == [0, 1, 2, 3]

    def test_two_points_report_ten_from_first_iteration(self):
        obs = RecordingObserver()
        result = Colony(TWO_POINTS, _cfg(n_iterations=20)).run(observer=obs)
        assert obs.snapshots[0].best_distance == pytest.approx(10.0)
        assert all(d == pytest.approx(10.0) for d in result.history)
        assert result.best_route == (0, 1)

    def test_two_points_start_from_second_city(self):
        result = Colony(TWO_POINTS, _cfg(start_index=1, n_iterations=3)).run()
        assert result.best_route == (1, 0)
        assert result.best_distance == pytest.approx(10.0)


# ─────────────────────────────────────────────────────────────────────────────
# Group 3 - Run invariants
# ─────────────────────────────────────────────────────────────────────────────

class TestRunInvariants:

    def test_best_distance_never_increases(self, random_instance):
        result = Colony(random_instance, _cfg(n_iterations=40)).run()
        history = np.array(result.history)
        assert np.all(np.diff(history) <= 0.0)

    def test_best_route_is_permutation_with_matching_length(self, random_instance):
        colony = Colony(random_instance, _cfg(n_iterations=10))
        result = colony.run()
        assert sorted(result.best_route) == list(range(len(random_instance)))
        assert colony.distances.tour_length(result.best_route) == pytest.approx(
            result.best_distance
        )

    def test_every_snapshot_route_is_permutation(self, random_instance):
        obs = RecordingObserver()
        Colony(random_instance, _cfg(n_iterations=8)).run(observer=obs)
        for snap in obs.snapshots:
            assert sorted(snap.best_route) == list(range(len(random_instance)))

    def test_same_seed_same_history(self, random_instance):
        a = Colony(random_instance, _cfg(seed=7)).run()
        b = Colony(random_instance, _cfg(seed=7)).run()
        assert a.history == b.history
        assert a.best_route == b.best_route

    def test_rerun_same_colony_is_reproducible(self, random_instance):
        colony = Colony(random_instance, _cfg(seed=3, n_iterations=10))
        assert colony.run().history == colony.run().history

    def test_worker_count_does_not_change_results(self, random_instance):
        serial = Colony(random_instance, _cfg(seed=11, n_workers=1)).run()
        threaded = Colony(random_instance, _cfg(seed=11, n_workers=4)).run()
        assert serial.history == threaded.history
        assert serial.best_route == threaded.best_route

    def test_history_length_matches_iterations_run(self, random_instance):
        result = Colony(random_instance, _cfg(n_iterations=12)).run()
        assert len(result.history) == result.iterations_run

    def test_run_state_ties_keep_incumbent(self):
        run = RunState()
        assert run.offer([0, 1, 2], 10.0) is True
        assert run.offer([0, 2, 1], 10.0) is False
        assert run.best_route == [0, 1, 2]
        assert run.offer([0, 2, 1], 9.0) is True
        assert run.best_route == [0, 2, 1]


# ─────────────────────────────────────────────────────────────────────────────
# Group 4 - Pheromone update policy
# ─────────────────────────────────────────────────────────────────────────────

class TestPheromonePolicy:

    def test_no_evaporation_no_deposit_keeps_field_flat(self, random_instance):
        colony = Colony(
            random_instance,
            _cfg(evaporation_rate=0.0, deposit_scale=0.0, n_iterations=6),
        )
        fields = []

        class FieldProbe(RecordingObserver):
            def on_iteration(self, snapshot):
                fields.append(colony.pheromone.snapshot())

        colony.run(observer=FieldProbe())
        assert len(fields) == 6
        for snap in fields:
            assert np.allclose(snap, TAU_INITIAL)

    def test_pheromone_symmetric_after_run(self, random_instance):
        colony = Colony(random_instance, _cfg(n_iterations=5))
        colony.run()
        snap = colony.pheromone.snapshot()
        assert np.allclose(snap, snap.T)

    def test_best_edges_carry_most_pheromone(self):
        colony = Colony(UNIT_SQUARE, _cfg(n_iterations=20, seed=0))
        result = colony.run()
        snap = colony.pheromone.snapshot()
        route = result.best_route
        on_tour = [snap[route[k], route[(k + 1) % 4]] for k in range(4)]
        diagonals = [snap[0, 2], snap[1, 3]]
        assert min(on_tour) > max(diagonals)

    def test_single_iteration_update_matches_formula(self):
        cfg = _cfg(n_ants=1, n_iterations=1, evaporation_rate=0.5, deposit_scale=10.0)
        colony = Colony(TWO_POINTS, cfg)
        colony.run()
        # 1.0 × 0.5, then ant deposit 2 × 10/10 (edge + closing edge),
        # then elite 2 × (1 + 0/1) × 10/10.
        assert colony.pheromone.snapshot()[0, 1] == pytest.approx(0.5 + 2.0 + 2.0)


# ─────────────────────────────────────────────────────────────────────────────
# Group 5 - Early stopping
# ─────────────────────────────────────────────────────────────────────────────

class TestEarlyStopping:

    def test_stops_after_limit_stagnant_iterations(self):
        result = Colony(TWO_POINTS, _cfg(n_iterations=100, no_improvement_limit=3)).run()
        # Iteration 1 is the baseline, iterations 2..4 are stagnant.
        assert result.reason == TerminationReason.EARLY_STOPPED
        assert result.early_stopped
        assert result.iterations_run == 4
        assert result.stagnation_streak == 3

    def test_stop_on_last_budgeted_iteration_is_early_stop(self):
        result = Colony(TWO_POINTS, _cfg(n_iterations=4, no_improvement_limit=3)).run()
        assert result.reason == TerminationReason.EARLY_STOPPED
        assert result.iterations_run == 4

    def test_budget_ends_before_limit_reached(self):
        result = Colony(TWO_POINTS, _cfg(n_iterations=3, no_improvement_limit=3)).run()
        assert result.reason == TerminationReason.BUDGET_EXHAUSTED
        assert not result.early_stopped
        assert result.iterations_run == 3
        assert result.stagnation_streak == 2

    def test_zero_threshold_never_stops_early(self):
        result = Colony(
            TWO_POINTS,
            _cfg(n_iterations=25, improvement_threshold=0.0, no_improvement_limit=2),
        ).run()
        assert result.reason == TerminationReason.BUDGET_EXHAUSTED
        assert result.iterations_run == 25

    def test_result_reports_threshold(self):
        result = Colony(TWO_POINTS, _cfg(improvement_threshold=0.005,
                                          no_improvement_limit=2)).run()
        assert result.improvement_threshold == 0.005


# ─────────────────────────────────────────────────────────────────────────────
# Group 6 - Observer, cancellation and anomalies
# ─────────────────────────────────────────────────────────────────────────────

class TestObserverAndCancellation:

    def test_snapshots_numbered_from_one_with_growing_history(self, random_instance):
        obs = RecordingObserver()
        Colony(random_instance, _cfg(n_iterations=5, improvement_threshold=0.0)).run(observer=obs)
        assert [s.iteration for s in obs.snapshots] == [1, 2, 3, 4, 5]
        for snap in obs.snapshots:
            assert len(snap.history) == snap.iteration
            assert snap.history[-1] == snap.best_distance

    def test_snapshots_are_not_affected_by_later_iterations(self, random_instance):
        obs = RecordingObserver()
        Colony(random_instance, _cfg(n_iterations=6, improvement_threshold=0.0)).run(observer=obs)
        first = obs.snapshots[0]
        assert isinstance(first.history, tuple)
        assert isinstance(first.best_route, tuple)
        assert len(first.history) == 1

    def test_on_finished_called_once_with_returned_result(self):
        obs = RecordingObserver()
        result = Colony(UNIT_SQUARE, _cfg(n_iterations=3)).run(observer=obs)
        assert obs.results == [result]

    def test_gap_is_reported_against_reference(self):
        obs = RecordingObserver()
        result = Colony(TWO_POINTS, _cfg(n_iterations=2, reference_optimum=8.0)).run(observer=obs)
        assert obs.snapshots[0].gap_percent == pytest.approx(25.0)
        assert result.gap_percent == pytest.approx(25.0)

    def test_gap_can_be_negative(self):
        assert gap_percent(9.0, 10.0) == pytest.approx(-10.0)

    def test_gap_absent_without_reference(self):
        result = Colony(TWO_POINTS, _cfg(n_iterations=2)).run()
        assert result.gap_percent is None

    def test_cancel_before_start_runs_nothing(self):
        event = threading.Event()
        event.set()
        result = Colony(UNIT_SQUARE, _cfg()).run(cancel_event=event)
        assert result.reason == TerminationReason.CANCELLED
        assert result.iterations_run == 0
        assert result.best_route == ()

    def test_cancel_is_honoured_at_next_iteration_boundary(self, random_instance):
        event = threading.Event()

        class Canceller(RecordingObserver):
            def on_iteration(self, snapshot):
                super().on_iteration(snapshot)
                if snapshot.iteration == 2:
                    event.set()

        obs = Canceller()
        result = Colony(
            random_instance, _cfg(n_iterations=50, improvement_threshold=0.0),
        ).run(observer=obs, cancel_event=event)
        assert result.reason == TerminationReason.CANCELLED
        assert result.iterations_run == 2
        assert len(obs.snapshots) == 2

    def test_partial_tours_are_scored_and_reported(self, monkeypatch, caplog):
        monkeypatch.setattr(Ant, "_select_next", lambda self: None)
        caplog.set_level(logging.WARNING, logger="aco_tsp.colony")

        result = Colony(UNIT_SQUARE, _cfg(n_ants=3, n_iterations=2)).run()

        assert result.partial_tours == 6
        assert result.best_route == (0,)
        assert result.best_distance == 0.0
        assert any("partial tour" in rec.getMessage() for rec in caplog.records)

    def test_overflowing_weight_sum_still_yields_full_tours(self):
        # Each weight is finite, the sum over twelve candidates is not.
        points = [(0.0, 0.0)] * 13
        result = Colony(points, _cfg(n_ants=3, n_iterations=3, beta=51.2)).run()

        assert result.partial_tours == 0
        assert sorted(result.best_route) == list(range(13))
        assert result.best_distance == 0.0

    def test_nan_weights_are_counted_and_logged(self, caplog):
        # Pheromone reaches the floor by iteration 7; τ^60 then underflows
        # while η^60 over coincident points overflows, so weights are NaN.
        caplog.set_level(logging.WARNING, logger="aco_tsp.colony")
        points = [(0.0, 0.0)] * 4
        result = Colony(
            points,
            _cfg(n_ants=2, n_iterations=10, alpha=60.0, beta=60.0,
                 evaporation_rate=0.9, no_improvement_limit=100),
        ).run()

        assert result.partial_tours == 0
        assert result.weight_anomalies > 0
        assert sorted(result.best_route) == [0, 1, 2, 3]
        assert any("NaN" in rec.getMessage() for rec in caplog.records)
