"""
tsp_app/cli.py
──────────────
`aco-tsp`: solve a TSP instance from the command line.

    aco-tsp --csv a280.csv --ants 75 --iterations 100 --seed 1
    aco-tsp --random 30 --seed 4 --delay-ms 200

The colony runs on a worker thread (ColonyRunner). This thread consumes
its snapshots, logs them, and optionally sleeps between them so progress
can be followed by eye. The sleep slows the report, not the search.

Exit codes: 0 success, 2 invalid input (message on stderr).
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from aco_tsp.errors import InvalidInputError
from tsp_app.control_plane.admission import optional_reference
from tsp_app.control_plane.observers import LoggingObserver
from tsp_app.control_plane.runner import ColonyRunner
from tsp_app.data.points import (
    DEFAULT_POINTS_FILE,
    load_points_csv,
    random_points,
    save_route,
)
from tsp_app.shared import models
from tsp_app.shared.models import IterationSnapshot, RunResult

logger = logging.getLogger("aco_tsp.cli")

ROUTE_PRINT_LIMIT: int = 60
"""Instances larger than this log iterations without the full route."""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="aco-tsp",
        description="Ant Colony Optimisation for the Euclidean TSP.",
    )
    src = p.add_argument_group("Instance")
    src.add_argument("--csv", type=str, default=None,
                     help=f"Points file with an x,y header (default: ./{DEFAULT_POINTS_FILE})")
    src.add_argument("--random", type=int, default=None, metavar="N",
                     help="Generate N uniform random points instead of reading a file")

    aco = p.add_argument_group("ACO parameters")
    aco.add_argument("--ants", type=int, default=models.DEFAULT_ANTS, help="Ants per iteration")
    aco.add_argument("--iterations", type=int, default=models.DEFAULT_ITERATIONS,
                     help="Iteration budget")
    aco.add_argument("--start", type=int, default=0, help="Start city (0-based)")
    aco.add_argument("--alpha", type=float, default=models.DEFAULT_ALPHA,
                     help="Pheromone influence α")
    aco.add_argument("--beta", type=float, default=models.DEFAULT_BETA,
                     help="Distance influence β")
    aco.add_argument("--rho", type=float, default=models.DEFAULT_EVAPORATION_RATE,
                     help="Evaporation rate in [0, 1)")
    aco.add_argument("--q", type=float, default=models.DEFAULT_DEPOSIT_SCALE,
                     help="Deposit scale Q")
    aco.add_argument("--elite-base", type=float, default=1.0,
                     help="Elite weight at iteration 0 (grows by +1 over the run)")
    aco.add_argument("--threshold", type=float, default=models.DEFAULT_IMPROVEMENT_THRESHOLD,
                     help="Relative improvement counted as progress")
    aco.add_argument("--patience", type=int, default=models.DEFAULT_NO_IMPROVEMENT_LIMIT,
                     help="Stagnant iterations before early stop")
    aco.add_argument("--reference", type=float, default=models.DEFAULT_REFERENCE_OPTIMUM,
                     help="Known optimum for the gap report (≤ 0 disables it)")
    aco.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs")
    aco.add_argument("--workers", type=int, default=1, help="Threads for ant construction")

    out = p.add_argument_group("Output")
    out.add_argument("--delay-ms", type=int, default=0,
                     help="Pause between reported iterations (display pacing only)")
    out.add_argument("--save-best", type=str, default=None,
                     help="Write the best route (1-based) to this file")
    out.add_argument("--log-level", default="INFO",
                     choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def _load_points(args: argparse.Namespace):
    if args.random is not None:
        return random_points(args.random, seed=args.seed)
    path = Path(args.csv or DEFAULT_POINTS_FILE)
    if not path.exists():
        raise InvalidInputError(f"Points file not found: {path}")
    return load_points_csv(path)


def _config_from_args(args: argparse.Namespace) -> dict:
    return {
        "n_ants": args.ants,
        "n_iterations": args.iterations,
        "start_index": args.start,
        "alpha": args.alpha,
        "beta": args.beta,
        "evaporation_rate": args.rho,
        "deposit_scale": args.q,
        "elite_weight_base": args.elite_base,
        "improvement_threshold": args.threshold,
        "no_improvement_limit": args.patience,
        "reference_optimum": optional_reference(args.reference),
        "seed": args.seed,
        "n_workers": args.workers,
    }


def _follow(runner: ColonyRunner, report: LoggingObserver, delay_s: float) -> None:
    """Report every event of the run until its RunResult arrives."""
    for event in runner.events():
        if isinstance(event, IterationSnapshot):
            report.on_iteration(event)
            if delay_s:
                time.sleep(delay_s)
        elif isinstance(event, RunResult):
            report.on_finished(event)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for `aco-tsp`."""
    parser = build_argparser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        points = _load_points(args)
        runner = ColonyRunner(points, _config_from_args(args))
    except InvalidInputError as err:
        print(f"aco-tsp: {err.reason}", file=sys.stderr)
        return 2

    report = LoggingObserver(
        total_iterations=args.iterations,
        show_route=len(points) <= ROUTE_PRINT_LIMIT,
        log=logger,
    )
    delay_s = max(args.delay_ms, 0) / 1000.0

    runner.start()
    try:
        _follow(runner, report, delay_s)
    except KeyboardInterrupt:
        logger.info("Interrupted; cancelling at the next iteration boundary.")
        runner.cancel()
        _follow(runner, report, 0.0)

    result = runner.join()

    print("Best route:", " -> ".join(str(c + 1) for c in result.best_route))
    print(f"Best distance: {result.best_distance:.4f}")
    if result.gap_percent is not None:
        print(f"Gap: {result.gap_percent:.2f}%")
    print(f"Iterations: {result.iterations_run} ({result.reason.value})")

    if args.save_best:
        save_route(args.save_best, result.best_route)
        print("Saved:", args.save_best)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
