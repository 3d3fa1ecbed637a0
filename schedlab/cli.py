from __future__ import annotations

import argparse
import json
import logging
import shlex
from pathlib import Path

from schedlab.coalition import DEFAULT_MAX_AGENTS, build_subset_values, describe_subset_values
from schedlab.critical_path import analyze_critical_path
from schedlab.errors import MalformedGraphError, SchedulingDeadlockError, SolverFailure
from schedlab.io import (
    analysis_to_json,
    load_workers,
    load_workflow,
    write_analysis_json,
    write_schedule_csv,
    write_schedule_json,
    write_simulations_csv,
    write_subset_values,
    write_summary_json,
)
from schedlab.metrics import aggregate_simulations
from schedlab.model import Worker, Workflow, make_workers
from schedlab.sampling import with_default_distributions
from schedlab.scheduling import ALGORITHMS, run_schedule
from schedlab.simulate import simulate_many
from schedlab.solver import SubprocessCoalitionSolver
from schedlab.validate import validate_workflow

logger = logging.getLogger(__name__)


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--workflow", required=True, type=Path)
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )


def _add_scheduling(p: argparse.ArgumentParser) -> None:
    p.add_argument("--algorithm", required=True, choices=ALGORITHMS)
    pool = p.add_mutually_exclusive_group()
    pool.add_argument("--workers", type=int, help="Number of identical workers")
    pool.add_argument("--workers-file", type=Path, help="JSON list of workers")
    p.add_argument("--no-transfer-times", action="store_true")
    p.add_argument(
        "--solver-cmd",
        required=False,
        help="ODP-IP solver command reading JSON on stdin (odpip only)",
    )
    p.add_argument("--solver-timeout", type=float, default=None)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="schedlab", description="Workflow DAG scheduler")
    sub = p.add_subparsers(dest="cmd", required=True)

    analyze = sub.add_parser("analyze", help="Critical path analysis")
    _add_common(analyze)
    analyze.add_argument("--no-transfer-times", action="store_true")
    analyze.add_argument("--deadline", type=float, default=None)
    analyze.add_argument("--out", type=Path, default=None)

    schedule = sub.add_parser("schedule", help="Schedule a workflow once")
    _add_common(schedule)
    _add_scheduling(schedule)
    schedule.add_argument("--out-schedule", required=True, type=Path)
    schedule.add_argument("--format", choices=["csv", "json"], default="json")

    sim = sub.add_parser("simulate", help="Repeated runs over sampled times")
    _add_common(sim)
    _add_scheduling(sim)
    sim.add_argument("--runs", required=True, type=int)
    sim.add_argument("--seed", required=True, type=int)
    sim.add_argument("--out-summary", required=True, type=Path)
    sim.add_argument("--out-runs", required=True, type=Path)
    sim.add_argument(
        "--default-dists",
        action="store_true",
        help="Attach default Gamma distributions where a task or edge has none",
    )

    values = sub.add_parser("subset-values", help="Coalition values for ODP-IP")
    _add_common(values)
    values.add_argument("--out", required=True, type=Path)
    values.add_argument("--max-agents", type=int, default=DEFAULT_MAX_AGENTS)
    values.add_argument("--describe", action="store_true")
    return p


def _workers(args: argparse.Namespace) -> tuple[Worker, ...] | None:
    if args.workers_file is not None:
        return load_workers(args.workers_file)
    if args.workers is not None:
        return make_workers(args.workers)
    if args.algorithm == "odpip":
        return None
    raise ValueError("--workers or --workers-file is required")


def _solver(args: argparse.Namespace) -> SubprocessCoalitionSolver | None:
    if not args.solver_cmd:
        return None
    return SubprocessCoalitionSolver(
        command=tuple(shlex.split(args.solver_cmd)), timeout_s=args.solver_timeout
    )


def _run(args: argparse.Namespace, workflow: Workflow) -> int:
    if args.cmd == "analyze":
        result = analyze_critical_path(
            workflow,
            include_transfer_times=not args.no_transfer_times,
            deadline=args.deadline,
        )
        if args.out:
            write_analysis_json(args.out, result)
        else:
            print(json.dumps(analysis_to_json(result), indent=2, sort_keys=True))
        return 0

    if args.cmd == "schedule":
        schedule = run_schedule(
            workflow,
            _workers(args),
            args.algorithm,
            include_transfer_times=not args.no_transfer_times,
            solver=_solver(args),
        )
        if args.format == "csv":
            write_schedule_csv(args.out_schedule, schedule)
        else:
            write_schedule_json(args.out_schedule, schedule)
        return 0 if schedule.violation_count == 0 else 1

    if args.cmd == "simulate":
        if args.default_dists:
            workflow = with_default_distributions(workflow)
        records = simulate_many(
            workflow=workflow,
            workers=_workers(args),
            runs=args.runs,
            seed=args.seed,
            algorithm=args.algorithm,
            use_transfer_times=not args.no_transfer_times,
            solver=_solver(args),
        )
        write_summary_json(args.out_summary, aggregate_simulations(records))
        write_simulations_csv(args.out_runs, records)
        return 0

    if args.cmd == "subset-values":
        subset_values = build_subset_values(workflow, max_agents=args.max_agents)
        write_subset_values(args.out, subset_values)
        if args.describe:
            print(describe_subset_values(workflow, subset_values))
        return 0

    raise AssertionError(f"Unhandled command: {args.cmd}")


def main(argv: list[str] | None = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s: %(message)s")

    try:
        workflow = load_workflow(args.workflow)
        validate_workflow(workflow)
        return _run(args, workflow)
    except (MalformedGraphError, SchedulingDeadlockError, SolverFailure) as exc:
        logger.error("%s", exc)
        return 2
