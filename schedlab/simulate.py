from __future__ import annotations

# Repeated scheduling runs over resampled execution and transfer times.

import logging
from collections.abc import Sequence

from numpy.random import Generator

from schedlab.critical_path import (
    analyze_critical_path,
    minimum_duration,
    zero_path_transfer_times,
)
from schedlab.errors import SchedulingDeadlockError
from schedlab.model import Worker, Workflow
from schedlab.sampling import rng_for_run, sample_workflow
from schedlab.scheduling import (
    OdpipScheduler,
    Scheduler,
    final_worker_states,
    scheduler_for_algorithm,
)
from schedlab.solver import CoalitionSolver
from schedlab.types import SimulationRecord
from schedlab.validate import validate_workers, validate_workflow
from schedlab.verify import verify_schedule

logger = logging.getLogger(__name__)

# critical tasks share one worker, so the edges between them carry no transfer
ZERO_CRITICAL_TRANSFERS = frozenset({"cp_heft", "odpip"})


def _edge_times(workflow: Workflow) -> dict[str, float]:
    return {f"{e.source}->{e.target}": e.transfer_time for e in workflow.edges()}


def simulate_many(
    *,
    workflow: Workflow,
    workers: Sequence[Worker] | None,
    runs: int,
    seed: int,
    algorithm: str,
    use_transfer_times: bool = True,
    solver: CoalitionSolver | None = None,
    first_simulation_number: int = 1,
) -> list[SimulationRecord]:
    validate_workflow(workflow)
    scheduler = scheduler_for_algorithm(algorithm, solver=solver)
    if isinstance(scheduler, OdpipScheduler):
        scheduler = scheduler.planned(workflow)
        if workers is None:
            workers = scheduler.workers()
    if workers is None:
        raise ValueError(f"{algorithm} simulation needs a worker pool")
    validate_workers(workers)

    records: list[SimulationRecord] = []
    for run_id in range(runs):
        records.append(
            simulate_one(
                workflow=workflow,
                workers=workers,
                simulation_number=first_simulation_number + run_id,
                rng=rng_for_run(seed, run_id),
                algorithm=algorithm,
                scheduler=scheduler,
                use_transfer_times=use_transfer_times,
            )
        )
    return records


def simulate_one(
    *,
    workflow: Workflow,
    workers: Sequence[Worker],
    simulation_number: int,
    rng: Generator,
    algorithm: str,
    scheduler: Scheduler,
    use_transfer_times: bool,
) -> SimulationRecord:
    """Sample one workflow, schedule it and verify against the sampled times.

    For cp_heft and odpip the tasks pinned to the critical-path worker are
    fixed before any transfer time is zeroed, and only the edges between
    consecutive pinned tasks are zeroed. cp_heft pins the sampled critical
    path; odpip pins the path its partition was solved for.
    """

    sampled = sample_workflow(workflow, rng, use_transfer_times=use_transfer_times)
    cpm = analyze_critical_path(sampled, include_transfer_times=use_transfer_times)

    pinned: tuple[str, ...] | None = None
    if isinstance(scheduler, OdpipScheduler):
        scheduler = scheduler.planned(workflow)
        pinned = scheduler.critical_ids
    elif algorithm in ZERO_CRITICAL_TRANSFERS:
        pinned = cpm.ordered_critical_path

    effective = sampled
    if pinned and use_transfer_times:
        effective = zero_path_transfer_times(sampled, pinned)

    theoretical = minimum_duration(sampled)
    base = dict(
        simulation_number=simulation_number,
        algorithm=algorithm,
        theoretical_runtime=theoretical,
        critical_path_tasks=">".join(cpm.ordered_critical_path),
        worker_count=len(workers),
        node_execution_times={t.id: t.execution_time for t in sampled.tasks},
        edge_transfer_times=_edge_times(effective),
        original_edge_transfer_times=_edge_times(sampled),
    )

    try:
        scheduled = scheduler.schedule(
            workflow=effective,
            workers=workers,
            include_transfer_times=use_transfer_times,
            critical_ids=pinned,
        )
    except SchedulingDeadlockError as exc:
        logger.warning("simulation %d failed: %s", simulation_number, exc)
        return SimulationRecord(
            actual_runtime=float("nan"),
            efficiency_ratio=None,
            failed=True,
            failure_reason=str(exc),
            **base,
        )

    # zeroed edges are only free when both ends share a worker
    report = verify_schedule(
        sampled, scheduled, include_transfer_times=use_transfer_times
    )
    actual = max((st.end_time for st in scheduled), default=0.0)
    return SimulationRecord(
        actual_runtime=actual,
        efficiency_ratio=theoretical / actual if actual > 0 else None,
        failed=False,
        failure_reason=None,
        workers_final_state=final_worker_states(workers, scheduled),
        violation_count=report.violation_count,
        **base,
    )
