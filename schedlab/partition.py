from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from schedlab.coalition import build_subset_values
from schedlab.cp_heft import critical_path_worker
from schedlab.errors import SchedulingDeadlockError, SolverFailure
from schedlab.graph import TaskGraph
from schedlab.model import Worker, Workflow, make_workers
from schedlab.timeline import WorkerTimelines
from schedlab.types import ScheduledTask
from schedlab.validate import validate_workers

logger = logging.getLogger(__name__)


def workers_for_partition(partition: Sequence[Sequence[int]]) -> tuple[Worker, ...]:
    """One worker for the critical path plus one per coalition."""

    return make_workers(len(partition) + 1)


def assign_workers(
    workflow: Workflow,
    partition: Sequence[Sequence[int]],
    workers: Sequence[Worker],
    critical_ids: Collection[str],
) -> dict[str, str]:
    """task id -> worker id for the critical path and every coalition."""

    cp_worker = critical_path_worker(workers)
    others = [w for w in workers if w.id != cp_worker.id]
    if len(others) < len(partition):
        raise ValueError(
            f"{len(partition)} coalitions need {len(partition) + 1} workers "
            f"(got {len(workers)})"
        )

    critical = set(critical_ids)
    non_critical = [t.id for t in workflow.tasks if t.id not in critical]

    assignment = {tid: cp_worker.id for tid in workflow.task_ids if tid in critical}
    for coalition, worker in zip(partition, others):
        for agent in coalition:
            # agents are 1-indexed
            if not 1 <= agent <= len(non_critical):
                raise SolverFailure(
                    f"partition agent {agent} out of range 1..{len(non_critical)}"
                )
            assignment[non_critical[agent - 1]] = worker.id

    missing = [tid for tid in workflow.task_ids if tid not in assignment]
    if missing:
        raise SolverFailure(
            "partition leaves tasks without a worker: " + ", ".join(missing)
        )
    return assignment


def apply_partition_schedule(
    workflow: Workflow,
    partition: Sequence[Sequence[int]],
    workers: Sequence[Worker],
    *,
    include_transfer_times: bool = True,
    critical_ids: Collection[str] | None = None,
) -> list[ScheduledTask]:
    """List-schedule ``workflow`` with every task's worker fixed by ``partition``.

    ``critical_ids`` defaults to the critical path used by
    ``build_subset_values``, so agent numbers line up with the solver input.
    """

    graph = TaskGraph(workflow)
    if not len(graph):
        return []
    validate_workers(workers)
    graph.topological_order()

    if critical_ids is None:
        critical_ids = build_subset_values(workflow).critical_ids
    assignment = assign_workers(workflow, partition, workers, critical_ids)

    timelines = WorkerTimelines(graph, workers)
    pending = list(workflow.task_ids)
    while pending:
        ready = [
            tid
            for tid in pending
            if all(timelines.is_scheduled(d) for d in graph.predecessors(tid))
        ]
        if not ready:
            raise SchedulingDeadlockError(
                "cycle detected or missing dependencies among: " + ", ".join(pending),
                unscheduled=tuple(pending),
            )
        for tid in ready:
            worker_id = assignment[tid]
            start, end = timelines.earliest_finish(
                tid,
                worker_id,
                include_transfer_times=include_transfer_times,
                insertion=False,
            )
            timelines.place(tid, worker_id, start, end)
            logger.debug("odpip: %s on %s [%.2f - %.2f]", tid, worker_id, start, end)

        placed = set(ready)
        pending = [tid for tid in pending if tid not in placed]

    return timelines.placed
