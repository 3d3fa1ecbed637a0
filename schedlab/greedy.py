from __future__ import annotations

import logging
from collections.abc import Sequence

from schedlab.errors import SchedulingDeadlockError
from schedlab.graph import TaskGraph
from schedlab.model import Worker, Workflow
from schedlab.timeline import WorkerTimelines
from schedlab.types import ScheduledTask
from schedlab.validate import validate_workers

logger = logging.getLogger(__name__)


def greedy_schedule(
    workflow: Workflow,
    workers: Sequence[Worker],
    *,
    include_transfer_times: bool = True,
) -> list[ScheduledTask]:
    """First-come list scheduling.

    Each pass takes every task whose predecessors are all placed, shortest
    first, and appends it to whichever worker finishes it earliest.
    """

    graph = TaskGraph(workflow)
    if not len(graph):
        return []
    validate_workers(workers)
    graph.topological_order()

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
                f"no task became ready; {len(pending)} unscheduled: {', '.join(pending)}",
                unscheduled=tuple(pending),
            )

        ready.sort(key=lambda tid: (graph.duration(tid), graph.index[tid]))
        for tid in ready:
            worker_id, start, end = timelines.best_worker(
                tid,
                workers,
                include_transfer_times=include_transfer_times,
                insertion=False,
            )
            timelines.place(tid, worker_id, start, end)
            logger.debug("greedy: %s on %s [%.2f - %.2f]", tid, worker_id, start, end)

        placed = set(ready)
        pending = [tid for tid in pending if tid not in placed]

    return timelines.placed
