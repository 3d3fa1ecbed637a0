from __future__ import annotations

# CP-HEFT: HEFT ranking and insertion, but tasks on the critical path are
# pinned to the designated critical-path worker so the chain runs on one
# resource without transfer costs between its links.

import logging
from collections.abc import Collection, Sequence

from schedlab.critical_path import analyze_critical_path
from schedlab.errors import SchedulingDeadlockError
from schedlab.graph import TaskGraph
from schedlab.model import Worker, Workflow
from schedlab.timeline import WorkerTimelines
from schedlab.types import ScheduledTask
from schedlab.validate import validate_workers

logger = logging.getLogger(__name__)


def critical_path_worker(workers: Sequence[Worker]) -> Worker:
    for w in workers:
        if w.critical_path_worker:
            return w
    return workers[0]


def cp_heft_schedule(
    workflow: Workflow,
    workers: Sequence[Worker],
    *,
    include_transfer_times: bool = True,
    critical_ids: Collection[str] | None = None,
) -> list[ScheduledTask]:
    """Schedule with critical tasks restricted to the critical-path worker.

    ``critical_ids`` defaults to the ordered critical path of ``workflow``.
    Tasks are visited in rank order, repeatedly, and only placed once every
    predecessor is placed.
    """

    graph = TaskGraph(workflow)
    if not len(graph):
        return []
    validate_workers(workers)

    if critical_ids is None:
        critical_ids = analyze_critical_path(
            workflow, include_transfer_times=include_transfer_times
        ).ordered_critical_path
    critical = set(critical_ids)
    cp_worker = critical_path_worker(workers)

    order = graph.priority_order(include_transfer_times=include_transfer_times)
    timelines = WorkerTimelines(graph, workers)

    while len(timelines.placed) < len(graph):
        progress = False
        for tid in order:
            if timelines.is_scheduled(tid):
                continue
            if not all(timelines.is_scheduled(d) for d in graph.predecessors(tid)):
                continue

            candidates = (cp_worker,) if tid in critical else tuple(workers)
            worker_id, start, end = timelines.best_worker(
                tid, candidates, include_transfer_times=include_transfer_times
            )
            timelines.place(tid, worker_id, start, end)
            progress = True
            logger.debug(
                "cp_heft: %s%s on %s [%.2f - %.2f]",
                tid,
                " (CP)" if tid in critical else "",
                worker_id,
                start,
                end,
            )

        if not progress:
            unscheduled = tuple(
                tid for tid in order if not timelines.is_scheduled(tid)
            )
            raise SchedulingDeadlockError(
                "could not schedule all tasks; dependency cycle among: "
                + ", ".join(unscheduled),
                unscheduled=unscheduled,
            )

    return timelines.placed
