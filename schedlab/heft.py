from __future__ import annotations

# HEFT: upward-rank priority list, earliest-finish-time processor selection,
# insertion into idle gaps of each worker's timeline.

import logging
from collections.abc import Sequence

from schedlab.graph import TaskGraph
from schedlab.model import Worker, Workflow
from schedlab.timeline import WorkerTimelines
from schedlab.types import ScheduledTask
from schedlab.validate import validate_workers

logger = logging.getLogger(__name__)


def heft_schedule(
    workflow: Workflow,
    workers: Sequence[Worker],
    *,
    include_transfer_times: bool = True,
) -> list[ScheduledTask]:
    graph = TaskGraph(workflow)
    if not len(graph):
        return []
    validate_workers(workers)

    ranks = graph.upward_ranks(include_transfer_times=include_transfer_times)
    timelines = WorkerTimelines(graph, workers)

    for tid in graph.priority_order(include_transfer_times=include_transfer_times):
        worker_id, start, end = timelines.best_worker(
            tid, workers, include_transfer_times=include_transfer_times
        )
        timelines.place(tid, worker_id, start, end)
        logger.debug(
            "heft: %s (rank=%.2f) on %s [%.2f - %.2f]",
            tid,
            ranks[tid],
            worker_id,
            start,
            end,
        )

    logger.debug(
        "heft: makespan %.2f, transfer times %s",
        max(t.end_time for t in timelines.placed),
        "enabled" if include_transfer_times else "disabled",
    )
    return timelines.placed
