from __future__ import annotations

import bisect
from collections.abc import Sequence
from dataclasses import dataclass

from schedlab.graph import TaskGraph
from schedlab.model import Worker
from schedlab.types import ScheduledTask


@dataclass(frozen=True, order=True)
class Slot:
    start_time: float
    end_time: float
    task_id: str


def find_earliest_slot(
    slots: Sequence[Slot], ready_time: float, duration: float
) -> float:
    """Earliest start >= ready_time that fits ``duration`` on a busy timeline.

    ``slots`` must be sorted by start time. Idle gaps between existing slots
    are used when the task fits, otherwise the task goes after the last slot.
    """

    candidate = ready_time
    for slot in slots:
        if candidate + duration <= slot.start_time:
            return candidate
        candidate = max(candidate, slot.end_time)
    return candidate


class WorkerTimelines:
    """Mutable per-call placement state: slots per worker, task -> worker."""

    def __init__(self, graph: TaskGraph, workers: Sequence[Worker]) -> None:
        self.graph = graph
        self.workers = tuple(workers)
        self.slots: dict[str, list[Slot]] = {w.id: [] for w in workers}
        self.worker_of: dict[str, str] = {}
        self.finish: dict[str, float] = {}
        self.placed: list[ScheduledTask] = []

    def is_scheduled(self, task_id: str) -> bool:
        return task_id in self.finish

    def available_at(self, worker_id: str) -> float:
        slots = self.slots[worker_id]
        return max((s.end_time for s in slots), default=0.0)

    def data_ready_time(
        self, task_id: str, worker_id: str, *, include_transfer_times: bool
    ) -> float:
        ready = 0.0
        for dep in self.graph.predecessors(task_id):
            t = self.finish[dep]
            if include_transfer_times and self.worker_of[dep] != worker_id:
                t += self.graph.transfer_time(dep, task_id)
            ready = max(ready, t)
        return ready

    def earliest_finish(
        self,
        task_id: str,
        worker_id: str,
        *,
        include_transfer_times: bool,
        insertion: bool = True,
    ) -> tuple[float, float]:
        """(start, finish) for ``task_id`` on ``worker_id``."""

        duration = self.graph.duration(task_id)
        ready = self.data_ready_time(
            task_id, worker_id, include_transfer_times=include_transfer_times
        )
        if insertion:
            start = find_earliest_slot(self.slots[worker_id], ready, duration)
        else:
            start = max(ready, self.available_at(worker_id))
        return start, start + duration

    def best_worker(
        self,
        task_id: str,
        candidates: Sequence[Worker],
        *,
        include_transfer_times: bool,
        insertion: bool = True,
    ) -> tuple[str, float, float]:
        """Candidate with the smallest finish time; the first one wins ties."""

        if not candidates:
            raise ValueError(f"no candidate workers for task {task_id}")

        def option(worker: Worker) -> tuple[str, float, float]:
            start, end = self.earliest_finish(
                task_id,
                worker.id,
                include_transfer_times=include_transfer_times,
                insertion=insertion,
            )
            return worker.id, start, end

        best = option(candidates[0])
        for worker in candidates[1:]:
            candidate = option(worker)
            if candidate[2] < best[2]:
                best = candidate
        return best

    def place(
        self, task_id: str, worker_id: str, start: float, end: float
    ) -> ScheduledTask:
        bisect.insort(self.slots[worker_id], Slot(start, end, task_id))
        self.worker_of[task_id] = worker_id
        self.finish[task_id] = end
        st = ScheduledTask(
            task_id=task_id, start_time=start, end_time=end, worker_id=worker_id
        )
        self.placed.append(st)
        return st
