from __future__ import annotations

# Public scheduling entrypoint.
#
# Algorithms are selected by name through the Scheduler abstraction. The
# ODP-IP strategy needs an external coalition solver, which is only consulted
# when that strategy is planned.

from collections import defaultdict
from collections.abc import Collection, Sequence
from dataclasses import dataclass, replace
from typing import Protocol

from schedlab.model import Worker, Workflow
from schedlab.solver import CoalitionSolver
from schedlab.types import Schedule, ScheduledTask
from schedlab.verify import verify_schedule

ALGORITHMS = ("greedy", "heft", "cp_heft", "odpip")


class Scheduler(Protocol):
    """``critical_ids`` names the tasks to pin to the critical-path worker.

    Greedy and HEFT ignore it. CP-HEFT works it out itself when it is None.
    ODP-IP always pins the ids its partition was solved for.
    """

    def schedule(
        self,
        *,
        workflow: Workflow,
        workers: Sequence[Worker],
        include_transfer_times: bool,
        critical_ids: Collection[str] | None = None,
    ) -> list[ScheduledTask]:
        raise NotImplementedError


@dataclass(frozen=True)
class GreedyScheduler:
    def schedule(
        self,
        *,
        workflow: Workflow,
        workers: Sequence[Worker],
        include_transfer_times: bool,
        critical_ids: Collection[str] | None = None,
    ) -> list[ScheduledTask]:
        from schedlab.greedy import greedy_schedule

        return greedy_schedule(
            workflow, workers, include_transfer_times=include_transfer_times
        )


@dataclass(frozen=True)
class HeftScheduler:
    def schedule(
        self,
        *,
        workflow: Workflow,
        workers: Sequence[Worker],
        include_transfer_times: bool,
        critical_ids: Collection[str] | None = None,
    ) -> list[ScheduledTask]:
        from schedlab.heft import heft_schedule

        return heft_schedule(
            workflow, workers, include_transfer_times=include_transfer_times
        )


@dataclass(frozen=True)
class CpHeftScheduler:
    def schedule(
        self,
        *,
        workflow: Workflow,
        workers: Sequence[Worker],
        include_transfer_times: bool,
        critical_ids: Collection[str] | None = None,
    ) -> list[ScheduledTask]:
        from schedlab.cp_heft import cp_heft_schedule

        return cp_heft_schedule(
            workflow,
            workers,
            include_transfer_times=include_transfer_times,
            critical_ids=critical_ids,
        )


@dataclass(frozen=True)
class OdpipScheduler:
    """Coalition-partition scheduling.

    The partition is solved from the expected-value workflow on first use
    (``planned``) and then reused, so repeated runs over resampled times keep
    the same worker assignment.
    """

    solver: CoalitionSolver | None = None
    partition: tuple[tuple[int, ...], ...] | None = None
    critical_ids: tuple[str, ...] | None = None

    def planned(self, workflow: Workflow) -> "OdpipScheduler":
        if self.partition is not None:
            return self
        if self.solver is None:
            raise ValueError("odpip scheduling needs a coalition solver")

        from schedlab.coalition import build_subset_values
        from schedlab.solver import solve_partition

        subset_values = build_subset_values(workflow)
        partition = solve_partition(self.solver, subset_values)
        return replace(
            self,
            partition=tuple(tuple(c) for c in partition),
            critical_ids=subset_values.critical_ids,
        )

    def _require_partition(self) -> tuple[tuple[int, ...], ...]:
        if self.partition is None:
            raise ValueError("partition has not been planned yet")
        return self.partition

    def workers(self) -> tuple[Worker, ...]:
        from schedlab.partition import workers_for_partition

        return workers_for_partition(self._require_partition())

    def schedule(
        self,
        *,
        workflow: Workflow,
        workers: Sequence[Worker],
        include_transfer_times: bool,
        critical_ids: Collection[str] | None = None,
    ) -> list[ScheduledTask]:
        from schedlab.partition import apply_partition_schedule

        plan = self.planned(workflow)
        # agent numbers only line up with the critical ids they were solved for
        return apply_partition_schedule(
            workflow,
            plan._require_partition(),
            workers,
            include_transfer_times=include_transfer_times,
            critical_ids=plan.critical_ids,
        )


def scheduler_for_algorithm(
    name: str, *, solver: CoalitionSolver | None = None
) -> Scheduler:
    if name == "greedy":
        return GreedyScheduler()
    if name == "heft":
        return HeftScheduler()
    if name == "cp_heft":
        return CpHeftScheduler()
    if name == "odpip":
        return OdpipScheduler(solver=solver)
    raise ValueError(f"Unsupported algorithm: {name!r} (expected one of {ALGORITHMS})")


def final_worker_states(
    workers: Sequence[Worker], scheduled: Sequence[ScheduledTask]
) -> tuple[Worker, ...]:
    """Workers with ``time`` set to the summed duration of their tasks."""

    busy: dict[str, float] = defaultdict(float)
    for st in scheduled:
        busy[st.worker_id] += st.duration
    return tuple(replace(w, time=busy.get(w.id, 0.0)) for w in workers)


def run_schedule(
    workflow: Workflow,
    workers: Sequence[Worker] | None,
    algorithm: str,
    *,
    include_transfer_times: bool = True,
    solver: CoalitionSolver | None = None,
) -> Schedule:
    """Schedule ``workflow`` with the named algorithm and verify the result.

    ``workers`` may be None for ``odpip`` only; the pool is then sized from
    the solved partition.
    """

    scheduler = scheduler_for_algorithm(algorithm, solver=solver)
    if isinstance(scheduler, OdpipScheduler):
        scheduler = scheduler.planned(workflow)
        if workers is None:
            workers = scheduler.workers()
    if workers is None:
        raise ValueError(f"{algorithm} scheduling needs a worker pool")

    tasks = scheduler.schedule(
        workflow=workflow,
        workers=workers,
        include_transfer_times=include_transfer_times,
    )
    report = verify_schedule(
        workflow, tasks, include_transfer_times=include_transfer_times
    )
    return Schedule(
        algorithm=algorithm,
        tasks=tuple(tasks),
        workers=final_worker_states(workers, tasks),
        violation_count=report.violation_count,
    )
