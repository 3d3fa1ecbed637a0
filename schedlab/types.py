from __future__ import annotations

import math
from dataclasses import dataclass

from schedlab.errors import VerificationViolation
from schedlab.model import Worker


@dataclass(frozen=True)
class TaskTiming:
    task_id: str
    earliest_start: float
    earliest_finish: float
    latest_start: float
    latest_finish: float
    slack: float
    is_critical: bool


@dataclass(frozen=True)
class CriticalPathResult:
    timings: dict[str, TaskTiming]
    # every zero-slack task, in topological order
    critical_ids: tuple[str, ...]
    # one connected source-to-sink chain through zero-slack tasks
    ordered_critical_path: tuple[str, ...]
    minimum_project_duration: float
    critical_path_duration: float
    include_transfer_times: bool
    infeasible_ids: tuple[str, ...] = ()

    def is_critical(self, task_id: str) -> bool:
        return self.timings[task_id].is_critical

    def on_ordered_path(self, task_id: str) -> bool:
        return task_id in self.ordered_critical_path


@dataclass(frozen=True)
class ScheduledTask:
    task_id: str
    start_time: float
    end_time: float
    worker_id: str

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class Schedule:
    algorithm: str
    tasks: tuple[ScheduledTask, ...]
    workers: tuple[Worker, ...]
    violation_count: int = 0

    @property
    def makespan(self) -> float:
        return max((t.end_time for t in self.tasks), default=0.0)

    def for_task(self, task_id: str) -> ScheduledTask:
        for t in self.tasks:
            if t.task_id == task_id:
                return t
        raise KeyError(task_id)

    def worker_of(self, task_id: str) -> str:
        return self.for_task(task_id).worker_id

    @property
    def total_cost(self) -> float:
        return sum(
            w.time / 3600.0 * w.cost_per_hour
            for w in self.workers
            if w.cost_per_hour is not None
        )


@dataclass(frozen=True)
class Violation:
    task_id: str
    dependency_id: str
    required_start: float
    actual_start: float | None
    reason: str


@dataclass(frozen=True)
class VerificationReport:
    violations: tuple[Violation, ...]

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    @property
    def ok(self) -> bool:
        return not self.violations

    def raise_for_violations(self) -> None:
        if self.violations:
            first = self.violations[0]
            raise VerificationViolation(
                f"{self.violation_count} dependency violation(s); first: {first.reason}"
            )


@dataclass(frozen=True)
class SubsetValues:
    values: tuple[float, ...]
    critical_path_duration: float
    # non-critical task ids; agent k (1-indexed) is agents[k - 1]
    agents: tuple[str, ...]
    critical_ids: tuple[str, ...]

    @property
    def num_agents(self) -> int:
        return int(math.log2(len(self.values)))


@dataclass(frozen=True)
class SimulationRecord:
    simulation_number: int
    algorithm: str
    actual_runtime: float
    theoretical_runtime: float
    efficiency_ratio: float | None
    critical_path_tasks: str
    worker_count: int
    failed: bool
    failure_reason: str | None
    node_execution_times: dict[str, float]
    edge_transfer_times: dict[str, float]
    original_edge_transfer_times: dict[str, float]
    workers_final_state: tuple[Worker, ...] = ()
    violation_count: int = 0
