from __future__ import annotations

# Critical Path Method over a workflow DAG, optionally counting transfer times
# on every edge (the single-task-per-worker view used for analysis).

import logging
from collections.abc import Callable, Sequence

from schedlab.graph import TaskGraph
from schedlab.model import Workflow
from schedlab.types import CriticalPathResult, TaskTiming

logger = logging.getLogger(__name__)

EPSILON = 1e-3


def analyze_critical_path(
    workflow: Workflow,
    *,
    include_transfer_times: bool = True,
    deadline: float | None = None,
) -> CriticalPathResult:
    """Forward/backward CPM passes plus one ordered critical path.

    Sink tasks start the backward pass at their own earliest finish, every
    other task at the project horizon. With ``deadline`` set, the deadline is
    the bound for every task, and tasks left with negative slack are reported
    in ``infeasible_ids``.
    """

    graph = TaskGraph(workflow)
    order = graph.topological_order()
    if not order:
        return CriticalPathResult(
            timings={},
            critical_ids=(),
            ordered_critical_path=(),
            minimum_project_duration=0.0,
            critical_path_duration=0.0,
            include_transfer_times=include_transfer_times,
        )

    def tt(u: str, v: str) -> float:
        return graph.transfer_time(u, v) if include_transfer_times else 0.0

    es: dict[str, float] = {}
    ef: dict[str, float] = {}
    for v in order:
        start = 0.0
        for u in graph.predecessors(v):
            start = max(start, ef[u] + tt(u, v))
        es[v] = start
        ef[v] = start + graph.duration(v)

    horizon = max(ef.values())
    bound = float(deadline) if deadline is not None else horizon

    lf: dict[str, float] = {}
    ls: dict[str, float] = {}
    for v in reversed(order):
        succs = graph.successors(v)
        if not succs:
            finish = ef[v] if deadline is None else bound
        else:
            finish = bound
            for s in succs:
                finish = min(finish, ls[s] - tt(v, s))
        lf[v] = finish
        ls[v] = finish - graph.duration(v)

    timings: dict[str, TaskTiming] = {}
    for v in workflow.task_ids:
        slack = ls[v] - es[v]
        timings[v] = TaskTiming(
            task_id=v,
            earliest_start=es[v],
            earliest_finish=ef[v],
            latest_start=ls[v],
            latest_finish=lf[v],
            slack=slack,
            is_critical=abs(slack) < EPSILON,
        )

    infeasible = tuple(v for v in order if timings[v].slack < -EPSILON)
    if infeasible:
        logger.warning(
            "deadline %.3f is shorter than the critical path (%.3f); "
            "tasks with negative slack: %s",
            bound,
            horizon,
            ", ".join(infeasible),
        )

    critical = {v for v, t in timings.items() if t.is_critical}
    path = _ordered_path(graph, order, critical, es, ef, tt)

    result = CriticalPathResult(
        timings=timings,
        critical_ids=tuple(v for v in order if v in critical),
        ordered_critical_path=tuple(path),
        minimum_project_duration=horizon,
        critical_path_duration=ef[path[-1]] if path else 0.0,
        include_transfer_times=include_transfer_times,
        infeasible_ids=infeasible,
    )
    logger.debug(
        "critical path %s (%.3f of %.3f)",
        ">".join(result.ordered_critical_path),
        result.critical_path_duration,
        horizon,
    )
    return result


def _ordered_path(
    graph: TaskGraph,
    order: list[str],
    critical: set[str],
    es: dict[str, float],
    ef: dict[str, float],
    tt: Callable[[str, str], float],
) -> list[str]:
    if not critical:
        return []

    def matches(u: str, s: str) -> bool:
        return s in critical and abs(ef[u] + tt(u, s) - es[s]) < EPSILON

    # Latest earliest-finish reachable by following matching edges; used to
    # prefer the branch that actually ends at the project finish.
    reach: dict[str, float] = {}
    for v in reversed(order):
        if v in critical:
            reach[v] = max(
                (reach[s] for s in graph.successors(v) if matches(v, s)),
                default=ef[v],
            )

    in_order = [v for v in graph.workflow.task_ids if v in critical]
    starts = [
        v for v in in_order if not any(p in critical for p in graph.predecessors(v))
    ]
    if starts:
        current = max(starts, key=lambda v: reach[v])
    else:
        current = min(in_order, key=lambda v: es[v])

    path = [current]
    while True:
        nexts = [s for s in graph.successors(current) if matches(current, s)]
        if not nexts:
            return path
        current = max(nexts, key=lambda s: reach[s])
        path.append(current)


def minimum_duration(workflow: Workflow) -> float:
    """Theoretical lower bound: CPM duration with transfer times excluded."""

    return analyze_critical_path(
        workflow, include_transfer_times=False
    ).minimum_project_duration


def one_worker_time(workflow: Workflow) -> float:
    return sum(t.execution_time for t in workflow.tasks)


def zero_critical_transfer_times(
    workflow: Workflow, result: CriticalPathResult
) -> Workflow:
    """Copy of ``workflow`` with transfer time 0 on ordered-critical-path edges.

    Critical tasks are assumed to run back to back on one worker, so the
    edges linking consecutive critical tasks carry no communication cost.
    """

    return zero_path_transfer_times(workflow, result.ordered_critical_path)


def zero_path_transfer_times(workflow: Workflow, path: Sequence[str]) -> Workflow:
    """Copy of ``workflow`` with transfer time 0 between consecutive ``path`` tasks."""

    zeroed: dict[tuple[str, str], float] = {}
    for u, v in zip(path, path[1:]):
        if workflow.task(u).edge_to(v) is not None:
            zeroed[(u, v)] = 0.0
    return workflow.with_times(transfer_times=zeroed)
