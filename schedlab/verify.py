from __future__ import annotations

import logging
from collections.abc import Iterable

from schedlab.critical_path import EPSILON
from schedlab.graph import TaskGraph
from schedlab.model import Workflow
from schedlab.types import ScheduledTask, VerificationReport, Violation

logger = logging.getLogger(__name__)


def verify_schedule(
    workflow: Workflow,
    scheduled: Iterable[ScheduledTask],
    *,
    include_transfer_times: bool = True,
) -> VerificationReport:
    """Check every dependency edge against the placed start/end times.

    Violations are logged and returned; the schedule itself is left alone.
    """

    graph = TaskGraph(workflow)
    by_id = {st.task_id: st for st in scheduled}
    violations: list[Violation] = []

    for st in by_id.values():
        if st.task_id not in graph.tasks:
            continue
        for dep in graph.predecessors(st.task_id):
            dep_st = by_id.get(dep)
            if dep_st is None:
                violations.append(
                    Violation(
                        task_id=st.task_id,
                        dependency_id=dep,
                        required_start=float("nan"),
                        actual_start=st.start_time,
                        reason=f"dependency {dep} of {st.task_id} was never scheduled",
                    )
                )
                continue

            required = dep_st.end_time
            if include_transfer_times and dep_st.worker_id != st.worker_id:
                required += graph.transfer_time(dep, st.task_id)

            if st.start_time < required - EPSILON:
                violations.append(
                    Violation(
                        task_id=st.task_id,
                        dependency_id=dep,
                        required_start=required,
                        actual_start=st.start_time,
                        reason=(
                            f"{st.task_id} starts at {st.start_time:.2f} but "
                            f"{dep} requires {required:.2f} or later"
                        ),
                    )
                )

    for v in violations:
        logger.error("schedule violation: %s", v.reason)
    if not violations:
        logger.debug("schedule valid: all dependencies respected")

    return VerificationReport(violations=tuple(violations))
