from __future__ import annotations

# Coalition values for the ODP-IP partition solver.
#
# Agents are the tasks that are NOT on the ordered critical path, in workflow
# order. Bit i of a mask selects agent i + 1. All 2^n subsets are enumerated,
# so this only makes sense for small n.

import logging

import numpy as np

from schedlab.critical_path import analyze_critical_path
from schedlab.model import Task, Workflow
from schedlab.sampling import expected_workflow
from schedlab.types import SubsetValues

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGENTS = 20


def subset_execution_times(times: list[float]) -> np.ndarray:
    """Summed execution time for every mask, indexed by mask."""

    sums = np.zeros(1, dtype=float)
    for t in times:
        sums = np.concatenate([sums, sums + t])
    return sums


def build_subset_values(
    workflow: Workflow, *, max_agents: int = DEFAULT_MAX_AGENTS
) -> SubsetValues:
    """Value every subset of non-critical tasks against the critical path.

    A subset is worth its total expected execution time, rounded to 2
    decimals, as long as it fits on one worker without outlasting the
    critical path; otherwise (and for the empty subset) it is worth 0.
    """

    expected = expected_workflow(workflow)
    cpm = analyze_critical_path(expected, include_transfer_times=True)
    on_path = set(cpm.ordered_critical_path)
    agents = [t for t in expected.tasks if t.id not in on_path]

    if len(agents) > max_agents:
        raise ValueError(
            f"{len(agents)} non-critical tasks exceed the {max_agents}-agent limit "
            f"(2^{len(agents)} subsets)"
        )

    duration = cpm.critical_path_duration
    sums = subset_execution_times([t.execution_time for t in agents])
    values = np.where(sums > duration, 0.0, np.round(sums, 2))
    values[0] = 0.0

    logger.debug(
        "subset values: %d agents, critical path duration %.2f",
        len(agents),
        duration,
    )
    return SubsetValues(
        values=tuple(float(v) for v in values),
        critical_path_duration=duration,
        agents=tuple(t.id for t in agents),
        critical_ids=cpm.ordered_critical_path,
    )


def mask_to_subset(mask: int, agents: list[Task]) -> list[Task]:
    return [a for i, a in enumerate(agents) if mask & (1 << i)]


def subset_to_mask(subset_ids: list[str], agent_ids: tuple[str, ...]) -> int:
    mask = 0
    for tid in subset_ids:
        if tid in agent_ids:
            mask |= 1 << agent_ids.index(tid)
    return mask


def describe_subset_values(workflow: Workflow, subset_values: SubsetValues) -> str:
    expected = expected_workflow(workflow)
    agents = [expected.task(tid) for tid in subset_values.agents]
    n = len(agents)

    lines = [
        f"Critical Path Duration: {subset_values.critical_path_duration:.2f}",
        f"Non-critical tasks: {n}",
        f"Total subsets: {len(subset_values.values)}",
        "---",
    ]
    for mask, value in enumerate(subset_values.values):
        subset = mask_to_subset(mask, agents)
        names = "{" + ", ".join(t.name for t in subset) + "}"
        exec_time = sum(t.execution_time for t in subset)
        binary = format(mask, "b").zfill(n) if n else "0"
        lines.append(f"[{mask}] {binary} = {names}")
        lines.append(f"    Exec time: {exec_time:.2f}, Value: {value}")
    return "\n".join(lines)
