from __future__ import annotations

import json
import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from schedlab.errors import SolverFailure
from schedlab.types import SubsetValues

logger = logging.getLogger(__name__)

MAX_SOLVER_AGENTS = 25


class CoalitionSolver(Protocol):
    def solve(self, num_agents: int, values: Sequence[float]) -> list[list[int]]:
        """Optimal partition of agents 1..num_agents into coalitions."""
        raise NotImplementedError


@dataclass(frozen=True)
class SubprocessCoalitionSolver:
    """Runs an ODP-IP solver process speaking JSON over stdin/stdout.

    Input: ``{"numOfAgents": n, "coalitionValues": [...]}``.
    Output: ``{"value": v, "timeMs": t, "partition": [[1, 3], [2]]}``.
    """

    command: tuple[str, ...]
    cwd: Path | None = None
    timeout_s: float | None = None

    def solve(self, num_agents: int, values: Sequence[float]) -> list[list[int]]:
        payload = json.dumps(
            {"numOfAgents": num_agents, "coalitionValues": list(values)}
        )
        try:
            proc = subprocess.run(
                list(self.command),
                input=payload,
                capture_output=True,
                text=True,
                cwd=self.cwd,
                timeout=self.timeout_s,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise SolverFailure(f"failed to run solver {self.command!r}: {exc}") from exc

        if proc.returncode != 0:
            logger.error("solver exited with %d: %s", proc.returncode, proc.stderr)
            raise SolverFailure(
                f"solver exited with status {proc.returncode}: {proc.stderr.strip()}"
            )

        try:
            result = json.loads(proc.stdout.strip())
        except json.JSONDecodeError as exc:
            raise SolverFailure(
                f"failed to parse solver output: {proc.stdout!r}"
            ) from exc
        if not isinstance(result, dict) or "partition" not in result:
            raise SolverFailure(f"solver output has no partition: {result!r}")

        logger.debug(
            "solver: value=%s in %s ms", result.get("value"), result.get("timeMs")
        )
        return result["partition"]


def validate_partition(partition: object, num_agents: int) -> list[list[int]]:
    """Check that ``partition`` covers agents 1..num_agents exactly once."""

    if not isinstance(partition, list) or not all(
        isinstance(c, list) for c in partition
    ):
        raise SolverFailure(f"partition must be a list of lists (got {partition!r})")

    seen: list[int] = []
    for coalition in partition:
        for agent in coalition:
            if isinstance(agent, bool) or not isinstance(agent, int):
                raise SolverFailure(f"partition agent {agent!r} is not an integer")
            seen.append(agent)

    if sorted(seen) != list(range(1, num_agents + 1)):
        raise SolverFailure(
            f"partition {partition!r} does not cover agents 1..{num_agents} exactly once"
        )
    return [list(c) for c in partition if c]


def solve_partition(
    solver: CoalitionSolver, subset_values: SubsetValues
) -> list[list[int]]:
    size = len(subset_values.values)
    if size < 1 or size & (size - 1):
        raise ValueError(f"coalition values must have length 2^n (got {size})")
    num_agents = subset_values.num_agents
    if num_agents > MAX_SOLVER_AGENTS:
        raise ValueError(f"num_agents cannot exceed {MAX_SOLVER_AGENTS}")
    if num_agents == 0:
        return []

    try:
        partition = solver.solve(num_agents, subset_values.values)
    except SolverFailure:
        raise
    except Exception as exc:
        raise SolverFailure(f"coalition solver failed: {exc}") from exc

    return validate_partition(partition, num_agents)
