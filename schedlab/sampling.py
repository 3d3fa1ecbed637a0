"""Gamma-distributed execution and transfer times (NumPy-backed).

Tasks and edges without a distribution keep their fixed times.
"""

from __future__ import annotations

from dataclasses import replace

import numpy as np
from numpy.random import Generator

from schedlab.model import GammaParams, Workflow

DEFAULT_EXECUTION_DIST = GammaParams(shape=9.0, scale=0.67)
DEFAULT_TRANSFER_DIST = GammaParams(shape=4.0, scale=0.75)


def _splitmix64(x: int) -> int:
    x = (x + 0x9E3779B97F4A7C15) & 0xFFFFFFFFFFFFFFFF
    z = x
    z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & 0xFFFFFFFFFFFFFFFF
    z = (z ^ (z >> 27)) * 0x94D049BB133111EB & 0xFFFFFFFFFFFFFFFF
    return z ^ (z >> 31)


def rng_for_run(base_seed: int, run_id: int) -> Generator:
    seed = _splitmix64(
        (base_seed & 0xFFFFFFFFFFFFFFFF) ^ (run_id & 0xFFFFFFFFFFFFFFFF)
    )
    return np.random.default_rng(seed)


def gamma_sampler(params: GammaParams, rng: Generator) -> float:
    """One draw, rounded to 2 decimals like the stored simulation times."""

    return round(float(rng.gamma(shape=params.shape, scale=params.scale)), 2)


def sample_workflow(
    workflow: Workflow, rng: Generator, *, use_transfer_times: bool = True
) -> Workflow:
    tasks = []
    for t in workflow.tasks:
        exec_time = (
            gamma_sampler(t.duration_dist, rng)
            if t.duration_dist is not None
            else t.execution_time
        )
        conns = []
        for e in t.connections:
            if not use_transfer_times:
                transfer = 0.0
            elif e.transfer_dist is not None:
                transfer = gamma_sampler(e.transfer_dist, rng)
            else:
                transfer = e.transfer_time
            conns.append(replace(e, transfer_time=transfer))
        tasks.append(replace(t, execution_time=exec_time, connections=tuple(conns)))
    return replace(workflow, tasks=tuple(tasks))


def expected_workflow(workflow: Workflow) -> Workflow:
    """Copy with every distributed time replaced by its distribution mean."""

    return workflow.with_times(
        execution_times={
            t.id: t.duration_dist.mean
            for t in workflow.tasks
            if t.duration_dist is not None
        },
        transfer_times={
            (e.source, e.target): e.transfer_dist.mean
            for e in workflow.edges()
            if e.transfer_dist is not None
        },
    )


def with_default_distributions(
    workflow: Workflow,
    *,
    execution: GammaParams = DEFAULT_EXECUTION_DIST,
    transfer: GammaParams = DEFAULT_TRANSFER_DIST,
) -> Workflow:
    """Attach the default Gamma parameters wherever a distribution is missing."""

    tasks = tuple(
        replace(
            t,
            duration_dist=t.duration_dist or execution,
            connections=tuple(
                replace(e, transfer_dist=e.transfer_dist or transfer)
                for e in t.connections
            ),
        )
        for t in workflow.tasks
    )
    return replace(workflow, tasks=tasks)
