from __future__ import annotations

from collections.abc import Sequence

from schedlab.errors import MalformedGraphError
from schedlab.model import Worker, Workflow


def validate_workflow(workflow: Workflow) -> None:
    seen: set[str] = set()
    for task in workflow.tasks:
        if task.id in seen:
            raise MalformedGraphError(
                f"duplicate task id '{task.id}'", task_ids=(task.id,)
            )
        seen.add(task.id)

    for task in workflow.tasks:
        if task.execution_time < 0:
            raise MalformedGraphError(
                (
                    f"task '{task.id}' execution_time must be >= 0 "
                    f"(got {task.execution_time})"
                ),
                task_ids=(task.id,),
            )
        if task.duration_dist is not None and (
            task.duration_dist.shape <= 0 or task.duration_dist.scale <= 0
        ):
            raise MalformedGraphError(
                f"task '{task.id}' gamma shape and scale must be > 0",
                task_ids=(task.id,),
            )

        for edge in task.connections:
            pair = (edge.source, edge.target)
            if edge.source != task.id:
                raise MalformedGraphError(
                    (
                        f"edge '{edge.source}' -> '{edge.target}' is owned by task "
                        f"'{task.id}' but names a different source"
                    ),
                    task_ids=(task.id,),
                    edges=(pair,),
                )
            if edge.target not in seen:
                raise MalformedGraphError(
                    (
                        f"edge '{edge.source}' -> '{edge.target}' references unknown "
                        f"task '{edge.target}'"
                    ),
                    task_ids=(edge.target,),
                    edges=(pair,),
                )
            if edge.target == edge.source:
                raise MalformedGraphError(
                    f"task '{task.id}' has a self-loop edge",
                    task_ids=(task.id,),
                    edges=(pair,),
                )
            if edge.transfer_time < 0:
                raise MalformedGraphError(
                    (
                        f"edge '{edge.source}' -> '{edge.target}' transfer_time must "
                        f"be >= 0 (got {edge.transfer_time})"
                    ),
                    edges=(pair,),
                )


def validate_workers(workers: Sequence[Worker]) -> None:
    if not workers:
        raise ValueError("at least one worker is required to schedule tasks")
    ids = [w.id for w in workers]
    if len(set(ids)) != len(ids):
        raise ValueError(f"worker ids must be unique (got {ids})")
