from __future__ import annotations


class MalformedGraphError(ValueError):
    """The task graph cannot be analysed: unknown task, bad edge, or a cycle."""

    def __init__(
        self,
        message: str,
        *,
        task_ids: tuple[str, ...] = (),
        edges: tuple[tuple[str, str], ...] = (),
    ) -> None:
        super().__init__(message)
        self.task_ids = task_ids
        self.edges = edges


class SchedulingDeadlockError(RuntimeError):
    """No task became ready in a full pass while tasks remained unscheduled."""

    def __init__(self, message: str, *, unscheduled: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.unscheduled = unscheduled


class SolverFailure(RuntimeError):
    pass


class VerificationViolation(AssertionError):
    pass
