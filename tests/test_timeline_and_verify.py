from __future__ import annotations

import logging
import math

import pytest

from schedlab.errors import VerificationViolation
from schedlab.graph import TaskGraph
from schedlab.model import Workflow, make_workers
from schedlab.timeline import Slot, WorkerTimelines, find_earliest_slot
from schedlab.types import ScheduledTask
from schedlab.verify import verify_schedule


def test_find_earliest_slot_fills_gaps() -> None:
    slots = [Slot(0.0, 2.0, "a"), Slot(5.0, 8.0, "b")]

    assert find_earliest_slot(slots, 0.0, 3.0) == 2.0
    # does not fit between 2 and 5
    assert find_earliest_slot(slots, 3.0, 3.0) == 8.0
    assert find_earliest_slot(slots, 9.0, 1.0) == 9.0
    assert find_earliest_slot([], 4.0, 1.0) == 4.0


def test_insertion_versus_tail_placement(fanout: Workflow) -> None:
    graph = TaskGraph(fanout)
    timelines = WorkerTimelines(graph, make_workers(1))
    timelines.place("s", "worker-1", 0.0, 1.0)
    # leave a gap of 4 between s and z
    timelines.place("z", "worker-1", 5.0, 10.0)

    assert timelines.earliest_finish(
        "x", "worker-1", include_transfer_times=True
    ) == (1.0, 5.0)
    assert timelines.earliest_finish(
        "x", "worker-1", include_transfer_times=True, insertion=False
    ) == (10.0, 14.0)
    assert timelines.available_at("worker-1") == 10.0


def test_best_worker_prefers_the_first_on_ties_and_needs_candidates(
    fanout: Workflow,
) -> None:
    workers = make_workers(2)
    timelines = WorkerTimelines(TaskGraph(fanout), workers)
    timelines.place("s", "worker-1", 0.0, 1.0)

    assert timelines.best_worker("x", workers, include_transfer_times=True) == (
        "worker-1",
        1.0,
        5.0,
    )
    assert timelines.best_worker(
        "x", workers[::-1], include_transfer_times=True
    ) == ("worker-2", 1.0, 5.0)
    with pytest.raises(ValueError, match="no candidate workers for task x"):
        timelines.best_worker("x", (), include_transfer_times=True)


def test_data_ready_time_counts_transfers_only_across_workers(
    pipeline: Workflow,
) -> None:
    timelines = WorkerTimelines(TaskGraph(pipeline), make_workers(2))
    timelines.place("start", "worker-1", 0.0, 1.0)

    ready = timelines.data_ready_time
    assert ready("validate", "worker-1", include_transfer_times=True) == 1.0
    assert ready("validate", "worker-2", include_transfer_times=True) == 2.0
    assert ready("validate", "worker-2", include_transfer_times=False) == 1.0


def _valid(pipeline: Workflow) -> list[ScheduledTask]:
    rows = [
        ("start", 0, 1, "w1"),
        ("validate", 1, 4, "w1"),
        ("process_a", 4, 14, "w1"),
        ("process_b", 5, 13, "w2"),
        ("merge", 14, 17, "w1"),
        ("complete", 17, 18, "w1"),
    ]
    return [ScheduledTask(t, float(s), float(e), w) for t, s, e, w in rows]


def test_valid_schedule_has_no_violations(pipeline: Workflow) -> None:
    report = verify_schedule(pipeline, _valid(pipeline))
    assert report.ok
    report.raise_for_violations()


def test_cross_worker_transfer_is_enforced(
    pipeline: Workflow, caplog: pytest.LogCaptureFixture
) -> None:
    scheduled = _valid(pipeline)
    # process_b starts before validate's output reaches worker 2
    scheduled[3] = ScheduledTask("process_b", 4.5, 12.5, "w2")

    with caplog.at_level(logging.ERROR, logger="schedlab.verify"):
        report = verify_schedule(pipeline, scheduled)

    assert report.violation_count == 1
    (v,) = report.violations
    assert (v.task_id, v.dependency_id) == ("process_b", "validate")
    assert v.required_start == 5.0
    assert v.actual_start == 4.5
    assert "process_b starts at 4.50" in caplog.text

    with pytest.raises(VerificationViolation, match="1 dependency violation"):
        report.raise_for_violations()

    # without transfer times the same start is fine
    assert verify_schedule(pipeline, scheduled, include_transfer_times=False).ok


def test_same_worker_only_needs_the_predecessor_to_finish(
    pipeline: Workflow,
) -> None:
    scheduled = _valid(pipeline)
    scheduled[1] = ScheduledTask("validate", 0.5, 3.5, "w1")

    report = verify_schedule(pipeline, scheduled)
    assert [v.task_id for v in report.violations] == ["validate"]
    assert report.violations[0].required_start == 1.0


def test_missing_dependency_is_a_violation(pipeline: Workflow) -> None:
    scheduled = [st for st in _valid(pipeline) if st.task_id != "merge"]

    report = verify_schedule(pipeline, scheduled)
    (v,) = report.violations
    assert (v.task_id, v.dependency_id) == ("complete", "merge")
    assert math.isnan(v.required_start)
    assert "never scheduled" in v.reason
