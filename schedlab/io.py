from __future__ import annotations

import csv
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from schedlab.model import Worker, Workflow
from schedlab.types import CriticalPathResult, Schedule, SimulationRecord, SubsetValues


def load_workflow(path: Path) -> Workflow:
    raw = json.loads(path.read_text(encoding="utf-8"))
    return Workflow.from_json(raw)


def load_workers(path: Path) -> tuple[Worker, ...]:
    """Worker pool from a JSON list, or an object with a ``workers`` list."""

    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("workers")
    if not isinstance(raw, list):
        raise TypeError("workers file must hold a list of worker objects")
    return tuple(Worker.from_json(w) for w in raw)


def write_summary_json(path: Path, summary: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, indent=2, sort_keys=True), encoding="utf-8")


def analysis_to_json(result: CriticalPathResult) -> dict[str, Any]:
    return {
        "include_transfer_times": result.include_transfer_times,
        "minimum_project_duration": result.minimum_project_duration,
        "critical_path_duration": result.critical_path_duration,
        "critical_ids": list(result.critical_ids),
        "ordered_critical_path": list(result.ordered_critical_path),
        "infeasible_ids": list(result.infeasible_ids),
        "tasks": {
            tid: {
                "earliest_start": t.earliest_start,
                "earliest_finish": t.earliest_finish,
                "latest_start": t.latest_start,
                "latest_finish": t.latest_finish,
                "slack": t.slack,
                "is_critical": t.is_critical,
            }
            for tid, t in result.timings.items()
        },
    }


def write_analysis_json(path: Path, result: CriticalPathResult) -> None:
    write_summary_json(path, analysis_to_json(result))


def schedule_to_json(schedule: Schedule, *, simulation_number: int | None = None) -> dict[str, Any]:
    return {
        "algorithm": schedule.algorithm,
        "simulation_number": simulation_number,
        "makespan": schedule.makespan,
        "violation_count": schedule.violation_count,
        "total_cost": schedule.total_cost,
        "schedule": [
            {
                "task_id": st.task_id,
                "start_time": st.start_time,
                "end_time": st.end_time,
                "worker_id": st.worker_id,
            }
            for st in schedule.tasks
        ],
        "workers": [w.to_json() for w in schedule.workers],
    }


def write_schedule_json(
    path: Path, schedule: Schedule, *, simulation_number: int | None = None
) -> None:
    write_summary_json(
        path, schedule_to_json(schedule, simulation_number=simulation_number)
    )


def write_schedule_csv(path: Path, schedule: Schedule) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["algorithm", "task_id", "worker_id", "start_time", "end_time"])
        for st in sorted(schedule.tasks, key=lambda s: (s.start_time, s.worker_id)):
            w.writerow(
                [schedule.algorithm, st.task_id, st.worker_id, st.start_time, st.end_time]
            )


def write_simulations_csv(path: Path, records: Sequence[SimulationRecord]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(
            [
                "simulation_number",
                "algorithm",
                "actual_runtime",
                "theoretical_runtime",
                "efficiency_ratio",
                "critical_path_tasks",
                "worker_count",
                "violation_count",
                "failed",
                "failure_reason",
                "node_execution_times",
                "edge_transfer_times",
            ]
        )
        for r in records:
            w.writerow(
                [
                    r.simulation_number,
                    r.algorithm,
                    r.actual_runtime,
                    r.theoretical_runtime,
                    "" if r.efficiency_ratio is None else r.efficiency_ratio,
                    r.critical_path_tasks,
                    r.worker_count,
                    r.violation_count,
                    int(r.failed),
                    r.failure_reason or "",
                    json.dumps(r.node_execution_times, sort_keys=True),
                    json.dumps(r.edge_transfer_times, sort_keys=True),
                ]
            )


def write_subset_values(path: Path, subset_values: SubsetValues) -> None:
    """One coalition value per line, indexed by subset mask."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "".join(f"{v}\n" for v in subset_values.values), encoding="utf-8"
    )
