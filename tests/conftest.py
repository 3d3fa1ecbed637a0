from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from schedlab.model import Workflow


@pytest.fixture(scope="session", autouse=True)
def _add_repo_root_to_syspath() -> None:
    """Make local packages importable when running tests from `tests/`.

    Ensure the repo root is on `sys.path` so `import schedlab` and
    `import runner` work.
    """

    root = Path(__file__).resolve().parents[1]
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


def _task(
    tid: str, exec_time: float, targets: list[str], transfer: float
) -> dict[str, object]:
    return {
        "id": tid,
        "name": tid.title(),
        "execution_time": exec_time,
        "connections": [{"target": t, "transfer_time": transfer} for t in targets],
    }


def pipeline_json(transfer: float = 1.0) -> dict[str, object]:
    """start -> validate -> {process_a, process_b} -> merge -> complete."""

    return {
        "name": "pipeline",
        "tasks": [
            _task("start", 1, ["validate"], transfer),
            _task("validate", 3, ["process_a", "process_b"], transfer),
            _task("process_a", 10, ["merge"], transfer),
            _task("process_b", 8, ["merge"], transfer),
            _task("merge", 3, ["complete"], transfer),
            _task("complete", 1, [], transfer),
        ],
    }


@pytest.fixture
def pipeline() -> Workflow:
    return Workflow.from_json(pipeline_json())


@pytest.fixture
def pipeline_no_transfers() -> Workflow:
    return Workflow.from_json(pipeline_json(transfer=0.0))


@pytest.fixture
def fanout() -> Workflow:
    """s -> {x, y, z} -> e with no transfer costs; z is on the critical path."""

    return Workflow.from_json(
        {
            "name": "fanout",
            "tasks": [
                _task("s", 1, ["x", "y", "z"], 0.0),
                _task("x", 4, ["e"], 0.0),
                _task("y", 3.5, ["e"], 0.0),
                _task("z", 5, ["e"], 0.0),
                _task("e", 1, [], 0.0),
            ],
        }
    )


@pytest.fixture
def pipeline_path(tmp_path: Path) -> Path:
    path = tmp_path / "pipeline.json"
    path.write_text(json.dumps(pipeline_json()), encoding="utf-8")
    return path
