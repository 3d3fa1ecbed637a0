from __future__ import annotations

import csv
import json
import runpy
import shlex
import subprocess
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

import schedlab.__main__ as main_module
from schedlab.cli import main

REPO_ROOT = Path(__file__).resolve().parents[1]

SOLVER_SCRIPT = """\
import json, sys
d = json.load(sys.stdin)
agents = list(range(1, d["numOfAgents"] + 1))
print(json.dumps({"value": 0.0, "timeMs": 1, "partition": [agents] if agents else []}))
"""


def _write_json(path: Path, obj: object) -> None:
    path.write_text(json.dumps(obj), encoding="utf-8")


def test_cli_analyze_writes_json(tmp_path: Path, pipeline_path: Path) -> None:
    out = tmp_path / "analysis.json"
    rc = main(
        [
            "analyze",
            "--workflow",
            str(pipeline_path),
            "--no-transfer-times",
            "--out",
            str(out),
        ]
    )
    assert rc == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["minimum_project_duration"] == 18.0
    assert data["ordered_critical_path"] == [
        "start",
        "validate",
        "process_a",
        "merge",
        "complete",
    ]


def test_cli_analyze_prints_without_out(
    pipeline_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["analyze", "--workflow", str(pipeline_path), "--deadline", "30"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["critical_ids"] == []
    assert data["infeasible_ids"] == []


@pytest.mark.parametrize("fmt", ["json", "csv"])
def test_cli_schedule_writes_schedule(
    tmp_path: Path, pipeline_path: Path, fmt: str
) -> None:
    out = tmp_path / f"schedule.{fmt}"
    rc = main(
        [
            "schedule",
            "--workflow",
            str(pipeline_path),
            "--algorithm",
            "cp_heft",
            "--workers",
            "2",
            "--out-schedule",
            str(out),
            "--format",
            fmt,
        ]
    )
    assert rc == 0
    if fmt == "json":
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["makespan"] == 18.0
        assert data["violation_count"] == 0
    else:
        rows = list(csv.DictReader(out.read_text(encoding="utf-8").splitlines()))
        assert {r["algorithm"] for r in rows} == {"cp_heft"}
        assert len(rows) == 6


def test_cli_schedule_with_workers_file(tmp_path: Path, pipeline_path: Path) -> None:
    workers = tmp_path / "workers.json"
    _write_json(
        workers,
        [{"id": "fast", "costPerHour": 3600}, {"id": "spare", "criticalPathWorker": True}],
    )
    out = tmp_path / "schedule.json"
    rc = main(
        [
            "schedule",
            "--workflow",
            str(pipeline_path),
            "--algorithm",
            "cp_heft",
            "--workers-file",
            str(workers),
            "--out-schedule",
            str(out),
        ]
    )
    assert rc == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    by_task = {row["task_id"]: row["worker_id"] for row in data["schedule"]}
    assert by_task["process_a"] == "spare"
    assert data["total_cost"] == pytest.approx(8.0)


def test_cli_schedule_odpip_through_solver_process(
    tmp_path: Path, pipeline_path: Path
) -> None:
    script = tmp_path / "solver.py"
    script.write_text(SOLVER_SCRIPT, encoding="utf-8")
    out = tmp_path / "schedule.json"

    rc = main(
        [
            "schedule",
            "--workflow",
            str(pipeline_path),
            "--algorithm",
            "odpip",
            "--solver-cmd",
            f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}",
            "--out-schedule",
            str(out),
        ]
    )
    assert rc == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [w["id"] for w in data["workers"]] == ["worker-1", "worker-2"]
    assert data["makespan"] == 18.0


def test_cli_solver_failure_exits_nonzero(
    tmp_path: Path, pipeline_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    rc = main(
        [
            "schedule",
            "--workflow",
            str(pipeline_path),
            "--algorithm",
            "odpip",
            "--solver-cmd",
            f"{shlex.quote(sys.executable)} -c 'import sys; sys.exit(4)'",
            "--out-schedule",
            str(tmp_path / "s.json"),
        ]
    )
    assert rc == 2
    assert "status 4" in caplog.text


def test_cli_list_scheduler_requires_workers(
    tmp_path: Path, pipeline_path: Path
) -> None:
    with pytest.raises(ValueError, match="--workers"):
        main(
            [
                "schedule",
                "--workflow",
                str(pipeline_path),
                "--algorithm",
                "heft",
                "--out-schedule",
                str(tmp_path / "s.json"),
            ]
        )


def test_cli_simulate_writes_summary_and_runs(
    tmp_path: Path, pipeline_path: Path
) -> None:
    out_summary = tmp_path / "summary.json"
    out_runs = tmp_path / "runs.csv"

    rc = main(
        [
            "simulate",
            "--workflow",
            str(pipeline_path),
            "--algorithm",
            "heft",
            "--workers",
            "3",
            "--runs",
            "5",
            "--seed",
            "123",
            "--default-dists",
            "--out-summary",
            str(out_summary),
            "--out-runs",
            str(out_runs),
        ]
    )
    assert rc == 0
    summary = json.loads(out_summary.read_text(encoding="utf-8"))
    assert summary["simulations_ok"] == 5
    assert summary["violations"] == 0
    rows = list(csv.DictReader(out_runs.read_text(encoding="utf-8").splitlines()))
    assert [r["simulation_number"] for r in rows] == ["1", "2", "3", "4", "5"]


def test_cli_subset_values_and_describe(
    tmp_path: Path, pipeline_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    out = tmp_path / "values.txt"
    rc = main(
        ["subset-values", "--workflow", str(pipeline_path), "--out", str(out), "--describe"]
    )
    assert rc == 0
    assert out.read_text(encoding="utf-8").splitlines() == ["0.0", "8.0"]
    assert "[1] 1 = {Process_B}" in capsys.readouterr().out


def test_cli_cycle_is_reported_with_exit_code(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "cycle.json"
    _write_json(
        path,
        {"tasks": [{"id": "a", "connections": ["b"]}, {"id": "b", "connections": ["a"]}]},
    )
    assert main(["analyze", "--workflow", str(path)]) == 2
    assert "cycle detected" in caplog.text


def test_cli_unhandled_command_raises_assertion(
    monkeypatch: pytest.MonkeyPatch, pipeline_path: Path
) -> None:
    import schedlab.cli

    class _DummyParser:
        def parse_args(self, _argv: list[str] | None) -> object:
            return SimpleNamespace(
                cmd="nope", workflow=pipeline_path, log_level="WARNING"
            )

    monkeypatch.setattr(schedlab.cli, "_build_parser", lambda: _DummyParser())
    with pytest.raises(AssertionError, match="Unhandled command"):
        schedlab.cli.main(["anything"])


def test_python_m_schedlab_executes_main(tmp_path: Path, pipeline_path: Path) -> None:
    out = tmp_path / "analysis.json"
    proc = subprocess.run(
        [
            sys.executable,
            "-m",
            "schedlab",
            "analyze",
            "--workflow",
            str(pipeline_path),
            "--out",
            str(out),
        ],
        capture_output=True,
        text=True,
        cwd=REPO_ROOT,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr
    assert out.exists()


def test___main___module_runs_inprocess_and_exits_zero(
    tmp_path: Path, pipeline_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    out = tmp_path / "analysis.json"
    monkeypatch.setattr(
        sys,
        "argv",
        ["python -m schedlab", "analyze", "--workflow", str(pipeline_path), "--out", str(out)],
    )
    with pytest.raises(SystemExit) as exc:
        runpy.run_module("schedlab.__main__", run_name="__main__")
    assert exc.value.code == 0
    assert out.exists()


def test_runner_delegates_to_schedlab_main_and_adjusts_argv(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured = {}

    def fake_run() -> int:
        captured["argv"] = list(sys.argv)
        return 0

    monkeypatch.setattr(main_module, "run", fake_run)
    monkeypatch.setattr(sys, "argv", ["runner.py", "analyze", "--workflow", "x.json"])

    import runner

    assert runner.main() == 0
    assert captured["argv"] == ["schedlab", "analyze", "--workflow", "x.json"]
