from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class GammaParams:
    shape: float
    scale: float

    @property
    def mean(self) -> float:
        return self.shape * self.scale

    @staticmethod
    def from_json(obj: dict[str, Any] | None) -> "GammaParams | None":
        if not obj:
            return None
        if not isinstance(obj, dict):
            raise TypeError("gamma distribution must be an object with shape and scale")
        return GammaParams(shape=float(obj["shape"]), scale=float(obj["scale"]))

    def to_json(self) -> dict[str, float]:
        return {"shape": self.shape, "scale": self.scale}


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    transfer_time: float = 0.0
    transfer_dist: GammaParams | None = None


@dataclass(frozen=True)
class Task:
    id: str
    name: str
    execution_time: float = 0.0
    connections: tuple[Edge, ...] = ()
    level: int = 0  # display only
    duration_dist: GammaParams | None = None

    @property
    def successors(self) -> tuple[str, ...]:
        return tuple(e.target for e in self.connections)

    def edge_to(self, target: str) -> Edge | None:
        for edge in self.connections:
            if edge.target == target:
                return edge
        return None


@dataclass(frozen=True)
class Worker:
    id: str
    critical_path_worker: bool = False
    cost_per_hour: float | None = None
    # accumulated busy time, filled in after scheduling
    time: float = 0.0

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "Worker":
        cost = obj.get("cost_per_hour", obj.get("costPerHour"))
        return Worker(
            id=str(obj["id"]),
            critical_path_worker=bool(
                obj.get("critical_path_worker", obj.get("criticalPathWorker", False))
            ),
            cost_per_hour=float(cost) if cost is not None else None,
            time=float(obj.get("time", 0.0)),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "critical_path_worker": self.critical_path_worker,
            "cost_per_hour": self.cost_per_hour,
            "time": self.time,
        }


def make_workers(count: int) -> tuple[Worker, ...]:
    if count < 1:
        raise ValueError(f"worker count must be >= 1 (got {count})")
    return tuple(
        Worker(id=f"worker-{i + 1}", critical_path_worker=(i == 0)) for i in range(count)
    )


def _first(obj: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in obj:
            return obj[k]
    return default


@dataclass(frozen=True)
class Workflow:
    name: str
    tasks: tuple[Task, ...]

    def task(self, task_id: str) -> Task:
        for t in self.tasks:
            if t.id == task_id:
                return t
        raise KeyError(task_id)

    @property
    def task_ids(self) -> tuple[str, ...]:
        return tuple(t.id for t in self.tasks)

    def edges(self) -> list[Edge]:
        return [e for t in self.tasks for e in t.connections]

    def with_times(
        self,
        execution_times: dict[str, float] | None = None,
        transfer_times: dict[tuple[str, str], float] | None = None,
    ) -> "Workflow":
        """Return a copy with the given execution/transfer times substituted."""

        execution_times = execution_times or {}
        transfer_times = transfer_times or {}
        tasks: list[Task] = []
        for t in self.tasks:
            conns = tuple(
                replace(e, transfer_time=float(transfer_times[(e.source, e.target)]))
                if (e.source, e.target) in transfer_times
                else e
                for e in t.connections
            )
            tasks.append(
                replace(
                    t,
                    execution_time=float(execution_times.get(t.id, t.execution_time)),
                    connections=conns,
                )
            )
        return replace(self, tasks=tuple(tasks))

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "Workflow":
        name = str(obj.get("name", "workflow"))
        raw_tasks = obj.get("tasks")
        if not isinstance(raw_tasks, list):
            raise TypeError("workflow 'tasks' must be a list of task objects")

        tasks: list[Task] = []
        for t in raw_tasks:
            if not isinstance(t, dict):
                raise TypeError("workflow tasks must be objects")
            task_id = str(t["id"])

            # Later duplicates of the same (source, target) overwrite earlier ones
            # but keep the first occurrence's position.
            conns: dict[str, Edge] = {}
            for c in t.get("connections", []):
                if isinstance(c, (str, int)):
                    target, transfer, dist = str(c), 0.0, None
                elif isinstance(c, dict):
                    target = str(_first(c, "target", "targetNodeId"))
                    transfer = float(_first(c, "transfer_time", "transferTime", default=0.0))
                    dist = GammaParams.from_json(
                        _first(c, "transfer_dist", "gammaDistribution")
                    )
                else:
                    raise TypeError("connections must be task ids or objects")
                conns[target] = Edge(
                    source=task_id,
                    target=target,
                    transfer_time=transfer,
                    transfer_dist=dist,
                )

            tasks.append(
                Task(
                    id=task_id,
                    name=str(t.get("name", task_id)),
                    execution_time=float(
                        _first(t, "execution_time", "executionTime", default=0.0)
                    ),
                    connections=tuple(conns.values()),
                    level=int(t.get("level", 0)),
                    duration_dist=GammaParams.from_json(
                        _first(t, "duration_dist", "gammaDistribution")
                    ),
                )
            )

        return Workflow(name=name, tasks=tuple(tasks))

    def to_json(self) -> dict[str, Any]:
        tasks: list[dict[str, Any]] = []
        for t in self.tasks:
            item: dict[str, Any] = {
                "id": t.id,
                "name": t.name,
                "execution_time": t.execution_time,
                "level": t.level,
                "connections": [],
            }
            if t.duration_dist is not None:
                item["duration_dist"] = t.duration_dist.to_json()
            for e in t.connections:
                conn: dict[str, Any] = {"target": e.target, "transfer_time": e.transfer_time}
                if e.transfer_dist is not None:
                    conn["transfer_dist"] = e.transfer_dist.to_json()
                item["connections"].append(conn)
            tasks.append(item)
        return {"name": self.name, "tasks": tasks}
