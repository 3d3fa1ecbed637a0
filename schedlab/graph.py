from __future__ import annotations

from schedlab.errors import MalformedGraphError
from schedlab.model import Edge, Task, Workflow
from schedlab.validate import validate_workflow

_WHITE, _GREY, _BLACK = 0, 1, 2


class TaskGraph:
    """Read-only dependency index over a validated workflow.

    Predecessor lists follow workflow task order; successor lists follow each
    task's connection order. Both orders feed the tie-breaking of every
    scheduler, so they must stay deterministic.
    """

    def __init__(self, workflow: Workflow) -> None:
        validate_workflow(workflow)
        self.workflow = workflow
        self.tasks: dict[str, Task] = {t.id: t for t in workflow.tasks}
        self.index: dict[str, int] = {t.id: i for i, t in enumerate(workflow.tasks)}
        self._edges: dict[tuple[str, str], Edge] = {}
        self._preds: dict[str, list[str]] = {t.id: [] for t in workflow.tasks}
        for t in workflow.tasks:
            for e in t.connections:
                self._edges[(e.source, e.target)] = e
                self._preds[e.target].append(t.id)
        self._topo: list[str] | None = None

    def __len__(self) -> int:
        return len(self.tasks)

    def predecessors(self, task_id: str) -> list[str]:
        return self._preds[task_id]

    def successors(self, task_id: str) -> tuple[str, ...]:
        return self.tasks[task_id].successors

    def duration(self, task_id: str) -> float:
        return self.tasks[task_id].execution_time

    def transfer_time(self, source: str, target: str) -> float:
        edge = self._edges.get((source, target))
        return edge.transfer_time if edge is not None else 0.0

    def sinks(self) -> list[str]:
        return [tid for tid, t in self.tasks.items() if not t.connections]

    def topological_order(self) -> list[str]:
        """Reverse DFS post-order; raises MalformedGraphError on a cycle."""

        if self._topo is not None:
            return list(self._topo)

        color = {tid: _WHITE for tid in self.tasks}
        post: list[str] = []

        for root in self.tasks:
            if color[root] != _WHITE:
                continue
            color[root] = _GREY
            path = [root]
            stack = [(root, iter(self.successors(root)))]
            while stack:
                node, it = stack[-1]
                nxt = next(it, None)
                if nxt is None:
                    stack.pop()
                    path.pop()
                    color[node] = _BLACK
                    post.append(node)
                elif color[nxt] == _GREY:
                    cycle = tuple(path[path.index(nxt):]) + (nxt,)
                    raise MalformedGraphError(
                        "cycle detected: " + " -> ".join(cycle),
                        task_ids=cycle,
                        edges=((node, nxt),),
                    )
                elif color[nxt] == _WHITE:
                    color[nxt] = _GREY
                    path.append(nxt)
                    stack.append((nxt, iter(self.successors(nxt))))

        post.reverse()
        self._topo = post
        return list(post)

    def upward_ranks(self, *, include_transfer_times: bool = True) -> dict[str, float]:
        ranks: dict[str, float] = {}
        for tid in reversed(self.topological_order()):
            best = 0.0
            for succ in self.successors(tid):
                tt = self.transfer_time(tid, succ) if include_transfer_times else 0.0
                best = max(best, tt + ranks[succ])
            ranks[tid] = self.duration(tid) + best
        return ranks

    def priority_order(self, *, include_transfer_times: bool = True) -> list[str]:
        """Task ids by descending upward rank, ties by topological position."""

        ranks = self.upward_ranks(include_transfer_times=include_transfer_times)
        topo_pos = {tid: i for i, tid in enumerate(self.topological_order())}
        return sorted(self.tasks, key=lambda tid: (-ranks[tid], topo_pos[tid]))
