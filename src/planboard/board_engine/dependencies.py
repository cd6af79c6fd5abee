"""Task dependency edges kept acyclic.

The canonical edge runs from the dependent task to its prerequisite:
``Dependency(task_id=A, depends_on_task_id=B)`` means *A cannot be complete
until B is*.  ``blocked_by`` (prerequisites) and ``blocking`` (dependents)
are both derived from that single edge set.
"""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from typing import Iterable, Iterator, Mapping, Optional

from loguru import logger

from ..errors import CycleError, DuplicateEdgeError, NotFoundError, SelfReferenceError
from .model import Dependency
from .store import BoardStore, StoreTx


def would_create_cycle(
    graph: Mapping[int, Iterable[int]],
    from_id: int,
    to_id: int,
) -> bool:
    """Return True if adding ``from_id -> to_id`` would close a cycle.

    Walks existing depends-on edges forward from ``to_id`` with an explicit
    stack; reaching ``from_id`` means the new edge completes a loop.  The
    visited set keeps diamonds (and an already-cyclic graph) from being
    walked twice.
    """
    if from_id == to_id:
        return True
    visited: set[int] = set()
    stack: list[int] = [to_id]
    while stack:
        current = stack.pop()
        if current == from_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        for nxt in graph.get(current, ()):
            if nxt not in visited:
                stack.append(nxt)
    return False


class DependencyGraph:
    """Gate dependency inserts so the edge relation stays a DAG."""

    def __init__(self, store: BoardStore) -> None:
        self.store = store

    @contextmanager
    def _tx(self, tx: Optional[StoreTx]) -> Iterator[StoreTx]:
        if tx is not None:
            yield tx
        else:
            with self.store.transaction() as own:
                yield own

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @staticmethod
    def adjacency(tx: StoreTx) -> dict[int, list[int]]:
        """Return ``{task_id: [prerequisite ids]}`` for every edge."""
        graph: dict[int, list[int]] = defaultdict(list)
        for dep in tx.all("dependencies"):
            graph[dep.task_id].append(dep.depends_on_task_id)
        return dict(graph)

    @staticmethod
    def blocked_by(tx: StoreTx, task_id: int) -> list[int]:
        """Prerequisites of *task_id* (outgoing edges)."""
        return [d.depends_on_task_id for d in tx.find("dependencies", task_id=task_id)]

    @staticmethod
    def blocking(tx: StoreTx, task_id: int) -> list[int]:
        """Tasks that depend on *task_id* (incoming edges)."""
        return [d.task_id for d in tx.find("dependencies", depends_on_task_id=task_id)]

    def would_create_cycle(self, from_id: int, to_id: int, *, tx: Optional[StoreTx] = None) -> bool:
        with self._tx(tx) as t:
            return would_create_cycle(self.adjacency(t), from_id, to_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_edge(self, from_id: int, to_id: int, *, tx: Optional[StoreTx] = None) -> Dependency:
        """Persist ``from_id depends on to_id``.

        Raises :class:`SelfReferenceError`, :class:`NotFoundError`,
        :class:`DuplicateEdgeError` or :class:`CycleError`; the check and the
        insert share one transaction.
        """
        if from_id == to_id:
            raise SelfReferenceError("A task cannot depend on itself")

        with self._tx(tx) as t:
            t.require("tasks", from_id)
            t.require("tasks", to_id, label="Target task")

            if t.first("dependencies", task_id=from_id, depends_on_task_id=to_id) is not None:
                raise DuplicateEdgeError("Dependency already exists")

            if self.would_create_cycle(from_id, to_id, tx=t):
                logger.warning("Rejected dependency {} -> {}: would create a cycle", from_id, to_id)
                raise CycleError("This would create a circular dependency")

            edge = t.add("dependencies", Dependency(task_id=from_id, depends_on_task_id=to_id))
            logger.info("Task {} now depends on task {}", from_id, to_id)
            return edge

    def remove_edge(self, from_id: int, to_id: int, *, tx: Optional[StoreTx] = None) -> None:
        with self._tx(tx) as t:
            removed = t.delete_where(
                "dependencies",
                lambda d: d.task_id == from_id and d.depends_on_task_id == to_id,
            )
            if not removed:
                raise NotFoundError("Dependency not found")

    @staticmethod
    def remove_task(tx: StoreTx, task_id: int) -> int:
        """Drop every edge touching *task_id*; return how many went."""
        return tx.delete_where(
            "dependencies",
            lambda d: d.task_id == task_id or d.depends_on_task_id == task_id,
        )

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    @staticmethod
    def execution_order(tx: StoreTx, task_ids: Iterable[int]) -> list[list[int]]:
        """Topological sort into batches, prerequisites first (Kahn's algorithm).

        Edges leaving the given set are ignored.  Tasks left over because of a
        (corrupt) cycle are logged and omitted.
        """
        ids = sorted(set(task_ids))
        members = set(ids)
        in_degree: dict[int, int] = {tid: 0 for tid in ids}
        dependents: dict[int, list[int]] = defaultdict(list)
        for dep in tx.all("dependencies"):
            if dep.task_id in members and dep.depends_on_task_id in members:
                dependents[dep.depends_on_task_id].append(dep.task_id)
                in_degree[dep.task_id] += 1

        batches: list[list[int]] = []
        queue = [tid for tid in ids if in_degree[tid] == 0]
        while queue:
            batches.append(queue)
            next_queue: list[int] = []
            for tid in queue:
                for dependent in dependents.get(tid, []):
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        next_queue.append(dependent)
            queue = sorted(next_queue)

        remaining = [tid for tid, deg in in_degree.items() if deg > 0]
        if remaining:
            logger.warning("Dependency cycle detected among tasks: {}", remaining)
        return batches
