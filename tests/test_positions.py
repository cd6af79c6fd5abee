"""Tests for dense sibling ordering (board_engine/positions.py)."""

from __future__ import annotations

import random
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from planboard.board_engine.model import Board, Column, Task
from planboard.board_engine.positions import PositionManager
from planboard.board_engine.store import BoardStore
from planboard.errors import NotFoundError


@pytest.fixture
def store(tmp_path: Path) -> BoardStore:
    return BoardStore(tmp_path / ".planboard")


@pytest.fixture
def tasks(store: BoardStore) -> PositionManager:
    return PositionManager(store, "tasks", "column_id", "columns")


def _column(store: BoardStore, titles: list[str], board_id: int = 1) -> int:
    """Create a column holding tasks with the given titles at 0..n-1."""
    with store.transaction() as tx:
        if tx.get("boards", board_id) is None:
            tx.add("boards", Board(name="Board", project_id=1))
        column = tx.add("columns", Column(name="Col", board_id=board_id))
        for index, title in enumerate(titles):
            tx.add("tasks", Task(title=title, column_id=column.id, position=index))
    return column.id


def _order(store: BoardStore, column_id: int) -> list[tuple[str, int]]:
    snap = store.read_snapshot()
    rows = sorted(snap.find("tasks", column_id=column_id), key=lambda t: t.position)
    return [(t.title, t.position) for t in rows]


def _id(store: BoardStore, title: str) -> int:
    task = store.read_snapshot().first("tasks", title=title)
    assert task is not None
    return task.id


class TestInsert:
    def test_empty_container_starts_at_zero(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, [])
        assert tasks.insert(column_id) == 0

    def test_appends_after_max(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A", "B", "C"])
        assert tasks.insert(column_id) == 3

    def test_insert_does_not_write(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A"])
        before = store.path.read_bytes()
        tasks.insert(column_id)
        assert store.path.read_bytes() == before


class TestMoveWithinContainer:
    def test_move_up(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A", "B", "C", "D"])
        tasks.move(_id(store, "D"), column_id, 1)
        assert _order(store, column_id) == [("A", 0), ("D", 1), ("B", 2), ("C", 3)]

    def test_move_down(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A", "B", "C", "D"])
        tasks.move(_id(store, "A"), column_id, 2)
        assert _order(store, column_id) == [("B", 0), ("C", 1), ("A", 2), ("D", 3)]

    def test_same_slot_is_noop(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A", "B", "C"])
        before = store.path.read_bytes()
        moved = tasks.move(_id(store, "B"), column_id, 1)
        assert moved.position == 1
        assert store.path.read_bytes() == before

    def test_negative_target_clamps_to_zero(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A", "B", "C"])
        tasks.move(_id(store, "C"), column_id, -5)
        assert _order(store, column_id) == [("C", 0), ("A", 1), ("B", 2)]

    def test_target_past_end_clamps_to_last(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A", "B", "C"])
        tasks.move(_id(store, "A"), column_id, 99)
        assert _order(store, column_id) == [("B", 0), ("C", 1), ("A", 2)]


class TestMoveAcrossContainers:
    def test_cross_column_move(self, store: BoardStore, tasks: PositionManager) -> None:
        source = _column(store, ["A", "B", "C"])
        dest = _column(store, ["X", "Y"])
        tasks.move(_id(store, "B"), dest, 1)
        assert _order(store, source) == [("A", 0), ("C", 1)]
        assert _order(store, dest) == [("X", 0), ("B", 1), ("Y", 2)]

    def test_cross_column_append_when_past_end(self, store: BoardStore, tasks: PositionManager) -> None:
        source = _column(store, ["A"])
        dest = _column(store, ["X", "Y"])
        moved = tasks.move(_id(store, "A"), dest, 10)
        assert moved.position == 2
        assert _order(store, source) == []
        assert _order(store, dest) == [("X", 0), ("Y", 1), ("A", 2)]

    def test_into_empty_column(self, store: BoardStore, tasks: PositionManager) -> None:
        source = _column(store, ["A", "B"])
        dest = _column(store, [])
        tasks.move(_id(store, "A"), dest, 0)
        assert _order(store, source) == [("B", 0)]
        assert _order(store, dest) == [("A", 0)]

    def test_missing_target_container(self, store: BoardStore, tasks: PositionManager) -> None:
        _column(store, ["A", "B"])
        before = store.path.read_bytes()
        with pytest.raises(NotFoundError, match="Column not found"):
            tasks.move(_id(store, "A"), 999, 0)
        assert store.path.read_bytes() == before

    def test_missing_item(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A"])
        with pytest.raises(NotFoundError, match="Task not found"):
            tasks.move(999, column_id, 0)

    def test_failure_in_outer_transaction_rolls_back_shifts(
        self, store: BoardStore, tasks: PositionManager
    ) -> None:
        source = _column(store, ["A", "B", "C"])
        dest = _column(store, ["X"])
        before = store.path.read_bytes()
        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tasks.move(_id(store, "A"), dest, 0, tx=tx)
                raise RuntimeError("abort")
        assert store.path.read_bytes() == before
        assert _order(store, source) == [("A", 0), ("B", 1), ("C", 2)]


class TestDelete:
    def test_delete_closes_gap(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A", "B", "C", "D"])
        tasks.delete(_id(store, "B"))
        assert _order(store, column_id) == [("A", 0), ("C", 1), ("D", 2)]

    def test_delete_last(self, store: BoardStore, tasks: PositionManager) -> None:
        column_id = _column(store, ["A", "B"])
        tasks.delete(_id(store, "B"))
        assert _order(store, column_id) == [("A", 0)]


class TestIntegrity:
    def test_normalize_legacy_one_based(self, store: BoardStore, tasks: PositionManager) -> None:
        with store.transaction() as tx:
            tx.add("boards", Board(name="Board", project_id=1))
            column = tx.add("columns", Column(name="Col", board_id=1))
            for index, title in enumerate(["A", "B", "C"], start=1):
                tx.add("tasks", Task(title=title, column_id=column.id, position=index))

        assert not tasks.check_density(column.id)
        assert tasks.normalize(column.id) == 3
        assert tasks.check_density(column.id)
        assert _order(store, column.id) == [("A", 0), ("B", 1), ("C", 2)]

    def test_columns_use_the_same_manager(self, store: BoardStore) -> None:
        columns = PositionManager(store, "columns", "board_id", "boards")
        for title in ("To Do", "Doing", "Done"):
            with store.transaction() as tx:
                if tx.get("boards", 1) is None:
                    tx.add("boards", Board(name="Board", project_id=1))
                position = columns.insert(1, tx=tx)
                tx.add("columns", Column(name=title, board_id=1, position=position))
        done = store.read_snapshot().first("columns", name="Done")
        columns.move(done.id, 1, 0)
        snap = store.read_snapshot()
        names = [c.name for c in sorted(snap.find("columns", board_id=1), key=lambda c: c.position)]
        assert names == ["Done", "To Do", "Doing"]

    def test_density_holds_under_random_operations(self, store: BoardStore, tasks: PositionManager) -> None:
        rng = random.Random(7)
        columns = [_column(store, [f"c{n}-{i}" for i in range(4)]) for n in range(3)]
        for step in range(60):
            snap = store.read_snapshot()
            all_tasks = snap.all("tasks")
            op = rng.choice(["move", "move", "insert", "delete"])
            if op == "insert" or not all_tasks:
                column_id = rng.choice(columns)
                with store.transaction() as tx:
                    position = tasks.insert(column_id, tx=tx)
                    tx.add("tasks", Task(title=f"new-{step}", column_id=column_id, position=position))
            elif op == "delete":
                tasks.delete(rng.choice(all_tasks).id)
            else:
                tasks.move(rng.choice(all_tasks).id, rng.choice(columns), rng.randint(-1, 6))
            for column_id in columns:
                assert tasks.check_density(column_id)


class TestConcurrency:
    def test_parallel_moves_keep_every_column_dense(self, tmp_path: Path, store: BoardStore) -> None:
        columns = [_column(store, [f"c{n}-{i}" for i in range(5)]) for n in range(3)]
        task_ids = [t.id for t in store.read_snapshot().all("tasks")]

        def _worker(seed: int) -> None:
            rng = random.Random(seed)
            # Each worker opens its own store on the shared data dir.
            mover = PositionManager(BoardStore(tmp_path / ".planboard"), "tasks", "column_id", "columns")
            for _ in range(25):
                mover.move(rng.choice(task_ids), rng.choice(columns), rng.randint(-1, 6))

        with ThreadPoolExecutor(max_workers=6) as pool:
            list(pool.map(_worker, range(6)))

        tasks = PositionManager(store, "tasks", "column_id", "columns")
        for column_id in columns:
            assert tasks.check_density(column_id)
        assert len(store.read_snapshot().all("tasks")) == 15
