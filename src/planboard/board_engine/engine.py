"""Board engine: projects, boards, columns, tasks and their dependencies.

This is the primary entry-point for all board manipulation.  It wraps
:class:`BoardStore` with business logic (membership checks, default board
layout, cascading deletes, dense positions and acyclic dependencies).
Every public method runs in exactly one store transaction.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from loguru import logger

from ..constants import (
    DEFAULT_BOARD_NAME,
    DEFAULT_COLUMNS,
    DONE_COLUMN_NAME,
    MEMBER_ROLES,
    SEARCH_RESULT_LIMIT,
    TASK_PRIORITIES,
)
from ..errors import AccessDeniedError, ConflictError, NotFoundError, SelfReferenceError, ValidationError
from ..utils import _parse_iso
from .dependencies import DependencyGraph
from .model import Board, Column, Project, ProjectMember, Task
from .positions import PositionManager
from .store import BoardStore, StoreTx

_PRIORITY_RANK = {name: rank for rank, name in enumerate(TASK_PRIORITIES)}
_TASK_FIELDS = ("title", "description", "priority", "assignee_id", "due_date", "diary_entry_id")


# ---------------------------------------------------------------------------
# Cascades (shared with the account service)
# ---------------------------------------------------------------------------

def cascade_delete_tasks(tx: StoreTx, task_ids: set[int]) -> None:
    """Remove tasks and every dependency edge touching them."""
    if not task_ids:
        return
    tx.delete_where(
        "dependencies",
        lambda d: d.task_id in task_ids or d.depends_on_task_id in task_ids,
    )
    tx.delete_where("tasks", lambda t: t.id in task_ids)


def cascade_delete_board(tx: StoreTx, board_id: int) -> None:
    column_ids = {c.id for c in tx.find("columns", board_id=board_id)}
    cascade_delete_tasks(tx, {t.id for t in tx.filter("tasks", lambda t: t.column_id in column_ids)})
    tx.delete_where("columns", lambda c: c.board_id == board_id)
    tx.delete("boards", board_id)


def cascade_delete_project(tx: StoreTx, project_id: int) -> None:
    for board in tx.find("boards", project_id=project_id):
        cascade_delete_board(tx, board.id)
    tx.delete_where("project_members", lambda m: m.project_id == project_id)
    tx.delete_where("events", lambda e: e.project_id == project_id)
    tx.delete("projects", project_id)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class BoardEngine:
    """Manage projects and their Kanban boards.

    Parameters
    ----------
    store:
        Backing :class:`BoardStore`.
    """

    def __init__(self, store: BoardStore) -> None:
        self.store = store
        self.board_positions = PositionManager(store, "boards", "project_id", "projects")
        self.column_positions = PositionManager(store, "columns", "board_id", "boards")
        self.task_positions = PositionManager(store, "tasks", "column_id", "columns")
        self.graph = DependencyGraph(store)

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _membership(tx: StoreTx, project_id: int, user_id: int) -> Optional[ProjectMember]:
        return tx.first("project_members", project_id=project_id, user_id=user_id)

    def _require_member(self, tx: StoreTx, project_id: int, user_id: int, message: str = "Access denied") -> ProjectMember:
        member = self._membership(tx, project_id, user_id)
        if member is None:
            raise AccessDeniedError(message)
        return member

    def _require_manager(self, tx: StoreTx, project_id: int, user_id: int) -> ProjectMember:
        member = self._membership(tx, project_id, user_id)
        if member is None or not member.can_manage:
            raise AccessDeniedError("Insufficient permissions")
        return member

    @staticmethod
    def _column_project(tx: StoreTx, column: Column) -> int:
        return tx.require("boards", column.board_id).project_id

    def _task_project(self, tx: StoreTx, task: Task) -> int:
        return self._column_project(tx, tx.require("columns", task.column_id))

    def _accessible_task(self, tx: StoreTx, task_id: int, user_id: int) -> Task:
        task = tx.require("tasks", task_id)
        self._require_member(tx, self._task_project(tx, task), user_id)
        return task

    def _member_project_ids(self, tx: StoreTx, user_id: int) -> set[int]:
        return {m.project_id for m in tx.find("project_members", user_id=user_id)}

    @staticmethod
    def _require_own_entry(tx: StoreTx, entry_id: int, user_id: int) -> None:
        entry = tx.get("diary_entries", entry_id)
        if entry is None or entry.user_id != user_id:
            raise NotFoundError("Diary entry not found")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @staticmethod
    def _task_view(tx: StoreTx, task: Task, *, location: bool = False) -> dict[str, Any]:
        data = task.to_dict()
        assignee = tx.get("users", task.assignee_id)
        data["assignee_name"] = assignee.name if assignee else None
        data["assignee_email"] = assignee.email if assignee else None
        entry = tx.get("diary_entries", task.diary_entry_id)
        data["diary_entry_title"] = entry.title if entry else None
        data["diary_entry_date"] = entry.date if entry else None
        if location:
            column = tx.get("columns", task.column_id)
            board = tx.get("boards", column.board_id) if column else None
            project = tx.get("projects", board.project_id) if board else None
            data["column_name"] = column.name if column else None
            data["board_name"] = board.name if board else None
            data["project_id"] = project.id if project else None
            data["project_name"] = project.name if project else None
        return data

    def _column_tasks(self, tx: StoreTx, column_id: int) -> list[dict[str, Any]]:
        return [self._task_view(tx, t) for t in self.task_positions.siblings(tx, column_id)]

    def _first_column(self, tx: StoreTx, project_id: int) -> Optional[Column]:
        for board in self.board_positions.siblings(tx, project_id):
            columns = self.column_positions.siblings(tx, board.id)
            if columns:
                return columns[0]
        return None

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self, user_id: int) -> list[dict[str, Any]]:
        """Projects the user belongs to, newest first, with the caller's role."""
        with self.store.transaction() as tx:
            out = []
            for member in tx.find("project_members", user_id=user_id):
                project = tx.get("projects", member.project_id)
                if project is None:
                    continue
                owner = tx.get("users", project.owner_id)
                data = project.to_dict()
                data["role"] = member.role
                data["owner_name"] = owner.name if owner else None
                data["owner_email"] = owner.email if owner else None
                out.append(data)
        out.sort(key=lambda p: p["created_at"], reverse=True)
        return out

    def get_project(self, project_id: int, user_id: int) -> dict[str, Any]:
        with self.store.transaction() as tx:
            project = tx.require("projects", project_id)
            member = self._require_member(tx, project_id, user_id)
            data = project.to_dict()
            data["role"] = member.role
            data["members"] = self._members(tx, project_id)
            return data

    def create_project(self, user_id: int, name: str, description: Optional[str] = None) -> Project:
        """Create a project owned by *user_id* with the default board layout."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Project name is required")
        with self.store.transaction() as tx:
            tx.require("users", user_id)
            project = tx.add("projects", Project(name=name, description=description, owner_id=user_id))
            tx.add("project_members", ProjectMember(project_id=project.id, user_id=user_id, role="owner"))
            board = tx.add("boards", Board(name=DEFAULT_BOARD_NAME, project_id=project.id, position=0))
            for index, column_name in enumerate(DEFAULT_COLUMNS):
                tx.add("columns", Column(name=column_name, board_id=board.id, position=index))
        logger.info("Created project {} ({}) for user {}", project.id, name, user_id)
        return project

    def update_project(
        self,
        project_id: int,
        user_id: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Project:
        if name is None and description is None:
            raise ValidationError("No valid updates provided")
        with self.store.transaction() as tx:
            project = tx.require("projects", project_id)
            self._require_manager(tx, project_id, user_id)
            if name is not None:
                if not name.strip():
                    raise ValidationError("Project name is required")
                project.name = name.strip()
            if description is not None:
                project.description = description
            tx.touch(project)
            return project

    def delete_project(self, project_id: int, user_id: int) -> None:
        with self.store.transaction() as tx:
            tx.require("projects", project_id)
            member = self._membership(tx, project_id, user_id)
            if member is None or member.role != "owner":
                raise AccessDeniedError("Only project owner can delete project")
            cascade_delete_project(tx, project_id)
        logger.info("Deleted project {}", project_id)

    @staticmethod
    def _members(tx: StoreTx, project_id: int) -> list[dict[str, Any]]:
        out = []
        for member in tx.find("project_members", project_id=project_id):
            user = tx.get("users", member.user_id)
            if user is None:
                continue
            out.append({
                "id": user.id,
                "email": user.email,
                "name": user.name,
                "role": member.role,
                "joined_at": member.joined_at,
            })
        out.sort(key=lambda m: m["name"])
        out.sort(key=lambda m: MEMBER_ROLES.index(m["role"]) if m["role"] in MEMBER_ROLES else len(MEMBER_ROLES))
        return out

    def list_members(self, project_id: int, user_id: int) -> list[dict[str, Any]]:
        with self.store.transaction() as tx:
            tx.require("projects", project_id)
            self._require_member(tx, project_id, user_id)
            return self._members(tx, project_id)

    def add_member(self, project_id: int, user_id: int, email: str, role: str = "member") -> ProjectMember:
        if role not in MEMBER_ROLES or role == "owner":
            raise ValidationError("Role must be either member or admin")
        with self.store.transaction() as tx:
            tx.require("projects", project_id)
            self._require_manager(tx, project_id, user_id)
            user = tx.first("users", email=email.strip().lower())
            if user is None:
                raise NotFoundError("User not found")
            if self._membership(tx, project_id, user.id) is not None:
                raise ConflictError("User already a member")
            member = tx.add("project_members", ProjectMember(project_id=project_id, user_id=user.id, role=role))
        logger.info("Added user {} to project {} as {}", user.id, project_id, role)
        return member

    # ------------------------------------------------------------------
    # Boards and columns
    # ------------------------------------------------------------------

    def get_project_board(self, project_id: int, user_id: int) -> Optional[dict[str, Any]]:
        """First board of a project with its columns and a flat task list."""
        with self.store.transaction() as tx:
            self._require_member(tx, project_id, user_id)
            boards = self.board_positions.siblings(tx, project_id)
            if not boards:
                return None
            board = boards[0]
            data = board.to_dict()
            columns = []
            tasks: list[dict[str, Any]] = []
            for column in self.column_positions.siblings(tx, board.id):
                column_tasks = self._column_tasks(tx, column.id)
                entry = column.to_dict()
                entry["task_count"] = len(column_tasks)
                columns.append(entry)
                tasks.extend(column_tasks)
            data["columns"] = columns
            data["tasks"] = tasks
            data["task_count"] = len(tasks)
            return data

    def get_board(self, board_id: int, user_id: int) -> dict[str, Any]:
        """A board with its columns, each carrying its ordered tasks."""
        with self.store.transaction() as tx:
            board = tx.require("boards", board_id)
            self._require_member(tx, board.project_id, user_id)
            project = tx.get("projects", board.project_id)
            data = board.to_dict()
            data["project_name"] = project.name if project else None
            columns = []
            for column in self.column_positions.siblings(tx, board.id):
                entry = column.to_dict()
                entry["tasks"] = self._column_tasks(tx, column.id)
                columns.append(entry)
            data["columns"] = columns
            return data

    @staticmethod
    def _clean_name(name: Optional[str], what: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError(f"{what} name is required")
        return name

    def create_board(self, project_id: int, user_id: int, name: str) -> Board:
        name = self._clean_name(name, "Board")
        with self.store.transaction() as tx:
            tx.require("projects", project_id)
            self._require_member(tx, project_id, user_id)
            position = self.board_positions.insert(project_id, tx=tx)
            board = tx.add("boards", Board(name=name, project_id=project_id, position=position))
        logger.info("Created board {} in project {}", board.id, project_id)
        return board

    def add_column(self, board_id: int, user_id: int, name: str) -> Column:
        name = self._clean_name(name, "Column")
        with self.store.transaction() as tx:
            board = tx.require("boards", board_id)
            self._require_member(tx, board.project_id, user_id)
            position = self.column_positions.insert(board_id, tx=tx)
            column = tx.add("columns", Column(name=name, board_id=board_id, position=position))
        logger.info("Added column {} to board {} at {}", column.id, board_id, position)
        return column

    def rename_column(self, column_id: int, user_id: int, name: Optional[str]) -> Column:
        with self.store.transaction() as tx:
            column = tx.require("columns", column_id)
            self._require_member(tx, self._column_project(tx, column), user_id)
            if name and name.strip():
                column.name = name.strip()
                tx.touch(column)
            return column

    def move_column(self, column_id: int, user_id: int, position: int) -> Column:
        """Reorder a column within its own board."""
        with self.store.transaction() as tx:
            column = tx.require("columns", column_id)
            self._require_member(tx, self._column_project(tx, column), user_id)
            return self.column_positions.move(column_id, column.board_id, position, tx=tx)

    def delete_column(self, column_id: int, user_id: int) -> None:
        with self.store.transaction() as tx:
            column = tx.require("columns", column_id)
            self._require_manager(tx, self._column_project(tx, column), user_id)
            cascade_delete_tasks(tx, {t.id for t in tx.find("tasks", column_id=column_id)})
            self.column_positions.delete(column_id, tx=tx)
        logger.info("Deleted column {} from board {}", column_id, column.board_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    @staticmethod
    def _check_priority(priority: Optional[str]) -> None:
        if priority is not None and priority not in TASK_PRIORITIES:
            raise ValidationError(f"Priority must be one of: {', '.join(TASK_PRIORITIES)}")

    def create_task(
        self,
        user_id: int,
        *,
        title: str,
        column_id: int,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        assignee_id: Optional[int] = None,
        due_date: Optional[str] = None,
        diary_entry_id: Optional[int] = None,
    ) -> dict[str, Any]:
        """Append a task to *column_id*; the assignee defaults to the creator."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Task title is required")
        self._check_priority(priority)
        with self.store.transaction() as tx:
            column = tx.require("columns", column_id)
            self._require_member(tx, self._column_project(tx, column), user_id)
            if assignee_id is not None:
                tx.require("users", assignee_id, label="Assignee")
            if diary_entry_id is not None:
                self._require_own_entry(tx, diary_entry_id, user_id)
            position = self.task_positions.insert(column_id, tx=tx)
            task = tx.add("tasks", Task(
                title=title,
                description=description,
                priority=priority or "medium",  # type: ignore[arg-type]
                column_id=column_id,
                assignee_id=assignee_id or user_id,
                due_date=due_date,
                position=position,
                diary_entry_id=diary_entry_id,
            ))
            view = self._task_view(tx, task)
        logger.info("Created task {} in column {} at {}", task.id, column_id, position)
        return view

    def get_task(self, task_id: int, user_id: int) -> dict[str, Any]:
        with self.store.transaction() as tx:
            task = self._accessible_task(tx, task_id, user_id)
            return self._task_view(tx, task, location=True)

    def update_task(self, task_id: int, user_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        """Apply partial updates to a task.

        A ``project_id`` different from the task's own project moves the task
        to the end of the first column of that project's first board.
        """
        fields = {k: v for k, v in changes.items() if k in _TASK_FIELDS}
        target_project = changes.get("project_id")
        if not fields and target_project is None:
            raise ValidationError("No valid updates provided")
        if "title" in fields and not (fields["title"] or "").strip():
            raise ValidationError("Task title is required")
        if "priority" in fields:
            self._check_priority(fields["priority"] or "")

        with self.store.transaction() as tx:
            task = self._accessible_task(tx, task_id, user_id)
            if fields.get("assignee_id") is not None:
                tx.require("users", fields["assignee_id"], label="Assignee")
            if fields.get("diary_entry_id") is not None:
                self._require_own_entry(tx, fields["diary_entry_id"], user_id)

            if target_project is not None and target_project != self._task_project(tx, task):
                tx.require("projects", target_project)
                self._require_member(tx, target_project, user_id, "Access denied to target project")
                column = self._first_column(tx, target_project)
                if column is None:
                    raise ValidationError("No columns found in target project")
                count = len(tx.find("tasks", column_id=column.id))
                self.task_positions.move(task.id, column.id, count, tx=tx)
                logger.info("Moved task {} to project {} (column {})", task.id, target_project, column.id)

            for key, value in fields.items():
                setattr(task, key, value.strip() if key == "title" else value)
            tx.touch(task)
            return self._task_view(tx, task)

    def move_task(self, task_id: int, user_id: int, column_id: int, position: int = 0) -> dict[str, Any]:
        """Move a task within or across columns of its own project."""
        with self.store.transaction() as tx:
            task = self._accessible_task(tx, task_id, user_id)
            column = tx.require("columns", column_id)
            if self._column_project(tx, column) != self._task_project(tx, task):
                raise ValidationError("Cannot move task to different project")
            task = self.task_positions.move(task_id, column_id, position, tx=tx)
            return self._task_view(tx, task)

    def delete_task(self, task_id: int, user_id: int) -> None:
        with self.store.transaction() as tx:
            self._accessible_task(tx, task_id, user_id)
            removed = self.graph.remove_task(tx, task_id)
            self.task_positions.delete(task_id, tx=tx)
        logger.info("Deleted task {} ({} dependency edge(s) removed)", task_id, removed)

    # ------------------------------------------------------------------
    # Search and statistics
    # ------------------------------------------------------------------

    @staticmethod
    def _matches(
        tx: StoreTx,
        task: Task,
        q: Optional[str],
        status: Optional[str],
        priority: Optional[str],
        assignee_id: Optional[int],
    ) -> bool:
        if q and q.strip():
            needle = q.strip().lower()
            if needle not in task.title.lower() and needle not in (task.description or "").lower():
                return False
        if status:
            column = tx.get("columns", task.column_id)
            if column is None or column.name != status:
                return False
        if priority and task.priority != priority:
            return False
        if assignee_id is not None and task.assignee_id != assignee_id:
            return False
        return True

    def _project_tasks(self, tx: StoreTx, project_ids: set[int]) -> list[Task]:
        board_ids = {b.id for b in tx.filter("boards", lambda b: b.project_id in project_ids)}
        column_ids = {c.id for c in tx.filter("columns", lambda c: c.board_id in board_ids)}
        return tx.filter("tasks", lambda t: t.column_id in column_ids)

    def search_tasks(
        self,
        user_id: int,
        project_id: int,
        *,
        q: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assignee_id: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Search one project; *status* matches the column name."""
        with self.store.transaction() as tx:
            self._require_member(tx, project_id, user_id)
            hits = [
                t for t in self._project_tasks(tx, {project_id})
                if self._matches(tx, t, q, status, priority, assignee_id)
            ]
            hits.sort(key=lambda t: t.created_at, reverse=True)
            return [self._task_view(tx, t, location=True) for t in hits]

    def search_global(
        self,
        user_id: int,
        *,
        q: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assignee_id: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Search every project the user belongs to, most recently updated first."""
        with self.store.transaction() as tx:
            project_ids = self._member_project_ids(tx, user_id)
            hits = [
                t for t in self._project_tasks(tx, project_ids)
                if self._matches(tx, t, q, status, priority, assignee_id)
            ]
            hits.sort(key=lambda t: t.updated_at, reverse=True)
            return [self._task_view(tx, t, location=True) for t in hits[:SEARCH_RESULT_LIMIT]]

    @staticmethod
    def _is_done(tx: StoreTx, task: Task) -> bool:
        column = tx.get("columns", task.column_id)
        return column is not None and column.name == DONE_COLUMN_NAME

    def _assigned_tasks(self, tx: StoreTx, user_id: int) -> list[Task]:
        return [
            t for t in self._project_tasks(tx, self._member_project_ids(tx, user_id))
            if t.assignee_id == user_id
        ]

    def my_tasks(self, user_id: int) -> list[dict[str, Any]]:
        """Tasks assigned to the user: overdue first, then due soon, then the rest."""
        now = datetime.now(timezone.utc)
        with self.store.transaction() as tx:
            tasks = self._assigned_tasks(tx, user_id)

            def urgency(task: Task) -> int:
                due = _parse_iso(task.due_date)
                if due is None or self._is_done(tx, task):
                    return 3
                if due < now:
                    return 1
                if due < now + timedelta(days=1):
                    return 2
                return 3

            # Stable sorts, least significant key first.
            tasks.sort(key=lambda t: t.updated_at, reverse=True)
            tasks.sort(key=lambda t: _PRIORITY_RANK.get(t.priority, 0), reverse=True)
            tasks.sort(key=lambda t: (t.due_date is None, _parse_iso(t.due_date) or now))
            tasks.sort(key=urgency)
            return [self._task_view(tx, t, location=True) for t in tasks]

    @staticmethod
    def _count_by(values: list[Any], label: str) -> list[dict[str, Any]]:
        counts: dict[Any, int] = {}
        for value in values:
            counts[value] = counts.get(value, 0) + 1
        return [{label: value, "count": count} for value, count in counts.items()]

    def my_stats(self, user_id: int) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        week_ago = now - timedelta(days=7)
        with self.store.transaction() as tx:
            tasks = self._assigned_tasks(tx, user_id)
            statuses = []
            overdue = upcoming = completed = 0
            for task in tasks:
                column = tx.get("columns", task.column_id)
                statuses.append(column.name if column else None)
                done = self._is_done(tx, task)
                due = _parse_iso(task.due_date)
                if due is not None and not done:
                    if due < now:
                        overdue += 1
                    elif due <= now + timedelta(days=7):
                        upcoming += 1
                updated = _parse_iso(task.updated_at)
                if done and updated is not None and updated >= week_ago:
                    completed += 1

        order = {name: index for index, name in enumerate(DEFAULT_COLUMNS)}
        by_status = self._count_by(statuses, "status")
        by_status.sort(key=lambda row: order.get(row["status"], len(order)))
        return {
            "total": len(tasks),
            "by_status": by_status,
            "by_priority": self._count_by([t.priority for t in tasks], "priority"),
            "overdue": overdue,
            "upcoming": upcoming,
            "completed_this_week": completed,
        }

    def project_stats(self, project_id: int, user_id: int) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        with self.store.transaction() as tx:
            self._require_member(tx, project_id, user_id)
            tasks = self._project_tasks(tx, {project_id})
            by_status = []
            for board in self.board_positions.siblings(tx, project_id):
                for column in self.column_positions.siblings(tx, board.id):
                    by_status.append({
                        "status": column.name,
                        "count": len(tx.find("tasks", column_id=column.id)),
                    })
            assignees = []
            for task in tasks:
                user = tx.get("users", task.assignee_id)
                assignees.append(user.name if user else None)
            overdue = 0
            for task in tasks:
                due = _parse_iso(task.due_date)
                if due is not None and due < now and not self._is_done(tx, task):
                    overdue += 1
        return {
            "total": len(tasks),
            "by_status": by_status,
            "by_priority": self._count_by([t.priority for t in tasks], "priority"),
            "by_assignee": self._count_by(assignees, "assignee"),
            "overdue": overdue,
        }

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def _dependency_view(self, tx: StoreTx, task_id: int) -> dict[str, Any]:
        task = tx.require("tasks", task_id)
        column = tx.get("columns", task.column_id)
        assignee = tx.get("users", task.assignee_id)
        return {
            "id": task.id,
            "title": task.title,
            "priority": task.priority,
            "column_name": column.name if column else None,
            "assignee_name": assignee.name if assignee else None,
        }

    def get_dependencies(self, task_id: int, user_id: int) -> dict[str, list[dict[str, Any]]]:
        """Prerequisites (``blocked_by``) and dependents (``blocking``) of a task."""
        with self.store.transaction() as tx:
            self._accessible_task(tx, task_id, user_id)
            return {
                "blocked_by": [self._dependency_view(tx, i) for i in self.graph.blocked_by(tx, task_id)],
                "blocking": [self._dependency_view(tx, i) for i in self.graph.blocking(tx, task_id)],
            }

    def add_dependency(self, task_id: int, user_id: int, depends_on_id: int) -> dict[str, Any]:
        """Record that *task_id* cannot be complete until *depends_on_id* is."""
        if task_id == depends_on_id:
            raise SelfReferenceError("A task cannot depend on itself")
        with self.store.transaction() as tx:
            self._accessible_task(tx, task_id, user_id)
            target = tx.require("tasks", depends_on_id, label="Target task")
            self._require_member(tx, self._task_project(tx, target), user_id, "Access denied to target task")
            edge = self.graph.add_edge(task_id, depends_on_id, tx=tx)
            return edge.to_dict()

    def remove_dependency(self, task_id: int, user_id: int, depends_on_id: int) -> None:
        with self.store.transaction() as tx:
            self._accessible_task(tx, task_id, user_id)
            self.graph.remove_edge(task_id, depends_on_id, tx=tx)
        logger.info("Removed dependency {} -> {}", task_id, depends_on_id)

    def execution_order(self, project_id: int, user_id: int) -> list[list[int]]:
        """Batches of a project's task ids, prerequisites first."""
        with self.store.transaction() as tx:
            self._require_member(tx, project_id, user_id)
            ids = [t.id for t in self._project_tasks(tx, {project_id})]
            return self.graph.execution_order(tx, ids)

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def check_integrity(self) -> list[str]:
        """Return a description of every container whose positions are not dense."""
        problems: list[str] = []
        with self.store.transaction() as tx:
            for project in tx.all("projects"):
                if not self.board_positions.check_density(project.id, tx=tx):
                    problems.append(f"project {project.id}: board positions")
            for board in tx.all("boards"):
                if not self.column_positions.check_density(board.id, tx=tx):
                    problems.append(f"board {board.id}: column positions")
            for column in tx.all("columns"):
                if not self.task_positions.check_density(column.id, tx=tx):
                    problems.append(f"column {column.id}: task positions")
        return problems

    def normalize_positions(self) -> int:
        """Renumber every container to ``0..n-1``; return rows changed."""
        changed = 0
        with self.store.transaction() as tx:
            for project in tx.all("projects"):
                changed += self.board_positions.normalize(project.id, tx=tx)
            for board in tx.all("boards"):
                changed += self.column_positions.normalize(board.id, tx=tx)
            for column in tx.all("columns"):
                changed += self.task_positions.normalize(column.id, tx=tx)
        if changed:
            logger.info("Normalized {} position(s)", changed)
        return changed
