"""Personal planner: calendar events, diary entries and goals.

Every record here belongs to one user and is only visible to that user;
looking up someone else's record reports it as missing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from loguru import logger

from ..constants import DIARY_BY_DATE_LIMIT, DIARY_CATEGORIES, EVENT_TYPES, TASK_PRIORITIES
from ..errors import AccessDeniedError, NotFoundError, ValidationError
from ..utils import _parse_date, _parse_iso
from .model import DiaryEntry, Event, Goal
from .store import BoardStore, StoreTx

_EVENT_FIELDS = ("title", "description", "start_date", "end_date", "all_day", "event_type", "priority", "project_id")
_DIARY_FIELDS = ("title", "content", "category", "date")
_GOAL_FIELDS = ("title", "description", "category", "completed", "target_date")


def _require_text(value: Optional[str], what: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{what} is required")
    return value


def _require_datetime(value: Optional[str], what: str) -> datetime:
    parsed = _parse_iso(value)
    if parsed is None:
        raise ValidationError(f"Valid {what} is required")
    return parsed


def _choice(value: str, allowed: tuple[str, ...], what: str) -> str:
    if value not in allowed:
        raise ValidationError(f"{what} must be one of: {', '.join(allowed)}")
    return value


class PlannerService:
    """Events, diary entries and goals for individual users."""

    def __init__(self, store: BoardStore) -> None:
        self.store = store

    @staticmethod
    def _owned(tx: StoreTx, collection: str, record_id: int, user_id: int, label: str) -> Any:
        record = tx.get(collection, record_id)
        if record is None or record.user_id != user_id:
            raise NotFoundError(f"{label} not found")
        return record

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @staticmethod
    def _event_view(tx: StoreTx, event: Event) -> dict[str, Any]:
        data = event.to_dict()
        project = tx.get("projects", event.project_id)
        data["project_name"] = project.name if project else None
        return data

    @staticmethod
    def _check_project(tx: StoreTx, project_id: Optional[int], user_id: int) -> None:
        if project_id is None:
            return
        if tx.first("project_members", project_id=project_id, user_id=user_id) is None:
            raise AccessDeniedError("Access denied to this project")

    @staticmethod
    def _check_event(event: Event) -> None:
        _require_text(event.title, "Title")
        start = _require_datetime(event.start_date, "start date")
        if event.end_date:
            end = _require_datetime(event.end_date, "end date")
            if end <= start:
                raise ValidationError("End date must be after start date")
        _choice(event.event_type, EVENT_TYPES, "Event type")
        _choice(event.priority, TASK_PRIORITIES, "Priority")

    def list_events(
        self,
        user_id: int,
        *,
        start: Optional[str] = None,
        end: Optional[str] = None,
        project_id: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """The user's events ordered by start, optionally windowed on start date."""
        lower = _require_datetime(start, "start") if start else None
        upper = _require_datetime(end, "end") if end else None
        with self.store.transaction() as tx:
            selected = []
            for event in tx.find("events", user_id=user_id):
                begins = _parse_iso(event.start_date)
                if begins is None:
                    continue
                if lower is not None and begins < lower:
                    continue
                if upper is not None and begins > upper:
                    continue
                if project_id is not None and event.project_id != project_id:
                    continue
                selected.append((begins, event))
            selected.sort(key=lambda pair: pair[0])
            return [self._event_view(tx, event) for _, event in selected]

    def get_event(self, event_id: int, user_id: int) -> dict[str, Any]:
        with self.store.transaction() as tx:
            return self._event_view(tx, self._owned(tx, "events", event_id, user_id, "Event"))

    def create_event(self, user_id: int, **fields: Any) -> dict[str, Any]:
        values = {k: v for k, v in fields.items() if k in _EVENT_FIELDS and v is not None}
        event = Event(user_id=user_id, **values)
        event.all_day = bool(event.all_day)
        self._check_event(event)
        with self.store.transaction() as tx:
            self._check_project(tx, event.project_id, user_id)
            tx.add("events", event)
            view = self._event_view(tx, event)
        logger.info("Created event {} for user {}", event.id, user_id)
        return view

    def update_event(self, event_id: int, user_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        updates = {k: v for k, v in changes.items() if k in _EVENT_FIELDS}
        if not updates:
            raise ValidationError("No valid updates provided")
        with self.store.transaction() as tx:
            event = self._owned(tx, "events", event_id, user_id, "Event")
            if updates.get("project_id") is not None:
                self._check_project(tx, updates["project_id"], user_id)
            for key, value in updates.items():
                setattr(event, key, bool(value) if key == "all_day" else value)
            # Raising here discards the in-memory edits with the transaction.
            self._check_event(event)
            tx.touch(event)
            return self._event_view(tx, event)

    def delete_event(self, event_id: int, user_id: int) -> None:
        with self.store.transaction() as tx:
            self._owned(tx, "events", event_id, user_id, "Event")
            tx.delete("events", event_id)

    # ------------------------------------------------------------------
    # Diary
    # ------------------------------------------------------------------

    @staticmethod
    def _linked_tasks(tx: StoreTx, entry_id: int) -> list[dict[str, Any]]:
        out = []
        for task in tx.find("tasks", diary_entry_id=entry_id):
            column = tx.get("columns", task.column_id)
            board = tx.get("boards", column.board_id) if column else None
            project = tx.get("projects", board.project_id) if board else None
            out.append({
                "id": task.id,
                "title": task.title,
                "priority": task.priority,
                "column_name": column.name if column else None,
                "project_name": project.name if project else None,
            })
        return out

    @staticmethod
    def _check_entry(entry: DiaryEntry) -> None:
        _require_text(entry.title, "Title")
        _require_text(entry.content, "Content")
        _choice(entry.category, DIARY_CATEGORIES, "Category")
        if _parse_date(entry.date) is None:
            raise ValidationError("Valid date is required")

    def list_entries(
        self,
        user_id: int,
        *,
        date: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Diary entries, newest date first, each with the tasks linked to it."""
        if category is not None:
            _choice(category, DIARY_CATEGORIES, "Category")
        needle = (search or "").strip().lower()
        with self.store.transaction() as tx:
            entries = []
            for entry in tx.find("diary_entries", user_id=user_id):
                if date and entry.date != date:
                    continue
                if category and entry.category != category:
                    continue
                if needle and needle not in entry.title.lower() and needle not in entry.content.lower():
                    continue
                entries.append(entry)
            entries.sort(key=lambda e: (e.date, e.created_at), reverse=True)
            out = []
            for entry in entries:
                data = entry.to_dict()
                data["linked_tasks"] = self._linked_tasks(tx, entry.id)
                out.append(data)
            return out

    def entries_by_date(self, user_id: int) -> list[dict[str, Any]]:
        """Per-day entry counts and categories for the most recent days."""
        with self.store.transaction() as tx:
            grouped: dict[str, list[str]] = {}
            for entry in tx.find("diary_entries", user_id=user_id):
                grouped.setdefault(entry.date, []).append(entry.category)
        days = sorted(grouped, reverse=True)[:DIARY_BY_DATE_LIMIT]
        return [{"date": day, "count": len(grouped[day]), "categories": grouped[day]} for day in days]

    def create_entry(self, user_id: int, *, title: str, content: str, category: str, date: str) -> DiaryEntry:
        entry = DiaryEntry(
            title=(title or "").strip(),
            content=(content or "").strip(),
            category=category,  # type: ignore[arg-type]
            date=date,
            user_id=user_id,
        )
        self._check_entry(entry)
        with self.store.transaction() as tx:
            tx.add("diary_entries", entry)
        logger.info("Created diary entry {} for user {}", entry.id, user_id)
        return entry

    def get_entry(self, entry_id: int, user_id: int) -> dict[str, Any]:
        with self.store.transaction() as tx:
            entry = self._owned(tx, "diary_entries", entry_id, user_id, "Entry")
            data = entry.to_dict()
            data["linked_tasks"] = self._linked_tasks(tx, entry.id)
            return data

    def update_entry(self, entry_id: int, user_id: int, changes: dict[str, Any]) -> DiaryEntry:
        updates = {k: v for k, v in changes.items() if k in _DIARY_FIELDS and v is not None}
        if not updates:
            raise ValidationError("No valid updates provided")
        with self.store.transaction() as tx:
            entry = self._owned(tx, "diary_entries", entry_id, user_id, "Entry")
            for key, value in updates.items():
                setattr(entry, key, value.strip() if key in ("title", "content") else value)
            self._check_entry(entry)
            tx.touch(entry)
            return entry

    def delete_entry(self, entry_id: int, user_id: int) -> None:
        """Delete an entry and unlink the tasks that pointed at it."""
        with self.store.transaction() as tx:
            self._owned(tx, "diary_entries", entry_id, user_id, "Entry")
            for task in tx.find("tasks", diary_entry_id=entry_id):
                task.diary_entry_id = None
                tx.touch(task)
            tx.delete("diary_entries", entry_id)

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def list_goals(self, user_id: int) -> list[Goal]:
        """Open goals first, newest first within each group."""
        with self.store.transaction() as tx:
            goals = tx.find("goals", user_id=user_id)
        goals.sort(key=lambda g: g.created_at, reverse=True)
        goals.sort(key=lambda g: g.completed)
        return goals

    def create_goal(
        self,
        user_id: int,
        *,
        title: str,
        description: Optional[str] = None,
        category: Optional[str] = None,
        completed: bool = False,
        target_date: Optional[str] = None,
    ) -> Goal:
        goal = Goal(
            title=_require_text(title, "Title"),
            description=description,
            category=category,
            completed=bool(completed),
            target_date=target_date,
            user_id=user_id,
        )
        with self.store.transaction() as tx:
            tx.add("goals", goal)
        return goal

    def update_goal(self, goal_id: int, user_id: int, changes: dict[str, Any]) -> Goal:
        updates = {k: v for k, v in changes.items() if k in _GOAL_FIELDS}
        if "title" in updates:
            updates["title"] = _require_text(updates["title"], "Title")
        with self.store.transaction() as tx:
            goal = self._owned(tx, "goals", goal_id, user_id, "Goal")
            for key, value in updates.items():
                setattr(goal, key, bool(value) if key == "completed" else value)
            tx.touch(goal)
            return goal

    def delete_goal(self, goal_id: int, user_id: int) -> None:
        with self.store.transaction() as tx:
            self._owned(tx, "goals", goal_id, user_id, "Goal")
            tx.delete("goals", goal_id)
