"""Record types persisted by the board store.

Every record is a plain dataclass with an integer ``id`` allocated by the
store and ``to_dict()`` / ``from_dict()`` helpers for YAML persistence.
Enumerated fields are kept as strings (validated at the API boundary and in
the services) so the stored document stays human-readable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Literal, Optional, TypeVar

from ..utils import _now_iso

Priority = Literal["low", "medium", "high", "urgent"]
UserRole = Literal["user", "admin"]
MemberRole = Literal["owner", "admin", "member"]
EventType = Literal["event", "deadline", "meeting", "reminder"]
DiaryCategory = Literal["meeting", "action", "note", "decision", "follow-up"]

R = TypeVar("R", bound="_Record")


class _Record:
    """Shared (de)serialization for store records."""

    id: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def from_dict(cls: type[R], data: dict[str, Any]) -> R:
        """Build a record from a stored mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        return cls(**{k: v for k, v in data.items() if k in known})

    def touch(self) -> None:
        if hasattr(self, "updated_at"):
            self.updated_at = _now_iso()  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Accounts and projects
# ---------------------------------------------------------------------------

@dataclass
class User(_Record):
    id: int = 0
    email: str = ""
    name: str = ""
    password_hash: str = ""
    role: UserRole = "user"
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def public_dict(self) -> dict[str, Any]:
        """Serialize without the password hash."""
        data = self.to_dict()
        data.pop("password_hash", None)
        return data


@dataclass
class Project(_Record):
    id: int = 0
    name: str = ""
    description: Optional[str] = None
    owner_id: int = 0
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)


@dataclass
class ProjectMember(_Record):
    """Membership row; ``(project_id, user_id)`` is unique."""

    id: int = 0
    project_id: int = 0
    user_id: int = 0
    role: MemberRole = "member"
    joined_at: str = field(default_factory=_now_iso)

    @property
    def can_manage(self) -> bool:
        return self.role in ("owner", "admin")


# ---------------------------------------------------------------------------
# Kanban
# ---------------------------------------------------------------------------

@dataclass
class Board(_Record):
    id: int = 0
    name: str = ""
    project_id: int = 0
    position: int = 0
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)


@dataclass
class Column(_Record):
    id: int = 0
    name: str = ""
    board_id: int = 0
    position: int = 0
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)


@dataclass
class Task(_Record):
    id: int = 0
    title: str = ""
    description: Optional[str] = None
    priority: Priority = "medium"
    column_id: int = 0
    assignee_id: Optional[int] = None
    due_date: Optional[str] = None
    position: int = 0
    diary_entry_id: Optional[int] = None
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)


@dataclass
class Dependency(_Record):
    """Canonical edge: ``task_id`` depends on ``depends_on_task_id``."""

    id: int = 0
    task_id: int = 0
    depends_on_task_id: int = 0
    created_at: str = field(default_factory=_now_iso)

    @property
    def pair(self) -> tuple[int, int]:
        return (self.task_id, self.depends_on_task_id)


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

@dataclass
class Event(_Record):
    id: int = 0
    title: str = ""
    description: Optional[str] = None
    start_date: str = ""
    end_date: Optional[str] = None
    all_day: bool = False
    event_type: EventType = "event"
    priority: Priority = "medium"
    project_id: Optional[int] = None
    user_id: int = 0
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)


@dataclass
class DiaryEntry(_Record):
    id: int = 0
    title: str = ""
    content: str = ""
    category: DiaryCategory = "note"
    date: str = ""
    user_id: int = 0
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)


@dataclass
class Goal(_Record):
    id: int = 0
    title: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    completed: bool = False
    target_date: Optional[str] = None
    user_id: int = 0
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)


RECORD_TYPES: dict[str, type[_Record]] = {
    "users": User,
    "projects": Project,
    "project_members": ProjectMember,
    "boards": Board,
    "columns": Column,
    "tasks": Task,
    "dependencies": Dependency,
    "events": Event,
    "diary_entries": DiaryEntry,
    "goals": Goal,
}
