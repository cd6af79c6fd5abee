"""Pydantic request and response models for the REST API."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    """Issued on register and login."""

    user: dict[str, Any]
    token: str
    token_type: str = "bearer"


# ---------------------------------------------------------------------------
# Projects, boards, columns
# ---------------------------------------------------------------------------

class ProjectCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class MemberAddRequest(BaseModel):
    email: str
    role: str = "member"


class BoardCreateRequest(BaseModel):
    name: str
    project_id: int


class ColumnCreateRequest(BaseModel):
    name: str


class ColumnUpdateRequest(BaseModel):
    name: Optional[str] = None


class ColumnMoveRequest(BaseModel):
    position: int


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TaskCreateRequest(BaseModel):
    title: str
    column_id: int
    description: Optional[str] = None
    priority: Optional[str] = None
    assignee_id: Optional[int] = None
    due_date: Optional[str] = None
    diary_entry_id: Optional[int] = None


class TaskUpdateRequest(BaseModel):
    """Partial update; fields left out are untouched, explicit nulls clear."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    assignee_id: Optional[int] = None
    due_date: Optional[str] = None
    diary_entry_id: Optional[int] = None
    project_id: Optional[int] = None


class TaskMoveRequest(BaseModel):
    column_id: int
    position: int = 0


class DependencyCreateRequest(BaseModel):
    depends_on_task_id: int


class DependenciesResponse(BaseModel):
    blocked_by: list[dict[str, Any]] = Field(default_factory=list)
    blocking: list[dict[str, Any]] = Field(default_factory=list)


class ExecutionOrderResponse(BaseModel):
    batches: list[list[int]]


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

class EventCreateRequest(BaseModel):
    title: str
    start_date: str
    description: Optional[str] = None
    end_date: Optional[str] = None
    all_day: bool = False
    event_type: str = "event"
    priority: str = "medium"
    project_id: Optional[int] = None


class EventUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    all_day: Optional[bool] = None
    event_type: Optional[str] = None
    priority: Optional[str] = None
    project_id: Optional[int] = None


class DiaryCreateRequest(BaseModel):
    title: str
    content: str
    category: str
    date: str


class DiaryUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None


class GoalCreateRequest(BaseModel):
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    completed: bool = False
    target_date: Optional[str] = None


class GoalUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    completed: Optional[bool] = None
    target_date: Optional[str] = None


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

class AdminUserCreateRequest(BaseModel):
    email: str
    name: str
    password: str
    role: str = "user"


class AdminUserUpdateRequest(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = None


class BackupInfo(BaseModel):
    filename: str
    path: str
    size: str
    timestamp: str
