"""Calendar events, diary and goals, mounted under ``/api/events``,
``/api/diary`` and ``/api/goals``."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response

from ..board_engine.model import User
from ..context import AppContext
from .models import (
    DiaryCreateRequest,
    DiaryUpdateRequest,
    EventCreateRequest,
    EventUpdateRequest,
    GoalCreateRequest,
    GoalUpdateRequest,
)


def create_planner_router(context: AppContext, get_current_user: Any) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["planner"])
    planner = context.planner

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @router.get("/events")
    async def list_events(
        start: Optional[str] = Query(None),
        end: Optional[str] = Query(None),
        project_id: Optional[int] = Query(None),
        user: User = Depends(get_current_user),
    ) -> list[dict[str, Any]]:
        return planner.list_events(user.id, start=start, end=end, project_id=project_id)

    @router.post("/events", status_code=201)
    async def create_event(body: EventCreateRequest, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return planner.create_event(user.id, **body.model_dump())

    @router.get("/events/{event_id}")
    async def get_event(event_id: int, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return planner.get_event(event_id, user.id)

    @router.put("/events/{event_id}")
    async def update_event(
        event_id: int,
        body: EventUpdateRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return planner.update_event(event_id, user.id, body.model_dump(exclude_unset=True))

    @router.delete("/events/{event_id}", status_code=204)
    async def delete_event(event_id: int, user: User = Depends(get_current_user)) -> Response:
        planner.delete_event(event_id, user.id)
        return Response(status_code=204)

    # ------------------------------------------------------------------
    # Diary
    # ------------------------------------------------------------------

    @router.get("/diary")
    async def list_entries(
        date: Optional[str] = Query(None),
        category: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        user: User = Depends(get_current_user),
    ) -> list[dict[str, Any]]:
        return planner.list_entries(user.id, date=date, category=category, search=search)

    @router.get("/diary/by-date")
    async def entries_by_date(user: User = Depends(get_current_user)) -> list[dict[str, Any]]:
        return planner.entries_by_date(user.id)

    @router.post("/diary", status_code=201)
    async def create_entry(body: DiaryCreateRequest, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return planner.create_entry(user.id, **body.model_dump()).to_dict()

    @router.get("/diary/{entry_id}")
    async def get_entry(entry_id: int, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return planner.get_entry(entry_id, user.id)

    @router.put("/diary/{entry_id}")
    async def update_entry(
        entry_id: int,
        body: DiaryUpdateRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return planner.update_entry(entry_id, user.id, body.model_dump(exclude_unset=True)).to_dict()

    @router.delete("/diary/{entry_id}", status_code=204)
    async def delete_entry(entry_id: int, user: User = Depends(get_current_user)) -> Response:
        planner.delete_entry(entry_id, user.id)
        return Response(status_code=204)

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    @router.get("/goals")
    async def list_goals(user: User = Depends(get_current_user)) -> list[dict[str, Any]]:
        return [g.to_dict() for g in planner.list_goals(user.id)]

    @router.post("/goals", status_code=201)
    async def create_goal(body: GoalCreateRequest, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return planner.create_goal(user.id, **body.model_dump()).to_dict()

    @router.put("/goals/{goal_id}")
    async def update_goal(
        goal_id: int,
        body: GoalUpdateRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return planner.update_goal(goal_id, user.id, body.model_dump(exclude_unset=True)).to_dict()

    @router.delete("/goals/{goal_id}", status_code=204)
    async def delete_goal(goal_id: int, user: User = Depends(get_current_user)) -> Response:
        planner.delete_goal(goal_id, user.id)
        return Response(status_code=204)

    return router
