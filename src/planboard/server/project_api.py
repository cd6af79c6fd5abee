"""Project, membership and board endpoints.

Two routers are built here: ``/api/projects`` (projects and members) and
``/api/boards`` (boards and their columns).  Membership is enforced by the
board engine, so handlers only translate HTTP to engine calls.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Response

from ..board_engine.model import User
from ..context import AppContext
from .models import (
    BoardCreateRequest,
    ColumnCreateRequest,
    ColumnMoveRequest,
    ColumnUpdateRequest,
    MemberAddRequest,
    ProjectCreateRequest,
    ProjectUpdateRequest,
)


def create_project_router(context: AppContext, get_current_user: Any) -> APIRouter:
    router = APIRouter(prefix="/api/projects", tags=["projects"])
    engine = context.engine

    @router.get("")
    async def list_projects(user: User = Depends(get_current_user)) -> list[dict[str, Any]]:
        return engine.list_projects(user.id)

    @router.post("", status_code=201)
    async def create_project(body: ProjectCreateRequest, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return engine.create_project(user.id, body.name, body.description).to_dict()

    @router.get("/{project_id}")
    async def get_project(project_id: int, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return engine.get_project(project_id, user.id)

    @router.put("/{project_id}")
    async def update_project(
        project_id: int,
        body: ProjectUpdateRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        project = engine.update_project(project_id, user.id, name=body.name, description=body.description)
        return project.to_dict()

    @router.delete("/{project_id}", status_code=204)
    async def delete_project(project_id: int, user: User = Depends(get_current_user)) -> Response:
        engine.delete_project(project_id, user.id)
        return Response(status_code=204)

    @router.get("/{project_id}/members")
    async def list_members(project_id: int, user: User = Depends(get_current_user)) -> list[dict[str, Any]]:
        return engine.list_members(project_id, user.id)

    @router.post("/{project_id}/members", status_code=201)
    async def add_member(
        project_id: int,
        body: MemberAddRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return engine.add_member(project_id, user.id, body.email, body.role).to_dict()

    return router


def create_board_router(context: AppContext, get_current_user: Any) -> APIRouter:
    router = APIRouter(prefix="/api/boards", tags=["boards"])
    engine = context.engine

    @router.get("/project/{project_id}")
    async def get_project_board(
        project_id: int,
        user: User = Depends(get_current_user),
    ) -> Optional[dict[str, Any]]:
        return engine.get_project_board(project_id, user.id)

    @router.get("/{board_id}")
    async def get_board(board_id: int, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return engine.get_board(board_id, user.id)

    @router.post("", status_code=201)
    async def create_board(body: BoardCreateRequest, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return engine.create_board(body.project_id, user.id, body.name).to_dict()

    @router.post("/{board_id}/columns", status_code=201)
    async def add_column(
        board_id: int,
        body: ColumnCreateRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return engine.add_column(board_id, user.id, body.name).to_dict()

    @router.put("/columns/{column_id}")
    async def rename_column(
        column_id: int,
        body: ColumnUpdateRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return engine.rename_column(column_id, user.id, body.name).to_dict()

    @router.put("/columns/{column_id}/move")
    async def move_column(
        column_id: int,
        body: ColumnMoveRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return engine.move_column(column_id, user.id, body.position).to_dict()

    @router.delete("/columns/{column_id}", status_code=204)
    async def delete_column(column_id: int, user: User = Depends(get_current_user)) -> Response:
        engine.delete_column(column_id, user.id)
        return Response(status_code=204)

    return router
