"""Task API endpoints for the Kanban board.

This module provides a FastAPI router with task CRUD, moves, search,
statistics and dependency management.  It is mounted under ``/api/tasks``
by the main ``create_app`` factory.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response

from ..board_engine.model import User
from ..context import AppContext
from .models import (
    DependenciesResponse,
    DependencyCreateRequest,
    ExecutionOrderResponse,
    TaskCreateRequest,
    TaskMoveRequest,
    TaskUpdateRequest,
)


def create_task_router(context: AppContext, get_current_user: Any) -> APIRouter:
    """Create the task API router.

    Parameters
    ----------
    context:
        Application context holding the board engine.
    get_current_user:
        Dependency resolving the authenticated :class:`User`.
    """
    router = APIRouter(prefix="/api/tasks", tags=["tasks"])
    engine = context.engine

    # ------------------------------------------------------------------
    # Search and statistics (declared before /{task_id})
    # ------------------------------------------------------------------

    @router.get("/search")
    async def search_tasks(
        project_id: int = Query(...),
        q: Optional[str] = Query(None),
        status: Optional[str] = Query(None),
        priority: Optional[str] = Query(None),
        assignee_id: Optional[int] = Query(None),
        user: User = Depends(get_current_user),
    ) -> list[dict[str, Any]]:
        return engine.search_tasks(
            user.id,
            project_id,
            q=q,
            status=status,
            priority=priority,
            assignee_id=assignee_id,
        )

    @router.get("/search/global")
    async def search_global(
        q: Optional[str] = Query(None),
        status: Optional[str] = Query(None),
        priority: Optional[str] = Query(None),
        assignee_id: Optional[int] = Query(None),
        user: User = Depends(get_current_user),
    ) -> list[dict[str, Any]]:
        return engine.search_global(user.id, q=q, status=status, priority=priority, assignee_id=assignee_id)

    @router.get("/my-tasks")
    async def my_tasks(user: User = Depends(get_current_user)) -> list[dict[str, Any]]:
        return engine.my_tasks(user.id)

    @router.get("/my-stats")
    async def my_stats(user: User = Depends(get_current_user)) -> dict[str, Any]:
        return engine.my_stats(user.id)

    @router.get("/stats/{project_id}")
    async def project_stats(project_id: int, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return engine.project_stats(project_id, user.id)

    @router.get("/order/{project_id}", response_model=ExecutionOrderResponse)
    async def execution_order(project_id: int, user: User = Depends(get_current_user)) -> ExecutionOrderResponse:
        return ExecutionOrderResponse(batches=engine.execution_order(project_id, user.id))

    # ------------------------------------------------------------------
    # CRUD and moves
    # ------------------------------------------------------------------

    @router.post("", status_code=201)
    async def create_task(body: TaskCreateRequest, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return engine.create_task(user.id, **body.model_dump())

    @router.get("/{task_id}")
    async def get_task(task_id: int, user: User = Depends(get_current_user)) -> dict[str, Any]:
        return engine.get_task(task_id, user.id)

    @router.put("/{task_id}")
    async def update_task(
        task_id: int,
        body: TaskUpdateRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return engine.update_task(task_id, user.id, body.model_dump(exclude_unset=True))

    @router.put("/{task_id}/move")
    async def move_task(
        task_id: int,
        body: TaskMoveRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return engine.move_task(task_id, user.id, body.column_id, body.position)

    @router.delete("/{task_id}", status_code=204)
    async def delete_task(task_id: int, user: User = Depends(get_current_user)) -> Response:
        engine.delete_task(task_id, user.id)
        return Response(status_code=204)

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    @router.get("/{task_id}/dependencies", response_model=DependenciesResponse)
    async def get_dependencies(task_id: int, user: User = Depends(get_current_user)) -> DependenciesResponse:
        return DependenciesResponse(**engine.get_dependencies(task_id, user.id))

    @router.post("/{task_id}/dependencies", status_code=201)
    async def add_dependency(
        task_id: int,
        body: DependencyCreateRequest,
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return engine.add_dependency(task_id, user.id, body.depends_on_task_id)

    @router.delete("/{task_id}/dependencies/{depends_on_id}", status_code=204)
    async def remove_dependency(
        task_id: int,
        depends_on_id: int,
        user: User = Depends(get_current_user),
    ) -> Response:
        engine.remove_dependency(task_id, user.id, depends_on_id)
        return Response(status_code=204)

    return router
