"""FastAPI application factory for the planboard REST API."""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config import AppConfig
from ..context import AppContext
from ..errors import BoardError
from .admin_api import create_admin_router
from .auth import admin_dependency, user_dependency
from .auth_api import create_auth_router
from .planner_api import create_planner_router
from .project_api import create_board_router, create_project_router
from .task_api import create_task_router

STATUS_BY_CODE = {
    "not_found": 404,
    "access_denied": 403,
    "unauthenticated": 401,
    "invalid": 400,
    "self": 400,
    "cycle": 400,
    "conflict": 409,
    "duplicate": 409,
    "concurrency_conflict": 503,
}


def create_app(
    context: Optional[AppContext] = None,
    config: Optional[AppConfig] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        context: Prebuilt application context; built from *config* when omitted.
        config: Configuration used when no context is given.
        enable_cors: Whether to enable CORS.

    Returns:
        Configured FastAPI app.
    """
    if context is None:
        context = AppContext(config)

    app = FastAPI(
        title="planboard",
        description="Projects, Kanban boards, task dependencies and a personal planner",
        version=__version__,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=context.config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.context = context

    @app.exception_handler(BoardError)
    async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
        status = STATUS_BY_CODE.get(exc.code, 400)
        if status >= 500:
            logger.warning("{} {} failed: {}", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content={"error": exc.message, "code": exc.code})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    get_current_user = user_dependency(context)
    require_admin = admin_dependency(get_current_user)

    app.include_router(create_auth_router(context, get_current_user))
    app.include_router(create_project_router(context, get_current_user))
    app.include_router(create_board_router(context, get_current_user))
    app.include_router(create_task_router(context, get_current_user))
    app.include_router(create_planner_router(context, get_current_user))
    app.include_router(create_admin_router(context, require_admin))

    logger.debug("planboard API ready (data dir: {})", context.config.data_dir)
    return app
