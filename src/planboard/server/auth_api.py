"""Registration, login and the current-user endpoints, mounted under ``/api/auth``."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..board_engine.model import User
from ..context import AppContext
from .auth import create_access_token
from .models import LoginRequest, RegisterRequest, TokenResponse


def create_auth_router(context: AppContext, get_current_user: Any) -> APIRouter:
    router = APIRouter(prefix="/api/auth", tags=["auth"])

    # bcrypt blocks; plain def runs in the threadpool.
    @router.post("/register", response_model=TokenResponse, status_code=201)
    def register(body: RegisterRequest) -> TokenResponse:
        user = context.accounts.register(body.email, body.name, body.password)
        return TokenResponse(user=user.public_dict(), token=create_access_token(context.config, user))

    @router.post("/login", response_model=TokenResponse)
    def login(body: LoginRequest) -> TokenResponse:
        user = context.accounts.authenticate(body.email, body.password)
        return TokenResponse(user=user.public_dict(), token=create_access_token(context.config, user))

    @router.get("/me")
    async def me(user: User = Depends(get_current_user)) -> dict[str, Any]:
        return user.public_dict()

    @router.get("/users")
    async def list_users(user: User = Depends(get_current_user)) -> list[dict[str, Any]]:
        return context.accounts.directory()

    return router
