"""Administrator endpoints mounted under ``/api/admin``; every route requires role ``admin``."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..board_engine.model import User
from ..context import AppContext
from .models import AdminUserCreateRequest, AdminUserUpdateRequest, BackupInfo


def create_admin_router(context: AppContext, require_admin: Any) -> APIRouter:
    router = APIRouter(prefix="/api/admin", tags=["admin"])
    accounts = context.accounts

    @router.get("/users")
    async def list_users(admin: User = Depends(require_admin)) -> list[dict[str, Any]]:
        return accounts.list_users()

    # Password hashing blocks; plain def runs in the threadpool.
    @router.post("/users", status_code=201)
    def create_user(body: AdminUserCreateRequest, admin: User = Depends(require_admin)) -> dict[str, Any]:
        return accounts.create_user(body.email, body.name, body.password, body.role).public_dict()

    @router.put("/users/{user_id}")
    def update_user(
        user_id: int,
        body: AdminUserUpdateRequest,
        admin: User = Depends(require_admin),
    ) -> dict[str, Any]:
        user = accounts.update_user(user_id, **body.model_dump(exclude_none=True))
        return user.public_dict()

    @router.delete("/users/{user_id}")
    async def delete_user(user_id: int, admin: User = Depends(require_admin)) -> dict[str, str]:
        accounts.delete_user(user_id, admin.id)
        return {"message": "User deleted successfully"}

    @router.delete("/cleanup-test-users")
    async def cleanup_test_users(admin: User = Depends(require_admin)) -> dict[str, Any]:
        removed = accounts.cleanup_test_users()
        return {"success": True, "removed": removed, "message": f"Cleaned up {removed} test users"}

    @router.get("/stats")
    async def stats(admin: User = Depends(require_admin)) -> dict[str, int]:
        return accounts.stats()

    @router.post("/backup", response_model=BackupInfo)
    async def backup(admin: User = Depends(require_admin)) -> BackupInfo:
        return BackupInfo(**accounts.backup())

    @router.get("/backups")
    async def list_backups(admin: User = Depends(require_admin)) -> list[dict[str, Any]]:
        return accounts.list_backups()

    return router
