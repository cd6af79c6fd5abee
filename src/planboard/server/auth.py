"""JWT bearer authentication for the REST API."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..board_engine.model import User
from ..config import AppConfig
from ..context import AppContext
from ..errors import NotFoundError

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(config: AppConfig, user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token.

    Args:
        config: Supplies the secret, algorithm and default lifetime.
        user: Account the token is issued for.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=config.token_expire_minutes)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(payload, config.secret_key, algorithm=config.algorithm)


def decode_access_token(config: AppConfig, token: str) -> Optional[dict[str, Any]]:
    """Decode and verify JWT access token.

    Returns:
        The token payload, or None if it is invalid or expired.
    """
    try:
        return jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def user_dependency(context: AppContext) -> Callable[..., Awaitable[User]]:
    """Build the ``get_current_user`` dependency bound to *context*.

    A missing bearer token is rejected with 401; a token that fails
    verification, or names a user that no longer exists, with 403.
    """

    async def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> User:
        if credentials is None or not credentials.credentials:
            raise HTTPException(status_code=401, detail="Access token required")
        payload = decode_access_token(context.config, credentials.credentials)
        if payload is None:
            raise HTTPException(status_code=403, detail="Invalid or expired token")
        try:
            return context.accounts.get_user(int(payload.get("sub", 0)))
        except (NotFoundError, TypeError, ValueError):
            raise HTTPException(status_code=403, detail="Invalid or expired token")

    return get_current_user


def admin_dependency(get_current_user: Callable[..., Awaitable[User]]) -> Callable[..., Awaitable[User]]:
    async def require_admin(user: User = Depends(get_current_user)) -> User:
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Admin access required")
        return user

    return require_admin
