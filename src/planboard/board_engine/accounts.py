"""User accounts, credentials and the admin surface (users, stats, backups)."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import bcrypt
from loguru import logger

from ..constants import (
    BACKUP_PREFIX,
    DEFAULT_BCRYPT_ROUNDS,
    MIN_PASSWORD_LENGTH,
    TEST_USER_EMAIL_PREFIX,
    TEST_USER_EMAIL_SUFFIX,
    USER_ROLES,
)
from ..errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..utils import _now_iso
from .engine import cascade_delete_project
from .model import User
from .store import BoardStore, StoreTx

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    secret = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], password_hash.encode("ascii"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")
    return email


def _is_test_email(email: str) -> bool:
    return email.startswith(TEST_USER_EMAIL_PREFIX) and email.endswith(TEST_USER_EMAIL_SUFFIX)


def _size_mb(path: Path) -> str:
    return f"{path.stat().st_size / (1024 * 1024):.2f} MB"


class AccountService:
    """Registration, login and administrator operations.

    Parameters
    ----------
    store:
        Backing :class:`BoardStore`.
    backups_dir:
        Directory receiving store backups.
    bcrypt_rounds:
        Work factor for new password hashes.
    """

    def __init__(self, store: BoardStore, backups_dir: Path, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self.store = store
        self.backups_dir = backups_dir
        self.bcrypt_rounds = bcrypt_rounds

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    def _new_user(self, tx: StoreTx, email: str, name: str, password: str, role: str, duplicate_message: str) -> User:
        email = normalize_email(email)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if role not in USER_ROLES:
            raise ValidationError("Role must be either user or admin")
        if tx.first("users", email=email) is not None:
            raise ConflictError(duplicate_message)
        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password, self.bcrypt_rounds),
            role=role,  # type: ignore[arg-type]
        )
        return tx.add("users", user)

    def register(self, email: str, name: str, password: str) -> User:
        with self.store.transaction() as tx:
            user = self._new_user(tx, email, name, password, "user", "Email already registered")
        logger.info("Registered user {} ({})", user.id, user.email)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the user for valid credentials or raise :class:`AuthenticationError`."""
        with self.store.transaction() as tx:
            user = tx.first("users", email=(email or "").strip().lower())
        if user is None or not verify_password(password or "", user.password_hash):
            logger.warning("Failed login for {}", email)
            raise AuthenticationError("Invalid credentials")
        return user

    def get_user(self, user_id: int) -> User:
        with self.store.transaction() as tx:
            return tx.require("users", user_id)

    def directory(self) -> list[dict[str, Any]]:
        """Minimal user listing used for assignee pickers and invitations."""
        with self.store.transaction() as tx:
            users = tx.all("users")
        users.sort(key=lambda u: u.name.lower())
        return [{"id": u.id, "name": u.name, "email": u.email} for u in users]

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def list_users(self) -> list[dict[str, Any]]:
        with self.store.transaction() as tx:
            users = tx.all("users")
        users.sort(key=lambda u: u.created_at, reverse=True)
        return [u.public_dict() for u in users]

    def create_user(self, email: str, name: str, password: str, role: str = "user") -> User:
        with self.store.transaction() as tx:
            user = self._new_user(tx, email, name, password, role, "User with this email already exists")
        logger.info("Created {} account {} ({})", role, user.id, user.email)
        return user

    @staticmethod
    def _admin_count(tx: StoreTx) -> int:
        return len(tx.find("users", role="admin"))

    def update_user(
        self,
        user_id: int,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        role: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        with self.store.transaction() as tx:
            user = tx.require("users", user_id)
            if role is not None:
                if role not in USER_ROLES:
                    raise ValidationError("Role must be either user or admin")
                if user.is_admin and role != "admin" and self._admin_count(tx) <= 1:
                    raise ValidationError("Cannot remove admin role from the last admin user")
                user.role = role  # type: ignore[assignment]
            if email is not None:
                email = normalize_email(email)
                other = tx.first("users", email=email)
                if other is not None and other.id != user.id:
                    raise ConflictError("User with this email already exists")
                user.email = email
            if name is not None:
                if not name.strip():
                    raise ValidationError("Name is required")
                user.name = name.strip()
            if password:
                if len(password) < MIN_PASSWORD_LENGTH:
                    raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
                user.password_hash = hash_password(password, self.bcrypt_rounds)
            tx.touch(user)
            return user

    @staticmethod
    def _purge_user(tx: StoreTx, user_id: int) -> None:
        for project in tx.find("projects", owner_id=user_id):
            cascade_delete_project(tx, project.id)
        entry_ids = {e.id for e in tx.find("diary_entries", user_id=user_id)}
        for task in tx.all("tasks"):
            changed = False
            if task.assignee_id == user_id:
                task.assignee_id = None
                changed = True
            if task.diary_entry_id in entry_ids:
                task.diary_entry_id = None
                changed = True
            if changed:
                tx.touch(task)
        tx.delete_where("project_members", lambda m: m.user_id == user_id)
        tx.delete_where("events", lambda e: e.user_id == user_id)
        tx.delete_where("diary_entries", lambda e: e.user_id == user_id)
        tx.delete_where("goals", lambda g: g.user_id == user_id)
        tx.delete("users", user_id)

    def delete_user(self, user_id: int, acting_user_id: int) -> None:
        """Delete an account and everything it owns."""
        with self.store.transaction() as tx:
            user = tx.require("users", user_id)
            if user.is_admin and self._admin_count(tx) <= 1:
                raise ValidationError("Cannot delete the last admin user")
            if user_id == acting_user_id:
                raise ValidationError("Cannot delete your own account")
            self._purge_user(tx, user_id)
        logger.info("Deleted user {} ({})", user_id, user.email)

    def cleanup_test_users(self) -> int:
        """Delete non-admin accounts whose email matches ``test*@example.com``."""
        with self.store.transaction() as tx:
            doomed = [u.id for u in tx.all("users") if _is_test_email(u.email) and not u.is_admin]
            for user_id in doomed:
                self._purge_user(tx, user_id)
        if doomed:
            logger.info("Cleaned up {} test user(s)", len(doomed))
        return len(doomed)

    def stats(self) -> dict[str, int]:
        with self.store.transaction() as tx:
            return {
                "users": len(tx.all("users")),
                "admins": self._admin_count(tx),
                "projects": len(tx.all("projects")),
                "tasks": len(tx.all("tasks")),
            }

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def backup(self) -> dict[str, Any]:
        target = self.store.backup(self.backups_dir)
        return {
            "filename": target.name,
            "path": str(target),
            "size": _size_mb(target),
            "timestamp": _now_iso(),
        }

    def list_backups(self) -> list[dict[str, Any]]:
        """Existing backups, newest first."""
        if not self.backups_dir.exists():
            return []
        out = []
        for path in sorted(self.backups_dir.glob(f"{BACKUP_PREFIX}*.yaml"), reverse=True):
            out.append({
                "filename": path.name,
                "size": _size_mb(path),
                "modified": datetime.fromtimestamp(path.stat().st_mtime, timezone.utc).isoformat(),
            })
        return out
