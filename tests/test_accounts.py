"""Tests for accounts and the admin surface (board_engine/accounts.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from planboard.board_engine.accounts import AccountService, hash_password, normalize_email, verify_password
from planboard.board_engine.engine import BoardEngine
from planboard.board_engine.planner import PlannerService
from planboard.board_engine.store import BoardStore
from planboard.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError


@pytest.fixture
def store(tmp_path: Path) -> BoardStore:
    return BoardStore(tmp_path / ".planboard")


@pytest.fixture
def accounts(store: BoardStore, tmp_path: Path) -> AccountService:
    return AccountService(store, tmp_path / ".planboard" / "backups", bcrypt_rounds=4)


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("hunter22", rounds=4)
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("hunter23", hashed)

    def test_long_passwords_are_truncated_not_rejected(self) -> None:
        secret = "x" * 100
        hashed = hash_password(secret, rounds=4)
        assert verify_password(secret, hashed)

    def test_malformed_hash(self) -> None:
        assert not verify_password("anything", "not-a-hash")
        assert not verify_password("anything", "")

    def test_normalize_email(self) -> None:
        assert normalize_email("  Alice@Example.ORG ") == "alice@example.org"
        with pytest.raises(ValidationError):
            normalize_email("not-an-email")


class TestRegistration:
    def test_register_and_login(self, accounts: AccountService) -> None:
        user = accounts.register("Alice@Example.org", "Alice", "secret1")
        assert user.role == "user"
        assert user.password_hash != "secret1"
        assert accounts.authenticate("alice@example.org", "secret1").id == user.id

    def test_duplicate_email(self, accounts: AccountService) -> None:
        accounts.register("alice@example.org", "Alice", "secret1")
        with pytest.raises(ConflictError, match="Email already registered"):
            accounts.register("ALICE@example.org", "Other", "secret2")

    def test_short_password(self, accounts: AccountService) -> None:
        with pytest.raises(ValidationError, match="at least 6"):
            accounts.register("alice@example.org", "Alice", "12345")

    def test_wrong_password_and_unknown_user(self, accounts: AccountService) -> None:
        accounts.register("alice@example.org", "Alice", "secret1")
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            accounts.authenticate("alice@example.org", "wrong-one")
        with pytest.raises(AuthenticationError):
            accounts.authenticate("nobody@example.org", "secret1")

    def test_directory_hides_hashes(self, accounts: AccountService) -> None:
        accounts.register("bob@example.org", "bob", "secret1")
        accounts.register("alice@example.org", "Alice", "secret1")
        assert accounts.directory() == [
            {"id": 2, "name": "Alice", "email": "alice@example.org"},
            {"id": 1, "name": "bob", "email": "bob@example.org"},
        ]
        assert all("password_hash" not in u for u in accounts.list_users())


class TestAdministration:
    def test_create_user_with_role(self, accounts: AccountService) -> None:
        admin = accounts.create_user("root@example.org", "Root", "secret1", role="admin")
        assert admin.is_admin
        with pytest.raises(ConflictError, match="User with this email already exists"):
            accounts.create_user("root@example.org", "Again", "secret1")
        with pytest.raises(ValidationError):
            accounts.create_user("x@example.org", "X", "secret1", role="superuser")

    def test_update_user(self, accounts: AccountService) -> None:
        user = accounts.register("alice@example.org", "Alice", "secret1")
        accounts.update_user(user.id, name="Alicia", password="newpass1")
        assert accounts.get_user(user.id).name == "Alicia"
        assert accounts.authenticate("alice@example.org", "newpass1").id == user.id

    def test_update_email_conflict(self, accounts: AccountService) -> None:
        accounts.register("alice@example.org", "Alice", "secret1")
        bob = accounts.register("bob@example.org", "Bob", "secret1")
        with pytest.raises(ConflictError):
            accounts.update_user(bob.id, email="alice@example.org")

    def test_last_admin_cannot_be_demoted(self, accounts: AccountService) -> None:
        admin = accounts.create_user("root@example.org", "Root", "secret1", role="admin")
        with pytest.raises(ValidationError, match="last admin"):
            accounts.update_user(admin.id, role="user")
        second = accounts.create_user("ops@example.org", "Ops", "secret1", role="admin")
        accounts.update_user(admin.id, role="user")
        assert not accounts.get_user(admin.id).is_admin
        assert accounts.get_user(second.id).is_admin

    def test_last_admin_cannot_be_deleted(self, accounts: AccountService) -> None:
        admin = accounts.create_user("root@example.org", "Root", "secret1", role="admin")
        with pytest.raises(ValidationError, match="last admin"):
            accounts.delete_user(admin.id, admin.id)

    def test_cannot_delete_self(self, accounts: AccountService) -> None:
        admin = accounts.create_user("root@example.org", "Root", "secret1", role="admin")
        accounts.create_user("ops@example.org", "Ops", "secret1", role="admin")
        with pytest.raises(ValidationError, match="your own account"):
            accounts.delete_user(admin.id, admin.id)

    def test_delete_user_cascades(self, accounts: AccountService, store: BoardStore) -> None:
        admin = accounts.create_user("root@example.org", "Root", "secret1", role="admin")
        alice = accounts.register("alice@example.org", "Alice", "secret1")
        engine = BoardEngine(store)
        planner = PlannerService(store)

        owned = engine.create_project(alice.id, "Alice's")
        shared = engine.create_project(admin.id, "Shared")
        engine.add_member(shared.id, admin.id, "alice@example.org")
        board = engine.get_project_board(shared.id, admin.id)
        assert board is not None
        entry = planner.create_entry(alice.id, title="Notes", content="n", category="note", date="2024-03-01")
        task = engine.create_task(alice.id, title="T", column_id=board["columns"][0]["id"],
                                  assignee_id=alice.id, diary_entry_id=entry.id)
        planner.create_goal(alice.id, title="Goal")
        planner.create_event(alice.id, title="Event", start_date="2024-03-01T10:00:00Z")

        accounts.delete_user(alice.id, admin.id)

        snap = store.read_snapshot()
        assert [p.name for p in snap.all("projects")] == ["Shared"]
        assert owned.id not in {b.project_id for b in snap.all("boards")}
        assert {m.user_id for m in snap.all("project_members")} == {admin.id}
        kept = snap.get("tasks", task["id"])
        assert kept is not None
        assert (kept.assignee_id, kept.diary_entry_id) == (None, None)
        assert snap.all("goals") == snap.all("events") == snap.all("diary_entries") == []
        with pytest.raises(NotFoundError):
            accounts.get_user(alice.id)

    def test_cleanup_test_users(self, accounts: AccountService) -> None:
        accounts.register("test1@example.com", "T1", "secret1")
        accounts.register("test-two@example.com", "T2", "secret1")
        accounts.create_user("test-admin@example.com", "TA", "secret1", role="admin")
        accounts.register("tester@example.org", "Keep", "secret1")
        assert accounts.cleanup_test_users() == 2
        assert {u["email"] for u in accounts.list_users()} == {"test-admin@example.com", "tester@example.org"}

    def test_stats(self, accounts: AccountService, store: BoardStore) -> None:
        admin = accounts.create_user("root@example.org", "Root", "secret1", role="admin")
        accounts.register("alice@example.org", "Alice", "secret1")
        BoardEngine(store).create_project(admin.id, "P")
        assert accounts.stats() == {"users": 2, "admins": 1, "projects": 1, "tasks": 0}


class TestBackups:
    def test_backup_and_list(self, accounts: AccountService) -> None:
        assert accounts.list_backups() == []
        accounts.register("alice@example.org", "Alice", "secret1")
        info = accounts.backup()
        assert info["filename"].startswith("planboard-backup-")
        assert info["size"].endswith(" MB")
        assert Path(info["path"]).exists()

        listed = accounts.list_backups()
        assert [b["filename"] for b in listed] == [info["filename"]]
