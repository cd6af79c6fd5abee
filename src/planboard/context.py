"""Per-application wiring of configuration, store and services."""

from __future__ import annotations

from typing import Optional

from .board_engine import AccountService, BoardEngine, BoardStore, PlannerService
from .config import AppConfig, load_config


class AppContext:
    """Everything a request handler or CLI command needs.

    One context is built per app (or per CLI invocation) and handed around
    explicitly; nothing here is a module-level singleton.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self.config = config or load_config()
        self.store = BoardStore(self.config.data_dir, lock_timeout=self.config.lock_timeout)
        self.engine = BoardEngine(self.store)
        self.planner = PlannerService(self.store)
        self.accounts = AccountService(
            self.store,
            self.config.backups_dir,
            bcrypt_rounds=self.config.bcrypt_rounds,
        )
