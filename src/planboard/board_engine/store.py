"""File-based record store with transactional locking.

All collections live in a single YAML document (``planboard.yaml``) inside
the data directory.  Every read-modify-write goes through
:meth:`BoardStore.transaction`, which holds an exclusive file lock for the
whole block, so concurrent requests are serialised.  Changes are written
atomically on a clean exit; an exception inside the block discards them.
"""

from __future__ import annotations

import shutil
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TypeVar

from filelock import FileLock, Timeout
from loguru import logger

from ..constants import (
    BACKUP_PREFIX,
    COLLECTIONS,
    DEFAULT_LOCK_TIMEOUT,
    LOCK_FILE,
    STORE_FILE,
    STORE_SCHEMA_VERSION,
)
from ..errors import ConcurrencyConflictError, NotFoundError
from ..io_utils import _atomic_write_yaml, _load_yaml
from ..utils import _utc_stamp
from .model import RECORD_TYPES, _Record

R = TypeVar("R", bound=_Record)

_LABELS = {
    "users": "User",
    "projects": "Project",
    "project_members": "Member",
    "boards": "Board",
    "columns": "Column",
    "tasks": "Task",
    "dependencies": "Dependency",
    "events": "Event",
    "diary_entries": "Entry",
    "goals": "Goal",
}


# ---------------------------------------------------------------------------
# BoardStore
# ---------------------------------------------------------------------------

class BoardStore:
    """Thread- and process-safe, file-backed store for board records.

    Parameters
    ----------
    data_dir:
        Directory holding ``planboard.yaml`` and its lock file.
    lock_timeout:
        Seconds to wait for the lock before raising
        :class:`ConcurrencyConflictError`.
    """

    def __init__(self, data_dir: Path, lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        self._data_dir = data_dir
        self._path = data_dir / STORE_FILE
        self._lock_timeout = lock_timeout
        data_dir.mkdir(parents=True, exist_ok=True)
        self._file_lock = FileLock(str(data_dir / LOCK_FILE), timeout=lock_timeout)
        self._thread_lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    # -- internal helpers ---------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._thread_lock.acquire(timeout=self._lock_timeout):
            raise ConcurrencyConflictError("Store is busy; retry the operation")
        try:
            try:
                self._file_lock.acquire()
            except Timeout as exc:
                raise ConcurrencyConflictError("Store is locked by another process; retry the operation") from exc
            try:
                yield
            finally:
                self._file_lock.release()
        finally:
            self._thread_lock.release()

    def _load(self) -> "StoreTx":
        raw = _load_yaml(self._path, {})
        collections: dict[str, list[_Record]] = {}
        for name in COLLECTIONS:
            record_cls = RECORD_TYPES[name]
            items = raw.get(name) or []
            collections[name] = [record_cls.from_dict(d) for d in items if isinstance(d, dict)]
        sequences = {str(k): int(v) for k, v in dict(raw.get("sequences") or {}).items()}
        return StoreTx(collections, sequences)

    def _save(self, tx: "StoreTx") -> None:
        payload: dict[str, Any] = {
            "version": STORE_SCHEMA_VERSION,
            "sequences": dict(tx.sequences),
        }
        for name in COLLECTIONS:
            payload[name] = [r.to_dict() for r in tx.collections[name]]
        _atomic_write_yaml(self._path, payload)

    # -- public API ---------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["StoreTx"]:
        """Acquire the lock, load all records, yield a transaction, save on exit.

        Usage::

            with store.transaction() as tx:
                task = tx.require("tasks", 12)
                task.title = "Renamed"
                tx.touch(task)
                # automatically saved on exit
        """
        with self._locked():
            tx = self._load()
            yield tx
            if tx.dirty:
                self._save(tx)

    def read_snapshot(self) -> "StoreTx":
        """Return a detached snapshot; mutations on it are never saved."""
        with self._locked():
            return self._load()

    def backup(self, dest_dir: Path) -> Path:
        """Copy the store document to *dest_dir* under the lock."""
        dest_dir.mkdir(parents=True, exist_ok=True)
        target = dest_dir / f"{BACKUP_PREFIX}{_utc_stamp()}.yaml"
        with self._locked():
            if self._path.exists():
                shutil.copy2(self._path, target)
            else:
                self._save(StoreTx({name: [] for name in COLLECTIONS}, {}))
                shutil.copy2(self._path, target)
        logger.info("Store backed up to {}", target)
        return target


class StoreTx:
    """In-memory transaction over every collection.

    Mutations are flushed back to disk when the ``transaction``
    context-manager exits, provided :attr:`dirty` is set.  Methods that
    mutate set it themselves; code that edits a record in place calls
    :meth:`touch`.
    """

    def __init__(self, collections: dict[str, list[_Record]], sequences: dict[str, int]) -> None:
        self.collections = collections
        self.sequences = sequences
        self.dirty = False

    # -- lookups ------------------------------------------------------------

    def all(self, collection: str) -> list[Any]:
        return list(self.collections[collection])

    def get(self, collection: str, record_id: Optional[int]) -> Optional[Any]:
        if record_id is None:
            return None
        for record in self.collections[collection]:
            if record.id == record_id:
                return record
        return None

    def require(self, collection: str, record_id: Optional[int], label: str = "") -> Any:
        record = self.get(collection, record_id)
        if record is None:
            what = label or _LABELS.get(collection, collection)
            raise NotFoundError(f"{what} not found")
        return record

    def find(self, collection: str, **equals: Any) -> list[Any]:
        """Return records whose attributes equal every keyword given."""
        out = []
        for record in self.collections[collection]:
            if all(getattr(record, k) == v for k, v in equals.items()):
                out.append(record)
        return out

    def first(self, collection: str, **equals: Any) -> Optional[Any]:
        matches = self.find(collection, **equals)
        return matches[0] if matches else None

    def filter(self, collection: str, predicate: Callable[[Any], bool]) -> list[Any]:
        return [r for r in self.collections[collection] if predicate(r)]

    # -- mutations ----------------------------------------------------------

    def next_id(self, collection: str) -> int:
        current = self.sequences.get(collection)
        if current is None:
            current = max((r.id for r in self.collections[collection]), default=0)
        current += 1
        self.sequences[collection] = current
        return current

    def add(self, collection: str, record: R) -> R:
        record.id = self.next_id(collection)
        self.collections[collection].append(record)
        self.dirty = True
        return record

    def touch(self, record: _Record) -> None:
        record.touch()
        self.dirty = True

    def delete(self, collection: str, record_id: int) -> bool:
        items = self.collections[collection]
        keep = [r for r in items if r.id != record_id]
        if len(keep) == len(items):
            return False
        self.collections[collection] = keep
        self.dirty = True
        return True

    def delete_where(self, collection: str, predicate: Callable[[Any], bool]) -> int:
        items = self.collections[collection]
        keep = [r for r in items if not predicate(r)]
        removed = len(items) - len(keep)
        if removed:
            self.collections[collection] = keep
            self.dirty = True
        return removed
