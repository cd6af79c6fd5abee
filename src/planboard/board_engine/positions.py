"""Dense sibling ordering for tasks in columns and columns in boards.

A container's children always carry positions ``0..n-1`` with no gaps and
no duplicates.  Inserts append, moves shift the affected range by one and
deletes close the gap.  Every operation runs inside a single store
transaction, so either all position updates land or none do.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from loguru import logger

from .store import BoardStore, StoreTx


class PositionManager:
    """Maintain dense positions for one kind of sibling record.

    Parameters
    ----------
    store:
        Backing store.
    collection:
        Collection of the ordered items (``"tasks"`` or ``"columns"``).
    container_field:
        Attribute naming the parent (``"column_id"`` or ``"board_id"``).
    container_collection:
        Collection of the parents, used to validate move targets.
    """

    def __init__(
        self,
        store: BoardStore,
        collection: str,
        container_field: str,
        container_collection: str,
    ) -> None:
        self.store = store
        self.collection = collection
        self.container_field = container_field
        self.container_collection = container_collection

    @contextmanager
    def _tx(self, tx: Optional[StoreTx]) -> Iterator[StoreTx]:
        if tx is not None:
            yield tx
        else:
            with self.store.transaction() as own:
                yield own

    def siblings(self, tx: StoreTx, container_id: int) -> list[Any]:
        """Children of *container_id* ordered by position."""
        items = tx.find(self.collection, **{self.container_field: container_id})
        return sorted(items, key=lambda r: (r.position, r.id))

    # ------------------------------------------------------------------
    # Insert / move / delete
    # ------------------------------------------------------------------

    def insert(self, container_id: int, *, tx: Optional[StoreTx] = None) -> int:
        """Return the position for a new child: ``max + 1``, or 0 when empty."""
        with self._tx(tx) as t:
            items = t.find(self.collection, **{self.container_field: container_id})
            return max((r.position for r in items), default=-1) + 1

    def move(
        self,
        item_id: int,
        target_container_id: int,
        target_position: int,
        *,
        tx: Optional[StoreTx] = None,
    ) -> Any:
        """Move an item to *target_position* in *target_container_id*.

        Out-of-range targets are clamped: negative becomes 0, anything past
        the end appends.  Moving an item onto its own slot writes nothing.
        """
        with self._tx(tx) as t:
            item = t.require(self.collection, item_id)
            t.require(self.container_collection, target_container_id)

            source_id = getattr(item, self.container_field)
            old = item.position

            if source_id == target_container_id:
                count = len(t.find(self.collection, **{self.container_field: source_id}))
                new = max(0, min(int(target_position), count - 1))
                if new == old:
                    return item
                for sibling in self._others(t, source_id, item.id):
                    if new > old and old < sibling.position <= new:
                        sibling.position -= 1
                        t.touch(sibling)
                    elif new < old and new <= sibling.position < old:
                        sibling.position += 1
                        t.touch(sibling)
            else:
                dest = self._others(t, target_container_id, item.id)
                new = max(0, min(int(target_position), len(dest)))
                for sibling in self._others(t, source_id, item.id):
                    if sibling.position > old:
                        sibling.position -= 1
                        t.touch(sibling)
                for sibling in dest:
                    if sibling.position >= new:
                        sibling.position += 1
                        t.touch(sibling)
                setattr(item, self.container_field, target_container_id)

            item.position = new
            t.touch(item)
            logger.debug(
                "Moved {} {} from {}:{} to {}:{}",
                self.collection, item.id, source_id, old, target_container_id, new,
            )
            return item

    def delete(self, item_id: int, *, tx: Optional[StoreTx] = None) -> Any:
        """Remove an item and close the gap it leaves behind."""
        with self._tx(tx) as t:
            item = t.require(self.collection, item_id)
            container_id = getattr(item, self.container_field)
            t.delete(self.collection, item.id)
            for sibling in self._others(t, container_id, item.id):
                if sibling.position > item.position:
                    sibling.position -= 1
                    t.touch(sibling)
            return item

    # ------------------------------------------------------------------
    # Integrity helpers
    # ------------------------------------------------------------------

    def normalize(self, container_id: int, *, tx: Optional[StoreTx] = None) -> int:
        """Renumber a container to ``0..n-1`` keeping order; return rows changed."""
        changed = 0
        with self._tx(tx) as t:
            for index, sibling in enumerate(self.siblings(t, container_id)):
                if sibling.position != index:
                    sibling.position = index
                    t.touch(sibling)
                    changed += 1
        return changed

    def check_density(self, container_id: int, *, tx: Optional[StoreTx] = None) -> bool:
        """True when positions in the container are exactly ``0..n-1``."""
        with self._tx(tx) as t:
            positions = sorted(r.position for r in t.find(self.collection, **{self.container_field: container_id}))
        dense = positions == list(range(len(positions)))
        if not dense:
            logger.error(
                "Position density violated for {} in {} {}: {}",
                self.collection, self.container_field, container_id, positions,
            )
        return dense

    def _others(self, tx: StoreTx, container_id: int, exclude_id: int) -> list[Any]:
        return [
            r for r in tx.find(self.collection, **{self.container_field: container_id})
            if r.id != exclude_id
        ]
