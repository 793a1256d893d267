"""Bulk write operations and the bounded flush-at-threshold buffer.

``BulkBuffer`` is the single batching primitive shared by the migration
and rollback engines: operations accumulate until the buffer reaches its
capacity, then the whole batch is written with one ``bulk_write`` call.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from fieldops.lib.store.base import BulkWriteResult, DocumentCollection

BATCH_SIZE = 500


@dataclass(frozen=True)
class InsertOne:
    """Insert a document verbatim (its ``_id`` included)."""

    document: dict[str, Any]


@dataclass(frozen=True)
class UpdateOne:
    """Partially update one document, setting only the given fields."""

    id: str
    set_fields: dict[str, Any]


@dataclass(frozen=True)
class ReplaceOne:
    """Replace one document by id. With ``upsert=False`` missing ids are left alone."""

    id: str
    replacement: dict[str, Any]
    upsert: bool = False


BulkOperation = InsertOne | UpdateOne | ReplaceOne


@dataclass
class BulkBuffer:
    """Bounded buffer of bulk operations for one collection.

    Attributes:
        collection: Collection receiving the writes.
        capacity: Number of buffered operations that triggers a flush.
        on_flush: Optional callback invoked with (batch result, running total)
            after every flush, used for progress reporting.
        totals: Accumulated results across all flushes.
        batches: Number of completed flushes.
    """

    collection: DocumentCollection
    capacity: int = BATCH_SIZE
    on_flush: Callable[[BulkWriteResult, BulkWriteResult], None] | None = None
    totals: BulkWriteResult = field(default_factory=BulkWriteResult)
    batches: int = 0
    _pending: list[BulkOperation] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            msg = "capacity must be positive"
            raise ValueError(msg)

    def __len__(self) -> int:
        return len(self._pending)

    async def add(self, operation: BulkOperation) -> None:
        """Buffer an operation, flushing when the buffer is full."""
        self._pending.append(operation)
        if len(self._pending) >= self.capacity:
            await self.flush()

    async def flush(self) -> BulkWriteResult:
        """Write all pending operations as one batch.

        Returns:
            Counts for this batch (all zero when nothing was pending).

        Raises:
            BatchWriteError: If the write fails. Pending operations are
                discarded; earlier batches stay committed.
        """
        if not self._pending:
            return BulkWriteResult()
        batch, self._pending = self._pending, []
        result = await self.collection.bulk_write(batch)
        self.batches += 1
        self.totals += result
        logger.debug(f"[{self.collection.name}] Flushed batch {self.batches} ({len(batch)} operations)")
        if self.on_flush is not None:
            self.on_flush(result, self.totals)
        return result
