"""Abstract document store interface.

The partitioning and migration layers only depend on these primitives:
find, count, aggregate (``group_first``), and bulk write. Concrete stores
implement them for a specific backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fieldops.lib.store.bulk import BulkOperation

Document = dict[str, Any]


@dataclass
class BulkWriteResult:
    """Outcome counts of one bulk write.

    Attributes:
        inserted: Documents inserted.
        matched: Update/replace targets that exist.
        modified: Matched documents whose contents actually changed.
    """

    inserted: int = 0
    matched: int = 0
    modified: int = 0

    def __iadd__(self, other: BulkWriteResult) -> BulkWriteResult:
        self.inserted += other.inserted
        self.matched += other.matched
        self.modified += other.modified
        return self


class DocumentCollection(ABC):
    """One physical collection of JSON-like documents keyed by ``_id``."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Physical collection name."""

    @abstractmethod
    async def count(self, filter: Mapping[str, Any] | None = None) -> int:  # noqa: A002
        """Count documents matching the filter (all documents when None)."""

    @abstractmethod
    def find_batches(
        self,
        filter: Mapping[str, Any] | None = None,  # noqa: A002
        *,
        batch_size: int,
    ) -> AsyncIterator[list[Document]]:
        """Iterate matching documents in insertion order, one batch at a time.

        Each batch is read independently, so writes issued between batches
        do not disturb the iteration.
        """

    @abstractmethod
    async def group_first(
        self,
        key: str,
        fields: Sequence[str],
        filter: Mapping[str, Any] | None = None,  # noqa: A002
    ) -> dict[Any, dict[str, Any]]:
        """Group matching documents by ``key``, keeping the first-seen values of ``fields``."""

    @abstractmethod
    async def existing_ids(self, ids: Sequence[str]) -> set[str]:
        """Return the subset of ``ids`` present in the collection."""

    @abstractmethod
    async def bulk_write(self, operations: Sequence[BulkOperation]) -> BulkWriteResult:
        """Apply a batch of operations as one unit.

        Raises:
            BatchWriteError: If the batch could not be committed.
        """

    async def find(
        self,
        filter: Mapping[str, Any] | None = None,  # noqa: A002
        *,
        limit: int | None = None,
        batch_size: int = 500,
    ) -> list[Document]:
        """Return matching documents in insertion order, up to ``limit``."""
        if limit is not None and limit <= 0:
            return []
        results: list[Document] = []
        async for batch in self.find_batches(filter, batch_size=batch_size):
            for document in batch:
                results.append(document)
                if limit is not None and len(results) >= limit:
                    return results
        return results


class DocumentStore(ABC):
    """A namespace of document collections."""

    @abstractmethod
    def collection(self, name: str, *, create: bool = False, unique_ids: bool = True) -> DocumentCollection:
        """Return a handle for the named collection.

        Args:
            name: Physical collection name.
            create: Create the collection on first write when it is missing.
            unique_ids: Whether ``_id`` is unique (False for append-only backups).
        """

    @abstractmethod
    async def has_collection(self, name: str) -> bool:
        """Return True if the collection exists."""

    @abstractmethod
    async def list_collection_names(self) -> list[str]:
        """Return all collection names in the store."""
