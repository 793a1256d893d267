"""SQLAlchemy-backed document store.

Each collection is one table of JSON documents:

* ``seq``: autoincrement insertion order, used for keyset pagination
* ``id``: the document's ``_id`` as a string (unique for live partitions,
  non-unique for append-only backup collections)
* ``doc``: the full document as JSON

Filters are evaluated in-process with ``fieldops.lib.store.filters`` so the
same Mongo-style queries work on every SQL backend. Each bulk write is one
transaction.
"""

import uuid
from collections.abc import AsyncIterator, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import JSON, Column, Index, Integer, MetaData, String, Table, bindparam, func, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from fieldops.core.errors import BatchWriteError, StoreReadError
from fieldops.lib.store.base import BulkWriteResult, Document, DocumentCollection, DocumentStore
from fieldops.lib.store.bulk import BulkOperation, InsertOne, ReplaceOne, UpdateOne
from fieldops.lib.store.filters import matches


def _document_id(document: Mapping[str, Any]) -> str:
    return str(document["_id"])


@contextmanager
def _read_errors(collection: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(f"[{collection}] Read failed: {exc}")
        raise StoreReadError(collection, str(exc)) from exc


class SqlCollection(DocumentCollection):
    """A JSON-document table inside a ``SqlDocumentStore``."""

    def __init__(self, store: "SqlDocumentStore", table: Table, *, create: bool) -> None:
        self._store = store
        self._table = table
        self._create = create

    @property
    def name(self) -> str:
        return self._table.name

    async def _exists(self) -> bool:
        return await self._store.has_collection(self.name)

    async def count(self, filter: Mapping[str, Any] | None = None) -> int:  # noqa: A002
        if not await self._exists():
            return 0
        if not filter:
            with _read_errors(self.name):
                async with self._store.engine.connect() as conn:
                    result = await conn.execute(select(func.count()).select_from(self._table))
                    return int(result.scalar_one())
        total = 0
        async for batch in self.find_batches(filter, batch_size=500):
            total += len(batch)
        return total

    async def find_batches(
        self,
        filter: Mapping[str, Any] | None = None,  # noqa: A002
        *,
        batch_size: int,
    ) -> AsyncIterator[list[Document]]:
        if not await self._exists():
            return
        last_seq = 0
        while True:
            with _read_errors(self.name):
                async with self._store.engine.connect() as conn:
                    result = await conn.execute(
                        select(self._table.c.seq, self._table.c.doc)
                        .where(self._table.c.seq > last_seq)
                        .order_by(self._table.c.seq)
                        .limit(batch_size)
                    )
                    rows = result.all()
            if not rows:
                return
            last_seq = rows[-1].seq
            batch = [row.doc for row in rows if matches(row.doc, filter)]
            if batch:
                yield batch
            if len(rows) < batch_size:
                return

    async def group_first(
        self,
        key: str,
        fields: Sequence[str],
        filter: Mapping[str, Any] | None = None,  # noqa: A002
    ) -> dict[Any, dict[str, Any]]:
        groups: dict[Any, dict[str, Any]] = {}
        async for batch in self.find_batches(filter, batch_size=500):
            for document in batch:
                group_key = document.get(key)
                if group_key is None or isinstance(group_key, dict | list) or group_key in groups:
                    continue
                groups[group_key] = {f: document.get(f) for f in fields}
        return groups

    async def existing_ids(self, ids: Sequence[str]) -> set[str]:
        if not ids or not await self._exists():
            return set()
        with _read_errors(self.name):
            async with self._store.engine.connect() as conn:
                result = await conn.execute(select(self._table.c.id).where(self._table.c.id.in_(list(set(ids)))))
                return set(result.scalars().all())

    async def bulk_write(self, operations: Sequence[BulkOperation]) -> BulkWriteResult:
        result = BulkWriteResult()
        if not operations:
            return result

        table = self._table
        inserts: list[dict[str, Any]] = []
        targeted: list[UpdateOne | ReplaceOne] = []
        for op in operations:
            if isinstance(op, InsertOne):
                document = dict(op.document)
                document.setdefault("_id", uuid.uuid4().hex)
                inserts.append({"id": _document_id(document), "doc": document})
            else:
                targeted.append(op)

        try:
            async with self._store.engine.begin() as conn:
                if self._create:
                    await conn.run_sync(table.create, checkfirst=True)

                if inserts:
                    await conn.execute(table.insert(), inserts)
                    result.inserted = len(inserts)

                if targeted:
                    ids = list({op.id for op in targeted})
                    rows = await conn.execute(select(table.c.id, table.c.doc).where(table.c.id.in_(ids)))
                    current: dict[str, Document] = {row.id: row.doc for row in rows}
                    changed: dict[str, Document] = {}
                    upserts: list[dict[str, Any]] = []
                    for op in targeted:
                        existing = changed.get(op.id, current.get(op.id))
                        if existing is None:
                            if isinstance(op, ReplaceOne) and op.upsert:
                                upserts.append({"id": op.id, "doc": {**op.replacement, "_id": op.id}})
                            continue
                        result.matched += 1
                        if isinstance(op, UpdateOne):
                            new_doc = {**existing, **op.set_fields}
                        else:
                            new_doc = {**op.replacement, "_id": existing.get("_id", op.id)}
                        if new_doc != existing:
                            changed[op.id] = new_doc
                            result.modified += 1

                    if changed:
                        await conn.execute(
                            update(table).where(table.c.id == bindparam("b_id")).values(doc=bindparam("b_doc")),
                            [{"b_id": doc_id, "b_doc": doc} for doc_id, doc in changed.items()],
                        )
                    if upserts:
                        await conn.execute(table.insert(), upserts)
                        result.inserted += len(upserts)
        except SQLAlchemyError as exc:
            logger.error(f"[{self.name}] Bulk write of {len(operations)} operations failed: {exc}")
            raise BatchWriteError(self.name, str(exc)) from exc

        return result


class SqlDocumentStore(DocumentStore):
    """Document store over an async SQLAlchemy engine.

    Args:
        engine: Async engine (PostgreSQL via asyncpg in production,
            SQLite via aiosqlite in tests).
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._metadata = MetaData()

    def _table(self, name: str, *, unique_ids: bool) -> Table:
        existing = self._metadata.tables.get(name)
        if existing is not None:
            return existing
        return Table(
            name,
            self._metadata,
            Column("seq", Integer, primary_key=True, autoincrement=True),
            Column("id", String(128), nullable=False),
            Column("doc", JSON, nullable=False),
            Index(f"ix_{name}_id", "id", unique=unique_ids),
        )

    def collection(self, name: str, *, create: bool = False, unique_ids: bool = True) -> SqlCollection:
        return SqlCollection(self, self._table(name, unique_ids=unique_ids), create=create)

    async def has_collection(self, name: str) -> bool:
        with _read_errors(name):
            async with self.engine.connect() as conn:
                return await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(name))

    async def list_collection_names(self) -> list[str]:
        with _read_errors("<collections>"):
            async with self.engine.connect() as conn:
                names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        return sorted(names)
