"""Unit tests for the SQLAlchemy document store on in-memory SQLite."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from fieldops.core.errors import BatchWriteError, StoreReadError
from fieldops.lib.store import InsertOne, ReplaceOne, SqlDocumentStore, UpdateOne


class TestCollections:
    """Tests for collection discovery."""

    async def test_absent_collection(self, store: SqlDocumentStore) -> None:
        collection = store.collection("voters_119")
        assert not await store.has_collection("voters_119")
        assert await collection.count() == 0
        assert await collection.find() == []

    async def test_created_on_first_write(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1"}])
        assert await store.has_collection("voters_119")
        assert await store.list_collection_names() == ["voters_119"]

    async def test_write_without_create_fails_on_missing_table(self, store: SqlDocumentStore) -> None:
        with pytest.raises(BatchWriteError) as exc_info:
            await store.collection("voters_119").bulk_write([InsertOne({"_id": "v1"})])
        assert exc_info.value.collection == "voters_119"


class TestReads:
    """Tests for find, count, and batching."""

    async def test_find_in_insertion_order(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": f"v{i}", "n": i} for i in range(7)])
        collection = store.collection("voters_119")
        assert [d["n"] for d in await collection.find()] == list(range(7))
        assert [d["n"] for d in await collection.find(limit=3)] == [0, 1, 2]
        assert await collection.count() == 7
        assert await collection.count({"n": {"$in": [1, 2]}}) == 2

    async def test_find_batches(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": f"v{i}", "even": i % 2 == 0} for i in range(5)])
        batches = [b async for b in store.collection("voters_119").find_batches(batch_size=2)]
        assert [len(b) for b in batches] == [2, 2, 1]
        filtered = [b async for b in store.collection("voters_119").find_batches({"even": True}, batch_size=2)]
        assert [d["_id"] for b in filtered for d in b] == ["v0", "v2", "v4"]

    async def test_writes_between_batches_do_not_disturb_iteration(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": f"v{i}"} for i in range(4)])
        collection = store.collection("voters_119")
        seen = []
        async for batch in collection.find_batches(batch_size=2):
            seen.extend(d["_id"] for d in batch)
            await collection.bulk_write([UpdateOne(d["_id"], {"touched": True}) for d in batch])
        assert seen == ["v0", "v1", "v2", "v3"]
        assert await collection.count({"touched": True}) == 4

    async def test_existing_ids(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1"}, {"_id": "v2"}])
        collection = store.collection("voters_119")
        assert await collection.existing_ids(["v1", "v3"]) == {"v1"}
        assert await collection.existing_ids([]) == set()
        assert await store.collection("voters_101").existing_ids(["v1"]) == set()


class TestBulkWrite:
    """Tests for bulk write semantics and counts."""

    async def test_insert_assigns_missing_ids(self, store: SqlDocumentStore) -> None:
        collection = store.collection("voters_119", create=True)
        result = await collection.bulk_write([InsertOne({"name": "A"})])
        assert result.inserted == 1
        (document,) = await collection.find()
        assert document["_id"]

    async def test_update_sets_only_given_fields(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1", "age": "42", "name": "A"}])
        collection = store.collection("voters_119")
        result = await collection.bulk_write([UpdateOne("v1", {"age": 42}), UpdateOne("missing", {"age": 1})])
        assert (result.matched, result.modified) == (1, 1)
        assert await collection.find() == [{"_id": "v1", "age": 42, "name": "A"}]

    async def test_unchanged_update_not_counted_as_modified(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1", "age": 42}])
        result = await store.collection("voters_119").bulk_write([UpdateOne("v1", {"age": 42})])
        assert (result.matched, result.modified) == (1, 0)

    async def test_replace_without_upsert_skips_missing(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1", "age": 42, "extra": 1}])
        collection = store.collection("voters_119")
        result = await collection.bulk_write(
            [ReplaceOne("v1", {"_id": "v1", "age": "42"}), ReplaceOne("gone", {"_id": "gone"})]
        )
        assert (result.inserted, result.matched, result.modified) == (0, 1, 1)
        assert await collection.find() == [{"_id": "v1", "age": "42"}]

    async def test_replace_with_upsert_inserts(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1"}])
        collection = store.collection("voters_119")
        result = await collection.bulk_write([ReplaceOne("v2", {"name": "B"}, upsert=True)])
        assert result.inserted == 1
        assert await collection.existing_ids(["v2"]) == {"v2"}

    async def test_duplicate_ids_rejected_on_live_collections(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1"}])
        with pytest.raises(BatchWriteError):
            await store.collection("voters_119").bulk_write([InsertOne({"_id": "v1"})])
        assert await store.collection("voters_119").count() == 1

    async def test_duplicate_ids_allowed_on_backups(self, store: SqlDocumentStore) -> None:
        backup = store.collection("voters_119_backup_20250101", create=True, unique_ids=False)
        await backup.bulk_write([InsertOne({"_id": "v1", "n": 1})])
        await backup.bulk_write([InsertOne({"_id": "v1", "n": 2})])
        assert [d["n"] for d in await backup.find()] == [1, 2]

    async def test_driver_error_becomes_batch_write_error(self) -> None:
        engine = MagicMock()
        engine.begin.side_effect = OperationalError("UPDATE", {}, Exception("disk I/O error"))
        collection = SqlDocumentStore(engine).collection("voters_119")
        with pytest.raises(BatchWriteError, match="disk I/O error"):
            await collection.bulk_write([UpdateOne("v1", {"a": 1})])

    async def test_driver_error_on_read_becomes_store_read_error(self) -> None:
        engine = MagicMock()
        engine.connect.side_effect = OperationalError("SELECT", {}, Exception("server closed the connection"))
        store = SqlDocumentStore(engine)
        collection = store.collection("voters_119")
        with pytest.raises(StoreReadError, match="server closed the connection"):
            await collection.find()
        with pytest.raises(StoreReadError):
            await store.has_collection("voters_119")
        with pytest.raises(StoreReadError):
            await store.list_collection_names()
