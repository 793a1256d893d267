"""Unit tests for backup listing and restore."""

from datetime import date
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from fieldops.core.errors import ConfigurationError, StoreReadError
from fieldops.lib.partitioning import PartitionRegistry
from fieldops.lib.store import InsertOne, SqlCollection, SqlDocumentStore
from fieldops.schemas.reports import PartitionStatus
from fieldops.services.migration_service import NORMALIZE_TYPES, run_migration
from fieldops.services.rollback_service import list_backups, parse_backup_name, restore_backups


async def _backup(store: SqlDocumentStore, name: str, documents: list[dict[str, Any]]) -> None:
    collection = store.collection(name, create=True, unique_ids=False)
    await collection.bulk_write([InsertOne(doc) for doc in documents])


class TestParseBackupName:
    """Tests for backup name parsing."""

    def test_backup_names(self) -> None:
        assert parse_backup_name("surveyresponses_119_backup_20250101") == ("surveyresponses_119", "_backup_", "20250101")
        assert parse_backup_name("voters_101_typefix_20241231") == ("voters_101", "_typefix_", "20241231")

    @pytest.mark.parametrize("name", ["voters_119", "voters_119_backup_2025", "voters_119_snapshot_20250101"])
    def test_non_backup_names(self, name: str) -> None:
        assert parse_backup_name(name) is None


class TestListBackups:
    """Tests for backup enumeration."""

    async def test_groups_newest_first(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1"}])
        await _backup(store, "voters_119_typefix_20250101", [{"_id": "v1"}, {"_id": "v2"}])
        await _backup(store, "surveyresponses_119_backup_20250102", [{"_id": "s1"}])
        await _backup(store, "voters_101_typefix_20250101", [{"_id": "x"}])

        groups = await list_backups(store)

        assert [g.suffix for g in groups] == ["_backup_20250102", "_typefix_20250101"]
        typefix = groups[1]
        assert [c.name for c in typefix.collections] == ["voters_101_typefix_20250101", "voters_119_typefix_20250101"]
        assert typefix.collections[1].documents == 2
        assert typefix.collections[1].base_collection == "voters_119"

    async def test_no_backups(self, store: SqlDocumentStore, seed) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1"}])
        assert await list_backups(store) == []


class TestRestoreBackups:
    """Tests for restoring live partitions."""

    async def test_empty_suffix_rejected(self, store: SqlDocumentStore, registry: PartitionRegistry) -> None:
        with pytest.raises(ConfigurationError, match="suffix"):
            await restore_backups(store, registry, "  ")

    async def test_restores_migrated_documents(self, store: SqlDocumentStore, seed, registry) -> None:  # type: ignore[no-untyped-def]
        original = [{"_id": "v1", "age": "42"}, {"_id": "v2", "age": 30}]
        await seed("voters_119", original)
        await run_migration(store, registry, NORMALIZE_TYPES, dry_run=False, ac_keys=[119], run_date=date(2025, 1, 1))
        assert (await store.collection("voters_119").find())[0]["age"] == 42

        summary = await restore_backups(store, registry, "_typefix_20250101")

        assert (summary.collections, summary.restored) == (1, 1)
        assert summary.reports[0].status is PartitionStatus.DONE
        assert await store.collection("voters_119").find() == original
        assert await store.has_collection("voters_119_typefix_20250101")

    async def test_never_resurrects_missing_ids(self, store: SqlDocumentStore, seed, registry) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1", "age": 42}])
        await _backup(store, "voters_119_typefix_20250101", [{"_id": "v1", "age": "42"}, {"_id": "gone", "age": "7"}])

        summary = await restore_backups(store, registry, "_typefix_20250101")

        assert summary.restored == 1
        assert await store.collection("voters_119").find() == [{"_id": "v1", "age": "42"}]

    async def test_oldest_copy_wins(self, store: SqlDocumentStore, seed, registry) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1", "age": 3}])
        await _backup(store, "voters_119_typefix_20250101", [{"_id": "v1", "age": "1"}])
        await _backup(store, "voters_119_typefix_20250101", [{"_id": "v1", "age": "2"}])

        summary = await restore_backups(store, registry, "_typefix_20250101")

        assert summary.restored == 1
        assert await store.collection("voters_119").find() == [{"_id": "v1", "age": "1"}]

    async def test_dry_run_counts_without_writing(self, store: SqlDocumentStore, seed, registry) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1", "age": 42}, {"_id": "v2", "age": 5}])
        await _backup(
            store,
            "voters_119_typefix_20250101",
            [{"_id": "v1", "age": "42"}, {"_id": "v1", "age": "41"}, {"_id": "v2", "age": "5"}, {"_id": "gone"}],
        )

        with patch.object(SqlCollection, "bulk_write", new_callable=AsyncMock) as bulk_write:
            summary = await restore_backups(store, registry, "_typefix_20250101", dry_run=True)

        bulk_write.assert_not_awaited()
        assert summary.would_restore == 2
        assert summary.restored == 0
        assert summary.reports[0].status is PartitionStatus.REPORT_ONLY
        assert summary.reports[0].backup_documents == 4

    async def test_collection_filter(self, store: SqlDocumentStore, seed, registry) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_119", [{"_id": "v1", "age": 1}])
        await seed("surveyresponses_119", [{"_id": "s1", "respondentAge": 1}])
        await _backup(store, "voters_119_typefix_20250101", [{"_id": "v1", "age": "1"}])
        await _backup(store, "surveyresponses_119_typefix_20250101", [{"_id": "s1", "respondentAge": "1"}])

        summary = await restore_backups(store, registry, "_typefix_20250101", collection_filter="voters")

        assert summary.collections == 1
        assert summary.reports[0].collection == "voters_119"
        assert (await store.collection("surveyresponses_119").find())[0]["respondentAge"] == 1

    async def test_read_error_fails_collection_only(self, store: SqlDocumentStore, seed, registry) -> None:  # type: ignore[no-untyped-def]
        await seed("voters_101", [{"_id": "a1", "age": 1}])
        await seed("voters_119", [{"_id": "v1", "age": 42}])
        await _backup(store, "voters_101_typefix_20250101", [{"_id": "a1", "age": "1"}])
        await _backup(store, "voters_119_typefix_20250101", [{"_id": "v1", "age": "42"}])
        original = SqlCollection.find_batches

        def failing(self, filter=None, *, batch_size):  # type: ignore[no-untyped-def]  # noqa: A002
            if self.name == "voters_101_typefix_20250101":
                raise StoreReadError(self.name, "connection lost")
            return original(self, filter, batch_size=batch_size)

        with patch.object(SqlCollection, "find_batches", failing):
            summary = await restore_backups(store, registry, "_typefix_20250101")

        failed, restored = summary.reports
        assert failed.status is PartitionStatus.FAILED
        assert "connection lost" in (failed.error or "")
        assert restored.status is PartitionStatus.DONE
        assert summary.restored == 1
        assert await store.collection("voters_119").find() == [{"_id": "v1", "age": "42"}]

    async def test_inert_and_missing_partitions_skipped(self, store: SqlDocumentStore, registry) -> None:  # type: ignore[no-untyped-def]
        await _backup(store, "voters_999_typefix_20250101", [{"_id": "v1"}])
        await _backup(store, "voters_119_typefix_20250101", [{"_id": "v1"}])

        summary = await restore_backups(store, registry, "_typefix_20250101")

        assert summary.collections == 2
        assert {r.status for r in summary.reports} == {PartitionStatus.SKIPPED}
        assert summary.restored == 0

    async def test_no_matching_backups(self, store: SqlDocumentStore, registry: PartitionRegistry) -> None:
        summary = await restore_backups(store, registry, "_backup_20990101")
        assert summary.collections == 0
        assert summary.reports == []
