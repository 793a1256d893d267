"""Rollback service — enumerate backup collections and restore live partitions from them."""

import re
from collections import defaultdict

from loguru import logger

from fieldops.core.errors import BatchWriteError, ConfigurationError, StoreReadError, UnknownPartitionError
from fieldops.lib.partitioning import PartitionRegistry, PartitionRouter
from fieldops.lib.store import BATCH_SIZE, BulkBuffer, BulkWriteResult, DocumentStore, ReplaceOne
from fieldops.schemas.reports import BackupCollection, BackupGroup, PartitionStatus, RestoreReport, RollbackSummary

_BACKUP_NAME = re.compile(r"^(?P<base>.+?)(?P<tag>_backup_|_typefix_)(?P<date>\d{8})$")


def parse_backup_name(name: str) -> tuple[str, str, str] | None:
    """Split a backup collection name into (base collection, tag, YYYYMMDD).

    Returns None for names that are not backup collections.
    """
    match = _BACKUP_NAME.match(name)
    if match is None:
        return None
    return match.group("base"), match.group("tag"), match.group("date")


async def list_backups(store: DocumentStore) -> list[BackupGroup]:
    """List backup collections grouped by suffix, newest first.

    Pure read: only collection names and document counts are fetched.

    Args:
        store: Document store to inspect.

    Returns:
        One group per tag and date, each listing its collections by name.
    """
    groups: dict[str, list[BackupCollection]] = defaultdict(list)
    for name in await store.list_collection_names():
        parsed = parse_backup_name(name)
        if parsed is None:
            continue
        base, tag, stamp = parsed
        documents = await store.collection(name, unique_ids=False).count()
        backup = BackupCollection(name=name, base_collection=base, backup_type=tag, date=stamp, documents=documents)
        groups[backup.suffix].append(backup)

    ordered = sorted(groups.items(), key=lambda item: (item[1][0].date, item[0]), reverse=True)
    return [BackupGroup(suffix=suffix, collections=sorted(cols, key=lambda c: c.name)) for suffix, cols in ordered]


async def _restore_collection(
    router: PartitionRouter,
    backup_name: str,
    base_name: str,
    *,
    dry_run: bool,
    batch_size: int,
) -> RestoreReport:
    report = RestoreReport(backup_collection=backup_name, collection=base_name, status=PartitionStatus.SKIPPED)
    store = router.store

    try:
        kind, ac_key = router.parse_partition_name(base_name)
    except UnknownPartitionError as exc:
        logger.warning(f"[{backup_name}] {exc}, skipping")
        report.error = str(exc)
        return report

    backup = store.collection(backup_name, unique_ids=False)
    live = router.route(kind, ac_key)
    seen: set[str] = set()

    def _progress(_batch: BulkWriteResult, totals: BulkWriteResult) -> None:
        logger.info(f"[{base_name}] Restored {totals.modified}/{report.backup_documents}")

    buffer = BulkBuffer(live, capacity=batch_size, on_flush=_progress)
    try:
        report.backup_documents = await backup.count()
        logger.info(f"[{backup_name}] {report.backup_documents} documents in backup")

        if not await store.has_collection(base_name):
            logger.warning(f"[{backup_name}] Live collection {base_name} not found, skipping")
            report.error = f"Live collection {base_name} not found"
            return report

        if dry_run:
            async for batch in backup.find_batches(batch_size=batch_size):
                ids = []
                for document in batch:
                    doc_id = str(document["_id"])
                    if doc_id not in seen:
                        seen.add(doc_id)
                        ids.append(doc_id)
                report.would_restore += len(await live.existing_ids(ids))
            logger.info(f"[{backup_name}] DRY RUN would restore {report.would_restore} documents to {base_name}")
            report.status = PartitionStatus.REPORT_ONLY
            return report

        async for batch in backup.find_batches(batch_size=batch_size):
            for document in batch:
                doc_id = str(document["_id"])
                # Same-day runs append to one backup; the oldest copy is the pre-migration state.
                if doc_id in seen:
                    continue
                seen.add(doc_id)
                await buffer.add(ReplaceOne(doc_id, document, upsert=False))
            await buffer.flush()
    except BatchWriteError as exc:
        exc.batch_index = buffer.batches + 1 if exc.batch_index is None else exc.batch_index
        report.restored = buffer.totals.modified
        report.status = PartitionStatus.FAILED
        report.error = str(exc)
        logger.error(
            f"[{base_name}] Restore batch {exc.batch_index} failed after {report.restored} restored: {exc.message}"
        )
        return report
    except StoreReadError as exc:
        report.restored = buffer.totals.modified
        report.status = PartitionStatus.FAILED
        report.error = str(exc)
        logger.error(f"[{backup_name}] Read failed after {report.restored} restored: {exc.message}")
        return report

    report.restored = buffer.totals.modified
    report.status = PartitionStatus.DONE
    logger.info(f"[{base_name}] Restored {report.restored} documents from {backup_name}")
    return report


async def restore_backups(
    store: DocumentStore,
    registry: PartitionRegistry,
    backup_suffix: str,
    *,
    collection_filter: str | None = None,
    dry_run: bool = False,
    batch_size: int = BATCH_SIZE,
) -> RollbackSummary:
    """Restore live partitions from the backups carrying a suffix.

    Each backup document replaces the live document with the same id.
    Documents missing from the live partition are never re-created, and
    backup collections are left in place.

    Args:
        store: Document store holding live and backup collections.
        registry: AC registry used to validate live partition names.
        backup_suffix: Suffix such as ``_backup_20250101``.
        collection_filter: Only restore backups whose name contains this text.
        dry_run: Count what would be restored without writing.
        batch_size: Documents per bulk write.

    Returns:
        Totals and one report per processed backup collection.

    Raises:
        ConfigurationError: If ``backup_suffix`` is empty.
    """
    if not backup_suffix or not backup_suffix.strip():
        msg = "A backup suffix is required (e.g. _backup_20250101)"
        raise ConfigurationError(msg)
    backup_suffix = backup_suffix.strip()

    router = PartitionRouter(registry, store)
    summary = RollbackSummary(backup_suffix=backup_suffix, dry_run=dry_run)
    mode = "DRY RUN (no changes will be made)" if dry_run else "LIVE"
    with logger.contextualize(run=f"rollback{backup_suffix}"):
        logger.info(f"Rollback {backup_suffix}: {mode}")

        names = [
            name
            for name in await store.list_collection_names()
            if name.endswith(backup_suffix)
            and parse_backup_name(name) is not None
            and (not collection_filter or collection_filter in name)
        ]
        if not names:
            logger.warning(f"No backup collections found with suffix {backup_suffix}")
            return summary

        for name in names:
            base, _tag, _stamp = parse_backup_name(name)  # type: ignore[misc]
            report = await _restore_collection(router, name, base, dry_run=dry_run, batch_size=batch_size)
            summary.reports.append(report)
            summary.collections += 1
            summary.restored += report.restored
            summary.would_restore += report.would_restore

        logger.info(
            f"Rollback complete: {summary.collections} collections, "
            f"{summary.would_restore if dry_run else summary.restored} documents "
            f"{'would be restored' if dry_run else 'restored'}"
        )
        return summary
