"""Migration service — backed-up partition rewrites, dry run by default.

A migration walks every AC partition of its entity kinds in registry order:

    SCAN -> REPORT_ONLY            (dry run)
    SCAN -> BACKUP -> REWRITE      (live run)
    SKIPPED                        (partition absent or AC unknown)
    FAILED                         (a bulk write failed; the run moves on)

SCAN counts the documents for which the migration's plan yields at least one
field change, so a second live run finds nothing and writes nothing.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any

from loguru import logger

from fieldops.core.errors import BatchWriteError, ConfigurationError, StoreReadError, UnknownPartitionError
from fieldops.lib.partitioning import EntityKind, PartitionRegistry, PartitionRouter, partition_name
from fieldops.lib.reconciler import BoothLookup, build_booth_lookup, missing_field_updates, type_updates
from fieldops.lib.store import (
    BATCH_SIZE,
    BulkBuffer,
    BulkWriteResult,
    DocumentCollection,
    DocumentStore,
    InsertOne,
    UpdateOne,
)
from fieldops.schemas.reports import CollectionReport, MigrationSummary, PartitionStatus

PlanFunction = Callable[..., dict[str, Any]]


def _plan_missing_fields(
    kind: EntityKind,
    document: dict[str, Any],
    registry: PartitionRegistry,
    *,
    ac_key: int,
    booth_lookup: BoothLookup | None,
) -> dict[str, Any]:
    return missing_field_updates(document, registry, ac_key=ac_key, booth_lookup=booth_lookup)


def _plan_normalize_types(
    kind: EntityKind,
    document: dict[str, Any],
    registry: PartitionRegistry,
    *,
    ac_key: int,
    booth_lookup: BoothLookup | None,
) -> dict[str, Any]:
    return type_updates(kind, document, registry)


@dataclass(frozen=True)
class MigrationDefinition:
    """A named migration: which partitions it touches and which fields it sets.

    Attributes:
        name: CLI-facing migration name.
        backup_tag: Tag inserted between partition name and date in backup names.
        entity_kinds: Entity kinds whose partitions are migrated.
        plan: Returns the ``$set`` fields one document needs (empty when conforming).
        needs_booth_lookup: Whether the voters booth lookup is built per AC.
        description: One-line summary for logs.
    """

    name: str
    backup_tag: str
    entity_kinds: tuple[EntityKind, ...]
    plan: PlanFunction
    needs_booth_lookup: bool = False
    description: str = ""


MISSING_FIELDS = MigrationDefinition(
    name="missing-fields",
    backup_tag="_backup_",
    entity_kinds=(EntityKind.SURVEY_RESPONSES, EntityKind.MOBILE_ANSWERS, EntityKind.AGENT_ACTIVITIES),
    plan=_plan_missing_fields,
    needs_booth_lookup=True,
    description="Fill missing aci_name, boothname and boothno",
)

NORMALIZE_TYPES = MigrationDefinition(
    name="normalize-types",
    backup_tag="_typefix_",
    entity_kinds=tuple(EntityKind),
    plan=_plan_normalize_types,
    description="Coerce declared fields to their declared types",
)

MIGRATIONS: dict[str, MigrationDefinition] = {m.name: m for m in (MISSING_FIELDS, NORMALIZE_TYPES)}


def get_migration(name: str) -> MigrationDefinition:
    """Look up a migration definition by name.

    Raises:
        ConfigurationError: If no migration has that name.
    """
    try:
        return MIGRATIONS[name]
    except KeyError:
        msg = f"Unknown migration: {name!r} (choose from {', '.join(MIGRATIONS)})"
        raise ConfigurationError(msg) from None


def backup_suffix(tag: str, run_date: date | None = None) -> str:
    """Return the backup suffix for a tag and run date (UTC today by default)."""
    run_date = run_date or datetime.now(UTC).date()
    return f"{tag}{run_date:%Y%m%d}"


async def _scan(
    collection: DocumentCollection,
    migration: MigrationDefinition,
    kind: EntityKind,
    registry: PartitionRegistry,
    *,
    ac_key: int,
    booth_lookup: BoothLookup | None,
    batch_size: int,
) -> tuple[int, dict[str, Any] | None]:
    """Count non-conforming documents and capture the first one's pending changes."""
    total = 0
    sample: dict[str, Any] | None = None
    async for batch in collection.find_batches(batch_size=batch_size):
        for document in batch:
            updates = migration.plan(kind, document, registry, ac_key=ac_key, booth_lookup=booth_lookup)
            if updates:
                total += 1
                if sample is None:
                    sample = {"_id": document.get("_id"), "changes": updates}
    return total, sample


def _record_failure(
    report: CollectionReport,
    exc: BatchWriteError | StoreReadError,
    backup: BulkBuffer,
    rewrite: BulkBuffer,
) -> None:
    report.backed_up = backup.totals.inserted
    report.updated = rewrite.totals.modified
    report.status = PartitionStatus.FAILED
    report.error = str(exc)


async def _migrate_partition(
    router: PartitionRouter,
    migration: MigrationDefinition,
    kind: EntityKind,
    ac_key: int,
    *,
    dry_run: bool,
    suffix: str,
    booth_lookup: BoothLookup | None,
    batch_size: int,
) -> CollectionReport:
    name = router.partition_name(kind, ac_key)
    report = CollectionReport(collection=name, entity_kind=kind.value, ac_key=ac_key, status=PartitionStatus.SKIPPED)
    registry = router.registry
    collection = router.route(kind, ac_key)
    backup_name = router.backup_name(kind, ac_key, suffix)
    backup = BulkBuffer(router.route_backup(kind, ac_key, suffix), capacity=batch_size)

    def _progress(_batch: BulkWriteResult, totals: BulkWriteResult) -> None:
        logger.info(f"[{name}] Progress: {totals.modified}/{report.total}")

    rewrite = BulkBuffer(collection, capacity=batch_size, on_flush=_progress)
    phase = "scan"
    try:
        if not await router.store.has_collection(name):
            logger.info(f"[{name}] Collection not found, skipping")
            return report

        report.total, sample = await _scan(
            collection, migration, kind, registry, ac_key=ac_key, booth_lookup=booth_lookup, batch_size=batch_size
        )
        logger.info(f"[{name}] Found {report.total} documents to update")

        if report.total == 0:
            report.status = PartitionStatus.DONE
            return report

        if dry_run:
            logger.info(f"[{name}] DRY RUN sample update: {sample}")
            report.status = PartitionStatus.REPORT_ONLY
            return report

        phase = "backup"
        async for batch in collection.find_batches(batch_size=batch_size):
            for document in batch:
                if migration.plan(kind, document, registry, ac_key=ac_key, booth_lookup=booth_lookup):
                    await backup.add(InsertOne(document))
        await backup.flush()
        report.backed_up = backup.totals.inserted
        logger.info(f"[{name}] Backed up {report.backed_up} documents to {backup_name}")

        phase = "rewrite"
        async for batch in collection.find_batches(batch_size=batch_size):
            for document in batch:
                updates = migration.plan(kind, document, registry, ac_key=ac_key, booth_lookup=booth_lookup)
                if updates:
                    await rewrite.add(UpdateOne(str(document["_id"]), updates))
            await rewrite.flush()
    except BatchWriteError as exc:
        failed = backup if phase == "backup" else rewrite
        exc.batch_index = failed.batches + 1 if exc.batch_index is None else exc.batch_index
        _record_failure(report, exc, backup, rewrite)
        logger.error(
            f"[{name}] {phase} batch {exc.batch_index} failed after {report.backed_up} backed up, "
            f"{report.updated}/{report.total} updated: {exc.message}"
        )
        return report
    except StoreReadError as exc:
        _record_failure(report, exc, backup, rewrite)
        logger.error(
            f"[{name}] {phase} read failed after {report.backed_up} backed up, "
            f"{report.updated}/{report.total} updated: {exc.message}"
        )
        return report

    report.updated = rewrite.totals.modified
    report.status = PartitionStatus.DONE
    logger.info(f"[{name}] Updated {report.updated}/{report.total} documents")
    return report


def _record_ac(
    summary: MigrationSummary,
    kinds: tuple[EntityKind, ...],
    ac_key: int,
    status: PartitionStatus,
    error: str,
) -> None:
    """Record the same outcome for every partition of one AC."""
    for kind in kinds:
        summary.record(
            CollectionReport(
                collection=partition_name(kind, ac_key),
                entity_kind=kind.value,
                ac_key=ac_key,
                status=status,
                error=error,
            )
        )


async def run_migration(
    store: DocumentStore,
    registry: PartitionRegistry,
    migration: MigrationDefinition,
    *,
    dry_run: bool = True,
    ac_keys: Iterable[int] | None = None,
    entity_kinds: Iterable[EntityKind | str] | None = None,
    run_date: date | None = None,
    batch_size: int = BATCH_SIZE,
) -> MigrationSummary:
    """Run a migration over every selected AC partition.

    ACs are processed sequentially in the order given (registry order by
    default). A failing partition is recorded and the run continues.

    Args:
        store: Document store holding the partitions.
        registry: AC registry.
        migration: The migration to run.
        dry_run: Report only; never issue a write.
        ac_keys: Restrict the run to these ACs (all registered ACs when None).
        entity_kinds: Restrict the run to a subset of the migration's kinds.
        run_date: Date stamped into backup names (UTC today when None).
        batch_size: Documents per read batch and per bulk write.

    Returns:
        Per-partition reports and per-kind totals.
    """
    router = PartitionRouter(registry, store)
    suffix = backup_suffix(migration.backup_tag, run_date)
    kinds = migration.entity_kinds
    if entity_kinds is not None:
        requested = {EntityKind.parse(k) for k in entity_kinds}
        kinds = tuple(k for k in migration.entity_kinds if k in requested)
    targets = list(registry.ac_keys if ac_keys is None else ac_keys)

    summary = MigrationSummary(migration=migration.name, backup_suffix=suffix, dry_run=dry_run)
    with logger.contextualize(run=f"{migration.name}{suffix}"):
        logger.info(f"Migration {migration.name}: {migration.description}")
        logger.info(
            f"Mode: {'DRY RUN (no changes will be made)' if dry_run else 'LIVE'}, batch size {batch_size}, "
            f"target ACs: {', '.join(str(ac) for ac in targets)}"
        )

        for ac_key in targets:
            if not registry.is_registered(ac_key):
                error = UnknownPartitionError(ac_key)
                logger.warning(f"AC {ac_key}: {error}, skipping")
                _record_ac(summary, kinds, ac_key, PartitionStatus.SKIPPED, str(error))
                continue

            logger.info(f"Processing AC {ac_key} ({registry.name_for(ac_key)})")
            booth_lookup = None
            if migration.needs_booth_lookup:
                try:
                    booth_lookup = await build_booth_lookup(router.route(EntityKind.VOTERS, ac_key))
                except StoreReadError as exc:
                    logger.error(f"AC {ac_key}: booth lookup failed, skipping its partitions: {exc.message}")
                    _record_ac(summary, kinds, ac_key, PartitionStatus.FAILED, str(exc))
                    continue

            for kind in kinds:
                report = await _migrate_partition(
                    router,
                    migration,
                    kind,
                    ac_key,
                    dry_run=dry_run,
                    suffix=suffix,
                    booth_lookup=booth_lookup,
                    batch_size=batch_size,
                )
                summary.record(report)

        for kind, totals in summary.totals.items():
            logger.info(f"{kind}: {totals.updated}/{totals.total} updated")
        if summary.failed:
            failed = ", ".join(c.collection for c in summary.failed)
            logger.warning(f"{len(summary.failed)} partitions failed: {failed}")
        return summary
