"""Rollback CLI commands: list backup collections and restore from them."""

import asyncio

import typer

rollback_app = typer.Typer()


@rollback_app.command("list")
def list_cmd() -> None:
    """List backup collections grouped by suffix, newest first."""
    asyncio.run(_list_backups())


@rollback_app.command("restore")
def restore(
    backup_suffix: str = typer.Option(..., "--backup-suffix", help="Backup suffix, e.g. _backup_20250101"),  # noqa: B008
    collection: str | None = typer.Option(None, "--collection", help="Only restore backups whose name contains this"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Count what would be restored without writing"),  # noqa: FBT001
) -> None:
    """Restore live partitions from the backups carrying a suffix."""
    failed = asyncio.run(_restore(backup_suffix, collection, dry_run))
    if failed:
        raise typer.Exit(code=1)


async def _list_backups() -> None:
    """Async implementation of backup listing."""
    from fieldops.core.config import get_settings
    from fieldops.core.database import dispose_engine, init_engine
    from fieldops.lib.store import SqlDocumentStore
    from fieldops.services.rollback_service import list_backups

    settings = get_settings()
    engine = init_engine(settings.database_url)
    try:
        groups = await list_backups(SqlDocumentStore(engine))
    finally:
        await dispose_engine()

    if not groups:
        typer.echo("No backup collections found.")
        return
    for group in groups:
        typer.echo(f"\n{group.suffix}:")
        for backup in group.collections:
            typer.echo(f"  {backup.name} ({backup.documents} documents) -> {backup.base_collection}")
    typer.echo(f"\nRestore with: fieldops rollback restore --backup-suffix {groups[0].suffix}")


async def _restore(backup_suffix: str, collection: str | None, dry_run: bool) -> int:  # noqa: FBT001
    """Async implementation of a restore. Returns the number of failed collections."""
    from fieldops.core.config import get_settings
    from fieldops.core.database import dispose_engine, init_engine
    from fieldops.lib.partitioning import default_registry
    from fieldops.lib.store import SqlDocumentStore
    from fieldops.schemas.reports import PartitionStatus
    from fieldops.services.rollback_service import restore_backups

    settings = get_settings()
    if not dry_run and settings.live_run_grace_seconds:
        typer.echo(
            f"LIVE MODE: documents will be restored. Starting in {settings.live_run_grace_seconds}s (Ctrl+C to abort)"
        )
        await asyncio.sleep(settings.live_run_grace_seconds)

    engine = init_engine(settings.database_url)
    try:
        summary = await restore_backups(
            SqlDocumentStore(engine),
            default_registry(),
            backup_suffix,
            collection_filter=collection,
            dry_run=dry_run,
        )
    finally:
        await dispose_engine()

    typer.echo(f"\nRollback {summary.backup_suffix} {'(dry run)' if summary.dry_run else 'complete'}:")
    for report in summary.reports:
        count = report.would_restore if summary.dry_run else report.restored
        line = f"  {report.backup_collection} -> {report.collection}: {report.status.value}, {count} documents"
        if report.error:
            line += f" ({report.error})"
        typer.echo(line)
    typer.echo(f"  Collections: {summary.collections}")
    if summary.dry_run:
        typer.echo(f"  Would restore: {summary.would_restore}")
    else:
        typer.echo(f"  Restored: {summary.restored}")
    return sum(1 for r in summary.reports if r.status is PartitionStatus.FAILED)
