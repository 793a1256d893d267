"""Migration CLI commands: backfill missing fields and normalize field types."""

import asyncio

import typer

migrate_app = typer.Typer()


def resolve_dry_run(dry_run: bool, live: bool, default: bool) -> bool:  # noqa: FBT001
    """Combine the mode flags with the ``DRY_RUN`` setting.

    Raises:
        typer.BadParameter: If both ``--dry-run`` and ``--live`` are given.
    """
    if dry_run and live:
        msg = "--dry-run and --live are mutually exclusive"
        raise typer.BadParameter(msg)
    if live:
        return False
    if dry_run:
        return True
    return default


@migrate_app.command("missing-fields")
def missing_fields(
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would change without writing"),  # noqa: FBT001
    live: bool = typer.Option(False, "--live", help="Back up and rewrite the partitions"),  # noqa: FBT001
    ac: list[int] | None = typer.Option(None, "--ac", help="AC key to migrate (repeatable; default all)"),  # noqa: B008
) -> None:
    """Fill missing aci_name, boothname and boothno on survey, answer and activity partitions."""
    _run("missing-fields", dry_run, live, ac)


@migrate_app.command("normalize-types")
def normalize_types(
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would change without writing"),  # noqa: FBT001
    live: bool = typer.Option(False, "--live", help="Back up and rewrite the partitions"),  # noqa: FBT001
    ac: list[int] | None = typer.Option(None, "--ac", help="AC key to migrate (repeatable; default all)"),  # noqa: B008
) -> None:
    """Coerce declared fields (AC ids, ages, counts, phone numbers) to their declared types."""
    _run("normalize-types", dry_run, live, ac)


def _run(name: str, dry_run: bool, live: bool, ac: list[int] | None) -> None:  # noqa: FBT001
    failed = asyncio.run(_run_migration(name, dry_run, live, ac or None))
    if failed:
        raise typer.Exit(code=1)


async def _run_migration(name: str, dry_run: bool, live: bool, ac_keys: list[int] | None) -> int:  # noqa: FBT001
    """Async implementation of a migration run. Returns the number of failed partitions."""
    from fieldops.core.config import get_settings
    from fieldops.core.database import dispose_engine, init_engine
    from fieldops.lib.partitioning import default_registry
    from fieldops.lib.store import SqlDocumentStore
    from fieldops.services.migration_service import get_migration, run_migration

    settings = get_settings()
    is_dry_run = resolve_dry_run(dry_run, live, settings.dry_run)
    migration = get_migration(name)
    targets = ac_keys or settings.target_ac_key_list or None

    if not is_dry_run and settings.live_run_grace_seconds:
        typer.echo(
            f"LIVE MODE: changes will be written. Starting in {settings.live_run_grace_seconds}s (Ctrl+C to abort)"
        )
        await asyncio.sleep(settings.live_run_grace_seconds)

    engine = init_engine(settings.database_url)
    try:
        summary = await run_migration(
            SqlDocumentStore(engine),
            default_registry(),
            migration,
            dry_run=is_dry_run,
            ac_keys=targets,
        )
    finally:
        await dispose_engine()

    typer.echo(f"\nMigration {summary.migration} {'(dry run)' if summary.dry_run else 'complete'}:")
    for report in summary.collections:
        line = f"  {report.collection}: {report.status.value}, {report.updated}/{report.total} updated"
        if report.backed_up:
            line += f", {report.backed_up} backed up"
        if report.error:
            line += f" ({report.error})"
        typer.echo(line)
    for kind, totals in summary.totals.items():
        typer.echo(f"  Total {kind}: {totals.updated}/{totals.total}")
    if not summary.dry_run:
        typer.echo(f"Backup suffix: {summary.backup_suffix}")
    return len(summary.failed)
