"""Typer CLI root application."""

import typer

from fieldops.core.config import get_settings
from fieldops.core.logging import setup_logging

app = typer.Typer(name="fieldops", help="AC-partitioned field data maintenance CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from fieldops.cli.migrate_cmd import migrate_app
    from fieldops.cli.partitions_cmd import partitions
    from fieldops.cli.rollback_cmd import rollback_app

    app.add_typer(migrate_app, name="migrate", help="Batched partition migrations (dry run by default)")
    app.add_typer(rollback_app, name="rollback", help="Backup listing and restore commands")
    app.command("partitions")(partitions)


_register_subcommands()
