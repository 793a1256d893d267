"""Partition registry CLI command."""

import typer

from fieldops.lib.partitioning import EntityKind, default_registry, partition_name


def partitions(
    kind: str | None = typer.Option(None, "--kind", help="Only show partitions of this entity kind"),
) -> None:
    """Print the AC registry and the partition names of every AC."""
    registry = default_registry()
    kinds = [EntityKind.parse(kind)] if kind else list(EntityKind)
    typer.echo(f"{len(registry.ac_keys)} registered ACs:")
    for ac_key in registry.ac_keys:
        names = ", ".join(partition_name(k, ac_key) for k in kinds)
        typer.echo(f"  {ac_key:>4}  {registry.name_for(ac_key) or '-':<20}  {names}")
