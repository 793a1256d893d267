"""Partition routing: entity kind + AC key to a physical document collection.

Partition names follow ``{prefix}_{acKey}`` for live partitions and
``{prefix}_{acKey}{suffix}`` for backups. This naming is the persisted
layout the rollback engine relies on, so it must not change.
"""

import re
from collections.abc import Iterable, Iterator

from fieldops.core.errors import UnknownPartitionError
from fieldops.lib.partitioning.registry import EntityKind, PartitionRegistry
from fieldops.lib.store.base import DocumentCollection, DocumentStore

_PARTITION_NAME = re.compile(r"^(?P<prefix>[a-z]+)_(?P<ac_key>\d+)$")


def partition_name(entity_kind: EntityKind | str, ac_key: int) -> str:
    """Return the live partition name for an entity kind and AC key."""
    return f"{EntityKind.parse(entity_kind).collection_prefix}_{ac_key}"


class PartitionRouter:
    """Maps (entity kind, AC key) pairs to document collections.

    Holds no mutable state: only the immutable registry and the store
    reference it routes into. Never creates live partitions.

    Args:
        registry: The AC registry defining valid AC keys.
        store: Document store the returned handles belong to.
    """

    def __init__(self, registry: PartitionRegistry, store: DocumentStore) -> None:
        self.registry = registry
        self.store = store

    def _check_ac(self, ac_key: int) -> int:
        if not self.registry.is_registered(ac_key):
            raise UnknownPartitionError(ac_key)
        return ac_key

    def partition_name(self, entity_kind: EntityKind | str, ac_key: int) -> str:
        """Return the validated live partition name.

        Raises:
            ConfigurationError: If the entity kind is unknown.
            UnknownPartitionError: If the AC key is not registered.
        """
        kind = EntityKind.parse(entity_kind)
        return partition_name(kind, self._check_ac(ac_key))

    def backup_name(self, entity_kind: EntityKind | str, ac_key: int, backup_suffix: str) -> str:
        """Return the backup partition name for a live partition and suffix."""
        return f"{self.partition_name(entity_kind, ac_key)}{backup_suffix}"

    def route(self, entity_kind: EntityKind | str, ac_key: int) -> DocumentCollection:
        """Return the live partition handle.

        Args:
            entity_kind: Entity kind name or partition prefix.
            ac_key: Canonical AC key.

        Returns:
            Collection handle supporting find, aggregate, and bulk write.

        Raises:
            ConfigurationError: If the entity kind is unknown.
            UnknownPartitionError: If the AC key is not registered.
        """
        return self.store.collection(self.partition_name(entity_kind, ac_key))

    def route_backup(self, entity_kind: EntityKind | str, ac_key: int, backup_suffix: str) -> DocumentCollection:
        """Return the backup partition handle, creating the backup table on first write."""
        name = self.backup_name(entity_kind, ac_key, backup_suffix)
        return self.store.collection(name, create=True, unique_ids=False)

    def parse_partition_name(self, name: str) -> tuple[EntityKind, int]:
        """Invert the live partition naming contract.

        Args:
            name: A live partition name such as ``surveyresponses_119``.

        Returns:
            Tuple of (entity kind, AC key).

        Raises:
            UnknownPartitionError: If the name is not a registered live partition.
        """
        match = _PARTITION_NAME.match(name)
        if match is None:
            raise UnknownPartitionError(name, f"Not a partition name: {name!r}")
        prefix = match.group("prefix")
        kind = next((k for k in EntityKind if k.collection_prefix == prefix), None)
        if kind is None:
            raise UnknownPartitionError(name, f"Unknown partition prefix in {name!r}")
        return kind, self._check_ac(int(match.group("ac_key")))

    def iter_partitions(
        self,
        entity_kinds: Iterable[EntityKind | str],
        ac_keys: Iterable[int] | None = None,
    ) -> Iterator[tuple[int, EntityKind, str]]:
        """Yield (AC key, entity kind, partition name), AC-major in registry order.

        Unregistered AC keys raise UnknownPartitionError when reached.
        """
        kinds = [EntityKind.parse(k) for k in entity_kinds]
        for ac_key in self.registry.ac_keys if ac_keys is None else ac_keys:
            for kind in kinds:
                yield ac_key, kind, self.partition_name(kind, ac_key)
