"""Partitioning library public API.

Provides the AC registry, identifier normalization, and partition routing.
"""

from fieldops.lib.partitioning.identifiers import (
    pick_first,
    resolve_ac_key,
    resolve_ac_name,
    resolve_assigned_ac,
    to_ac_number,
)
from fieldops.lib.partitioning.registry import (
    AC_NAMES,
    ALL_AC_KEYS,
    TYPE_RULES,
    EntityKind,
    PartitionRegistry,
    TargetType,
    TypeRule,
    default_registry,
)
from fieldops.lib.partitioning.router import PartitionRouter, partition_name

__all__ = [
    "AC_NAMES",
    "ALL_AC_KEYS",
    "TYPE_RULES",
    "EntityKind",
    "PartitionRegistry",
    "PartitionRouter",
    "TargetType",
    "TypeRule",
    "default_registry",
    "partition_name",
    "pick_first",
    "resolve_ac_key",
    "resolve_ac_name",
    "resolve_assigned_ac",
    "to_ac_number",
]
