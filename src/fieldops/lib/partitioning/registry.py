"""Static AC registry, entity kinds, and type-normalization rule tables.

The registry is an immutable configuration struct built once at process
start (``default_registry()``) and passed explicitly to every component
that needs it. Tests construct their own registries.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from fieldops.core.errors import ConfigurationError


class EntityKind(StrEnum):
    """Closed set of AC-sharded entity kinds."""

    VOTERS = "voters"
    SURVEY_RESPONSES = "survey-responses"
    MOBILE_ANSWERS = "mobile-answers"
    AGENT_ACTIVITIES = "agent-activities"

    @property
    def collection_prefix(self) -> str:
        """Partition-name prefix persisted in the document store."""
        return _COLLECTION_PREFIXES[self]

    @classmethod
    def parse(cls, value: EntityKind | str) -> EntityKind:
        """Parse an entity kind from its kind name or its partition prefix.

        Args:
            value: An EntityKind, kind name (``survey-responses``), or
                partition prefix (``surveyresponses``).

        Returns:
            The matching EntityKind.

        Raises:
            ConfigurationError: If the value names no known entity kind.
        """
        if isinstance(value, EntityKind):
            return value
        text = str(value).strip().lower()
        for kind in cls:
            if text in (kind.value, kind.collection_prefix):
                return kind
        msg = f"Unknown entity kind: {value!r}"
        raise ConfigurationError(msg)


_COLLECTION_PREFIXES: dict[EntityKind, str] = {
    EntityKind.VOTERS: "voters",
    EntityKind.SURVEY_RESPONSES: "surveyresponses",
    EntityKind.MOBILE_ANSWERS: "mobileappanswers",
    EntityKind.AGENT_ACTIVITIES: "boothagentactivities",
}


class TargetType(StrEnum):
    """Declared runtime type of a normalized field."""

    STRING = "string"
    NUMBER = "number"


@dataclass(frozen=True)
class TypeRule:
    """Declared target type for one field of one entity kind."""

    field: str
    target: TargetType
    description: str = ""


AC_NAMES: dict[int, str] = {
    101: "Dharapuram (SC)",
    102: "Kangayam",
    108: "Udhagamandalam",
    109: "Gudalur (SC)",
    110: "Coonoor",
    111: "Mettupalayam",
    112: "Avanashi (SC)",
    113: "Tiruppur North",
    114: "Tiruppur South",
    115: "Palladam",
    116: "Sulur",
    117: "Kavundampalayam",
    118: "Coimbatore North",
    119: "Thondamuthur",
    120: "Coimbatore South",
    121: "Singanallur",
    122: "Kinathukadavu",
    123: "Pollachi",
    124: "Valparai (SC)",
    125: "Udumalaipettai",
    126: "Madathukulam",
}

ALL_AC_KEYS: tuple[int, ...] = tuple(AC_NAMES)

TYPE_RULES: dict[EntityKind, tuple[TypeRule, ...]] = {
    EntityKind.VOTERS: (
        TypeRule("aci_id", TargetType.NUMBER, "AC ID should be number"),
        TypeRule("age", TargetType.NUMBER, "Age should be number"),
        TypeRule("mobile", TargetType.STRING, "Mobile number should be string"),
        TypeRule("doornumber", TargetType.STRING, "Door number should be string"),
    ),
    EntityKind.SURVEY_RESPONSES: (
        TypeRule("aci_id", TargetType.NUMBER, "AC ID should be number"),
        TypeRule("respondentAge", TargetType.NUMBER, "Age should be number"),
    ),
    EntityKind.MOBILE_ANSWERS: (TypeRule("aci_id", TargetType.NUMBER, "AC ID should be number"),),
    EntityKind.AGENT_ACTIVITIES: (
        TypeRule("aci_id", TargetType.NUMBER, "AC ID should be number"),
        TypeRule("timeSpentMinutes", TargetType.NUMBER, "Time should be number"),
        TypeRule("surveyCount", TargetType.NUMBER, "Count should be number"),
        TypeRule("voterInteractions", TargetType.NUMBER, "Count should be number"),
    ),
}

# Reservation suffixes such as "(SC)" are dropped to form a legacy alias.
_RESERVATION_SUFFIX = re.compile(r"\s*\((SC|ST)\)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class PartitionRegistry:
    """Immutable registry of valid AC keys, their names, and per-kind type rules.

    Attributes:
        ac_keys: Registered AC keys in processing order.
        ac_names: AC key to display name.
        type_rules: Declared field types per entity kind.
        aliases: Extra names (legacy spellings) that resolve to an AC key.
        name_index: Lowercase name or alias to AC key, derived on construction.
    """

    ac_keys: tuple[int, ...]
    ac_names: Mapping[int, str]
    type_rules: Mapping[EntityKind, tuple[TypeRule, ...]] = field(default_factory=dict)
    aliases: Mapping[str, int] = field(default_factory=dict)
    name_index: Mapping[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.ac_keys:
            msg = "AC registry must contain at least one AC key"
            raise ConfigurationError(msg)
        for key in self.ac_keys:
            if isinstance(key, bool) or not isinstance(key, int) or key <= 0:
                msg = f"AC keys must be positive integers, got {key!r}"
                raise ConfigurationError(msg)
        if len(set(self.ac_keys)) != len(self.ac_keys):
            msg = "AC registry contains duplicate keys"
            raise ConfigurationError(msg)
        unknown = set(self.ac_names) - set(self.ac_keys)
        if unknown:
            msg = f"AC names reference unregistered keys: {sorted(unknown)}"
            raise ConfigurationError(msg)
        for kind in self.type_rules:
            if not isinstance(kind, EntityKind):
                msg = f"Type rules reference unknown entity kind: {kind!r}"
                raise ConfigurationError(msg)
        object.__setattr__(self, "ac_keys", tuple(self.ac_keys))
        object.__setattr__(self, "ac_names", MappingProxyType(dict(self.ac_names)))
        object.__setattr__(self, "type_rules", MappingProxyType(dict(self.type_rules)))
        object.__setattr__(self, "name_index", MappingProxyType(self._build_name_index()))

    def _build_name_index(self) -> dict[str, int]:
        index: dict[str, int] = {}
        for key, name in self.ac_names.items():
            index[name.strip().lower()] = key
            short = _RESERVATION_SUFFIX.sub("", name).strip().lower()
            index.setdefault(short, key)
        for alias, key in self.aliases.items():
            if key not in self.ac_keys:
                msg = f"AC alias {alias!r} references unregistered key {key}"
                raise ConfigurationError(msg)
            index[alias.strip().lower()] = key
        return index

    def is_registered(self, ac_key: int | None) -> bool:
        """Return True if the AC key is in the registry."""
        return ac_key is not None and ac_key in self.ac_keys

    def name_for(self, ac_key: int | None) -> str | None:
        """Return the AC display name, or None when there is no mapping."""
        if ac_key is None:
            return None
        return self.ac_names.get(ac_key)

    def key_for_name(self, name: str) -> int | None:
        """Case-insensitive exact lookup of an AC name or alias."""
        return self.name_index.get(name.strip().lower())

    def rules_for(self, kind: EntityKind) -> tuple[TypeRule, ...]:
        """Return the declared type rules for an entity kind."""
        return self.type_rules.get(kind, ())


def default_registry() -> PartitionRegistry:
    """Build the production AC registry."""
    return PartitionRegistry(ac_keys=ALL_AC_KEYS, ac_names=AC_NAMES, type_rules=TYPE_RULES)
