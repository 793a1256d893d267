"""Read-time and migration-time document reconciliation.

``reconcile`` produces the normalized view of one document. The partial
helpers ``missing_field_updates`` and ``type_updates`` return only the
fields that would change; the migration engine writes exactly those as
``$set`` updates, so migrated and read-time views never diverge.
"""

from collections.abc import Mapping
from copy import deepcopy
from typing import Any

from fieldops.lib.partitioning.identifiers import pick_first, resolve_ac_key
from fieldops.lib.partitioning.registry import EntityKind, PartitionRegistry
from fieldops.lib.reconciler.aliases import AC_ID_FIELDS, BOOTH_ID_FIELDS, FIELD_ALIASES, FIELD_DEFAULTS, LOCATION_KINDS
from fieldops.lib.reconciler.booths import BoothLookup, extract_booth_number
from fieldops.lib.reconciler.coercion import coerce_fields, parse_number


def _blank(value: Any) -> bool:
    return value is None or value == ""


def _to_float(value: Any) -> float | None:
    number = parse_number(value)
    return None if number is None else float(number)


def normalize_location(location: Any) -> dict[str, Any] | None:
    """Normalize flat or GeoJSON point locations to one shape.

    Already-normalized locations are returned unchanged; unrecognized
    shapes become None.
    """
    if not isinstance(location, Mapping):
        return None
    if "_originalFormat" in location:
        return dict(location)

    if location.get("latitude") is not None and location.get("longitude") is not None:
        latitude = _to_float(location["latitude"])
        longitude = _to_float(location["longitude"])
        if latitude is None or longitude is None:
            return None
        accuracy = _to_float(location.get("accuracy")) if location.get("accuracy") else None
        return {
            "latitude": latitude,
            "longitude": longitude,
            "accuracy": accuracy,
            "_originalFormat": "Flat",
            "_geoJSON": {"type": "Point", "coordinates": [longitude, latitude]},
        }

    coordinates = location.get("coordinates")
    if location.get("type") == "Point" and isinstance(coordinates, list) and len(coordinates) >= 2:
        longitude = _to_float(coordinates[0])
        latitude = _to_float(coordinates[1])
        if latitude is None or longitude is None:
            return None
        return {
            "latitude": latitude,
            "longitude": longitude,
            "accuracy": None,
            "_originalFormat": "GeoJSON",
            "_geoJSON": dict(location),
        }

    return None


def document_ac_key(document: Mapping[str, Any], registry: PartitionRegistry) -> int | None:
    """Resolve the AC key a document refers to from its legacy AC fields."""
    return resolve_ac_key(pick_first(document, AC_ID_FIELDS), registry)


def missing_field_updates(
    document: Mapping[str, Any],
    registry: PartitionRegistry,
    *,
    ac_key: int | None = None,
    booth_lookup: BoothLookup | None = None,
) -> dict[str, Any]:
    """Return the canonical AC-name and booth fields a document is missing.

    Args:
        document: The stored document.
        registry: Registry supplying the AC name table.
        ac_key: AC key of the partition, used when the document carries none.
        booth_lookup: Booth id → name/number map for the document's AC.

    Returns:
        Fields to set. ``aci_name`` is set to None when no mapping exists so
        consumers can tell "no mapping" from "blank name".
    """
    updates: dict[str, Any] = {}

    current_name = document.get("aci_name")
    if _blank(current_name):
        derived = registry.name_for(document_ac_key(document, registry) or ac_key)
        if "aci_name" not in document or (derived is not None and derived != current_name):
            updates["aci_name"] = derived

    booth_id = pick_first(document, BOOTH_ID_FIELDS)
    if booth_id is None:
        return updates

    entry = (booth_lookup or {}).get(str(booth_id))
    if entry is not None:
        # The lookup is authoritative; no pattern fallback when an entry exists.
        for field in ("boothname", "boothno"):
            value = entry.get(field)
            if _blank(document.get(field)) and not _blank(value):
                updates[field] = value
    elif _blank(document.get("boothno")):
        booth_no = extract_booth_number(booth_id)
        if booth_no is not None:
            updates["boothno"] = booth_no

    return updates


def type_updates(
    entity_kind: EntityKind | str,
    document: Mapping[str, Any],
    registry: PartitionRegistry,
) -> dict[str, Any]:
    """Return converted values for fields whose type mismatches the declared rules."""
    return coerce_fields(dict(document), registry.rules_for(EntityKind.parse(entity_kind)))


def reconcile(
    entity_kind: EntityKind | str,
    document: Mapping[str, Any],
    registry: PartitionRegistry,
    *,
    booth_lookup: BoothLookup | None = None,
    ac_key: int | None = None,
) -> dict[str, Any]:
    """Return the normalized view of a stored document.

    Steps: legacy field aliases, location shape, canonical ``aci_id`` and
    ``aci_name``, booth fields, declared type coercion. Unknown fields are
    carried through untouched and the input is never mutated.

    Args:
        entity_kind: Entity kind name or partition prefix.
        document: The stored document.
        registry: AC registry with name table and type rules.
        booth_lookup: Optional booth lookup for the document's AC.
        ac_key: AC key of the partition the document came from.

    Returns:
        A new, normalized document. ``reconcile`` is idempotent.

    Raises:
        ConfigurationError: If the entity kind is unknown.
    """
    kind = EntityKind.parse(entity_kind)
    result = dict(document)

    defaults = FIELD_DEFAULTS.get(kind, {})
    for target, candidates in FIELD_ALIASES.get(kind, {}).items():
        value = pick_first(result, candidates)
        if value is not None:
            result[target] = value
        elif target in defaults:
            result[target] = deepcopy(defaults[target])

    if kind in LOCATION_KINDS and result.get("location") is not None:
        result["location"] = normalize_location(result["location"])

    resolved_ac = document_ac_key(result, registry)
    if resolved_ac is not None:
        result["aci_id"] = resolved_ac

    booth_id = pick_first(result, BOOTH_ID_FIELDS)
    if booth_id is not None:
        result["booth_id"] = booth_id

    result.update(missing_field_updates(result, registry, ac_key=ac_key, booth_lookup=booth_lookup))
    result.update(type_updates(kind, result, registry))
    return result
