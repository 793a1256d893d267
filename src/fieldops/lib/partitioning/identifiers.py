"""AC identifier normalization.

Resolves heterogeneous AC identifiers (numeric ids, numeric strings, AC
names, legacy name spellings) to one canonical positive integer key. All
functions here are pure and total: unresolvable input yields ``None``.
"""

import math
import re
from collections.abc import Mapping
from typing import Any

from fieldops.lib.partitioning.registry import PartitionRegistry

_INTEGER_LITERAL = re.compile(r"^[+-]?\d+$")
_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

# Legacy user fields carrying the assigned AC, in priority order.
ASSIGNED_AC_FIELDS: tuple[str, ...] = ("assignedAC", "aci_id", "ac_id", "acNumber", "aciNumber")

# Legacy user fields carrying a human-readable AC name, in priority order.
AC_NAME_FIELDS: tuple[str, ...] = ("aciName", "aci_name", "ac_name", "acName")


def to_ac_number(value: Any) -> int | None:
    """Convert a numeric or numeric-looking value to a positive integral AC key.

    Args:
        value: Candidate value (int, float, or string).

    Returns:
        The AC key, or None when the value is not a finite positive integer.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        return int(value) if value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        if _INTEGER_LITERAL.match(text):
            try:
                number = int(text)
            except ValueError:
                # Beyond the interpreter's int-string digit limit.
                return None
            return number if number > 0 else None
        if _DECIMAL_LITERAL.match(text):
            return to_ac_number(float(text))
    return None


def resolve_ac_key(identifier: Any, registry: PartitionRegistry) -> int | None:
    """Resolve an AC identifier to its canonical numeric key.

    Numeric input is accepted directly when finite, positive and integral.
    Strings are matched case-insensitively against the AC name table
    (including legacy aliases) before a numeric parse is attempted.

    Args:
        identifier: Numeric id, AC name, numeric string, or None.
        registry: AC registry providing the name table.

    Returns:
        The AC key, or None if the identifier cannot be resolved. ``None``
        means "no scoping applied", never AC key 0.
    """
    if isinstance(identifier, str):
        text = identifier.strip()
        if not text:
            return None
        by_name = registry.key_for_name(text)
        if by_name is not None:
            return by_name
        return to_ac_number(text)
    return to_ac_number(identifier)


def pick_first(document: Mapping[str, Any], paths: tuple[str, ...] | list[str]) -> Any:
    """Return the first non-null value among dot-notation paths, or None."""
    for path in paths:
        value: Any = document
        for part in path.split("."):
            if not isinstance(value, Mapping):
                value = None
                break
            value = value.get(part)
        if value is not None:
            return value
    return None


def resolve_assigned_ac(user: Mapping[str, Any] | None, registry: PartitionRegistry) -> int | None:
    """Resolve the assigned AC of a user payload from its legacy fields.

    Args:
        user: User document or session payload.
        registry: AC registry providing the name table.

    Returns:
        The first resolvable AC key among ``ASSIGNED_AC_FIELDS``, or None.
    """
    if not user:
        return None
    for field in ASSIGNED_AC_FIELDS:
        resolved = resolve_ac_key(user.get(field), registry)
        if resolved is not None:
            return resolved
    return None


def resolve_ac_name(user: Mapping[str, Any] | None) -> str | None:
    """Return the human-readable AC name of a user payload, if any."""
    if not user:
        return None
    return pick_first(user, AC_NAME_FIELDS)
