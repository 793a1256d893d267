"""Field reconciler public API.

Provides read-time document normalization, the partial update helpers the
migration engine writes, declarative type coercion, and booth lookups.
"""

from fieldops.lib.reconciler.aliases import AC_ID_FIELDS, BOOTH_ID_FIELDS, FIELD_ALIASES
from fieldops.lib.reconciler.booths import BoothLookup, build_booth_lookup, extract_booth_number
from fieldops.lib.reconciler.coercion import coerce_fields, convert_value
from fieldops.lib.reconciler.reconcile import (
    document_ac_key,
    missing_field_updates,
    normalize_location,
    reconcile,
    type_updates,
)

__all__ = [
    "AC_ID_FIELDS",
    "BOOTH_ID_FIELDS",
    "FIELD_ALIASES",
    "BoothLookup",
    "build_booth_lookup",
    "coerce_fields",
    "convert_value",
    "document_ac_key",
    "extract_booth_number",
    "missing_field_updates",
    "normalize_location",
    "reconcile",
    "type_updates",
]
