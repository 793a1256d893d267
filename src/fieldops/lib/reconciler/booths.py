"""Booth lookup construction and booth-number pattern fallback."""

import re
from typing import Any

from loguru import logger

from fieldops.lib.store.base import DocumentCollection

BoothLookup = dict[str, dict[str, Any]]

_BOOTH_TOKEN = re.compile(r"^(BOOTH\d+)", re.IGNORECASE)


def extract_booth_number(booth_id: Any) -> str | None:
    """Extract a ``BOOTH<digits>`` leading token from a booth id, upper-cased.

    ``"booth3-119"`` yields ``"BOOTH3"``; ids without the token yield None.
    """
    if not isinstance(booth_id, str):
        return None
    match = _BOOTH_TOKEN.match(booth_id.strip())
    return match.group(1).upper() if match else None


async def build_booth_lookup(voters: DocumentCollection) -> BoothLookup:
    """Build the booth id → (boothname, boothno) map from a voters partition.

    The first voter seen for each booth id wins. Rebuilt on every call so
    concurrent voter writes are picked up by the next run.

    Args:
        voters: The voters partition of one AC.

    Returns:
        Mapping of booth id to ``{"boothname": ..., "boothno": ...}``.
    """
    lookup = await voters.group_first(
        "booth_id",
        ("boothname", "boothno"),
        filter={"booth_id": {"$exists": True, "$ne": None}},
    )
    logger.debug(f"Found {len(lookup)} booths in {voters.name}")
    return {str(booth_id): entry for booth_id, entry in lookup.items()}
