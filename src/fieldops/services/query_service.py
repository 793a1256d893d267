"""Partition query service — scoped, reconciled reads across AC partitions."""

from collections.abc import Mapping
from typing import Any

from loguru import logger

from fieldops.core.errors import AuthorizationError, UnknownPartitionError
from fieldops.lib.access import AccessScope, Caller, Visibility, apply_scope, scope_for
from fieldops.lib.partitioning import EntityKind, PartitionRegistry, PartitionRouter, resolve_ac_key
from fieldops.lib.reconciler import BoothLookup, reconcile
from fieldops.lib.store import DocumentStore
from fieldops.schemas.documents import parse_document


def _target_ac_keys(
    scope: AccessScope,
    registry: PartitionRegistry,
    ac_identifier: Any,
) -> tuple[int, ...]:
    """Resolve which AC partitions a scoped read may touch."""
    if scope.visibility is Visibility.ONE and not registry.is_registered(scope.ac_key):
        raise UnknownPartitionError(scope.ac_key, f"No such AC: {scope.ac_key!r} (assigned to caller)")
    if ac_identifier is None:
        return scope.visible_ac_keys(registry)

    ac_key = resolve_ac_key(ac_identifier, registry)
    if not scope.allows(ac_key):
        if scope.visibility is Visibility.ALL:
            raise UnknownPartitionError(ac_identifier, f"No such AC: {ac_identifier!r}")
        msg = f"Access denied to AC {ac_identifier!r}"
        raise AuthorizationError(msg)
    if not registry.is_registered(ac_key):
        raise UnknownPartitionError(ac_identifier, f"No such AC: {ac_identifier!r}")
    return (ac_key,)  # type: ignore[return-value]


def _prepare(
    store: DocumentStore,
    registry: PartitionRegistry,
    caller: Caller,
    query: Mapping[str, Any] | None,
    ac_identifier: Any,
) -> tuple[PartitionRouter, dict[str, Any], tuple[int, ...]]:
    scope = scope_for(caller.role, caller.assigned_ac, registry)
    scoped_query = apply_scope(scope, query)
    return PartitionRouter(registry, store), scoped_query, _target_ac_keys(scope, registry, ac_identifier)


async def find_documents(
    store: DocumentStore,
    registry: PartitionRegistry,
    caller: Caller,
    entity_kind: EntityKind | str,
    query: Mapping[str, Any] | None = None,
    *,
    ac_identifier: Any = None,
    limit: int | None = None,
    booth_lookups: Mapping[int, BoothLookup] | None = None,
) -> list[dict[str, Any]]:
    """Read documents of one entity kind within the caller's access scope.

    Args:
        store: Document store holding the partitions.
        registry: AC registry.
        caller: Role and assigned AC of the caller.
        entity_kind: Entity kind name or partition prefix.
        query: Mongo-style filter applied inside each partition.
        ac_identifier: Restrict the read to one AC (number or name).
        limit: Maximum number of documents returned.
        booth_lookups: Optional booth lookups keyed by AC key.

    Returns:
        Reconciled documents validated through the entity kind's typed view.

    Raises:
        AuthorizationError: If the caller has no AC scope or may not read the AC.
        UnknownPartitionError: If the requested or assigned AC does not exist.
        ConfigurationError: If the entity kind is unknown.
    """
    kind = EntityKind.parse(entity_kind)
    router, scoped_query, ac_keys = _prepare(store, registry, caller, query, ac_identifier)

    results: list[dict[str, Any]] = []
    for ac_key in ac_keys:
        name = router.partition_name(kind, ac_key)
        if not await store.has_collection(name):
            logger.debug(f"[{name}] Collection not found, skipping")
            continue
        remaining = None if limit is None else limit - len(results)
        documents = await router.route(kind, ac_key).find(scoped_query, limit=remaining)
        lookup = (booth_lookups or {}).get(ac_key)
        for document in documents:
            view = reconcile(kind, document, registry, booth_lookup=lookup, ac_key=ac_key)
            results.append(parse_document(kind, view).to_document())
        if limit is not None and len(results) >= limit:
            break
    return results


async def count_documents(
    store: DocumentStore,
    registry: PartitionRegistry,
    caller: Caller,
    entity_kind: EntityKind | str,
    query: Mapping[str, Any] | None = None,
    *,
    ac_identifier: Any = None,
) -> int:
    """Count documents of one entity kind within the caller's access scope.

    Scoping and errors are the same as ``find_documents``.
    """
    kind = EntityKind.parse(entity_kind)
    router, scoped_query, ac_keys = _prepare(store, registry, caller, query, ac_identifier)
    total = 0
    for ac_key in ac_keys:
        total += await router.route(kind, ac_key).count(scoped_query)
    return total
