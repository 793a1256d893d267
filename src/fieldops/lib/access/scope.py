"""Access scope decisions and query rewriting.

Every decision is a pure function of (role, assigned AC, requested AC) and
the registry. ``can_access`` is defined through ``scope_for`` so the point
check and the query-rewrite path can never disagree.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from fieldops.core.errors import AuthorizationError
from fieldops.lib.access.roles import Role, Visibility, normalize_role, visibility_for
from fieldops.lib.partitioning.identifiers import resolve_ac_key, resolve_assigned_ac
from fieldops.lib.partitioning.registry import PartitionRegistry

# Legacy document fields that may carry the AC key, in priority order.
AC_REFERENCE_FIELDS: tuple[str, ...] = ("aci_id", "acId", "aci_num", "_acId", "aciId")


@dataclass(frozen=True)
class AccessScope:
    """The set of AC keys a caller may touch.

    Attributes:
        visibility: ALL, ONE or NONE.
        ac_key: The single visible AC key when visibility is ONE.
    """

    visibility: Visibility
    ac_key: int | None = None

    @classmethod
    def all(cls) -> "AccessScope":
        return cls(Visibility.ALL)

    @classmethod
    def one(cls, ac_key: int) -> "AccessScope":
        return cls(Visibility.ONE, ac_key)

    @classmethod
    def none(cls) -> "AccessScope":
        return cls(Visibility.NONE)

    @property
    def is_none(self) -> bool:
        return self.visibility is Visibility.NONE

    def allows(self, ac_key: int | None) -> bool:
        """Return True if the scope covers the AC key (None is never covered)."""
        if ac_key is None:
            return False
        if self.visibility is Visibility.ALL:
            return True
        if self.visibility is Visibility.ONE:
            return self.ac_key == ac_key
        return False

    def visible_ac_keys(self, registry: PartitionRegistry) -> tuple[int, ...]:
        """Return the registered AC keys covered by the scope."""
        return tuple(key for key in registry.ac_keys if self.allows(key))


@dataclass(frozen=True)
class Caller:
    """Identity facts the access filter needs about a caller."""

    role: Role | None
    assigned_ac: int | None = None


def caller_from_user(user: Mapping[str, Any] | None, registry: PartitionRegistry) -> Caller:
    """Build a Caller from a user document or session payload.

    Role aliases are normalized and the assigned AC is resolved from the
    legacy assignment fields.
    """
    if not user:
        return Caller(role=None)
    return Caller(role=normalize_role(user.get("role")), assigned_ac=resolve_assigned_ac(user, registry))


def scope_for(role: str | Role | None, assigned_ac: Any, registry: PartitionRegistry) -> AccessScope:
    """Compute the access scope for a role and assigned AC.

    Args:
        role: Role code or alias.
        assigned_ac: The caller's assigned AC identifier (number or name).
        registry: AC registry used to resolve identifiers.

    Returns:
        ALL for unrestricted roles, ONE for a scoped role with a resolvable
        assignment, NONE otherwise.
    """
    visibility = visibility_for(role)
    if visibility is Visibility.ALL:
        return AccessScope.all()
    if visibility is Visibility.ONE:
        ac_key = resolve_ac_key(assigned_ac, registry)
        if ac_key is None:
            return AccessScope.none()
        return AccessScope.one(ac_key)
    return AccessScope.none()


def ac_clause(ac_key: int) -> dict[str, Any]:
    """Build a filter clause matching the AC key under every legacy field name."""
    return {"$or": [{field: value} for field in AC_REFERENCE_FIELDS for value in (ac_key, str(ac_key))]}


def apply_scope(scope: AccessScope, query: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Rewrite a query so it only reaches data the scope allows.

    Purely additive: the input query is never mutated.

    Args:
        scope: The caller's access scope.
        query: Mongo-style filter (None treated as empty).

    Returns:
        The query unchanged for ALL, or with an AC clause conjoined for ONE.

    Raises:
        AuthorizationError: If the scope is NONE.
    """
    if scope.is_none:
        msg = "Access denied: no AC scope for this caller"
        raise AuthorizationError(msg)
    base = dict(query or {})
    if scope.visibility is Visibility.ALL:
        return base
    clause = ac_clause(scope.ac_key)  # type: ignore[arg-type]
    if not base:
        return clause
    return {"$and": [base, clause]}


def can_access(role: str | Role | None, assigned_ac: Any, requested_ac: Any, registry: PartitionRegistry) -> bool:
    """Point decision: may this caller touch the requested AC?

    Defined through ``scope_for`` so it agrees exactly with ``apply_scope``.
    """
    return scope_for(role, assigned_ac, registry).allows(resolve_ac_key(requested_ac, registry))


def require_access(role: str | Role | None, assigned_ac: Any, requested_ac: Any, registry: PartitionRegistry) -> int:
    """Return the resolved requested AC key, or raise if access is denied.

    Raises:
        AuthorizationError: If ``can_access`` is False.
    """
    if not can_access(role, assigned_ac, requested_ac, registry):
        msg = f"Access denied to AC {requested_ac!r}"
        raise AuthorizationError(msg)
    return resolve_ac_key(requested_ac, registry)  # type: ignore[return-value]
