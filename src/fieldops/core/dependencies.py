"""FastAPI dependency injection for the document store, callers, and AC access control.

Authentication itself happens upstream: the session layer places the
authenticated user payload on ``request.state.user``. The dependencies here
turn that payload into a ``Caller`` and an ``AccessScope`` and guard
``{ac_id}`` path parameters.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from fieldops.core.database import get_engine
from fieldops.core.errors import AuthorizationError, ConfigurationError, FieldOpsError, UnknownPartitionError
from fieldops.lib.access import AccessScope, Caller, Visibility, can_access, caller_from_user, scope_for
from fieldops.lib.partitioning import PartitionRegistry, default_registry, resolve_ac_key
from fieldops.lib.store import DocumentStore, SqlDocumentStore

_registry: PartitionRegistry | None = None


def get_registry() -> PartitionRegistry:
    """Return the process-wide AC registry, building it on first use."""
    global _registry  # noqa: PLW0603
    if _registry is None:
        _registry = default_registry()
    return _registry


def get_document_store() -> DocumentStore:
    """Return a document store bound to the initialized engine."""
    return SqlDocumentStore(get_engine())


def get_caller(
    request: Request,
    registry: Annotated[PartitionRegistry, Depends(get_registry)],
) -> Caller:
    """Build the Caller from the authenticated user on the request.

    Raises:
        HTTPException: 401 if no authenticated user is attached to the request.
    """
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return caller_from_user(user, registry)


def get_access_scope(
    caller: Annotated[Caller, Depends(get_caller)],
    registry: Annotated[PartitionRegistry, Depends(get_registry)],
) -> AccessScope:
    """Return the caller's AC scope, rejecting callers who can see no AC.

    Raises:
        HTTPException: 403 if the scope is empty.
    """
    scope = scope_for(caller.role, caller.assigned_ac, registry)
    if scope.is_none:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No AC access for this user",
        )
    return scope


def require_ac_access(
    ac_id: str,
    caller: Annotated[Caller, Depends(get_caller)],
    registry: Annotated[PartitionRegistry, Depends(get_registry)],
) -> int:
    """Guard an ``{ac_id}`` path parameter and return the canonical AC key.

    The access check runs before the existence check, so a scoped caller
    cannot probe which ACs exist.

    Args:
        ac_id: AC number or name from the path.
        caller: The authenticated caller.
        registry: AC registry.

    Returns:
        The resolved AC key.

    Raises:
        HTTPException: 403 if the caller may not access the AC, 404 if no
            such AC exists.
    """
    scope = scope_for(caller.role, caller.assigned_ac, registry)
    if scope.visibility is not Visibility.ALL and not can_access(caller.role, caller.assigned_ac, ac_id, registry):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Access denied to AC {ac_id}")
    ac_key = resolve_ac_key(ac_id, registry)
    if not registry.is_registered(ac_key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No such AC: {ac_id}")
    return ac_key  # type: ignore[return-value]


def to_http_exception(exc: FieldOpsError) -> HTTPException:
    """Map a package error onto the HTTP error a route should raise."""
    if isinstance(exc, AuthorizationError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, UnknownPartitionError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No such AC: {exc.ac_key}")
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
