"""Access filter public API.

Provides role normalization, access-scope decisions, query rewriting, and
point checks for AC-scoped data access.
"""

from fieldops.lib.access.roles import ROLE_ALIASES, Role, Visibility, normalize_role, visibility_for
from fieldops.lib.access.scope import (
    AC_REFERENCE_FIELDS,
    AccessScope,
    Caller,
    ac_clause,
    apply_scope,
    can_access,
    caller_from_user,
    require_access,
    scope_for,
)

__all__ = [
    "AC_REFERENCE_FIELDS",
    "ROLE_ALIASES",
    "AccessScope",
    "Caller",
    "Role",
    "Visibility",
    "ac_clause",
    "apply_scope",
    "can_access",
    "caller_from_user",
    "normalize_role",
    "require_access",
    "scope_for",
    "visibility_for",
]
