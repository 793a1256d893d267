"""Caller roles and their AC-visibility class.

Role names arrive in several historical spellings; ``normalize_role``
maps them onto the canonical codes before any access decision.
"""

from enum import StrEnum


class Role(StrEnum):
    """Canonical role codes."""

    SUPER_ADMIN = "L0"
    AC_MANAGER = "L1"
    AC_INCHARGE = "L2"
    BOOTH_AGENT = "BoothAgent"
    WAR_ROOM = "L9"


class Visibility(StrEnum):
    """How many ACs a role can see."""

    ALL = "all"
    ONE = "one"
    NONE = "none"


ROLE_ALIASES: dict[str, Role] = {
    "Admin": Role.SUPER_ADMIN,
    "admin": Role.SUPER_ADMIN,
    "L0": Role.SUPER_ADMIN,
    "Assembly CIM": Role.AC_MANAGER,
    "AssemblyCIM": Role.AC_MANAGER,
    "CIM": Role.AC_MANAGER,
    "L1": Role.AC_MANAGER,
    "Assembly CI": Role.AC_INCHARGE,
    "AssemblyCI": Role.AC_INCHARGE,
    "CI": Role.AC_INCHARGE,
    "L2": Role.AC_INCHARGE,
    "Booth Agent": Role.BOOTH_AGENT,
    "BoothAgent": Role.BOOTH_AGENT,
    "War Room": Role.WAR_ROOM,
    "Command": Role.WAR_ROOM,
    "L9": Role.WAR_ROOM,
}

# L1 is a distinct administrative tier but currently shares L0's full AC
# visibility; it was scoped to one AC in an earlier release.
ROLE_VISIBILITY: dict[Role, Visibility] = {
    Role.SUPER_ADMIN: Visibility.ALL,
    Role.AC_MANAGER: Visibility.ALL,
    Role.AC_INCHARGE: Visibility.ONE,
}


def normalize_role(role: str | Role | None) -> Role | None:
    """Map a role name or alias to its canonical Role, or None if unknown."""
    if role is None:
        return None
    if isinstance(role, Role):
        return role
    return ROLE_ALIASES.get(str(role).strip())


def visibility_for(role: str | Role | None) -> Visibility:
    """Return the AC visibility class of a role; unknown roles see nothing."""
    canonical = normalize_role(role)
    if canonical is None:
        return Visibility.NONE
    return ROLE_VISIBILITY.get(canonical, Visibility.NONE)
