"""
Identity domain types for the portal role gate.

Why:
- Centralize the closed set of roles so the store adapters, the guard and the
  navigation catalog cannot drift apart.
- Keep terms aligned with the glossary (Identity, Role, RoleRecord).

Roles are exactly one per identity. Faculty is the supervisory role and is
handled as a global override by the route guard, not here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Closed privilege tiers of a portal identity."""

    PUBLIC = "public"
    EXECOM = "execom"
    TREASURER = "treasurer"
    FACULTY = "faculty"


# Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset(role.value for role in Role)


class RoleResolutionError(Exception):
    """Base class for failures while turning a RoleRecord into a Role."""


class RoleLookupError(RoleResolutionError):
    """The role store could not answer (transport, availability, bad rows)."""


class UnknownRoleError(RoleResolutionError, ValueError):
    """A stored role string is not part of the closed Role set."""

    def __init__(self, value: Any):
        super().__init__(f"unknown role: {value!r}")
        self.value = value


@dataclass(frozen=True)
class Identity:
    """Authenticated session subject, supplied by the session source."""

    user_id: str
    display_name: str = ""


@dataclass(frozen=True)
class RoleRecord:
    """Persisted (user_id, role) association read from the role store."""

    user_id: str
    role: Role


class _Pending:
    """Marker for a role lookup that is still in flight."""

    _instance: "_Pending | None" = None

    def __new__(cls) -> "_Pending":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "PENDING"

    def __bool__(self) -> bool:
        return False


PENDING = _Pending()


def parse_role(value: Any) -> Role:
    """Map a stored role string onto the closed Role set.

    Behavior:
        - Accepts the exact role names, ignoring case and surrounding whitespace.
        - Legacy or misspelled values (e.g. "treasure", "admin") raise
          `UnknownRoleError`; callers must not guess a nearby role.
    """
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        raise UnknownRoleError(value)
    normalized = value.strip().lower()
    if normalized not in ALLOWED_ROLES:
        raise UnknownRoleError(value)
    return Role(normalized)


__all__ = [
    "ALLOWED_ROLES",
    "Identity",
    "PENDING",
    "Role",
    "RoleLookupError",
    "RoleRecord",
    "RoleResolutionError",
    "UnknownRoleError",
    "parse_role",
]
