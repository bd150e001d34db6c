"""
Protected route table for the dashboard.

Each prefix carries the role its subtree demands. Matching respects segment
boundaries: `/dashboard/faculty/roles` falls under `/dashboard/faculty`, but
`/dashboard/facultyx` falls under nothing. `/dashboard` itself needs a signed-in,
resolved session of any role (it redirects to the role's landing page).
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from portal.identity_access.domain import Role
from portal.identity_access.guard import RouteRequirement


PROTECTED_ROUTES: Mapping[str, RouteRequirement] = MappingProxyType({
    "/dashboard/public": RouteRequirement(Role.PUBLIC),
    "/dashboard/execom": RouteRequirement(Role.EXECOM),
    "/dashboard/treasurer": RouteRequirement(Role.TREASURER),
    "/dashboard/faculty": RouteRequirement(Role.FACULTY),
    "/dashboard/admin": RouteRequirement(Role.FACULTY),
})

# Paths that need a session but no particular role.
SESSION_ONLY_PATHS = frozenset({"/dashboard"})

# Longest prefix first so nested prefixes win.
_PREFIXES: Tuple[str, ...] = tuple(sorted(PROTECTED_ROUTES, key=len, reverse=True))


def _normalize(path: str) -> str:
    clean = (path or "/").split("?")[0].split("#")[0]
    if len(clean) > 1:
        clean = clean.rstrip("/")
    return clean or "/"


def match_route(path: str) -> Tuple[bool, Optional[RouteRequirement]]:
    """Return (is_gated, requirement) for a request path.

    `requirement` is None for gated paths that accept any resolved role.
    """
    clean = _normalize(path)
    for prefix in _PREFIXES:
        if clean == prefix or clean.startswith(prefix + "/"):
            return True, PROTECTED_ROUTES[prefix]
    if clean in SESSION_ONLY_PATHS:
        return True, None
    if clean.startswith("/dashboard/"):
        # Unknown dashboard subtrees still need a session; handlers answer 404.
        return True, None
    return False, None


def requirement_for_path(path: str) -> Optional[RouteRequirement]:
    return match_route(path)[1]


def is_gated(path: str) -> bool:
    return match_route(path)[0]
