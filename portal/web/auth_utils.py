"""
Shared authentication utilities.

Why:
    Avoid duplicating environment-dependent cookie policy logic between the
    guard middleware in `main` and the auth router.

Design:
    The helpers are framework-agnostic and pure: they accept an environment
    string (or cookie mapping) and return plain values. Callers decide where
    the inputs come from.
"""

from __future__ import annotations

from typing import Mapping, Optional


SESSION_COOKIE_NAME = "portal_session"


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags (dev = prod).

    Returns a mapping with keys:
      - secure: True
      - samesite: "lax"  # Allow top-level redirects from the sign-in provider
    """
    return {"secure": True, "samesite": "lax"}


def session_id_from_cookies(cookies: Mapping[str, str]) -> Optional[str]:
    """Return the opaque session id, or None when the cookie is absent/empty."""
    sid = cookies.get(SESSION_COOKIE_NAME)
    if not sid or not isinstance(sid, str):
        return None
    return sid
