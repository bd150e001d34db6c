"""
Provider token verification for the sign-in callback.

Why:
    The identity provider (Supabase Auth) signs visitors in and hands the
    browser an access token. The portal must not trust that token's claims on
    its own; it asks the provider who the token belongs to and keeps only the
    subject and display name in its server-side session.

Security:
    - Tokens are never logged; failures log the exception class only.
    - The verifier returns an Identity without roles. Roles are always looked
      up separately by the role resolver.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Optional, Protocol

from portal.identity_access.domain import Identity


logger = logging.getLogger("portal.web.auth")


class TokenVerificationError(Exception):
    """The provider rejected the token or could not be asked."""


class TokenVerifierProtocol(Protocol):
    def verify(self, access_token: str) -> Identity:  # pragma: no cover - protocol
        ...


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class SupabaseTokenVerifier:
    """Resolve an access token to an Identity via `client.auth.get_user(jwt)`.

    The client is duck-typed: anything exposing `auth.get_user(token)` and
    returning an object (or dict) with a `user` carrying `id`, `email` and
    `user_metadata` works. The call is blocking; callers move it off the loop.
    """

    def __init__(self, client: Any):
        self._client = client

    def verify(self, access_token: str) -> Identity:
        if not isinstance(access_token, str) or not access_token.strip():
            raise TokenVerificationError("missing access token")
        try:
            response = self._client.auth.get_user(access_token)
        except Exception as exc:
            raise TokenVerificationError(exc.__class__.__name__) from exc
        user = _field(response, "user")
        user_id = _field(user, "id") if user is not None else None
        if not user_id:
            raise TokenVerificationError("token has no user")

        metadata = _field(user, "user_metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        email = _field(user, "email") or ""
        name = metadata.get("full_name") or metadata.get("name") or (email.split("@")[0] if email else "")
        return Identity(user_id=str(user_id), display_name=str(name))


def build_token_verifier() -> Optional[TokenVerifierProtocol]:
    """Return the Supabase verifier when SUPABASE_URL and an API key are set.

    Behavior:
        - Uses SUPABASE_ANON_KEY, falling back to SUPABASE_SERVICE_ROLE_KEY.
        - Returns None without configuration; the callback then answers 503.
    """
    url = (os.getenv("SUPABASE_URL") or "").strip()
    key = (os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    if not url or not key:
        logger.info("Token verifier not configured; sign-in callback disabled")
        return None
    from portal.web.role_store_wiring import _supabase_client

    return SupabaseTokenVerifier(_supabase_client(url, key))
