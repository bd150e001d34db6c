"""
Shared helper for wiring the role store adapter.

Why:
    The role gate reads role assignments from one of three backends. Selecting
    the adapter in one place keeps app startup and tests consistent and keeps
    optional dependencies (psycopg, supabase) out of the default import path.

Security:
    The Supabase adapter requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.
    The helper only wires server-side adapters; no secrets reach clients.
"""
from __future__ import annotations

import logging
import os

from portal.identity_access.role_store import InMemoryRoleStore, RoleStoreProtocol, parse_seed


logger = logging.getLogger("portal.web")


def _supabase_client(url: str, key: str):
    # Lazy import keeps the supabase SDK optional outside the supabase backend.
    from supabase import create_client

    return create_client(url, key)


def build_role_store(backend: str | None = None) -> RoleStoreProtocol:
    """Return the role store selected by ROLE_STORE_BACKEND (memory|db|supabase).

    Behavior:
        - `memory` (default): in-memory store seeded from ROLE_STORE_SEED.
        - `db`: psycopg-backed store reading `public.user_roles`.
        - `supabase`: supabase client store reading `user_roles`.
        - Construction errors propagate; the app must not run on a guessed store.

    Logging:
        - Logs the selected backend at info level.
    """
    selected = (backend or os.getenv("ROLE_STORE_BACKEND", "memory") or "memory").strip().lower()

    if selected == "memory":
        store = InMemoryRoleStore(parse_seed(os.getenv("ROLE_STORE_SEED")))
    elif selected == "db":
        # Lazy import keeps psycopg optional in development.
        from portal.identity_access.role_store_db import DBRoleStore

        store = DBRoleStore(table=os.getenv("ROLE_STORE_TABLE", "public.user_roles"))
    elif selected == "supabase":
        from portal.identity_access.role_store_supabase import SupabaseRoleStore

        url = (os.getenv("SUPABASE_URL") or "").strip()
        key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
        if not url or not key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the supabase role store")
        store = SupabaseRoleStore(_supabase_client(url, key), table=os.getenv("ROLE_STORE_TABLE", "user_roles"))
    else:
        raise ValueError(f"unknown ROLE_STORE_BACKEND: {selected!r}")

    logger.info("Role store wired: %s", selected)
    return store
