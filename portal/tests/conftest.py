"""
Pytest configuration for the portal tests.

Why: Force AnyIO to use the asyncio backend (the resolver schedules asyncio
tasks) and give every test a clean session store, role store and role
context registry so role state never leaks between cases.
"""
from __future__ import annotations

import pytest

_ENV_VARS = (
    "PORTAL_ENV",
    "PORTAL_SIGN_IN_PATH",
    "PORTAL_UNAUTHORIZED_PATH",
    "ROLE_LOOKUP_TIMEOUT_SECONDS",
    "ROLE_SETTLE_SECONDS",
    "ROLE_STORE_BACKEND",
    "ROLE_STORE_SEED",
    "ROLE_STORE_TABLE",
    "DATABASE_URL",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_ANON_KEY",
    "AUTH_PROVIDER_URL",
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_gate_env(monkeypatch: pytest.MonkeyPatch):
    """Start each test from development defaults."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_portal_state(_clean_gate_env, monkeypatch: pytest.MonkeyPatch):
    """
    Replace the app's session store, role store and role contexts per test.

    Behavior:
        - `main.SESSION_STORE` becomes a fresh in-memory SessionStore.
        - `main.ROLE_STORE` becomes an empty InMemoryRoleStore.
        - `main.ROLE_CONTEXTS` becomes a registry bound to that store.
        - `main.SETTINGS` is restored to development defaults.
        - `main.TOKEN_VERIFIER` is unset; sign-in tests install their own.
    """
    from portal.web import main
    from portal.web.config import load_gate_settings
    from portal.identity_access.resolver import RoleContextRegistry
    from portal.identity_access.role_store import InMemoryRoleStore
    from portal.identity_access.stores import SessionStore

    store = InMemoryRoleStore()
    settings = load_gate_settings()
    monkeypatch.setattr(main, "SETTINGS", settings)
    monkeypatch.setattr(main, "SESSION_STORE", SessionStore())
    monkeypatch.setattr(main, "ROLE_STORE", store)
    monkeypatch.setattr(
        main,
        "ROLE_CONTEXTS",
        RoleContextRegistry(store, timeout_seconds=settings.role_lookup_timeout_seconds),
    )
    monkeypatch.setattr(main, "TOKEN_VERIFIER", None)
    yield
