"""Shared helpers for gate tests (sessions, settings, role stores)."""
from __future__ import annotations

import dataclasses

import pytest


def use_settings(monkeypatch: pytest.MonkeyPatch, **changes):
    """Swap `main.SETTINGS` for a copy with `changes` applied."""
    from portal.web import main

    monkeypatch.setattr(main, "SETTINGS", dataclasses.replace(main.SETTINGS, **changes))


def use_role_store(monkeypatch: pytest.MonkeyPatch, store, *, timeout_seconds: float | None = None):
    """Point the app (and a fresh role context registry) at `store`."""
    from portal.web import main
    from portal.identity_access.resolver import RoleContextRegistry

    timeout = timeout_seconds if timeout_seconds is not None else main.SETTINGS.role_lookup_timeout_seconds
    monkeypatch.setattr(main, "ROLE_STORE", store)
    monkeypatch.setattr(main, "ROLE_CONTEXTS", RoleContextRegistry(store, timeout_seconds=timeout))


def sign_in(sub: str, name: str = "", role=None) -> str:
    """Create a server-side session (and optionally a role row); return its id."""
    from portal.web import main

    if role is not None:
        main.ROLE_STORE.assign(sub, role)
    return main.SESSION_STORE.create(sub=sub, name=name).session_id
