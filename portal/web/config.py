"""
Configuration and startup security checks for the portal gate.

Why: A presentation-tier gate that silently runs on the in-memory role store or
redirects to arbitrary URLs in production would hand every visitor the Public
fallback or open a redirect. This module provides one settings loader and one
startup guard that enforce minimal production constraints without burdening
local development.

Permissions: The caller needs no special privileges. The functions read
environment variables; the guard raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass

from portal.identity_access.guard import RedirectTargets


# Absolute in-app path; no double slashes, no traversal.
INAPP_PATH_PATTERN = re.compile(r"^(?!.*//)(?!.*\.\.)/[A-Za-z0-9._\-/]*$")
ROLE_STORE_BACKENDS = frozenset({"memory", "db", "supabase"})


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number") from None
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite")
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    return value


@dataclass(frozen=True)
class GateSettings:
    environment: str
    targets: RedirectTargets
    role_lookup_timeout_seconds: float
    role_settle_seconds: float
    role_store_backend: str
    auth_provider_url: str

    @property
    def is_prod_like(self) -> bool:
        return _is_prod_like(self.environment)


def load_gate_settings() -> GateSettings:
    """Read and validate gate settings from the environment."""
    environment = (os.getenv("PORTAL_ENV", "dev") or "dev").strip().lower()
    sign_in = (os.getenv("PORTAL_SIGN_IN_PATH") or "/auth").strip()
    unauthorized = (os.getenv("PORTAL_UNAUTHORIZED_PATH") or "/unauthorized").strip()
    for name, value in (("PORTAL_SIGN_IN_PATH", sign_in), ("PORTAL_UNAUTHORIZED_PATH", unauthorized)):
        if not INAPP_PATH_PATTERN.match(value):
            raise ValueError(f"{name} must be an absolute in-app path")

    timeout = _float_env("ROLE_LOOKUP_TIMEOUT_SECONDS", 5.0)
    if timeout == 0:
        raise ValueError("ROLE_LOOKUP_TIMEOUT_SECONDS must be > 0")
    settle = _float_env("ROLE_SETTLE_SECONDS", 2.0)

    backend = (os.getenv("ROLE_STORE_BACKEND", "memory") or "memory").strip().lower()
    if backend not in ROLE_STORE_BACKENDS:
        raise ValueError(f"ROLE_STORE_BACKEND must be one of {sorted(ROLE_STORE_BACKENDS)}")

    return GateSettings(
        environment=environment,
        targets=RedirectTargets(sign_in=sign_in, unauthorized=unauthorized),
        role_lookup_timeout_seconds=timeout,
        role_settle_seconds=settle,
        role_store_backend=backend,
        auth_provider_url=(os.getenv("AUTH_PROVIDER_URL") or "").strip(),
    )


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - Settings must parse (redirect targets are in-app paths, numbers valid).
    - The in-memory role store is not allowed; every visitor would be Public.
    - `db` backend: DATABASE_URL must be set and must not disable TLS.
    - `supabase` backend: URL and service key must be set, key not a placeholder.
    - AUTH_PROVIDER_URL must use https.
    """
    env = os.getenv("PORTAL_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    try:
        settings = load_gate_settings()
    except ValueError as exc:
        raise SystemExit(f"Refusing to start: {exc}")

    if settings.role_store_backend == "memory":
        raise SystemExit(
            "Refusing to start: ROLE_STORE_BACKEND=memory is not allowed in production/staging."
        )

    if settings.role_store_backend == "db":
        dsn = os.getenv("DATABASE_URL", "")
        if not dsn:
            raise SystemExit("Refusing to start: DATABASE_URL is required for ROLE_STORE_BACKEND=db.")
        if "sslmode=disable" in dsn:
            raise SystemExit(
                "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )

    if settings.role_store_backend == "supabase":
        if not (os.getenv("SUPABASE_URL") or "").strip():
            raise SystemExit("Refusing to start: SUPABASE_URL is required for ROLE_STORE_BACKEND=supabase.")
        key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
        if not key or key.upper() == "DUMMY_DO_NOT_USE":
            raise SystemExit(
                "Refusing to start: SUPABASE_SERVICE_ROLE_KEY is unset or a dummy placeholder in production."
            )

    if settings.auth_provider_url.lower().startswith("http://"):
        raise SystemExit("Refusing to start: AUTH_PROVIDER_URL must use https in production (got http).")
