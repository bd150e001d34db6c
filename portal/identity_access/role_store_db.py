"""
Database-backed role store for production use (Postgres/Supabase).

Why: Role assignments live in the `user_roles` table next to the rest of the
portal data. The gate reads exactly one row per identity; it never writes.

Security:
- Use a connection string whose role may only `select` from `user_roles`.
- The table identifier is validated up front and composed with `psycopg.sql`.

Note: This module uses psycopg3. It is imported only when enabled via
`ROLE_STORE_BACKEND=db`. Tests use the in-memory store or a fake psycopg.
"""
from __future__ import annotations

import asyncio
import os
import re
from typing import Optional

try:
    import psycopg
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from .domain import RoleLookupError, RoleRecord, parse_role


_TABLE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


class DBRoleStore:
    """Postgres-backed role lookup.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string. Falls back to DATABASE_URL / SUPABASE_DB_URL.
    table:
        Fully qualified table name. Defaults to `public.user_roles`.
    connect_timeout:
        Seconds psycopg may spend connecting before the lookup fails.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.user_roles", connect_timeout: int = 5) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBRoleStore")
        self._dsn = dsn or os.getenv("DATABASE_URL") or os.getenv("SUPABASE_DB_URL", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBRoleStore")
        if not _TABLE_PATTERN.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table
        self._connect_timeout = connect_timeout

    def _schema_and_name(self) -> tuple[str, str]:
        if "." in self._table:
            schema, name = self._table.split(".", 1)
        else:
            schema, name = "public", self._table
        return schema, name

    def _fetch_role(self, user_id: str) -> Optional[str]:
        from psycopg import sql as _sql

        schema, name = self._schema_and_name()
        stmt = _sql.SQL("select role from {}.{} where user_id = %s limit 2").format(
            _sql.Identifier(schema), _sql.Identifier(name)
        )
        with psycopg.connect(self._dsn, connect_timeout=self._connect_timeout) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (user_id,))
                rows = cur.fetchall()
        if not rows:
            return None
        if len(rows) > 1:
            # One identity maps to exactly one role; duplicates are a data error.
            raise RoleLookupError("multiple role rows for one user")
        return rows[0][0]

    async def lookup_role(self, user_id: str) -> Optional[RoleRecord]:
        try:
            raw = await asyncio.to_thread(self._fetch_role, user_id)
        except RoleLookupError:
            raise
        except Exception as exc:
            raise RoleLookupError(f"role lookup failed: {exc.__class__.__name__}") from exc
        if raw is None:
            return None
        return RoleRecord(user_id=user_id, role=parse_role(raw))
