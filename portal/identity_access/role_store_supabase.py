"""
Supabase-backed role store.

This adapter reads the `user_roles` table through a provided Supabase client.
It is intentionally duck-typed to avoid a hard dependency during testing. The
client is expected to expose `.table(name)` (or the older `.from_(name)`)
returning a query builder offering `select(...).eq(...).limit(...).execute()`,
whose result carries the rows in `.data` (or a `data` key).

Security:
- The caller must initialize the client with a key that may read `user_roles`.
- The gate only reads; role provisioning is owned by the approval flow.
"""
from __future__ import annotations

import asyncio
from typing import Any, List, Optional

from .domain import RoleLookupError, RoleRecord, parse_role


class SupabaseRoleStore:
    """Role store using a supabase client for PostgREST queries."""

    def __init__(self, client: Any, table: str = "user_roles"):
        # Duck-typed supabase client, e.g., from `supabase import create_client(...)`.
        self._client = client
        self._table = table

    # --- Helpers -----------------------------------------------------------------

    def _query(self) -> Any:
        c = self._client
        if hasattr(c, "table"):
            return c.table(self._table)
        if hasattr(c, "from_"):
            return c.from_(self._table)
        raise RoleLookupError("invalid_supabase_client")

    @staticmethod
    def _rows(result: Any) -> List[Any]:
        data = getattr(result, "data", None)
        if data is None and isinstance(result, dict):
            data = result.get("data")
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        if isinstance(data, list):
            return data
        raise RoleLookupError("unexpected_supabase_payload")

    def _fetch_role(self, user_id: str) -> Optional[Any]:
        result = self._query().select("role").eq("user_id", user_id).limit(2).execute()
        rows = self._rows(result)
        if not rows:
            return None
        if len(rows) > 1:
            raise RoleLookupError("multiple role rows for one user")
        row = rows[0]
        if not isinstance(row, dict) or "role" not in row:
            raise RoleLookupError("malformed role row")
        return row["role"]

    # --- Protocol methods --------------------------------------------------------

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
