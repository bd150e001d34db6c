"""
Role store port and in-memory adapter.

Why: The role resolver only needs one read: fetch the RoleRecord for a user id.
Keeping that behind a tiny protocol lets production use Postgres or Supabase
while tests and local development use the in-memory store.

Contract for every adapter:
- `lookup_role(user_id)` returns `None` when no row exists (not an error).
- Transport/availability problems raise `RoleLookupError`.
- Rows with a role outside the closed set raise `UnknownRoleError`.
- Adapters never write role assignments; provisioning happens elsewhere.
"""
from __future__ import annotations

from typing import Dict, Mapping, Optional, Protocol, Union

from .domain import Role, RoleRecord, parse_role


class RoleStoreProtocol(Protocol):
    async def lookup_role(self, user_id: str) -> Optional[RoleRecord]:  # pragma: no cover - protocol
        ...


class InMemoryRoleStore:
    """Dict-backed role store for development and tests."""

    def __init__(self, assignments: Optional[Mapping[str, Union[Role, str]]] = None):
        self._data: Dict[str, Role] = {}
        for user_id, role in (assignments or {}).items():
            self.assign(user_id, role)

    def assign(self, user_id: str, role: Union[Role, str]) -> None:
        self._data[user_id] = parse_role(role)

    def revoke(self, user_id: str) -> None:
        self._data.pop(user_id, None)

    async def lookup_role(self, user_id: str) -> Optional[RoleRecord]:
        role = self._data.get(user_id)
        if role is None:
            return None
        return RoleRecord(user_id=user_id, role=role)


def parse_seed(raw: Optional[str]) -> Dict[str, Role]:
    """Parse `user_id=role` pairs separated by commas (ROLE_STORE_SEED).

    Empty entries are ignored so trailing commas are harmless. Unknown roles
    raise `UnknownRoleError` so a typo in local config is visible at startup.
    """
    out: Dict[str, Role] = {}
    if not raw:
        return out
    for part in raw.split(","):
        item = part.strip()
        if not item:
            continue
        if "=" not in item:
            raise ValueError(f"invalid ROLE_STORE_SEED entry: {item!r}")
        user_id, role = item.split("=", 1)
        user_id = user_id.strip()
        if not user_id:
            raise ValueError(f"invalid ROLE_STORE_SEED entry: {item!r}")
        out[user_id] = parse_role(role)
    return out
