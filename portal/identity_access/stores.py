"""
In-memory server-side session store.

Why: The authentication provider hands the portal an authenticated subject;
the portal keeps it server-side and gives the browser only an opaque session
id. The role gate reads these records to build the session snapshot. For
multi-instance deployments, replace with a shared store exposing the same
`create/get/delete` methods.

Security: Cookies carry only an opaque session id. Role assignments are NOT
stored here; they are resolved per session from the role store.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Set
import secrets
import time

from .domain import Identity


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    sub: str
    name: str
    expires_at: Optional[int] = None
    ttl_seconds: int = 3600

    def identity(self) -> Identity:
        return Identity(user_id=self.sub, display_name=self.name)


class SessionStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}

    def create(self, *, sub: str, name: str = "", ttl_seconds: int = 3600) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        rec = SessionRecord(session_id=sid, sub=sub, name=name, expires_at=_now() + ttl_seconds, ttl_seconds=ttl_seconds)
        self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        rec = self._data.get(session_id)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(session_id, None)
            return None
        return rec

    def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)

    def live_ids(self) -> Set[str]:
        """Drop expired records and return the ids of the remaining sessions."""
        now = _now()
        for sid, rec in list(self._data.items()):
            if rec.expires_at and rec.expires_at < now:
                self._data.pop(sid, None)
        return set(self._data)
