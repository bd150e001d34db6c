"""
Role resolution for one session.

Why:
    Every protected screen needs the viewer's role, but the role lives in an
    external store and the lookup suspends. The resolver turns that lookup into
    an explicit state machine (None -> PENDING -> Role) that the route guard can
    evaluate without blocking.

Behavior:
    - `resolve(None)` returns None, discards the cached role and cancels any
      in-flight lookup. No store access happens.
    - `resolve(identity)` starts exactly one lookup per identity id and returns
      PENDING until it commits. Re-checks with the same id hit the cache.
    - Missing rows, store errors, unknown role strings and timeouts commit the
      terminal fallback `Role.PUBLIC`. A failed lookup never grants more.
    - Each lookup carries a generation token. A result whose token or identity
      id no longer matches the current identity is dropped.

Concurrency:
    Designed for a single asyncio event loop. The commit is one synchronous
    step, so readers observe either the old or the new role.

Permissions:
    None. The resolver reads role records; it never writes them.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from .domain import PENDING, Identity, Role, RoleResolutionError, _Pending
from .role_store import RoleStoreProtocol


logger = logging.getLogger("portal.identity_access")

RoleState = Union[Role, _Pending, None]
FALLBACK_ROLE = Role.PUBLIC
DEFAULT_LOOKUP_TIMEOUT_SECONDS = 5.0


class RoleResolver:
    """Per-session role resolver with memoization and stale-result protection."""

    def __init__(self, store: RoleStoreProtocol, *, timeout_seconds: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._store = store
        self._timeout = timeout_seconds
        self._identity_id: Optional[str] = None
        self._role: Optional[Role] = None
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[[], None]] = []

    @property
    def identity_id(self) -> Optional[str]:
        return self._identity_id

    def resolve(self, identity: Optional[Identity]) -> RoleState:
        """Return the role for `identity`, starting a lookup on identity change."""
        if identity is None:
            if self._identity_id is not None:
                self._reset()
                self._notify()
            return None
        if identity.user_id == self._identity_id:
            if self._role is not None:
                logger.debug("Role cache hit")
            return self.current()

        self._reset()
        self._identity_id = identity.user_id
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(
            self._lookup(identity.user_id, self._generation)
        )
        return PENDING

    def current(self) -> RoleState:
        """Return the present state without triggering a lookup."""
        if self._identity_id is None:
            return None
        if self._role is None:
            return PENDING
        return self._role

    async def settled(self, timeout: Optional[float] = None) -> RoleState:
        """Wait for the in-flight lookup (at most `timeout` seconds), then report.

        Never raises on timeout; the caller simply sees PENDING again.
        """
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)
        return self.current()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback fired after a role commits or is discarded."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def close(self) -> None:
        """Drop cached state and cancel in-flight work (session ended)."""
        self._reset()
        self._listeners.clear()

    # --- Internals ---------------------------------------------------------------

    def _reset(self) -> None:
        task = self._task
        if task is not None and not task.done():
            task.cancel()
        self._task = None
        self._identity_id = None
        self._role = None
        # Invalidate any result that still slips through after cancellation.
        self._generation += 1

    async def _lookup(self, user_id: str, generation: int) -> None:
        try:
            record = await asyncio.wait_for(self._store.lookup_role(user_id), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Role lookup timed out after %.1fs; falling back to %s", self._timeout, FALLBACK_ROLE.value)
            role = FALLBACK_ROLE
        except RoleResolutionError as exc:
            logger.warning("Role lookup failed: %s; falling back to %s", exc.__class__.__name__, FALLBACK_ROLE.value)
            role = FALLBACK_ROLE
        except Exception as exc:
            logger.warning("Role store raised unexpectedly: %s; falling back to %s", exc.__class__.__name__, FALLBACK_ROLE.value)
            role = FALLBACK_ROLE
        else:
            if record is None:
                logger.info("No role record found; falling back to %s", FALLBACK_ROLE.value)
                role = FALLBACK_ROLE
            else:
                role = record.role
        self._commit(user_id, generation, role)

    def _commit(self, user_id: str, generation: int, role: Role) -> bool:
        if generation != self._generation or user_id != self._identity_id:
            logger.debug("Discarding stale role lookup result")
            return False
        self._role = role
        self._task = None
        self._notify()
        return True

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()


class RoleContextRegistry:
    """Owns one RoleResolver per session id.

    Why: Role state is bound to a session's lifetime. Keeping resolvers in an
    explicit registry (instead of module globals) prevents one session's role
    from leaking into another and lets tests start from a clean slate.
    """

    def __init__(self, store: RoleStoreProtocol, *, timeout_seconds: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS):
        self._store = store
        self._timeout = timeout_seconds
        self._contexts: Dict[str, RoleResolver] = {}

    @property
    def store(self) -> RoleStoreProtocol:
        return self._store

    def for_session(self, session_id: str) -> RoleResolver:
        resolver = self._contexts.get(session_id)
        if resolver is None:
            resolver = RoleResolver(self._store, timeout_seconds=self._timeout)
            self._contexts[session_id] = resolver
        return resolver

    def get(self, session_id: str) -> Optional[RoleResolver]:
        return self._contexts.get(session_id)

    def discard(self, session_id: str) -> None:
        resolver = self._contexts.pop(session_id, None)
        if resolver is not None:
            resolver.close()

    def prune(self, live_ids: Iterable[str]) -> int:
        """Discard contexts whose session is gone; returns how many were dropped."""
        live = set(live_ids)
        stale = [sid for sid in self._contexts if sid not in live]
        for session_id in stale:
            self.discard(session_id)
        return len(stale)

    def clear(self) -> None:
        for session_id in list(self._contexts):
            self.discard(session_id)

    def __len__(self) -> int:
        return len(self._contexts)
