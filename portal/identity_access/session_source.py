"""
Session source interface consumed by the role gate.

The authentication provider owns sign-in, tokens and sign-out. The gate only
needs two things from it: the current `{identity, pending}` snapshot and a
change notification. `MutableSessionSource` is the in-process implementation
the access controller and tests drive; the web tier derives a snapshot per
request from the session cookie instead.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from .domain import Identity


@dataclass(frozen=True)
class SessionState:
    identity: Optional[Identity] = None
    pending: bool = False


AUTH_PENDING_STATE = SessionState(identity=None, pending=True)
SIGNED_OUT_STATE = SessionState(identity=None, pending=False)


class SessionSource(Protocol):
    def get_session(self) -> SessionState:  # pragma: no cover - protocol
        ...

    def on_change(self, callback: Callable[[SessionState], None]) -> Callable[[], None]:  # pragma: no cover - protocol
        ...


class MutableSessionSource:
    """Observable session snapshot; starts in the auth-pending state."""

    def __init__(self, initial: SessionState = AUTH_PENDING_STATE):
        self._state = initial
        self._callbacks: List[Callable[[SessionState], None]] = []

    def get_session(self) -> SessionState:
        return self._state

    def on_change(self, callback: Callable[[SessionState], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        for callback in list(self._callbacks):
            callback(state)

    def sign_in(self, identity: Identity) -> None:
        self.set_state(SessionState(identity=identity, pending=False))

    def sign_out(self) -> None:
        self.set_state(SIGNED_OUT_STATE)
