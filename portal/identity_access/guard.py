"""
Route guard: pure access decision per navigation.

Why:
    Views should not each re-implement "is the visitor signed in, is the role
    known yet, is it the right role". The guard folds session state, resolver
    output and the route's requirement into one `Decision` value. Performing
    the redirect or rendering the interstitial is left to the web layer.

Evaluation order (first match wins):
    AUTH_PENDING -> NO_SESSION -> SESSION_ROLE_PENDING -> FORBIDDEN/AUTHORIZED

    Auth pending must be checked before the presence of a session, and a role
    that is still resolving must never be reported as forbidden.

Faculty satisfies every requirement. All other roles satisfy only their own.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .domain import PENDING, Role, _Pending
from .session_source import SessionState


class GuardState(str, Enum):
    AUTH_PENDING = "auth_pending"
    NO_SESSION = "no_session"
    SESSION_ROLE_PENDING = "session_role_pending"
    FORBIDDEN = "forbidden"
    AUTHORIZED = "authorized"


class DecisionKind(str, Enum):
    LOADING = "loading"
    REDIRECT = "redirect"
    AUTHORIZED = "authorized"


@dataclass(frozen=True)
class RouteRequirement:
    """Role a protected route demands."""

    role: Role


@dataclass(frozen=True)
class RedirectTargets:
    """System-wide redirect destinations (not derived per route)."""

    sign_in: str = "/auth"
    unauthorized: str = "/unauthorized"


DEFAULT_TARGETS = RedirectTargets()

AUTH_PENDING_MESSAGE = "Loading..."
ROLE_PENDING_MESSAGE = "Checking permissions..."


@dataclass(frozen=True)
class Decision:
    state: GuardState
    kind: DecisionKind
    target: Optional[str] = None
    message: Optional[str] = None
    role: Optional[Role] = None

    @property
    def is_authorized(self) -> bool:
        return self.kind is DecisionKind.AUTHORIZED


def role_satisfies(role: Role, requirement: RouteRequirement) -> bool:
    """True when `role` may enter a route guarded by `requirement`."""
    return role is requirement.role or role is Role.FACULTY


def evaluate_route_guard(
    session: SessionState,
    role: Union[Role, _Pending, None],
    requirement: Optional[RouteRequirement],
    *,
    targets: RedirectTargets = DEFAULT_TARGETS,
) -> Decision:
    """Return the guard decision for one navigation.

    Parameters:
        session: Snapshot from the session source.
        role: Resolver output for the session's identity (Role, PENDING or None).
        requirement: Route requirement; None means any signed-in, resolved role.
        targets: Sign-in and unauthorized destinations.
    Behavior:
        Pure and idempotent; identical inputs yield identical decisions.
    """
    if session.pending:
        return Decision(GuardState.AUTH_PENDING, DecisionKind.LOADING, message=AUTH_PENDING_MESSAGE)
    if session.identity is None:
        return Decision(GuardState.NO_SESSION, DecisionKind.REDIRECT, target=targets.sign_in)
    if role is PENDING or role is None:
        # An identity whose role was never requested is still unresolved.
        return Decision(GuardState.SESSION_ROLE_PENDING, DecisionKind.LOADING, message=ROLE_PENDING_MESSAGE)
    if requirement is not None and not role_satisfies(role, requirement):
        return Decision(GuardState.FORBIDDEN, DecisionKind.REDIRECT, target=targets.unauthorized, role=role)
    return Decision(GuardState.AUTHORIZED, DecisionKind.AUTHORIZED, role=role)
