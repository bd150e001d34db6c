"""
Route guard truth table and evaluation order.

Requirements:
- AUTH_PENDING -> NO_SESSION -> SESSION_ROLE_PENDING -> FORBIDDEN/AUTHORIZED.
- Faculty satisfies every requirement; other roles only their own.
- A pending role is never reported as forbidden.
- The guard is pure: identical inputs give identical decisions.
"""
import itertools

import pytest

from portal.identity_access.domain import PENDING, Identity, Role
from portal.identity_access.guard import (
    AUTH_PENDING_MESSAGE,
    ROLE_PENDING_MESSAGE,
    DecisionKind,
    GuardState,
    RedirectTargets,
    RouteRequirement,
    evaluate_route_guard,
    role_satisfies,
)
from portal.identity_access.session_source import AUTH_PENDING_STATE, SIGNED_OUT_STATE, SessionState


SIGNED_IN = SessionState(identity=Identity("u1", "Asha"))


@pytest.mark.parametrize("role, required", list(itertools.product(Role, Role)))
def test_role_satisfies_truth_table(role, required):
    expected = role is required or role is Role.FACULTY
    assert role_satisfies(role, RouteRequirement(required)) is expected


def test_auth_pending_wins_over_everything():
    for role in (None, PENDING, Role.FACULTY):
        decision = evaluate_route_guard(AUTH_PENDING_STATE, role, RouteRequirement(Role.PUBLIC))
        assert decision.state is GuardState.AUTH_PENDING
        assert decision.kind is DecisionKind.LOADING
        assert decision.message == AUTH_PENDING_MESSAGE


def test_pending_session_with_stale_identity_is_still_auth_pending():
    session = SessionState(identity=Identity("u1"), pending=True)
    decision = evaluate_route_guard(session, Role.FACULTY, RouteRequirement(Role.FACULTY))
    assert decision.state is GuardState.AUTH_PENDING


@pytest.mark.parametrize("role", [None, PENDING, Role.FACULTY])
def test_no_session_redirects_to_sign_in(role):
    # A missing identity wins over any role value, including a pending one.
    decision = evaluate_route_guard(SIGNED_OUT_STATE, role, RouteRequirement(Role.EXECOM))
    assert decision.state is GuardState.NO_SESSION
    assert decision.kind is DecisionKind.REDIRECT
    assert decision.target == "/auth"


@pytest.mark.parametrize("role", [PENDING, None])
def test_role_pending_is_loading_not_forbidden(role):
    decision = evaluate_route_guard(SIGNED_IN, role, RouteRequirement(Role.FACULTY))
    assert decision.state is GuardState.SESSION_ROLE_PENDING
    assert decision.kind is DecisionKind.LOADING
    assert decision.message == ROLE_PENDING_MESSAGE
    assert decision.target is None


def test_forbidden_redirects_to_unauthorized():
    decision = evaluate_route_guard(SIGNED_IN, Role.EXECOM, RouteRequirement(Role.TREASURER))
    assert decision.state is GuardState.FORBIDDEN
    assert decision.kind is DecisionKind.REDIRECT
    assert decision.target == "/unauthorized"
    assert decision.role is Role.EXECOM


@pytest.mark.parametrize("required", list(Role))
def test_faculty_is_authorized_everywhere(required):
    decision = evaluate_route_guard(SIGNED_IN, Role.FACULTY, RouteRequirement(required))
    assert decision.is_authorized
    assert decision.role is Role.FACULTY


def test_no_requirement_accepts_any_resolved_role():
    for role in Role:
        assert evaluate_route_guard(SIGNED_IN, role, None).is_authorized
    assert evaluate_route_guard(SIGNED_IN, PENDING, None).state is GuardState.SESSION_ROLE_PENDING


def test_custom_targets_are_used():
    targets = RedirectTargets(sign_in="/login", unauthorized="/denied")
    assert evaluate_route_guard(SIGNED_OUT_STATE, None, None, targets=targets).target == "/login"
    forbidden = evaluate_route_guard(SIGNED_IN, Role.PUBLIC, RouteRequirement(Role.FACULTY), targets=targets)
    assert forbidden.target == "/denied"


def test_guard_is_idempotent():
    args = (SIGNED_IN, Role.TREASURER, RouteRequirement(Role.TREASURER))
    assert evaluate_route_guard(*args) == evaluate_route_guard(*args)
