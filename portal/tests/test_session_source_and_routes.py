"""
Session source snapshots, the server-side session store and the route table.
"""
import pytest

from portal.identity_access.domain import Identity, Role
from portal.identity_access.session_source import AUTH_PENDING_STATE, SIGNED_OUT_STATE, MutableSessionSource
from portal.identity_access.stores import SessionStore
from portal.web.route_table import PROTECTED_ROUTES, is_gated, match_route, requirement_for_path


def test_session_source_starts_auth_pending_and_notifies_changes():
    source = MutableSessionSource()
    seen = []
    unsubscribe = source.on_change(seen.append)
    assert source.get_session() == AUTH_PENDING_STATE

    source.sign_in(Identity("u1"))
    source.sign_in(Identity("u1"))  # unchanged: no second notification
    source.sign_out()
    unsubscribe()
    source.sign_in(Identity("u2"))

    assert [s.identity.user_id if s.identity else None for s in seen] == ["u1", None]
    assert seen[-1] == SIGNED_OUT_STATE


def test_session_store_create_get_delete():
    store = SessionStore()
    rec = store.create(sub="u1", name="Asha")
    assert store.get(rec.session_id).identity() == Identity("u1", "Asha")
    store.delete(rec.session_id)
    assert store.get(rec.session_id) is None


def test_session_store_expires_records():
    store = SessionStore()
    rec = store.create(sub="u1", ttl_seconds=-1)
    assert store.get(rec.session_id) is None


@pytest.mark.parametrize("path, role", [
    ("/dashboard/public", Role.PUBLIC),
    ("/dashboard/public/payments", Role.PUBLIC),
    ("/dashboard/execom/finance", Role.EXECOM),
    ("/dashboard/treasurer/", Role.TREASURER),
    ("/dashboard/faculty/roles", Role.FACULTY),
    ("/dashboard/admin", Role.FACULTY),
    ("/dashboard/admin/role-assigner", Role.FACULTY),
])
def test_requirement_for_path(path, role):
    assert requirement_for_path(path).role is role


def test_dashboard_root_needs_session_but_no_role():
    assert match_route("/dashboard") == (True, None)


@pytest.mark.parametrize("path", ["/", "/auth", "/unauthorized", "/health", "/static/css/portal.css", "/dashboards"])
def test_public_paths_are_not_gated(path):
    assert not is_gated(path)


def test_route_table_is_read_only():
    with pytest.raises(TypeError):
        PROTECTED_ROUTES["/dashboard/x"] = None  # type: ignore[index]


def test_session_store_live_ids_drops_expired_records():
    store = SessionStore()
    live = store.create(sub="u1")
    expired = store.create(sub="u2", ttl_seconds=-1)
    assert store.live_ids() == {live.session_id}
    assert store.get(expired.session_id) is None
