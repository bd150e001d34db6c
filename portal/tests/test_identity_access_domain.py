"""
Role parsing and domain invariants.

Requirements:
- Exactly four roles; parsing is case/whitespace-insensitive.
- Legacy spellings ("treasure", "execome", "admin") are errors, never guesses.
- PENDING is distinct from every Role and from None.
"""
import pytest

from portal.identity_access.domain import (
    ALLOWED_ROLES,
    PENDING,
    Identity,
    Role,
    RoleResolutionError,
    UnknownRoleError,
    parse_role,
)
from portal.identity_access.role_store import InMemoryRoleStore, parse_seed


pytestmark = pytest.mark.anyio("asyncio")


def test_role_set_is_closed():
    assert ALLOWED_ROLES == {"public", "execom", "treasurer", "faculty"}
    assert len(Role) == 4


@pytest.mark.parametrize("raw, expected", [
    ("public", Role.PUBLIC),
    (" Execom ", Role.EXECOM),
    ("TREASURER", Role.TREASURER),
    ("faculty", Role.FACULTY),
    (Role.FACULTY, Role.FACULTY),
])
def test_parse_role_accepts_known_values(raw, expected):
    assert parse_role(raw) is expected


@pytest.mark.parametrize("raw", ["treasure", "execome", "admin", "", None, 3])
def test_parse_role_rejects_unknown_values(raw):
    with pytest.raises(UnknownRoleError) as excinfo:
        parse_role(raw)
    assert excinfo.value.value == raw
    assert isinstance(excinfo.value, RoleResolutionError)


def test_pending_is_distinct_singleton():
    assert PENDING is not None
    assert all(PENDING is not role for role in Role)
    assert not PENDING
    assert repr(PENDING) == "PENDING"
    assert type(PENDING)() is PENDING


def test_identity_is_immutable():
    ident = Identity(user_id="u1", display_name="Asha")
    with pytest.raises(Exception):
        ident.user_id = "u2"  # type: ignore[misc]


def test_parse_seed_reads_pairs_and_skips_blanks():
    assert parse_seed("u1=execom, u2=Faculty,,") == {"u1": Role.EXECOM, "u2": Role.FACULTY}
    assert parse_seed(None) == {}


def test_parse_seed_rejects_bad_entries():
    with pytest.raises(ValueError):
        parse_seed("u1")
    with pytest.raises(UnknownRoleError):
        parse_seed("u1=treasure")


@pytest.mark.anyio
async def test_in_memory_store_lookup_and_revoke():
    store = InMemoryRoleStore({"u1": "treasurer"})
    record = await store.lookup_role("u1")
    assert record is not None and record.role is Role.TREASURER
    store.revoke("u1")
    assert await store.lookup_role("u1") is None
