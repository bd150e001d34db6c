"""
Sign-in destination, sign-out and /api/me.

Requirements:
- /auth is public; with AUTH_PROVIDER_URL it redirects to the provider and
  forwards only in-app redirect targets.
- /auth/callback turns a verified provider token into a session cookie.
- /auth/logout drops the session, its role context and the cookie.
- /api/me reports identity and resolved role; 401 without a session.
"""
from __future__ import annotations

from urllib.parse import urlencode

import httpx
import pytest
from httpx import ASGITransport

from portal.identity_access.domain import Identity, Role
from portal.web import main
from portal.web.auth_utils import SESSION_COOKIE_NAME, cookie_opts, session_id_from_cookies
from portal.web.token_verifier import TokenVerificationError
from portal.tests.helpers import sign_in, use_settings


pytestmark = pytest.mark.anyio("asyncio")


def _client(sid: str | None = None) -> httpx.AsyncClient:
    cookies = {SESSION_COOKIE_NAME: sid} if sid else None
    return httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test", cookies=cookies)


@pytest.mark.anyio
async def test_auth_page_without_provider_renders_notice():
    async with _client() as client:
        r = await client.get("/auth")
    assert r.status_code == 200
    assert "Sign in" in r.text
    assert r.headers.get("Cache-Control") == "private, no-store"


@pytest.mark.anyio
async def test_auth_page_redirects_to_provider_with_inapp_target(monkeypatch: pytest.MonkeyPatch):
    use_settings(monkeypatch, auth_provider_url="https://id.example.org/login")
    async with _client() as client:
        r = await client.get("/auth", params={"redirect": "/dashboard/execom"}, follow_redirects=False)
        r_ext = await client.get("/auth", params={"redirect": "https://evil.example"}, follow_redirects=False)
    assert r.status_code == 302
    callback = "http://test/auth/callback?" + urlencode({"redirect": "/dashboard/execom"})
    assert r.headers["location"] == "https://id.example.org/login?" + urlencode({"redirect_to": callback})
    assert r_ext.headers["location"] == "https://id.example.org/login?" + urlencode({"redirect_to": "http://test/auth/callback"})


class _TokenVerifier:
    """Maps known access tokens to identities; rejects everything else."""

    def __init__(self, identities):
        self.identities = identities
        self.tokens: list[str] = []

    def verify(self, access_token):
        self.tokens.append(access_token)
        identity = self.identities.get(access_token)
        if identity is None:
            raise TokenVerificationError("unknown token")
        return identity


def _cookie_value(response: httpx.Response) -> str:
    set_cookie = response.headers.get("set-cookie", "")
    assert set_cookie.startswith(f"{SESSION_COOKIE_NAME}=")
    return set_cookie.split(";", 1)[0].split("=", 1)[1]


@pytest.mark.anyio
async def test_callback_creates_session_and_opens_the_dashboard(monkeypatch: pytest.MonkeyPatch):
    verifier = _TokenVerifier({"tok-asha": Identity("u-asha", "Asha")})
    monkeypatch.setattr(main, "TOKEN_VERIFIER", verifier)
    main.ROLE_STORE.assign("u-asha", Role.EXECOM)

    async with _client() as client:
        r = await client.post(
            "/auth/callback",
            json={"access_token": "tok-asha", "redirect": "/dashboard/execom/events"},
            follow_redirects=False,
        )
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard/execom/events"
    assert r.headers.get("Cache-Control") == "private, no-store"
    assert "httponly" in r.headers["set-cookie"].lower()
    assert verifier.tokens == ["tok-asha"]

    sid = _cookie_value(r)
    rec = main.SESSION_STORE.get(sid)
    assert (rec.sub, rec.name) == ("u-asha", "Asha")
    async with _client(sid) as client:
        page = await client.get("/dashboard/execom/events")
    assert page.status_code == 200
    assert 'class="role-badge role-execom"' in page.text


@pytest.mark.anyio
async def test_callback_ignores_external_redirects(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main, "TOKEN_VERIFIER", _TokenVerifier({"tok": Identity("u1")}))
    async with _client() as client:
        r = await client.post(
            "/auth/callback",
            json={"access_token": "tok", "redirect": "https://evil.example/x"},
            follow_redirects=False,
        )
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard"


@pytest.mark.anyio
async def test_callback_rejects_unverified_tokens(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main, "TOKEN_VERIFIER", _TokenVerifier({}))
    async with _client() as client:
        r = await client.post("/auth/callback", json={"access_token": "forged"}, follow_redirects=False)
        r_empty = await client.post("/auth/callback", json={"access_token": ""}, follow_redirects=False)
    assert r.status_code == 400
    assert r.json() == {"error": "invalid_token"}
    assert "set-cookie" not in r.headers
    assert r_empty.status_code == 422
    assert main.SESSION_STORE.live_ids() == set()


@pytest.mark.anyio
async def test_callback_without_verifier_is_unavailable():
    async with _client() as client:
        r = await client.post("/auth/callback", json={"access_token": "tok"}, follow_redirects=False)
    assert r.status_code == 503
    assert r.json() == {"error": "sign_in_unavailable"}


@pytest.mark.anyio
async def test_callback_replaces_the_previous_session(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main, "TOKEN_VERIFIER", _TokenVerifier({"tok-ravi": Identity("u-ravi", "Ravi")}))
    old = sign_in("u-asha", role=Role.FACULTY)
    async with _client(old) as client:
        assert (await client.get("/dashboard/faculty")).status_code == 200
        r = await client.post("/auth/callback", json={"access_token": "tok-ravi"}, follow_redirects=False)
    assert main.SESSION_STORE.get(old) is None
    assert main.ROLE_CONTEXTS.get(old) is None
    assert main.SESSION_STORE.get(_cookie_value(r)).sub == "u-ravi"


@pytest.mark.anyio
async def test_callback_page_loads_script_with_inapp_redirect_only():
    async with _client() as client:
        r = await client.get("/auth/callback", params={"redirect": "/dashboard/treasurer"})
        r_ext = await client.get("/auth/callback", params={"redirect": "//evil.example"})
    assert r.status_code == 200
    assert 'src="/static/js/auth-callback.js' in r.text
    assert 'data-redirect="/dashboard/treasurer"' in r.text
    assert 'data-redirect=""' in r_ext.text
    assert r.headers.get("Cache-Control") == "private, no-store"


@pytest.mark.anyio
async def test_logout_drops_session_role_context_and_cookie():
    sid = sign_in("u1", role=Role.FACULTY)
    async with _client(sid) as client:
        assert (await client.get("/dashboard/faculty")).status_code == 200
        assert main.ROLE_CONTEXTS.get(sid) is not None
        r = await client.get("/auth/logout", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/"
    assert main.SESSION_STORE.get(sid) is None
    assert main.ROLE_CONTEXTS.get(sid) is None
    set_cookie = r.headers.get("set-cookie", "")
    assert SESSION_COOKIE_NAME in set_cookie
    assert "Max-Age=0" in set_cookie or "expires=" in set_cookie.lower()

    async with _client(sid) as client:
        r_after = await client.get("/dashboard/faculty", follow_redirects=False)
    assert r_after.headers["location"] == "/auth"


@pytest.mark.anyio
async def test_logout_only_follows_inapp_redirects():
    async with _client() as client:
        r_ok = await client.get("/auth/logout", params={"redirect": "/dashboard"}, follow_redirects=False)
        r_bad = await client.get("/auth/logout", params={"redirect": "//evil.example"}, follow_redirects=False)
    assert r_ok.headers["location"] == "/dashboard"
    assert r_bad.headers["location"] == "/"


@pytest.mark.anyio
async def test_role_change_applies_after_sign_in_again():
    sid = sign_in("u1", role=Role.PUBLIC)
    async with _client(sid) as client:
        r = await client.get("/dashboard/execom", follow_redirects=False)
        assert r.headers["location"] == "/unauthorized"
        # Role granted elsewhere; the running session keeps its resolved role.
        main.ROLE_STORE.assign("u1", Role.EXECOM)
        r_same = await client.get("/dashboard/execom", follow_redirects=False)
        assert r_same.headers["location"] == "/unauthorized"
        await client.get("/auth/logout", follow_redirects=False)
    fresh = main.SESSION_STORE.create(sub="u1").session_id
    async with _client(fresh) as client:
        r_new = await client.get("/dashboard/execom", follow_redirects=False)
    assert r_new.status_code == 200


@pytest.mark.anyio
async def test_api_me_requires_session():
    async with _client() as client:
        r = await client.get("/api/me")
    assert r.status_code == 401
    assert r.json() == {"error": "unauthenticated"}
    assert r.headers.get("Cache-Control") == "private, no-store"


@pytest.mark.anyio
async def test_api_me_reports_resolved_role():
    sid = sign_in("u1", "Asha", role=Role.TREASURER)
    async with _client(sid) as client:
        r = await client.get("/api/me")
    assert r.status_code == 200
    assert r.json() == {"sub": "u1", "name": "Asha", "role": "treasurer", "role_state": "resolved"}


def test_cookie_policy_is_hardened():
    assert cookie_opts("dev") == {"secure": True, "samesite": "lax"}
    assert cookie_opts("prod") == {"secure": True, "samesite": "lax"}


def test_session_id_from_cookies():
    assert session_id_from_cookies({SESSION_COOKIE_NAME: "abc"}) == "abc"
    assert session_id_from_cookies({SESSION_COOKIE_NAME: ""}) is None
    assert session_id_from_cookies({}) is None
