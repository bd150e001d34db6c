"""
Sign-in, sign-in callback and sign-out routes (router-only module).

Why:
    Authentication itself belongs to the external provider. The portal needs
    a stable sign-in destination for guard redirects, a callback that turns a
    verified provider token into a server-side session, and a sign-out that
    ends both the session and that session's role context.

Notes:
    - Imports `main` inside the handlers to reuse the shared session store,
      role context registry, token verifier and cookie policy.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel, Field
from urllib.parse import urlencode

from portal.web.auth_utils import SESSION_COOKIE_NAME, session_id_from_cookies
from portal.web.components import Component, PublicPage
from portal.web.config import INAPP_PATH_PATTERN
from portal.web.token_verifier import TokenVerificationError


auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("portal.web.auth")

MAX_INAPP_REDIRECT_LEN = 256
DEFAULT_AFTER_SIGN_IN = "/dashboard"
NO_STORE = {"Cache-Control": "private, no-store"}


def _is_inapp_path(value: str | None) -> bool:
    """True for absolute in-app paths like "/dashboard"; rejects external URLs."""
    if not isinstance(value, str) or not value or len(value) > MAX_INAPP_REDIRECT_LEN:
        return False
    return bool(INAPP_PATH_PATTERN.match(value))


def _callback_url(request: Request, redirect: str | None) -> str:
    url = str(request.base_url).rstrip("/") + "/auth/callback"
    if redirect:
        url = f"{url}?{urlencode({'redirect': redirect})}"
    return url


class SignInCallback(BaseModel):
    access_token: str = Field(min_length=1, max_length=8192)
    redirect: Optional[str] = None


@auth_router.get("/auth", response_class=HTMLResponse)
async def auth_page(request: Request, redirect: str | None = None):
    """
    Sign-in destination used by the guard for visitors without a session.

    Behavior:
        - With AUTH_PROVIDER_URL configured: 302 to the provider with
          `redirect_to` pointing at `/auth/callback`, carrying a validated
          in-app `redirect` along.
        - Without it (local development): a notice page explaining that
          sign-in is handled by the provider.
    Permissions:
        Public.
    Security:
        Adds `Cache-Control: private, no-store`; external `redirect` values
        are dropped to prevent open redirects.
    """
    from portal.web import main as mod

    safe_redirect = redirect if _is_inapp_path(redirect) else None
    provider = mod.SETTINGS.auth_provider_url
    if provider:
        sep = "&" if "?" in provider else "?"
        url = f"{provider}{sep}{urlencode({'redirect_to': _callback_url(request, safe_redirect)})}"
        return RedirectResponse(url=url, status_code=302, headers=dict(NO_STORE))

    content = """
    <div class="container auth-notice">
        <h1>Sign in</h1>
        <p>Sign-in is handled by the chapter's identity provider. No provider is configured for this environment.</p>
        <p><a class="btn btn-secondary" href="/">Back to home</a></p>
    </div>
    """
    return HTMLResponse(PublicPage(title="Sign in", content=content).render(), headers=dict(NO_STORE))


@auth_router.get("/auth/callback", response_class=HTMLResponse)
async def auth_callback_page(request: Request, redirect: str | None = None):
    """
    Landing page the provider returns to after sign-in.

    Behavior:
        - The provider puts the access token into the URL fragment, which never
          reaches the server. `/static/js/auth-callback.js` reads it and POSTs
          it to `/auth/callback`, then follows the returned redirect.
        - Only a validated in-app `redirect` is handed to the script.
    Permissions:
        Public.
    """
    safe_redirect = redirect if _is_inapp_path(redirect) else ""
    content = f"""
    <div class="container auth-callback" id="auth-callback" data-redirect="{Component.escape(safe_redirect)}">
        <h1>Signing you in...</h1>
        <p class="auth-callback-error" hidden>Sign-in failed. <a href="/auth">Try again</a>.</p>
    </div>
    """
    page = PublicPage(title="Signing in", content=content, scripts=("/static/js/auth-callback.js?v=1",))
    return HTMLResponse(page.render(), headers=dict(NO_STORE))


@auth_router.post("/auth/callback")
async def auth_callback(request: Request, payload: SignInCallback):
    """
    Exchange a provider access token for a portal session.

    Behavior:
        - Asks the provider who the token belongs to (`TOKEN_VERIFIER`).
        - 503 when no verifier is configured; 400 when the token is rejected.
        - Ends any session the browser already had (and its role context) so a
          new sign-in always resolves its role afresh.
        - Creates the server-side session, sets the session cookie and answers
          303 to the validated in-app `redirect` (default `/dashboard`).
    Permissions:
        Public; the provider is the only authority on identity.
    Security:
        The token is never logged or stored. The cookie carries only the
        opaque session id.
    """
    from portal.web import main as mod

    verifier = mod.TOKEN_VERIFIER
    if verifier is None:
        return JSONResponse({"error": "sign_in_unavailable"}, status_code=503, headers=dict(NO_STORE))
    try:
        identity = await asyncio.to_thread(verifier.verify, payload.access_token)
    except TokenVerificationError as exc:
        logger.warning("Access token rejected: %s", exc)
        return JSONResponse({"error": "invalid_token"}, status_code=400, headers=dict(NO_STORE))

    previous = session_id_from_cookies(request.cookies)
    if previous:
        try:
            mod.SESSION_STORE.delete(previous)
        except Exception as exc:
            logger.warning("Session delete failed during sign-in: %s", exc.__class__.__name__)
        mod.ROLE_CONTEXTS.discard(previous)

    sess = mod.SESSION_STORE.create(sub=identity.user_id, name=identity.display_name)
    dest = payload.redirect if _is_inapp_path(payload.redirect) else DEFAULT_AFTER_SIGN_IN
    resp = RedirectResponse(url=dest, status_code=303, headers=dict(NO_STORE))
    max_age = sess.ttl_seconds if mod.SETTINGS.is_prod_like else None
    mod._set_session_cookie(resp, sess.session_id, max_age=max_age)
    logger.info("Session created after provider sign-in")
    return resp


@auth_router.get("/auth/logout")
async def auth_logout(request: Request, redirect: str | None = None):
    """
    Sign out of the portal: drop session, role context and cookie.

    Behavior:
        - Deletes the server-side session if present.
        - Discards the session's role context so the next sign-in resolves
          its role afresh.
        - Sends Set-Cookie to expire the session cookie.
        - Redirects (302) to `redirect` when it is an in-app path, else "/".
    Permissions:
        Public; calling it without a session is a no-op redirect.
    """
    from portal.web import main as mod

    sid = session_id_from_cookies(request.cookies)
    if sid:
        try:
            mod.SESSION_STORE.delete(sid)
        except Exception as exc:
            logger.warning("Session delete failed during logout: %s", exc.__class__.__name__)
        mod.ROLE_CONTEXTS.discard(sid)

    dest = redirect if _is_inapp_path(redirect) else "/"
    resp = RedirectResponse(url=dest, status_code=302)
    resp.headers["Cache-Control"] = "private, no-store"
    opts = mod._session_cookie_options()
    resp.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        secure=opts["secure"],
        httponly=True,
        samesite=opts["samesite"],
    )
    return resp
