"ISTE portal role gate"
from __future__ import annotations

from pathlib import Path
import os
import sys
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from dotenv import load_dotenv

from portal.identity_access.domain import PENDING, Role
from portal.identity_access.guard import Decision, DecisionKind, GuardState, evaluate_route_guard
from portal.identity_access.resolver import RoleContextRegistry
from portal.identity_access.session_source import AUTH_PENDING_STATE, SIGNED_OUT_STATE, SessionState
from portal.identity_access.stores import SessionStore
from portal.web import config as _cfg
from portal.web.auth_utils import SESSION_COOKIE_NAME, cookie_opts, session_id_from_cookies
from portal.web.components import Layout, PublicPage
from portal.web.role_store_wiring import build_role_store
from portal.web.route_table import match_route
from portal.web.token_verifier import build_token_verifier


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out/opt-in via PORTAL_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("PORTAL_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

# --- App & Settings Setup -------------------------------------------------------

logger = logging.getLogger("portal.web")
SETTINGS = _cfg.load_gate_settings()

app = FastAPI(title="ISTE Portal", description="Role-gated member dashboard", version="0.1.0")

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

SESSION_STORE = SessionStore()
ROLE_STORE = build_role_store(SETTINGS.role_store_backend)
ROLE_CONTEXTS = RoleContextRegistry(ROLE_STORE, timeout_seconds=SETTINGS.role_lookup_timeout_seconds)
TOKEN_VERIFIER = build_token_verifier()

NO_STORE = {"Cache-Control": "private, no-store"}

# --- Session & Role Helpers -----------------------------------------------------


def _session_cookie_options() -> dict:
    return cookie_opts(SETTINGS.environment)


def _set_session_cookie(response: Response, session_id: str, *, max_age: Optional[int] = None) -> None:
    opts = _session_cookie_options()
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def _prune_role_contexts() -> None:
    """Discard role contexts whose session expired or was deleted."""
    try:
        live = SESSION_STORE.live_ids()
    except Exception as exc:
        logger.warning("Session sweep failed: %s", exc.__class__.__name__)
        return
    dropped = ROLE_CONTEXTS.prune(live)
    if dropped:
        logger.debug("Discarded %d role contexts of ended sessions", dropped)


def _session_state(session_id: Optional[str]) -> SessionState:
    """Derive the session snapshot for one request.

    Behavior:
        - Role contexts of sessions that no longer exist are discarded first.
        - No cookie: signed out.
        - Session store raising: auth pending (the provider has not answered).
        - Unknown or expired session: signed out; any role context for that
          session id is discarded.
    """
    _prune_role_contexts()
    if not session_id:
        return SIGNED_OUT_STATE
    try:
        rec = SESSION_STORE.get(session_id)
    except Exception as exc:
        logger.warning("Session store get failed: %s", exc.__class__.__name__)
        return AUTH_PENDING_STATE
    if rec is None:
        ROLE_CONTEXTS.discard(session_id)
        return SIGNED_OUT_STATE
    return SessionState(identity=rec.identity(), pending=False)


async def _resolve_role(session_id: Optional[str], session: SessionState):
    """Ask the session's resolver for its role, waiting briefly while pending."""
    if session.pending or session.identity is None or not session_id:
        return None
    resolver = ROLE_CONTEXTS.for_session(session_id)
    role = resolver.resolve(session.identity)
    if role is PENDING and SETTINGS.role_settle_seconds > 0:
        role = await resolver.settled(timeout=SETTINGS.role_settle_seconds)
    return role


def _is_htmx(request: Request) -> bool:
    return bool(request.headers.get("HX-Request"))


def _redirect_response(request: Request, decision: Decision) -> Response:
    """302 for full page loads; HX-Redirect with 401/403 for HTMX requests."""
    target = decision.target or "/"
    if _is_htmx(request):
        status = 401 if decision.state is GuardState.NO_SESSION else 403
        return Response(status_code=status, headers={"HX-Redirect": target, "Vary": "HX-Request", **NO_STORE})
    resp = RedirectResponse(url=target, status_code=302)
    resp.headers["Cache-Control"] = NO_STORE["Cache-Control"]
    return resp


def _interstitial_response(request: Request, decision: Decision) -> HTMLResponse:
    layout = Layout(title="Please wait", content="", decision=decision, current_path=request.url.path)
    return _layout_response(request, layout, headers=dict(NO_STORE))


def _layout_response(
    request: Request,
    layout,
    *,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> HTMLResponse:
    """Render Layout with HTMX-aware semantics and return an HTMLResponse.

    Why:
        Centralises the rule that HTMX navigation must only receive the main
        fragment plus a single out-of-band sidebar.
    Behavior:
        - Returns the fragment/OOB combination when `HX-Request` is present.
        - Otherwise renders the complete document including `<head>` and
          navigation.
        - Pages rendered for a gated request default to `private, no-store`.
    Permissions:
        None. The guard middleware has already decided; the layout only
        renders the decision it is given.
    """
    body = layout.render_fragment() if _is_htmx(request) else layout.render()
    response = HTMLResponse(content=body, status_code=status_code)
    if getattr(request.state, "user", None) and not (headers and "Cache-Control" in headers):
        response.headers["Cache-Control"] = NO_STORE["Cache-Control"]
    if headers:
        for key, value in headers.items():
            response.headers[key] = value
    return response


# --- Guard Middleware -----------------------------------------------------------

@app.middleware("http")
async def route_guard(request: Request, call_next):
    """Evaluate the role gate for every gated dashboard path.

    Behavior:
        - Non-gated paths pass through untouched.
        - `redirect` decisions answer 302 (or `HX-Redirect` for HTMX).
        - `loading` decisions answer the neutral interstitial; no handler runs.
        - `authorized` decisions run the handler with `request.state.role`,
          `request.state.user` and `request.state.decision` set.
    """
    path = request.url.path
    gated, requirement = match_route(path)
    if not gated:
        return await call_next(request)

    sid = session_id_from_cookies(request.cookies)
    session = _session_state(sid)
    role = await _resolve_role(sid, session)
    decision = evaluate_route_guard(session, role, requirement, targets=SETTINGS.targets)

    if decision.kind is DecisionKind.REDIRECT:
        if decision.state is GuardState.FORBIDDEN:
            logger.info("Forbidden: %s requires %s", path, requirement.role.value if requirement else "-")
        return _redirect_response(request, decision)
    if decision.kind is DecisionKind.LOADING:
        return _interstitial_response(request, decision)

    identity = session.identity
    request.state.decision = decision
    request.state.role = decision.role
    request.state.user = {"sub": identity.user_id, "name": identity.display_name, "role": decision.role.value}
    return await call_next(request)


# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    if SETTINGS.is_prod_like:
        csp = "default-src 'self'; script-src 'self'; style-src 'self'; img-src 'self' data:; connect-src 'self';"
    else:
        # Local development allows inline for server-rendered components.
        csp = (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; connect-src 'self';"
        )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


# --- Route Handlers -------------------------------------------------------------

@app.get("/", response_class=HTMLResponse)
async def home(request: Request):
    content = """
    <div class="container">
        <h1>ISTE Student Chapter</h1>
        <p>Members, event coordinators, the treasurer and faculty advisors each get their own dashboard.</p>
        <p><a class="btn btn-primary" href="/dashboard">Open your dashboard</a></p>
    </div>
    """
    return HTMLResponse(PublicPage(title="Home", content=content).render())


@app.get("/unauthorized", response_class=HTMLResponse)
async def unauthorized_page(request: Request):
    content = """
    <div class="container access-denied">
        <h1>Access Denied</h1>
        <p>You do not have permission to view this page.</p>
        <p><a class="btn btn-primary" href="/dashboard">Go to your dashboard</a> <a class="btn btn-secondary" href="/">Home</a></p>
    </div>
    """
    page = PublicPage(title="Access Denied", content=content)
    body = page.render_fragment() if _is_htmx(request) else page.render()
    return HTMLResponse(body, status_code=403, headers=dict(NO_STORE))


from portal.web.routes.auth import auth_router  # noqa: E402
from portal.web.routes.dashboard import dashboard_router  # noqa: E402

app.include_router(auth_router)
app.include_router(dashboard_router)


@app.get("/health")
async def health_check():
    # Security: include no-store to avoid caching any runtime status.
    return JSONResponse({"status": "healthy"}, headers=dict(NO_STORE))


@app.get("/api/me")
async def get_me(request: Request):
    """Return the signed-in identity and its resolved role.

    Behavior:
        - 401 without a valid session (or while the session store is down).
        - `role` is the resolved role value, or null while the lookup is
          still pending after the settle window (`role_state: "pending"`).
    """
    sid = session_id_from_cookies(request.cookies)
    session = _session_state(sid)
    if session.identity is None:
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers=dict(NO_STORE))
    role = await _resolve_role(sid, session)
    resolved = role if isinstance(role, Role) else None
    return JSONResponse({
        "sub": session.identity.user_id,
        "name": session.identity.display_name,
        "role": resolved.value if resolved else None,
        "role_state": "resolved" if resolved else "pending",
    }, headers=dict(NO_STORE))
