"""
Dashboard routes behind the role gate (router-only module).

Every path handled here is gated by the `route_guard` middleware in `main`;
handlers run only for authorized requests and read the viewer's role from
`request.state.role`. Page bodies are placeholders: the member, finance and
certificate workflows live in their own services.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from portal.identity_access.domain import Role
from portal.web.components import Component, Layout, NavigationEntry, entries_for, find_entry, landing_path_for


dashboard_router = APIRouter(tags=["Dashboard"])

ADMIN_ROOT = "/dashboard/admin"

# Faculty administration family; the bare root renders the overview.
ADMIN_PAGES: Mapping[str, str] = MappingProxyType({
    "overview": "Admin Overview",
    "events": "Events",
    "membership": "Membership",
    "participants": "Participants",
    "finance": "Finance",
    "financial-records": "Financial Records",
    "notifications": "Notifications",
    "certificates": "Certificates",
    "gallery": "Gallery",
    "profile": "Profile",
    "settings": "Settings",
    "system-monitor": "System Monitor",
    "content-editor": "Content Editor",
    "data-manager": "Data Manager",
    "role-assigner": "Role Assigner",
})


def _render(request: Request, *, title: str, content: str, status_code: int = 200) -> HTMLResponse:
    from portal.web import main as mod

    layout = Layout(
        title=title,
        content=content,
        decision=request.state.decision,
        user=getattr(request.state, "user", None),
        current_path=request.url.path,
    )
    return mod._layout_response(request, layout, status_code=status_code)


def _overview_content(space: Role, entries: tuple) -> str:
    cards = "".join(
        f"""
            <a class="card dashboard-card" href="{Component.escape(e.path)}"
               hx-get="{Component.escape(e.path)}" hx-target="#main-content" hx-push-url="true">
                <h3>{Component.escape(e.label)}</h3>
            </a>"""
        for e in entries[1:]
    )
    return f"""
    <section class="container dashboard-overview" data-space="{space.value}">
        <p class="text-muted">Welcome to the {Component.escape(space.value.capitalize())} space.</p>
        <div class="card-grid">{cards}
        </div>
    </section>"""


def _page_content(title: str) -> str:
    return f"""
    <section class="container dashboard-page">
        <div class="card">
            <h2>{Component.escape(title)}</h2>
            <p class="text-muted">Nothing to show yet.</p>
        </div>
    </section>"""


def _not_found(request: Request) -> HTMLResponse:
    content = """
    <section class="container">
        <div class="card"><h2>Page not found</h2><p><a href="/dashboard">Back to your dashboard</a></p></div>
    </section>"""
    return _render(request, title="Not found", content=content, status_code=404)


@dashboard_router.get("/dashboard")
async def dashboard_landing(request: Request):
    """Send the viewer to the first catalog entry of their resolved role.

    Permissions:
        Any signed-in session with a resolved role (gated by the middleware).
    """
    target = landing_path_for(request.state.role)
    return RedirectResponse(url=target, status_code=302, headers={"Cache-Control": "private, no-store"})


@dashboard_router.get("/dashboard/{rest:path}", response_class=HTMLResponse)
async def dashboard_page(request: Request, rest: str):
    """Render a catalog page or an admin page for an authorized viewer."""
    path = "/dashboard/" + rest.strip("/")

    if path == ADMIN_ROOT or path.startswith(ADMIN_ROOT + "/"):
        slug = path[len(ADMIN_ROOT):].strip("/") or "overview"
        title = ADMIN_PAGES.get(slug)
        if title is None:
            return _not_found(request)
        if slug == "overview":
            admin_entries = tuple(
                NavigationEntry(label=label, path=f"{ADMIN_ROOT}/{key}", icon="shield")
                for key, label in ADMIN_PAGES.items()
            )
            return _render(request, title=title, content=_overview_content(Role.FACULTY, admin_entries))
        return _render(request, title=title, content=_page_content(title))

    found = find_entry(path)
    if found is None:
        return _not_found(request)
    space, entry = found
    entries = entries_for(space)
    if entry is entries[0]:
        return _render(request, title=entry.label, content=_overview_content(space, entries))
    return _render(request, title=entry.label, content=_page_content(entry.label))
