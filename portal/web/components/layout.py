"""
Layout shell for the portal dashboard.

The shell renders exactly one of three shapes, chosen by the guard Decision:

- authorized: full chrome (sidebar, header with role badge, breadcrumb,
  content, footer)
- loading: a neutral interstitial that re-polls the current page
- redirect: a minimal notice pointing at the redirect target

Only the authorized shape ever contains navigation entries or page content.
"""

from typing import Optional, Dict, Any
from portal.identity_access.guard import Decision, DecisionKind
from .base import Component
from .navigation import Navigation
from .breadcrumbs import Breadcrumbs


INTERSTITIAL_POLL_SECONDS = 1


class Layout(Component):
    """Main layout component that assembles the complete page"""

    def __init__(
        self,
        title: str,
        content: str,
        decision: Decision,
        user: Optional[Dict[str, Any]] = None,
        current_path: str = "/",
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components); only used
                when the decision is authorized
            decision: Guard decision for this request
            user: Current user dict with 'name' (optional)
            current_path: Current URL path for active navigation highlighting
        """
        self.title = title
        self.content = content
        self.decision = decision
        self.user = user or {}
        self.current_path = current_path or "/"

    @property
    def _authorized(self) -> bool:
        return self.decision.kind is DecisionKind.AUTHORIZED and self.decision.role is not None

    def render(self) -> str:
        """Render the complete HTML document for the decision's shape."""
        if self._authorized:
            nav_html = Navigation(self.decision.role, self.user, self.current_path).render()
            body = f"""
    <a href="#main-content" class="skip-link">Skip to main content</a>

    {nav_html}

    <div id="live-region" class="sr-only" role="status" aria-live="polite" aria-atomic="true"></div>

    <main id="main-content" class="main-content" role="main">
        {self._render_main_inner()}
    </main>"""
            head_extra = ""
        elif self.decision.kind is DecisionKind.LOADING:
            body = f"""
    <main id="main-content" class="main-content gate-interstitial" role="main">
        {self._render_interstitial()}
    </main>"""
            head_extra = f'<meta http-equiv="refresh" content="{INTERSTITIAL_POLL_SECONDS}">'
        else:
            body = f"""
    <main id="main-content" class="main-content gate-redirect" role="main">
        {self._render_redirect_notice()}
    </main>"""
            target = self.escape(self.decision.target or "/")
            head_extra = f'<meta http-equiv="refresh" content="0; url={target}">'

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    {self._render_head(head_extra)}
</head>
<body>
    {body}
</body>
</html>"""

    def render_fragment(self) -> str:
        """Return the HTMX fragment for `#main-content` swaps.

        Behavior:
            - authorized: the `<main>` children identical to the full-page
              render plus a single `<aside id="sidebar" hx-swap-oob="true">`
              so the sidebar follows the resolved role.
            - loading: the interstitial, which polls the same path via
              `hx-get` until the guard settles.
            - redirect: the redirect notice only (callers normally answer
              HTMX redirects with an `HX-Redirect` header instead).
        Permissions:
            None. The Decision passed in is the only authority; the layout
            never re-derives access.
        """
        if self._authorized:
            sidebar_oob = Navigation(self.decision.role, self.user, self.current_path).render_aside(oob=True)
            return f"{self._render_main_inner()}{sidebar_oob}"
        if self.decision.kind is DecisionKind.LOADING:
            return self._render_interstitial(poll=True)
        return self._render_redirect_notice()

    def _render_head(self, extra: str = "") -> str:
        return f"""
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="description" content="ISTE student chapter portal">
    {extra}
    <title>{self.escape(self.title)} - ISTE Portal</title>

    <link rel="stylesheet" href="/static/css/portal.css?v=1">
    <script src="/static/js/sidebar.js?v=1" defer></script>
    """

    def _render_header(self) -> str:
        role = self.decision.role
        name = self.user.get("name") or ""
        return f"""
        <header class="page-header">
            <h1 class="page-title">{self.escape(self.title)}</h1>
            <div class="page-header-meta">
                <span class="user-name">{self.escape(name)}</span>
                <span class="role-badge role-{role.value}">{self.escape(role.value.capitalize())}</span>
                <a href="/auth/logout" class="btn btn-secondary btn-sm">Sign Out</a>
            </div>
        </header>"""

    def _render_main_inner(self) -> str:
        """Render the inner markup of the main content column.

        Returns only the children of <main> so HTMX fragment swaps can replace
        innerHTML without nesting <main> elements.
        """
        return f"""
        {self._render_header()}
        {Breadcrumbs(self.current_path).render()}
        {self.content}

        <footer class="content-footer" role="contentinfo">
            <div class="footer-content">
                <p class="text-center text-muted">ISTE Student Chapter</p>
            </div>
        </footer>
        """

    def _render_interstitial(self, poll: bool = False) -> str:
        message = self.escape(self.decision.message or "Loading...")
        path = self.escape(self.current_path)
        poll_attrs = (
            f' hx-get="{path}" hx-trigger="load delay:{INTERSTITIAL_POLL_SECONDS}s"'
            ' hx-target="#main-content" hx-swap="innerHTML"'
            if poll else ""
        )
        return f"""
        <div class="interstitial" role="status" aria-live="polite" data-gate-state="{self.decision.state.value}"{poll_attrs}>
            <span class="spinner" aria-hidden="true"></span>
            <p class="interstitial-message">{message}</p>
        </div>"""

    def _render_redirect_notice(self) -> str:
        target = self.escape(self.decision.target or "/")
        return f"""
        <div class="redirect-notice" data-gate-state="{self.decision.state.value}">
            <p>Redirecting&hellip; <a href="{target}">Continue</a></p>
        </div>"""
