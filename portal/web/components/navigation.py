"""
Navigation catalog and sidebar component for the portal dashboard.

The catalog maps every Role to its ordered dashboard menu. It is static data,
built once at import and exposed read-only. Declaration order is the rendered
menu order. The sidebar only ever renders the entries of the viewer's
resolved role; callers must not render it before the guard authorized the
request.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from portal.identity_access.domain import Role
from .base import Component


@dataclass(frozen=True)
class NavigationEntry:
    label: str
    path: str
    icon: str


def _menu(*items: Tuple[str, str, str]) -> Tuple[NavigationEntry, ...]:
    return tuple(NavigationEntry(label=label, path=path, icon=icon) for label, path, icon in items)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

NAVIGATION_CATALOG: Mapping[Role, Tuple[NavigationEntry, ...]] = MappingProxyType({
    Role.PUBLIC: _menu(
        ("Overview", "/dashboard/public", "layout-dashboard"),
        ("My Profile", "/dashboard/public/profile", "user"),
        ("Membership Status", "/dashboard/public/membership", "file-text"),
        ("Events", "/dashboard/public/events", "calendar"),
        ("Certificates", "/dashboard/public/certificates", "award"),
        ("Gallery", "/dashboard/public/gallery", "image"),
        ("Notifications", "/dashboard/public/notifications", "bell"),
        ("Payments", "/dashboard/public/payments", "wallet"),
        ("Settings", "/dashboard/public/settings", "settings"),
    ),
    Role.EXECOM: _menu(
        ("Overview", "/dashboard/execom", "layout-dashboard"),
        ("Membership", "/dashboard/execom/membership", "user-check"),
        ("Events", "/dashboard/execom/events", "calendar"),
        ("Participants", "/dashboard/execom/participants", "users"),
        ("Gallery", "/dashboard/execom/gallery", "image"),
        ("Notifications", "/dashboard/execom/notifications", "bell"),
        ("Certificates", "/dashboard/execom/certificates", "award"),
        ("Finance (View)", "/dashboard/execom/finance", "wallet"),
        ("Profile", "/dashboard/execom/profile", "user"),
        ("Settings", "/dashboard/execom/settings", "settings"),
    ),
    Role.TREASURER: _menu(
        ("Overview", "/dashboard/treasurer", "layout-dashboard"),
        ("Financial Records", "/dashboard/treasurer/finance", "wallet"),
        ("Financial Summary", "/dashboard/treasurer/summary", "file-text"),
        ("Settings", "/dashboard/treasurer/settings", "settings"),
    ),
    Role.FACULTY: _menu(
        ("Admin Overview", "/dashboard/faculty", "layout-dashboard"),
        ("All Members", "/dashboard/faculty/members", "users"),
        ("Membership Approval", "/dashboard/faculty/membership", "shield"),
        ("Assign Roles", "/dashboard/faculty/roles", "shield"),
        ("System Monitor", "/dashboard/faculty/system", "file-text"),
        ("Settings", "/dashboard/faculty/settings", "settings"),
    ),
})

_missing = set(Role) - set(NAVIGATION_CATALOG)
if _missing:  # pragma: no cover - import-time totality check
    raise RuntimeError(f"navigation catalog has no menu for: {sorted(r.value for r in _missing)}")

ICON_GLYPHS: Dict[str, str] = {
    "layout-dashboard": "▦",
    "user": "👤",
    "users": "👥",
    "user-check": "✅",
    "file-text": "📄",
    "calendar": "📅",
    "award": "🏅",
    "image": "🖼️",
    "bell": "🔔",
    "wallet": "💰",
    "settings": "⚙️",
    "shield": "🛡️",
}


def entries_for(role: Role) -> Tuple[NavigationEntry, ...]:
    """Return the ordered navigation entries for `role`.

    Pure and total over Role; an empty tuple would be a valid menu. Passing a
    raw string is a programming error: resolve it to a Role first.
    """
    if not isinstance(role, Role):
        raise TypeError(f"entries_for expects a Role, got {type(role).__name__}")
    return NAVIGATION_CATALOG[role]


def landing_path_for(role: Role) -> str:
    """First catalog entry of `role`, used by the /dashboard landing redirect."""
    entries = entries_for(role)
    return entries[0].path if entries else "/"


def find_entry(path: str) -> Optional[Tuple[Role, NavigationEntry]]:
    """Return (role, entry) for an exact catalog path, in declaration order."""
    for role, entries in NAVIGATION_CATALOG.items():
        for entry in entries:
            if entry.path == path:
                return role, entry
    return None


# ---------------------------------------------------------------------------
# Route labels (breadcrumbs)
# ---------------------------------------------------------------------------

ROUTE_MAP: Dict[str, Dict[str, str]] = {
    "/": {"label": "Home"},
    "/dashboard": {"label": "Console"},
    "/dashboard/admin": {"label": "Admin"},
    "/unauthorized": {"label": "Access Denied"},
}
for _role, _entries in NAVIGATION_CATALOG.items():
    for _entry in _entries:
        ROUTE_MAP.setdefault(_entry.path, {"label": _entry.label})

ROUTE_PATTERNS: List[str] = sorted(
    ROUTE_MAP.keys(),
    key=lambda pattern: pattern.count("/"),
    reverse=True,
)


class Navigation(Component):
    """Sidebar listing the catalog entries of one resolved role."""

    def __init__(self, role: Role, user: Optional[Dict[str, str]] = None, current_path: str = "/"):
        """
        Args:
            role: Resolved role of the viewer (never a pending state)
            user: User dict with 'name' key (optional)
            current_path: The current URL path for active link highlighting
        """
        self.role = role
        self.user = user or {}
        self.current_path = current_path

    def render(self) -> str:
        """Render toggle button, sidebar and mobile overlay."""
        return f"""
    <!-- Sidebar Toggle Button -->
    <button class="sidebar-toggle" data-action="sidebar-toggle" aria-label="Toggle navigation">
        <span class="sidebar-toggle-icon">☰</span>
    </button>
    {self.render_aside()}
    <!-- Mobile Overlay -->
    <div class="sidebar-overlay" data-action="sidebar-close"></div>"""

    def render_aside(self, oob: bool = False) -> str:
        """Render only the sidebar <aside> element (for OOB updates via HTMX)

        Args:
            oob: If True, adds hx-swap-oob="true" to enable out-of-band swap
        """
        entries = entries_for(self.role)
        active_href = self._determine_active_href(entries)
        links = [
            self._create_nav_link(entry, is_active=(entry.path == active_href))
            for entry in entries
        ]
        oob_attr = ' hx-swap-oob="true"' if oob else ''
        role_label = self.role.value.capitalize()
        return f"""
    <aside class="sidebar" id="sidebar" aria-label="Sidebar" data-role="{self.role.value}"{oob_attr}>
        <nav class="sidebar-nav" role="navigation" aria-label="Main navigation">
            <div class="sidebar-header">
                <span class="sidebar-title">ISTE Portal</span>
                <span class="sidebar-subtitle">{self.escape(role_label)} Space</span>
            </div>

            <div class="sidebar-items">
                {''.join(links)}
            </div>

            <div class="sidebar-footer">
                <a href="/" class="sidebar-link sidebar-home">
                    <span class="nav-icon">🏠</span>
                    <span class="nav-text">Public Site</span>
                </a>
                <a href="/auth/logout" class="sidebar-link sidebar-logout" aria-label="Sign Out">
                    <span class="nav-icon">🚪</span>
                    <span class="nav-text">Sign Out</span>
                </a>
            </div>
        </nav>
    </aside>"""

    def _determine_active_href(self, entries: Tuple[NavigationEntry, ...]) -> Optional[str]:
        """Pick the single active href using best prefix match."""
        path = self.current_path or "/"
        best: Optional[str] = None
        best_len = 0
        for entry in entries:
            if entry.path == path:
                return entry.path
            if path.startswith(entry.path + "/") and len(entry.path) > best_len:
                best = entry.path
                best_len = len(entry.path)
        return best

    def _create_nav_link(self, entry: NavigationEntry, *, is_active: bool) -> str:
        glyph = ICON_GLYPHS.get(entry.icon, "•")
        css = self.classes("sidebar-link", active=is_active)
        aria_attr = ' aria-current="page"' if is_active else ""
        return f"""
        <a href="{self.escape(entry.path)}"
           hx-get="{self.escape(entry.path)}"
           hx-target="#main-content"
           hx-push-url="true"
           class="{css}"
           data-icon="{self.escape(entry.icon)}"
           aria-label="{self.escape(entry.label)}"{aria_attr}>
            <span class="nav-icon">{glyph}</span>
            <span class="nav-text">{self.escape(entry.label)}</span>
        </a>"""
