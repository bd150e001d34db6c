"""
Breadcrumb trail for dashboard pages.

Labels come from the navigation catalog (`ROUTE_MAP`); unknown segments are
humanized ("financial-records" -> "Financial Records").
"""

from typing import List, Tuple, Optional
from .base import Component
from .navigation import ROUTE_MAP, ROUTE_PATTERNS


class Breadcrumbs(Component):
    """Server-rendered breadcrumb trail"""

    def __init__(self, current_path: str = "/"):
        self.current_path = current_path or "/"

    def render(self) -> str:
        crumbs = self._build_crumbs()
        if len(crumbs) <= 1:
            return ""

        items = []
        last_index = len(crumbs) - 1
        for index, (href, label) in enumerate(crumbs):
            escaped_label = self.escape(label)
            if index == last_index:
                items.append(
                    f'<li class="breadcrumb-item" aria-current="page">{escaped_label}</li>'
                )
            else:
                escaped_href = self.escape(href)
                items.append(
                    f'''<li class="breadcrumb-item">
    <a href="{escaped_href}"
       hx-get="{escaped_href}"
       hx-target="#main-content"
       hx-push-url="true"
       class="breadcrumb-link">{escaped_label}</a>
</li>'''
                )

        return f"""<nav class="breadcrumb" aria-label="Breadcrumb">
    <ol>
        {''.join(items)}
    </ol>
</nav>"""

    def _build_crumbs(self) -> List[Tuple[str, str]]:
        """Build crumb list as (href, label), starting at the console root."""
        path = self._sanitize_path(self.current_path)
        if path == "/":
            return [("/", self._label_for_path("/"))]

        crumbs: List[Tuple[str, str]] = []
        current = ""
        for segment in (s for s in path.strip("/").split("/") if s):
            current = f"{current}/{segment}"
            crumbs.append((current, self._label_for_path(current)))
        return crumbs

    def _label_for_path(self, path: str) -> str:
        match = self._match_route(path)
        if match:
            return match
        segment = path.strip("/").split("/")[-1]
        return self._humanize(segment)

    @staticmethod
    def _sanitize_path(path: str) -> str:
        clean = path.split("?")[0].split("#")[0]
        return clean or "/"

    @staticmethod
    def _humanize(segment: str) -> str:
        if not segment:
            return "Home"
        cleaned = segment.replace("-", " ").replace("_", " ")
        words = [word.capitalize() for word in cleaned.split() if word]
        return " ".join(words) if words else segment

    @staticmethod
    def _match_route(path: str) -> Optional[str]:
        """Return the catalog label for an exact route, if any."""
        normalized = "/" + path.strip("/") if path.strip("/") else "/"
        for pattern in ROUTE_PATTERNS:
            if pattern == normalized:
                return ROUTE_MAP[pattern].get("label")
        return None
