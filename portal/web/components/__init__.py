# Portal Component System
# Pure Python Components for server-rendered HTML

from .base import Component
from .breadcrumbs import Breadcrumbs
from .layout import Layout
from .navigation import (
    NAVIGATION_CATALOG,
    Navigation,
    NavigationEntry,
    entries_for,
    find_entry,
    landing_path_for,
)
from .public_page import PublicPage

__all__ = [
    "Component",
    "Breadcrumbs",
    "Layout",
    "NAVIGATION_CATALOG",
    "Navigation",
    "NavigationEntry",
    "entries_for",
    "find_entry",
    "landing_path_for",
    "PublicPage",
]
