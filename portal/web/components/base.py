"""
Base Component class for portal UI components.

Components render HTML strings in plain Python. Every value that comes from
data (labels, names, paths) goes through `escape`.
"""

from typing import Optional
import html


class Component:
    """Base class for all server-rendered UI components."""

    def render(self) -> str:
        """Render the component as an HTML string."""
        raise NotImplementedError("Subclasses must implement render()")

    @staticmethod
    def escape(text: Optional[str]) -> str:
        """Escape HTML entities; None renders as an empty string."""
        return html.escape(str(text)) if text is not None else ""

    @staticmethod
    def classes(*args: str, **conditionals: bool) -> str:
        """Build a CSS class string with conditional classes.

        Example:
            >>> Component.classes("sidebar-link", active=True, muted=False)
            "sidebar-link active"
        """
        classes = list(args)
        classes.extend(key for key, value in conditionals.items() if value)
        return " ".join(classes)
