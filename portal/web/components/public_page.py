"""
Chrome-less page for routes outside the role gate (home, sign-in, access denied).
"""

from .base import Component


class PublicPage(Component):
    """Complete HTML document without sidebar or role badge."""

    def __init__(self, title: str, content: str, scripts: tuple = ()):
        self.title = title
        self.content = content
        self.scripts = scripts

    def render(self) -> str:
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self.escape(self.title)} - ISTE Portal</title>
    <link rel="stylesheet" href="/static/css/portal.css?v=1">
{self._render_scripts()}
</head>
<body class="public-page">
    <main id="main-content" class="main-content" role="main">
        {self.content}
    </main>
</body>
</html>"""

    def _render_scripts(self) -> str:
        return "".join(f'    <script src="{self.escape(src)}" defer></script>\n' for src in self.scripts)

    def render_fragment(self) -> str:
        return self.content
