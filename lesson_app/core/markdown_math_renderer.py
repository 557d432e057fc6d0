"""Markdown + LaTeX rendering shared by the Qt preview and the student page.

Both surfaces receive the same HTML and let MathJax typeset the math in the
browser engine, so a slide looks the same in the teacher's preview and on a
student's device.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape

from markdown_it import MarkdownIt

from lesson_app.constants.about import APP_NAME

MATHJAX_SCRIPT_URL = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"

_MATHJAX_CONFIG = (
    "window.MathJax = { tex: { inlineMath: [['$','$'], ['\\\\(','\\\\)']], "
    "displayMath: [['$$','$$'], ['\\\\[','\\\\]']] }, svg: { fontCache: 'global' } };"
)


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments or standalone pages."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str, placeholder: str = "") -> str:
        text = (markdown_text or "").strip()
        if not text:
            return f"<p><em>{escape(placeholder)}</em></p>" if placeholder else ""
        return self._markdown.render(text)

    def render_inline(self, markdown_text: str) -> str:
        return self._markdown.renderInline((markdown_text or "").strip())

    def wrap_document(
        self,
        body_html: str,
        *,
        title: str = APP_NAME,
        stylesheet: str = "",
        head_extra: str = "",
    ) -> str:
        """Wrap ``body_html`` in a page that loads MathJax."""

        return f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{escape(title)}</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>{stylesheet}</style>
    <script>{_MATHJAX_CONFIG}</script>
    <script defer src="{MATHJAX_SCRIPT_URL}"></script>
    {head_extra}
  </head>
  <body>
{body_html}
  </body>
</html>"""


renderer = MarkdownMathRenderer()
