"""Markdown to HTML rendering using mistune.

Halo stores both the raw Markdown and the rendered HTML of a post; this
module produces the latter.
"""

import re
from typing import Any

import mistune
from pymdownx.slugs import slugify

_TAGS = re.compile(r"<[^>]+>")
_heading_slug = slugify(case="lower")

PLUGINS = ["table", "strikethrough", "task_lists", "footnotes", "url"]


class HaloHTMLRenderer(mistune.HTMLRenderer):
    """HTML renderer that gives every heading a stable anchor id.

    Ids are derived from the heading text; repeated headings get ``-1``,
    ``-2``... suffixes in document order.
    """

    NAME = "html"

    def __init__(self):
        # Raw HTML in the document is passed through, as blog authors expect
        super().__init__(escape=False)
        self._seen_ids: dict[str, int] = {}

    def _anchor(self, text: str) -> str:
        base = _heading_slug(_TAGS.sub("", text), "-") or "section"
        count = self._seen_ids.get(base, 0)
        self._seen_ids[base] = count + 1
        return base if count == 0 else f"{base}-{count}"

    def heading(self, text: str, level: int, **attrs: Any) -> str:
        anchor = attrs.get("id") or self._anchor(text)
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'


def markdown_to_html(markdown_text: str) -> str:
    """
    Render Markdown text to HTML.

    Supports tables, strikethrough, task lists, footnotes and bare URL
    autolinks in addition to CommonMark.  Fenced code blocks get a
    ``language-<info>`` class.

    Args:
        markdown_text: Markdown formatted text

    Returns:
        HTML string (empty for empty input)
    """
    if not markdown_text.strip():
        return ""
    markdown = mistune.create_markdown(
        renderer=HaloHTMLRenderer(), plugins=PLUGINS
    )
    result: str = markdown(markdown_text)  # type: ignore[assignment]
    return result
