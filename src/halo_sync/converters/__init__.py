"""Markdown rendering for post content."""

from .markdown_to_html import HaloHTMLRenderer, markdown_to_html

__all__ = [
    "HaloHTMLRenderer",
    "markdown_to_html",
]
