"""Publish Markdown documents to Halo and keep them in sync."""

__version__ = "0.1.0"
