"""Helpers for the front matter record.

``DocumentMetadata`` is immutable; every change goes through ``merge``,
which returns a new record.  This module also holds the field rules the
reconciler applies to individual front matter values.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from .dates import format_instant, now_utc, parse_instant
from .models import DocumentMetadata, SyncLink
from .slug import SlugStrategy

logger = logging.getLogger(__name__)


def merge(
    old: DocumentMetadata, patch: Mapping[str, Any]
) -> DocumentMetadata:
    """Return a new record with *patch* applied on top of *old*.

    Patch keys use front matter spelling (``"slug-strategy"``, ``"halo"``).
    Keys not in the patch keep their old value; unrecognised keys pass
    through.  *old* is never modified.

    Example:
        >>> meta = DocumentMetadata.model_validate({"title": "A", "author": "x"})
        >>> merge(meta, {"title": "B"}).to_frontmatter()
        {'title': 'B', 'author': 'x'}
    """
    data = old.to_frontmatter()
    for key, value in patch.items():
        if isinstance(value, SyncLink):
            # Keys the link does not set survive from the old block
            previous = data.get(key)
            link = dict(previous) if isinstance(previous, dict) else {}
            link.update(value.model_dump(exclude_none=True))
            value = link
        data[key] = value
    return DocumentMetadata.model_validate(data)


def publish_flag(value: Any) -> bool:
    """Map the front matter ``publish`` value to the remote publish flag.

    Only the literal string ``"false"`` means "do not publish".  Every
    other value, including a YAML boolean ``false`` and an absent key,
    means "publish".
    """
    return value != "false"


def publish_time(value: Any) -> str:
    """Resolve the front matter ``date`` to an ISO 8601 UTC timestamp.

    Absent dates resolve to now.  Unparseable dates also resolve to now,
    with a warning.
    """
    instant = parse_instant(value)
    if instant is None:
        if value not in (None, ""):
            logger.warning(
                "Ignoring unparseable date %r; using current time", value
            )
        instant = now_utc()
    return format_instant(instant)


def linked_identifier(metadata: DocumentMetadata) -> str | None:
    """Remote identifier recorded in the ``halo`` block, if any."""
    if metadata.halo is None or not metadata.halo.name:
        return None
    return metadata.halo.name


def linked_site(metadata: DocumentMetadata) -> str | None:
    """Site URL recorded in the ``halo`` block, if any."""
    if metadata.halo is None or not metadata.halo.site:
        return None
    return metadata.halo.site


def initial_metadata(
    name: str,
    site_url: str,
    *,
    slug_strategy: SlugStrategy | str = SlugStrategy.SHORT_ID,
    author: str | None = None,
) -> dict[str, Any]:
    """Build the patch that turns a bare document into a publishable one.

    The document is linked to *site_url* under a freshly generated
    identifier, so the first publish creates the post under that name.
    """
    strategy = (
        slug_strategy.value
        if isinstance(slug_strategy, SlugStrategy)
        else slug_strategy
    )
    patch: dict[str, Any] = {"title": name}
    if author:
        patch["author"] = author
    patch.update(
        {
            "date": format_instant(now_utc()),
            "categories": [],
            "tags": [],
            "cover": "",
            "slug-strategy": strategy,
            "publish": False,
            "halo": {"site": site_url, "name": str(uuid.uuid4())},
        }
    )
    return patch
