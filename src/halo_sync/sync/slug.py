"""Slug generation for posts, categories and tags.

Four strategies are supported:

- ``title-based`` -- transliterate the title into lowercase ASCII words
  joined by ``-``.  Deterministic.  Also the fallback for absent or
  unrecognised strategies.
- ``short-id`` -- 8 random alphanumeric characters (empty for an empty
  title).
- ``full-id`` -- a random UUID.
- ``timestamp`` -- epoch milliseconds of the reference date, or of the
  current instant when the date is absent or invalid.
"""

from __future__ import annotations

import re
import secrets
import string
import uuid
from enum import Enum
from urllib.parse import quote

from pymdownx.slugs import slugify as _md_slugify
from unidecode import unidecode

from .dates import epoch_millis, now_utc, parse_instant

SHORT_ID_LENGTH = 8
_SHORT_ID_ALPHABET = string.ascii_letters + string.digits

_ascii_slugify = _md_slugify(case="lower")
_RE_REPEATED_SEP = re.compile(r"-{2,}")


class SlugStrategy(str, Enum):
    """Named slug generation strategies."""

    TITLE = "title-based"
    SHORT_ID = "short-id"
    FULL_ID = "full-id"
    TIMESTAMP = "timestamp"


# Strategy names written by earlier versions of the plugin front matter
_ALIASES: dict[str, SlugStrategy] = {
    "title": SlugStrategy.TITLE,
    "shortUUID": SlugStrategy.SHORT_ID,
    "UUID": SlugStrategy.FULL_ID,
}


def parse_strategy(value: object) -> SlugStrategy:
    """Map a strategy name to a ``SlugStrategy``, defaulting to ``TITLE``."""
    if isinstance(value, SlugStrategy):
        return value
    if not isinstance(value, str):
        return SlugStrategy.TITLE
    name = value.strip()
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return SlugStrategy(name)
    except ValueError:
        return SlugStrategy.TITLE


def _tidy(slug: str) -> str:
    return _RE_REPEATED_SEP.sub("-", slug).strip("-")


def slugify_title(title: str) -> str:
    """Turn a title into a lowercase, URL-safe slug.

    The title is transliterated to ASCII first, so accented Latin,
    Cyrillic and CJK titles all give plain ``[a-z0-9-]`` slugs.  Titles
    with no transliteration at all (emoji only) fall back to their
    lowercased percent-encoded UTF-8, so the result is never empty for a
    non-blank title.

    Examples:
        >>> slugify_title("  Hello World!  ")
        'hello-world'
        >>> slugify_title("你好")
        'ni-hao'
    """
    text = " ".join(title.split())
    if not text:
        return ""
    folded = unidecode(text)
    slug = _tidy(_ascii_slugify(folded, "-"))
    if slug:
        return slug
    return quote(text.replace(" ", "-"), safe="-").lower()


def short_id(title: str) -> str:
    """Return 8 random alphanumerics, or ``""`` for an empty title."""
    if not title:
        return ""
    return "".join(
        secrets.choice(_SHORT_ID_ALPHABET) for _ in range(SHORT_ID_LENGTH)
    )


def full_id() -> str:
    """Return a fresh random UUID string."""
    return str(uuid.uuid4())


def timestamp_slug(reference_date: object = None) -> str:
    """Epoch milliseconds of *reference_date*, or of now if it is unusable."""
    instant = parse_instant(reference_date) or now_utc()
    return str(epoch_millis(instant))


def generate_slug(
    title: str,
    strategy: SlugStrategy | str | None = None,
    reference_date: object = None,
) -> str:
    """Generate a slug for *title* using the named strategy.

    Args:
        title: Post, category or tag title.
        strategy: A ``SlugStrategy`` or its name.  ``None`` and unknown
            names select ``title-based``.
        reference_date: Date used by the ``timestamp`` strategy.

    Returns:
        The slug.  Only ``short-id`` with an empty title yields ``""``.
    """
    match parse_strategy(strategy):
        case SlugStrategy.SHORT_ID:
            return short_id(title)
        case SlugStrategy.FULL_ID:
            return full_id()
        case SlugStrategy.TIMESTAMP:
            return timestamp_slug(reference_date)
        case _:
            return slugify_title(title)
