"""Unified configuration schema for halo_sync.

Defines Pydantic models for the YAML config structure: the default Halo
connection, named alternative sites, and logging.  One site is selected
per run.

Usage:
    from halo_sync.config_schema import build_config, site_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    fallbacks = site_fallbacks(unified, site="staging")
    config = load_config(yaml_fallbacks=fallbacks)
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class HaloSiteConfig(BaseModel):
    """Connection settings for one Halo site.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(default=None, description="Halo site URL")
    token: str | None = Field(
        default=None, description="Personal access token"
    )
    username: str | None = Field(
        default=None, description="Halo username (Basic auth)"
    )
    password: str | None = Field(
        default=None, description="Halo password (Basic auth)"
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    max_parallel_requests: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum concurrent requests to the site (1-100)",
    )
    slug_strategy: str = Field(
        default="title-based",
        description="Slug strategy for new posts",
    )
    author: str | None = Field(
        default=None, description="Author for generated front matter"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    halo: HaloSiteConfig = Field(default_factory=HaloSiteConfig)
    sites: dict[str, HaloSiteConfig] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory and site selection
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def select_site(
    unified: UnifiedConfig, site: str | None = None
) -> HaloSiteConfig:
    """Return the connection section for *site*.

    ``None`` selects the default ``halo`` section.

    Raises:
        ValueError: If *site* is not defined under ``sites``.
    """
    if site is None:
        return unified.halo
    if site not in unified.sites:
        known = ", ".join(sorted(unified.sites)) or "none"
        raise ValueError(
            f"Unknown site '{site}' (configured sites: {known})"
        )
    return unified.sites[site]


def site_fallbacks(
    unified: UnifiedConfig, site: str | None = None
) -> dict[str, Any]:
    """Return the selected site section as ``load_config`` fallbacks.

    Unset values are omitted so they do not shadow built-in defaults.
    """
    section = select_site(unified, site)
    return section.model_dump(exclude_none=True)
