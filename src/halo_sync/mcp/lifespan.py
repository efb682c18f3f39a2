"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import Config, load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config, site_fallbacks
from ..core.async_utils import init_semaphore, run_sync
from ..core.client import HaloClient

logger = logging.getLogger(__name__)

_CREDENTIALS_HINT = "Check HALO_URL and HALO_TOKEN (or HALO_USERNAME/HALO_PASSWORD)."


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def resolve_config(
    config_overrides: dict[str, Any] | None = None,
) -> tuple[Config, list[str]]:
    """
    Build the connection config from every source.

    Loads ``.env`` first so YAML ``${VAR}`` references can use it, then
    takes the selected YAML site section as fallbacks for ``load_config``.

    Args:
        config_overrides: CLI values (url, token, username, password,
            insecure, debug, site).

    Returns:
        Tuple of (config, list of source descriptions).

    Raises:
        ValueError: If the configuration is incomplete or invalid.
    """
    load_dotenv()

    overrides = config_overrides or {}
    site = overrides.get("site")
    yaml_fallbacks: dict[str, Any] | None = None
    sources: list[str] = []

    config_files = discover_config_files()
    if config_files:
        unified = build_config(load_hierarchical_config())
        yaml_fallbacks = site_fallbacks(unified, site)
        sources.append(f"config file: {config_files[0]}")
    elif site is not None:
        raise ValueError(
            f"Site '{site}' requested but no config file was found"
        )

    config = load_config(
        url=overrides.get("url"),
        token=overrides.get("token"),
        username=overrides.get("username"),
        password=overrides.get("password"),
        insecure=overrides.get("insecure", False),
        debug=overrides.get("debug", False),
        yaml_fallbacks=yaml_fallbacks,
    )

    if any(overrides.get(k) for k in ("url", "token", "username", "password")):
        sources.append("CLI arguments")
    sources.append("environment variables")
    return config, sources


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Resolve configuration: CLI > env vars > .env > YAML site > defaults
    - Create HaloClient and validate the credentials against the site
    - Install the request semaphore
    - Fail fast if Halo is unreachable or rejects the credentials

    Args:
        config_overrides: Optional dict with config values from CLI.

    Yields:
        Dict with 'client' (HaloClient) and 'config' (Config).

    Raises:
        RuntimeError: If configuration is invalid or the connection fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("Halo sync MCP server starting...")

    try:
        config, sources = resolve_config(config_overrides)
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Halo URL: %s", config.site_url)
        _stderr_print(f"  Halo URL: {config.site_url}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print(f"  {_CREDENTIALS_HINT}")
        raise RuntimeError(
            f"Configuration error: {e}. {_CREDENTIALS_HINT}"
        ) from e

    logger.info("Validating Halo connection...")
    _stderr_print("  Validating Halo connection...")
    try:
        client = HaloClient(config)
        user = await run_sync(client.validate_connection)
    except Exception as e:
        logger.error("Failed to connect to Halo: %s", e)
        _stderr_print("ERROR: Halo connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print(f"  {_CREDENTIALS_HINT}")
        raise RuntimeError(
            f"Halo connection failed: {e}. {_CREDENTIALS_HINT}"
        ) from e

    logger.info("Connected to Halo as %s", user or "(unknown user)")
    _stderr_print(f"  Connected as {user or '(unknown user)'}")
    init_semaphore(config.max_parallel_requests)
    _stderr_print(f"  Parallel requests: {config.max_parallel_requests}")
    _stderr_print("Server ready. Waiting for MCP client connection...")

    yield {"client": client, "config": config}

    logger.info("MCP server shutting down")
    _stderr_print("Halo sync MCP server shutting down.")
