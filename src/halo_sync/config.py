"""Connection configuration for the Halo sync server.

Reads Halo connection settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    HALO_URL: Halo site URL (required)
    HALO_TOKEN: Personal access token (required unless username/password set)
    HALO_USERNAME: Halo username (Basic auth, used when no token is set)
    HALO_PASSWORD: Halo password (Basic auth, used when no token is set)
    HALO_INSECURE: Skip SSL verification (optional, default: false)
    HALO_DEBUG: Enable debug logging (optional, default: false)
    HALO_MAX_PARALLEL_REQUESTS: Max parallel HTTP requests (optional, default: 5)
    HALO_SLUG_STRATEGY: Slug strategy for new posts (optional, default: title-based)
    HALO_AUTHOR: Author written into generated front matter (optional)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# Names accepted by halo_sync.sync.slug.parse_strategy
SLUG_STRATEGIES = (
    "title-based",
    "short-id",
    "full-id",
    "timestamp",
    "title",
    "shortUUID",
    "UUID",
)


@dataclass
class Config:
    site_url: str
    token: str = ""
    username: str = ""
    password: str = ""
    insecure: bool = False
    debug: bool = False
    max_parallel_requests: int = 5
    slug_strategy: str = "title-based"
    author: str | None = None


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If URL format is invalid or credentials are missing.
    """
    config.site_url = config.site_url.strip()

    if not config.site_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid Halo URL '{config.site_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.site_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid Halo URL '{config.site_url}': URL must include a hostname"
        )

    # Strip trailing slash after validation (safe now that scheme/host are verified)
    config.site_url = config.site_url.rstrip("/")

    if not config.token.strip():
        if not config.username.strip() or not config.password.strip():
            raise ValueError(
                "Halo credentials not found. Set HALO_TOKEN, or both "
                "HALO_USERNAME and HALO_PASSWORD."
            )

    if config.slug_strategy not in SLUG_STRATEGIES:
        raise ValueError(
            f"Invalid slug strategy '{config.slug_strategy}': must be one of "
            f"{', '.join(SLUG_STRATEGIES[:4])}"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    url: str | None = None,
    token: str | None = None,
    username: str | None = None,
    password: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override site URL.
        token: Override personal access token.
        username: Override username.
        password: Override password.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the selected YAML site
            section. Used as fallback when CLI arg and env var are unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the URL or credentials are missing after checking
            all sources, or a value is out of range.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML ---

    site_url = url or os.getenv("HALO_URL") or fb.get("url")
    if not site_url:
        raise ValueError(
            "Halo URL not found. Set HALO_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    site_token = token or os.getenv("HALO_TOKEN") or fb.get("token") or ""
    site_username = (
        username or os.getenv("HALO_USERNAME") or fb.get("username") or ""
    )
    site_password = (
        password or os.getenv("HALO_PASSWORD") or fb.get("password") or ""
    )
    slug_strategy = (
        os.getenv("HALO_SLUG_STRATEGY")
        or fb.get("slug_strategy")
        or "title-based"
    )
    author = os.getenv("HALO_AUTHOR") or fb.get("author") or None

    # --- Boolean fields: CLI > env > YAML > default ---

    if insecure:
        final_insecure = True
    else:
        env_insecure = get_bool_env("HALO_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("HALO_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Numeric fields: env > YAML > default ---

    max_parallel_raw = os.getenv("HALO_MAX_PARALLEL_REQUESTS")
    if max_parallel_raw is not None:
        try:
            final_max_parallel = int(max_parallel_raw)
        except ValueError:
            raise ValueError(
                f"Invalid HALO_MAX_PARALLEL_REQUESTS '{max_parallel_raw}': must be a number between 1 and 100"
            ) from None
        if not (1 <= final_max_parallel <= 100):
            raise ValueError(
                f"Invalid HALO_MAX_PARALLEL_REQUESTS '{max_parallel_raw}': must be a number between 1 and 100"
            )
    elif "max_parallel_requests" in fb:
        final_max_parallel = int(fb["max_parallel_requests"])
    else:
        final_max_parallel = 5

    config = Config(
        site_url=site_url.strip(),
        token=site_token.strip(),
        username=site_username.strip(),
        password=site_password.strip(),
        insecure=final_insecure,
        debug=final_debug,
        max_parallel_requests=final_max_parallel,
        slug_strategy=slug_strategy.strip(),
        author=author,
    )

    validate_config(config)

    return config
