"""
Hierarchical YAML configuration loader for halo_sync.

Finds config files by convention, resolves ``!include`` directives and
``${VAR}`` references, and merges files so that project settings override
global ones.

Usage:
    from halo_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HALO_SYNC_CONFIG"
PROJECT_CONFIG_DIR = ".halo_sync"

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` references in *value*.

    An unset or empty variable expands to its default, or to ``""`` when
    there is none.  A ``${`` without a closing brace is left as is.
    """

    def _expand(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        current = os.environ.get(name)
        if current:
            return current
        return default if default is not None else ""

    return _ENV_VAR_PATTERN.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    """Apply ``interpolate_env_vars`` to every string in a nested structure."""
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# 2. YAML !include support
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with an ``!include`` tag.

    A subclass keeps the tag out of the global ``yaml.SafeLoader``.  Each
    load carries the chain of files being included so cycles are caught.
    """


def _include_constructor(
    loader: ConfigLoader, node: yaml.ScalarNode
) -> Any:
    """Load the file named by ``!include <path>`` in place of the node.

    Relative paths are resolved against the including file's directory.
    """
    target: str = loader.construct_scalar(node)
    including_file = Path(loader.name).resolve()
    include_path = Path(target)
    if not include_path.is_absolute():
        include_path = including_file.parent / include_path
    include_path = include_path.resolve()

    chain: list[Path] = getattr(loader, "_include_stack", [])
    if include_path in chain:
        cycle = " -> ".join(str(p) for p in [*chain, include_path])
        raise ValueError(f"Circular include detected: {cycle}")

    if not include_path.exists():
        raise FileNotFoundError(
            f"Include file not found: {include_path} (referenced from {including_file})"
        )

    return _load_yaml_with_includes(
        include_path, _include_stack=[*chain, include_path]
    )


ConfigLoader.add_constructor("!include", _include_constructor)


def _load_yaml_with_includes(
    path: Path,
    *,
    _include_stack: list[Path] | None = None,
) -> Any:
    """Parse one YAML file with ``ConfigLoader``."""
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# 3. Convention-based file discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config file paths in precedence order (highest first).

    Search order:
        1. ``HALO_SYNC_CONFIG`` env var (explicit single path)
        2. ``.halo_sync/config.yml`` in CWD (project-level)
        3. ``.halo_sync/config.yaml`` in CWD
        4. ``~/.config/halo_sync/config.yml`` (XDG global)

    Only paths that exist on disk are returned.
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / PROJECT_CONFIG_DIR
    candidates.append(project_dir / "config.yml")
    candidates.append(project_dir / "config.yaml")

    candidates.append(Path.home() / ".config" / "halo_sync" / "config.yml")

    return [p for p in candidates if p.exists()]


# ---------------------------------------------------------------------------
# 3a. Config bootstrapping
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# halo-sync configuration
#
# Connection settings can also be set via environment variables:
#   HALO_URL, HALO_TOKEN, HALO_USERNAME, HALO_PASSWORD, HALO_INSECURE
#
# halo:
#   url: https://blog.example.com
#   token: ${HALO_TOKEN}
#   slug_strategy: title-based
#   author: null
#   max_parallel_requests: 5
#
# Additional sites, selected with --site <name>:
#
# sites:
#   staging:
#     url: https://staging.example.com
#     username: admin
#     password: ${HALO_STAGING_PASSWORD}
#
# logging:
#   level: INFO
#   file: null
"""


def resolve_config_path() -> Path:
    """Return the config file that is, or would be, in effect.

    This is the highest-precedence existing file, or
    ``CWD/.halo_sync/config.yml`` when none exists.  Nothing is created.
    """
    existing = discover_config_files()
    if existing:
        return existing[0]
    return Path.cwd() / PROJECT_CONFIG_DIR / "config.yml"


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a starter one if none exists.

    Args:
        target: Where to create the starter file. Defaults to
            ``resolve_config_path()``.

    Returns:
        Path to the config file (existing or newly created).
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or resolve_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


# ---------------------------------------------------------------------------
# 4. Hierarchical merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files are applied from lowest to highest precedence; each file's
    top-level keys replace (not deep-merge) earlier ones, so a project
    ``sites:`` section hides the global one entirely.  Env var references
    are expanded after merging.

    Returns an empty dict when no config files exist (zero-config).
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using zero-config defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except (OSError, ValueError, yaml.YAMLError):
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
