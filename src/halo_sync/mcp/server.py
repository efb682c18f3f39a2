"""MCP Server for Halo post sync using stdio transport.

Exposes publish, update, pull, fetch and list operations on a Halo site
as MCP tools, operating on local Markdown files with YAML front matter.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import discover_config_files, load_hierarchical_config
from ..config_schema import LoggingConfig, build_config
from ..core.async_utils import run_sync
from ..core.client import HaloClient
from ..logger import DEFAULT_MCP_LOG_FILE, setup_logging
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

server = Server("halo-sync")

# Initialized in main()
_halo_client: HaloClient | None = None
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available, read-only)
# ---------------------------------------------------------------------------


async def _handle_ping(
    client: HaloClient, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test Halo connectivity."""
    try:
        user = await run_sync(client.validate_connection)
    except Exception as e:
        return build_error_response(
            "transport_failure",
            f"Halo connection failed: {e}",
            "Check HALO_URL and HALO_TOKEN (or HALO_USERNAME/HALO_PASSWORD).",
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Connected to {client.site_url} as {user or '(unknown user)'}.",
            )
        ]
    )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test connectivity to the configured Halo site",
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_client() -> HaloClient:
    """Get the global HaloClient instance.

    Raises:
        RuntimeError: If client is not initialized
    """
    if _halo_client is None:
        raise RuntimeError(
            "HaloClient not initialized. Server lifespan not started."
        )
    return _halo_client


def set_client(client: HaloClient | None) -> None:
    global _halo_client
    _halo_client = client


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List the registered tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    client = get_client()
    try:
        return await get_registry().call_tool(name, arguments, client)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def _logging_section() -> LoggingConfig:
    """Return the YAML ``logging`` section, or defaults if unreadable."""
    if not discover_config_files():
        return LoggingConfig()
    try:
        return build_config(load_hierarchical_config()).logging
    except Exception as e:  # reported again, fatally, by the lifespan
        print(f"Warning: could not read logging config: {e}", file=sys.stderr)
        return LoggingConfig()


def build_registry(read_only: bool = False) -> ToolRegistry:
    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, read_only=read_only)
    logger.info(
        "Registered %d tools (of %d total)%s",
        registry.tool_count(),
        len(all_specs),
        " in read-only mode" if read_only else "",
    )
    return registry


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), validates the
    Halo connection via the lifespan manager, and serves JSON-RPC over
    stdio.

    Args:
        config_overrides: Optional dict with CLI values (url, token,
            username, password, insecure, debug, site, log_file,
            read_only)
    """
    overrides = dict(config_overrides or {})
    log_file = overrides.pop("log_file", None)
    read_only = bool(overrides.pop("read_only", False))

    # Must run before stdio_server so nothing reaches stdout
    logging_section = _logging_section()
    setup_logging(
        mode="mcp",
        debug=bool(overrides.get("debug")),
        log_file=log_file or logging_section.file,
        level=logging_section.level,
    )

    registry = build_registry(read_only)
    if read_only:
        print(
            f"Read-only mode: {registry.tool_count()} tools enabled",
            file=sys.stderr,
        )
    set_registry(registry)

    # set_client() is called here rather than inside the lifespan so that
    # running this file as __main__ updates the same module globals the
    # handlers read
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_client(ctx["client"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="halo-sync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            set_client(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="halo-sync - MCP server for publishing Markdown files to Halo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .halo_sync/config.yml)
  halo-sync-mcp

  # Override the site URL
  halo-sync-mcp --url https://blog.example.com

  # Use a named site from the config file
  halo-sync-mcp --site staging

  # Expose only tools that change nothing
  halo-sync-mcp --read-only

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )

    parser.add_argument(
        "--url",
        help="Override Halo site URL (takes precedence over HALO_URL and config files)",
    )
    parser.add_argument(
        "--token",
        help="Override personal access token"
        " (visible in process list -- prefer HALO_TOKEN env var)",
    )
    parser.add_argument(
        "--username",
        help="Override Halo username (Basic auth, used when no token is set)",
    )
    parser.add_argument(
        "--password",
        help="Override Halo password"
        " (visible in process list -- prefer HALO_PASSWORD env var)",
    )
    parser.add_argument(
        "--site",
        help="Name of a site defined under 'sites:' in the config file",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help=f"Log file path (default: {DEFAULT_MCP_LOG_FILE})",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Register only tools that do not modify Halo or local files",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"halo-sync version {__version__}",
    )

    args = parser.parse_args()

    config_overrides: dict = {}
    for key in ("url", "token", "username", "password", "site", "log_file"):
        value = getattr(args, key)
        if value:
            config_overrides[key] = value
    for flag in ("insecure", "debug", "read_only"):
        if getattr(args, flag):
            config_overrides[flag] = True

    if config_overrides:
        shown = [
            k for k in config_overrides if k not in ("password", "token")
        ]
        print(
            f"Config overrides from CLI: {', '.join(shown)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
