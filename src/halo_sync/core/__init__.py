"""Core Halo client functionality shared by the sync engine and MCP server."""

from .async_utils import run_sync
from .client import HaloClient

__all__ = ["HaloClient", "run_sync"]
