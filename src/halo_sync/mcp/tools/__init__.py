"""MCP tool handlers for Halo post operations.

This package contains MCP tool implementations that wrap the sync
orchestrator and HaloClient with async handlers and structured error
responses.
"""

from .errors import build_error_response, outcome_response
from .post import POST_SPECS, POST_TOOLS
from .registry import ToolRegistry, ToolSpec

ALL_SPECS: list[ToolSpec] = list(POST_SPECS)

__all__ = [
    "build_error_response",
    "outcome_response",
    # Registry
    "ToolSpec",
    "ToolRegistry",
    # Spec lists
    "ALL_SPECS",
    "POST_SPECS",
    "POST_TOOLS",
]
