"""Response builders and shared formatting for MCP tool handlers.

Errors carry a corrective action so an agent can recover without human
intervention.
"""

from datetime import datetime
from typing import Any

import mcp.types as types

from ...sync.dates import parse_instant
from ...sync.models import SyncOutcome
from ...sync.reporter import corrective_action, format_outcome


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, site_mismatch,
            resolution_failure, transport_failure, not_published,
            validation_error, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Post 'abc' not found", "Use post_list to find the post.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def build_text_response(text: str) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)]
    )


def outcome_response(outcome: SyncOutcome) -> types.CallToolResult:
    """Turn an orchestrator outcome into a tool result.

    Failed outcomes become error responses carrying the outcome's error
    type; successful and skipped ones become plain text.
    """
    if not outcome.success:
        return build_error_response(
            outcome.error_type or "sync_error",
            format_outcome(outcome),
            corrective_action(outcome.error_type),
        )
    return build_text_response(format_outcome(outcome))


def format_timestamp(timestamp: Any) -> str:
    """Format a post timestamp for display.

    Accepts ISO 8601 strings (as Halo returns them), datetimes and epoch
    milliseconds.

    Returns:
        Formatted date string (YYYY-MM-DD HH:MM, UTC), or "(not set)"
    """
    match timestamp:
        case None | "":
            return "(not set)"
        case datetime() | str() | int() | float():
            instant = parse_instant(timestamp)
            if instant is None:
                return str(timestamp)
            return instant.strftime("%Y-%m-%d %H:%M")
        case _:
            return str(timestamp)
