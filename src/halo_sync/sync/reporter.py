"""Outcome formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_outcome`` -- one-paragraph summary of a ``SyncOutcome``.
- ``outcome_to_json`` -- structured dict for MCP tool output.
- ``corrective_action`` -- what the user can do about a failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .models import SyncState

if TYPE_CHECKING:
    from .models import SyncOutcome

# States after which Halo may already hold part of the change
_REMOTE_WRITE_STATES = {
    SyncState.WRITING,
    SyncState.PUBLISHING,
    SyncState.REFRESHING,
}

_ACTIONS = {
    "not_found": (
        "The linked post no longer exists. Remove the 'halo.name' entry "
        "from the front matter and publish again to create a new post."
    ),
    "site_mismatch": (
        "The document belongs to another site. Select that site, or "
        "remove the 'halo' block to publish it here as a new post."
    ),
    "resolution_failure": (
        "Check that the account may create categories and tags, or "
        "create them in the Halo console first."
    ),
    "transport_failure": (
        "Check the site URL, credentials and network, then retry."
    ),
    "not_published": "Publish the document first.",
    "invalid_document": "Fix the YAML front matter and retry.",
    "local_io_error": "Check that the file exists and is writable.",
    "validation_error": "Check the input values and retry.",
}

_TITLES = {
    "publish": "Publish",
    "update": "Update",
    "push": "Push",
    "pull": "Pull",
    "fetch": "Fetch",
    "init": "Metadata generation",
}


def corrective_action(error_type: str | None) -> str:
    """Return the suggested fix for *error_type*."""
    return _ACTIONS.get(error_type or "", "Check the server logs.")


def remote_may_be_partial(outcome: SyncOutcome) -> bool:
    """True if a failed run got far enough to have changed Halo."""
    if outcome.success:
        return False
    return any(s in _REMOTE_WRITE_STATES for s in outcome.transitions)


def format_outcome(outcome: SyncOutcome) -> str:
    """Format an outcome as human-readable text.

    Args:
        outcome: Result of an orchestrator operation.

    Returns:
        Multi-line formatted string.
    """
    title = _TITLES.get(outcome.operation, outcome.operation.capitalize())

    if outcome.skipped:
        return f"{title} skipped: {outcome.message}"

    if outcome.success:
        lines = [f"{title} succeeded: {outcome.message}"]
        if outcome.identifier:
            lines.append(f"Post: {outcome.identifier}")
        if outcome.document:
            lines.append(f"Document: {outcome.document}")
        return "\n".join(lines)

    lines = [f"{title} failed ({outcome.error_type}): {outcome.message}"]
    if remote_may_be_partial(outcome):
        lines.append(
            "The post may have been partly updated on Halo; "
            "the local document was not changed."
        )
    lines.append(f"Action: {corrective_action(outcome.error_type)}")
    return "\n".join(lines)


def outcome_to_json(outcome: SyncOutcome) -> dict[str, Any]:
    """Convert an outcome to a JSON-serialisable dict.

    Returns:
        Dict with ``operation``, ``success``, ``state``, ``identifier``,
        ``document``, ``error_type``, ``message`` and ``transitions``.
    """
    return {
        "operation": outcome.operation,
        "success": outcome.success,
        "state": outcome.state.value,
        "identifier": outcome.identifier,
        "document": outcome.document,
        "error_type": outcome.error_type,
        "message": outcome.message,
        "transitions": [s.value for s in outcome.transitions],
    }
