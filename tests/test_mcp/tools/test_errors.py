"""Tests for mcp/tools/errors.py: response builders and utilities.

Covers:
- build_error_response() structure and format
- outcome_response() for success, skip and failure outcomes
- format_timestamp() for various input types
"""

from datetime import datetime, timezone

import mcp.types as types

from halo_sync.mcp.tools.errors import (
    build_error_response,
    build_text_response,
    format_timestamp,
    outcome_response,
)
from halo_sync.sync.models import SyncOutcome, SyncState


def _get_text(result: types.CallToolResult) -> str:
    """Extract text from first content item with type narrowing for Pyright."""
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


# ---------------------------------------------------------------------------
# build_error_response / build_text_response
# ---------------------------------------------------------------------------


class TestBuildErrorResponse:
    def test_structure(self):
        result = build_error_response(
            "not_found", "Post 'x' not found", "Use post_list."
        )
        assert isinstance(result, types.CallToolResult)
        assert result.isError is True
        assert _get_text(result) == (
            "Error (not_found): Post 'x' not found\n\nAction: Use post_list."
        )

    def test_text_response_is_not_error(self):
        result = build_text_response("fine")
        assert not result.isError
        assert _get_text(result) == "fine"


# ---------------------------------------------------------------------------
# outcome_response
# ---------------------------------------------------------------------------


class TestOutcomeResponse:
    def test_success(self):
        outcome = SyncOutcome(
            operation="pull",
            success=True,
            state=SyncState.DONE,
            identifier="abc",
            document="notes",
            message="Pulled post abc into notes",
        )
        result = outcome_response(outcome)
        assert not result.isError
        assert _get_text(result).startswith("Pull succeeded")

    def test_skipped_is_not_error(self):
        outcome = SyncOutcome(
            operation="publish",
            success=True,
            state=SyncState.IDLE,
            message="No active document",
        )
        assert not outcome_response(outcome).isError

    def test_failure_carries_error_type(self):
        outcome = SyncOutcome(
            operation="update",
            success=False,
            state=SyncState.FAILED,
            error_type="not_published",
            message="Document 'notes' has not been published to Halo yet",
        )
        result = outcome_response(outcome)
        text = _get_text(result)
        assert result.isError
        assert text.startswith("Error (not_published):")
        assert "Publish the document first." in text


# ---------------------------------------------------------------------------
# format_timestamp
# ---------------------------------------------------------------------------


class TestFormatTimestamp:
    def test_none_and_empty(self):
        assert format_timestamp(None) == "(not set)"
        assert format_timestamp("") == "(not set)"

    def test_iso_string(self):
        assert format_timestamp("2024-05-01T08:30:00Z") == "2024-05-01 08:30"

    def test_datetime(self):
        dt = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2024-05-01 08:30"

    def test_epoch_millis(self):
        assert format_timestamp(1704067200000) == "2024-01-01 00:00"

    def test_unparseable_string_returned_as_is(self):
        assert format_timestamp("someday") == "someday"

    def test_other_types(self):
        assert format_timestamp(["x"]) == "['x']"
