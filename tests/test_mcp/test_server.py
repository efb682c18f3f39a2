"""Tests for tool registration and routing in the MCP server.

Verifies:
- Post tools and ping appear in handle_list_tools
- --read-only leaves only tools that change nothing
- Tool calls route through the global registry and client
- Unknown tools return an error response instead of raising

Handler behaviour is tested in tests/test_mcp/tools/test_post.py; this
file only tests the server layer.
"""

import asyncio

import mcp.types as types
import pytest
from conftest import SITE_URL, FakeHaloClient, make_remote_post

from halo_sync.errors import TransportError
from halo_sync.mcp.server import (
    PING_SPEC,
    build_registry,
    get_client,
    get_registry,
    handle_call_tool,
    handle_list_tools,
    set_client,
    set_registry,
)


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


@pytest.fixture
def client():
    fake = FakeHaloClient()
    set_registry(build_registry())
    set_client(fake)
    yield fake
    set_client(None)
    set_registry(None)


class TestGlobals:
    def test_client_not_initialized(self):
        set_client(None)
        with pytest.raises(RuntimeError, match="not initialized"):
            get_client()

    def test_registry_not_initialized(self):
        set_registry(None)
        with pytest.raises(RuntimeError, match="not initialized"):
            get_registry()


class TestToolRegistration:
    def test_all_tools_listed(self, client):
        names = [t.name for t in asyncio.run(handle_list_tools())]
        assert names == [
            "ping",
            "post_publish",
            "post_update",
            "post_push",
            "post_pull",
            "post_fetch",
            "post_list",
            "post_init_metadata",
        ]

    def test_read_only_registry(self):
        registry = build_registry(read_only=True)
        assert [t.name for t in registry.list_tools()] == [
            "ping",
            "post_list",
        ]

    def test_ping_is_read_only(self):
        assert PING_SPEC.read_only


class TestCallRouting:
    def test_ping(self, client):
        result = asyncio.run(handle_call_tool("ping", {}))

        assert not result.isError
        assert _text(result) == f"Connected to {SITE_URL} as admin."
        assert client.calls == [("validate_connection",)]

    def test_ping_failure(self, client):
        client.fail_on["validate_connection"] = TransportError(
            "validate connection", "Unauthorized", 401
        )

        result = asyncio.run(handle_call_tool("ping", {}))

        assert result.isError
        assert "transport_failure" in _text(result)
        assert "HALO_TOKEN" in _text(result)

    def test_post_list_routed(self, client):
        client.add_post(make_remote_post("a", title="First"))

        result = asyncio.run(handle_call_tool("post_list", {"size": 5}))

        assert "- a: First [draft, (not set)]" in _text(result)
        assert client.calls_to("list_posts") == [("list_posts", None, 1, 5)]

    def test_unknown_tool(self, client):
        result = asyncio.run(handle_call_tool("wiki_get", {}))

        assert result.isError
        assert "unknown_tool" in _text(result)
        assert "list_tools" in _text(result)

    def test_filtered_tool_is_unknown(self, client):
        set_registry(build_registry(read_only=True))

        result = asyncio.run(
            handle_call_tool("post_publish", {"file_path": "/tmp/x.md"})
        )

        assert "unknown_tool" in _text(result)
        assert client.calls == []
