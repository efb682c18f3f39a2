"""MCP tool handlers for publishing and pulling posts.

Defines seven tools over the sync orchestrator:

- ``post_publish`` -- publish a Markdown file, creating the post if needed.
- ``post_update`` -- refresh a linked file from its post.
- ``post_push`` -- push a file to the post it is already linked to.
- ``post_pull`` -- overwrite a linked file with its post.
- ``post_fetch`` -- create a new file from an existing post.
- ``post_list`` -- list posts on the site.
- ``post_init_metadata`` -- add publishing front matter to a file.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync, run_sync_limited
from ...core.client import HaloClient
from ...file_handler import validate_directory, validate_file_path
from ...sync.engine import SyncOrchestrator
from ...sync.environment import FileEditingEnvironment
from .errors import build_text_response, format_timestamp, outcome_response
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_FILE_PATH_SCHEMA = {
    "type": "object",
    "properties": {
        "file_path": {
            "type": "string",
            "description": "Absolute path to a Markdown file with YAML front matter",
        },
    },
    "required": ["file_path"],
}


def _annotations(
    read_only: bool, destructive: bool, idempotent: bool
) -> types.ToolAnnotations:
    return types.ToolAnnotations(
        readOnlyHint=read_only,
        destructiveHint=destructive,
        idempotentHint=idempotent,
        openWorldHint=True,
    )


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


POST_TOOLS: list[types.Tool] = [
    types.Tool(
        name="post_publish",
        description=(
            "Publish a local Markdown file to Halo. Creates the post on first "
            "publish, otherwise updates the linked post. Categories and tags "
            "that do not exist yet are created. Writes title, categories, "
            "tags and the 'halo' link back into the file's front matter. "
            "Front matter 'publish: \"false\"' keeps the post as a draft."
        ),
        annotations=_annotations(
            read_only=False, destructive=False, idempotent=True
        ),
        inputSchema=_FILE_PATH_SCHEMA,
    ),
    types.Tool(
        name="post_update",
        description=(
            "Refresh a linked local Markdown file (front matter "
            "'halo.name') from its Halo post: the body is replaced by the "
            "post content and title, categories and tags are written into "
            "the front matter. Fails if the file was never published or the "
            "post was deleted. Does not change the post."
        ),
        annotations=_annotations(
            read_only=False, destructive=True, idempotent=True
        ),
        inputSchema=_FILE_PATH_SCHEMA,
    ),
    types.Tool(
        name="post_push",
        description=(
            "Push a local Markdown file to the Halo post it is already linked "
            "to (front matter 'halo.name'). Fails if the file was never "
            "published or the post was deleted."
        ),
        annotations=_annotations(
            read_only=False, destructive=False, idempotent=True
        ),
        inputSchema=_FILE_PATH_SCHEMA,
    ),
    types.Tool(
        name="post_pull",
        description=(
            "Overwrite a linked local Markdown file with the current content, "
            "title, categories and tags of its Halo post. Local edits to the "
            "body are lost."
        ),
        annotations=_annotations(
            read_only=False, destructive=True, idempotent=True
        ),
        inputSchema=_FILE_PATH_SCHEMA,
    ),
    types.Tool(
        name="post_fetch",
        description=(
            "Download a Halo post into a new Markdown file named after its "
            "title in the given directory, linked to the post."
        ),
        annotations=_annotations(
            read_only=False, destructive=False, idempotent=False
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "Post name (identifier), as shown by post_list",
                },
                "directory": {
                    "type": "string",
                    "description": "Absolute path of the directory for the new file",
                },
            },
            "required": ["name", "directory"],
        },
    ),
    types.Tool(
        name="post_list",
        description="List posts on the Halo site, newest first.",
        annotations=_annotations(
            read_only=True, destructive=False, idempotent=True
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "keyword": {
                    "type": "string",
                    "description": "Only posts whose title or content matches",
                },
                "page": {
                    "type": "integer",
                    "default": 1,
                    "minimum": 1,
                    "description": "Page number (1-based)",
                },
                "size": {
                    "type": "integer",
                    "default": 20,
                    "minimum": 1,
                    "maximum": 100,
                    "description": "Posts per page",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="post_init_metadata",
        description=(
            "Add the front matter needed for publishing (title, date, "
            "categories, tags, cover, slug-strategy, publish: false and a "
            "'halo' link with a new post name) to a local Markdown file. "
            "Existing keys are left untouched. Does not contact Halo."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema=_FILE_PATH_SCHEMA,
    ),
]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _orchestrator(
    client: HaloClient, environment: FileEditingEnvironment
) -> SyncOrchestrator:
    return SyncOrchestrator(
        client,
        environment,
        default_slug_strategy=client.config.slug_strategy,
        author=client.config.author,
    )


async def _active_file(args: dict[str, Any]) -> FileEditingEnvironment:
    file_path = args.get("file_path")
    if not file_path:
        raise ValueError("file_path is required")
    resolved = await run_sync(validate_file_path, file_path)
    return FileEditingEnvironment(resolved)


async def _handle_publish(
    client: HaloClient, args: dict[str, Any]
) -> types.CallToolResult:
    environment = await _active_file(args)
    outcome = await _orchestrator(client, environment).publish_active()
    return outcome_response(outcome)


async def _handle_update(
    client: HaloClient, args: dict[str, Any]
) -> types.CallToolResult:
    environment = await _active_file(args)
    outcome = await _orchestrator(client, environment).update_active()
    return outcome_response(outcome)


async def _handle_push(
    client: HaloClient, args: dict[str, Any]
) -> types.CallToolResult:
    environment = await _active_file(args)
    outcome = await _orchestrator(client, environment).push_active()
    return outcome_response(outcome)


async def _handle_pull(
    client: HaloClient, args: dict[str, Any]
) -> types.CallToolResult:
    environment = await _active_file(args)
    outcome = await _orchestrator(client, environment).pull_active()
    return outcome_response(outcome)


async def _handle_fetch(
    client: HaloClient, args: dict[str, Any]
) -> types.CallToolResult:
    name = args.get("name")
    directory = args.get("directory")
    if not name:
        raise ValueError("name is required")
    if not directory:
        raise ValueError("directory is required")
    root = await run_sync(validate_directory, directory)
    environment = FileEditingEnvironment(root=root)
    outcome = await _orchestrator(client, environment).fetch_remote(name)
    return outcome_response(outcome)


async def _handle_init_metadata(
    client: HaloClient, args: dict[str, Any]
) -> types.CallToolResult:
    environment = await _active_file(args)
    outcome = await _orchestrator(client, environment).generate_metadata()
    return outcome_response(outcome)


async def _handle_list(
    client: HaloClient, args: dict[str, Any]
) -> types.CallToolResult:
    page = int(args.get("page", 1))
    size = int(args.get("size", 20))
    if page < 1:
        raise ValueError("page must be at least 1")
    if not (1 <= size <= 100):
        raise ValueError("size must be between 1 and 100")

    posts = await run_sync_limited(
        client.list_posts, args.get("keyword") or None, page, size
    )
    if not posts:
        return build_text_response("No posts found.")

    lines = [f"Posts (page {page}):"]
    for post in posts:
        state = "published" if post.spec.publish else "draft"
        lines.append(
            f"- {post.identifier}: {post.spec.title or '(untitled)'} "
            f"[{state}, {format_timestamp(post.spec.publish_time)}]"
        )
    return build_text_response("\n".join(lines))


_HANDLERS = {
    "post_publish": _handle_publish,
    "post_update": _handle_update,
    "post_push": _handle_push,
    "post_pull": _handle_pull,
    "post_fetch": _handle_fetch,
    "post_list": _handle_list,
    "post_init_metadata": _handle_init_metadata,
}

POST_SPECS: list[ToolSpec] = [
    ToolSpec(tool=tool, handler=_HANDLERS[tool.name]) for tool in POST_TOOLS
]
