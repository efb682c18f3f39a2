"""ToolSpec and ToolRegistry for MCP tool dispatch.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition to an async
  handler with standardized signature (client, args) -> CallToolResult.
- ToolRegistry: Selects the exposed specs at construction time (all of
  them, or only read-only ones), then provides list_tools() and
  call_tool() dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...core.client import HaloClient
from ...errors import HaloSyncError
from ...sync.reporter import corrective_action
from .errors import build_error_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable definition of a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema,
            annotations).
        handler: Async handler with signature (client, args) -> CallToolResult.
    """

    tool: types.Tool
    handler: Callable[[HaloClient, dict], Awaitable[types.CallToolResult]]

    @property
    def read_only(self) -> bool:
        """True if the tool declares that it changes nothing."""
        annotations = self.tool.annotations
        return bool(annotations and annotations.readOnlyHint)


class ToolRegistry:
    """Registry of ToolSpecs.

    With ``read_only=True`` only specs whose tool carries
    ``readOnlyHint=True`` are registered.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if not read_only or spec.read_only:
                self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        """Return number of registered tools."""
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        client: HaloClient,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Translates sync errors, validation errors and unexpected
        exceptions into structured CallToolResult responses with
        corrective actions.

        Args:
            name: Tool name to invoke.
            arguments: Tool arguments (may be None).
            client: HaloClient instance.

        Returns:
            CallToolResult from the handler.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(client, args)
        except HaloSyncError as e:
            logger.warning("%s failed in %s: %s", e.error_type, name, e)
            return build_error_response(
                e.error_type, str(e), corrective_action(e.error_type)
            )
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log, then retry.",
            )
