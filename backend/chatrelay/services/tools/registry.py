"""Tool registry - tools grouped by the server that provides them."""

import logging
from typing import Any

from chatrelay.core.exceptions import NotFoundError
from chatrelay.services.tools.base import BaseTool, ToolDefinition, ToolError
from chatrelay.services.tools.file_tools import ListFilesTool, ReadFileTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self) -> None:
        self._servers: dict[str, dict[str, BaseTool]] = {}

    def register(self, server: str, tool: BaseTool) -> None:
        defn = tool.definition()
        self._servers.setdefault(server, {})[defn.name] = tool

    def servers(self) -> list[str]:
        return list(self._servers)

    def get(self, server: str, tool: str) -> BaseTool | None:
        return self._servers.get(server, {}).get(tool)

    def definitions(self, server: str) -> list[ToolDefinition]:
        return [tool.definition() for tool in self._servers.get(server, {}).values()]

    async def execute(self, server: str, tool: str, args: dict[str, Any] | None) -> str:
        handler = self.get(server, tool)
        if handler is None:
            raise NotFoundError(f"Tool '{tool}' not found on server '{server}'")

        logger.info(f"Tool call: {server}.{tool}({args})")
        try:
            return await handler.execute(**(args or {}))
        except (TypeError, KeyError) as e:
            raise ToolError(f"Bad arguments for {server}.{tool}: {e}") from e


def create_default_registry() -> ToolRegistry:
    """Create a registry with the built-in servers."""
    registry = ToolRegistry()

    # File tools
    registry.register("files", ReadFileTool())
    registry.register("files", ListFilesTool())

    return registry
