"""Built-in ``files`` server: read-only access to the sandboxed workspace."""

from typing import Any

from chatrelay.core.sandbox import SandboxError, resolve_sandboxed_path
from chatrelay.services.tools.base import BaseTool, ToolDefinition, ToolError, ToolParameter

MAX_READ_CHARS = 20000


class ReadFileTool(BaseTool):
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="read_file",
            description="Read a text file from the workspace directory.",
            parameters=[
                ToolParameter(name="path", type="string", description="Relative file path within the workspace"),
            ],
        )

    async def execute(self, **kwargs: Any) -> str:
        path = kwargs["path"]
        try:
            file_path = resolve_sandboxed_path(path)
        except SandboxError as e:
            raise ToolError(str(e)) from e

        if not file_path.is_file():
            raise ToolError(f"File not found: {path}")

        try:
            text = file_path.read_text()
        except UnicodeDecodeError as e:
            raise ToolError(f"{path} is not a text file") from e

        if len(text) > MAX_READ_CHARS:
            text = text[:MAX_READ_CHARS] + "\n\n... (content truncated)"
        return text


class ListFilesTool(BaseTool):
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="list_files",
            description="List files and directories in the workspace directory.",
            parameters=[
                ToolParameter(
                    name="path", type="string",
                    description="Relative directory path within the workspace. Empty string for root.",
                    required=False,
                ),
            ],
        )

    async def execute(self, **kwargs: Any) -> str:
        path = kwargs.get("path", "")
        try:
            dir_path = resolve_sandboxed_path(path)
        except SandboxError as e:
            raise ToolError(str(e)) from e

        if not dir_path.is_dir():
            raise ToolError(f"Directory not found: {path}")

        entries = []
        for item in sorted(dir_path.iterdir()):
            if item.is_dir():
                entries.append(f"[DIR] {item.name}")
            else:
                entries.append(f"{item.name} ({item.stat().st_size} bytes)")

        return "\n".join(entries) if entries else "Directory is empty"
