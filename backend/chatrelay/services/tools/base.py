"""Base tool interface. Every tool a server exposes implements this."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class ToolError(Exception):
    """A tool could not run with the given arguments."""


@dataclass
class ToolParameter:
    name: str
    type: str  # "string" | "integer" | "boolean" | "number"
    description: str
    required: bool = True


@dataclass
class ToolDefinition:
    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)

    def input_schema(self) -> dict:
        """JSON schema of the tool's arguments, as shown to the model."""
        properties = {}
        required = []
        for param in self.parameters:
            properties[param.name] = {"type": param.type, "description": param.description}
            if param.required:
                required.append(param.name)

        return {"type": "object", "properties": properties, "required": required}


class BaseTool(ABC):
    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Return the tool's definition."""
        ...

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        """Run the tool. Returns a string result, raises ToolError on bad input."""
        ...
