"""Parsing of ``<use_mcp_tool>`` blocks in model replies."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_TOOL_BLOCK = re.compile(r"<use_mcp_tool>(.*?)</use_mcp_tool>", re.DOTALL)
_SERVER = re.compile(r"<server_name>(.*?)</server_name>", re.DOTALL)
_TOOL = re.compile(r"<tool_name>(.*?)</tool_name>", re.DOTALL)
_ARGS = re.compile(r"<arguments>\s*(\{.*?\})\s*</arguments>", re.DOTALL)
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


@dataclass
class ToolUse:
    server: str
    tool: str
    arguments: dict[str, Any]


def contains_tool_use(content: str) -> bool:
    return "<use_mcp_tool>" in content and "</use_mcp_tool>" in content


def extract_tool_use(content: str) -> ToolUse | None:
    """Return the first well-formed tool call in ``content``, or None."""
    block = _TOOL_BLOCK.search(content)
    if not block:
        return None

    body = block.group(1)
    server = _SERVER.search(body)
    tool = _TOOL.search(body)
    args = _ARGS.search(body)
    if not (server and tool and args):
        return None

    # Newlines inside JSON strings are invalid; models emit them anyway
    raw = _CONTROL_CHARS.sub(lambda m: " " if m.group(0) == "\n" else "", args.group(1))
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Unparseable tool arguments: {e}")
        return None

    if not isinstance(arguments, dict):
        return None
    return ToolUse(server=server.group(1).strip(), tool=tool.group(1).strip(), arguments=arguments)
