"""System prompt sent ahead of the conversation."""

import json

from chatrelay.core.timestamps import iso_now
from chatrelay.models.bot import BotConfig
from chatrelay.services.tools.registry import ToolRegistry

SYSTEM_PROMPT_BASE = """You are a helpful personal AI assistant.

Always respond in the same language the user writes in."""

TOOL_USE_SECTION = """

====

TOOL USE

You have access to tools that run only after the user approves them. Use at most one tool per message; its result arrives in the user's next message.

To request a tool, reply with a block in exactly this format:

<use_mcp_tool>
<server_name>server name here</server_name>
<tool_name>tool name here</tool_name>
<arguments>
{"param1": "value1"}
</arguments>
</use_mcp_tool>

Available servers and tools:"""


def build_system_prompt(bot: BotConfig, registry: ToolRegistry) -> str:
    prompt = SYSTEM_PROMPT_BASE
    prompt += f"\n\nCurrent time: {json.dumps({'dateTime': iso_now(), 'timeZone': 'UTC'})}"

    servers = [s for s in bot.tool_servers if s in registry.servers()]
    if not servers:
        return prompt

    prompt += TOOL_USE_SECTION
    for server in servers:
        prompt += f"\n\n## {server}"
        for defn in registry.definitions(server):
            prompt += f"\n- {defn.name}: {defn.description}"
            prompt += f"\n  Input schema: {json.dumps(defn.input_schema())}"
    return prompt
