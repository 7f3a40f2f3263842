"""Delivers a confirmed tool call's result as a synthetic user message over SSE."""

import logging
from typing import Any, AsyncIterator

from chatrelay.core.config import settings
from chatrelay.core.exceptions import NotFoundError, ValidationError
from chatrelay.services.bots import BotRegistry
from chatrelay.services.messages import create_message
from chatrelay.services.streaming import DONE_FRAME, FrameChannel, sse_frame
from chatrelay.services.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolExecutionBridge:
    def __init__(self, bots: BotRegistry, tools: ToolRegistry, buffer_size: int | None = None):
        self.bots = bots
        self.tools = tools
        self.buffer_size = buffer_size or settings.stream_buffer_size

    def start(
        self,
        chat_id: str | None,
        bot_name: str | None,
        server: str | None,
        tool: str | None,
        args: dict[str, Any] | None,
    ) -> AsyncIterator[str]:
        """Validate the call and return the frame stream. The result is not persisted here."""
        if not chat_id or not chat_id.strip():
            raise ValidationError("Chat ID is required")
        if not bot_name:
            raise ValidationError("Bot name is required")
        if not server or not tool:
            raise ValidationError("Server and tool are required")

        self.bots.get(bot_name)
        if self.tools.get(server, tool) is None:
            raise NotFoundError(f"Tool '{tool}' not found on server '{server}'")

        async def produce(channel: FrameChannel) -> None:
            result = await self.tools.execute(server, tool, args)
            message = create_message("user", result, tool=tool, server=server, arguments=args)
            logger.info(f"Chat {chat_id}: delivering result of {server}.{tool}")
            await channel.send(sse_frame(message.model_dump(mode="json", exclude_none=True)))
            await channel.send(DONE_FRAME)

        return FrameChannel(self.buffer_size).stream(produce)
