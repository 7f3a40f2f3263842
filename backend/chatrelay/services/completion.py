"""Completion orchestration - turns one user message into a streamed, persisted reply.

A turn moves through RECEIVED -> USER_MESSAGE_APPENDED -> STREAMING and ends in
COMPLETED or FAILED. The user message is saved before the provider is asked
for anything, so it survives a failed generation. The assistant message is
only saved once the provider stream finished cleanly, and a client that
leaves during that final save does not undo it.
"""

import asyncio
import enum
import logging
import secrets
from typing import AsyncIterator, Callable

from chatrelay.core.config import settings
from chatrelay.core.exceptions import ChatRelayError, UpstreamProviderError, ValidationError
from chatrelay.models.bot import BotConfig
from chatrelay.models.chat import Chat, ContentBlock
from chatrelay.services.bots import BotRegistry
from chatrelay.services.llm import BaseLLMProvider, get_llm_provider
from chatrelay.services.messages import append_message, create_message
from chatrelay.services.prompts import build_system_prompt
from chatrelay.services.storage.store import ChatStore
from chatrelay.services.streaming import DONE_FRAME, FrameChannel, completion_frame, sse_frame
from chatrelay.services.tools.parser import contains_tool_use, extract_tool_use
from chatrelay.services.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class TurnState(str, enum.Enum):
    RECEIVED = "received"
    USER_MESSAGE_APPENDED = "user_message_appended"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


def _is_blank(content: str | list[ContentBlock] | None) -> bool:
    if content is None:
        return True
    if isinstance(content, str):
        return not content.strip()
    return len(content) == 0


class CompletionTurn:
    """One in-flight turn. Owns ``chat`` until the stream ends."""

    def __init__(
        self,
        store: ChatStore,
        chat: Chat,
        bot: BotConfig,
        provider: BaseLLMProvider,
        system_prompt: str | None,
        buffer_size: int,
    ):
        self.store = store
        self.chat = chat
        self.bot = bot
        self.provider = provider
        self.system_prompt = system_prompt
        self.buffer_size = buffer_size
        self.state = TurnState.USER_MESSAGE_APPENDED

    def frames(self) -> AsyncIterator[str]:
        return FrameChannel(self.buffer_size).stream(self._produce)

    async def _produce(self, channel: FrameChannel) -> None:
        self.state = TurnState.STREAMING
        parts: list[str] = []
        reasoning: list[str] = []
        model: str | None = None
        provider: str | None = None

        try:
            async for delta in self.provider.stream_completion(self.chat, self.system_prompt):
                if delta.model:
                    model = delta.model
                if delta.provider:
                    provider = delta.provider
                if delta.reasoning_content:
                    reasoning.append(delta.reasoning_content)
                if not delta.content:
                    continue
                parts.append(delta.content)
                await channel.send(
                    completion_frame(delta.content, model or self.bot.model, provider or self.bot.name)
                )
        except asyncio.CancelledError:
            self.state = TurnState.FAILED
            logger.info(f"Chat {self.chat.id}: client went away, reply discarded")
            raise
        except UpstreamProviderError:
            self.state = TurnState.FAILED
            raise
        except Exception as e:
            self.state = TurnState.FAILED
            raise UpstreamProviderError(f"Provider stream failed: {e}") from e

        content = "".join(parts)
        assistant = create_message(
            "assistant",
            content,
            model=model or self.bot.model,
            provider=provider or self.bot.name,
            reasoning_content="".join(reasoning) or None,
        )
        append_message(self.chat, assistant)
        await self._save_reply()

        if contains_tool_use(content):
            await self._request_tool_confirmation(channel, content)

        await channel.send(DONE_FRAME)
        self.state = TurnState.COMPLETED
        logger.debug(f"Chat {self.chat.id}: reply of {len(content)} chars saved")

    async def _save_reply(self) -> None:
        """Save the finished reply. Once started, the save runs to the end even if the client leaves."""
        save = asyncio.ensure_future(self.store.save_chat(self.chat))
        try:
            await asyncio.shield(save)
        except asyncio.CancelledError:
            await asyncio.wait([save])
            self.state = TurnState.FAILED if save.exception() else TurnState.COMPLETED
            logger.info(f"Chat {self.chat.id}: client went away during the final save")
            raise
        except ChatRelayError:
            self.state = TurnState.FAILED
            raise

    async def _request_tool_confirmation(self, channel: FrameChannel, content: str) -> None:
        tool_use = extract_tool_use(content)
        if tool_use is None:
            logger.warning(f"Chat {self.chat.id}: reply has a malformed tool call")
            return
        await channel.send(sse_frame({
            "tool_execution": {
                "status": "pending_confirmation",
                "tool_id": secrets.token_hex(4),
                "server": tool_use.server,
                "tool": tool_use.tool,
                "arguments": tool_use.arguments,
            }
        }))


class CompletionOrchestrator:
    def __init__(
        self,
        store: ChatStore,
        bots: BotRegistry,
        tools: ToolRegistry,
        provider_factory: Callable[[BotConfig], BaseLLMProvider] = get_llm_provider,
        buffer_size: int | None = None,
    ):
        self.store = store
        self.bots = bots
        self.tools = tools
        self.provider_factory = provider_factory
        self.buffer_size = buffer_size or settings.stream_buffer_size

    async def start(
        self,
        chat_id: str | None,
        content: str | list[ContentBlock] | None,
        bot_name: str | None,
    ) -> CompletionTurn:
        """Validate the request and commit the user message. Raises before any streaming starts."""
        if not chat_id or not chat_id.strip():
            raise ValidationError("Chat ID is required")
        if _is_blank(content):
            raise ValidationError("Message content is required")
        if not bot_name or not bot_name.strip():
            raise ValidationError("Bot name is required")

        bot = self.bots.get(bot_name)
        provider = self.provider_factory(bot)

        chat = await self.store.get_or_create_chat(chat_id)
        append_message(chat, create_message("user", content))
        await self.store.save_chat(chat)
        logger.info(f"Chat {chat.id}: user message saved, streaming from bot {bot.name}")

        return CompletionTurn(
            store=self.store,
            chat=chat,
            bot=bot,
            provider=provider,
            system_prompt=build_system_prompt(bot, self.tools),
            buffer_size=self.buffer_size,
        )
