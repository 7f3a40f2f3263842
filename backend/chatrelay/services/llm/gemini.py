"""Google Gemini LLM provider."""

import logging
from typing import AsyncIterator

from google import genai
from google.genai import errors, types

from chatrelay.core.config import settings
from chatrelay.core.exceptions import ConfigurationError, UpstreamProviderError
from chatrelay.models.bot import BotConfig
from chatrelay.models.chat import Chat
from chatrelay.services.llm.base import BaseLLMProvider, ContentDelta

logger = logging.getLogger(__name__)


class GeminiProvider(BaseLLMProvider):
    def __init__(self, bot: BotConfig):
        self.bot = bot
        api_key = bot.api_key or settings.gemini_api_key
        if not api_key:
            raise ConfigurationError(f'Bot "{bot.name}" has no Gemini API key')
        self.client = genai.Client(api_key=api_key)
        self.model = bot.model or "gemini-2.0-flash"

    def build_contents(self, chat: Chat) -> list[types.Content]:
        contents = []
        for msg in chat.messages:
            if msg.role == "system":
                continue
            role = "model" if msg.role == "assistant" else "user"
            contents.append(types.Content(role=role, parts=[types.Part(text=msg.searchable_text())]))
        return contents

    async def stream_completion(
        self, chat: Chat, system_prompt: str | None = None
    ) -> AsyncIterator[ContentDelta]:
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            max_output_tokens=self.bot.max_tokens,
        )

        logger.info(f"Streaming Gemini completion with model {self.model}")
        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=self.model,
                contents=self.build_contents(chat),
                config=config,
            )
            async for chunk in stream:
                if chunk.text:
                    yield ContentDelta(content=chunk.text, model=chunk.model_version, provider="google")
        except errors.APIError as e:
            raise UpstreamProviderError(f"Gemini request failed: {e}") from e
