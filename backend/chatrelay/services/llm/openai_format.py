"""Provider for any endpoint speaking the OpenAI chat-completions streaming format.

Covers OpenAI itself, OpenRouter and other compatible gateways.
"""

import json
import logging
from typing import Any, AsyncIterator

import httpx

from chatrelay.core.exceptions import UpstreamProviderError
from chatrelay.models.bot import BotConfig
from chatrelay.models.chat import Chat
from chatrelay.services.llm.base import BaseLLMProvider, ContentDelta

logger = logging.getLogger(__name__)

DEFAULT_API_PATH = "/chat/completions"


class OpenAIFormatProvider(BaseLLMProvider):
    def __init__(self, bot: BotConfig, client: httpx.AsyncClient | None = None, timeout: float = 120.0):
        self.bot = bot
        self.client = client
        self.timeout = timeout

    def prepare_messages(self, chat: Chat, system_prompt: str | None = None) -> list[dict[str, Any]]:
        """Convert chat messages to API format, with content always as a list of blocks."""
        prepared: list[dict[str, Any]] = []
        if system_prompt:
            prepared.append({"role": "system", "content": [{"type": "text", "text": system_prompt}]})

        for msg in chat.messages:
            if isinstance(msg.content, str):
                content = [{"type": "text", "text": msg.content}]
            else:
                content = [block.model_dump() for block in msg.content]
            prepared.append({"role": msg.role, "content": content})

        # Anthropic prompt caching on the system prompt and the last user turn
        if "claude-3" in self.bot.model:
            if system_prompt:
                prepared[0]["content"][0]["cache_control"] = {"type": "ephemeral"}
            for msg in reversed(prepared):
                if msg["role"] == "user":
                    text_parts = [p for p in msg["content"] if p.get("type") == "text"]
                    if text_parts:
                        text_parts[-1]["cache_control"] = {"type": "ephemeral"}
                    break

        return prepared

    def build_body(self, chat: Chat, system_prompt: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.bot.model,
            "messages": self.prepare_messages(chat, system_prompt),
            "stream": True,
        }
        if self.bot.openrouter_config and self.bot.openrouter_config.get("provider"):
            body["provider"] = self.bot.openrouter_config["provider"]
        if self.bot.max_tokens:
            body["max_tokens"] = self.bot.max_tokens
        if self.bot.reasoning_effort:
            body["reasoning_effort"] = self.bot.reasoning_effort
        if "deepseek-r1" in self.bot.model:
            body["include_reasoning"] = True
        return body

    async def stream_completion(
        self, chat: Chat, system_prompt: str | None = None
    ) -> AsyncIterator[ContentDelta]:
        url = f"{self.bot.base_url.rstrip('/')}{self.bot.custom_api_path or DEFAULT_API_PATH}"
        headers = {
            "Authorization": f"Bearer {self.bot.api_key}",
            "Accept": "text/event-stream",
        }
        body = self.build_body(chat, system_prompt)

        logger.info(f"Streaming completion from {url} using model {self.bot.model}")
        client = self.client or httpx.AsyncClient(timeout=self.timeout)
        try:
            async with client.stream("POST", url, json=body, headers=headers) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise UpstreamProviderError(
                        f"API error: {response.status_code} {response.text[:200]}"
                    )

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        return
                    try:
                        event = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping non-JSON stream line: {data[:200]}")
                        continue

                    delta = self._extract_delta(event)
                    if delta is not None:
                        yield delta
        except httpx.HTTPError as e:
            raise UpstreamProviderError(f"Request to {url} failed: {e}") from e
        finally:
            if self.client is None:
                await client.aclose()

    @staticmethod
    def _extract_delta(event: dict[str, Any]) -> ContentDelta | None:
        choices = event.get("choices") or []
        if not choices:
            return None
        delta = choices[0].get("delta") or {}
        content = delta.get("content") or ""
        # DeepSeek names the field reasoning_content, OpenRouter reasoning
        reasoning = delta.get("reasoning_content") or delta.get("reasoning")
        if not content and not reasoning:
            return None
        return ContentDelta(
            content=content,
            model=event.get("model"),
            provider=event.get("provider"),
            reasoning_content=reasoning,
        )
