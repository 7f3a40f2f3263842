"""LLM provider factory."""

from chatrelay.core.exceptions import ConfigurationError
from chatrelay.models.bot import BotConfig
from chatrelay.services.llm.base import BaseLLMProvider, ContentDelta

__all__ = ["BaseLLMProvider", "ContentDelta", "get_llm_provider"]


def get_llm_provider(bot: BotConfig) -> BaseLLMProvider:
    """Factory function that returns the provider for a bot's ``api_type``."""
    if bot.api_type in ("openai", "openrouter"):
        from chatrelay.services.llm.openai_format import OpenAIFormatProvider
        return OpenAIFormatProvider(bot)
    elif bot.api_type == "gemini":
        from chatrelay.services.llm.gemini import GeminiProvider
        return GeminiProvider(bot)
    else:
        raise ConfigurationError(f'Bot "{bot.name}" uses unknown provider type "{bot.api_type}"')
