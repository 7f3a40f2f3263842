"""FastAPI dependencies wiring the store, registries and streaming services together."""

from functools import lru_cache
from typing import Callable

from fastapi import Depends

from chatrelay.core import database
from chatrelay.core.config import settings
from chatrelay.core.security import PUBLIC_NAMESPACE, require_namespace
from chatrelay.models.bot import BotConfig
from chatrelay.services.bots import BotRegistry
from chatrelay.services.completion import CompletionOrchestrator
from chatrelay.services.llm import BaseLLMProvider, get_llm_provider
from chatrelay.services.share import ShareService
from chatrelay.services.storage.archive import JsonlChatArchive
from chatrelay.services.storage.base import ChatArchive, ChatCache
from chatrelay.services.storage.cache import SQLChatCache
from chatrelay.services.storage.store import ChatStore
from chatrelay.services.tool_bridge import ToolExecutionBridge
from chatrelay.services.tools.registry import ToolRegistry, create_default_registry


def get_chat_cache() -> ChatCache:
    return SQLChatCache(database.engine)


@lru_cache
def get_chat_archive() -> ChatArchive:
    return JsonlChatArchive(settings.archive_dir)


@lru_cache
def get_bot_registry() -> BotRegistry:
    return BotRegistry.from_file(settings.bots_file)


@lru_cache
def get_tool_registry() -> ToolRegistry:
    return create_default_registry()


def get_provider_factory() -> Callable[[BotConfig], BaseLLMProvider]:
    return get_llm_provider


def get_chat_store(
    namespace: str = Depends(require_namespace),
    cache: ChatCache = Depends(get_chat_cache),
    archive: ChatArchive = Depends(get_chat_archive),
) -> ChatStore:
    return ChatStore(cache, archive, namespace=namespace)


def get_orchestrator(
    store: ChatStore = Depends(get_chat_store),
    bots: BotRegistry = Depends(get_bot_registry),
    tools: ToolRegistry = Depends(get_tool_registry),
    provider_factory: Callable[[BotConfig], BaseLLMProvider] = Depends(get_provider_factory),
) -> CompletionOrchestrator:
    return CompletionOrchestrator(store, bots, tools, provider_factory=provider_factory)


def get_tool_bridge(
    bots: BotRegistry = Depends(get_bot_registry),
    tools: ToolRegistry = Depends(get_tool_registry),
) -> ToolExecutionBridge:
    return ToolExecutionBridge(bots, tools)


def get_share_service(
    cache: ChatCache = Depends(get_chat_cache),
    archive: ChatArchive = Depends(get_chat_archive),
) -> ShareService:
    return ShareService(ChatStore(cache, archive, namespace=PUBLIC_NAMESPACE))
