"""ChatStore: two-tier chat repository scoped to one user namespace.

Reads go to the cache first and fall back to the archive. Writes go to the
cache synchronously and are mirrored into the archive in the background; the
archive is allowed to lag and its failures never reach the caller.
"""

import asyncio
import logging
import secrets
from datetime import datetime, timezone

from chatrelay.core.exceptions import NotFoundError
from chatrelay.core.timestamps import iso_now, parse_timestamp
from chatrelay.models.chat import Chat, ListChatsOptions, ListChatsResult
from chatrelay.services.storage.base import ChatArchive, ChatCache

logger = logging.getLogger(__name__)

ID_LENGTH = 6
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

# Background archive mirrors still in flight, shared by all stores
_pending_mirrors: set[asyncio.Task] = set()


def new_chat_id() -> str:
    return secrets.token_hex(ID_LENGTH // 2)


async def drain_mirrors() -> None:
    """Wait for every scheduled archive mirror to finish."""
    while _pending_mirrors:
        await asyncio.gather(*list(_pending_mirrors), return_exceptions=True)


class ChatStore:
    def __init__(self, cache: ChatCache, archive: ChatArchive | None = None, namespace: str = ""):
        self.cache = cache
        self.archive = archive
        self.namespace = namespace

    # -- reads ---------------------------------------------------------------

    async def get_chat(self, chat_id: str) -> Chat | None:
        chat = await self.cache.get(self.namespace, chat_id)
        if chat is not None:
            return chat

        for archived in await self._archived_chats():
            if archived.id == chat_id:
                return archived
        return None

    async def require_chat(self, chat_id: str) -> Chat:
        chat = await self.get_chat(chat_id)
        if chat is None:
            raise NotFoundError(f"Chat {chat_id} not found")
        return chat

    async def get_or_create_chat(self, chat_id: str) -> Chat:
        """Return the stored chat, or a new empty one with this id. The new chat is not written."""
        chat = await self.get_chat(chat_id)
        if chat is not None:
            return chat
        now = iso_now()
        return Chat(id=chat_id, messages=[], create_time=now, update_time=now)

    async def list_chats(self, options: ListChatsOptions | None = None) -> ListChatsResult:
        options = options or ListChatsOptions()

        cached, archived = await asyncio.gather(
            self.cache.all(self.namespace),
            self._archived_chats(),
        )

        merged = {chat.id: chat for chat in archived}
        merged.update((chat.id, chat) for chat in cached)

        chats = sorted(merged.values(), key=_update_key, reverse=True)
        if options.search:
            chats = [chat for chat in chats if chat.matches(options.search)]

        start = (options.page - 1) * options.limit
        return ListChatsResult(
            chats=chats[start:start + options.limit],
            total=len(chats),
            page=options.page,
            limit=options.limit,
        )

    async def generate_unique_id(self) -> str:
        while True:
            chat_id = new_chat_id()
            if await self.get_chat(chat_id) is None:
                return chat_id

    # -- writes --------------------------------------------------------------

    async def save_chat(self, chat: Chat) -> Chat:
        if not chat.id:
            await self._insert_with_new_id(chat)
        else:
            previous = await self.cache.get(self.namespace, chat.id)
            self._touch(chat, previous)
            await self.cache.put(self.namespace, chat)

        if self.archive is not None:
            self._mirror(self._archive_upsert(chat.model_copy(deep=True)))
        return chat

    async def delete_chat(self, chat_id: str) -> None:
        await self.cache.delete(self.namespace, chat_id)
        if self.archive is None:
            return
        try:
            await self.archive.delete(self.namespace, chat_id)
        except Exception as e:
            logger.warning(f"Archive delete failed for chat {chat_id}: {e}")

    async def import_archive(self) -> int:
        """Copy archived chats the cache does not know about into the cache."""
        cached_ids = {chat.id for chat in await self.cache.all(self.namespace)}
        imported = 0
        for chat in await self._archived_chats():
            if chat.id and chat.id not in cached_ids:
                await self.cache.put(self.namespace, chat)
                cached_ids.add(chat.id)
                imported += 1
        logger.info(f"Imported {imported} archived chats into namespace '{self.namespace}'")
        return imported

    # -- internals -----------------------------------------------------------

    async def _insert_with_new_id(self, chat: Chat) -> None:
        self._touch(chat, None)
        while True:
            chat.id = await self.generate_unique_id()
            if await self.cache.add(self.namespace, chat):
                return

    @staticmethod
    def _touch(chat: Chat, previous: Chat | None) -> None:
        now = iso_now()
        if previous is not None and _update_key(previous) > parse_timestamp(now):
            now = previous.update_time
        chat.update_time = now

    async def _archived_chats(self) -> list[Chat]:
        if self.archive is None:
            return []
        try:
            return await self.archive.all(self.namespace)
        except Exception as e:
            logger.warning(f"Archive read failed for namespace '{self.namespace}': {e}")
            return []

    async def _archive_upsert(self, chat: Chat) -> None:
        try:
            await self.archive.upsert(self.namespace, chat)
        except Exception as e:
            logger.warning(f"Archive mirror failed for chat {chat.id}: {e}")

    @staticmethod
    def _mirror(coro) -> None:
        task = asyncio.create_task(coro)
        _pending_mirrors.add(task)
        task.add_done_callback(_pending_mirrors.discard)


def _update_key(chat: Chat) -> datetime:
    try:
        return parse_timestamp(chat.update_time)
    except ValueError:
        logger.warning(f"Chat {chat.id} has an unreadable update_time: {chat.update_time!r}")
        return _EPOCH
