"""Chat sharing: read-only public copies of a user's chats."""

import logging

from chatrelay.models.chat import Chat
from chatrelay.services.storage.store import ChatStore

logger = logging.getLogger(__name__)


class ShareService:
    def __init__(self, public_store: ChatStore):
        self.public_store = public_store

    async def create_share(self, store: ChatStore, chat_id: str) -> str:
        """Publish ``chat_id`` from ``store`` and return the share id.

        A chat that was shared before keeps its share id. The public copy is
        refreshed when the conversation changed since the last share.
        """
        chat = await store.require_chat(chat_id)

        existing = await self.public_store.get_chat(chat.share_id) if chat.share_id else None
        if existing is not None and existing.origin_chat_id == chat.id:
            if existing.messages != chat.messages:
                existing.messages = [msg.model_copy(deep=True) for msg in chat.messages]
                await self.public_store.save_chat(existing)
                logger.info(f"Refreshed share {existing.id} of chat {chat.id}")
            return existing.id

        shared = Chat(
            messages=[msg.model_copy(deep=True) for msg in chat.messages],
            create_time=chat.create_time,
            origin_chat_id=chat.id,
        )
        await self.public_store.save_chat(shared)

        chat.share_id = shared.id
        await store.save_chat(chat)
        logger.info(f"Shared chat {chat.id} as {shared.id}")
        return shared.id

    async def get_shared_chat(self, share_id: str) -> Chat:
        return await self.public_store.require_chat(share_id)
