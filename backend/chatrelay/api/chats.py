"""REST API for chat history management."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from chatrelay.api.deps import get_chat_store
from chatrelay.models.chat import Chat, ListChatsOptions
from chatrelay.services.storage.store import ChatStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
async def list_chats(
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    store: ChatStore = Depends(get_chat_store),
):
    result = await store.list_chats(ListChatsOptions(search=search or None, page=page, limit=limit))
    return result.to_json()


@router.get("/{chat_id}")
async def get_chat(chat_id: str, store: ChatStore = Depends(get_chat_store)):
    chat = await store.require_chat(chat_id)
    return chat.to_json()


@router.post("")
async def create_chat(chat: Chat, store: ChatStore = Depends(get_chat_store)):
    saved = await store.save_chat(chat)
    logger.debug(f"Saved chat {saved.id} with {len(saved.messages)} messages")
    return saved.to_json()


@router.delete("/{chat_id}", status_code=204)
async def delete_chat(chat_id: str, store: ChatStore = Depends(get_chat_store)):
    await store.delete_chat(chat_id)
    logger.debug(f"Deleted chat {chat_id}")
    return Response(status_code=204)
