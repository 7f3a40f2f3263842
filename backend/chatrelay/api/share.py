"""Chat sharing. Publishing needs the owner's namespace, reading a share is public."""

from fastapi import APIRouter, Depends

from chatrelay.api.deps import get_chat_store, get_share_service
from chatrelay.services.share import ShareService
from chatrelay.services.storage.store import ChatStore

router = APIRouter()


@router.post("/{chat_id}")
async def share_chat(
    chat_id: str,
    store: ChatStore = Depends(get_chat_store),
    shares: ShareService = Depends(get_share_service),
):
    return {"shareId": await shares.create_share(store, chat_id)}


@router.get("/{share_id}")
async def get_shared_chat(share_id: str, shares: ShareService = Depends(get_share_service)):
    chat = await shares.get_shared_chat(share_id)
    return chat.to_json()
