"""Chat id allocation, streamed completions and archive import."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from chatrelay.api.deps import get_chat_store, get_orchestrator
from chatrelay.models.chat import ContentBlock
from chatrelay.services.completion import CompletionOrchestrator
from chatrelay.services.storage.store import ChatStore
from chatrelay.services.streaming import SSE_HEADERS

router = APIRouter()


class CompletionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: Optional[str | list[ContentBlock]] = None
    bot_name: Optional[str] = Field(default=None, alias="botName")
    chat_id: Optional[str] = Field(default=None, alias="chatId")


@router.get("/id")
async def new_chat_id(store: ChatStore = Depends(get_chat_store)):
    return {"id": await store.generate_unique_id()}


@router.post("/completions")
async def chat_completions(
    request: CompletionRequest,
    orchestrator: CompletionOrchestrator = Depends(get_orchestrator),
):
    turn = await orchestrator.start(request.chat_id, request.content, request.bot_name)
    return StreamingResponse(turn.frames(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/import-archive")
async def import_archive(store: ChatStore = Depends(get_chat_store)):
    return {"imported": await store.import_archive()}
