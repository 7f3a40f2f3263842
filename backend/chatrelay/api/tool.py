"""Tool confirmation endpoint: runs an approved tool call and streams its result."""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from chatrelay.api.deps import get_tool_bridge
from chatrelay.services.streaming import SSE_HEADERS
from chatrelay.services.tool_bridge import ToolExecutionBridge

router = APIRouter()


class ToolConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_id: Optional[str] = Field(default=None, alias="chatId")
    bot_name: Optional[str] = Field(default=None, alias="botName")
    server: Optional[str] = None
    tool: Optional[str] = None
    args: Optional[dict[str, Any]] = None


@router.post("/confirm")
async def confirm_tool(
    request: ToolConfirmRequest,
    bridge: ToolExecutionBridge = Depends(get_tool_bridge),
):
    frames = bridge.start(request.chat_id, request.bot_name, request.server, request.tool, request.args)
    return StreamingResponse(frames, media_type="text/event-stream", headers=SSE_HEADERS)
