"""Chat and message models shared by the store, the streaming pipeline and the API."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from chatrelay.core.timestamps import iso_now


class ContentBlock(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    text: str = ""


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Literal["user", "assistant", "system"]
    content: str | list[ContentBlock]
    timestamp: str = Field(default_factory=iso_now)
    unix_timestamp: int = 0
    model: Optional[str] = None
    provider: Optional[str] = None
    reasoning_content: Optional[str] = None

    # Set on synthetic user messages carrying a tool result
    tool: Optional[str] = None
    server: Optional[str] = None
    arguments: Optional[Any] = None

    def searchable_text(self) -> str:
        """Text used for chat search: string content, or the ``text`` blocks joined by spaces."""
        if isinstance(self.content, str):
            return self.content
        return " ".join(block.text for block in self.content if block.type == "text")


class Chat(BaseModel):
    id: str = ""
    messages: list[ChatMessage] = Field(default_factory=list)
    create_time: str = Field(default_factory=iso_now)
    update_time: str = Field(default_factory=iso_now)

    # Owner side: id of the public copy. Public side: id of the chat it was copied from.
    share_id: Optional[str] = None
    origin_chat_id: Optional[str] = None

    def to_json(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

    def matches(self, search: str) -> bool:
        needle = search.casefold()
        return any(needle in msg.searchable_text().casefold() for msg in self.messages)


class ListChatsOptions(BaseModel):
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)


class ListChatsResult(BaseModel):
    chats: list[Chat]
    total: int
    page: int
    limit: int

    def to_json(self) -> dict:
        return {
            "chats": [chat.to_json() for chat in self.chats],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
        }
