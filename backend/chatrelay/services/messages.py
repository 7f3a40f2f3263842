"""Construction helpers for chat messages."""

from typing import Any

from chatrelay.core.timestamps import iso_now, unix_now
from chatrelay.models.chat import Chat, ChatMessage, ContentBlock


def create_message(role: str, content: str | list[ContentBlock], **fields: Any) -> ChatMessage:
    """Build a message stamped with the current time. ``None`` fields are left unset."""
    extra = {k: v for k, v in fields.items() if v is not None}
    return ChatMessage(
        role=role,
        content=content,
        timestamp=iso_now(),
        unix_timestamp=unix_now(),
        **extra,
    )


def append_message(chat: Chat, message: ChatMessage) -> None:
    chat.messages.append(message)
    chat.update_time = iso_now()
