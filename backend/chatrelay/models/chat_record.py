"""Cache tier table: one row per chat, keyed by namespace and chat id."""

from sqlmodel import Field, SQLModel


class ChatRecord(SQLModel, table=True):
    namespace: str = Field(default="", primary_key=True)
    chat_id: str = Field(primary_key=True)
    payload: str  # serialized Chat JSON
    create_time: str
    update_time: str = Field(index=True)
