"""SQLite-backed cache tier. Each chat is its own row, so a save only touches one key."""

import asyncio
import logging

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from chatrelay.core.exceptions import StorageError
from chatrelay.models.chat import Chat
from chatrelay.models.chat_record import ChatRecord
from chatrelay.services.storage.base import ChatCache

logger = logging.getLogger(__name__)


def _to_record(namespace: str, chat: Chat) -> ChatRecord:
    return ChatRecord(
        namespace=namespace,
        chat_id=chat.id,
        payload=chat.model_dump_json(exclude_none=True),
        create_time=chat.create_time,
        update_time=chat.update_time,
    )


class SQLChatCache(ChatCache):
    def __init__(self, engine: Engine):
        self.engine = engine

    async def get(self, namespace: str, chat_id: str) -> Chat | None:
        return await self._run(self._get, namespace, chat_id)

    async def all(self, namespace: str) -> list[Chat]:
        return await self._run(self._all, namespace)

    async def add(self, namespace: str, chat: Chat) -> bool:
        return await self._run(self._add, namespace, chat)

    async def put(self, namespace: str, chat: Chat) -> None:
        await self._run(self._put, namespace, chat)

    async def delete(self, namespace: str, chat_id: str) -> None:
        await self._run(self._delete, namespace, chat_id)

    async def _run(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            logger.error(f"Cache I/O failed in {fn.__name__}: {e}")
            raise StorageError("Chat storage is unavailable") from e

    def _get(self, namespace: str, chat_id: str) -> Chat | None:
        with Session(self.engine) as session:
            record = session.get(ChatRecord, (namespace, chat_id))
            if record is None:
                return None
            return Chat.model_validate_json(record.payload)

    def _all(self, namespace: str) -> list[Chat]:
        with Session(self.engine) as session:
            records = session.exec(
                select(ChatRecord).where(ChatRecord.namespace == namespace)
            ).all()
            return [Chat.model_validate_json(r.payload) for r in records]

    def _add(self, namespace: str, chat: Chat) -> bool:
        with Session(self.engine) as session:
            session.add(_to_record(namespace, chat))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.debug(f"Chat id {chat.id} already taken in namespace '{namespace}'")
                return False
            return True

    def _put(self, namespace: str, chat: Chat) -> None:
        with Session(self.engine) as session:
            session.merge(_to_record(namespace, chat))
            session.commit()

    def _delete(self, namespace: str, chat_id: str) -> None:
        with Session(self.engine) as session:
            record = session.get(ChatRecord, (namespace, chat_id))
            if record is not None:
                session.delete(record)
                session.commit()
