"""JSONL archive tier: one ``chat.jsonl`` per namespace, one chat per line.

The whole file is rewritten on every change, so writers for the same
namespace are serialized with a per-namespace lock.
"""

import asyncio
import logging
import os
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from chatrelay.models.chat import Chat
from chatrelay.services.storage.base import ChatArchive

logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "chat.jsonl"


class JsonlChatArchive(ChatArchive):
    def __init__(self, root: Path):
        self.root = root
        self._locks: dict[str, asyncio.Lock] = {}

    def path_for(self, namespace: str) -> Path:
        return self.root / namespace / ARCHIVE_FILENAME if namespace else self.root / ARCHIVE_FILENAME

    def _lock(self, namespace: str) -> asyncio.Lock:
        lock = self._locks.get(namespace)
        if lock is None:
            lock = self._locks[namespace] = asyncio.Lock()
        return lock

    async def all(self, namespace: str) -> list[Chat]:
        return await asyncio.to_thread(self._read, self.path_for(namespace))

    async def upsert(self, namespace: str, chat: Chat) -> None:
        path = self.path_for(namespace)
        async with self._lock(namespace):
            chats = await asyncio.to_thread(self._read, path)
            for i, existing in enumerate(chats):
                if existing.id == chat.id:
                    chats[i] = chat
                    break
            else:
                chats.append(chat)
            await asyncio.to_thread(self._write, path, chats)

    async def delete(self, namespace: str, chat_id: str) -> None:
        path = self.path_for(namespace)
        async with self._lock(namespace):
            chats = await asyncio.to_thread(self._read, path)
            remaining = [c for c in chats if c.id != chat_id]
            if len(remaining) < len(chats):
                await asyncio.to_thread(self._write, path, remaining)

    @staticmethod
    def _read(path: Path) -> list[Chat]:
        if not path.exists():
            return []

        chats: list[Chat] = []
        for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
            if not line.strip():
                continue
            try:
                chats.append(Chat.model_validate_json(line))
            except PydanticValidationError as e:
                logger.warning(f"Skipping unreadable archive line {path}:{lineno}: {e}")
        return chats

    @staticmethod
    def _write(path: Path, chats: list[Chat]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".jsonl.tmp")
        tmp.write_text(
            "\n".join(c.model_dump_json(exclude_none=True) for c in chats),
            encoding="utf-8",
        )
        os.replace(tmp, path)
