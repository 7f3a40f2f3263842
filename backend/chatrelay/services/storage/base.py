"""Storage tier interfaces. ChatStore composes one of each; neither knows about the other."""

from abc import ABC, abstractmethod

from chatrelay.models.chat import Chat


class ChatCache(ABC):
    """Authoritative, low-latency tier. I/O failures must surface as StorageError."""

    @abstractmethod
    async def get(self, namespace: str, chat_id: str) -> Chat | None:
        ...

    @abstractmethod
    async def all(self, namespace: str) -> list[Chat]:
        ...

    @abstractmethod
    async def add(self, namespace: str, chat: Chat) -> bool:
        """Insert a chat whose id must be new. Returns False if the id is already taken."""
        ...

    @abstractmethod
    async def put(self, namespace: str, chat: Chat) -> None:
        """Insert or replace a single chat."""
        ...

    @abstractmethod
    async def delete(self, namespace: str, chat_id: str) -> None:
        ...


class ChatArchive(ABC):
    """Durable best-effort mirror. Callers log and swallow its errors."""

    @abstractmethod
    async def all(self, namespace: str) -> list[Chat]:
        ...

    @abstractmethod
    async def upsert(self, namespace: str, chat: Chat) -> None:
        ...

    @abstractmethod
    async def delete(self, namespace: str, chat_id: str) -> None:
        ...
