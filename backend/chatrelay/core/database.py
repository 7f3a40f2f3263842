"""SQLite engine behind the chat cache tier."""

from pathlib import Path

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from chatrelay.core.config import settings


def create_cache_engine(db_path: Path, echo: bool = False) -> Engine:
    # Sessions are opened from worker threads
    return create_engine(
        f"sqlite:///{db_path}",
        echo=echo,
        connect_args={"check_same_thread": False},
    )


engine = create_cache_engine(settings.db_path, echo=settings.debug)


def init_db() -> None:
    import chatrelay.models.chat_record  # noqa: F401 - ensure the cache table is registered
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)
