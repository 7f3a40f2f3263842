"""Shared test fixtures for backend tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from chatrelay.api.deps import (
    get_bot_registry,
    get_chat_archive,
    get_provider_factory,
    get_tool_registry,
)
from chatrelay.core.config import settings
from chatrelay.models.bot import BotConfig
from chatrelay.services.bots import BotRegistry
from chatrelay.services.storage.archive import JsonlChatArchive
from chatrelay.services.storage.cache import SQLChatCache
from chatrelay.services.storage.store import ChatStore
from chatrelay.services.tools.registry import create_default_registry
from tests.fakes import ScriptedProvider

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import chatrelay.models.chat_record  # noqa: F401 - register tables
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point every on-disk location at a per-test temp dir."""
    monkeypatch.setattr(settings, "data_dir", tmp_path / "data")
    monkeypatch.setattr(settings, "archive_dir", tmp_path / "data" / "archive")
    monkeypatch.setattr(settings, "workspace_dir", tmp_path / "data" / "workspace")
    monkeypatch.setattr(settings, "bots_file", tmp_path / "data" / "bot_config.jsonl")
    monkeypatch.setattr(settings, "auth_tokens", {})
    return tmp_path


@pytest.fixture
def archive(tmp_path):
    return JsonlChatArchive(tmp_path / "data" / "archive")


@pytest.fixture
def cache():
    return SQLChatCache(test_engine)


@pytest.fixture
def store(cache, archive):
    return ChatStore(cache, archive)


@pytest.fixture
def bot():
    return BotConfig(name="test-bot", model="test-model", tool_servers=["files"])


@pytest.fixture
def bots(bot):
    return BotRegistry([bot])


@pytest.fixture
def tools():
    return create_default_registry()


@pytest.fixture
def provider():
    """Provider the API client hands to every completion request."""
    return ScriptedProvider(["Hel", "lo"])


@pytest.fixture
def client(archive, bots, tools, provider):
    """FastAPI TestClient with storage and collaborators pointed at test doubles."""
    with patch("chatrelay.core.database.engine", test_engine):
        from chatrelay.main import app

        app.dependency_overrides[get_chat_archive] = lambda: archive
        app.dependency_overrides[get_bot_registry] = lambda: bots
        app.dependency_overrides[get_tool_registry] = lambda: tools
        app.dependency_overrides[get_provider_factory] = lambda: (lambda bot: provider)

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()
