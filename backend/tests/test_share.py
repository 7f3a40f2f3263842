"""Tests for publishing chats as read-only public copies."""

import pytest

from chatrelay.core.config import settings
from chatrelay.core.exceptions import NotFoundError
from chatrelay.core.security import PUBLIC_NAMESPACE
from chatrelay.models.chat import Chat, ChatMessage
from chatrelay.services.share import ShareService
from chatrelay.services.storage.store import ChatStore, drain_mirrors


@pytest.fixture
def shares(cache, archive):
    return ShareService(ChatStore(cache, archive, namespace=PUBLIC_NAMESPACE))


def _chat(chat_id, text="hi"):
    return Chat(id=chat_id, messages=[ChatMessage(role="user", content=text, unix_timestamp=1)])


@pytest.mark.asyncio
async def test_share_creates_public_copy(store, shares):
    await store.save_chat(_chat("own001", "look at this"))

    share_id = await shares.create_share(store, "own001")

    assert share_id != "own001"
    shared = await shares.get_shared_chat(share_id)
    assert shared.origin_chat_id == "own001"
    assert shared.messages[0].content == "look at this"
    assert (await store.get_chat("own001")).share_id == share_id
    assert await store.get_chat(share_id) is None
    await drain_mirrors()


@pytest.mark.asyncio
async def test_sharing_twice_reuses_the_share(store, shares):
    await store.save_chat(_chat("own002"))

    first = await shares.create_share(store, "own002")
    second = await shares.create_share(store, "own002")
    assert first == second
    await drain_mirrors()


@pytest.mark.asyncio
async def test_share_is_refreshed_after_new_messages(store, shares):
    await store.save_chat(_chat("own003", "first"))
    share_id = await shares.create_share(store, "own003")

    chat = await store.get_chat("own003")
    chat.messages.append(ChatMessage(role="assistant", content="second", unix_timestamp=2))
    await store.save_chat(chat)

    assert await shares.create_share(store, "own003") == share_id
    shared = await shares.get_shared_chat(share_id)
    assert [m.content for m in shared.messages] == ["first", "second"]
    await drain_mirrors()


@pytest.mark.asyncio
async def test_share_missing_chat(store, shares):
    with pytest.raises(NotFoundError):
        await shares.create_share(store, "nope00")
    with pytest.raises(NotFoundError):
        await shares.get_shared_chat("nope00")


def test_share_over_http_is_public_to_read(client, monkeypatch):
    monkeypatch.setattr(settings, "auth_tokens", {"alice-token": "alice"})
    alice = {"Authorization": "Bearer alice-token"}
    chat_id = client.post(
        "/api/chats",
        json={"messages": [{"role": "user", "content": "public now", "unix_timestamp": 1}]},
        headers=alice,
    ).json()["id"]

    assert client.post(f"/api/share/{chat_id}").status_code == 401
    response = client.post(f"/api/share/{chat_id}", headers=alice)
    assert response.status_code == 200
    share_id = response.json()["shareId"]

    shared = client.get(f"/api/share/{share_id}")
    assert shared.status_code == 200
    assert shared.json()["messages"][0]["content"] == "public now"
    assert client.get("/api/share/nope00").status_code == 404


def test_token_cannot_map_onto_public_namespace(client, monkeypatch):
    monkeypatch.setattr(settings, "auth_tokens", {"sneaky": PUBLIC_NAMESPACE})
    response = client.get("/api/chats", headers={"Authorization": "Bearer sneaky"})
    assert response.status_code == 401
