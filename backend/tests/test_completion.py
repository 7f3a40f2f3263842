"""Tests for the completion orchestrator's streaming and persistence behavior."""

import asyncio
import json

import pytest

from chatrelay.core.exceptions import NotFoundError, UpstreamProviderError, ValidationError
from chatrelay.services.completion import CompletionOrchestrator, TurnState
from chatrelay.services.llm.base import ContentDelta
from chatrelay.services.storage.store import ChatStore, drain_mirrors
from tests.fakes import ScriptedProvider


def _orchestrator(store, bots, tools, provider):
    return CompletionOrchestrator(store, bots, tools, provider_factory=lambda bot: provider, buffer_size=4)


async def _collect(frames):
    return [frame async for frame in frames]


@pytest.mark.asyncio
async def test_reply_is_streamed_and_persisted_after_user_message(store, bots, tools):
    orchestrator = _orchestrator(store, bots, tools, ScriptedProvider(["Hel", "lo"]))

    turn = await orchestrator.start("chat01", "hi there", "test-bot")
    await _collect(turn.frames())

    chat = await store.get_chat("chat01")
    assert [m.role for m in chat.messages] == ["user", "assistant"]
    assert chat.messages[0].content == "hi there"
    assert chat.messages[1].content == "Hello"
    assert chat.messages[1].model == "test-model"
    assert chat.messages[1].provider == "test-bot"
    assert turn.state == TurnState.COMPLETED
    await drain_mirrors()


@pytest.mark.asyncio
async def test_frame_format(store, bots, tools):
    orchestrator = _orchestrator(store, bots, tools, ScriptedProvider(["Hel", "lo"]))

    turn = await orchestrator.start("chat02", "hi", "test-bot")
    frames = await _collect(turn.frames())

    assert frames[0] == (
        'data: {"choices":[{"delta":{"content":"Hel"}}],"model":"test-model","provider":"test-bot"}\n\n'
    )
    assert frames[-1] == "data: [DONE]\n\n"
    assert len(frames) == 3
    await drain_mirrors()


@pytest.mark.asyncio
async def test_model_and_provider_carry_forward(store, bots, tools):
    provider = ScriptedProvider([
        ContentDelta(content="a", model="upstream-model", provider="upstream"),
        ContentDelta(content="b"),
    ])
    orchestrator = _orchestrator(store, bots, tools, provider)

    turn = await orchestrator.start("chat03", "hi", "test-bot")
    frames = await _collect(turn.frames())

    second = json.loads(frames[1][len("data: "):])
    assert second == {"choices": [{"delta": {"content": "b"}}], "model": "upstream-model", "provider": "upstream"}

    chat = await store.get_chat("chat03")
    assert chat.messages[-1].model == "upstream-model"
    assert chat.messages[-1].provider == "upstream"
    await drain_mirrors()


@pytest.mark.asyncio
async def test_user_message_is_saved_before_generation(store, bots, tools):
    seen = []

    async def check_saved(chat):
        stored = await store.get_chat("chat04")
        seen.append([m.role for m in stored.messages])

    orchestrator = _orchestrator(store, bots, tools, ScriptedProvider(["ok"], before_stream=check_saved))
    turn = await orchestrator.start("chat04", "remember me", "test-bot")
    await _collect(turn.frames())

    assert seen == [["user"]]
    await drain_mirrors()


@pytest.mark.asyncio
async def test_provider_failure_keeps_only_user_message(store, bots, tools):
    provider = ScriptedProvider(["Hel"], error=RuntimeError("upstream exploded"))
    orchestrator = _orchestrator(store, bots, tools, provider)

    turn = await orchestrator.start("chat05", "hi", "test-bot")
    received = []
    with pytest.raises(UpstreamProviderError):
        async for frame in turn.frames():
            received.append(frame)

    assert len(received) == 1
    chat = await store.get_chat("chat05")
    assert [m.role for m in chat.messages] == ["user"]
    assert turn.state == TurnState.FAILED
    await drain_mirrors()


@pytest.mark.asyncio
async def test_client_disconnect_stops_producer(store, bots, tools):
    hang = asyncio.Event()
    orchestrator = _orchestrator(store, bots, tools, ScriptedProvider(["partial"], hang=hang))

    turn = await orchestrator.start("chat06", "hi", "test-bot")
    frames = turn.frames()
    first = await frames.__anext__()
    assert '"partial"' in first
    await frames.aclose()

    chat = await store.get_chat("chat06")
    assert [m.role for m in chat.messages] == ["user"]
    assert turn.state == TurnState.FAILED
    await drain_mirrors()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "chat_id, content, bot_name",
    [
        ("", "hi", "test-bot"),
        ("chat07", "   ", "test-bot"),
        ("chat07", [], "test-bot"),
        ("chat07", "hi", ""),
    ],
)
async def test_invalid_requests_fail_before_any_write(store, bots, tools, chat_id, content, bot_name):
    orchestrator = _orchestrator(store, bots, tools, ScriptedProvider(["x"]))
    with pytest.raises(ValidationError):
        await orchestrator.start(chat_id, content, bot_name)
    assert (await store.list_chats()).total == 0


@pytest.mark.asyncio
async def test_unknown_bot(store, bots, tools):
    orchestrator = _orchestrator(store, bots, tools, ScriptedProvider(["x"]))
    with pytest.raises(NotFoundError):
        await orchestrator.start("chat08", "hi", "no-such-bot")
    assert await store.get_chat("chat08") is None


@pytest.mark.asyncio
async def test_tool_call_in_reply_requests_confirmation(store, bots, tools):
    reply = (
        "Let me look.\n<use_mcp_tool>\n<server_name>files</server_name>\n"
        "<tool_name>read_file</tool_name>\n<arguments>\n{\"path\": \"notes.txt\"}\n</arguments>\n</use_mcp_tool>"
    )
    orchestrator = _orchestrator(store, bots, tools, ScriptedProvider([reply]))

    turn = await orchestrator.start("chat09", "read my notes", "test-bot")
    frames = await _collect(turn.frames())

    pending = json.loads(frames[-2][len("data: "):])["tool_execution"]
    assert pending["status"] == "pending_confirmation"
    assert pending["server"] == "files"
    assert pending["tool"] == "read_file"
    assert pending["arguments"] == {"path": "notes.txt"}
    assert frames[-1] == "data: [DONE]\n\n"

    chat = await store.get_chat("chat09")
    assert chat.messages[-1].content == reply
    await drain_mirrors()


@pytest.mark.asyncio
async def test_system_prompt_lists_bot_tool_servers(store, bots, tools):
    provider = ScriptedProvider(["ok"])
    orchestrator = _orchestrator(store, bots, tools, provider)

    turn = await orchestrator.start("chat10", "hi", "test-bot")
    await _collect(turn.frames())

    assert "<use_mcp_tool>" in provider.system_prompts[0]
    assert "read_file" in provider.system_prompts[0]
    await drain_mirrors()


@pytest.mark.asyncio
async def test_reasoning_is_stored_but_not_streamed(store, bots, tools):
    provider = ScriptedProvider([
        ContentDelta(content="", reasoning_content="Let me think. "),
        ContentDelta(content="", reasoning_content="Done."),
        ContentDelta(content="42"),
    ])
    orchestrator = _orchestrator(store, bots, tools, provider)

    turn = await orchestrator.start("chat11", "answer?", "test-bot")
    frames = await _collect(turn.frames())

    assert len(frames) == 2
    assert '"content":"42"' in frames[0]
    chat = await store.get_chat("chat11")
    assert chat.messages[-1].content == "42"
    assert chat.messages[-1].reasoning_content == "Let me think. Done."
    await drain_mirrors()


class HeldReplyStore(ChatStore):
    """Blocks the save that carries the assistant reply until released."""

    def __init__(self, cache, archive):
        super().__init__(cache, archive)
        self.saving = asyncio.Event()
        self.release = asyncio.Event()

    async def save_chat(self, chat):
        if chat.messages and chat.messages[-1].role == "assistant":
            self.saving.set()
            await self.release.wait()
        return await super().save_chat(chat)


@pytest.mark.asyncio
async def test_disconnect_during_final_save_keeps_reply(cache, archive, bots, tools):
    store = HeldReplyStore(cache, archive)
    orchestrator = _orchestrator(store, bots, tools, ScriptedProvider(["kept"]))

    turn = await orchestrator.start("chat12", "hi", "test-bot")
    frames = turn.frames()
    assert '"kept"' in await frames.__anext__()
    await store.saving.wait()

    closing = asyncio.create_task(frames.aclose())
    await asyncio.sleep(0)
    store.release.set()
    await closing

    chat = await store.get_chat("chat12")
    assert [m.role for m in chat.messages] == ["user", "assistant"]
    assert chat.messages[-1].content == "kept"
    assert turn.state == TurnState.COMPLETED
    await drain_mirrors()
