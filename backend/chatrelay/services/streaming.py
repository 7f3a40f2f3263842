"""Server-sent event framing and the producer/consumer hand-off behind streamed responses."""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

DONE_FRAME = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def sse_frame(payload: Any) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False, separators=(',', ':'))}\n\n"


def completion_frame(content: str, model: str | None, provider: str | None) -> str:
    return sse_frame({
        "choices": [{"delta": {"content": content}}],
        "model": model,
        "provider": provider,
    })


class _Close:
    pass


class _Abort:
    def __init__(self, error: BaseException):
        self.error = error


class FrameChannel:
    """Bounded queue between a producer task and the response body.

    The producer runs as its own task and blocks when the buffer is full, so a
    slow client slows the producer down. If the consumer goes away, the
    producer is cancelled. A producer error is re-raised on the consumer side,
    which aborts the response.
    """

    def __init__(self, maxsize: int):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    async def send(self, frame: str) -> None:
        await self._queue.put(frame)

    async def stream(self, producer: Callable[["FrameChannel"], Awaitable[None]]) -> AsyncIterator[str]:
        task = asyncio.create_task(self._run(producer))
        try:
            while True:
                item = await self._queue.get()
                if isinstance(item, _Close):
                    break
                if isinstance(item, _Abort):
                    raise item.error
                yield item
        finally:
            if not task.done():
                logger.info("Stream consumer closed early, cancelling producer")
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    async def _run(self, producer: Callable[["FrameChannel"], Awaitable[None]]) -> None:
        try:
            await producer(self)
        except Exception as e:
            logger.exception("Stream producer failed")
            await self._queue.put(_Abort(e))
            return
        await self._queue.put(_Close())
