"""In-process message channel transport."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any

from platenotify.ingress.adapter import SUBMIT_METHOD, IngressAdapter, IngressResponse

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChannelMessage:
    """A request posted on the channel."""

    method: str
    body: Any
    reply: asyncio.Future[IngressResponse]


class MessageChannel:
    """Queue-backed channel between in-process producers and the adapter.

    Producers ``post`` a request and await its response; a single consumer
    task drains the queue in order. Start with :meth:`start` (or
    ``async with``) and stop with :meth:`stop`; messages still queued at
    stop are cancelled.
    """

    def __init__(self, adapter: IngressAdapter, *, maxsize: int = 0) -> None:
        self._adapter = adapter
        self._queue: asyncio.Queue[ChannelMessage] = asyncio.Queue(maxsize=maxsize)
        self._consumer: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._consumer = asyncio.get_running_loop().create_task(self._consume())

    async def stop(self) -> None:
        consumer = self._consumer
        self._consumer = None
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
        while not self._queue.empty():
            message = self._queue.get_nowait()
            if not message.reply.done():
                message.reply.cancel()

    async def post(self, body: Any, *, method: str = SUBMIT_METHOD) -> IngressResponse:
        """Enqueue a request and wait for the adapter's response."""
        if not self.is_running:
            raise RuntimeError("Message channel is not running")
        reply: asyncio.Future[IngressResponse] = asyncio.get_running_loop().create_future()
        await self._queue.put(ChannelMessage(method=method, body=body, reply=reply))
        return await reply

    async def _consume(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                # Stopping the channel abandons the reply, not the processing.
                response = await asyncio.shield(self._adapter.handle(message.method, message.body))
            except asyncio.CancelledError:
                if not message.reply.done():
                    message.reply.cancel()
                raise
            except Exception as exc:
                _logger.debug("Channel message failed", exc_info=True)
                if not message.reply.done():
                    message.reply.set_exception(exc)
            else:
                if not message.reply.done():
                    message.reply.set_result(response)
            finally:
                self._queue.task_done()

    async def __aenter__(self) -> MessageChannel:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
