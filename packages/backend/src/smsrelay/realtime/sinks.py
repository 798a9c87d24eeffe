"""Dispatcher subscribers that forward events off the event loop.

Learn: The dispatcher calls subscribers synchronously, but sending on a
WebSocket or publishing to Redis is async. Each sink is a sync callable
that enqueues the event record, plus a drain task that sends them one at
a time. Must be attached to a dispatcher that delivers on the sink's loop
(EventLoopContext) — asyncio.Queue is not thread-safe.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog
from fastapi import WebSocket
from redis.exceptions import RedisError

from smsrelay.schemas.sms import CompletedMessage

logger = structlog.get_logger()


class QueuedSink(ABC):
    """Sync subscriber in front of an async sender."""

    def __init__(self):
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def __call__(self, message: CompletedMessage) -> None:
        self._queue.put_nowait(message.to_event())

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @abstractmethod
    async def send(self, event: dict[str, Any]) -> None:
        """Send one event record."""

    async def run(self) -> None:
        """Drain the queue forever. Send errors end the loop."""
        while True:
            event = await self._queue.get()
            await self.send(event)

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run())
        return self._task

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # Drain task already died on a send error
            logger.info("sink.closed_after_error", error=str(e))


class WebSocketSink(QueuedSink):
    """Streams events to one connected WebSocket client."""

    def __init__(self, websocket: WebSocket):
        super().__init__()
        self.websocket = websocket

    async def send(self, event: dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(event))


class RedisEventSink(QueuedSink):
    """Publishes events to a Redis channel.

    Learn: Redis pub/sub is fire-and-forget. A failed publish is logged
    and the event dropped; the sink keeps draining.
    """

    def __init__(self, redis: aioredis.Redis, channel: str):
        super().__init__()
        self.redis = redis
        self.channel = channel

    async def send(self, event: dict[str, Any]) -> None:
        try:
            await self.redis.publish(self.channel, json.dumps(event))
        except RedisError as e:
            logger.warning(
                "redis_sink.publish_failed",
                channel=self.channel,
                sender=event.get("sender"),
                error=str(e),
            )
