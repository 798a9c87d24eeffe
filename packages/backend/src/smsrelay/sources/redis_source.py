"""Redis source — SMS gateway deliveries over Redis pub/sub.

Learn: The SMS gateway (modem bridge, webhook receiver, ...) publishes
every delivery as a JSON FragmentBatch on the deliveries channel:

    {"action": "...SMS_RECEIVED", "fragments": [{"originating_address": ...,
     "body": ..., "delivery_timestamp": ...}, ...]}

Registering subscribes to that channel and starts a listener task on the
running loop; unregistering cancels the task and unsubscribes. Redis
pub/sub is fire-and-forget — deliveries published while nobody is
registered are lost, which is fine since the listener is idle then.

Priority and export settings don't apply here: a Redis subscription has
exactly one receiver.
"""

import asyncio
from typing import Optional

import redis.asyncio as aioredis
import structlog
from pydantic import ValidationError

from smsrelay.schemas.sms import FragmentBatch
from smsrelay.sources.base import MessageSource, Receiver, ReceiverFilter, Registration

logger = structlog.get_logger()


class RedisRegistration(Registration):
    def __init__(
        self,
        pubsub,
        channel: str,
        task: asyncio.Task,
        client: Optional[aioredis.Redis] = None,
    ):
        self._pubsub = pubsub
        self._channel = channel
        self._task = task
        self._client = client

    async def unregister(self) -> None:
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # Listener already died; the subscription still has to be released
            logger.warning("redis_source.listen_task_failed", channel=self._channel, error=str(e))

        try:
            await self._pubsub.unsubscribe(self._channel)
            await self._pubsub.aclose()
        finally:
            if self._client is not None:
                await self._client.aclose()
        logger.info("redis_source.unsubscribed", channel=self._channel)


class RedisSource(MessageSource):
    """Receives FragmentBatch payloads from a Redis channel."""

    def __init__(
        self,
        redis_url: str,
        channel: str,
        client: Optional[aioredis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.channel = channel
        self._client = client

    @property
    def name(self) -> str:
        return "redis"

    async def register(self, filter: ReceiverFilter, receiver: Receiver) -> Registration:
        # A shared client is owned by the caller; one we create is owned by the registration
        owned = None
        client = self._client
        if client is None:
            client = owned = aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

        pubsub = client.pubsub()
        try:
            await pubsub.subscribe(self.channel)
        except Exception:
            await pubsub.aclose()
            if owned is not None:
                await owned.aclose()
            raise

        task = asyncio.create_task(self._listen(pubsub, filter, receiver))
        task.add_done_callback(self._on_listen_done)
        logger.info("redis_source.subscribed", channel=self.channel)
        return RedisRegistration(pubsub, self.channel, task, client=owned)

    def _on_listen_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "redis_source.listen_failed",
                channel=self.channel,
                error=str(exc),
            )

    async def _listen(self, pubsub, filter: ReceiverFilter, receiver: Receiver) -> None:
        """Forward every valid batch on the channel to the receiver."""
        async for message in pubsub.listen():
            if message["type"] != "message":
                continue

            try:
                batch = FragmentBatch.model_validate_json(message["data"])
            except ValidationError as e:
                logger.warning(
                    "redis_source.malformed_batch",
                    channel=self.channel,
                    error=str(e),
                )
                continue

            if batch.action != filter.action:
                logger.debug("redis_source.action_skipped", action=batch.action)
                continue

            try:
                receiver(batch)
            except Exception:
                logger.exception("redis_source.receiver_failed", channel=self.channel)
