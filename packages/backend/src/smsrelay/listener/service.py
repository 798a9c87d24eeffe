"""Standalone listener entry point — run as a separate process.

Learn: Outside the API server the listener runs headless. It subscribes
to the gateway's Redis deliveries channel, merges fragments, and
publishes every completed message to the Redis events channel. Start on
boot, stop on SIGINT/SIGTERM.

Usage:
    python -m smsrelay.listener.service

Or via the console script:
    smsrelay-listener
"""

import asyncio
import logging
import signal
from typing import Optional

import redis.asyncio as aioredis

from smsrelay.config import settings
from smsrelay.realtime.sinks import RedisEventSink
from smsrelay.relay import build_relay
from smsrelay.sources.redis_source import RedisSource

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("smsrelay.listener")


async def run(stop_event: Optional[asyncio.Event] = None):
    """Listen until interrupted (or until stop_event is set)."""
    loop = asyncio.get_running_loop()
    redis = aioredis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)

    relay = build_relay(
        settings,
        loop=loop,
        source=RedisSource(settings.redis_url, settings.deliveries_channel, client=redis),
    )
    sink = RedisEventSink(redis, settings.events_channel)
    relay.dispatcher.attach(sink)
    sink.start()

    if stop_event is None:
        stop_event = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

    logger.info(
        "Listener starting (deliveries: %s, events: %s)",
        settings.deliveries_channel,
        settings.events_channel,
    )

    try:
        await relay.lifecycle.start()
        await stop_event.wait()
    finally:
        await relay.lifecycle.shutdown()
        relay.dispatcher.detach(sink)
        await sink.close()
        await redis.aclose()
        stats = relay.dispatcher.stats
        logger.info(
            "Listener stopped. delivered=%d dropped=%d errors=%d",
            stats.delivered,
            stats.dropped,
            stats.errors,
        )


def main():
    """CLI entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
