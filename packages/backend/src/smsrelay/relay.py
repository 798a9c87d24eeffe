"""Composition root — wire source, merger, dispatcher, lifecycle, commands.

Learn: Everything is constructor-injected; there is no module-level
listener state. The API lifespan and the standalone listener each build
their own SmsRelay, and tests build one per test.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from smsrelay.config import Settings
from smsrelay.listener.commands import CommandChannel
from smsrelay.listener.dispatcher import EventDispatcher, EventLoopContext, InlineContext
from smsrelay.listener.lifecycle import ListenerLifecycle
from smsrelay.listener.merger import FragmentMerger
from smsrelay.sources.base import MessageSource, ReceiverFilter
from smsrelay.sources.broadcast import BroadcastSource
from smsrelay.sources.redis_source import RedisSource


@dataclass
class SmsRelay:
    source: MessageSource
    merger: FragmentMerger
    dispatcher: EventDispatcher
    lifecycle: ListenerLifecycle
    commands: CommandChannel


def build_source(settings: Settings) -> MessageSource:
    if settings.source == "redis":
        return RedisSource(settings.redis_url, settings.deliveries_channel)
    return BroadcastSource()


def build_relay(
    settings: Settings,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    source: Optional[MessageSource] = None,
) -> SmsRelay:
    """Build the listener wiring.

    With a loop, subscribers are called on that loop no matter which
    thread the source delivers on.
    """
    source = source or build_source(settings)
    merger = FragmentMerger()
    dispatcher = EventDispatcher(EventLoopContext(loop) if loop else InlineContext())
    lifecycle = ListenerLifecycle(
        source,
        merger,
        dispatcher,
        filter=ReceiverFilter(
            priority=settings.receiver_priority,
            exported=settings.receiver_exported,
        ),
    )
    return SmsRelay(
        source=source,
        merger=merger,
        dispatcher=dispatcher,
        lifecycle=lifecycle,
        commands=CommandChannel(lifecycle),
    )
