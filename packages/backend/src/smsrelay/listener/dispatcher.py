"""Event dispatcher — hand completed messages to the current subscriber.

Learn: There is at most one subscriber (the live WebSocket stream, or the
Redis event sink in the standalone listener). Attaching a new one replaces
the old one; nothing is queued for a subscriber that isn't there yet.

Batches arrive on whatever thread the source uses, but subscribers usually
live on the asyncio event loop. The dispatcher owns that handoff: every
delivery is scheduled on its DeliveryContext, and the subscriber is looked
up when the scheduled call *runs*. So a delivery always goes to whichever
subscriber is current at that moment — exactly one, or none.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from smsrelay.schemas.sms import CompletedMessage

logger = structlog.get_logger()

Subscriber = Callable[[CompletedMessage], Any]


# ─── Delivery contexts ──────────────────────────────────


class DeliveryContext(ABC):
    """Where subscriber calls run."""

    @abstractmethod
    def schedule(self, fn: Callable[..., Any], *args: Any) -> None:
        """Run fn(*args) on this context, in submission order."""


class InlineContext(DeliveryContext):
    """Run on the caller's thread, right away."""

    def schedule(self, fn: Callable[..., Any], *args: Any) -> None:
        fn(*args)


class EventLoopContext(DeliveryContext):
    """Marshal calls onto an asyncio event loop.

    Learn: call_soon_threadsafe is safe from any thread (including the
    loop's own) and callbacks run FIFO, so delivery order is preserved.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def schedule(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            self.loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            # Loop already closed during shutdown
            logger.warning("dispatcher.loop_closed", callback=getattr(fn, "__name__", repr(fn)))


# ─── Dispatcher ─────────────────────────────────────────


@dataclass
class DispatcherStats:
    """Runtime counters for the status endpoint."""
    delivered: int = 0
    dropped: int = 0
    errors: int = 0


class EventDispatcher:
    """Single-subscriber event stream."""

    def __init__(self, context: Optional[DeliveryContext] = None):
        self.context = context or InlineContext()
        self.stats = DispatcherStats()
        self._lock = threading.Lock()
        self._subscriber: Optional[Subscriber] = None

    @property
    def has_subscriber(self) -> bool:
        with self._lock:
            return self._subscriber is not None

    def attach(self, subscriber: Subscriber) -> None:
        """Make subscriber the current one, replacing any previous subscriber."""
        with self._lock:
            replaced = self._subscriber is not None
            self._subscriber = subscriber
        logger.info("dispatcher.attached", replaced=replaced)

    def detach(self, subscriber: Optional[Subscriber] = None) -> None:
        """Clear the current subscriber.

        With an argument, only clears it if that subscriber is still the
        current one — a stream closing late must not drop its replacement.
        """
        with self._lock:
            if subscriber is not None and self._subscriber is not subscriber:
                return
            self._subscriber = None
        logger.info("dispatcher.detached")

    def deliver(self, message: CompletedMessage) -> None:
        """Schedule delivery of one message on the subscriber's context."""
        self.context.schedule(self._deliver_now, message)

    def _deliver_now(self, message: CompletedMessage) -> None:
        with self._lock:
            subscriber = self._subscriber
            if subscriber is None:
                self.stats.dropped += 1
            else:
                self.stats.delivered += 1

        if subscriber is None:
            logger.debug("dispatcher.dropped", sender=message.sender)
            return

        try:
            subscriber(message)
        except Exception:
            logger.exception("dispatcher.subscriber_failed", sender=message.sender)
            with self._lock:
                self.stats.errors += 1
