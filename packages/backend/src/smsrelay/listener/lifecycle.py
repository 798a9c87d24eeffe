"""Listener lifecycle — register/unregister with the message source.

Learn: Two states, IDLE and LISTENING, and one invariant: exactly one
registration with the source while LISTENING, none while IDLE.

- start() while LISTENING is a no-op (never registers twice)
- stop() while IDLE is a no-op
- a failed registration leaves the listener IDLE
- a failed deregistration still leaves the listener IDLE — it never
  stays stuck "listening" on a dead registration

Every session gets a fresh SmsReceiver that binds the injected merger and
dispatcher. It is fully built before the source sees it, and closed on
stop so a late callback through the old registration is dropped.
"""

import asyncio
import enum
import threading
from typing import Optional

import structlog

from smsrelay.events.types import LISTENER_STARTED, LISTENER_STOPPED
from smsrelay.listener.dispatcher import EventDispatcher
from smsrelay.listener.errors import DeregistrationError, RegistrationError
from smsrelay.listener.merger import FragmentMerger
from smsrelay.schemas.sms import FragmentBatch
from smsrelay.sources.base import MessageSource, ReceiverFilter, Registration

logger = structlog.get_logger()


class ListenerState(str, enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"


class SmsReceiver:
    """Callback handed to the source for one listening session.

    Learn: Sources may call us from any thread, possibly back-to-back.
    The batch lock serializes merge + dispatch per batch so messages keep
    their order, and lets stop() wait out a batch that is mid-merge.
    """

    def __init__(self, merger: FragmentMerger, dispatcher: EventDispatcher, action: str):
        self.merger = merger
        self.dispatcher = dispatcher
        self.action = action
        self._lock = threading.Lock()
        self._closed = False

    def __call__(self, batch: FragmentBatch) -> None:
        with self._lock:
            if self._closed:
                logger.debug("receiver.closed_batch_dropped", fragments=len(batch.fragments))
                return
            if batch.action != self.action:
                return

            for message in self.merger.merge(batch):
                logger.debug("sms.received", sender=message.sender, body=message.body)
                self.dispatcher.deliver(message)

    def close(self) -> None:
        with self._lock:
            self._closed = True


class ListenerLifecycle:
    """Owns the single registration with the message source."""

    def __init__(
        self,
        source: MessageSource,
        merger: FragmentMerger,
        dispatcher: EventDispatcher,
        filter: Optional[ReceiverFilter] = None,
    ):
        self.source = source
        self.merger = merger
        self.dispatcher = dispatcher
        self.filter = filter or ReceiverFilter()
        self.sessions = 0
        self._lock = asyncio.Lock()
        self._state = ListenerState.IDLE
        self._receiver: Optional[SmsReceiver] = None
        self._registration: Optional[Registration] = None

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is ListenerState.LISTENING

    async def start(self) -> bool:
        """Register with the source. No-op if already listening."""
        async with self._lock:
            if self._state is ListenerState.LISTENING:
                logger.debug("listener.already_listening")
                return True

            receiver = SmsReceiver(self.merger, self.dispatcher, action=self.filter.action)
            try:
                registration = await self.source.register(self.filter, receiver)
            except Exception as e:
                receiver.close()
                logger.warning(
                    "listener.registration_failed",
                    source=self.source.name,
                    error=str(e),
                )
                raise RegistrationError(
                    f"{self.source.name} source refused registration: {e}"
                ) from e

            self._receiver = receiver
            self._registration = registration
            self._state = ListenerState.LISTENING
            self.sessions += 1

        logger.info(
            LISTENER_STARTED,
            source=self.source.name,
            priority=self.filter.priority,
            exported=self.filter.exported,
        )
        return True

    async def stop(self) -> bool:
        """Unregister from the source. No-op if idle.

        The state is IDLE when this returns *or* raises.
        """
        async with self._lock:
            if self._state is ListenerState.IDLE:
                logger.debug("listener.already_idle")
                return True

            receiver, registration = self._receiver, self._registration
            self._receiver = None
            self._registration = None
            self._state = ListenerState.IDLE

            receiver.close()
            try:
                await registration.unregister()
            except Exception as e:
                logger.error(
                    "listener.deregistration_failed",
                    source=self.source.name,
                    error=str(e),
                )
                raise DeregistrationError(
                    f"{self.source.name} source failed to release registration: {e}"
                ) from e

        logger.info(LISTENER_STOPPED, source=self.source.name)
        return True

    async def shutdown(self) -> None:
        """Stop on process teardown; deregistration errors are logged only."""
        try:
            await self.stop()
        except DeregistrationError:
            logger.warning("listener.shutdown_leaked_registration", source=self.source.name)
