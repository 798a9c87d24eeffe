"""In-process broadcast source.

Learn: Behaves like the host OS ordered broadcast for SMS deliveries:
- receivers see a batch only if their filter action matches the batch
- higher priority receivers run first; ties keep registration order
- non-exported receivers never see batches broadcast from outside
  the process (external=True)

broadcast() calls receivers synchronously on the caller's thread. The
registry is guarded by a lock, but receivers run outside it, so a receiver
may register or unregister from inside a delivery.
"""

import itertools
import threading
from dataclasses import dataclass

import structlog

from smsrelay.schemas.sms import FragmentBatch
from smsrelay.sources.base import MessageSource, Receiver, ReceiverFilter, Registration

logger = structlog.get_logger()


@dataclass(frozen=True)
class _Entry:
    seq: int
    filter: ReceiverFilter
    receiver: Receiver


class BroadcastRegistration(Registration):
    def __init__(self, source: "BroadcastSource", entry: _Entry):
        self._source = source
        self._entry = entry

    async def unregister(self) -> None:
        self._source._remove(self._entry)


class BroadcastSource(MessageSource):
    """Thread-safe in-process SMS broadcaster."""

    def __init__(self, accept_registrations: bool = True):
        self.accept_registrations = accept_registrations
        self._lock = threading.Lock()
        self._entries: list[_Entry] = []
        self._seq = itertools.count()

    @property
    def name(self) -> str:
        return "broadcast"

    @property
    def receiver_count(self) -> int:
        with self._lock:
            return len(self._entries)

    async def register(self, filter: ReceiverFilter, receiver: Receiver) -> Registration:
        if not self.accept_registrations:
            raise PermissionError("Broadcast source is not accepting registrations")

        entry = _Entry(seq=next(self._seq), filter=filter, receiver=receiver)
        with self._lock:
            self._entries.append(entry)
            self._entries.sort(key=lambda e: (-e.filter.priority, e.seq))
        logger.debug(
            "broadcast.registered",
            action=filter.action,
            priority=filter.priority,
            exported=filter.exported,
        )
        return BroadcastRegistration(self, entry)

    def _remove(self, entry: _Entry) -> None:
        with self._lock:
            if entry not in self._entries:
                raise ValueError("Receiver not registered")
            self._entries.remove(entry)
        logger.debug("broadcast.unregistered", action=entry.filter.action)

    def broadcast(self, batch: FragmentBatch, external: bool = False) -> int:
        """Deliver batch to every matching receiver. Returns how many got it."""
        with self._lock:
            targets = [
                e for e in self._entries
                if e.filter.action == batch.action and (e.filter.exported or not external)
            ]

        for entry in targets:
            try:
                entry.receiver(batch)
            except Exception:
                logger.exception("broadcast.receiver_failed", action=batch.action)

        return len(targets)
