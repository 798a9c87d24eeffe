"""Message source base — pluggable interface for SMS delivery sources.

Learn: Registration mirrors the host OS broadcast model. The receiver says
which topic it wants (action), how early it wants to see deliveries
relative to other receivers (priority), and whether senders outside the
process may reach it (exported). The source returns a Registration handle;
releasing the handle is the only way to stop deliveries.

Receivers are plain sync callables. Sources may call them from any thread.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from smsrelay.config import SYSTEM_HIGH_PRIORITY
from smsrelay.events.types import SMS_RECEIVED_ACTION
from smsrelay.schemas.sms import FragmentBatch

Receiver = Callable[[FragmentBatch], None]


@dataclass(frozen=True)
class ReceiverFilter:
    """What a receiver registers for."""
    action: str = SMS_RECEIVED_ACTION
    priority: int = SYSTEM_HIGH_PRIORITY
    exported: bool = False


class Registration(ABC):
    """Handle for one active receiver registration."""

    @abstractmethod
    async def unregister(self) -> None:
        """Stop deliveries to the receiver. Raises if the source can't release it."""


class MessageSource(ABC):
    """Abstract base for SMS delivery sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier, e.g. "broadcast"."""

    @abstractmethod
    async def register(self, filter: ReceiverFilter, receiver: Receiver) -> Registration:
        """Start delivering batches matching filter to receiver.

        Raises if the source refuses the registration.
        """
