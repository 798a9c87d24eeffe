"""Message sources — where raw SMS fragment batches come from.

Learn: The listener never talks to a concrete source directly. It asks a
MessageSource to register a receiver and gets back a Registration it can
release later. Two sources ship:
- BroadcastSource: in-process broadcaster (API server, tests)
- RedisSource: SMS gateway publishing JSON batches on a Redis channel
"""

from smsrelay.sources.base import MessageSource, ReceiverFilter, Registration
from smsrelay.sources.broadcast import BroadcastSource
from smsrelay.sources.redis_source import RedisSource

__all__ = [
    "BroadcastSource",
    "MessageSource",
    "ReceiverFilter",
    "Registration",
    "RedisSource",
]
