"""Command channel — the listener's external control surface.

Learn: Clients send a method name ("startListening" / "stopListening")
and get back a boolean. Anything else is UnsupportedCommand. The channel
keeps no state of its own; lifecycle errors pass straight through.
"""

import enum
from typing import Any, Optional

import structlog

from smsrelay.listener.errors import UnsupportedCommand
from smsrelay.listener.lifecycle import ListenerLifecycle

logger = structlog.get_logger()


class Command(str, enum.Enum):
    START_LISTENING = "startListening"
    STOP_LISTENING = "stopListening"


class CommandChannel:
    """Forwards control commands to the listener lifecycle."""

    def __init__(self, lifecycle: ListenerLifecycle):
        self.lifecycle = lifecycle

    async def handle(self, method: str, arguments: Optional[dict[str, Any]] = None) -> bool:
        try:
            command = Command(method)
        except ValueError:
            logger.warning("commands.unsupported", method=method)
            raise UnsupportedCommand(method) from None

        logger.debug("commands.received", method=command.value)
        if command is Command.START_LISTENING:
            return await self.lifecycle.start()
        return await self.lifecycle.stop()
