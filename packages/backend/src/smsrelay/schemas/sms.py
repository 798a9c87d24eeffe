"""Pydantic schemas for SMS deliveries and completed messages.

Learn: A single SMS can arrive as several fragments in one delivery
(long messages are split by the network). The source hands us the whole
delivery as a FragmentBatch; the merger turns it into CompletedMessages.

Flow: FragmentBatch (source → listener) → CompletedMessage (listener → subscriber)
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from smsrelay.events.types import SMS_RECEIVED, SMS_RECEIVED_ACTION


# ─── Inbound (source → listener) ────────────────────────


class RawFragment(BaseModel):
    """One piece of a message as delivered by the source."""
    originating_address: str = Field("", description="Sender address (may be empty)")
    body: str = Field("", description="Fragment text (may be empty)")
    delivery_timestamp: int = Field(..., description="Milliseconds since epoch")

    @field_validator("originating_address", "body", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Optional[str]) -> str:
        # The host source omits the address or body on some PDUs
        return "" if value is None else value


class FragmentBatch(BaseModel):
    """All fragments delivered together by a single source event."""
    action: str = Field(SMS_RECEIVED_ACTION, description="Broadcast topic")
    fragments: list[RawFragment] = Field(default_factory=list)


# ─── Outbound (listener → subscriber) ───────────────────


class CompletedMessage(BaseModel):
    """A logical message: every fragment from one sender, joined."""
    sender: str
    body: str
    timestamp: int

    model_config = ConfigDict(frozen=True)

    def to_event(self) -> dict[str, Any]:
        """Event-surface record, as streamed to WebSocket / Redis consumers."""
        return {"type": SMS_RECEIVED, **self.model_dump()}


# ─── Control surface ────────────────────────────────────


class ListenerCommandRequest(BaseModel):
    """Command sent to the listener control channel."""
    method: str = Field(..., description="startListening or stopListening")
    arguments: Optional[dict[str, Any]] = None


class ListenerCommandResult(BaseModel):
    result: bool


class ListenerStatusRead(BaseModel):
    """Current listener state plus dispatcher bookkeeping."""
    state: str
    source: str
    subscriber_attached: bool
    sessions: int
    delivered: int
    dropped: int


class DeliveryAccepted(BaseModel):
    receivers: int = Field(..., description="Receivers the batch was broadcast to")
