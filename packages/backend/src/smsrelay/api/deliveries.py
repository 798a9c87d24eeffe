"""Deliveries API — inject SMS deliveries into the in-process source.

Learn: In the API server the broadcast source stands in for the phone's
telephony stack. An SMS gateway (or the `smsrelay send` CLI) POSTs each
delivery here and it is broadcast to every matching receiver — normally
just the listener, and nobody at all while the listener is idle.
"""

from fastapi import APIRouter, Depends, HTTPException

from smsrelay.api.dependencies import get_relay
from smsrelay.relay import SmsRelay
from smsrelay.schemas.sms import DeliveryAccepted, FragmentBatch
from smsrelay.sources.broadcast import BroadcastSource

router = APIRouter()


@router.post("/sms/deliveries", response_model=DeliveryAccepted, status_code=202)
async def post_delivery(
    body: FragmentBatch,
    external: bool = False,
    relay: SmsRelay = Depends(get_relay),
):
    """Broadcast one delivery (all its fragments) to registered receivers."""
    if not isinstance(relay.source, BroadcastSource):
        raise HTTPException(
            status_code=409,
            detail=f"Deliveries come from the {relay.source.name} source, not HTTP",
        )
    receivers = relay.source.broadcast(body, external=external)
    return DeliveryAccepted(receivers=receivers)
