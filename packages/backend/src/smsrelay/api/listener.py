"""Listener API — the command channel over HTTP.

Learn: POST /listener/commands takes {"method": "startListening"} or
{"method": "stopListening"} and answers {"result": true}. Error mapping:
- unknown method → 501 (the channel doesn't implement it)
- RegistrationError → 503 (source unavailable; listener stays idle)
- DeregistrationError → 502 (source failed; listener is idle anyway)
"""

from fastapi import APIRouter, Depends, HTTPException

from smsrelay.api.dependencies import get_relay
from smsrelay.listener.errors import (
    DeregistrationError,
    RegistrationError,
    UnsupportedCommand,
)
from smsrelay.relay import SmsRelay
from smsrelay.schemas.sms import (
    ListenerCommandRequest,
    ListenerCommandResult,
    ListenerStatusRead,
)

router = APIRouter()


@router.get("/listener", response_model=ListenerStatusRead)
async def get_listener_status(relay: SmsRelay = Depends(get_relay)):
    """Current listener state and delivery counters."""
    stats = relay.dispatcher.stats
    return ListenerStatusRead(
        state=relay.lifecycle.state.value,
        source=relay.source.name,
        subscriber_attached=relay.dispatcher.has_subscriber,
        sessions=relay.lifecycle.sessions,
        delivered=stats.delivered,
        dropped=stats.dropped,
    )


@router.post("/listener/commands", response_model=ListenerCommandResult)
async def send_listener_command(
    body: ListenerCommandRequest,
    relay: SmsRelay = Depends(get_relay),
):
    """Run startListening / stopListening."""
    try:
        result = await relay.commands.handle(body.method, body.arguments)
    except UnsupportedCommand as e:
        raise HTTPException(status_code=501, detail=str(e))
    except RegistrationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except DeregistrationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ListenerCommandResult(result=result)
