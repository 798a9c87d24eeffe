"""WebSocket endpoint — the SMS event stream.

Learn: The stream has a single subscriber. Connecting to /ws/sms attaches
this connection to the dispatcher, replacing whoever was connected before
(the old connection stays open but receives nothing more). Disconnecting
detaches it — unless a newer connection has already taken over.

Attach happens before accept(), so once the client sees the connection
open, every later delivery reaches it.
"""

import asyncio
import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from smsrelay.realtime.sinks import WebSocketSink

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws/sms")
async def sms_websocket(websocket: WebSocket):
    """Stream completed SMS messages to this client."""
    relay = websocket.app.state.relay
    sink = WebSocketSink(websocket)

    relay.dispatcher.attach(sink)
    await websocket.accept()
    logger.info("ws.connected", client=str(websocket.client))

    async def client_listener():
        """Answer pings; otherwise just wait for the client to go away."""
        try:
            while True:
                data = await websocket.receive_text()
                try:
                    msg = json.loads(data)
                except json.JSONDecodeError:
                    continue
                if isinstance(msg, dict) and msg.get("type") == "ping":
                    await websocket.send_text(json.dumps({"type": "pong"}))
        except (WebSocketDisconnect, asyncio.CancelledError):
            pass

    sender_task = sink.start()
    client_task = asyncio.create_task(client_listener())

    try:
        # Usually ends on client disconnect; a failed send ends the sender
        done, pending = await asyncio.wait(
            [sender_task, client_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
    finally:
        relay.dispatcher.detach(sink)
        await sink.close()
        if not client_task.done():
            client_task.cancel()
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
        logger.info("ws.disconnected", undelivered=sink.pending)
