"""WebSocket event stream tests.

Learn: Uses Starlette's TestClient (runs the lifespan, supports
WebSockets). Inside one `with TestClient(...)` block the app, the HTTP
calls and the WebSockets all share a single event loop, so a delivery
POSTed over HTTP shows up on the socket in order.
"""

from fastapi.testclient import TestClient

from smsrelay.main import create_app

BATCH = {
    "fragments": [
        {"originating_address": "A", "body": "x", "delivery_timestamp": 10},
        {"originating_address": "B", "body": "y", "delivery_timestamp": 20},
        {"originating_address": "A", "body": "z", "delivery_timestamp": 30},
    ],
}


def test_websocket_receives_merged_messages():
    with TestClient(create_app()) as client:
        with client.websocket_connect("/ws/sms") as ws:
            r = client.post("/api/v1/listener/commands", json={"method": "startListening"})
            assert r.json() == {"result": True}

            r = client.post("/api/v1/sms/deliveries", json=BATCH)
            assert r.json() == {"receivers": 1}

            assert ws.receive_json() == {
                "type": "sms.received", "sender": "A", "body": "xz", "timestamp": 30,
            }
            assert ws.receive_json() == {
                "type": "sms.received", "sender": "B", "body": "y", "timestamp": 30,
            }


def test_new_connection_replaces_old_one():
    with TestClient(create_app()) as client:
        client.post("/api/v1/listener/commands", json={"method": "startListening"})

        with client.websocket_connect("/ws/sms") as first:
            with client.websocket_connect("/ws/sms") as second:
                client.post("/api/v1/sms/deliveries", json=BATCH)

                assert second.receive_json()["sender"] == "A"
                assert second.receive_json()["sender"] == "B"

                # The first stream got nothing: its next frame is the pong
                first.send_json({"type": "ping"})
                assert first.receive_json() == {"type": "pong"}

                r = client.get("/api/v1/listener")
                assert r.json()["subscriber_attached"] is True
                assert r.json()["delivered"] == 2


def test_shutdown_stops_listener():
    app = create_app()
    with TestClient(app) as client:
        client.post("/api/v1/listener/commands", json={"method": "startListening"})
        assert app.state.relay.lifecycle.is_listening

    assert not app.state.relay.lifecycle.is_listening
    assert app.state.relay.source.receiver_count == 0
