import pytest
from starlette.websockets import WebSocketDisconnect

from ndrop.core.security import create_access_token


def test_websocket_handshake_and_ping(client, make_user):
    user = make_user()

    with client.websocket_connect(f"/api/ws/notifications?token={create_access_token(user.id)}") as ws:
        assert ws.receive_json() == {"type": "connected", "user_id": str(user.id)}
        ws.send_text("ping")
        assert ws.receive_json() == {"type": "pong"}


def test_websocket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/ws/notifications?token=nope") as ws:
            ws.receive_json()
    assert excinfo.value.code == 1008
