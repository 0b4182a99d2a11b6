import asyncio
import json
from uuid import uuid4

import fakeredis
import pytest
from fastapi import WebSocketDisconnect

from ndrop.core.config import settings
from ndrop.services import realtime
from ndrop.services.redis_pubsub import RedisPubSubService, dispatch_envelope
from ndrop.services.websocket_manager import ConnectionManager


@pytest.fixture
def fake_redis(monkeypatch):
    client = fakeredis.FakeRedis(decode_responses=True)
    realtime.set_redis_client(client)
    monkeypatch.setattr(settings, "REALTIME_ENABLED", True)
    try:
        yield client
    finally:
        realtime.set_redis_client(None)
        client.flushall()


def test_publish_sends_envelope_to_channel(fake_redis):
    pubsub = fake_redis.pubsub()
    pubsub.subscribe(settings.REALTIME_CHANNEL)
    pubsub.get_message(timeout=1)  # subscribe confirmation
    user_id = uuid4()

    assert realtime.publish([user_id, user_id], "notification", {"title": "hi"}) is True

    message = pubsub.get_message(timeout=1)
    envelope = json.loads(message["data"])
    assert envelope == {
        "audience": {"user_ids": [str(user_id)]},
        "type": "notification",
        "data": {"title": "hi"},
    }


def test_publish_is_skipped_when_disabled_or_nobody_listens(fake_redis, monkeypatch):
    assert realtime.publish([], "notification", {}) is False
    monkeypatch.setattr(settings, "REALTIME_ENABLED", False)
    assert realtime.publish([uuid4()], "notification", {}) is False


class _RecordingManager:
    def __init__(self, active):
        self.active = set(active)
        self.personal = []
        self.broadcasts = []

    async def send_personal_message(self, message, user_id):
        self.personal.append((user_id, message))

    async def broadcast(self, message):
        self.broadcasts.append(message)

    def get_active_users(self):
        return self.active


def test_dispatch_envelope_routes_by_audience():
    user_id = uuid4()
    connections = _RecordingManager(active=[user_id, uuid4()])

    targeted = realtime.build_envelope([user_id], "meeting_message", {"content": "hey"})
    broadcast = realtime.build_envelope(realtime.AUDIENCE_ALL, "notification", {"title": "all"})
    asyncio.run(dispatch_envelope(targeted, connections))
    reached = asyncio.run(dispatch_envelope(broadcast, connections))

    assert connections.personal == [(user_id, {"type": "meeting_message", "data": {"content": "hey"}})]
    assert connections.broadcasts == [{"type": "notification", "data": {"title": "all"}}]
    assert reached == 2


class _Socket:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def send_json(self, message):
        if self.error is not None:
            raise self.error
        self.sent.append(message)


def test_closed_socket_is_pruned_without_stopping_delivery():
    user_id = uuid4()
    gone, alive = _Socket(WebSocketDisconnect(code=1006)), _Socket()
    connections = ConnectionManager()
    connections.active_connections[user_id] = {gone, alive}

    envelope = realtime.build_envelope([user_id], "notification", {"title": "hi"})
    asyncio.run(dispatch_envelope(envelope, connections))

    assert alive.sent == [{"type": "notification", "data": {"title": "hi"}}]
    assert connections.active_connections[user_id] == {alive}


def test_reset_connection_drops_the_last_socket():
    user_id = uuid4()
    connections = ConnectionManager()
    connections.active_connections[user_id] = {_Socket(ConnectionResetError())}

    asyncio.run(connections.send_personal_message({"type": "ping"}, user_id))

    assert user_id not in connections.active_connections


class _FakePubSub:
    def __init__(self, messages):
        self.messages = messages

    async def listen(self):
        for message in self.messages:
            yield message


class _FlakyManager(_RecordingManager):
    async def send_personal_message(self, message, user_id):
        if message["data"].get("fail"):
            raise RuntimeError("socket exploded")
        await super().send_personal_message(message, user_id)


def test_listener_survives_a_failing_delivery():
    user_id = uuid4()
    connections = _FlakyManager(active=[user_id])
    service = RedisPubSubService(connections)

    def _message(data):
        return {"type": "message", "data": json.dumps(realtime.build_envelope([user_id], "notification", data))}

    service.pubsub = _FakePubSub(
        [
            {"type": "subscribe", "data": 1},
            _message({"fail": True}),
            {"type": "message", "data": "not json"},
            _message({"title": "still here"}),
        ]
    )
    asyncio.run(service._listen())

    assert connections.personal == [(user_id, {"type": "notification", "data": {"title": "still here"}})]
