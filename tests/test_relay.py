"""
Realtime relay: room registry, event handlers and the WebSocket endpoint.
"""

import asyncio
import threading
from functools import partial

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from wayfare.relay import MessageRelay, RoomRegistry
from wayfare.relay.app import create_relay_app
from wayfare.services.chat_service import persist_message
from wayfare.utils.exceptions import PersistenceError


class FakeConnection:
    def __init__(self, name: str, fail: bool = False):
        self.name = name
        self.fail = fail
        self.events = []

    async def send_event(self, event, data):
        if self.fail:
            raise ConnectionResetError("socket closed")
        self.events.append((event, data))

    def named(self, event):
        return [data for name, data in self.events if name == event]


def echo_persist(conversation_id, sender_id, text):
    return {
        "id": f"msg-{text}",
        "conversationId": conversation_id,
        "senderId": sender_id,
        "text": text,
        "timestamp": "2030-01-01T12:00:00",
    }


def rejecting_persist(conversation_id, sender_id, text):
    raise PersistenceError("Sender is not a participant of this conversation")


def broken_persist(conversation_id, sender_id, text):
    raise RuntimeError("database unreachable")


def run(coro):
    return asyncio.run(coro)


class TestRoomRegistry:
    def test_join_leaves_previous_room(self):
        registry = RoomRegistry()
        conn = object()
        registry.connect(conn)

        assert registry.join(conn, "a") is None
        assert registry.join(conn, "b") == "a"
        assert registry.members("a") == []
        assert registry.members("b") == [conn]
        assert registry.room_of(conn) == "b"

    def test_leave_other_room_is_noop(self):
        registry = RoomRegistry()
        conn = object()
        registry.connect(conn)
        registry.join(conn, "a")

        assert registry.leave(conn, "b") is None
        assert registry.room_of(conn) == "a"

    def test_disconnect_removes_everywhere(self):
        registry = RoomRegistry()
        conn = object()
        registry.connect(conn)
        registry.join(conn, "a")

        assert registry.disconnect(conn) == "a"
        assert not registry.is_connected(conn)
        assert registry.room_count == 0
        assert registry.connection_count == 0


class TestMessageRelay:
    """Event handling with fake connections"""

    def test_join_is_acknowledged(self):
        relay = MessageRelay(persist=echo_persist)
        alice = FakeConnection("alice")

        async def scenario():
            await relay.connect(alice)
            await relay.dispatch(alice, "join-room", {"conversationId": "c1"})

        run(scenario())
        assert alice.events == [("join-acknowledged", {"conversationId": "c1"})]

    def test_broadcast_reaches_room_including_sender(self):
        relay = MessageRelay(persist=echo_persist)
        alice, bob, carol = FakeConnection("alice"), FakeConnection("bob"), FakeConnection("carol")

        async def scenario():
            for conn in (alice, bob, carol):
                await relay.connect(conn)
            await relay.join(alice, "c1")
            await relay.join(bob, "c1")
            await relay.join(carol, "c2")
            await relay.dispatch(alice, "send-message", {"conversationId": "c1", "senderId": "alice", "text": "hi"})

        run(scenario())
        assert [m["text"] for m in alice.named("new-message")] == ["hi"]
        assert [m["text"] for m in bob.named("new-message")] == ["hi"]
        assert carol.named("new-message") == []

    def test_switching_rooms_stops_old_broadcasts(self):
        relay = MessageRelay(persist=echo_persist)
        alice, bob = FakeConnection("alice"), FakeConnection("bob")

        async def scenario():
            await relay.connect(alice)
            await relay.connect(bob)
            await relay.join(alice, "c1")
            await relay.join(bob, "c1")
            await relay.join(bob, "c2")
            await relay.send(alice, "c1", "alice", "still there?")

        run(scenario())
        assert bob.named("new-message") == []
        assert len(alice.named("new-message")) == 1

    def test_leave_stops_delivery(self):
        relay = MessageRelay(persist=echo_persist)
        alice, bob = FakeConnection("alice"), FakeConnection("bob")

        async def scenario():
            await relay.connect(alice)
            await relay.connect(bob)
            await relay.join(alice, "c1")
            await relay.join(bob, "c1")
            await relay.dispatch(bob, "leave-room", {"conversationId": "c1"})
            await relay.send(alice, "c1", "alice", "bye")

        run(scenario())
        assert bob.named("new-message") == []

    def test_persistence_error_goes_only_to_sender(self):
        relay = MessageRelay(persist=rejecting_persist)
        alice, bob = FakeConnection("alice"), FakeConnection("bob")

        async def scenario():
            await relay.connect(alice)
            await relay.connect(bob)
            await relay.join(alice, "c1")
            await relay.join(bob, "c1")
            await relay.send(alice, "c1", "mallory", "hi")

        run(scenario())
        assert alice.named("error") == [{"message": "Sender is not a participant of this conversation"}]
        assert bob.named("error") == []
        assert bob.named("new-message") == []

    def test_unexpected_failure_is_generic(self):
        relay = MessageRelay(persist=broken_persist)
        alice = FakeConnection("alice")

        async def scenario():
            await relay.connect(alice)
            await relay.send(alice, "c1", "alice", "hi")

        run(scenario())
        assert alice.named("error") == [{"message": "Failed to send message"}]

    def test_missing_fields_are_rejected(self):
        relay = MessageRelay(persist=echo_persist)
        alice = FakeConnection("alice")

        async def scenario():
            await relay.connect(alice)
            await relay.dispatch(alice, "join-room", {})
            await relay.dispatch(alice, "send-message", {"conversationId": "c1", "text": "hi"})
            await relay.dispatch(alice, "typing", {})

        run(scenario())
        assert [e["message"] for e in alice.named("error")] == [
            "conversationId is required",
            "conversationId and senderId are required",
            "Unknown event: typing",
        ]

    def test_dead_socket_is_dropped(self):
        relay = MessageRelay(persist=echo_persist)
        alice, ghost = FakeConnection("alice"), FakeConnection("ghost")

        async def scenario():
            await relay.connect(alice)
            await relay.connect(ghost)
            await relay.join(alice, "c1")
            relay.registry.join(ghost, "c1")
            ghost.fail = True
            return await relay.broadcast("c1", "new-message", {"text": "x"})

        delivered = run(scenario())
        assert delivered == 1
        assert not relay.registry.is_connected(ghost)
        assert relay.registry.members("c1") == [alice]

    def test_messages_arrive_in_send_order(self):
        relay = MessageRelay(persist=echo_persist)
        alice, bob = FakeConnection("alice"), FakeConnection("bob")

        async def scenario():
            await relay.connect(alice)
            await relay.connect(bob)
            await relay.join(alice, "c1")
            await relay.join(bob, "c1")
            for text in ("one", "two", "three"):
                await relay.send(alice, "c1", "alice", text)

        run(scenario())
        assert [m["text"] for m in bob.named("new-message")] == ["one", "two", "three"]

    def test_sender_disconnect_during_persist_still_broadcasts(self):
        started = threading.Event()
        release = threading.Event()

        def slow_persist(conversation_id, sender_id, text):
            started.set()
            release.wait(timeout=5)
            return echo_persist(conversation_id, sender_id, text)

        relay = MessageRelay(persist=slow_persist)
        alice, bob = FakeConnection("alice"), FakeConnection("bob")

        async def scenario():
            await relay.connect(alice)
            await relay.connect(bob)
            await relay.join(alice, "c1")
            await relay.join(bob, "c1")

            sending = asyncio.create_task(relay.send(alice, "c1", "alice", "leaving now"))
            while not started.is_set():
                await asyncio.sleep(0.01)

            await relay.disconnect(alice)
            release.set()
            await sending

        run(scenario())
        assert [m["text"] for m in bob.named("new-message")] == ["leaving now"]
        assert alice.events == [("join-acknowledged", {"conversationId": "c1"})]
        assert not relay.registry.is_connected(alice)

    def test_disconnect_cleans_registry(self):
        relay = MessageRelay(persist=echo_persist)
        alice = FakeConnection("alice")

        async def scenario():
            await relay.connect(alice)
            await relay.join(alice, "c1")
            await relay.disconnect(alice)

        run(scenario())
        assert relay.registry.connection_count == 0
        assert relay.registry.members("c1") == []


class TestWebSocketEndpoint:
    """Full path over the ASGI app with real persistence"""

    @pytest.fixture
    def relay_client(self, session_factory):
        relay = MessageRelay(persist=partial(persist_message, session_factory=session_factory))
        return TestClient(create_relay_app(relay))

    def test_join_send_receive(self, relay_client, chat):
        conversation = chat.get_or_create_conversation("alice", ["bob"])

        with relay_client.websocket_connect("/ws") as alice, relay_client.websocket_connect("/ws") as bob:
            alice.send_json({"event": "join-room", "data": {"conversationId": conversation.id}})
            assert alice.receive_json() == {"event": "join-acknowledged", "data": {"conversationId": conversation.id}}
            bob.send_json({"event": "join-room", "data": {"conversationId": conversation.id}})
            assert bob.receive_json()["event"] == "join-acknowledged"

            alice.send_json({
                "event": "send-message",
                "data": {"conversationId": conversation.id, "senderId": "alice", "text": "hello"},
            })

            for socket in (alice, bob):
                frame = socket.receive_json()
                assert frame["event"] == "new-message"
                assert frame["data"]["text"] == "hello"
                assert frame["data"]["senderId"] == "alice"

        assert [m.text for m in chat.get_messages(conversation.id)] == ["hello"]

    def test_non_participant_gets_error(self, relay_client, chat):
        conversation = chat.get_or_create_conversation("alice", ["bob"])

        with relay_client.websocket_connect("/ws") as socket:
            socket.send_json({
                "event": "send-message",
                "data": {"conversationId": conversation.id, "senderId": "mallory", "text": "hi"},
            })
            frame = socket.receive_json()

        assert frame == {"event": "error", "data": {"message": "Sender is not a participant of this conversation"}}

    def test_malformed_frame(self, relay_client):
        with relay_client.websocket_connect("/ws") as socket:
            socket.send_text("not json")
            assert socket.receive_json() == {"event": "error", "data": {"message": "Malformed frame"}}

    def test_foreign_origin_rejected(self, relay_client):
        with pytest.raises(WebSocketDisconnect):
            with relay_client.websocket_connect("/ws", headers={"origin": "http://evil.example"}) as socket:
                socket.receive_json()

    def test_health_reports_counts(self, relay_client):
        response = relay_client.get("/health")

        assert response.status_code == 200
        assert response.json()["connections"] == 0
