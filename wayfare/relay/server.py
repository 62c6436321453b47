"""
Message Relay

Event handlers for the realtime chat transport.

Inbound events:  join-room, send-message, leave-room
Outbound events: join-acknowledged, new-message (room broadcast), error (sender only)

A connection is anything hashable with an async ``send_event(event, data)``.
"""

import logging
from typing import Any, Callable, Dict, Optional

from starlette.concurrency import run_in_threadpool

from ..services.chat_service import persist_message
from ..utils.exceptions import PersistenceError
from ..utils.logging_config import get_logger
from .registry import RoomRegistry

logger = get_logger(__name__)

JOIN_ROOM = "join-room"
SEND_MESSAGE = "send-message"
LEAVE_ROOM = "leave-room"

JOIN_ACKNOWLEDGED = "join-acknowledged"
NEW_MESSAGE = "new-message"
ERROR = "error"


def _required_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class MessageRelay:
    """
    Usage:
        relay = MessageRelay()
        await relay.connect(conn)
        await relay.dispatch(conn, "join-room", {"conversationId": "c1"})
    """

    def __init__(self, registry: Optional[RoomRegistry] = None, persist: Callable[..., dict] = persist_message):
        self.registry = registry or RoomRegistry()
        self.persist = persist

    async def connect(self, connection) -> None:
        self.registry.connect(connection)

    async def dispatch(self, connection, event: Any, data: Any) -> None:
        if not isinstance(data, dict):
            data = {}

        if event == JOIN_ROOM:
            await self.join(connection, data.get("conversationId"))
        elif event == SEND_MESSAGE:
            await self.send(connection, data.get("conversationId"), data.get("senderId"), data.get("text"))
        elif event == LEAVE_ROOM:
            await self.leave(connection, data.get("conversationId"))
        else:
            await self.send_error(connection, f"Unknown event: {event}")

    async def join(self, connection, conversation_id) -> None:
        if not isinstance(conversation_id, str) or not conversation_id.strip():
            await self.send_error(connection, "conversationId is required")
            return

        conversation_id = conversation_id.strip()
        previous = self.registry.join(connection, conversation_id)
        if previous:
            logger.debug(f"Connection left {previous} to join {conversation_id}")

        await self._deliver(connection, JOIN_ACKNOWLEDGED, {"conversationId": conversation_id})

    async def send(self, connection, conversation_id, sender_id, text) -> None:
        """
        Persist, then broadcast to the room including the sender.

        The persistence call runs in a worker thread; other connections are
        served meanwhile. If the sender disconnects before it completes the
        message is still broadcast to whoever remains in the room.
        """
        payload = {"conversationId": conversation_id, "senderId": sender_id}
        conversation_id = _required_str(payload, "conversationId")
        sender_id = _required_str(payload, "senderId")
        if not conversation_id or not sender_id:
            await self.send_error(connection, "conversationId and senderId are required")
            return
        if not isinstance(text, str):
            await self.send_error(connection, "text is required")
            return

        try:
            message = await run_in_threadpool(self.persist, conversation_id, sender_id, text)
        except PersistenceError as e:
            logger.info(f"Message rejected in {conversation_id}: {e.message}")
            await self.send_error(connection, e.message)
            return
        except Exception:
            logger.exception(f"Unexpected failure persisting message in {conversation_id}")
            await self.send_error(connection, "Failed to send message")
            return

        recipients = await self.broadcast(conversation_id, NEW_MESSAGE, message)
        logger.message_relayed(message.get("id"), conversation_id, recipients)

    async def leave(self, connection, conversation_id=None) -> None:
        room = conversation_id.strip() if isinstance(conversation_id, str) else None
        self.registry.leave(connection, room)

    async def disconnect(self, connection) -> None:
        room = self.registry.disconnect(connection)
        if room:
            logger.debug(f"Connection dropped from {room}")

    async def broadcast(self, room: str, event: str, data: dict) -> int:
        """Fan out to the current members; returns how many received it"""
        delivered = 0
        for member in self.registry.members(room):
            if await self._deliver(member, event, data):
                delivered += 1
        return delivered

    async def send_error(self, connection, message: str) -> None:
        await self._deliver(connection, ERROR, {"message": message})

    async def _deliver(self, connection, event: str, data: dict) -> bool:
        if not self.registry.is_connected(connection):
            return False
        try:
            await connection.send_event(event, data)
            return True
        except Exception as e:
            # Dead socket: treat as an abrupt disconnect
            logger.warning(f"Dropping connection after failed {event} delivery: {e}")
            self.registry.disconnect(connection)
            return False


# The single process-wide relay
relay = MessageRelay()
