"""
Room Registry

Process-wide map of conversation rooms to connected clients. A connection
is in at most one room at a time. All mutations happen on the event loop
thread, so no locking is needed.
"""

import logging
from typing import Dict, Hashable, List, Optional, Set

logger = logging.getLogger(__name__)


class RoomRegistry:
    def __init__(self):
        self._rooms: Dict[str, Set[Hashable]] = {}
        self._active: Dict[Hashable, Optional[str]] = {}

    def connect(self, connection) -> None:
        self._active.setdefault(connection, None)

    def join(self, connection, room: str) -> Optional[str]:
        """
        Put `connection` in `room`, leaving its previous room first.

        Returns the room that was implicitly left, if any.
        """
        previous = self._active.get(connection)
        if previous == room:
            return None
        if previous is not None:
            self._remove(connection, previous)

        self._rooms.setdefault(room, set()).add(connection)
        self._active[connection] = room
        return previous

    def leave(self, connection, room: Optional[str] = None) -> Optional[str]:
        """
        Leave the active room. When `room` is given, only leave if it is the
        active one. Returns the room left, or None.
        """
        active = self._active.get(connection)
        if active is None or (room is not None and room != active):
            return None

        self._remove(connection, active)
        self._active[connection] = None
        return active

    def disconnect(self, connection) -> Optional[str]:
        left = self.leave(connection)
        self._active.pop(connection, None)
        return left

    def members(self, room: str) -> List:
        """Snapshot of the room, safe to iterate across awaits"""
        return list(self._rooms.get(room, ()))

    def room_of(self, connection) -> Optional[str]:
        return self._active.get(connection)

    def is_connected(self, connection) -> bool:
        return connection in self._active

    @property
    def connection_count(self) -> int:
        return len(self._active)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def _remove(self, connection, room: str) -> None:
        members = self._rooms.get(room)
        if not members:
            return
        members.discard(connection)
        if not members:
            del self._rooms[room]
