# Realtime message relay
from .registry import RoomRegistry
from .server import MessageRelay

__all__ = ["RoomRegistry", "MessageRelay"]
