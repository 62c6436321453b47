# Models package
from .inventory import (
    UnitKind,
    UnitStatus,
    InventoryUnitMixin,
    Room,
    Vehicle,
    TransferVehicle,
    UNIT_MODELS
)
from .reservation import (
    Reservation,
    ReservationStatus,
    BLOCKING_STATUSES,
    TERMINAL_STATUSES,
    IN_PROGRESS_STATUS,
    allowed_transitions
)
from .chat import Conversation, ConversationParticipant, Message

__all__ = [
    "UnitKind", "UnitStatus", "InventoryUnitMixin",
    "Room", "Vehicle", "TransferVehicle", "UNIT_MODELS",
    "Reservation", "ReservationStatus", "BLOCKING_STATUSES", "TERMINAL_STATUSES",
    "IN_PROGRESS_STATUS", "allowed_transitions",
    "Conversation", "ConversationParticipant", "Message"
]
