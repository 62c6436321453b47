import uuid
import enum
import json
from datetime import datetime
from typing import Dict, FrozenSet
from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime, Index

from ..database import Base
from .inventory import UnitKind


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"  # hotel stays
    ACTIVE = "active"          # car rentals and transfers
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that count against a unit's capacity
BLOCKING_STATUSES: FrozenSet[str] = frozenset({
    ReservationStatus.PENDING.value,
    ReservationStatus.CONFIRMED.value,
    ReservationStatus.CHECKED_IN.value,
    ReservationStatus.ACTIVE.value,
})

TERMINAL_STATUSES: FrozenSet[str] = frozenset({
    ReservationStatus.COMPLETED.value,
    ReservationStatus.CANCELLED.value,
})

# The "guest is using it" status per vertical
IN_PROGRESS_STATUS: Dict[UnitKind, ReservationStatus] = {
    UnitKind.ROOM: ReservationStatus.CHECKED_IN,
    UnitKind.VEHICLE: ReservationStatus.ACTIVE,
    UnitKind.TRANSFER_VEHICLE: ReservationStatus.ACTIVE,
}


def allowed_transitions(kind: UnitKind) -> Dict[str, FrozenSet[str]]:
    """
    Lifecycle graph for one vertical:

        pending -> confirmed -> checked_in|active -> completed
        cancelled from any non-terminal status
    """
    in_progress = IN_PROGRESS_STATUS[kind].value
    return {
        ReservationStatus.PENDING.value: frozenset({
            ReservationStatus.CONFIRMED.value,
            ReservationStatus.CANCELLED.value,
        }),
        ReservationStatus.CONFIRMED.value: frozenset({
            in_progress,
            ReservationStatus.CANCELLED.value,
        }),
        in_progress: frozenset({
            ReservationStatus.COMPLETED.value,
            ReservationStatus.CANCELLED.value,
        }),
        ReservationStatus.COMPLETED.value: frozenset(),
        ReservationStatus.CANCELLED.value: frozenset(),
    }


class Reservation(Base):
    """
    A booking against exactly one inventory unit.

    Stays and rentals hold the half-open day range [start_at, end_at).
    Transfers hold their pickup instant in both start_at and end_at.
    """
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    unit_kind = Column(String(20), nullable=False)
    unit_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING.value)

    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    guests = Column(Integer, nullable=False, default=1)
    guest_name = Column(String(200), nullable=False)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(30), nullable=True)
    special_requests = Column(Text, nullable=True)

    total_price = Column(Numeric(12, 2), default=0)
    currency = Column(String(3), nullable=False, default="USD")
    details = Column(Text, nullable=True)  # JSON: price breakdown, transfer route

    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        # Overlap lookups: unit + status + interval
        Index("ix_reservation_unit_window", "unit_kind", "unit_id", "status", "start_at", "end_at"),
        Index("ix_reservation_status_end", "status", "end_at"),
    )

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    @property
    def details_dict(self) -> dict:
        if not self.details:
            return {}
        try:
            return json.loads(self.details)
        except (json.JSONDecodeError, TypeError):
            return {"raw": self.details}

    def __repr__(self):
        return f"<Reservation {self.unit_kind}:{self.unit_id} {self.start_at} - {self.end_at} {self.status}>"
