"""
Availability Engine

Answers "can unit U be booked for window W" for rooms, rental vehicles and
transfer vehicles, and writes reservations without double-booking.

Overlap predicate (half-open, touching endpoints do not overlap):

    existing.start_at < window_end AND existing.end_at > window_start

Only reservations in a blocking status are counted. A unit is available
while the overlapping count stays below its total capacity.

Transfers store their pickup instant as a zero-length interval and are
checked against [pickup - buffer, pickup + buffer].

Writes close the check-then-insert race with two layers:
1. The unit row is locked (SELECT ... FOR UPDATE on PostgreSQL)
2. The insert itself is conditional: INSERT ... SELECT ... WHERE count < capacity
"""

import json
import time
import uuid
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..models.inventory import UnitKind, UNIT_MODELS, Room, Vehicle, TransferVehicle
from ..models.reservation import (
    Reservation,
    ReservationStatus,
    BLOCKING_STATUSES,
    allowed_transitions,
)
from ..utils.db_helpers import acquire_row_lock, conditional_insert
from ..utils.exceptions import (
    WayfareError,
    NotFoundError,
    ConflictError,
    InvalidTransitionError,
    ValidationError,
)
from ..utils.logging_config import get_logger
from .pricing_engine import PricingEngine, PriceQuote

logger = get_logger(__name__)

Window = Tuple[datetime, datetime]

# Payload keys copied onto the reservation row
PAYLOAD_FIELDS = (
    "user_id",
    "guests",
    "guest_name",
    "guest_email",
    "guest_phone",
    "special_requests",
    "total_price",
    "currency",
)


@dataclass
class AvailabilityResult:
    available: bool
    remaining_capacity: int
    total_capacity: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SearchFilters:
    """Cheap SQL-side filters applied before per-unit availability checks"""
    city: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None  # room_type for rooms
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    tags: List[str] = field(default_factory=list)  # amenities / features, all required
    min_occupancy: Optional[int] = None  # guests, seats or passengers
    limit: int = 50


def day_start(value: date) -> datetime:
    """Stays and rentals are stored at calendar-day granularity"""
    return datetime.combine(value, datetime.min.time())


class AvailabilityService:
    """
    Availability engine over the shared reservations table.

    Usage:
        service = AvailabilityService(db)
        result = service.check_availability(UnitKind.ROOM, room_id, start, end)
        reservation = service.create_reservation(UnitKind.ROOM, room_id, (start, end), payload)
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.pricing = PricingEngine()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_unit(self, kind, unit_id: str):
        kind = UnitKind(kind)
        model = UNIT_MODELS[kind]
        unit = self.db.query(model).filter(model.id == unit_id).first()
        if not unit:
            raise NotFoundError(kind.value, unit_id)
        return unit

    def transfer_window(self, pickup_at: datetime) -> Window:
        buffer = timedelta(hours=self.settings.transfer_buffer_hours)
        return pickup_at - buffer, pickup_at + buffer

    def check_window(self, kind, start_at: datetime, end_at: datetime) -> Window:
        """Window a reservation must be checked against, given its own interval"""
        if UnitKind(kind) == UnitKind.TRANSFER_VEHICLE:
            return self.transfer_window(start_at)
        return start_at, end_at

    def _overlap_clause(self, kind: UnitKind, unit_id: str, window_start: datetime, window_end: datetime):
        return and_(
            Reservation.unit_kind == kind.value,
            Reservation.unit_id == unit_id,
            Reservation.status.in_(BLOCKING_STATUSES),
            Reservation.start_at < window_end,
            Reservation.end_at > window_start,
        )

    def find_blocking_reservations(
        self,
        kind,
        unit_id: str,
        window_start: datetime,
        window_end: datetime
    ) -> List[Reservation]:
        kind = UnitKind(kind)
        return (
            self.db.query(Reservation)
            .filter(self._overlap_clause(kind, unit_id, window_start, window_end))
            .order_by(Reservation.start_at)
            .all()
        )

    def check_availability(
        self,
        kind,
        unit_id: str,
        window_start: datetime,
        window_end: datetime
    ) -> AvailabilityResult:
        kind = UnitKind(kind)
        if window_start >= window_end:
            raise ValidationError("window_start must be before window_end")

        unit = self.get_unit(kind, unit_id)
        return self._availability_for(unit, window_start, window_end)

    def _availability_for(self, unit, window_start: datetime, window_end: datetime) -> AvailabilityResult:
        total = unit.total_capacity
        if not unit.is_bookable:
            return AvailabilityResult(available=False, remaining_capacity=0, total_capacity=total)

        overlapping = (
            self.db.query(func.count(Reservation.id))
            .filter(self._overlap_clause(unit.kind, unit.id, window_start, window_end))
            .scalar()
        ) or 0

        remaining = max(0, total - overlapping)
        return AvailabilityResult(available=remaining > 0, remaining_capacity=remaining, total_capacity=total)

    # ------------------------------------------------------------------
    # Pricing and booking rules
    # ------------------------------------------------------------------

    def quote(self, unit, start_at: datetime, end_at: datetime, details: Optional[dict] = None) -> PriceQuote:
        details = details or {}
        if isinstance(unit, Room):
            return self.pricing.quote_room(unit, start_at.date(), end_at.date())
        if isinstance(unit, Vehicle):
            return self.pricing.quote_vehicle(unit, start_at.date(), end_at.date())
        return self.pricing.quote_transfer(
            unit,
            start_at,
            distance_km=Decimal(str(details.get("estimated_distance_km") or 0)),
            transfer_type=details.get("transfer_type"),
        )

    def validate_booking_rules(self, unit, start_at: datetime, end_at: datetime, guests: int = 1) -> None:
        """
        Business checks that do not depend on other reservations:
        dates in range, stay length, party size.
        """
        now = datetime.utcnow()
        today = now.date()
        max_advance = self.settings.max_advance_days

        if start_at.date() > today + timedelta(days=max_advance):
            raise ValidationError(f"Reservations can be made at most {max_advance} days in advance")

        if isinstance(unit, TransferVehicle):
            if start_at < now:
                raise ValidationError("Pickup time cannot be in the past")
            if guests > unit.passengers:
                raise ValidationError(f"Vehicle takes at most {unit.passengers} passengers")
            return

        if end_at <= start_at:
            raise ValidationError("End date must be after start date")
        if start_at.date() < today:
            raise ValidationError("Start date cannot be in the past")

        duration = (end_at.date() - start_at.date()).days
        if duration > self.settings.max_stay_nights:
            raise ValidationError(
                f"Duration too long ({duration} days). Maximum is {self.settings.max_stay_nights}"
            )

        if isinstance(unit, Room):
            if duration < unit.min_stay:
                raise ValidationError(f"Minimum stay is {unit.min_stay} night(s)")
            if unit.max_stay and duration > unit.max_stay:
                raise ValidationError(f"Maximum stay is {unit.max_stay} night(s)")
            if guests > unit.max_guests:
                raise ValidationError(f"Room sleeps at most {unit.max_guests} guests")
        elif isinstance(unit, Vehicle):
            if guests > unit.seats:
                raise ValidationError(f"Vehicle seats at most {unit.seats} passengers")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_reservation(self, kind, unit_id: str, window: Window, payload: Dict[str, Any]) -> Reservation:
        """
        Atomically re-check availability and insert a pending reservation.

        `window` is the reservation's own interval: [check_in, check_out)
        for stays and rentals, (pickup, pickup) for transfers.

        Raises:
            NotFoundError: unit does not exist
            ValidationError: booking rules violated
            ConflictError: the unit is full (or not bookable) for the window
        """
        kind = UnitKind(kind)
        start_at, end_at = window
        if kind == UnitKind.TRANSFER_VEHICLE:
            end_at = start_at
        elif start_at >= end_at:
            raise ValidationError("window_start must be before window_end")

        window_start, window_end = self.check_window(kind, start_at, end_at)
        model = UNIT_MODELS[kind]
        started = time.perf_counter()

        try:
            unit = acquire_row_lock(self.db, model, model.id == unit_id)
            if not unit:
                raise NotFoundError(kind.value, unit_id)

            guests = int(payload.get("guests") or 1)
            self.validate_booking_rules(unit, start_at, end_at, guests)

            if not unit.is_bookable:
                raise ConflictError(kind.value, unit_id, start_at, end_at, reason="not accepting reservations")

            details = dict(payload.get("details") or {})
            values = {name: payload[name] for name in PAYLOAD_FIELDS if payload.get(name) is not None}
            if values.get("total_price") is None:
                quote = self.quote(unit, start_at, end_at, details)
                values["total_price"] = quote.total
                details["pricing"] = quote.to_dict()
            values.setdefault("currency", unit.currency)

            reservation_id = str(uuid.uuid4())
            now = datetime.utcnow()
            values.update({
                "id": reservation_id,
                "unit_kind": kind.value,
                "unit_id": unit_id,
                "status": ReservationStatus.PENDING.value,
                "start_at": start_at,
                "end_at": end_at,
                "guests": guests,
                "details": json.dumps(details, default=str) if details else None,
                "created_at": now,
                "updated_at": now,
            })

            overlapping = (
                select(func.count(Reservation.id))
                .where(self._overlap_clause(kind, unit_id, window_start, window_end))
                .correlate(None)
                .scalar_subquery()
            )
            conditional_insert(self.db, Reservation, values, overlapping < unit.total_capacity)

            reservation = self.db.get(Reservation, reservation_id)
            if reservation is None:
                raise ConflictError(kind.value, unit_id, start_at, end_at)

            self.db.commit()
            self.db.refresh(reservation)
        except WayfareError as e:
            self.db.rollback()
            logger.info(f"Reservation rejected on {kind.value} {unit_id}: {e.message}")
            raise
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Reservation write failed on {kind.value} {unit_id}")
            raise

        logger.reservation_created(
            reservation.id,
            kind.value,
            unit_id,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return reservation

    def transition_status(self, reservation_id: str, new_status, reason: Optional[str] = None) -> Reservation:
        """
        Move a reservation along its lifecycle.

        Raises:
            NotFoundError: reservation does not exist
            InvalidTransitionError: move is not an edge of the lifecycle graph
        """
        try:
            reservation = acquire_row_lock(self.db, Reservation, Reservation.id == reservation_id)
            if not reservation:
                raise NotFoundError("reservation", reservation_id)

            current = reservation.status
            graph = allowed_transitions(UnitKind(reservation.unit_kind))
            allowed = graph.get(current, frozenset())

            # Any str enum or plain string, compared by value
            requested = getattr(new_status, "value", new_status)
            try:
                requested = ReservationStatus(requested).value
            except ValueError:
                raise InvalidTransitionError(reservation_id, current, str(requested), allowed)
            if requested not in allowed:
                raise InvalidTransitionError(reservation_id, current, requested, allowed)

            reservation.status = requested
            reservation.updated_at = datetime.utcnow()
            if requested == ReservationStatus.CANCELLED.value:
                reservation.cancelled_at = datetime.utcnow()
                reservation.cancellation_reason = reason

            self.db.commit()
            self.db.refresh(reservation)
        except WayfareError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Status update failed for reservation {reservation_id}")
            raise

        logger.reservation_status_changed(reservation_id, current, requested)
        return reservation

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_available_units(self, kind, filters: SearchFilters, window: Window) -> list:
        """
        Two-phase search: SQL filters shrink the candidate set, then each
        candidate gets a full availability check for the window.

        `window` has the same meaning as in create_reservation.
        """
        kind = UnitKind(kind)
        start_at, end_at = window
        if kind != UnitKind.TRANSFER_VEHICLE and start_at >= end_at:
            raise ValidationError("window_start must be before window_end")
        window_start, window_end = self.check_window(kind, start_at, end_at)

        candidates = self._candidate_query(kind, filters).all()

        results = []
        for unit in candidates:
            if self._availability_for(unit, window_start, window_end).available:
                results.append(unit)
                if len(results) >= filters.limit:
                    break

        logger.debug(f"Search {kind.value}: {len(candidates)} candidates, {len(results)} available")
        return results

    def _candidate_query(self, kind: UnitKind, filters: SearchFilters):
        model = UNIT_MODELS[kind]
        query = self.db.query(model).filter(model.status == "available")

        if filters.city:
            query = query.filter(func.lower(model.city) == filters.city.strip().lower())
        if filters.country:
            query = query.filter(func.lower(model.country) == filters.country.strip().lower())

        if kind == UnitKind.ROOM:
            category_col, price_col, tags_col = Room.room_type, Room.base_price, Room.amenities
            occupancy_col = Room.max_adults + Room.max_children
        elif kind == UnitKind.VEHICLE:
            category_col, price_col, tags_col = Vehicle.category, Vehicle.daily_rate, Vehicle.features
            occupancy_col = Vehicle.seats
        else:
            category_col, price_col, tags_col = TransferVehicle.category, TransferVehicle.base_price, TransferVehicle.features
            occupancy_col = TransferVehicle.passengers

        if filters.category:
            query = query.filter(category_col == filters.category)
        if filters.min_price is not None:
            query = query.filter(price_col >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(price_col <= filters.max_price)
        if filters.min_occupancy:
            query = query.filter(occupancy_col >= filters.min_occupancy)
        for tag in filters.tags:
            # Tags are stored as a JSON list of lowercase strings
            query = query.filter(tags_col.like(f'%"{tag.strip().lower()}"%'))

        return query.order_by(price_col, model.id)
