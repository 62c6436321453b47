"""
Reservations Router

Creation goes through AvailabilityService.create_reservation, which
re-checks availability atomically at write time. A 409 means the unit
filled up between search and booking.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ..database import get_db
from ..models.inventory import UnitKind
from ..models.reservation import Reservation
from ..schemas.reservation import (
    RoomReservationCreate, VehicleReservationCreate, TransferReservationCreate,
    ReservationStatusUpdate, ReservationResponse, ReservationStatus
)
from ..services.availability_service import AvailabilityService, day_start
from ..utils.dependencies import get_availability_service
from ..utils.exceptions import NotFoundError
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/reservations", tags=["Reservations"])


def to_reservation_response(reservation: Reservation) -> ReservationResponse:
    return ReservationResponse(
        id=reservation.id,
        unit_kind=reservation.unit_kind,
        unit_id=reservation.unit_id,
        user_id=reservation.user_id,
        status=reservation.status,
        start_at=reservation.start_at,
        end_at=reservation.end_at,
        guests=reservation.guests,
        guest_name=reservation.guest_name,
        guest_email=reservation.guest_email,
        guest_phone=reservation.guest_phone,
        special_requests=reservation.special_requests,
        total_price=reservation.total_price,
        currency=reservation.currency,
        details=reservation.details_dict,
        cancellation_reason=reservation.cancellation_reason,
        cancelled_at=reservation.cancelled_at,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
    )


def _contact(data) -> dict:
    return {
        "user_id": data.user_id,
        "guest_name": data.guest_name,
        "guest_email": data.guest_email,
        "guest_phone": data.guest_phone,
        "special_requests": data.special_requests,
    }


@router.post("/rooms", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("reservation_create"))
async def create_room_reservation(
    request: Request,
    data: RoomReservationCreate,
    service: AvailabilityService = Depends(get_availability_service)
):
    payload = _contact(data)
    payload["guests"] = data.adults + data.children
    payload["details"] = {"adults": data.adults, "children": data.children}

    reservation = service.create_reservation(
        UnitKind.ROOM,
        data.room_id,
        (day_start(data.check_in_date), day_start(data.check_out_date)),
        payload,
    )
    return to_reservation_response(reservation)


@router.post("/vehicles", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("reservation_create"))
async def create_vehicle_reservation(
    request: Request,
    data: VehicleReservationCreate,
    service: AvailabilityService = Depends(get_availability_service)
):
    payload = _contact(data)
    payload["guests"] = data.passengers
    payload["details"] = {
        "pickup_location": data.pickup_location,
        "return_location": data.return_location,
    }

    reservation = service.create_reservation(
        UnitKind.VEHICLE,
        data.vehicle_id,
        (day_start(data.pickup_date), day_start(data.return_date)),
        payload,
    )
    return to_reservation_response(reservation)


@router.post("/transfers", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("reservation_create"))
async def create_transfer_reservation(
    request: Request,
    data: TransferReservationCreate,
    service: AvailabilityService = Depends(get_availability_service)
):
    payload = _contact(data)
    payload["guests"] = data.passengers
    payload["details"] = {
        "transfer_type": data.transfer_type.value,
        "pickup_address": data.pickup_address,
        "dropoff_address": data.dropoff_address,
        "flight_number": data.flight_number,
        "estimated_distance_km": data.estimated_distance_km,
        "luggage": data.luggage,
    }

    pickup_at = data.pickup_at
    reservation = service.create_reservation(
        UnitKind.TRANSFER_VEHICLE,
        data.transfer_vehicle_id,
        (pickup_at, pickup_at),
        payload,
    )
    return to_reservation_response(reservation)


@router.get("", response_model=List[ReservationResponse])
@router.get("/", response_model=List[ReservationResponse])
async def list_reservations(
    user_id: Optional[str] = None,
    unit_id: Optional[str] = None,
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db)
):
    query = db.query(Reservation)
    if user_id:
        query = query.filter(Reservation.user_id == user_id)
    if unit_id:
        query = query.filter(Reservation.unit_id == unit_id)
    if status_filter:
        query = query.filter(Reservation.status == status_filter.value)

    reservations = query.order_by(Reservation.start_at.desc()).limit(limit).all()
    return [to_reservation_response(r) for r in reservations]


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(reservation_id: str, db: Session = Depends(get_db)):
    reservation = db.get(Reservation, reservation_id)
    if not reservation:
        raise NotFoundError("reservation", reservation_id)
    return to_reservation_response(reservation)


@router.patch("/{reservation_id}/status", response_model=ReservationResponse)
@limiter.limit(get_rate_limit("reservation_update"))
async def update_reservation_status(
    request: Request,
    reservation_id: str,
    data: ReservationStatusUpdate,
    service: AvailabilityService = Depends(get_availability_service)
):
    """
    Lifecycle: pending -> confirmed -> checked_in (rooms) / active (vehicles, transfers) -> completed.
    Cancel from any non-terminal status.

    The in-progress step depends on the unit kind: a room reservation cannot
    become `active` and a vehicle or transfer reservation cannot become
    `checked_in`. A rejected move returns 409 with the allowed next statuses
    in `details.allowed`.
    """
    reservation = service.transition_status(reservation_id, data.status, data.reason)
    return to_reservation_response(reservation)
