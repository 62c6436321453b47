"""
Availability Router

Read-only availability checks with a price quote for the requested window.
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date, time, datetime
from decimal import Decimal

from ..models.inventory import UnitKind
from ..schemas.reservation import AvailabilityResponse, TransferType
from ..services.availability_service import AvailabilityService, day_start
from ..utils.dependencies import get_availability_service

router = APIRouter(prefix="/api/availability", tags=["Availability"])


def _response(
    service: AvailabilityService,
    kind: UnitKind,
    unit_id: str,
    window_start: datetime,
    window_end: datetime,
    quote_start: datetime,
    quote_end: datetime,
    details: Optional[dict] = None
) -> AvailabilityResponse:
    result = service.check_availability(kind, unit_id, window_start, window_end)
    unit = service.get_unit(kind, unit_id)
    quote = service.quote(unit, quote_start, quote_end, details) if result.available else None

    return AvailabilityResponse(
        unit_kind=kind.value,
        unit_id=unit_id,
        available=result.available,
        remaining_capacity=result.remaining_capacity,
        total_capacity=result.total_capacity,
        window_start=window_start,
        window_end=window_end,
        quote=quote.to_dict() if quote else None,
        message="Available for the selected dates" if result.available else "Not available for the selected dates",
    )


@router.get("/rooms/{room_id}", response_model=AvailabilityResponse)
async def check_room_availability(
    room_id: str,
    check_in_date: date,
    check_out_date: date,
    service: AvailabilityService = Depends(get_availability_service)
):
    start, end = day_start(check_in_date), day_start(check_out_date)
    return _response(service, UnitKind.ROOM, room_id, start, end, start, end)


@router.get("/vehicles/{vehicle_id}", response_model=AvailabilityResponse)
async def check_vehicle_availability(
    vehicle_id: str,
    pickup_date: date,
    return_date: date,
    service: AvailabilityService = Depends(get_availability_service)
):
    start, end = day_start(pickup_date), day_start(return_date)
    return _response(service, UnitKind.VEHICLE, vehicle_id, start, end, start, end)


@router.get("/transfer-vehicles/{transfer_vehicle_id}", response_model=AvailabilityResponse)
async def check_transfer_availability(
    transfer_vehicle_id: str,
    pickup_date: date,
    pickup_time: time,
    transfer_type: Optional[TransferType] = None,
    estimated_distance_km: Decimal = Query(Decimal("0"), ge=0),
    service: AvailabilityService = Depends(get_availability_service)
):
    """The vehicle is checked against pickup +/- TRANSFER_BUFFER_HOURS"""
    pickup_at = datetime.combine(pickup_date, pickup_time.replace(tzinfo=None))
    window_start, window_end = service.transfer_window(pickup_at)
    details = {
        "transfer_type": transfer_type.value if transfer_type else None,
        "estimated_distance_km": estimated_distance_km,
    }
    return _response(
        service, UnitKind.TRANSFER_VEHICLE, transfer_vehicle_id,
        window_start, window_end, pickup_at, pickup_at, details
    )
