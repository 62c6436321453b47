"""
Search Router

Available units for a window. Filters narrow the candidates in SQL first,
then each candidate is checked for availability.
"""
from fastapi import APIRouter, Depends, Query, Request
from typing import List, Optional
from datetime import date, time, datetime
from decimal import Decimal

from ..models.inventory import UnitKind
from ..schemas.inventory import UnitResponse, RoomType, VehicleCategory, TransferVehicleCategory
from ..services.availability_service import AvailabilityService, SearchFilters, day_start
from ..utils.dependencies import get_availability_service
from ..utils.rate_limiter import limiter, get_rate_limit
from .inventory import to_unit_response

router = APIRouter(prefix="/api/search", tags=["Search"])


def _tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [t.strip().lower() for t in raw.split(",") if t.strip()]


@router.get("/rooms", response_model=List[UnitResponse])
@limiter.limit(get_rate_limit("search"))
async def search_rooms(
    request: Request,
    check_in_date: date,
    check_out_date: date,
    city: Optional[str] = None,
    country: Optional[str] = None,
    room_type: Optional[RoomType] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    amenities: Optional[str] = Query(None, description="Comma-separated, all required"),
    guests: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: AvailabilityService = Depends(get_availability_service)
):
    filters = SearchFilters(
        city=city,
        country=country,
        category=room_type.value if room_type else None,
        min_price=min_price,
        max_price=max_price,
        tags=_tags(amenities),
        min_occupancy=guests,
        limit=limit,
    )
    window = (day_start(check_in_date), day_start(check_out_date))
    units = service.search_available_units(UnitKind.ROOM, filters, window)
    return [to_unit_response(u) for u in units]


@router.get("/vehicles", response_model=List[UnitResponse])
@limiter.limit(get_rate_limit("search"))
async def search_vehicles(
    request: Request,
    pickup_date: date,
    return_date: date,
    city: Optional[str] = None,
    country: Optional[str] = None,
    category: Optional[VehicleCategory] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    features: Optional[str] = Query(None, description="Comma-separated, all required"),
    seats: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: AvailabilityService = Depends(get_availability_service)
):
    filters = SearchFilters(
        city=city,
        country=country,
        category=category.value if category else None,
        min_price=min_price,
        max_price=max_price,
        tags=_tags(features),
        min_occupancy=seats,
        limit=limit,
    )
    window = (day_start(pickup_date), day_start(return_date))
    units = service.search_available_units(UnitKind.VEHICLE, filters, window)
    return [to_unit_response(u) for u in units]


@router.get("/transfer-vehicles", response_model=List[UnitResponse])
@limiter.limit(get_rate_limit("search"))
async def search_transfer_vehicles(
    request: Request,
    pickup_date: date,
    pickup_time: time,
    city: Optional[str] = None,
    country: Optional[str] = None,
    category: Optional[TransferVehicleCategory] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    features: Optional[str] = Query(None, description="Comma-separated, all required"),
    passengers: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: AvailabilityService = Depends(get_availability_service)
):
    filters = SearchFilters(
        city=city,
        country=country,
        category=category.value if category else None,
        min_price=min_price,
        max_price=max_price,
        tags=_tags(features),
        min_occupancy=passengers,
        limit=limit,
    )
    pickup_at = datetime.combine(pickup_date, pickup_time.replace(tzinfo=None))
    units = service.search_available_units(UnitKind.TRANSFER_VEHICLE, filters, (pickup_at, pickup_at))
    return [to_unit_response(u) for u in units]
