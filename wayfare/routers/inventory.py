"""
Inventory Router

Provider onboarding of bookable units and soft retirement via status.
Units are never hard-deleted.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import json
import logging

from ..database import get_db
from ..models.inventory import Room, Vehicle, TransferVehicle, UNIT_MODELS
from ..schemas.inventory import (
    RoomCreate, VehicleCreate, TransferVehicleCreate,
    UnitStatusUpdate, UnitResponse
)
from ..utils.dependencies import parse_unit_kind
from ..utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/inventory", tags=["Inventory"])


def _title(unit) -> str:
    if isinstance(unit, Room):
        return f"{unit.property_name} - {unit.name}"
    if isinstance(unit, Vehicle):
        return f"{unit.make} {unit.model}" + (f" {unit.year}" if unit.year else "")
    return f"{unit.make} {unit.model} ({unit.category})"


def to_unit_response(unit) -> UnitResponse:
    tags = unit.amenity_list if isinstance(unit, Room) else unit.feature_list
    return UnitResponse(
        id=unit.id,
        kind=unit.kind.value,
        provider_id=unit.provider_id,
        status=unit.status,
        city=unit.city,
        country=unit.country,
        currency=unit.currency,
        total_capacity=unit.total_capacity,
        title=_title(unit),
        pricing={k: (str(v) if v is not None and k != "currency" else v) for k, v in unit.pricing.items()},
        tags=tags,
        created_at=unit.created_at,
        updated_at=unit.updated_at,
    )


def _save(db: Session, unit):
    db.add(unit)
    db.commit()
    db.refresh(unit)
    logger.info(f"Created {unit.kind.value} {unit.id} for provider {unit.provider_id}")
    return to_unit_response(unit)


@router.post("/rooms", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
async def create_room(data: RoomCreate, db: Session = Depends(get_db)):
    """Register a room type; total_rooms identical rooms share its bookings"""
    values = data.model_dump()
    values["room_type"] = data.room_type.value
    values["amenities"] = json.dumps(data.amenities)
    return _save(db, Room(**values))


@router.post("/vehicles", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(data: VehicleCreate, db: Session = Depends(get_db)):
    values = data.model_dump()
    values["category"] = data.category.value
    values["transmission"] = data.transmission.value
    values["features"] = json.dumps(data.features)
    return _save(db, Vehicle(**values))


@router.post("/transfer-vehicles", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
async def create_transfer_vehicle(data: TransferVehicleCreate, db: Session = Depends(get_db)):
    values = data.model_dump()
    values["category"] = data.category.value
    values["features"] = json.dumps(data.features)
    if data.airport:
        values["airport"] = data.airport.upper()
    return _save(db, TransferVehicle(**values))


@router.get("/{kind}/{unit_id}", response_model=UnitResponse)
async def get_unit(kind: str, unit_id: str, db: Session = Depends(get_db)):
    unit_kind = parse_unit_kind(kind)
    model = UNIT_MODELS[unit_kind]
    unit = db.query(model).filter(model.id == unit_id).first()
    if not unit:
        raise NotFoundError(unit_kind.value, unit_id)
    return to_unit_response(unit)


@router.patch("/{kind}/{unit_id}/status", response_model=UnitResponse)
async def update_unit_status(
    kind: str,
    unit_id: str,
    data: UnitStatusUpdate,
    db: Session = Depends(get_db)
):
    """
    Take a unit out of (or back into) service.

    Existing reservations are kept; a non-available unit only stops new ones.
    """
    unit_kind = parse_unit_kind(kind)
    model = UNIT_MODELS[unit_kind]
    unit = db.query(model).filter(model.id == unit_id).first()
    if not unit:
        raise NotFoundError(unit_kind.value, unit_id)

    old_status = unit.status
    unit.status = data.status.value
    db.commit()
    db.refresh(unit)

    logger.info(f"{unit_kind.value} {unit_id} status: {old_status} -> {unit.status}")
    return to_unit_response(unit)
