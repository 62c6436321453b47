from fastapi import Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.inventory import UnitKind
from ..services.availability_service import AvailabilityService
from ..services.chat_service import ChatService
from .exceptions import NotFoundError

# URL segment -> unit kind
KIND_PATHS = {
    "rooms": UnitKind.ROOM,
    "vehicles": UnitKind.VEHICLE,
    "transfer-vehicles": UnitKind.TRANSFER_VEHICLE,
}


def parse_unit_kind(kind: str) -> UnitKind:
    """Accepts the URL segment ("transfer-vehicles") or the enum value ("transfer_vehicle")"""
    if kind in KIND_PATHS:
        return KIND_PATHS[kind]
    try:
        return UnitKind(kind)
    except ValueError:
        raise NotFoundError("unit kind", kind)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_chat_service(db: Session = Depends(get_db)) -> ChatService:
    return ChatService(db)
