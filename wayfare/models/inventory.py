"""
Inventory Models

Bookable units for each vertical. They are separate tables but share one
capability interface (InventoryUnitMixin) that the availability engine is
written against:

- kind            which vertical the unit belongs to
- total_capacity  how many identical units can be booked for the same window
- is_bookable     manual status allows new reservations
- pricing         pricing descriptor
"""

import uuid
import json
import enum
from datetime import datetime
from typing import List
from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime, Index

from ..database import Base


class UnitKind(str, enum.Enum):
    ROOM = "room"
    VEHICLE = "vehicle"
    TRANSFER_VEHICLE = "transfer_vehicle"


class UnitStatus(str, enum.Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class InventoryUnitMixin:
    """Columns and capabilities shared by every bookable unit"""

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    provider_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=UnitStatus.AVAILABLE.value)
    city = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def total_capacity(self) -> int:
        raise NotImplementedError

    @property
    def is_bookable(self) -> bool:
        return self.status == UnitStatus.AVAILABLE.value

    @property
    def pricing(self) -> dict:
        raise NotImplementedError

    def _tags(self, column: str) -> List[str]:
        raw = getattr(self, column)
        if not raw:
            return []
        try:
            return list(json.loads(raw))
        except (json.JSONDecodeError, TypeError):
            return []


class Room(InventoryUnitMixin, Base):
    """A room type within a property; total_rooms identical rooms share bookings"""
    __tablename__ = "rooms"

    kind = UnitKind.ROOM

    property_name = Column(String(200), nullable=False)
    name = Column(String(200), nullable=False)
    room_type = Column(String(50), nullable=False, default="double")
    amenities = Column(Text, nullable=True)  # JSON list: ["wifi", "minibar"]

    total_rooms = Column(Integer, nullable=False, default=1)
    max_adults = Column(Integer, nullable=False, default=2)
    max_children = Column(Integer, nullable=False, default=0)
    min_stay = Column(Integer, nullable=False, default=1)
    max_stay = Column(Integer, nullable=True)

    base_price = Column(Numeric(10, 2), nullable=False)  # per night
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)  # percentage
    cleaning_fee = Column(Numeric(10, 2), nullable=False, default=0)

    __table_args__ = (
        Index("ix_room_search", "city", "status", "room_type"),
    )

    @property
    def total_capacity(self) -> int:
        return int(self.total_rooms or 0)

    @property
    def max_guests(self) -> int:
        return int(self.max_adults or 0) + int(self.max_children or 0)

    @property
    def amenity_list(self) -> List[str]:
        return self._tags("amenities")

    @property
    def pricing(self) -> dict:
        return {
            "base_price": self.base_price,
            "tax_rate": self.tax_rate,
            "cleaning_fee": self.cleaning_fee,
            "currency": self.currency,
        }

    def __repr__(self):
        return f"<Room {self.property_name} / {self.name} x{self.total_rooms}>"


class Vehicle(InventoryUnitMixin, Base):
    """A rental car listing; fleet_size identical cars share bookings"""
    __tablename__ = "vehicles"

    kind = UnitKind.VEHICLE

    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=True)
    category = Column(String(20), nullable=False, default="economy")
    transmission = Column(String(20), nullable=False, default="automatic")
    seats = Column(Integer, nullable=False, default=5)
    features = Column(Text, nullable=True)  # JSON list: ["gps", "bluetooth"]
    fleet_size = Column(Integer, nullable=False, default=1)

    daily_rate = Column(Numeric(10, 2), nullable=False)
    weekly_rate = Column(Numeric(10, 2), nullable=True)
    monthly_rate = Column(Numeric(10, 2), nullable=True)
    insurance_fee = Column(Numeric(10, 2), nullable=False, default=0)  # per day
    deposit = Column(Numeric(10, 2), nullable=False, default=0)

    __table_args__ = (
        Index("ix_vehicle_search", "city", "status", "category"),
    )

    @property
    def total_capacity(self) -> int:
        return int(self.fleet_size or 0)

    @property
    def feature_list(self) -> List[str]:
        return self._tags("features")

    @property
    def pricing(self) -> dict:
        return {
            "daily_rate": self.daily_rate,
            "weekly_rate": self.weekly_rate,
            "monthly_rate": self.monthly_rate,
            "insurance_fee": self.insurance_fee,
            "deposit": self.deposit,
            "currency": self.currency,
        }

    def __repr__(self):
        return f"<Vehicle {self.make} {self.model} x{self.fleet_size}>"


class TransferVehicle(InventoryUnitMixin, Base):
    """A chauffeured vehicle booked per pickup"""
    __tablename__ = "transfer_vehicles"

    kind = UnitKind.TRANSFER_VEHICLE

    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    category = Column(String(20), nullable=False, default="sedan")
    passengers = Column(Integer, nullable=False, default=3)
    luggage = Column(Integer, nullable=False, default=2)
    airport = Column(String(10), nullable=True)  # IATA code if airport based
    features = Column(Text, nullable=True)

    base_price = Column(Numeric(10, 2), nullable=False)
    price_per_km = Column(Numeric(10, 2), nullable=False, default=0)
    airport_surcharge = Column(Numeric(10, 2), nullable=False, default=0)
    night_surcharge = Column(Numeric(10, 2), nullable=False, default=0)

    __table_args__ = (
        Index("ix_transfer_vehicle_search", "city", "status", "category"),
    )

    @property
    def total_capacity(self) -> int:
        # One driver, one pickup at a time
        return 1

    @property
    def feature_list(self) -> List[str]:
        return self._tags("features")

    @property
    def pricing(self) -> dict:
        return {
            "base_price": self.base_price,
            "price_per_km": self.price_per_km,
            "airport_surcharge": self.airport_surcharge,
            "night_surcharge": self.night_surcharge,
            "currency": self.currency,
        }

    def __repr__(self):
        return f"<TransferVehicle {self.make} {self.model} ({self.category})>"


UNIT_MODELS = {
    UnitKind.ROOM: Room,
    UnitKind.VEHICLE: Vehicle,
    UnitKind.TRANSFER_VEHICLE: TransferVehicle,
}
