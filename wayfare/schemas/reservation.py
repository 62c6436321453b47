from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Dict, Any
from datetime import datetime, date, time
from decimal import Decimal
from enum import Enum
import re

from ..models.reservation import ReservationStatus


class TransferType(str, Enum):
    AIRPORT_TO_CITY = "airport_to_city"
    CITY_TO_AIRPORT = "city_to_airport"
    POINT_TO_POINT = "point_to_point"
    HOURLY = "hourly"


def _strip_markup(v):
    """XSS: drop script tags and inline event handlers"""
    if v is None or not isinstance(v, str):
        return v
    v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
    v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
    return v.strip()


class GuestContact(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=36)
    guest_name: str = Field(..., min_length=2, max_length=200)
    guest_email: Optional[str] = Field(None, max_length=255)
    guest_phone: Optional[str] = Field(None, max_length=30)
    special_requests: Optional[str] = Field(None, max_length=2000)

    @field_validator('guest_name', 'special_requests', mode='before')
    @classmethod
    def sanitize_text_fields(cls, v):
        return _strip_markup(v)


class RoomReservationCreate(GuestContact):
    room_id: str = Field(..., min_length=1, max_length=36)
    check_in_date: date
    check_out_date: date
    adults: int = Field(1, ge=1, le=50)
    children: int = Field(0, ge=0, le=50)

    @model_validator(mode='after')
    def validate_dates(self):
        """check_out_date must be after check_in_date"""
        if self.check_out_date <= self.check_in_date:
            raise ValueError('Check-out date must be after check-in date')
        return self


class VehicleReservationCreate(GuestContact):
    vehicle_id: str = Field(..., min_length=1, max_length=36)
    pickup_date: date
    return_date: date
    passengers: int = Field(1, ge=1, le=60)
    pickup_location: Optional[str] = Field(None, max_length=300)
    return_location: Optional[str] = Field(None, max_length=300)

    @model_validator(mode='after')
    def validate_dates(self):
        """return_date must be after pickup_date"""
        if self.return_date <= self.pickup_date:
            raise ValueError('Return date must be after pickup date')
        return self


class TransferReservationCreate(GuestContact):
    transfer_vehicle_id: str = Field(..., min_length=1, max_length=36)
    transfer_type: TransferType = TransferType.POINT_TO_POINT
    pickup_date: date
    pickup_time: time
    pickup_address: str = Field(..., min_length=1, max_length=300)
    dropoff_address: str = Field(..., min_length=1, max_length=300)
    flight_number: Optional[str] = Field(None, max_length=10)
    estimated_distance_km: Decimal = Field(Decimal("0"), ge=0, le=5000)
    passengers: int = Field(1, ge=1, le=60)
    luggage: int = Field(0, ge=0, le=60)

    @property
    def pickup_at(self) -> datetime:
        return datetime.combine(self.pickup_date, self.pickup_time.replace(tzinfo=None))


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus
    reason: Optional[str] = Field(None, max_length=1000)

    @field_validator('reason', mode='before')
    @classmethod
    def sanitize_reason(cls, v):
        return _strip_markup(v)


class ReservationResponse(BaseModel):
    id: str
    unit_kind: str
    unit_id: str
    user_id: str
    status: str
    start_at: datetime
    end_at: datetime
    guests: int
    guest_name: str
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    special_requests: Optional[str] = None
    total_price: Decimal
    currency: str
    details: Dict[str, Any] = {}
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    unit_kind: str
    unit_id: str
    available: bool
    remaining_capacity: int
    total_capacity: int
    window_start: datetime
    window_end: datetime
    quote: Optional[Dict[str, Any]] = None
    message: str
