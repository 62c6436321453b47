from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum


class UnitStatus(str, Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class RoomType(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    TWIN = "twin"
    SUITE = "suite"
    FAMILY = "family"
    DORMITORY = "dormitory"


class VehicleCategory(str, Enum):
    ECONOMY = "economy"
    COMPACT = "compact"
    MIDSIZE = "midsize"
    FULLSIZE = "fullsize"
    SUV = "suv"
    LUXURY = "luxury"
    VAN = "van"


class Transmission(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class TransferVehicleCategory(str, Enum):
    SEDAN = "sedan"
    SUV = "suv"
    VAN = "van"
    MINIBUS = "minibus"
    BUS = "bus"
    LUXURY = "luxury"


def _clean_tags(v):
    if v is None:
        return []
    return sorted({t.strip().lower() for t in v if t and t.strip()})


class UnitBase(BaseModel):
    provider_id: str = Field(..., min_length=1, max_length=36)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    currency: str = Field("USD", min_length=3, max_length=3)

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class RoomCreate(UnitBase):
    property_name: str = Field(..., min_length=1, max_length=200)
    name: str = Field(..., min_length=1, max_length=200)
    room_type: RoomType = RoomType.DOUBLE
    amenities: List[str] = []
    total_rooms: int = Field(1, ge=1, le=1000, description="Identical rooms of this type")
    max_adults: int = Field(2, ge=1, le=50)
    max_children: int = Field(0, ge=0, le=50)
    min_stay: int = Field(1, ge=1)
    max_stay: Optional[int] = Field(None, ge=1)
    base_price: Decimal = Field(..., ge=0, description="Price per night")
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    cleaning_fee: Decimal = Field(Decimal("0"), ge=0)

    @field_validator('amenities', mode='before')
    @classmethod
    def normalize_amenities(cls, v):
        return _clean_tags(v)

    @model_validator(mode='after')
    def validate_stay_limits(self):
        if self.max_stay is not None and self.max_stay < self.min_stay:
            raise ValueError('max_stay must be greater than or equal to min_stay')
        return self


class VehicleCreate(UnitBase):
    make: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    category: VehicleCategory = VehicleCategory.ECONOMY
    transmission: Transmission = Transmission.AUTOMATIC
    seats: int = Field(5, ge=1, le=60)
    features: List[str] = []
    fleet_size: int = Field(1, ge=1, le=500, description="Identical cars under this listing")
    daily_rate: Decimal = Field(..., ge=0)
    weekly_rate: Optional[Decimal] = Field(None, ge=0)
    monthly_rate: Optional[Decimal] = Field(None, ge=0)
    insurance_fee: Decimal = Field(Decimal("0"), ge=0, description="Per day")
    deposit: Decimal = Field(Decimal("0"), ge=0)

    @field_validator('features', mode='before')
    @classmethod
    def normalize_features(cls, v):
        return _clean_tags(v)


class TransferVehicleCreate(UnitBase):
    make: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    category: TransferVehicleCategory = TransferVehicleCategory.SEDAN
    passengers: int = Field(3, ge=1, le=60)
    luggage: int = Field(2, ge=0, le=60)
    airport: Optional[str] = Field(None, min_length=3, max_length=4)
    features: List[str] = []
    base_price: Decimal = Field(..., ge=0)
    price_per_km: Decimal = Field(Decimal("0"), ge=0)
    airport_surcharge: Decimal = Field(Decimal("0"), ge=0)
    night_surcharge: Decimal = Field(Decimal("0"), ge=0)

    @field_validator('features', mode='before')
    @classmethod
    def normalize_features(cls, v):
        return _clean_tags(v)


class UnitStatusUpdate(BaseModel):
    status: UnitStatus


class UnitResponse(BaseModel):
    id: str
    kind: str
    provider_id: str
    status: str
    city: str
    country: str
    currency: str
    total_capacity: int
    title: str
    pricing: dict
    tags: List[str] = []
    created_at: datetime
    updated_at: datetime
