"""
Pricing Engine Service

Computes reservation quotes for each vertical:
- Rooms: nightly base price, tax percentage, one-off cleaning fee
- Vehicles: monthly or weekly bundles with daily remainder, per-day insurance, deposit
- Transfers: base fare, distance charge, airport and night surcharges

All amounts are Decimal and rounded to 2 places (ROUND_HALF_UP).
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional
from dataclasses import dataclass, field, asdict

from ..models.inventory import Room, Vehicle, TransferVehicle

TWO_PLACES = Decimal("0.01")

# Pickups in [22:00, 06:00) pay the night surcharge
NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6

AIRPORT_TRANSFER_TYPES = frozenset({"airport_to_city", "city_to_airport"})


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass
class PriceQuote:
    """Itemised price for one reservation"""
    total: Decimal
    currency: str
    breakdown: Dict[str, Decimal] = field(default_factory=dict)
    units: int = 0  # nights, days or 1 for a transfer
    rate_plan: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["total"] = str(self.total)
        data["breakdown"] = {k: str(v) for k, v in self.breakdown.items()}
        return data


class PricingEngine:
    """
    Stateless quote calculator.

    Pricing formulas:
    - Room:     subtotal = base_price * nights
                total = subtotal + subtotal * tax_rate / 100 + cleaning_fee
    - Vehicle:  days >= 30 with monthly_rate: months * monthly + rest * daily
                days >= 7 with weekly_rate:   weeks * weekly + rest * daily
                otherwise:                    days * daily
                total = rental + insurance_fee * days + deposit
    - Transfer: total = base_price + km * price_per_km
                        (+ airport_surcharge for airport transfers)
                        (+ night_surcharge for night pickups)
    """

    def quote_room(self, room: Room, check_in: date, check_out: date) -> PriceQuote:
        nights = (check_out - check_in).days
        subtotal = _money(room.base_price) * nights
        tax = _money(subtotal * Decimal(str(room.tax_rate or 0)) / 100)
        cleaning_fee = _money(room.cleaning_fee)

        return PriceQuote(
            total=_money(subtotal + tax + cleaning_fee),
            currency=room.currency,
            breakdown={
                "nightly_rate": _money(room.base_price),
                "subtotal": _money(subtotal),
                "tax": tax,
                "cleaning_fee": cleaning_fee,
            },
            units=nights,
        )

    def quote_vehicle(self, vehicle: Vehicle, pickup: date, return_date: date) -> PriceQuote:
        days = (return_date - pickup).days
        daily = _money(vehicle.daily_rate)

        if days >= 30 and vehicle.monthly_rate:
            months, remaining = divmod(days, 30)
            rental = months * _money(vehicle.monthly_rate) + remaining * daily
            rate_plan = "monthly"
        elif days >= 7 and vehicle.weekly_rate:
            weeks, remaining = divmod(days, 7)
            rental = weeks * _money(vehicle.weekly_rate) + remaining * daily
            rate_plan = "weekly"
        else:
            rental = days * daily
            rate_plan = "daily"

        insurance = _money(vehicle.insurance_fee) * days
        deposit = _money(vehicle.deposit)

        return PriceQuote(
            total=_money(rental + insurance + deposit),
            currency=vehicle.currency,
            breakdown={
                "daily_rate": daily,
                "rental": _money(rental),
                "insurance": _money(insurance),
                "deposit": deposit,
            },
            units=days,
            rate_plan=rate_plan,
        )

    def quote_transfer(
        self,
        vehicle: TransferVehicle,
        pickup_at: datetime,
        distance_km: Decimal = Decimal("0"),
        transfer_type: Optional[str] = None
    ) -> PriceQuote:
        base = _money(vehicle.base_price)
        distance_charge = _money(Decimal(str(distance_km or 0)) * Decimal(str(vehicle.price_per_km or 0)))

        airport = Decimal("0")
        if transfer_type in AIRPORT_TRANSFER_TYPES:
            airport = _money(vehicle.airport_surcharge)

        night = Decimal("0")
        if self.is_night_pickup(pickup_at):
            night = _money(vehicle.night_surcharge)

        return PriceQuote(
            total=_money(base + distance_charge + airport + night),
            currency=vehicle.currency,
            breakdown={
                "base_price": base,
                "distance_charge": distance_charge,
                "airport_surcharge": _money(airport),
                "night_surcharge": _money(night),
            },
            units=1,
        )

    @staticmethod
    def is_night_pickup(pickup_at: datetime) -> bool:
        return pickup_at.hour >= NIGHT_START_HOUR or pickup_at.hour < NIGHT_END_HOUR
