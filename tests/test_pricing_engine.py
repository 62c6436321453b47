"""
Pricing engine quotes per vertical.
"""

from datetime import date, datetime
from decimal import Decimal

from wayfare.models import Room, Vehicle, TransferVehicle
from wayfare.services.pricing_engine import PricingEngine


def _vehicle(**overrides):
    values = dict(
        currency="EUR",
        daily_rate=Decimal("40.00"),
        weekly_rate=Decimal("250.00"),
        monthly_rate=Decimal("900.00"),
        insurance_fee=Decimal("5.00"),
        deposit=Decimal("200.00"),
    )
    values.update(overrides)
    return Vehicle(**values)


def _transfer():
    return TransferVehicle(
        currency="EUR",
        base_price=Decimal("30.00"),
        price_per_km=Decimal("1.50"),
        airport_surcharge=Decimal("10.00"),
        night_surcharge=Decimal("15.00"),
    )


class TestRoomQuote:
    def test_nights_tax_and_cleaning(self):
        room = Room(
            currency="EUR",
            base_price=Decimal("100.00"),
            tax_rate=Decimal("10"),
            cleaning_fee=Decimal("25.00"),
        )

        quote = PricingEngine().quote_room(room, date(2030, 5, 1), date(2030, 5, 4))

        assert quote.total == Decimal("355.00")
        assert quote.units == 3
        assert quote.breakdown["subtotal"] == Decimal("300.00")
        assert quote.breakdown["tax"] == Decimal("30.00")
        assert quote.currency == "EUR"

    def test_to_dict_is_json_friendly(self):
        room = Room(currency="EUR", base_price=Decimal("99.99"), tax_rate=Decimal("0"), cleaning_fee=Decimal("0"))

        data = PricingEngine().quote_room(room, date(2030, 5, 1), date(2030, 5, 2)).to_dict()

        assert data["total"] == "99.99"
        assert data["breakdown"]["nightly_rate"] == "99.99"


class TestVehicleQuote:
    """Monthly, weekly, then daily rate plans"""

    def test_short_rental_uses_daily_rate(self):
        quote = PricingEngine().quote_vehicle(_vehicle(), date(2030, 5, 1), date(2030, 5, 4))

        # 3 * 40 + 3 * 5 insurance + 200 deposit
        assert quote.total == Decimal("335.00")
        assert quote.rate_plan == "daily"

    def test_weekly_bundle_plus_remainder(self):
        quote = PricingEngine().quote_vehicle(_vehicle(), date(2030, 5, 1), date(2030, 5, 11))

        # 250 + 3 * 40 + 10 * 5 + 200
        assert quote.breakdown["rental"] == Decimal("370.00")
        assert quote.total == Decimal("620.00")
        assert quote.rate_plan == "weekly"

    def test_monthly_bundle_plus_remainder(self):
        quote = PricingEngine().quote_vehicle(_vehicle(), date(2030, 5, 1), date(2030, 6, 5))

        # 900 + 5 * 40 + 35 * 5 + 200
        assert quote.units == 35
        assert quote.total == Decimal("1475.00")
        assert quote.rate_plan == "monthly"

    def test_missing_weekly_rate_falls_back_to_daily(self):
        quote = PricingEngine().quote_vehicle(
            _vehicle(weekly_rate=None), date(2030, 5, 1), date(2030, 5, 11)
        )

        assert quote.total == Decimal("650.00")
        assert quote.rate_plan == "daily"


class TestTransferQuote:
    def test_city_daytime(self):
        quote = PricingEngine().quote_transfer(
            _transfer(), datetime(2030, 5, 1, 12, 0), Decimal("10"), "city_to_city"
        )

        assert quote.total == Decimal("45.00")
        assert quote.units == 1

    def test_airport_at_night(self):
        quote = PricingEngine().quote_transfer(
            _transfer(), datetime(2030, 5, 1, 23, 0), Decimal("10"), "airport_to_city"
        )

        assert quote.breakdown["airport_surcharge"] == Decimal("10.00")
        assert quote.breakdown["night_surcharge"] == Decimal("15.00")
        assert quote.total == Decimal("70.00")

    def test_night_boundaries(self):
        assert PricingEngine.is_night_pickup(datetime(2030, 5, 1, 22, 0))
        assert PricingEngine.is_night_pickup(datetime(2030, 5, 1, 5, 59))
        assert not PricingEngine.is_night_pickup(datetime(2030, 5, 1, 6, 0))
        assert not PricingEngine.is_night_pickup(datetime(2030, 5, 1, 21, 59))
