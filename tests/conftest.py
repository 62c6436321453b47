"""
Shared fixtures: in-memory SQLite database, service instances, unit
factories and an API client wired to the test database.
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wayfare.config import Settings
from wayfare.database import Base, get_db
from wayfare.models import Room, Vehicle, TransferVehicle
from wayfare.services.availability_service import AvailabilityService
from wayfare.services.chat_service import ChatService
from wayfare.utils.rate_limiter import limiter


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return Settings(transfer_buffer_hours=3, max_advance_days=730, max_stay_nights=365)


@pytest.fixture
def service(db, settings):
    return AvailabilityService(db, settings)


@pytest.fixture
def chat(db):
    return ChatService(db, max_length=5000)


@pytest.fixture
def base_day():
    """A date safely in the future so past-date rules never trigger"""
    return date.today() + timedelta(days=30)


@pytest.fixture
def at():
    def _at(day: date, hour: int = 0, minute: int = 0) -> datetime:
        return datetime.combine(day, datetime.min.time()).replace(hour=hour, minute=minute)
    return _at


@pytest.fixture
def make_room(db):
    def _make(**overrides):
        values = dict(
            provider_id="provider-1",
            city="Lisbon",
            country="Portugal",
            currency="EUR",
            property_name="Hotel Alfama",
            name="Deluxe Double",
            room_type="double",
            amenities='["minibar", "wifi"]',
            total_rooms=1,
            max_adults=2,
            max_children=1,
            min_stay=1,
            base_price=Decimal("100.00"),
            tax_rate=Decimal("10"),
            cleaning_fee=Decimal("25.00"),
        )
        values.update(overrides)
        room = Room(**values)
        db.add(room)
        db.commit()
        db.refresh(room)
        return room
    return _make


@pytest.fixture
def make_vehicle(db):
    def _make(**overrides):
        values = dict(
            provider_id="provider-2",
            city="Lisbon",
            country="Portugal",
            currency="EUR",
            make="Toyota",
            model="Corolla",
            year=2023,
            category="compact",
            seats=5,
            features='["bluetooth", "gps"]',
            fleet_size=1,
            daily_rate=Decimal("40.00"),
            weekly_rate=Decimal("250.00"),
            monthly_rate=Decimal("900.00"),
            insurance_fee=Decimal("5.00"),
            deposit=Decimal("200.00"),
        )
        values.update(overrides)
        vehicle = Vehicle(**values)
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return vehicle
    return _make


@pytest.fixture
def make_transfer_vehicle(db):
    def _make(**overrides):
        values = dict(
            provider_id="provider-3",
            city="Lisbon",
            country="Portugal",
            currency="EUR",
            make="Mercedes",
            model="V-Class",
            category="van",
            passengers=7,
            luggage=6,
            airport="LIS",
            features='["wifi"]',
            base_price=Decimal("30.00"),
            price_per_km=Decimal("1.50"),
            airport_surcharge=Decimal("10.00"),
            night_surcharge=Decimal("15.00"),
        )
        values.update(overrides)
        vehicle = TransferVehicle(**values)
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return vehicle
    return _make


@pytest.fixture
def guest_payload():
    def _payload(**overrides) -> dict:
        payload = {
            "user_id": "user-1",
            "guest_name": "Ana Silva",
            "guest_email": "ana@example.com",
            "guests": 1,
        }
        payload.update(overrides)
        return payload
    return _payload


@pytest.fixture
def client(session_factory):
    """API client on the test database with rate limits off"""
    from wayfare.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        limiter.enabled = True
        app.dependency_overrides.clear()
