"""
Concurrency helpers

Tests cover:
- Row locks are only taken where the dialect supports them
- The conditional insert writes nothing when its guard fails
- Reservation writes and status updates go through the lock helper
"""

import uuid
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

from sqlalchemy import literal

from wayfare.models import Reservation, Room, UnitKind
from wayfare.utils.db_helpers import acquire_row_lock, conditional_insert, is_postgres, is_sqlite


class TestRowLock:
    def test_uses_for_update_on_postgres(self):
        db = MagicMock()
        db.bind.dialect.name = 'postgresql'

        query_mock = MagicMock()
        filter_mock = MagicMock()
        query_mock.filter.return_value = filter_mock
        db.query.return_value = query_mock

        acquire_row_lock(db, Room, Room.id == 'room-1', nowait=True)

        filter_mock.with_for_update.assert_called_once_with(nowait=True)

    def test_skips_locking_on_sqlite(self):
        db = MagicMock()
        db.bind.dialect.name = 'sqlite'

        query_mock = MagicMock()
        filter_mock = MagicMock()
        query_mock.filter.return_value = filter_mock
        db.query.return_value = query_mock

        acquire_row_lock(db, Room, Room.id == 'room-1')

        filter_mock.with_for_update.assert_not_called()
        filter_mock.first.assert_called_once()

    def test_dialect_detection(self, db):
        assert is_sqlite(db)
        assert not is_postgres(db)


class TestConditionalInsert:
    def _values(self):
        return {
            "id": str(uuid.uuid4()),
            "unit_kind": "room",
            "unit_id": "room-1",
            "user_id": "user-1",
            "status": "pending",
            "guest_name": "Ana Silva",
            "guests": 1,
            "currency": "EUR",
            "start_at": datetime(2030, 1, 1),
            "end_at": datetime(2030, 1, 3),
        }

    def test_inserts_when_guard_holds(self, db):
        values = self._values()

        conditional_insert(db, Reservation, values, literal(1) == 1)
        db.commit()

        stored = db.get(Reservation, values["id"])
        assert stored is not None
        assert stored.start_at == datetime(2030, 1, 1)

    def test_skips_when_guard_fails(self, db):
        values = self._values()

        conditional_insert(db, Reservation, values, literal(1) == 0)
        db.commit()

        assert db.get(Reservation, values["id"]) is None


class TestReservationLocking:
    """Writes lock the row they depend on"""

    def test_create_locks_unit(self, service, make_room, base_day, at, guest_payload):
        room = make_room()

        with patch(
            "wayfare.services.availability_service.acquire_row_lock",
            wraps=acquire_row_lock,
        ) as lock:
            service.create_reservation(
                UnitKind.ROOM, room.id, (at(base_day), at(base_day + timedelta(days=1))), guest_payload()
            )

        assert lock.call_args[0][1] is Room

    def test_status_update_locks_reservation(self, service, make_room, base_day, at, guest_payload):
        room = make_room()
        reservation = service.create_reservation(
            UnitKind.ROOM, room.id, (at(base_day), at(base_day + timedelta(days=1))), guest_payload()
        )

        with patch(
            "wayfare.services.availability_service.acquire_row_lock",
            wraps=acquire_row_lock,
        ) as lock:
            service.transition_status(reservation.id, "confirmed")

        assert lock.call_args[0][1] is Reservation
