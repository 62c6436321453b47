"""
Reservation Status Auto-Update Service

Moves reservations along their lifecycle based on dates:
- In-progress stays and rentals whose end has passed -> completed
- In-progress transfers whose pickup (plus buffer) has passed -> completed
- Confirmed reservations whose start has passed are only reported (no-shows stay manual)
"""

import logging
from datetime import datetime, timedelta
from typing import Tuple, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from ..config import Settings, get_settings
from ..models.inventory import UnitKind
from ..models.reservation import Reservation, ReservationStatus, IN_PROGRESS_STATUS
from ..utils.exceptions import WayfareError
from .availability_service import AvailabilityService

logger = logging.getLogger(__name__)


class ReservationStatusUpdater:
    """
    Periodic job body. Every change goes through
    AvailabilityService.transition_status so the lifecycle graph applies.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.service = AvailabilityService(db, self.settings)

    def _finished_before(self, reservation: Reservation, now: datetime) -> bool:
        if reservation.unit_kind == UnitKind.TRANSFER_VEHICLE.value:
            buffer = timedelta(hours=self.settings.transfer_buffer_hours)
            return reservation.end_at + buffer <= now
        return reservation.end_at <= now

    def auto_complete_expired(self, now: Optional[datetime] = None) -> Tuple[int, List[str]]:
        """
        Complete in-progress reservations whose interval is over.

        Returns:
            Tuple of (count_updated, list_of_reservation_ids)
        """
        now = now or datetime.utcnow()
        in_progress = sorted({status.value for status in IN_PROGRESS_STATUS.values()})

        candidates = self.db.query(Reservation).filter(
            and_(
                Reservation.status.in_(in_progress),
                Reservation.end_at <= now
            )
        ).all()

        updated_ids = []
        for reservation in candidates:
            if not self._finished_before(reservation, now):
                continue
            try:
                self.service.transition_status(reservation.id, ReservationStatus.COMPLETED)
                updated_ids.append(reservation.id)
            except WayfareError as e:
                # Changed concurrently (e.g. cancelled); skip it
                logger.warning(f"Could not auto-complete reservation {reservation.id}: {e.message}")

        if updated_ids:
            logger.info(f"Auto-completed {len(updated_ids)} expired reservations")

        return len(updated_ids), updated_ids

    def get_overdue_confirmed(self, now: Optional[datetime] = None) -> List[Reservation]:
        """Confirmed reservations whose start has passed without check-in/pickup"""
        now = now or datetime.utcnow()
        return self.db.query(Reservation).filter(
            and_(
                Reservation.status == ReservationStatus.CONFIRMED.value,
                Reservation.start_at < now
            )
        ).all()

    def run_all_auto_updates(self, now: Optional[datetime] = None) -> dict:
        results = {
            "completed_count": 0,
            "completed_ids": [],
            "overdue_count": 0
        }

        completed_count, completed_ids = self.auto_complete_expired(now)
        results["completed_count"] = completed_count
        results["completed_ids"] = completed_ids

        overdue = self.get_overdue_confirmed(now)
        results["overdue_count"] = len(overdue)
        if overdue:
            logger.warning(f"Found {len(overdue)} confirmed reservations past their start time")

        return results
