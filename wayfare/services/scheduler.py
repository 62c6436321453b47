"""
Status Scheduler Service

Runs ReservationStatusUpdater on a fixed interval inside the web process.
Uses APScheduler (AsyncIOScheduler + IntervalTrigger).
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import settings
from ..database import SessionLocal
from .reservation_status_updater import ReservationStatusUpdater

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None
_last_run_time: Optional[datetime] = None
_last_run_result: Optional[Dict] = None


async def run_status_update_job():
    """
    Async job function called by the scheduler.

    Creates a database session, runs the updater, and cleans up.
    """
    global _last_run_time, _last_run_result

    db = SessionLocal()
    try:
        result = ReservationStatusUpdater(db).run_all_auto_updates()
        _last_run_time = datetime.utcnow()
        _last_run_result = result
        logger.info(f"Status update job result: {result}")
    except Exception as e:
        logger.error(f"Status update job failed: {e}")
    finally:
        db.close()


def start_status_scheduler(interval_minutes: Optional[int] = None) -> bool:
    """
    Start the status scheduler.

    Returns:
        True if the scheduler is running (or disabled on purpose), False on failure
    """
    global _scheduler

    interval = interval_minutes if interval_minutes is not None else settings.status_update_interval_minutes
    if interval <= 0:
        logger.info("Status scheduler disabled (STATUS_UPDATE_INTERVAL_MINUTES=0)")
        return True

    if _scheduler is not None and _scheduler.running:
        logger.warning("Status scheduler is already running")
        return True

    try:
        _scheduler = AsyncIOScheduler(timezone="UTC")
        _scheduler.add_job(
            run_status_update_job,
            IntervalTrigger(minutes=interval),
            id="reservation_status_update",
            name=f"Reservation status update every {interval} min",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        _scheduler.start()
        logger.info(f"Status scheduler started (every {interval} min)")
        return True

    except Exception as e:
        logger.error(f"Failed to start status scheduler: {e}")
        return False


def stop_status_scheduler() -> bool:
    """Stop the status scheduler gracefully."""
    global _scheduler

    if _scheduler is None:
        return True

    try:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Status scheduler stopped")
        return True
    except Exception as e:
        logger.error(f"Failed to stop status scheduler: {e}")
        return False


def get_scheduler_status() -> Dict:
    """Scheduler state for the health endpoint"""
    jobs = []
    if _scheduler is not None and _scheduler.running:
        for job in _scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None
            })

    return {
        "running": _scheduler is not None and _scheduler.running,
        "jobs": jobs,
        "last_run_time": _last_run_time.isoformat() if _last_run_time else None,
        "last_run_result": _last_run_result
    }
