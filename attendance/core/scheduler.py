"""Background job that promotes waitlisted attendees into open seats."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.engine import Engine
from sqlmodel import Session

from attendance.core.config import settings
from attendance.core.database import engine
from attendance.registry.errors import AttendanceError
from attendance.registry.service import AttendanceRegistry
from attendance.registry.store import EventStore

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def sweep_waitlists(bind: Engine | None = None) -> dict:
    """
    Fill open seats from the waitlist of every auto-promoting event.

    Seats open up when an event's capacity is raised or when a confirmed
    attendee is removed by hand. Each event is swept in its own session so
    one failure does not stop the rest. Returns sweep statistics.
    """
    bind = bind or engine
    stats = {"events": 0, "promoted": 0, "failed": 0}

    with Session(bind) as session:
        event_ids = EventStore(session).auto_promote_candidates()

    for event_id in event_ids:
        stats["events"] += 1
        try:
            with Session(bind) as session:
                promoted = AttendanceRegistry(session).fill_open_seats(event_id)
            stats["promoted"] += len(promoted)
        except AttendanceError as e:
            stats["failed"] += 1
            logger.warning(f"Waitlist sweep skipped event {event_id}: {e}")
        except Exception as e:
            stats["failed"] += 1
            logger.error(f"Waitlist sweep failed for event {event_id}: {e}")

    return stats


def sweep_job():
    """Background sweep job."""
    try:
        stats = sweep_waitlists()
        logger.info(f"Waitlist sweep completed: {stats}")
    except Exception as e:
        logger.error(f"Waitlist sweep failed: {e}")


def start_scheduler():
    """Start the background scheduler."""
    if settings.waitlist_sweep_interval_minutes <= 0:
        logger.info("Waitlist sweep disabled")
        return
    scheduler.add_job(
        sweep_job,
        trigger=IntervalTrigger(minutes=settings.waitlist_sweep_interval_minutes),
        id="waitlist_sweep",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started, sweeping waitlists every {settings.waitlist_sweep_interval_minutes} minutes"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")
