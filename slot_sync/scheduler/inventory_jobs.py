"""
Inventory cadences: three independent jobs, each running one batch over its own date window.

- daily at midnight:  T+1 .. T+30
- every 4 hours:      T+0 .. T+6
- every minute:       T

Windows overlap on purpose (near-term dates are refreshed far more often). Each job is
registered with max_instances=1 + coalesce: if a cadence fires while its previous run is still
going, APScheduler skips it. Different cadences may run at the same time; the per-(product, date)
merge lock and the serialized rate limiter keep that safe.
"""
import logging
import threading
from datetime import date

from apscheduler.schedulers.base import BaseScheduler

from slot_sync.config import settings
from slot_sync.core.constants import (
    DAILY_WINDOW,
    INVENTORY_DAILY_JOB_ID,
    INVENTORY_NEAR_TERM_JOB_ID,
    INVENTORY_TODAY_JOB_ID,
    NEAR_TERM_INTERVAL_HOURS,
    NEAR_TERM_WINDOW,
    TODAY_INTERVAL_MINUTES,
    TODAY_WINDOW,
)
from slot_sync.core.dates import date_window, today_in
from slot_sync.services.sync import BatchResult, SyncOrchestrator

logger = logging.getLogger(__name__)

_orchestrator: SyncOrchestrator | None = None
_lock = threading.Lock()


def _get_orchestrator() -> SyncOrchestrator:
    global _orchestrator
    with _lock:
        if _orchestrator is None:
            _orchestrator = SyncOrchestrator()
        return _orchestrator


def window_dates(window: tuple[int, int], today: date | None = None) -> list[date]:
    """Dates for a (start offset, days) window relative to today in SYNC_TIMEZONE."""
    start_offset, days = window
    return date_window(start_offset, days, today or today_in(settings.sync_timezone))


def run_window(
    window: tuple[int, int],
    *,
    today: date | None = None,
    orchestrator: SyncOrchestrator | None = None,
) -> BatchResult:
    dates = window_dates(window, today)
    return (orchestrator or _get_orchestrator()).run_batch(dates)


def run_daily_job() -> None:
    logger.info("Starting daily fetch for next %s days", DAILY_WINDOW[1])
    run_window(DAILY_WINDOW)


def run_near_term_job() -> None:
    logger.info("Starting %s-hourly fetch for next %s days", NEAR_TERM_INTERVAL_HOURS, NEAR_TERM_WINDOW[1])
    run_window(NEAR_TERM_WINDOW)


def run_today_job() -> None:
    logger.debug("Starting fetch for today")
    run_window(TODAY_WINDOW)


def register_jobs(scheduler: BaseScheduler) -> None:
    """Add the three cadences. Overlapping runs of the same cadence are skipped, not queued."""
    common = {"max_instances": 1, "coalesce": True, "replace_existing": True}
    scheduler.add_job(
        run_daily_job,
        "cron",
        hour=0,
        minute=0,
        timezone=settings.sync_timezone,
        id=INVENTORY_DAILY_JOB_ID,
        **common,
    )
    scheduler.add_job(
        run_near_term_job,
        "cron",
        hour=f"*/{NEAR_TERM_INTERVAL_HOURS}",
        minute=0,
        timezone=settings.sync_timezone,
        id=INVENTORY_NEAR_TERM_JOB_ID,
        **common,
    )
    scheduler.add_job(
        run_today_job,
        "interval",
        minutes=TODAY_INTERVAL_MINUTES,
        id=INVENTORY_TODAY_JOB_ID,
        **common,
    )
