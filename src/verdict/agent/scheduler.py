"""Job scheduler for the daily rating refresh."""

from __future__ import annotations

from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from verdict.core.exceptions import RefreshError
from verdict.core.logging import get_logger

if TYPE_CHECKING:
    from verdict.config import Settings
    from verdict.refresh.orchestrator import RefreshOrchestrator

logger = get_logger(__name__)

RATING_REFRESH_JOB_ID = "rating_refresh"


def create_scheduler() -> AsyncIOScheduler:
    """Create a new scheduler instance."""
    return AsyncIOScheduler(timezone="UTC")


async def rating_refresh_job(orchestrator: RefreshOrchestrator) -> None:
    """Run one scheduled refresh pass."""
    try:
        report = await orchestrator.run()
        if report.skipped:
            return
        if not report.ok:
            logger.error("Scheduled rating refresh aborted", error=report.error)
            return
        logger.info(
            "Scheduled rating refresh finished",
            processed=report.counters.processed,
            updated=report.counters.updated,
            failed=report.counters.failed,
        )
    except RefreshError as e:
        logger.warning("Scheduled rating refresh skipped", reason=e.message)
    except Exception:
        logger.exception("Rating refresh job failed")


def schedule_rating_refresh(
    scheduler: AsyncIOScheduler,
    orchestrator: RefreshOrchestrator,
    settings: Settings,
) -> None:
    """Register the daily refresh at ``rating_update_cron_hour`` UTC."""
    scheduler.add_job(
        rating_refresh_job,
        CronTrigger(hour=settings.rating_update_cron_hour, timezone="UTC"),
        args=[orchestrator],
        id=RATING_REFRESH_JOB_ID,
        max_instances=1,
        misfire_grace_time=None,
        replace_existing=True,
    )
    logger.info("Rating refresh scheduled", hour_utc=settings.rating_update_cron_hour)
