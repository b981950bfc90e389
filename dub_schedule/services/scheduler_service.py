import logging
from datetime import datetime, timezone
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from dub_schedule.config import settings
from dub_schedule.services.dub_refresh_service import refresh_dub_schedule


logger = logging.getLogger(__name__)

JOB_ID = 'dub_refresh'


class DubScheduleScheduler:
    """Scheduler for periodic dub schedule refreshes"""

    def __init__(self):
        self.scheduler: AsyncIOScheduler | None = None

    async def _refresh_job(self) -> None:
        """Background job that runs the dub schedule refresh"""
        logger.info("Scheduled dub schedule refresh triggered")
        try:
            result = await refresh_dub_schedule()
            if "error" in result:
                logger.error(f"Scheduled refresh failed: {result['error']}")
        except Exception as e:
            logger.error(f"Exception in scheduled refresh: {e}", exc_info=True)

    def start(self, *, run_immediately: bool = True) -> None:
        """Start the scheduler; the first refresh runs at startup unless disabled"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        trigger = IntervalTrigger(minutes=settings.refresh_interval_minutes, timezone='UTC')

        self.scheduler = AsyncIOScheduler(timezone='UTC')
        job_kwargs = {}
        if run_immediately:
            job_kwargs['next_run_time'] = datetime.now(timezone.utc)
        self.scheduler.add_job(
            self._refresh_job,
            trigger=trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.refresh_misfire_grace_sec,
            **job_kwargs
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started (every %s minutes). Next refresh: %s",
            settings.refresh_interval_minutes,
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.scheduler = None

    def is_running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled refresh time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None


dub_scheduler = DubScheduleScheduler()
