import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from monitoring.runner import MonitorRunner

logger = logging.getLogger(__name__)


class MonitorScheduler:
    def __init__(self, runner: MonitorRunner, interval_minutes: int = None):
        self.scheduler = AsyncIOScheduler()
        self.runner = runner
        self.interval_minutes = interval_minutes or settings.MONITOR_INTERVAL_MINUTES

    async def run_monitor_job(self):
        """Job to run one monitor pass"""
        logger.info("Scheduler: Starting monitor job")
        try:
            summary = await self.runner.run_once(trigger="scheduler")
            logger.info(
                f"Scheduler: Monitor job finished - processed={summary.processed_count}, "
                f"notified={summary.notified_count}"
            )
        except Exception as e:
            logger.error(f"Scheduler: Monitor job failed - {e}")

    def start(self):
        """Start the scheduler"""
        # One pass at a time; a slow pass swallows the ticks it overlaps
        self.scheduler.add_job(
            self.run_monitor_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="monitor_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"Monitor Scheduler started (every {self.interval_minutes} min)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Monitor Scheduler stopped")
