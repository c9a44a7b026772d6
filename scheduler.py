import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import sessionmaker

from config import get_settings
from database import session_scope
from errors import StoreFailure
from services import AutoSaveRunner


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class SchedulerManager:
    def __init__(self, session_factory: Optional[sessionmaker] = None) -> None:
        settings = get_settings()
        self.session_factory = session_factory
        self.interval_minutes = settings.auto_save_interval_minutes
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def _run_job(self, source: str = "manual") -> int:
        logger.info(f"scheduler_run: source={source}")
        try:
            with session_scope(self.session_factory) as session:
                count = AutoSaveRunner(session).run_due()
        except StoreFailure:
            logger.exception(f"scheduler_run_failed: source={source}")
            return 0
        logger.info(f"scheduler_run: source={source} auto_saves_applied={count}")
        return count

    def start(self) -> None:
        self._run_job("startup")

        trigger = IntervalTrigger(minutes=self.interval_minutes)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=["interval"],
            id="goal_auto_save",
            replace_existing=True,
            misfire_grace_time=300,
        )

        self.scheduler.start()
        logger.info(f"Scheduler started with auto-save every {self.interval_minutes} minutes")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
