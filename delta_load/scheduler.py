import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from core.config import settings
from core.database import source_session_scope
from core.exceptions import ETLException, ConcurrentRunDetectedError
from delta_load.runner import LoadRunner
from delta_load.sources import SqlSalesSource

logger = logging.getLogger(__name__)


class LoadScheduler:
    def __init__(self, interval_minutes: int = None):
        self.interval_minutes = interval_minutes or settings.LOAD_INTERVAL_MINUTES
        self.scheduler = AsyncIOScheduler()
        self.engine = create_async_engine(settings.DATABASE_URL, echo=False)
        self.SessionLocal = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def run_load_job(self):
        """Job to run one delta load"""
        logger.info("Scheduler: Starting delta load")
        async with self.SessionLocal() as session:
            async with source_session_scope(session) as source_session:
                runner = LoadRunner(session, source=SqlSalesSource(source_session))
                try:
                    result = await runner.run(note="scheduled")
                    logger.info(
                        f"Scheduler: Run {result['run_id']} loaded {result['records_loaded']} rows"
                    )
                except ConcurrentRunDetectedError as e:
                    logger.warning(f"Scheduler: Skipped, another run is active - {e.message}")
                except ETLException as e:
                    # Outcome is already recorded in the run log
                    logger.error(f"Scheduler: Delta load failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_load_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="internet_sales_delta_load",
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"Delta load scheduler started (every {self.interval_minutes} minutes)")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Delta load scheduler stopped")
