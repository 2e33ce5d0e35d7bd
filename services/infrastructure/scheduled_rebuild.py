import asyncio
from typing import Optional

from services.core.recommendation_engine import RecommendationEngine
from utils.logger import setup_logger

logger = setup_logger(__name__)

RETRY_DELAY_SECONDS = 60


class ScheduledSimilarityRebuild:
    """Periodically recomputes both similarity matrices off the request path."""

    def __init__(self, engine: RecommendationEngine, interval_minutes: float):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")

        self.engine = engine
        self.interval_minutes = interval_minutes
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.completed_runs = 0

    async def run_once(self) -> dict:
        result = await asyncio.to_thread(self.engine.rebuild_similarities)
        self.completed_runs += 1
        logger.info("Scheduled similarity rebuild completed", extra=result)
        return result

    async def run_scheduled_rebuild(self):
        self.running = True

        logger.info(
            "Scheduled similarity rebuild started",
            extra={"interval_minutes": self.interval_minutes}
        )

        while self.running:
            try:
                await asyncio.sleep(self.interval_minutes * 60)

                if not self.running:
                    break

                await self.run_once()

            except asyncio.CancelledError:
                logger.info("Scheduled similarity rebuild cancelled")
                break
            except Exception as e:
                logger.error(
                    "Unexpected error in scheduled similarity rebuild",
                    extra={"error": str(e)},
                    exc_info=True
                )
                await asyncio.sleep(RETRY_DELAY_SECONDS)

    def start(self):
        if self.task is None or self.task.done():
            self.task = asyncio.create_task(self.run_scheduled_rebuild())
            logger.info("Scheduled similarity rebuild task created")

    async def stop(self):
        self.running = False

        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass

        logger.info("Scheduled similarity rebuild stopped")
