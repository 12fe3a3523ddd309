"""
Standalone entry point for the cron scheduler service.
Runs the orchestrator without the HTTP API.
"""

import asyncio
import signal

import structlog

from stakeflow.core.database import close_database, init_database
from stakeflow.core.logging import setup_logging
from .cron_scheduler import CronOrchestrator, get_cron_orchestrator


logger = structlog.get_logger(__name__)

HEALTH_CHECK_INTERVAL = 300


class SchedulerMain:
    """Main scheduler service coordinator."""

    def __init__(self):
        self.orchestrator: CronOrchestrator = None
        self._stop_event = asyncio.Event()

    async def initialize(self):
        """Initialize scheduler components."""
        try:
            logger.info("Initializing scheduler service")
            await init_database()
            self.orchestrator = get_cron_orchestrator()
            logger.info("Scheduler service initialized successfully")
        except Exception as e:
            logger.error("Failed to initialize scheduler", error=str(e))
            raise

    async def start(self):
        """Start the orchestrator and block until stop() is called."""
        logger.info("Starting scheduler service")
        await self.orchestrator.start()

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=HEALTH_CHECK_INTERVAL)
            except asyncio.TimeoutError:
                health = self.orchestrator.health_check()
                if health["healthy"]:
                    logger.info("Scheduler health check", **health)
                else:
                    logger.warning("Scheduler unhealthy", **health)

    async def stop(self):
        """Stop the scheduler service."""
        logger.info("Stopping scheduler service")
        self._stop_event.set()
        if self.orchestrator:
            await self.orchestrator.stop()
        await close_database()
        logger.info("Scheduler service stopped")


async def main():
    """Main function to run the scheduler service."""
    setup_logging()

    scheduler = SchedulerMain()
    loop = asyncio.get_running_loop()

    def signal_handler(signum):
        logger.info(f"Received signal {signum}, shutting down...")
        scheduler._stop_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, signal_handler, signum)

    try:
        await scheduler.initialize()
        await scheduler.start()
    except Exception as e:
        logger.error("Scheduler service failed", error=str(e))
        raise
    finally:
        await scheduler.stop()


if __name__ == "__main__":
    asyncio.run(main())
