"""
Main FastAPI application for the stakeflow backend.
Configures the API server with routes, middleware, and the cron orchestrator.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

import structlog

from stakeflow.core.config import settings
from stakeflow.core.database import check_connection, close_database, init_database
from stakeflow.core.logging import setup_logging
from stakeflow.api.middleware import add_middleware
from stakeflow.api.schemas.common import HealthCheckResponse
from stakeflow.api.routes import cron, rewards, statistics
from stakeflow.gateway import PersistenceGateway
from stakeflow.gateway.sqlalchemy_gateway import SQLAlchemyGateway, get_gateway
from stakeflow.scheduler.cron_scheduler import CronOrchestrator, get_cron_orchestrator
from stakeflow.utils.time import utc_now


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting stakeflow API server")

    try:
        if isinstance(app.state.gateway, SQLAlchemyGateway):
            await init_database()
        await app.state.orchestrator.start()
    except Exception as e:
        logger.error("Failed to start background services", error=str(e))

    yield

    logger.info("Shutting down stakeflow API server")

    try:
        await app.state.orchestrator.stop()
        if isinstance(app.state.gateway, SQLAlchemyGateway):
            await close_database()
    except Exception as e:
        logger.error("Error during shutdown", error=str(e))


def create_app(
    gateway: Optional[PersistenceGateway] = None,
    orchestrator: Optional[CronOrchestrator] = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Create and configure FastAPI application."""
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="""
        Backend API for the staking rewards dashboard.

        * **Cron control** - trigger reward, statistics and snapshot jobs; inspect status and health
        * **Statistics** - stored daily, weekly and monthly rollups and protocol performance
        * **Snapshots** - daily portfolio history, on-demand snapshots and the portfolio dashboard
        * **Rewards** - list, inspect and claim rewards

        All responses use the envelope `{success, data | error, message, timestamp}`.
        """,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.state.gateway = gateway or get_gateway()
    app.state.orchestrator = orchestrator or get_cron_orchestrator()
    app.state.clock = clock

    add_middleware(app)

    @app.get(
        "/health",
        response_model=HealthCheckResponse,
        tags=["System"],
        summary="Health Check",
        description="Check API server liveness and database connectivity"
    )
    async def health_check():
        services = {"api": "healthy"}
        if isinstance(app.state.gateway, SQLAlchemyGateway):
            if not await check_connection():
                services["database"] = "unhealthy"
                return JSONResponse(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    content=HealthCheckResponse(
                        status="unhealthy",
                        version=settings.app_version,
                        services=services,
                    ).model_dump(mode="json")
                )
            services["database"] = "healthy"
        return HealthCheckResponse(version=settings.app_version, services=services)

    app.include_router(cron.router, prefix=f"{settings.api_prefix}/cron", tags=["Cron"])
    app.include_router(statistics.router, prefix=f"{settings.api_prefix}/statistics", tags=["Statistics"])
    app.include_router(rewards.router, prefix=f"{settings.api_prefix}/rewards", tags=["Rewards"])

    return app


def main():
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "stakeflow.api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.is_development and settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
