"""Start and stop the refresh service's long-lived resources."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from verdict.agent.scheduler import create_scheduler, schedule_rating_refresh
from verdict.core.logging import get_logger
from verdict.providers.factory import create_search_client
from verdict.refresh.orchestrator import RefreshOrchestrator
from verdict.storage.catalog import PostgresCatalogStore
from verdict.storage.database import close_database, init_database

if TYPE_CHECKING:
    from apscheduler.schedulers.asyncio import AsyncIOScheduler

    from verdict.config import Settings
    from verdict.providers.search.client import SearchClient
    from verdict.storage.database import Database

logger = get_logger(__name__)


@dataclass
class AgentState:
    """Holds references to all running service resources."""

    db: Database | None
    settings: Settings
    orchestrator: RefreshOrchestrator | None
    search_client: SearchClient | None = None
    scheduler: AsyncIOScheduler | None = None


@asynccontextmanager
async def agent_lifespan(settings: Settings) -> AsyncIterator[AgentState]:
    """Async context manager that starts/stops the refresh service.

    A missing database leaves the API up without an orchestrator; missing
    search credentials leave runs able to select and dry-run only.
    """
    db: Database | None = None
    search_client: SearchClient | None = None
    orchestrator: RefreshOrchestrator | None = None
    scheduler: AsyncIOScheduler | None = None

    try:
        # 1. Connect to PostgreSQL
        try:
            logger.debug("Connecting to PostgreSQL")
            db = await init_database(
                settings.database_url,
                min_size=settings.database_pool_min_size,
                max_size=settings.database_pool_max_size,
            )
            logger.debug("PostgreSQL connected")
        except Exception as e:
            logger.warning("PostgreSQL connection failed, refresh runs disabled", error=str(e))

        # 2. Search provider
        if settings.search_configured:
            search_client = create_search_client(settings)
        else:
            logger.warning("DataForSEO credentials not set, only dry runs are possible")

        # 3. Orchestrator + daily schedule
        if db:
            orchestrator = RefreshOrchestrator(PostgresCatalogStore(db), search_client, settings)

            if settings.rating_update_schedule_enabled:
                scheduler = create_scheduler()
                schedule_rating_refresh(scheduler, orchestrator, settings)
                scheduler.start()

        logger.info(
            "Refresh service ready",
            db_enabled=db is not None,
            search_enabled=search_client is not None,
            schedule_enabled=scheduler is not None,
        )

        yield AgentState(
            db=db,
            settings=settings,
            orchestrator=orchestrator,
            search_client=search_client,
            scheduler=scheduler,
        )

    finally:
        logger.info("Shutting down refresh service...")

        if scheduler and scheduler.running:
            scheduler.shutdown(wait=False)
            logger.debug("Scheduler stopped")

        if search_client:
            await search_client.close()

        if db:
            await close_database()

        logger.info("Refresh service stopped")
