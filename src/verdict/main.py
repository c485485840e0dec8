"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from verdict.agent import agent_lifespan
from verdict.api import api_router
from verdict.config import get_settings
from verdict.core.dependencies import AgentStateDep
from verdict.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: opens the database and search client alongside the HTTP server."""
    settings = get_settings()
    setup_logging(settings)

    async with agent_lifespan(settings) as state:
        app.state.agent = state
        logger.info("Verdict ready", env=settings.env)
        yield


app = FastAPI(
    title="Verdict",
    description="Tiered refresh of audience sentiment ratings for a media catalog",
    version="0.1.0",
    lifespan=lifespan,
)

# Infrastructure (no prefix, not versioned)


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness check: always ok if process is running."""
    return {"status": "ok"}


@app.get("/ready")
async def ready(state: AgentStateDep) -> dict[str, str]:
    """Readiness check: verifies infrastructure is connected."""
    checks: dict[str, str] = {}
    if state.db is None:
        checks["db"] = "error"
    else:
        try:
            checks["db"] = "ok" if await state.db.ping() else "error"
        except Exception:
            logger.exception("Database readiness check failed")
            checks["db"] = "error"
    checks["search"] = "ok" if state.search_client else "disabled"
    if state.scheduler is None:
        checks["scheduler"] = "disabled"
    else:
        checks["scheduler"] = "ok" if state.scheduler.running else "error"
    status = "ready" if all(v != "error" for v in checks.values()) else "not_ready"
    return {"status": status, **checks}


# Domain API
app.include_router(api_router, prefix="/api/v1")
