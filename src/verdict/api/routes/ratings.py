"""Rating refresh endpoints: trigger a run or one item, read run history and tiers."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from verdict.core.constants import RUN_SUMMARY_HISTORY_DEFAULT
from verdict.core.dependencies import OrchestratorDep
from verdict.core.exceptions import (
    AttemptLimitReached,
    ItemNotFoundError,
    RefreshError,
    SearchNotConfigured,
)
from verdict.core.logging import get_logger
from verdict.refresh.models import RefreshTier, RunSummary

logger = get_logger(__name__)

router = APIRouter()


class RunRequest(BaseModel):
    limit: int | None = Field(default=None, ge=1)
    dry_run: bool = False


@router.post("/run")
async def trigger_run(
    orchestrator: OrchestratorDep, body: RunRequest | None = None
) -> dict[str, Any]:
    """Run a refresh now and return its report."""
    body = body or RunRequest()
    try:
        report = await orchestrator.run(limit=body.limit, dry_run=body.dry_run)
    except RefreshError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return report.as_dict()


@router.post("/items/{item_id}")
async def refresh_item(
    orchestrator: OrchestratorDep,
    item_id: UUID,
    force: bool = Query(default=False, description="Ignore today's fetch attempt limit"),
) -> dict[str, Any]:
    """Refresh one item now, outside its tier cadence."""
    try:
        result = await orchestrator.refresh_item(item_id, force=force)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except AttemptLimitReached as e:
        raise HTTPException(status_code=429, detail=e.message)
    except SearchNotConfigured as e:
        raise HTTPException(status_code=503, detail=e.message)
    return result.as_dict()


@router.get("/summaries")
async def list_summaries(
    orchestrator: OrchestratorDep,
    limit: int = Query(default=RUN_SUMMARY_HISTORY_DEFAULT, ge=1, le=365),
) -> list[RunSummary]:
    """Most recent run summaries, newest first."""
    return await orchestrator.run_history(limit)


@router.get("/tiers")
async def tier_distribution(orchestrator: OrchestratorDep) -> dict[str, Any]:
    """Item counts per refresh tier; ``unassigned`` counts items never classified."""
    distribution = await orchestrator.tier_distribution()
    tiers = {
        RefreshTier(tier).name.lower(): count
        for tier, count in distribution.items()
        if tier is not None
    }
    return {
        "tiers": tiers,
        "unassigned": distribution.get(None, 0),
        "total": sum(distribution.values()),
    }


@router.get("/status")
async def refresh_status(orchestrator: OrchestratorDep) -> dict[str, Any]:
    return orchestrator.describe()
