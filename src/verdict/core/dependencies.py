"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from verdict.agent import AgentState
from verdict.refresh.orchestrator import RefreshOrchestrator


async def get_agent_state(request: Request) -> AgentState:
    """Get AgentState from app.state (set during lifespan)."""
    return request.app.state.agent  # type: ignore[no-any-return]


async def get_orchestrator(
    state: Annotated[AgentState, Depends(get_agent_state)],
) -> RefreshOrchestrator:
    """Get the refresh orchestrator, or 503 when the database is down."""
    if state.orchestrator is None:
        raise HTTPException(status_code=503, detail="Refresh service not available (no database)")
    return state.orchestrator


# Annotated dependencies for use in route handlers
AgentStateDep = Annotated[AgentState, Depends(get_agent_state)]
OrchestratorDep = Annotated[RefreshOrchestrator, Depends(get_orchestrator)]
