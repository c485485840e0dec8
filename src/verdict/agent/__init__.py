"""Service runtime: database, search client, orchestrator and daily schedule.

Usage:
    async with agent_lifespan(settings) as state:
        report = await state.orchestrator.run()
"""

from verdict.agent.lifespan import AgentState, agent_lifespan

__all__ = ["AgentState", "agent_lifespan"]
