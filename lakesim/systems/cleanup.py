"""Cleanup system: the only phase that removes agents from the registry.

Runs last in the tick with the registry unlocked. It applies queued removal
requests, expires agents that have swum past the horizontal buffer, removes
everything no longer alive, and then purges school memberships and target
caches so nothing refers to an agent that is gone. Running it twice in the
same tick does nothing the second time.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict

from lakesim.events.domain_events import AgentRemoved
from lakesim.systems.base import BaseSystem, SystemResult
from lakesim.update_phases import TickPhase, runs_in_phase

if TYPE_CHECKING:
    from lakesim.config.simulation_config import SimulationConfig
    from lakesim.simulation.context import SimulationContext
    from lakesim.systems.schooling import SchoolCoordinator

logger = logging.getLogger(__name__)


@runs_in_phase(TickPhase.CLEANUP)
class CleanupSystem(BaseSystem):
    def __init__(self, config: "SimulationConfig", schools: "SchoolCoordinator") -> None:
        super().__init__(config, "CleanupSystem")
        self._schools = schools
        self._removed_by_reason: Dict[str, int] = {}

    def _do_update(self, ctx: "SimulationContext") -> SystemResult:
        for request in ctx.removals.drain_removals():
            agent = ctx.registry.get(request.agent_id)
            if agent is not None:
                agent.mark_removed(request.reason or "removed")

        for agent in ctx.registry.live_agents():
            if not ctx.is_held(agent) and ctx.bounds.is_expired(agent.position):
                agent.mark_removed("expired")

        removed = 0
        for agent in ctx.registry.all_agents():
            if agent.is_alive:
                continue
            ctx.registry.remove(agent.agent_id)
            reason = agent.removal_reason or "removed"
            self._removed_by_reason[reason] = self._removed_by_reason.get(reason, 0) + 1
            ctx.events.emit(
                AgentRemoved(agent_id=agent.agent_id, species=agent.species.name, reason=reason, tick=ctx.tick)
            )
            removed += 1

        purged, disbanded = self._schools.purge_and_disband(ctx.schools, ctx.registry, ctx.events, ctx.tick)
        pruned = sum(school.prune_candidates(ctx.registry) for school in ctx.schools.values())

        if removed:
            logger.debug(f"Tick {ctx.tick}: removed {removed} agents, disbanded {disbanded} schools")
        return SystemResult(
            agents_removed=removed,
            details={"purged": purged, "disbanded": disbanded, "pruned_targets": pruned},
        )

    def get_debug_info(self) -> Dict[str, Any]:
        return {**super().get_debug_info(), "removed_by_reason": dict(self._removed_by_reason)}
