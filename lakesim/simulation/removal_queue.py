"""Queue for agent removal requests.

Removals requested mid-tick (an external despawn, a starvation death, an
expiry) are recorded here and applied by the cleanup phase, so no phase ever
mutates the registry while it iterates.
"""

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class RemovalRequest:
    """Record a requested removal."""

    agent_id: int
    reason: str = ""


class RemovalQueue:
    """Collects removal requests for deferred application. First reason wins."""

    def __init__(self) -> None:
        self._pending: Dict[int, RemovalRequest] = {}

    def request_remove(self, agent_id: int, *, reason: str = "") -> bool:
        """Queue a removal. Returns False if the agent is already queued."""
        if agent_id in self._pending:
            return False
        self._pending[agent_id] = RemovalRequest(agent_id=agent_id, reason=reason)
        return True

    def drain_removals(self) -> List[RemovalRequest]:
        """Return and clear pending removals in request order."""
        removals = list(self._pending.values())
        self._pending = {}
        return removals

    def is_pending_removal(self, agent_id: int) -> bool:
        return agent_id in self._pending

    def pending_removal_count(self) -> int:
        return len(self._pending)
