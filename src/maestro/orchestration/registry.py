"""
maestro.orchestration.registry - Agent Registry
=================================================

The Agent Registry owns the set of agents Maestro can dispatch work to,
together with the latest health sample for each of them.

Architecture Context:
    ┌──────────────┐  register / status   ┌──────────────────┐
    │   Maestro     │ ──────────────────→ │                   │
    │   (facade)    │                      │  AgentRegistry   │
    └──────────────┘                      │                   │
    ┌──────────────┐  resolve by          │  agents: id → RA  │
    │  Workflow     │  capability / id     │  health: id → AH  │
    │  Executor     │ ──────────────────→ │                   │
    └──────────────┘                      └──────────────────┘

Concurrency:
    Mutations (register, deregister, status, heartbeat, health) take an
    ``asyncio.Lock``. Reads return snapshots without locking; since every
    mutation replaces a model instead of editing it, a reader never sees a
    half-updated agent.

Query Semantics:
    ``query_agents`` ANDs the supplied dimensions (types, status,
    capabilities, tags) and ORs the values within one dimension. A
    dimension that is None or empty does not filter.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

import structlog

from maestro.core.enums import AgentStatus, HealthStatus
from maestro.core.exceptions import AgentNotFoundError, DuplicateAgentError
from maestro.core.models import (
    AgentCapability,
    AgentHealth,
    AgentQuery,
    RegisteredAgent,
)


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# Preference order when an agent is selected by capability. OFFLINE agents
# are never selected.
_SELECTION_ORDER = {
    AgentStatus.ONLINE: 0,
    AgentStatus.DEGRADED: 1,
    AgentStatus.BUSY: 2,
}

# How a health sample maps onto agent availability.
_HEALTH_TO_STATUS = {
    HealthStatus.HEALTHY: AgentStatus.ONLINE,
    HealthStatus.DEGRADED: AgentStatus.DEGRADED,
    HealthStatus.UNHEALTHY: AgentStatus.OFFLINE,
}


class AgentRegistry:
    """In-memory registry of agents and their latest health samples.

    Attributes:
        _agents: agent_id → RegisteredAgent snapshot, in registration order.
        _health: agent_id → latest AgentHealth sample.
        _lock: Serialises all mutations.

    Example:
        >>> registry = AgentRegistry()
        >>> await registry.register_agent(signer)
        >>> registry.query_agents(AgentQuery(capabilities=["sign"]))
        [RegisteredAgent(id='signer-1', ...)]
    """

    def __init__(self) -> None:
        self._agents: dict[str, RegisteredAgent] = {}
        self._health: dict[str, AgentHealth] = {}
        self._lock = asyncio.Lock()
        self._logger = logger.bind(component="agent_registry")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def agent_count(self) -> int:
        """Number of registered agents."""
        return len(self._agents)

    # =========================================================================
    # Registration
    # =========================================================================

    async def register_agent(self, agent: RegisteredAgent) -> RegisteredAgent:
        """Add an agent to the registry.

        The registry stores its own copy, stamped with a fresh heartbeat,
        and seeds a healthy AgentHealth sample for it.

        Args:
            agent: The agent to register.

        Returns:
            The stored snapshot.

        Raises:
            DuplicateAgentError: If ``agent.id`` is already registered. The
                existing registration is left untouched.
        """
        async with self._lock:
            if agent.id in self._agents:
                raise DuplicateAgentError(agent.id)

            stored = agent.model_copy(deep=True, update={"last_heartbeat": time.monotonic()})
            self._agents[agent.id] = stored
            self._health[agent.id] = AgentHealth(agent_id=agent.id)

        self._logger.info(
            "agent_registered",
            agent_id=agent.id,
            agent_type=agent.type,
            capabilities=[cap.id for cap in agent.capabilities],
            total_agents=len(self._agents),
        )
        return stored

    async def deregister_agent(self, agent_id: str) -> bool:
        """Remove an agent. Idempotent.

        Returns:
            True if an agent was removed, False if it was not registered.
        """
        async with self._lock:
            removed = self._agents.pop(agent_id, None)
            self._health.pop(agent_id, None)

        if removed is None:
            self._logger.debug("agent_not_registered_for_deregister", agent_id=agent_id)
            return False

        self._logger.info(
            "agent_deregistered",
            agent_id=agent_id,
            total_agents=len(self._agents),
        )
        return True

    # =========================================================================
    # Status & Health
    # =========================================================================

    async def update_agent_status(
        self, agent_id: str, status: AgentStatus
    ) -> RegisteredAgent:
        """Set an agent's status and refresh its heartbeat.

        Returns:
            The updated snapshot.

        Raises:
            AgentNotFoundError: If the agent is not registered.
        """
        async with self._lock:
            current = self._require(agent_id)
            updated = current.model_copy(
                update={"status": status, "last_heartbeat": time.monotonic()}
            )
            self._agents[agent_id] = updated

        if current.status != status:
            self._logger.info(
                "agent_status_changed",
                agent_id=agent_id,
                previous_status=current.status.value,
                status=status.value,
            )
        return updated

    async def heartbeat(self, agent_id: str) -> RegisteredAgent:
        """Refresh an agent's heartbeat without changing its status.

        Raises:
            AgentNotFoundError: If the agent is not registered.
        """
        async with self._lock:
            current = self._require(agent_id)
            updated = current.model_copy(update={"last_heartbeat": time.monotonic()})
            self._agents[agent_id] = updated
        return updated

    async def record_health(self, health: AgentHealth) -> Optional[RegisteredAgent]:
        """Store the latest health sample for an agent, overwriting the prior one.

        When the agent is registered its status follows the sample:
        healthy → online, degraded → degraded, unhealthy → offline.
        Samples for unknown agents are kept but change nothing else.

        Returns:
            The updated agent snapshot, or None if the agent is not registered.
        """
        async with self._lock:
            self._health[health.agent_id] = health
            current = self._agents.get(health.agent_id)
            if current is None:
                updated = None
            else:
                updated = current.model_copy(
                    update={
                        "status": _HEALTH_TO_STATUS[health.status],
                        "last_heartbeat": time.monotonic(),
                    }
                )
                self._agents[health.agent_id] = updated

        self._logger.debug(
            "agent_health_recorded",
            agent_id=health.agent_id,
            health_status=health.status.value,
            score=round(health.score(), 2),
            registered=updated is not None,
        )
        return updated

    def get_health(self, agent_id: str) -> Optional[AgentHealth]:
        """Latest health sample for an agent, or None."""
        return self._health.get(agent_id)

    def list_health(self) -> list[AgentHealth]:
        """Latest health sample for every agent that has one."""
        return list(self._health.values())

    # =========================================================================
    # Lookup & Query
    # =========================================================================

    def get_agent(self, agent_id: str) -> Optional[RegisteredAgent]:
        """Look up an agent by id."""
        return self._agents.get(agent_id)

    def list_agents(self) -> list[RegisteredAgent]:
        """All registered agents, in registration order."""
        return list(self._agents.values())

    def query_agents(self, query: AgentQuery) -> list[RegisteredAgent]:
        """Agents matching every supplied dimension of ``query``.

        Args:
            query: types / status / capabilities / tags filter. Capability
                matching is on ``AgentCapability.id``; tag matching is on
                the tags of any advertised capability.

        Returns:
            Matching agents in registration order.
        """
        results = list(self._agents.values())

        if query.types:
            results = [a for a in results if a.type in query.types]

        if query.status:
            results = [a for a in results if a.status in query.status]

        if query.capabilities:
            wanted = set(query.capabilities)
            results = [
                a for a in results
                if any(cap.id in wanted for cap in a.capabilities)
            ]

        if query.tags:
            wanted_tags = set(query.tags)
            results = [
                a for a in results
                if any(cap.tags & wanted_tags for cap in a.capabilities)
            ]

        return results

    def find_agents_by_capability(self, capability_id: str) -> list[RegisteredAgent]:
        """All agents advertising ``capability_id``, regardless of status."""
        return [a for a in self._agents.values() if a.has_capability(capability_id)]

    def get_capability(
        self, agent_id: str, capability_id: str
    ) -> Optional[AgentCapability]:
        """The capability ``capability_id`` as advertised by ``agent_id``."""
        agent = self._agents.get(agent_id)
        if agent is None:
            return None
        return agent.get_capability(capability_id)

    def select_agent(self, capability_id: str) -> Optional[RegisteredAgent]:
        """Pick an agent to serve ``capability_id``.

        Prefers online agents, then degraded, then busy; offline agents
        are never selected. Ties keep registration order.

        Returns:
            The selected agent, or None if no available agent advertises it.
        """
        candidates = [
            a for a in self.find_agents_by_capability(capability_id)
            if a.status in _SELECTION_ORDER
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda a: _SELECTION_ORDER[a.status])

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def clear(self) -> None:
        """Remove every agent and health sample."""
        async with self._lock:
            count = len(self._agents)
            self._agents.clear()
            self._health.clear()
        self._logger.info("agent_registry_cleared", removed=count)

    def _require(self, agent_id: str) -> RegisteredAgent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent
