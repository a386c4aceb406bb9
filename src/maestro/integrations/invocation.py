"""
maestro.integrations.invocation - Capability Invocation & Health Probing
==========================================================================

Maestro does not know how to reach an agent. The embedding application
supplies two collaborators:

    CapabilityInvoker: async (agent_id, capability, inputs) -> output
        Performs the actual call (gRPC, HTTP, in-process, ...). Raising
        any exception marks the step failed. The executor never retries.

    HealthProbe: async (agent_id) -> bool
        Used by the periodic health sweep. False or an exception marks the
        agent offline.

This module defines those contracts plus two in-process implementations:

    CallTableInvoker  - handler table keyed by (agent_id, capability) with
                        call history and failure simulation, for tests,
                        examples and single-process deployments.
    StaticHealthProbe - answers from a per-agent table, default healthy.

Usage:
    >>> invoker = CallTableInvoker()
    >>> invoker.register("sign", lambda inputs: {"signature": "abc"})
    >>> await invoker("signer-1", "sign", {"payload": "x"})
    {'signature': 'abc'}
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from maestro.core.exceptions import MaestroError


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Collaborator Contracts
# =============================================================================
CapabilityInvoker = Callable[[str, str, dict[str, Any]], Awaitable[Any]]
HealthProbe = Callable[[str], Awaitable[bool]]

#: A call-table handler receives the substituted inputs and returns the
#: output, either directly or as an awaitable.
CapabilityHandler = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]


# =============================================================================
# CallTableInvoker
# =============================================================================
class CallTableInvoker:
    """In-process capability invoker backed by a handler table.

    Handlers are looked up by ``(agent_id, capability)`` first and then by
    ``capability`` alone, so a test can register one handler for every
    agent advertising a capability and override it for a specific agent.

    Features:
        - **Call History**: every invocation is recorded for assertions.
        - **Failure Simulation**: ``fail(capability, ...)`` makes every
          call to that capability raise.

    Example:
        >>> invoker = CallTableInvoker()
        >>> invoker.register("summarize", summarize_handler)
        >>> invoker.register("summarize", slow_handler, agent_id="agent-2")
        >>> maestro = Maestro(invoker=invoker)
    """

    def __init__(self) -> None:
        self._handlers: dict[tuple[Optional[str], str], CapabilityHandler] = {}
        self._failures: dict[str, Exception] = {}
        self._call_history: list[dict[str, Any]] = []
        self._logger = logger.bind(component="call_table_invoker")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Recorded invocations: dicts with agent_id, capability and inputs."""
        return self._call_history

    @property
    def call_count(self) -> int:
        """Number of invocations made."""
        return len(self._call_history)

    # =========================================================================
    # Handler Table
    # =========================================================================

    def register(
        self,
        capability: str,
        handler: CapabilityHandler,
        *,
        agent_id: Optional[str] = None,
    ) -> None:
        """Register a handler for a capability.

        Args:
            capability: Capability id the handler serves.
            handler: Callable taking the inputs dict. May be sync or async.
            agent_id: Restrict the handler to one agent. None serves every
                agent without a more specific handler.
        """
        self._handlers[(agent_id, capability)] = handler

    def fail(self, capability: str, error: Optional[Exception] = None) -> None:
        """Make every call to ``capability`` raise ``error``.

        Args:
            capability: Capability to break.
            error: Exception to raise. Defaults to a RuntimeError.
        """
        self._failures[capability] = error or RuntimeError(
            f"Simulated failure of capability '{capability}'"
        )

    def recover(self, capability: str) -> None:
        """Undo ``fail`` for a capability."""
        self._failures.pop(capability, None)

    def clear_history(self) -> None:
        """Clear the call history."""
        self._call_history.clear()

    def calls_for(self, capability: str) -> list[dict[str, Any]]:
        """Recorded invocations of one capability, in call order."""
        return [c for c in self._call_history if c["capability"] == capability]

    # =========================================================================
    # Invocation
    # =========================================================================

    async def __call__(
        self, agent_id: str, capability: str, inputs: dict[str, Any]
    ) -> Any:
        """Invoke ``capability`` on ``agent_id``.

        Raises:
            MaestroError: If no handler is registered (NO_HANDLER).
            Exception: Whatever the handler or a simulated failure raises.
        """
        self._call_history.append({
            "agent_id": agent_id,
            "capability": capability,
            "inputs": dict(inputs),
        })

        self._logger.debug(
            "capability_invoked",
            agent_id=agent_id,
            capability=capability,
        )

        if capability in self._failures:
            raise self._failures[capability]

        handler = self._handlers.get((agent_id, capability)) or self._handlers.get(
            (None, capability)
        )
        if handler is None:
            raise MaestroError(
                message=f"No handler registered for capability '{capability}'",
                error_code="NO_HANDLER",
                details={"agent_id": agent_id, "capability": capability},
            )

        result = handler(inputs)
        if inspect.isawaitable(result):
            result = await result
        return result


# =============================================================================
# StaticHealthProbe
# =============================================================================
class StaticHealthProbe:
    """Health probe answering from a per-agent table.

    Agents without an entry are reported healthy. An entry can also be an
    exception, which the probe raises to simulate an unreachable agent.

    Example:
        >>> probe = StaticHealthProbe()
        >>> probe.set_health("agent-2", False)
        >>> await probe("agent-2")
        False
    """

    def __init__(self, default: bool = True) -> None:
        self._default = default
        self._answers: dict[str, Union[bool, Exception]] = {}
        self._probe_history: list[str] = []

    @property
    def probe_history(self) -> list[str]:
        """Agent ids probed, in probe order."""
        return self._probe_history

    def set_health(self, agent_id: str, answer: Union[bool, Exception]) -> None:
        """Set the answer (or exception) returned for ``agent_id``."""
        self._answers[agent_id] = answer

    async def __call__(self, agent_id: str) -> bool:
        self._probe_history.append(agent_id)
        answer = self._answers.get(agent_id, self._default)
        if isinstance(answer, Exception):
            raise answer
        return answer
