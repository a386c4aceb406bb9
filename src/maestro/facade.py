"""
maestro.facade - Maestro Orchestrator Facade
==============================================

The single entry point of the package. ``Maestro`` wires the registry,
event bus, choreography engine and executor together, applies admission
control, runs the periodic health sweep and derives metrics.

Architecture Context:
    ┌──────────────────────────────────────────────────────────┐
    │                     Maestro (Facade)                      │
    │  admission control · health sweep · metrics · events      │
    │                                                           │
    │  ┌───────────────┐  ┌──────────────┐  ┌────────────────┐ │
    │  │ AgentRegistry  │  │   EventBus   │  │ Choreography   │ │
    │  │               │  │              │  │ Engine + Store │ │
    │  └───────▲───────┘  └──────▲───────┘  └───────▲────────┘ │
    │          │                 │                  │          │
    │          └──────── WorkflowExecutor ──────────┘          │
    │                    (one task per execution)               │
    └───────────────────────────┬──────────────────────────────┘
                                │
               CapabilityInvoker / HealthProbe (injected)

Usage:
    >>> from maestro import Maestro
    >>> from maestro.integrations import CallTableInvoker
    >>>
    >>> invoker = CallTableInvoker()
    >>> invoker.register("greet", lambda inputs: {"message": f"Hi {inputs['name']}"})
    >>>
    >>> async with Maestro(invoker=invoker) as maestro:
    ...     await maestro.register_agent(greeter)
    ...     await maestro.define_workflow(workflow)
    ...     execution = await maestro.execute_workflow(workflow.id)
    ...     final = await maestro.wait_for_execution(execution.id)

Scope Boundary:
    ``shutdown()`` cancels in-flight executions and discards all in-memory
    state. There is no graceful drain and no execution-level cancel API.
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Optional

import structlog
from pydantic import ValidationError

from maestro.core.config import MaestroConfig
from maestro.core.enums import AgentStatus, EventType, ExecutionStatus
from maestro.core.events import (
    AgentDeregisteredPayload,
    AgentHealthPayload,
    AgentRegisteredPayload,
    ChoreographyEvent,
    WorkflowCreatedPayload,
    WorkflowUpdatedPayload,
)
from maestro.core.exceptions import (
    AgentNotFoundError,
    CapacityExceededError,
    ConfigurationError,
    ExecutionNotFoundError,
)
from maestro.core.logging import configure_logging
from maestro.core.models import (
    AgentHealth,
    AgentQuery,
    ChoreographyMetrics,
    EventFilter,
    ExecutionQuery,
    RegisteredAgent,
    Workflow,
    WorkflowExecution,
)
from maestro.integrations.invocation import (
    CallTableInvoker,
    CapabilityInvoker,
    HealthProbe,
    StaticHealthProbe,
)
from maestro.orchestration.choreography import ChoreographyEngine
from maestro.orchestration.event_bus import EventBus, EventCallback, Subscription
from maestro.orchestration.executor import WorkflowExecutor
from maestro.orchestration.registry import AgentRegistry
from maestro.orchestration.store import WorkflowStore


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


class Maestro:
    """Top-level facade for the Maestro orchestrator.

    Lifecycle:
        1. ``Maestro(config, invoker=..., health_probe=...)``
        2. ``await initialize()`` - configure logging, start health sweep
        3. register agents, define workflows, execute workflows
        4. ``await shutdown()`` - cancel work, clear all state

    Or use the async context manager:
        async with Maestro(config) as maestro:
            ...

    Attributes:
        _config: Current configuration.
        _registry: Agent registry.
        _event_bus: Event bus for every lifecycle and execution event.
        _engine: Workflow definitions and execution records.
        _executor: Drives executions.
        _active: Ids of admitted executions that are not yet terminal.
        _tasks: execution_id → asyncio.Task until the task itself finishes.
        _health_task: The periodic health sweep task while initialized.

    Example:
        >>> maestro = Maestro(MaestroConfig(max_concurrent_workflows=10))
        >>> await maestro.initialize()
        >>> await maestro.register_agent(agent)
        >>> execution = await maestro.execute_workflow("wf-1")
        >>> await maestro.shutdown()
    """

    def __init__(
        self,
        config: Optional[MaestroConfig] = None,
        *,
        invoker: Optional[CapabilityInvoker] = None,
        health_probe: Optional[HealthProbe] = None,
        store: Optional[WorkflowStore] = None,
        setup_logging: bool = True,
    ) -> None:
        """Initialize the facade.

        Args:
            config: Configuration. Defaults to MaestroConfig() (env vars
                and defaults).
            invoker: Capability invocation collaborator. Defaults to an
                empty CallTableInvoker, reachable through ``invoker``.
            health_probe: Health probe for the periodic sweep. Defaults to
                a StaticHealthProbe reporting every agent healthy.
            store: Workflow / execution store. Defaults to in-memory.
            setup_logging: Apply ``config.log_level`` through
                ``configure_logging`` on initialize and config updates.
        """
        self._config = config or MaestroConfig()
        self._setup_logging = setup_logging

        self._invoker = invoker or CallTableInvoker()
        self._health_probe = health_probe or StaticHealthProbe()

        self._registry = AgentRegistry()
        self._event_bus = EventBus(buffer_size=self._config.event_bus_buffer_size)
        self._engine = ChoreographyEngine(store=store)
        self._executor = WorkflowExecutor(
            engine=self._engine,
            registry=self._registry,
            event_bus=self._event_bus,
            invoker=self._invoker,
            default_timeout_ms=self._config.default_workflow_timeout_ms,
        )

        self._active: set[str] = set()
        self._tasks: dict[str, asyncio.Task[WorkflowExecution]] = {}
        self._admission_lock = asyncio.Lock()
        self._health_task: Optional[asyncio.Task[None]] = None

        self._reset_metrics()

        self._initialized = False
        self._logger = logger.bind(component="maestro")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> MaestroConfig:
        """The current configuration."""
        return self._config

    @property
    def registry(self) -> AgentRegistry:
        """The Agent Registry."""
        return self._registry

    @property
    def event_bus(self) -> EventBus:
        """The Event Bus."""
        return self._event_bus

    @property
    def engine(self) -> ChoreographyEngine:
        """The Choreography Engine."""
        return self._engine

    @property
    def executor(self) -> WorkflowExecutor:
        """The Workflow Executor."""
        return self._executor

    @property
    def invoker(self) -> CapabilityInvoker:
        """The capability invocation collaborator."""
        return self._invoker

    @property
    def health_probe(self) -> HealthProbe:
        """The health probe collaborator."""
        return self._health_probe

    @property
    def active_execution_count(self) -> int:
        """Executions admitted and not yet terminal."""
        return len(self._active)

    @property
    def is_initialized(self) -> bool:
        """Check if the facade has been initialized."""
        return self._initialized

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def initialize(self) -> None:
        """Configure logging and start the periodic health sweep.

        Idempotent: Safe to call multiple times.
        """
        if self._initialized:
            self._logger.debug("maestro_already_initialized")
            return

        if self._setup_logging:
            configure_logging(self._config.log_level)

        self._logger.info(
            "maestro_initializing",
            environment=self._config.environment,
            max_concurrent_workflows=self._config.max_concurrent_workflows,
        )
        self._warn_unimplemented_flags(self._config)

        self._start_health_sweep()
        self._initialized = True
        self._logger.info("maestro_initialized")

    async def shutdown(self) -> None:
        """Cancel all work and clear every piece of in-memory state.

        In-flight executions are cancelled, not drained. Idempotent.
        """
        if not self._initialized:
            self._logger.debug("maestro_not_initialized_skipping_shutdown")
            return

        self._logger.info("maestro_shutting_down", active_executions=len(self._active))

        await self._stop_health_sweep()

        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._active.clear()

        await self._registry.clear()
        await self._engine.store.clear()
        await self._event_bus.clear()
        self._reset_metrics()

        self._initialized = False
        self._logger.info("maestro_shutdown_complete", cancelled_executions=len(tasks))

    # =========================================================================
    # Async Context Manager
    # =========================================================================

    async def __aenter__(self) -> Maestro:
        """Enter the async context manager. Calls initialize()."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit the async context manager. Calls shutdown()."""
        await self.shutdown()

    # =========================================================================
    # Agent Management
    # =========================================================================

    async def register_agent(self, agent: RegisteredAgent) -> RegisteredAgent:
        """Register an agent and emit ``agent:registered``.

        Raises:
            RuntimeError: If Maestro has not been initialized.
            DuplicateAgentError: If the id is already registered.
        """
        self._ensure_initialized()
        stored = await self._registry.register_agent(agent)
        await self._publish(
            AgentRegisteredPayload(
                agent_id=stored.id,
                agent_type=stored.type,
                capabilities=[cap.id for cap in stored.capabilities],
            ),
            correlation_id=stored.id,
            source_agent=stored.id,
        )
        return stored

    async def deregister_agent(self, agent_id: str) -> bool:
        """Remove an agent. Idempotent; emits ``agent:deregistered`` on removal.

        Raises:
            RuntimeError: If Maestro has not been initialized.
        """
        self._ensure_initialized()
        removed = await self._registry.deregister_agent(agent_id)
        if removed:
            self._health_scores.pop(agent_id, None)
            await self._publish(
                AgentDeregisteredPayload(agent_id=agent_id),
                correlation_id=agent_id,
                source_agent=agent_id,
            )
        return removed

    def get_agent(self, agent_id: str) -> Optional[RegisteredAgent]:
        """Look up an agent by id."""
        return self._registry.get_agent(agent_id)

    def list_agents(self) -> list[RegisteredAgent]:
        """All registered agents."""
        return self._registry.list_agents()

    def query_agents(self, query: Optional[AgentQuery] = None) -> list[RegisteredAgent]:
        """Agents matching every supplied dimension of ``query``."""
        return self._registry.query_agents(query or AgentQuery())

    async def update_agent_status(
        self, agent_id: str, status: AgentStatus
    ) -> RegisteredAgent:
        """Set an agent's status; emits ``agent:health`` when it changes.

        Raises:
            RuntimeError: If Maestro has not been initialized.
            AgentNotFoundError: If the agent is not registered.
        """
        self._ensure_initialized()
        previous = self._registry.get_agent(agent_id)
        updated = await self._registry.update_agent_status(agent_id, status)
        if previous is not None and previous.status != updated.status:
            await self._publish_agent_health(updated, previous.status)
        return updated

    async def record_agent_health(self, health: AgentHealth) -> Optional[RegisteredAgent]:
        """Store a health sample, update the agent's status and health score.

        Returns:
            The updated agent, or None if the agent is not registered.

        Raises:
            RuntimeError: If Maestro has not been initialized.
        """
        self._ensure_initialized()
        previous = self._registry.get_agent(health.agent_id)
        updated = await self._registry.record_health(health)
        if updated is None:
            return None

        score = health.score()
        self._health_scores[health.agent_id] = score
        await self._publish_agent_health(
            updated,
            previous.status if previous is not None else None,
            health_score=score,
        )
        return updated

    def get_agent_health(self, agent_id: str) -> Optional[AgentHealth]:
        """Latest health sample for an agent."""
        return self._registry.get_health(agent_id)

    async def check_agent_health(self) -> dict[str, AgentStatus]:
        """Run one health sweep over every registered agent.

        A probe answering True marks the agent online; False or an
        exception marks it offline.

        Returns:
            agent_id → status after the sweep, for agents still registered.
        """
        agents = self._registry.list_agents()
        answers = await asyncio.gather(*(self._probe(a.id) for a in agents))

        results: dict[str, AgentStatus] = {}
        for agent, healthy in zip(agents, answers):
            status = AgentStatus.ONLINE if healthy else AgentStatus.OFFLINE
            try:
                updated = await self._registry.update_agent_status(agent.id, status)
            except AgentNotFoundError:
                continue
            results[agent.id] = updated.status
            if agent.status != updated.status:
                await self._publish_agent_health(updated, agent.status)

        self._logger.debug(
            "health_sweep_completed",
            agents=len(results),
            offline=sum(1 for s in results.values() if s == AgentStatus.OFFLINE),
        )
        return results

    async def _probe(self, agent_id: str) -> bool:
        try:
            return bool(await self._health_probe(agent_id))
        except Exception as exc:
            self._logger.warning(
                "health_probe_failed",
                agent_id=agent_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False

    # =========================================================================
    # Workflow Definitions
    # =========================================================================

    async def define_workflow(self, workflow: Workflow) -> Workflow:
        """Validate and store a workflow; emits ``workflow:created``.

        Raises:
            RuntimeError: If Maestro has not been initialized.
            DuplicateWorkflowError: If the id already exists.
            DefinitionError: If the definition is malformed.
            CircularDependencyError: If the step graph has a cycle.
        """
        self._ensure_initialized()
        stored = await self._engine.define_workflow(workflow)
        self._total_workflows += 1
        await self._publish(
            WorkflowCreatedPayload(
                workflow_id=stored.id,
                name=stored.name,
                version=stored.version,
                step_count=len(stored.steps),
            ),
            correlation_id=stored.id,
            workflow_id=stored.id,
        )
        return stored

    async def update_workflow(self, workflow_id: str, **changes: Any) -> Workflow:
        """Merge ``changes`` into a workflow; emits ``workflow:updated``.

        Raises:
            RuntimeError: If Maestro has not been initialized.
            WorkflowNotFoundError: If the workflow does not exist.
            DefinitionError / CircularDependencyError: If the merged
                definition is invalid. The stored definition is unchanged.
        """
        self._ensure_initialized()
        updated = await self._engine.update_workflow(workflow_id, **changes)
        await self._publish(
            WorkflowUpdatedPayload(
                workflow_id=updated.id,
                version=updated.version,
                changed_fields=sorted(changes),
            ),
            correlation_id=updated.id,
            workflow_id=updated.id,
        )
        return updated

    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Look up a workflow by id."""
        return await self._engine.get_workflow(workflow_id)

    async def list_workflows(self) -> list[Workflow]:
        """All workflow definitions."""
        return await self._engine.list_workflows()

    # =========================================================================
    # Workflow Execution
    # =========================================================================

    async def execute_workflow(
        self,
        workflow_id: str,
        correlation_id: Optional[str] = None,
        parent_execution_id: Optional[str] = None,
    ) -> WorkflowExecution:
        """Admit and start an execution; return its pending snapshot.

        The execution runs in its own task. Observe completion through
        events, ``get_execution`` or ``wait_for_execution``.

        Args:
            workflow_id: Workflow to execute.
            correlation_id: Correlation id for the run's events.
            parent_execution_id: Optional causally preceding execution.

        Returns:
            The pending execution record.

        Raises:
            RuntimeError: If Maestro has not been initialized.
            CapacityExceededError: If ``max_concurrent_workflows``
                executions are already active. No record is created.
            WorkflowNotFoundError: If the workflow does not exist.
        """
        self._ensure_initialized()

        async with self._admission_lock:
            active = len(self._active)
            limit = self._config.max_concurrent_workflows
            if active >= limit:
                self._logger.warning(
                    "execution_rejected_capacity",
                    workflow_id=workflow_id,
                    active=active,
                    limit=limit,
                )
                raise CapacityExceededError(active=active, limit=limit)

            execution = await self._engine.create_execution(
                workflow_id,
                correlation_id=correlation_id,
                parent_execution_id=parent_execution_id,
            )
            task = asyncio.create_task(
                self._executor.run(execution, on_terminal=self._retire_execution),
                name=f"maestro-execution-{execution.id}",
            )
            self._active.add(execution.id)
            self._tasks[execution.id] = task
            task.add_done_callback(
                lambda t, execution_id=execution.id: self._on_execution_done(execution_id, t)
            )

        self._logger.info(
            "execution_admitted",
            execution_id=execution.id,
            workflow_id=workflow_id,
            correlation_id=execution.correlation_id,
            active=len(self._active),
        )
        return execution

    async def wait_for_execution(
        self, execution_id: str, timeout: Optional[float] = None
    ) -> WorkflowExecution:
        """Wait until an execution is terminal and return its final snapshot.

        Args:
            execution_id: Execution to wait for.
            timeout: Seconds to wait; None waits indefinitely.

        Raises:
            ExecutionNotFoundError: If the execution does not exist.
            asyncio.TimeoutError: If ``timeout`` elapses first. The
                execution keeps running.
        """
        task = self._tasks.get(execution_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)

        execution = await self._engine.get_execution(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    async def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        """Latest snapshot of an execution."""
        return await self._engine.get_execution(execution_id)

    async def query_executions(
        self, query: Optional[ExecutionQuery] = None
    ) -> list[WorkflowExecution]:
        """Executions in creation order, filtered by ``query``.

        ``agent_id`` matches executions with a step dispatched to that
        agent or a step of the workflow explicitly targeting it.
        """
        query = query or ExecutionQuery()
        executions = await self._engine.list_executions(query.workflow_id)

        if query.status:
            executions = [e for e in executions if e.status in query.status]

        if query.agent_id is not None:
            targeted: dict[str, bool] = {}
            matched = []
            for execution in executions:
                if query.agent_id in execution.step_agents.values():
                    matched.append(execution)
                    continue
                if execution.workflow_id not in targeted:
                    workflow = await self._engine.get_workflow(execution.workflow_id)
                    targeted[execution.workflow_id] = workflow is not None and any(
                        step.agent_id == query.agent_id for step in workflow.steps
                    )
                if targeted[execution.workflow_id]:
                    matched.append(execution)
            executions = matched

        if query.limit is not None:
            executions = executions[-query.limit:]
        return executions

    def _retire_execution(self, final: WorkflowExecution) -> None:
        """Terminal hook: free the admission slot and update metrics."""
        if final.id not in self._active:
            return
        self._active.discard(final.id)

        if final.status == ExecutionStatus.COMPLETED:
            self._completed += 1
        else:
            self._failed += 1

        duration = final.duration_ms
        if duration is not None:
            self._timed += 1
            self._average_ms += (duration - self._average_ms) / self._timed

    def _on_execution_done(
        self, execution_id: str, task: asyncio.Task[WorkflowExecution]
    ) -> None:
        """Task done-callback: drop the task and retire anything still active."""
        self._tasks.pop(execution_id, None)
        if task.cancelled():
            self._active.discard(execution_id)
            return

        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "execution_task_crashed",
                execution_id=execution_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            if execution_id in self._active:
                self._active.discard(execution_id)
                self._failed += 1
            return

        self._retire_execution(task.result())

    # =========================================================================
    # Events
    # =========================================================================

    async def subscribe_to_events(
        self,
        event_types: Iterable[EventType],
        callback: EventCallback,
        *,
        agent_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> Subscription:
        """Subscribe ``callback`` to the given event types."""
        return await self._event_bus.subscribe(
            event_types,
            callback,
            agent_id=agent_id,
            workflow_id=workflow_id,
        )

    async def unsubscribe_from_events(self, subscription_id: str) -> bool:
        """Remove a subscription. Idempotent."""
        return await self._event_bus.unsubscribe(subscription_id)

    def get_event_history(
        self, event_filter: Optional[EventFilter] = None
    ) -> list[ChoreographyEvent]:
        """Retained events in publish order, optionally filtered."""
        return self._event_bus.get_event_history(event_filter)

    def get_events_by_correlation(self, correlation_id: str) -> list[ChoreographyEvent]:
        """Retained events sharing ``correlation_id``, in publish order."""
        return self._event_bus.get_events_by_correlation(correlation_id)

    # =========================================================================
    # Metrics
    # =========================================================================

    def get_metrics(self) -> ChoreographyMetrics:
        """Snapshot of the aggregate counters."""
        finished = self._completed + self._failed
        success_rate = (self._completed / finished * 100.0) if finished else 0.0
        return ChoreographyMetrics(
            total_workflows=self._total_workflows,
            completed_workflows=self._completed,
            failed_workflows=self._failed,
            active_executions=len(self._active),
            success_rate=success_rate,
            average_execution_time_ms=self._average_ms,
            agent_health_scores=dict(self._health_scores),
            event_count=self._event_bus.history_size,
        )

    def _reset_metrics(self) -> None:
        self._total_workflows = 0
        self._completed = 0
        self._failed = 0
        self._timed = 0
        self._average_ms = 0.0
        self._health_scores: dict[str, float] = {}

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_config(self) -> MaestroConfig:
        """The current configuration."""
        return self._config

    async def update_config(self, **changes: Any) -> MaestroConfig:
        """Replace configuration values and apply them to running components.

        Raises:
            ConfigurationError: If a key is unknown or a value is invalid.
                The current configuration stays in effect.
        """
        try:
            new_config = MaestroConfig(**{**self._config.model_dump(), **changes})
        except ValidationError as exc:
            raise ConfigurationError(
                message=f"Invalid configuration update: {exc.error_count()} error(s)",
                error_code="INVALID_CONFIG",
                details={"errors": exc.errors(include_url=False)},
            ) from exc

        old = self._config
        if self._setup_logging and new_config.log_level != old.log_level:
            configure_logging(new_config.log_level)
        self._config = new_config

        self._executor.default_timeout_ms = new_config.default_workflow_timeout_ms
        if new_config.event_bus_buffer_size != old.event_bus_buffer_size:
            await self._event_bus.resize(new_config.event_bus_buffer_size)
        if (
            self._initialized
            and new_config.health_check_interval_ms != old.health_check_interval_ms
        ):
            await self._stop_health_sweep()
            self._start_health_sweep()
        self._warn_unimplemented_flags(new_config)

        self._logger.info("config_updated", changed_fields=sorted(changes))
        return new_config

    def _warn_unimplemented_flags(self, config: MaestroConfig) -> None:
        if config.enable_rollback:
            self._logger.warning("rollback_enabled_but_not_implemented")
        if config.enable_compensation:
            self._logger.warning("compensation_enabled_but_not_implemented")

    # =========================================================================
    # Health Sweep
    # =========================================================================

    def _start_health_sweep(self) -> None:
        self._health_task = asyncio.create_task(
            self._health_sweep_loop(), name="maestro-health-sweep"
        )

    async def _stop_health_sweep(self) -> None:
        task, self._health_task = self._health_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _health_sweep_loop(self) -> None:
        interval = self._config.health_check_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            try:
                await self.check_agent_health()
            except Exception as exc:
                self._logger.error("health_sweep_failed", error=str(exc))

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    async def _publish(
        self,
        payload: Any,
        *,
        correlation_id: str,
        source_agent: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> None:
        fields: dict[str, Any] = {
            "correlation_id": correlation_id,
            "workflow_id": workflow_id,
        }
        if source_agent is not None:
            fields["source_agent"] = source_agent
        await self._event_bus.publish(ChoreographyEvent.from_payload(payload, **fields))

    async def _publish_agent_health(
        self,
        agent: RegisteredAgent,
        previous_status: Optional[AgentStatus],
        health_score: Optional[float] = None,
    ) -> None:
        await self._publish(
            AgentHealthPayload(
                agent_id=agent.id,
                status=agent.status.value,
                previous_status=previous_status.value if previous_status else None,
                health_score=health_score,
            ),
            correlation_id=agent.id,
            source_agent=agent.id,
        )

    def _ensure_initialized(self) -> None:
        """Check that initialize() has been called.

        Raises:
            RuntimeError: If the facade has not been initialized.
        """
        if not self._initialized:
            raise RuntimeError(
                "Maestro has not been initialized. "
                "Call await maestro.initialize() or use 'async with Maestro() as maestro:'"
            )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Maestro("
            f"initialized={self._initialized}, "
            f"agents={self._registry.agent_count}, "
            f"active_executions={len(self._active)})"
        )
