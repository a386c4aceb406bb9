"""
maestro.core.models - Core Data Models
========================================

Pydantic data models shared by every Maestro component.

Model Hierarchy:
    AgentCapability     → A named operation an agent advertises
    RegisteredAgent     → An agent known to the Registry
    AgentHealth         → Latest health sample for an agent
    ExecutionCondition  → Predicate gating whether a step runs
    WorkflowStep        → One capability invocation inside a workflow
    Workflow            → A DAG of steps plus its inputs
    WorkflowExecution   → Snapshot of one run of a workflow
    AgentQuery / ExecutionQuery / EventFilter → Query filters
    ChoreographyMetrics → Aggregate counters derived by the facade

Data Flow:
    ┌──────────────┐  define_workflow   ┌────────────────────┐
    │   Caller      │ ────────────────→ │ ChoreographyEngine  │
    └──────────────┘     Workflow       │  (owns definitions) │
           │                             └─────────┬──────────┘
           │ execute_workflow                      │ create_execution
           ↓                                       ↓
    ┌──────────────┐   WorkflowExecution  ┌────────────────────┐
    │   Maestro     │ ←────────────────── │  WorkflowExecutor   │
    │   (facade)    │   (snapshots)       │  (drives steps)     │
    └──────────────┘                      └────────────────────┘

Design Principles:
    1. Snapshots, not shared mutable state: components produce a new model
       via ``model_copy(update=...)`` for every transition and never mutate
       one that has been handed out.
    2. Self-validating: Pydantic enforces type/value constraints at creation.
    3. Serializable: every model round-trips through ``model_dump``.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from maestro.core.enums import (
    AgentStatus,
    ErrorPolicy,
    EventType,
    ExecutionStatus,
    HealthStatus,
    StepStatus,
)


# =============================================================================
# Helpers
# =============================================================================
def _generate_id() -> str:
    """Generate a unique identifier using UUID4."""
    return str(uuid4())


def _now() -> datetime:
    """Get the current UTC timestamp. Every timestamp in Maestro is UTC."""
    return datetime.now(timezone.utc)


# =============================================================================
# Agent Models
# =============================================================================
class AgentCapability(BaseModel):
    """A named operation an agent can perform.

    Capabilities are matched on ``id`` by the executor (``WorkflowStep.capability``)
    and by ``AgentQuery.capabilities``. ``tags`` are free-form labels used
    for discovery through ``AgentQuery.tags``.

    Attributes:
        id: Capability identifier, e.g. "sign" or "summarize".
        name: Human-readable name.
        description: What the capability does.
        version: Version of the capability contract.
        inputs: Input name → type hint (informational, not enforced).
        outputs: Output name → type hint (informational, not enforced).
        tags: Discovery labels.
        deprecated: Whether callers should migrate away from it.
    """

    model_config = {"frozen": True}

    id: str = Field(description="Capability identifier")
    name: str = Field(default="", description="Human-readable capability name")
    description: str = Field(default="", description="What the capability does")
    version: str = Field(default="1.0.0", description="Capability contract version")
    inputs: dict[str, str] = Field(
        default_factory=dict,
        description="Input name to type hint",
    )
    outputs: dict[str, str] = Field(
        default_factory=dict,
        description="Output name to type hint",
    )
    tags: frozenset[str] = Field(
        default_factory=frozenset,
        description="Labels used for capability discovery",
    )
    deprecated: bool = Field(default=False, description="Marked for removal")


class RegisteredAgent(BaseModel):
    """An agent known to the Agent Registry.

    Owned exclusively by the Registry: created on ``register_agent``,
    replaced (as a new snapshot) on status updates and heartbeats, removed
    on ``deregister_agent``.

    Attributes:
        id: Unique agent id among currently registered agents.
        type: Free-form type tag used by ``AgentQuery.types``.
        name: Human-readable name.
        description: Optional longer description.
        capabilities: Capabilities the agent advertises.
        status: Current availability.
        last_heartbeat: ``time.monotonic()`` of the last status change or
            heartbeat. Monotonic, so only meaningful within one process.
        endpoint: Optional address the invoker uses to reach the agent.
        metadata: Arbitrary embedding-application data.

    Example:
        >>> agent = RegisteredAgent(
        ...     id="signer-1",
        ...     type="signer",
        ...     name="Signer",
        ...     capabilities=[AgentCapability(id="sign", name="Sign")],
        ... )
    """

    id: str = Field(description="Unique agent identifier")
    type: str = Field(description="Free-form agent type tag")
    name: str = Field(description="Human-readable agent name")
    description: Optional[str] = Field(default=None, description="Agent description")
    capabilities: list[AgentCapability] = Field(
        default_factory=list,
        description="Capabilities this agent advertises",
    )
    status: AgentStatus = Field(default=AgentStatus.ONLINE, description="Availability")
    last_heartbeat: float = Field(
        default_factory=time.monotonic,
        description="Monotonic timestamp of the last heartbeat",
    )
    endpoint: Optional[str] = Field(default=None, description="Invocation endpoint")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Extra data")

    def has_capability(self, capability_id: str) -> bool:
        """Check whether this agent advertises ``capability_id``."""
        return any(cap.id == capability_id for cap in self.capabilities)

    def get_capability(self, capability_id: str) -> Optional[AgentCapability]:
        """Return the advertised capability with this id, if any."""
        for cap in self.capabilities:
            if cap.id == capability_id:
                return cap
        return None


class AgentHealth(BaseModel):
    """A single health sample for an agent. The latest sample wins.

    Attributes:
        agent_id: The sampled agent.
        status: Healthy, degraded or unhealthy.
        response_time_ms: Observed response time.
        error_rate: Fraction of failed calls, 0.0 to 1.0.
        uptime: Uptime percentage, 0 to 100.
        last_check: When the sample was taken.
    """

    agent_id: str = Field(description="Agent this sample belongs to")
    status: HealthStatus = Field(default=HealthStatus.HEALTHY, description="Health status")
    response_time_ms: float = Field(default=0.0, ge=0, description="Response time in ms")
    error_rate: float = Field(default=0.0, ge=0.0, le=1.0, description="Error rate 0..1")
    uptime: float = Field(default=100.0, ge=0.0, le=100.0, description="Uptime percentage")
    last_check: datetime = Field(default_factory=_now, description="Sample timestamp")

    def score(self) -> float:
        """Health score 0..100: mean of status, error-rate and uptime components."""
        status_score = {
            HealthStatus.HEALTHY: 100.0,
            HealthStatus.DEGRADED: 50.0,
        }.get(self.status, 0.0)
        error_score = (1.0 - self.error_rate) * 100.0
        return (status_score + error_score + self.uptime) / 3.0


# =============================================================================
# Workflow Definition Models
# =============================================================================
class ExecutionCondition(BaseModel):
    """Predicate over execution variables that gates a step.

    Only ``type == "comparison"`` is supported. ``operator`` is kept as a
    plain string so that an unknown operator reaches the engine and fails
    loudly with DefinitionError instead of a pydantic ValidationError.

    Attributes:
        type: Condition kind. Only "comparison".
        variable: Name looked up in ``WorkflowExecution.variables``.
        operator: One of eq, neq, gt, gte, lt, lte, in, not_in.
        value: Right-hand side of the comparison.

    Example:
        >>> ExecutionCondition(variable="score", operator="gte", value=0.8)
    """

    type: str = Field(default="comparison", description="Condition kind")
    variable: str = Field(description="Execution variable to test")
    operator: str = Field(description="Comparison operator")
    value: Any = Field(default=None, description="Value compared against")


class WorkflowStep(BaseModel):
    """One capability invocation inside a workflow.

    Attributes:
        id: Unique within the workflow.
        agent_id: Explicit target agent. When None the executor picks an
            available agent advertising ``capability`` at dispatch time.
        capability: Capability id to invoke.
        inputs: Input values. A string of the exact form ``${name}`` is
            replaced with the execution variable ``name`` before dispatch.
        dependencies: Step ids that must complete (or be skipped) first.
        condition: Optional gate; a false condition skips the step.
    """

    id: str = Field(description="Step identifier, unique within the workflow")
    agent_id: Optional[str] = Field(
        default=None,
        description="Target agent (None = resolve by capability)",
    )
    capability: str = Field(description="Capability id to invoke")
    inputs: dict[str, Any] = Field(default_factory=dict, description="Step inputs")
    dependencies: list[str] = Field(
        default_factory=list,
        description="Step ids this step waits for",
    )
    condition: Optional[ExecutionCondition] = Field(
        default=None,
        description="Optional gating predicate",
    )


class Workflow(BaseModel):
    """A workflow definition: a DAG of steps plus its inputs.

    Owned by the Choreography Engine. Execution never mutates it; the only
    way to change it is ``update_workflow`` which validates the merged
    result before storing it.

    Attributes:
        id: Unique workflow id.
        name: Human-readable name.
        description: Optional description.
        version: Definition version string.
        steps: Steps in declaration order (not execution order).
        initial_inputs: Seed values for ``WorkflowExecution.variables``.
        expected_outputs: Output name → type hint (informational).
        max_duration_ms: Wall-clock budget for one execution. None falls
            back to ``MaestroConfig.default_workflow_timeout_ms``.
        on_error: Behaviour after a step failure.
        tags: Free-form labels.
        created_at / updated_at: Definition timestamps.
        created_by: Optional author.
    """

    id: str = Field(default_factory=_generate_id, description="Workflow identifier")
    name: str = Field(description="Human-readable workflow name")
    description: Optional[str] = Field(default=None, description="Workflow description")
    version: str = Field(default="1.0.0", description="Definition version")
    steps: list[WorkflowStep] = Field(default_factory=list, description="Workflow steps")
    initial_inputs: dict[str, Any] = Field(
        default_factory=dict,
        description="Initial execution variables",
    )
    expected_outputs: dict[str, str] = Field(
        default_factory=dict,
        description="Output name to type hint",
    )
    max_duration_ms: Optional[int] = Field(
        default=None,
        ge=0,
        description="Execution wall-clock budget in ms (0 = unlimited)",
    )
    on_error: ErrorPolicy = Field(default=ErrorPolicy.STOP, description="Failure policy")
    tags: list[str] = Field(default_factory=list, description="Labels")
    created_at: datetime = Field(default_factory=_now, description="Creation time")
    updated_at: datetime = Field(default_factory=_now, description="Last update time")
    created_by: Optional[str] = Field(default=None, description="Author")

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        """Look up a step by id."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


# =============================================================================
# Execution Model
# =============================================================================
# A WorkflowExecution is a snapshot. The executor produces a new one for
# every transition and saves it to the store; callers only ever see
# complete snapshots.
# =============================================================================
class WorkflowExecution(BaseModel):
    """Snapshot of one run of a workflow.

    Attributes:
        id: Unique execution id.
        workflow_id: The workflow being executed.
        correlation_id: Propagated to every event this execution emits.
        parent_execution_id: Optional id of a causally preceding execution.
        status: pending → running → completed | failed (terminal once).
        variables: Seeded from ``initial_inputs``, extended by step outputs.
        step_outputs: Step id → output payload.
        step_statuses: Step id → step status.
        step_errors: Step id → error dict for failed steps.
        step_agents: Step id → agent the step was dispatched to.
        error: Terminal error summary when the execution failed.
        created_at / started_at / finished_at: Lifecycle timestamps.
    """

    id: str = Field(default_factory=_generate_id, description="Execution identifier")
    workflow_id: str = Field(description="Workflow being executed")
    correlation_id: str = Field(
        default_factory=_generate_id,
        description="Correlation id propagated to events",
    )
    parent_execution_id: Optional[str] = Field(
        default=None,
        description="Causally preceding execution",
    )
    status: ExecutionStatus = Field(
        default=ExecutionStatus.PENDING,
        description="Execution lifecycle status",
    )
    variables: dict[str, Any] = Field(default_factory=dict, description="Variables")
    step_outputs: dict[str, Any] = Field(default_factory=dict, description="Step outputs")
    step_statuses: dict[str, StepStatus] = Field(
        default_factory=dict,
        description="Per-step status",
    )
    step_errors: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-step error details",
    )
    step_agents: dict[str, str] = Field(
        default_factory=dict,
        description="Step id to the agent it was dispatched to",
    )
    error: Optional[dict[str, Any]] = Field(default=None, description="Terminal error")
    created_at: datetime = Field(default_factory=_now, description="Creation time")
    started_at: Optional[datetime] = Field(default=None, description="Start time")
    finished_at: Optional[datetime] = Field(default=None, description="Finish time")

    @property
    def is_terminal(self) -> bool:
        """Whether the execution reached completed or failed."""
        return self.status.is_terminal

    @property
    def duration_ms(self) -> Optional[float]:
        """Elapsed time from start to finish in ms, or None if not finished."""
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds() * 1000.0

    def steps_with_status(self, status: StepStatus) -> list[str]:
        """Step ids currently in ``status``, in insertion order."""
        return [step_id for step_id, s in self.step_statuses.items() if s == status]


# =============================================================================
# Query Models
# =============================================================================
# For every list-valued dimension, None or an empty list means "not
# filtered". Supplied dimensions are ANDed; values within one are ORed.
# =============================================================================
class AgentQuery(BaseModel):
    """Filter for ``query_agents``."""

    types: Optional[list[str]] = Field(default=None, description="Agent types (any)")
    status: Optional[list[AgentStatus]] = Field(default=None, description="Statuses (any)")
    capabilities: Optional[list[str]] = Field(
        default=None,
        description="Capability ids (any)",
    )
    tags: Optional[list[str]] = Field(default=None, description="Capability tags (any)")


class ExecutionQuery(BaseModel):
    """Filter for ``query_executions``.

    ``agent_id`` matches executions that dispatched a step to that agent or
    whose workflow has a step explicitly targeting it. ``limit`` keeps the
    most recent N matches.
    """

    status: Optional[list[ExecutionStatus]] = Field(default=None, description="Statuses")
    workflow_id: Optional[str] = Field(default=None, description="Workflow id")
    agent_id: Optional[str] = Field(default=None, description="Agent targeted by a step")
    limit: Optional[int] = Field(default=None, ge=1, description="Keep last N")


class EventFilter(BaseModel):
    """Filter for ``get_event_history``. ``limit`` keeps the last N matches."""

    event_types: Optional[list[EventType]] = Field(default=None, description="Types")
    since: Optional[datetime] = Field(default=None, description="Inclusive lower bound")
    until: Optional[datetime] = Field(default=None, description="Inclusive upper bound")
    source_agent: Optional[str] = Field(default=None, description="Source agent id")
    workflow_id: Optional[str] = Field(default=None, description="Workflow id")
    limit: Optional[int] = Field(default=None, ge=1, description="Keep last N")


# =============================================================================
# Metrics
# =============================================================================
class ChoreographyMetrics(BaseModel):
    """Aggregate counters derived by the facade. Never authoritative.

    Attributes:
        total_workflows: Workflows defined.
        completed_workflows: Executions that finished completed.
        failed_workflows: Executions that finished failed.
        active_executions: Executions not yet terminal.
        success_rate: completed / (completed + failed) as a percentage.
        average_execution_time_ms: Running mean over terminal executions.
        agent_health_scores: Agent id → latest health score (0..100).
        event_count: Events currently retained by the bus.
    """

    total_workflows: int = Field(default=0, ge=0)
    completed_workflows: int = Field(default=0, ge=0)
    failed_workflows: int = Field(default=0, ge=0)
    active_executions: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    average_execution_time_ms: float = Field(default=0.0, ge=0.0)
    agent_health_scores: dict[str, float] = Field(default_factory=dict)
    event_count: int = Field(default=0, ge=0)
