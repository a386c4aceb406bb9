"""
maestro.core.enums - Type-Safe Enumerations
=============================================

All enumeration types used throughout Maestro. Every enum inherits from
both ``str`` and ``Enum`` so values serialize to plain strings in JSON/YAML
and compare equal to their string form (``AgentStatus.ONLINE == "online"``).

Mapping to the components:

    ┌─────────────────────────────────────────────────────────────────┐
    │  AGENT REGISTRY                                                 │
    │    AgentStatus:  online / offline / busy / degraded             │
    │    HealthStatus: healthy / degraded / unhealthy (probe samples) │
    ├─────────────────────────────────────────────────────────────────┤
    │  CHOREOGRAPHY ENGINE / EXECUTOR                                 │
    │    ExecutionStatus:   pending → running → completed | failed    │
    │    StepStatus:        pending → running → completed | failed,   │
    │                       or pending → skipped                      │
    │    ConditionOperator: comparison operators for step gating      │
    │    ErrorPolicy:       stop / continue after a step failure      │
    ├─────────────────────────────────────────────────────────────────┤
    │  EVENT BUS                                                      │
    │    EventType: namespaced "agent:*" and "workflow:*" events      │
    └─────────────────────────────────────────────────────────────────┘
"""

from enum import Enum


# =============================================================================
# Agent Status Enumeration
# =============================================================================
class AgentStatus(str, Enum):
    """Availability of a registered agent.

    Values:
        ONLINE:   Reachable and accepting invocations.
        OFFLINE:  Failed its last health probe or was marked down.
        BUSY:     Reachable but reported itself saturated.
        DEGRADED: Reachable, but its last health sample was degraded.
    """

    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"
    DEGRADED = "degraded"


class HealthStatus(str, Enum):
    """Outcome of a single health sample for an agent."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


# =============================================================================
# Execution / Step Lifecycle
# =============================================================================
# Execution lifecycle:
#
#   PENDING ──→ RUNNING ──→ COMPLETED
#                   │
#                   └──→ FAILED
#
# A step may also go straight from PENDING to SKIPPED (condition false, or
# unreachable because a dependency failed).
# =============================================================================
class ExecutionStatus(str, Enum):
    """Lifecycle status of a WorkflowExecution."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """True for COMPLETED and FAILED."""
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)


class StepStatus(str, Enum):
    """Lifecycle status of a single step within an execution."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        """True for COMPLETED, FAILED and SKIPPED."""
        return self in (StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.SKIPPED)

    @property
    def satisfies_dependency(self) -> bool:
        """Whether a dependent step may proceed past this status."""
        return self in (StepStatus.COMPLETED, StepStatus.SKIPPED)


# =============================================================================
# Conditions and Error Policy
# =============================================================================
class ConditionOperator(str, Enum):
    """Comparison operators supported by ``comparison`` conditions.

    ``IN`` / ``NOT_IN`` test membership of the variable in the condition's
    value (which must be a collection).
    """

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NOT_IN = "not_in"


class ErrorPolicy(str, Enum):
    """What the executor does after a step fails.

    Values:
        STOP:     Dispatch no further steps; remaining pending steps are
                  skipped. Steps already running are allowed to finish.
        CONTINUE: Keep dispatching steps that do not depend on the failed
                  one. Dependents of the failed step are skipped.

    In both cases the execution's terminal status is FAILED.
    """

    STOP = "stop"
    CONTINUE = "continue"


# =============================================================================
# Event Types
# =============================================================================
# Namespaced as "<entity>:<action>". The value is what subscribers filter
# on and what is stored on ChoreographyEvent.type.
# =============================================================================
class EventType(str, Enum):
    """Every event type the Event Bus can carry."""

    # --- Agent lifecycle ---
    AGENT_REGISTERED = "agent:registered"
    AGENT_DEREGISTERED = "agent:deregistered"
    AGENT_HEALTH = "agent:health"

    # --- Workflow definitions ---
    WORKFLOW_CREATED = "workflow:created"
    WORKFLOW_UPDATED = "workflow:updated"

    # --- Workflow executions ---
    WORKFLOW_STARTED = "workflow:started"
    STEP_STARTED = "workflow:step_started"
    STEP_COMPLETED = "workflow:step_completed"
    STEP_FAILED = "workflow:step_failed"
    STEP_SKIPPED = "workflow:step_skipped"
    WORKFLOW_COMPLETED = "workflow:completed"
    WORKFLOW_FAILED = "workflow:failed"
