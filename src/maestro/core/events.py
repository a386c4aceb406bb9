"""
maestro.core.events - Choreography Events
===========================================

Defines ``ChoreographyEvent`` (the unit carried by the Event Bus) and the
closed set of payload shapes it can carry.

Payloads are a discriminated union keyed by ``event_type``. Each payload
class pins its ``event_type`` to exactly one ``EventType`` value, so
consumers can dispatch on the payload class (or on ``event.type``) and
pydantic rejects any payload whose shape does not match its tag:

    ┌─────────────────────────┬──────────────────────────────┐
    │ event type              │ payload class                │
    ├─────────────────────────┼──────────────────────────────┤
    │ agent:registered        │ AgentRegisteredPayload       │
    │ agent:deregistered      │ AgentDeregisteredPayload     │
    │ agent:health            │ AgentHealthPayload           │
    │ workflow:created        │ WorkflowCreatedPayload       │
    │ workflow:updated        │ WorkflowUpdatedPayload       │
    │ workflow:started        │ WorkflowStartedPayload       │
    │ workflow:step_started   │ StepStartedPayload           │
    │ workflow:step_completed │ StepCompletedPayload         │
    │ workflow:step_failed    │ StepFailedPayload            │
    │ workflow:step_skipped   │ StepSkippedPayload           │
    │ workflow:completed      │ WorkflowCompletedPayload     │
    │ workflow:failed         │ WorkflowFailedPayload        │
    └─────────────────────────┴──────────────────────────────┘

Usage:
    >>> event = ChoreographyEvent.from_payload(
    ...     WorkflowStartedPayload(
    ...         execution_id="ex-1", workflow_id="wf-1", step_count=3,
    ...     ),
    ...     correlation_id="corr-1",
    ...     workflow_id="wf-1",
    ...     execution_id="ex-1",
    ... )
    >>> event.type
    <EventType.WORKFLOW_STARTED: 'workflow:started'>
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from maestro.core.enums import EventType


#: Source agent id used for events emitted by the orchestrator itself.
ORCHESTRATOR_SOURCE = "maestro"


# =============================================================================
# Agent Payloads
# =============================================================================
class AgentRegisteredPayload(BaseModel):
    """An agent joined the registry."""

    model_config = {"frozen": True}

    event_type: Literal["agent:registered"] = "agent:registered"
    agent_id: str
    agent_type: str
    capabilities: list[str] = Field(default_factory=list)


class AgentDeregisteredPayload(BaseModel):
    """An agent left the registry."""

    model_config = {"frozen": True}

    event_type: Literal["agent:deregistered"] = "agent:deregistered"
    agent_id: str


class AgentHealthPayload(BaseModel):
    """An agent's availability or health changed.

    ``status`` is the agent status after the change; ``health_score`` is
    set when the change came from a recorded health sample.
    """

    model_config = {"frozen": True}

    event_type: Literal["agent:health"] = "agent:health"
    agent_id: str
    status: str
    previous_status: Optional[str] = None
    health_score: Optional[float] = None


# =============================================================================
# Workflow Definition Payloads
# =============================================================================
class WorkflowCreatedPayload(BaseModel):
    """A workflow definition was accepted."""

    model_config = {"frozen": True}

    event_type: Literal["workflow:created"] = "workflow:created"
    workflow_id: str
    name: str
    version: str
    step_count: int


class WorkflowUpdatedPayload(BaseModel):
    """A workflow definition was changed through update_workflow."""

    model_config = {"frozen": True}

    event_type: Literal["workflow:updated"] = "workflow:updated"
    workflow_id: str
    version: str
    changed_fields: list[str] = Field(default_factory=list)


# =============================================================================
# Execution Payloads
# =============================================================================
class WorkflowStartedPayload(BaseModel):
    """An execution moved from pending to running."""

    model_config = {"frozen": True}

    event_type: Literal["workflow:started"] = "workflow:started"
    execution_id: str
    workflow_id: str
    step_count: int


class StepStartedPayload(BaseModel):
    """A step was dispatched to an agent."""

    model_config = {"frozen": True}

    event_type: Literal["workflow:step_started"] = "workflow:step_started"
    execution_id: str
    step_id: str
    agent_id: str
    capability: str


class StepCompletedPayload(BaseModel):
    """A step's invocation returned successfully."""

    model_config = {"frozen": True}

    event_type: Literal["workflow:step_completed"] = "workflow:step_completed"
    execution_id: str
    step_id: str
    agent_id: str
    output: Any = None


class StepFailedPayload(BaseModel):
    """A step's invocation (or agent resolution) failed."""

    model_config = {"frozen": True}

    event_type: Literal["workflow:step_failed"] = "workflow:step_failed"
    execution_id: str
    step_id: str
    agent_id: Optional[str] = None
    error: dict[str, Any] = Field(default_factory=dict)


class StepSkippedPayload(BaseModel):
    """A step was skipped without being invoked.

    ``reason`` is one of "condition_false", "dependency_failed",
    "execution_stopped" or "timeout".
    """

    model_config = {"frozen": True}

    event_type: Literal["workflow:step_skipped"] = "workflow:step_skipped"
    execution_id: str
    step_id: str
    reason: str


class WorkflowCompletedPayload(BaseModel):
    """An execution finished with every step completed or skipped."""

    model_config = {"frozen": True}

    event_type: Literal["workflow:completed"] = "workflow:completed"
    execution_id: str
    workflow_id: str
    duration_ms: float
    outputs: dict[str, Any] = Field(default_factory=dict)


class WorkflowFailedPayload(BaseModel):
    """An execution finished with at least one failed step."""

    model_config = {"frozen": True}

    event_type: Literal["workflow:failed"] = "workflow:failed"
    execution_id: str
    workflow_id: str
    duration_ms: float
    failed_steps: list[str] = Field(default_factory=list)
    error: Optional[dict[str, Any]] = None


# =============================================================================
# Payload Union
# =============================================================================
EventPayload = Annotated[
    Union[
        AgentRegisteredPayload,
        AgentDeregisteredPayload,
        AgentHealthPayload,
        WorkflowCreatedPayload,
        WorkflowUpdatedPayload,
        WorkflowStartedPayload,
        StepStartedPayload,
        StepCompletedPayload,
        StepFailedPayload,
        StepSkippedPayload,
        WorkflowCompletedPayload,
        WorkflowFailedPayload,
    ],
    Field(discriminator="event_type"),
]


# =============================================================================
# ChoreographyEvent
# =============================================================================
class ChoreographyEvent(BaseModel):
    """An immutable event published on the Event Bus.

    Attributes:
        id: Unique event id.
        type: Event type; always equal to ``payload.event_type``.
        source_agent: Agent that caused the event, or "maestro" for
            orchestrator-originated events.
        target_agent: Agent the event concerns, when different from the
            source (e.g. the agent a step was dispatched to).
        workflow_id: Workflow the event belongs to, if any.
        execution_id: Execution the event belongs to, if any.
        timestamp: UTC publish-side creation time.
        correlation_id: Groups every event of one logical execution.
        payload: Typed payload matching ``type``.
    """

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: str(uuid4()), description="Event id")
    type: EventType = Field(description="Event type")
    source_agent: str = Field(default=ORCHESTRATOR_SOURCE, description="Source agent")
    target_agent: Optional[str] = Field(default=None, description="Target agent")
    workflow_id: Optional[str] = Field(default=None, description="Workflow id")
    execution_id: Optional[str] = Field(default=None, description="Execution id")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    correlation_id: str = Field(description="Correlation id")
    payload: EventPayload

    @model_validator(mode="after")
    def _check_type_matches_payload(self) -> "ChoreographyEvent":
        if self.type.value != self.payload.event_type:
            raise ValueError(
                f"Event type '{self.type.value}' does not match payload "
                f"type '{self.payload.event_type}'"
            )
        return self

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        *,
        correlation_id: str,
        source_agent: str = ORCHESTRATOR_SOURCE,
        target_agent: Optional[str] = None,
        workflow_id: Optional[str] = None,
        execution_id: Optional[str] = None,
    ) -> "ChoreographyEvent":
        """Build an event whose ``type`` is taken from the payload's tag.

        Args:
            payload: One of the payload classes in this module.
            correlation_id: Correlation id for the event.
            source_agent: Originating agent (default "maestro").
            target_agent: Agent the event concerns, if any.
            workflow_id: Owning workflow, if any.
            execution_id: Owning execution, if any.

        Returns:
            A new ChoreographyEvent.
        """
        return cls(
            type=EventType(payload.event_type),
            source_agent=source_agent,
            target_agent=target_agent,
            workflow_id=workflow_id,
            execution_id=execution_id,
            correlation_id=correlation_id,
            payload=payload,
        )
