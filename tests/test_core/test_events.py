"""
Tests for maestro.core.events - ChoreographyEvent & Payloads
==============================================================

What's Being Tested:
    - from_payload() derives the event type from the payload tag
    - type / payload mismatches are rejected
    - Payloads and events are immutable
    - The discriminated union resolves dict payloads to the right class
"""

import pytest
from pydantic import ValidationError

from maestro.core.enums import EventType
from maestro.core.events import (
    ORCHESTRATOR_SOURCE,
    AgentRegisteredPayload,
    ChoreographyEvent,
    StepSkippedPayload,
    WorkflowFailedPayload,
    WorkflowStartedPayload,
)


# =============================================================================
# Helpers
# =============================================================================
def _started(execution_id: str = "ex-1") -> WorkflowStartedPayload:
    return WorkflowStartedPayload(execution_id=execution_id, workflow_id="wf-1", step_count=2)


# =============================================================================
# Test: Construction
# =============================================================================
class TestChoreographyEvent:
    """Tests for event construction and validation."""

    def test_from_payload_sets_type(self) -> None:
        event = ChoreographyEvent.from_payload(
            _started(),
            correlation_id="corr-1",
            workflow_id="wf-1",
            execution_id="ex-1",
        )
        assert event.type == EventType.WORKFLOW_STARTED
        assert event.source_agent == ORCHESTRATOR_SOURCE
        assert event.correlation_id == "corr-1"
        assert event.workflow_id == "wf-1"
        assert event.id
        assert event.timestamp.tzinfo is not None

    def test_type_mismatch_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChoreographyEvent(
                type=EventType.WORKFLOW_COMPLETED,
                correlation_id="corr-1",
                payload=_started(),
            )

    def test_event_is_frozen(self) -> None:
        event = ChoreographyEvent.from_payload(_started(), correlation_id="c")
        with pytest.raises(ValidationError):
            event.correlation_id = "other"

    def test_payload_is_frozen(self) -> None:
        payload = StepSkippedPayload(execution_id="ex", step_id="s", reason="timeout")
        with pytest.raises(ValidationError):
            payload.reason = "condition_false"

    def test_dict_payload_resolved_by_tag(self) -> None:
        event = ChoreographyEvent(
            type=EventType.AGENT_REGISTERED,
            correlation_id="agent-1",
            source_agent="agent-1",
            payload={
                "event_type": "agent:registered",
                "agent_id": "agent-1",
                "agent_type": "signer",
                "capabilities": ["sign"],
            },
        )
        assert isinstance(event.payload, AgentRegisteredPayload)
        assert event.payload.capabilities == ["sign"]

    def test_unknown_tag_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChoreographyEvent(
                type=EventType.AGENT_REGISTERED,
                correlation_id="c",
                payload={"event_type": "agent:exploded", "agent_id": "x"},
            )

    def test_serializes(self) -> None:
        event = ChoreographyEvent.from_payload(
            WorkflowFailedPayload(
                execution_id="ex-1",
                workflow_id="wf-1",
                duration_ms=12.5,
                failed_steps=["a"],
            ),
            correlation_id="corr-1",
        )
        data = event.model_dump(mode="json")
        assert data["type"] == "workflow:failed"
        assert data["payload"]["failed_steps"] == ["a"]
