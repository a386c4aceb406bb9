"""
maestro.orchestration - Orchestration Layer
=============================================

The components that hold agents, definitions and executions, and drive
executions forward. The Maestro facade wires them together.

Components:
    - AgentRegistry:      Agent lifecycle, health and capability discovery
    - EventBus:           Pub/sub of ChoreographyEvents with bounded history
    - WorkflowStore:      Persistence of definitions and execution snapshots
    - ChoreographyEngine: Definition validation, DAG checks, readiness
    - WorkflowExecutor:   Runs one execution from pending to terminal
"""

from maestro.orchestration.choreography import ChoreographyEngine
from maestro.orchestration.event_bus import EventBus, EventCallback, Subscription
from maestro.orchestration.executor import WorkflowExecutor
from maestro.orchestration.registry import AgentRegistry
from maestro.orchestration.store import InMemoryWorkflowStore, WorkflowStore

__all__ = [
    # Registry
    "AgentRegistry",
    # Event Bus
    "EventBus",
    "EventCallback",
    "Subscription",
    # Store
    "WorkflowStore",
    "InMemoryWorkflowStore",
    # Choreography
    "ChoreographyEngine",
    "WorkflowExecutor",
]
