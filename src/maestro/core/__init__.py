"""
maestro.core - Foundation Layer
=================================

The foundational building blocks every other Maestro module depends on:

    - config:      Configuration management (MaestroConfig, load_config)
    - enums:       Type-safe enumerations (AgentStatus, ExecutionStatus, EventType, ...)
    - models:      Pydantic data models (RegisteredAgent, Workflow, WorkflowExecution, ...)
    - events:      ChoreographyEvent and its tagged payload union
    - exceptions:  Structured exception hierarchy
    - logging:     structlog configuration

Dependency Rule:
    core/ depends on NOTHING else in the maestro package. Everything in
    core is data, configuration or error types; no I/O and no shared state.
"""

from maestro.core.config import MaestroConfig, get_default_config, load_config
from maestro.core.enums import (
    AgentStatus,
    ConditionOperator,
    ErrorPolicy,
    EventType,
    ExecutionStatus,
    HealthStatus,
    StepStatus,
)
from maestro.core.events import ChoreographyEvent, EventPayload
from maestro.core.exceptions import (
    AgentNotFoundError,
    CapacityExceededError,
    CircularDependencyError,
    ConfigurationError,
    DefinitionError,
    DuplicateAgentError,
    DuplicateWorkflowError,
    ExecutionNotFoundError,
    MaestroError,
    StepInvocationError,
    WorkflowNotFoundError,
)
from maestro.core.models import (
    AgentCapability,
    AgentHealth,
    AgentQuery,
    ChoreographyMetrics,
    EventFilter,
    ExecutionCondition,
    ExecutionQuery,
    RegisteredAgent,
    Workflow,
    WorkflowExecution,
    WorkflowStep,
)

__all__ = [
    # Config
    "MaestroConfig",
    "load_config",
    "get_default_config",
    # Enums
    "AgentStatus",
    "HealthStatus",
    "ExecutionStatus",
    "StepStatus",
    "ConditionOperator",
    "ErrorPolicy",
    "EventType",
    # Events
    "ChoreographyEvent",
    "EventPayload",
    # Models
    "AgentCapability",
    "RegisteredAgent",
    "AgentHealth",
    "ExecutionCondition",
    "WorkflowStep",
    "Workflow",
    "WorkflowExecution",
    "AgentQuery",
    "ExecutionQuery",
    "EventFilter",
    "ChoreographyMetrics",
    # Exceptions
    "MaestroError",
    "ConfigurationError",
    "DuplicateAgentError",
    "AgentNotFoundError",
    "DuplicateWorkflowError",
    "WorkflowNotFoundError",
    "ExecutionNotFoundError",
    "DefinitionError",
    "CircularDependencyError",
    "CapacityExceededError",
    "StepInvocationError",
]
