"""
maestro.core.exceptions - Custom Exception Hierarchy
======================================================

Structured exception hierarchy for Maestro. Every component raises one of
these types instead of a bare ``ValueError`` or ``KeyError`` so callers can
branch on the class or on ``error_code`` and log the attached ``details``.

Exception Hierarchy:
    MaestroError (base)
        ├── ConfigurationError       - Invalid config values or config file
        ├── DuplicateAgentError      - register_agent with an id already present
        ├── AgentNotFoundError       - Operation on an agent that is not registered
        ├── DuplicateWorkflowError   - define_workflow with an id already present
        ├── WorkflowNotFoundError    - Operation on an unknown workflow id
        ├── ExecutionNotFoundError   - Operation on an unknown execution id
        ├── DefinitionError          - Malformed step, dependency or condition
        │     └── CircularDependencyError - Step dependency graph has a cycle
        ├── CapacityExceededError    - Concurrency cap reached on execute_workflow
        └── StepInvocationError      - A capability invocation failed

Two Error Regimes:
    Definition-time errors (duplicates, cycles, malformed conditions) are
    raised synchronously to the caller BEFORE any state is stored.

    Execution-time errors (StepInvocationError, timeouts) never escape the
    executor. They are recorded on the WorkflowExecution and published as
    ``workflow:step_failed`` / ``workflow:failed`` events.

Usage:
    >>> from maestro.core.exceptions import DuplicateAgentError
    >>> try:
    ...     await registry.register_agent(agent)
    ... except DuplicateAgentError as e:
    ...     print(e.to_dict())
"""

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# Base Exception
# =============================================================================
# All Maestro exceptions inherit from this base class so a single
# ``except MaestroError`` catches every framework-level failure:
#
#   try:
#       await maestro.define_workflow(workflow)
#   except MaestroError as e:
#       logger.error(e.message, error_code=e.error_code, details=e.details)
# =============================================================================
class MaestroError(Exception):
    """Base exception for all Maestro errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code, UPPER_SNAKE_CASE
            (e.g., "DUPLICATE_AGENT", "CIRCULAR_DEPENDENCY").
        details: Arbitrary dict with additional debugging context.

    Example:
        >>> try:
        ...     do_something()
        ... except MaestroError as e:
        ...     print(f"[{e.error_code}] {e.message}")
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception to a dictionary.

        Used for structured logging and for recording step / execution
        errors on ``WorkflowExecution``.

        Returns:
            Dictionary with error_type, message, error_code, and details.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Error
# =============================================================================
class ConfigurationError(MaestroError):
    """Raised when Maestro configuration is invalid or missing.

    Typically raised by ``load_config`` for a malformed YAML file or by
    ``Maestro.update_config`` when an override fails validation.

    Example:
        >>> raise ConfigurationError(
        ...     message="max_concurrent_workflows must be >= 1",
        ...     details={"max_concurrent_workflows": 0},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Agent Registry Errors
# =============================================================================
# Registering a duplicate id is a contract violation, never a silent
# overwrite. The original agent stays untouched.
# =============================================================================
class DuplicateAgentError(MaestroError):
    """Raised when registering an agent whose id is already registered.

    Attributes:
        agent_id: The conflicting agent id.
    """

    def __init__(
        self,
        agent_id: str,
        message: Optional[str] = None,
        error_code: str = "DUPLICATE_AGENT",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["agent_id"] = agent_id

        super().__init__(
            message=message or f"Agent '{agent_id}' is already registered",
            error_code=error_code,
            details=enriched_details,
        )

        self.agent_id = agent_id


class AgentNotFoundError(MaestroError):
    """Raised when an operation targets an agent that is not registered.

    Attributes:
        agent_id: The unknown agent id.
    """

    def __init__(
        self,
        agent_id: str,
        message: Optional[str] = None,
        error_code: str = "AGENT_NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["agent_id"] = agent_id

        super().__init__(
            message=message or f"Agent '{agent_id}' is not registered",
            error_code=error_code,
            details=enriched_details,
        )

        self.agent_id = agent_id


# =============================================================================
# Workflow Definition Errors
# =============================================================================
class DuplicateWorkflowError(MaestroError):
    """Raised when defining a workflow whose id already exists.

    Attributes:
        workflow_id: The conflicting workflow id.
    """

    def __init__(
        self,
        workflow_id: str,
        message: Optional[str] = None,
        error_code: str = "DUPLICATE_WORKFLOW",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["workflow_id"] = workflow_id

        super().__init__(
            message=message or f"Workflow '{workflow_id}' is already defined",
            error_code=error_code,
            details=enriched_details,
        )

        self.workflow_id = workflow_id


class WorkflowNotFoundError(MaestroError):
    """Raised when an operation references an unknown workflow id.

    Attributes:
        workflow_id: The unknown workflow id.
    """

    def __init__(
        self,
        workflow_id: str,
        message: Optional[str] = None,
        error_code: str = "WORKFLOW_NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["workflow_id"] = workflow_id

        super().__init__(
            message=message or f"Workflow '{workflow_id}' not found",
            error_code=error_code,
            details=enriched_details,
        )

        self.workflow_id = workflow_id


class ExecutionNotFoundError(MaestroError):
    """Raised when an operation references an unknown execution id."""

    def __init__(
        self,
        execution_id: str,
        message: Optional[str] = None,
        error_code: str = "EXECUTION_NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["execution_id"] = execution_id

        super().__init__(
            message=message or f"Execution '{execution_id}' not found",
            error_code=error_code,
            details=enriched_details,
        )

        self.execution_id = execution_id


class DefinitionError(MaestroError):
    """Raised for a malformed workflow definition or condition.

    Covers empty step lists, duplicate step ids, dependencies on unknown
    steps, unsupported condition types and unknown comparison operators.
    Unknown operators are reported at evaluation time rather than treated
    as false.

    Example:
        >>> raise DefinitionError(
        ...     message="Step 'b' depends on unknown step 'x'",
        ...     workflow_id="wf-1",
        ...     details={"step_id": "b", "dependency": "x"},
        ... )
    """

    def __init__(
        self,
        message: str,
        workflow_id: Optional[str] = None,
        error_code: str = "INVALID_DEFINITION",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        if workflow_id:
            enriched_details["workflow_id"] = workflow_id

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.workflow_id = workflow_id


class CircularDependencyError(DefinitionError):
    """Raised when the step dependency graph contains a cycle.

    Attributes:
        cycle: Step ids along the detected cycle, first id repeated at the
            end (e.g., ``["a", "b", "a"]``).
    """

    def __init__(
        self,
        workflow_id: str,
        cycle: list[str],
        message: Optional[str] = None,
        error_code: str = "CIRCULAR_DEPENDENCY",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["cycle"] = list(cycle)

        super().__init__(
            message=message
            or f"Circular dependency detected: {' -> '.join(cycle)}",
            workflow_id=workflow_id,
            error_code=error_code,
            details=enriched_details,
        )

        self.cycle = list(cycle)


# =============================================================================
# Execution Errors
# =============================================================================
class CapacityExceededError(MaestroError):
    """Raised by ``execute_workflow`` when the concurrency cap is reached.

    Admission fails immediately rather than queuing; callers retry.

    Attributes:
        active: Non-terminal executions at the time of the call.
        limit: The configured ``max_concurrent_workflows``.
    """

    def __init__(
        self,
        active: int,
        limit: int,
        message: Optional[str] = None,
        error_code: str = "CAPACITY_EXCEEDED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["active"] = active
        enriched_details["limit"] = limit

        super().__init__(
            message=message
            or f"Maximum concurrent workflows reached ({active}/{limit})",
            error_code=error_code,
            details=enriched_details,
        )

        self.active = active
        self.limit = limit


class StepInvocationError(MaestroError):
    """Wraps a failure raised while invoking a step's capability.

    The executor converts every exception from the invocation collaborator
    (or from agent resolution) into this type and stores ``to_dict()`` on
    ``WorkflowExecution.step_errors``.

    Attributes:
        step_id: The failing step.
        agent_id: The agent that was invoked, if one was resolved.
        capability: The capability being invoked.
    """

    def __init__(
        self,
        message: str,
        step_id: str,
        capability: str,
        agent_id: Optional[str] = None,
        error_code: str = "STEP_INVOCATION_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["step_id"] = step_id
        enriched_details["capability"] = capability
        if agent_id:
            enriched_details["agent_id"] = agent_id

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.step_id = step_id
        self.capability = capability
        self.agent_id = agent_id
