"""
maestro.orchestration.choreography - Choreography Engine
==========================================================

The Choreography Engine owns workflow definitions and execution records.
It validates definitions, creates executions, and provides the pure
helpers the executor uses on every scheduling round: variable
substitution, condition evaluation and readiness computation.

Architecture Context:
    ┌──────────────┐   define / update   ┌─────────────────────────┐
    │   Maestro     │ ─────────────────→ │   ChoreographyEngine    │
    │   (facade)    │   create_execution │                         │
    └──────────────┘                     │  validate → DAG check   │
                                         │  substitute_variables   │
    ┌──────────────┐   ready steps,      │  evaluate_condition     │
    │  Workflow     │   snapshots        │  resolve_ready_steps    │
    │  Executor     │ ←────────────────→ │                         │
    └──────────────┘                     └───────────┬─────────────┘
                                                     │
                                             ┌───────▼────────┐
                                             │ WorkflowStore  │
                                             └────────────────┘

Definition Validation (before anything is stored):
    1. At least one step.
    2. Step ids unique within the workflow.
    3. Every dependency names a step of the same workflow.
    4. Conditions are ``comparison`` conditions with a known operator.
    5. The dependency graph is acyclic (DFS with visiting/visited
       colouring). Disconnected islands of steps are allowed.

Variable Substitution:
    A string input of the exact form ``${name}`` is replaced with
    ``variables[name]`` when present and passed through verbatim when not.
    Substitution is shallow: strings nested inside lists or dicts are not
    rewritten, and ``"Hello ${name}"`` is not interpolated.
"""

from __future__ import annotations

import asyncio
import copy
import operator
import re
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

import structlog
from pydantic import ValidationError

from maestro.core.enums import ConditionOperator, StepStatus
from maestro.core.exceptions import (
    CircularDependencyError,
    DefinitionError,
    DuplicateWorkflowError,
    WorkflowNotFoundError,
)
from maestro.core.models import (
    ExecutionCondition,
    Workflow,
    WorkflowExecution,
    WorkflowStep,
)
from maestro.orchestration.store import InMemoryWorkflowStore, WorkflowStore


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


_REFERENCE = re.compile(r"^\$\{([^{}]+)\}$")

_COMPARISONS: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQ: operator.eq,
    ConditionOperator.NEQ: operator.ne,
    ConditionOperator.GT: operator.gt,
    ConditionOperator.GTE: operator.ge,
    ConditionOperator.LT: operator.lt,
    ConditionOperator.LTE: operator.le,
    ConditionOperator.IN: lambda left, right: left in right,
    ConditionOperator.NOT_IN: lambda left, right: left not in right,
}

_SUPPORTED_CONDITION_TYPES = ("comparison",)

# Fields update_workflow refuses to change.
_IMMUTABLE_FIELDS = ("id", "created_at")


class ChoreographyEngine:
    """Owns workflow definitions and execution records.

    Attributes:
        _store: Backing WorkflowStore for definitions and snapshots.
        _lock: Makes the duplicate check and the save of define/update
            atomic with respect to each other.

    Example:
        >>> engine = ChoreographyEngine()
        >>> await engine.define_workflow(workflow)
        >>> execution = await engine.create_execution(workflow.id)
        >>> ChoreographyEngine.substitute_variables({"to": "${user}"}, execution)
    """

    def __init__(self, store: Optional[WorkflowStore] = None) -> None:
        self._store = store or InMemoryWorkflowStore()
        self._lock = asyncio.Lock()
        self._logger = logger.bind(component="choreography_engine")

    @property
    def store(self) -> WorkflowStore:
        """The backing store."""
        return self._store

    # =========================================================================
    # Workflow Definitions
    # =========================================================================

    async def define_workflow(self, workflow: Workflow) -> Workflow:
        """Validate and store a new workflow definition.

        Args:
            workflow: The definition to store.

        Returns:
            The stored definition.

        Raises:
            DuplicateWorkflowError: If ``workflow.id`` already exists.
            DefinitionError: If the definition is malformed.
            CircularDependencyError: If the step graph has a cycle.
        """
        async with self._lock:
            if await self._store.get_workflow(workflow.id) is not None:
                raise DuplicateWorkflowError(workflow.id)
            self.validate_workflow(workflow)
            stored = workflow.model_copy(deep=True)
            await self._store.save_workflow(stored)

        self._logger.info(
            "workflow_defined",
            workflow_id=workflow.id,
            name=workflow.name,
            version=workflow.version,
            step_count=len(workflow.steps),
        )
        return stored

    async def update_workflow(self, workflow_id: str, **changes: Any) -> Workflow:
        """Merge ``changes`` into a stored workflow and re-validate it.

        Args:
            workflow_id: Workflow to update.
            **changes: Field values to replace (e.g. ``steps=[...]``,
                ``version="1.1.0"``). ``updated_at`` is always refreshed.

        Returns:
            The updated definition.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            DefinitionError: If ``id``/``created_at`` is changed, a field is
                unknown or invalid, or the merged definition is malformed.
            CircularDependencyError: If the merged step graph has a cycle.
        """
        unknown = sorted(set(changes) - set(Workflow.model_fields))
        if unknown:
            raise DefinitionError(
                message=f"Unknown workflow fields: {', '.join(unknown)}",
                workflow_id=workflow_id,
                error_code="UNKNOWN_FIELD",
                details={"fields": unknown},
            )
        frozen = [f for f in _IMMUTABLE_FIELDS if f in changes]
        if frozen:
            raise DefinitionError(
                message=f"Workflow fields cannot be changed: {', '.join(frozen)}",
                workflow_id=workflow_id,
                error_code="IMMUTABLE_FIELD",
                details={"fields": frozen},
            )

        async with self._lock:
            current = await self._store.get_workflow(workflow_id)
            if current is None:
                raise WorkflowNotFoundError(workflow_id)

            merged = {
                **current.model_dump(),
                **changes,
                "updated_at": datetime.now(timezone.utc),
            }
            try:
                updated = Workflow.model_validate(merged)
            except ValidationError as exc:
                raise DefinitionError(
                    message=f"Invalid workflow update: {exc.error_count()} error(s)",
                    workflow_id=workflow_id,
                    error_code="INVALID_UPDATE",
                    details={"errors": exc.errors(include_url=False)},
                ) from exc

            self.validate_workflow(updated)
            await self._store.save_workflow(updated)

        self._logger.info(
            "workflow_updated",
            workflow_id=workflow_id,
            changed_fields=sorted(changes),
            version=updated.version,
        )
        return updated

    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Look up a workflow by id."""
        return await self._store.get_workflow(workflow_id)

    async def list_workflows(self) -> list[Workflow]:
        """All workflow definitions, in definition order."""
        return await self._store.list_workflows()

    # =========================================================================
    # Validation
    # =========================================================================

    @classmethod
    def validate_workflow(cls, workflow: Workflow) -> None:
        """Validate a definition without storing it.

        Raises:
            DefinitionError: For empty steps, duplicate step ids, unknown
                dependencies or malformed conditions.
            CircularDependencyError: If the dependency graph has a cycle.
        """
        if not workflow.steps:
            raise DefinitionError(
                message=f"Workflow '{workflow.id}' has no steps",
                workflow_id=workflow.id,
                error_code="EMPTY_WORKFLOW",
            )

        seen: set[str] = set()
        for step in workflow.steps:
            if step.id in seen:
                raise DefinitionError(
                    message=f"Duplicate step id '{step.id}'",
                    workflow_id=workflow.id,
                    error_code="DUPLICATE_STEP",
                    details={"step_id": step.id},
                )
            seen.add(step.id)

        for step in workflow.steps:
            for dep in step.dependencies:
                if dep not in seen:
                    raise DefinitionError(
                        message=f"Step '{step.id}' depends on unknown step '{dep}'",
                        workflow_id=workflow.id,
                        error_code="UNKNOWN_DEPENDENCY",
                        details={"step_id": step.id, "dependency": dep},
                    )
            if step.condition is not None:
                cls._validate_condition(step.condition, workflow.id, step.id)

        cycle = cls.find_cycle(workflow.steps)
        if cycle is not None:
            raise CircularDependencyError(workflow.id, cycle)

    @staticmethod
    def _validate_condition(
        condition: ExecutionCondition,
        workflow_id: Optional[str] = None,
        step_id: Optional[str] = None,
    ) -> ConditionOperator:
        if condition.type not in _SUPPORTED_CONDITION_TYPES:
            raise DefinitionError(
                message=f"Unsupported condition type '{condition.type}'",
                workflow_id=workflow_id,
                error_code="UNSUPPORTED_CONDITION",
                details={"step_id": step_id, "condition_type": condition.type},
            )
        try:
            return ConditionOperator(condition.operator)
        except ValueError:
            raise DefinitionError(
                message=f"Unknown condition operator '{condition.operator}'",
                workflow_id=workflow_id,
                error_code="UNKNOWN_OPERATOR",
                details={"step_id": step_id, "operator": condition.operator},
            ) from None

    @staticmethod
    def find_cycle(steps: list[WorkflowStep]) -> Optional[list[str]]:
        """Find a dependency cycle using an iterative coloured DFS.

        Edges point from a step to each of its dependencies. A dependency
        met while still on the DFS path ("visiting") closes a cycle.

        Args:
            steps: Steps with unique ids.

        Returns:
            The cycle as step ids with the first id repeated at the end
            (e.g. ``["a", "b", "a"]``), or None for an acyclic graph.
        """
        deps = {step.id: step.dependencies for step in steps}
        visiting: set[str] = set()
        visited: set[str] = set()

        for root in deps:
            if root in visited:
                continue
            path = [root]
            stack = [iter(deps[root])]
            visiting.add(root)

            while stack:
                advanced = False
                for dep in stack[-1]:
                    if dep not in deps or dep in visited:
                        continue
                    if dep in visiting:
                        return path[path.index(dep):] + [dep]
                    visiting.add(dep)
                    path.append(dep)
                    stack.append(iter(deps[dep]))
                    advanced = True
                    break
                if not advanced:
                    done = path.pop()
                    stack.pop()
                    visiting.discard(done)
                    visited.add(done)

        return None

    # =========================================================================
    # Executions
    # =========================================================================

    async def create_execution(
        self,
        workflow_id: str,
        correlation_id: Optional[str] = None,
        parent_execution_id: Optional[str] = None,
    ) -> WorkflowExecution:
        """Create and store a pending execution of a workflow.

        Args:
            workflow_id: Workflow to execute.
            correlation_id: Correlation id for every event of the run.
                Generated when omitted.
            parent_execution_id: Optional causally preceding execution.

        Returns:
            The pending execution: variables seeded from
            ``initial_inputs``, every step ``pending``.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
        """
        workflow = await self._store.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)

        fields: dict[str, Any] = {
            "workflow_id": workflow_id,
            "parent_execution_id": parent_execution_id,
            "variables": copy.deepcopy(workflow.initial_inputs),
            "step_statuses": {step.id: StepStatus.PENDING for step in workflow.steps},
        }
        if correlation_id is not None:
            fields["correlation_id"] = correlation_id
        execution = WorkflowExecution(**fields)
        await self._store.save_execution(execution)

        self._logger.info(
            "execution_created",
            execution_id=execution.id,
            workflow_id=workflow_id,
            correlation_id=execution.correlation_id,
        )
        return execution

    async def save_execution(self, execution: WorkflowExecution) -> None:
        """Store a new snapshot of an execution."""
        await self._store.save_execution(execution)

    async def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        """Latest snapshot of an execution."""
        return await self._store.get_execution(execution_id)

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[WorkflowExecution]:
        """Execution snapshots in creation order, optionally for one workflow."""
        return await self._store.list_executions(workflow_id)

    # =========================================================================
    # Scheduling Helpers
    # =========================================================================

    @staticmethod
    def substitute_variables(
        inputs: Mapping[str, Any], execution: WorkflowExecution
    ) -> dict[str, Any]:
        """Resolve ``${name}`` references in a step's inputs.

        Only top-level string values of the exact form ``${name}`` are
        replaced; nested containers are not searched. Unresolved
        references pass through unchanged. The result is a deep copy, so
        an invoker may mutate it without touching the definition or the
        execution variables.

        Example:
            >>> execution.variables["userName"] = "Alice"
            >>> ChoreographyEngine.substitute_variables(
            ...     {"greeting": "${userName}", "other": "${missing}"}, execution
            ... )
            {'greeting': 'Alice', 'other': '${missing}'}
        """
        resolved: dict[str, Any] = {}
        for key, value in inputs.items():
            if isinstance(value, str):
                match = _REFERENCE.match(value)
                if match and match.group(1) in execution.variables:
                    value = execution.variables[match.group(1)]
            resolved[key] = value
        return copy.deepcopy(resolved)

    @classmethod
    def evaluate_condition(
        cls, condition: ExecutionCondition, variables: Mapping[str, Any]
    ) -> bool:
        """Evaluate a ``comparison`` condition against execution variables.

        A missing variable compares as None. Ordering or membership tests
        between incompatible values evaluate to False.

        Raises:
            DefinitionError: For an unsupported condition type or an
                unknown operator.
        """
        op = cls._validate_condition(condition)
        left = variables.get(condition.variable)
        try:
            return bool(_COMPARISONS[op](left, condition.value))
        except TypeError as exc:
            logger.debug(
                "condition_incomparable",
                variable=condition.variable,
                operator=op.value,
                error=str(exc),
            )
            return False

    @classmethod
    def resolve_ready_steps(
        cls, workflow: Workflow, execution: WorkflowExecution
    ) -> tuple[list[WorkflowStep], list[WorkflowStep]]:
        """Split the pending steps whose dependencies are satisfied.

        A dependency is satisfied once it is completed or skipped.

        Returns:
            ``(ready, skipped)``: ``ready`` steps should be dispatched,
            ``skipped`` steps have a condition that evaluated false.
        """
        ready: list[WorkflowStep] = []
        skipped: list[WorkflowStep] = []
        statuses = execution.step_statuses

        for step in workflow.steps:
            if statuses.get(step.id) != StepStatus.PENDING:
                continue
            if not all(
                dep in statuses and statuses[dep].satisfies_dependency
                for dep in step.dependencies
            ):
                continue
            if step.condition is not None and not cls.evaluate_condition(
                step.condition, execution.variables
            ):
                skipped.append(step)
                continue
            ready.append(step)

        return ready, skipped
