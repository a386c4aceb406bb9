"""
maestro.orchestration.executor - Workflow Executor
====================================================

Drives one ``WorkflowExecution`` from ``pending`` to a terminal status.
The facade runs each execution in its own ``asyncio.Task``; within an
execution, every round dispatches all ready steps concurrently and joins
them before computing the next ready set.

Execution Flow:
    1. Mark the execution ``running``; emit ``workflow:started``.
    2. Repeat:
       a. Ready steps = pending steps whose dependencies are completed or
          skipped. Ready steps whose condition is false are ``skipped``.
       b. Dispatch every ready step concurrently: substitute inputs,
          resolve the agent, call the invoker.
       c. Success → ``completed``, output merged into ``variables``.
          Failure → ``failed``; with ``on_error=stop`` no new steps start.
       d. No step ready → remaining pending steps are unreachable and
          become ``skipped``.
    3. Finalize exactly once: ``completed`` if no step failed, otherwise
       ``failed``; emit ``workflow:completed`` / ``workflow:failed``.

    ┌─────────┐   start    ┌──────────────────────── round ───────────┐
    │ pending │ ─────────→ │ ready? ──→ gather(dispatch(step) ...)    │
    └─────────┘            │   ↑                    │                 │
                           │   └────────────────────┘                 │
                           └──────────────┬───────────────────────────┘
                                          │ nothing ready / stopped
                                          ↓
                                 skip leftovers → finalize

Snapshots:
    Every transition builds a new WorkflowExecution via ``model_copy`` from
    the latest snapshot while holding the run's lock, then saves it through
    the Choreography Engine. Events are published after the transition.

Time Budget:
    ``Workflow.max_duration_ms`` (or the configured default) bounds the
    whole run. On expiry, running steps fail with WORKFLOW_TIMEOUT and
    pending steps are skipped.

Failures never escape ``run``: invocation errors, agent resolution errors,
timeouts and unexpected internal errors all end in a ``failed`` execution.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from maestro.core.enums import AgentStatus, ErrorPolicy, ExecutionStatus, StepStatus
from maestro.core.events import (
    ChoreographyEvent,
    StepCompletedPayload,
    StepFailedPayload,
    StepSkippedPayload,
    StepStartedPayload,
    WorkflowCompletedPayload,
    WorkflowFailedPayload,
    WorkflowStartedPayload,
)
from maestro.core.exceptions import MaestroError, StepInvocationError
from maestro.core.models import Workflow, WorkflowExecution, WorkflowStep
from maestro.integrations.invocation import CapabilityInvoker
from maestro.orchestration.choreography import ChoreographyEngine
from maestro.orchestration.event_bus import EventBus
from maestro.orchestration.registry import AgentRegistry


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

# Called with the terminal snapshot after it is saved and before the
# terminal event is published.
TerminalCallback = Callable[[WorkflowExecution], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Per-Execution Run State
# =============================================================================
class _ExecutionRun:
    """Mutable bookkeeping for one in-flight execution.

    ``execution`` always holds the latest snapshot. ``stopped`` is set
    when a step fails under ``on_error=stop``.
    """

    def __init__(
        self,
        workflow: Workflow,
        execution: WorkflowExecution,
        on_terminal: Optional[TerminalCallback] = None,
    ) -> None:
        self.workflow = workflow
        self.execution = execution
        self.on_terminal = on_terminal
        self.stopped = False
        self.lock = asyncio.Lock()


class WorkflowExecutor:
    """Runs workflow executions against registered agents.

    Attributes:
        _engine: Source of workflow definitions and sink for snapshots.
        _registry: Used to resolve the agent serving each step.
        _event_bus: Receives every execution event.
        _invoker: Performs capability invocations.
        _default_timeout_ms: Budget for workflows without ``max_duration_ms``.

    Example:
        >>> executor = WorkflowExecutor(engine, registry, bus, invoker)
        >>> execution = await engine.create_execution("wf-1")
        >>> final = await executor.run(execution)
        >>> final.status
        <ExecutionStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        engine: ChoreographyEngine,
        registry: AgentRegistry,
        event_bus: EventBus,
        invoker: CapabilityInvoker,
        default_timeout_ms: int = 0,
    ) -> None:
        self._engine = engine
        self._registry = registry
        self._event_bus = event_bus
        self._invoker = invoker
        self._default_timeout_ms = default_timeout_ms
        self._logger = logger.bind(component="workflow_executor")

    @property
    def default_timeout_ms(self) -> int:
        """Budget applied to workflows that set no ``max_duration_ms``."""
        return self._default_timeout_ms

    @default_timeout_ms.setter
    def default_timeout_ms(self, value: int) -> None:
        self._default_timeout_ms = value

    # =========================================================================
    # Entry Point
    # =========================================================================

    async def run(
        self,
        execution: WorkflowExecution,
        on_terminal: Optional[TerminalCallback] = None,
    ) -> WorkflowExecution:
        """Drive ``execution`` to a terminal status.

        Args:
            execution: A pending execution created by the engine.
            on_terminal: Invoked once with the terminal snapshot, before
                the terminal event reaches subscribers.

        Returns:
            The terminal snapshot.
        """
        if execution.is_terminal:
            if on_terminal is not None:
                on_terminal(execution)
            return execution

        workflow = await self._engine.get_workflow(execution.workflow_id)
        if workflow is None:
            return await self._fail_unknown_workflow(execution, on_terminal)

        run = _ExecutionRun(workflow, execution, on_terminal)
        await self._start(run)

        budget_ms = self._budget_ms(workflow)
        try:
            if budget_ms:
                await asyncio.wait_for(self._drive(run), timeout=budget_ms / 1000.0)
            else:
                await self._drive(run)
        except asyncio.TimeoutError:
            await self._expire(run, budget_ms)
        except Exception as exc:
            self._logger.exception(
                "execution_internal_error",
                execution_id=execution.id,
                error=str(exc),
            )
            await self._abort(
                run,
                MaestroError(
                    message=f"Execution aborted: {exc}",
                    error_code="INTERNAL_ERROR",
                    details={"error_type": type(exc).__name__},
                ),
                reason="execution_stopped",
            )

        return await self._finalize(run)

    def _budget_ms(self, workflow: Workflow) -> int:
        if workflow.max_duration_ms is not None:
            return workflow.max_duration_ms
        return self._default_timeout_ms

    # =========================================================================
    # Scheduling Loop
    # =========================================================================

    async def _drive(self, run: _ExecutionRun) -> None:
        while not run.stopped:
            ready, skipped = ChoreographyEngine.resolve_ready_steps(
                run.workflow, run.execution
            )
            for step in skipped:
                await self._skip_step(run, step.id, "condition_false")

            if not ready:
                if skipped:
                    # Skipped steps count as satisfied dependencies.
                    continue
                break

            await asyncio.gather(*(self._dispatch_step(run, step) for step in ready))

        reason = "execution_stopped" if run.stopped else "dependency_failed"
        for step_id in run.execution.steps_with_status(StepStatus.PENDING):
            await self._skip_step(run, step_id, reason)

    async def _dispatch_step(self, run: _ExecutionRun, step: WorkflowStep) -> None:
        inputs = ChoreographyEngine.substitute_variables(step.inputs, run.execution)

        try:
            agent_id = self._resolve_agent(step)
        except StepInvocationError as exc:
            await self._fail_step(run, step, None, exc)
            return

        await self._transition(
            run,
            lambda ex: {
                "step_statuses": {**ex.step_statuses, step.id: StepStatus.RUNNING},
                "step_agents": {**ex.step_agents, step.id: agent_id},
            },
        )
        await self._publish(
            run,
            StepStartedPayload(
                execution_id=run.execution.id,
                step_id=step.id,
                agent_id=agent_id,
                capability=step.capability,
            ),
            target_agent=agent_id,
        )

        try:
            output = await self._invoker(agent_id, step.capability, inputs)
        except Exception as exc:
            await self._fail_step(run, step, agent_id, self._wrap_error(exc, step, agent_id))
            return

        await self._complete_step(run, step, agent_id, output)

    def _resolve_agent(self, step: WorkflowStep) -> str:
        """Pick the agent that serves ``step``.

        Raises:
            StepInvocationError: If no suitable agent is registered.
        """
        if step.agent_id is not None:
            agent = self._registry.get_agent(step.agent_id)
            if agent is None:
                raise StepInvocationError(
                    message=f"Agent '{step.agent_id}' is not registered",
                    step_id=step.id,
                    capability=step.capability,
                    agent_id=step.agent_id,
                    error_code="AGENT_NOT_FOUND",
                )
            if not agent.has_capability(step.capability):
                raise StepInvocationError(
                    message=(
                        f"Agent '{agent.id}' does not advertise "
                        f"capability '{step.capability}'"
                    ),
                    step_id=step.id,
                    capability=step.capability,
                    agent_id=agent.id,
                    error_code="CAPABILITY_NOT_SUPPORTED",
                )
            if agent.status == AgentStatus.OFFLINE:
                raise StepInvocationError(
                    message=f"Agent '{agent.id}' is offline",
                    step_id=step.id,
                    capability=step.capability,
                    agent_id=agent.id,
                    error_code="AGENT_OFFLINE",
                )
            return agent.id

        selected = self._registry.select_agent(step.capability)
        if selected is None:
            raise StepInvocationError(
                message=f"No available agent advertises capability '{step.capability}'",
                step_id=step.id,
                capability=step.capability,
                error_code="NO_AVAILABLE_AGENT",
            )
        return selected.id

    @staticmethod
    def _wrap_error(
        exc: Exception, step: WorkflowStep, agent_id: str
    ) -> StepInvocationError:
        if isinstance(exc, StepInvocationError):
            return exc
        if isinstance(exc, MaestroError):
            cause = exc.to_dict()
        else:
            cause = {"error_type": type(exc).__name__, "message": str(exc)}
        return StepInvocationError(
            message=f"Step '{step.id}' failed: {exc}",
            step_id=step.id,
            capability=step.capability,
            agent_id=agent_id,
            details={"cause": cause},
        )

    # =========================================================================
    # Step Transitions
    # =========================================================================

    async def _complete_step(
        self, run: _ExecutionRun, step: WorkflowStep, agent_id: str, output: Any
    ) -> None:
        if output is None:
            fields: dict[str, Any] = {}
        elif isinstance(output, Mapping):
            fields = dict(output)
        else:
            fields = {"result": output}

        await self._transition(
            run,
            lambda ex: {
                "step_statuses": {**ex.step_statuses, step.id: StepStatus.COMPLETED},
                "step_outputs": {**ex.step_outputs, step.id: fields},
                "variables": {**ex.variables, **fields},
            },
        )
        self._logger.debug(
            "step_completed",
            execution_id=run.execution.id,
            step_id=step.id,
            agent_id=agent_id,
        )
        await self._publish(
            run,
            StepCompletedPayload(
                execution_id=run.execution.id,
                step_id=step.id,
                agent_id=agent_id,
                output=dict(fields),
            ),
            target_agent=agent_id,
        )

    async def _fail_step(
        self,
        run: _ExecutionRun,
        step: WorkflowStep,
        agent_id: Optional[str],
        error: MaestroError,
    ) -> None:
        error_dict = error.to_dict()
        await self._transition(
            run,
            lambda ex: {
                "step_statuses": {**ex.step_statuses, step.id: StepStatus.FAILED},
                "step_errors": {**ex.step_errors, step.id: error_dict},
            },
        )
        if run.workflow.on_error == ErrorPolicy.STOP:
            run.stopped = True

        self._logger.warning(
            "step_failed",
            execution_id=run.execution.id,
            step_id=step.id,
            agent_id=agent_id,
            error_code=error.error_code,
            error=error.message,
        )
        await self._publish(
            run,
            StepFailedPayload(
                execution_id=run.execution.id,
                step_id=step.id,
                agent_id=agent_id,
                error=error_dict,
            ),
            target_agent=agent_id,
        )

    async def _skip_step(self, run: _ExecutionRun, step_id: str, reason: str) -> None:
        await self._transition(
            run,
            lambda ex: {"step_statuses": {**ex.step_statuses, step_id: StepStatus.SKIPPED}},
        )
        self._logger.debug(
            "step_skipped",
            execution_id=run.execution.id,
            step_id=step_id,
            reason=reason,
        )
        await self._publish(
            run,
            StepSkippedPayload(
                execution_id=run.execution.id,
                step_id=step_id,
                reason=reason,
            ),
        )

    # =========================================================================
    # Execution Transitions
    # =========================================================================

    async def _start(self, run: _ExecutionRun) -> None:
        await self._transition(
            run,
            lambda ex: {"status": ExecutionStatus.RUNNING, "started_at": _now()},
        )
        self._logger.info(
            "execution_started",
            execution_id=run.execution.id,
            workflow_id=run.workflow.id,
            correlation_id=run.execution.correlation_id,
        )
        await self._publish(
            run,
            WorkflowStartedPayload(
                execution_id=run.execution.id,
                workflow_id=run.workflow.id,
                step_count=len(run.workflow.steps),
            ),
        )

    async def _expire(self, run: _ExecutionRun, budget_ms: int) -> None:
        self._logger.warning(
            "execution_timed_out",
            execution_id=run.execution.id,
            budget_ms=budget_ms,
        )
        await self._abort(
            run,
            MaestroError(
                message=f"Execution exceeded its time budget of {budget_ms} ms",
                error_code="WORKFLOW_TIMEOUT",
                details={"budget_ms": budget_ms},
            ),
            reason="timeout",
        )

    async def _abort(self, run: _ExecutionRun, error: MaestroError, reason: str) -> None:
        """Fail running steps with ``error`` and skip pending ones."""
        run.stopped = True
        await self._transition(run, lambda ex: {"error": error.to_dict()})

        for step_id in run.execution.steps_with_status(StepStatus.RUNNING):
            step = run.workflow.get_step(step_id)
            if step is None:
                continue
            step_error = StepInvocationError(
                message=error.message,
                step_id=step_id,
                capability=step.capability,
                error_code=error.error_code,
                details=dict(error.details),
            )
            await self._fail_step(run, step, None, step_error)

        for step_id in run.execution.steps_with_status(StepStatus.PENDING):
            await self._skip_step(run, step_id, reason)

    async def _finalize(self, run: _ExecutionRun) -> WorkflowExecution:
        """Move the execution to its terminal status and emit the final event."""
        async with run.lock:
            current = run.execution
            if current.is_terminal:
                return current

            failed_steps = current.steps_with_status(StepStatus.FAILED)
            failed = bool(failed_steps) or current.error is not None
            update: dict[str, Any] = {
                "status": ExecutionStatus.FAILED if failed else ExecutionStatus.COMPLETED,
                "finished_at": _now(),
            }
            if failed and current.error is None:
                update["error"] = {
                    "error_type": "StepInvocationError",
                    "message": f"Step(s) failed: {', '.join(failed_steps)}",
                    "error_code": "STEP_FAILED",
                    "details": {"failed_steps": failed_steps},
                }
            run.execution = current.model_copy(update=update)
            await self._engine.save_execution(run.execution)

        final = run.execution
        if run.on_terminal is not None:
            run.on_terminal(final)
        duration_ms = final.duration_ms or 0.0

        if final.status == ExecutionStatus.COMPLETED:
            self._logger.info(
                "execution_completed",
                execution_id=final.id,
                workflow_id=final.workflow_id,
                duration_ms=round(duration_ms, 2),
            )
            await self._publish(
                run,
                WorkflowCompletedPayload(
                    execution_id=final.id,
                    workflow_id=final.workflow_id,
                    duration_ms=duration_ms,
                    outputs=self._collect_outputs(run.workflow, final),
                ),
            )
        else:
            self._logger.warning(
                "execution_failed",
                execution_id=final.id,
                workflow_id=final.workflow_id,
                failed_steps=failed_steps,
                duration_ms=round(duration_ms, 2),
            )
            await self._publish(
                run,
                WorkflowFailedPayload(
                    execution_id=final.id,
                    workflow_id=final.workflow_id,
                    duration_ms=duration_ms,
                    failed_steps=failed_steps,
                    error=final.error,
                ),
            )
        return final

    async def _fail_unknown_workflow(
        self,
        execution: WorkflowExecution,
        on_terminal: Optional[TerminalCallback] = None,
    ) -> WorkflowExecution:
        now = _now()
        failed = execution.model_copy(
            update={
                "status": ExecutionStatus.FAILED,
                "started_at": execution.started_at or now,
                "finished_at": now,
                "error": {
                    "error_type": "WorkflowNotFoundError",
                    "message": f"Workflow '{execution.workflow_id}' not found",
                    "error_code": "WORKFLOW_NOT_FOUND",
                    "details": {"workflow_id": execution.workflow_id},
                },
            }
        )
        await self._engine.save_execution(failed)
        if on_terminal is not None:
            on_terminal(failed)
        await self._event_bus.publish(
            ChoreographyEvent.from_payload(
                WorkflowFailedPayload(
                    execution_id=failed.id,
                    workflow_id=failed.workflow_id,
                    duration_ms=0.0,
                    error=failed.error,
                ),
                correlation_id=failed.correlation_id,
                workflow_id=failed.workflow_id,
                execution_id=failed.id,
            )
        )
        return failed

    @staticmethod
    def _collect_outputs(workflow: Workflow, execution: WorkflowExecution) -> dict[str, Any]:
        if not workflow.expected_outputs:
            return dict(execution.variables)
        return {
            name: execution.variables[name]
            for name in workflow.expected_outputs
            if name in execution.variables
        }

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    async def _transition(
        self,
        run: _ExecutionRun,
        build: Callable[[WorkflowExecution], dict[str, Any]],
    ) -> WorkflowExecution:
        """Apply ``build(latest)`` as a new snapshot and save it."""
        async with run.lock:
            run.execution = run.execution.model_copy(update=build(run.execution))
            await self._engine.save_execution(run.execution)
            return run.execution

    async def _publish(
        self,
        run: _ExecutionRun,
        payload: Any,
        *,
        target_agent: Optional[str] = None,
    ) -> None:
        await self._event_bus.publish(
            ChoreographyEvent.from_payload(
                payload,
                correlation_id=run.execution.correlation_id,
                target_agent=target_agent,
                workflow_id=run.workflow.id,
                execution_id=run.execution.id,
            )
        )
