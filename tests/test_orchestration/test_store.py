"""
Tests for maestro.orchestration.store - InMemoryWorkflowStore
===============================================================

What's Being Tested:
    - Workflow save / get / list
    - Execution snapshots: save, overwrite, creation order, filtering
    - Clear
    - WorkflowStore is abstract
"""

import pytest

from maestro.core.enums import ExecutionStatus
from maestro.core.models import Workflow, WorkflowExecution, WorkflowStep
from maestro.orchestration.store import InMemoryWorkflowStore, WorkflowStore


def _workflow(workflow_id: str) -> Workflow:
    return Workflow(
        id=workflow_id,
        name=workflow_id,
        steps=[WorkflowStep(id="s1", capability="noop")],
    )


class TestInMemoryWorkflowStore:
    """Tests for the in-memory store."""

    def test_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            WorkflowStore()

    async def test_workflow_roundtrip(self, store: InMemoryWorkflowStore) -> None:
        workflow = _workflow("wf-1")
        await store.save_workflow(workflow)

        assert await store.get_workflow("wf-1") == workflow
        assert await store.get_workflow("missing") is None
        assert [w.id for w in await store.list_workflows()] == ["wf-1"]

    async def test_execution_snapshot_overwrite(self, store: InMemoryWorkflowStore) -> None:
        execution = WorkflowExecution(workflow_id="wf-1")
        await store.save_execution(execution)
        running = execution.model_copy(update={"status": ExecutionStatus.RUNNING})
        await store.save_execution(running)

        stored = await store.get_execution(execution.id)
        assert stored.status == ExecutionStatus.RUNNING
        assert len(await store.list_executions()) == 1

    async def test_list_executions_creation_order(self, store: InMemoryWorkflowStore) -> None:
        first = WorkflowExecution(workflow_id="wf-1")
        second = WorkflowExecution(workflow_id="wf-2")
        third = WorkflowExecution(workflow_id="wf-1")
        for execution in (first, second, third):
            await store.save_execution(execution)

        # Re-saving keeps the original position.
        await store.save_execution(first.model_copy(update={"status": ExecutionStatus.FAILED}))

        assert [e.id for e in await store.list_executions()] == [first.id, second.id, third.id]
        assert [e.id for e in await store.list_executions("wf-1")] == [first.id, third.id]

    async def test_clear(self, store: InMemoryWorkflowStore) -> None:
        await store.save_workflow(_workflow("wf-1"))
        await store.save_execution(WorkflowExecution(workflow_id="wf-1"))

        await store.clear()

        assert await store.list_workflows() == []
        assert await store.list_executions() == []
