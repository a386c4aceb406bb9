"""
Tests for maestro.orchestration.choreography - ChoreographyEngine
===================================================================

What's Being Tested:
    - Definition validation: empty, duplicate step ids, unknown
      dependencies, malformed conditions, cycles
    - Rejected definitions are never stored
    - update_workflow merge, immutability rules and re-validation
    - Execution creation (seeded variables, pending steps)
    - Variable substitution (exact ``${name}`` only, shallow)
    - Condition evaluation for every operator
    - Ready-step resolution
"""

import pytest

from maestro.core.enums import ExecutionStatus, StepStatus
from maestro.core.exceptions import (
    CircularDependencyError,
    DefinitionError,
    DuplicateWorkflowError,
    WorkflowNotFoundError,
)
from maestro.core.models import ExecutionCondition, Workflow, WorkflowExecution, WorkflowStep
from maestro.orchestration.choreography import ChoreographyEngine


# =============================================================================
# Helpers
# =============================================================================
def _step(step_id: str, *deps: str, **fields) -> WorkflowStep:
    fields.setdefault("capability", "noop")
    return WorkflowStep(id=step_id, dependencies=list(deps), **fields)


def _workflow(*steps: WorkflowStep, workflow_id: str = "wf-1", **fields) -> Workflow:
    return Workflow(id=workflow_id, name="Test", steps=list(steps), **fields)


def _execution(variables=None, statuses=None) -> WorkflowExecution:
    return WorkflowExecution(
        workflow_id="wf-1",
        variables=variables or {},
        step_statuses=statuses or {},
    )


# =============================================================================
# Test: Definition
# =============================================================================
class TestDefineWorkflow:
    """Tests for define_workflow validation."""

    async def test_accepts_acyclic_graph(self, engine: ChoreographyEngine) -> None:
        workflow = _workflow(_step("a"), _step("b", "a"), _step("c", "a"), _step("d", "b", "c"))
        stored = await engine.define_workflow(workflow)

        assert stored == workflow
        assert await engine.get_workflow("wf-1") == workflow

    async def test_accepts_disconnected_steps(self, engine: ChoreographyEngine) -> None:
        await engine.define_workflow(_workflow(_step("a"), _step("b"), _step("c", "b")))
        assert len((await engine.get_workflow("wf-1")).steps) == 3

    async def test_stores_a_copy(self, engine: ChoreographyEngine) -> None:
        workflow = _workflow(_step("a"))
        await engine.define_workflow(workflow)
        workflow.steps.append(_step("b"))

        assert len((await engine.get_workflow("wf-1")).steps) == 1

    async def test_rejects_cycle_and_does_not_store(self, engine: ChoreographyEngine) -> None:
        workflow = _workflow(_step("a", "c"), _step("b", "a"), _step("c", "b"))

        with pytest.raises(CircularDependencyError) as exc_info:
            await engine.define_workflow(workflow)

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}
        assert await engine.get_workflow("wf-1") is None

    async def test_rejects_self_dependency(self, engine: ChoreographyEngine) -> None:
        with pytest.raises(CircularDependencyError) as exc_info:
            await engine.define_workflow(_workflow(_step("a", "a")))
        assert exc_info.value.cycle == ["a", "a"]

    async def test_rejects_empty(self, engine: ChoreographyEngine) -> None:
        with pytest.raises(DefinitionError) as exc_info:
            await engine.define_workflow(_workflow())
        assert exc_info.value.error_code == "EMPTY_WORKFLOW"

    async def test_rejects_duplicate_step_ids(self, engine: ChoreographyEngine) -> None:
        with pytest.raises(DefinitionError) as exc_info:
            await engine.define_workflow(_workflow(_step("a"), _step("a")))
        assert exc_info.value.error_code == "DUPLICATE_STEP"

    async def test_rejects_unknown_dependency(self, engine: ChoreographyEngine) -> None:
        with pytest.raises(DefinitionError) as exc_info:
            await engine.define_workflow(_workflow(_step("a", "ghost")))
        assert exc_info.value.error_code == "UNKNOWN_DEPENDENCY"
        assert exc_info.value.details["dependency"] == "ghost"

    async def test_rejects_unknown_operator(self, engine: ChoreographyEngine) -> None:
        condition = ExecutionCondition(variable="x", operator="like", value=1)
        with pytest.raises(DefinitionError) as exc_info:
            await engine.define_workflow(_workflow(_step("a", condition=condition)))
        assert exc_info.value.error_code == "UNKNOWN_OPERATOR"

    async def test_rejects_unsupported_condition_type(self, engine: ChoreographyEngine) -> None:
        condition = ExecutionCondition(type="script", variable="x", operator="eq")
        with pytest.raises(DefinitionError) as exc_info:
            await engine.define_workflow(_workflow(_step("a", condition=condition)))
        assert exc_info.value.error_code == "UNSUPPORTED_CONDITION"

    async def test_rejects_duplicate_workflow(self, engine: ChoreographyEngine) -> None:
        await engine.define_workflow(_workflow(_step("a")))
        with pytest.raises(DuplicateWorkflowError):
            await engine.define_workflow(_workflow(_step("b")))
        assert (await engine.get_workflow("wf-1")).steps[0].id == "a"

    async def test_list_workflows(self, engine: ChoreographyEngine) -> None:
        await engine.define_workflow(_workflow(_step("a"), workflow_id="one"))
        await engine.define_workflow(_workflow(_step("a"), workflow_id="two"))
        assert [w.id for w in await engine.list_workflows()] == ["one", "two"]


# =============================================================================
# Test: Cycle Detection
# =============================================================================
class TestFindCycle:
    """Direct tests of the DFS cycle finder."""

    def test_acyclic(self) -> None:
        steps = [_step("a"), _step("b", "a"), _step("c", "a", "b")]
        assert ChoreographyEngine.find_cycle(steps) is None

    def test_two_node_cycle(self) -> None:
        cycle = ChoreographyEngine.find_cycle([_step("a", "b"), _step("b", "a")])
        assert cycle in (["a", "b", "a"], ["b", "a", "b"])

    def test_cycle_behind_acyclic_prefix(self) -> None:
        steps = [_step("root"), _step("x", "root", "z"), _step("y", "x"), _step("z", "y")]
        cycle = ChoreographyEngine.find_cycle(steps)
        assert cycle is not None
        assert set(cycle) == {"x", "y", "z"}

    def test_deep_chain_is_not_recursive(self) -> None:
        # Declared leaf-first so the walk starts at the deepest step.
        steps = [_step(f"s{i}", f"s{i - 1}") for i in range(2999, 0, -1)] + [_step("s0")]
        assert ChoreographyEngine.find_cycle(steps) is None


# =============================================================================
# Test: Update
# =============================================================================
class TestUpdateWorkflow:
    """Tests for update_workflow."""

    async def test_update_fields(self, engine: ChoreographyEngine) -> None:
        original = await engine.define_workflow(_workflow(_step("a")))

        updated = await engine.update_workflow(
            "wf-1", version="2.0.0", steps=[_step("a"), _step("b", "a")]
        )

        assert updated.version == "2.0.0"
        assert [s.id for s in updated.steps] == ["a", "b"]
        assert updated.created_at == original.created_at
        assert updated.updated_at >= original.updated_at
        assert await engine.get_workflow("wf-1") == updated

    async def test_update_rejects_cycle_and_keeps_original(
        self, engine: ChoreographyEngine
    ) -> None:
        original = await engine.define_workflow(_workflow(_step("a"), _step("b", "a")))

        with pytest.raises(CircularDependencyError):
            await engine.update_workflow("wf-1", steps=[_step("a", "b"), _step("b", "a")])

        assert await engine.get_workflow("wf-1") == original

    async def test_update_immutable_field(self, engine: ChoreographyEngine) -> None:
        await engine.define_workflow(_workflow(_step("a")))
        with pytest.raises(DefinitionError) as exc_info:
            await engine.update_workflow("wf-1", id="other")
        assert exc_info.value.error_code == "IMMUTABLE_FIELD"

    async def test_update_unknown_field(self, engine: ChoreographyEngine) -> None:
        await engine.define_workflow(_workflow(_step("a")))
        with pytest.raises(DefinitionError) as exc_info:
            await engine.update_workflow("wf-1", colour="blue")
        assert exc_info.value.error_code == "UNKNOWN_FIELD"

    async def test_update_invalid_value(self, engine: ChoreographyEngine) -> None:
        await engine.define_workflow(_workflow(_step("a")))
        with pytest.raises(DefinitionError) as exc_info:
            await engine.update_workflow("wf-1", max_duration_ms=-1)
        assert exc_info.value.error_code == "INVALID_UPDATE"

    async def test_update_missing_workflow(self, engine: ChoreographyEngine) -> None:
        with pytest.raises(WorkflowNotFoundError):
            await engine.update_workflow("ghost", version="2")


# =============================================================================
# Test: Executions
# =============================================================================
class TestCreateExecution:
    """Tests for execution creation."""

    async def test_seeds_execution(self, engine: ChoreographyEngine) -> None:
        await engine.define_workflow(
            _workflow(_step("a"), _step("b", "a"), initial_inputs={"user": "Alice"})
        )

        execution = await engine.create_execution("wf-1", correlation_id="corr-9")

        assert execution.status == ExecutionStatus.PENDING
        assert execution.variables == {"user": "Alice"}
        assert execution.step_statuses == {"a": StepStatus.PENDING, "b": StepStatus.PENDING}
        assert execution.correlation_id == "corr-9"
        assert await engine.get_execution(execution.id) == execution

    async def test_generates_correlation_id(self, engine: ChoreographyEngine) -> None:
        await engine.define_workflow(_workflow(_step("a")))
        first = await engine.create_execution("wf-1")
        second = await engine.create_execution("wf-1", parent_execution_id=first.id)
        assert first.correlation_id != second.correlation_id
        assert second.parent_execution_id == first.id

    async def test_unknown_workflow(self, engine: ChoreographyEngine) -> None:
        with pytest.raises(WorkflowNotFoundError):
            await engine.create_execution("ghost")
        assert await engine.list_executions() == []


# =============================================================================
# Test: Variable Substitution
# =============================================================================
class TestSubstituteVariables:
    """Tests for ${name} resolution."""

    def test_resolves_and_passes_through(self) -> None:
        execution = _execution(variables={"userName": "Alice"})
        resolved = ChoreographyEngine.substitute_variables(
            {"greeting": "${userName}", "other": "${missing}", "literal": 3},
            execution,
        )
        assert resolved == {"greeting": "Alice", "other": "${missing}", "literal": 3}

    def test_preserves_value_type(self) -> None:
        execution = _execution(variables={"items": [1, 2], "count": 2})
        resolved = ChoreographyEngine.substitute_variables(
            {"items": "${items}", "count": "${count}"}, execution
        )
        assert resolved == {"items": [1, 2], "count": 2}

    def test_no_interpolation_or_nesting(self) -> None:
        execution = _execution(variables={"name": "Alice"})
        inputs = {"text": "Hello ${name}", "nested": {"who": "${name}"}, "list": ["${name}"]}
        assert ChoreographyEngine.substitute_variables(inputs, execution) == inputs

    def test_does_not_mutate_inputs(self) -> None:
        inputs = {"who": "${name}"}
        ChoreographyEngine.substitute_variables(inputs, _execution(variables={"name": "A"}))
        assert inputs == {"who": "${name}"}


# =============================================================================
# Test: Condition Evaluation
# =============================================================================
class TestEvaluateCondition:
    """Tests for comparison conditions."""

    @pytest.mark.parametrize(
        "operator, value, expected",
        [
            ("eq", 5, True),
            ("eq", 6, False),
            ("neq", 6, True),
            ("gt", 4, True),
            ("gte", 5, True),
            ("lt", 5, False),
            ("lte", 5, True),
            ("in", [1, 5], True),
            ("not_in", [1, 5], False),
        ],
    )
    def test_operators(self, operator, value, expected) -> None:
        condition = ExecutionCondition(variable="x", operator=operator, value=value)
        assert ChoreographyEngine.evaluate_condition(condition, {"x": 5}) is expected

    def test_missing_variable_compares_as_none(self) -> None:
        eq_none = ExecutionCondition(variable="x", operator="eq", value=None)
        gt = ExecutionCondition(variable="x", operator="gt", value=1)
        assert ChoreographyEngine.evaluate_condition(eq_none, {}) is True
        assert ChoreographyEngine.evaluate_condition(gt, {}) is False

    def test_incomparable_values_are_false(self) -> None:
        condition = ExecutionCondition(variable="x", operator="lt", value=10)
        assert ChoreographyEngine.evaluate_condition(condition, {"x": "text"}) is False

    def test_unknown_operator_raises(self) -> None:
        condition = ExecutionCondition(variable="x", operator="between", value=1)
        with pytest.raises(DefinitionError):
            ChoreographyEngine.evaluate_condition(condition, {"x": 1})


# =============================================================================
# Test: Ready Steps
# =============================================================================
class TestResolveReadySteps:
    """Tests for readiness computation."""

    def test_roots_ready_first(self) -> None:
        workflow = _workflow(_step("a"), _step("b", "a"), _step("c"))
        execution = _execution(statuses={s.id: StepStatus.PENDING for s in workflow.steps})

        ready, skipped = ChoreographyEngine.resolve_ready_steps(workflow, execution)

        assert [s.id for s in ready] == ["a", "c"]
        assert skipped == []

    def test_completed_and_skipped_satisfy(self) -> None:
        workflow = _workflow(_step("a"), _step("b"), _step("c", "a", "b"))
        execution = _execution(
            statuses={"a": StepStatus.COMPLETED, "b": StepStatus.SKIPPED, "c": StepStatus.PENDING}
        )
        ready, _ = ChoreographyEngine.resolve_ready_steps(workflow, execution)
        assert [s.id for s in ready] == ["c"]

    def test_failed_dependency_blocks(self) -> None:
        workflow = _workflow(_step("a"), _step("b", "a"))
        execution = _execution(statuses={"a": StepStatus.FAILED, "b": StepStatus.PENDING})
        assert ChoreographyEngine.resolve_ready_steps(workflow, execution) == ([], [])

    def test_false_condition_is_skipped(self) -> None:
        condition = ExecutionCondition(variable="approved", operator="eq", value=True)
        workflow = _workflow(_step("a", condition=condition), _step("b"))
        execution = _execution(
            variables={"approved": False},
            statuses={"a": StepStatus.PENDING, "b": StepStatus.PENDING},
        )

        ready, skipped = ChoreographyEngine.resolve_ready_steps(workflow, execution)

        assert [s.id for s in ready] == ["b"]
        assert [s.id for s in skipped] == ["a"]
