"""
Shared Test Fixtures for Maestro
==================================

This module provides reusable pytest fixtures used across the entire
test suite. Fixtures are organized by layer:

    1. Configuration fixtures
    2. Orchestration fixtures (Registry, EventBus, Store, Engine, Executor)
    3. Integration fixtures (CallTableInvoker, StaticHealthProbe)
    4. Agent and workflow fixtures
    5. Facade fixtures (Maestro)
"""

from __future__ import annotations

import pytest

from maestro.core.config import MaestroConfig
from maestro.core.models import AgentCapability, RegisteredAgent, Workflow, WorkflowStep
from maestro.facade import Maestro
from maestro.integrations.invocation import CallTableInvoker, StaticHealthProbe
from maestro.orchestration.choreography import ChoreographyEngine
from maestro.orchestration.event_bus import EventBus
from maestro.orchestration.executor import WorkflowExecutor
from maestro.orchestration.registry import AgentRegistry
from maestro.orchestration.store import InMemoryWorkflowStore


# =============================================================================
# Helpers
# =============================================================================
def make_agent(
    agent_id: str,
    *capabilities: str,
    agent_type: str = "worker",
    tags: tuple[str, ...] = (),
) -> RegisteredAgent:
    """Build a RegisteredAgent advertising the given capability ids."""
    return RegisteredAgent(
        id=agent_id,
        type=agent_type,
        name=agent_id.title(),
        capabilities=[
            AgentCapability(id=cap, name=cap.title(), tags=frozenset(tags))
            for cap in capabilities
        ],
    )


def make_step(step_id: str, capability: str, *deps: str, **fields) -> WorkflowStep:
    """Build a WorkflowStep depending on ``deps``."""
    return WorkflowStep(id=step_id, capability=capability, dependencies=list(deps), **fields)


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def config():
    """Maestro configuration with defaults."""
    return MaestroConfig()


# =============================================================================
# Orchestration
# =============================================================================

@pytest.fixture
def registry():
    """Fresh AgentRegistry."""
    return AgentRegistry()


@pytest.fixture
def event_bus():
    """Fresh EventBus with a small history buffer."""
    return EventBus(buffer_size=1000)


@pytest.fixture
def store():
    """Fresh InMemoryWorkflowStore."""
    return InMemoryWorkflowStore()


@pytest.fixture
def engine(store):
    """ChoreographyEngine backed by the in-memory store."""
    return ChoreographyEngine(store=store)


@pytest.fixture
def executor(engine, registry, event_bus, invoker):
    """WorkflowExecutor wired to the shared components, no time budget."""
    return WorkflowExecutor(
        engine=engine,
        registry=registry,
        event_bus=event_bus,
        invoker=invoker,
    )


# =============================================================================
# Integrations
# =============================================================================

@pytest.fixture
def invoker():
    """Fresh CallTableInvoker with no handlers."""
    return CallTableInvoker()


@pytest.fixture
def probe():
    """StaticHealthProbe reporting every agent healthy."""
    return StaticHealthProbe()


# =============================================================================
# Agents & Workflows
# =============================================================================

@pytest.fixture
def greeter_agent():
    """Agent advertising 'greet' and 'sign'."""
    return make_agent("greeter-1", "greet", "sign", agent_type="greeter", tags=("text",))


@pytest.fixture
def linear_workflow():
    """Two-step workflow: greet → sign, greeting taken from initial inputs."""
    return Workflow(
        id="wf-linear",
        name="Greet and Sign",
        steps=[
            make_step("greet", "greet", inputs={"name": "${userName}"}),
            make_step("sign", "sign", "greet", inputs={"text": "${message}"}),
        ],
        initial_inputs={"userName": "Alice"},
    )


# =============================================================================
# Facade
# =============================================================================

@pytest.fixture
async def maestro(invoker, probe):
    """Initialized Maestro wired to the shared invoker and probe."""
    instance = Maestro(
        MaestroConfig(health_check_interval_ms=60_000),
        invoker=invoker,
        health_probe=probe,
        setup_logging=False,
    )
    await instance.initialize()
    yield instance
    await instance.shutdown()
