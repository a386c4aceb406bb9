"""
Maestro - Multi-Agent Workflow Orchestration
=============================================

Maestro coordinates independent agents that each advertise capabilities.
Workflows are directed acyclic graphs of steps; every step invokes one
capability on one agent, and data flows between steps through shared
execution variables.

Architecture Layers (top to bottom):
    1. Facade         - Maestro: admission control, metrics, health sweep
    2. Orchestration  - Agent Registry, Event Bus, Choreography Engine,
                        Workflow Executor, Workflow Store
    3. Core           - Models, events, enums, exceptions, configuration
    4. Integrations   - Capability invocation and health probe contracts

Quick Start:
    >>> from maestro import Maestro
    >>> async with Maestro(invoker=my_invoker) as maestro:
    ...     await maestro.register_agent(agent)
    ...     await maestro.define_workflow(workflow)
    ...     execution = await maestro.execute_workflow(workflow.id)
"""

# =============================================================================
# Package Version
# =============================================================================
# Single source of truth for the package version:
#   from maestro import __version__
# =============================================================================
__version__ = "0.1.0"

# =============================================================================
# Package-Level Exports
# =============================================================================
# The Maestro facade is the main entry point for users.
# For specific components, import from submodules directly:
#   from maestro.core.config import MaestroConfig
#   from maestro.core.models import Workflow, WorkflowStep
#   from maestro.integrations import CallTableInvoker
# =============================================================================
from maestro.facade import Maestro

__all__ = ["Maestro", "__version__"]
