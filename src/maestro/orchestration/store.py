"""
maestro.orchestration.store - Workflow & Execution Persistence
================================================================

Storage layer for workflow definitions and execution snapshots.

Architecture:
    ┌──────────────┐    save/get       ┌──────────────────┐
    │ Choreography  │ ──────────────→  │                   │
    │ Engine        │ ←─────────────   │  WorkflowStore   │
    └──────────────┘    Workflow        │                   │
    ┌──────────────┐    save/get        │  Stores:          │
    │  Workflow     │ ──────────────→  │  - Workflow       │
    │  Executor     │ ←─────────────   │  - Execution      │
    └──────────────┘  WorkflowExecution └──────────────────┘

Key Schema:
    workflow:{workflow_id}      → Workflow
    execution:{execution_id}    → WorkflowExecution (latest snapshot)

Implementations:
    - WorkflowStore (ABC):        Abstract interface, injectable into Maestro
    - InMemoryWorkflowStore:      Dict-based, lost on shutdown
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from maestro.core.models import Workflow, WorkflowExecution

logger = logging.getLogger(__name__)


# =============================================================================
# Abstract Base Class: WorkflowStore
# =============================================================================
class WorkflowStore(ABC):
    """Abstract base class for workflow / execution persistence.

    Components type-hint against this ABC so a durable backend can be
    injected into ``Maestro(store=...)`` without touching the engine.

    Example:
        >>> async def checkpoint(store: WorkflowStore, ex: WorkflowExecution):
        ...     await store.save_execution(ex)
        ...     assert await store.get_execution(ex.id) == ex
    """

    # -------------------------------------------------------------------------
    # Workflow Operations
    # -------------------------------------------------------------------------
    @abstractmethod
    async def save_workflow(self, workflow: Workflow) -> None:
        """Save or replace a workflow definition (last write wins)."""

    @abstractmethod
    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Retrieve a workflow by id, or None."""

    @abstractmethod
    async def list_workflows(self) -> list[Workflow]:
        """All stored workflows, in insertion order."""

    # -------------------------------------------------------------------------
    # Execution Operations
    # -------------------------------------------------------------------------
    @abstractmethod
    async def save_execution(self, execution: WorkflowExecution) -> None:
        """Save or replace an execution snapshot (last write wins)."""

    @abstractmethod
    async def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        """Retrieve the latest snapshot of an execution, or None."""

    @abstractmethod
    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[WorkflowExecution]:
        """Execution snapshots in creation order, optionally for one workflow."""

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------
    @abstractmethod
    async def clear(self) -> None:
        """Remove every workflow and execution."""


# =============================================================================
# InMemoryWorkflowStore Implementation
# =============================================================================
# Key Data Structures:
#   _workflows:  dict[workflow_id, Workflow]
#   _executions: dict[execution_id, WorkflowExecution]
#
# Dicts preserve insertion order, which gives list_* their ordering. Every
# mutation holds the lock; executions of different workflows write
# concurrently from separate tasks.
# =============================================================================
class InMemoryWorkflowStore(WorkflowStore):
    """In-memory store for development, testing and single-process use.

    Example:
        >>> store = InMemoryWorkflowStore()
        >>> await store.save_workflow(workflow)
        >>> await store.get_workflow(workflow.id)
    """

    def __init__(self) -> None:
        self._workflows: dict[str, Workflow] = {}
        self._executions: dict[str, WorkflowExecution] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Workflow Operations
    # -------------------------------------------------------------------------
    async def save_workflow(self, workflow: Workflow) -> None:
        async with self._lock:
            self._workflows[workflow.id] = workflow
        logger.debug("Saved workflow: %s (version=%s)", workflow.id, workflow.version)

    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        return self._workflows.get(workflow_id)

    async def list_workflows(self) -> list[Workflow]:
        return list(self._workflows.values())

    # -------------------------------------------------------------------------
    # Execution Operations
    # -------------------------------------------------------------------------
    async def save_execution(self, execution: WorkflowExecution) -> None:
        """Save an execution snapshot.

        Re-saving an existing id keeps its original position in the
        insertion order, so ``list_executions`` stays in creation order.
        """
        async with self._lock:
            self._executions[execution.id] = execution
        logger.debug(
            "Saved execution: %s (workflow=%s, status=%s)",
            execution.id,
            execution.workflow_id,
            execution.status.value,
        )

    async def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        return self._executions.get(execution_id)

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[WorkflowExecution]:
        executions = list(self._executions.values())
        if workflow_id is not None:
            executions = [e for e in executions if e.workflow_id == workflow_id]
        return executions

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------
    async def clear(self) -> None:
        async with self._lock:
            self._workflows.clear()
            self._executions.clear()
        logger.info("InMemoryWorkflowStore cleared")
