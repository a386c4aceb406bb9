"""
Health & Routing Example - Failover Between Replicas
======================================================

This example shows how capability routing reacts to agent health:

    1. Two replicas advertise the same capability
    2. A health sweep marks the primary offline
    3. The next execution is routed to the replica
    4. A conditional step is skipped when its gate is false

Usage:
    python examples/health_and_routing.py
"""

from __future__ import annotations

import asyncio

from maestro import Maestro
from maestro.core.config import MaestroConfig
from maestro.core.models import (
    AgentCapability,
    ExecutionCondition,
    RegisteredAgent,
    Workflow,
    WorkflowStep,
)
from maestro.integrations import CallTableInvoker, StaticHealthProbe


def _replica(agent_id: str) -> RegisteredAgent:
    return RegisteredAgent(
        id=agent_id,
        type="scorer",
        name=agent_id,
        capabilities=[AgentCapability(id="score"), AgentCapability(id="escalate")],
    )


async def main() -> None:
    """Run the same workflow before and after the primary goes down."""
    invoker = CallTableInvoker()
    invoker.register("score", lambda inputs: {"risk": 0.3})
    invoker.register("escalate", lambda inputs: {"ticket": "OPS-1"})
    probe = StaticHealthProbe()

    config = MaestroConfig(max_concurrent_workflows=10, log_level="WARNING")
    async with Maestro(config, invoker=invoker, health_probe=probe) as maestro:
        await maestro.register_agent(_replica("scorer-primary"))
        await maestro.register_agent(_replica("scorer-replica"))

        workflow = await maestro.define_workflow(
            Workflow(
                name="Risk Check",
                steps=[
                    WorkflowStep(id="score", capability="score"),
                    WorkflowStep(
                        id="escalate",
                        capability="escalate",
                        dependencies=["score"],
                        condition=ExecutionCondition(variable="risk", operator="gt", value=0.7),
                    ),
                ],
            )
        )

        for label in ("healthy", "primary down"):
            if label == "primary down":
                probe.set_health("scorer-primary", False)
                await maestro.check_agent_health()

            execution = await maestro.execute_workflow(workflow.id)
            final = await maestro.wait_for_execution(execution.id, timeout=5.0)
            print(
                f"{label:>13}: status={final.status.value} "
                f"score_by={final.step_agents['score']} "
                f"escalate={final.step_statuses['escalate'].value}"
            )

        metrics = maestro.get_metrics()
        print(f"\nsuccess_rate={metrics.success_rate:.0f}% events={metrics.event_count}")


if __name__ == "__main__":
    asyncio.run(main())
