"""
Basic Workflow Example - Two Agents, One Pipeline
===================================================

This example demonstrates the core Maestro loop:

    1. Register agents that advertise capabilities
    2. Define a workflow whose steps pass data through ``${variables}``
    3. Execute it and wait for the final snapshot

Agents are simulated in-process with a CallTableInvoker; a real
deployment would pass an invoker that calls the agents over the network.

Usage:
    python examples/basic_workflow.py
"""

from __future__ import annotations

import asyncio

from maestro import Maestro
from maestro.core.enums import EventType
from maestro.core.models import AgentCapability, RegisteredAgent, Workflow, WorkflowStep
from maestro.integrations import CallTableInvoker


async def main() -> None:
    """Run a greet → sign pipeline and print what happened."""
    invoker = CallTableInvoker()
    invoker.register("greet", lambda inputs: {"message": f"Hello, {inputs['name']}!"})
    invoker.register("sign", lambda inputs: {"signed": f"{inputs['text']} -- Maestro"})

    async with Maestro(invoker=invoker) as maestro:
        await maestro.register_agent(
            RegisteredAgent(
                id="greeter",
                type="text",
                name="Greeter",
                capabilities=[AgentCapability(id="greet", name="Greet")],
            )
        )
        await maestro.register_agent(
            RegisteredAgent(
                id="signer",
                type="crypto",
                name="Signer",
                capabilities=[AgentCapability(id="sign", name="Sign")],
            )
        )

        async def on_step(event) -> None:
            print(f"  [{event.type.value}] step={event.payload.step_id}")

        await maestro.subscribe_to_events(
            [EventType.STEP_STARTED, EventType.STEP_COMPLETED], on_step
        )

        workflow = await maestro.define_workflow(
            Workflow(
                name="Greet and Sign",
                initial_inputs={"userName": "Alice"},
                steps=[
                    WorkflowStep(id="greet", capability="greet", inputs={"name": "${userName}"}),
                    WorkflowStep(
                        id="sign",
                        capability="sign",
                        inputs={"text": "${message}"},
                        dependencies=["greet"],
                    ),
                ],
            )
        )

        print(f"Executing workflow '{workflow.name}'")
        execution = await maestro.execute_workflow(workflow.id)
        final = await maestro.wait_for_execution(execution.id, timeout=5.0)

        print(f"\nStatus: {final.status.value}")
        print(f"Result: {final.variables['signed']}")
        print(f"Events: {len(maestro.get_events_by_correlation(final.correlation_id))}")


if __name__ == "__main__":
    asyncio.run(main())
