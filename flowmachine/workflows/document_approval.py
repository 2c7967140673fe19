"""
Document Approval Workflow.

The sample flow shipped with the service:
1. Create a draft document
2. Review it
3. Approve or reject, depending on the review
4. Notify the creator
5. End, carrying the notification as the result
"""

from typing import Optional
import logging

from flowmachine.engine.graph import FlowDefinition, EdgeSpec, NodeSpec, START, END
from flowmachine.engine.handlers import HandlerRegistry, handler_registry
from flowmachine.engine.machine import FlowMachine
from flowmachine.storage.memory import flow_storage

# Import builtin handlers to register them
import flowmachine.tasks.builtin  # noqa: F401


logger = logging.getLogger(__name__)


DEMO_FLOW_ID = "document-approval-demo"


def create_document_approval_flow() -> FlowDefinition:
    """Build the document approval flow definition."""
    return FlowDefinition(
        name="Document Approval Demo",
        nodes=[
            NodeSpec(id="start", type=START),
            NodeSpec(id="create", type="createDocument"),
            NodeSpec(id="review", type="reviewDocument"),
            NodeSpec(id="approve", type="approveDocument"),
            NodeSpec(id="reject", type="rejectDocument"),
            NodeSpec(id="notifyApproved", type="notifyCreator"),
            NodeSpec(id="notifyRejected", type="notifyCreator"),
            NodeSpec(id="end", type=END),
        ],
        edges=[
            EdgeSpec(id="e1", source="start", target="create"),
            EdgeSpec(id="e2", source="create", target="review"),
            EdgeSpec(id="e3", source="review", target="approve", conditions={"approved": True}),
            EdgeSpec(id="e4", source="review", target="reject", conditions={"approved": False}),
            EdgeSpec(id="e5", source="approve", target="notifyApproved"),
            EdgeSpec(id="e6", source="reject", target="notifyRejected"),
            EdgeSpec(id="e7", source="notifyApproved", target="end"),
            EdgeSpec(id="e8", source="notifyRejected", target="end"),
        ],
    )


async def register_document_approval_flow() -> None:
    """Store the demo flow so it can be run through the API."""
    definition = create_document_approval_flow()
    await flow_storage.save(
        flow_id=DEMO_FLOW_ID,
        name=definition.name,
        definition=definition,
    )
    logger.info(f"Registered demo flow: {DEMO_FLOW_ID}")


async def run_document_approval_demo(handlers: Optional[HandlerRegistry] = None):
    """Run the demo flow locally and print the outcome, failed or not."""
    machine = FlowMachine(handlers=handlers if handlers is not None else handler_registry)
    machine.load_flow(create_document_approval_flow())

    print("Starting Document Approval...")
    try:
        await machine.run()
    except Exception as e:
        logger.error(f"Demo run failed: {e}")

    metrics = machine.get_execution_metrics()
    trace = machine.get_execution_trace()
    print(f"\nExecution Status: {metrics.status.value}")
    print(f"Total Duration: {metrics.execution_time_ms:.2f}ms")
    print(f"Path: {' -> '.join(r.node_id for r in trace.node_executions)}")
    if trace.error is not None:
        print(f"\nError: {trace.error}")
    else:
        print(f"\nResult: {machine.get_result()}")

    return machine


if __name__ == "__main__":
    import asyncio
    asyncio.run(run_document_approval_demo())
