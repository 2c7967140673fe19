"""
Flow API Routes.

Endpoints for storing, inspecting and running flow definitions.
"""

from typing import Any, Dict, Optional, Tuple
from fastapi import APIRouter, HTTPException, status
from uuid import uuid4
import logging

from flowmachine.api.schemas import (
    FlowCreateRequest,
    FlowCreateResponse,
    FlowInfoResponse,
    FlowListResponse,
    FlowRunRequest,
    FlowRunResponse,
    ErrorResponse,
)
from flowmachine.engine.graph import FlowDefinition, FlowGraph, START
from flowmachine.engine.handlers import handler_registry
from flowmachine.engine.machine import FlowMachine, StepCallback
from flowmachine.storage.memory import StoredFlow, StoredRun, flow_storage, run_storage


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flows", tags=["Flows"])


# ============================================================
# Flow CRUD Endpoints
# ============================================================

@router.post(
    "/",
    response_model=FlowCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid flow definition"},
    }
)
async def create_flow(request: FlowCreateRequest) -> FlowCreateResponse:
    """
    Store a new flow definition.

    The flow must have a start node, every edge must point at existing
    nodes, and every node type must have a registered handler.
    """
    definition = FlowDefinition(name=request.name, nodes=request.nodes, edges=request.edges)
    graph = FlowGraph.from_definition(definition)

    errors = graph.validate()
    missing = handler_registry.missing_types(graph.node_types())
    if missing:
        errors.append(f"No task handler registered for node types: {missing}")
    if errors:
        raise HTTPException(
            status_code=400,
            detail=f"Flow validation failed: {errors}"
        )

    flow_id = request.flow_id or str(uuid4())
    await flow_storage.save(flow_id=flow_id, name=request.name, definition=definition)

    logger.info(f"Created flow: {flow_id} ({request.name})")

    return FlowCreateResponse(
        flow_id=flow_id,
        name=request.name,
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
    )


@router.get(
    "/",
    response_model=FlowListResponse,
)
async def list_flows() -> FlowListResponse:
    """List all stored flows."""
    flows = await flow_storage.list_all()
    infos = [_flow_info(stored, detailed=False) for stored in flows]
    return FlowListResponse(flows=infos, total=len(infos))


@router.get(
    "/{flow_id}",
    response_model=FlowInfoResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_flow(flow_id: str) -> FlowInfoResponse:
    """Get a flow, including its definition and a Mermaid diagram."""
    stored = await _get_flow_or_404(flow_id)
    return _flow_info(stored, detailed=True)


@router.delete(
    "/{flow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_flow(flow_id: str):
    """Delete a flow."""
    deleted = await flow_storage.delete(flow_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Flow '{flow_id}' not found")
    logger.info(f"Deleted flow: {flow_id}")


def _flow_info(stored: StoredFlow, detailed: bool) -> FlowInfoResponse:
    graph = FlowGraph.from_definition(stored.definition)
    return FlowInfoResponse(
        flow_id=stored.flow_id,
        name=stored.name,
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
        nodes=list(graph.nodes.keys()),
        node_types=graph.node_types(),
        created_at=stored.created_at.isoformat(),
        definition=stored.definition if detailed else None,
        mermaid_diagram=graph.to_mermaid() if detailed else None,
    )


async def _get_flow_or_404(flow_id: str) -> StoredFlow:
    stored = await flow_storage.get(flow_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Flow '{flow_id}' not found")
    return stored


# ============================================================
# Execution Endpoints
# ============================================================

@router.post(
    "/{flow_id}/run",
    response_model=FlowRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def run_flow(flow_id: str, request: Optional[FlowRunRequest] = None) -> FlowRunResponse:
    """
    Run a stored flow to completion.

    A run that fails still returns 200, with ``status`` set to
    ``failed`` and the trace showing how far it got.
    """
    stored = await _get_flow_or_404(flow_id)
    inputs = request.inputs if request else {}

    run, _ = await execute_flow(stored, inputs)
    return run_to_response(run)


def with_start_inputs(definition: FlowDefinition, inputs: Dict[str, Any]) -> FlowDefinition:
    """Copy of the definition with ``inputs`` merged into the start node's outputs."""
    if not inputs:
        return definition

    definition = definition.model_copy(deep=True)
    for node in definition.nodes:
        if node.type == START:
            node.outputs.update(inputs)
            break
    return definition


async def execute_flow(
    stored: StoredFlow,
    inputs: Dict[str, Any],
    on_step: Optional[StepCallback] = None,
) -> Tuple[StoredRun, FlowMachine]:
    """
    Run a stored flow on a fresh machine and record the outcome.

    Each run gets its own ``FlowMachine`` so concurrent requests never
    share an execution context.
    """
    run_id = str(uuid4())
    await run_storage.create(run_id, stored.flow_id)

    machine = FlowMachine(handlers=handler_registry, on_step=on_step)
    machine.load_flow(with_start_inputs(stored.definition, inputs))

    error = None
    try:
        await machine.run()
    except Exception as e:
        logger.warning(f"Run {run_id} of flow {stored.flow_id} failed: {e}")
        error = str(e)

    context = machine.get_execution_trace()
    run = await run_storage.finish(
        run_id,
        status=context.status.value,
        trace=context.to_dict(),
        metrics=machine.get_execution_metrics().to_dict(),
        result=machine.get_result(),
        error=error,
    )
    return run, machine


def run_to_response(run: StoredRun) -> FlowRunResponse:
    """Convert a stored run to an API response."""
    return FlowRunResponse(
        run_id=run.run_id,
        flow_id=run.flow_id,
        status=run.status,
        result=run.result,
        trace=run.trace or None,
        metrics=run.metrics or None,
        started_at=run.started_at.isoformat(),
        completed_at=run.completed_at.isoformat() if run.completed_at else None,
        error=run.error,
    )
