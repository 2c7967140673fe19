"""
Run API Routes.

Endpoints for looking up finished runs.
"""

from typing import Optional
from fastapi import APIRouter, HTTPException

from flowmachine.api.routes.flows import run_to_response
from flowmachine.api.schemas import ErrorResponse, FlowRunResponse, RunListResponse
from flowmachine.storage.memory import run_storage


router = APIRouter(prefix="/runs", tags=["Runs"])


@router.get(
    "/",
    response_model=RunListResponse,
)
async def list_runs(flow_id: Optional[str] = None) -> RunListResponse:
    """List all runs, optionally filtered by flow_id."""
    if flow_id:
        runs = await run_storage.list_by_flow(flow_id)
    else:
        runs = await run_storage.list_all()

    responses = [run_to_response(run) for run in runs]
    return RunListResponse(runs=responses, total=len(responses))


@router.get(
    "/{run_id}",
    response_model=FlowRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(run_id: str) -> FlowRunResponse:
    """Get a run's status, trace, metrics and result."""
    stored = await run_storage.get(run_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found")
    return run_to_response(stored)
