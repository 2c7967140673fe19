"""
Pydantic Schemas for API Request/Response Models.

Flow definitions reuse the engine's own ``FlowDefinition`` model; the
schemas here describe what the API adds around it.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum

from flowmachine.engine.graph import FlowDefinition


# ============================================================
# Enums
# ============================================================

class RunStatus(str, Enum):
    """Status of a flow run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================================
# Flow Schemas
# ============================================================

class FlowCreateRequest(FlowDefinition):
    """Request to store a new flow definition."""
    name: str = Field(..., description="Name of the flow")
    flow_id: Optional[str] = Field(None, description="Flow id (generated if omitted)")


class FlowCreateResponse(BaseModel):
    """Response after creating a flow."""
    flow_id: str = Field(..., description="Unique identifier for the created flow")
    name: str
    message: str = Field(default="Flow created successfully")
    node_count: int
    edge_count: int


class FlowInfoResponse(BaseModel):
    """Response with flow information."""
    flow_id: str
    name: str
    node_count: int
    edge_count: int
    nodes: List[str]
    node_types: List[str]
    created_at: str
    definition: Optional[FlowDefinition] = None
    mermaid_diagram: Optional[str] = Field(None, description="Mermaid diagram of the flow")


class FlowListResponse(BaseModel):
    """Response listing all flows."""
    flows: List[FlowInfoResponse]
    total: int


# ============================================================
# Run Schemas
# ============================================================

class FlowRunRequest(BaseModel):
    """Request to run a stored flow."""
    inputs: Dict[str, Any] = Field(
        default_factory=dict,
        description="Values merged into the start node's outputs for this run",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "inputs": {
                    "title": "Service Agreement",
                    "content": "Terms and conditions for the service agreement.",
                    "creator": "alice",
                }
            }
        }


class NodeExecutionEntry(BaseModel):
    """A node execution in the trace."""
    node_id: str
    node_type: str
    inputs: Dict[str, Any]
    outputs: Dict[str, Any]
    timestamp: str


class EdgeTraversalEntry(BaseModel):
    """An edge traversal in the trace."""
    edge_id: str
    source_id: str
    target_id: str
    timestamp: str


class ExecutionTrace(BaseModel):
    """The execution context of a run."""
    node_executions: List[NodeExecutionEntry]
    edge_traversals: List[EdgeTraversalEntry]
    final_node_id: Optional[str]
    status: RunStatus
    error: Optional[str]
    start_time: str
    end_time: Optional[str]


class ExecutionMetricsResponse(BaseModel):
    """Metrics derived from a run's trace."""
    node_count: int
    edge_count: int
    execution_time_ms: Optional[float]
    status: RunStatus


class FlowRunResponse(BaseModel):
    """Response describing a run."""
    run_id: str = Field(..., description="Unique identifier for this run")
    flow_id: str
    status: RunStatus
    result: Optional[Dict[str, Any]] = None
    trace: Optional[ExecutionTrace] = None
    metrics: Optional[ExecutionMetricsResponse] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None


class RunListResponse(BaseModel):
    """Response listing runs."""
    runs: List[FlowRunResponse]
    total: int


# ============================================================
# Handler Schemas
# ============================================================

class HandlerListResponse(BaseModel):
    """Response listing registered handler types."""
    handlers: List[str]
    total: int


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
