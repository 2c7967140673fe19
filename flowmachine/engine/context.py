"""
Execution Context and Run State.

``RunState`` holds the mutable inputs/outputs of every node for one run,
seeded from the graph definition. ``ExecutionContext`` is the append-only
trace the engine writes while it walks the graph: node executions, edge
traversals, status, timing and the id of the node that carries the result.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime
from copy import deepcopy
from enum import Enum

from flowmachine.engine.graph import FlowGraph


class ExecutionStatus(str, Enum):
    """Status of a flow run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class NodeState:
    """Inputs and outputs of one node during one run."""
    inputs: Dict[str, Any] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)


class RunState:
    """
    Per-run store of node state, keyed by node id.

    Seed values are deep-copied out of the graph, so nothing a run does
    leaks into the definition or into the next run.
    """

    def __init__(self, nodes: Optional[Dict[str, NodeState]] = None):
        self.nodes: Dict[str, NodeState] = nodes or {}

    @classmethod
    def from_graph(cls, graph: FlowGraph) -> "RunState":
        return cls({
            node_id: NodeState(
                inputs=deepcopy(node.inputs),
                outputs=deepcopy(node.outputs),
            )
            for node_id, node in graph.nodes.items()
        })

    def get(self, node_id: str) -> Optional[NodeState]:
        return self.nodes.get(node_id)

    def __getitem__(self, node_id: str) -> NodeState:
        return self.nodes[node_id]


@dataclass
class NodeExecution:
    """A single node execution in the trace."""
    node_id: str
    node_type: str
    inputs: Dict[str, Any]
    outputs: Dict[str, Any]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "node_type": self.node_type,
            "inputs": self.inputs,
            "outputs": self.outputs,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class EdgeTraversal:
    """A single edge traversal in the trace."""
    edge_id: str
    source_id: str
    target_id: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edge_id": self.edge_id,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ExecutionMetrics:
    """Metrics derived from an execution context."""
    node_count: int
    edge_count: int
    execution_time_ms: Optional[float]
    status: ExecutionStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "execution_time_ms": self.execution_time_ms,
            "status": self.status.value,
        }


@dataclass
class ExecutionContext:
    """
    Trace of one run.

    Created when ``run()`` starts, written only by the engine during that
    run, and left untouched once the run settles.

    Attributes:
        node_executions: Every node executed, in order
        edge_traversals: Every edge taken, in order
        final_node_id: Node whose state is reported as the run's result
        status: running, completed or failed
        error: The exception that failed the run, if any
        start_time: When the run started
        end_time: When the run settled (None while running)
    """
    node_executions: List[NodeExecution] = field(default_factory=list)
    edge_traversals: List[EdgeTraversal] = field(default_factory=list)
    final_node_id: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    error: Optional[BaseException] = None
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def steps(self) -> int:
        """Number of node executions recorded so far."""
        return len(self.node_executions)

    def record_node(self, node_id: str, node_type: str, state: NodeState,
                    timestamp: datetime, error: Optional[BaseException] = None) -> NodeExecution:
        """Append a node execution with snapshots of the node's state."""
        outputs = dict(state.outputs)
        if error is not None:
            outputs["error"] = str(error)
        record = NodeExecution(
            node_id=node_id,
            node_type=node_type,
            inputs=dict(state.inputs),
            outputs=outputs,
            timestamp=timestamp,
        )
        self.node_executions.append(record)
        return record

    def record_edge(self, edge_id: str, source_id: str, target_id: str) -> EdgeTraversal:
        record = EdgeTraversal(
            edge_id=edge_id,
            source_id=source_id,
            target_id=target_id,
            timestamp=datetime.now(),
        )
        self.edge_traversals.append(record)
        return record

    def complete(self) -> None:
        self.status = ExecutionStatus.COMPLETED
        self.end_time = datetime.now()

    def fail(self, error: BaseException) -> None:
        self.status = ExecutionStatus.FAILED
        self.error = error
        self.end_time = datetime.now()

    def metrics(self) -> ExecutionMetrics:
        execution_time_ms = None
        if self.end_time is not None:
            execution_time_ms = (self.end_time - self.start_time).total_seconds() * 1000
        return ExecutionMetrics(
            node_count=len(self.node_executions),
            edge_count=len(self.edge_traversals),
            execution_time_ms=execution_time_ms,
            status=self.status,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_executions": [record.to_dict() for record in self.node_executions],
            "edge_traversals": [record.to_dict() for record in self.edge_traversals],
            "final_node_id": self.final_node_id,
            "status": self.status.value,
            "error": str(self.error) if self.error is not None else None,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }
