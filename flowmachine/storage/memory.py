"""
In-Memory Storage for FlowMachine.

Provides async-locked storage for flow definitions and finished runs.
Nothing survives a process restart.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import asyncio
from dataclasses import dataclass, field

from flowmachine.engine.graph import FlowDefinition


@dataclass
class StoredFlow:
    """A stored flow definition."""
    flow_id: str
    name: str
    definition: FlowDefinition
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class StoredRun:
    """A stored flow run."""
    run_id: str
    flow_id: str
    status: str
    trace: Dict[str, Any] = field(default_factory=dict)
    metrics: Dict[str, Any] = field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None


class FlowStorage:
    """In-memory storage for flow definitions, keyed by flow id."""

    def __init__(self):
        self._flows: Dict[str, StoredFlow] = {}
        self._lock = asyncio.Lock()

    async def save(self, flow_id: str, name: str, definition: FlowDefinition) -> StoredFlow:
        """
        Save a flow definition, replacing any flow with the same id.

        Args:
            flow_id: Unique flow identifier
            name: Flow name
            definition: The flow definition

        Returns:
            The stored flow
        """
        async with self._lock:
            stored = StoredFlow(flow_id=flow_id, name=name, definition=definition)
            self._flows[flow_id] = stored
            return stored

    async def get(self, flow_id: str) -> Optional[StoredFlow]:
        async with self._lock:
            return self._flows.get(flow_id)

    async def delete(self, flow_id: str) -> bool:
        async with self._lock:
            if flow_id in self._flows:
                del self._flows[flow_id]
                return True
            return False

    async def list_all(self) -> List[StoredFlow]:
        async with self._lock:
            return list(self._flows.values())

    def __len__(self) -> int:
        return len(self._flows)


class RunStorage:
    """In-memory storage for flow runs, keyed by run id."""

    def __init__(self):
        self._runs: Dict[str, StoredRun] = {}
        self._lock = asyncio.Lock()

    async def create(self, run_id: str, flow_id: str) -> StoredRun:
        """Create a run in the running state."""
        async with self._lock:
            stored = StoredRun(run_id=run_id, flow_id=flow_id, status="running")
            self._runs[run_id] = stored
            return stored

    async def get(self, run_id: str) -> Optional[StoredRun]:
        async with self._lock:
            return self._runs.get(run_id)

    async def finish(
        self,
        run_id: str,
        status: str,
        trace: Dict[str, Any],
        metrics: Dict[str, Any],
        result: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> Optional[StoredRun]:
        """Record the outcome of a run."""
        async with self._lock:
            stored = self._runs.get(run_id)
            if stored is None:
                return None
            stored.status = status
            stored.trace = trace
            stored.metrics = metrics
            stored.result = result
            stored.error = error
            stored.completed_at = datetime.now()
            return stored

    async def list_all(self) -> List[StoredRun]:
        async with self._lock:
            return list(self._runs.values())

    async def list_by_flow(self, flow_id: str) -> List[StoredRun]:
        async with self._lock:
            return [r for r in self._runs.values() if r.flow_id == flow_id]

    def __len__(self) -> int:
        return len(self._runs)


# Global storage instances
flow_storage = FlowStorage()
run_storage = RunStorage()
