"""
Storage package - In-memory storage for flows and runs.
"""

from flowmachine.storage.memory import (
    FlowStorage,
    RunStorage,
    flow_storage,
    run_storage,
)

__all__ = [
    "FlowStorage",
    "RunStorage",
    "flow_storage",
    "run_storage",
]
