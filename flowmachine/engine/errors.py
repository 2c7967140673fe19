"""
Exceptions raised by the flow engine.

Handler exceptions are never wrapped: whatever a handler raises reaches
the caller of ``FlowMachine.run()`` unchanged. The classes here cover
the failures the engine itself detects.
"""

from typing import Optional


class FlowError(Exception):
    """Base exception for all engine errors."""

    pass


class MissingStartNodeError(FlowError):
    """Raised when a run begins and the graph has no node of type ``start``."""

    def __init__(self, message: str = "No start node found in the flow graph"):
        super().__init__(message)


class UnregisteredHandlerError(FlowError, LookupError):
    """Raised when a node type has no registered handler."""

    def __init__(self, node_type: str, node_id: Optional[str] = None):
        self.node_type = node_type
        self.node_id = node_id
        super().__init__(f"No task handler registered for node type: {node_type}")


class HandlerError(FlowError):
    """Raised when a handler returns something other than a mapping."""

    def __init__(self, node_type: str, message: str):
        self.node_type = node_type
        super().__init__(f"Handler for node type '{node_type}' {message}")


class MaxStepsExceededError(FlowError):
    """Raised when a run executes more nodes than the configured step cap."""

    def __init__(self, max_steps: int, node_id: Optional[str] = None):
        self.max_steps = max_steps
        self.node_id = node_id
        super().__init__(
            f"Max steps ({max_steps}) exceeded"
            + (f" before executing node '{node_id}'" if node_id else "")
        )


class ConditionEvaluationError(FlowError):
    """Raised while evaluating a compound edge condition.

    The engine catches it, logs it, and treats the edge as not satisfied.
    """

    pass
