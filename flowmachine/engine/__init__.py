"""
Engine package - Graph store, handler registry, conditions and the flow machine.
"""

from flowmachine.engine.graph import FlowGraph, FlowDefinition, NodeSpec, EdgeSpec, START, END
from flowmachine.engine.handlers import HandlerRegistry, handler_registry, register_handler
from flowmachine.engine.context import (
    ExecutionContext,
    ExecutionMetrics,
    ExecutionStatus,
    NodeExecution,
    EdgeTraversal,
    RunState,
)
from flowmachine.engine.machine import FlowMachine
from flowmachine.engine.errors import (
    FlowError,
    MissingStartNodeError,
    UnregisteredHandlerError,
    HandlerError,
    MaxStepsExceededError,
    ConditionEvaluationError,
)

__all__ = [
    "FlowGraph",
    "FlowDefinition",
    "NodeSpec",
    "EdgeSpec",
    "START",
    "END",
    "HandlerRegistry",
    "handler_registry",
    "register_handler",
    "ExecutionContext",
    "ExecutionMetrics",
    "ExecutionStatus",
    "NodeExecution",
    "EdgeTraversal",
    "RunState",
    "FlowMachine",
    "FlowError",
    "MissingStartNodeError",
    "UnregisteredHandlerError",
    "HandlerError",
    "MaxStepsExceededError",
    "ConditionEvaluationError",
]
