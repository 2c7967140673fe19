"""
Flow Machine - the execution engine.

The machine walks a loaded ``FlowGraph`` from its start node. At each
node it runs the handler (or the built-in start/end behaviour), records
the execution, picks the first outgoing edge whose condition holds
against the node's outputs, copies those outputs into the target's
inputs and moves on. Traversal ends when no edge can be taken.

Usage:
    machine = FlowMachine()
    machine.handlers.register_handler("fetchData", fetch_data)
    machine.load_flow({"nodes": [...], "edges": [...]})

    context = await machine.run()
    result = machine.get_result()
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Union
from dataclasses import replace
from datetime import datetime
import inspect
import logging

from flowmachine.config import settings
from flowmachine.engine.conditions import evaluate_conditions
from flowmachine.engine.context import (
    ExecutionContext,
    ExecutionMetrics,
    NodeExecution,
    NodeState,
    RunState,
)
from flowmachine.engine.errors import (
    MaxStepsExceededError,
    MissingStartNodeError,
    UnregisteredHandlerError,
)
from flowmachine.engine.graph import END, START, FlowDefinitionLike, FlowGraph, NodeSpec
from flowmachine.engine.handlers import HandlerRegistry


logger = logging.getLogger(__name__)


StepCallback = Callable[[NodeExecution], Union[None, Awaitable[None]]]


class FlowMachine:
    """
    Runs flows against a handler registry.

    The loaded graph is never modified by a run: each ``run()`` seeds a
    fresh ``RunState`` from the definition, so running the same flow twice
    gives two independent runs. A machine keeps only the latest run's
    context and state, so do not call ``run()`` concurrently on one
    instance.

    Attributes:
        graph: The loaded flow graph
        handlers: Registry consulted for non start/end nodes
        max_steps: Node executions allowed per run
        end_is_terminal: Stop at "end" nodes even when an outgoing edge holds
        on_step: Optional callback invoked with each node execution record
    """

    def __init__(
        self,
        handlers: Optional[HandlerRegistry] = None,
        max_steps: Optional[int] = None,
        end_is_terminal: Optional[bool] = None,
        on_step: Optional[StepCallback] = None,
    ):
        self.graph = FlowGraph()
        self.handlers = handlers if handlers is not None else HandlerRegistry()
        self.max_steps = max_steps if max_steps is not None else settings.MAX_STEPS
        self.end_is_terminal = (
            end_is_terminal if end_is_terminal is not None else settings.END_IS_TERMINAL
        )
        self.on_step = on_step

        self.context = ExecutionContext()
        self.state = RunState()

    def load_flow(self, definition: FlowDefinitionLike, validate: bool = False) -> "FlowMachine":
        """
        Replace the loaded graph with a new flow definition.

        Args:
            definition: A ``FlowDefinition`` or a dict with ``nodes`` and ``edges``
            validate: Check that every node type has a handler before installing

        Raises:
            UnregisteredHandlerError: if ``validate`` is set and a type has no handler
        """
        graph = FlowGraph.from_definition(definition)
        if validate:
            self._check_handlers(graph)

        self.graph = graph
        self.state = RunState.from_graph(graph)
        logger.debug(f"Loaded flow: {graph!r}")
        return self

    async def run(self) -> ExecutionContext:
        """
        Run the loaded flow from its start node.

        Every node type in the flow must have a handler before anything
        executes, including nodes on branches this run never reaches.

        Returns:
            The execution context of this run

        Raises:
            MissingStartNodeError: if the flow has no start node
            UnregisteredHandlerError: if a node type has no handler
            MaxStepsExceededError: if the run exceeds ``max_steps``
            Exception: whatever a handler raised, unchanged
        """
        self.context = ExecutionContext()
        self.state = RunState.from_graph(self.graph)

        try:
            start_node = self.graph.get_start_node()
            if start_node is None:
                raise MissingStartNodeError()
            self._check_handlers(self.graph)

            logger.info(f"Starting flow at node '{start_node.id}'")
            await self._traverse(start_node)

        except Exception as e:
            self.context.fail(e)
            logger.error(f"Flow failed after {self.context.steps} steps: {e}")
            raise

        self.context.complete()
        logger.info(
            f"Flow completed: {self.context.steps} nodes, "
            f"final node '{self.context.final_node_id}'"
        )
        return self.context

    def _check_handlers(self, graph: FlowGraph) -> None:
        missing = self.handlers.missing_types(graph.node_types())
        if missing:
            node_id = next(
                node.id for node in graph.nodes.values() if node.type == missing[0]
            )
            raise UnregisteredHandlerError(missing[0], node_id=node_id)

    async def _traverse(self, start_node: NodeSpec) -> None:
        current: Optional[NodeSpec] = start_node
        while current is not None:
            if self.context.steps >= self.max_steps:
                raise MaxStepsExceededError(self.max_steps, current.id)
            current = await self._step(current)

    async def _step(self, node: NodeSpec) -> Optional[NodeSpec]:
        """Execute one node and return the next node to visit, if any."""
        timestamp = datetime.now()
        state = self.state[node.id]

        logger.debug(f"Executing node: {node.id} ({node.type})")

        try:
            await self._execute(node, state)
        except Exception as e:
            record = self.context.record_node(node.id, node.type, state, timestamp, error=e)
            logger.error(f"Node '{node.id}' failed: {e}")
            await self._notify(record)
            raise

        record = self.context.record_node(node.id, node.type, state, timestamp)
        await self._notify(record)

        if node.type == END:
            self.context.final_node_id = node.id
            if self.end_is_terminal:
                return None

        outgoing = self.graph.get_outgoing_edges(node.id)
        if not outgoing:
            if self.context.final_node_id is None:
                self.context.final_node_id = node.id
            return None

        for edge in outgoing:
            if not evaluate_conditions(edge.conditions, state.outputs):
                continue

            target = self.graph.get_target_node(edge.id)
            if target is None:
                logger.debug(f"Edge '{edge.id}' target '{edge.target}' not found, stopping")
                return None

            self.context.record_edge(edge.id, node.id, target.id)
            self.state[target.id].inputs.update(state.outputs)
            logger.debug(f"Edge taken: {edge.id} ({node.id} -> {target.id})")
            return target

        return None

    async def _execute(self, node: NodeSpec, state: NodeState) -> None:
        if node.type == START:
            return
        if node.type == END:
            state.outputs.update(state.inputs)
            return

        outputs = await self.handlers.execute(node.type, state.inputs)
        state.outputs.update(outputs)

    async def _notify(self, record: NodeExecution) -> None:
        if self.on_step is None:
            return
        try:
            result = self.on_step(record)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Step callback failed: {e}")

    # ============================================================
    # Accessors
    # ============================================================

    def get_result(self) -> Optional[Dict[str, Any]]:
        """
        Result of the latest run.

        For an "end" final node this is its inputs and outputs merged
        (outputs win); otherwise a copy of the final node's outputs.
        """
        final_node_id = self.context.final_node_id
        if final_node_id is None:
            return None

        node = self.graph.get_node(final_node_id)
        state = self.state.get(final_node_id)
        if node is None or state is None:
            return None

        if node.type == END:
            return {**state.inputs, **state.outputs}
        return dict(state.outputs)

    def get_node_result(self, node_id: str) -> Optional[Dict[str, Any]]:
        """Copy of a node's outputs from the latest run, or None."""
        state = self.state.get(node_id)
        return dict(state.outputs) if state is not None else None

    def get_execution_trace(self) -> ExecutionContext:
        """Shallow copy of the execution context; trace lists are shared."""
        return replace(self.context)

    def get_execution_metrics(self) -> ExecutionMetrics:
        return self.context.metrics()
