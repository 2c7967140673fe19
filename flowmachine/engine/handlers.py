"""
Handler Registry for the Flow Engine.

A handler is the capability behind a node type: given the node's input
mapping it produces an output mapping, or raises. Handlers may be
``async def`` functions or plain callables; plain callables run in the
default executor so they do not block the event loop.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union
import asyncio
import functools
import inspect
import logging

from flowmachine.engine.errors import HandlerError, UnregisteredHandlerError
from flowmachine.engine.graph import BUILTIN_TYPES


logger = logging.getLogger(__name__)


HandlerResult = Optional[Mapping[str, Any]]
Handler = Callable[[Dict[str, Any]], Union[HandlerResult, Awaitable[HandlerResult]]]


class HandlerRegistry:
    """
    Maps node types to handlers.

    Usage:
        registry = HandlerRegistry()

        @registry.handler("fetchData")
        async def fetch_data(inputs: dict) -> dict:
            return {"data": [...]}

        registry.register_handler("processData", process_data)
    """

    def __init__(self):
        self._handlers: Dict[str, Handler] = {}

    def register(self, node_type: str, handler: Handler) -> None:
        """
        Bind a handler to a node type.

        Registering the same type again replaces the previous handler.
        """
        if not callable(handler):
            raise ValueError(f"Handler for node type '{node_type}' must be callable")
        if node_type in self._handlers:
            logger.debug(f"Replacing handler for node type: {node_type}")
        self._handlers[node_type] = handler
        logger.debug(f"Registered handler: {node_type}")

    register_handler = register

    def handler(self, node_type: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Decorator form of ``register``; defaults to the function name."""
        def decorator(func: Handler) -> Handler:
            self.register(node_type or func.__name__, func)
            return func
        return decorator

    def unregister(self, node_type: str) -> bool:
        """Remove a handler. Returns False if none was registered."""
        if node_type in self._handlers:
            del self._handlers[node_type]
            return True
        return False

    def has(self, node_type: str) -> bool:
        return node_type in self._handlers

    def list_types(self) -> List[str]:
        return list(self._handlers.keys())

    def missing_types(self, node_types: Iterable[str]) -> List[str]:
        """
        Return the node types that would fail to dispatch.

        ``start`` and ``end`` are handled by the engine itself and never
        need a handler.
        """
        missing = []
        for node_type in node_types:
            if node_type in BUILTIN_TYPES or node_type in self._handlers:
                continue
            if node_type not in missing:
                missing.append(node_type)
        return missing

    async def execute(self, node_type: str, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run the handler bound to ``node_type``.

        The inputs mapping is passed as-is, not copied, so a handler that
        mutates it mutates the node's run state.

        Raises:
            UnregisteredHandlerError: if no handler is bound to the type
            HandlerError: if the handler returns something other than a mapping
        """
        handler = self._handlers.get(node_type)
        if handler is None:
            raise UnregisteredHandlerError(node_type)

        if inspect.iscoroutinefunction(handler):
            result = await handler(inputs)
        else:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(None, functools.partial(handler, inputs))
            if inspect.isawaitable(result):
                result = await result

        if result is None:
            return {}
        if not isinstance(result, Mapping):
            raise HandlerError(
                node_type,
                f"must return a mapping or None, got {type(result).__name__}",
            )
        return dict(result)

    def __contains__(self, node_type: str) -> bool:
        return self.has(node_type)

    def __len__(self) -> int:
        return len(self._handlers)


# Global handler registry used by the API and the demo workflow
handler_registry = HandlerRegistry()


def register_handler(node_type: Optional[str] = None) -> Callable[[Handler], Handler]:
    """Decorator to register a handler on the global registry."""
    return handler_registry.handler(node_type)
