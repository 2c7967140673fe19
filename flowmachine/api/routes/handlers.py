"""
Handler API Routes.

Endpoints for listing the node types the service can execute.
"""

from fastapi import APIRouter

from flowmachine.api.schemas import HandlerListResponse
from flowmachine.engine.handlers import handler_registry


router = APIRouter(prefix="/handlers", tags=["Handlers"])


@router.get(
    "/",
    response_model=HandlerListResponse,
)
async def list_handlers() -> HandlerListResponse:
    """
    List all registered handler types.

    ``start`` and ``end`` nodes are built in and never appear here.
    """
    types = handler_registry.list_types()
    return HandlerListResponse(handlers=types, total=len(types))
