"""
API package - FastAPI routes and schemas.
"""

from flowmachine.api.routes import flows, handlers, runs, websocket

__all__ = ["flows", "handlers", "runs", "websocket"]
