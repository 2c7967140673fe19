"""
FlowMachine - FastAPI Application Entry Point.

Serves stored flow definitions and runs them against the global handler
registry.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from flowmachine.config import settings
from flowmachine.api.routes import flows, handlers, runs, websocket
from flowmachine.workflows.document_approval import DEMO_FLOW_ID, register_document_approval_flow


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    await register_document_approval_flow()

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title=settings.APP_NAME,
    description="""
## FlowMachine API

A directed-graph workflow executor.

### Concepts
- **Nodes**: units of work, dispatched to a handler by their `type`
- **Edges**: transitions gated by conditions on the source node's outputs
- **Start / End**: built-in node types marking the entry point and the result
- **Trace**: every node execution and edge traversal of a run

### Quick Start
1. List handler types: `GET /handlers`
2. Store a flow: `POST /flows`
3. Run it: `POST /flows/{flow_id}/run`
4. Look the run up again: `GET /runs/{run_id}`
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(flows.router)
app.include_router(runs.router)
app.include_router(handlers.router)
app.include_router(websocket.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "A directed-graph workflow executor",
        "docs": "/docs",
        "endpoints": {
            "flows": "/flows",
            "runs": "/runs",
            "handlers": "/handlers",
            "websocket_run": "/ws/run/{flow_id}",
        },
        "demo_flow": DEMO_FLOW_ID,
    }


@app.get("/health", tags=["Root"])
async def health():
    """Health check endpoint."""
    from flowmachine.storage.memory import flow_storage, run_storage

    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "flows_count": len(flow_storage),
        "runs_count": len(run_storage),
    }


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )
