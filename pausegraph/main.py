"""
PauseGraph - FastAPI Application Entry Point.

A small graph workflow engine whose runs can suspend for outside input and
resume later.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from pausegraph.config import settings
from pausegraph.api.routes import websocket, workflows
from pausegraph.storage.memory import instance_storage, workflow_registry
from pausegraph.workflows.approval import APPROVAL_WORKFLOW_NAME, register_approval_workflow


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Register the demo workflow
    register_approval_workflow()

    yield

    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## Suspendable Workflow Engine API

Run graph workflows whose nodes can pause for human input.

### Features
- **Nodes**: Python functions that read and update a shared state
- **Edges**: Ordered, optionally conditional transitions
- **Validation**: Start node checks and cycle rejection before every run
- **Suspend/Resume**: Any node may call `context.interrupt()`; the run is persisted and resumed later
- **Events**: Structural events for every run, node and edge
- **Real-time Updates**: WebSocket streaming of workflow events

### Quick Start
1. List workflows: `GET /workflows`
2. Start an instance: `POST /workflows/{name}/run`
3. Resume a suspended instance: `POST /runs/{workflow_id}/resume`
4. Check its state: `GET /runs/{workflow_id}`

### Demo Workflow
A pre-registered approval workflow is available under the name: `approval`
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(workflows.router)
app.include_router(workflows.runs_router)
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
        "description": "A graph workflow engine with suspend/resume",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": {
            "workflows": "/workflows",
            "runs": "/runs",
            "websocket_run": "/ws/run/{name}",
        },
        "demo_workflow": APPROVAL_WORKFLOW_NAME,
    }


@app.get("/health", tags=["Root"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "workflows_count": len(workflow_registry),
        "instances_count": len(instance_storage),
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
