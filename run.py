#!/usr/bin/env python3
"""
Launcher for the PauseGraph API server.

Usage:
    python run.py

Host, port and the rest of the settings come from the environment or a
``.env`` file (see ``pausegraph.config.Settings``):
    HOST=127.0.0.1 PORT=8080 python run.py

Set RELOAD=false to disable auto-reload.
"""

import os

import uvicorn

from pausegraph.config import settings
from pausegraph.workflows.approval import APPROVAL_WORKFLOW_NAME


def banner(host: str, port: int) -> str:
    base_url = f"http://{host}:{port}"
    lines = [
        f"{settings.APP_NAME} v{settings.APP_VERSION}",
        "",
        f"  Server:        {base_url}",
        f"  API docs:      {base_url}/docs",
        f"  ReDoc:         {base_url}/redoc",
        f"  Persistence:   {settings.PERSISTENCE_BACKEND}",
        f"  Demo workflow: {APPROVAL_WORKFLOW_NAME}",
    ]
    width = max(len(line) for line in lines) + 4
    rule = "=" * width
    return "\n".join([rule, *(f"  {line}" for line in lines), rule])


def main():
    """Run the FastAPI application."""
    reload = os.getenv("RELOAD", "true").lower() == "true"

    print(banner(settings.HOST, settings.PORT))

    uvicorn.run(
        "pausegraph.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
