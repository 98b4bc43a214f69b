"""
API package - FastAPI routes and schemas.
"""

from pausegraph.api.routes import websocket, workflows

__all__ = ["websocket", "workflows"]
