"""
Observability package - Ready-made event listeners.
"""

from pausegraph.observability.logging_listener import LoggingListener

__all__ = ["LoggingListener"]
