"""
PauseGraph - A graph workflow engine with suspend/resume.

Build agent pipelines from nodes and conditional edges. Any node can pause
the run to wait for outside input; the run is persisted and resumed later
exactly where it stopped.
"""

from pausegraph.engine import (
    Workflow,
    WorkflowContext,
    WorkflowError,
    WorkflowEvent,
    WorkflowInterrupt,
    WorkflowState,
)

__version__ = "1.0.0"

__all__ = [
    "Workflow",
    "WorkflowContext",
    "WorkflowError",
    "WorkflowEvent",
    "WorkflowInterrupt",
    "WorkflowState",
]
