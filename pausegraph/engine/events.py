"""
Event names published by a running workflow.
"""

from enum import Enum


class WorkflowEvent(str, Enum):
    """Structural events fired through the workflow's notifier."""
    RUN_START = "workflow-run-start"
    RUN_STOP = "workflow-run-stop"
    RUN_ERROR = "workflow-run-error"
    RUN_INTERRUPTED = "workflow-run-interrupted"

    RESUME_START = "workflow-resume-start"
    RESUME_STOP = "workflow-resume-stop"
    RESUME_ERROR = "workflow-resume-error"
    RESUME_INTERRUPTED = "workflow-resume-interrupted"

    NODE_START = "workflow-node-start"
    NODE_STOP = "workflow-node-stop"
    NODE_ERROR = "workflow-node-error"
    NODE_INTERRUPT = "workflow-node-interrupt"

    EDGE_TRAVERSED = "workflow-edge-traversed"
    TERMINAL_NODE_REACHED = "workflow-terminal-node-reached"
    DEAD_END = "workflow-dead-end"
    NO_CONDITION_MET = "workflow-no-condition-met"
    MULTIPLE_CONDITIONS_MET = "workflow-multiple-conditions-met"

    def __str__(self) -> str:
        return self.value
