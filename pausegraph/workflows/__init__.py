"""
Workflows package - Sample workflow implementations.
"""

from pausegraph.workflows.approval import create_approval_workflow, register_approval_workflow

__all__ = [
    "create_approval_workflow",
    "register_approval_workflow",
]
