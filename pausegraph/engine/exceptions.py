"""
Workflow engine exceptions.

``WorkflowError`` covers structural and execution failures. ``WorkflowInterrupt``
is not a ``WorkflowError``: it signals an expected pause for outside input.
"""

from typing import Any, Mapping, Optional
from types import MappingProxyType

from pausegraph.engine.state import WorkflowState


class WorkflowError(Exception):
    """Fatal structural or execution error. Never retried by the engine."""


class NodeExecutionError(WorkflowError):
    """A node raised something other than an interrupt."""

    def __init__(self, message: str, node_id: str, workflow_id: str):
        super().__init__(message)
        self.node_id = node_id
        self.workflow_id = workflow_id


class WorkflowInterrupt(Exception):
    """
    Raised by a node (through ``WorkflowContext.interrupt``) to suspend the run.

    Attributes:
        node_id: The node that asked to pause; resumption re-enters here
        state: Snapshot of the entering state merged with ``data_to_save``
        data_to_save: The extra data the node supplied, read-only
    """

    def __init__(
        self,
        node_id: str,
        state: WorkflowState,
        data_to_save: Optional[Mapping[str, Any]] = None,
        message: Optional[str] = None,
    ):
        if node_id is None:
            raise ValueError("Node ID cannot be None for WorkflowInterrupt")
        if state is None:
            raise ValueError("WorkflowState cannot be None for WorkflowInterrupt")
        super().__init__(
            message or f"Workflow execution interrupted at node: {node_id}"
        )
        self.node_id = node_id
        self.state = state
        self.data_to_save: Mapping[str, Any] = MappingProxyType(dict(data_to_save or {}))

    def __repr__(self) -> str:
        return (
            f"WorkflowInterrupt(node_id='{self.node_id}', "
            f"data_keys={list(self.data_to_save.keys())})"
        )
