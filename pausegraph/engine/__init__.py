"""
Engine package - Core workflow orchestration components.
"""

from pausegraph.engine.state import WorkflowState
from pausegraph.engine.exceptions import NodeExecutionError, WorkflowError, WorkflowInterrupt
from pausegraph.engine.edge import Edge
from pausegraph.engine.node import FunctionNode, Node, node, create_node_from_function
from pausegraph.engine.context import WorkflowContext
from pausegraph.engine.events import WorkflowEvent
from pausegraph.engine.notifier import EventNotifier
from pausegraph.engine.workflow import Workflow

__all__ = [
    "WorkflowState",
    "WorkflowError",
    "NodeExecutionError",
    "WorkflowInterrupt",
    "Edge",
    "Node",
    "FunctionNode",
    "node",
    "create_node_from_function",
    "WorkflowContext",
    "WorkflowEvent",
    "EventNotifier",
    "Workflow",
]
