"""
Node Definition for Workflow Engine.

Nodes are the building blocks of a workflow. A node is anything with an
``id`` and a ``run(context)`` method that receives the per-invocation
context and returns the new state. Plain functions are adapted with
``FunctionNode`` or the ``@node`` decorator.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Protocol, Union, runtime_checkable
from dataclasses import dataclass, field
import functools

from pausegraph.engine.state import WorkflowState

if TYPE_CHECKING:
    from pausegraph.engine.context import WorkflowContext


NodeResult = Union[WorkflowState, Dict[str, Any], None]
NodeHandler = Callable[["WorkflowContext"], NodeResult]


@runtime_checkable
class Node(Protocol):
    """
    The node contract consumed by the engine.

    ``run`` may return a new ``WorkflowState``, raise ``WorkflowInterrupt``
    (via ``context.interrupt``) to suspend, or raise anything else to fail.
    """

    id: str

    def run(self, context: "WorkflowContext") -> NodeResult:
        ...


@dataclass
class FunctionNode:
    """
    A node backed by a plain function.

    The handler receives the ``WorkflowContext``. It may return a
    ``WorkflowState``, a plain dict (wrapped into a state) or ``None``
    (keep the entering state).

    Attributes:
        id: Unique identifier for the node
        handler: Function that processes the context
        description: Human-readable description
        metadata: Additional node metadata
    """

    id: str
    handler: NodeHandler
    description: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate the node after initialization."""
        if not self.id or not str(self.id).strip():
            raise ValueError("Node id cannot be empty")
        if not callable(self.handler):
            raise ValueError(f"Handler for node '{self.id}' must be callable")

    def run(self, context: "WorkflowContext") -> NodeResult:
        return self.handler(context)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the node to a dictionary."""
        return {
            "id": self.id,
            "description": self.description,
            "handler": getattr(self.handler, "__name__", str(self.handler)),
            "metadata": self.metadata,
        }


# Registry to hold decorated node functions
_node_registry: Dict[str, Callable] = {}


def node(
    node_id: Optional[str] = None,
    description: str = ""
) -> Callable:
    """
    Decorator to register a function as a workflow node handler.

    Usage:
        @node(node_id="review", description="Ask a human to approve the draft")
        def review(context: WorkflowContext) -> WorkflowState:
            decision = context.interrupt({"question": "Approve?"})
            ...

    Args:
        node_id: Node id (defaults to function name)
        description: Human-readable description

    Returns:
        Decorated function
    """
    def decorator(func: Callable) -> Callable:
        resolved_id = node_id or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        wrapper._node_metadata = {
            "id": resolved_id,
            "description": description or func.__doc__ or "",
        }
        _node_registry[resolved_id] = wrapper
        return wrapper

    return decorator


def get_registered_node(node_id: str) -> Optional[Callable]:
    """Get a registered node handler by id."""
    return _node_registry.get(node_id)


def create_node_from_function(
    func: Callable,
    node_id: Optional[str] = None,
    description: str = ""
) -> FunctionNode:
    """
    Create a FunctionNode from a function.

    Metadata attached by ``@node`` is used when no explicit id or
    description is given.
    """
    metadata = getattr(func, "_node_metadata", {})
    return FunctionNode(
        id=node_id or metadata.get("id") or func.__name__,
        handler=func,
        description=description or metadata.get("description") or func.__doc__ or "",
    )
