"""
Edge Definition for Workflow Engine.

An edge is a directed transition between two nodes, optionally guarded by
a predicate over the current state.
"""

from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass

from pausegraph.engine.state import WorkflowState


Condition = Callable[[WorkflowState], bool]


@dataclass(frozen=True)
class Edge:
    """
    An edge connecting two nodes.

    Attributes:
        source: Source node id
        target: Target node id
        condition: Predicate over the state; ``None`` means always taken
    """
    source: str
    target: str
    condition: Optional[Condition] = None

    def __post_init__(self):
        if self.source is None:
            raise ValueError("Edge source node id cannot be None")
        if self.target is None:
            raise ValueError("Edge target node id cannot be None")
        if self.condition is not None and not callable(self.condition):
            raise ValueError(
                f"Condition for edge '{self.source}' -> '{self.target}' must be callable"
            )

    @property
    def has_condition(self) -> bool:
        return self.condition is not None

    def should_execute(self, state: WorkflowState) -> bool:
        """Evaluate the condition against ``state``."""
        if self.condition is None:
            return True
        if state is None:
            raise ValueError("WorkflowState cannot be None when evaluating a conditional edge")
        return bool(self.condition(state))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "conditional": self.has_condition,
        }

    def __repr__(self) -> str:
        return (
            f"Edge(source='{self.source}', target='{self.target}', "
            f"conditional={self.has_condition})"
        )
