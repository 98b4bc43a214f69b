"""
State Management for Workflow Engine.

This module provides the state container that flows through the workflow.
State is a flat, mutable key/value store. The engine always hands each node
its own copy and adopts whatever state the node returns.
"""

from typing import Any, Dict, KeysView, Mapping, Optional
from types import MappingProxyType
from pydantic import BaseModel, Field


class WorkflowState(BaseModel):
    """
    The shared state that flows through the workflow.

    This is a flexible container that holds all data being processed
    by the workflow nodes. Each node can read from and write to this state.
    Two states are equal when their data is equal.

    Attributes:
        data: The actual workflow data (flexible dictionary)
    """

    data: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        arbitrary_types_allowed = True

    def __init__(self, data: Optional[Mapping[str, Any]] = None, **kwargs):
        super().__init__(data=dict(data) if data is not None else {}, **kwargs)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value from the state data."""
        return self.data.get(key, default)

    def get_or_default(self, key: str, default: Any) -> Any:
        """Get a value, falling back to ``default`` only when the key is absent."""
        if key in self.data:
            return self.data[key]
        return default

    def put(self, key: str, value: Any) -> None:
        """Set a value in place."""
        if key is None:
            raise ValueError("Key for WorkflowState cannot be None")
        self.data[key] = value

    def put_all(self, values: Optional[Mapping[str, Any]]) -> None:
        """Merge multiple values in place. ``None`` is ignored."""
        if values:
            self.data.update(values)

    def contains(self, key: str) -> bool:
        return key in self.data

    def remove(self, key: str) -> Any:
        """Remove a key and return its previous value (``None`` if absent)."""
        return self.data.pop(key, None)

    def all(self) -> Mapping[str, Any]:
        """Read-only view of the state data."""
        return MappingProxyType(self.data)

    def keys(self) -> KeysView:
        return self.data.keys()

    def copy(self) -> "WorkflowState":
        """Return an independent state with a new top-level dictionary."""
        return WorkflowState(dict(self.data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to a plain dictionary."""
        return dict(self.data)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WorkflowState":
        """Create a WorkflowState from a dictionary."""
        if data is None:
            return cls()
        return cls(data)

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __len__(self) -> int:
        return len(self.data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WorkflowState):
            return NotImplemented
        return self.data == other.data

    def __repr__(self) -> str:
        # Values may be large; keys are enough to identify a state in logs
        return f"WorkflowState(keys={list(self.data.keys())})"

    __str__ = __repr__
