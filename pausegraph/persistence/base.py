"""
Persistence contract for suspended workflows.

A backend keeps at most one suspension record per workflow id. Serializing
concurrent access to the same id is the backend's concern, not the engine's.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from pausegraph.engine.exceptions import WorkflowInterrupt


class WorkflowPersistenceError(Exception):
    """A persistence backend failed to save, load or delete a record."""


class WorkflowPersistence(ABC):
    """Save/load/delete of one suspension record keyed by workflow id."""

    @abstractmethod
    def save(self, workflow_id: str, interrupt: "WorkflowInterrupt") -> None:
        """Store ``interrupt``, replacing any prior record for ``workflow_id``."""

    @abstractmethod
    def load(self, workflow_id: str) -> Optional["WorkflowInterrupt"]:
        """Return the most recent record, or ``None`` when nothing is stored."""

    @abstractmethod
    def delete(self, workflow_id: str) -> None:
        """Remove the record. Deleting a missing record is not an error."""
