"""
In-Memory persistence for suspended workflows.

Records live only as long as the process. Good for tests and for
suspensions that are resumed within the same application session.
"""

from typing import TYPE_CHECKING, Dict, Optional
import threading

from pausegraph.persistence.base import WorkflowPersistence

if TYPE_CHECKING:
    from pausegraph.engine.exceptions import WorkflowInterrupt


class InMemoryWorkflowPersistence(WorkflowPersistence):
    """
    Thread-safe in-memory storage for suspension records.

    Stores one ``WorkflowInterrupt`` per workflow id.
    """

    def __init__(self):
        self._store: Dict[str, "WorkflowInterrupt"] = {}
        self._lock = threading.Lock()

    def save(self, workflow_id: str, interrupt: "WorkflowInterrupt") -> None:
        if workflow_id is None:
            raise ValueError("Workflow ID cannot be None for saving state")
        if interrupt is None:
            raise ValueError("WorkflowInterrupt cannot be None for saving state")
        with self._lock:
            self._store[workflow_id] = interrupt

    def load(self, workflow_id: str) -> Optional["WorkflowInterrupt"]:
        if workflow_id is None:
            raise ValueError("Workflow ID cannot be None for loading state")
        with self._lock:
            return self._store.get(workflow_id)

    def delete(self, workflow_id: str) -> None:
        if workflow_id is None:
            raise ValueError("Workflow ID cannot be None for deleting state")
        with self._lock:
            self._store.pop(workflow_id, None)

    def clear_all(self) -> None:
        """Drop every stored record."""
        with self._lock:
            self._store.clear()

    def __contains__(self, workflow_id: object) -> bool:
        with self._lock:
            return workflow_id in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
