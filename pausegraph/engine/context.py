"""
Per-invocation execution context.

A fresh context is built for every node invocation. The only exception is
the first node of a resumed run, which receives the resuming context that
carries the caller's feedback.
"""

from typing import TYPE_CHECKING, Any, Mapping, Optional

from pausegraph.engine.exceptions import WorkflowError, WorkflowInterrupt
from pausegraph.engine.state import WorkflowState

if TYPE_CHECKING:
    from pausegraph.persistence.base import WorkflowPersistence


class WorkflowContext:
    """
    Handle passed to ``Node.run``.

    Exposes the workflow id, the node being run, the state entering that
    node, the persistence backend and, on resume, the feedback meant for
    this node.
    """

    def __init__(
        self,
        workflow_id: str,
        current_node_id: str,
        current_state: WorkflowState,
        persistence: Optional["WorkflowPersistence"] = None,
        is_resuming: bool = False,
        feedback: Any = None,
    ):
        if workflow_id is None:
            raise ValueError("Workflow ID cannot be None for WorkflowContext")
        if current_node_id is None:
            raise ValueError("Node ID cannot be None for WorkflowContext")
        if current_state is None:
            raise ValueError("WorkflowState cannot be None for WorkflowContext")
        self._workflow_id = workflow_id
        self._current_node_id = current_node_id
        self._current_state = current_state
        self._persistence = persistence
        self._is_resuming = is_resuming
        self._feedback = feedback

    @property
    def workflow_id(self) -> str:
        return self._workflow_id

    @property
    def current_node_id(self) -> str:
        return self._current_node_id

    @property
    def current_state(self) -> WorkflowState:
        """The state entering this node. The node owns this copy."""
        return self._current_state

    @property
    def is_resuming(self) -> bool:
        return self._is_resuming

    @property
    def feedback(self) -> Any:
        return self._feedback

    @property
    def has_persistence(self) -> bool:
        return self._persistence is not None

    @property
    def persistence(self) -> "WorkflowPersistence":
        if self._persistence is None:
            raise WorkflowError(
                "No persistence layer configured for this workflow context"
            )
        return self._persistence

    def interrupt(self, data_to_save: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Suspend the workflow at this node, or collect the resume feedback.

        On a resumed invocation carrying feedback, the feedback is returned
        and consumed: the resume flag is cleared, so a second call suspends
        again. Otherwise a ``WorkflowInterrupt`` is raised with a snapshot of
        the entering state merged with ``data_to_save``.
        """
        if self._is_resuming and self._feedback is not None:
            feedback = self._feedback
            self._feedback = None
            self._is_resuming = False
            return feedback

        snapshot = self._current_state.copy()
        snapshot.put_all(data_to_save)
        raise WorkflowInterrupt(
            node_id=self._current_node_id,
            state=snapshot,
            data_to_save=data_to_save,
        )

    def _retarget(self, node_id: str) -> None:
        self._current_node_id = node_id

    def __repr__(self) -> str:
        return (
            f"WorkflowContext(workflow_id='{self._workflow_id}', "
            f"node='{self._current_node_id}', resuming={self._is_resuming})"
        )
