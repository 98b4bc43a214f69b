"""
Workflow graph and execution engine.

A ``Workflow`` owns a node table and an ordered edge list, validates the
structure, and drives a ``WorkflowState`` from the start node until the end
node has run or a node has no further transition. Any node may suspend the
run; the suspension is persisted and ``resume`` later re-enters the graph at
the suspended node.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from dataclasses import dataclass
from types import MappingProxyType
import logging
import uuid

from pausegraph.config import settings
from pausegraph.engine.context import WorkflowContext
from pausegraph.engine.edge import Condition, Edge
from pausegraph.engine.events import WorkflowEvent
from pausegraph.engine.exceptions import NodeExecutionError, WorkflowError, WorkflowInterrupt
from pausegraph.engine.node import Node, create_node_from_function, get_registered_node
from pausegraph.engine.notifier import ALL_EVENTS, EventNotifier, Listener
from pausegraph.engine.state import WorkflowState
from pausegraph.persistence.base import WorkflowPersistence, WorkflowPersistenceError
from pausegraph.persistence.memory import InMemoryWorkflowPersistence


logger = logging.getLogger(__name__)

# Marks "no persistence argument given"; an explicit None disables persistence
_DEFAULT_PERSISTENCE: Any = object()


# ============================================================
# Node invocation outcomes
# ============================================================

@dataclass
class Continue:
    """The node finished and produced ``state``."""
    state: WorkflowState


@dataclass
class Suspend:
    """The node asked to pause the run."""
    interrupt: WorkflowInterrupt


@dataclass
class Fail:
    """The node raised, or returned something that is not a state."""
    error: BaseException


NodeOutcome = Union[Continue, Suspend, Fail]


class Workflow:
    """
    A graph of nodes and edges plus the run/resume engine.

    Build the graph fully before the first ``run``; the node table and edge
    list must not be changed while a run is in flight. Each ``run`` and
    ``resume`` works on private copies of the state, so one ``Workflow`` can
    be run repeatedly without state leaking between calls.

    Usage:
        workflow = Workflow()
        workflow.add_node("draft", draft_handler)
        workflow.add_node("review", review_handler)
        workflow.add_edge("draft", "review")
        workflow.set_start_node_id("draft").set_end_node_id("review")

        try:
            final_state = workflow.run({"topic": "release notes"})
        except WorkflowInterrupt:
            ...  # later, possibly from another process
            final_state = workflow.resume({"approved": True})
    """

    def __init__(
        self,
        workflow_id: Optional[str] = None,
        persistence: Optional[WorkflowPersistence] = _DEFAULT_PERSISTENCE,
        max_steps_multiplier: Optional[int] = None,
    ):
        """
        Initialize the workflow.

        Args:
            workflow_id: Instance id (a UUID is generated when missing or blank)
            persistence: Backend for suspension records. Defaults to an
                in-memory store; ``None`` disables persistence.
            max_steps_multiplier: Step ceiling per node, see ``max_steps``
        """
        if workflow_id is None or not workflow_id.strip():
            self._id = str(uuid.uuid4())
        else:
            self._id = workflow_id.strip()

        if persistence is _DEFAULT_PERSISTENCE:
            persistence = InMemoryWorkflowPersistence()
        self._persistence: Optional[WorkflowPersistence] = persistence

        self.max_steps_multiplier = max_steps_multiplier or settings.MAX_STEPS_MULTIPLIER

        self._nodes: Dict[str, Node] = {}
        self._edges: List[Edge] = []
        self._start_node_id: Optional[str] = None
        self._end_node_id: Optional[str] = None
        self._notifier = EventNotifier(source=self)

    # ============================================================
    # Accessors
    # ============================================================

    @property
    def id(self) -> str:
        return self._id

    @property
    def nodes(self) -> Mapping[str, Node]:
        return MappingProxyType(self._nodes)

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return tuple(self._edges)

    @property
    def start_node_id(self) -> Optional[str]:
        return self._start_node_id

    @property
    def end_node_id(self) -> Optional[str]:
        return self._end_node_id

    @property
    def persistence(self) -> Optional[WorkflowPersistence]:
        return self._persistence

    @property
    def max_steps(self) -> int:
        """Hard ceiling on node executions in one run/resume call."""
        return len(self._nodes) * self.max_steps_multiplier

    # ============================================================
    # Graph building
    # ============================================================

    def add_node(
        self,
        node: Union[Node, str],
        handler: Optional[Callable] = None,
        description: str = ""
    ) -> "Workflow":
        """
        Add a node to the graph.

        Accepts either a ``Node`` object, or an id plus a handler function.
        If only an id is given, a handler registered with ``@node`` under
        that id is used.

        Returns:
            Self for chaining
        """
        if isinstance(node, str):
            node_id = node
            if handler is None:
                handler = get_registered_node(node_id)
                if handler is None:
                    raise WorkflowError(
                        f"No handler provided for node '{node_id}' and no registered "
                        f"node found with that id"
                    )
            node = create_node_from_function(handler, node_id, description)

        if node is None:
            raise ValueError("Node to add cannot be None")
        node_id = getattr(node, "id", None)
        if node_id is None:
            raise ValueError("Node id cannot be None when adding to a workflow")
        if not callable(getattr(node, "run", None)):
            raise ValueError(f"Node '{node_id}' must provide a run(context) method")
        if node_id in self._nodes:
            raise WorkflowError(
                f"Node with id '{node_id}' already exists in workflow '{self._id}'"
            )

        self._nodes[node_id] = node
        return self

    def add_edge(
        self,
        source: Union[Edge, str],
        target: Optional[str] = None,
        condition: Optional[Condition] = None
    ) -> "Workflow":
        """
        Add an edge. Either pass a pre-built ``Edge``, or ``source`` and
        ``target`` ids with an optional condition.

        Both endpoints must already be in the node table.

        Returns:
            Self for chaining
        """
        if isinstance(source, Edge):
            edge = source
        else:
            if target is None:
                raise ValueError("Edge target node id cannot be None")
            edge = Edge(source, target, condition)

        if edge.source not in self._nodes:
            raise WorkflowError(
                f"Source node '{edge.source}' for edge not found in workflow '{self._id}'"
            )
        if edge.target not in self._nodes:
            raise WorkflowError(
                f"Target node '{edge.target}' for edge not found in workflow '{self._id}'"
            )

        self._edges.append(edge)
        return self

    def set_start_node_id(self, node_id: str) -> "Workflow":
        """Set the entry node. It must already exist."""
        if node_id is None:
            raise ValueError("Start node id cannot be None")
        if node_id not in self._nodes:
            raise WorkflowError(
                f"Cannot set start node to '{node_id}': no such node in workflow '{self._id}'"
            )
        self._start_node_id = node_id
        return self

    def set_end_node_id(self, node_id: Optional[str]) -> "Workflow":
        """Set the end node. Checked by ``validate_graph_structure``, not here."""
        self._end_node_id = node_id
        return self

    # ============================================================
    # Validation
    # ============================================================

    def validate_graph_structure(self) -> None:
        """
        Check the graph before a run.

        Raises:
            WorkflowError: start node missing or unknown, or a cycle exists
        """
        if self._start_node_id is None or not self._start_node_id.strip():
            raise WorkflowError(f"Start node id has not been set for workflow '{self._id}'")
        if self._start_node_id not in self._nodes:
            raise WorkflowError(
                f"Start node '{self._start_node_id}' does not match any node "
                f"in workflow '{self._id}'"
            )
        if self._end_node_id is not None and self._end_node_id not in self._nodes:
            logger.warning(
                f"Workflow '{self._id}': end node '{self._end_node_id}' does not match any node"
            )
        self._detect_cycles()

    def _detect_cycles(self) -> None:
        adjacency: Dict[str, List[str]] = {node_id: [] for node_id in self._nodes}
        for edge in self._edges:
            adjacency.setdefault(edge.source, []).append(edge.target)

        visited = set()
        on_path = set()

        for root in adjacency:
            if root in visited:
                continue
            # Iterative DFS: (node, iterator over its successors)
            visited.add(root)
            on_path.add(root)
            stack = [(root, iter(adjacency[root]))]
            while stack:
                current, successors = stack[-1]
                advanced = False
                for neighbor in successors:
                    if neighbor in on_path:
                        raise WorkflowError(
                            f"Cycle detected in workflow '{self._id}': edge "
                            f"'{current}' -> '{neighbor}' closes a loop (search started at '{root}')"
                        )
                    if neighbor not in visited:
                        visited.add(neighbor)
                        on_path.add(neighbor)
                        stack.append((neighbor, iter(adjacency.get(neighbor, []))))
                        advanced = True
                        break
                if not advanced:
                    on_path.discard(current)
                    stack.pop()

    # ============================================================
    # Events
    # ============================================================

    def add_listener(self, listener: Listener, event_filter: Optional[str] = ALL_EVENTS, weak: bool = True) -> None:
        """Subscribe to workflow events. See ``EventNotifier.add_listener``."""
        self._notifier.add_listener(listener, event_filter, weak=weak)

    def remove_listener(self, listener: Listener) -> None:
        self._notifier.remove_listener(listener)

    def notify(self, event: Union[WorkflowEvent, str], payload: Any = None) -> None:
        """Publish ``event``; the payload always carries ``workflow_id``."""
        if isinstance(payload, Mapping):
            enriched = dict(payload)
        elif payload is not None:
            enriched = {"data": payload}
        else:
            enriched = {}
        enriched.setdefault("workflow_id", self._id)
        self._notifier.notify(event, MappingProxyType(enriched))

    # ============================================================
    # Run / Resume
    # ============================================================

    def run(self, initial_state: Union[WorkflowState, Mapping[str, Any], None] = None) -> WorkflowState:
        """
        Execute the workflow from the start node.

        Args:
            initial_state: Starting state; never modified by the run

        Returns:
            The final state

        Raises:
            WorkflowInterrupt: a node suspended the run (state persisted)
            WorkflowError: structural or node failure
        """
        state = _as_state(initial_state)

        try:
            self.validate_graph_structure()
        except WorkflowError as e:
            self.notify(WorkflowEvent.RUN_ERROR, {"error": str(e)})
            raise

        self.notify(WorkflowEvent.RUN_START, {
            "start_node_id": self._start_node_id,
            "initial_state_keys": list(state.keys()),
        })
        logger.info(f"Running workflow {self._id} from node '{self._start_node_id}'")

        try:
            final_state = self._execute_loop(self._start_node_id, state)
        except WorkflowInterrupt as interrupt:
            self.notify(WorkflowEvent.RUN_INTERRUPTED, {"node_id": interrupt.node_id})
            logger.info(f"Workflow {self._id} suspended at node '{interrupt.node_id}'")
            raise
        except Exception as e:
            self.notify(WorkflowEvent.RUN_ERROR, {"error": str(e)})
            logger.error(f"Workflow {self._id} failed: {e}")
            raise

        self.notify(WorkflowEvent.RUN_STOP, {
            "status": "completed",
            "final_state_keys": list(final_state.keys()),
        })
        return final_state

    def resume(self, feedback: Any = None) -> WorkflowState:
        """
        Continue a suspended run.

        Loads the suspension record for this workflow id and re-enters the
        graph at the node that suspended. That node's next
        ``context.interrupt`` call returns ``feedback`` instead of
        suspending again.

        Raises:
            WorkflowInterrupt: the run suspended again
            WorkflowError: nothing to resume, loading failed, or the run failed
        """
        self.notify(WorkflowEvent.RESUME_START, {"has_feedback": feedback is not None})

        if self._persistence is None:
            self.notify(WorkflowEvent.RESUME_ERROR, {"reason": "No persistence configured"})
            raise WorkflowError(
                f"Workflow '{self._id}' has no persistence layer; nothing to resume"
            )

        try:
            interrupt = self._persistence.load(self._id)
        except Exception as e:
            self.notify(WorkflowEvent.RESUME_ERROR, {
                "reason": "Failed to load persisted state",
                "error": str(e),
            })
            raise WorkflowError(
                f"Failed to load persisted state for workflow '{self._id}'; cannot resume"
            ) from e

        if interrupt is None:
            self.notify(WorkflowEvent.RESUME_ERROR, {"reason": "No persisted state found"})
            raise WorkflowError(f"No persisted state found to resume workflow '{self._id}'")

        resume_node_id = interrupt.node_id
        resumed_state = interrupt.state.copy()
        context = WorkflowContext(
            self._id,
            resume_node_id,
            resumed_state.copy(),
            self._persistence,
            is_resuming=True,
            feedback=feedback,
        )
        logger.info(f"Resuming workflow {self._id} at node '{resume_node_id}'")

        try:
            final_state = self._execute_loop(resume_node_id, resumed_state, context)
        except WorkflowInterrupt as again:
            self.notify(WorkflowEvent.RESUME_INTERRUPTED, {"node_id": again.node_id})
            raise
        except Exception as e:
            self.notify(WorkflowEvent.RESUME_ERROR, {
                "reason": "Error during resumed execution",
                "error": str(e),
            })
            raise

        self.notify(WorkflowEvent.RESUME_STOP, {
            "status": "completed",
            "final_state_keys": list(final_state.keys()),
        })
        return final_state

    # ============================================================
    # Execution loop
    # ============================================================

    def _execute_loop(
        self,
        starting_node_id: str,
        initial_state: WorkflowState,
        resume_context: Optional[WorkflowContext] = None
    ) -> WorkflowState:
        current_node_id: Optional[str] = starting_node_id
        state = initial_state.copy()
        if resume_context is not None and not resume_context.is_resuming:
            resume_context = None

        max_steps = self.max_steps
        steps = 0

        while current_node_id is not None and current_node_id != self._end_node_id:
            steps += 1
            if steps > max_steps:
                raise WorkflowError(
                    f"Workflow '{self._id}' exceeded maximum execution steps ({max_steps}) "
                    f"at node '{current_node_id}'; possible infinite loop"
                )

            node = self._nodes.get(current_node_id)
            if node is None:
                raise WorkflowError(
                    f"Node '{current_node_id}' not found in workflow '{self._id}' during execution"
                )

            if resume_context is not None:
                context = resume_context
                context._retarget(current_node_id)
                resume_context = None
            else:
                context = self._new_context(current_node_id, state)

            state = self._execute_node(node, context)

            previous_node_id = current_node_id
            current_node_id = self._find_next_node(previous_node_id, state)
            if current_node_id is not None:
                self.notify(WorkflowEvent.EDGE_TRAVERSED, {
                    "from_node": previous_node_id,
                    "to_node": current_node_id,
                })

        if self._end_node_id is not None and current_node_id == self._end_node_id:
            end_node = self._nodes.get(self._end_node_id)
            if end_node is None:
                raise WorkflowError(
                    f"End node '{self._end_node_id}' not found in workflow '{self._id}'"
                )
            # A run suspended at the end node resumes straight into this step
            context = resume_context or self._new_context(self._end_node_id, state)
            state = self._execute_node(end_node, context)

        self._discard_persisted_state()
        return state

    def _new_context(self, node_id: str, state: WorkflowState) -> WorkflowContext:
        return WorkflowContext(self._id, node_id, state.copy(), self._persistence)

    def _execute_node(self, node: Node, context: WorkflowContext) -> WorkflowState:
        """Run one node and act on its outcome."""
        node_id = context.current_node_id
        self.notify(WorkflowEvent.NODE_START, {
            "node_id": node_id,
            "node_class": type(node).__name__,
        })
        logger.debug(f"Executing node: {node_id} (workflow {self._id})")

        outcome = self._invoke_node(node, context)

        if isinstance(outcome, Continue):
            self.notify(WorkflowEvent.NODE_STOP, {"node_id": node_id, "status": "completed"})
            return outcome.state

        if isinstance(outcome, Suspend):
            interrupt = outcome.interrupt
            self.notify(WorkflowEvent.NODE_INTERRUPT, {
                "node_id": interrupt.node_id,
                "interrupt_data_keys": list(interrupt.data_to_save.keys()),
            })
            self._persist_interrupt(interrupt)
            raise interrupt

        error = outcome.error
        self.notify(WorkflowEvent.NODE_ERROR, {"node_id": node_id, "error": repr(error)})
        raise NodeExecutionError(
            f"Error executing node '{node_id}' in workflow '{self._id}': {error}",
            node_id=node_id,
            workflow_id=self._id,
        ) from error

    def _invoke_node(self, node: Node, context: WorkflowContext) -> NodeOutcome:
        """Call ``node.run`` and translate what happened into an outcome."""
        try:
            result = node.run(context)
        except WorkflowInterrupt as interrupt:
            return Suspend(interrupt)
        except Exception as e:
            return Fail(e)

        if result is None:
            return Continue(context.current_state)
        if isinstance(result, WorkflowState):
            return Continue(result)
        if isinstance(result, Mapping):
            return Continue(WorkflowState(result))
        return Fail(TypeError(
            f"Node '{context.current_node_id}' must return a WorkflowState, a dict or None, "
            f"got {type(result).__name__}"
        ))

    def _persist_interrupt(self, interrupt: WorkflowInterrupt) -> None:
        if self._persistence is None:
            logger.warning(
                f"Workflow '{self._id}' suspended at node '{interrupt.node_id}' but no "
                f"persistence layer is configured; the state will not be saved"
            )
            return
        try:
            self._persistence.save(self._id, interrupt)
        except WorkflowPersistenceError as e:
            raise WorkflowError(
                f"Failed to save workflow state during interrupt at node "
                f"'{interrupt.node_id}' in workflow '{self._id}': {e}"
            ) from e

    def _discard_persisted_state(self) -> None:
        if self._persistence is None:
            return
        try:
            self._persistence.delete(self._id)
        except WorkflowPersistenceError as e:
            logger.warning(
                f"Workflow '{self._id}' completed, but deleting its persisted state failed: {e}"
            )

    # ============================================================
    # Transition resolution
    # ============================================================

    def _find_next_node(self, node_id: str, state: WorkflowState) -> Optional[str]:
        """
        Pick the next node id, or ``None`` when the run is complete.

        Edges are evaluated in insertion order. When several conditions hold,
        the first added edge wins and a warning event is fired.
        """
        outgoing = [edge for edge in self._edges if edge.source == node_id]

        if not outgoing:
            if node_id == self._end_node_id:
                return None
            if self._end_node_id is None:
                self.notify(WorkflowEvent.TERMINAL_NODE_REACHED, {"node_id": node_id})
                return None
            self.notify(WorkflowEvent.DEAD_END, {
                "node_id": node_id,
                "end_node_id": self._end_node_id,
            })
            raise WorkflowError(
                f"No outgoing edges from node '{node_id}' in workflow '{self._id}', "
                f"and it is not the end node '{self._end_node_id}'"
            )

        executable = []
        for edge in outgoing:
            try:
                if edge.should_execute(state):
                    executable.append(edge)
            except Exception as e:
                raise WorkflowError(
                    f"Condition on edge '{edge.source}' -> '{edge.target}' in workflow "
                    f"'{self._id}' raised: {e}"
                ) from e

        if not executable:
            self.notify(WorkflowEvent.NO_CONDITION_MET, {
                "node_id": node_id,
                "state_keys": list(state.keys()),
            })
            raise WorkflowError(
                f"No conditions met for any outgoing edge from node '{node_id}' "
                f"in workflow '{self._id}'; workflow cannot proceed"
            )

        chosen = executable[0].target
        if len(executable) > 1:
            possible = [edge.target for edge in executable]
            self.notify(WorkflowEvent.MULTIPLE_CONDITIONS_MET, {
                "node_id": node_id,
                "chosen_target": chosen,
                "possible_targets": possible,
            })
            logger.warning(
                f"Workflow '{self._id}': several edges from '{node_id}' can be taken; "
                f"taking the first one to '{chosen}'. Possible targets: {possible}"
            )
        return chosen

    # ============================================================
    # Serialization
    # ============================================================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the graph structure to a dictionary."""
        return {
            "workflow_id": self._id,
            "nodes": [
                node.to_dict() if hasattr(node, "to_dict") else {"id": node_id}
                for node_id, node in self._nodes.items()
            ],
            "edges": [edge.to_dict() for edge in self._edges],
            "start_node_id": self._start_node_id,
            "end_node_id": self._end_node_id,
        }

    def __repr__(self) -> str:
        return (
            f"Workflow(id='{self._id}', nodes={list(self._nodes.keys())}, "
            f"start='{self._start_node_id}', end='{self._end_node_id}')"
        )


def _as_state(value: Union[WorkflowState, Mapping[str, Any], None]) -> WorkflowState:
    if value is None:
        return WorkflowState()
    if isinstance(value, WorkflowState):
        return value.copy()
    if isinstance(value, Mapping):
        return WorkflowState(value)
    raise TypeError(f"Initial state must be a WorkflowState or a mapping, got {type(value).__name__}")
