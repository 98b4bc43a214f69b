"""
Bridges the synchronous engine to async request handlers.

``Workflow.run``/``resume`` block the calling thread, so they are executed in
the default executor while the event loop keeps serving other requests.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
from dataclasses import dataclass, field
import asyncio
import functools
import logging

from pausegraph.api.schemas import RunStatus
from pausegraph.engine.exceptions import WorkflowError, WorkflowInterrupt
from pausegraph.engine.workflow import Workflow
from pausegraph.observability.logging_listener import LoggingListener
from pausegraph.storage.memory import instance_storage


logger = logging.getLogger(__name__)

# Shared by every API-driven run
event_logger = LoggingListener(logging.getLogger("pausegraph.events"))


@dataclass
class ExecutionOutcome:
    """What a single run/resume call produced."""
    status: RunStatus
    state: Dict[str, Any] = field(default_factory=dict)
    interrupt: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    events: List[Dict[str, Any]] = field(default_factory=list)


class EventRecorder:
    """Listener that keeps every event of one call, in order."""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def __call__(self, event_name: str, payload: Any) -> None:
        self.events.append({"event": event_name, "payload": to_jsonable(payload)})


def to_jsonable(payload: Any) -> Dict[str, Any]:
    """Convert an event payload into plain JSON-friendly data."""
    if payload is None:
        return {}
    if isinstance(payload, Mapping):
        return {str(k): _jsonable_value(v) for k, v in payload.items()}
    return {"data": _jsonable_value(payload)}


def _jsonable_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(k): _jsonable_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable_value(v) for v in value]
    return str(value)


async def execute_workflow(
    workflow: Workflow,
    action: str,
    argument: Any = None,
    listener: Optional[Callable[[str, Any], None]] = None,
) -> ExecutionOutcome:
    """
    Run ``workflow.run(argument)`` or ``workflow.resume(argument)`` off the
    event loop and record the outcome on the stored instance.

    Args:
        workflow: The instance to drive
        action: "run" or "resume"
        argument: Initial state for run, feedback for resume
        listener: Extra event listener for the duration of the call
    """
    if action not in ("run", "resume"):
        raise ValueError(f"Unknown action '{action}'")

    recorder = EventRecorder()
    workflow.add_listener(recorder)
    workflow.add_listener(event_logger)
    if listener is not None:
        workflow.add_listener(listener)

    loop = asyncio.get_running_loop()
    call = functools.partial(getattr(workflow, action), argument)

    try:
        final_state = await loop.run_in_executor(None, call)
        outcome = ExecutionOutcome(
            status=RunStatus.COMPLETED,
            state=_jsonable_value(final_state.to_dict()),
        )
    except WorkflowInterrupt as interrupt:
        outcome = ExecutionOutcome(
            status=RunStatus.INTERRUPTED,
            state=_jsonable_value(interrupt.state.to_dict()),
            interrupt={
                "node_id": interrupt.node_id,
                "data": _jsonable_value(dict(interrupt.data_to_save)),
            },
        )
    except WorkflowError as e:
        logger.warning(f"Workflow {workflow.id} {action} failed: {e}")
        outcome = ExecutionOutcome(status=RunStatus.FAILED, error=str(e))
    finally:
        workflow.remove_listener(recorder)
        workflow.remove_listener(event_logger)
        if listener is not None:
            workflow.remove_listener(listener)

    outcome.events = recorder.events
    await instance_storage.record_outcome(
        workflow.id,
        outcome.status.value,
        state=outcome.state if outcome.status != RunStatus.FAILED else None,
        interrupt=outcome.interrupt,
        error=outcome.error,
    )
    return outcome
