"""
WebSocket Routes for Real-time Execution Streaming.

Provides live workflow events while an instance runs or resumes.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import asyncio
import logging

from pausegraph.api.runner import ExecutionOutcome, execute_workflow, to_jsonable
from pausegraph.api.schemas import RunStatus
from pausegraph.engine.workflow import Workflow
from pausegraph.storage.memory import instance_storage, workflow_registry


logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws/run/{name}")
async def websocket_run(websocket: WebSocket, name: str):
    """
    WebSocket endpoint for real-time workflow execution.

    Connect to this endpoint and send a start (or resume) message.
    Every workflow event is forwarded as it fires, followed by one final
    message describing the outcome.

    Message format (client -> server):
    ```json
    {"action": "start", "initial_state": {"topic": "..."}}
    {"action": "resume", "workflow_id": "...", "feedback": {"approved": true}}
    ```

    Message format (server -> client):
    ```json
    {"type": "event", "event": "workflow-node-start", "payload": {...}}
    {"type": "interrupted", "workflow_id": "...", "node_id": "review", "state": {...}}
    ```
    """
    registered = workflow_registry.get(name)
    if registered is None:
        await websocket.close(code=4004, reason=f"Workflow '{name}' not found")
        return

    await websocket.accept()
    workflow_id: Optional[str] = None

    try:
        data = await websocket.receive_json()
        action = data.get("action")

        if action == "start":
            workflow = registered.build()
            await instance_storage.create(name, workflow)
            argument = data.get("initial_state") or {}
            call = "run"
        elif action == "resume":
            requested_id = data.get("workflow_id", "")
            stored = await instance_storage.get(requested_id)
            if stored is None or stored.name != name:
                await websocket.send_json({
                    "type": "error",
                    "error": f"Workflow instance '{requested_id}' not found",
                })
                return
            if await instance_storage.claim_for_resume(requested_id) is None:
                await websocket.send_json({
                    "type": "error",
                    "error": f"Workflow instance '{requested_id}' is {stored.status}, not interrupted",
                })
                return
            workflow = stored.workflow
            argument = data.get("feedback")
            call = "resume"
        else:
            await websocket.send_json({
                "type": "error",
                "error": "Expected 'start' or 'resume' action",
            })
            return

        workflow_id = workflow.id
        await websocket.send_json({
            "type": "started",
            "workflow_id": workflow_id,
            "name": name,
            "action": call,
        })

        outcome = await _run_with_streaming(websocket, workflow, call, argument)
        await websocket.send_json(_final_message(workflow_id, outcome))

    except WebSocketDisconnect:
        logger.info(f"Client disconnected from workflow {workflow_id or name}")
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
        await websocket.send_json({
            "type": "error",
            "error": str(e),
        })


async def _run_with_streaming(
    websocket: WebSocket,
    workflow: Workflow,
    action: str,
    argument: Any,
) -> ExecutionOutcome:
    """Run the workflow while forwarding its events to the client."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # Events fire on the executor thread
    def forward(event_name: str, payload: Any) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, {
            "type": "event",
            "event": event_name,
            "payload": to_jsonable(payload),
        })

    task = asyncio.create_task(execute_workflow(workflow, action, argument, listener=forward))

    while not task.done() or not queue.empty():
        try:
            message = await asyncio.wait_for(queue.get(), timeout=0.05)
        except asyncio.TimeoutError:
            continue
        await websocket.send_json(message)

    return task.result()


def _final_message(workflow_id: str, outcome: ExecutionOutcome) -> Dict[str, Any]:
    if outcome.status == RunStatus.COMPLETED:
        return {
            "type": "completed",
            "workflow_id": workflow_id,
            "final_state": outcome.state,
        }
    if outcome.status == RunStatus.INTERRUPTED:
        return {
            "type": "interrupted",
            "workflow_id": workflow_id,
            "node_id": outcome.interrupt["node_id"],
            "data": outcome.interrupt["data"],
            "state": outcome.state,
        }
    return {
        "type": "error",
        "workflow_id": workflow_id,
        "error": outcome.error,
    }
