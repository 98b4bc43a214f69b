"""
Workflow API Routes.

Endpoints for inspecting registered workflows, starting instances, and
resuming suspended ones.
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, status
import logging

from pausegraph.api.runner import ExecutionOutcome, execute_workflow
from pausegraph.api.schemas import (
    EdgeInfo,
    ErrorResponse,
    EventRecord,
    InstanceListResponse,
    InstanceStateResponse,
    InterruptInfo,
    NodeInfo,
    RunStatus,
    WorkflowInfoResponse,
    WorkflowListResponse,
    WorkflowResumeRequest,
    WorkflowRunRequest,
    WorkflowRunResponse,
)
from pausegraph.config import settings
from pausegraph.engine.workflow import Workflow
from pausegraph.exporter.mermaid import MermaidExporter
from pausegraph.storage.memory import (
    RegisteredWorkflow,
    StoredInstance,
    instance_storage,
    workflow_registry,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["Workflows"])
runs_router = APIRouter(prefix="/runs", tags=["Runs"])


# ============================================================
# Workflow Definition Endpoints
# ============================================================

@router.get(
    "/",
    response_model=WorkflowListResponse,
)
async def list_workflows() -> WorkflowListResponse:
    """List all registered workflows."""
    infos = [
        _definition_info(registered, include_diagram=False)
        for registered in workflow_registry.list_all()
    ]
    return WorkflowListResponse(workflows=infos, total=len(infos))


@router.get(
    "/{name}",
    response_model=WorkflowInfoResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_workflow(name: str) -> WorkflowInfoResponse:
    """Get the structure of a registered workflow, with a Mermaid diagram."""
    return _definition_info(_get_registered(name), include_diagram=True)


def _get_registered(name: str) -> RegisteredWorkflow:
    registered = workflow_registry.get(name)
    if registered is None:
        raise HTTPException(status_code=404, detail=f"Workflow '{name}' not found")
    return registered


def _definition_info(registered: RegisteredWorkflow, include_diagram: bool) -> WorkflowInfoResponse:
    # A throwaway instance without persistence, used only to read the structure
    workflow = registered.factory(None, None)
    nodes = [
        NodeInfo(
            id=node_id,
            node_class=type(node).__name__,
            description=getattr(node, "description", None) or None,
        )
        for node_id, node in workflow.nodes.items()
    ]
    edges = [
        EdgeInfo(source=edge.source, target=edge.target, conditional=edge.has_condition)
        for edge in workflow.edges
    ]
    diagram = None
    if include_diagram and workflow.nodes:
        diagram = MermaidExporter(settings.MERMAID_DIRECTION).export(workflow)

    return WorkflowInfoResponse(
        name=registered.name,
        description=registered.description,
        node_count=len(nodes),
        nodes=nodes,
        edges=edges,
        start_node_id=workflow.start_node_id,
        end_node_id=workflow.end_node_id,
        created_at=registered.created_at.isoformat(),
        mermaid_diagram=diagram,
    )


# ============================================================
# Execution Endpoints
# ============================================================

@router.post(
    "/{name}/run",
    response_model=WorkflowRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def run_workflow(name: str, request: WorkflowRunRequest) -> WorkflowRunResponse:
    """
    Start a new instance of a registered workflow.

    If a node suspends, the response status is `interrupted` and carries the
    instance's `workflow_id`; resume it with POST /runs/{workflow_id}/resume.
    """
    registered = _get_registered(name)
    workflow = registered.build()
    await instance_storage.create(name, workflow)
    logger.info(f"Starting workflow instance {workflow.id} ({name})")

    outcome = await execute_workflow(workflow, "run", request.initial_state)
    return _outcome_to_response(workflow, name, outcome)


@runs_router.post(
    "/{workflow_id}/resume",
    response_model=WorkflowRunResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Instance is not suspended"},
    },
)
async def resume_workflow(workflow_id: str, request: WorkflowResumeRequest) -> WorkflowRunResponse:
    """Resume a suspended instance, passing feedback to the suspended node."""
    current = await _get_instance(workflow_id)
    stored = await instance_storage.claim_for_resume(workflow_id)
    if stored is None:
        raise HTTPException(
            status_code=409,
            detail=f"Workflow instance '{workflow_id}' is {current.status}, not interrupted",
        )

    outcome = await execute_workflow(stored.workflow, "resume", request.feedback)
    return _outcome_to_response(stored.workflow, stored.name, outcome)


def _outcome_to_response(workflow: Workflow, name: str, outcome: ExecutionOutcome) -> WorkflowRunResponse:
    return WorkflowRunResponse(
        workflow_id=workflow.id,
        name=name,
        status=outcome.status,
        state=outcome.state,
        interrupt=InterruptInfo(**outcome.interrupt) if outcome.interrupt else None,
        error=outcome.error,
        events=[EventRecord(**event) for event in outcome.events],
    )


# ============================================================
# Instance State Endpoints
# ============================================================

@runs_router.get(
    "/",
    response_model=InstanceListResponse,
)
async def list_instances(name: Optional[str] = None) -> InstanceListResponse:
    """List workflow instances, optionally filtered by workflow name."""
    if name:
        instances = await instance_storage.list_by_name(name)
    else:
        instances = await instance_storage.list_all()

    states = [_instance_to_response(stored) for stored in instances]
    return InstanceListResponse(instances=states, total=len(states))


@runs_router.get(
    "/{workflow_id}",
    response_model=InstanceStateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_instance(workflow_id: str) -> InstanceStateResponse:
    """Get the latest known state of a workflow instance."""
    return _instance_to_response(await _get_instance(workflow_id))


@runs_router.delete(
    "/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_instance(workflow_id: str):
    """Forget an instance and discard its suspension record, if any."""
    stored = await _get_instance(workflow_id)
    persistence = stored.workflow.persistence
    if persistence is not None:
        persistence.delete(workflow_id)
    await instance_storage.delete(workflow_id)
    logger.info(f"Deleted workflow instance: {workflow_id}")


async def _get_instance(workflow_id: str) -> StoredInstance:
    stored = await instance_storage.get(workflow_id)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Workflow instance '{workflow_id}' not found")
    return stored


def _instance_to_response(stored: StoredInstance) -> InstanceStateResponse:
    return InstanceStateResponse(
        workflow_id=stored.workflow_id,
        name=stored.name,
        status=RunStatus(stored.status),
        state=stored.state,
        interrupt=InterruptInfo(**stored.interrupt) if stored.interrupt else None,
        error=stored.error,
        started_at=stored.started_at.isoformat(),
        updated_at=stored.updated_at.isoformat(),
    )
