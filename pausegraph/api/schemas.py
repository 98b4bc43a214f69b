"""
Pydantic Schemas for API Request/Response Models.

These schemas define the structure of data flowing through the API,
providing automatic validation and documentation.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


# ============================================================
# Enums
# ============================================================

class RunStatus(str, Enum):
    """Outcome of the latest run/resume call on a workflow instance."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


# ============================================================
# Workflow Definition Schemas
# ============================================================

class NodeInfo(BaseModel):
    """A node in a workflow graph."""
    id: str
    node_class: str
    description: Optional[str] = None


class EdgeInfo(BaseModel):
    """An edge in a workflow graph."""
    source: str
    target: str
    conditional: bool = False


class WorkflowInfoResponse(BaseModel):
    """Response with workflow definition information."""
    name: str
    description: Optional[str]
    node_count: int
    nodes: List[NodeInfo]
    edges: List[EdgeInfo]
    start_node_id: Optional[str]
    end_node_id: Optional[str]
    created_at: str
    mermaid_diagram: Optional[str] = Field(None, description="Mermaid diagram of the graph")


class WorkflowListResponse(BaseModel):
    """Response listing all registered workflows."""
    workflows: List[WorkflowInfoResponse]
    total: int


# ============================================================
# Run Schemas
# ============================================================

class WorkflowRunRequest(BaseModel):
    """Request to start a new workflow instance."""
    initial_state: Dict[str, Any] = Field(
        default_factory=dict,
        description="Initial state data for the workflow"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "initial_state": {"topic": "Q3 release notes"}
            }
        }


class WorkflowResumeRequest(BaseModel):
    """Request to resume a suspended workflow instance."""
    feedback: Any = Field(
        None,
        description="Value returned to the suspended node's interrupt() call"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "feedback": {"approved": True, "comment": "Looks good"}
            }
        }


class InterruptInfo(BaseModel):
    """Where and why a run is suspended."""
    node_id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class EventRecord(BaseModel):
    """A structural event fired during the call."""
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class WorkflowRunResponse(BaseModel):
    """Response after a run or resume call."""
    workflow_id: str = Field(..., description="Instance id; use it to resume")
    name: str
    status: RunStatus
    state: Dict[str, Any] = Field(default_factory=dict)
    interrupt: Optional[InterruptInfo] = None
    error: Optional[str] = None
    events: List[EventRecord] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "workflow_id": "3f0c9a52-2c7e-4d0e-9f4e-0b8f2b6c1d2a",
                "name": "approval",
                "status": "interrupted",
                "state": {"topic": "Q3 release notes", "revision": 1},
                "interrupt": {
                    "node_id": "review",
                    "data": {"question": "Approve this draft?", "awaiting_review": True}
                },
                "error": None,
                "events": [
                    {"event": "workflow-run-start", "payload": {"start_node_id": "draft"}}
                ]
            }
        }


class InstanceStateResponse(BaseModel):
    """Response with a workflow instance's latest known state."""
    workflow_id: str
    name: str
    status: RunStatus
    state: Dict[str, Any]
    interrupt: Optional[InterruptInfo] = None
    error: Optional[str] = None
    started_at: str
    updated_at: str


class InstanceListResponse(BaseModel):
    """Response listing workflow instances."""
    instances: List[InstanceStateResponse]
    total: int


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
