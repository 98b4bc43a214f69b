"""
Human Approval Workflow.

Sample workflow demonstrating suspend/resume:
1. Draft a document from the topic
2. Review - suspend and wait for a human decision
3. Publish if approved, otherwise record the rejection
4. Finalize (end node)

Resume with feedback like ``{"approved": true, "comment": "Ship it"}``.
A bare boolean is accepted too.
"""

from typing import Any, Dict, Optional
import logging

from pausegraph.engine.context import WorkflowContext
from pausegraph.engine.node import node
from pausegraph.engine.state import WorkflowState
from pausegraph.engine.workflow import Workflow
from pausegraph.persistence.base import WorkflowPersistence
from pausegraph.storage.memory import workflow_registry, suspension_store


logger = logging.getLogger(__name__)

APPROVAL_WORKFLOW_NAME = "approval"


# ============================================================
# Node Handlers (using the @node decorator)
# ============================================================

@node(node_id="draft", description="Draft a document from the topic")
def draft_node(context: WorkflowContext) -> WorkflowState:
    """
    Uses state:
    - topic: str

    Updates state with:
    - draft: str
    - revision: int
    """
    state = context.current_state
    topic = state.get("topic", "untitled")
    state.put("draft", f"# {topic}\n\nDraft prepared for review.")
    state.put("revision", state.get_or_default("revision", 0) + 1)
    logger.info(f"Drafted document for topic '{topic}'")
    return state


@node(node_id="review", description="Wait for a human to approve or reject the draft")
def review_node(context: WorkflowContext) -> WorkflowState:
    """
    Suspends the run on first entry. On resume the reviewer's decision is
    returned by ``interrupt`` and written to state:
    - approved: bool
    - reviewer_comment: str
    """
    state = context.current_state
    decision = context.interrupt({
        "question": "Approve this draft?",
        "awaiting_review": True,
    })

    approved, comment = _parse_decision(decision)
    state.put("approved", approved)
    state.put("reviewer_comment", comment)
    state.put("awaiting_review", False)
    logger.info(f"Review decision: approved={approved}")
    return state


@node(node_id="publish", description="Publish the approved draft")
def publish_node(context: WorkflowContext) -> WorkflowState:
    state = context.current_state
    state.put("published", True)
    state.put("published_document", state.get("draft"))
    return state


@node(node_id="reject", description="Record why the draft was rejected")
def reject_node(context: WorkflowContext) -> WorkflowState:
    state = context.current_state
    state.put("published", False)
    state.put("rejection_reason", state.get("reviewer_comment") or "No reason given")
    return state


@node(node_id="finalize", description="Mark the workflow outcome")
def finalize_node(context: WorkflowContext) -> WorkflowState:
    state = context.current_state
    state.put("outcome", "published" if state.get("published") else "rejected")
    return state


def _parse_decision(decision: Any):
    if isinstance(decision, dict):
        return bool(decision.get("approved", False)), str(decision.get("comment", ""))
    return bool(decision), ""


def is_approved(state: WorkflowState) -> bool:
    return state.get("approved") is True


def is_rejected(state: WorkflowState) -> bool:
    return state.get("approved") is not True


# ============================================================
# Workflow Factory
# ============================================================

def create_approval_workflow(
    workflow_id: Optional[str] = None,
    persistence: Optional[WorkflowPersistence] = None,
) -> Workflow:
    """
    Build the approval workflow.

    Args:
        workflow_id: Instance id (generated when omitted)
        persistence: Suspension store (an in-memory store when omitted)

    Returns:
        A configured Workflow
    """
    if persistence is None:
        workflow = Workflow(workflow_id)
    else:
        workflow = Workflow(workflow_id, persistence=persistence)

    # Handlers are looked up in the @node registry by id
    for node_id in ("draft", "review", "publish", "reject", "finalize"):
        workflow.add_node(node_id)

    workflow.add_edge("draft", "review")
    workflow.add_edge("review", "publish", is_approved)
    workflow.add_edge("review", "reject", is_rejected)
    workflow.add_edge("publish", "finalize")
    workflow.add_edge("reject", "finalize")

    workflow.set_start_node_id("draft")
    workflow.set_end_node_id("finalize")
    return workflow


def register_approval_workflow() -> Dict[str, Any]:
    """Register the approval workflow so the API can create instances of it."""
    registered = workflow_registry.register(
        APPROVAL_WORKFLOW_NAME,
        lambda workflow_id, persistence: create_approval_workflow(
            workflow_id,
            suspension_store if persistence is None else persistence,
        ),
        description="Draft, suspend for human review, then publish or reject",
    )
    logger.info(f"Registered workflow: {registered.name}")
    return {"name": registered.name, "description": registered.description}
