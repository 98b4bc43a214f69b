"""
In-Memory Storage for the HTTP surface.

Keeps the registered workflow definitions (factories that build a fresh
``Workflow`` per instance) and the live workflow instances started through
the API. Suspension records themselves live in the persistence backend.
"""

from typing import Any, Callable, Dict, List, Optional
from datetime import datetime
from dataclasses import dataclass, field
import asyncio

from pausegraph.config import create_persistence
from pausegraph.engine.workflow import Workflow
from pausegraph.persistence.base import WorkflowPersistence


# factory(workflow_id, persistence) -> Workflow
WorkflowFactory = Callable[[Optional[str], Optional[WorkflowPersistence]], Workflow]


@dataclass
class RegisteredWorkflow:
    """A workflow definition that instances can be created from."""
    name: str
    factory: WorkflowFactory
    description: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    def build(
        self,
        workflow_id: Optional[str] = None,
        persistence: Optional[WorkflowPersistence] = None,
    ) -> Workflow:
        return self.factory(workflow_id, persistence)


@dataclass
class StoredInstance:
    """A workflow instance and the outcome of its latest run/resume call."""
    workflow_id: str
    name: str
    workflow: Workflow
    status: str = "pending"
    state: Dict[str, Any] = field(default_factory=dict)
    interrupt: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "name": self.name,
            "status": self.status,
            "state": self.state,
            "interrupt": self.interrupt,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class WorkflowRegistry:
    """
    Registry of workflow definitions by name.

    Usage:
        registry = WorkflowRegistry()
        registry.register("approval", create_approval_workflow, "Human sign-off")
        workflow = registry.get("approval").build()
    """

    def __init__(self):
        self._definitions: Dict[str, RegisteredWorkflow] = {}

    def register(self, name: str, factory: WorkflowFactory, description: str = "") -> RegisteredWorkflow:
        if not callable(factory):
            raise ValueError(f"Factory for workflow '{name}' must be callable")
        registered = RegisteredWorkflow(name=name, factory=factory, description=description)
        self._definitions[name] = registered
        return registered

    def get(self, name: str) -> Optional[RegisteredWorkflow]:
        return self._definitions.get(name)

    def list_all(self) -> List[RegisteredWorkflow]:
        return list(self._definitions.values())

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


class InstanceStorage:
    """
    Thread-safe in-memory storage for workflow instances.

    Lets a later HTTP call find the ``Workflow`` a suspended run belongs to.
    """

    def __init__(self):
        self._instances: Dict[str, StoredInstance] = {}
        self._lock = asyncio.Lock()

    async def create(self, name: str, workflow: Workflow) -> StoredInstance:
        async with self._lock:
            stored = StoredInstance(
                workflow_id=workflow.id,
                name=name,
                workflow=workflow,
            )
            self._instances[workflow.id] = stored
            return stored

    async def get(self, workflow_id: str) -> Optional[StoredInstance]:
        async with self._lock:
            return self._instances.get(workflow_id)

    async def claim_for_resume(self, workflow_id: str) -> Optional[StoredInstance]:
        """
        Mark a suspended instance as running.

        Returns ``None`` when the instance is not suspended, so only one
        caller at a time can resume it.
        """
        async with self._lock:
            stored = self._instances.get(workflow_id)
            if stored is None or stored.status != "interrupted":
                return None
            stored.status = "running"
            stored.updated_at = datetime.now()
            return stored

    async def record_outcome(
        self,
        workflow_id: str,
        status: str,
        state: Optional[Dict[str, Any]] = None,
        interrupt: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> Optional[StoredInstance]:
        """Store the result of the latest run/resume call."""
        async with self._lock:
            stored = self._instances.get(workflow_id)
            if stored is None:
                return None
            stored.status = status
            if state is not None:
                stored.state = state
            stored.interrupt = interrupt
            stored.error = error
            stored.updated_at = datetime.now()
            return stored

    async def list_all(self) -> List[StoredInstance]:
        async with self._lock:
            return list(self._instances.values())

    async def list_by_name(self, name: str) -> List[StoredInstance]:
        async with self._lock:
            return [i for i in self._instances.values() if i.name == name]

    async def delete(self, workflow_id: str) -> bool:
        async with self._lock:
            if workflow_id in self._instances:
                del self._instances[workflow_id]
                return True
            return False

    def __len__(self) -> int:
        return len(self._instances)


# Global storage instances
workflow_registry = WorkflowRegistry()
instance_storage = InstanceStorage()
suspension_store = create_persistence()
