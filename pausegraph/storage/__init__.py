"""
Storage package - In-memory registry of workflow definitions and instances.
"""

from pausegraph.storage.memory import (
    InstanceStorage,
    WorkflowRegistry,
    instance_storage,
    suspension_store,
    workflow_registry,
)

__all__ = [
    "InstanceStorage",
    "WorkflowRegistry",
    "instance_storage",
    "suspension_store",
    "workflow_registry",
]
