"""
Persistence package - Storage for suspended workflow runs.
"""

from pausegraph.persistence.base import WorkflowPersistence, WorkflowPersistenceError
from pausegraph.persistence.memory import InMemoryWorkflowPersistence
from pausegraph.persistence.file import FileWorkflowPersistence, InterruptRecord

__all__ = [
    "WorkflowPersistence",
    "WorkflowPersistenceError",
    "InMemoryWorkflowPersistence",
    "FileWorkflowPersistence",
    "InterruptRecord",
]
