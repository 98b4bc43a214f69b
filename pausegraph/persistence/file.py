"""
File-based persistence for suspended workflows.

Each workflow id maps to one JSON document in a directory. File names are the
percent-encoded id, so distinct ids never share a file. The document is
produced from the ``InterruptRecord`` pydantic model, so every state value
must be JSON-serializable.
"""

from typing import Any, Dict, Optional, Union
from datetime import datetime
from pathlib import Path
from urllib.parse import quote
import logging
import os

from pydantic import BaseModel, Field, ValidationError

from pausegraph.engine.exceptions import WorkflowInterrupt
from pausegraph.engine.state import WorkflowState
from pausegraph.persistence.base import WorkflowPersistence, WorkflowPersistenceError


logger = logging.getLogger(__name__)


class InterruptRecord(BaseModel):
    """On-disk shape of a suspension record."""

    workflow_id: str
    node_id: str
    state: Dict[str, Any] = Field(default_factory=dict)
    data_to_save: Dict[str, Any] = Field(default_factory=dict)
    saved_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_interrupt(cls, workflow_id: str, interrupt: WorkflowInterrupt) -> "InterruptRecord":
        return cls(
            workflow_id=workflow_id,
            node_id=interrupt.node_id,
            state=interrupt.state.to_dict(),
            data_to_save=dict(interrupt.data_to_save),
        )

    def to_interrupt(self) -> WorkflowInterrupt:
        return WorkflowInterrupt(
            node_id=self.node_id,
            state=WorkflowState.from_dict(self.state),
            data_to_save=self.data_to_save,
        )


class FileWorkflowPersistence(WorkflowPersistence):
    """
    Stores suspension records as JSON files in ``directory``.

    Writes go to a temporary file that is then renamed over the target, so a
    crash mid-write never leaves a truncated record behind.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path_for(self, workflow_id: str) -> Path:
        if not workflow_id:
            raise ValueError("Workflow ID cannot be empty")
        return self.directory / f"{quote(workflow_id, safe='')}.json"

    def save(self, workflow_id: str, interrupt: WorkflowInterrupt) -> None:
        if interrupt is None:
            raise ValueError("WorkflowInterrupt cannot be None for saving state")
        path = self._path_for(workflow_id)
        try:
            payload = InterruptRecord.from_interrupt(workflow_id, interrupt).model_dump_json(indent=2)
        except (TypeError, ValueError) as e:
            raise WorkflowPersistenceError(
                f"Cannot serialize state of workflow '{workflow_id}': {e}"
            ) from e

        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise WorkflowPersistenceError(
                f"Failed to write state of workflow '{workflow_id}' to {path}: {e}"
            ) from e
        logger.debug(f"Saved suspension record for workflow {workflow_id} to {path}")

    def load(self, workflow_id: str) -> Optional[WorkflowInterrupt]:
        path = self._path_for(workflow_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise WorkflowPersistenceError(
                f"Failed to read state of workflow '{workflow_id}' from {path}: {e}"
            ) from e

        try:
            record = InterruptRecord.model_validate_json(raw)
        except ValidationError as e:
            raise WorkflowPersistenceError(
                f"Corrupt suspension record for workflow '{workflow_id}' at {path}: {e}"
            ) from e
        if record.workflow_id != workflow_id:
            raise WorkflowPersistenceError(
                f"Record at {path} belongs to workflow '{record.workflow_id}', not '{workflow_id}'"
            )
        return record.to_interrupt()

    def delete(self, workflow_id: str) -> None:
        path = self._path_for(workflow_id)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise WorkflowPersistenceError(
                f"Failed to delete state of workflow '{workflow_id}' at {path}: {e}"
            ) from e
