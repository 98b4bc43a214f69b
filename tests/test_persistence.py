"""
Tests for the persistence backends and their configuration.
"""

import json

import pytest
from pydantic import ValidationError

from pausegraph.config import Settings, create_persistence
from pausegraph.engine.exceptions import WorkflowError, WorkflowInterrupt
from pausegraph.engine.state import WorkflowState
from pausegraph.engine.workflow import Workflow
from pausegraph.persistence import (
    FileWorkflowPersistence,
    InMemoryWorkflowPersistence,
    WorkflowPersistenceError,
)


def make_interrupt(**state) -> WorkflowInterrupt:
    return WorkflowInterrupt("review", WorkflowState(state), {"question": "ok?"})


class TestInMemoryPersistence:
    """Tests for InMemoryWorkflowPersistence."""

    def test_save_load_delete(self):
        """Test the basic record lifecycle."""
        store = InMemoryWorkflowPersistence()
        interrupt = make_interrupt(a=1)

        store.save("wf-1", interrupt)
        assert store.load("wf-1") is interrupt
        assert "wf-1" in store
        assert len(store) == 1

        store.delete("wf-1")
        assert store.load("wf-1") is None
        store.delete("wf-1")

    def test_save_replaces_record(self):
        """Test that only the latest record per id is kept."""
        store = InMemoryWorkflowPersistence()
        store.save("wf", make_interrupt(v=1))
        store.save("wf", make_interrupt(v=2))
        assert store.load("wf").state.get("v") == 2
        assert len(store) == 1

    def test_none_id_rejected(self):
        """Test that a None workflow id is an error."""
        store = InMemoryWorkflowPersistence()
        with pytest.raises(ValueError):
            store.save(None, make_interrupt())
        with pytest.raises(ValueError):
            store.load(None)

    def test_clear_all(self):
        """Test dropping every record."""
        store = InMemoryWorkflowPersistence()
        store.save("a", make_interrupt())
        store.save("b", make_interrupt())
        store.clear_all()
        assert len(store) == 0


class TestFilePersistence:
    """Tests for FileWorkflowPersistence."""

    def test_save_and_load(self, tmp_path):
        """Test that a record survives a round trip through disk."""
        store = FileWorkflowPersistence(tmp_path)
        store.save("wf-1", make_interrupt(topic="notes", count=3))

        loaded = store.load("wf-1")
        assert loaded.node_id == "review"
        assert loaded.state.to_dict() == {"topic": "notes", "count": 3}
        assert dict(loaded.data_to_save) == {"question": "ok?"}

    def test_record_format(self, tmp_path):
        """Test the on-disk JSON document."""
        store = FileWorkflowPersistence(tmp_path)
        store.save("wf-1", make_interrupt(topic="notes"))

        document = json.loads((tmp_path / "wf-1.json").read_text())
        assert document["workflow_id"] == "wf-1"
        assert document["node_id"] == "review"
        assert document["state"] == {"topic": "notes"}
        assert "saved_at" in document
        assert list(tmp_path.glob("*.tmp")) == []

    def test_missing_record(self, tmp_path):
        """Test loading an id that was never saved."""
        assert FileWorkflowPersistence(tmp_path / "nested").load("nope") is None

    def test_delete_is_idempotent(self, tmp_path):
        """Test deleting a record twice."""
        store = FileWorkflowPersistence(tmp_path)
        store.save("wf", make_interrupt())
        store.delete("wf")
        store.delete("wf")
        assert store.load("wf") is None

    def test_unsafe_ids_stay_in_directory(self, tmp_path):
        """Test that path separators in ids are neutralized."""
        store = FileWorkflowPersistence(tmp_path)
        store.save("../escape", make_interrupt())
        assert [p.parent for p in tmp_path.iterdir()] == [tmp_path]
        assert store.load("../escape") is not None

    def test_similar_ids_do_not_collide(self, tmp_path):
        """Test that ids differing only in unsafe characters keep separate records."""
        store = FileWorkflowPersistence(tmp_path)
        store.save("team/a", make_interrupt(owner="team/a"))
        store.save("team_a", make_interrupt(owner="team_a"))
        store.save("team:a", make_interrupt(owner="team:a"))

        assert store.load("team/a").state.get("owner") == "team/a"
        assert store.load("team_a").state.get("owner") == "team_a"
        assert store.load("team:a").state.get("owner") == "team:a"
        assert len(list(tmp_path.glob("*.json"))) == 3

        store.delete("team_a")
        assert store.load("team/a") is not None

    def test_record_for_another_id(self, tmp_path):
        """Test that a record whose stored id does not match is rejected."""
        store = FileWorkflowPersistence(tmp_path)
        store.save("other", make_interrupt())
        (tmp_path / "other.json").rename(tmp_path / "wf.json")

        with pytest.raises(WorkflowPersistenceError, match="belongs to workflow 'other'"):
            store.load("wf")

    def test_unserializable_state(self, tmp_path):
        """Test that a state JSON cannot encode is reported as a persistence error."""
        store = FileWorkflowPersistence(tmp_path)
        with pytest.raises(WorkflowPersistenceError):
            store.save("wf", make_interrupt(handle=object()))

    def test_corrupt_record(self, tmp_path):
        """Test that an unreadable record is reported as a persistence error."""
        (tmp_path / "wf.json").write_text("{not json")
        with pytest.raises(WorkflowPersistenceError):
            FileWorkflowPersistence(tmp_path).load("wf")

    def test_undecodable_record(self, tmp_path):
        """Test that a record that is not UTF-8 is reported as a persistence error."""
        (tmp_path / "wf.json").write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(WorkflowPersistenceError):
            FileWorkflowPersistence(tmp_path).load("wf")

    def test_resume_with_undecodable_record(self, tmp_path, collector):
        """Test that resuming from an undecodable record fails with a resume-error event."""
        (tmp_path / "wf.json").write_bytes(b"\xff\xfe\x00garbage")
        workflow = Workflow("wf", persistence=FileWorkflowPersistence(tmp_path))
        workflow.add_listener(collector)

        with pytest.raises(WorkflowError, match="Failed to load"):
            workflow.resume("x")
        assert collector.names[-1] == "workflow-resume-error"

    def test_resume_across_workflow_instances(self, tmp_path):
        """Test suspending in one Workflow and resuming in a fresh one."""
        def build():
            workflow = Workflow("durable", persistence=FileWorkflowPersistence(tmp_path))
            workflow.add_node("ask", lambda context: {"answer": context.interrupt({"q": "?"})})
            workflow.set_start_node_id("ask")
            return workflow

        with pytest.raises(WorkflowInterrupt):
            build().run()
        assert (tmp_path / "durable.json").exists()

        assert build().resume(42).get("answer") == 42
        assert not (tmp_path / "durable.json").exists()


class TestCreatePersistence:
    """Tests for selecting a backend from settings."""

    def test_memory_backend(self):
        """Test the default in-memory backend."""
        store = create_persistence(Settings(PERSISTENCE_BACKEND="memory"))
        assert isinstance(store, InMemoryWorkflowPersistence)

    def test_file_backend(self, tmp_path):
        """Test the file backend uses the configured directory."""
        store = create_persistence(
            Settings(PERSISTENCE_BACKEND="file", PERSISTENCE_DIR=str(tmp_path))
        )
        assert isinstance(store, FileWorkflowPersistence)
        assert store.directory == tmp_path

    def test_unknown_backend(self):
        """Test that an unsupported backend name is rejected by the settings."""
        with pytest.raises(ValidationError):
            Settings(PERSISTENCE_BACKEND="redis")
