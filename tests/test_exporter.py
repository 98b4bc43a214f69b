"""
Tests for Mermaid export and the logging listener.
"""

import logging

import pytest

from pausegraph.engine.workflow import Workflow
from pausegraph.exporter.mermaid import (
    END_STYLE,
    START_STYLE,
    MermaidExporter,
    WorkflowExportError,
    escape_label,
    sanitize_node_id,
)
from pausegraph.observability.logging_listener import LoggingListener
from pausegraph.workflows.approval import create_approval_workflow


def noop(context):
    return None


class TestMermaidExporter:
    """Tests for MermaidExporter."""

    def test_export_approval_workflow(self):
        """Test exporting the sample workflow."""
        diagram = MermaidExporter().export(create_approval_workflow())

        assert diagram.startswith("graph TD;\n")
        assert '    draft["FunctionNode::draft"];' in diagram
        assert "    draft --> review;" in diagram
        assert "    review -->|Conditional| publish;" in diagram
        assert f"    style draft {START_STYLE};" in diagram
        assert f"    style finalize {END_STYLE};" in diagram

    def test_direction(self):
        """Test the graph direction header."""
        workflow = Workflow().add_node("a", noop).set_start_node_id("a")
        assert MermaidExporter("lr").export(workflow).startswith("graph LR;")
        assert MermaidExporter(None).export(workflow).startswith("graph TD;")

    def test_unknown_end_node_is_not_styled(self):
        """Test that an end id missing from the graph gets no style line."""
        workflow = Workflow().add_node("a", noop).set_start_node_id("a").set_end_node_id("ghost")
        assert "ghost" not in MermaidExporter().export(workflow)

    def test_empty_workflow(self):
        """Test that a workflow with no nodes cannot be exported."""
        with pytest.raises(WorkflowExportError):
            MermaidExporter().export(Workflow())

    def test_sanitize_node_id(self):
        """Test identifier sanitizing."""
        assert sanitize_node_id("load data;now") == "load_data_now"
        assert sanitize_node_id("a(b)") == "ab"
        assert sanitize_node_id("()") == "_empty_id_"
        assert sanitize_node_id(None) == "_null_id_"

    def test_escape_label(self):
        """Test label escaping."""
        assert escape_label('say "hi"') == "say #quot;hi#quot;"
        assert escape_label(None) == ""


class TestLoggingListener:
    """Tests for LoggingListener."""

    def test_logs_events_at_info(self, caplog):
        """Test that regular events are logged at INFO."""
        listener = LoggingListener(logging.getLogger("test.events"))
        with caplog.at_level(logging.INFO, logger="test.events"):
            listener("workflow-node-start", {"node_id": "a"})

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.getMessage() == 'WORKFLOW EVENT: type=[workflow-node-start], data: {"node_id": "a"}'

    def test_logs_errors_at_error(self, caplog):
        """Test that *-error events are logged at ERROR."""
        listener = LoggingListener(logging.getLogger("test.events"))
        with caplog.at_level(logging.INFO, logger="test.events"):
            listener("workflow-run-error", {"error": "boom"})
        assert caplog.records[-1].levelno == logging.ERROR

    def test_attached_to_workflow(self, caplog):
        """Test logging every event of a run."""
        listener = LoggingListener(logging.getLogger("test.run"))
        workflow = Workflow().add_node("a", noop).set_start_node_id("a")
        workflow.add_listener(listener)

        with caplog.at_level(logging.INFO, logger="test.run"):
            workflow.run()

        messages = [r.getMessage() for r in caplog.records if r.name == "test.run"]
        assert any("workflow-run-start" in m for m in messages)
        assert any("workflow-run-stop" in m for m in messages)

    def test_unserializable_payload(self, caplog):
        """Test that payload values JSON cannot encode fall back to str."""
        listener = LoggingListener(logging.getLogger("test.events"))
        with caplog.at_level(logging.INFO, logger="test.events"):
            listener("custom", {"value": object()})
        assert "object object at" in caplog.records[-1].getMessage()
