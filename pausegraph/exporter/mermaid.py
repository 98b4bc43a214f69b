"""
Mermaid flowchart export.

Produces https://mermaid.js.org flowchart syntax so a workflow's structure
can be rendered in docs or the API's graph view:

    graph TD;

        draft["FunctionNode::draft"];
        review["FunctionNode::review"];

        draft --> review;
        review -->|Conditional| publish;

        style draft fill:#B4F8C8,stroke:#000,stroke-width:2px,color:#000;
"""

from typing import TYPE_CHECKING, Optional, Protocol
import re

if TYPE_CHECKING:
    from pausegraph.engine.workflow import Workflow


_ID_SEPARATORS = re.compile(r"[\s;:,]")
_ID_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_\-]")

START_STYLE = "fill:#B4F8C8,stroke:#000,stroke-width:2px,color:#000"
END_STYLE = "fill:#FBE7C6,stroke:#000,stroke-width:2px,color:#000"


class WorkflowExportError(Exception):
    """The workflow cannot be exported."""


class WorkflowExporter(Protocol):
    def export(self, workflow: "Workflow") -> str:
        ...


class MermaidExporter:
    """Converts a ``Workflow`` into Mermaid flowchart syntax."""

    def __init__(self, direction: Optional[str] = "TD"):
        if direction is None or not direction.strip():
            self.direction = "TD"
        else:
            self.direction = direction.strip().upper()

    def export(self, workflow: "Workflow") -> str:
        if workflow is None:
            raise ValueError("Workflow to export cannot be None")
        if not workflow.nodes:
            raise WorkflowExportError(
                f"Cannot export an empty workflow (no nodes defined): {workflow.id}"
            )

        lines = [f"graph {self.direction};", ""]

        for node_id, node in workflow.nodes.items():
            label = f"{type(node).__name__}::{node_id}"
            lines.append(f'    {sanitize_node_id(node_id)}["{escape_label(label)}"];')
        lines.append("")

        for edge in workflow.edges:
            source = sanitize_node_id(edge.source)
            target = sanitize_node_id(edge.target)
            if edge.has_condition:
                lines.append(f"    {source} -->|{escape_label('Conditional')}| {target};")
            else:
                lines.append(f"    {source} --> {target};")

        if workflow.start_node_id:
            lines.append("")
            lines.append(f"    style {sanitize_node_id(workflow.start_node_id)} {START_STYLE};")
        if workflow.end_node_id and workflow.end_node_id in workflow.nodes:
            lines.append(f"    style {sanitize_node_id(workflow.end_node_id)} {END_STYLE};")

        return "\n".join(lines) + "\n"


def sanitize_node_id(node_id: Optional[str]) -> str:
    """Make a node id safe to use as a bare Mermaid identifier."""
    if node_id is None:
        return "_null_id_"
    sanitized = _ID_INVALID_CHARS.sub("", _ID_SEPARATORS.sub("_", node_id))
    return sanitized or "_empty_id_"


def escape_label(label: Optional[str]) -> str:
    """Escape text placed inside a quoted Mermaid label."""
    if label is None:
        return ""
    return label.replace("\\", "\\\\").replace('"', "#quot;")
