"""
Exporter package - Render workflow graphs in other formats.
"""

from pausegraph.exporter.mermaid import MermaidExporter, WorkflowExporter, WorkflowExportError

__all__ = [
    "MermaidExporter",
    "WorkflowExporter",
    "WorkflowExportError",
]
