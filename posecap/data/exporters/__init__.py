"""
Export modules for recorded takes.

Supports export to:
- BVH (Biovision Hierarchy) - Standard mocap format
- JSON - Lossless take document
"""

from posecap.data.exporters.bvh_exporter import BVHWriter, estimate_fps
from posecap.data.exporters.json_exporter import (
    TAKE_DOCUMENT_SCHEMA,
    build_take_document,
    export_take_json,
    import_take_json,
    parse_take_document,
)
from posecap.data.exporters.take_exporter import ExportOptions, ExportResult, export_take

__all__ = [
    "BVHWriter",
    "estimate_fps",
    "TAKE_DOCUMENT_SCHEMA",
    "build_take_document",
    "export_take_json",
    "import_take_json",
    "parse_take_document",
    "ExportOptions",
    "ExportResult",
    "export_take",
]
