"""Export formats: JSON, plain-text reports and raster capture."""

from .capture import CaptureResult, ProjectionRenderer, capture_projection
from .reports import (
    ReportEntry,
    ReportKind,
    command_line_report,
    generate_report,
    script_report,
    unescape_script,
)
from .serialization import (
    SerializationResult,
    capture_filename,
    export_timestamp,
    json_export_filename,
    serialize_document,
)

__all__ = [
    "CaptureResult",
    "ProjectionRenderer",
    "capture_projection",
    "ReportEntry",
    "ReportKind",
    "command_line_report",
    "generate_report",
    "script_report",
    "unescape_script",
    "SerializationResult",
    "capture_filename",
    "export_timestamp",
    "json_export_filename",
    "serialize_document",
]
